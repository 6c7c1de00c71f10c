from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class FileKind(Enum):
    FILE = "file"
    FOLDER = "folder"


class DurationCategory(str, Enum):
    SNIPPET = "snippet"
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class FormatGroup(str, Enum):
    LOSSLESS = "lossless"
    COMPRESSED = "compressed"
    OTHER = "other"


class ClusterCategory(str, Enum):
    SAME_SONG_TAKES = "same_song_takes"
    SIMILAR_IDEAS = "similar_ideas"
    SAME_SESSION = "same_session"
    UNRELATED = "unrelated"


class MoveStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True)
class FileDescriptor:
    kind: FileKind
    path: str
    name: str
    size: Optional[int] = None
    modified: Optional[datetime] = None
    tempo: Optional[float] = None
    key: Optional[str] = None

    @property
    def is_file(self) -> bool:
        match self.kind:
            case FileKind.FILE:
                return True
            case FileKind.FOLDER:
                return False


@dataclass(frozen=True, slots=True)
class AudioFeatures:
    duration_category: DurationCategory
    format_group: FormatGroup
    filename_tokens: tuple[str, ...]
    date_context: str


@dataclass(frozen=True, slots=True)
class AudioFingerprint:
    file_path: str
    file_name: str
    duration: int
    file_size: int
    modified_date: datetime
    format: str
    features: AudioFeatures
    tempo: Optional[float] = None
    key: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return _serialize(
            {
                "file_path": self.file_path,
                "file_name": self.file_name,
                "duration": self.duration,
                "file_size": self.file_size,
                "modified_date": self.modified_date,
                "format": self.format,
                "tempo": self.tempo,
                "key": self.key,
                "features": {
                    "duration_category": self.features.duration_category,
                    "format_group": self.features.format_group,
                    "filename_tokens": list(self.features.filename_tokens),
                    "date_context": self.features.date_context,
                },
            }
        )


@dataclass(slots=True)
class AudioCluster:
    id: str
    name: str
    suggested_category: ClusterCategory
    confidence: float
    files: List[AudioFingerprint]
    average_duration: float
    average_tempo: Optional[float] = None
    dominant_key: Optional[str] = None
    created_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.files)

    @property
    def file_paths(self) -> List[str]:
        return [fp.file_path for fp in self.files]

    def to_record(self) -> Dict[str, object]:
        return _serialize(
            {
                "id": self.id,
                "name": self.name,
                "suggested_category": self.suggested_category,
                "confidence": self.confidence,
                "files": [fp.to_record() for fp in self.files],
                "average_duration": self.average_duration,
                "average_tempo": self.average_tempo,
                "dominant_key": self.dominant_key,
                "created_date": self.created_date,
            }
        )


@dataclass(slots=True)
class AnalysisStatistics:
    total_files: int = 0
    analyzed_files: int = 0
    clusters_found: int = 0
    unclustered_files: int = 0
    average_cluster_size: float = 0.0
    threshold: Optional[float] = None

    def to_record(self) -> Dict[str, object]:
        return {
            "total_files": self.total_files,
            "analyzed_files": self.analyzed_files,
            "clusters_found": self.clusters_found,
            "unclustered_files": self.unclustered_files,
            "average_cluster_size": self.average_cluster_size,
            "threshold": self.threshold,
        }


@dataclass(slots=True)
class AnalysisResult:
    message: str
    fingerprints: List[AudioFingerprint] = field(default_factory=list)
    clusters: List[AudioCluster] = field(default_factory=list)
    statistics: AnalysisStatistics = field(default_factory=AnalysisStatistics)
    errors: List["ExtractionError"] = field(default_factory=list)

    def to_record(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "message": self.message,
            "fingerprints": [fp.to_record() for fp in self.fingerprints],
            "clusters": [cluster.to_record() for cluster in self.clusters],
            "statistics": self.statistics.to_record(),
        }
        if self.errors:
            payload["errors"] = [error.to_record() for error in self.errors]
        return payload


@dataclass(slots=True)
class FileMoveResult:
    original_path: str
    new_path: Optional[str]
    new_file_name: str
    status: MoveStatus
    renamed: bool = False
    error: Optional[str] = None

    def to_record(self) -> Dict[str, object]:
        return _serialize(
            {
                "original_path": self.original_path,
                "new_path": self.new_path,
                "new_file_name": self.new_file_name,
                "status": self.status,
                "renamed": self.renamed,
                "error": self.error,
            }
        )


@dataclass(slots=True)
class OrganizeResult:
    cluster_id: Optional[str]
    folder_name: str
    folder_path: str
    results: List[FileMoveResult] = field(default_factory=list)
    message: str = ""

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.results if item.status is MoveStatus.SUCCESS)

    @property
    def renamed_count(self) -> int:
        return sum(
            1
            for item in self.results
            if item.status is MoveStatus.SUCCESS and item.renamed
        )

    @property
    def failed(self) -> List[FileMoveResult]:
        return [item for item in self.results if item.status is MoveStatus.ERROR]

    def to_record(self) -> Dict[str, object]:
        return {
            "cluster_id": self.cluster_id,
            "folder_name": self.folder_name,
            "folder_path": self.folder_path,
            "message": self.message,
            "results": [item.to_record() for item in self.results],
        }


class AudioClusterError(Exception):
    """Base class for every error raised by the clustering core."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message

    def to_record(self) -> Dict[str, object]:
        return {"message": self.message, "path": self.path}


class ValidationError(AudioClusterError):
    """Raised when caller input is rejected before any work starts."""


class ExtractionError(AudioClusterError):
    """A single file could not be fingerprinted."""


class AnalysisError(AudioClusterError):
    """Raised when too few files could be fingerprinted to cluster anything."""

    def __init__(self, message: str, errors: Optional[List[ExtractionError]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class OrganizeError(AudioClusterError):
    """Raised when a cluster folder cannot be created."""


class StorageError(AudioClusterError):
    """Raised by storage backends when an operation fails."""


class FolderExistsError(StorageError):
    """The folder being created already exists."""


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value
