from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Sequence

from .characterize import ClusterCharacterizer
from .clustering import ClusteringEngine
from .config import Settings
from .fingerprint import FingerprintExtractor
from .models import (
    AnalysisError,
    AnalysisResult,
    AnalysisStatistics,
    AudioCluster,
    ClusterCategory,
    ExtractionError,
    FileDescriptor,
    FileKind,
    OrganizeResult,
    StorageError,
    ValidationError,
)
from .organizer import OrganizeExecutor
from .storage import StorageBackend, fetch_metadata_batched, parent_path

logger = logging.getLogger(__name__)

NOT_ENOUGH_FILES_MESSAGE = "Need at least 2 audio files to perform clustering"


@dataclass
class ClusterService:
    """Entry point for analyzing a folder and organizing an approved cluster."""

    settings: Settings
    backend: StorageBackend
    extractor: FingerprintExtractor = field(default_factory=FingerprintExtractor)
    today: Optional[Callable[[], date]] = None

    def analyze(
        self,
        folder_path: Optional[str] = None,
        files: Optional[Sequence[str]] = None,
    ) -> AnalysisResult:
        if not folder_path and not files:
            raise ValidationError("Folder path or files list is required")

        errors: List[ExtractionError] = []
        if files:
            descriptors, errors = self._describe_files(files)
        else:
            descriptors = self._list_audio_files(folder_path)

        total = len(descriptors) + len(errors)
        min_files = self.settings.clustering.min_files
        if total < min_files:
            logger.info("Only %d audio file(s) found; skipping clustering", total)
            return AnalysisResult(
                message=NOT_ENOUGH_FILES_MESSAGE,
                statistics=AnalysisStatistics(total_files=total),
                errors=errors,
            )

        logger.info("Analyzing %d audio files for clustering", total)
        fingerprints, extraction_errors = self.extractor.extract_all(descriptors)
        errors.extend(extraction_errors)
        if len(fingerprints) < min_files:
            raise AnalysisError("Could not analyze enough files for clustering", errors)

        engine = self._engine()
        threshold = engine.resolve_threshold(fingerprints, None, optimize=True)
        clusters = engine.cluster(fingerprints, threshold)
        self._log_clusters(clusters)

        clustered = sum(cluster.size for cluster in clusters)
        statistics = AnalysisStatistics(
            total_files=total,
            analyzed_files=len(fingerprints),
            clusters_found=len(clusters),
            unclustered_files=len(fingerprints) - clustered,
            average_cluster_size=clustered / len(clusters) if clusters else 0.0,
            threshold=threshold,
        )
        return AnalysisResult(
            message=(
                f"Successfully analyzed {len(fingerprints)} audio files "
                f"and found {len(clusters)} clusters"
            ),
            fingerprints=fingerprints,
            clusters=clusters,
            statistics=statistics,
            errors=errors,
        )

    def organize_cluster(
        self,
        cluster_id: str,
        files: Sequence[str],
        name_hint: Optional[str] = None,
        category_hint: Optional[str] = None,
        confidence_hint: Optional[float] = None,
        *,
        destination: Optional[str] = None,
        dry_run: bool = False,
    ) -> OrganizeResult:
        if not cluster_id:
            raise ValidationError("cluster_id is required to organize a cluster")
        if not files:
            raise ValidationError("At least one file is required to organize a cluster")
        category = _parse_category(category_hint)
        if confidence_hint is not None and not 0.0 <= confidence_hint <= 1.0:
            raise ValidationError(f"Confidence {confidence_hint} is outside [0, 1]")
        logger.info(
            "Organizing cluster %s (%s, category=%s, confidence=%s, %d files)",
            cluster_id,
            name_hint or "unnamed",
            category.value if category else "unknown",
            confidence_hint,
            len(files),
        )

        base_path = destination if destination is not None else parent_path(files[0])
        executor = OrganizeExecutor(self.backend, self.settings.organizer, today=self.today)
        return executor.organize(
            files,
            base_path,
            name_hint,
            self._existing_folder_names(base_path),
            cluster_id=cluster_id,
            dry_run=dry_run,
        )

    def organize(
        self,
        cluster: AudioCluster,
        *,
        destination: Optional[str] = None,
        dry_run: bool = False,
    ) -> OrganizeResult:
        return self.organize_cluster(
            cluster.id,
            cluster.file_paths,
            cluster.name,
            cluster.suggested_category.value,
            cluster.confidence,
            destination=destination,
            dry_run=dry_run,
        )

    def _engine(self) -> ClusteringEngine:
        return ClusteringEngine(self.settings.clustering, characterizer=ClusterCharacterizer())

    def _list_audio_files(self, folder_path: str) -> List[FileDescriptor]:
        entries = self.backend.list_files(folder_path)
        audio: List[FileDescriptor] = []
        for entry in entries:
            match entry.kind:
                case FileKind.FILE:
                    if self.settings.library.is_audio(entry.name):
                        audio.append(entry)
                case FileKind.FOLDER:
                    continue
        return audio

    def _describe_files(
        self, files: Sequence[str]
    ) -> tuple[List[FileDescriptor], List[ExtractionError]]:
        descriptors, failures = fetch_metadata_batched(
            self.backend, list(files), self.settings.storage.batch_size
        )
        errors = [
            ExtractionError(exc.message if isinstance(exc, StorageError) else str(exc), path=path)
            for path, exc in failures
        ]
        return descriptors, errors

    def _existing_folder_names(self, base_path: str) -> List[str]:
        try:
            entries = self.backend.list_files(base_path)
        except StorageError as exc:
            logger.warning(
                "Could not list %s (%s); proceeding without conflict checking",
                base_path or "/",
                exc.message,
            )
            return []
        names = []
        for entry in entries:
            match entry.kind:
                case FileKind.FOLDER:
                    names.append(entry.name)
                case FileKind.FILE:
                    continue
        return names

    @staticmethod
    def _log_clusters(clusters: List[AudioCluster]) -> None:
        if not clusters:
            logger.info("No clusters found")
            return
        for idx, cluster in enumerate(clusters, start=1):
            logger.info(
                "Cluster %d: %s (%d files, confidence %.2f)",
                idx,
                cluster.name,
                cluster.size,
                cluster.confidence,
            )


def _parse_category(value: Optional[str]) -> Optional[ClusterCategory]:
    if value is None:
        return None
    try:
        return ClusterCategory(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown cluster category {value!r}") from exc
