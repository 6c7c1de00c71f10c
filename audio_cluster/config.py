from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_AUDIO_EXTENSIONS = [".mp3", ".wav", ".m4a", ".aac", ".ogg", ".flac"]


class LibrarySettings(BaseModel):
    root: Path = Path(".")
    include_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_AUDIO_EXTENSIONS))

    @field_validator("root", mode="before")
    @classmethod
    def _expand_root(cls, value: str | Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("include_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, values: List[str]) -> List[str]:
        normalized = []
        for value in values:
            ext = str(value).strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            normalized.append(ext)
        return normalized

    def is_audio(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered.endswith(ext) for ext in self.include_extensions)


class ClusteringSettings(BaseModel):
    candidate_thresholds: List[float] = Field(
        default_factory=lambda: [0.3, 0.4, 0.5, 0.6, 0.7, 0.8]
    )
    default_threshold: float = 0.6
    min_files: int = 2

    @field_validator("candidate_thresholds")
    @classmethod
    def _check_thresholds(cls, values: List[float]) -> List[float]:
        if not values:
            raise ValueError("candidate_thresholds must not be empty")
        for value in values:
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"threshold {value} is outside [0, 1]")
        return values

    @field_validator("default_threshold")
    @classmethod
    def _check_default(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"threshold {value} is outside [0, 1]")
        return value

    @field_validator("min_files")
    @classmethod
    def _check_min_files(cls, value: int) -> int:
        # A cluster needs two members, so fewer inputs can never produce one.
        return max(2, value)


class StorageSettings(BaseModel):
    batch_size: int = 4

    @field_validator("batch_size")
    @classmethod
    def _check_batch_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("batch_size must be at least 1")
        return value


class OrganizerSettings(BaseModel):
    rename_markers: List[str] = Field(default_factory=lambda: ["379", "ch"])
    default_extension: str = "mp3"

    @field_validator("rename_markers", mode="before")
    @classmethod
    def _lower_markers(cls, values: List[str]) -> List[str]:
        return [str(value).lower() for value in values if str(value).strip()]


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    clustering: ClusteringSettings = ClusteringSettings()
    storage: StorageSettings = StorageSettings()
    organizer: OrganizerSettings = OrganizerSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    return None
