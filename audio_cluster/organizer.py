from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from .config import OrganizerSettings
from .models import (
    FileMoveResult,
    FolderExistsError,
    MoveStatus,
    OrganizeError,
    OrganizeResult,
    StorageError,
    ValidationError,
)
from .storage import StorageBackend, join_path
from .titles import DEFAULT_MATCHERS, TitleMatcher, extract_title, normalize_title

logger = logging.getLogger(__name__)


def date_stamp(day: date) -> str:
    return day.strftime("%Y%m%d")


def fallback_folder_name(stamp: str, existing_folder_names: Iterable[str]) -> str:
    existing = list(existing_folder_names)
    counter = 1
    while True:
        candidate = f"{stamp}_{counter:02d}"
        if not any(candidate in name for name in existing):
            return candidate
        counter += 1


class OrganizeExecutor:
    """Moves an approved cluster into a new ``{YYYYMMDD}_{Title}`` folder."""

    def __init__(
        self,
        backend: StorageBackend,
        settings: OrganizerSettings | None = None,
        *,
        matchers: Sequence[TitleMatcher] = DEFAULT_MATCHERS,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.backend = backend
        self.settings = settings or OrganizerSettings()
        self.matchers = matchers
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def folder_name(
        self,
        files: Sequence[str],
        cluster_name_hint: Optional[str],
        existing_folder_names: Iterable[str],
        stamp: str,
    ) -> str:
        title = extract_title(cluster_name_hint, files, self.matchers)
        normalized = normalize_title(title) if title else ""
        if normalized.strip("_"):
            # Title-based names are not checked against existing folders.
            return f"{stamp}_{normalized}"
        return fallback_folder_name(stamp, existing_folder_names)

    def target_file_name(self, path: str, stamp: str, index: int) -> str:
        name = path.rsplit("/", 1)[-1]
        lowered = name.lower()
        markers = self.settings.rename_markers
        if markers and all(marker in lowered for marker in markers):
            extension = name.rsplit(".", 1)[1] if "." in name else ""
            extension = extension or self.settings.default_extension
            return f"{stamp}_{index + 1:02d}.{extension}"
        return name

    def organize(
        self,
        cluster_files: Sequence[str],
        destination_base_path: str,
        cluster_name_hint: Optional[str] = None,
        existing_folder_names: Iterable[str] = (),
        *,
        cluster_id: Optional[str] = None,
        dry_run: bool = False,
    ) -> OrganizeResult:
        if not cluster_files:
            raise ValidationError("At least one file is required to organize a cluster")
        stamp = date_stamp(self._today())
        folder = self.folder_name(cluster_files, cluster_name_hint, existing_folder_names, stamp)
        folder_path = join_path(destination_base_path, folder)
        result = OrganizeResult(cluster_id=cluster_id, folder_name=folder, folder_path=folder_path)

        if dry_run:
            logger.info("Dry-run would create folder %s", folder_path)
        else:
            self._create_folder(folder_path)

        for index, path in enumerate(sorted(cluster_files)):
            result.results.append(self._move(path, folder_path, stamp, index, dry_run))

        result.message = self._summary(result, len(cluster_files))
        logger.info(result.message)
        return result

    def _create_folder(self, folder_path: str) -> None:
        try:
            self.backend.create_folder(folder_path)
        except FolderExistsError:
            logger.warning("Folder %s already exists; moving files into it", folder_path)
        except StorageError as exc:
            raise OrganizeError(f"Failed to create cluster folder: {exc.message}", path=folder_path) from exc

    def _move(
        self, path: str, folder_path: str, stamp: str, index: int, dry_run: bool
    ) -> FileMoveResult:
        original_name = path.rsplit("/", 1)[-1]
        new_name = self.target_file_name(path, stamp, index)
        new_path = join_path(folder_path, new_name)
        renamed = new_name != original_name
        if dry_run:
            logger.info("Dry-run would move %s -> %s", path, new_path)
            return FileMoveResult(path, new_path, new_name, MoveStatus.SUCCESS, renamed)
        try:
            self.backend.move_file(path, new_path)
        except Exception as exc:
            logger.warning("Failed to move %s -> %s: %s", path, new_path, exc)
            reason = exc.message if isinstance(exc, StorageError) else str(exc)
            return FileMoveResult(
                path, None, new_name, MoveStatus.ERROR, False, error=reason or "Unknown error"
            )
        return FileMoveResult(path, new_path, new_name, MoveStatus.SUCCESS, renamed)

    @staticmethod
    def _summary(result: OrganizeResult, total: int) -> str:
        message = (
            f"Successfully organized {result.success_count} of {total} files "
            f"into cluster folder: {result.folder_name}"
        )
        renamed = result.renamed_count
        if renamed:
            message += f"\n{renamed} files were renamed using date+digit convention"
        return message

