from __future__ import annotations

import errno
import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from mutagen import File as MutagenFile

from .models import FileDescriptor, FileKind, FolderExistsError, StorageError

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    def list_files(self, folder_path: str) -> List[FileDescriptor]: ...

    def get_file_metadata(self, path: str) -> FileDescriptor: ...

    def create_folder(self, path: str) -> None: ...

    def move_file(self, from_path: str, to_path: str) -> None: ...


def join_path(folder: str, name: str) -> str:
    folder = folder.rstrip("/")
    return f"{folder}/{name}" if folder else f"/{name}"


def parent_path(path: str) -> str:
    parent = str(PurePosixPath(path).parent)
    return "" if parent in (".", "/") else parent


def fetch_metadata_batched(
    backend: StorageBackend, paths: Sequence[str], batch_size: int
) -> Tuple[List[FileDescriptor], List[Tuple[str, Exception]]]:
    """Fetch metadata for ``paths`` with at most ``batch_size`` requests in flight.

    Results keep the order of ``paths``. Failures are returned rather than raised
    so that one unreadable file does not hide the others.
    """
    descriptors: List[FileDescriptor] = []
    failures: List[Tuple[str, Exception]] = []
    workers = max(1, batch_size)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for start in range(0, len(paths), workers):
            batch = list(paths[start : start + workers])
            futures = [(path, pool.submit(backend.get_file_metadata, path)) for path in batch]
            for path, future in futures:
                try:
                    descriptors.append(future.result())
                except Exception as exc:
                    logger.warning("Failed to fetch metadata for %s: %s", path, exc)
                    failures.append((path, exc))
    return descriptors, failures


class LocalStorageBackend:
    """Storage backend over a local directory tree.

    Paths are ``/``-separated and relative to ``root``, the way a remote file
    service addresses them (``/Ideas/take1.mp3``).
    """

    def __init__(self, root: Path, *, read_tags: bool = True) -> None:
        self.root = Path(root).expanduser().resolve()
        self.read_tags = read_tags

    def list_files(self, folder_path: str) -> List[FileDescriptor]:
        directory = self._resolve(folder_path)
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise StorageError(f"Cannot list folder: {exc.strerror or exc}", path=folder_path) from exc
        descriptors = []
        for entry in entries:
            descriptor = self._describe(entry, join_path(folder_path, entry.name))
            if descriptor is not None:
                descriptors.append(descriptor)
        return descriptors

    def get_file_metadata(self, path: str) -> FileDescriptor:
        target = self._resolve(path)
        if not target.exists():
            raise StorageError("No such file", path=path)
        descriptor = self._describe(target, path)
        if descriptor is None:
            raise StorageError("Unsupported entry type", path=path)
        return descriptor

    def create_folder(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.mkdir(parents=True, exist_ok=False)
        except FileExistsError as exc:
            raise FolderExistsError("Folder already exists", path=path) from exc
        except OSError as exc:
            raise StorageError(f"Cannot create folder: {exc.strerror or exc}", path=path) from exc
        logger.info("Created folder %s", path)

    def move_file(self, from_path: str, to_path: str) -> None:
        src = self._resolve(from_path)
        dst = self._resolve(to_path)
        if not src.is_file():
            raise StorageError("Source file does not exist", path=from_path)
        if dst.exists():
            raise StorageError("Destination already exists", path=to_path)
        try:
            try:
                src.rename(dst)
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                # Cross-device rename failed; fall back to shutil.move which copies+removes.
                shutil.move(str(src), str(dst))
        except OSError as exc:
            raise StorageError(f"Cannot move file: {exc.strerror or exc}", path=from_path) from exc
        logger.info("Moved %s -> %s", from_path, to_path)

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path.lstrip("/"))
        if any(part == ".." for part in relative.parts):
            raise StorageError("Path escapes the storage root", path=path)
        return self.root.joinpath(*relative.parts)

    def _describe(self, entry: Path, path: str) -> Optional[FileDescriptor]:
        if entry.is_dir():
            return FileDescriptor(kind=FileKind.FOLDER, path=path, name=entry.name)
        if not entry.is_file():
            return None
        try:
            stat = entry.stat()
        except OSError as exc:
            raise StorageError(f"Cannot stat file: {exc.strerror or exc}", path=path) from exc
        tags = self._read_tags(entry) if self.read_tags else {}
        return FileDescriptor(
            kind=FileKind.FILE,
            path=path,
            name=entry.name,
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            tempo=_parse_tempo(tags.get("bpm")),
            key=tags.get("key"),
        )

    def _read_tags(self, path: Path) -> Dict[str, Optional[str]]:
        try:
            audio = MutagenFile(path, easy=True)
        except Exception as exc:  # pragma: no cover - tag parsing failures
            logger.debug("Failed to read tags from %s: %s", path, exc)
            return {}
        if not audio or not audio.tags:
            return {}
        return {
            "bpm": self._first_tag(audio, ["bpm"]),
            "key": self._first_tag(audio, ["initialkey", "key"]),
        }

    @staticmethod
    def _first_tag(audio, keys) -> Optional[str]:
        for key in keys:
            try:
                values = audio.tags.get(key)
            except (KeyError, ValueError):
                continue
            if values:
                if isinstance(values, list):
                    return values[0]
                return values
        return None


def _parse_tempo(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        tempo = float(str(value).strip())
    except ValueError:
        return None
    return tempo if tempo > 0 else None
