from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from .models import (
    AudioFeatures,
    AudioFingerprint,
    DurationCategory,
    ExtractionError,
    FileDescriptor,
    FormatGroup,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Roughly a 128 kbps MP3. Wrong for lossless files, but only used to compare files.
BYTES_PER_SECOND = 16000

DATE_PREFIX_PATTERN = re.compile(r"^\d{8}_")
TOKEN_SPLIT_PATTERN = re.compile(r"[\s\-_.()]+")
EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")

LOSSLESS_FORMATS = frozenset({"wav", "flac", "aiff"})
COMPRESSED_FORMATS = frozenset({"mp3", "aac", "m4a", "ogg"})
IGNORED_TOKENS = frozenset({"1"})


def extract_filename_tokens(filename: str) -> tuple[str, ...]:
    stem = EXTENSION_PATTERN.sub("", filename)
    # Files processed twice end up with two date prefixes.
    for _ in range(2):
        stem = DATE_PREFIX_PATTERN.sub("", stem, count=1)
    tokens = tuple(
        token.lower()
        for token in TOKEN_SPLIT_PATTERN.split(stem)
        if token and token.lower() not in IGNORED_TOKENS
    )
    if not tokens:
        logger.debug("No tokens extracted from filename %s", filename)
    return tokens


def estimate_duration(size_bytes: Optional[int]) -> int:
    if not size_bytes or size_bytes < 0:
        return 0
    return round(size_bytes / BYTES_PER_SECOND)


def categorize_duration(seconds: float) -> DurationCategory:
    if seconds < 30:
        return DurationCategory.SNIPPET
    if seconds < 120:
        return DurationCategory.SHORT
    if seconds < 300:
        return DurationCategory.MEDIUM
    return DurationCategory.LONG


def file_extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def categorize_format(fmt: str) -> FormatGroup:
    fmt = (fmt or "").lower()
    if fmt in LOSSLESS_FORMATS:
        return FormatGroup.LOSSLESS
    if fmt in COMPRESSED_FORMATS:
        return FormatGroup.COMPRESSED
    return FormatGroup.OTHER


def date_context(moment: datetime) -> str:
    return moment.date().isoformat()


class FingerprintExtractor:
    """Builds fingerprints from file descriptors using only name, size and mtime."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def extract(self, descriptor: FileDescriptor) -> AudioFingerprint:
        if not descriptor.is_file:
            raise ValidationError("Cannot fingerprint a folder", path=descriptor.path)
        name = descriptor.name or descriptor.path.rsplit("/", 1)[-1]
        size = descriptor.size if descriptor.size and descriptor.size > 0 else 0
        modified = descriptor.modified or self._clock()
        if modified.tzinfo is None:
            modified = modified.replace(tzinfo=timezone.utc)
        duration = estimate_duration(size)
        fmt = file_extension(name)
        features = AudioFeatures(
            duration_category=categorize_duration(duration),
            format_group=categorize_format(fmt),
            filename_tokens=extract_filename_tokens(name),
            date_context=date_context(modified),
        )
        return AudioFingerprint(
            file_path=descriptor.path,
            file_name=name,
            duration=duration,
            file_size=size,
            modified_date=modified,
            format=fmt,
            features=features,
            tempo=descriptor.tempo,
            key=descriptor.key,
        )

    def extract_all(
        self, descriptors: Iterable[FileDescriptor]
    ) -> Tuple[List[AudioFingerprint], List[ExtractionError]]:
        fingerprints: List[AudioFingerprint] = []
        errors: List[ExtractionError] = []
        items = list(descriptors)
        total = len(items)
        for idx, descriptor in enumerate(items, start=1):
            try:
                fingerprint = self.extract(descriptor)
            except Exception as exc:
                logger.warning(
                    "[%d/%d] Failed to fingerprint %s: %s", idx, total, descriptor.path, exc
                )
                errors.append(ExtractionError(str(exc), path=descriptor.path))
                continue
            logger.debug(
                "[%d/%d] %s tokens=%s",
                idx,
                total,
                fingerprint.file_name,
                list(fingerprint.features.filename_tokens),
            )
            fingerprints.append(fingerprint)
        return fingerprints, errors
