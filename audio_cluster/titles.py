"""
Song title extraction for cluster folder names.

Titles are found by an ordered chain of matchers. Each matcher is independent
and returns ``None`` when it has nothing to offer; the first non-empty answer
wins. The default chain tries the cluster name first and falls back to the
file names.
"""

from __future__ import annotations

import re
from typing import Optional, Protocol, Sequence

CLUSTER_SUFFIX_PATTERN = re.compile(
    r"\s*-\s*(Takes|Variations|Recording Session)\s*\([^)]+\).*$", re.IGNORECASE
)
GENERIC_NAME_PATTERN = re.compile(
    r"^(Similar Audio|Recording Session)\b.*$", re.IGNORECASE
)

EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")
DOUBLE_DATE_PREFIX = re.compile(r"^\d{8}_\d{8}_")
DATE_PREFIX = re.compile(r"^\d{8}_")
TIME_PREFIX = re.compile(r"^\d{4}_")

FILENAME_TITLE_PATTERNS = (
    # "Song Name_take" or "Song Name more"
    re.compile(r"^([A-Za-z][A-Za-z\s]{2,}?)[\s_-]"),
    # "Song Name"
    re.compile(r"^([A-Za-z][A-Za-z\s]{2,})$"),
    # "Take It Easy"
    re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"),
)
NUMERIC_PATTERN = re.compile(r"^\d+$")

MIN_TITLE_LENGTH = 3
MAX_WHOLE_NAME_LENGTH = 50
MAX_WHOLE_NAME_WORDS = 6


class TitleMatcher(Protocol):
    name: str

    def match(self, hint: Optional[str], paths: Sequence[str]) -> Optional[str]: ...


class ClusterNameMatcher:
    """Reuses the descriptive part of a generated cluster name."""

    name = "cluster_name"

    def match(self, hint: Optional[str], paths: Sequence[str]) -> Optional[str]:
        if not hint:
            return None
        base = CLUSTER_SUFFIX_PATTERN.sub("", hint).strip()
        if not base or GENERIC_NAME_PATTERN.match(base):
            return None
        return base


class FilenameTitleMatcher:
    """Guesses a title from cleaned file names, preferring the longest candidate."""

    name = "filename"

    def match(self, hint: Optional[str], paths: Sequence[str]) -> Optional[str]:
        candidates: list[str] = []
        for path in paths:
            for candidate in self.candidates(clean_filename(path)):
                if candidate not in candidates:
                    candidates.append(candidate)
        if not candidates:
            return None
        # Stable sort keeps the first-seen candidate among equal lengths.
        return sorted(candidates, key=len, reverse=True)[0]

    @staticmethod
    def candidates(cleaned: str) -> list[str]:
        found: list[str] = []
        for pattern in FILENAME_TITLE_PATTERNS:
            match = pattern.match(cleaned)
            if not match:
                continue
            candidate = match.group(1).strip()
            if _acceptable(candidate):
                found.append(candidate)
        if (
            MIN_TITLE_LENGTH <= len(cleaned) <= MAX_WHOLE_NAME_LENGTH
            and cleaned[:1].isalpha()
            and len(cleaned.split()) <= MAX_WHOLE_NAME_WORDS
        ):
            found.append(cleaned)
        return found


DEFAULT_MATCHERS: tuple[TitleMatcher, ...] = (ClusterNameMatcher(), FilenameTitleMatcher())


def clean_filename(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    name = EXTENSION_PATTERN.sub("", name)
    name = DOUBLE_DATE_PREFIX.sub("", name)
    name = DATE_PREFIX.sub("", name)
    name = TIME_PREFIX.sub("", name)
    return name.strip()


def extract_title(
    hint: Optional[str],
    paths: Sequence[str],
    matchers: Sequence[TitleMatcher] = DEFAULT_MATCHERS,
) -> Optional[str]:
    for matcher in matchers:
        title = matcher.match(hint, paths)
        if title:
            return title
    return None


def normalize_title(title: str) -> str:
    cleaned = re.sub(r"[^\w\s-]", "", title)
    cleaned = re.sub(r"\s+", " ", cleaned).strip().replace(" ", "_")
    words = [word[:1].upper() + word[1:].lower() for word in cleaned.split("_")]
    return "_".join(words)


def _acceptable(candidate: str) -> bool:
    return len(candidate) >= MIN_TITLE_LENGTH and not NUMERIC_PATTERN.match(candidate)
