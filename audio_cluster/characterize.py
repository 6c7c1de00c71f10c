from __future__ import annotations

import logging
import math
import re
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

from .models import AudioCluster, AudioFingerprint, ClusterCategory

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "by", "song", "track", "audio", "recording",
    }
)
TAKE_PATTERN = re.compile(r"^(take|version|try|attempt|v)\d*$", re.IGNORECASE)
NUMERIC_PATTERN = re.compile(r"^\d+$")

COMMON_TOKEN_RATIO = 0.6
SESSION_SPAN = timedelta(hours=2)
DAY_SPAN = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class Characterization:
    name: str
    category: ClusterCategory
    confidence: float


def common_tokens(files: Sequence[AudioFingerprint]) -> List[str]:
    """Tokens present in at least 60% of the files, in order of first appearance."""
    if not files:
        return []
    counts: Counter[str] = Counter()
    for fp in files:
        counts.update(dict.fromkeys(fp.features.filename_tokens, 1))
    minimum = math.ceil(len(files) * COMMON_TOKEN_RATIO)
    return [
        token
        for token, count in counts.items()
        if count >= minimum and token not in STOP_WORDS
    ]


def time_span(files: Sequence[AudioFingerprint]) -> timedelta:
    if not files:
        return timedelta(0)
    stamps = [fp.modified_date for fp in files]
    return max(stamps) - min(stamps)


def has_take_pattern(files: Sequence[AudioFingerprint]) -> bool:
    tokens = [token for fp in files for token in fp.features.filename_tokens]
    if any(TAKE_PATTERN.match(token) for token in tokens):
        return True
    has_numbers = any(NUMERIC_PATTERN.match(token) for token in tokens)
    return has_numbers and time_span(files) < SESSION_SPAN


def _display(tokens: Sequence[str]) -> str:
    return " ".join(token.capitalize() for token in tokens[:2])


class ClusterCharacterizer:
    def characterize(self, files: Sequence[AudioFingerprint]) -> Characterization:
        n = len(files)
        shared = common_tokens(files)
        span = time_span(files)

        if has_take_pattern(files):
            if shared:
                name = f"{_display(shared)} - Takes ({n} versions)"
            else:
                name = f"Recording Session - {n} takes"
            return Characterization(name, ClusterCategory.SAME_SONG_TAKES, 0.9)
        if len(shared) >= 2 and span < DAY_SPAN:
            name = f"{_display(shared)} - Variations ({n} files)"
            return Characterization(name, ClusterCategory.SIMILAR_IDEAS, 0.7)
        if span < SESSION_SPAN:
            earliest = min(fp.modified_date for fp in files)
            name = f"Recording Session {earliest.date().isoformat()} ({n} files)"
            return Characterization(name, ClusterCategory.SAME_SESSION, 0.6)
        return Characterization(
            f"Similar Audio ({n} files)", ClusterCategory.UNRELATED, 0.3
        )

    def build_cluster(self, files: Sequence[AudioFingerprint]) -> AudioCluster:
        ordered = sorted(files, key=lambda fp: fp.modified_date)
        result = self.characterize(ordered)
        durations = [fp.duration for fp in ordered if fp.duration > 0]
        tempos = [fp.tempo for fp in ordered if fp.tempo]
        cluster = AudioCluster(
            id=f"cluster_{uuid.uuid4().hex[:12]}",
            name=result.name,
            suggested_category=result.category,
            confidence=result.confidence,
            files=ordered,
            average_duration=sum(durations) / len(durations) if durations else 0.0,
            average_tempo=sum(tempos) / len(tempos) if tempos else None,
            dominant_key=_most_frequent([fp.key for fp in ordered if fp.key]),
        )
        logger.debug(
            "Cluster %s: %s (%d files, %s, confidence %.2f)",
            cluster.id,
            cluster.name,
            cluster.size,
            cluster.suggested_category.value,
            cluster.confidence,
        )
        return cluster


def _most_frequent(values: List[str]) -> Optional[str]:
    if not values:
        return None
    # Counter.most_common keeps insertion order among equal counts.
    return Counter(values).most_common(1)[0][0]
