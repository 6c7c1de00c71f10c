from __future__ import annotations

from typing import Iterable, Optional

from .models import AudioFingerprint

TOKEN_WEIGHT = 0.6
DURATION_WEIGHT = 0.15
TEMPORAL_WEIGHT = 0.15
FORMAT_WEIGHT = 0.1

# Stepped proximity scores keyed by the upper bound of the gap in hours.
TEMPORAL_STEPS = ((1.0, 0.9), (6.0, 0.6), (24.0, 0.3))


def token_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    set_a = set(a)
    set_b = set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def duration_similarity(a: int, b: int) -> Optional[float]:
    if not a or not b or a <= 0 or b <= 0:
        return None
    return 1 - min(abs(a - b) / max(a, b), 1.0)


def temporal_similarity(a: AudioFingerprint, b: AudioFingerprint) -> float:
    hours = abs((a.modified_date - b.modified_date).total_seconds()) / 3600
    for limit, score in TEMPORAL_STEPS:
        if hours < limit:
            return score
    return 0.0


def similarity(a: AudioFingerprint, b: AudioFingerprint) -> float:
    """Weighted similarity in [0, 1].

    Signals that are unavailable for a pair (unknown durations in different
    categories, differing format groups) contribute no weight, so the score is
    normalized over what could actually be compared.
    """
    score = 0.0
    weight = 0.0

    score += token_similarity(a.features.filename_tokens, b.features.filename_tokens) * TOKEN_WEIGHT
    weight += TOKEN_WEIGHT

    duration_ratio = duration_similarity(a.duration, b.duration)
    if duration_ratio is not None:
        score += duration_ratio * DURATION_WEIGHT
        weight += DURATION_WEIGHT
    elif a.features.duration_category == b.features.duration_category:
        score += DURATION_WEIGHT / 2
        weight += DURATION_WEIGHT

    score += temporal_similarity(a, b) * TEMPORAL_WEIGHT
    weight += TEMPORAL_WEIGHT

    if a.features.format_group == b.features.format_group:
        score += FORMAT_WEIGHT
        weight += FORMAT_WEIGHT

    if weight == 0.0:
        return 0.0
    return max(0.0, min(1.0, score / weight))
