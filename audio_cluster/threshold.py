from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Sequence

from .config import ClusteringSettings
from .models import AudioCluster, AudioFingerprint

if TYPE_CHECKING:
    from .clustering import ClusteringEngine

logger = logging.getLogger(__name__)

COVERAGE_WEIGHT = 0.7
CONFIDENCE_WEIGHT = 0.3


def cluster_quality(clusters: Sequence[AudioCluster], total_files: int) -> float:
    if not clusters or total_files <= 0:
        return 0.0
    clustered = sum(cluster.size for cluster in clusters)
    coverage = clustered / total_files
    avg_confidence = sum(cluster.confidence for cluster in clusters) / len(clusters)
    return coverage * COVERAGE_WEIGHT + avg_confidence * CONFIDENCE_WEIGHT


class ThresholdOptimizer:
    def __init__(self, settings: ClusteringSettings | None = None) -> None:
        self.settings = settings or ClusteringSettings()

    @property
    def candidates(self) -> List[float]:
        return list(self.settings.candidate_thresholds)

    def select(
        self, fingerprints: Sequence[AudioFingerprint], engine: "ClusteringEngine"
    ) -> float:
        best_threshold = self.settings.default_threshold
        best_score = 0.0
        for threshold in self.candidates:
            clusters = engine.cluster(fingerprints, threshold, optimize=False)
            score = cluster_quality(clusters, len(fingerprints))
            logger.debug(
                "Threshold %.2f -> %d clusters, quality %.3f",
                threshold,
                len(clusters),
                score,
            )
            # Strict comparison keeps the earliest candidate on ties.
            if score > best_score:
                best_score = score
                best_threshold = threshold
        return best_threshold
