from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Set

from .characterize import ClusterCharacterizer
from .config import ClusteringSettings
from .models import AudioCluster, AudioFingerprint
from .similarity import similarity
from .threshold import ThresholdOptimizer

logger = logging.getLogger(__name__)

SimilarityFn = Callable[[AudioFingerprint, AudioFingerprint], float]


class ClusteringEngine:
    """Greedy seed-based grouping of fingerprints.

    Each unassigned fingerprint, in input order, seeds a group and pulls in
    every other unassigned fingerprint whose similarity to the seed reaches
    the threshold. Members are compared to the seed only, so the grouping is
    not transitive.
    """

    def __init__(
        self,
        settings: ClusteringSettings | None = None,
        *,
        characterizer: ClusterCharacterizer | None = None,
        optimizer: ThresholdOptimizer | None = None,
        similarity_fn: SimilarityFn = similarity,
    ) -> None:
        self.settings = settings or ClusteringSettings()
        self.characterizer = characterizer or ClusterCharacterizer()
        self.optimizer = optimizer or ThresholdOptimizer(self.settings)
        self.similarity_fn = similarity_fn

    def resolve_threshold(
        self, fingerprints: Sequence[AudioFingerprint], threshold: Optional[float], optimize: bool
    ) -> float:
        if threshold is not None:
            return threshold
        if optimize:
            chosen = self.optimizer.select(fingerprints, self)
            logger.info("Using optimal similarity threshold %.2f", chosen)
            return chosen
        return self.settings.default_threshold

    def cluster(
        self,
        fingerprints: Sequence[AudioFingerprint],
        threshold: Optional[float] = None,
        optimize: bool = True,
    ) -> List[AudioCluster]:
        threshold = self.resolve_threshold(fingerprints, threshold, optimize)
        assigned: Set[str] = set()
        clusters: List[AudioCluster] = []

        for idx, seed in enumerate(fingerprints):
            if seed.file_path in assigned:
                continue
            members = [seed]
            assigned.add(seed.file_path)
            for other_idx, other in enumerate(fingerprints):
                if other_idx == idx or other.file_path in assigned:
                    continue
                if self.similarity_fn(seed, other) >= threshold:
                    members.append(other)
                    assigned.add(other.file_path)
            if len(members) < 2:
                continue
            clusters.append(self.characterizer.build_cluster(members))

        clusters.sort(key=lambda c: c.confidence * c.size, reverse=True)
        return clusters
