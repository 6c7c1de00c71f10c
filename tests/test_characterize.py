import unittest
from datetime import datetime, timedelta, timezone

from audio_cluster.characterize import (
    ClusterCharacterizer,
    common_tokens,
    has_take_pattern,
)
from audio_cluster.fingerprint import FingerprintExtractor
from audio_cluster.models import AudioFingerprint, ClusterCategory, FileDescriptor, FileKind

BASE = datetime(2025, 9, 22, 12, 0, tzinfo=timezone.utc)


def make_fp(
    name: str,
    offset: timedelta = timedelta(0),
    *,
    size: int = 1_600_000,
    tempo: float | None = None,
    key: str | None = None,
) -> AudioFingerprint:
    return FingerprintExtractor().extract(
        FileDescriptor(
            kind=FileKind.FILE,
            path=f"/Ideas/{name}",
            name=name,
            size=size,
            modified=BASE + offset,
            tempo=tempo,
            key=key,
        )
    )


class TestCommonTokens(unittest.TestCase):
    def test_threshold_and_stop_words(self) -> None:
        files = [
            make_fp("the song blue moon.mp3"),
            make_fp("the song blue sky.mp3"),
            make_fp("the blue jam.mp3"),
        ]
        self.assertEqual(common_tokens(files), ["blue"])

    def test_repeated_token_in_one_file_counts_once(self) -> None:
        files = [make_fp("riff riff.mp3"), make_fp("other.mp3")]
        # ceil(2 * 0.6) == 2 files required
        self.assertEqual(common_tokens(files), [])


class TestTakePattern(unittest.TestCase):
    def test_take_tokens(self) -> None:
        self.assertTrue(has_take_pattern([make_fp("Song v3.mp3"), make_fp("Song.mp3")]))
        self.assertTrue(has_take_pattern([make_fp("Song Attempt.mp3"), make_fp("Song.mp3")]))
        self.assertFalse(has_take_pattern([make_fp("vocals.mp3"), make_fp("Song.mp3")]))

    def test_numeric_tokens_need_short_span(self) -> None:
        close = [make_fp("Idea 2.mp3"), make_fp("Idea 3.mp3", timedelta(minutes=90))]
        far = [make_fp("Idea 2.mp3"), make_fp("Idea 3.mp3", timedelta(hours=3))]
        self.assertTrue(has_take_pattern(close))
        self.assertFalse(has_take_pattern(far))


class TestClusterCharacterizer(unittest.TestCase):
    def setUp(self) -> None:
        self.characterizer = ClusterCharacterizer()

    def test_takes(self) -> None:
        result = self.characterizer.characterize(
            [make_fp("Blue_Moon_take1.mp3"), make_fp("Blue_Moon_take2.mp3", timedelta(minutes=10))]
        )
        self.assertEqual(result.category, ClusterCategory.SAME_SONG_TAKES)
        self.assertEqual(result.confidence, 0.9)
        self.assertEqual(result.name, "Blue Moon - Takes (2 versions)")

    def test_takes_without_common_tokens(self) -> None:
        result = self.characterizer.characterize(
            [make_fp("take1.mp3"), make_fp("take2.mp3"), make_fp("take3.mp3")]
        )
        self.assertEqual(result.name, "Recording Session - 3 takes")

    def test_similar_ideas(self) -> None:
        result = self.characterizer.characterize(
            [
                make_fp("Night Drive intro.mp3"),
                make_fp("Night Drive chorus.mp3", timedelta(hours=5)),
            ]
        )
        self.assertEqual(result.category, ClusterCategory.SIMILAR_IDEAS)
        self.assertEqual(result.confidence, 0.7)
        self.assertEqual(result.name, "Night Drive - Variations (2 files)")

    def test_same_session(self) -> None:
        result = self.characterizer.characterize(
            [make_fp("alpha.mp3"), make_fp("beta.mp3", timedelta(minutes=30))]
        )
        self.assertEqual(result.category, ClusterCategory.SAME_SESSION)
        self.assertEqual(result.confidence, 0.6)
        self.assertEqual(result.name, "Recording Session 2025-09-22 (2 files)")

    def test_unrelated(self) -> None:
        result = self.characterizer.characterize(
            [make_fp("alpha.mp3"), make_fp("beta.mp3", timedelta(days=3))]
        )
        self.assertEqual(result.category, ClusterCategory.UNRELATED)
        self.assertEqual(result.confidence, 0.3)
        self.assertEqual(result.name, "Similar Audio (2 files)")

    def test_build_cluster_orders_and_aggregates(self) -> None:
        late = make_fp("b take2.mp3", timedelta(minutes=20), size=3_200_000, tempo=100.0, key="Am")
        early = make_fp("b take1.mp3", size=1_600_000, tempo=90.0, key="Am")
        silent = make_fp("b take3.mp3", timedelta(minutes=5), size=0, key="C")
        cluster = self.characterizer.build_cluster([late, early, silent])
        self.assertEqual(cluster.files, [early, silent, late])
        self.assertEqual(cluster.average_duration, 150.0)
        self.assertEqual(cluster.average_tempo, 95.0)
        self.assertEqual(cluster.dominant_key, "Am")
        self.assertTrue(cluster.id.startswith("cluster_"))

    def test_cluster_ids_are_unique(self) -> None:
        files = [make_fp("a.mp3"), make_fp("b.mp3")]
        first = self.characterizer.build_cluster(files)
        second = self.characterizer.build_cluster(files)
        self.assertNotEqual(first.id, second.id)


if __name__ == "__main__":
    unittest.main()
