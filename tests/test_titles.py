import unittest

from audio_cluster.titles import (
    ClusterNameMatcher,
    FilenameTitleMatcher,
    clean_filename,
    extract_title,
    normalize_title,
)


class TestClusterNameMatcher(unittest.TestCase):
    def setUp(self) -> None:
        self.matcher = ClusterNameMatcher()

    def test_strips_generated_suffixes(self) -> None:
        self.assertEqual(self.matcher.match("Blue Moon - Takes (2 versions)", []), "Blue Moon")
        self.assertEqual(self.matcher.match("Night Drive - Variations (3 files)", []), "Night Drive")

    def test_rejects_generic_names(self) -> None:
        for hint in (
            None,
            "",
            "Similar Audio (4 files)",
            "Recording Session - 3 takes",
            "Recording Session 2025-09-22 (2 files)",
        ):
            with self.subTest(hint=hint):
                self.assertIsNone(self.matcher.match(hint, []))

    def test_free_text_hint_is_kept(self) -> None:
        self.assertEqual(self.matcher.match("Punk Rock", []), "Punk Rock")


class TestFilenameTitleMatcher(unittest.TestCase):
    def setUp(self) -> None:
        self.matcher = FilenameTitleMatcher()

    def test_clean_filename_removes_prefixes(self) -> None:
        self.assertEqual(clean_filename("/a/20250922_20250828_Dirty Deeds.mp3"), "Dirty Deeds")
        self.assertEqual(clean_filename("/a/20250922_1432_Dirty Deeds.mp3"), "Dirty Deeds")

    def test_prefers_longest_candidate(self) -> None:
        paths = ["/a/20250922_Take It Easy.mp3", "/a/20250922_Take.mp3"]
        self.assertEqual(self.matcher.match(None, paths), "Take It Easy")

    def test_numeric_names_yield_nothing(self) -> None:
        self.assertIsNone(self.matcher.match(None, ["/a/20250922_379 ch.mp3", "/a/12345.wav"]))

    def test_short_names_rejected(self) -> None:
        self.assertIsNone(self.matcher.match(None, ["/a/ab.mp3"]))


class TestExtractTitle(unittest.TestCase):
    def test_chain_order(self) -> None:
        paths = ["/a/Something Else.mp3"]
        self.assertEqual(extract_title("Blue Moon - Takes (2 versions)", paths), "Blue Moon")
        self.assertEqual(extract_title("Similar Audio (2 files)", paths), "Something Else")

    def test_custom_chain(self) -> None:
        class Fixed:
            name = "fixed"

            def match(self, hint, paths):
                return "Fixed Title"

        self.assertEqual(extract_title(None, [], matchers=[Fixed()]), "Fixed Title")
        self.assertIsNone(extract_title(None, [], matchers=[]))


class TestNormalizeTitle(unittest.TestCase):
    def test_title_case_with_underscores(self) -> None:
        self.assertEqual(normalize_title("blue  moon"), "Blue_Moon")
        self.assertEqual(normalize_title("Don't stop!"), "Dont_Stop")
        self.assertEqual(normalize_title("TAKE it-easy"), "Take_It-easy")


if __name__ == "__main__":
    unittest.main()
