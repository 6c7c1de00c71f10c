import os
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from audio_cluster.config import ClusteringSettings, LibrarySettings, Settings, StorageSettings, find_config


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = Settings()
        self.assertEqual(settings.clustering.candidate_thresholds, [0.3, 0.4, 0.5, 0.6, 0.7, 0.8])
        self.assertEqual(settings.clustering.default_threshold, 0.6)
        self.assertEqual(settings.storage.batch_size, 4)
        self.assertEqual(settings.organizer.rename_markers, ["379", "ch"])
        self.assertTrue(settings.library.is_audio("Take.FLAC"))
        self.assertFalse(settings.library.is_audio("notes.txt"))

    def test_load_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(
                "library:\n"
                f"  root: {tmp}\n"
                "  include_extensions: [MP3, .wav]\n"
                "clustering:\n"
                "  candidate_thresholds: [0.5, 0.7]\n"
                "storage:\n"
                "  batch_size: 2\n",
                encoding="utf-8",
            )
            settings = Settings.load(path)
        self.assertEqual(settings.library.include_extensions, [".mp3", ".wav"])
        self.assertEqual(settings.library.root, Path(tmp).resolve())
        self.assertEqual(settings.clustering.candidate_thresholds, [0.5, 0.7])
        self.assertEqual(settings.storage.batch_size, 2)

    def test_empty_yaml_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yml"
            path.write_text("", encoding="utf-8")
            settings = Settings.load(path)
        self.assertEqual(settings.storage.batch_size, 4)

    def test_invalid_values_rejected(self) -> None:
        with self.assertRaises(PydanticValidationError):
            ClusteringSettings(candidate_thresholds=[])
        with self.assertRaises(PydanticValidationError):
            ClusteringSettings(candidate_thresholds=[1.5])
        with self.assertRaises(PydanticValidationError):
            StorageSettings(batch_size=0)
        self.assertEqual(ClusteringSettings(min_files=1).min_files, 2)

    def test_extensions_normalized(self) -> None:
        library = LibrarySettings(include_extensions=["ogg", " .M4A ", ""])
        self.assertEqual(library.include_extensions, [".ogg", ".m4a"])


class TestFindConfig(unittest.TestCase):
    def test_explicit_path_wins(self) -> None:
        self.assertEqual(find_config(Path("/etc/custom.yaml")), Path("/etc/custom.yaml"))

    def test_searches_cwd(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            previous = os.getcwd()
            os.chdir(tmp)
            try:
                self.assertIsNone(find_config(None))
                (Path(tmp) / "config.yml").write_text("{}", encoding="utf-8")
                self.assertEqual(find_config(None).name, "config.yml")
            finally:
                os.chdir(previous)


if __name__ == "__main__":
    unittest.main()
