"""Tests for settings, upload keys and debug dumps."""
import json
import tempfile
import unittest
from pathlib import Path

from gslides_renderer.model.slide_model import SlideDefinition, SlideState
from gslides_renderer.utils.config import RenderSettings, load_upload_key
from gslides_renderer.utils.debug import DebugDumper
from gslides_renderer.utils.errors import BatchUpdateError


class RenderSettingsTest(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = RenderSettings()
        self.assertEqual(settings.max_images_per_chunk, 6)
        self.assertEqual(settings.chunk_delay_seconds, 2.0)
        self.assertEqual(settings.min_font_size, 14.0)
        self.assertEqual(settings.font_step, 0.25)
        self.assertFalse(settings.allow_upload)

    def test_environment_overrides_are_coerced(self) -> None:
        settings = RenderSettings.from_env(
            {
                "GSLIDES_RENDERER_MAX_IMAGES_PER_CHUNK": "3",
                "GSLIDES_RENDERER_CHUNK_DELAY_SECONDS": "0.5",
                "GSLIDES_RENDERER_STRICT_TABLES": "yes",
                "GSLIDES_RENDERER_MEASURER": "heuristic",
                "UNRELATED": "1",
            }
        )
        self.assertEqual(settings.max_images_per_chunk, 3)
        self.assertEqual(settings.chunk_delay_seconds, 0.5)
        self.assertTrue(settings.strict_tables)
        self.assertEqual(settings.measurer, "heuristic")
        self.assertIsNone(settings.upload_key)

    def test_with_upload_key_enables_upload(self) -> None:
        settings = RenderSettings().with_upload_key("abc")
        self.assertEqual(settings.upload_key, "abc")
        self.assertTrue(settings.allow_upload)


class UploadKeyTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / "fileio_key.json"

    def test_reads_api_key(self) -> None:
        self.path.write_text(json.dumps({"api_key": "KEY"}), encoding="utf-8")
        self.assertEqual(load_upload_key(self.path), "KEY")

    def test_missing_file_warns(self) -> None:
        with self.assertLogs("gslides_renderer.utils.config", level="WARNING"):
            self.assertIsNone(load_upload_key(self.path))

    def test_non_string_key_is_ignored(self) -> None:
        self.path.write_text(json.dumps({"api_key": 42}), encoding="utf-8")
        with self.assertLogs("gslides_renderer.utils.config", level="WARNING"):
            self.assertIsNone(load_upload_key(self.path))


class DebugDumperTest(unittest.TestCase):
    def test_dumps_dataclasses_and_enums(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dumper = DebugDumper(Path(tmp) / "debug")
            first = dumper.dump("slides", [SlideDefinition(index=0, state=SlideState.CREATED)])
            second = dumper.dump("requests", [{"deleteObject": {"objectId": "a"}}])
            payload = json.loads(first.read_text(encoding="utf-8"))
            self.assertEqual(first.name, "01-slides.json")
            self.assertEqual(second.name, "02-requests.json")
        self.assertEqual(payload[0]["state"], "created")
        self.assertEqual(payload[0]["index"], 0)


class BatchUpdateErrorTest(unittest.TestCase):
    def test_message_without_request(self) -> None:
        error = BatchUpdateError("boom")
        self.assertEqual(str(error), "Unable to generate slides: boom")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
