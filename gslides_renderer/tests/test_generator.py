"""End-to-end tests of the create, reload, populate protocol."""
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from gslides_renderer.dispatch.uploader import ImageUploader
from gslides_renderer.generator import SlideGenerator
from gslides_renderer.layout.autofit import HeuristicTextMeasurer
from gslides_renderer.model.slide_model import (
    Body,
    ImageDefinition,
    SlideDefinition,
    SlideState,
    TableDefinition,
    TextDefinition,
    TextRun,
    VideoDefinition,
)
from gslides_renderer.renderer.batch_assembler import NO_HEADER_SENTINEL
from gslides_renderer.tests.presentation_factory import (
    FakeClock,
    FakeSlidesClient,
    presentation,
    sequential_ids,
    slide_page,
)
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.errors import (
    BatchUpdateError,
    InvalidTextRangeError,
    LayoutNotFoundError,
    UnsupportedContentError,
)


class SlideGeneratorTest(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.settings = RenderSettings(measurer="heuristic", allow_upload=True, upload_key="k")
        self.client = FakeSlidesClient(presentation(), clock=self.clock)

    def _generator(self, **kwargs) -> SlideGenerator:
        options = {
            "measurer": HeuristicTextMeasurer(),
            "sleep": self.clock.sleep,
            "clock": self.clock,
            "id_factory": sequential_ids("s"),
        }
        options.update(kwargs)
        return SlideGenerator(self.client, self.client.get_presentation("pres-1"), self.settings, **options)

    def test_long_body_is_shrunk_by_autofit(self) -> None:
        slides = [
            SlideDefinition(index=0, title=TextDefinition("Overview"), bodies=[Body(text=TextDefinition("word " * 400))]),
            SlideDefinition(index=1, title=TextDefinition("Next")),
        ]
        result = self._generator().generate(slides)

        self.assertEqual(result, "pres-1")
        self.assertEqual([s.state for s in slides], [SlideState.POPULATED, SlideState.POPULATED])
        create, populate = self.client.batches
        self.assertEqual([next(iter(r)) for r in create], ["createSlide", "createSlide"])

        inserts = {r["insertText"]["objectId"]: r["insertText"]["text"] for r in populate if "insertText" in r}
        self.assertEqual(inserts["s1_body_title"], "Overview")
        self.assertEqual(inserts["s1_body_body"], "word " * 400)
        sizes = [
            r["updateTextStyle"]["style"]["fontSize"]["magnitude"]
            for r in populate
            if "updateTextStyle" in r and r["updateTextStyle"]["objectId"] == "s1_body_body"
        ]
        self.assertTrue(sizes)
        self.assertTrue(all(size < 16 for size in sizes))

    def test_snapshot_is_reloaded_between_passes(self) -> None:
        generator = self._generator()
        before = self.client.get_calls
        generator.generate([SlideDefinition(index=0, title=TextDefinition("Hi"))], reload_after=True)
        self.assertEqual(self.client.get_calls - before, 2)
        self.assertIsNotNone(generator.snapshot.find_page("s1"))
        self.assertEqual(generator.autofit.cache_size, 0)

    def test_twenty_uploaded_images_are_split_and_paced(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            uploaded = []

            def upload(url: str) -> str:
                uploaded.append(url)
                return "https://cdn.example.com/" + url.rsplit("/", 1)[-1]

            images = [
                ImageDefinition(url=(Path(tmp) / f"{n}.png").as_uri(), width=64, height=48, alt_text=f"Figure {n}")
                for n in range(20)
            ]
            uploader = ImageUploader(upload, self.settings, sleep=self.clock.sleep)
            slides = [SlideDefinition(index=0, title=TextDefinition("Gallery"), bodies=[Body(images=images)])]
            self._generator(uploader=uploader).generate(slides)

        self.assertEqual(len(uploaded), 20)
        populate_batches = self.client.batches[1:]
        self.assertEqual(len(populate_batches), 4)
        counts = [sum(1 for r in batch if "createImage" in r) for batch in populate_batches]
        self.assertEqual(counts, [6, 6, 6, 2])
        urls = [r["createImage"]["url"] for batch in populate_batches for r in batch if "createImage" in r]
        self.assertTrue(all(url.startswith("https://cdn.example.com/") for url in urls))
        gaps = [b - a for a, b in zip(self.client.batch_times, self.client.batch_times[1:])]
        self.assertTrue(all(gap >= self.settings.chunk_delay_seconds for gap in gaps))

    def test_sentinel_table_loses_header_row(self) -> None:
        table = TableDefinition(
            rows=3,
            columns=2,
            cells=[
                [TextDefinition(NO_HEADER_SENTINEL), TextDefinition("")],
                [TextDefinition("a"), TextDefinition("b")],
                [TextDefinition("c"), TextDefinition("d")],
            ],
        )
        self._generator().generate([SlideDefinition(index=0, title=TextDefinition("Table"), tables=[table])])
        requests = self.client.all_requests()
        created = [r["createTable"] for r in requests if "createTable" in r]
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0]["rows"], table.rows - 1)
        self.assertFalse(any("updateTableCellProperties" in r for r in requests))

    def test_missing_layout_aborts_before_dispatch(self) -> None:
        with self.assertRaises(LayoutNotFoundError):
            self._generator().generate([SlideDefinition(index=0, layout="NOT_A_LAYOUT")])
        self.assertEqual(self.client.batches, [])

    def test_multiple_videos_abort_before_anything_is_sent(self) -> None:
        videos = [VideoDefinition(id="a", width=16, height=9), VideoDefinition(id="b", width=16, height=9)]
        slides = [
            SlideDefinition(index=0, title=TextDefinition("Intro")),
            SlideDefinition(index=1, title=TextDefinition("Clips"), bodies=[Body(videos=videos)]),
        ]
        with self.assertRaises(UnsupportedContentError):
            self._generator().generate(slides)
        self.assertEqual(self.client.batches, [])
        self.assertEqual([s.state for s in slides], [SlideState.PENDING, SlideState.PENDING])

    def test_bad_text_range_aborts_before_anything_is_sent(self) -> None:
        uploaded = []
        uploader = ImageUploader(uploaded.append, self.settings, sleep=self.clock.sleep)
        title = TextDefinition(raw_text="Hi", text_runs=[TextRun(start=0, end=50, bold=True)])
        image = ImageDefinition(url="file:///tmp/chart.png", width=10, height=10)
        slides = [SlideDefinition(index=0, title=title, bodies=[Body(images=[image])])]
        with self.assertRaises(InvalidTextRangeError):
            self._generator(uploader=uploader).generate(slides)
        self.assertEqual(self.client.batches, [])
        self.assertEqual(uploaded, [])

    def test_rejected_populate_batch_leaves_slides_created(self) -> None:
        generator = self._generator()
        slides = [SlideDefinition(index=0, title=TextDefinition("Hi"))]
        send = self.client.batch_update
        calls = []

        def reject_populate(presentation_id, requests):
            calls.append(requests)
            if len(calls) > 1:
                raise BatchUpdateError("Invalid requests[0]", request_index=0)
            return send(presentation_id, requests)

        with patch.object(self.client, "batch_update", side_effect=reject_populate):
            with self.assertRaises(BatchUpdateError):
                generator.generate(slides)
        self.assertEqual(slides[0].state, SlideState.CREATED)

    def test_erase_deletes_existing_slides(self) -> None:
        self.client.data["slides"] = [slide_page("old1", []), slide_page("old2", [])]
        generator = self._generator()
        generator.erase()
        self.assertEqual(
            self.client.batches[0],
            [{"deleteObject": {"objectId": "old1"}}, {"deleteObject": {"objectId": "old2"}}],
        )
        self.assertEqual(generator.snapshot.slides, [])

    def test_erase_on_empty_presentation_is_a_no_op(self) -> None:
        self._generator().erase()
        self.assertEqual(self.client.batches, [])

    def test_debug_dumps_are_written(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self._generator(debug_dir=Path(tmp)).generate([SlideDefinition(index=0, title=TextDefinition("Hi"))])
            names = sorted(path.name for path in Path(tmp).iterdir())
        self.assertEqual(names, ["01-create.json", "02-snapshot.json", "03-populate.json"])


class SlideGeneratorFactoryTest(unittest.TestCase):
    def test_new_presentation(self) -> None:
        client = FakeSlidesClient()
        generator = SlideGenerator.new_presentation(client, "Deck", measurer=HeuristicTextMeasurer())
        self.assertEqual(generator.presentation_id, "pres-1")
        self.assertEqual(client.data["title"], "Deck")

    def test_for_presentation(self) -> None:
        client = FakeSlidesClient()
        generator = SlideGenerator.for_presentation(client, "pres-1", measurer=HeuristicTextMeasurer())
        self.assertEqual(client.get_calls, 1)
        self.assertIn("layout_body", [layout["objectId"] for layout in generator.snapshot.layouts])

    def test_copy_presentation(self) -> None:
        client = FakeSlidesClient()
        generator = SlideGenerator.copy_presentation(
            client, "Copy of template", "template-1", "folder-9", measurer=HeuristicTextMeasurer()
        )
        self.assertEqual(client.copies, [("template-1", "Copy of template", "folder-9")])
        self.assertEqual(generator.presentation_id, "pres-1")
        self.assertEqual(client.get_calls, 1)

    def test_presentation_without_id_is_rejected(self) -> None:
        data = presentation()
        del data["presentationId"]
        with self.assertRaises(ValueError):
            SlideGenerator(FakeSlidesClient(), data, measurer=HeuristicTextMeasurer())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
