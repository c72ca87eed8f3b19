"""Tests for local image publishing."""
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import Mock

from gslides_renderer.dispatch.uploader import FileIoUploader, ImageUploader, local_path
from gslides_renderer.model.slide_model import ImageDefinition
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.errors import RateLimitError, UploadError


def _response(status: int, payload) -> Mock:
    response = Mock(status_code=status, ok=200 <= status < 400)
    response.json.return_value = payload
    return response


class FileIoUploaderTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.image = Path(self.tmp.name) / "chart.png"
        self.image.write_bytes(b"\x89PNG\r\n\x1a\n")
        self.session = Mock()
        self.uploader = FileIoUploader("secret", session=self.session)

    def test_posts_file_and_returns_link(self) -> None:
        self.session.post.return_value = _response(200, {"success": True, "link": "https://file.io/abc"})
        self.assertEqual(self.uploader(self.image.as_uri()), "https://file.io/abc")
        kwargs = self.session.post.call_args.kwargs
        self.assertEqual(kwargs["data"], {"expires": "5m", "autoDelete": "true"})
        self.assertEqual(kwargs["headers"], {"Authorization": "secret"})
        self.assertEqual(kwargs["files"]["file"][0], "chart.png")

    def test_rate_limit_status(self) -> None:
        self.session.post.return_value = _response(492, {"success": False})
        with self.assertRaises(RateLimitError):
            self.uploader(self.image.as_uri())

    def test_rate_limit_code(self) -> None:
        self.session.post.return_value = _response(200, {"success": False, "code": "TOO_MANY_REQUESTS"})
        with self.assertRaises(RateLimitError):
            self.uploader(self.image.as_uri())

    def test_unsuccessful_upload(self) -> None:
        self.session.post.return_value = _response(200, {"success": False, "message": "nope"})
        with self.assertRaises(UploadError) as ctx:
            self.uploader(self.image.as_uri())
        self.assertIn("nope", str(ctx.exception))

    def test_non_file_url_is_rejected(self) -> None:
        with self.assertRaises(UploadError):
            self.uploader("https://example.com/a.png")
        self.session.post.assert_not_called()


class ImageUploaderTest(unittest.TestCase):
    """URL rewriting, de-duplication and pacing."""

    def setUp(self) -> None:
        self.sleeps = []
        self.lock = threading.Lock()
        self.uploaded = []

        def upload(url: str) -> str:
            with self.lock:
                self.uploaded.append(url)
            return "https://cdn.example.com/" + Path(local_path(url)).name

        self.upload = upload
        self.settings = RenderSettings(allow_upload=True, upload_key="k")

    def _uploader(self, settings=None) -> ImageUploader:
        return ImageUploader(self.upload, settings or self.settings, sleep=self.sleeps.append)

    def test_local_path(self) -> None:
        self.assertEqual(local_path("file:///tmp/a%20b.png"), "/tmp/a b.png")
        self.assertIsNone(local_path("https://example.com/a.png"))

    def test_rewrites_local_urls_and_skips_remote(self) -> None:
        images = [
            ImageDefinition(url="file:///tmp/a.png", width=1, height=1),
            ImageDefinition(url="https://example.com/b.png", width=1, height=1),
            ImageDefinition(url="file:///tmp/a.png", width=1, height=1),
        ]
        self.assertEqual(self._uploader().upload_all(images), 1)
        self.assertEqual(self.uploaded, ["file:///tmp/a.png"])
        self.assertEqual(images[0].url, "https://cdn.example.com/a.png")
        self.assertEqual(images[1].url, "https://example.com/b.png")
        self.assertEqual(images[2].url, "https://cdn.example.com/a.png")

    def test_cache_survives_between_calls(self) -> None:
        uploader = self._uploader()
        uploader.upload_all([ImageDefinition(url="file:///tmp/a.png", width=1, height=1)])
        again = ImageDefinition(url="file:///tmp/a.png", width=1, height=1)
        self.assertEqual(uploader.upload_all([again]), 0)
        self.assertEqual(again.url, "https://cdn.example.com/a.png")
        self.assertEqual(len(self.uploaded), 1)

    def test_pacing_adds_pause_after_each_burst(self) -> None:
        images = [ImageDefinition(url=f"file:///tmp/{n}.png", width=1, height=1) for n in range(13)]
        self._uploader().upload_all(images)
        self.assertEqual(self.sleeps.count(0.15), 13)
        self.assertEqual(self.sleeps.count(0.25), 2)
        self.assertEqual(len(self.uploaded), 13)

    def test_upload_disallowed(self) -> None:
        uploader = self._uploader(RenderSettings(allow_upload=False, upload_key="k"))
        with self.assertRaises(UploadError):
            uploader.upload_all([ImageDefinition(url="file:///tmp/a.png", width=1, height=1)])
        self.assertEqual(self.uploaded, [])

    def test_missing_key_disables_upload(self) -> None:
        uploader = ImageUploader.from_settings(RenderSettings(allow_upload=True), sleep=self.sleeps.append)
        with self.assertRaises(UploadError):
            uploader.upload_all([ImageDefinition(url="file:///tmp/a.png", width=1, height=1)])

    def test_upload_failure_propagates(self) -> None:
        failing = Mock(side_effect=UploadError("boom"))
        uploader = ImageUploader(failing, self.settings, sleep=self.sleeps.append)
        with self.assertRaises(UploadError):
            uploader.upload_all([ImageDefinition(url="file:///tmp/a.png", width=1, height=1)])

    def test_no_local_images_needs_no_key(self) -> None:
        uploader = ImageUploader(None, RenderSettings(), sleep=self.sleeps.append)
        self.assertEqual(uploader.upload_all([ImageDefinition(url="https://x/a.png", width=1, height=1)]), 0)
        self.assertEqual(self.sleeps, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
