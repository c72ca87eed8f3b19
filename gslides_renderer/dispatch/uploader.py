"""Publish local images so the Slides service can fetch them."""
from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

import requests

from gslides_renderer.model.slide_model import ImageDefinition
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.errors import RateLimitError, UploadError
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

FILE_IO_URL = "https://file.io"
FILE_IO_EXPIRY = "5m"
UPLOAD_TIMEOUT_SECONDS = 30

UploadFn = Callable[[str], str]


def local_path(url: str) -> Optional[str]:
    """Return the filesystem path of a ``file:`` URL, else ``None``."""
    parsed = urlparse(url)
    if parsed.scheme != "file":
        return None
    return unquote(parsed.path)


class FileIoUploader:
    """Upload a file to file.io and return its short-lived public link."""

    def __init__(self, key: str, session: Optional[requests.Session] = None, url: str = FILE_IO_URL) -> None:
        self._key = key
        self._session = session or requests.Session()
        self._url = url

    def __call__(self, file_url: str) -> str:
        path = local_path(file_url)
        if path is None:
            raise UploadError(f"The url {file_url} was not a valid file")
        LOGGER.debug("Registering file %s", path)
        with Path(path).open("rb") as handle:
            response = self._session.post(
                self._url,
                files={"file": (Path(path).name, handle)},
                data={"expires": FILE_IO_EXPIRY, "autoDelete": "true"},
                headers={"Authorization": self._key},
                timeout=UPLOAD_TIMEOUT_SECONDS,
            )
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        code = payload.get("code")
        if response.status_code in (429, 492) or code == "TOO_MANY_REQUESTS":
            raise RateLimitError(
                f"Too many image uploads to {self._url}; another client may be using the same key",
                status=response.status_code,
                code=code,
            )
        if not response.ok or not payload.get("success"):
            message = payload.get("message")
            raise UploadError(f"Unable to upload {path}: {message or response.status_code}")
        LOGGER.debug("Temporary link: %s", payload["link"])
        return payload["link"]


class ImageUploader:
    """Replace ``file:`` image URLs with uploaded public URLs.

    Uploads are started with a fixed spacing and an extra pause after every
    ``upload_burst_size`` uploads; they run on a small thread pool and all of
    them are awaited before :meth:`upload_all` returns.
    """

    def __init__(
        self,
        upload_fn: Optional[UploadFn],
        settings: Optional[RenderSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._upload = upload_fn
        self._settings = settings or RenderSettings()
        self._sleep = sleep
        self._cache: Dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: RenderSettings, sleep: Callable[[float], None] = time.sleep) -> "ImageUploader":
        upload_fn = FileIoUploader(settings.upload_key) if settings.upload_key else None
        return cls(upload_fn, settings, sleep)

    @property
    def cache(self) -> Dict[str, str]:
        return dict(self._cache)

    def upload_all(self, images: Iterable[ImageDefinition]) -> int:
        """Upload every local image once; return the number of uploads made."""
        pending: Dict[str, List[ImageDefinition]] = {}
        for image in images:
            path = local_path(image.url)
            if path is None:
                continue
            if path in self._cache:
                image.url = self._cache[path]
                continue
            pending.setdefault(path, []).append(image)

        if not pending:
            return 0
        if not self._settings.allow_upload or self._upload is None:
            raise UploadError("Local images require uploading to be enabled with a valid key")

        LOGGER.info("Uploading %d local images", len(pending))
        futures: Dict[str, Future] = {}
        with ThreadPoolExecutor(max_workers=self._settings.upload_workers) as executor:
            for index, path in enumerate(pending):
                self._pace(index)
                LOGGER.info("Sending %d/%d image files", index + 1, len(pending))
                futures[path] = executor.submit(self._upload, pending[path][0].url)
            for path, future in futures.items():
                public_url = future.result()
                self._cache[path] = public_url
                for image in pending[path]:
                    image.url = public_url
        return len(futures)

    def _pace(self, index: int) -> None:
        self._sleep(self._settings.upload_delay_seconds)
        if index and index % self._settings.upload_burst_size == 0:
            self._sleep(self._settings.upload_burst_pause_seconds)
