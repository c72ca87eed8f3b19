"""Thin wrapper over the Slides and Drive REST services."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gslides_renderer.renderer.mutations import Request
from gslides_renderer.utils.errors import BatchUpdateError, RateLimitError, SlidesRenderError
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

SCOPES = (
    "https://www.googleapis.com/auth/presentations",
    "https://www.googleapis.com/auth/drive.file",
)
PRESENTATION_MIME_TYPE = "application/vnd.google-apps.presentation"

_REQUEST_INDEX = re.compile(r"requests\[(\d+)\]")
_RATE_LIMIT_STATUSES = {429, 492}
_RATE_LIMIT_CODES = {"TOO_MANY_REQUESTS", "RESOURCE_EXHAUSTED", "RATE_LIMIT_EXCEEDED"}


def parse_http_error(error: HttpError) -> Dict[str, Any]:
    """Return ``{"status", "message", "code"}`` from an HttpError body."""
    status = getattr(error.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    message = str(getattr(error, "reason", "") or error)
    code = None

    content = error.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    try:
        payload = json.loads(content) if content else {}
    except ValueError:
        payload = {}
    details = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(details, dict):
        message = details.get("message") or message
        code = details.get("status")
    return {"status": status, "message": message, "code": code}


def is_rate_limited(status: Optional[int], code: Optional[str]) -> bool:
    return status in _RATE_LIMIT_STATUSES or (code or "").upper() in _RATE_LIMIT_CODES


def translate_batch_error(error: HttpError, requests: List[Request]) -> BatchUpdateError:
    """Build the exception surfaced for a rejected batchUpdate call."""
    details = parse_http_error(error)
    request_index = None
    request = None
    match = _REQUEST_INDEX.search(details["message"] or "")
    if match:
        request_index = int(match.group(1))
        if request_index < len(requests):
            request = requests[request_index]
    error_cls = RateLimitError if is_rate_limited(details["status"], details["code"]) else BatchUpdateError
    return error_cls(
        details["message"],
        status=details["status"],
        code=details["code"],
        request_index=request_index,
        request=request,
    )


class SlidesClient:
    """Fetch snapshots and apply request batches to one remote service."""

    def __init__(self, service: Any, drive_service: Any = None) -> None:
        self._service = service
        self._drive = drive_service

    @classmethod
    def from_credentials(cls, credentials: Any) -> "SlidesClient":
        slides = build("slides", "v1", credentials=credentials, cache_discovery=False)
        drive = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return cls(slides, drive)

    def create_presentation(self, title: str) -> Dict[str, Any]:
        LOGGER.info("Creating presentation %s", title)
        try:
            return self._service.presentations().create(body={"title": title}).execute()
        except HttpError as exc:
            raise translate_batch_error(exc, []) from exc

    def get_presentation(self, presentation_id: str) -> Dict[str, Any]:
        LOGGER.debug("Fetching presentation %s", presentation_id)
        try:
            return self._service.presentations().get(presentationId=presentation_id).execute()
        except HttpError as exc:
            if getattr(exc.resp, "status", None) == 404:
                raise SlidesRenderError(f"could not find presentation with ID={presentation_id}") from exc
            raise translate_batch_error(exc, []) from exc

    def batch_update(self, presentation_id: str, requests: List[Request]) -> Dict[str, Any]:
        try:
            return (
                self._service.presentations()
                .batchUpdate(presentationId=presentation_id, body={"requests": requests})
                .execute()
            )
        except HttpError as exc:
            raise translate_batch_error(exc, requests) from exc

    def copy_presentation(self, source_id: str, title: str, parent_id: Optional[str] = None) -> str:
        """Copy a presentation through Drive and return the new file id."""
        if self._drive is None:
            raise SlidesRenderError("Copying a presentation requires a Drive service")
        body: Dict[str, Any] = {"name": title, "mimeType": PRESENTATION_MIME_TYPE}
        if parent_id:
            body["parents"] = [parent_id]
        LOGGER.info("Copying presentation %s as %s", source_id, title)
        try:
            result = self._drive.files().copy(fileId=source_id, body=body, fields="id").execute()
        except HttpError as exc:
            raise translate_batch_error(exc, []) from exc
        return result["id"]
