"""Exception hierarchy raised by the rendering pipeline."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

RATE_LIMIT_GUIDANCE = "Too many requests; wait a few seconds and try again."


class SlidesRenderError(RuntimeError):
    """Base class for every error surfaced by the renderer."""


class LayoutNotFoundError(SlidesRenderError):
    """Raised when a named layout does not exist in the presentation."""

    def __init__(self, layout_name: str):
        self.layout_name = layout_name
        super().__init__(f"Unable to find layout {layout_name}")


class PageNotFoundError(SlidesRenderError):
    """Raised when a slide id is absent from the current snapshot."""

    def __init__(self, page_id: str):
        self.page_id = page_id
        super().__init__(f"Can't find page {page_id}")


class InvalidTextRangeError(SlidesRenderError, ValueError):
    """Raised when a style run or list marker falls outside its text."""

    def __init__(self, kind: str, start: int, end: int, length: int):
        self.kind = kind
        self.start = start
        self.end = end
        self.length = length
        super().__init__(f"Invalid {kind} range [{start}, {end}) for text of length {length}")


class UnsupportedContentError(SlidesRenderError):
    """Raised for slide content the renderer refuses to lay out."""


class UploadError(SlidesRenderError):
    """Raised when a local image cannot be turned into a public URL."""


class BatchUpdateError(SlidesRenderError):
    """A batch of requests was rejected by the Slides API."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        request_index: Optional[int] = None,
        request: Optional[Dict[str, Any]] = None,
        chunk_index: Optional[int] = None,
    ):
        self.message = message
        self.status = status
        self.code = code
        self.request_index = request_index
        self.request = request
        self.chunk_index = chunk_index
        super().__init__(message)

    def __str__(self) -> str:
        lines = [f"Unable to generate slides: {self.message}"]
        if self.chunk_index is not None:
            lines.append(f"Failed batch: #{self.chunk_index + 1}")
        if self.request is not None:
            lines.append("The request that failed was:")
            lines.append(json.dumps(self.request, indent=2, default=str))
        return "\n".join(lines)


class RateLimitError(BatchUpdateError):
    """The remote service (or the upload service) throttled the pipeline."""

    def __str__(self) -> str:
        return f"{super().__str__()}\n{RATE_LIMIT_GUIDANCE}"
