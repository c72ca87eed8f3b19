"""Read-only view over a fetched Slides presentation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from gslides_renderer.utils.errors import PageNotFoundError

PageElement = Dict[str, Any]
Page = Dict[str, Any]


@dataclass(slots=True, frozen=True)
class Dimensions:
    """Width/height pair in EMU."""

    width: float
    height: float


class PresentationSnapshot:
    """Point-in-time read of the remote document.

    Object identities read from a snapshot are only meaningful for that
    snapshot; any write to the presentation requires a fresh one.
    """

    def __init__(self, data: Mapping[str, Any]):
        self._data = dict(data)
        self._elements: Dict[str, PageElement] = {}
        for page in self._iter_pages():
            for element in _walk_elements(page.get("pageElements") or []):
                object_id = element.get("objectId")
                if object_id:
                    self._elements[object_id] = element

    # ------------------------------------------------------------------
    # Presentation level
    @property
    def presentation_id(self) -> Optional[str]:
        return self._data.get("presentationId")

    @property
    def raw(self) -> Dict[str, Any]:
        return self._data

    @property
    def slides(self) -> List[Page]:
        return list(self._data.get("slides") or [])

    @property
    def layouts(self) -> List[Page]:
        return list(self._data.get("layouts") or [])

    @property
    def masters(self) -> List[Page]:
        return list(self._data.get("masters") or [])

    def page_size(self) -> Dimensions:
        size = self._data.get("pageSize") or {}
        width = (size.get("width") or {}).get("magnitude")
        height = (size.get("height") or {}).get("magnitude")
        if not width or not height:
            raise ValueError("Presentation is missing its page size")
        return Dimensions(width=float(width), height=float(height))

    # ------------------------------------------------------------------
    # Element index
    def get_element(self, object_id: Optional[str]) -> Optional[PageElement]:
        """Return any slide, layout or master element by object id."""
        if object_id is None:
            return None
        return self._elements.get(object_id)

    # ------------------------------------------------------------------
    # Page lookups
    def find_page(self, page_id: str) -> Optional[Page]:
        for page in self.slides:
            if page.get("objectId") == page_id:
                return page
        return None

    def require_page(self, page_id: str) -> Page:
        page = self.find_page(page_id)
        if page is None:
            raise PageNotFoundError(page_id)
        return page

    def find_layout_id(self, name: str) -> Optional[str]:
        """Return the id of the layout whose name (or display name) matches."""
        for key in ("name", "displayName"):
            for layout in self.layouts:
                if (layout.get("layoutProperties") or {}).get(key) == name:
                    return layout.get("objectId")
        return None

    def layout_names(self) -> List[str]:
        return [
            (layout.get("layoutProperties") or {}).get("name", "")
            for layout in self.layouts
        ]

    def find_placeholders(self, page_id: str, placeholder_type: str) -> List[PageElement]:
        """Return the shape and image placeholders of a type on a slide, in page order."""
        page = self.require_page(page_id)
        matches: List[PageElement] = []
        for element in page.get("pageElements") or []:
            if placeholder_type_of(element) == placeholder_type:
                matches.append(element)
        return matches

    def find_speaker_notes_object_id(self, page_id: str) -> Optional[str]:
        page = self.find_page(page_id)
        if page is None:
            return None
        notes_page = (page.get("slideProperties") or {}).get("notesPage") or {}
        return (notes_page.get("notesProperties") or {}).get("speakerNotesObjectId")

    def _iter_pages(self) -> Iterator[Page]:
        for key in ("slides", "masters", "layouts"):
            yield from self._data.get(key) or []


def placeholder_of(element: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the placeholder descriptor of a shape or image element."""
    for kind in ("shape", "image"):
        placeholder = (element.get(kind) or {}).get("placeholder")
        if placeholder:
            return placeholder
    return None


def placeholder_type_of(element: Mapping[str, Any]) -> Optional[str]:
    placeholder = placeholder_of(element)
    return placeholder.get("type") if placeholder else None


def _walk_elements(elements: Iterable[PageElement]) -> Iterator[PageElement]:
    for element in elements:
        yield element
        children = (element.get("elementGroup") or {}).get("children")
        if children:
            yield from _walk_elements(children)
