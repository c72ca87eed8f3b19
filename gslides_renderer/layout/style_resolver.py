"""Resolve the placeholder inheritance chain and its effective style."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from gslides_renderer.model.document_model import PageElement, PresentationSnapshot, placeholder_of
from gslides_renderer.model.style_model import ComputedStyle
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

# slide placeholder -> layout placeholder -> master placeholder
MAX_PARENT_DEPTH = 3


class StyleResolver:
    """Follow ``parentObjectId`` references through one snapshot."""

    def __init__(self, snapshot: PresentationSnapshot, max_depth: int = MAX_PARENT_DEPTH) -> None:
        self._snapshot = snapshot
        self._max_depth = max_depth

    def find_parent(self, element: Mapping[str, Any]) -> Optional[PageElement]:
        placeholder = placeholder_of(element)
        if not placeholder:
            return None
        return self._snapshot.get_element(placeholder.get("parentObjectId"))

    def ancestor_chain(self, element: PageElement) -> List[PageElement]:
        """Return ``[oldest ancestor, ..., element]``.

        At most ``max_depth`` parent lookups are made; a parent that was
        already visited ends the walk.
        """
        chain: List[PageElement] = [element]
        seen = {element.get("objectId")}
        parent = self.find_parent(element)
        depth = 0
        while parent is not None:
            parent_id = parent.get("objectId")
            if parent_id in seen:
                LOGGER.warning("Placeholder cycle detected at %s; truncating inheritance chain", parent_id)
                break
            if depth >= self._max_depth:
                LOGGER.warning(
                    "Placeholder chain for %s exceeds %d levels; truncating",
                    element.get("objectId"),
                    self._max_depth,
                )
                break
            chain.insert(0, parent)
            seen.add(parent_id)
            depth += 1
            parent = self.find_parent(parent)
        return chain

    def effective_style(self, element: PageElement) -> ComputedStyle:
        return compute_effective_style(self.ancestor_chain(element))


def first_paragraph_style(element: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the style of the first paragraph marker in a shape's text."""
    for text_element in _text_elements(element):
        marker = text_element.get("paragraphMarker")
        if marker is not None:
            return marker.get("style")
    return None


def first_run_style(element: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the style of the first text run in a shape's text."""
    for text_element in _text_elements(element):
        run = text_element.get("textRun")
        if run is not None:
            return run.get("style")
    return None


def compute_effective_style(chain: Sequence[Mapping[str, Any]]) -> ComputedStyle:
    """Overlay each element's first paragraph and run style, youngest last."""
    style = ComputedStyle()
    for element in chain:
        style.overlay(first_paragraph_style(element))
        style.overlay(first_run_style(element))
    return style


def _text_elements(element: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    text = (element.get("shape") or {}).get("text") or {}
    return list(text.get("textElements") or [])
