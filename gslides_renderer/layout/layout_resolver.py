"""Choose the template layout a slide is instantiated from."""
from __future__ import annotations

from gslides_renderer.model.document_model import PresentationSnapshot
from gslides_renderer.model.slide_model import Body, SlideDefinition
from gslides_renderer.utils.errors import LayoutNotFoundError
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

MAIN_POINT_MAX_CHARS = 80


def match_layout_name(slide: SlideDefinition) -> str:
    """Pick a predefined layout name from the shape of the slide's content."""
    if slide.layout:
        return slide.layout

    has_title = slide.title is not None and not slide.title.is_blank
    has_subtitle = slide.subtitle is not None and not slide.subtitle.is_blank
    bodies = [body for body in slide.bodies if _has_content(body)]

    if has_title and has_subtitle and not bodies:
        return "TITLE"
    if has_title and not bodies:
        return "SECTION_HEADER" if not slide.tables else "TITLE_ONLY"
    if has_title and len(bodies) >= 2:
        return "TITLE_AND_TWO_COLUMNS"
    if has_title:
        return "TITLE_AND_BODY"
    if len(bodies) == 1 and not bodies[0].images and not bodies[0].videos:
        text = bodies[0].text
        if text and "\n" not in text.raw_text.strip() and len(text.raw_text) <= MAIN_POINT_MAX_CHARS:
            return "MAIN_POINT"
    if bodies:
        return "TITLE_AND_BODY"
    return "BLANK"


def _has_content(body: Body) -> bool:
    has_text = body.text is not None and not body.text.is_blank
    return has_text or bool(body.images) or bool(body.videos)


class LayoutResolver:
    """Resolve slides to layout object ids within one snapshot."""

    def __init__(self, snapshot: PresentationSnapshot) -> None:
        self._snapshot = snapshot

    def resolve(self, slide: SlideDefinition) -> str:
        """Return the layout id for ``slide``; a missing layout aborts the run."""
        name = match_layout_name(slide)
        layout_id = self._snapshot.find_layout_id(name)
        if not layout_id:
            LOGGER.error(
                "Layout %s not found for slide #%d; available: %s",
                name,
                slide.index,
                ", ".join(self._snapshot.layout_names()) or "<none>",
            )
            raise LayoutNotFoundError(name)
        LOGGER.debug("Slide #%d resolved to layout %s (%s)", slide.index, name, layout_id)
        return layout_id
