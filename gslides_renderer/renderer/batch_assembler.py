"""Turn slide definitions into ordered Slides API requests.

Slides move through ``PENDING -> CREATED -> POPULATED``. The create pass
only needs layout ids; the populate pass needs placeholder ids that exist
only after the created slides have been read back, so each pass is built
against its own snapshot.
"""
from __future__ import annotations

import uuid
from typing import Any, Callable, Dict, List, Optional, Sequence

from gslides_renderer.layout.autofit import HORIZONTAL, VERTICAL, AutofitCalculator
from gslides_renderer.layout.geometry import (
    BoundingBox,
    centered_region,
    element_bounding_box,
    fit_images,
    fit_video,
    packed_extent_emu,
    page_bounding_box,
)
from gslides_renderer.layout.layout_resolver import LayoutResolver
from gslides_renderer.layout.style_resolver import StyleResolver
from gslides_renderer.model.document_model import PageElement, PresentationSnapshot
from gslides_renderer.model.slide_model import (
    Body,
    ImageDefinition,
    SlideDefinition,
    SlideState,
    TableDefinition,
    TextDefinition,
    VideoDefinition,
)
from gslides_renderer.renderer import mutations
from gslides_renderer.renderer.mutations import Request
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.errors import SlidesRenderError, UnsupportedContentError
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

NO_HEADER_SENTINEL = "DELETE THIS ROW"


def new_object_id() -> str:
    return uuid.uuid4().hex


def validate_slide_content(slide: SlideDefinition, settings: RenderSettings) -> None:
    """Reject content the renderer cannot lay out."""
    if slide.video_count > 1:
        raise UnsupportedContentError(f"Slide #{slide.index}: multiple videos per slide are not supported")
    if settings.strict_tables and len(slide.tables) > 1:
        raise UnsupportedContentError(f"Slide #{slide.index}: multiple tables per slide are not supported")
    for text in _iter_texts(slide):
        text.validate()


def validate_slides(slides: Sequence[SlideDefinition], settings: RenderSettings) -> None:
    for slide in slides:
        validate_slide_content(slide, settings)


class BatchAssembler:
    """Build request lists for one presentation snapshot.

    An assembler is tied to the snapshot it was created with; build a new
    one after every reload. Slide states are advanced by the caller once
    the requests have been dispatched.
    """

    def __init__(
        self,
        snapshot: PresentationSnapshot,
        autofit: AutofitCalculator,
        settings: Optional[RenderSettings] = None,
        id_factory: Callable[[], str] = new_object_id,
    ) -> None:
        self._snapshot = snapshot
        self._autofit = autofit
        self._settings = settings or RenderSettings()
        self._new_id = id_factory
        self._layouts = LayoutResolver(snapshot)
        self._styles = StyleResolver(snapshot)

    # ------------------------------------------------------------------
    # Create pass
    def build_create_requests(self, slides: Sequence[SlideDefinition]) -> List[Request]:
        """Validate every slide, then emit one createSlide per slide."""
        validate_slides(slides, self._settings)
        requests: List[Request] = []
        for slide in slides:
            requests.append(self.create_slide_request(slide))
        LOGGER.info("Create pass: %d slides", len(slides))
        return requests

    def create_slide_request(self, slide: SlideDefinition) -> Request:
        if slide.state is not SlideState.PENDING:
            raise SlidesRenderError(f"Slide #{slide.index} was already created ({slide.state.value})")
        layout_id = self._layouts.resolve(slide)
        slide.object_id = self._new_id()
        LOGGER.debug("Creating slide %s with layout %s", slide.object_id, layout_id)
        return mutations.create_slide(slide.object_id, layout_id)

    # ------------------------------------------------------------------
    # Populate pass
    def build_populate_requests(self, slides: Sequence[SlideDefinition]) -> List[Request]:
        validate_slides(slides, self._settings)
        requests: List[Request] = []
        for slide in slides:
            requests.extend(self.populate_slide(slide))
        LOGGER.info("Populate pass: %d requests for %d slides", len(requests), len(slides))
        return requests

    def populate_slide(self, slide: SlideDefinition) -> List[Request]:
        if slide.state is not SlideState.CREATED or not slide.object_id:
            raise SlidesRenderError(f"Slide #{slide.index} must be created before it is populated")
        page_id = slide.object_id
        self._snapshot.require_page(page_id)
        requests: List[Request] = []

        self._append_title(slide, requests)
        if slide.subtitle:
            self._fill_placeholder(slide, slide.subtitle, self._first_placeholder(page_id, "SUBTITLE"), requests)

        if slide.background_image:
            LOGGER.debug("Slide #%d: setting background image to %s", slide.index, slide.background_image.url)
            requests.append(mutations.set_background_image(page_id, slide.background_image.url))

        for table in slide.tables:
            self._append_table(slide, table, requests)

        if slide.bodies:
            self._append_bodies(slide, requests)

        if slide.notes:
            notes_id = self._snapshot.find_speaker_notes_object_id(page_id)
            if notes_id:
                self._append_text(slide.notes, {"objectId": notes_id}, requests)
            else:
                LOGGER.warning("Slide #%d has no speaker notes shape; dropping notes", slide.index)

        return requests

    # ------------------------------------------------------------------
    # Placeholders and text
    def _first_placeholder(self, page_id: str, placeholder_type: str) -> Optional[PageElement]:
        matches = self._snapshot.find_placeholders(page_id, placeholder_type)
        return matches[0] if matches else None

    def _append_title(self, slide: SlideDefinition, requests: List[Request]) -> None:
        if not slide.title:
            return
        placeholder = self._first_placeholder(slide.object_id, "TITLE") or self._first_placeholder(
            slide.object_id, "CENTERED_TITLE"
        )
        self._fill_placeholder(slide, slide.title, placeholder, requests, HORIZONTAL)

    def _fill_placeholder(
        self,
        slide: SlideDefinition,
        text: Optional[TextDefinition],
        placeholder: Optional[PageElement],
        requests: List[Request],
        constraints: Optional[str] = None,
    ) -> None:
        if text is None:
            return
        if placeholder is None:
            LOGGER.warning("Slide #%d: skipping text for missing placeholder", slide.index)
            return
        chain = self._styles.ancestor_chain(placeholder)
        self._append_text(text, {"objectId": placeholder["objectId"]}, requests, constraints, chain)

    def _append_text(
        self,
        text: TextDefinition,
        location: Dict[str, Any],
        requests: List[Request],
        constraints: Optional[str] = None,
        chain: Optional[List[PageElement]] = None,
    ) -> None:
        if text.is_blank:
            return
        text.validate()
        requests.append(mutations.insert_text(location, text.raw_text))

        if constraints and chain:
            size = self._autofit.calculate_font_size(chain, text, constraints)
            request = mutations.font_size_style(location, size)
            if request:
                requests.append(request)

        # Later ranges first so earlier indices stay valid.
        for run in reversed(text.text_runs):
            request = mutations.style_text_run(location, run)
            if request:
                requests.append(request)
        for marker in reversed(text.list_markers):
            requests.append(mutations.create_bullets(location, marker))

    # ------------------------------------------------------------------
    # Bodies, images, video
    def _append_bodies(self, slide: SlideDefinition, requests: List[Request]) -> None:
        page_id = slide.object_id
        body_placeholders = self._snapshot.find_placeholders(page_id, "BODY")
        picture_placeholders = self._snapshot.find_placeholders(page_id, "PICTURE")

        for index, body in enumerate(slide.bodies):
            placeholder = body_placeholders[index] if index < len(body_placeholders) else None
            self._fill_placeholder(slide, body.text, placeholder, requests, VERTICAL)
            if body.images:
                self._append_images(slide, body.images, picture_placeholders, requests)
            if body.videos:
                self._append_video(slide, body, placeholder, requests)

        for picture in picture_placeholders:
            requests.append(mutations.delete_object(picture["objectId"]))

    def _append_images(
        self,
        slide: SlideDefinition,
        images: Sequence[ImageDefinition],
        placeholders: Sequence[PageElement],
        requests: List[Request],
    ) -> None:
        for index, image in enumerate(images):
            LOGGER.debug("Slide #%d: adding inline image %s", slide.index, image.url)
            placeholder = placeholders[index] if index < len(placeholders) else None
            if placeholder is not None:
                box = element_bounding_box(placeholder)
            else:
                extent = packed_extent_emu([image])
                box = centered_region(self._snapshot.page_size(), extent.width, extent.height)
            placement = fit_images([image], box)[0]
            image_id = self._new_id()
            requests.append(mutations.create_image(image_id, slide.object_id, image.url, placement))
            requests.append(mutations.update_alt_text(image_id, image.alt_text))

    def _append_video(
        self,
        slide: SlideDefinition,
        body: Body,
        placeholder: Optional[PageElement],
        requests: List[Request],
    ) -> None:
        video: VideoDefinition = body.videos[0]
        LOGGER.debug("Slide #%d: adding video %s", slide.index, video.id)
        box = self._body_box(placeholder)
        placement = fit_video(video, box)
        video_id = self._new_id()
        requests.append(mutations.create_video(video_id, slide.object_id, video.id, placement))
        requests.append(mutations.update_video_autoplay(video_id, video.auto_play))

    def _body_box(self, placeholder: Optional[PageElement]) -> BoundingBox:
        if placeholder is not None:
            return element_bounding_box(placeholder)
        return page_bounding_box(self._snapshot.page_size())

    # ------------------------------------------------------------------
    # Tables
    def _append_table(self, slide: SlideDefinition, table: TableDefinition, requests: List[Request]) -> None:
        cells = list(table.cells)
        rows = table.rows
        has_header = not (cells and cells[0] and cells[0][0].raw_text.strip() == NO_HEADER_SENTINEL)
        if not has_header:
            cells = cells[1:]
            rows -= 1
            LOGGER.debug("Slide #%d: dropping header row of table", slide.index)

        table_id = self._new_id()
        requests.append(mutations.create_table(table_id, slide.object_id, rows, table.columns))
        for row_index, row in enumerate(cells):
            for column_index, cell in enumerate(row):
                self._append_text(cell, mutations.cell_location(table_id, row_index, column_index), requests)
        if has_header:
            requests.append(mutations.header_fill(table_id, table.columns))


def _iter_texts(slide: SlideDefinition) -> List[TextDefinition]:
    texts = [text for text in (slide.title, slide.subtitle, slide.notes) if text is not None]
    for body in slide.bodies:
        if body.text is not None:
            texts.append(body.text)
    for table in slide.tables:
        for row in table.cells:
            texts.extend(row)
    return texts
