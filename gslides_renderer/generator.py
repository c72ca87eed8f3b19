"""Drive the create, reload, populate protocol against one presentation."""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from gslides_renderer.dispatch.scheduler import DispatchScheduler
from gslides_renderer.dispatch.slides_client import SlidesClient
from gslides_renderer.dispatch.uploader import ImageUploader
from gslides_renderer.layout.autofit import AutofitCalculator, TextMeasurer
from gslides_renderer.model.document_model import PresentationSnapshot
from gslides_renderer.model.slide_model import ImageDefinition, SlideDefinition, SlideState
from gslides_renderer.renderer import mutations
from gslides_renderer.renderer.batch_assembler import BatchAssembler, new_object_id, validate_slides
from gslides_renderer.renderer.mutations import Request
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.debug import DebugDumper
from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


class SlideGenerator:
    """Render slide definitions into a remote presentation.

    Slides are created first, the presentation is read back so the new
    placeholders have ids, and only then is content written into them.
    """

    def __init__(
        self,
        client: SlidesClient,
        presentation: Mapping[str, Any],
        settings: Optional[RenderSettings] = None,
        *,
        measurer: Optional[TextMeasurer] = None,
        uploader: Optional[ImageUploader] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        debug_dir: Optional[Path] = None,
        id_factory: Callable[[], str] = new_object_id,
    ) -> None:
        self._client = client
        self._settings = settings or RenderSettings()
        self._snapshot = PresentationSnapshot(presentation)
        if not self._snapshot.presentation_id:
            raise ValueError("Presentation has no presentationId")
        self._autofit = AutofitCalculator(measurer, self._settings)
        self._uploader = uploader or ImageUploader.from_settings(self._settings, sleep)
        self._scheduler = DispatchScheduler(self._send, self._settings, sleep=sleep, clock=clock)
        self._dumper = DebugDumper(debug_dir) if debug_dir else None
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Construction
    @classmethod
    def new_presentation(cls, client: SlidesClient, title: str, **kwargs: Any) -> "SlideGenerator":
        return cls(client, client.create_presentation(title), **kwargs)

    @classmethod
    def for_presentation(cls, client: SlidesClient, presentation_id: str, **kwargs: Any) -> "SlideGenerator":
        return cls(client, client.get_presentation(presentation_id), **kwargs)

    @classmethod
    def copy_presentation(
        cls,
        client: SlidesClient,
        title: str,
        source_id: str,
        parent_id: Optional[str] = None,
        **kwargs: Any,
    ) -> "SlideGenerator":
        copy_id = client.copy_presentation(source_id, title, parent_id)
        return cls.for_presentation(client, copy_id, **kwargs)

    # ------------------------------------------------------------------
    # State
    @property
    def presentation_id(self) -> str:
        return self._snapshot.presentation_id

    @property
    def snapshot(self) -> PresentationSnapshot:
        return self._snapshot

    @property
    def autofit(self) -> AutofitCalculator:
        return self._autofit

    def reload(self) -> PresentationSnapshot:
        """Re-read the presentation; cached sizing is discarded with the old ids."""
        self._snapshot = PresentationSnapshot(self._client.get_presentation(self.presentation_id))
        self._autofit.clear_cache()
        self._dump("snapshot", self._snapshot.raw)
        return self._snapshot

    # ------------------------------------------------------------------
    # Operations
    def erase(self) -> None:
        """Delete every slide currently in the presentation."""
        requests = [mutations.delete_object(slide["objectId"]) for slide in self._snapshot.slides]
        if not requests:
            return
        LOGGER.info("Erasing %d existing slides", len(requests))
        self._client.batch_update(self.presentation_id, requests)
        self.reload()

    def generate(self, slides: Sequence[SlideDefinition], reload_after: bool = False) -> str:
        """Render ``slides`` and return the presentation id.

        Every slide is validated before anything is uploaded or sent.
        """
        validate_slides(slides, self._settings)
        self._uploader.upload_all(_collect_images(slides))

        create = self._assembler().build_create_requests(slides)
        self._dump("create", create)
        self._scheduler.dispatch(create)
        _advance(slides, SlideState.CREATED)

        self.reload()
        populate = self._assembler().build_populate_requests(slides)
        self._dump("populate", populate)
        self._scheduler.dispatch(populate)
        _advance(slides, SlideState.POPULATED)

        if reload_after:
            self.reload()
        LOGGER.info("Generated %d slides in presentation %s", len(slides), self.presentation_id)
        return self.presentation_id

    # ------------------------------------------------------------------
    # Internals
    def _assembler(self) -> BatchAssembler:
        return BatchAssembler(self._snapshot, self._autofit, self._settings, self._id_factory)

    def _send(self, chunk: List[Request]) -> Any:
        return self._client.batch_update(self.presentation_id, chunk)

    def _dump(self, name: str, payload: Any) -> None:
        if self._dumper is not None:
            self._dumper.dump(name, payload)


def _advance(slides: Sequence[SlideDefinition], state: SlideState) -> None:
    for slide in slides:
        slide.state = state


def _collect_images(slides: Sequence[SlideDefinition]) -> List[ImageDefinition]:
    images: List[ImageDefinition] = []
    for slide in slides:
        images.extend(slide.iter_images())
    return images
