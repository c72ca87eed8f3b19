"""Bounding boxes and fit-to-box placement for images and videos."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from gslides_renderer.model.document_model import Dimensions
from gslides_renderer.model.slide_model import ImageDefinition, VideoDefinition
from gslides_renderer.utils.units import EMU_PER_PIXEL, emu_to_points

# An image without a placeholder never takes more than this share of the page.
MAX_PAGE_FRACTION = 0.5


@dataclass(slots=True)
class BoundingBox:
    """Axis-aligned box in EMU."""

    x: float
    y: float
    width: float
    height: float

    def to_points(self) -> "BoundingBox":
        return BoundingBox(
            x=emu_to_points(self.x),
            y=emu_to_points(self.y),
            width=emu_to_points(self.width),
            height=emu_to_points(self.height),
        )


@dataclass(slots=True)
class Placement:
    """Final size and translation of a created element, in EMU."""

    width: float
    height: float
    translate_x: float
    translate_y: float


@dataclass(slots=True)
class PackedItem:
    x: float
    y: float
    width: float
    height: float
    meta: Any = None


@dataclass(slots=True)
class PackedLayout:
    width: float
    height: float
    items: List[PackedItem] = field(default_factory=list)


class LeftRightPacker:
    """Pack items in a single row, left to right, top aligned."""

    def __init__(self) -> None:
        self._items: List[PackedItem] = []
        self._cursor_x = 0.0

    def add_item(self, width: float, height: float, meta: Any = None) -> None:
        self._items.append(PackedItem(x=self._cursor_x, y=0.0, width=width, height=height, meta=meta))
        self._cursor_x += width

    def export(self) -> PackedLayout:
        height = max((item.height for item in self._items), default=0.0)
        return PackedLayout(width=self._cursor_x, height=height, items=list(self._items))


def element_bounding_box(element: Mapping[str, Any]) -> BoundingBox:
    """Apply an element's affine transform to its native size."""
    size = element.get("size") or {}
    width = (size.get("width") or {}).get("magnitude")
    height = (size.get("height") or {}).get("magnitude")
    if not width or not height:
        raise ValueError(f"Element {element.get('objectId')} has no size")
    transform = element.get("transform") or {}
    scale_x = transform.get("scaleX", 1)
    scale_y = transform.get("scaleY", 1)
    shear_x = transform.get("shearX", 0)
    shear_y = transform.get("shearY", 0)
    return BoundingBox(
        x=transform.get("translateX", 0),
        y=transform.get("translateY", 0),
        width=scale_x * width + shear_x * height,
        height=scale_y * height + shear_y * width,
    )


def has_size(element: Optional[Mapping[str, Any]]) -> bool:
    if not element:
        return False
    size = element.get("size") or {}
    return bool((size.get("width") or {}).get("magnitude") and (size.get("height") or {}).get("magnitude"))


def page_bounding_box(page_size: Dimensions) -> BoundingBox:
    return BoundingBox(x=0.0, y=0.0, width=page_size.width, height=page_size.height)


def centered_region(page_size: Dimensions, width: float, height: float) -> BoundingBox:
    """Centre a ``width`` x ``height`` EMU region, capped at half the page."""
    max_width = page_size.width * MAX_PAGE_FRACTION
    max_height = page_size.height * MAX_PAGE_FRACTION
    region_width = min(width, max_width)
    region_height = min(height, max_height)
    return BoundingBox(
        x=(page_size.width - region_width) / 2,
        y=(page_size.height - region_height) / 2,
        width=region_width,
        height=region_height,
    )


def pack_images(images: Sequence[ImageDefinition]) -> PackedLayout:
    packer = LeftRightPacker()
    for image in images:
        packer.add_item(image.width + image.padding * 2, image.height + image.padding * 2, meta=image)
    return packer.export()


def packed_extent_emu(images: Sequence[ImageDefinition]) -> Dimensions:
    layout = pack_images(images)
    return Dimensions(width=layout.width * EMU_PER_PIXEL, height=layout.height * EMU_PER_PIXEL)


def fit_images(images: Sequence[ImageDefinition], box: BoundingBox) -> List[Placement]:
    """Scale the packed row of images into ``box`` and centre it.

    One ratio (EMU per source pixel) applies to every image so relative
    sizes and aspect ratios are preserved.
    """
    layout = pack_images(images)
    if layout.width <= 0 or layout.height <= 0:
        raise ValueError("Cannot place images without a positive natural size")
    ratio = min(box.width / layout.width, box.height / layout.height)
    base_x = box.x + (box.width - layout.width * ratio) / 2
    base_y = box.y + (box.height - layout.height * ratio) / 2

    placements: List[Placement] = []
    for item in layout.items:
        image: ImageDefinition = item.meta
        placements.append(
            Placement(
                width=image.width * ratio,
                height=image.height * ratio,
                translate_x=base_x + (item.x + image.padding + image.offset_x) * ratio,
                translate_y=base_y + (item.y + image.padding + image.offset_y) * ratio,
            )
        )
    return placements


def fit_video(video: VideoDefinition, box: BoundingBox) -> Placement:
    """Scale a video to fit ``box`` preserving aspect ratio, centred."""
    if video.width <= 0 or video.height <= 0:
        raise ValueError(f"Video {video.id} has no positive size")
    ratio = min(box.width / video.width, box.height / video.height)
    width = video.width * ratio
    height = video.height * ratio
    return Placement(
        width=width,
        height=height,
        translate_x=box.x + (box.width - width) / 2,
        translate_y=box.y + (box.height - height) / 2,
    )
