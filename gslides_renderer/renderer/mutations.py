"""Builders for individual Slides API ``batchUpdate`` requests."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from gslides_renderer.layout.geometry import Placement
from gslides_renderer.model.slide_model import ListMarker, TextRun

Request = Dict[str, Any]

ORDERED_BULLET_PRESET = "NUMBERED_DIGIT_ALPHA_ROMAN"
UNORDERED_BULLET_PRESET = "BULLET_DISC_CIRCLE_SQUARE"
HEADER_FILL_RGB = {"red": 0.75, "green": 0.75, "blue": 0.75}

# Requests counted against the per-chunk image cap.
RATE_LIMITED_KINDS = ("createImage",)


def request_kind(request: Mapping[str, Any]) -> str:
    """Return the single top-level key naming a request's type."""
    return next(iter(request))


def shallow_field_mask(style: Mapping[str, Any]) -> str:
    """Comma separated names of the top-level fields that are set."""
    return ",".join(name for name, value in style.items() if value is not None)


def fixed_range(start: int, end: int) -> Dict[str, Any]:
    return {"type": "FIXED_RANGE", "startIndex": start, "endIndex": end}


def _element_properties(page_id: str, placement: Placement) -> Dict[str, Any]:
    return {
        "pageObjectId": page_id,
        "size": {
            "width": {"magnitude": placement.width, "unit": "EMU"},
            "height": {"magnitude": placement.height, "unit": "EMU"},
        },
        "transform": {
            "scaleX": 1,
            "scaleY": 1,
            "shearX": 0,
            "shearY": 0,
            "translateX": placement.translate_x,
            "translateY": placement.translate_y,
            "unit": "EMU",
        },
    }


# ----------------------------------------------------------------------
# Slides
def create_slide(object_id: str, layout_id: str) -> Request:
    return {"createSlide": {"objectId": object_id, "slideLayoutReference": {"layoutId": layout_id}}}


def delete_object(object_id: str) -> Request:
    return {"deleteObject": {"objectId": object_id}}


def set_background_image(page_id: str, url: str) -> Request:
    return {
        "updatePageProperties": {
            "objectId": page_id,
            "fields": "pageBackgroundFill.stretchedPictureFill.contentUrl",
            "pageProperties": {"pageBackgroundFill": {"stretchedPictureFill": {"contentUrl": url}}},
        }
    }


# ----------------------------------------------------------------------
# Text
def insert_text(location: Mapping[str, Any], text: str) -> Request:
    return {"insertText": {**location, "text": text}}


def update_text_style(
    location: Mapping[str, Any],
    style: Mapping[str, Any],
    text_range: Optional[Mapping[str, Any]] = None,
) -> Optional[Request]:
    """Build an updateTextStyle request, or ``None`` when nothing is set."""
    fields = shallow_field_mask(style)
    if not fields:
        return None
    return {
        "updateTextStyle": {
            **location,
            "textRange": dict(text_range) if text_range else {"type": "ALL"},
            "style": {name: value for name, value in style.items() if value is not None},
            "fields": fields,
        }
    }


def style_text_run(location: Mapping[str, Any], run: TextRun) -> Optional[Request]:
    return update_text_style(location, run.api_style(), fixed_range(run.start, run.end))


def font_size_style(location: Mapping[str, Any], size_pt: float) -> Optional[Request]:
    return update_text_style(location, {"fontSize": {"magnitude": size_pt, "unit": "PT"}})


def create_bullets(location: Mapping[str, Any], marker: ListMarker) -> Request:
    preset = ORDERED_BULLET_PRESET if marker.ordered else UNORDERED_BULLET_PRESET
    return {
        "createParagraphBullets": {
            **location,
            "textRange": fixed_range(marker.start, marker.end),
            "bulletPreset": preset,
        }
    }


# ----------------------------------------------------------------------
# Images and video
def create_image(object_id: str, page_id: str, url: str, placement: Placement) -> Request:
    return {
        "createImage": {
            "objectId": object_id,
            "url": url,
            "elementProperties": _element_properties(page_id, placement),
        }
    }


def update_alt_text(object_id: str, description: Optional[str], title: str = "") -> Request:
    return {"updatePageElementAltText": {"objectId": object_id, "title": title, "description": description or ""}}


def create_video(object_id: str, page_id: str, video_id: str, placement: Placement) -> Request:
    return {
        "createVideo": {
            "objectId": object_id,
            "source": "YOUTUBE",
            "id": video_id,
            "elementProperties": _element_properties(page_id, placement),
        }
    }


def update_video_autoplay(object_id: str, auto_play: bool) -> Request:
    return {
        "updateVideoProperties": {
            "objectId": object_id,
            "fields": "autoPlay",
            "videoProperties": {"autoPlay": auto_play},
        }
    }


# ----------------------------------------------------------------------
# Tables
def create_table(object_id: str, page_id: str, rows: int, columns: int) -> Request:
    return {
        "createTable": {
            "objectId": object_id,
            "elementProperties": {"pageObjectId": page_id},
            "rows": rows,
            "columns": columns,
        }
    }


def cell_location(table_id: str, row: int, column: int) -> Dict[str, Any]:
    return {"objectId": table_id, "cellLocation": {"rowIndex": row, "columnIndex": column}}


def header_fill(table_id: str, columns: int) -> Request:
    return {
        "updateTableCellProperties": {
            "objectId": table_id,
            "tableRange": {"location": {"rowIndex": 0, "columnIndex": 0}, "rowSpan": 1, "columnSpan": columns},
            "tableCellProperties": {
                "tableCellBackgroundFill": {"solidFill": {"color": {"rgbColor": dict(HEADER_FILL_RGB)}}}
            },
            "fields": "tableCellBackgroundFill.solidFill.color",
        }
    }
