"""In-memory representation of a slide deck prior to rendering."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from gslides_renderer.utils.errors import InvalidTextRangeError

ORDERED_LIST = "ordered"
UNORDERED_LIST = "unordered"

# Maps TextRun attributes onto Slides API TextStyle field names.
TEXT_STYLE_FIELDS = (
    ("bold", "bold"),
    ("italic", "italic"),
    ("foreground_color", "foregroundColor"),
    ("background_color", "backgroundColor"),
    ("strikethrough", "strikethrough"),
    ("underline", "underline"),
    ("small_caps", "smallCaps"),
    ("font_family", "fontFamily"),
    ("font_size", "fontSize"),
    ("link", "link"),
    ("baseline_offset", "baselineOffset"),
)


class SlideState(str, Enum):
    """Rendering progress of a single slide."""

    PENDING = "pending"
    CREATED = "created"
    POPULATED = "populated"


@dataclass(slots=True)
class TextRun:
    """Character-range style override applied after the text is inserted."""

    start: int
    end: int
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    foreground_color: Optional[Dict[str, Any]] = None
    background_color: Optional[Dict[str, Any]] = None
    strikethrough: Optional[bool] = None
    underline: Optional[bool] = None
    small_caps: Optional[bool] = None
    font_family: Optional[str] = None
    font_size: Optional[Dict[str, Any]] = None
    link: Optional[Dict[str, Any]] = None
    baseline_offset: Optional[str] = None

    def api_style(self) -> Dict[str, Any]:
        """Return the run as a Slides TextStyle, omitting unset fields."""
        style: Dict[str, Any] = {}
        for attribute, api_name in TEXT_STYLE_FIELDS:
            value = getattr(self, attribute)
            if value is not None:
                style[api_name] = value
        return style

    @property
    def font_size_pt(self) -> Optional[float]:
        if not self.font_size:
            return None
        magnitude = self.font_size.get("magnitude")
        if isinstance(magnitude, bool) or not isinstance(magnitude, (int, float)):
            return None
        return float(magnitude)


@dataclass(slots=True)
class ListMarker:
    """Paragraph range converted into a bulleted or numbered list."""

    start: int
    end: int
    type: str = UNORDERED_LIST

    @property
    def ordered(self) -> bool:
        return self.type == ORDERED_LIST


@dataclass(slots=True)
class TextDefinition:
    """Raw text plus the style spans and list ranges that decorate it."""

    raw_text: str = ""
    text_runs: List[TextRun] = field(default_factory=list)
    list_markers: List[ListMarker] = field(default_factory=list)

    def validate(self) -> None:
        """Fail when any run or marker falls outside ``[0, len(raw_text)]``."""
        length = len(self.raw_text)
        for run in self.text_runs:
            _check_range("text run", run.start, run.end, length)
        for marker in self.list_markers:
            _check_range("list marker", marker.start, marker.end, length)

    @property
    def is_blank(self) -> bool:
        return not self.raw_text.strip()


@dataclass(slots=True)
class ImageDefinition:
    """Image reference with its natural pixel size."""

    url: str
    width: float
    height: float
    padding: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    alt_text: Optional[str] = None


@dataclass(slots=True)
class VideoDefinition:
    """YouTube video embedded in a slide body."""

    id: str
    width: float
    height: float
    auto_play: bool = False


@dataclass(slots=True)
class TableDefinition:
    """Grid of text cells; row 0 is treated as the header row."""

    rows: int
    columns: int
    cells: List[List[TextDefinition]] = field(default_factory=list)


@dataclass(slots=True)
class Body:
    """One content region of a slide."""

    text: Optional[TextDefinition] = None
    images: List[ImageDefinition] = field(default_factory=list)
    videos: List[VideoDefinition] = field(default_factory=list)


@dataclass(slots=True)
class SlideDefinition:
    """A single slide, mutated in place as the remote slide is created."""

    index: int
    layout: Optional[str] = None
    title: Optional[TextDefinition] = None
    subtitle: Optional[TextDefinition] = None
    bodies: List[Body] = field(default_factory=list)
    background_image: Optional[ImageDefinition] = None
    tables: List[TableDefinition] = field(default_factory=list)
    notes: Optional[TextDefinition] = None
    object_id: Optional[str] = None
    state: SlideState = SlideState.PENDING

    def iter_images(self) -> List[ImageDefinition]:
        """Background image first, then body images in order."""
        images: List[ImageDefinition] = []
        if self.background_image:
            images.append(self.background_image)
        for body in self.bodies:
            images.extend(body.images)
        return images

    @property
    def video_count(self) -> int:
        return sum(len(body.videos) for body in self.bodies)


def _check_range(kind: str, start: int, end: int, length: int) -> None:
    if start < 0 or end < start or end > length:
        raise InvalidTextRangeError(kind, start, end, length)


# ----------------------------------------------------------------------
# Loading from plain dictionaries (JSON slide models)
def text_from_dict(data: Any) -> Optional[TextDefinition]:
    """Accept either a plain string or a ``raw_text``/``text_runs`` mapping."""
    if data is None:
        return None
    if isinstance(data, str):
        return TextDefinition(raw_text=data)
    return TextDefinition(
        raw_text=data.get("raw_text", ""),
        text_runs=[TextRun(**run) for run in data.get("text_runs", [])],
        list_markers=[ListMarker(**marker) for marker in data.get("list_markers", [])],
    )


def slide_from_dict(data: Mapping[str, Any], index: int) -> SlideDefinition:
    """Build a SlideDefinition from the JSON structure used by ``main``."""
    bodies = [
        Body(
            text=text_from_dict(body.get("text")),
            images=[ImageDefinition(**image) for image in body.get("images", [])],
            videos=[VideoDefinition(**video) for video in body.get("videos", [])],
        )
        for body in data.get("bodies", [])
    ]
    tables = [
        TableDefinition(
            rows=table["rows"],
            columns=table["columns"],
            cells=[[text_from_dict(cell) or TextDefinition() for cell in row] for row in table.get("cells", [])],
        )
        for table in data.get("tables", [])
    ]
    background = data.get("background_image")
    return SlideDefinition(
        index=data.get("index", index),
        layout=data.get("layout"),
        title=text_from_dict(data.get("title")),
        subtitle=text_from_dict(data.get("subtitle")),
        bodies=bodies,
        background_image=ImageDefinition(**background) if background else None,
        tables=tables,
        notes=text_from_dict(data.get("notes")),
    )


def slides_from_dict(payload: Mapping[str, Any]) -> List[SlideDefinition]:
    return [slide_from_dict(slide, index) for index, slide in enumerate(payload.get("slides", []))]
