"""Shrink-to-fit font sizing for text placed into placeholders.

The Slides API has no server-side autofit for text inserted through
``batchUpdate``, so the size is estimated locally:

1. The target box is the element's size times its transform, in points,
   minus a fixed padding allowance.
2. A starting size comes from explicit run sizes (averaged), else from the
   inherited style, else from the default.
3. Characters per line are estimated from the measured width of the first
   100 characters, widened by an empirical correction, and the text is
   greedily wrapped with that limit.
4. While the wrapped block overflows the box the size drops by a fixed
   step, never below the legibility floor.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from gslides_renderer.layout.geometry import element_bounding_box, has_size
from gslides_renderer.layout.style_resolver import compute_effective_style
from gslides_renderer.model.slide_model import TextDefinition
from gslides_renderer.model.style_model import ComputedStyle
from gslides_renderer.utils.config import RenderSettings
from gslides_renderer.utils.logger import get_logger
from gslides_renderer.utils.units import pixels_to_points, points_to_pixels

LOGGER = get_logger(__name__)

HORIZONTAL = "horizontal"
VERTICAL = "vertical"

MIN_FONT_SIZE_PT = 14.0  # smaller is unreadable on a projector
FONT_SIZE_STEP_PT = 0.25
DEFAULT_PADDING_PT = 0.2 * 72
# Glyphs measured locally come out ~15% narrower than Slides lays them out.
CHAR_WIDTH_CORRECTION = 1.15
SAMPLE_LENGTH = 100

HEURISTIC_WIDTH_FACTOR = 0.5
HEURISTIC_LINE_HEIGHT = 1.2

FONT_CANDIDATES = (
    "{family}.ttf",
    "/usr/share/fonts/truetype/msttcorefonts/{family}.ttf",
    "/System/Library/Fonts/Supplemental/{family}.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "DejaVuSans.ttf",
)
BOLD_FONT_CANDIDATES = (
    "{family} Bold.ttf",
    "/usr/share/fonts/truetype/msttcorefonts/{family}_Bold.ttf",
    "/System/Library/Fonts/Supplemental/{family} Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "DejaVuSans-Bold.ttf",
)


@dataclass(slots=True, frozen=True)
class FontSpec:
    family: str
    size_pt: float
    weight: int = 400

    @property
    def size_px(self) -> float:
        return points_to_pixels(self.size_pt)


@dataclass(slots=True, frozen=True)
class TextExtent:
    """Measured width/height of a (possibly multi-line) block, in pixels."""

    width: float
    height: float


class TextMeasurer:
    """Interface for measuring rendered text."""

    def measure(self, text: str, font: FontSpec) -> TextExtent:  # pragma: no cover
        raise NotImplementedError


class HeuristicTextMeasurer(TextMeasurer):
    """Average-glyph approximation; deterministic and font independent."""

    def __init__(self, width_factor: float = HEURISTIC_WIDTH_FACTOR, line_height: float = HEURISTIC_LINE_HEIGHT) -> None:
        self._width_factor = width_factor
        self._line_height = line_height

    def measure(self, text: str, font: FontSpec) -> TextExtent:
        lines = text.split("\n")
        weight_factor = 1.1 if font.weight >= 600 else 1.0
        longest = max((len(line) for line in lines), default=0)
        width = longest * font.size_px * self._width_factor * weight_factor
        height = len(lines) * font.size_px * self._line_height
        return TextExtent(width=width, height=height)


class PillowTextMeasurer(TextMeasurer):
    """Measure text with FreeType fonts through Pillow."""

    def __init__(self) -> None:
        self._draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        self._fonts: Dict[Tuple[str, bool, float], Any] = {}

    def get_font(self, font: FontSpec):
        bold = font.weight >= 600
        size = round(font.size_px, 2)
        key = (font.family, bold, size)
        if key not in self._fonts:
            self._fonts[key] = self._load_font(font.family, bold, size)
        return self._fonts[key]

    def measure(self, text: str, font: FontSpec) -> TextExtent:
        if not text:
            return TextExtent(0.0, 0.0)
        left, top, right, bottom = self._draw.multiline_textbbox((0, 0), text, font=self.get_font(font))
        return TextExtent(width=float(right - left), height=float(bottom - top))

    def _load_font(self, family: str, bold: bool, size: float):
        candidates = BOLD_FONT_CANDIDATES if bold else FONT_CANDIDATES
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate.format(family=family), size)
            except OSError:
                continue
        LOGGER.debug("No TrueType font found for %s; using Pillow's default font", family)
        return ImageFont.load_default(size=size)


def build_measurer(kind: str) -> TextMeasurer:
    if kind == "heuristic":
        return HeuristicTextMeasurer()
    if kind == "pillow":
        return PillowTextMeasurer()
    raise ValueError(f"Unknown text measurer: {kind}")


def wrap_text(text: str, chars_per_line: float) -> List[str]:
    """Greedily wrap ``text`` at ``chars_per_line``, keeping hard breaks.

    Lines break at the last space before the limit, or mid-word when the
    line has no space.
    """
    limit = max(int(chars_per_line), 1)
    lines: List[str] = []
    for paragraph in text.split("\n"):
        remaining = paragraph
        while len(remaining) > limit:
            cut = remaining.rfind(" ", 0, limit + 1)
            if cut <= 0:
                lines.append(remaining[:limit])
                remaining = remaining[limit:]
            else:
                lines.append(remaining[:cut])
                remaining = remaining[cut + 1 :]
        lines.append(remaining)
    return lines


@dataclass(slots=True)
class _FitContext:
    text: str
    family: str
    weight: int
    width_pt: float
    height_pt: float
    style: ComputedStyle
    constraints: str


class AutofitCalculator:
    """Estimate the largest font size (down to a floor) at which text fits.

    Results are cached per ``(text, element id)``; the cache belongs to one
    document snapshot and must be cleared when the snapshot is reloaded.
    """

    def __init__(self, measurer: Optional[TextMeasurer] = None, settings: Optional[RenderSettings] = None) -> None:
        settings = settings or RenderSettings()
        self._measurer = measurer or build_measurer(settings.measurer)
        self.min_font_size = settings.min_font_size
        self.step = settings.font_step
        self._cache: Dict[Tuple[str, Optional[str]], float] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def calculate_font_size(
        self,
        chain: Sequence[Mapping[str, Any]],
        text: TextDefinition,
        constraints: Optional[str] = VERTICAL,
    ) -> float:
        """Return a font size in points for ``text`` in the last element of ``chain``."""
        if not chain:
            raise ValueError("An ancestor chain needs at least the target element")
        element = chain[-1]
        key = (text.raw_text, element.get("objectId"))
        if key in self._cache:
            return self._cache[key]

        style = compute_effective_style(chain)
        font_size, weight = self._initial_metrics(element, text, style)
        if not text.raw_text:
            return font_size

        box = element_bounding_box(_sized_element(chain)).to_points()
        context = _FitContext(
            text=text.raw_text,
            family=_find_font_family(element) or style.font_family,
            weight=weight,
            width_pt=box.width - DEFAULT_PADDING_PT,
            height_pt=box.height - DEFAULT_PADDING_PT,
            style=style,
            constraints=constraints or VERTICAL,
        )

        initial = font_size
        while font_size > self.min_font_size and self._is_outside_bounds(context, font_size):
            font_size = max(font_size - self.step, self.min_font_size)

        LOGGER.debug(
            "Autofit %s: %d chars into %.0fx%.0fpt -> %.2fpt (from %.2fpt)",
            element.get("objectId"),
            len(text.raw_text),
            context.width_pt,
            context.height_pt,
            font_size,
            initial,
        )
        self._cache[key] = font_size
        return font_size

    # ------------------------------------------------------------------
    # Internals
    def _initial_metrics(
        self,
        element: Mapping[str, Any],
        text: TextDefinition,
        style: ComputedStyle,
    ) -> Tuple[float, int]:
        sizes: List[float] = []
        weights: List[float] = []
        for run_style in _existing_run_styles(element):
            size = _number((run_style.get("fontSize") or {}).get("magnitude"))
            if size is not None:
                sizes.append(size)
            weight = _number((run_style.get("weightedFontFamily") or {}).get("weight"))
            if weight is not None:
                weights.append(weight)
        for run in text.text_runs:
            if run.font_size_pt is not None:
                sizes.append(run.font_size_pt)

        font_size = sum(sizes) / len(sizes) if sizes else style.font_size
        weight = int(sum(weights) / len(weights)) if weights else style.font_weight
        return font_size, weight

    def _chars_per_line(self, context: _FitContext, font: FontSpec) -> float:
        sample = context.text[:SAMPLE_LENGTH]
        measured = self._measurer.measure(sample, font).width
        if measured <= 0:
            return float(len(context.text))
        average = measured / len(sample)
        return points_to_pixels(context.width_pt) / (average * CHAR_WIDTH_CORRECTION)

    def _is_outside_bounds(self, context: _FitContext, font_size: float) -> bool:
        font = FontSpec(family=context.family, size_pt=font_size, weight=context.weight)
        lines = wrap_text(context.text, self._chars_per_line(context, font))

        if context.constraints == HORIZONTAL and len(lines) > 1:
            return True

        style = context.style
        # Paragraph spacing applies per hard break, not per wrapped line.
        breaks = max(context.text.count("\n"), 1)
        horizontal_space = style.magnitude("indentStart") + style.magnitude("indentEnd")
        space_around = breaks * (style.magnitude("spaceAbove") + style.magnitude("spaceBelow"))
        space_between = (breaks - 1) * (style.line_spacing / 100 * font_size)

        extent = self._measurer.measure("\n".join(lines), font)
        width = pixels_to_points(extent.width) + horizontal_space
        height = pixels_to_points(extent.height) + space_around + space_between
        return width > context.width_pt or height > context.height_pt


def _sized_element(chain: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]:
    """The youngest element in the chain that carries its own size."""
    for element in reversed(chain):
        if has_size(element):
            return element
    raise ValueError(f"No element in the chain of {chain[-1].get('objectId')} has a size")


def _existing_run_styles(element: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    text = (element.get("shape") or {}).get("text") or {}
    styles = []
    for text_element in text.get("textElements") or []:
        run = text_element.get("textRun")
        if run and run.get("style"):
            styles.append(run["style"])
    return styles


def _find_font_family(element: Mapping[str, Any]) -> Optional[str]:
    for run_style in _existing_run_styles(element):
        family = run_style.get("fontFamily") or (run_style.get("weightedFontFamily") or {}).get("fontFamily")
        if family:
            return family
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
