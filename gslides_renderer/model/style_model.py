"""Style model capturing the effective text/paragraph style of a placeholder."""
from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Mapping, Optional

from gslides_renderer.utils.units import emu_to_points

# Union of Slides TextStyle and ParagraphStyle fields; the two never overlap.
DEFAULT_STYLE: Dict[str, Any] = {
    "backgroundColor": {},
    "foregroundColor": {},
    "bold": False,
    "italic": False,
    "fontFamily": "Arial",
    "fontSize": {"magnitude": 16, "unit": "PT"},
    "link": None,
    "baselineOffset": "NONE",
    "smallCaps": False,
    "strikethrough": False,
    "underline": False,
    "weightedFontFamily": {"fontFamily": "Arial", "weight": 400},
    "lineSpacing": 115,  # percent of the font size
    "alignment": "START",
    "indentStart": {"magnitude": 0, "unit": "PT"},
    "indentEnd": {"magnitude": 0, "unit": "PT"},
    "spaceAbove": {"magnitude": 0, "unit": "PT"},
    "spaceBelow": {"magnitude": 0, "unit": "PT"},
    "indentFirstLine": {"magnitude": 0, "unit": "PT"},
    "direction": "LEFT_TO_RIGHT",
    "spacingMode": "NEVER_COLLAPSE",
}

DEFAULT_FONT_SIZE_PT = 16.0
DEFAULT_FONT_WEIGHT = 400


class ComputedStyle:
    """Effective style after overlaying inherited styles onto the defaults."""

    def __init__(self, properties: Optional[Mapping[str, Any]] = None):
        self._properties = deepcopy(DEFAULT_STYLE)
        if properties:
            self.overlay(properties)

    def overlay(self, style: Optional[Mapping[str, Any]]) -> None:
        """Copy every field set in ``style`` over the current values."""
        if not style:
            return
        for key, value in style.items():
            if value is not None:
                self._properties[key] = deepcopy(value)

    def get(self, key: str, default: Any = None) -> Any:
        return self._properties.get(key, default)

    def all(self) -> Dict[str, Any]:
        return dict(self._properties)

    def magnitude(self, key: str) -> float:
        """Return the magnitude of a Dimension field in points, or zero."""
        value = self._properties.get(key)
        if not isinstance(value, Mapping):
            return 0.0
        magnitude = value.get("magnitude")
        if isinstance(magnitude, bool) or not isinstance(magnitude, (int, float)):
            return 0.0
        if value.get("unit") == "EMU":
            return emu_to_points(float(magnitude))
        return float(magnitude)

    @property
    def font_size(self) -> float:
        return self.magnitude("fontSize") or DEFAULT_FONT_SIZE_PT

    @property
    def font_weight(self) -> int:
        weighted = self._properties.get("weightedFontFamily") or {}
        weight = weighted.get("weight") if isinstance(weighted, Mapping) else None
        return int(weight) if isinstance(weight, (int, float)) and not isinstance(weight, bool) else DEFAULT_FONT_WEIGHT

    @property
    def font_family(self) -> str:
        family = self._properties.get("fontFamily")
        if isinstance(family, str) and family:
            return family
        weighted = self._properties.get("weightedFontFamily") or {}
        return weighted.get("fontFamily") or DEFAULT_STYLE["fontFamily"]

    @property
    def line_spacing(self) -> float:
        value = self._properties.get("lineSpacing")
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
            return float(value)
        return float(DEFAULT_STYLE["lineSpacing"])

    def __repr__(self) -> str:  # pragma: no cover
        return f"ComputedStyle(fontFamily={self.font_family!r}, fontSize={self.font_size!r})"
