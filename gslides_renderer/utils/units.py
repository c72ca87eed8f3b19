"""Unit conversion helpers for Slides API measurements."""
from __future__ import annotations

EMU_PER_POINT = 12700
EMU_PER_PIXEL = 9525
POINTS_PER_PIXEL = 0.75


def emu_to_points(value: float) -> float:
    """Convert English Metric Units to typographic points."""
    return value / EMU_PER_POINT


def points_to_emu(value: float) -> float:
    return value * EMU_PER_POINT


def pixels_to_points(value: float) -> float:
    """Convert CSS pixels to points (0.75pt per px)."""
    return value * POINTS_PER_PIXEL


def points_to_pixels(value: float) -> float:
    """Convert points to CSS pixels."""
    return value / POINTS_PER_PIXEL
