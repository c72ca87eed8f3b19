"""Runtime settings shared by the assembler, autofit and dispatch layers."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, Optional

from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)

ENV_PREFIX = "GSLIDES_RENDERER_"
DEFAULT_UPLOAD_KEY_PATH = Path.home() / ".md2googleslides" / "fileio_key.json"


@dataclass(slots=True, frozen=True)
class RenderSettings:
    """Tunables for throttling and text fitting."""

    max_images_per_chunk: int = 6
    chunk_delay_seconds: float = 2.0
    upload_delay_seconds: float = 0.15
    upload_burst_size: int = 6
    upload_burst_pause_seconds: float = 0.25
    upload_workers: int = 4
    min_font_size: float = 14.0
    font_step: float = 0.25
    strict_tables: bool = False
    allow_upload: bool = False
    upload_key: Optional[str] = None
    measurer: str = "pillow"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RenderSettings":
        """Build settings, overriding defaults from GSLIDES_RENDERER_* variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for item in fields(cls):
            raw = environ.get(ENV_PREFIX + item.name.upper())
            if raw is None:
                continue
            overrides[item.name] = _coerce(raw, item.default)
        return cls(**overrides)

    def with_upload_key(self, key: Optional[str], allow_upload: bool = True) -> "RenderSettings":
        return replace(self, upload_key=key, allow_upload=allow_upload)


def load_upload_key(path: Path = DEFAULT_UPLOAD_KEY_PATH) -> Optional[str]:
    """Read the upload service key from ``{"api_key": "..."}`` JSON."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        LOGGER.warning("Error loading upload key from %s: %s", path, exc)
        return None
    key = data.get("api_key") if isinstance(data, dict) else None
    if not isinstance(key, str) or not key:
        LOGGER.warning("No valid upload key found in %s; image uploading will be limited", path)
        return None
    return key


def _coerce(raw: str, default: object) -> object:
    if isinstance(default, bool):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
