"""Helpers to persist request batches and snapshots for debugging."""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from gslides_renderer.utils.logger import get_logger

LOGGER = get_logger(__name__)


class DebugDumper:
    """Writes intermediate artifacts onto disk for inspection."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._counter = 0

    def dump(self, name: str, payload: Any) -> Path:
        """Persist ``payload`` as ``<nn>-<name>.json`` and return the path."""
        self.directory.mkdir(parents=True, exist_ok=True)
        self._counter += 1
        target = self.directory / f"{self._counter:02d}-{name}.json"
        target.write_text(json.dumps(self._serialize(payload), indent=2), encoding="utf-8")
        LOGGER.debug("Wrote %s", target)
        return target

    def _serialize(self, value: Any) -> Any:
        if is_dataclass(value) and not isinstance(value, type):
            return {k: self._serialize(v) for k, v in asdict(value).items()}
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return {k: self._serialize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._serialize(v) for v in value]
        return value
