"""
settings.py — Persistent editor settings (QSettings)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PyQt6.QtCore import QSettings

from coords import DEFAULT_VERTICAL_OFFSET

ORGANIZATION = "PDFCanvasEditor"
APPLICATION = "Settings"

MIN_ZOOM = 0.5
MAX_ZOOM = 2.0
ZOOM_STEP = 0.1


def clamp_zoom(scale: float) -> float:
    """Clamp to [MIN_ZOOM, MAX_ZOOM] and snap to ZOOM_STEP."""
    scale = max(MIN_ZOOM, min(float(scale), MAX_ZOOM))
    return round(round(scale / ZOOM_STEP) * ZOOM_STEP, 1)


@dataclass
class EditorSettings:
    # Screen pixels added before the Y flip when mapping canvas clicks.
    vertical_offset: float = DEFAULT_VERTICAL_OFFSET
    initial_zoom: float = 1.5

    @classmethod
    def load(cls, settings: QSettings | None = None) -> "EditorSettings":
        settings = settings or QSettings(ORGANIZATION, APPLICATION)
        defaults = cls()
        loaded = cls(
            vertical_offset=settings.value(
                "vertical_offset", defaults.vertical_offset, type=float),
            initial_zoom=clamp_zoom(settings.value(
                "initial_zoom", defaults.initial_zoom, type=float)),
        )
        logging.info(
            f"Settings: vertical_offset={loaded.vertical_offset}, "
            f"initial_zoom={loaded.initial_zoom}"
        )
        return loaded

    def save(self, settings: QSettings | None = None):
        settings = settings or QSettings(ORGANIZATION, APPLICATION)
        settings.setValue("vertical_offset", self.vertical_offset)
        settings.setValue("initial_zoom", self.initial_zoom)
        settings.sync()
