"""
models.py — Data models: points, page ranges, editor states, DocumentStore
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal

from errors import InvalidPageRange


# ─────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class ScreenPoint:
    """Pixel position, origin top-left."""
    x: float
    y: float


@dataclass(frozen=True)
class PdfPoint:
    """PDF user-space position in points, origin bottom-left."""
    x: float
    y: float


@dataclass(frozen=True)
class CanvasRect:
    left: float
    top: float
    width: float
    height: float


# ─────────────────────────────────────────────
# Page Range
# ─────────────────────────────────────────────

_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+))?\s*$")


@dataclass(frozen=True)
class PageRange:
    """0-based inclusive range of pages."""
    start: int
    end: int

    def validate(self, page_count: int):
        if self.start > self.end:
            raise InvalidPageRange(f"start {self.start} is after end {self.end}")
        if self.start < 0 or self.end >= page_count:
            raise InvalidPageRange(
                f"range {self.start}-{self.end} is outside 0-{page_count - 1}"
            )

    @classmethod
    def parse(cls, text: str, page_count: int) -> list["PageRange"]:
        """Parse user input like ``"1-2, 3, 5-7"`` (1-based) into ranges.

        Each range is validated against ``page_count``.
        """
        ranges: list[PageRange] = []
        for part in text.split(","):
            if not part.strip():
                continue
            m = _RANGE_RE.match(part)
            if not m:
                raise InvalidPageRange(f"cannot read page range '{part.strip()}'")
            first = int(m.group(1))
            last = int(m.group(2)) if m.group(2) else first
            rng = cls(first - 1, last - 1)
            rng.validate(page_count)
            ranges.append(rng)
        if not ranges:
            raise InvalidPageRange("no page ranges given")
        return ranges


# ─────────────────────────────────────────────
# Editor state machine
# ─────────────────────────────────────────────

class Tool(Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Loaded:
    pass


@dataclass(frozen=True)
class Placing:
    tool: Tool


EditorState = Union[Empty, Loaded, Placing]


@dataclass(frozen=True)
class PickedImage:
    data: bytes
    media_type: str


@dataclass(frozen=True)
class DownloadArtifact:
    data: bytes
    filename: str = "edited.pdf"
    media_type: str = "application/pdf"


# ─────────────────────────────────────────────
# Document Store
# ─────────────────────────────────────────────

class DocumentStore(QObject):
    """Holds the active PDF buffer and pagination state.

    Only the controller writes here. ``generation`` increases on every buffer
    replacement and tags background work issued against that buffer.
    """

    buffer_changed = pyqtSignal(int)   # generation
    pages_changed = pyqtSignal(int, int)  # current_page, total_pages

    def __init__(self, parent=None):
        super().__init__(parent)
        self.buffer: Optional[bytes] = None
        self.generation: int = 0
        self.current_page: int = 1
        self.total_pages: int = 0
        self.page_count_error: Optional[str] = None

    @property
    def has_document(self) -> bool:
        return self.buffer is not None

    def replace(self, buffer: bytes, reset_page: bool = False,
                total_pages: Optional[int] = None) -> int:
        self.buffer = bytes(buffer)
        self.generation += 1
        if reset_page:
            self.current_page = 1
        if total_pages is not None:
            self.total_pages = total_pages
            self.page_count_error = None
        self.buffer_changed.emit(self.generation)
        self.pages_changed.emit(self.current_page, self.total_pages)
        return self.generation

    def set_total_pages(self, total: int):
        self.total_pages = total
        self.page_count_error = None
        self.current_page = max(1, min(self.current_page, total))
        self.pages_changed.emit(self.current_page, self.total_pages)

    def set_current_page(self, page: int) -> bool:
        """Clamp and store ``page``. Returns True if it changed."""
        page = max(1, min(page, max(self.total_pages, 1)))
        if page == self.current_page:
            return False
        self.current_page = page
        self.pages_changed.emit(self.current_page, self.total_pages)
        return True

    def clear(self):
        self.buffer = None
        self.generation += 1
        self.current_page = 1
        self.total_pages = 0
        self.page_count_error = None
        self.buffer_changed.emit(self.generation)
        self.pages_changed.emit(self.current_page, self.total_pages)
