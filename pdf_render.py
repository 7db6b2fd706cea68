"""
pdf_render.py — Page rasterization and page counting

Uses PyMuPDF (fitz) to render pages → QImage. Each call opens its own
document handle from the given bytes, so background workers never share
state with each other or with the GUI thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF
from PyQt6.QtCore import QObject, QRunnable, pyqtSignal
from PyQt6.QtGui import QImage

from errors import InvalidPageIndex
from pdf_ops import open_pdf


def get_page_count(buffer: bytes) -> int:
    doc = open_pdf(buffer)
    try:
        return doc.page_count
    finally:
        doc.close()


def fitz_pixmap_to_qimage(pix: fitz.Pixmap) -> QImage:
    """Convert fitz.Pixmap to QImage."""
    fmt = QImage.Format.Format_RGB888 if pix.n == 3 else QImage.Format.Format_RGBA8888
    img = QImage(pix.samples, pix.width, pix.height, pix.stride, fmt)
    return img.copy()  # copy to detach from fitz memory


class RenderSurface:
    """Target of render_page: pixel size plus the drawn image."""

    def __init__(self):
        self.width: int = 0
        self.height: int = 0
        self.image: Optional[QImage] = None

    def resize(self, width: int, height: int):
        self.width = width
        self.height = height
        self.image = None

    def draw(self, image: QImage):
        self.image = image


def render_page(buffer: bytes, page_number: int, surface: RenderSurface,
                scale: float = 1.0):
    """Rasterize 1-based ``page_number`` at ``scale`` into ``surface``."""
    doc = open_pdf(buffer)
    try:
        if not 1 <= page_number <= doc.page_count:
            raise InvalidPageIndex(
                f"page {page_number} outside 1-{doc.page_count}"
            )
        page = doc[page_number - 1]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        surface.resize(pix.width, pix.height)
        surface.draw(fitz_pixmap_to_qimage(pix))
    finally:
        doc.close()


# ─────────────────────────────────────────────
# Async workers
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class RenderTicket:
    """Identifies what a render was issued for."""
    generation: int
    page_number: int
    scale: float


class WorkerSignals(QObject):
    finished = pyqtSignal(object, object)  # tag, result
    failed = pyqtSignal(object, str)       # tag, message


class RenderWorker(QRunnable):
    """Background worker to render one page of a buffer snapshot."""

    def __init__(self, ticket: RenderTicket, buffer: bytes):
        super().__init__()
        self.ticket = ticket
        self._buffer = buffer
        self.signals = WorkerSignals()

    def run(self):
        surface = RenderSurface()
        try:
            render_page(self._buffer, self.ticket.page_number, surface,
                        self.ticket.scale)
        except Exception as e:
            logging.error(f"Render of page {self.ticket.page_number} failed: {e}")
            self.signals.failed.emit(self.ticket, str(e))
            return
        self.signals.finished.emit(self.ticket, surface)


class PageCountWorker(QRunnable):
    """Background worker to count the pages of a buffer snapshot."""

    def __init__(self, generation: int, buffer: bytes):
        super().__init__()
        self.generation = generation
        self._buffer = buffer
        self.signals = WorkerSignals()

    def run(self):
        try:
            count = get_page_count(self._buffer)
        except Exception as e:
            logging.error(f"Error getting page count: {e}")
            self.signals.failed.emit(self.generation, str(e))
            return
        self.signals.finished.emit(self.generation, count)
