"""Shared fixtures: real PDFs and images built with PyMuPDF, fake thread pools."""
from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz
import pytest

from controller import EditorController
from settings import EditorSettings

PAGE_WIDTH = 595
PAGE_HEIGHT = 842


def make_pdf(pages: int, label: str = "doc",
             width: float = PAGE_WIDTH, height: float = PAGE_HEIGHT) -> bytes:
    """Build a PDF whose page i carries the text ``f"{label}-{i}"``."""
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"{label}-{i}", fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


def make_encrypted_pdf(pages: int = 2) -> bytes:
    """A PDF that needs a user password to open."""
    doc = fitz.open(stream=make_pdf(pages), filetype="pdf")
    data = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, user_pw="u", owner_pw="o")
    doc.close()
    return data


def page_texts(buffer: bytes) -> list[str]:
    doc = fitz.open(stream=buffer, filetype="pdf")
    try:
        return [page.get_text() for page in doc]
    finally:
        doc.close()


def page_count(buffer: bytes) -> int:
    doc = fitz.open(stream=buffer, filetype="pdf")
    try:
        return doc.page_count
    finally:
        doc.close()


def _image(fmt: str) -> bytes:
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, 16, 8), False)
    pix.clear_with(180)
    return pix.tobytes(fmt)


@pytest.fixture
def png_bytes() -> bytes:
    return _image("png")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image("jpg")


class InlinePool:
    """Runs every worker immediately on the calling thread."""

    def start(self, runnable):
        runnable.run()


class DeferredPool:
    """Holds workers until the test decides when (and in which order) they run."""

    def __init__(self):
        self.pending = []

    def start(self, runnable):
        self.pending.append(runnable)

    def take(self):
        batch, self.pending = self.pending, []
        return batch


@pytest.fixture
def controller(qapp):
    return EditorController(settings=EditorSettings(), thread_pool=InlinePool())


@pytest.fixture
def deferred_pool():
    return DeferredPool()
