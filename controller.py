"""
controller.py — EditorController: user actions → PDF services → DocumentStore

The controller is the only writer of the DocumentStore. Mutations run on the
calling (GUI) thread; page renders and page counts run on a QThreadPool and
their results are dropped when they were issued for a buffer, page or zoom
that is no longer current.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from PyQt6.QtCore import QObject, QThreadPool, pyqtSignal

import pdf_ops
from coords import screen_to_pdf
from errors import DocumentLoadError, PdfEditorError
from models import (
    CanvasRect, DocumentStore, DownloadArtifact, EditorState, Empty, Loaded,
    PageRange, PickedImage, Placing, ScreenPoint, Tool,
)
from pdf_render import (
    PageCountWorker, RenderSurface, RenderTicket, RenderWorker, get_page_count,
)
from settings import EditorSettings, clamp_zoom

FileSource = Union[str, Path, bytes]


class EditorController(QObject):

    # Signals
    state_changed = pyqtSignal(object)     # EditorState
    page_rendered = pyqtSignal(object)     # RenderSurface
    zoom_changed = pyqtSignal(float)
    document_changed = pyqtSignal()
    error_occurred = pyqtSignal(str)

    def __init__(self, store: Optional[DocumentStore] = None,
                 settings: Optional[EditorSettings] = None,
                 thread_pool=None, parent=None):
        super().__init__(parent)
        self.store = store if store is not None else DocumentStore(self)
        self.settings = settings or EditorSettings()
        self._pool = thread_pool if thread_pool is not None else QThreadPool.globalInstance()
        self._state: EditorState = Loaded() if self.store.has_document else Empty()
        self._scale: float = clamp_zoom(self.settings.initial_zoom)

        # Asked on canvas clicks; the main window installs dialog-backed versions.
        self.prompt_text: Callable[[], Optional[str]] = lambda: None
        self.pick_image: Callable[[], Optional[PickedImage]] = lambda: None

        self._render_ticket: Optional[RenderTicket] = None
        self.displayed: Optional[RenderSurface] = None
        self.displayed_ticket: Optional[RenderTicket] = None

    # ── State ─────────────────────────────────

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def armed_tool(self) -> Optional[Tool]:
        return self._state.tool if isinstance(self._state, Placing) else None

    def _set_state(self, state: EditorState):
        if state != self._state:
            self._state = state
            self.state_changed.emit(state)

    def _fail(self, action: str, error: Exception):
        msg = f"{action} failed: {error}"
        logging.error(msg)
        self.error_occurred.emit(msg)

    # ── Loading ───────────────────────────────

    def upload(self, data: bytes) -> bool:
        """Make ``data`` the active document. Returns False if it is not a PDF."""
        try:
            count = get_page_count(data)
        except PdfEditorError as e:
            self._fail("Opening document", e)
            return False
        self._commit(data, reset_page=True, total_pages=count)
        self._set_state(Loaded())
        logging.info(f"Loaded document ({count} pages, {len(data)} bytes)")
        return True

    def open_file(self, path: Union[str, Path]) -> bool:
        path = Path(path)
        if path.suffix.lower() != ".pdf":
            self._fail("Opening document", DocumentLoadError(f"{path.name} is not a .pdf file"))
            return False
        try:
            data = path.read_bytes()
        except OSError as e:
            self._fail("Opening document", e)
            return False
        return self.upload(data)

    def merge_files(self, sources: Iterable[FileSource]) -> bool:
        """Merge the given PDFs (paths or bytes, in order) into a new active document."""
        try:
            buffers = [self._read(src) for src in sources]
        except (OSError, DocumentLoadError) as e:
            self._fail("Merging documents", e)
            return False
        if not buffers:
            return False
        try:
            merged = pdf_ops.merge(buffers)
            count = get_page_count(merged)
        except PdfEditorError as e:
            self._fail("Merging documents", e)
            return False
        self._commit(merged, reset_page=True, total_pages=count)
        self._set_state(Loaded())
        return True

    @staticmethod
    def _read(source: FileSource) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source)
        path = Path(source)
        if path.suffix.lower() != ".pdf":
            raise DocumentLoadError(f"{path.name} is not a .pdf file")
        return path.read_bytes()

    # ── Tools & placement ─────────────────────

    def select_tool(self, tool: Tool):
        if isinstance(self._state, Empty):
            return
        if self.armed_tool == tool:
            self._set_state(Loaded())
        else:
            self._set_state(Placing(tool))

    def click_canvas(self, click: ScreenPoint, canvas: CanvasRect) -> bool:
        """Place the armed tool's content at ``click``. Returns True on a new buffer."""
        if not isinstance(self._state, Placing):
            return False

        if self._state.tool is Tool.TEXT:
            text = self.prompt_text()
            if not text:
                return False
            return self._place("Adding text", click, canvas,
                               lambda buf, pt, idx: pdf_ops.add_text(buf, text, pt, idx))

        picked = self.pick_image()
        if picked is None:
            return False
        try:
            kind = pdf_ops.image_kind_from_media_type(picked.media_type)
        except PdfEditorError as e:
            self._fail("Adding image", e)
            return False
        return self._place(
            "Adding image", click, canvas,
            lambda buf, pt, idx: pdf_ops.add_image(buf, picked.data, pt, idx, kind),
        )

    def _place(self, action: str, click: ScreenPoint, canvas: CanvasRect, mutate) -> bool:
        buffer = self.store.buffer
        page_index = self.store.current_page - 1
        try:
            width, height = pdf_ops.page_size(buffer, page_index)
            point = screen_to_pdf(click, canvas, width, height,
                                  self.settings.vertical_offset)
            new_buffer = mutate(buffer, point, page_index)
        except PdfEditorError as e:
            self._fail(action, e)
            return False
        self._commit(new_buffer)
        self._set_state(Loaded())
        return True

    # ── Split & download ──────────────────────

    def split(self, ranges: list[PageRange]) -> list[bytes]:
        if self.store.buffer is None:
            return []
        try:
            return pdf_ops.split(self.store.buffer, ranges)
        except PdfEditorError as e:
            self._fail("Splitting document", e)
            return []

    def download(self) -> Optional[DownloadArtifact]:
        if self.store.buffer is None:
            return None
        return DownloadArtifact(data=self.store.buffer)

    # ── Navigation & zoom ─────────────────────

    def change_page(self, delta: int):
        self.go_to_page(self.store.current_page + delta)

    def go_to_page(self, page: int):
        if not self.store.has_document:
            return
        if self.store.set_current_page(page):
            self._request_render()

    def change_zoom(self, scale: float):
        scale = clamp_zoom(scale)
        if scale == self._scale:
            return
        self._scale = scale
        self.zoom_changed.emit(scale)
        if self.store.has_document:
            self._request_render()

    # ── Teardown ──────────────────────────────

    def close(self):
        self.store.clear()
        self._render_ticket = None
        self.displayed = None
        self.displayed_ticket = None
        self._set_state(Empty())

    # ── Buffer replacement & background queries ─

    def _commit(self, buffer: bytes, reset_page: bool = False,
                total_pages: Optional[int] = None):
        self.store.replace(buffer, reset_page=reset_page, total_pages=total_pages)
        self.document_changed.emit()
        self._request_render()
        self._request_page_count()

    def _request_render(self):
        ticket = RenderTicket(self.store.generation, self.store.current_page, self._scale)
        self._render_ticket = ticket
        worker = RenderWorker(ticket, self.store.buffer)
        worker.signals.finished.connect(self._on_render_finished)
        worker.signals.failed.connect(self._on_render_failed)
        self._pool.start(worker)

    def _request_page_count(self):
        worker = PageCountWorker(self.store.generation, self.store.buffer)
        worker.signals.finished.connect(self._on_count_finished)
        worker.signals.failed.connect(self._on_count_failed)
        self._pool.start(worker)

    def _on_render_finished(self, ticket: RenderTicket, surface: RenderSurface):
        if ticket != self._render_ticket:
            logging.debug(f"Dropping stale render {ticket}")
            return
        self.displayed = surface
        self.displayed_ticket = ticket
        self.page_rendered.emit(surface)

    def _on_render_failed(self, ticket: RenderTicket, msg: str):
        if ticket != self._render_ticket:
            return
        self.error_occurred.emit(f"Rendering page {ticket.page_number} failed: {msg}")

    def _on_count_finished(self, generation: int, count: int):
        if generation != self.store.generation:
            logging.debug(f"Dropping stale page count for generation {generation}")
            return
        page_before = self.store.current_page
        self.store.set_total_pages(count)
        if self.store.current_page != page_before:
            self._request_render()

    def _on_count_failed(self, generation: int, msg: str):
        if generation != self.store.generation:
            return
        self.store.page_count_error = msg
        self.error_occurred.emit(f"Failed to get PDF page count: {msg}")
