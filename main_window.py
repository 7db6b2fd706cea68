"""
main_window.py — Main application window
Toolbar, page canvas, pagination bar and the dialogs behind each action.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QMimeDatabase, QPoint, Qt, QThread, pyqtSignal
from PyQt6.QtGui import QKeySequence, QMouseEvent, QPixmap, QShortcut
from PyQt6.QtWidgets import (
    QFileDialog, QFrame, QHBoxLayout, QInputDialog, QLabel, QMainWindow,
    QMessageBox, QPushButton, QScrollArea, QSlider, QStatusBar, QToolButton,
    QVBoxLayout, QWidget,
)

from controller import EditorController
from errors import PdfEditorError
from models import CanvasRect, Empty, PageRange, PickedImage, ScreenPoint, Tool
from pdf_render import RenderSurface
from settings import MAX_ZOOM, MIN_ZOOM, ZOOM_STEP, EditorSettings


# ─────────────────────────────────────────────
# Tool button helper
# ─────────────────────────────────────────────

TOOL_BUTTON_STYLE = (
    "QToolButton { border: none; border-radius: 4px; font-size: 16px; }"
    "QToolButton:hover { background: rgba(0,0,0,0.08); }"
    "QToolButton:pressed { background: rgba(0,0,0,0.15); }"
    "QToolButton:checked { background: #d6e4ff; }"
)


def make_tool_button(text: str, tooltip: str, checkable: bool = False) -> QToolButton:
    btn = QToolButton()
    btn.setText(text)
    btn.setToolTip(tooltip)
    btn.setCheckable(checkable)
    btn.setFixedSize(36, 32)
    btn.setStyleSheet(TOOL_BUTTON_STYLE)
    return btn


DIVIDER_STYLE = "background: #d0d0d0; min-width: 1px; max-width: 1px; margin: 3px 4px;"


def make_divider() -> QFrame:
    d = QFrame()
    d.setFrameShape(QFrame.Shape.VLine)
    d.setStyleSheet(DIVIDER_STYLE)
    return d


# ─────────────────────────────────────────────
# Page canvas
# ─────────────────────────────────────────────

class PageCanvas(QLabel):
    """Shows the rendered page; reports clicks in global screen coordinates."""

    clicked = pyqtSignal(object, object)  # ScreenPoint, CanvasRect

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setStyleSheet("background: white;")

    def show_surface(self, surface: RenderSurface):
        self.setFixedSize(surface.width, surface.height)
        self.setPixmap(QPixmap.fromImage(surface.image))

    def clear_page(self):
        self.clear()
        self.setFixedSize(0, 0)

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or self.pixmap().isNull():
            super().mousePressEvent(event)
            return
        pos = event.globalPosition()
        origin = self.mapToGlobal(QPoint(0, 0))
        self.clicked.emit(
            ScreenPoint(pos.x(), pos.y()),
            CanvasRect(origin.x(), origin.y(), self.width(), self.height()),
        )


# ─────────────────────────────────────────────
# Workers
# ─────────────────────────────────────────────

class FileSaveWorker(QThread):
    finished = pyqtSignal(bool, str)  # success, path or message

    def __init__(self, data: bytes, save_path: str):
        super().__init__()
        self._data = data
        self._save_path = save_path

    def run(self):
        try:
            with open(self._save_path, "wb") as f:
                f.write(self._data)
            self._data = None  # release the snapshot
            self.finished.emit(True, self._save_path)
        except OSError as e:
            self.finished.emit(False, str(e))


# ─────────────────────────────────────────────
# Main Window
# ─────────────────────────────────────────────

class MainWindow(QMainWindow):

    def __init__(self, settings: Optional[EditorSettings] = None):
        super().__init__()
        self.setWindowTitle("PDF Canvas Editor")
        self.setMinimumSize(900, 700)
        self.resize(1100, 860)

        self._controller = EditorController(settings=settings or EditorSettings.load(), parent=self)
        self._controller.prompt_text = self._ask_text
        self._controller.pick_image = self._ask_image
        self._save_worker: Optional[FileSaveWorker] = None

        self._build_ui()
        self._connect_signals()
        self._update_toolbar_state()
        self.setAcceptDrops(True)

    @property
    def controller(self) -> EditorController:
        return self._controller

    # ── UI Build ──────────────────────────────

    def _build_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        main_vl = QVBoxLayout(central)
        main_vl.setContentsMargins(0, 0, 0, 0)
        main_vl.setSpacing(0)

        # ── Toolbar ──
        self._toolbar = QWidget()
        self._toolbar.setFixedHeight(38)
        self._toolbar.setStyleSheet("background: #fafafa;")
        tb_layout = QHBoxLayout(self._toolbar)
        tb_layout.setContentsMargins(6, 3, 6, 3)
        tb_layout.setSpacing(0)

        self._open_btn = make_tool_button("📂", "PDF 열기 (Ctrl+O)")
        tb_layout.addWidget(self._open_btn)
        self._download_btn = make_tool_button("💾", "edited.pdf 저장 (Ctrl+S)")
        tb_layout.addWidget(self._download_btn)
        tb_layout.addWidget(make_divider())

        self._text_btn = make_tool_button("T", "텍스트 추가", checkable=True)
        tb_layout.addWidget(self._text_btn)
        self._image_btn = make_tool_button("🖼", "이미지 추가", checkable=True)
        tb_layout.addWidget(self._image_btn)
        tb_layout.addWidget(make_divider())

        self._merge_btn = make_tool_button("⧉", "PDF 합치기")
        tb_layout.addWidget(self._merge_btn)
        self._split_btn = make_tool_button("✂", "PDF 분할")
        tb_layout.addWidget(self._split_btn)
        tb_layout.addStretch(1)

        zoom_lbl = QLabel("확대:")
        zoom_lbl.setStyleSheet("font-size: 12px; color: #555; padding-right: 4px;")
        tb_layout.addWidget(zoom_lbl)
        self._zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self._zoom_slider.setRange(round(MIN_ZOOM / ZOOM_STEP), round(MAX_ZOOM / ZOOM_STEP))
        self._zoom_slider.setValue(round(self._controller.scale / ZOOM_STEP))
        self._zoom_slider.setFixedWidth(110)
        tb_layout.addWidget(self._zoom_slider)
        self._zoom_label = QLabel(f"{int(self._controller.scale * 100)}%")
        self._zoom_label.setFixedWidth(44)
        self._zoom_label.setStyleSheet("font-size: 12px; padding-left: 4px;")
        tb_layout.addWidget(self._zoom_label)

        main_vl.addWidget(self._toolbar)

        sep = QFrame()
        sep.setFrameShape(QFrame.Shape.HLine)
        sep.setStyleSheet("color: #d0d0d0;")
        main_vl.addWidget(sep)

        # ── Canvas ──
        self._canvas = PageCanvas()
        self._placeholder = QLabel("PDF를 열어 시작하세요")
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._placeholder.setStyleSheet("color: #bbb; font-size: 15px;")

        canvas_host = QWidget()
        host_vl = QVBoxLayout(canvas_host)
        host_vl.setAlignment(Qt.AlignmentFlag.AlignCenter)
        host_vl.addWidget(self._placeholder)
        host_vl.addWidget(self._canvas, 0, Qt.AlignmentFlag.AlignCenter)

        self._scroll = QScrollArea()
        self._scroll.setObjectName("pdfScrollArea")
        self._scroll.setWidgetResizable(True)
        self._scroll.setWidget(canvas_host)
        main_vl.addWidget(self._scroll, 1)

        # ── Pagination ──
        nav = QWidget()
        nav.setFixedHeight(40)
        nav_hl = QHBoxLayout(nav)
        nav_hl.setContentsMargins(6, 4, 6, 4)
        nav_hl.addStretch(1)
        self._prev_btn = QPushButton("이전")
        nav_hl.addWidget(self._prev_btn)
        self._page_label = QLabel("—")
        self._page_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._page_label.setMinimumWidth(110)
        nav_hl.addWidget(self._page_label)
        self._next_btn = QPushButton("다음")
        nav_hl.addWidget(self._next_btn)
        nav_hl.addStretch(1)
        main_vl.addWidget(nav)

        # ── Status Bar ──
        self._status_label = QLabel("PDF Canvas Editor")
        self._status_label.setStyleSheet("font-size: 11px; color: #888; padding: 2px 10px;")
        statusbar = QStatusBar()
        statusbar.addWidget(self._status_label)
        statusbar.setFixedHeight(24)
        self.setStatusBar(statusbar)

    def _connect_signals(self):
        self._open_btn.clicked.connect(self._open_file)
        self._download_btn.clicked.connect(self._download)
        self._text_btn.clicked.connect(lambda: self._controller.select_tool(Tool.TEXT))
        self._image_btn.clicked.connect(lambda: self._controller.select_tool(Tool.IMAGE))
        self._merge_btn.clicked.connect(self._merge_pdfs)
        self._split_btn.clicked.connect(self._show_split_dialog)
        self._zoom_slider.valueChanged.connect(
            lambda v: self._controller.change_zoom(v * ZOOM_STEP))
        self._prev_btn.clicked.connect(lambda: self._controller.change_page(-1))
        self._next_btn.clicked.connect(lambda: self._controller.change_page(1))
        self._canvas.clicked.connect(self._controller.click_canvas)

        self._controller.state_changed.connect(lambda _s: self._update_toolbar_state())
        self._controller.page_rendered.connect(self._on_page_rendered)
        self._controller.zoom_changed.connect(self._on_zoom_changed)
        self._controller.document_changed.connect(self._update_toolbar_state)
        self._controller.error_occurred.connect(self._on_error)
        self._controller.store.pages_changed.connect(lambda *_: self._update_page_label())

        # Keyboard shortcuts
        QShortcut(QKeySequence("Ctrl+O"), self, activated=self._open_file)
        QShortcut(QKeySequence("Ctrl+S"), self, activated=self._download)
        QShortcut(QKeySequence("Left"), self,
                  activated=lambda: self._controller.change_page(-1))
        QShortcut(QKeySequence("Right"), self,
                  activated=lambda: self._controller.change_page(1))
        QShortcut(QKeySequence("Ctrl+="), self,
                  activated=lambda: self._controller.change_zoom(self._controller.scale + ZOOM_STEP))
        QShortcut(QKeySequence("Ctrl+-"), self,
                  activated=lambda: self._controller.change_zoom(self._controller.scale - ZOOM_STEP))

    # ── Dialog callbacks used by the controller ─

    def _ask_text(self) -> Optional[str]:
        text, ok = QInputDialog.getText(self, "텍스트 추가", "텍스트 입력:")
        return text if ok else None

    def _ask_image(self) -> Optional[PickedImage]:
        path, _ = QFileDialog.getOpenFileName(
            self, "이미지 선택", "", "이미지 (*.png *.jpg *.jpeg)"
        )
        if not path:
            return None
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            QMessageBox.critical(self, "오류", f"이미지를 읽을 수 없습니다:\n{e}")
            return None
        media_type = QMimeDatabase().mimeTypeForFile(path).name()
        return PickedImage(data=data, media_type=media_type)

    # ── File Operations ───────────────────────

    def _open_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "PDF 열기", "", "PDF Files (*.pdf)")
        if path:
            self.load_file(path)

    def load_file(self, path: str):
        if self._controller.open_file(path):
            self._set_status(f"{Path(path).name} — {self._controller.store.total_pages}p")

    def _merge_pdfs(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "합칠 PDF 선택", "", "PDF (*.pdf)")
        if not paths:
            return
        self._set_status("합치는 중...")
        if self._controller.merge_files(paths):
            self._set_status(f"합치기 완료 ({len(paths)}개 파일)")

    def _show_split_dialog(self):
        store = self._controller.store
        if not store.has_document:
            return
        text, ok = QInputDialog.getText(
            self, "PDF 분할",
            f"총 {store.total_pages}페이지 — 범위 입력 (예: 1-2, 3-5):",
            text=f"1-{store.total_pages}",
        )
        if not ok:
            return
        try:
            ranges = PageRange.parse(text, store.total_pages)
        except PdfEditorError as e:
            QMessageBox.warning(self, "알림", str(e))
            return

        folder = QFileDialog.getExistingDirectory(self, "저장 위치")
        if not folder:
            return
        parts = self._controller.split(ranges)
        try:
            for i, data in enumerate(parts, start=1):
                (Path(folder) / f"split_{i}.pdf").write_bytes(data)
        except OSError as e:
            QMessageBox.critical(self, "오류", str(e))
            return
        if parts:
            self._set_status(f"분할 완료 ({len(parts)}개 파일)")

    def _download(self):
        artifact = self._controller.download()
        if artifact is None:
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "다운로드", artifact.filename, "PDF Files (*.pdf)"
        )
        if not path:
            return
        if not path.lower().endswith(".pdf"):
            path += ".pdf"
        self._set_status("저장 중...")
        self._save_worker = FileSaveWorker(artifact.data, path)
        self._save_worker.finished.connect(self._on_save_finished)
        self._save_worker.start()

    def _on_save_finished(self, success: bool, msg: str):
        if success:
            logging.info(f"Saved document to {msg}")
            self._set_status(f"저장 완료: {Path(msg).name}")
        else:
            logging.error(f"Saving document failed: {msg}")
            QMessageBox.critical(self, "저장 오류", msg)
            self._set_status("저장 실패")

    # ── Controller feedback ───────────────────

    def _on_page_rendered(self, surface: RenderSurface):
        self._placeholder.hide()
        self._canvas.show_surface(surface)

    def _on_zoom_changed(self, scale: float):
        self._zoom_label.setText(f"{int(round(scale * 100))}%")
        self._zoom_slider.blockSignals(True)
        self._zoom_slider.setValue(round(scale / ZOOM_STEP))
        self._zoom_slider.blockSignals(False)

    def _on_error(self, msg: str):
        self._set_status(msg)
        QMessageBox.critical(self, "오류", msg)

    def _update_toolbar_state(self):
        has_doc = self._controller.store.has_document
        tool = self._controller.armed_tool
        for btn in (self._download_btn, self._text_btn, self._image_btn, self._split_btn):
            btn.setEnabled(has_doc)
        self._text_btn.setChecked(tool is Tool.TEXT)
        self._image_btn.setChecked(tool is Tool.IMAGE)
        if tool is not None:
            self._canvas.setCursor(Qt.CursorShape.CrossCursor)
            self._set_status("배치할 위치를 클릭하세요")
        else:
            self._canvas.unsetCursor()
        if isinstance(self._controller.state, Empty):
            self._canvas.clear_page()
            self._placeholder.show()
        self._update_page_label()

    def _update_page_label(self):
        store = self._controller.store
        if store.has_document:
            self._page_label.setText(f"{store.current_page} / {store.total_pages} 페이지")
        else:
            self._page_label.setText("—")
        self._prev_btn.setEnabled(store.has_document and store.current_page > 1)
        self._next_btn.setEnabled(store.has_document and store.current_page < store.total_pages)

    def _set_status(self, msg: str):
        self._status_label.setText(msg)

    # ── Drag & Drop (PDF) ─────────────────────

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            for url in event.mimeData().urls():
                if url.toLocalFile().lower().endswith('.pdf'):
                    event.acceptProposedAction()
                    return
        event.ignore()

    def dropEvent(self, event):
        paths = [
            url.toLocalFile() for url in event.mimeData().urls()
            if url.toLocalFile().lower().endswith('.pdf')
        ]
        if len(paths) == 1:
            self.load_file(paths[0])
        elif paths:
            self._controller.merge_files(paths)

    # ── Close ─────────────────────────────────

    def closeEvent(self, event):
        if self._save_worker is not None and self._save_worker.isRunning():
            self._save_worker.wait(2000)
        self._controller.close()
        event.accept()
