"""Tests for EditorController: state machine, placement, merging, stale results."""
from __future__ import annotations

import fitz
import pytest

from conftest import make_encrypted_pdf, make_pdf, page_count, page_texts
from controller import EditorController
from pdf_render import PageCountWorker, RenderWorker
from models import (
    CanvasRect, Empty, Loaded, PageRange, PickedImage, Placing, ScreenPoint, Tool,
)
from settings import EditorSettings

CANVAS = CanvasRect(0, 0, 595, 842)
CLICK = ScreenPoint(100, 600)


@pytest.fixture
def errors(controller):
    seen = []
    controller.error_occurred.connect(seen.append)
    return seen


def test_starts_empty_and_ignores_actions(controller):
    assert controller.state == Empty()
    controller.select_tool(Tool.TEXT)
    assert controller.state == Empty()
    assert controller.click_canvas(CLICK, CANVAS) is False
    assert controller.download() is None
    controller.change_page(1)
    assert controller.store.current_page == 1


def test_open_navigate_and_add_text(controller):
    assert controller.upload(make_pdf(3))
    store = controller.store
    assert (store.current_page, store.total_pages) == (1, 3)
    assert controller.state == Loaded()

    controller.change_page(1)
    controller.change_page(1)
    assert store.current_page == 3
    controller.change_page(1)
    assert store.current_page == 3

    controller.select_tool(Tool.TEXT)
    assert controller.state == Placing(Tool.TEXT)
    controller.prompt_text = lambda: "Hello"
    assert controller.click_canvas(CLICK, CANVAS)

    assert controller.state == Loaded()
    assert store.total_pages == 3
    texts = page_texts(store.buffer)
    assert "Hello" in texts[2]
    assert "Hello" not in texts[0]
    assert controller.displayed_ticket.page_number == 3
    assert controller.displayed_ticket.generation == store.generation


@pytest.mark.parametrize("answer", [None, ""])
def test_cancelled_text_prompt_keeps_tool_armed(controller, answer):
    controller.upload(make_pdf(1))
    controller.select_tool(Tool.TEXT)
    generation = controller.store.generation
    controller.prompt_text = lambda: answer

    assert controller.click_canvas(CLICK, CANVAS) is False
    assert controller.state == Placing(Tool.TEXT)
    assert controller.store.generation == generation


def test_click_without_armed_tool_does_not_prompt(controller):
    controller.upload(make_pdf(1))
    asked = []
    controller.prompt_text = lambda: asked.append(1) or "x"
    assert controller.click_canvas(CLICK, CANVAS) is False
    assert asked == []


def test_tool_toggling(controller):
    controller.upload(make_pdf(1))
    controller.select_tool(Tool.TEXT)
    controller.select_tool(Tool.IMAGE)
    assert controller.state == Placing(Tool.IMAGE)
    controller.select_tool(Tool.IMAGE)
    assert controller.state == Loaded()


def test_add_image_from_picker(controller, png_bytes):
    controller.upload(make_pdf(2))
    controller.select_tool(Tool.IMAGE)
    controller.pick_image = lambda: PickedImage(png_bytes, "image/png")

    assert controller.click_canvas(CLICK, CANVAS)
    assert controller.state == Loaded()
    doc = fitz.open(stream=controller.store.buffer, filetype="pdf")
    assert len(doc[0].get_images()) == 1
    assert doc.page_count == 2
    doc.close()


def test_image_picker_cancel_and_unsupported_type(controller, errors, png_bytes):
    controller.upload(make_pdf(1))
    controller.select_tool(Tool.IMAGE)
    before = controller.store.buffer

    controller.pick_image = lambda: None
    assert controller.click_canvas(CLICK, CANVAS) is False
    controller.pick_image = lambda: PickedImage(png_bytes, "image/gif")
    assert controller.click_canvas(CLICK, CANVAS) is False

    assert controller.state == Placing(Tool.IMAGE)
    assert controller.store.buffer is before
    assert len(errors) == 1


def test_degenerate_canvas_leaves_document_unchanged(controller, errors):
    controller.upload(make_pdf(1))
    before = controller.store.buffer
    controller.select_tool(Tool.TEXT)
    controller.prompt_text = lambda: "Hello"

    assert controller.click_canvas(CLICK, CanvasRect(0, 0, 0, 0)) is False
    assert controller.store.buffer is before
    assert errors and "Adding text failed" in errors[0]


def test_invalid_upload_keeps_previous_document(controller, errors):
    controller.upload(make_pdf(2))
    before = controller.store.buffer

    assert controller.upload(b"not a pdf") is False
    assert controller.store.buffer is before
    assert controller.store.total_pages == 2
    assert controller.state == Loaded()
    assert len(errors) == 1


def test_open_file_requires_pdf_extension(controller, errors, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(make_pdf(1))
    assert controller.open_file(path) is False
    assert controller.state == Empty()

    pdf = tmp_path / "doc.PDF"
    pdf.write_bytes(make_pdf(2))
    assert controller.open_file(pdf)
    assert controller.store.total_pages == 2


def test_merge_resets_page_and_counts_pages(controller, tmp_path):
    controller.upload(make_pdf(3))
    controller.change_page(2)

    a = tmp_path / "a.pdf"
    a.write_bytes(make_pdf(2, "a"))
    assert controller.merge_files([a, make_pdf(4, "b")])

    store = controller.store
    assert (store.current_page, store.total_pages) == (1, 6)
    texts = page_texts(store.buffer)
    assert "a-1" in texts[1] and "b-0" in texts[2]


def test_merge_failure_and_empty_selection(controller, errors, tmp_path):
    controller.upload(make_pdf(1))
    before = controller.store.buffer

    assert controller.merge_files([]) is False
    assert controller.merge_files([make_pdf(1), b"garbage"]) is False
    assert controller.merge_files([tmp_path / "missing.pdf"]) is False
    assert controller.store.buffer is before
    assert len(errors) == 2


def test_split_does_not_touch_store(controller):
    controller.upload(make_pdf(4))
    generation = controller.store.generation
    parts = controller.split([PageRange(0, 0), PageRange(1, 3)])
    assert [page_count(p) for p in parts] == [1, 3]
    assert controller.store.generation == generation


def test_download_artifact(controller):
    controller.upload(make_pdf(1))
    artifact = controller.download()
    assert artifact.filename == "edited.pdf"
    assert artifact.media_type == "application/pdf"
    assert artifact.data == controller.store.buffer


def test_zoom_is_clamped_and_rerenders(controller):
    controller.upload(make_pdf(1, width=100, height=100))
    zooms = []
    controller.zoom_changed.connect(zooms.append)

    controller.change_zoom(5)
    assert controller.scale == 2.0
    assert controller.displayed.width == 200
    controller.change_zoom(0.01)
    controller.change_zoom(1.23)
    assert zooms == [2.0, 0.5, 1.2]
    assert controller.displayed_ticket.scale == 1.2


def test_close_discards_document(controller):
    controller.upload(make_pdf(1))
    controller.close()
    assert controller.state == Empty()
    assert controller.store.buffer is None
    assert controller.displayed is None


# ── Stale background results ──────────────────

def test_stale_render_is_never_displayed(qapp, deferred_pool):
    ctrl = EditorController(settings=EditorSettings(), thread_pool=deferred_pool)
    ctrl.upload(make_pdf(1))
    first_batch = deferred_pool.take()

    ctrl.select_tool(Tool.TEXT)
    ctrl.prompt_text = lambda: "Second"
    ctrl.click_canvas(CLICK, CANVAS)
    second_batch = deferred_pool.take()

    shown = []
    ctrl.page_rendered.connect(shown.append)
    for worker in second_batch + first_batch:
        worker.run()

    assert len(shown) == 1
    assert ctrl.displayed is shown[0]
    assert ctrl.displayed_ticket.generation == ctrl.store.generation


def test_stale_page_count_is_dropped(qapp, deferred_pool):
    ctrl = EditorController(settings=EditorSettings(), thread_pool=deferred_pool)
    ctrl.upload(make_pdf(3))
    stale = deferred_pool.take()

    ctrl.merge_files([make_pdf(2), make_pdf(4)])
    current = deferred_pool.take()
    for worker in current + stale:
        worker.run()

    assert ctrl.store.total_pages == 6
    assert ctrl.store.page_count_error is None


def test_password_protected_upload_is_rejected(controller, errors):
    original = make_pdf(2)
    controller.upload(original)
    locked = make_encrypted_pdf()

    assert controller.upload(locked) is False
    assert controller.merge_files([make_pdf(1), locked]) is False
    assert controller.store.buffer == original
    assert len(errors) == 2


def test_merge_sets_total_pages_before_background_count(qapp, deferred_pool):
    ctrl = EditorController(settings=EditorSettings(), thread_pool=deferred_pool)
    ctrl.upload(make_pdf(3))
    ctrl.change_page(2)
    deferred_pool.take()

    assert ctrl.merge_files([make_pdf(2), make_pdf(4)])
    assert (ctrl.store.current_page, ctrl.store.total_pages) == (1, 6)


def test_merge_rejects_non_pdf_paths(controller, errors, tmp_path):
    disguised = tmp_path / "a.txt"
    disguised.write_bytes(make_pdf(1))

    assert controller.merge_files([disguised]) is False
    assert controller.store.buffer is None
    assert "a.txt" in errors[0]


def _worker(batch, kind):
    return next(w for w in batch if isinstance(w, kind))


def test_page_count_failure_is_reported(qapp, deferred_pool):
    ctrl = EditorController(settings=EditorSettings(), thread_pool=deferred_pool)
    seen = []
    ctrl.error_occurred.connect(seen.append)
    ctrl.upload(make_pdf(3))
    stale = _worker(deferred_pool.take(), PageCountWorker)
    ctrl.upload(make_pdf(2))
    current = _worker(deferred_pool.take(), PageCountWorker)

    stale.signals.failed.emit(stale.generation, "old")
    assert ctrl.store.page_count_error is None
    assert seen == []

    current.signals.failed.emit(current.generation, "boom")
    assert ctrl.store.page_count_error == "boom"
    assert ctrl.store.total_pages == 2
    assert seen == ["Failed to get PDF page count: boom"]


def test_render_failure_is_reported(qapp, deferred_pool):
    ctrl = EditorController(settings=EditorSettings(), thread_pool=deferred_pool)
    seen = []
    ctrl.error_occurred.connect(seen.append)
    ctrl.upload(make_pdf(3))
    stale = _worker(deferred_pool.take(), RenderWorker)
    ctrl.change_page(1)
    current = _worker(deferred_pool.take(), RenderWorker)

    stale.signals.failed.emit(stale.ticket, "old")
    assert seen == []

    current.signals.failed.emit(current.ticket, "boom")
    assert seen == ["Rendering page 2 failed: boom"]
    assert ctrl.displayed is None
