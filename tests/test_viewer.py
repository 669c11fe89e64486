"""Tests for the viewer entry points on a headless matplotlib backend."""

import threading

import matplotlib.pyplot as plt
import numpy as np
import pytest
from matplotlib.backend_bases import CloseEvent
from matplotlib.backend_bases import MouseEvent as MplMouseEvent

from imageview.annotations import AnnotationPoint
from imageview.contrast import CLim
from imageview.session import REGISTRY, SessionRegistry, ViewSession, closeall
from imageview.signals import Cell
from imageview.viewer import (annotate, canvas_size, default_canvas_size, imlink, imshow,
                              imshow_canvas, imshow_gui, imshowlabeled, scalebar)
from imageview.zoom import ZoomRegion


def _send(canvas, name, x, y, **kwargs):
    """Deliver a matplotlib event over data point ``(x, y)`` of ``canvas``."""
    xdev, ydev = canvas.to_device(x, y)
    bbox = canvas.ax.get_window_extent()
    event = MplMouseEvent(name, canvas.figure.canvas, bbox.x0 + xdev, bbox.y1 - ydev, **kwargs)
    canvas.figure.canvas.callbacks.process(name, event)
    return event


class TestCanvasSize:
    def test_default_canvas_size(self):
        assert default_canvas_size((20, 30)) == (30, 20)
        assert default_canvas_size((20, 30), 2) == (60, 20)
        assert default_canvas_size((20, 30), 0.5) == (30, 40)

    def test_fits_screen(self):
        assert canvas_size((1000, 800), (2000, 400)) == (1000, 200)

    def test_small_images_grow_to_minimum(self):
        assert canvas_size((1000, 800), (50, 20)) == (250, 100)

    def test_regular_size_kept(self):
        assert canvas_size((1000, 800), (200, 100)) == (200, 100)


class TestImshow:
    def test_basic_session(self):
        img = np.arange(600, dtype=float).reshape(20, 30)
        session = imshow(img)
        assert session in REGISTRY
        assert len(session.canvases) == 1
        assert session.pipeline.clim.value == CLim(0.0, 599.0)
        assert session.zoom.value.fullview == (0, 0, 30, 20)
        assert session.drivers[0].render_count >= 1
        assert session.canvas.image_artist.get_array().shape == (20, 30)
        assert session.players == []

    def test_volume_gets_player(self):
        vol = np.zeros((10, 12, 4))
        session = imshow(vol)
        assert len(session.players) == 1
        renders = session.drivers[0].render_count
        session.players[0].slider.set_val(3)
        assert session.slicedata.indices() == (3,)
        assert session.drivers[0].render_count == renders + 1

    def test_rgb(self):
        img = np.zeros((8, 8, 3), dtype=np.uint8)
        session = imshow(img, kind="rgb")
        assert session.pipeline.nchannels == 3
        assert session.canvas.image_artist.get_array().shape == (8, 8, 3)

    def test_unsupported_type_closes_session(self):
        before = len(REGISTRY)
        with pytest.raises(TypeError, match="creating slice"):
            imshow(np.zeros((4, 4), dtype=complex))
        assert len(REGISTRY) == before

    def test_scalei(self):
        session = imshow(np.full((4, 4), 3 + 4j), scalei=np.abs)
        assert session.pipeline.clim.value == CLim(5.0, 6.0)

    def test_unknown_clim_string(self):
        with pytest.raises(ValueError):
            imshow(np.zeros((4, 4)), clim="bright")

    def test_shared_zoom_must_match(self):
        zoom = Cell(ZoomRegion.from_shape((5, 5)))
        with pytest.raises(ValueError):
            imshow(np.zeros((4, 4)), zoom=zoom)

    def test_shared_zoom_drives_both_views(self):
        first = imshow(np.zeros((10, 10)))
        second = imshow(np.ones((10, 10)), zoom=first.zoom)
        renders = second.drivers[0].render_count
        first.zoom.set(ZoomRegion((0, 0, 10, 10), (0, 0, 5, 5)))
        assert second.drivers[0].render_count == renders + 1
        assert second.canvas.coordinates == (0, 0, 5, 5)

    def test_flip(self):
        img = np.arange(6, dtype=float).reshape(2, 3)
        session = imshow(img, flipx=True)
        np.testing.assert_array_equal(session.image, img[:, ::-1])


class TestMouse:
    def test_hover_reports_value(self):
        img = np.arange(12, dtype=float).reshape(3, 4)
        session = imshow(img)
        _send(session.canvas, "motion_notify_event", 2, 1)
        assert session.status.value == "[1,2] 6"

    def test_hover_reports_label(self):
        img = np.zeros((3, 4))
        session = imshowlabeled(img, np.full((3, 4), 7))
        _send(session.canvas, "motion_notify_event", 0, 0)
        assert session.status.value == "[0,0] 7"

    def test_label_shape_checked(self):
        with pytest.raises(ValueError):
            imshowlabeled(np.zeros((3, 4)), np.zeros((4, 3)))

    def test_ctrl_scroll_zooms(self):
        session = imshow(np.zeros((100, 100)))
        _send(session.canvas, "scroll_event", 49.5, 49.5, step=1, key="control")
        _, _, w, h = session.zoom.value.currentview
        assert (w, h) == (50, 50)

    def test_right_click_opens_contrast_editor(self):
        session = imshow(np.arange(100, dtype=float).reshape(10, 10))
        _send(session.canvas, "button_press_event", 5, 5, button=3)
        assert session.contrast_editor is not None
        assert session.pipeline.enabled.value
        session.close()
        assert not session.pipeline.enabled.value


class TestImlink:
    def test_linked_views(self):
        session = imlink(np.zeros((6, 8)), np.ones((6, 8)), names=["a", "b"])
        assert len(session.canvases) == 2
        assert [c.ax.get_title() for c in session.canvases] == ["a", "b"]
        session.zoom.set(ZoomRegion((0, 0, 8, 6), (2, 2, 3, 3)))
        assert all(c.coordinates == (2, 2, 3, 3) for c in session.canvases)

    def test_hover_reports_hovered_canvas(self):
        img = np.arange(12, dtype=float).reshape(3, 4)
        session = imlink(img, img + 100)
        _send(session.canvases[0], "motion_notify_event", 2, 1)
        assert session.status.value == "[1,2] 6"
        _send(session.canvases[1], "motion_notify_event", 2, 1)
        assert session.status.value == "[1,2] 106"

    def test_contrast_editor_per_image(self):
        img = np.arange(100, dtype=float).reshape(10, 10)
        session = imlink(img, img * 1000)
        _send(session.canvases[0], "button_press_event", 5, 5, button=3)
        _send(session.canvases[1], "button_press_event", 5, 5, button=3)
        editors = session.contrast_editors
        assert editors[0].pipeline is session.pipelines[0]
        assert editors[1].pipeline is session.pipelines[1]
        opened = list(editors.values())
        assert opened[0] is not opened[1]
        session.close()
        assert not any(editor.is_open for editor in opened)
        assert not any(p.enabled.value for p in session.pipelines)

    def test_unused_grid_cells_hidden(self):
        session = imlink(np.zeros((4, 4)), gridsize=(1, 2))
        assert not session.canvases[1].ax.get_visible()

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            imlink(np.zeros((4, 4)), np.zeros((4, 5)))

    def test_requires_images(self):
        with pytest.raises(ValueError):
            imlink()

    def test_grid_too_small(self):
        with pytest.raises(ValueError):
            imlink(np.zeros((4, 4)), np.zeros((4, 4)), gridsize=(1, 1))


class TestAnnotationsInViewer:
    def test_annotate_redraws(self):
        session = imshow(np.zeros((10, 10)))
        renders = session.drivers[0].render_count
        handle = annotate(session, AnnotationPoint(2, 2))
        assert handle in session.annotations
        assert session.drivers[0].render_count == renders + 1
        assert len(session.canvas.ax.lines) == 1

    def test_scalebar(self):
        session = imshow(np.zeros((100, 100)))
        handle = scalebar(session, 10)
        assert session.annotations.get(handle).style.fill
        assert len(session.canvas.ax.patches) == 1

    def test_scalebar_needs_image(self):
        with pytest.raises(ValueError):
            scalebar(imshow_gui(), 10)


class TestImshowCanvas:
    def test_array_uses_native_contrast(self, recording_canvas):
        img = np.array([[0, 255]], dtype=np.uint8)
        imshow_canvas(recording_canvas, img)
        np.testing.assert_allclose(recording_canvas.rasters[-1], [[0, 1]])

    def test_cell_drawn_as_given(self, recording_canvas):
        frames = Cell(np.full((3, 3), 0.25, dtype=np.float32))
        driver = imshow_canvas(recording_canvas, frames)
        frames.set(np.full((3, 3), 0.75, dtype=np.float32))
        assert driver.render_count == 2
        np.testing.assert_allclose(recording_canvas.rasters[-1], 0.75)

    def test_dispose_releases_array_pipeline(self, recording_canvas):
        driver = imshow_canvas(recording_canvas, np.zeros((3, 3)))
        driver.dispose()
        assert driver.scope is None


class TestSessions:
    def test_close_is_idempotent(self):
        session = imshow(np.zeros((4, 4)))
        session.close()
        session.close()
        assert session.closed
        assert session not in REGISTRY

    def test_figure_close_event_closes_session(self):
        session = imshow(np.zeros((4, 4)))
        canvas = session.figure.canvas
        canvas.callbacks.process("close_event", CloseEvent("close_event", canvas))
        assert session.closed

    def test_closeall(self, imageview_caplog):
        sessions = [imshow(np.zeros((4, 4))), imshow(np.zeros((4, 4)))]
        closeall()
        assert len(REGISTRY) == 0
        assert all(s.closed for s in sessions)
        assert plt.get_fignums() == []
        assert "Closed 2 session(s)" in imageview_caplog.text

    def test_registry_closed_from_worker_thread(self):
        registry = SessionRegistry()
        sessions = [ViewSession(name=f"s{i}", registry=registry) for i in range(3)]
        worker = threading.Thread(target=registry.close_all)
        worker.start()
        worker.join()
        assert len(registry) == 0
        assert all(s.closed for s in sessions)

    def test_figureless_session(self):
        session = ViewSession(name="bare")
        assert session.canvas is None
        assert session.open_contrast_editor() is None
        session.close()
        assert len(session.scope) == 0
