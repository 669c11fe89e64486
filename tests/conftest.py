import logging
import os

import matplotlib
import pytest

# Headless backend for every test that touches matplotlib
os.environ.setdefault("MPLBACKEND", "Agg")
matplotlib.use("Agg", force=True)

import matplotlib.pyplot as plt  # noqa: E402

from imageview.canvas import Canvas, MouseEvent  # noqa: E402
from imageview.logger import set_level  # noqa: E402
from imageview.session import REGISTRY  # noqa: E402


class RecordingCanvas(Canvas):
    """In-memory canvas that records every drawing call."""

    def __init__(self, width=100, height=100):
        self._width = width
        self._height = height
        self.calls = []
        self.rasters = []
        self.overlays = []
        self._handlers = {}
        self._next_cid = 0

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    def blit(self, raster):
        self.calls.append("blit")
        self.rasters.append(raster)

    def set_coordinates(self, rect):
        super().set_coordinates(rect)
        self.calls.append("set_coordinates")

    def clear_overlays(self):
        self.calls.append("clear_overlays")
        self.overlays = []

    def draw_text(self, x, y, text, **style):
        self.calls.append("draw_text")
        self.overlays.append(("text", x, y, text, style))

    def draw_points(self, xs, ys, **style):
        self.calls.append("draw_points")
        self.overlays.append(("points", list(xs), list(ys), style))

    def draw_segments(self, segments, **style):
        self.calls.append("draw_segments")
        self.overlays.append(("segments", list(segments), style))

    def draw_rect(self, x, y, width, height, **style):
        self.calls.append("draw_rect")
        self.overlays.append(("rect", x, y, width, height, style))

    def flush(self):
        self.calls.append("flush")

    def connect(self, event, callback):
        self._next_cid += 1
        self._handlers[self._next_cid] = (event, callback)
        return self._next_cid

    def disconnect(self, cid):
        self._handlers.pop(cid, None)

    @property
    def nhandlers(self):
        return len(self._handlers)

    def emit(self, event, xdev, ydev, button=None, modifiers=(), step=0.0, dblclick=False, inside=True):
        """Deliver a synthetic event at device position ``(xdev, ydev)``."""
        x, y = self.to_data(xdev, ydev) or (None, None)
        ev = MouseEvent(
            x=x,
            y=y,
            xdev=xdev,
            ydev=ydev,
            button=button,
            modifiers=frozenset(modifiers),
            step=step,
            dblclick=dblclick,
            inside=inside,
        )
        for name, callback in list(self._handlers.values()):
            if name == event:
                callback(ev)
        return ev


@pytest.fixture
def recording_canvas():
    return RecordingCanvas()


@pytest.fixture
def imageview_caplog(caplog):
    """caplog that also sees records of the non-propagating ``imageview`` logger."""
    base = logging.getLogger("imageview")
    base.addHandler(caplog.handler)
    caplog.handler.setLevel(logging.DEBUG)
    set_level(logging.DEBUG)
    try:
        yield caplog
    finally:
        set_level(logging.INFO)
        base.removeHandler(caplog.handler)


@pytest.fixture(autouse=True)
def _close_sessions():
    yield
    REGISTRY.close_all()
    plt.close("all")
