"""Mouse bindings for zooming and panning.

Each binding converts canvas events into a pure zoom transform and sets the
zoom cell; redrawing follows from the reactive graph.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from imageview.canvas import MouseEvent
from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.coordinate_transforms import rect_from_corners
from imageview.signals import Cell
from imageview.zoom import pan, pan_by, reset, set_view, zoom

__all__ = [
    "Interaction",
    "init_zoom_scroll",
    "init_pan_scroll",
    "init_pan_drag",
    "init_zoom_rubberband",
]


class Interaction:
    """Handle for a set of canvas subscriptions."""

    def __init__(self, canvas, cids: List[int], name: str = "") -> None:
        self.canvas = canvas
        self.name = name
        self._cids = list(cids)

    @property
    def connected(self) -> bool:
        return bool(self._cids)

    def disconnect(self) -> None:
        for cid in self._cids:
            self.canvas.disconnect(cid)
        self._cids = []

    dispose = disconnect


def init_zoom_scroll(canvas, zoom_cell: Cell, config: ViewerConfig = DEFAULT_CONFIG) -> Interaction:
    """Ctrl+scroll zooms around the pointer; scrolling up zooms in."""

    def _on_scroll(ev: MouseEvent) -> None:
        if not ev.ctrl or ev.step == 0 or ev.x is None:
            return
        factor = config.zoom_scroll_factor ** (-math.copysign(1.0, ev.step))
        zoom(zoom_cell, factor, anchor=(ev.x, ev.y))

    return Interaction(canvas, [canvas.connect("scroll", _on_scroll)], name="zoom_scroll")


def init_pan_scroll(canvas, zoom_cell: Cell, config: ViewerConfig = DEFAULT_CONFIG) -> Interaction:
    """Scroll pans vertically, shift+scroll horizontally."""

    def _on_scroll(ev: MouseEvent) -> None:
        if ev.ctrl or ev.step == 0:
            return
        _, _, w, h = zoom_cell.value.currentview
        direction = -math.copysign(1.0, ev.step)
        if ev.shift:
            pan(zoom_cell, direction * max(1, round(config.pan_scroll_fraction * w)), 0)
        else:
            pan(zoom_cell, 0, direction * max(1, round(config.pan_scroll_fraction * h)))

    return Interaction(canvas, [canvas.connect("scroll", _on_scroll)], name="pan_scroll")


def init_pan_drag(canvas, zoom_cell: Cell) -> Interaction:
    """Dragging with the left button (no modifiers) moves the view with the pointer."""
    drag: Dict[str, Any] = {}

    def _on_press(ev: MouseEvent) -> None:
        if ev.button != 1 or ev.modifiers or ev.dblclick:
            return
        drag.update(xdev=ev.xdev, ydev=ev.ydev, zr=zoom_cell.value)

    def _on_motion(ev: MouseEvent) -> None:
        if not drag:
            return
        start = drag["zr"]
        _, _, w, h = start.currentview
        dx = (drag["xdev"] - ev.xdev) * w / canvas.width
        dy = (drag["ydev"] - ev.ydev) * h / canvas.height
        new = pan_by(start, dx, dy)
        if new != zoom_cell.value:
            zoom_cell.set(new)

    def _on_release(ev: MouseEvent) -> None:
        drag.clear()

    cids = [
        canvas.connect("press", _on_press),
        canvas.connect("motion", _on_motion),
        canvas.connect("release", _on_release),
    ]
    return Interaction(canvas, cids, name="pan_drag")


def init_zoom_rubberband(canvas, zoom_cell: Cell, config: ViewerConfig = DEFAULT_CONFIG) -> Interaction:
    """Ctrl+drag selects a new view; ctrl+double-click resets to the full view."""
    band: Dict[str, Optional[float]] = {}

    def _on_press(ev: MouseEvent) -> None:
        if ev.button != 1 or not ev.ctrl or ev.x is None:
            return
        if ev.dblclick:
            band.clear()
            reset(zoom_cell)
            return
        band.update(x=ev.x, y=ev.y, xdev=ev.xdev, ydev=ev.ydev)

    def _on_release(ev: MouseEvent) -> None:
        if not band or ev.x is None:
            band.clear()
            return
        start = dict(band)
        band.clear()
        if (
            abs(ev.xdev - start["xdev"]) < config.rubberband_min_px
            or abs(ev.ydev - start["ydev"]) < config.rubberband_min_px
        ):
            return
        rect = rect_from_corners(start["x"], start["y"], ev.x, ev.y)
        if rect[2] < 1 or rect[3] < 1:
            return
        set_view(zoom_cell, rect)

    cids = [canvas.connect("press", _on_press), canvas.connect("release", _on_release)]
    return Interaction(canvas, cids, name="zoom_rubberband")
