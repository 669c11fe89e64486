"""Zoom/pan model: the visible sub-rectangle of a possibly huge image.

``ZoomRegion`` pairs the full addressable extent with the currently visible
rectangle, both in data pixel units. All operations are pure and return a
new region; the ``zoom``/``pan``/``reset``/``set_view`` helpers apply them to
a ``Cell[ZoomRegion]`` so the reactive graph picks up the change.

Invariants
----------
- ``currentview`` always lies within ``fullview``.
- Both extents of either rectangle are at least one pixel.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from imageview.coordinate_transforms import Rect, clip_rect
from imageview.signals import Cell

__all__ = [
    "ZoomRegion",
    "zoom_by",
    "pan_by",
    "reset_to_full",
    "with_view",
    "zoom",
    "pan",
    "reset",
    "set_view",
]


def _as_rect(rect: Sequence[float]) -> Rect:
    x, y, w, h = (int(round(v)) for v in rect)
    return x, y, w, h


@dataclass(frozen=True)
class ZoomRegion:
    """Full extent and visible rectangle, as ``(x, y, width, height)``."""

    fullview: Rect
    currentview: Rect

    def __post_init__(self) -> None:
        fx, fy, fw, fh = _as_rect(self.fullview)
        full = (fx, fy, max(1, fw), max(1, fh))
        object.__setattr__(self, "fullview", full)
        object.__setattr__(self, "currentview", clip_rect(_as_rect(self.currentview), full))

    @classmethod
    def from_shape(cls, shape: Tuple[int, int]) -> "ZoomRegion":
        """Build a region covering an image of ``(nrows, ncols)`` pixels."""
        nrows, ncols = shape
        full = (0, 0, int(ncols), int(nrows))
        return cls(full, full)

    @property
    def center(self) -> Tuple[float, float]:
        """Center of the current view in data coordinates."""
        x, y, w, h = self.currentview
        return x - 0.5 + w / 2.0, y - 0.5 + h / 2.0

    @property
    def is_full(self) -> bool:
        return self.currentview == self.fullview

    def view_slices(self) -> Tuple[slice, slice]:
        """Row and column slices selecting the current view."""
        x, y, w, h = self.currentview
        return slice(y, y + h), slice(x, x + w)


def _shift_into(rect: Rect, bounds: Rect) -> Rect:
    x, y, w, h = rect
    bx, by, bw, bh = bounds
    w, h = min(w, bw), min(h, bh)
    x = min(max(x, bx), bx + bw - w)
    y = min(max(y, by), by + bh - h)
    return x, y, w, h


def zoom_by(zr: ZoomRegion, factor: float, anchor: Optional[Tuple[float, float]] = None) -> ZoomRegion:
    """Scale the current view by ``factor`` around ``anchor``.

    ``factor < 1`` zooms in. The anchor (data coordinates, default: view
    center) keeps its relative position inside the view. Returns ``zr``
    unchanged when the scaled view would be empty.
    """
    if not factor > 0 or math.isinf(factor):
        return zr
    x, y, w, h = zr.currentview
    new_w = int(round(w * factor))
    new_h = int(round(h * factor))
    if new_w < 1 or new_h < 1:
        return zr
    ax, ay = anchor if anchor is not None else zr.center
    rel_x = (ax - (x - 0.5)) / w
    rel_y = (ay - (y - 0.5)) / h
    new_x = int(round(ax + 0.5 - rel_x * new_w))
    new_y = int(round(ay + 0.5 - rel_y * new_h))
    rect = _shift_into((new_x, new_y, new_w, new_h), zr.fullview)
    return ZoomRegion(zr.fullview, rect)


def pan_by(zr: ZoomRegion, dx: float, dy: float) -> ZoomRegion:
    """Translate the current view, stopping at the full-view boundary."""
    x, y, w, h = zr.currentview
    rect = (x + int(round(dx)), y + int(round(dy)), w, h)
    return ZoomRegion(zr.fullview, _shift_into(rect, zr.fullview))


def reset_to_full(zr: ZoomRegion) -> ZoomRegion:
    return ZoomRegion(zr.fullview, zr.fullview)


def with_view(zr: ZoomRegion, rect: Sequence[float]) -> ZoomRegion:
    """Replace the current view, clipped into the full view."""
    return ZoomRegion(zr.fullview, clip_rect(_as_rect(rect), zr.fullview))


def zoom(cell: Cell, factor: float, anchor: Optional[Tuple[float, float]] = None) -> None:
    new = zoom_by(cell.value, factor, anchor)
    if new != cell.value:
        cell.set(new)


def pan(cell: Cell, dx: float, dy: float) -> None:
    new = pan_by(cell.value, dx, dy)
    if new != cell.value:
        cell.set(new)


def reset(cell: Cell) -> None:
    cell.set(reset_to_full(cell.value))


def set_view(cell: Cell, rect: Sequence[float]) -> None:
    cell.set(with_view(cell.value, rect))
