"""Central, testable coordinate transformation utilities.

Single source of truth for data/device coordinate conversions.
All functions are toolkit-free and fully testable.

Conventions
-----------
- Rectangles: (x, y, width, height) in integer pixel units, where (x, y) is
  the first column/row covered.
- Data coords: (x, y) = (col, row); pixel centers sit on integers, so a
  rectangle covers [x - 0.5, x + width - 0.5) horizontally.
- Device coords: (x, y) canvas pixels, origin top-left, y pointing down.
"""

from __future__ import annotations

import math
from typing import Tuple

__all__ = [
    "Rect",
    "device_to_data",
    "data_to_device",
    "data_length_to_device",
    "clip_rect",
    "rect_contains",
    "rect_from_corners",
]

Rect = Tuple[int, int, int, int]


def device_to_data(
    x_dev: float, y_dev: float, canvas_wh: Tuple[float, float], rect: Rect
) -> Tuple[float, float]:
    """Convert canvas pixel coordinates to data coordinates.

    Parameters
    ----------
    x_dev, y_dev : float
        Position on the canvas in device pixels.
    canvas_wh : tuple[float, float]
        Canvas (width, height) in device pixels.
    rect : tuple[int, int, int, int]
        Data rectangle currently mapped onto the whole canvas.

    Returns
    -------
    x, y : tuple[float, float]
        Coordinates in data space.
    """
    x0, y0, w, h = rect
    cw, ch = canvas_wh
    x = (x0 - 0.5) + x_dev * w / cw
    y = (y0 - 0.5) + y_dev * h / ch
    return x, y


def data_to_device(
    x: float, y: float, canvas_wh: Tuple[float, float], rect: Rect
) -> Tuple[float, float]:
    """Convert data coordinates to canvas pixel coordinates (inverse of ``device_to_data``)."""
    x0, y0, w, h = rect
    cw, ch = canvas_wh
    x_dev = (x - x0 + 0.5) * cw / w
    y_dev = (y - y0 + 0.5) * ch / h
    return x_dev, y_dev


def data_length_to_device(
    length: float, canvas_wh: Tuple[float, float], rect: Rect, axis: str = "x"
) -> float:
    """Scale a data-space length along ``axis`` to device pixels."""
    _, _, w, h = rect
    cw, ch = canvas_wh
    if axis == "y":
        return length * ch / h
    return length * cw / w


def clip_rect(rect: Rect, bounds: Rect) -> Rect:
    """Intersect ``rect`` with ``bounds``, keeping at least one pixel.

    When the intersection is empty the result is the 1x1 rectangle of
    ``bounds`` nearest to ``rect``.
    """
    x, y, w, h = rect
    bx, by, bw, bh = bounds
    x_lo = min(max(x, bx), bx + bw - 1)
    y_lo = min(max(y, by), by + bh - 1)
    x_hi = min(x + w, bx + bw)
    y_hi = min(y + h, by + bh)
    return x_lo, y_lo, max(1, x_hi - x_lo), max(1, y_hi - y_lo)


def rect_contains(outer: Rect, inner: Rect) -> bool:
    """Return True when ``inner`` lies entirely within ``outer``."""
    ox, oy, ow, oh = outer
    ix, iy, iw, ih = inner
    return ix >= ox and iy >= oy and ix + iw <= ox + ow and iy + ih <= oy + oh


def rect_from_corners(x0: float, y0: float, x1: float, y1: float) -> Rect:
    """Return the pixel rectangle whose centers lie between two data points.

    Width or height may be zero or negative when no pixel center is enclosed.
    """
    left, right = sorted((x0, x1))
    top, bottom = sorted((y0, y1))
    col0, col1 = math.ceil(left), math.floor(right)
    row0, row1 = math.ceil(top), math.floor(bottom)
    return col0, row0, col1 - col0 + 1, row1 - row0 + 1
