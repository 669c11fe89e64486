"""Reduce an N-D image to the 2D plane on display.

Two axes of the image are designated as the display plane (rows, columns);
every other spatial axis is fixed at the index held by its own cell in
``SliceData``. Slices are numpy views: cropping to the zoom rectangle,
fixing indices and transposing never copy sample data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np

from imageview.contrast import SampleKind, validate_stage
from imageview.signals import Cell, Scope, derive
from imageview.zoom import ZoomRegion

__all__ = [
    "SliceData",
    "as_2d",
    "roi",
    "slice2d",
    "slice_cell",
    "sliceinds",
    "flip_view",
    "pixel_value",
]


@dataclass
class SliceData:
    """Index state for the non-display axes of an image.

    ``axes`` lists the sliced array axes in order, ``signals`` holds one
    ``Cell[int]`` per sliced axis and ``sizes`` their lengths.
    ``display_axes`` are the (row, column) axes; when the row axis comes
    after the column axis in the array, ``transpose`` is True.
    """

    axes: Tuple[int, ...]
    sizes: Tuple[int, ...]
    signals: Tuple[Cell, ...]
    transpose: bool = False
    names: Tuple[str, ...] = ()
    display_axes: Tuple[int, int] = (0, 1)

    def __len__(self) -> int:
        return len(self.signals)

    def indices(self) -> Tuple[int, ...]:
        return tuple(int(sig.value) for sig in self.signals)

    def padded_indices(self, n: int = 2) -> Tuple[int, ...]:
        """Current indices padded with zeros (or truncated) to length ``n``."""
        idx = self.indices()[:n]
        return idx + (0,) * (n - len(idx))

    def compatible(self, other: "SliceData") -> bool:
        return (
            self.axes == other.axes
            and self.sizes == other.sizes
            and self.display_axes == other.display_axes
        )


def as_2d(img: Any, kind: SampleKind = SampleKind.SCALAR) -> np.ndarray:
    """View 1-D data as a single column; other arrays are returned as-is."""
    arr = np.asarray(img)
    if kind.spatial_ndim(arr) == 1:
        return np.expand_dims(arr, 1)
    return arr


def _check_axes(axes: Sequence[int], ndim: int) -> Tuple[int, int]:
    if len(axes) != 2:
        raise ValueError(f"Exactly two display axes are required, got {tuple(axes)}")
    row_axis, col_axis = (int(a) for a in axes)
    for ax in (row_axis, col_axis):
        if not 0 <= ax < ndim:
            raise ValueError(f"Display axis {ax} out of range for a {ndim}-D image")
    if row_axis == col_axis:
        raise ValueError(f"Display axes must differ, got {tuple(axes)}")
    return row_axis, col_axis


def roi(
    img: Any,
    axes: Sequence[int] = (0, 1),
    kind: SampleKind = SampleKind.SCALAR,
    names: Optional[Sequence[str]] = None,
) -> Tuple[Cell, SliceData]:
    """Create the zoom cell and slice state for viewing ``img``.

    Parameters
    ----------
    img : array_like
        Image data; color kinds carry channels on the trailing axis.
    axes : tuple[int, int]
        Array axes shown as rows and columns.
    kind : SampleKind
        Sample layout of ``img``.
    names : sequence of str, optional
        Labels for the sliced axes (used by the players).

    Returns
    -------
    zoom : Cell[ZoomRegion]
        Covers the full display plane initially.
    slicedata : SliceData
        One index cell per remaining axis, all starting at 0.
    """
    arr = as_2d(img, kind)
    ndim = kind.spatial_ndim(arr)
    if ndim < 1:
        raise ValueError("Cannot display a 0-dimensional image")
    row_axis, col_axis = _check_axes(axes, ndim)
    extra = tuple(d for d in range(ndim) if d not in (row_axis, col_axis))
    if names is None:
        names = tuple(f"axis {d}" for d in extra)
    elif len(names) != len(extra):
        raise ValueError(f"Expected {len(extra)} axis names, got {len(names)}")
    signals = tuple(Cell(0, name=name) for name in names)
    sd = SliceData(
        axes=extra,
        sizes=tuple(int(arr.shape[d]) for d in extra),
        signals=signals,
        transpose=row_axis > col_axis,
        names=tuple(names),
        display_axes=(row_axis, col_axis),
    )
    zoom = Cell(ZoomRegion.from_shape((arr.shape[row_axis], arr.shape[col_axis])), name="zoom")
    return zoom, sd


def slice2d(
    img: Any,
    zr: ZoomRegion,
    sd: SliceData,
    kind: SampleKind = SampleKind.SCALAR,
    indices: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """Return the visible part of the current plane as a view of ``img``."""
    arr = as_2d(img, kind)
    if indices is None:
        indices = sd.indices()
    index: list = [slice(None)] * arr.ndim
    rows, cols = zr.view_slices()
    index[sd.display_axes[0]] = rows
    index[sd.display_axes[1]] = cols
    for ax, i in zip(sd.axes, indices):
        index[ax] = int(i)
    out = arr[tuple(index)]
    if sd.transpose:
        out = out.swapaxes(0, 1)
    return out


def slice_cell(
    img: Any,
    zoom_cell: Cell,
    sd: SliceData,
    kind: SampleKind = SampleKind.SCALAR,
    scalei: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    scope: Optional[Scope] = None,
) -> Cell:
    """Cell holding the visible slice, updated on zoom or index changes.

    ``scalei`` optionally maps the slice elementwise before contrast (for
    example ``np.abs``). Every new value is checked for a renderable dtype.
    """

    def _slice(zr, *indices):
        out = slice2d(img, zr, sd, kind, indices)
        if scalei is not None:
            out = np.asarray(scalei(out))
        validate_stage(out, "creating slice")
        return out

    build = scope.derive if scope is not None else derive
    return build(_slice, zoom_cell, *sd.signals, name="slice")


def sliceinds(
    shape: Sequence[int], point: Tuple[int, int], sd: SliceData, indices: Optional[Sequence[int]] = None
) -> Tuple[int, ...]:
    """Full spatial index tuple of display pixel ``point = (row, col)``."""
    row, col = point
    if len(shape) == 1:
        return (int(row),)
    if indices is None:
        indices = sd.indices()
    index = [0] * len(shape)
    index[sd.display_axes[0]] = int(row)
    index[sd.display_axes[1]] = int(col)
    for ax, i in zip(sd.axes, indices):
        index[ax] = int(i)
    return tuple(index)


def flip_view(img: Any, axes: Sequence[int] = (0, 1), flipx: bool = False, flipy: bool = False) -> np.ndarray:
    """Reverse the row axis (``flipy``) and/or column axis (``flipx``) as a view."""
    arr = np.asarray(img)
    row_axis, col_axis = axes
    if flipy and row_axis < arr.ndim:
        arr = np.flip(arr, axis=row_axis)
    if flipx and col_axis < arr.ndim:
        arr = np.flip(arr, axis=col_axis)
    return arr


def pixel_value(
    img: Any, x: float, y: float, sd: SliceData, kind: SampleKind = SampleKind.SCALAR
) -> Optional[Tuple[Tuple[int, ...], Any]]:
    """Return ``(index, value)`` at data point ``(x, y)``, or None outside the image."""
    arr = as_2d(img, kind)
    row, col = int(round(y)), int(round(x))
    nrows = arr.shape[sd.display_axes[0]]
    ncols = arr.shape[sd.display_axes[1]]
    if not (0 <= row < nrows and 0 <= col < ncols):
        return None
    ndim = np.ndim(img) - (1 if kind.has_channels else 0)
    index = sliceinds(np.shape(img)[:ndim], (row, col), sd)
    value = arr[sliceinds(arr.shape[: kind.spatial_ndim(arr)], (row, col), sd)]
    return index, value
