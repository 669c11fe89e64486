"""Overlay annotations drawn on top of the displayed image.

Annotations store their geometry in data coordinates and are converted to
device coordinates when drawn, using the rectangle currently on screen.
They are kept in an insertion-ordered registry backed by a cell, so adding
or removing one triggers a redraw through the reactive graph.

Conventions
-----------
- ``z`` and ``t`` are compared to the first and second slice index;
  ``None`` means the annotation is shown on every slice.
- ``valid`` optionally restricts visibility further with a predicate over
  the full slice index tuple (see ``at_slice``).
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from imageview.coordinate_transforms import Rect, data_length_to_device, data_to_device
from imageview.signals import Cell

__all__ = [
    "AnnotationStyle",
    "Annotation",
    "AnnotationText",
    "AnnotationPoint",
    "AnnotationPoints",
    "AnnotationLine",
    "AnnotationLines",
    "AnnotationBox",
    "AnnotationRegistry",
    "at_slice",
    "draw_annotations",
    "scalebar_annotation",
]

SlicePredicate = Callable[[Tuple[int, ...]], bool]


@dataclass(frozen=True)
class AnnotationStyle:
    """Drawing style shared by all annotation kinds.

    ``size`` is the marker size in device pixels (or data pixels for scaled
    points); ``linecolor`` defaults to ``color``.
    """

    color: str = "white"
    linecolor: Optional[str] = None
    linewidth: float = 1.0
    size: float = 5.0
    fontsize: float = 10.0
    fill: bool = False

    @property
    def edgecolor(self) -> str:
        return self.linecolor or self.color


def at_slice(*indices: Optional[int]) -> SlicePredicate:
    """Predicate true when the slice indices match; ``None`` matches anything."""
    wanted = tuple(indices)

    def _matches(current: Tuple[int, ...]) -> bool:
        current = tuple(current)
        if len(current) < len(wanted):
            return False
        return all(w is None or int(w) == int(c) for w, c in zip(wanted, current))

    return _matches


@dataclass
class Annotation:
    """Base class; subclasses implement ``draw``."""

    style: AnnotationStyle = field(default_factory=AnnotationStyle, kw_only=True)
    z: Optional[int] = field(default=None, kw_only=True)
    t: Optional[int] = field(default=None, kw_only=True)
    valid: Optional[SlicePredicate] = field(default=None, kw_only=True, repr=False)

    def is_valid(self, indices: Sequence[int]) -> bool:
        """Return True when the annotation applies to the slice ``indices``."""
        indices = tuple(int(i) for i in indices)
        padded = indices[:2] + (0,) * (2 - len(indices[:2]))
        if self.z is not None and self.z != padded[0]:
            return False
        if self.t is not None and self.t != padded[1]:
            return False
        if self.valid is not None and not self.valid(indices):
            return False
        return True

    def draw(self, canvas, rect: Rect) -> None:
        raise NotImplementedError


def _to_device(canvas, rect: Rect, x: float, y: float) -> Tuple[float, float]:
    return data_to_device(x, y, (canvas.width, canvas.height), rect)


@dataclass
class AnnotationText(Annotation):
    x: float
    y: float
    text: str
    angle: float = 0.0
    halign: str = "center"
    valign: str = "center"

    def draw(self, canvas, rect: Rect) -> None:
        xd, yd = _to_device(canvas, rect, self.x, self.y)
        canvas.draw_text(
            xd,
            yd,
            self.text,
            color=self.style.color,
            fontsize=self.style.fontsize,
            angle=self.angle,
            halign=self.halign,
            valign=self.valign,
        )


def _marker_size(canvas, rect: Rect, style: AnnotationStyle, scale: bool) -> float:
    if not scale:
        return style.size
    return data_length_to_device(style.size, (canvas.width, canvas.height), rect, axis="x")


@dataclass
class AnnotationPoint(Annotation):
    """Single marker; with ``scale`` its size follows the zoom level."""

    x: float
    y: float
    shape: str = "o"
    scale: bool = False

    def draw(self, canvas, rect: Rect) -> None:
        xd, yd = _to_device(canvas, rect, self.x, self.y)
        canvas.draw_points(
            [xd],
            [yd],
            shape=self.shape,
            size=_marker_size(canvas, rect, self.style, self.scale),
            color=self.style.color,
            linecolor=self.style.edgecolor,
            linewidth=self.style.linewidth,
            fill=self.style.fill,
        )


@dataclass
class AnnotationPoints(Annotation):
    """Several markers sharing one style; ``xys`` is an (N, 2) array of (x, y)."""

    xys: Sequence[Sequence[float]]
    shape: str = "o"
    scale: bool = False

    def __post_init__(self) -> None:
        self.xys = np.asarray(self.xys, dtype=float).reshape(-1, 2)

    def draw(self, canvas, rect: Rect) -> None:
        if len(self.xys) == 0:
            return
        pts = [_to_device(canvas, rect, x, y) for x, y in self.xys]
        canvas.draw_points(
            [p[0] for p in pts],
            [p[1] for p in pts],
            shape=self.shape,
            size=_marker_size(canvas, rect, self.style, self.scale),
            color=self.style.color,
            linecolor=self.style.edgecolor,
            linewidth=self.style.linewidth,
            fill=self.style.fill,
        )


@dataclass
class AnnotationLine(Annotation):
    x1: float
    y1: float
    x2: float
    y2: float

    def draw(self, canvas, rect: Rect) -> None:
        p1 = _to_device(canvas, rect, self.x1, self.y1)
        p2 = _to_device(canvas, rect, self.x2, self.y2)
        canvas.draw_segments([(p1, p2)], color=self.style.edgecolor, linewidth=self.style.linewidth)


@dataclass
class AnnotationLines(Annotation):
    """Independent segments, each ``(x1, y1, x2, y2)``."""

    lines: Sequence[Sequence[float]]

    def draw(self, canvas, rect: Rect) -> None:
        segments = [
            (_to_device(canvas, rect, x1, y1), _to_device(canvas, rect, x2, y2))
            for x1, y1, x2, y2 in self.lines
        ]
        if segments:
            canvas.draw_segments(segments, color=self.style.edgecolor, linewidth=self.style.linewidth)


@dataclass
class AnnotationBox(Annotation):
    """Axis-aligned box given by its data-space edges."""

    left: float
    top: float
    right: float
    bottom: float

    def draw(self, canvas, rect: Rect) -> None:
        x0, y0 = _to_device(canvas, rect, min(self.left, self.right), min(self.top, self.bottom))
        x1, y1 = _to_device(canvas, rect, max(self.left, self.right), max(self.top, self.bottom))
        canvas.draw_rect(
            x0,
            y0,
            x1 - x0,
            y1 - y0,
            color=self.style.color,
            linecolor=self.style.edgecolor,
            linewidth=self.style.linewidth,
            fill=self.style.fill,
        )


class AnnotationRegistry:
    """Insertion-ordered collection of annotations keyed by integer handles.

    ``cell`` holds a fresh dict after every mutation, so listeners on it
    redraw whenever an annotation is added or removed.
    """

    def __init__(self, annotations: Sequence[Annotation] = ()) -> None:
        self._handles = itertools.count(1)
        self.cell: Cell = Cell({}, name="annotations")
        for ann in annotations:
            self.add(ann)

    def add(self, ann: Annotation) -> int:
        handle = next(self._handles)
        current = dict(self.cell.value)
        current[handle] = ann
        self.cell.set(current)
        return handle

    def remove(self, handle: int) -> Annotation:
        current = dict(self.cell.value)
        ann = current.pop(handle)
        self.cell.set(current)
        return ann

    def clear(self) -> None:
        if self.cell.value:
            self.cell.set({})

    def get(self, handle: int) -> Optional[Annotation]:
        return self.cell.value.get(handle)

    def items(self) -> List[Tuple[int, Annotation]]:
        return list(self.cell.value.items())

    def active(self, indices: Sequence[int]) -> List[Annotation]:
        """Annotations valid at ``indices``, in insertion order."""
        return [ann for ann in self.cell.value.values() if ann.is_valid(indices)]

    def __contains__(self, handle: int) -> bool:
        return handle in self.cell.value

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self.cell.value.values()))

    def __len__(self) -> int:
        return len(self.cell.value)


def draw_annotations(canvas, annotations, indices: Sequence[int], rect: Rect) -> int:
    """Draw every annotation valid at ``indices``; return how many were drawn."""
    if isinstance(annotations, AnnotationRegistry):
        candidates = annotations.active(indices)
    elif isinstance(annotations, dict):
        candidates = [ann for ann in annotations.values() if ann.is_valid(indices)]
    else:
        candidates = [ann for ann in annotations if ann.is_valid(indices)]
    for ann in candidates:
        ann.draw(canvas, rect)
    return len(candidates)


def scalebar_annotation(
    fullview: Rect, length: float, x: float = 0.8, y: float = 0.1, color: str = "white"
) -> AnnotationBox:
    """Filled bar of ``length`` data pixels placed at a fractional position.

    ``x`` is the fraction of the full width where the bar starts, ``y`` the
    fraction of the full height measured from the bottom edge. The bar is
    kept inside the full view.
    """
    fx, fy, fw, fh = fullview
    thickness = max(1, int(round(fh / 50)))
    left = fx - 0.5 + x * fw
    left = max(fx - 0.5, min(left, fx - 0.5 + fw - length))
    bottom = fy - 0.5 + (1.0 - y) * fh
    bottom = max(fy - 0.5 + thickness, min(bottom, fy - 0.5 + fh))
    return AnnotationBox(
        left,
        bottom - thickness,
        left + length,
        bottom,
        style=AnnotationStyle(color=color, fill=True, linewidth=0.0),
    )
