"""Canvas interface the display pipeline draws into.

A canvas can report its size in device pixels, show a raster, map a data
rectangle onto its full area, draw overlay primitives in device units and
deliver mouse events. ``imageview.render_mpl`` provides an Axes-backed
implementation; tests use an in-memory recorder.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from imageview.coordinate_transforms import Rect, data_to_device, device_to_data

__all__ = ["EVENTS", "MouseEvent", "Canvas"]

EVENTS = ("press", "release", "motion", "scroll")

Segment = Tuple[Tuple[float, float], Tuple[float, float]]


@dataclass(frozen=True)
class MouseEvent:
    """Pointer event in both data and device coordinates.

    ``button`` is 1 (left), 2 (middle) or 3 (right) for presses, ``step`` is
    positive for scrolling up, ``modifiers`` holds any of ``"ctrl"``,
    ``"shift"`` and ``"alt"``. ``inside`` is False for motion and release
    events delivered while the pointer is outside the canvas.
    """

    x: float
    y: float
    xdev: float
    ydev: float
    button: Optional[int] = None
    modifiers: FrozenSet[str] = field(default_factory=frozenset)
    step: float = 0.0
    dblclick: bool = False
    inside: bool = True

    @property
    def ctrl(self) -> bool:
        return "ctrl" in self.modifiers

    @property
    def shift(self) -> bool:
        return "shift" in self.modifiers


class Canvas(abc.ABC):
    """Abstract drawing surface; ``coordinates`` is the data rectangle on display."""

    coordinates: Optional[Rect] = None

    @property
    @abc.abstractmethod
    def width(self) -> int:
        """Width in device pixels."""

    @property
    @abc.abstractmethod
    def height(self) -> int:
        """Height in device pixels."""

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @abc.abstractmethod
    def blit(self, raster: np.ndarray) -> None:
        """Show ``raster`` (float32 in [0, 1], 2D gray or (H, W, 3) RGB)."""

    def set_coordinates(self, rect: Rect) -> None:
        """Map data rectangle ``rect`` onto the whole canvas."""
        self.coordinates = tuple(rect)

    @abc.abstractmethod
    def clear_overlays(self) -> None:
        """Remove every overlay drawn since the last blit."""

    @abc.abstractmethod
    def draw_text(self, x: float, y: float, text: str, **style: Any) -> None:
        """Draw text at device position ``(x, y)``."""

    @abc.abstractmethod
    def draw_points(self, xs: Sequence[float], ys: Sequence[float], **style: Any) -> None:
        """Draw markers at device positions."""

    @abc.abstractmethod
    def draw_segments(self, segments: Sequence[Segment], **style: Any) -> None:
        """Draw independent line segments given as device point pairs."""

    @abc.abstractmethod
    def draw_rect(self, x: float, y: float, width: float, height: float, **style: Any) -> None:
        """Draw a rectangle whose top-left device corner is ``(x, y)``."""

    @abc.abstractmethod
    def flush(self) -> None:
        """Push pending drawing to the screen."""

    @abc.abstractmethod
    def connect(self, event: str, callback: Callable[[MouseEvent], Any]) -> int:
        """Subscribe to one of ``EVENTS``; returns an id for ``disconnect``."""

    @abc.abstractmethod
    def disconnect(self, cid: int) -> None:
        """Remove a subscription made with ``connect``."""

    def preserve(self, obj: Any) -> Any:
        """Keep ``obj`` alive for the lifetime of the canvas."""
        kept: List[Any] = self.__dict__.setdefault("_preserved", [])
        kept.append(obj)
        return obj

    def to_data(self, xdev: float, ydev: float) -> Optional[Tuple[float, float]]:
        if self.coordinates is None:
            return None
        return device_to_data(xdev, ydev, self.size, self.coordinates)

    def to_device(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        if self.coordinates is None:
            return None
        return data_to_device(x, y, self.size, self.coordinates)
