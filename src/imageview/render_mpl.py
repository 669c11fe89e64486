"""Matplotlib implementation of the canvas interface."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import matplotlib
import matplotlib.collections
import matplotlib.colors
import matplotlib.patches
import numpy as np

from imageview.canvas import EVENTS, Canvas, MouseEvent, Segment
from imageview.coordinate_transforms import Rect

__all__ = ["MplCanvas"]

_MPL_EVENTS = {
    "press": "button_press_event",
    "release": "button_release_event",
    "motion": "motion_notify_event",
    "scroll": "scroll_event",
}

_OVERLAY_GID = "imageview-overlay"


class MplCanvas(Canvas):
    """Canvas drawing into a matplotlib Axes.

    The image artist is created on the first blit and updated in place
    afterwards. Overlays are positioned in axes-fraction coordinates so their
    device placement does not depend on the axis limits.
    """

    def __init__(self, ax: matplotlib.axes.Axes, aspect: str = "auto") -> None:
        self.ax = ax
        self.figure = ax.figure
        self.aspect = aspect
        self.image_artist: Optional[matplotlib.image.AxesImage] = None
        self.coordinates: Optional[Rect] = None
        self._overlays: List[matplotlib.artist.Artist] = []
        ax.set_xticks([])
        ax.set_yticks([])
        ax.set_autoscale_on(False)

    @property
    def width(self) -> int:
        return max(1, int(round(self.ax.get_window_extent().width)))

    @property
    def height(self) -> int:
        return max(1, int(round(self.ax.get_window_extent().height)))

    def _pt(self, px: float) -> float:
        return px * 72.0 / self.figure.dpi

    def _frac(self, x: float, y: float) -> Tuple[float, float]:
        return x / self.width, 1.0 - y / self.height

    def blit(self, raster: np.ndarray) -> None:
        self.image_artist = _update_or_create(self.ax, self.image_artist, raster, self.aspect)

    def set_coordinates(self, rect: Rect) -> None:
        super().set_coordinates(rect)
        x0, y0, w, h = rect
        extent = (x0 - 0.5, x0 + w - 0.5, y0 + h - 0.5, y0 - 0.5)
        if self.image_artist is not None:
            self.image_artist.set_extent(extent)
        self.ax.set_xlim(extent[0], extent[1])
        self.ax.set_ylim(extent[2], extent[3])

    def _keep(self, artist: matplotlib.artist.Artist) -> None:
        artist.set_gid(_OVERLAY_GID)
        self._overlays.append(artist)

    def clear_overlays(self) -> None:
        for artist in self._overlays:
            artist.remove()
        self._overlays.clear()

    def draw_text(self, x: float, y: float, text: str, **style: Any) -> None:
        fx, fy = self._frac(x, y)
        artist = self.ax.text(
            fx,
            fy,
            text,
            transform=self.ax.transAxes,
            color=matplotlib.colors.to_rgba(style.get("color", "white")),
            fontsize=style.get("fontsize", 10),
            rotation=style.get("angle", 0.0),
            ha=style.get("halign", "center"),
            va=style.get("valign", "center"),
            clip_on=True,
        )
        self._keep(artist)

    def draw_points(self, xs: Sequence[float], ys: Sequence[float], **style: Any) -> None:
        fracs = [self._frac(x, y) for x, y in zip(xs, ys)]
        color = matplotlib.colors.to_rgba(style.get("color", "white"))
        edge = matplotlib.colors.to_rgba(style.get("linecolor") or style.get("color", "white"))
        (artist,) = self.ax.plot(
            [f[0] for f in fracs],
            [f[1] for f in fracs],
            linestyle="none",
            marker=style.get("shape", "o"),
            markersize=self._pt(style.get("size", 5.0)),
            markerfacecolor=color if style.get("fill", False) else "none",
            markeredgecolor=edge,
            markeredgewidth=self._pt(style.get("linewidth", 1.0)),
            transform=self.ax.transAxes,
            clip_on=True,
        )
        self._keep(artist)

    def draw_segments(self, segments: Sequence[Segment], **style: Any) -> None:
        lines = [[self._frac(*p1), self._frac(*p2)] for p1, p2 in segments]
        artist = matplotlib.collections.LineCollection(
            lines,
            colors=[matplotlib.colors.to_rgba(style.get("color", "white"))],
            linewidths=self._pt(style.get("linewidth", 1.0)),
            transform=self.ax.transAxes,
        )
        self.ax.add_collection(artist, autolim=False)
        self._keep(artist)

    def draw_rect(self, x: float, y: float, width: float, height: float, **style: Any) -> None:
        fx, fy = self._frac(x, y + height)
        fill = style.get("fill", False)
        artist = matplotlib.patches.Rectangle(
            (fx, fy),
            width / self.width,
            height / self.height,
            transform=self.ax.transAxes,
            facecolor=matplotlib.colors.to_rgba(style.get("color", "white")) if fill else "none",
            edgecolor=matplotlib.colors.to_rgba(style.get("linecolor") or style.get("color", "white")),
            linewidth=self._pt(style.get("linewidth", 1.0)),
        )
        self.ax.add_patch(artist)
        self._keep(artist)

    def flush(self) -> None:
        self.figure.canvas.draw_idle()

    def connect(self, event: str, callback: Callable[[MouseEvent], Any]) -> int:
        if event not in EVENTS:
            raise ValueError(f"Unknown event {event!r}; expected one of {EVENTS}")
        needs_axes = event in ("press", "scroll")

        def _handler(mpl_event) -> None:
            if needs_axes and mpl_event.inaxes is not self.ax:
                return
            converted = self._convert(mpl_event)
            if converted is not None:
                callback(converted)

        return self.figure.canvas.mpl_connect(_MPL_EVENTS[event], _handler)

    def disconnect(self, cid: int) -> None:
        self.figure.canvas.mpl_disconnect(cid)

    def _convert(self, mpl_event) -> Optional[MouseEvent]:
        if mpl_event.x is None or mpl_event.y is None:
            return None
        bbox = self.ax.get_window_extent()
        xdev = mpl_event.x - bbox.x0
        ydev = bbox.y1 - mpl_event.y
        data = self.to_data(xdev, ydev)
        x, y = data if data is not None else (None, None)
        button = mpl_event.button
        if mpl_event.name == "scroll_event" or button is None:
            button = None
        else:
            button = int(button)
        return MouseEvent(
            x=x,
            y=y,
            xdev=xdev,
            ydev=ydev,
            button=button,
            modifiers=_modifiers(mpl_event),
            step=float(getattr(mpl_event, "step", 0.0) or 0.0),
            dblclick=bool(getattr(mpl_event, "dblclick", False)),
            inside=mpl_event.inaxes is self.ax,
        )


def _modifiers(mpl_event) -> frozenset:
    mods = getattr(mpl_event, "modifiers", None)
    names = set()
    if mods:
        names.update(mods)
    key = getattr(mpl_event, "key", None)
    if key:
        names.update(key.split("+"))
    result = set()
    if names & {"ctrl", "control"}:
        result.add("ctrl")
    if "shift" in names:
        result.add("shift")
    if "alt" in names:
        result.add("alt")
    return frozenset(result)


def _update_or_create(
    ax: matplotlib.axes.Axes,
    artist: Optional[matplotlib.image.AxesImage],
    data: np.ndarray,
    aspect: str = "auto",
) -> matplotlib.image.AxesImage:
    if artist is None:
        h, w = data.shape[:2]
        artist = ax.imshow(
            data,
            cmap="gray",
            vmin=0.0,
            vmax=1.0,
            extent=(-0.5, w - 0.5, h - 0.5, -0.5),
            interpolation="nearest",
            aspect=aspect,
        )
    else:
        artist.set_data(data)
    return artist
