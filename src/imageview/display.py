"""Display driver: turns the display-ready cell into canvas drawing.

One listener subscribes to the image, zoom, slice and annotation cells, so
each propagation renders at most once. A render restricts oversized frames,
blits the raster, maps the current view onto the canvas, then draws the
annotations valid at the current slice and flushes.
"""

from __future__ import annotations

import enum
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from imageview.annotations import AnnotationRegistry, draw_annotations
from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.contrast import SampleKind, composite_channels
from imageview.logger import get_logger
from imageview.pyramid import restrict_to_canvas
from imageview.signals import Cell, Listener, Scope
from imageview.slicing import SliceData, pixel_value

__all__ = ["DisplayState", "DisplayDriver", "hoverinfo"]

LOGGER = get_logger(__name__)


class DisplayState(enum.Enum):
    IDLE = "idle"
    RENDERING = "rendering"


class DisplayDriver:
    """Render ``image`` into ``canvas`` whenever any input cell changes.

    Parameters
    ----------
    canvas : Canvas
        Drawing target.
    image : Cell
        Display-ready frames (float32 in [0, 1]).
    zoom : Cell[ZoomRegion], optional
        Supplies the data rectangle shown; without it the whole frame is.
    annotations : AnnotationRegistry, optional
        Overlays drawn after every blit.
    slicedata : SliceData, optional
        Slice indices used to filter annotations.
    scope : Scope, optional
        Released together with the driver.
    kind : SampleKind
        Multichannel frames are composited to RGB before blitting.
    """

    def __init__(
        self,
        canvas,
        image: Cell,
        zoom: Optional[Cell] = None,
        annotations: Optional[AnnotationRegistry] = None,
        slicedata: Optional[SliceData] = None,
        kind: SampleKind = SampleKind.SCALAR,
        channel_colors: Optional[Sequence[Tuple[float, float, float]]] = None,
        config: ViewerConfig = DEFAULT_CONFIG,
        session_id: str = "-",
        scope: Optional[Scope] = None,
    ) -> None:
        self.canvas = canvas
        self.image = image
        self.zoom = zoom
        self.annotations = annotations
        self.slicedata = slicedata
        self.kind = kind
        self.channel_colors = channel_colors
        self.config = config
        self.session_id = session_id
        self.scope = scope
        self.state = DisplayState.IDLE
        self.render_count = 0
        self.levels = 0
        cells: List[Cell] = [image]
        if zoom is not None:
            cells.append(zoom)
        if slicedata is not None:
            cells.extend(slicedata.signals)
        if annotations is not None:
            cells.append(annotations.cell)
        self._listener: Optional[Listener] = Listener(self._on_change, cells)
        self.render()

    def _on_change(self, *_values: Any) -> None:
        self.render()

    def _rect(self, frame: np.ndarray) -> Tuple[int, int, int, int]:
        if self.zoom is not None:
            return self.zoom.value.currentview
        return 0, 0, int(frame.shape[1]), int(frame.shape[0])

    def render(self) -> None:
        """Draw the current frame; requests made while rendering are dropped."""
        if self.state is DisplayState.RENDERING:
            LOGGER.debug("Dropping re-entrant render request", extra={"session": self.session_id})
            return
        self.state = DisplayState.RENDERING
        try:
            frame = np.asarray(self.image.value)
            if self.kind is SampleKind.MULTICHANNEL:
                frame = composite_channels(frame, self.channel_colors)
            rect = self._rect(frame)
            raster, self.levels = restrict_to_canvas(
                frame, self.canvas.width, self.canvas.height, self.config.restrict_ratio
            )
            self.canvas.blit(raster)
            self.canvas.set_coordinates(rect)
            self.canvas.clear_overlays()
            if self.annotations is not None:
                indices = self.slicedata.indices() if self.slicedata is not None else ()
                draw_annotations(self.canvas, self.annotations, indices, rect)
            self.canvas.flush()
            self.render_count += 1
        finally:
            self.state = DisplayState.IDLE

    def dispose(self) -> None:
        """Stop rendering; also closes the scope owning the upstream cells, if any."""
        if self._listener is not None:
            self._listener.disconnect()
            self._listener = None
        if self.scope is not None:
            self.scope.close()
            self.scope = None

    disconnect = dispose


def _format_value(value: Any) -> str:
    arr = np.asarray(value)
    if arr.ndim == 0:
        v = arr.item()
        return f"{v:g}" if isinstance(v, float) else str(v)
    return "(" + ", ".join(_format_value(v) for v in arr) + ")"


def hoverinfo(
    x: float, y: float, img: Any, sd: SliceData, kind: SampleKind = SampleKind.SCALAR
) -> str:
    """Status text for the pixel under data point ``(x, y)``; empty outside the image."""
    if x is None or y is None:
        return ""
    probe = pixel_value(img, x, y, sd, kind)
    if probe is None:
        return ""
    _, value = probe
    return f"[{int(round(y))},{int(round(x))}] {_format_value(value)}"
