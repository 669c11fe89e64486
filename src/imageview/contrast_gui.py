"""Histogram contrast editor opened from the viewer's right-click."""

from __future__ import annotations

from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.widgets import RangeSlider

from imageview.contrast import DEFAULT_CHANNEL_COLORS, ContrastPipeline
from imageview.histogram import Histogram
from imageview.logger import get_logger
from imageview.signals import Scope

__all__ = ["ChannelEditor", "ContrastEditor"]

LOGGER = get_logger(__name__)


class ChannelEditor:
    """Histogram plot plus a range slider for one channel."""

    def __init__(self, pipeline: ContrastPipeline, index: int, hist_ax, slider_ax, color, scope: Scope) -> None:
        self.pipeline = pipeline
        self.index = index
        self.hist_ax = hist_ax
        self._syncing = False
        hist: Histogram = pipeline.histograms[index].value
        clim = pipeline.channel_clims[index].value
        self.stairs = hist_ax.stairs(np.log1p(hist.counts), hist.edges, fill=True, color=color, alpha=0.7)
        hist_ax.set_yticks([])
        hist_ax.set_xlim(hist.edges[0], hist.edges[-1])
        label = f"ch {index}" if pipeline.nchannels > 1 else "clim"
        self.slider = RangeSlider(
            slider_ax,
            label=label,
            valmin=float(hist.edges[0]),
            valmax=float(hist.edges[-1]),
            valinit=(float(clim.min), float(clim.max)),
        )
        self._cid = self.slider.on_changed(self._on_slider)
        scope.listen(self._on_histogram, pipeline.histograms[index])
        scope.listen(self._on_clim, pipeline.channel_clims[index])

    def _on_slider(self, value) -> None:
        if self._syncing:
            return
        lo, hi = value
        self.pipeline.set_channel_clim(self.index, float(lo), float(hi))

    def _set_slider(self, lo: float, hi: float) -> None:
        self._syncing = True
        try:
            # RangeSlider clamps each end against the other's current value
            self.slider.set_val((lo, hi))
            self.slider.set_val((lo, hi))
        finally:
            self._syncing = False

    def _on_clim(self, clim) -> None:
        current = tuple(self.slider.val)
        if current != (float(clim.min), float(clim.max)):
            self._set_slider(float(clim.min), float(clim.max))

    def _on_histogram(self, hist: Histogram) -> None:
        lo, hi = float(hist.edges[0]), float(hist.edges[-1])
        self.stairs.set_data(np.log1p(hist.counts), hist.edges)
        self.hist_ax.set_xlim(lo, hi)
        self.hist_ax.relim()
        self.hist_ax.autoscale_view(scalex=False)
        self.slider.valmin, self.slider.valmax = lo, hi
        self.slider.ax.set_xlim(lo, hi)
        # limits outside the old range were clipped by the slider
        clim = self.pipeline.channel_clims[self.index].value
        self._set_slider(float(clim.min), float(clim.max))
        self.hist_ax.figure.canvas.draw_idle()

    def disconnect(self) -> None:
        if self._cid is not None:
            self.slider.disconnect(self._cid)
            self._cid = None


class ContrastEditor:
    """Figure with one histogram and range slider per channel.

    While the editor is open the pipeline's ``enabled`` cell is True, so the
    histograms follow every slice and limit change; closing the window (or
    calling ``close``) switches them off again.
    """

    def __init__(self, pipeline: ContrastPipeline, name: str = "contrast") -> None:
        if pipeline.clim is None:
            raise ValueError("Contrast editor needs a pipeline with adjustable limits")
        self.pipeline = pipeline
        self.scope = Scope()
        self.is_open = True
        n = pipeline.nchannels
        pipeline.enabled.set(True)
        self.figure = plt.figure(figsize=(5.0, 0.4 + 1.6 * n))
        manager = self.figure.canvas.manager
        if manager is not None:
            manager.set_window_title(name)
        grid = self.figure.add_gridspec(2 * n, 1, height_ratios=[4, 1] * n, hspace=0.3)
        self.channels: List[ChannelEditor] = []
        for i in range(n):
            color = "0.4" if n == 1 else DEFAULT_CHANNEL_COLORS[i % len(DEFAULT_CHANNEL_COLORS)]
            hist_ax = self.figure.add_subplot(grid[2 * i, 0])
            slider_ax = self.figure.add_subplot(grid[2 * i + 1, 0])
            self.channels.append(ChannelEditor(pipeline, i, hist_ax, slider_ax, color, self.scope))
        self._close_cid: Optional[int] = self.figure.canvas.mpl_connect("close_event", self._on_close)
        LOGGER.debug("Opened contrast editor with %d channel(s)", n)

    def _on_close(self, event) -> None:
        self.close()

    def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        self.pipeline.enabled.set(False)
        for channel in self.channels:
            channel.disconnect()
        self.scope.close()
        if self._close_cid is not None:
            self.figure.canvas.mpl_disconnect(self._close_cid)
            self._close_cid = None
        plt.close(self.figure)
