"""Configuration dataclass for viewer defaults."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ViewerConfig:
    """Tunable constants used across the display pipeline.

    Notes
    -----
    ``valuespan_checkmax`` bounds the number of samples inspected when
    computing default contrast limits; larger images are randomly
    subsampled. ``restrict_ratio`` controls display downsampling: the raster
    is halved while it exceeds ``restrict_ratio`` times the canvas size in
    both dimensions.
    """

    hist_bins: int = 300
    valuespan_checkmax: int = 10**8
    restrict_ratio: int = 2
    zoom_scroll_factor: float = 2.0
    pan_scroll_fraction: float = 0.1
    rubberband_min_px: int = 2
    screen_size: Tuple[int, int] = (1920, 1080)
    screen_fraction: float = 0.6
    min_canvas_size: int = 100
    dpi: int = 100

    def replace(self, **overrides) -> "ViewerConfig":
        """Return a copy with selected fields replaced."""
        return dataclasses.replace(self, **overrides)


DEFAULT_CONFIG = ViewerConfig()
