"""Intensity histograms backing the contrast editor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from imageview.config import DEFAULT_CONFIG, ViewerConfig
from imageview.contrast import CLim, valuespan
from imageview.signals import Cell, Scope, derive

__all__ = ["Histogram", "compute_histogram", "placeholder_histogram", "histogram_cell"]


@dataclass(frozen=True, eq=False)
class Histogram:
    """Bin ``i`` counts samples in ``(edges[i], edges[i + 1]]``; the first edge is included."""

    edges: np.ndarray
    counts: np.ndarray
    closed: str = "right"

    @property
    def nbins(self) -> int:
        return int(self.counts.size)

    @property
    def centers(self) -> np.ndarray:
        return 0.5 * (self.edges[:-1] + self.edges[1:])

    @property
    def total(self) -> int:
        return int(self.counts.sum())


def compute_histogram(
    values: np.ndarray, clim: CLim, nbins: Optional[int] = None, config: ViewerConfig = DEFAULT_CONFIG
) -> Histogram:
    """Bin ``values`` over the union of their finite span and ``clim``.

    NaN samples are counted as zero; infinite samples fall outside every bin.
    """
    nbins = config.hist_bins if nbins is None else nbins
    data = np.asarray(values, dtype=np.float64).ravel()
    smin, smax = valuespan(data, config=config)
    lo = float(min(smin, clim.min))
    hi = float(max(smax, clim.max))
    edges = np.linspace(lo, hi, nbins + 1)
    data = np.where(np.isnan(data), 0.0, data)
    idx = np.searchsorted(edges, data, side="left") - 1
    idx[data == edges[0]] = 0
    keep = (idx >= 0) & (idx < nbins)
    counts = np.bincount(idx[keep], minlength=nbins)
    return Histogram(edges=edges, counts=counts)


def placeholder_histogram(clim: CLim, size: int) -> Histogram:
    """Single-bin stand-in used until the histogram is first requested."""
    edges = np.linspace(float(clim.min), float(clim.max), 2)
    return Histogram(edges=edges, counts=np.array([int(size)]))


def histogram_cell(
    enabled: Cell,
    image: Cell,
    clim: Cell,
    config: ViewerConfig = DEFAULT_CONFIG,
    scope: Optional[Scope] = None,
) -> Cell:
    """Histogram of ``image`` that only recomputes while ``enabled`` is True.

    While disabled the cell keeps its last value (a placeholder until the
    first enabled update).
    """
    state = {}

    def _update(values, cl, is_enabled):
        if is_enabled:
            state["last"] = compute_histogram(values, cl, config=config)
        elif "last" not in state:
            state["last"] = placeholder_histogram(cl, np.size(values))
        return state["last"]

    build = scope.derive if scope is not None else derive
    return build(_update, image, clim, enabled, name="histogram")
