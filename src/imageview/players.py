"""Slider players that scrub through the non-display axes."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from matplotlib.widgets import Slider

from imageview.signals import Cell
from imageview.slicing import SliceData

__all__ = ["Player", "make_players"]

VALMAX_EPS = 1e-6


class Player:
    """Integer ``Slider`` kept in sync with a slice index cell, in both directions."""

    def __init__(self, ax, cell: Cell, size: int, label: str = "") -> None:
        self.ax = ax
        self.cell = cell
        self.size = int(size)
        self._syncing = False
        self.slider = Slider(
            ax,
            label=label,
            valmin=0,
            valmax=max(self.size - 1, VALMAX_EPS),
            valinit=int(cell.value),
            valstep=1,
            valfmt="%0.0f",
        )
        self._cid: Optional[int] = self.slider.on_changed(self._on_slider)
        self._listener = cell.on(self._on_cell)

    def _clamp(self, value: float) -> int:
        return min(max(int(round(value)), 0), self.size - 1)

    def _on_slider(self, value: float) -> None:
        if self._syncing:
            return
        index = self._clamp(value)
        if index != self.cell.value:
            self.cell.set(index)

    def _on_cell(self, value: int) -> None:
        if self._clamp(self.slider.val) == int(value):
            return
        self._syncing = True
        try:
            self.slider.set_val(int(value))
        finally:
            self._syncing = False

    @property
    def index(self) -> int:
        return int(self.cell.value)

    def step(self, delta: int = 1) -> None:
        """Move by ``delta`` frames, stopping at the ends."""
        index = self._clamp(self.cell.value + delta)
        if index != self.cell.value:
            self.cell.set(index)

    def disconnect(self) -> None:
        if self._cid is not None:
            self.slider.disconnect(self._cid)
            self._cid = None
        self._listener.disconnect()

    dispose = disconnect


def make_players(
    fig, slicedata: SliceData, rect: Sequence[float] = (0.15, 0.02, 0.7, 0.08)
) -> List[Player]:
    """One player per sliced axis, stacked inside ``rect`` (figure fractions)."""
    n = len(slicedata)
    if n == 0:
        return []
    left, bottom, width, height = rect
    row = height / n
    players = []
    for i, (cell, size, name) in enumerate(zip(slicedata.signals, slicedata.sizes, slicedata.names)):
        ax = fig.add_axes((left, bottom + (n - 1 - i) * row, width, row * 0.8))
        players.append(Player(ax, cell, size, label=name))
    return players
