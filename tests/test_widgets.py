"""Tests for players, the contrast editor and the matplotlib canvas."""

import matplotlib.pyplot as plt
import numpy as np
import pytest

from imageview.contrast import CLim, SampleKind, prep_contrast
from imageview.contrast_gui import ContrastEditor
from imageview.players import Player, make_players
from imageview.render_mpl import MplCanvas
from imageview.signals import Cell
from imageview.slicing import roi


@pytest.fixture
def slider_ax():
    fig = plt.figure()
    return fig.add_axes((0.1, 0.1, 0.8, 0.1))


class TestPlayer:
    def test_slider_sets_cell(self, slider_ax):
        cell = Cell(0)
        player = Player(slider_ax, cell, 5)
        player.slider.set_val(3)
        assert cell.value == 3

    def test_cell_moves_slider(self, slider_ax):
        cell = Cell(0)
        player = Player(slider_ax, cell, 5)
        cell.set(4)
        assert player.slider.val == 4

    def test_step_is_clamped(self, slider_ax):
        cell = Cell(0)
        player = Player(slider_ax, cell, 5)
        player.step(10)
        assert player.index == 4
        player.step(-1)
        assert player.index == 3

    def test_disconnect(self, slider_ax):
        cell = Cell(0)
        player = Player(slider_ax, cell, 5)
        player.disconnect()
        cell.set(2)
        assert player.slider.val == 0
        player.slider.set_val(4)
        assert cell.value == 2

    def test_make_players(self):
        fig = plt.figure()
        _, sd = roi(np.zeros((4, 4, 3, 2)))
        players = make_players(fig, sd)
        assert [p.size for p in players] == [3, 2]
        _, flat = roi(np.zeros((4, 4)))
        assert make_players(fig, flat) == []


class TestContrastEditor:
    def test_enables_histograms(self):
        pipeline = prep_contrast(Cell(np.arange(100.0).reshape(10, 10)), CLim(0, 99))
        editor = ContrastEditor(pipeline)
        assert pipeline.enabled.value
        assert pipeline.histograms[0].value.nbins == 300
        editor.close()
        assert not pipeline.enabled.value
        assert not editor.is_open

    def test_slider_edits_limits(self):
        pipeline = prep_contrast(Cell(np.arange(100.0).reshape(10, 10)), CLim(0, 99))
        editor = ContrastEditor(pipeline)
        editor.channels[0].slider.set_val((10, 50))
        assert pipeline.clim.value == CLim(10.0, 50.0)

    def test_limits_move_slider(self):
        pipeline = prep_contrast(Cell(np.arange(100.0).reshape(10, 10)), CLim(0, 99))
        editor = ContrastEditor(pipeline)
        pipeline.clim.set(CLim(20, 30))
        assert tuple(editor.channels[0].slider.val) == (20, 30)

    def test_one_editor_per_channel(self):
        source = Cell(np.zeros((4, 4, 3), dtype=np.uint8))
        pipeline = prep_contrast(source, CLim((0, 0, 0), (255, 255, 255)), SampleKind.RGB)
        editor = ContrastEditor(pipeline)
        assert len(editor.channels) == 3
        editor.channels[1].slider.set_val((0, 100))
        assert pipeline.clim.value == CLim((0, 0, 0), (255, 100.0, 255))

    def test_native_contrast_rejected(self):
        pipeline = prep_contrast(Cell(np.zeros((4, 4))), None)
        with pytest.raises(ValueError):
            ContrastEditor(pipeline)


class TestMplCanvas:
    @pytest.fixture
    def canvas(self):
        fig, ax = plt.subplots(figsize=(2, 2), dpi=100)
        return MplCanvas(ax)

    def test_blit_and_coordinates(self, canvas):
        canvas.blit(np.zeros((4, 6), dtype=np.float32))
        canvas.set_coordinates((0, 0, 6, 4))
        assert canvas.ax.get_xlim() == (-0.5, 5.5)
        assert canvas.ax.get_ylim() == (3.5, -0.5)
        assert tuple(canvas.image_artist.get_extent()) == (-0.5, 5.5, 3.5, -0.5)

    def test_blit_reuses_artist(self, canvas):
        canvas.blit(np.zeros((4, 6), dtype=np.float32))
        artist = canvas.image_artist
        canvas.blit(np.ones((2, 3), dtype=np.float32))
        assert canvas.image_artist is artist
        assert len(canvas.ax.images) == 1

    def test_overlays_cleared(self, canvas):
        canvas.draw_text(10, 10, "a")
        canvas.draw_points([10], [10])
        canvas.draw_segments([((0, 0), (10, 10))])
        canvas.draw_rect(0, 0, 10, 10)
        ax = canvas.ax
        assert (len(ax.texts), len(ax.lines), len(ax.collections), len(ax.patches)) == (1, 1, 1, 1)
        canvas.clear_overlays()
        assert (len(ax.texts), len(ax.lines), len(ax.collections), len(ax.patches)) == (0, 0, 0, 0)

    def test_overlay_in_axes_fractions(self, canvas):
        canvas.draw_text(canvas.width / 2, canvas.height / 4, "a")
        assert canvas.ax.texts[0].get_position() == pytest.approx((0.5, 0.75))

    def test_unknown_event(self, canvas):
        with pytest.raises(ValueError):
            canvas.connect("keypress", lambda ev: None)
