"""Tests for slicing N-D images down to the displayed plane."""

import numpy as np
import pytest

from imageview.contrast import SampleKind
from imageview.slicing import (flip_view, pixel_value, roi, slice2d, slice_cell, sliceinds)
from imageview.zoom import ZoomRegion


@pytest.fixture
def volume():
    return np.arange(300, dtype=float).reshape(10, 10, 3)


class TestRoi:
    """Test zoom and slice state creation."""

    def test_volume_gets_one_slice_axis(self, volume):
        zoom, sd = roi(volume)
        assert zoom.value.fullview == (0, 0, 10, 10)
        assert sd.axes == (2,)
        assert sd.sizes == (3,)
        assert sd.indices() == (0,)
        assert sd.names == ("axis 2",)
        assert not sd.transpose

    def test_transposed_display_axes(self):
        img = np.zeros((4, 6, 2))
        zoom, sd = roi(img, axes=(1, 0))
        assert sd.transpose
        assert zoom.value.fullview == (0, 0, 4, 6)

    def test_one_dimensional_image(self):
        zoom, sd = roi(np.arange(5))
        assert zoom.value.fullview == (0, 0, 1, 5)
        assert len(sd) == 0

    def test_rgb_has_no_slice_axes(self):
        zoom, sd = roi(np.zeros((4, 5, 3)), kind=SampleKind.RGB)
        assert len(sd) == 0
        assert zoom.value.fullview == (0, 0, 5, 4)

    @pytest.mark.parametrize("axes", [(0, 0), (0, 3), (0,), (-1, 0)])
    def test_invalid_axes(self, volume, axes):
        with pytest.raises(ValueError):
            roi(volume, axes=axes)

    def test_names_length_checked(self, volume):
        with pytest.raises(ValueError):
            roi(volume, names=("z", "t"))

    def test_padded_indices_and_compatible(self, volume):
        _, sd = roi(volume)
        sd.signals[0].set(2)
        assert sd.padded_indices() == (2, 0)
        _, other = roi(volume.copy())
        assert sd.compatible(other)
        _, flat = roi(volume[..., 0])
        assert not sd.compatible(flat)


class TestSlice2d:
    """Test extraction of the visible plane."""

    def test_fixed_index(self, volume):
        zoom, sd = roi(volume)
        sd.signals[0].set(2)
        out = slice2d(volume, zoom.value, sd)
        np.testing.assert_array_equal(out, volume[:, :, 2])

    def test_quarter_view(self, volume):
        _, sd = roi(volume)
        zr = ZoomRegion((0, 0, 10, 10), (5, 5, 5, 5))
        out = slice2d(volume, zr, sd)
        np.testing.assert_array_equal(out, volume[5:10, 5:10, 0])

    def test_slice_is_a_view(self, volume):
        zoom, sd = roi(volume)
        out = slice2d(volume, zoom.value, sd)
        assert np.shares_memory(out, volume)

    def test_transpose(self):
        img = np.arange(48).reshape(4, 6, 2)
        zoom, sd = roi(img, axes=(1, 0))
        out = slice2d(img, zoom.value, sd)
        assert out.shape == (6, 4)
        np.testing.assert_array_equal(out, img[:, :, 0].T)

    def test_one_dimensional_column(self):
        data = np.arange(5)
        zoom, sd = roi(data)
        out = slice2d(data, zoom.value, sd)
        assert out.shape == (5, 1)
        np.testing.assert_array_equal(out[:, 0], data)

    def test_rgb_keeps_channels(self):
        img = np.zeros((4, 5, 3))
        zoom, sd = roi(img, kind=SampleKind.RGB)
        assert slice2d(img, zoom.value, sd, SampleKind.RGB).shape == (4, 5, 3)


class TestSliceCell:
    def test_follows_index_and_zoom(self, volume):
        zoom, sd = roi(volume)
        cell = slice_cell(volume, zoom, sd)
        sd.signals[0].set(1)
        np.testing.assert_array_equal(cell.value, volume[:, :, 1])
        zoom.set(ZoomRegion((0, 0, 10, 10), (0, 0, 3, 2)))
        assert cell.value.shape == (2, 3)

    def test_unsupported_dtype_names_stage(self):
        img = np.zeros((4, 4), dtype=complex)
        zoom, sd = roi(img)
        with pytest.raises(TypeError, match="creating slice"):
            slice_cell(img, zoom, sd)

    def test_scalei_maps_before_validation(self):
        img = np.full((4, 4), 3 + 4j)
        zoom, sd = roi(img)
        cell = slice_cell(img, zoom, sd, scalei=np.abs)
        np.testing.assert_allclose(cell.value, 5.0)


class TestPixelLookup:
    def test_sliceinds(self, volume):
        _, sd = roi(volume)
        sd.signals[0].set(2)
        assert sliceinds(volume.shape, (3, 4), sd) == (3, 4, 2)

    def test_pixel_value(self, volume):
        _, sd = roi(volume)
        sd.signals[0].set(2)
        index, value = pixel_value(volume, 4.2, 2.8, sd)
        assert index == (3, 4, 2)
        assert value == volume[3, 4, 2]

    def test_pixel_value_outside(self, volume):
        _, sd = roi(volume)
        assert pixel_value(volume, -1, 0, sd) is None
        assert pixel_value(volume, 0, 10, sd) is None

    def test_flip_view(self):
        img = np.arange(6).reshape(2, 3)
        np.testing.assert_array_equal(flip_view(img, flipx=True), img[:, ::-1])
        np.testing.assert_array_equal(flip_view(img, flipy=True), img[::-1, :])
        assert np.shares_memory(flip_view(img, flipx=True, flipy=True), img)
