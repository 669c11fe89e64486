"""Unit tests for coordinate transformation module."""

import pytest

from imageview.coordinate_transforms import (clip_rect, data_length_to_device, data_to_device,
                                             device_to_data, rect_contains, rect_from_corners)


class TestDeviceDataConversions:
    """Test canvas pixel <-> data coordinate conversions."""

    def test_device_origin_is_pixel_edge(self):
        """The top-left canvas corner sits half a pixel before the first center."""
        x, y = device_to_data(0.0, 0.0, (100, 100), (0, 0, 10, 10))
        assert x == -0.5
        assert y == -0.5

    def test_device_to_data_scaling(self):
        """Test scaling when the canvas is larger than the view."""
        x, y = device_to_data(50.0, 25.0, (100, 50), (0, 0, 10, 10))
        assert x == pytest.approx(4.5)
        assert y == pytest.approx(4.5)

    def test_device_to_data_with_offset(self):
        """Test conversion for a view that does not start at the origin."""
        x, y = device_to_data(0.0, 0.0, (100, 100), (20, 30, 10, 10))
        assert x == 19.5
        assert y == 29.5

    def test_data_to_device_pixel_center(self):
        """Test that pixel centers land in the middle of their device cell."""
        x_dev, y_dev = data_to_device(0.0, 0.0, (100, 100), (0, 0, 10, 10))
        assert x_dev == pytest.approx(5.0)
        assert y_dev == pytest.approx(5.0)

    def test_device_data_roundtrip(self):
        """Test roundtrip conversion."""
        canvas = (640, 480)
        rect = (13, 7, 90, 45)
        x_orig, y_orig = 41.25, 30.75
        x_dev, y_dev = data_to_device(x_orig, y_orig, canvas, rect)
        x, y = device_to_data(x_dev, y_dev, canvas, rect)
        assert abs(x - x_orig) < 1e-9
        assert abs(y - y_orig) < 1e-9


class TestLengths:
    """Test length scaling along either axis."""

    def test_length_x(self):
        assert data_length_to_device(3, (100, 50), (0, 0, 10, 10)) == 30

    def test_length_y(self):
        assert data_length_to_device(3, (100, 50), (0, 0, 10, 10), axis="y") == 15


class TestClipRect:
    """Test rectangle clipping."""

    def test_rect_fully_inside(self):
        """Test rect fully inside bounds."""
        assert clip_rect((10, 10, 50, 50), (0, 0, 100, 100)) == (10, 10, 50, 50)

    def test_rect_exceeds_bounds(self):
        """Test rect that exceeds bounds."""
        assert clip_rect((50, 50, 100, 100), (0, 0, 100, 100)) == (50, 50, 50, 50)

    def test_rect_negative_offset(self):
        """Test rect with negative offset."""
        assert clip_rect((-10, -10, 50, 50), (0, 0, 100, 100)) == (0, 0, 40, 40)

    def test_disjoint_rect_keeps_one_pixel(self):
        """Test that an empty intersection collapses to the nearest pixel."""
        assert clip_rect((200, 5, 10, 10), (0, 0, 100, 100)) == (99, 5, 1, 10)


class TestRectHelpers:
    """Test containment and corner helpers."""

    def test_contains(self):
        assert rect_contains((0, 0, 10, 10), (2, 2, 8, 8))
        assert not rect_contains((0, 0, 10, 10), (2, 2, 9, 8))

    def test_from_corners_any_order(self):
        """Test that the corner order does not matter."""
        assert rect_from_corners(1.2, 2.7, 4.6, 0.4) == (2, 1, 3, 2)
        assert rect_from_corners(4.6, 0.4, 1.2, 2.7) == (2, 1, 3, 2)

    def test_from_corners_without_centers(self):
        """Test that a box enclosing no pixel center is empty."""
        _, _, w, h = rect_from_corners(1.1, 1.1, 1.4, 1.4)
        assert w <= 0
        assert h <= 0
