import math

import numpy as np
import pytest

from evacsim.geometry import (
    DEFAULT_NORMAL, distance_2d, normalize_2d, point_in_polygon, point_to_segment,
    segments_cross, polygon_centroid, nearest_point_on_polyline, polyline_length, dedupe_points
)

SQUARE = [(0, 0), (4, 0), (4, 4), (0, 4)]


def test_distance_ignores_elevation():
    assert distance_2d((0, 0, 0), (3, 4, 10)) == pytest.approx(5.0)


def test_normalize_zero_vector():
    assert np.allclose(normalize_2d(0.0, 0.0), [0.0, 0.0])
    assert np.allclose(normalize_2d(3.0, 4.0), [0.6, 0.8])


def test_point_in_polygon():
    assert point_in_polygon((2, 2), SQUARE)
    assert not point_in_polygon((5, 2), SQUARE)
    assert not point_in_polygon((2, 2), [(0, 0), (4, 0)])


def test_point_in_concave_polygon():
    l_shape = [(0, 0), (4, 0), (4, 1), (1, 1), (1, 4), (0, 4)]
    assert point_in_polygon((0.5, 3), l_shape)
    assert not point_in_polygon((3, 3), l_shape)


def test_point_to_segment_normal_points_toward_query():
    dist, normal = point_to_segment((2, 1), (0, 0), (4, 0))
    assert dist == pytest.approx(1.0)
    assert np.allclose(normal, [0, 1])

    dist, normal = point_to_segment((2, -0.5), (0, 0), (4, 0))
    assert dist == pytest.approx(0.5)
    assert np.allclose(normal, [0, -1])


def test_point_to_segment_clamps_to_end_point():
    dist, _ = point_to_segment((7, 4), (0, 0), (4, 0))
    assert dist == pytest.approx(5.0)


def test_point_to_zero_length_segment_uses_default_normal():
    dist, normal = point_to_segment((1, 0), (0, 0), (0, 0))
    assert dist == pytest.approx(1.0)
    assert np.allclose(np.abs(normal), np.abs(DEFAULT_NORMAL))
    assert math.isfinite(dist)


def test_segments_cross_only_properly():
    assert segments_cross((0, 0), (2, 2), (0, 2), (2, 0))
    # Touching at an end point
    assert not segments_cross((0, 0), (1, 1), (1, 1), (2, 0))
    # Collinear overlap
    assert not segments_cross((0, 0), (2, 0), (1, 0), (3, 0))
    assert not segments_cross((0, 0), (1, 0), (0, 1), (1, 1))


def test_polygon_centroid():
    assert np.allclose(polygon_centroid(SQUARE), [2, 2])


def test_nearest_point_on_polyline():
    point, dist, index = nearest_point_on_polyline((2, 1), [(0, 0), (4, 0), (4, 4)])
    assert np.allclose(point, [2, 0])
    assert dist == pytest.approx(1.0)
    assert index == 0

    _, dist, _ = nearest_point_on_polyline((0, 0), [])
    assert dist == float('inf')


def test_polyline_length_includes_elevation():
    assert polyline_length([(0, 0, 0), (3, 4, 0)]) == pytest.approx(5.0)
    assert polyline_length([(0, 0, 0), (0, 0, 3)]) == pytest.approx(3.0)
    assert polyline_length([(1, 1, 1)]) == 0.0


def test_dedupe_points():
    points = [(0, 0, 0), (0.005, 0, 0), (1, 0, 0), (1, 0.001, 0)]
    assert dedupe_points(points, 0.01) == [(0, 0, 0), (1, 0, 0)]
