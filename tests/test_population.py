import numpy as np
import pytest

from evacsim.geometry import distance_2d, point_in_polygon
from evacsim.population import (
    PopulationGenerator, corner_spawn_point, find_farthest_corner, generate_spawn_points
)

SQUARE = [(0, 0), (4, 0), (4, 4), (0, 4)]


def test_farthest_corner_maximises_minimum_distance():
    corner = find_farthest_corner(SQUARE, [(4, 2), (8, 2)])
    assert np.allclose(corner, [0, 0])

    corner = find_farthest_corner(SQUARE, [(4, 0.5)])
    assert np.allclose(corner, [0, 4])


def test_corner_spawn_is_nudged_inside():
    point = corner_spawn_point(SQUARE, (0, 0), offset=0.3)
    assert point_in_polygon(point, SQUARE)
    assert distance_2d(point, (0, 0)) == pytest.approx(0.3)


def test_spawn_points_respect_polygon_and_spacing():
    rng = np.random.default_rng(1)
    points = generate_spawn_points(SQUARE, 10, rng, min_distance=0.5)

    assert len(points) == 10
    for i, p in enumerate(points):
        assert point_in_polygon(p, SQUARE)
        for q in points[i + 1:]:
            assert distance_2d(p, q) >= 0.5


def test_spawn_budget_exhaustion_returns_fewer_points():
    tiny = [(0, 0), (1, 0), (1, 1), (0, 1)]
    rng = np.random.default_rng(3)
    points = generate_spawn_points(tiny, 50, rng, min_distance=0.5, margin=0.0, attempts_per_agent=5)
    assert 0 < len(points) < 50


def test_spawn_room_puts_first_occupant_at_corner():
    generator = PopulationGenerator({}, np.random.default_rng(0))
    points = generator.spawn_room(SQUARE, (0, 4), 5, elevation=3.0)

    assert len(points) == 5
    assert distance_2d(points[0], (0, 4)) == pytest.approx(0.3)
    assert all(p[2] == 3.0 for p in points)


def test_spawning_is_reproducible_with_seed():
    a = PopulationGenerator({}, np.random.default_rng(42)).spawn_room(SQUARE, (0, 0), 6)
    b = PopulationGenerator({}, np.random.default_rng(42)).spawn_room(SQUARE, (0, 0), 6)
    assert np.allclose(a, b)
