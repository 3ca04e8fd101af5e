"""
Population Generator
Worst-case corner placement plus random interior occupants for each room
"""

import logging
import numpy as np
from typing import Dict, List, Optional, Sequence

from .geometry import distance_2d, point_in_polygon, polygon_bounds, polygon_centroid

logger = logging.getLogger(__name__)


def find_farthest_corner(polygon: Sequence, exit_points: Sequence) -> np.ndarray:
    """
    Polygon vertex whose distance to the nearest route point is largest.

    This is the max-min egress heuristic: the occupant standing there has the
    longest way out. With no route points the first vertex is returned.
    """
    best = np.asarray(polygon[0], dtype=float)[:2]
    best_dist = -1.0

    for vertex in polygon:
        nearest = min((distance_2d(vertex, p) for p in exit_points), default=0.0)
        if nearest > best_dist:
            best_dist = nearest
            best = np.asarray(vertex, dtype=float)[:2]

    return best


def corner_spawn_point(polygon: Sequence, corner, offset: float = 0.3) -> np.ndarray:
    """
    Spawn position next to a corner, nudged toward the polygon centroid so it
    is not on the wall. Falls back to the corner if the nudge leaves the room.
    """
    corner = np.asarray(corner, dtype=float)[:2]
    direction = polygon_centroid(polygon) - corner
    length = np.linalg.norm(direction)
    if length > 0:
        candidate = corner + direction / length * offset
        if point_in_polygon(candidate, polygon):
            return candidate
    return corner


def generate_spawn_points(polygon: Sequence, count: int, rng: np.random.Generator,
                          existing: Optional[List[np.ndarray]] = None, min_distance: float = 0.5,
                          margin: float = 0.4, attempts_per_agent: int = 100) -> List[np.ndarray]:
    """
    Rejection-sample random points inside a polygon.

    Candidates are drawn uniformly from the polygon's bounding box (inset by
    margin) and accepted when inside the polygon and at least min_distance
    from every accepted or existing point. Gives up after
    attempts_per_agent * count draws, so fewer points may be returned.
    """
    points: List[np.ndarray] = []
    if count <= 0 or len(polygon) < 3:
        return points

    taken = list(existing or [])
    min_x, min_y, max_x, max_y = polygon_bounds(polygon)
    if max_x - min_x > 2 * margin:
        min_x, max_x = min_x + margin, max_x - margin
    if max_y - min_y > 2 * margin:
        min_y, max_y = min_y + margin, max_y - margin

    max_attempts = count * attempts_per_agent
    attempts = 0
    while len(points) < count and attempts < max_attempts:
        attempts += 1
        candidate = np.array([rng.uniform(min_x, max_x), rng.uniform(min_y, max_y)])
        if not point_in_polygon(candidate, polygon):
            continue
        if any(distance_2d(candidate, p) < min_distance for p in taken):
            continue
        points.append(candidate)
        taken.append(candidate)

    return points


class PopulationGenerator:
    """
    Places occupants in every room that has an evacuation route.

    Args:
        config: 'population' configuration section
        rng: Random generator used for sampling
    """

    def __init__(self, config: dict = None, rng: np.random.Generator = None):
        config = config or {}
        self.min_spawn_distance = config.get('min_spawn_distance', 0.5)
        self.spawn_margin = config.get('spawn_margin', 0.4)
        self.corner_offset = config.get('corner_offset', 0.3)
        self.attempts_per_agent = config.get('attempts_per_agent', 100)
        self.rng = rng if rng is not None else np.random.default_rng()

    def spawn_room(self, polygon: Sequence, corner, count: int, elevation: float = 0.0) -> List[np.ndarray]:
        """
        Spawn positions (x, y, z) for one room.

        The first occupant stands at the worst-case corner, the rest are
        sampled at random.
        """
        if count <= 0:
            return []

        first = corner_spawn_point(polygon, corner, self.corner_offset)
        others = generate_spawn_points(
            polygon,
            count - 1,
            self.rng,
            existing=[first],
            min_distance=self.min_spawn_distance,
            margin=self.spawn_margin,
            attempts_per_agent=self.attempts_per_agent,
        )

        return [np.array([p[0], p[1], elevation]) for p in [first] + others]

    def populate(self, graph, routes: Dict, count: int) -> Dict[str, List[np.ndarray]]:
        """
        Spawn positions for every routed room, keyed by space id.

        Rooms without a route get no occupants.
        """
        spawns = {}
        for space_id, route in routes.items():
            node = graph.get(space_id)
            if node is None:
                continue
            points = self.spawn_room(node.polygon, route.farthest_corner, count, node.elevation)
            if len(points) < count:
                logger.warning("Space %s: only %d of %d occupants could be placed",
                               space_id, len(points), count)
            spawns[space_id] = points
        return spawns
