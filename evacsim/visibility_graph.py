"""
Visibility Graph
Local obstacle-avoiding path planning around inflated circular obstacles
"""

import heapq
import logging
import math
import numpy as np
from typing import Dict, List, Sequence, Tuple

from .environment import CircleObstacle, WallSegment
from .geometry import closest_point_on_segment, distance_2d, segments_cross

logger = logging.getLogger(__name__)

COLUMN_OFFSET = 0.45
TANGENT_POINTS = 16


def segment_clears_circle(start, end, center, radius: float) -> bool:
    """True when no point of the segment lies strictly inside the circle."""
    closest = closest_point_on_segment(center, start, end)
    return distance_2d(closest, center) >= radius - 1e-9


def is_visible(start, end, obstacles: Sequence[CircleObstacle], walls: Sequence[WallSegment],
               clearance: float = COLUMN_OFFSET) -> bool:
    """
    Whether a straight hop is unobstructed.

    Blocked when it crosses a wall segment or intrudes into any obstacle
    circle inflated by the clearance.
    """
    if distance_2d(start, end) < 0.01:
        return True

    for wall in walls:
        if segments_cross(start, end, wall.start, wall.end):
            return False

    for obstacle in obstacles:
        if not segment_clears_circle(start, end, obstacle.position, obstacle.radius + clearance):
            return False

    return True


def tangent_points(center, radius: float, count: int = TANGENT_POINTS) -> List[np.ndarray]:
    """
    Vertices of a regular polygon circumscribing the circle.

    Every edge of the polygon is tangent to the circle (slightly enlarged so
    hops along the edges pass the clearance check), so a path through
    consecutive vertices wraps the obstacle without entering it.
    """
    count = max(3, count)
    vertex_radius = radius * 1.001 / math.cos(math.pi / count)
    cx, cy = float(center[0]), float(center[1])
    return [
        np.array([cx + vertex_radius * math.cos(2 * math.pi * i / count),
                  cy + vertex_radius * math.sin(2 * math.pi * i / count)])
        for i in range(count)
    ]


def build_visibility_graph(start, end, obstacles: Sequence[CircleObstacle],
                           walls: Sequence[WallSegment], clearance: float = COLUMN_OFFSET,
                           count: int = TANGENT_POINTS) -> Tuple[List[np.ndarray], Dict[int, List[Tuple[int, float]]]]:
    """
    Build a visibility graph between start, end and the obstacles' tangent points.

    Node 0 is the start, node 1 the end. Tangent points that fall inside
    another inflated obstacle are left out.

    Returns:
        Tuple of (node positions, adjacency list of (neighbor, distance))
    """
    nodes = [np.asarray(start, dtype=float)[:2], np.asarray(end, dtype=float)[:2]]

    for obstacle in obstacles:
        for point in tangent_points(obstacle.position, obstacle.radius + clearance, count):
            inside_other = any(
                distance_2d(point, other.position) < other.radius + clearance
                for other in obstacles
            )
            if not inside_other:
                nodes.append(point)

    adjacency: Dict[int, List[Tuple[int, float]]] = {i: [] for i in range(len(nodes))}
    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            if is_visible(nodes[i], nodes[j], obstacles, walls, clearance):
                dist = distance_2d(nodes[i], nodes[j])
                adjacency[i].append((j, dist))
                adjacency[j].append((i, dist))

    return nodes, adjacency


def find_shortest_path(nodes: List[np.ndarray], adjacency: Dict[int, List[Tuple[int, float]]],
                       source: int = 0, target: int = 1) -> List[np.ndarray]:
    """Dijkstra over the visibility graph; empty when target is unreachable."""
    if len(nodes) < 2:
        return []

    dist = {source: 0.0}
    came_from = {}
    open_set = [(0.0, source)]
    visited = set()

    while open_set:
        current_dist, current = heapq.heappop(open_set)
        if current in visited:
            continue
        visited.add(current)

        if current == target:
            path = [nodes[current]]
            while current in came_from:
                current = came_from[current]
                path.append(nodes[current])
            path.reverse()
            return path

        for neighbor, edge_length in adjacency[current]:
            if neighbor in visited:
                continue
            tentative = current_dist + edge_length
            if tentative < dist.get(neighbor, float('inf')):
                dist[neighbor] = tentative
                came_from[neighbor] = current
                heapq.heappush(open_set, (tentative, neighbor))

    return []


def calculate_evacuation_path(start, end, obstacles: Sequence[CircleObstacle],
                              walls: Sequence[WallSegment], clearance: float = COLUMN_OFFSET,
                              count: int = TANGENT_POINTS) -> List[np.ndarray]:
    """
    Obstacle-avoiding polyline from start to end.

    Uses the straight segment when it is visible; otherwise searches the
    visibility graph. Falls back to the straight segment when no detour
    exists (for example when the start lies inside an inflated obstacle).
    """
    start = np.asarray(start, dtype=float)[:2]
    end = np.asarray(end, dtype=float)[:2]

    if is_visible(start, end, obstacles, walls, clearance):
        return [start, end]

    nodes, adjacency = build_visibility_graph(start, end, obstacles, walls, clearance, count)
    path = find_shortest_path(nodes, adjacency)

    if not path:
        logger.debug("No obstacle-free detour from %s to %s, using direct line", start, end)
        return [start, end]

    return path
