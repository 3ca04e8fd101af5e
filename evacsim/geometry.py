"""
Geometry Kernel
Pure 2D helpers shared by the extractor, graph builder, planner and simulation
"""

import math
import numpy as np
from typing import Sequence, Tuple, List

DEFAULT_NORMAL = np.array([0.0, 1.0])
EPSILON = 1e-9


def as_point(point) -> np.ndarray:
    """Return the planar (x, y) part of a point as a float array."""
    return np.asarray(point, dtype=float)[:2]


def distance_2d(a, b) -> float:
    """Euclidean distance between the planar parts of two points."""
    dx = float(b[0]) - float(a[0])
    dy = float(b[1]) - float(a[1])
    return math.sqrt(dx * dx + dy * dy)


def normalize_2d(dx: float, dy: float) -> np.ndarray:
    """Unit vector along (dx, dy); the zero vector for zero-length input."""
    length = math.sqrt(dx * dx + dy * dy)
    if length > 0:
        return np.array([dx / length, dy / length])
    return np.zeros(2)


def point_in_polygon(point, polygon: Sequence) -> bool:
    """
    Even-odd ray casting test.

    Degenerate polygons (fewer than three vertices) contain nothing.
    """
    n = len(polygon)
    if n < 3:
        return False

    x, y = float(point[0]), float(point[1])
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = float(polygon[i][0]), float(polygon[i][1])
        xj, yj = float(polygon[j][0]), float(polygon[j][1])
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def closest_point_on_segment(point, seg_start, seg_end) -> np.ndarray:
    """Projection of a point onto a segment, clamped to its end points."""
    p = as_point(point)
    a = as_point(seg_start)
    b = as_point(seg_end)
    d = b - a
    length_sq = float(d @ d)
    if length_sq <= 0:
        return a.copy()
    t = max(0.0, min(1.0, float((p - a) @ d) / length_sq))
    return a + t * d


def point_to_segment(point, seg_start, seg_end) -> Tuple[float, np.ndarray]:
    """
    Distance from a point to a segment and the segment's unit normal.

    The normal is perpendicular to the segment and flipped so that it points
    toward the query point, which makes it the push-out direction for
    collision correction. Zero-length segments report DEFAULT_NORMAL.

    Returns:
        Tuple of (distance, normal)
    """
    p = as_point(point)
    a = as_point(seg_start)
    b = as_point(seg_end)
    closest = closest_point_on_segment(p, a, b)
    offset = p - closest
    dist = float(np.hypot(offset[0], offset[1]))

    d = b - a
    seg_length = float(np.hypot(d[0], d[1]))
    if seg_length > 0:
        normal = np.array([-d[1] / seg_length, d[0] / seg_length])
    else:
        normal = DEFAULT_NORMAL.copy()

    if normal @ offset < 0:
        normal = -normal

    return dist, normal


def _orientation(p, q, r) -> float:
    return (q[0] - p[0]) * (r[1] - p[1]) - (q[1] - p[1]) * (r[0] - p[0])


def segments_cross(a1, a2, b1, b2, tolerance: float = 1e-7) -> bool:
    """
    True when segment a1-a2 properly crosses segment b1-b2.

    Touching at an end point and collinear overlap do not count as crossing,
    so a path may start on a wall corner or run along a wall face.
    """
    d1 = _orientation(b1, b2, a1)
    d2 = _orientation(b1, b2, a2)
    d3 = _orientation(a1, a2, b1)
    d4 = _orientation(a1, a2, b2)

    scale_a = distance_2d(a1, a2)
    scale_b = distance_2d(b1, b2)
    if scale_a < EPSILON or scale_b < EPSILON:
        return False

    # Normalise the cross products to signed distances
    d1 /= scale_b
    d2 /= scale_b
    d3 /= scale_a
    d4 /= scale_a

    return (((d1 > tolerance and d2 < -tolerance) or (d1 < -tolerance and d2 > tolerance)) and
            ((d3 > tolerance and d4 < -tolerance) or (d3 < -tolerance and d4 > tolerance)))


def polygon_bounds(polygon: Sequence) -> Tuple[float, float, float, float]:
    """Axis-aligned bounds as (min_x, min_y, max_x, max_y)."""
    pts = np.asarray(polygon, dtype=float)[:, :2]
    return (float(pts[:, 0].min()), float(pts[:, 1].min()),
            float(pts[:, 0].max()), float(pts[:, 1].max()))


def polygon_centroid(polygon: Sequence) -> np.ndarray:
    """Area centroid; falls back to the vertex mean for zero-area polygons."""
    pts = np.asarray(polygon, dtype=float)[:, :2]
    x = pts[:, 0]
    y = pts[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    cross = x * y_next - x_next * y
    area = cross.sum() / 2.0
    if abs(area) < EPSILON:
        return pts.mean(axis=0)
    cx = ((x + x_next) * cross).sum() / (6.0 * area)
    cy = ((y + y_next) * cross).sum() / (6.0 * area)
    return np.array([cx, cy])


def nearest_point_on_polyline(point, path: Sequence) -> Tuple[np.ndarray, float, int]:
    """
    Nearest point on a polyline.

    Returns:
        Tuple of (nearest point, distance, index of the segment's start vertex).
        For an empty path the query point itself is returned with an infinite
        distance.
    """
    p = as_point(point)
    if len(path) == 0:
        return p, float('inf'), -1
    if len(path) == 1:
        only = as_point(path[0])
        return only, distance_2d(p, only), 0

    best = as_point(path[0])
    best_dist = float('inf')
    best_index = 0
    for i in range(len(path) - 1):
        candidate = closest_point_on_segment(p, path[i], path[i + 1])
        dist = distance_2d(p, candidate)
        if dist < best_dist:
            best = candidate
            best_dist = dist
            best_index = i
    return best, best_dist, best_index


def polyline_length(path: Sequence) -> float:
    """Total length of a polyline, using every coordinate of its points."""
    if len(path) < 2:
        return 0.0
    pts = np.asarray(path, dtype=float)
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def dedupe_points(points: List, min_distance: float) -> List:
    """Drop consecutive points closer than min_distance to their predecessor."""
    result = []
    for point in points:
        if result:
            last = result[-1]
            if np.linalg.norm(np.asarray(point, dtype=float) - np.asarray(last, dtype=float)) < min_distance:
                continue
        result.append(point)
    return result
