"""
Environment: Obstacle & Boundary Extraction
Turns walls, doors, columns, furniture and counters into collision geometry
"""

import logging
import math
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Optional, Dict, Iterable

from .floorplan import FloorPlan, Wall, Door, Column, Furniture, Counter
from .geometry import closest_point_on_segment, distance_2d, normalize_2d, point_to_segment

logger = logging.getLogger(__name__)

MIN_WALL_LENGTH = 1e-6


class SegmentKind(Enum):
    """Origin of a collision segment. Door gaps are absent segments, not a kind."""
    WALL = 'wall'
    COUNTER = 'counter'


@dataclass(frozen=True)
class WallSegment:
    """A straight, unobstructed collision boundary."""
    start: Tuple[float, float]
    end: Tuple[float, float]
    kind: SegmentKind = SegmentKind.WALL
    storey_id: Optional[str] = None

    @property
    def length(self) -> float:
        return distance_2d(self.start, self.end)


@dataclass(frozen=True)
class CircleObstacle:
    """Columns and furniture approximated by their bounding circle."""
    position: Tuple[float, float]
    radius: float
    source_id: str = ''
    storey_id: Optional[str] = None


def create_door_gaps(doors: Iterable[Door], wall_length: float,
                     margin: float = 0.25) -> List[Tuple[float, float]]:
    """
    Parametric [0-1] intervals cut out of a wall by its doors.

    Each door's gap is its half width plus a clearance margin on each side,
    expressed as a fraction of the wall length. Overlapping gaps are merged.
    """
    if wall_length <= MIN_WALL_LENGTH:
        return []

    gaps = []
    for door in doors:
        half_width = (door.width / 2 + margin) / wall_length
        gaps.append((max(0.0, door.position - half_width),
                     min(1.0, door.position + half_width)))
    gaps.sort(key=lambda gap: gap[0])

    merged: List[List[float]] = []
    for start, end in gaps:
        if not merged or start > merged[-1][1]:
            merged.append([start, end])
        else:
            merged[-1][1] = max(merged[-1][1], end)

    return [(start, end) for start, end in merged]


def _segments_between_gaps(wall: Wall, gaps: List[Tuple[float, float]]) -> List[WallSegment]:
    sx, sy = wall.start
    dx = wall.end[0] - sx
    dy = wall.end[1] - sy

    def at(t: float) -> Tuple[float, float]:
        return (sx + dx * t, sy + dy * t)

    segments = []
    current = 0.0
    for gap_start, gap_end in gaps:
        if gap_start > current:
            segments.append(WallSegment(at(current), at(gap_start), storey_id=wall.storey_id))
        current = max(current, gap_end)

    if current < 1.0:
        segments.append(WallSegment(at(current), tuple(wall.end), storey_id=wall.storey_id))

    return segments


def create_wall_segments(walls: Iterable[Wall], doors: Iterable[Door],
                         door_gap_margin: float = 0.25) -> List[WallSegment]:
    """
    Collision segments for all walls, with door openings left out.

    Zero-length walls are skipped.
    """
    doors_by_wall: Dict[str, List[Door]] = {}
    for door in doors:
        doors_by_wall.setdefault(door.host_wall_id, []).append(door)

    segments = []
    for wall in walls:
        wall_length = distance_2d(wall.start, wall.end)
        if wall_length <= MIN_WALL_LENGTH:
            logger.debug("Skipping zero-length wall %s", wall.id)
            continue

        hosted = doors_by_wall.get(wall.id, [])
        if not hosted:
            segments.append(WallSegment(tuple(wall.start), tuple(wall.end), storey_id=wall.storey_id))
            continue

        gaps = create_door_gaps(hosted, wall_length, door_gap_margin)
        segments.extend(_segments_between_gaps(wall, gaps))

    return segments


def create_obstacles_from_columns(columns: Iterable[Column], margin: float = 0.1) -> List[CircleObstacle]:
    return [
        CircleObstacle(
            position=tuple(col.position),
            radius=max(col.width, col.depth) / 2 + margin,
            source_id=col.id,
            storey_id=col.storey_id,
        )
        for col in columns
    ]


def create_obstacles_from_furniture(furniture: Iterable[Furniture], margin: float = 0.1) -> List[CircleObstacle]:
    obstacles = []
    for furn in furniture:
        scale = furn.scale or 1.0
        w = furn.width * scale
        d = furn.depth * scale
        obstacles.append(CircleObstacle(
            position=tuple(furn.position),
            radius=math.sqrt(w * w + d * d) / 2 + margin,
            source_id=furn.id,
            storey_id=furn.storey_id,
        ))
    return obstacles


def create_segments_from_counters(counters: Iterable[Counter], default_depth: float = 0.6) -> List[WallSegment]:
    """
    Counters block like a solid volume: each path segment yields its front
    line and a back line offset by the counter depth along the left normal.
    """
    segments = []
    for counter in counters:
        path = counter.path
        if len(path) < 2:
            continue
        depth = counter.depth or default_depth

        for p1, p2 in zip(path[:-1], path[1:]):
            direction = normalize_2d(p2[0] - p1[0], p2[1] - p1[1])
            if not direction.any():
                continue
            normal = (-direction[1], direction[0])

            segments.append(WallSegment(tuple(p1), tuple(p2), SegmentKind.COUNTER, counter.storey_id))
            segments.append(WallSegment(
                (p1[0] + normal[0] * depth, p1[1] + normal[1] * depth),
                (p2[0] + normal[0] * depth, p2[1] + normal[1] * depth),
                SegmentKind.COUNTER,
                counter.storey_id,
            ))
    return segments


def _on_storey(item_storey: Optional[str], storey_id: Optional[str]) -> bool:
    return item_storey is None or storey_id is None or item_storey == storey_id


class Environment:
    """
    Static collision geometry for a simulation run.

    Built once at simulation start and read-only afterward.
    """

    def __init__(self, segments: List[WallSegment], obstacles: List[CircleObstacle], config: dict = None):
        config = config or {}
        self.segments = list(segments)
        self.obstacles = list(obstacles)

        self.push_epsilon = config.get('push_epsilon', 0.02)
        self.wall_damping = config.get('wall_damping', 0.8)
        self.door_damping = config.get('door_damping', 0.3)
        self.obstacle_margin = config.get('obstacle_margin', 0.2)
        self.obstacle_damping = config.get('obstacle_damping', 1.0)

        self._segment_cache: Dict[Optional[str], Tuple[List[WallSegment], np.ndarray, np.ndarray]] = {}
        self._obstacle_cache: Dict[Optional[str], List[CircleObstacle]] = {}

    @classmethod
    def from_floorplan(cls, plan: FloorPlan, config: dict = None) -> 'Environment':
        """Extract segments and obstacles from a floor plan snapshot."""
        config = config or {}
        obstacle_config = config.get('obstacles', {})
        gap_margin = obstacle_config.get('door_gap_margin', 0.25)

        segments = create_wall_segments(plan.walls, plan.doors, gap_margin)
        segments.extend(create_segments_from_counters(plan.counters, obstacle_config.get('counter_depth', 0.6)))

        obstacles = create_obstacles_from_columns(plan.columns, obstacle_config.get('column_margin', 0.1))
        obstacles.extend(create_obstacles_from_furniture(plan.furniture, obstacle_config.get('furniture_margin', 0.1)))

        return cls(segments, obstacles, config.get('collision', {}))

    def segments_for_storey(self, storey_id: Optional[str]) -> List[WallSegment]:
        return self._storey_segments(storey_id)[0]

    def obstacles_for_storey(self, storey_id: Optional[str]) -> List[CircleObstacle]:
        if storey_id not in self._obstacle_cache:
            self._obstacle_cache[storey_id] = [o for o in self.obstacles if _on_storey(o.storey_id, storey_id)]
        return self._obstacle_cache[storey_id]

    def _storey_segments(self, storey_id: Optional[str]):
        if storey_id not in self._segment_cache:
            segments = [s for s in self.segments if _on_storey(s.storey_id, storey_id)]
            starts = np.array([s.start for s in segments], dtype=float).reshape(-1, 2)
            ends = np.array([s.end for s in segments], dtype=float).reshape(-1, 2)
            self._segment_cache[storey_id] = (segments, starts, ends)
        return self._segment_cache[storey_id]

    def _segment_distances(self, point: np.ndarray, starts: np.ndarray, ends: np.ndarray) -> np.ndarray:
        """Vectorised point-to-segment distances."""
        d = ends - starts
        length_sq = np.einsum('ij,ij->i', d, d)
        safe = np.where(length_sq > 0, length_sq, 1.0)
        t = np.clip(np.einsum('ij,ij->i', point - starts, d) / safe, 0.0, 1.0)
        t = np.where(length_sq > 0, t, 0.0)
        closest = starts + d * t[:, None]
        return np.linalg.norm(point - closest, axis=1)

    def resolve_wall_collision(self, position: np.ndarray, velocity: np.ndarray,
                               push_distance: float, near_door: bool,
                               storey_id: Optional[str] = None):
        """
        Push a point out of every wall segment closer than push_distance.

        Moves position in place away from the nearest point on the segment and damps
        the velocity component pointing back into the wall (less near doors
        so the flow through openings is preserved).
        """
        segments, starts, ends = self._storey_segments(storey_id)
        if not segments:
            return

        candidates = np.nonzero(self._segment_distances(position[:2], starts, ends) < push_distance)[0]
        damping = self.door_damping if near_door else self.wall_damping

        for index in candidates:
            segment = segments[index]
            distance, normal = point_to_segment(position[:2], segment.start, segment.end)
            if distance >= push_distance:
                continue
            if distance > 1e-9:
                # Radial at segment end points
                normal = (position[:2] - closest_point_on_segment(position[:2], segment.start, segment.end)) / distance

            push_amount = push_distance - distance + self.push_epsilon
            position[0] += normal[0] * push_amount
            position[1] += normal[1] * push_amount

            inward = velocity[0] * normal[0] + velocity[1] * normal[1]
            if inward < 0:
                velocity[0] -= inward * normal[0] * damping
                velocity[1] -= inward * normal[1] * damping

    def resolve_obstacle_collision(self, position: np.ndarray, velocity: np.ndarray,
                                   storey_id: Optional[str] = None):
        """Keep a point at least obstacle_margin outside every obstacle circle."""
        for obstacle in self.obstacles_for_storey(storey_id):
            dx = position[0] - obstacle.position[0]
            dy = position[1] - obstacle.position[1]
            dist = math.sqrt(dx * dx + dy * dy)
            min_dist = obstacle.radius + self.obstacle_margin

            if 0.01 < dist < min_dist:
                push = min_dist - dist + self.push_epsilon
                position[0] += dx / dist * push
                position[1] += dy / dist * push

                inward = (velocity[0] * dx + velocity[1] * dy) / dist
                if inward < 0:
                    velocity[0] -= inward * dx / dist * self.obstacle_damping
                    velocity[1] -= inward * dy / dist * self.obstacle_damping

    def distance_to_nearest_wall(self, position, storey_id: Optional[str] = None) -> float:
        segments, starts, ends = self._storey_segments(storey_id)
        if not segments:
            return float('inf')
        return float(self._segment_distances(np.asarray(position, dtype=float)[:2], starts, ends).min())
