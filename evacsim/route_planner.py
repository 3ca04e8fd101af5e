"""
Route Planner
Inter-room search to the nearest exit and the per-room evacuation route
"""

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .environment import Environment
from .geometry import dedupe_points, polyline_length
from .population import find_farthest_corner
from .room_graph import RoomGraph, RoomNode, DoorEdge, StairEdge
from .visibility_graph import calculate_evacuation_path, COLUMN_OFFSET, TANGENT_POINTS

logger = logging.getLogger(__name__)

Point3D = Tuple[float, float, float]


class HopKind(Enum):
    DOOR = 'door'
    STAIR = 'stair'


@dataclass(frozen=True)
class Waypoint:
    """
    One hop of a planned route.

    Attributes:
        position: Door position, or the stair end the agent walks to
        hop_id: Id of the door or stair
        storey_id: Storey the agent is on when walking to this waypoint
        target_storey_id: Storey reached by taking the stair
        target_space_id: Room reached by taking the stair
        landing: Opposite stair end where the agent arrives
    """
    position: Point3D
    hop_id: str
    kind: HopKind = HopKind.DOOR
    is_exit: bool = False
    storey_id: Optional[str] = None
    target_storey_id: Optional[str] = None
    target_space_id: Optional[str] = None
    landing: Optional[Point3D] = None

    @property
    def is_stair(self) -> bool:
        return self.kind is HopKind.STAIR

    @property
    def door_id(self) -> Optional[str]:
        return self.hop_id if self.kind is HopKind.DOOR else None


@dataclass
class EvacuationRoute:
    """Precomputed reference path ("green line") for one room."""
    space_id: str
    storey_id: Optional[str]
    farthest_corner: Point3D
    path_points: List[Point3D]
    total_distance: float
    exit_door_id: Optional[str]
    waypoints: List[Waypoint] = field(default_factory=list)

    def points_at_elevation(self, elevation: float, tolerance: float = 1e-3) -> List[List[Point3D]]:
        """Runs of consecutive path points lying at the given elevation."""
        runs: List[List[Point3D]] = []
        current: List[Point3D] = []
        for point in self.path_points:
            if abs(point[2] - elevation) <= tolerance:
                current.append(point)
            elif current:
                runs.append(current)
                current = []
        if current:
            runs.append(current)
        return runs


def _door_waypoint(door: DoorEdge, node: RoomNode) -> Waypoint:
    return Waypoint(
        position=door.position,
        hop_id=door.door_id,
        kind=HopKind.DOOR,
        is_exit=door.is_exit,
        storey_id=node.storey_id,
    )


def _stair_waypoint(stair: StairEdge, node: RoomNode) -> Waypoint:
    return Waypoint(
        position=stair.position,
        hop_id=stair.stair_id,
        kind=HopKind.STAIR,
        is_exit=False,
        storey_id=node.storey_id,
        target_storey_id=stair.connects_to_storey,
        target_space_id=stair.connects_to_space,
        landing=stair.landing,
    )


class RoutePlanner:
    """
    Plans evacuation routes over a room graph.

    Args:
        graph: Room connectivity graph
        environment: Collision geometry used for the local in-room leg
        config: 'planner' configuration section
    """

    def __init__(self, graph: RoomGraph, environment: Environment, config: dict = None):
        config = config or {}
        self.graph = graph
        self.environment = environment
        self.clearance = config.get('column_offset', COLUMN_OFFSET)
        self.tangent_points = config.get('tangent_points', TANGENT_POINTS)
        self.dedupe_distance = config.get('dedupe_distance', 0.01)

    def find_path_to_exit(self, space_id: str) -> List[Waypoint]:
        """
        Waypoints from a room to the nearest exit door.

        Search runs over door edges and descending stair edges only, in order
        of (priority, insertion). Taking a descending stair lowers the
        priority by one so routes leave the current floor before wandering
        further on it.

        Returns:
            Waypoint list ending on an exit, or [] when no exit is reachable
        """
        start = self.graph.get(space_id)
        if start is None:
            return []

        for door in start.doors:
            if door.is_exit:
                return [_door_waypoint(door, start)]

        counter = itertools.count()
        open_set = [(0, next(counter), space_id, [])]
        closed = set()

        while open_set:
            priority, _, room_id, path = heapq.heappop(open_set)
            if room_id in closed:
                continue
            closed.add(room_id)

            node = self.graph.get(room_id)
            if node is None:
                continue

            for door in node.doors:
                waypoint = _door_waypoint(door, node)
                if door.is_exit:
                    return path + [waypoint]
                if door.connects_to and door.connects_to not in closed:
                    heapq.heappush(open_set, (priority, next(counter), door.connects_to, path + [waypoint]))

            for stair in node.stairs:
                if not stair.is_descending or stair.connects_to_space is None:
                    continue
                if stair.connects_to_space in closed:
                    continue
                heapq.heappush(open_set, (priority - 1, next(counter), stair.connects_to_space,
                                          path + [_stair_waypoint(stair, node)]))

        return []

    def plan_route(self, node: RoomNode, waypoints: List[Waypoint]) -> EvacuationRoute:
        """
        Evacuation route for one room from its inter-room waypoints.

        The leg from the room's farthest corner to the first waypoint is
        re-routed around obstacles; the rest follows the waypoints.
        """
        in_room = [wp.position for wp in waypoints if wp.storey_id in (None, node.storey_id)]
        corner = find_farthest_corner(node.polygon, in_room or [waypoints[0].position])
        first = waypoints[0]

        local = calculate_evacuation_path(
            corner,
            first.position,
            self.environment.obstacles_for_storey(node.storey_id),
            self.environment.segments_for_storey(node.storey_id),
            self.clearance,
            self.tangent_points,
        )

        points: List[Point3D] = [(float(p[0]), float(p[1]), node.elevation) for p in local[:-1]]
        for waypoint in waypoints:
            points.append(tuple(waypoint.position))
            if waypoint.is_stair and waypoint.landing is not None:
                points.append(tuple(waypoint.landing))

        points = dedupe_points(points, self.dedupe_distance)

        return EvacuationRoute(
            space_id=node.space_id,
            storey_id=node.storey_id,
            farthest_corner=(float(corner[0]), float(corner[1]), node.elevation),
            path_points=points,
            total_distance=polyline_length(points),
            exit_door_id=waypoints[-1].hop_id,
            waypoints=list(waypoints),
        )

    def calculate_all_evacuation_routes(self) -> Dict[str, EvacuationRoute]:
        """Routes for every room that can reach an exit, keyed by space id."""
        routes = {}
        for space_id, node in self.graph.nodes.items():
            waypoints = self.find_path_to_exit(space_id)
            if not waypoints:
                logger.debug("Space %s has no path to an exit", space_id)
                continue
            routes[space_id] = self.plan_route(node, waypoints)
        return routes
