"""
Room Connectivity Graph
Rooms as nodes, doors and stairs as edges, with exit doors marked terminal
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Iterable

from .floorplan import FloorPlan, Door, Space, Stair, Wall
from .geometry import normalize_2d, point_in_polygon

logger = logging.getLogger(__name__)

Point3D = Tuple[float, float, float]


@dataclass(frozen=True)
class DoorEdge:
    door_id: str
    position: Point3D
    connects_to: Optional[str]
    is_exit: bool


@dataclass(frozen=True)
class StairEdge:
    """
    One end of a stair as seen from the room containing it.

    Attributes:
        position: The stair end inside this room
        landing: The opposite end, where a traversing agent arrives
        is_descending: True on the upper room; only these are used for evacuation
    """
    stair_id: str
    position: Point3D
    connects_to_storey: Optional[str]
    connects_to_space: Optional[str]
    is_descending: bool
    landing: Point3D


@dataclass
class RoomNode:
    space_id: str
    storey_id: Optional[str]
    elevation: float
    polygon: Tuple[Tuple[float, float], ...]
    doors: List[DoorEdge] = field(default_factory=list)
    stairs: List[StairEdge] = field(default_factory=list)
    name: str = ''

    @property
    def exit_doors(self) -> List[DoorEdge]:
        return [door for door in self.doors if door.is_exit]

    @property
    def has_exit(self) -> bool:
        return any(door.is_exit for door in self.doors)


@dataclass(frozen=True)
class StairConnection:
    """Which rooms and storeys a stair's foot and head land in."""
    stair_id: str
    foot: Point3D
    head: Point3D
    bottom_space_id: Optional[str]
    top_space_id: Optional[str]
    bottom_storey_id: Optional[str]
    top_storey_id: Optional[str]


@dataclass(frozen=True)
class ExitDoor:
    id: str
    position: Point3D
    storey_id: Optional[str] = None


def spaces_on_storey(spaces: Iterable[Space], storey_id: Optional[str]) -> List[Space]:
    """Spaces on a storey; every space when the storey is unknown."""
    return [s for s in spaces if storey_id is None or s.storey_id is None or s.storey_id == storey_id]


def locate_space(point, spaces: Iterable[Space]) -> Optional[str]:
    """Id of the first space whose polygon contains the point."""
    for space in spaces:
        if point_in_polygon(point, space.polygon):
            return space.id
    return None


def door_position(door: Door, wall: Optional[Wall], elevation: float = 0.0) -> Optional[Point3D]:
    """Interpolate the host wall at the door's position fraction."""
    if wall is None:
        return None
    t = door.position
    return (wall.start[0] + (wall.end[0] - wall.start[0]) * t,
            wall.start[1] + (wall.end[1] - wall.start[1]) * t,
            elevation)


def find_connected_spaces(door: Door, wall: Optional[Wall], spaces: Iterable[Space],
                          probe_distance: float = 0.5) -> Tuple[Optional[str], Optional[str]]:
    """
    Rooms on either side of a door.

    Probes a point probe_distance to each side of the door along the host
    wall's normal and returns the containing space for each probe.
    """
    position = door_position(door, wall)
    if position is None:
        return None, None

    direction = normalize_2d(wall.end[0] - wall.start[0], wall.end[1] - wall.start[1])
    normal = (-direction[1], direction[0])

    side1 = (position[0] + normal[0] * probe_distance, position[1] + normal[1] * probe_distance)
    side2 = (position[0] - normal[0] * probe_distance, position[1] - normal[1] * probe_distance)

    space1 = space2 = None
    for space in spaces:
        if point_in_polygon(side1, space.polygon):
            space1 = space.id
        if point_in_polygon(side2, space.polygon):
            space2 = space.id
    return space1, space2


def stair_head(stair: Stair, bottom_elevation: float = 0.0) -> Point3D:
    """Top of the flight: foot plus run length along the rotation, raised by the rise."""
    return (stair.position[0] + stair.run_length * math.cos(stair.rotation),
            stair.position[1] + stair.run_length * math.sin(stair.rotation),
            bottom_elevation + stair.total_rise)


class RoomGraph:
    """
    Connectivity of rooms through doors and stairs.

    Built once per simulation start; immutable during the run.
    """

    def __init__(self, nodes: Dict[str, RoomNode], exit_doors: List[ExitDoor] = None,
                 stair_connections: List[StairConnection] = None):
        self.nodes = nodes
        self.exit_doors = exit_doors or []
        self.stair_connections = stair_connections or []

    def __contains__(self, space_id) -> bool:
        return space_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, space_id: str) -> Optional[RoomNode]:
        return self.nodes.get(space_id)

    def rooms_on_storey(self, storey_id: Optional[str]) -> List[RoomNode]:
        return [n for n in self.nodes.values()
                if storey_id is None or n.storey_id is None or n.storey_id == storey_id]

    def locate(self, point, storey_id: Optional[str]) -> Optional[str]:
        """Room on the given storey containing a point."""
        for node in self.rooms_on_storey(storey_id):
            if point_in_polygon(point, node.polygon):
                return node.space_id
        return None

    @classmethod
    def build(cls, plan: FloorPlan, config: dict = None) -> 'RoomGraph':
        """
        Build the graph from a floor plan snapshot.

        Args:
            plan: Floor plan snapshot
            config: 'graph' configuration section

        Returns:
            RoomGraph with door edges, stair edges and the list of exit doors
        """
        config = config or {}
        probe_distance = config.get('door_probe_distance', 0.5)

        nodes: Dict[str, RoomNode] = {}
        for space in plan.spaces:
            if len(space.polygon) < 3:
                logger.debug("Skipping space %s with degenerate polygon", space.id)
                continue
            nodes[space.id] = RoomNode(
                space_id=space.id,
                storey_id=space.storey_id,
                elevation=plan.space_elevation(space),
                polygon=tuple(space.polygon),
                name=space.name,
            )
        valid_spaces = [s for s in plan.spaces if s.id in nodes]

        exit_doors = cls._add_door_edges(nodes, plan, valid_spaces, probe_distance)
        stair_connections = cls._add_stair_edges(nodes, plan, valid_spaces)

        return cls(nodes, exit_doors, stair_connections)

    @staticmethod
    def _add_door_edges(nodes: Dict[str, RoomNode], plan: FloorPlan, spaces: List[Space],
                        probe_distance: float) -> List[ExitDoor]:
        walls = plan.wall_by_id()
        exit_doors = []

        for door in plan.doors:
            wall = walls.get(door.host_wall_id)
            if wall is None:
                logger.debug("Door %s references unknown wall %s", door.id, door.host_wall_id)
                continue

            position = door_position(door, wall, plan.storey_elevation(wall.storey_id))
            candidates = spaces_on_storey(spaces, wall.storey_id)
            space1, space2 = find_connected_spaces(door, wall, candidates, probe_distance)

            is_boundary = (space1 is not None) != (space2 is not None)
            is_exit = door.is_external or is_boundary
            if is_exit:
                exit_doors.append(ExitDoor(door.id, position, wall.storey_id))

            def add_edge(space_id, other):
                if space_id is None or space_id not in nodes:
                    return
                nodes[space_id].doors.append(DoorEdge(
                    door_id=door.id,
                    position=position,
                    connects_to=None if is_exit else other,
                    is_exit=is_exit,
                ))

            add_edge(space1, space2)
            if space2 != space1:
                add_edge(space2, space1)

        return exit_doors

    @staticmethod
    def _add_stair_edges(nodes: Dict[str, RoomNode], plan: FloorPlan,
                         spaces: List[Space]) -> List[StairConnection]:
        connections = []

        for stair in plan.stairs:
            bottom_elevation = plan.storey_elevation(stair.bottom_storey_id)
            foot = (stair.position[0], stair.position[1], bottom_elevation)
            head = stair_head(stair, bottom_elevation)

            bottom_space = locate_space(foot, spaces_on_storey(spaces, stair.bottom_storey_id))
            top_space = locate_space(head, spaces_on_storey(spaces, stair.top_storey_id))

            if bottom_space is None and top_space is None:
                logger.debug("Stair %s does not land in any space", stair.id)
                continue

            connections.append(StairConnection(
                stair_id=stair.id,
                foot=foot,
                head=head,
                bottom_space_id=bottom_space,
                top_space_id=top_space,
                bottom_storey_id=stair.bottom_storey_id,
                top_storey_id=stair.top_storey_id,
            ))

            if bottom_space is not None:
                nodes[bottom_space].stairs.append(StairEdge(
                    stair_id=stair.id,
                    position=foot,
                    connects_to_storey=stair.top_storey_id,
                    connects_to_space=top_space,
                    is_descending=False,
                    landing=head,
                ))
            if top_space is not None:
                nodes[top_space].stairs.append(StairEdge(
                    stair_id=stair.id,
                    position=head,
                    connects_to_storey=stair.bottom_storey_id,
                    connects_to_space=bottom_space,
                    is_descending=True,
                    landing=foot,
                ))

        return connections
