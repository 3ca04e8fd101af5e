"""
Floor Plan Snapshot
Read-only building geometry consumed by the simulation, and YAML/JSON loading
"""

import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

Point2D = Tuple[float, float]


@dataclass(frozen=True)
class Storey:
    id: str
    elevation: float = 0.0
    name: str = ''


@dataclass(frozen=True)
class Space:
    """A room polygon on one storey."""
    id: str
    polygon: Tuple[Point2D, ...]
    storey_id: Optional[str] = None
    elevation: Optional[float] = None
    name: str = ''


@dataclass(frozen=True)
class Wall:
    id: str
    start: Point2D
    end: Point2D
    storey_id: Optional[str] = None


@dataclass(frozen=True)
class Door:
    """
    A door hosted on a wall.

    Attributes:
        position: Fraction [0-1] along the host wall from its start point
        width: Clear opening width in meters
        is_external: Explicitly flagged as a building exit
    """
    id: str
    host_wall_id: str
    position: float
    width: float = 0.9
    is_external: bool = False


@dataclass(frozen=True)
class Column:
    id: str
    position: Point2D
    width: float
    depth: float
    storey_id: Optional[str] = None


@dataclass(frozen=True)
class Furniture:
    id: str
    position: Point2D
    width: float
    depth: float
    scale: float = 1.0
    storey_id: Optional[str] = None


@dataclass(frozen=True)
class Counter:
    id: str
    path: Tuple[Point2D, ...]
    depth: float = 0.6
    storey_id: Optional[str] = None


@dataclass(frozen=True)
class Stair:
    """
    A straight stair flight.

    Attributes:
        position: Foot of the flight (bottom step)
        rotation: Walking direction up the flight, radians
        run_length: Horizontal length of the flight (m)
        total_rise: Height climbed (m)
    """
    id: str
    position: Point2D
    rotation: float
    run_length: float
    total_rise: float
    bottom_storey_id: Optional[str] = None
    top_storey_id: Optional[str] = None
    width: float = 1.0


@dataclass
class FloorPlan:
    """Snapshot of everything the evacuation engine reads."""
    spaces: List[Space] = field(default_factory=list)
    doors: List[Door] = field(default_factory=list)
    walls: List[Wall] = field(default_factory=list)
    columns: List[Column] = field(default_factory=list)
    furniture: List[Furniture] = field(default_factory=list)
    counters: List[Counter] = field(default_factory=list)
    stairs: List[Stair] = field(default_factory=list)
    storeys: List[Storey] = field(default_factory=list)

    def storey_elevation(self, storey_id: Optional[str], default: float = 0.0) -> float:
        """Elevation of a storey, or default when unknown."""
        for storey in self.storeys:
            if storey.id == storey_id:
                return storey.elevation
        return default

    def space_elevation(self, space: Space) -> float:
        """A space's own elevation, falling back to its storey's."""
        if space.elevation is not None:
            return float(space.elevation)
        return self.storey_elevation(space.storey_id)

    def wall_by_id(self) -> Dict[str, Wall]:
        return {wall.id: wall for wall in self.walls}

    @classmethod
    def from_dict(cls, data: dict) -> 'FloorPlan':
        """
        Build a floor plan from plain dictionaries (as parsed from YAML/JSON).

        Raises:
            ValueError: If an element is missing required keys or has bad coordinates
        """
        if not isinstance(data, dict):
            raise ValueError("Floor plan document must be a mapping")

        try:
            return cls(
                storeys=[Storey(id=str(s['id']), elevation=float(s.get('elevation', 0.0)),
                                name=s.get('name', ''))
                         for s in data.get('storeys') or []],
                spaces=[Space(id=str(s['id']), polygon=_points(s['polygon']),
                              storey_id=_optional_id(s.get('storey_id')),
                              elevation=_optional_float(s.get('elevation')),
                              name=s.get('name', ''))
                        for s in data.get('spaces') or []],
                walls=[Wall(id=str(w['id']), start=_point(w['start']), end=_point(w['end']),
                            storey_id=_optional_id(w.get('storey_id')))
                       for w in data.get('walls') or []],
                doors=[Door(id=str(d['id']), host_wall_id=str(d['host_wall_id']),
                            position=float(d['position']), width=float(d.get('width', 0.9)),
                            is_external=bool(d.get('is_external', False)))
                       for d in data.get('doors') or []],
                columns=[Column(id=str(c['id']), position=_point(c['position']),
                                width=float(c['width']), depth=float(c.get('depth', c['width'])),
                                storey_id=_optional_id(c.get('storey_id')))
                         for c in data.get('columns') or []],
                furniture=[Furniture(id=str(f['id']), position=_point(f['position']),
                                     width=float(f['width']), depth=float(f['depth']),
                                     scale=float(f.get('scale', 1.0)),
                                     storey_id=_optional_id(f.get('storey_id')))
                           for f in data.get('furniture') or []],
                counters=[Counter(id=str(c['id']), path=_points(c['path']),
                                  depth=float(c.get('depth', 0.6)),
                                  storey_id=_optional_id(c.get('storey_id')))
                          for c in data.get('counters') or []],
                stairs=[Stair(id=str(s['id']), position=_point(s['position']),
                              rotation=float(s.get('rotation', 0.0)),
                              run_length=float(s['run_length']), total_rise=float(s['total_rise']),
                              bottom_storey_id=_optional_id(s.get('bottom_storey_id')),
                              top_storey_id=_optional_id(s.get('top_storey_id')),
                              width=float(s.get('width', 1.0)))
                        for s in data.get('stairs') or []],
            )
        except KeyError as e:
            raise ValueError(f"Floor plan element is missing required key {e}") from e
        except (TypeError, IndexError) as e:
            raise ValueError(f"Malformed floor plan element: {e}") from e


def _point(value) -> Point2D:
    if isinstance(value, dict):
        return (float(value['x']), float(value['y']))
    return (float(value[0]), float(value[1]))


def _points(values) -> Tuple[Point2D, ...]:
    return tuple(_point(v) for v in values)


def _optional_id(value) -> Optional[str]:
    return None if value is None else str(value)


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


def load_floorplan(file_path: str) -> FloorPlan:
    """
    Load a floor plan snapshot from a YAML or JSON file.

    Args:
        file_path: Path to the document

    Returns:
        Parsed FloorPlan
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Floor plan file not found: {path}")

    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    return FloorPlan.from_dict(data or {})
