"""
Building Evacuation Simulation
Room-graph egress routing and steering-based crowd evacuation over floor-plan snapshots
"""

__version__ = "1.0.0"

from .floorplan import (
    FloorPlan, Storey, Space, Wall, Door, Column, Furniture, Counter, Stair, load_floorplan
)
from .environment import Environment, WallSegment, CircleObstacle, SegmentKind
from .room_graph import RoomGraph, RoomNode, DoorEdge, StairEdge, StairConnection, ExitDoor
from .route_planner import RoutePlanner, EvacuationRoute, Waypoint, HopKind
from .population import PopulationGenerator, find_farthest_corner, generate_spawn_points
from .agent import Agent
from .motion_models import SteeringModel, NeighborIndex
from .analytics import AnalyticsCollector
from .simulation_engine import EvacuationSimulation, SimulationStats
from .visualizer import export_route_map
from .config import DEFAULT_CONFIG, load_config

__all__ = [
    'FloorPlan',
    'Storey',
    'Space',
    'Wall',
    'Door',
    'Column',
    'Furniture',
    'Counter',
    'Stair',
    'load_floorplan',
    'Environment',
    'WallSegment',
    'CircleObstacle',
    'SegmentKind',
    'RoomGraph',
    'RoomNode',
    'DoorEdge',
    'StairEdge',
    'StairConnection',
    'ExitDoor',
    'RoutePlanner',
    'EvacuationRoute',
    'Waypoint',
    'HopKind',
    'PopulationGenerator',
    'find_farthest_corner',
    'generate_spawn_points',
    'Agent',
    'SteeringModel',
    'NeighborIndex',
    'AnalyticsCollector',
    'EvacuationSimulation',
    'SimulationStats',
    'export_route_map',
    'DEFAULT_CONFIG',
    'load_config'
]
