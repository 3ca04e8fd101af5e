"""
Configuration
Default tuning values and YAML loading
"""

import copy
import yaml
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG = {
    'simulation': {
        'time_step': 1.0 / 30.0,
        'duration': 300.0,
        'seed': 42,
        'agents_per_space': 5,
        'agent_speed': 1.5,
    },
    'collision': {
        'wall_push_distance': 0.35,
        'wall_push_near_door': 0.15,
        'wall_push_cooldown': 0.1,
        'obstacle_margin': 0.2,
        'door_proximity_threshold': 1.0,
        'push_epsilon': 0.02,
        'wall_damping': 0.8,
        'door_damping': 0.3,
        'obstacle_damping': 1.0,
    },
    'obstacles': {
        'door_gap_margin': 0.25,
        'column_margin': 0.1,
        'furniture_margin': 0.1,
        'counter_depth': 0.6,
    },
    'agent': {
        'neighborhood_radius': 1.5,
        'speed_variation': 0.2,
        'max_force': 10.0,
        'mass': 1.0,
        'arrival_radius': 1.5,
        'separation_weight': 2.0,
        'path_follow_weight': 1.0,
    },
    'population': {
        'min_spawn_distance': 0.5,
        'spawn_margin': 0.4,
        'corner_offset': 0.3,
        'attempts_per_agent': 100,
    },
    'stuck': {
        'movement_threshold': 0.02,
        'frames_limit': 45,
        'push_cooldown_frames': 30,
        'push_speed_factor': 0.7,
        'min_push_distance': 0.3,
        'max_route_distance': 3.0,
        'max_waypoint_distance': 6.0,
    },
    'exit': {
        'detection_radius': 0.8,
        'waypoint_reach_distance': 0.8,
    },
    'graph': {
        'door_probe_distance': 0.5,
    },
    'planner': {
        'column_offset': 0.45,
        'tangent_points': 16,
        'dedupe_distance': 0.01,
    },
    'analytics': {
        'enabled': True,
        'sampling_rate': 0.5,
        'export_csv': True,
        'csv_path': 'output/evacuation_analytics.csv',
    },
    'output': {
        'directory': 'output',
        'route_map_path': 'output/evacuation_routes.png',
    },
}


def merge_config(base: dict, overrides: Optional[dict]) -> dict:
    """Recursively merge overrides into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> dict:
    """
    Load configuration from a YAML file, layered over DEFAULT_CONFIG.

    A missing or empty path yields the defaults.
    """
    if not config_path or not Path(config_path).exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, 'r') as f:
        overrides = yaml.safe_load(f)

    if overrides is not None and not isinstance(overrides, dict):
        raise ValueError(f"Configuration file '{config_path}' must contain a mapping")

    return merge_config(DEFAULT_CONFIG, overrides)
