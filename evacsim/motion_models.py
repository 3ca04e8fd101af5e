"""
Motion Models: Path Following and Separation Steering
Vehicle-style steering forces that move agents along their routes
"""

import numpy as np
from typing import Dict, List, Optional
from scipy.spatial import KDTree


class PathFollowingBehavior:
    """
    Seeks the agent's current waypoint.

    Intermediate waypoints are approached at full speed; the final one is
    approached with arrival, slowing down inside arrival_radius so the agent
    does not overshoot the exit.
    """

    def __init__(self, config: dict):
        self.arrival_radius = config.get('arrival_radius', 1.5)

    def calculate(self, agent) -> np.ndarray:
        waypoint = agent.current_waypoint()
        if waypoint is None:
            return -agent.velocity

        to_target = np.asarray(waypoint.position[:2], dtype=float) - agent.position_2d
        dist = np.linalg.norm(to_target)
        if dist < 1e-6:
            return -agent.velocity

        speed = agent.max_speed
        if agent.is_on_final_waypoint() and dist < self.arrival_radius:
            speed = agent.max_speed * dist / self.arrival_radius

        desired_velocity = to_target / dist * speed
        return desired_velocity - agent.velocity


class SeparationBehavior:
    """Pushes an agent away from neighbours, stronger the closer they are."""

    def calculate(self, agent, neighbor_positions: np.ndarray) -> np.ndarray:
        force = np.zeros(2)
        for other in neighbor_positions:
            offset = agent.position_2d - other
            dist_sq = float(offset @ offset)
            if dist_sq < 1e-12:
                continue
            # Normalised direction divided by distance
            force += offset / dist_sq
        return force


class NeighborIndex:
    """
    Snapshot of agent positions for neighbour queries.

    Built from all active agents before anyone moves, so every separation
    force of a tick reads the same positions.
    """

    def __init__(self, agents: List):
        self._trees: Dict[Optional[str], KDTree] = {}
        self._ids: Dict[Optional[str], np.ndarray] = {}
        self._positions: Dict[Optional[str], np.ndarray] = {}

        by_storey: Dict[Optional[str], List] = {}
        for agent in agents:
            by_storey.setdefault(agent.current_storey_id, []).append(agent)

        for storey_id, members in by_storey.items():
            positions = np.array([a.position_2d for a in members], dtype=float)
            self._positions[storey_id] = positions
            self._ids[storey_id] = np.array([a.id for a in members])
            self._trees[storey_id] = KDTree(positions)

    def neighbors(self, agent, radius: float) -> np.ndarray:
        """Snapshot positions of other agents on the same storey within radius."""
        tree = self._trees.get(agent.current_storey_id)
        if tree is None:
            return np.zeros((0, 2))

        indices = tree.query_ball_point(agent.position_2d, radius)
        ids = self._ids[agent.current_storey_id]
        keep = [i for i in indices if ids[i] != agent.id]
        return self._positions[agent.current_storey_id][keep]


class SteeringModel:
    """
    Combines path following and separation into one steering force and
    integrates it.

    Separation is weighted above path following, which makes agents queue
    at doors instead of piling into them.
    """

    def __init__(self, config: dict):
        self.neighborhood_radius = config.get('neighborhood_radius', 1.5)
        self.separation_weight = config.get('separation_weight', 2.0)
        self.path_follow_weight = config.get('path_follow_weight', 1.0)

        self.path_following = PathFollowingBehavior(config)
        self.separation = SeparationBehavior()

    def compute_force(self, agent, neighbor_index: NeighborIndex) -> np.ndarray:
        """Weighted steering force, truncated to the agent's max force."""
        if agent.has_exited:
            return np.zeros(2)

        force = self.path_following.calculate(agent) * self.path_follow_weight
        neighbors = neighbor_index.neighbors(agent, self.neighborhood_radius)
        if len(neighbors):
            force = force + self.separation.calculate(agent, neighbors) * self.separation_weight

        magnitude = np.linalg.norm(force)
        if magnitude > agent.max_force:
            force = force * (agent.max_force / magnitude)
        return force

    def integrate(self, agent, force: np.ndarray, dt: float):
        """Apply a steering force for one timestep."""
        if agent.has_exited:
            return

        acceleration = force / agent.mass
        agent.velocity = agent.velocity + acceleration * dt

        speed = np.linalg.norm(agent.velocity)
        if speed > agent.max_speed:
            agent.velocity = agent.velocity * (agent.max_speed / speed)

        agent.update_position(dt)
