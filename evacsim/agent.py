"""
Evacuation Agent
Each agent is a point-mass vehicle following its room's route to an exit
"""

import math
import numpy as np
from typing import List, Optional

from .geometry import distance_2d


class Agent:
    """
    An occupant being evacuated.

    Attributes:
        id: Stable integer handle
        position: Current [x, y, z] position in meters
        velocity: Current [vx, vy] velocity in m/s
        rotation: Heading in radians
        max_speed: Individual top speed (m/s)
        waypoints: Route hops to follow, consumed in order
        current_waypoint_index: Index of the waypoint being walked to
        has_exited: Reached the final exit waypoint
        current_storey_id: Storey the agent is on
        current_space_id: Room the agent is in
        source_space_id: Room the agent spawned in
        stuck_frame_count: Consecutive frames with negligible movement
        push_cooldown: Frames left in which wall push-out is relaxed
    """

    def __init__(
        self,
        agent_id: int,
        position: np.ndarray,
        waypoints: List,
        max_speed: float,
        storey_id: Optional[str] = None,
        space_id: Optional[str] = None,
        max_force: float = 10.0,
        mass: float = 1.0
    ):
        self.id = agent_id
        self.position = np.array(position, dtype=float)
        self.velocity = np.zeros(2, dtype=float)
        self.rotation = 0.0
        self.max_speed = max_speed
        self.max_force = max_force
        self.mass = mass

        # Navigation
        self.waypoints = list(waypoints)
        self.current_waypoint_index = 0

        # State
        self.has_exited = False
        self.exit_time = None
        self.current_storey_id = storey_id
        self.current_space_id = space_id
        self.source_space_id = space_id

        # Stuck detection
        self.prev_position = self.position[:2].copy()
        self.stuck_frame_count = 0
        self.push_cooldown = 0

    @property
    def position_2d(self) -> np.ndarray:
        return self.position[:2]

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    def current_waypoint(self):
        """Waypoint being walked to, or None past the end of the route."""
        if self.current_waypoint_index < len(self.waypoints):
            return self.waypoints[self.current_waypoint_index]
        return None

    def is_on_final_waypoint(self) -> bool:
        return self.current_waypoint_index >= len(self.waypoints) - 1

    def advance_waypoint(self):
        """Move on to the next waypoint. The index never decreases."""
        if self.current_waypoint_index < len(self.waypoints) - 1:
            self.current_waypoint_index += 1

    def nearest_waypoint_distance(self) -> float:
        """Planar distance to the closest own waypoint on the current storey."""
        distances = [
            distance_2d(self.position, wp.position)
            for wp in self.waypoints
            if wp.storey_id is None or self.current_storey_id is None or wp.storey_id == self.current_storey_id
        ]
        return min(distances, default=float('inf'))

    def update_position(self, dt: float):
        """Integrate velocity over one timestep (planar only)."""
        if self.has_exited:
            return
        self.position[0] += self.velocity[0] * dt
        self.position[1] += self.velocity[1] * dt

    def update_rotation(self):
        if self.speed > 0.01:
            self.rotation = math.atan2(self.velocity[1], self.velocity[0])

    def teleport(self, landing, storey_id: Optional[str], space_id: Optional[str], elevation: float):
        """Jump to the other end of a stair; position and storey change together."""
        self.position = np.array([landing[0], landing[1], elevation], dtype=float)
        self.prev_position = self.position[:2].copy()
        self.current_storey_id = storey_id
        if space_id is not None:
            self.current_space_id = space_id
        self.stuck_frame_count = 0

    def mark_exited(self, time: float):
        self.has_exited = True
        self.exit_time = time
        self.velocity = np.zeros(2)

    def to_state(self) -> dict:
        """Observable state polled by a presentation layer."""
        return {
            'position': (float(self.position[0]), float(self.position[1]), float(self.position[2])),
            'rotation': self.rotation,
            'has_exited': self.has_exited,
            'storey_id': self.current_storey_id,
            'space_id': self.current_space_id,
        }

    def __repr__(self) -> str:
        status = "exited" if self.has_exited else "active"
        return (f"Agent({self.id}, pos={self.position}, "
                f"wp={self.current_waypoint_index}/{len(self.waypoints)}, {status})")
