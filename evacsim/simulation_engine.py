"""
Simulation Engine
Main time-stepping loop and coordination
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional

from .agent import Agent
from .analytics import AnalyticsCollector
from .config import DEFAULT_CONFIG, merge_config
from .environment import Environment
from .floorplan import FloorPlan
from .geometry import distance_2d, nearest_point_on_polyline
from .motion_models import NeighborIndex, SteeringModel
from .population import PopulationGenerator
from .room_graph import RoomGraph
from .route_planner import EvacuationRoute, RoutePlanner

logger = logging.getLogger(__name__)

MIN_AGENTS_PER_SPACE = 1
MAX_AGENTS_PER_SPACE = 50
MIN_AGENT_SPEED = 0.5
MAX_AGENT_SPEED = 5.0


@dataclass
class SimulationStats:
    total_agents: int = 0
    exited_agents: int = 0
    elapsed_time: float = 0.0


class EvacuationSimulation:
    """
    Owns one evacuation run: the static geometry, graph and routes built at
    start, and the agents advanced by update().

    Args:
        config: Configuration overrides, merged over DEFAULT_CONFIG
    """

    def __init__(self, config: dict = None):
        self.config = merge_config(DEFAULT_CONFIG, config)
        sim_config = self.config['simulation']

        self.agents_per_space = _clamp(int(sim_config.get('agents_per_space', 5)),
                                       MIN_AGENTS_PER_SPACE, MAX_AGENTS_PER_SPACE)
        self.agent_speed = _clamp(float(sim_config.get('agent_speed', 1.5)),
                                  MIN_AGENT_SPEED, MAX_AGENT_SPEED)
        self.seed = sim_config.get('seed', None)

        collision = self.config['collision']
        self.wall_push_distance = collision.get('wall_push_distance', 0.35)
        self.wall_push_near_door = collision.get('wall_push_near_door', 0.15)
        self.wall_push_cooldown = collision.get('wall_push_cooldown', 0.1)
        self.door_proximity_threshold = collision.get('door_proximity_threshold', 1.0)

        stuck = self.config['stuck']
        self.movement_threshold = stuck.get('movement_threshold', 0.02)
        self.stuck_frames_limit = stuck.get('frames_limit', 45)
        self.push_cooldown_frames = stuck.get('push_cooldown_frames', 30)
        self.push_speed_factor = stuck.get('push_speed_factor', 0.7)
        self.min_push_distance = stuck.get('min_push_distance', 0.3)
        self.max_route_distance = stuck.get('max_route_distance', 3.0)
        self.max_waypoint_distance = stuck.get('max_waypoint_distance', 6.0)

        exit_config = self.config['exit']
        self.exit_detection_radius = exit_config.get('detection_radius', 0.8)
        self.waypoint_reach_distance = exit_config.get('waypoint_reach_distance', 0.8)

        self.steering = SteeringModel(self.config['agent'])

        self.reset()

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def set_agents_per_space(self, count: int):
        self.agents_per_space = _clamp(int(count), MIN_AGENTS_PER_SPACE, MAX_AGENTS_PER_SPACE)

    def set_agent_speed(self, speed: float):
        self.agent_speed = _clamp(float(speed), MIN_AGENT_SPEED, MAX_AGENT_SPEED)

    def reset(self):
        """Discard all agents and the precomputed graph, routes and geometry."""
        self.is_running = False
        self.agents: List[Agent] = []
        self.environment: Optional[Environment] = None
        self.graph: Optional[RoomGraph] = None
        self.routes: Dict[str, EvacuationRoute] = {}
        self.stats = SimulationStats()
        self.warnings: List[str] = []
        self.analytics = AnalyticsCollector(self.config['analytics'])
        self.rng = np.random.default_rng(self.seed)

    def stop_simulation(self):
        self.is_running = False

    def start_simulation(self, spaces, doors, walls, columns=None, furniture=None,
                         counters=None, stairs=None, storeys=None) -> bool:
        """
        Build geometry, graph and routes from a floor-plan snapshot and spawn
        occupants.

        Returns:
            True if the simulation is running, False if no exit was found
        """
        plan = FloorPlan(
            spaces=list(spaces or []),
            doors=list(doors or []),
            walls=list(walls or []),
            columns=list(columns or []),
            furniture=list(furniture or []),
            counters=list(counters or []),
            stairs=list(stairs or []),
            storeys=list(storeys or []),
        )
        return self.start_from_floorplan(plan)

    def start_from_floorplan(self, plan: FloorPlan) -> bool:
        self.reset()

        self.environment = Environment.from_floorplan(plan, self.config)
        self.graph = RoomGraph.build(plan, self.config['graph'])

        if not self.graph.exit_doors:
            self._warn("No exit doors found; simulation not started")
            return False

        planner = RoutePlanner(self.graph, self.environment, self.config['planner'])
        self.routes = planner.calculate_all_evacuation_routes()

        for space_id, node in self.graph.nodes.items():
            if space_id not in self.routes:
                self._warn(f"No path to exit from space {node.name or space_id}")

        logger.info("Found %d exits, %d segments, %d obstacles",
                    len(self.graph.exit_doors), len(self.environment.segments),
                    len(self.environment.obstacles))

        self.agents = self._create_agents()
        self.stats = SimulationStats(total_agents=len(self.agents))
        self.is_running = True

        logger.info("Spawned %d agents in %d spaces", len(self.agents), len(self.routes))
        return True

    def _create_agents(self) -> List[Agent]:
        """Spawn occupants for every routed room with jittered top speeds."""
        agent_config = self.config['agent']
        variation = agent_config.get('speed_variation', 0.2)

        generator = PopulationGenerator(self.config['population'], self.rng)
        spawns = generator.populate(self.graph, self.routes, self.agents_per_space)

        agents = []
        for space_id, points in spawns.items():
            route = self.routes[space_id]
            node = self.graph.get(space_id)
            for point in points:
                max_speed = self.agent_speed * (1.0 - variation / 2 + self.rng.random() * variation)
                agents.append(Agent(
                    agent_id=len(agents),
                    position=point,
                    waypoints=route.waypoints,
                    max_speed=max_speed,
                    storey_id=node.storey_id,
                    space_id=space_id,
                    max_force=agent_config.get('max_force', 10.0),
                    mass=agent_config.get('mass', 1.0),
                ))
        return agents

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)

    # ------------------------------------------------------------------
    # Time stepping
    # ------------------------------------------------------------------

    def update(self, dt: float):
        """
        Advance every active agent by one timestep.

        Forces for all agents are computed from one position snapshot before
        any agent moves.
        """
        if not self.is_running or dt <= 0:
            return

        active = [a for a in self.agents if not a.has_exited]
        neighbor_index = NeighborIndex(active)
        forces = [self.steering.compute_force(agent, neighbor_index) for agent in active]

        for agent, force in zip(active, forces):
            self.steering.integrate(agent, force, dt)

        elapsed = self.stats.elapsed_time + dt
        for agent in active:
            self._step_agent(agent, elapsed)

        self.stats.exited_agents = sum(1 for a in self.agents if a.has_exited)
        self.stats.elapsed_time = elapsed
        self.analytics.update(self.agents, elapsed)

        if self.stats.total_agents > 0 and self.stats.exited_agents >= self.stats.total_agents:
            logger.info("All agents evacuated in %.1fs", elapsed)
            self.is_running = False

    def _step_agent(self, agent: Agent, current_time: float):
        near_door = agent.nearest_waypoint_distance() < self.door_proximity_threshold
        push_distance = self._effective_push_distance(agent, near_door)

        self.environment.resolve_wall_collision(agent.position, agent.velocity, push_distance,
                                                near_door, agent.current_storey_id)
        self.environment.resolve_obstacle_collision(agent.position, agent.velocity,
                                                    agent.current_storey_id)

        self._detect_stuck(agent)
        agent.update_rotation()

        if not self._take_stair(agent):
            self._advance_waypoint_if_reached(agent)

        space_id = self.graph.locate(agent.position, agent.current_storey_id)
        if space_id is not None:
            agent.current_space_id = space_id

        if self._exit_reached(agent):
            agent.mark_exited(current_time)
            self.analytics.record_evacuation(agent.id, agent.source_space_id, current_time)

    def _effective_push_distance(self, agent: Agent, near_door: bool) -> float:
        if agent.push_cooldown > 0:
            agent.push_cooldown -= 1
            return self.wall_push_cooldown
        return self.wall_push_near_door if near_door else self.wall_push_distance

    def _detect_stuck(self, agent: Agent):
        moved = distance_2d(agent.prev_position, agent.position)

        if moved < self.movement_threshold:
            agent.stuck_frame_count += 1
            if agent.stuck_frame_count > self.stuck_frames_limit:
                self._push_unstuck(agent)
                agent.stuck_frame_count = 0
        else:
            agent.stuck_frame_count = 0

        agent.prev_position = agent.position[:2].copy()

    def _recovery_target(self, agent: Agent) -> Optional[np.ndarray]:
        """
        Point a stuck agent is pushed toward.

        Prefers the nearest point on the evacuation route at the agent's
        elevation (the current room's route, else the source room's); when on
        the route already, the next route vertex. Falls back to the current
        waypoint if it is not too far away.
        """
        runs = []
        for space_id in (agent.current_space_id, agent.source_space_id):
            route = self.routes.get(space_id)
            if route is not None:
                runs = route.points_at_elevation(agent.position[2])
                if runs:
                    break

        if runs:
            best = None
            for run in runs:
                point, dist, index = nearest_point_on_polyline(agent.position, run)
                if best is None or dist < best[1]:
                    best = (point, dist, index, run)

            if best is not None and best[1] <= self.max_route_distance:
                point, dist, index, run = best
                if dist > self.min_push_distance:
                    return point
                if index + 1 < len(run):
                    return np.asarray(run[index + 1][:2], dtype=float)

        waypoint = agent.current_waypoint()
        if waypoint is not None and distance_2d(agent.position, waypoint.position) <= self.max_waypoint_distance:
            return np.asarray(waypoint.position[:2], dtype=float)
        return None

    def _push_unstuck(self, agent: Agent):
        target = self._recovery_target(agent)
        if target is None:
            return

        to_target = target - agent.position_2d
        dist = np.linalg.norm(to_target)
        if dist > self.min_push_distance:
            agent.velocity = to_target / dist * agent.max_speed * self.push_speed_factor
            agent.push_cooldown = self.push_cooldown_frames

    def _take_stair(self, agent: Agent) -> bool:
        """Teleport to the other end of a stair once its near end is reached."""
        waypoint = agent.current_waypoint()
        if waypoint is None or not waypoint.is_stair or waypoint.landing is None:
            return False
        if waypoint.storey_id is not None and waypoint.storey_id != agent.current_storey_id:
            return False
        if distance_2d(agent.position, waypoint.position) >= self.waypoint_reach_distance:
            return False

        target = self.graph.get(waypoint.target_space_id)
        elevation = target.elevation if target is not None else waypoint.landing[2]
        agent.teleport(waypoint.landing, waypoint.target_storey_id, waypoint.target_space_id, elevation)
        agent.advance_waypoint()
        return True

    def _advance_waypoint_if_reached(self, agent: Agent):
        if agent.is_on_final_waypoint():
            return
        waypoint = agent.current_waypoint()
        if waypoint is None or waypoint.is_stair:
            return
        if distance_2d(agent.position, waypoint.position) < self.waypoint_reach_distance:
            agent.advance_waypoint()

    def _exit_reached(self, agent: Agent) -> bool:
        """Only the final waypoint of the agent's own route counts as its exit."""
        if not agent.is_on_final_waypoint():
            return False
        waypoint = agent.current_waypoint()
        if waypoint is None or not waypoint.is_exit:
            return False
        if waypoint.storey_id is not None and waypoint.storey_id != agent.current_storey_id:
            return False
        return distance_2d(agent.position, waypoint.position) < self.exit_detection_radius

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    def get_agent_states(self) -> Dict[int, dict]:
        return {agent.id: agent.to_state() for agent in self.agents}

    def run(self, duration: float = None, dt: float = None) -> SimulationStats:
        """
        Step the simulation headlessly until every agent has exited or the
        duration elapses.

        Returns:
            Final aggregate statistics
        """
        duration = self.config['simulation'].get('duration', 300.0) if duration is None else duration
        dt = self.config['simulation'].get('time_step', 1.0 / 30.0) if dt is None else dt

        steps = int(np.ceil(duration / dt)) if dt > 0 else 0
        for _ in range(steps):
            if not self.is_running:
                break
            self.update(dt)

        if self.is_running and self.stats.exited_agents < self.stats.total_agents:
            logger.info("Duration elapsed with %d of %d agents still inside",
                        self.stats.total_agents - self.stats.exited_agents, self.stats.total_agents)

        self.analytics.compute_kpis(self.stats.total_agents, self.stats.elapsed_time)
        return self.stats


def _clamp(value, lower, upper):
    return max(lower, min(upper, value))
