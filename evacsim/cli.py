"""
Command-line interface
Runs an evacuation simulation on a floor plan snapshot
"""

import time
import logging
import argparse

from .config import load_config
from .floorplan import load_floorplan
from .simulation_engine import EvacuationSimulation
from .visualizer import export_route_map


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Building Evacuation Simulation',
        epilog='Examples:\n'
               '  python main.py scenarios/two_rooms.yaml\n'
               '  python main.py scenarios/two_storeys.yaml --agents 10 --speed 1.2\n'
               '  python main.py plan.yaml --config config.yaml --route-map output/routes.png',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'floorplan',
        type=str,
        help='Path to a floor plan snapshot (YAML or JSON)'
    )
    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration file (defaults are used if it does not exist)'
    )
    parser.add_argument(
        '--agents',
        type=int,
        help='Occupants per room (1-50)'
    )
    parser.add_argument(
        '--speed',
        type=float,
        help='Base walking speed in m/s (0.5-5)'
    )
    parser.add_argument(
        '--duration',
        type=float,
        help='Maximum simulated time in seconds'
    )
    parser.add_argument(
        '--dt',
        type=float,
        help='Simulation time step in seconds'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for spawning and speed variation'
    )
    parser.add_argument(
        '--csv',
        type=str,
        help='Write the analytics time series to this CSV file'
    )
    parser.add_argument(
        '--route-map',
        type=str,
        help='Save an image of the evacuation routes to this file'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def main(argv=None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    try:
        config = load_config(args.config)
        plan = load_floorplan(args.floorplan)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if args.seed is not None:
        config['simulation']['seed'] = args.seed

    print(f"Loading floorplan: {args.floorplan}")
    print(f"[+] {len(plan.spaces)} spaces, {len(plan.doors)} doors, {len(plan.walls)} walls, "
          f"{len(plan.stairs)} stairs")

    simulation = EvacuationSimulation(config)
    if args.agents is not None:
        simulation.set_agents_per_space(args.agents)
    if args.speed is not None:
        simulation.set_agent_speed(args.speed)

    if not simulation.start_from_floorplan(plan):
        print("Error: No exit doors found. Simulation not started.")
        return 1

    for warning in simulation.warnings:
        print(f"Warning: {warning}")

    if args.route_map or config['output'].get('route_map_path'):
        route_map = export_route_map(simulation.environment, simulation.graph, simulation.routes,
                                     args.route_map or config['output']['route_map_path'])
        print(f"[+] Route map saved to {route_map}")

    duration = args.duration if args.duration is not None else config['simulation']['duration']
    dt = args.dt if args.dt is not None else config['simulation']['time_step']

    print("=" * 60)
    print("Starting Evacuation Simulation")
    print("=" * 60)
    print(f"Duration: {duration}s, Time step: {dt:.4f}s")
    print(f"Agents: {simulation.stats.total_agents} ({simulation.agents_per_space} per room)")
    print(f"Exits: {len(simulation.graph.exit_doors)}")
    print("=" * 60)

    start_time = time.time()
    try:
        stats = simulation.run(duration, dt)
    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user.")
        return 130
    elapsed_time = time.time() - start_time

    print("\n" + "=" * 60)
    print("Simulation Complete")
    print("=" * 60)
    print(f"Simulated time: {stats.elapsed_time:.1f}s")
    print(f"Real time: {elapsed_time:.1f}s")
    print(f"Evacuated: {stats.exited_agents}/{stats.total_agents}")

    print(simulation.analytics.generate_summary_report())

    if args.csv or simulation.analytics.export_csv:
        csv_path = simulation.analytics.export_to_csv(args.csv)
        if csv_path:
            print(f"\nTime series data exported to {csv_path}")

    return 0
