"""
Route Map Export
Static plot of collision geometry, exits and every room's evacuation route
"""

import logging
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Polygon
from pathlib import Path
from typing import Dict, Optional

from .environment import Environment, SegmentKind
from .room_graph import RoomGraph

logger = logging.getLogger(__name__)


def _storey_ids(graph: RoomGraph):
    ids = []
    for node in graph.nodes.values():
        if node.storey_id not in ids:
            ids.append(node.storey_id)
    return sorted(ids, key=lambda s: min(n.elevation for n in graph.nodes.values() if n.storey_id == s)) or [None]


def _draw_storey(ax, environment: Environment, graph: RoomGraph, routes: Dict, storey_id: Optional[str]):
    # Room outlines
    for node in graph.rooms_on_storey(storey_id):
        ax.add_patch(Polygon(node.polygon, closed=True, facecolor='#f2f2f2',
                             edgecolor='#bbbbbb', linewidth=0.5))
        cx = sum(p[0] for p in node.polygon) / len(node.polygon)
        cy = sum(p[1] for p in node.polygon) / len(node.polygon)
        ax.text(cx, cy, node.name or node.space_id, ha='center', va='center', fontsize=8, color='gray')

    # Walls and counters
    for segment in environment.segments_for_storey(storey_id):
        color = 'black' if segment.kind is SegmentKind.WALL else '#8b5a2b'
        ax.plot([segment.start[0], segment.end[0]], [segment.start[1], segment.end[1]],
                color=color, linewidth=2)

    # Columns and furniture
    for obstacle in environment.obstacles_for_storey(storey_id):
        ax.add_patch(Circle(obstacle.position, obstacle.radius, facecolor='#333333',
                            edgecolor='black', alpha=0.8))

    # Exits
    for exit_door in graph.exit_doors:
        if storey_id is not None and exit_door.storey_id not in (None, storey_id):
            continue
        ax.add_patch(Circle(exit_door.position[:2], 0.3, facecolor='#00FF00',
                            edgecolor='darkgreen', linewidth=2))
        ax.text(exit_door.position[0], exit_door.position[1] + 0.4, 'EXIT',
                ha='center', fontsize=8, fontweight='bold', color='darkgreen')

    # Evacuation routes, only the parts drawn at this storey's elevation
    for route in routes.values():
        node = graph.get(route.space_id)
        rooms = graph.rooms_on_storey(storey_id)
        if not rooms:
            continue
        elevation = rooms[0].elevation
        for run in route.points_at_elevation(elevation):
            xs = [p[0] for p in run]
            ys = [p[1] for p in run]
            ax.plot(xs, ys, color='green', linewidth=1.5, alpha=0.8)
        if node is not None and node.storey_id == storey_id:
            ax.plot(route.farthest_corner[0], route.farthest_corner[1], 'o', color='red', markersize=5)

    ax.set_aspect('equal')
    ax.autoscale_view()
    ax.set_xlabel('X (meters)')
    ax.set_ylabel('Y (meters)')
    ax.set_title(f'Storey {storey_id}' if storey_id is not None else 'Evacuation Routes')
    ax.grid(True, alpha=0.2, linestyle=':', linewidth=0.5)


def export_route_map(environment: Environment, graph: RoomGraph, routes: Dict,
                     filename: str = 'output/evacuation_routes.png') -> str:
    """
    Save a route map image with one panel per storey.

    Args:
        environment: Collision geometry
        graph: Room graph (rooms and exit doors)
        routes: Evacuation routes keyed by space id
        filename: Output image path

    Returns:
        The path written
    """
    Path(filename).parent.mkdir(parents=True, exist_ok=True)

    storeys = _storey_ids(graph)
    fig, axes = plt.subplots(1, len(storeys), figsize=(8 * len(storeys), 8), squeeze=False)

    for ax, storey_id in zip(axes[0], storeys):
        _draw_storey(ax, environment, graph, routes, storey_id)

    fig.suptitle('Evacuation Routes', fontsize=14, fontweight='bold')
    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info("Saved route map to %s", filename)
    return str(filename)
