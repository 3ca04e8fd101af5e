import math

import pytest

from evacsim.environment import Environment
from evacsim.floorplan import FloorPlan, Storey, Space, Wall, Door, Stair
from evacsim.geometry import closest_point_on_segment, distance_2d
from evacsim.room_graph import RoomGraph, RoomNode, DoorEdge, StairEdge
from evacsim.route_planner import RoutePlanner, HopKind

SQUARE = ((0, 0), (4, 0), (4, 4), (0, 4))


def _planner(plan):
    environment = Environment.from_floorplan(plan)
    graph = RoomGraph.build(plan)
    return RoutePlanner(graph, environment)


def test_room_with_exit_gets_single_waypoint(two_room_plan):
    waypoints = _planner(two_room_plan).find_path_to_exit('B')
    assert len(waypoints) == 1
    assert waypoints[0].is_exit
    assert waypoints[0].door_id == 'exit'


def test_interior_room_routes_through_door(two_room_plan):
    waypoints = _planner(two_room_plan).find_path_to_exit('A')
    assert [w.hop_id for w in waypoints] == ['inner', 'exit']
    assert waypoints[-1].is_exit
    assert not waypoints[0].is_exit


def test_unknown_room_has_no_route(two_room_plan):
    assert _planner(two_room_plan).find_path_to_exit('nowhere') == []


def test_unreachable_room_has_no_route(two_room_plan):
    plan = FloorPlan(spaces=two_room_plan.spaces, walls=two_room_plan.walls,
                     doors=[d for d in two_room_plan.doors if d.id == 'exit'])
    planner = _planner(plan)

    assert planner.find_path_to_exit('A') == []
    assert set(planner.calculate_all_evacuation_routes()) == {'B'}


def test_upper_room_descends_stair(stacked_plan):
    planner = _planner(stacked_plan)

    waypoints = planner.find_path_to_exit('upper')
    assert [w.kind for w in waypoints] == [HopKind.STAIR, HopKind.DOOR]
    assert waypoints[0].target_storey_id == 'L0'
    assert waypoints[0].landing == pytest.approx((1.0, 2.0, 0.0))
    assert waypoints[-1].is_exit


def test_ascending_stair_is_never_used(stacked_plan):
    # Exit only upstairs: the lower room cannot climb to it
    plan = FloorPlan(
        storeys=stacked_plan.storeys,
        spaces=stacked_plan.spaces,
        walls=stacked_plan.walls,
        doors=[Door('exit', 'L1-east', 0.5, 0.9, is_external=True)],
        stairs=stacked_plan.stairs,
    )
    planner = _planner(plan)

    assert planner.find_path_to_exit('lower') == []
    assert len(planner.find_path_to_exit('upper')) == 1


def test_descending_stair_preferred_over_door():
    exit_door = DoorEdge('out', (9.0, 9.0, 0.0), None, True)
    graph = RoomGraph({
        'A': RoomNode('A', 'L1', 3.0, SQUARE,
                      doors=[DoorEdge('ab', (4.0, 2.0, 3.0), 'B', False)],
                      stairs=[StairEdge('s', (1.0, 1.0, 3.0), 'L0', 'C', True, (1.0, 3.0, 0.0))]),
        'B': RoomNode('B', 'L1', 3.0, SQUARE, doors=[DoorEdge('out-b', (8.0, 2.0, 3.0), None, True)]),
        'C': RoomNode('C', 'L0', 0.0, SQUARE, doors=[exit_door]),
    })
    planner = RoutePlanner(graph, Environment([], []))

    waypoints = planner.find_path_to_exit('A')
    assert [w.hop_id for w in waypoints] == ['s', 'out']


def test_route_polyline_for_two_rooms(two_room_plan):
    route = _planner(two_room_plan).calculate_all_evacuation_routes()['A']

    assert route.farthest_corner == pytest.approx((0.0, 0.0, 0.0))
    assert route.path_points[0] == pytest.approx((0.0, 0.0, 0.0))
    assert route.path_points[-1] == pytest.approx((8.0, 2.0, 0.0))
    assert route.exit_door_id == 'exit'
    expected = math.hypot(4, 2) + 4.0
    assert route.total_distance == pytest.approx(expected)


def test_route_bends_around_column(column_room_plan):
    route = _planner(column_room_plan).calculate_all_evacuation_routes()['R']
    center = (3.0, 2.25)

    assert route.farthest_corner == pytest.approx((0.0, 4.0, 0.0))
    assert len(route.path_points) > 2
    for a, b in zip(route.path_points[:-1], route.path_points[1:]):
        closest = closest_point_on_segment(center, a, b)
        # Column radius 0.3 inflated by the 0.45 clearance
        assert distance_2d(closest, center) >= 0.75 - 1e-6


def test_stair_route_includes_landing_and_changes_elevation(stacked_plan):
    route = _planner(stacked_plan).calculate_all_evacuation_routes()['upper']

    assert (3.0, 2.0, 3.0) in [tuple(p) for p in route.path_points]
    assert (1.0, 2.0, 0.0) in [tuple(p) for p in route.path_points]
    assert [len(run) for run in route.points_at_elevation(0.0)] == [2]
    assert route.total_distance > 3.0


def test_upper_farthest_corner_ignores_lower_storey_exit():
    # Stair head at (1, 2) upstairs; the exit downstairs lies under the far end
    walls = []
    for storey in ('L0', 'L1'):
        walls.extend([
            Wall(f'{storey}-south', (0, 0), (8, 0), storey),
            Wall(f'{storey}-east', (8, 0), (8, 4), storey),
            Wall(f'{storey}-north', (8, 4), (0, 4), storey),
            Wall(f'{storey}-west', (0, 4), (0, 0), storey),
        ])
    plan = FloorPlan(
        storeys=[Storey('L0', 0.0), Storey('L1', 3.0)],
        spaces=[
            Space('lower', ((0, 0), (8, 0), (8, 4), (0, 4)), storey_id='L0'),
            Space('upper', ((0, 0), (8, 0), (8, 4), (0, 4)), storey_id='L1'),
        ],
        walls=walls,
        doors=[Door('exit', 'L0-east', 0.5, 0.9, is_external=True)],
        stairs=[Stair('stair', (3.0, 2.0), math.pi, 2.0, 3.0, 'L0', 'L1')],
    )

    route = _planner(plan).calculate_all_evacuation_routes()['upper']

    assert route.farthest_corner[0] == pytest.approx(8.0)
    assert distance_2d(route.farthest_corner, (1.0, 2.0)) > 7.0
    assert route.farthest_corner[2] == pytest.approx(3.0)
