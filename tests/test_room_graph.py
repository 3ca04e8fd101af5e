import pytest

from evacsim.floorplan import FloorPlan, Space, Wall, Door
from evacsim.room_graph import RoomGraph, stair_head


def test_interior_door_links_both_rooms(two_room_plan):
    graph = RoomGraph.build(two_room_plan)

    a_doors = graph.get('A').doors
    b_doors = {d.door_id: d for d in graph.get('B').doors}

    assert len(a_doors) == 1
    assert a_doors[0].connects_to == 'B'
    assert not a_doors[0].is_exit
    assert b_doors['inner'].connects_to == 'A'
    assert a_doors[0].position == pytest.approx((4.0, 2.0, 0.0))


def test_boundary_door_is_terminal_exit(two_room_plan):
    graph = RoomGraph.build(two_room_plan)

    exit_edge = [d for d in graph.get('B').doors if d.door_id == 'exit'][0]
    assert exit_edge.is_exit
    assert exit_edge.connects_to is None
    assert [e.id for e in graph.exit_doors] == ['exit']
    assert not graph.get('A').has_exit
    assert graph.get('B').has_exit


def test_boundary_door_without_flag_is_exit():
    plan = FloorPlan(
        spaces=[Space('R', ((0, 0), (4, 0), (4, 4), (0, 4)))],
        walls=[Wall('e', (4, 0), (4, 4))],
        doors=[Door('d', 'e', 0.5)],
    )
    graph = RoomGraph.build(plan)
    assert graph.get('R').doors[0].is_exit


def test_external_flag_makes_shared_door_an_exit_for_both_rooms(two_room_plan):
    plan = FloorPlan(
        spaces=two_room_plan.spaces,
        walls=two_room_plan.walls,
        doors=[Door('inner', 'middle', 0.5, is_external=True)],
    )
    graph = RoomGraph.build(plan)

    assert graph.get('A').doors[0].is_exit
    assert graph.get('B').doors[0].is_exit
    assert graph.get('A').doors[0].connects_to is None


def test_door_on_unknown_wall_is_ignored(two_room_plan):
    plan = FloorPlan(spaces=two_room_plan.spaces, walls=[], doors=[Door('d', 'missing', 0.5)])
    graph = RoomGraph.build(plan)
    assert graph.exit_doors == []
    assert all(not node.doors for node in graph.nodes.values())


def test_degenerate_space_is_skipped():
    plan = FloorPlan(spaces=[Space('bad', ((0, 0), (1, 1)))])
    assert len(RoomGraph.build(plan)) == 0


def test_stair_edges_are_directional(stacked_plan):
    graph = RoomGraph.build(stacked_plan)

    lower = graph.get('lower').stairs
    upper = graph.get('upper').stairs

    assert len(lower) == 1 and not lower[0].is_descending
    assert len(upper) == 1 and upper[0].is_descending
    assert upper[0].connects_to_space == 'lower'
    assert upper[0].connects_to_storey == 'L0'
    assert upper[0].position == pytest.approx((3.0, 2.0, 3.0))
    assert upper[0].landing == pytest.approx((1.0, 2.0, 0.0))

    connection = graph.stair_connections[0]
    assert connection.bottom_space_id == 'lower'
    assert connection.top_space_id == 'upper'


def test_stacked_rooms_are_told_apart_by_storey(stacked_plan):
    graph = RoomGraph.build(stacked_plan)

    assert graph.locate((2, 2), 'L0') == 'lower'
    assert graph.locate((2, 2), 'L1') == 'upper'
    # The exit door on L0 must not be attached to the upper room
    assert graph.get('upper').doors == []
    assert graph.get('lower').doors[0].is_exit


def test_stair_head(stacked_plan):
    assert stair_head(stacked_plan.stairs[0], 0.0) == pytest.approx((3.0, 2.0, 3.0))
