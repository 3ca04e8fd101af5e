"""Shared floor plan fixtures."""

import pytest

from evacsim.floorplan import FloorPlan, Storey, Space, Wall, Door, Column, Stair


def square(x0, y0, x1, y1):
    return ((x0, y0), (x1, y0), (x1, y1), (x0, y1))


@pytest.fixture
def two_room_plan():
    """
    Interior room A [0,4]x[0,4] opening into exit room B [4,8]x[0,4].

    The interior door sits at (4, 2), the exterior exit at (8, 2).
    """
    return FloorPlan(
        storeys=[Storey('L0', 0.0)],
        spaces=[
            Space('A', square(0, 0, 4, 4), storey_id='L0', name='Room A'),
            Space('B', square(4, 0, 8, 4), storey_id='L0', name='Room B'),
        ],
        walls=[
            Wall('south-a', (0, 0), (4, 0), 'L0'),
            Wall('west', (0, 4), (0, 0), 'L0'),
            Wall('north-a', (4, 4), (0, 4), 'L0'),
            Wall('middle', (4, 0), (4, 4), 'L0'),
            Wall('south-b', (4, 0), (8, 0), 'L0'),
            Wall('east', (8, 0), (8, 4), 'L0'),
            Wall('north-b', (8, 4), (4, 4), 'L0'),
        ],
        doors=[
            Door('inner', 'middle', 0.5, 0.9),
            Door('exit', 'east', 0.5, 0.9, is_external=True),
        ],
    )


@pytest.fixture
def column_room_plan():
    """
    Single 6x4 room with the exit at (6, 0.5) and a column of radius 0.3
    on the straight line from the far corner (0, 4) to the exit.
    """
    return FloorPlan(
        storeys=[Storey('L0', 0.0)],
        spaces=[Space('R', square(0, 0, 6, 4), storey_id='L0')],
        walls=[
            Wall('south', (0, 0), (6, 0), 'L0'),
            Wall('east', (6, 0), (6, 4), 'L0'),
            Wall('north', (6, 4), (0, 4), 'L0'),
            Wall('west', (0, 4), (0, 0), 'L0'),
        ],
        doors=[Door('exit', 'east', 0.125, 0.9, is_external=True)],
        columns=[Column('col', (3.0, 2.25), 0.4, 0.4, 'L0')],
    )


@pytest.fixture
def stacked_plan():
    """
    Two stacked 4x4 rooms joined by a stair from (1, 2) on L0 up to (3, 2)
    on L1. The only exit is on the lower storey at (4, 2).
    """
    walls = []
    for storey in ('L0', 'L1'):
        walls.extend([
            Wall(f'{storey}-south', (0, 0), (4, 0), storey),
            Wall(f'{storey}-east', (4, 0), (4, 4), storey),
            Wall(f'{storey}-north', (4, 4), (0, 4), storey),
            Wall(f'{storey}-west', (0, 4), (0, 0), storey),
        ])

    return FloorPlan(
        storeys=[Storey('L0', 0.0), Storey('L1', 3.0)],
        spaces=[
            Space('lower', square(0, 0, 4, 4), storey_id='L0'),
            Space('upper', square(0, 0, 4, 4), storey_id='L1'),
        ],
        walls=walls,
        doors=[Door('exit', 'L0-east', 0.5, 0.9, is_external=True)],
        stairs=[Stair('stair', (1.0, 2.0), 0.0, 2.0, 3.0, 'L0', 'L1')],
    )
