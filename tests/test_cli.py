import shutil
from pathlib import Path

import pytest

from evacsim.cli import main

SCENARIOS = Path(__file__).resolve().parent.parent / 'scenarios'


@pytest.fixture
def plan_path(tmp_path):
    target = tmp_path / 'two_rooms.yaml'
    shutil.copy(SCENARIOS / 'two_rooms.yaml', target)
    return target


def test_cli_runs_scenario(plan_path, tmp_path, capsys):
    csv_path = tmp_path / 'series.csv'
    map_path = tmp_path / 'routes.png'

    code = main([
        str(plan_path),
        '--config', str(tmp_path / 'missing.yaml'),
        '--agents', '2',
        '--speed', '1.5',
        '--duration', '120',
        '--seed', '3',
        '--csv', str(csv_path),
        '--route-map', str(map_path),
    ])

    out = capsys.readouterr().out
    assert code == 0
    assert 'Simulation Complete' in out
    assert 'Evacuated: 4/4' in out
    assert csv_path.exists()
    assert map_path.exists()


def test_cli_runs_stacked_scenario(tmp_path, capsys):
    code = main([
        str(SCENARIOS / 'two_storeys.yaml'),
        '--config', str(tmp_path / 'missing.yaml'),
        '--agents', '1',
        '--csv', str(tmp_path / 'series.csv'),
        '--route-map', str(tmp_path / 'routes.png'),
    ])
    assert code == 0
    assert 'Evacuated: 2/2' in capsys.readouterr().out


def test_cli_missing_floorplan(tmp_path, capsys):
    code = main([str(tmp_path / 'nope.yaml'), '--config', str(tmp_path / 'missing.yaml')])
    assert code == 1
    assert 'Error' in capsys.readouterr().out


def test_cli_no_exits(tmp_path, capsys):
    plan = tmp_path / 'closed.yaml'
    plan.write_text(
        "spaces:\n"
        "  - {id: r, polygon: [[0, 0], [4, 0], [4, 4], [0, 4]]}\n"
        "walls:\n"
        "  - {id: w, start: [0, 0], end: [4, 0]}\n"
    )
    code = main([str(plan), '--config', str(tmp_path / 'missing.yaml'),
                 '--route-map', str(tmp_path / 'r.png')])
    assert code == 1
    assert 'No exit doors found' in capsys.readouterr().out
