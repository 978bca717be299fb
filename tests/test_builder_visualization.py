import json
import math
import random
from pathlib import Path

import pytest
import yaml

from polyprm.builder import build_from_spec, checks_from_config, is_free, orientation_from_spec
from polyprm.configuration import RobotOrientation as RO
from polyprm.visualization import make_gif, plot_raster, plot_scene, save_figure

ROOT = Path(__file__).resolve().parents[1]

SCENE = {
    'name': 'unit',
    'bounds': {'x1': 0, 'y1': 0, 'x2': 10, 'y2': 10},
    'grid': {'x': 5, 'y': 5},
    'robot': {'points': [[-0.5, -0.5], [0.5, -0.5], [0.5, 0.5], [-0.5, 0.5]]},
    'course': [
        {'id': 'low', 'points': [[0, 0], [10, 0], [10, 3], [0, 3]]},
        {'id': 'high', 'text': '{(0,7)(10,7)(10,10)(0,10)}'},
        {'id': 'flat', 'points': [[1, 1], [2, 2], [3, 3]]},
    ],
    'start': [1, 5, 0],
    'goal': [9, 5],
}

CONFIG = {
    'debug': {'check_invariants': True},
    'planner': {'resolution': 0.2, 'heuristic_factor': 0.9},
}


@pytest.fixture
def scene():
    return build_from_spec(CONFIG, SCENE, random.Random(1))


class TestBuilder:
    def test_scene_parts(self, scene):
        assert scene.name == 'unit'
        assert scene.course.area() == pytest.approx(60.0)
        assert scene.robot.area() == pytest.approx(1.0)
        assert scene.roadmap.gridx == 5
        assert scene.roadmap.heuristic_factor == pytest.approx(0.9)
        assert scene.planner.resolution == pytest.approx(0.2)
        assert scene.course.checks.enabled

    def test_start_and_goal(self, scene):
        assert scene.start == RO(1, 5, 0)
        assert scene.goal.angle == pytest.approx(math.pi / 2)
        assert is_free(scene, scene.start)
        assert not is_free(scene, RO(5, 2.8, 0))

    def test_orientation_needs_two_values(self):
        with pytest.raises(ValueError):
            orientation_from_spec([1])

    def test_empty_robot_is_rejected(self):
        bad = dict(SCENE, robot={'points': [[0, 0], [1, 0]]})
        with pytest.raises(ValueError):
            build_from_spec({}, bad)

    def test_checks_default_off(self):
        assert not checks_from_config({}).enabled

    def test_plan_in_corridor(self, scene):
        for x in range(1, 10):
            scene.prp.test_configuration(RO(x, 5, 0), 3, 1.5)
        road = scene.prp.road_from_to(scene.start, scene.goal, 2.0, 2, 2)
        assert road is not None
        assert road[0] == scene.start
        assert road[-1] == scene.goal

    def test_demo_files_load(self):
        with open(ROOT / 'configs' / 'demo_scene.yaml', encoding='utf-8') as f:
            scene_data = yaml.safe_load(f)
        with open(ROOT / 'configs' / 'demo_config.yaml', encoding='utf-8') as f:
            config = yaml.safe_load(f)
        demo = build_from_spec(config, scene_data, random.Random(0))
        assert len(demo.course.polygons) >= 4
        assert is_free(demo, demo.start)
        assert is_free(demo, demo.goal)


class TestVisualization:
    def test_figures_and_gif(self, scene, tmp_path):
        for x in range(1, 10):
            scene.prp.test_configuration(RO(x, 5, 0), 3, 1.5)
        road = scene.prp.road_from_to(scene.start, scene.goal, 2.0, 2, 2)

        fig, _ = plot_scene(scene, road=road)
        save_figure(fig, str(tmp_path / 'scene.png'), dpi=60)
        fig, _ = plot_raster(scene, 40, 40)
        save_figure(fig, str(tmp_path / 'raster.png'), dpi=60)
        frames = make_gif(scene, road, str(tmp_path / 'route.gif'),
                          {'resolution': 1.0, 'max_frames': 10, 'dpi': 40, 'duration_s': 0.05})

        assert (tmp_path / 'scene.png').stat().st_size > 0
        assert (tmp_path / 'raster.png').stat().st_size > 0
        assert (tmp_path / 'route.gif').stat().st_size > 0
        assert 1 <= frames <= 10

    def test_report_is_json_serialisable(self, scene):
        report = {'start': str(scene.start), 'nodes': scene.roadmap.num_nodes}
        assert json.loads(json.dumps(report))['start'] == '(1.0,5.0<0.0)'
