"""Build course, robot, roadmap and planner from YAML scene and config."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .configuration import RobotOrientation
from .local_planner import StraightLineLocalPlanner
from .polygons.invariant import InvariantChecks
from .polygons.polypoly import PolyPoly
from .prp import PRP
from .roadmap import Roadmap

logger = logging.getLogger(__name__)


@dataclass
class Scene:
    name: str
    course: PolyPoly
    robot: PolyPoly
    roadmap: Roadmap
    planner: StraightLineLocalPlanner
    prp: PRP
    start: RobotOrientation
    goal: RobotOrientation


def checks_from_config(config: Dict[str, Any]) -> InvariantChecks:
    d = config.get('debug', {})
    return InvariantChecks(
        enabled=bool(d.get('check_invariants', False)),
        expensive=bool(d.get('expensive_checks', False)),
    )


def polygon_from_spec(spec: Dict[str, Any], checks: InvariantChecks) -> PolyPoly:
    """One scene polygon: either ``points: [[x, y], ...]`` or ``text: "{(x,y)...}"``."""
    if 'text' in spec:
        return PolyPoly.from_string(str(spec['text']), checks)
    coords: List[float] = []
    for x, y in spec.get('points', []):
        coords.extend((float(x), float(y)))
    return PolyPoly.from_coordinates(coords, checks)


def orientation_from_spec(values: Sequence[float]) -> RobotOrientation:
    if len(values) < 2:
        raise ValueError(f"configuration needs at least x and y, got {values!r}")
    angle = float(values[2]) if len(values) > 2 else math.pi / 2
    return RobotOrientation(float(values[0]), float(values[1]), angle)


def build_from_spec(config: Dict[str, Any], scene_data: Dict[str, Any],
                    rng: Optional[random.Random] = None) -> Scene:
    checks = checks_from_config(config)

    course = PolyPoly(checks)
    for spec in scene_data.get('course', []):
        piece = polygon_from_spec(spec, checks)
        if piece.is_empty():
            logger.warning("course polygon %s is degenerate, skipped", spec.get('id', '?'))
            continue
        course.unite_with(piece)

    robot = polygon_from_spec(scene_data['robot'], checks)
    if robot.is_empty():
        raise ValueError("robot polygon is empty")

    b = scene_data['bounds']
    g = scene_data.get('grid', {})
    roadmap = Roadmap(float(b['x1']), float(b['y1']), float(b['x2']), float(b['y2']),
                      int(g.get('x', 10)), int(g.get('y', 10)))

    planner_cfg = config.get('planner', {})
    roadmap.heuristic_factor = float(planner_cfg.get('heuristic_factor', roadmap.heuristic_factor))
    planner = StraightLineLocalPlanner(float(planner_cfg.get('resolution', 0.1)))

    prp = PRP(robot, planner, course, roadmap, rng)

    logger.info("scene %s: course %d convex pieces (area %.3f), robot %d pieces, grid %dx%d",
                scene_data.get('name', 'scene'), len(course.polygons), course.area(),
                len(robot.polygons), roadmap.gridx, roadmap.gridy)

    return Scene(
        name=str(scene_data.get('name', 'scene')),
        course=course,
        robot=robot,
        roadmap=roadmap,
        planner=planner,
        prp=prp,
        start=orientation_from_spec(scene_data['start']),
        goal=orientation_from_spec(scene_data['goal']),
    )


def placed_robot(robot: PolyPoly, o: RobotOrientation) -> PolyPoly:
    """Copy of ``robot`` rotated and moved to ``o``."""
    r = robot.copy()
    r.rotate(o.angle)
    r.move(o.x, o.y)
    return r


def is_free(scene: Scene, o: RobotOrientation) -> bool:
    return not placed_robot(scene.robot, o).intersects(scene.course)
