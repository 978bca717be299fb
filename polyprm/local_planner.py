"""Straight-line local planner and the matching path animation.

A move from ``o1`` to ``o2`` is: turn on the spot to face ``o2``, drive the
straight line, turn on the spot to ``o2.angle``. Collision checks sample each
phase with dyadic refinement until the step is below the resolution, so the
first samples are spread over the whole motion.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional

from .configuration import RobotOrientation
from .polygons.polypoly import PolyPoly


def _angular_resolution(robot: PolyPoly, resolution: float) -> float:
    """Angle step that moves no robot point further than ``resolution``."""
    bb = robot.bounding_box()
    if bb is None:
        return resolution
    radius = math.sqrt(max(bb.x1 * bb.x1 + bb.y1 * bb.y1, bb.x2 * bb.x2 + bb.y2 * bb.y2))
    return math.atan2(resolution, radius)


def _unwrap(a1: float, a2: float):
    """Shift one angle by a full turn so the two differ by at most pi."""
    if abs(a2 - a1) > math.pi:
        if a2 < a1:
            a2 += 2 * math.pi
        else:
            a1 += 2 * math.pi
    return a1, a2


class StraightLineLocalPlanner:
    def __init__(self, resolution: float):
        self.resolution = resolution

    def _collides_along_line(self, bot: PolyPoly, course: PolyPoly,
                             x1: float, y1: float, dx: float, dy: float, length: float) -> bool:
        """Sample the line at r = 1/2, then 1/4 and 3/4, and so on.

        ``bot`` must be at the origin; it is put back there before returning.
        """
        start = 0.5
        step = 1.0
        old_x = 0.0
        old_y = 0.0
        while True:
            r = start
            while True:
                x = x1 + r * dx
                y = y1 + r * dy
                bot.move(x - old_x, y - old_y)
                old_x = x
                old_y = y
                if bot.intersects(course):
                    bot.move(-x, -y)
                    return True
                r += step
                if r > 1.0:
                    break
            if start * length < self.resolution:
                bot.move(-x, -y)
                return False
            start /= 2
            step /= 2

    @staticmethod
    def _collides_while_rotating(bot: PolyPoly, course: PolyPoly, x: float, y: float,
                                 a1: float, a2: float, angle_resolution: float) -> bool:
        """Turn ``bot`` at ``(x, y)`` from ``a1`` to ``a2`` the short way round."""
        a1, a2 = _unwrap(a1, a2)
        da = a2 - a1

        bot.move(x, y)
        start = 0.0
        step = 1.0
        old_a = 0.0
        while True:
            r = start
            while True:
                a = a1 + r * da
                bot.rotate(a - old_a, x, y)
                old_a = a
                if bot.intersects(course):
                    bot.rotate(-a, x, y)
                    bot.move(-x, -y)
                    return True
                r += step
                if r > 1.0:
                    break
            if start == 0.0:
                step = 1.0
                start = 0.5
            elif start * abs(da) < angle_resolution:
                bot.rotate(-a, x, y)
                bot.move(-x, -y)
                return False
            else:
                start /= 2
                step /= 2

    def can_move(self, robot: PolyPoly, course: PolyPoly,
                 o1: RobotOrientation, o2: RobotOrientation) -> int:
        """Returns 3 if either shape is empty, -1 on a collision and 1 otherwise."""
        if robot.is_empty() or course.is_empty():
            return 3

        dx = o2.x - o1.x
        dy = o2.y - o1.y
        length = math.sqrt(dx * dx + dy * dy)
        heading = math.atan2(dy, dx) if length > 0.0 else o1.angle

        bot = robot.copy()
        bot.rotate(heading)
        if length > 0.0 and self._collides_along_line(bot, course, o1.x, o1.y, dx, dy, length):
            return -1
        bot.rotate(-heading)

        ares = _angular_resolution(robot, self.resolution)
        if (self._collides_while_rotating(bot, course, o1.x, o1.y, o1.angle, heading, ares)
                or self._collides_while_rotating(bot, course, o2.x, o2.y, heading, o2.angle, ares)):
            return -1
        return 1

    def animate(self, robot: PolyPoly, o1: RobotOrientation, o2: RobotOrientation,
                o3: Optional[RobotOrientation] = None) -> 'PathAnimator':
        return PathAnimator(robot, o1, o2, o3, self.resolution)


class PathAnimator:
    """Iterator over intermediate configurations of one straight-line move.

    Yields the turn towards ``o2``, the drive, the final turn and ``o2``
    itself. If the following waypoint ``o3`` is known and turning to
    ``o2.angle`` would only be undone right away, the animation turns
    straight to the departure heading instead.
    """

    def __init__(self, robot: PolyPoly, o1: RobotOrientation, o2: RobotOrientation,
                 o3: Optional[RobotOrientation] = None, resolution: float = 0.1):
        self.phase = 0
        self.x = o1.x
        self.y = o1.y
        self.angle = o1.angle
        self.target = o2
        self.target_angle = o2.angle
        self.resolution = resolution

        dx = o2.x - o1.x
        dy = o2.y - o1.y
        length = math.sqrt(dx * dx + dy * dy)
        self.face_angle = math.atan2(dy, dx) if length > 0.0 else o1.angle

        if o3 is not None:
            dx2 = o3.x - o2.x
            dy2 = o3.y - o2.y
            departure = o2.angle
            if dx2 != 0.0 or dy2 != 0.0:
                departure = math.atan2(dy2, dx2)
            o2a, dep = _unwrap(o2.angle, departure)
            da1 = dep - o2a
            o2a, fta = _unwrap(o2.angle, self.face_angle)
            da2 = o2a - fta
            if da1 * da2 < 0 or abs(da1 + da2) > 2 * math.pi:
                self.target_angle = departure

        self.angular_resolution = _angular_resolution(robot, resolution)

    def __iter__(self) -> 'PathAnimator':
        return self

    def __next__(self) -> RobotOrientation:
        if self.phase == 0:
            return self._rotate_to(self.face_angle)
        if self.phase == 1:
            return self._move_towards_target()
        if self.phase == 2:
            return self._rotate_to(self.target_angle)
        if self.phase == 3:
            self.phase += 1
            return RobotOrientation(self.target.x, self.target.y, self.target_angle)
        raise StopIteration

    def _rotate_to(self, target_angle: float) -> RobotOrientation:
        self.angle, target_angle = _unwrap(self.angle, target_angle)
        if abs(self.angle - target_angle) < self.angular_resolution:
            self.angle = target_angle
            self.phase += 1
            return next(self)
        if target_angle > self.angle:
            self.angle += self.angular_resolution
        else:
            self.angle -= self.angular_resolution
        return RobotOrientation(self.x, self.y, self.angle)

    def _move_towards_target(self) -> RobotOrientation:
        dx = self.target.x - self.x
        dy = self.target.y - self.y
        dist = math.sqrt(dx * dx + dy * dy)
        if dist < self.resolution:
            self.x = self.target.x
            self.y = self.target.y
            self.phase += 1
            return next(self)
        factor = self.resolution / dist
        self.x += dx * factor
        self.y += dy * factor
        return RobotOrientation(self.x, self.y, self.angle)


def animate_road(robot: PolyPoly, road: List[RobotOrientation],
                 resolution: float) -> Iterator[RobotOrientation]:
    """Configurations along a whole road, starting with its first waypoint."""
    if not road:
        return
    current = road[0]
    yield current
    for i in range(1, len(road)):
        following = road[i + 1] if i + 1 < len(road) else None
        for current in PathAnimator(robot, current, road[i], following, resolution):
            yield current
