"""Probabilistic roadmap planning on top of :class:`~polyprm.roadmap.Roadmap`.

Free configurations are sampled, checked against the course and linked to
their nearest neighbours wherever a :class:`LocalPlanner` certifies a path.
Routes between arbitrary configurations are answered by connecting both ends
to the roadmap and searching it with A*.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Protocol

from .configuration import RobotOrientation
from .polygons.polypoly import PolyPoly
from .roadmap import Roadmap

logger = logging.getLogger(__name__)

# can_move() result codes
NEITHER = -2
FORWARD_FAILS = -1
REVERSE_ONLY = 0
FORWARD_ONLY = 1
FORWARD_NOT_REVERSE = 2
BOTH = 3


class LocalPlanner(Protocol):
    def can_move(self, robot: PolyPoly, course: PolyPoly,
                 o1: RobotOrientation, o2: RobotOrientation) -> int:
        """Whether ``robot`` can travel between ``o1`` and ``o2`` without touching ``course``.

        Returns -2 if neither direction works, -1 if ``o1 -> o2`` fails and the
        reverse was not tested, 0 if only ``o2 -> o1`` works, 1 if
        ``o1 -> o2`` works and the reverse was not tested, 2 if only
        ``o1 -> o2`` works and 3 if both do. The shapes must not be modified.
        """
        ...


class PRP:
    def __init__(self, robot: PolyPoly, planner: LocalPlanner, course: PolyPoly,
                 roadmap: Roadmap, rng: Optional[random.Random] = None):
        self.robot = robot
        self.planner = planner
        self.course = course
        self.roadmap = roadmap
        self.rng = rng if rng is not None else random.Random()

    def _sorted_neighbours(self, o: RobotOrientation, max_dist: float) -> List[RobotOrientation]:
        peers = self.roadmap.neighbours(o, max_dist)
        peers.sort(key=o.squared_distance_to)
        return peers

    def road_from_to(self, o1: RobotOrientation, o2: RobotOrientation, max_dist: float,
                     max_start_peers: int = 1, max_goal_peers: int = 1) -> Optional[List[RobotOrientation]]:
        """Route from ``o1`` to ``o2`` through the roadmap, or None.

        Up to ``max_start_peers`` reachable roadmap nodes near ``o1`` are paired
        with up to ``max_goal_peers`` nodes near ``o2`` until one pair is
        connected in the roadmap.
        """
        max_dist2 = max_dist * max_dist
        starts = self._sorted_neighbours(o1, max_dist)
        goals = self._sorted_neighbours(o2, max_dist)

        start_peers = 0
        for peer in starts:
            if start_peers >= max_start_peers:
                break
            if o1.squared_distance_to(peer) > max_dist2:
                break
            if self.planner.can_move(self.robot, self.course, o1, peer) <= 0:
                continue
            start_peers += 1

            goal_peers = 0
            for goal_peer in goals:
                if goal_peers >= max_goal_peers:
                    break
                if o2.squared_distance_to(goal_peer) > max_dist2:
                    break
                if self.planner.can_move(self.robot, self.course, goal_peer, o2) <= 0:
                    continue
                goal_peers += 1

                road = self.roadmap.road_from_to(peer, goal_peer)
                if road:
                    logger.info("route %s -> %s through %d roadmap nodes", o1, o2, len(road))
                    return [o1] + road + [o2]

        logger.info("no route %s -> %s (start peers %d)", o1, o2, start_peers)
        return None

    def test_configuration(self, o: RobotOrientation, count: int, max_dist: float) -> bool:
        """Add ``o`` to the roadmap if the robot fits there.

        The new node is linked with up to ``count`` neighbours within
        ``max_dist``; only links leaving ``o`` (or reaching it from a tested
        reverse move) count towards the limit.
        """
        r = self.robot.copy()
        r.rotate(o.angle)
        r.move(o.x, o.y)
        if r.intersects(self.course):
            logger.debug("rejected %s: collides with course", o)
            return False

        max_dist2 = max_dist * max_dist
        for o2 in self._sorted_neighbours(o, max_dist):
            if o.squared_distance_to(o2) > max_dist2:
                break

            result = self.planner.can_move(self.robot, self.course, o, o2)
            made_connection = False
            test_reverse = False
            if result == FORWARD_FAILS:
                test_reverse = True
            elif result == REVERSE_ONLY:
                self.roadmap.add_connection(o2, o, False)
            elif result == FORWARD_ONLY:
                self.roadmap.add_connection(o, o2, False)
                made_connection = True
                test_reverse = True
            elif result == FORWARD_NOT_REVERSE:
                self.roadmap.add_connection(o, o2, False)
                made_connection = True
            elif result == BOTH:
                self.roadmap.add_connection(o, o2, True)

            if test_reverse and self.planner.can_move(self.robot, self.course, o2, o) > 0:
                self.roadmap.add_connection(o2, o, False)
                made_connection = True

            if made_connection:
                count -= 1
                if count <= 0:
                    break

        self.roadmap.add_node(o)
        return True

    def test_random_configuration(self, count: int, max_dist: float) -> Optional[RobotOrientation]:
        rm = self.roadmap
        o = RobotOrientation.random(rm.x1, rm.y1, rm.x2, rm.y2, self.rng)
        if self.test_configuration(o, count, max_dist):
            return o
        return None

    def sample(self, n: int, count: int, max_dist: float, max_tries: int) -> int:
        """Test random configurations until ``n`` are accepted or ``max_tries`` are spent."""
        accepted = 0
        tries = 0
        while accepted < n and tries < max_tries:
            tries += 1
            if self.test_random_configuration(count, max_dist) is not None:
                accepted += 1
        logger.info("sampled %d/%d configurations in %d tries; roadmap has %d nodes, %d edges",
                    accepted, n, tries, self.roadmap.num_nodes, self.roadmap.num_edges)
        return accepted

    def clear(self) -> None:
        self.roadmap.clear()

    def init_from(self, data: str) -> None:
        """Restore planning data written by ``str()`` for the same robot, course and planner."""
        self.roadmap.init_from(data)

    def __str__(self) -> str:
        return str(self.roadmap)
