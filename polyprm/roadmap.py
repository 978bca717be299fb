"""Spatially hashed roadmap of robot configurations, searched with A*.

The covered rectangle is split into ``gridx`` x ``gridy`` cells. One extra
bucket on every side collects configurations outside the rectangle, and one
more guard bucket keeps neighbour queries in range, so the grid holds
``(gridx + 4) x (gridy + 4)`` cells.
"""

from __future__ import annotations

import heapq
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .configuration import RobotOrientation
from .polygons.polypoly import COORD_REGEX
from .polygons.primitives import format_coordinate

logger = logging.getLogger(__name__)

# Weight of the straight-line distance estimate; values above 1.0 make the
# search faster but the roads may no longer be the shortest.
HEURISTIC_FACTOR = 1.0

_ORIENTATION_PATTERN = re.compile(
    r'([1-9][0-9]*)\s*:\s*(\(\s*' + COORD_REGEX + r'\s*,\s*' + COORD_REGEX + r'\s*<\s*' + COORD_REGEX + r'\s*\))')
_CONNECTION_PATTERN = re.compile(r'\(\s*([1-9][0-9]*)\s*,\s*([1-9][0-9]*)\s*\)')
_GRID_PATTERN = r'=([1-9][0-9]*)'


@dataclass(eq=False)
class Connection:
    target_cell: 'Cell'
    target_entry: 'Entry'


@dataclass(eq=False)
class Entry:
    """A roadmap node: one configuration and its outgoing connections."""

    orientation: RobotOrientation
    connections: List[Connection] = field(default_factory=list)

    def connection_for(self, target_cell: 'Cell', target_entry: 'Entry') -> Connection:
        for c in self.connections:
            if c.target_cell is target_cell and c.target_entry is target_entry:
                return c
        c = Connection(target_cell, target_entry)
        self.connections.append(c)
        return c


class Cell:
    def __init__(self):
        self.entries: Dict[RobotOrientation, Entry] = {}

    def find_entry(self, o: RobotOrientation) -> Optional[Entry]:
        return self.entries.get(o)

    def entry_for(self, o: RobotOrientation) -> Entry:
        e = self.entries.get(o)
        if e is None:
            e = Entry(o)
            self.entries[o] = e
        return e


class Roadmap:
    heuristic_factor = HEURISTIC_FACTOR

    def __init__(self, x1: float, y1: float, x2: float, y2: float, gridx: int, gridy: int):
        self._init(x1, y1, x2, y2, gridx, gridy)

    @classmethod
    def from_string(cls, data: str) -> 'Roadmap':
        rm = cls.__new__(cls)
        rm.init_from(data)
        return rm

    def _init(self, x1: float, y1: float, x2: float, y2: float, gridx: int, gridy: int) -> None:
        if gridx < 1 or gridy < 1:
            raise ValueError("Non-positive grid values not allowed")
        if x2 - x1 <= 0 or y2 - y1 <= 0:
            raise ValueError("x2_<=x1_ || y2_<=y1_")
        self.x1 = float(x1)
        self.y1 = float(y1)
        self.x2 = float(x2)
        self.y2 = float(y2)
        self.gridx = int(gridx)
        self.gridy = int(gridy)
        self.cell_width = (self.x2 - self.x1) / self.gridx
        self.cell_height = (self.y2 - self.y1) / self.gridy
        self.clear()

    def clear(self) -> None:
        self.cells: List[List[Cell]] = [[Cell() for _ in range(self.gridy + 4)] for _ in range(self.gridx + 4)]
        self.num_nodes = 0
        self.num_edges = 0

    # grid hashing

    def _x_index(self, x: float) -> int:
        i = int((x - self.x1) / self.cell_width)
        if i < 0:
            i = -1
        if i > self.gridx:
            i = self.gridx
        return i + 2

    def _y_index(self, y: float) -> int:
        j = int((y - self.y1) / self.cell_height)
        if j < 0:
            j = -1
        if j > self.gridy:
            j = self.gridy
        return j + 2

    def _cell_of(self, o: RobotOrientation) -> Cell:
        return self.cells[self._x_index(o.x)][self._y_index(o.y)]

    # building

    def add_node(self, o: RobotOrientation) -> None:
        """Insert ``o`` without connections unless it is already present."""
        c = self._cell_of(o)
        before = len(c.entries)
        c.entry_for(o)
        self.num_nodes += len(c.entries) - before

    def add_connection(self, o1: RobotOrientation, o2: RobotOrientation, two_way: bool) -> None:
        """Connect ``o1`` to ``o2`` (and back if ``two_way``), adding missing nodes."""
        c1 = self._cell_of(o1)
        c2 = self._cell_of(o2)

        before = len(c1.entries) + len(c2.entries)
        e1 = c1.entry_for(o1)
        e2 = c2.entry_for(o2)
        new_entries = len(c1.entries) + len(c2.entries) - before
        if c1 is c2:
            new_entries //= 2

        before = len(e1.connections) + len(e2.connections)
        e1.connection_for(c2, e2)
        if two_way:
            e2.connection_for(c1, e1)
        new_connections = len(e1.connections) + len(e2.connections) - before
        if e1 is e2:
            new_connections //= 2

        self.num_nodes += new_entries
        self.num_edges += new_connections

    # queries

    def neighbours(self, o: RobotOrientation, max_dist: float) -> List[RobotOrientation]:
        """Configurations in all cells touching the square of half-width ``max_dist``.

        Returns the stored RobotOrientation values, not roadmap entries. The
        result is a superset; callers filter by the real distance.
        """
        i1 = self._x_index(o.x - max_dist)
        j1 = self._y_index(o.y - max_dist)
        i2 = self._x_index(o.x + max_dist)
        j2 = self._y_index(o.y + max_dist)
        result: List[RobotOrientation] = []
        for j in range(j1, j2 + 1):
            for i in range(i1, i2 + 1):
                result.extend(self.cells[i][j].entries)
        return result

    def all_nodes(self) -> List[RobotOrientation]:
        result: List[RobotOrientation] = []
        for j in range(self.gridy + 4):
            for i in range(self.gridx + 4):
                result.extend(self.cells[i][j].entries)
        return result

    def connections(self) -> List[Tuple[RobotOrientation, RobotOrientation]]:
        """Every directed connection as a ``(from, to)`` pair."""
        result = []
        for column in self.cells:
            for c in column:
                for e in c.entries.values():
                    for con in e.connections:
                        result.append((e.orientation, con.target_entry.orientation))
        return result

    def road_from_to(self, o1: RobotOrientation, o2: RobotOrientation) -> List[RobotOrientation]:
        """Shortest chain of connected configurations from ``o1`` to ``o2``.

        The road is a list of RobotOrientation values, not roadmap entries.
        Empty if either end is missing or the goal is unreachable; a single
        element if both ends are the same configuration.
        """
        start = self._cell_of(o1).find_entry(o1)
        if start is None:
            return []
        goal = self._cell_of(o2).find_entry(o2)
        if goal is None:
            return []

        def estimate(e: Entry) -> float:
            return _distance(e, goal) * self.heuristic_factor

        # Heap items: (f, tie-break, counter, g, entry, previous item)
        counter = 0
        open_heap: List[tuple] = []

        def push(e: Entry, g: float, prev) -> None:
            nonlocal counter
            o = e.orientation
            item = (g + estimate(e), -o.x, -o.y, -o.angle, counter, g, e, prev)
            counter += 1
            heapq.heappush(open_heap, item)

        push(start, 0.0, None)
        closed = set()
        expansions = 0
        cur = None
        while open_heap:
            item = heapq.heappop(open_heap)
            e = item[6]
            if id(e) in closed:
                continue
            closed.add(id(e))
            expansions += 1
            if e is goal:
                cur = item
                break
            g = item[5]
            for con in e.connections:
                if id(con.target_entry) not in closed:
                    push(con.target_entry, g + _distance(e, con.target_entry), item)

        if cur is None:
            logger.debug("road %s -> %s: unreachable after %d expansions", o1, o2, expansions)
            return []

        road: List[RobotOrientation] = []
        while cur is not None:
            road.append(cur[6].orientation)
            cur = cur[7]
        road.reverse()
        logger.debug("road %s -> %s: %d nodes, %d expansions", o1, o2, len(road), expansions)
        return road

    # text form

    def init_from(self, data: str) -> None:
        """Replace the contents with the roadmap described by ``data``.

        Missing grid parameters raise ``ValueError``; malformed nodes and
        connections are skipped.
        """
        params = []
        for name in ('x1', 'y1', 'x2', 'y2'):
            m = re.search(name + '=' + COORD_REGEX, data)
            if m is None:
                raise ValueError(f"{name} missing")
            params.append(float(m.group(1)))
        for name in ('gridx', 'gridy'):
            m = re.search(name + _GRID_PATTERN, data)
            if m is None:
                raise ValueError(f"{name} missing")
            params.append(int(m.group(1)))
        self._init(*params)

        by_index: Dict[int, RobotOrientation] = {}
        for m in _ORIENTATION_PATTERN.finditer(data):
            o = RobotOrientation.from_string(m.group(2))
            by_index[int(m.group(1))] = o
            self.add_node(o)

        for m in _CONNECTION_PATTERN.finditer(data):
            o1 = by_index.get(int(m.group(1)))
            o2 = by_index.get(int(m.group(2)))
            if o1 is None or o2 is None:
                continue
            self.add_connection(o1, o2, False)

    def __str__(self) -> str:
        parts = [
            '{',
            f"x1={format_coordinate(self.x1)},y1={format_coordinate(self.y1)},"
            f"x2={format_coordinate(self.x2)},y2={format_coordinate(self.y2)},"
            f"gridx={self.gridx},gridy={self.gridy},",
        ]
        index_of: Dict[int, int] = {}
        entries: List[Entry] = []
        for column in self.cells:
            for c in column:
                for e in c.entries.values():
                    entries.append(e)
                    index_of[id(e)] = len(entries)
                    parts.append(f"{len(entries)}:{e.orientation}")
        for e in entries:
            for con in e.connections:
                parts.append(f"({index_of[id(e)]},{index_of[id(con.target_entry)]})")
        parts.append('}')
        return ''.join(parts)

    def __repr__(self) -> str:
        return f"Roadmap(nodes={self.num_nodes}, edges={self.num_edges})"


def _distance(e1: Entry, e2: Entry) -> float:
    o1 = e1.orientation
    o2 = e2.orientation
    return math.hypot(o1.x - o2.x, o1.y - o2.y)
