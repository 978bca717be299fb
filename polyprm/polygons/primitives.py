"""Points, directed edges and bounding rectangles.

Edges are linked into clockwise rings (``next``/``prev``); a ring is owned by
exactly one :class:`~polyprm.polygons.convex.ConvexPolygon`. Points compare by
identity so that several rings of one polygon set can share the same vertex
object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..numeric import (
    in_between,
    max_abs,
    point_point_distance,
    side_of_point,
    zero_magnitude,
)

# Polygons with an area at or below this are treated as numerical noise.
MIN_ALLOWED_AREA = 1e-6


def format_coordinate(v: float) -> str:
    """Render a float so that the polygon and roadmap text parsers accept it.

    Exponents are written as ``1.0E-5`` because the grammar has no ``+`` sign
    and requires a fractional mantissa.
    """
    s = repr(float(v))
    if 'e' not in s:
        return s
    mantissa, exp = s.split('e')
    if '.' not in mantissa:
        mantissa += '.0'
    return f"{mantissa}E{int(exp)}"


class Point:
    __slots__ = ('x', 'y')

    def __init__(self, x: float, y: float):
        self.x = float(x)
        self.y = float(y)

    def distance_to(self, other: 'Point') -> float:
        return point_point_distance(self.x, self.y, other.x, other.y)

    def distance_to_xy(self, x: float, y: float) -> float:
        return point_point_distance(self.x, self.y, x, y)

    def copy(self) -> 'Point':
        return Point(self.x, self.y)

    def __str__(self) -> str:
        return f"({format_coordinate(self.x)},{format_coordinate(self.y)})"

    def __repr__(self) -> str:
        return f"Point({self.x!r}, {self.y!r})"


class Edge:
    """Directed edge from ``start`` to ``next.start`` inside one ring."""

    __slots__ = ('start', 'next', 'prev')

    def __init__(self, start: Point, prev: Optional['Edge'] = None, next: Optional['Edge'] = None):
        self.start = start
        self.prev = prev
        self.next = next
        if prev is not None:
            prev.next = self
        if next is not None:
            next.prev = self

    @property
    def end(self) -> Point:
        return self.next.start

    def reverse(self) -> None:
        self.next, self.prev = self.prev, self.next

    def smallest_x(self) -> float:
        return min(self.start.x, self.end.x)

    def greatest_x(self) -> float:
        return max(self.start.x, self.end.x)

    def side_of_point(self, x: float, y: float) -> int:
        a = self.start
        b = self.end
        return side_of_point(a.x, a.y, b.x, b.y, x, y)

    def side_of(self, p: Point) -> int:
        return self.side_of_point(p.x, p.y)

    def in_between(self, p: Point) -> bool:
        a = self.start
        b = self.end
        return in_between(a.x, a.y, b.x, b.y, p.x, p.y)

    def contains_point(self, p: Point) -> bool:
        return self.side_of(p) == 0 and self.in_between(p)

    def y_at_x(self, x: float) -> float:
        p1 = self.start
        p2 = self.end
        dx = p2.x - p1.x
        if zero_magnitude(dx, max_abs(p2.x, p1.x)):
            return p1.y
        dy = p2.y - p1.y
        if zero_magnitude(dy, max_abs(p2.y, p1.y)):
            return p1.y
        return p1.y + (x - p1.x) * dy / dx

    def has_polygon_intersection_with(self, other: 'Edge') -> bool:
        """True if the segments touch or cross.

        Used by the plane sweep of ``PolyPoly.intersects``; an endpoint lying
        on the other segment counts as an intersection.
        """
        s1 = self.side_of(other.start)
        if s1 == 0 and self.in_between(other.start):
            return True
        s2 = self.side_of(other.end)
        if s2 == 0 and self.in_between(other.end):
            return True
        this_side = s1 * s2
        if this_side > 0:
            return False
        s3 = other.side_of(self.start)
        if s3 == 0 and other.in_between(self.start):
            return True
        s4 = other.side_of(self.end)
        if s4 == 0 and other.in_between(self.end):
            return True
        other_side = s3 * s4
        if other_side > 0:
            return False
        return this_side * other_side > 0

    def __repr__(self) -> str:
        return f"Edge({self.start} -> {self.end})"


@dataclass
class Rectangle:
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1
