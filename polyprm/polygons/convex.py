"""Single convex polygon stored as a clockwise ring of edges."""

from __future__ import annotations

import math
from typing import Iterator, List, Optional, Sequence

from ..errors import InvariantViolation
from . import overlay, polypoly
from .invariant import NO_CHECKS
from .primitives import Edge, Point


class ConvexPolygon:
    """Convex polygon with a cached bounding box.

    The interior lies on the right side of every edge. ``owner`` is the
    polygon set whose point list holds this ring's vertices.
    """

    def __init__(self, edge: Edge, owner=None):
        self.edge = edge
        self.owner = owner
        self.bbx1 = math.inf
        self.bby1 = math.inf
        self.bbx2 = -math.inf
        self.bby2 = -math.inf
        self.update_bounding_box()

    @classmethod
    def from_points(cls, points: Sequence[Point], owner=None) -> 'ConvexPolygon':
        """Link ``points`` (already clockwise, at least 3) into a ring."""
        first = Edge(points[0])
        prev = first
        for p in points[1:-1]:
            prev = Edge(p, prev=prev)
        Edge(points[-1], prev=prev, next=first)
        return cls(first, owner)

    @classmethod
    def triangle(cls, p1: Point, p2: Point, p3: Point, owner=None) -> 'ConvexPolygon':
        return cls.from_points([p1, p2, p3], owner)

    # ring traversal

    def edges(self) -> Iterator[Edge]:
        e = self.edge
        while True:
            yield e
            e = e.next
            if e is self.edge:
                return

    def points(self) -> Iterator[Point]:
        for e in self.edges():
            yield e.start

    def coordinates(self) -> List[tuple]:
        return [(p.x, p.y) for p in self.points()]

    # bounding box

    def update_bounding_box(self) -> None:
        xs = []
        ys = []
        for p in self.points():
            xs.append(p.x)
            ys.append(p.y)
        self.bbx1 = min(xs)
        self.bbx2 = max(xs)
        self.bby1 = min(ys)
        self.bby2 = max(ys)

    def copy_bounding_box_from(self, other: 'ConvexPolygon') -> None:
        self.bbx1, self.bby1, self.bbx2, self.bby2 = other.bbx1, other.bby1, other.bbx2, other.bby2

    def move_bb(self, dx: float, dy: float) -> None:
        self.bbx1 += dx
        self.bbx2 += dx
        self.bby1 += dy
        self.bby2 += dy

    def scale_x_bb(self, factor: float) -> None:
        self.bbx1 *= factor
        self.bbx2 *= factor
        if factor < 0:
            self.bbx1, self.bbx2 = self.bbx2, self.bbx1

    def scale_y_bb(self, factor: float) -> None:
        self.bby1 *= factor
        self.bby2 *= factor
        if factor < 0:
            self.bby1, self.bby2 = self.bby2, self.bby1

    def type_of_bounding_box_overlap_with(self, other: 'ConvexPolygon') -> int:
        """0 disjoint, 1 partial overlap, 2 self inside other, 3 other inside self, 4 identical."""
        if (other.bbx2 < self.bbx1 or self.bbx2 < other.bbx1
                or other.bby2 < self.bby1 or self.bby2 < other.bby1):
            return 0
        if (self.bbx1 == other.bbx1 and self.bbx2 == other.bbx2
                and self.bby1 == other.bby1 and self.bby2 == other.bby2):
            return 4
        if (self.bbx1 >= other.bbx1 and self.bbx2 <= other.bbx2
                and self.bby1 >= other.bby1 and self.bby2 <= other.bby2):
            return 2
        if (other.bbx1 >= self.bbx1 and other.bbx2 <= self.bbx2
                and other.bby1 >= self.bby1 and other.bby2 <= self.bby2):
            return 3
        return 1

    # geometry

    def relation_to_point(self, x: float, y: float) -> int:
        """0 outside, 1 on the boundary, 2 strictly inside."""
        acc = 0
        for e in self.edges():
            s = e.side_of_point(x, y)
            if s < 0:
                return 0
            acc |= 1 - s
        return 2 - acc

    def contains_point(self, p: Point) -> bool:
        return self.relation_to_point(p.x, p.y) > 0

    def area(self) -> float:
        pts = list(self.points())
        p0 = pts[0]
        area2 = 0.0
        for p1, p2 in zip(pts[1:], pts[2:]):
            area2 += (p1.x - p0.x) * (p2.y - p0.y) - (p1.y - p0.y) * (p2.x - p0.x)
        return area2 / 2

    def reverse_edges(self) -> None:
        for e in list(self.edges()):
            e.reverse()

    def merge_if_union_is_convex_with(self, other: 'ConvexPolygon', common: Point) -> bool:
        """Splice ``other`` into this ring if both share ``common`` and the union is convex.

        After a successful merge both objects refer to the same ring.
        """
        edge1 = next((e for e in self.edges() if e.start is common), None)
        if edge1 is None:
            return False
        edge2 = next((e for e in other.edges() if e.end is common), None)
        if edge2 is None:
            return False
        poly1 = self
        poly2 = other
        if edge1.end is not edge2.start:
            edge1 = edge1.prev
            edge2 = edge2.next
            if edge1.start is not edge2.end:
                return False
            poly1, poly2 = poly2, poly1
            edge1, edge2 = edge2, edge1
        if edge1.prev.side_of(edge2.next.end) <= 0:
            return False
        if edge2.prev.side_of(edge1.next.end) <= 0:
            return False
        if poly1.edge is edge1:
            poly1.edge = edge1.next
        edge1.prev.next = edge2.next
        edge2.next.prev = edge1.prev
        edge2.prev.next = edge1.next
        edge1.next.prev = edge2.prev
        poly2.edge = poly1.edge
        self.update_bounding_box()
        other.copy_bounding_box_from(self)
        return True

    def intersection_with(self, other: 'ConvexPolygon', need_intersection: bool, need_poly1: bool,
                          need_poly2: bool, need_all_enclosing: bool, checks=None):
        """Overlay this polygon with ``other``; None if they do not overlap."""
        if self.type_of_bounding_box_overlap_with(other) == 0:
            return None
        return overlay.intersection_info(self, other, need_intersection, need_poly1,
                                         need_poly2, need_all_enclosing, checks=checks)

    def split_at_x_coordinate(self, x: float, checks=None) -> List['polypoly.PolyPoly']:
        """Cut along the vertical line ``x``; the left half comes first."""
        halves: List[List[Point]] = [[], []]
        i = 0
        for e in self.edges():
            p1 = e.start
            p2 = e.end
            halves[i].append(p1.copy())
            sign = (p1.x - x) * (p2.x - x)
            if sign < 0 or (sign == 0 and p2.x - x == 0):
                y = e.y_at_x(x)
                halves[i].append(Point(x, y))
                i = 1 - i
                halves[i].append(Point(x, y))
        sums = [sum(p.x for p in half[:2]) for half in halves]
        if sums[0] > sums[1]:
            halves.reverse()
        if checks is None:
            checks = self.checks
        result = [polypoly.PolyPoly._from_clockwise(half, True, checks) for half in halves]
        if len(result[0].polygons) > 1 or len(result[1].polygons) > 1:
            raise InvariantViolation("split_at_x_coordinate(): Impossible")
        return result

    def minkowski_points(self, other: 'ConvexPolygon') -> List[float]:
        coords: List[float] = []
        for p in self.points():
            for q in other.points():
                coords.append(p.x - q.x)
                coords.append(p.y - q.y)
        return coords

    # ownership

    @property
    def checks(self):
        if self.owner is None:
            return NO_CHECKS
        return self.owner.checks

    def change_owner(self, new_owner) -> None:
        """Move the ring to ``new_owner``, reusing its points at distance zero."""
        if new_owner is self.owner:
            return
        for e in self.edges():
            p = e.start
            match: Optional[Point] = None
            for q in new_owner.points:
                if p.distance_to(q) == 0.0:
                    match = q
                    break
            if match is None:
                match = p.copy()
                new_owner.points.append(match)
            e.start = match
        self.owner = new_owner
        self.update_bounding_box()

    def copy(self) -> 'ConvexPolygon':
        """Ring copy with fresh points and no owner."""
        clone = ConvexPolygon.from_points([p.copy() for p in self.points()])
        clone.copy_bounding_box_from(self)
        return clone

    def clone_to_owner(self, owner) -> 'ConvexPolygon':
        clone = self.copy()
        clone.change_owner(owner)
        return clone

    def to_indexed_string(self, index_of) -> str:
        return ''.join(f"{index_of[id(p)]}:" for p in self.points())

    def __str__(self) -> str:
        return ''.join(str(p) for p in self.points())

    def __repr__(self) -> str:
        return f"ConvexPolygon({self})"
