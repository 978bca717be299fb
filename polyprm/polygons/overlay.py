"""Overlay of two convex polygons.

Both rings are copied into one node graph: white nodes come from the first
polygon, black nodes from the second, red nodes sit where the boundaries
meet and are linked into both rings. Walking the graph yields the pieces of
each polygon outside the other and the intersection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..numeric import in_between, line_intersection, line_intersection_type, max_abs, point_point_distance
from . import polypoly
from .primitives import Point

WHITE = 0
BLACK = 1
RED = 2

SEGMENT_SLACK = 1e-9


class Node:
    __slots__ = ('color', 'outside', 'x', 'y', 'next', 'prev', 'original')

    def __init__(self, color: int, outside: bool, x: float, y: float, original: bool):
        self.color = color
        self.outside = outside
        self.x = x
        self.y = y
        self.next: List[Optional[Node]] = [None, None]
        self.prev: List[Optional[Node]] = [None, None]
        # index 2 lets red nodes be addressed like the other colours
        self.original = [False, False, False]
        self.original[color] = original

    @property
    def is_red(self) -> bool:
        return self.color == RED

    def insert(self, node: 'Node', col: int) -> Optional['Node']:
        """Insert ``node`` into ring ``col`` after ``self``, ordered by distance.

        A node at zero distance is replaced by ``node`` unless it is red.
        The search stops at the next original node.

        Returns ``node`` when it was inserted, the replaced node when one was
        replaced, and None when an identical red node already exists.
        """
        dist = point_point_distance(self.x, self.y, node.x, node.y)
        cur = self
        while (point_point_distance(self.x, self.y, cur.next[col].x, cur.next[col].y) <= dist
               or point_point_distance(cur.next[col].x, cur.next[col].y, node.x, node.y) == 0.0):
            cur = cur.next[col]
            if cur.original[col]:
                break
        if point_point_distance(cur.x, cur.y, node.x, node.y) == 0.0:
            if cur.is_red:
                return None
            node.prev[col] = cur.prev[col]
            node.next[col] = cur.next[col]
            node.original[col] = cur.original[col]
            node.x = cur.x
            node.y = cur.y
            node.prev[col].next[col] = node
            node.next[col].prev[col] = node
            return cur
        node.prev[col] = cur
        node.next[col] = cur.next[col]
        node.prev[col].next[col] = node
        node.next[col].prev[col] = node
        return node

    def restore(self, orig: 'Node', col: int) -> None:
        """Undo :meth:`insert` in ring ``col``."""
        if self is orig:
            self.prev[col].next[col] = self.next[col]
            self.next[col].prev[col] = self.prev[col]
        else:
            self.prev[col].next[col] = orig
            self.next[col].prev[col] = orig
        self.next[col] = None
        self.prev[col] = None


@dataclass
class IntersectionInfo:
    """Result of overlaying two convex polygons.

    ``rest[0]`` is poly1 minus poly2 and ``rest[1]`` is poly2 minus poly1.
    Entries that were not requested may be empty or None. ``all_enclosing``
    is 0 or 1 when that polygon covers the other, -1 otherwise.
    """
    rest: list
    intersection: Optional['polypoly.PolyPoly'] = None
    all_enclosing: int = -1


def _ring(cpoly, other, color: int):
    start = None
    prev = None
    has_outside = False
    for p in cpoly.points():
        outside = other.relation_to_point(p.x, p.y) == 0
        has_outside = has_outside or outside
        node = Node(color, outside, p.x, p.y, True)
        if start is None:
            start = node
        else:
            prev.next[color] = node
            node.prev[color] = prev
        prev = node
    start.prev[color] = prev
    prev.next[color] = start
    return start, has_outside


def _next_original(node: Node, col: int) -> Node:
    node = node.next[col]
    while not node.original[col]:
        node = node.next[col]
    return node


def _on_segment(n1: Node, n2: Node, ip) -> bool:
    if in_between(n1.x, n1.y, n2.x, n2.y, ip[0], ip[1]):
        return True
    # rounding may push a true crossing just past an axis-parallel edge
    slack = SEGMENT_SLACK * max(1.0, max_abs(max_abs(n1.x, n2.x), max_abs(n1.y, n2.y)))
    return (min(n1.x, n2.x) - slack <= ip[0] <= max(n1.x, n2.x) + slack
            and min(n1.y, n2.y) - slack <= ip[1] <= max(n1.y, n2.y) + slack)


def _refresh(node: Node, col: int) -> Node:
    # a replaced node is unlinked; its neighbours point at the live one
    return node.prev[col].next[col]


class OverlayGraph:
    """Node graph of two convex polygons; consumed by :meth:`intersection_info`."""

    def __init__(self, poly1, poly2, checks=None):
        self.poly = [poly1, poly2]
        self.checks = checks if checks is not None else poly1.checks
        self.white_start, out1 = _ring(poly1, poly2, WHITE)
        self.black_start, out2 = _ring(poly2, poly1, BLACK)
        self.both_have_outside_points = out1 and out2
        self._connect()

    def _add_red(self, x: float, y: float, w1: Node, b1: Node) -> None:
        node = Node(RED, False, x, y, False)
        backup = w1.insert(node, WHITE)
        if backup is not None and b1.insert(node, BLACK) is None:
            node.restore(backup, WHITE)

    def _connect(self) -> None:
        w1 = self.white_start
        w2 = w1.next[WHITE]
        while True:
            b1 = self.black_start
            b2 = _next_original(b1, BLACK)
            while True:
                itype = line_intersection_type(w1.x, w1.y, w2.x, w2.y, b1.x, b1.y, b2.x, b2.y)
                # line_intersection may still be None for itype 1 on near-parallel lines
                ip = None
                if itype == 1:
                    ip = line_intersection(w1.x, w1.y, w2.x, w2.y, b1.x, b1.y, b2.x, b2.y)
                    # collinear edges touching at an end give a point far along the line
                    if ip is not None and not (_on_segment(w1, w2, ip) and _on_segment(b1, b2, ip)):
                        ip = None
                if ip is not None:
                    self._add_red(ip[0], ip[1], w1, b1)
                    w1, w2, b1, b2 = self._refresh_all(w1, w2, b1, b2)
                elif itype != 0:
                    for cand in (w1, w2, b1, b2):
                        if (not cand.outside
                                and in_between(w1.x, w1.y, w2.x, w2.y, cand.x, cand.y)
                                and in_between(b1.x, b1.y, b2.x, b2.y, cand.x, cand.y)):
                            self._add_red(cand.x, cand.y, w1, b1)
                            w1, w2, b1, b2 = self._refresh_all(w1, w2, b1, b2)
                b1 = b2
                b2 = _next_original(b2, BLACK)
                if b1 is self.black_start:
                    break
            w1 = w2
            w2 = _next_original(w2, WHITE)
            if w1 is self.white_start:
                break

    def _refresh_all(self, w1, w2, b1, b2):
        self.white_start = _refresh(self.white_start, WHITE)
        self.black_start = _refresh(self.black_start, BLACK)
        return _refresh(w1, WHITE), _refresh(w2, WHITE), _refresh(b1, BLACK), _refresh(b2, BLACK)

    def _split_info(self, i: int, need_intersection: bool) -> IntersectionInfo:
        """Handle containment: split the enclosing polygon ``i`` so that its rest is convex."""
        PolyPoly = polypoly.PolyPoly
        inner = self.poly[1 - i]
        halves = self.poly[i].split_at_x_coordinate((inner.bbx1 + inner.bbx2) / 2, self.checks)
        if halves[0].is_empty() or halves[1].is_empty():
            # halves too thin: treat both polygons as the smaller one
            result = IntersectionInfo([PolyPoly(checks=self.checks), PolyPoly(checks=self.checks)])
            if need_intersection:
                result.intersection = PolyPoly._from_polygon(inner, self.checks)
            return result
        h1 = intersection_info(halves[0].polygons[0], inner, False, True, False, True, self.checks)
        h2 = intersection_info(halves[1].polygons[0], inner, False, True, False, True, self.checks)
        if h1 is None or h2 is None:
            # the inner polygon is too small to matter
            rest = [None, None]
            rest[i] = PolyPoly._from_polygon(self.poly[i], self.checks)
            rest[1 - i] = PolyPoly(checks=self.checks)
            return IntersectionInfo(rest, PolyPoly(checks=self.checks))
        result = IntersectionInfo([None, None])
        if need_intersection:
            result.intersection = PolyPoly._from_polygon(inner, self.checks)
        h1.rest[0].disjoint_unite_with(h2.rest[0])
        result.rest[i] = h1.rest[0]
        result.rest[1 - i] = PolyPoly(checks=self.checks)
        return result

    def intersection_info(self, need_intersection: bool, need_poly1: bool, need_poly2: bool,
                          need_all_enclosing: bool) -> Optional[IntersectionInfo]:
        """Collect the outside pieces of both polygons and, if asked, the intersection.

        Returns None if the polygons have no 2-dimensional intersection.
        The graph is destroyed in the process.
        """
        PolyPoly = polypoly.PolyPoly
        need_poly = (need_poly1, need_poly2)
        result = IntersectionInfo([PolyPoly(checks=self.checks), PolyPoly(checks=self.checks)])
        for i, col in enumerate((WHITE, BLACK)):
            while True:
                start = self.white_start if col == WHITE else self.black_start
                cur = start
                exhausted = False
                while not cur.outside:
                    cur = cur.next[col]
                    if cur is start:
                        exhausted = True
                        break
                if exhausted:
                    break
                start = cur
                cur = cur.prev[col]
                while not cur.is_red and cur is not start:
                    cur = cur.prev[col]
                end = start
                if cur is not start:
                    start = cur
                    cur = None
                    while not end.is_red:
                        end = end.next[col]
                if cur is start or start is end:
                    # no red node or a single touching point
                    if self.both_have_outside_points:
                        return None
                    if not need_poly[i] or not need_all_enclosing:
                        if need_intersection:
                            result.intersection = PolyPoly._from_polygon(self.poly[1 - i], self.checks)
                    else:
                        result = self._split_info(i, need_intersection)
                    result.all_enclosing = i
                    return result
                seq: List[Point] = []
                if need_poly[i]:
                    seq.append(Point(start.x, start.y))
                cur = start.next[col]
                while cur is not end:
                    if need_poly[i]:
                        seq.append(Point(cur.x, cur.y))
                    delme = cur
                    cur = cur.next[col]
                    if delme is self.white_start:
                        self.white_start = self.white_start.next[WHITE]
                    if delme is self.black_start:
                        self.black_start = self.black_start.next[BLACK]
                    delme.prev[col].next[col] = delme.next[col]
                    delme.next[col].prev[col] = delme.prev[col]
                    delme.next[col] = None
                    delme.prev[col] = None
                if need_poly[i]:
                    seq.append(Point(end.x, end.y))
                    other = BLACK if col == WHITE else WHITE
                    cur = end.prev[other]
                    while cur is not start:
                        seq.append(Point(cur.x, cur.y))
                        cur = cur.prev[other]
                    result.rest[i].disjoint_unite_with(PolyPoly._from_clockwise(seq, True, self.checks))
        if need_intersection:
            coords: List[float] = []
            cur = self.white_start
            while True:
                coords.extend((cur.x, cur.y))
                cur = cur.next[WHITE]
                if cur is self.white_start:
                    break
            cur = self.black_start
            while True:
                if not cur.is_red:
                    coords.extend((cur.x, cur.y))
                cur = cur.next[BLACK]
                if cur is self.black_start:
                    break
            result.intersection = PolyPoly.convex_hull(coords, checks=self.checks)
            if result.intersection.is_empty():
                return None
        return result


def intersection_info(poly1, poly2, need_intersection: bool, need_poly1: bool, need_poly2: bool,
                      need_all_enclosing: bool, checks=None) -> Optional[IntersectionInfo]:
    graph = OverlayGraph(poly1, poly2, checks)
    return graph.intersection_info(need_intersection, need_poly1, need_poly2, need_all_enclosing)
