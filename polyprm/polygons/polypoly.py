"""Polygon sets stored as disjoint convex pieces.

A :class:`PolyPoly` owns a list of points and a list of convex polygons whose
rings reference those points. Any simple polygon is triangulated by ear
clipping and the triangles are merged back into larger convex pieces. Set
operations work piece by piece through the overlay in
:mod:`polyprm.polygons.overlay`.

Coordinates follow the screen convention: y grows downwards, and "clockwise"
means clockwise on screen.
"""

from __future__ import annotations

import functools
import math
import re
from typing import Dict, List, Optional, Sequence

from ..numeric import collinear, line_intersection_type, line_point_distance, right_turn, side_of_point
from . import convex, raster
from .invariant import NO_CHECKS, InvariantChecks, check_polypoly
from .primitives import MIN_ALLOWED_AREA, Point, Rectangle

UNION = 0
SYMMETRIC_DIFFERENCE = 1
DIFFERENCE = 2
INTERSECTION = 3

COORD_REGEX = r'(-?((([0-9]*\.[0-9]+)((e|E)-?[0-9]+)?)|([0-9]+)))'
POLY_PATTERN = re.compile(r'\{\s*(\(\s*' + COORD_REGEX + r'\s*,\s*' + COORD_REGEX + r'\s*\)\s*)*\}')
COORD_PATTERN = re.compile(COORD_REGEX)


class _RingCursor:
    """Cursor over a list that wraps at both ends.

    Mirrors a bidirectional list iterator: ``next`` and ``previous`` return
    the element they step over and ``remove`` deletes that element.
    """

    def __init__(self, items: list):
        self.items = items
        self.pos = 0
        self.last = -1

    def next(self):
        if self.pos >= len(self.items):
            self.pos = 0
        self.last = self.pos
        self.pos += 1
        return self.items[self.last]

    def previous(self):
        if self.pos <= 0:
            self.pos = len(self.items)
        self.pos -= 1
        self.last = self.pos
        return self.items[self.pos]

    def remove(self) -> None:
        del self.items[self.last]
        if self.last < self.pos:
            self.pos -= 1
        self.last = -1


def _is_ear(p1: Point, p2: Point, p3: Point, pts: List[Point]) -> bool:
    """True if the diagonal ``p1 -> p3`` cuts off the triangle ``p1 p2 p3`` inside the polygon."""
    if len(pts) <= 3:
        return True
    if side_of_point(p1.x, p1.y, p2.x, p2.y, p3.x, p3.y) <= 0:
        return False
    n = len(pts)
    for k in range(n):
        ep1 = pts[k]
        ep2 = pts[(k + 1) % n]
        itype = line_intersection_type(p1.x, p1.y, p3.x, p3.y, ep1.x, ep1.y, ep2.x, ep2.y)
        if itype > 1:
            return False
        if itype == 1 and not (p1 is ep1 or p1 is ep2 or p3 is ep1 or p3 is ep2):
            return False
    k = next((i for i, p in enumerate(pts) if p is p1), None)
    if k is None:
        return False
    ep1 = pts[k - 1]
    ep2 = pts[(k + 1) % n]
    s1 = side_of_point(p1.x, p1.y, p3.x, p3.y, ep1.x, ep1.y)
    s2 = side_of_point(p1.x, p1.y, p3.x, p3.y, ep2.x, ep2.y)
    if right_turn(ep1, p1, ep2):
        # convex corner: the diagonal must run between both neighbours
        if s1 <= 0 or s2 >= 0:
            return False
    elif s1 <= 0 and s2 >= 0:
        return False
    return True


def _eliminate_redundant_points(pts: List[Point]) -> None:
    """Drop points collinear with both neighbours. Lists of 3 or fewer are left alone."""
    if len(pts) <= 3:
        return
    p2 = pts[-1]
    p3 = pts[0]
    i = 1
    while i < len(pts):
        p1, p2, p3 = p2, p3, pts[i]
        if collinear(p1, p2, p3):
            del pts[i - 1]
            p2 = p1
        else:
            i += 1
    p1, p2, p3 = p2, p3, pts[0]
    if collinear(p1, p2, p3):
        pts.pop()


class PolyPoly:
    """A 2-D point set made of disjoint convex polygons.

    ``PolyPoly()`` is empty; use :meth:`from_coordinates`, :meth:`from_string`
    or :meth:`convex_hull` to build one. Every mutator leaves the set in a
    state that passes :func:`~polyprm.polygons.invariant.check_polypoly`
    and runs that check when ``checks.enabled`` is set.
    """

    def __init__(self, checks: Optional[InvariantChecks] = None):
        self.checks = checks if checks is not None else NO_CHECKS
        self.points: List[Point] = []
        self.polygons: List['convex.ConvexPolygon'] = []

    # construction

    @classmethod
    def from_coordinates(cls, coords: Sequence[float], checks: Optional[InvariantChecks] = None) -> 'PolyPoly':
        """Build a polygon from flat ``x, y`` pairs in either orientation.

        The outline is cut short at the first repeated point or self crossing;
        trailing points whose closing edge would cross the outline are dropped.
        A trailing unpaired value is ignored.
        """
        result = cls(checks)
        pts: List[Point] = []
        x = y = math.nan
        for k in range(0, len(coords) - 1, 2):
            prevx, prevy = x, y
            x = float(coords[k])
            y = float(coords[k + 1])
            if any(p.distance_to_xy(x, y) <= 0.0 for p in pts):
                break
            crossing = False
            for start, end in zip(pts, pts[1:]):
                itype = line_intersection_type(prevx, prevy, x, y, start.x, start.y, end.x, end.y)
                if not (itype == 0 or (itype == 1 and end.x == prevx and end.y == prevy)):
                    crossing = True
                    break
            if crossing:
                break
            pts.append(Point(x, y))
        if not pts:
            return result
        x = pts[0].x
        y = pts[0].y
        while True:
            if len(pts) < 3:
                return result
            p1 = pts[-1]
            backtrack = False
            for start, end in zip(pts, pts[1:]):
                itype = line_intersection_type(p1.x, p1.y, x, y, start.x, start.y, end.x, end.y)
                if not (itype == 0
                        or (itype == 1 and end.x == p1.x and end.y == p1.y)
                        or (itype == 1 and start.x == x and start.y == y)):
                    backtrack = True
                    break
            if not backtrack:
                break
            pts.pop()
        _eliminate_redundant_points(pts)
        if len(pts) == 3:
            clockwise = right_turn(pts[0], pts[1], pts[2])
        else:
            upmost = pts[0]
            downmost = pts[0]
            for p in pts:
                if p.y < upmost.y or (p.y == upmost.y and p.x < upmost.x):
                    upmost = p
                if p.y > downmost.y or (p.y == downmost.y and p.x > downmost.x):
                    downmost = p
            furthest = None
            furthest_dist = -1.0
            for p in pts:
                dist = abs(line_point_distance(upmost.x, upmost.y, downmost.x, downmost.y, p.x, p.y))
                if dist > furthest_dist:
                    furthest_dist = dist
                    furthest = p
            arr = [p for p in pts if p is upmost or p is downmost or p is furthest][:3]
            idx = next(i for i, p in enumerate(arr) if p is upmost)
            clockwise = right_turn(upmost, furthest, downmost) == (arr[(idx + 1) % 3] is furthest)
        if not clockwise:
            pts.reverse()
        result._init(pts, False)
        return result

    @classmethod
    def _from_clockwise(cls, points: List[Point], redundancy: bool,
                        checks: Optional[InvariantChecks] = None) -> 'PolyPoly':
        """Adopt ``points`` (clockwise, simple, not shared with anything) directly."""
        result = cls(checks)
        result._init(points, redundancy)
        return result

    @classmethod
    def _from_polygon(cls, cpoly: 'convex.ConvexPolygon',
                      checks: Optional[InvariantChecks] = None) -> 'PolyPoly':
        result = cls(checks)
        result.polygons.append(cpoly.clone_to_owner(result))
        result._check()
        return result

    @classmethod
    def from_string(cls, data: str, checks: Optional[InvariantChecks] = None) -> 'PolyPoly':
        """Parse ``{(x,y)(x,y)...}`` groups and unite them.

        Text between groups is ignored, so a syntax error silently drops the
        affected polygon.
        """
        result = cls(checks)
        for match in POLY_PATTERN.finditer(data):
            coords = [float(m.group(0)) for m in COORD_PATTERN.finditer(match.group(0))]
            result.unite_with(cls.from_coordinates(coords, checks))
        result._check()
        return result

    @classmethod
    def convex_hull(cls, coords: Sequence[float], checks: Optional[InvariantChecks] = None) -> 'PolyPoly':
        """Graham scan over flat ``x, y`` pairs."""
        n = len(coords) // 2
        if n == 0:
            return cls(checks)
        pts = [Point(coords[2 * i], coords[2 * i + 1]) for i in range(n)]
        pivot = pts[0]
        for p in pts:
            if p.y > pivot.y or (p.y == pivot.y and p.x < pivot.x):
                pivot = p

        def by_angle(p1: Point, p2: Point) -> int:
            s = side_of_point(pivot.x, pivot.y, p2.x, p2.y, p1.x, p1.y)
            if s == 0:
                d1 = pivot.distance_to(p1)
                d2 = pivot.distance_to(p2)
                if d1 < d2:
                    s = -1
                elif d2 < d1:
                    s = 1
            return s

        pts.sort(key=functools.cmp_to_key(by_angle))
        stack: List[Point] = []
        i = 0
        while i < len(pts):
            if len(stack) < 2:
                stack.append(pts[i])
                i += 1
            elif side_of_point(stack[-2].x, stack[-2].y, stack[-1].x, stack[-1].y, pts[i].x, pts[i].y) > 0:
                stack.append(pts[i])
                i += 1
            else:
                stack.pop()
        return cls._from_clockwise(stack, True, checks)

    def _init(self, points: List[Point], redundancy: bool) -> None:
        """Triangulate the clockwise outline ``points`` and merge triangles into convex pieces."""
        if redundancy:
            _eliminate_redundant_points(points)
        if len(points) < 3:
            return
        self.points = points
        pts = list(points)
        owners: Dict[Point, list] = {}
        cursor = _RingCursor(pts)
        p2 = cursor.next()
        p3 = cursor.next()
        earcount = 0
        while len(pts) > 2:
            p1, p2, p3 = p2, p3, cursor.next()
            earcount += 1
            if earcount > len(pts):
                break
            if not _is_ear(p1, p2, p3, pts):
                continue
            earcount = 0
            triangle = convex.ConvexPolygon.triangle(p3, p1, p2, owner=self)
            for p in (p1, p2, p3):
                owners.setdefault(p, []).append(triangle)
            cursor.previous()  # p3
            cursor.previous()  # p2
            cursor.remove()
            p2 = p1
            if len(pts) > 3:
                # p1 or p3 may have become redundant
                cursor.previous()  # p1
                p0 = cursor.previous()
                cursor.next()
                cursor.next()  # p1
                if collinear(p0, p1, p3):
                    cursor.remove()
                    p1 = p0
                if len(pts) > 3:
                    cursor.next()  # p3
                    p4 = cursor.next()
                    cursor.previous()
                    cursor.previous()  # p3
                    if collinear(p1, p3, p4):
                        cursor.remove()
                        p3 = p4
            p2 = cursor.previous()
            cursor.next()
            p3 = cursor.next()

        for common, polys in owners.items():
            i = 0
            while i < len(polys):
                poly1 = polys[i]
                merged = False
                for j in range(i + 1, len(polys)):
                    poly2 = polys[j]
                    if poly1.merge_if_union_is_convex_with(poly2, common):
                        for p in poly1.points():
                            lst = owners[p]
                            for dead in (poly1, poly2):
                                for k, cp in enumerate(lst):
                                    if cp is dead:
                                        del lst[k]
                                        break
                            lst.append(poly1)
                        merged = True
                        break
                i = 0 if merged else i + 1

        seen = set()
        for polys in owners.values():
            for cp in polys:
                if id(cp) not in seen:
                    seen.add(id(cp))
                    self.polygons.append(cp)
        self.polygons = [cp for cp in self.polygons if cp.area() > MIN_ALLOWED_AREA]
        self._collect_garbage()
        self._check()

    def _collect_garbage(self) -> None:
        """Forget points no longer referenced by any polygon."""
        used = set()
        for cp in self.polygons:
            for p in cp.points():
                used.add(id(p))
        self.points = [p for p in self.points if id(p) in used]

    def _check(self) -> None:
        check_polypoly(self, self.checks)

    def copy(self) -> 'PolyPoly':
        result = PolyPoly(self.checks)
        for cp in self.polygons:
            result.polygons.append(cp.clone_to_owner(result))
        result._check()
        return result

    def clear(self) -> None:
        self.points = []
        self.polygons = []

    # queries

    def is_empty(self) -> bool:
        return not self.polygons

    def area(self) -> float:
        return sum(cp.area() for cp in self.polygons)

    def bounding_box(self) -> Optional[Rectangle]:
        """Recomputed on every call; None for an empty set."""
        if not self.polygons:
            return None
        return Rectangle(min(cp.bbx1 for cp in self.polygons), min(cp.bby1 for cp in self.polygons),
                         max(cp.bbx2 for cp in self.polygons), max(cp.bby2 for cp in self.polygons))

    def contains_point(self, x: float, y: float) -> bool:
        return any(cp.relation_to_point(x, y) > 0 for cp in self.polygons)

    def intersects(self, other: 'PolyPoly') -> bool:
        """True if the closed sets share at least one point; touching counts."""
        mine: List['convex.ConvexPolygon'] = []
        theirs: List['convex.ConvexPolygon'] = []
        candidates = []
        for p1 in self.polygons:
            for p2 in other.polygons:
                bbo = p1.type_of_bounding_box_overlap_with(p2)
                if bbo == 0:
                    continue
                if not any(cp is p1 for cp in mine):
                    mine.append(p1)
                if not any(cp is p2 for cp in theirs):
                    theirs.append(p2)
                if bbo in (2, 4):
                    candidates.append((p1, p2))
                if bbo in (3, 4):
                    candidates.append((p2, p1))
        if not mine:
            return False

        # plane sweep over edges ordered by their left end
        edges1 = sorted((e for cp in mine for e in cp.edges()), key=lambda e: e.smallest_x())
        edges2 = sorted((e for cp in theirs for e in cp.edges()), key=lambda e: e.smallest_x())
        active1: list = []
        active2: list = []
        i1 = i2 = 0
        while True:
            if not active1 and i1 == len(edges1):
                break
            if not active2 and i2 == len(edges2):
                break
            if i1 == len(edges1) and i2 == len(edges2):
                break
            x1 = edges1[i1].smallest_x() if i1 < len(edges1) else math.inf
            x2 = edges2[i2].smallest_x() if i2 < len(edges2) else math.inf
            smallest = min(x1, x2)
            new1 = []
            new2 = []
            while i1 < len(edges1) and edges1[i1].smallest_x() == smallest:
                new1.append(edges1[i1])
                i1 += 1
            while i2 < len(edges2) and edges2[i2].smallest_x() == smallest:
                new2.append(edges2[i2])
                i2 += 1
            if new2:
                active1 = [e for e in active1 if e.greatest_x() >= smallest]
            if new1:
                active2 = [e for e in active2 if e.greatest_x() >= smallest]
            active1.extend(new1)
            active2.extend(new2)
            for e1 in new1:
                for e2 in active2:
                    if e1.has_polygon_intersection_with(e2):
                        return True
            for e1 in new2:
                for e2 in active1:
                    if e1.has_polygon_intersection_with(e2):
                        return True

        # no crossing edges left: one piece may still lie inside another
        for inner, outer in candidates:
            if outer.contains_point(inner.edge.start):
                return True
        return False

    # set operations

    def _set_operation(self, operation: int, other: 'PolyPoly') -> None:
        # cloning first keeps self-operations (other is self) safe
        polygons2 = [cp.clone_to_owner(self) for cp in other.polygons]
        need_intersection = operation == INTERSECTION
        need_poly1 = operation != INTERSECTION
        need_poly2 = operation == SYMMETRIC_DIFFERENCE
        need_all_enclosing = operation != UNION
        intersection_polys: list = []
        i = 0
        while i < len(self.polygons):
            cpoly1 = self.polygons[i]
            i += 1
            j = 0
            while j < len(polygons2):
                cpoly2 = polygons2[j]
                j += 1
                info = cpoly1.intersection_with(cpoly2, need_intersection, need_poly1,
                                                need_poly2, need_all_enclosing)
                if info is None:
                    continue
                if operation == INTERSECTION:
                    for cp in info.intersection.polygons:
                        cp.change_owner(self)
                        intersection_polys.append(cp)
                    continue
                if operation == SYMMETRIC_DIFFERENCE:
                    j -= 1
                    del polygons2[j]
                    for cp in info.rest[1].polygons:
                        cp.change_owner(self)
                        polygons2.insert(j, cp)
                        j += 1
                if operation == UNION and info.all_enclosing == 0:
                    j -= 1
                    del polygons2[j]
                    continue
                i -= 1
                del self.polygons[i]
                if info.rest[0].is_empty():
                    break
                for cp in info.rest[0].polygons:
                    cp.change_owner(self)
                    self.polygons.insert(i, cp)
                cpoly1 = self.polygons[i]
                i += 1
        if operation in (UNION, SYMMETRIC_DIFFERENCE):
            self.polygons.extend(polygons2)
        if operation == INTERSECTION:
            self.polygons = intersection_polys
        self._collect_garbage()
        self._check()

    def unite_with(self, other: 'PolyPoly') -> None:
        self._set_operation(UNION, other)

    def symmetric_difference(self, other: 'PolyPoly') -> None:
        self._set_operation(SYMMETRIC_DIFFERENCE, other)

    def subtract(self, other: 'PolyPoly') -> None:
        self._set_operation(DIFFERENCE, other)

    def intersect_with(self, other: 'PolyPoly') -> None:
        """Keep only the 2-dimensional part of the intersection."""
        self._set_operation(INTERSECTION, other)

    def disjoint_unite_with(self, other: 'PolyPoly') -> None:
        """Union without overlap tests; the interiors must already be disjoint."""
        for cp in other.polygons:
            self.polygons.append(cp.clone_to_owner(self))

    def minkowski_sum_with_mirrored(self, other: 'PolyPoly') -> 'PolyPoly':
        """Minkowski sum of ``self`` and ``other`` mirrored through the origin."""
        result = PolyPoly(self.checks)
        for cp1 in self.polygons:
            for cp2 in other.polygons:
                result.unite_with(PolyPoly.convex_hull(cp1.minkowski_points(cp2), self.checks))
        return result

    # transforms

    def rotate(self, angle: float, center_x: float = 0.0, center_y: float = 0.0) -> None:
        """Rotate by ``angle`` radians, clockwise on screen, around the center."""
        c = math.cos(angle)
        s = math.sin(angle)
        for p in self.points:
            x = p.x - center_x
            y = p.y - center_y
            p.x = center_x + c * x - s * y
            p.y = center_y + s * x + c * y
        for cp in self.polygons:
            cp.update_bounding_box()
        self._check()

    def scale_x(self, factor: float) -> None:
        for p in self.points:
            p.x *= factor
        if factor < 0:
            for cp in self.polygons:
                cp.reverse_edges()
        for cp in self.polygons:
            cp.scale_x_bb(factor)
        self._check()

    def scale_y(self, factor: float) -> None:
        for p in self.points:
            p.y *= factor
        if factor < 0:
            for cp in self.polygons:
                cp.reverse_edges()
        for cp in self.polygons:
            cp.scale_y_bb(factor)
        self._check()

    def scale(self, factor: float) -> None:
        self.scale_x(factor)
        self.scale_y(factor)

    def move(self, dx: float, dy: float) -> None:
        for p in self.points:
            p.x += dx
            p.y += dy
        for cp in self.polygons:
            cp.move_bb(dx, dy)
        self._check()

    def rasterize(self, area_x1: float, area_y1: float, area_x2: float, area_y2: float,
                  width: int, height: int) -> 'raster.RasterIterator':
        """Scanline iterator over the area mapped onto a ``width`` x ``height`` grid."""
        return raster.RasterIterator(self.polygons, area_x1, area_y1, area_x2, area_y2, width, height)

    # text forms

    def __str__(self) -> str:
        return ''.join('{' + str(cp) + '}' for cp in self.polygons)

    def __repr__(self) -> str:
        return f"PolyPoly({str(self)!r})"

    def to_indexed_string(self) -> str:
        """Point table followed by polygons given as point indices."""
        index_of = {}
        parts = []
        for i, p in enumerate(self.points):
            index_of[id(p)] = i
            parts.append(f"{i}:{p} ")
        parts.append(' ')
        for cp in self.polygons:
            parts.append('{' + cp.to_indexed_string(index_of) + '} ')
        return ''.join(parts)
