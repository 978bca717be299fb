"""Optional structural self-checks for polygon sets.

Checks are off unless an :class:`InvariantChecks` with ``enabled=True`` is
handed to the polygon set. ``expensive`` adds quadratic edge and overlap
tests on top.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import InvariantViolation
from ..numeric import line_intersection_type
from .primitives import MIN_ALLOWED_AREA


@dataclass(frozen=True)
class InvariantChecks:
    enabled: bool = False
    expensive: bool = False

    def cheap(self) -> 'InvariantChecks':
        """Same switches without the expensive tier."""
        return replace(self, expensive=False)


NO_CHECKS = InvariantChecks()


def _check_edge(edge, expensive: bool) -> None:
    if edge.next is None:
        raise InvariantViolation("next_: Existence")
    if edge.start is None:
        raise InvariantViolation("point_: Existence")
    if edge.side_of(edge.next.next.start) <= 0:
        raise InvariantViolation("next_: Orientation")
    if edge.start.distance_to(edge.next.start) == 0.0:
        raise InvariantViolation("next_: Non-degenerate")
    if edge.next.prev is not edge:
        raise InvariantViolation("next_: Well-connectedness")
    if not expensive:
        return
    a = edge.start
    b = edge.end
    cur = edge.next
    while cur is not edge:
        c = cur.start
        d = cur.end
        itype = line_intersection_type(a.x, a.y, b.x, b.y, c.x, c.y, d.x, d.y)
        if itype == 2 or (itype == 1 and cur is not edge.prev and cur is not edge.next):
            raise InvariantViolation("next_: No intersection")
        cur = cur.next


def check_polygon(cpoly, expensive: bool = False) -> None:
    owned = {id(p) for p in cpoly.owner.points}
    for p in cpoly.points():
        if id(p) not in owned:
            raise InvariantViolation("edge_: Cross-reference")
    xs = [p.x for p in cpoly.points()]
    ys = [p.y for p in cpoly.points()]
    if (min(xs) != cpoly.bbx1 or max(xs) != cpoly.bbx2
            or min(ys) != cpoly.bby1 or max(ys) != cpoly.bby2):
        raise InvariantViolation("edge_: Bounding Box")
    for e in cpoly.edges():
        _check_edge(e, expensive)


def check_polypoly(poly, checks: InvariantChecks) -> None:
    """Raise :class:`InvariantViolation` if ``poly`` is structurally broken."""
    if not checks.enabled:
        return
    used = set()
    for cpoly in poly.polygons:
        for p in cpoly.points():
            used.add(id(p))
    for i, p1 in enumerate(poly.points):
        for j, p2 in enumerate(poly.points):
            if i != j and p1.distance_to(p2) == 0.0:
                raise InvariantViolation("points_: Uniqueness")
        if id(p1) not in used:
            raise InvariantViolation("points_: Parents")
    for cpoly in poly.polygons:
        check_polygon(cpoly, checks.expensive)
    for cpoly in poly.polygons:
        if cpoly.area() <= MIN_ALLOWED_AREA:
            raise InvariantViolation("polygons_: Reasonable Size")
    if checks.expensive:
        inner = checks.cheap()
        for cpoly1 in poly.polygons:
            for cpoly2 in poly.polygons:
                if cpoly1 is cpoly2:
                    continue
                info = cpoly1.intersection_with(cpoly2, True, False, False, False, checks=inner)
                if info is not None:
                    raise InvariantViolation(
                        f"polygons_: No Overlap (violated with area {info.intersection.area()})")
