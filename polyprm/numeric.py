"""Floating point predicates shared by the polygon engine.

All predicates pass coordinate deltas through a magnitude-relative zero test
before treating them as exactly zero. Two quantities are involved:

* ``ZERO_MAGNITUDE_DIVISOR``: a value ``z`` counts as zero relative to ``m``
  when adding ``z / ZERO_MAGNITUDE_DIVISOR`` to ``m`` does not change ``m``.
* ``POINT_DISTANCE_DIVISOR``: point-to-point distances scale each coordinate
  delta down by this extra factor first, so two points are merged only when
  they are far closer than the resolution of their coordinates.

The values are tuning constants. Which ear gets clipped and which split is
chosen depend on exact tie-breaking, so they are kept as they are rather than
derived from machine epsilon.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

ZERO_MAGNITUDE_DIVISOR = 8.0
POINT_DISTANCE_DIVISOR = 32.0

XY = Tuple[float, float]


def zero_magnitude(zero: float, magnitude: float) -> bool:
    """True if ``zero`` is indistinguishable from rounding noise on ``magnitude``."""
    zero /= ZERO_MAGNITUDE_DIVISOR
    return magnitude + zero == magnitude


def max_abs(a1: float, a2: float) -> float:
    a1 = abs(a1)
    a2 = abs(a2)
    return a1 if a1 > a2 else a2


def point_point_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    dx = x2 - x1
    if zero_magnitude(dx / POINT_DISTANCE_DIVISOR, max_abs(x2, x1)):
        dx = 0.0
    dy = y2 - y1
    if zero_magnitude(dy / POINT_DISTANCE_DIVISOR, max_abs(y2, y1)):
        dy = 0.0
    return math.sqrt(dx * dx + dy * dy)


def line_point_distance(ax: float, ay: float, bx: float, by: float, x: float, y: float) -> float:
    """Signed distance of ``(x, y)`` from the infinite line ``a -> b``.

    Positive means the point is on the right side looking from ``a`` to ``b``
    (clockwise turn), negative means left, 0 means on the line.
    """
    dx = bx - ax
    if zero_magnitude(dx, max_abs(bx, ax)):
        dx = 0.0
    dy = by - ay
    if zero_magnitude(dy, max_abs(by, ay)):
        dy = 0.0
    linelen = math.sqrt(dx * dx + dy * dy)
    if linelen == 0.0:
        return 0.0
    dist = (dx * (y - ay) - dy * (x - ax)) / linelen
    scale = max_abs(max_abs(linelen, max_abs(x, y)), max_abs(max_abs(ax, ay), max_abs(bx, by)))
    if zero_magnitude(dist, scale):
        return 0.0
    return dist


def side_of_point(ax: float, ay: float, bx: float, by: float, x: float, y: float) -> int:
    """-1 left of ``a -> b``, 0 on the line, +1 right."""
    d = line_point_distance(ax, ay, bx, by, x, y)
    if d > 0.0:
        return 1
    if d < 0.0:
        return -1
    return 0


def right_turn(p1, p2, p3) -> bool:
    """True if ``p3`` is strictly right of ``p1 -> p2`` (points need ``.x``/``.y``)."""
    return side_of_point(p1.x, p1.y, p2.x, p2.y, p3.x, p3.y) > 0


def collinear(p1, p2, p3) -> bool:
    return side_of_point(p1.x, p1.y, p2.x, p2.y, p3.x, p3.y) == 0


def in_between(x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> bool:
    """Inclusive box test of ``(x, y)`` against the segment ``(x1, y1)-(x2, y2)``.

    False if ``x`` (resp. ``y``) is outside a non-degenerate coordinate range
    of the segment. Points at zero distance from an endpoint snap to it first.
    """
    if point_point_distance(x1, y1, x, y) == 0.0:
        x, y = x1, y1
    if point_point_distance(x2, y2, x, y) == 0.0:
        x, y = x2, y2
    dx = x2 - x1
    if zero_magnitude(dx, max_abs(x2, x1)):
        dx = 0.0
    dy = y2 - y1
    if zero_magnitude(dy, max_abs(y2, y1)):
        dy = 0.0
    in_x = (x - x1) * dx
    in_y = (y - y1) * dy
    return 0.0 <= in_x <= dx * dx and 0.0 <= in_y <= dy * dy


def line_intersection_type(x1: float, y1: float, x2: float, y2: float,
                           a1: float, b1: float, a2: float, b2: float) -> int:
    """Classify the intersection of segments ``(x1,y1)-(x2,y2)`` and ``(a1,b1)-(a2,b2)``.

    Returns 0 for no intersection, 1 for exactly one common point and 2 for
    a collinear overlap of positive length.
    """
    s_a1 = side_of_point(x1, y1, x2, y2, a1, b1)
    s_a2 = side_of_point(x1, y1, x2, y2, a2, b2)
    s_x1 = side_of_point(a1, b1, a2, b2, x1, y1)
    s_x2 = side_of_point(a1, b1, a2, b2, x2, y2)
    if (s_a1 == 0 and s_a2 == 0) or (s_x1 == 0 and s_x2 == 0):
        # collinear: compare along the axis with the larger extent
        if abs(x2 - x1) + abs(a2 - a1) > abs(y2 - y1) + abs(b2 - b1):
            c = [x1, x2, a1, a2]
        else:
            c = [y1, y2, b1, b2]
        is_e1 = [True, True, False, False]
        for i in range(3):
            for j in range(i + 1, 4):
                if c[i] > c[j]:
                    c[i], c[j] = c[j], c[i]
                    is_e1[i], is_e1[j] = is_e1[j], is_e1[i]
        if is_e1[1] == is_e1[2]:
            return 2
        touching = zero_magnitude(c[2] - c[1], max_abs(c[2], c[1]))
        if is_e1[0] != is_e1[1]:
            return 1 if touching else 2
        return 1 if touching else 0
    if s_a1 * s_a2 > 0 or s_x1 * s_x2 > 0:
        return 0
    return 1


def line_intersection(x1: float, y1: float, x2: float, y2: float,
                      a1: float, b1: float, a2: float, b2: float) -> Optional[XY]:
    """Intersection of the infinite lines through both segments, None if parallel.

    A result at zero distance from one of the four input points is replaced
    by that point so no alias coordinates are created.
    """
    l1dx = x2 - x1
    l2dx = a2 - a1
    if zero_magnitude(l1dx, max_abs(x2, x1)):
        l1dx = 0.0
    if zero_magnitude(l2dx, max_abs(a2, a1)):
        l2dx = 0.0
    if l1dx == 0.0:
        if l2dx == 0.0:
            return None
        l1dx, l2dx = l2dx, l1dx
        x1, a1 = a1, x1
        y1, b1 = b1, y1
        x2, a2 = a2, x2
        y2, b2 = b2, y2
    l1dy = y2 - y1
    l2dy = b2 - b1
    if zero_magnitude(l1dy, max_abs(y2, y1)):
        l1dy = 0.0
    if zero_magnitude(l2dy, max_abs(b2, b1)):
        l2dy = 0.0
    det = l2dy * l1dx - l2dx * l1dy
    if zero_magnitude(det, max_abs(l2dy * l1dx, l2dx * l1dy)):
        return None
    cdx = a1 - x1
    if zero_magnitude(cdx, max_abs(a1, x1)):
        cdx = 0.0
    cdy = b1 - y1
    if zero_magnitude(cdy, max_abs(b1, y1)):
        cdy = 0.0
    s = (cdx * l1dy - cdy * l1dx) / det
    x = a1 + s * l2dx
    y = b1 + s * l2dy
    for px, py in ((x1, y1), (x2, y2), (a1, b1), (a2, b2)):
        if point_point_distance(px, py, x, y) == 0.0:
            return (px, py)
    return (x, y)
