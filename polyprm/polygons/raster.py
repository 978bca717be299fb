"""Scanline rasterization of polygon sets.

The iterator yields one :class:`LineInfo` per horizontal run of pixels.
Runs on the outline have ``color == 1``, runs strictly inside have
``color == 0``. Rows touching the top or bottom of the raster area are
always reported as outline so clipped polygons keep a closed border.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


def _round(v: float) -> int:
    return int(math.floor(v + 0.5))


@dataclass
class LineInfo:
    left: int
    right: int
    y: int = 0
    color: int = 0

    def copy(self) -> 'LineInfo':
        return LineInfo(self.left, self.right, self.y, self.color)

    def before(self, other: 'LineInfo') -> bool:
        return self.right < other.left

    def after(self, other: 'LineInfo') -> bool:
        return self.left > other.right

    def well_before(self, other: 'LineInfo') -> bool:
        return self.right < other.left - 1

    def well_after(self, other: 'LineInfo') -> bool:
        return self.left > other.right + 1

    def true_overlap_with(self, other: 'LineInfo') -> bool:
        return not (self.before(other) or self.after(other))

    def merge_with(self, other: 'LineInfo') -> bool:
        """Widen to cover ``other`` if they overlap or touch."""
        if self.well_before(other) or self.well_after(other):
            return False
        self.left = min(self.left, other.left)
        self.right = max(self.right, other.right)
        return True


def intersect_line_info(l1: LineInfo, l2: LineInfo) -> List[Optional[LineInfo]]:
    """Split ``l1`` against ``l2`` into [part left of l2, common part, part right of l2]."""
    result: List[Optional[LineInfo]] = [None, None, None]
    if l1.left < l2.left:
        if l1.right < l2.left:
            return [l1.copy(), None, None]
        result[0] = LineInfo(l1.left, l2.left - 1)
    if l1.right > l2.right:
        if l1.left > l2.right:
            return [None, None, l1.copy()]
        result[2] = LineInfo(l2.right + 1, l1.right)
    result[1] = LineInfo(max(l1.left, l2.left), min(l1.right, l2.right))
    return result


def intersect_line_info_lists(l1: List[LineInfo], l2: List[LineInfo]) -> List[List[LineInfo]]:
    """Return ``[l1 & l2, l1 - l2]`` for two sorted lists of disjoint runs."""
    result: List[List[LineInfo]] = [[], []]
    if not l1:
        return result
    if not l2:
        result[1] = [li.copy() for li in l1]
        return result
    it1 = iter(l1)
    it2 = iter(l2)
    a1 = next(it1)
    a2 = next(it2)
    while True:
        while a1 is not None and a2 is not None and a1.before(a2):
            result[1].append(a1.copy())
            a1 = next(it1, None)
        while a1 is not None and a2 is not None and a2.before(a1):
            a2 = next(it2, None)
        if a1 is None:
            return result
        if a2 is None:
            result[1].append(a1.copy())
            result[1].extend(li.copy() for li in it1)
            return result
        while a1 is not None and a2 is not None and a1.true_overlap_with(a2):
            left, mid, right = intersect_line_info(a1, a2)
            if left is not None:
                result[1].append(left)
            result[0].append(mid)
            a1 = right
            if a1 is None:
                a1 = next(it1, None)
            else:
                a2 = next(it2, None)


def extract_endpoints(runs: List[LineInfo]) -> List[LineInfo]:
    result = []
    for li in runs:
        if li.left + 1 < li.right:
            result.append(LineInfo(li.left, li.left))
            result.append(LineInfo(li.right, li.right))
        else:
            result.append(LineInfo(li.left, li.right))
    return result


def add_line_info_to_list(runs: List[LineInfo], info: LineInfo) -> None:
    """Insert ``info`` into the sorted list, merging it with touching runs."""
    pos = 0
    while pos < len(runs) and not info.left <= runs[pos].right:
        pos += 1
    while pos > 0 and info.merge_with(runs[pos - 1]):
        del runs[pos - 1]
        pos -= 1
    while pos < len(runs) and info.merge_with(runs[pos]):
        del runs[pos]
    runs.insert(pos, info)


def buffer_draw_line_x(buffer: List[int], idx: int, x1: int, y1: int, x2: int, y2: int,
                       left: bool) -> int:
    """Write the x coordinate of each raster row of a line into ``buffer``.

    For flat lines ``left`` selects the leftmost pixel of each row, otherwise
    the rightmost. Returns the number of rows written.
    """
    dx = x2 - x1
    dy = y2 - y1
    xsign = 1
    if dx < 0:
        xsign = -1
        left = not left
        dx = -dx
    if dy < 0:
        dy = -dy
    dx += 1
    dy += 1
    errsum2 = 0
    if dx > dy:
        step = xsign * (dx // dy)
        err2 = 2 * (dx % dy)
        for _ in range(dy):
            if left:
                buffer[idx] = x1
                idx += 1
            x1 += step
            errsum2 += err2
            if errsum2 >= dy:
                errsum2 -= 2 * dy
                x1 += xsign
            if not left:
                buffer[idx] = x1 - xsign
                idx += 1
    else:
        step = dy // dx
        err2 = 2 * (dy % dx)
        for _ in range(dx):
            for _ in range(step):
                buffer[idx] = x1
                idx += 1
            errsum2 += err2
            if errsum2 >= dx:
                errsum2 -= 2 * dx
                buffer[idx] = x1
                idx += 1
            x1 += xsign
    return dy


def rasterize_sides(cpoly, left_side: List[int], right_side: List[int], area_x1: float,
                    x_factor: float, y_factor: float) -> None:
    """Fill the left and right outline x coordinate of each row of a convex polygon."""
    highest = cpoly.edge
    highest_y = highest.start.y
    while highest.next.start.y < highest_y:
        highest = highest.next
        highest_y = highest.start.y
    while highest.prev.start.y < highest_y:
        highest = highest.prev
        highest_y = highest.start.y
    left_start = highest
    while left_start.prev.start.y == highest_y:
        left_start = left_start.prev
    right_start = highest
    while right_start.next.start.y == highest_y:
        right_start = right_start.next

    for cur, buffer, is_left in ((left_start, left_side, True), (right_start, right_side, False)):
        y = 0
        while True:
            sp = cur.start
            cur = cur.prev if is_left else cur.next
            ep = cur.start
            if ep.y <= sp.y:
                break
            y += buffer_draw_line_x(buffer, y,
                                    _round((sp.x - area_x1) * x_factor), _round(sp.y * y_factor),
                                    _round((ep.x - area_x1) * x_factor), _round(ep.y * y_factor),
                                    is_left)
            # consecutive edges share their end row
            y -= 1


class RasterIterator:
    """Iterate the runs of ``polygons`` inside the given area, row by row.

    ``(area_x1, area_y1)`` maps to pixel ``(0, 0)`` and ``(area_x2, area_y2)``
    to ``(width-1, height-1)``. The runs are computed up front, so later
    changes to the polygons do not affect an existing iterator.
    """

    def __init__(self, polygons, area_x1: float, area_y1: float, area_x2: float, area_y2: float,
                 width: int, height: int):
        self.width = 0
        self.height = 0
        self._lines: Dict[int, List[LineInfo]] = {}
        self._vertical: List[LineInfo] = []
        self._current_vertical: Optional[LineInfo] = None
        self._filled: Optional[List[LineInfo]] = None
        self._unfilled: Optional[List[LineInfo]] = None
        self._current_y = 0
        self._next: Optional[LineInfo] = None
        if area_x1 >= area_x2 or area_y1 >= area_y2 or width < 1 or height < 1:
            return
        if not polygons:
            return
        self.width = width
        self.height = height
        y_factor = (height - 1) / (area_y2 - area_y1)
        x_factor = (width - 1) / (area_x2 - area_x1)
        for cp in polygons:
            if cp.bbx1 > area_x2 or cp.bbx2 < area_x1:
                continue
            start_y = _round(cp.bby1 * y_factor)
            end_y = _round(cp.bby2 * y_factor)
            num_y = end_y - start_y + 1
            y_ofs = _round(area_y1 * y_factor)
            start_y -= y_ofs
            end_y -= y_ofs
            if not self._add_vertical(start_y, end_y):
                continue
            left_side = [0] * num_y
            right_side = [0] * num_y
            rasterize_sides(cp, left_side, right_side, area_x1, x_factor, y_factor)
            for i in range(num_y):
                self._add_line_info(start_y + i, LineInfo(left_side[i], right_side[i]))
        logger.debug("rasterized %d polygons into %d rows", len(polygons), len(self._lines))
        if not self._vertical:
            return
        self._current_vertical = self._vertical.pop(0)
        self._current_y = self._current_vertical.left - 1
        self._prepare_next()

    def _add_vertical(self, start_y: int, end_y: int) -> bool:
        if end_y < 0 or start_y >= self.height:
            return False
        start_y = max(start_y, 0)
        end_y = min(end_y, self.height - 1)
        add_line_info_to_list(self._vertical, LineInfo(start_y, end_y))
        return True

    def _add_line_info(self, y: int, info: LineInfo) -> None:
        if y < 0 or y >= self.height or info.right < 0 or info.left >= self.width:
            return
        info.left = max(info.left, 0)
        info.right = min(info.right, self.width - 1)
        add_line_info_to_list(self._lines.setdefault(y, []), info)

    def _prepare_next(self) -> None:
        self._next = None
        while True:
            if self._filled is not None:
                self._next = self._emit(self._filled, 1)
                if not self._filled:
                    self._filled = None
                return
            if self._unfilled is not None:
                self._next = self._emit(self._unfilled, 0)
                if not self._unfilled:
                    self._unfilled = None
                return
            self._current_y += 1
            if self._current_y > self._current_vertical.right:
                if not self._vertical:
                    return
                self._current_vertical = self._vertical.pop(0)
                self._current_y = self._current_vertical.left
            y = self._current_y
            above = self._lines.get(y - 1, []) if y > 0 else []
            below = self._lines.get(y + 1, []) if y < self.height - 1 else []
            inner = intersect_line_info_lists(above, below)[0]
            current = self._lines.get(y, [])
            inner = intersect_line_info_lists(inner, extract_endpoints(current))[1]
            unfilled, filled = intersect_line_info_lists(current, inner)
            self._unfilled = unfilled or None
            self._filled = filled or None

    def _emit(self, runs: List[LineInfo], color: int) -> LineInfo:
        info = runs.pop(0)
        info.color = color
        info.y = self._current_y
        return info

    def __iter__(self) -> 'RasterIterator':
        return self

    def __next__(self) -> LineInfo:
        if self._next is None:
            raise StopIteration
        result = self._next
        self._prepare_next()
        return result


def rasterize_to_array(poly, area_x1: float, area_y1: float, area_x2: float, area_y2: float,
                       width: int, height: int) -> np.ndarray:
    """Dense ``height x width`` image: 0 empty, 1 inside, 2 outline."""
    image = np.zeros((height, width), dtype=np.uint8)
    for run in poly.rasterize(area_x1, area_y1, area_x2, area_y2, width, height):
        image[run.y, run.left:run.right + 1] = 2 if run.color == 1 else 1
    return image
