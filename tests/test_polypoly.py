import math
import random

import pytest

from polyprm.errors import InvariantViolation
from polyprm.polygons.invariant import InvariantChecks, check_polypoly
from polyprm.polygons.polypoly import PolyPoly

CHECKS = InvariantChecks(enabled=True, expensive=True)


def poly(text: str) -> PolyPoly:
    return PolyPoly.from_string(text, CHECKS)


def same(a: PolyPoly, b: PolyPoly) -> bool:
    x = a.copy()
    x.symmetric_difference(b)
    return x.is_empty()


class TestConstruction:
    def test_string_round_trip(self):
        p = poly("{(1,0) (1,2) (1,3)(2,2)} ")
        q = p.copy()
        q.symmetric_difference(PolyPoly.from_string(str(p), CHECKS))
        assert q.is_empty()

    def test_area(self):
        assert poly("{(0,0)(1,0)(1,0.5)(0,0.5)}").area() == pytest.approx(0.5)

    def test_counter_clockwise_input(self):
        cw = PolyPoly.from_coordinates([0, 0, 2, 0, 2, 2, 0, 2], CHECKS)
        ccw = PolyPoly.from_coordinates([0, 0, 0, 2, 2, 2, 2, 0], CHECKS)
        assert cw.area() == pytest.approx(4.0)
        assert same(cw, ccw)

    def test_non_convex_outline_is_decomposed(self):
        p = PolyPoly.from_coordinates([0, 0, 4, 0, 4, 4, 3, 4, 3, 1, 0, 1], CHECKS)
        assert p.area() == pytest.approx(7.0)
        assert len(p.polygons) >= 2
        check_polypoly(p, CHECKS)

    def test_malformed_fragments_are_skipped(self):
        p = PolyPoly.from_string("{(0,0)(1,0)(1,x)} garbage {(0,0)(1,0)(0,1)}", CHECKS)
        assert p.area() == pytest.approx(0.5)

    def test_degenerate_outline_is_empty(self):
        assert PolyPoly.from_coordinates([0, 0, 1, 1, 2, 2], CHECKS).is_empty()
        assert PolyPoly.from_coordinates([0, 0, 1, 0], CHECKS).is_empty()

    def test_indexed_string_lists_points(self):
        p = poly("{(0,0)(1,0)(0,1)}")
        text = p.to_indexed_string()
        assert text.startswith("0:")
        assert text.count(":") == 6

    def test_bounding_box(self):
        bb = poly("{(1,2)(5,2)(5,7)(1,7)}").bounding_box()
        assert (bb.x1, bb.y1, bb.x2, bb.y2) == (1, 2, 5, 7)
        assert PolyPoly().bounding_box() is None


class TestIntersect:
    def test_disjoint_result(self):
        p = poly("{(1,0) (1,2) (1,3)(2,2)} ")
        p.intersect_with(poly("{ (3,2) (4,3) (4,0) }"))
        assert p.is_empty()

    def test_pentagon_and_arrow(self):
        p = poly("{(-2,-1)(1,-1)(2,0)(1,1)(-2,1)}")
        p.intersect_with(poly("{(0,0)(3,-3)(2.5,0)(3,3)(0,0)}"))
        assert same(p, poly("{(0,0)(1,-1)(2,0)(1,1)}"))

    def test_touching_triangles(self):
        p = poly("{(0,3)(1,2)(1,4)}")
        p.intersect_with(poly("{(1,1)(2,1)(1,4)}"))
        assert p.is_empty()

    def test_square_with_three_rectangles(self):
        p = poly("{(1,1)(6,1)(6,6)(1,6)}")
        p.intersect_with(poly("{(4,2)(8,2)(8,3)(4,3)} {(4,4)(7,4)(7,5)(4,5)} {(2,3)(3,3)(3,4)(2,4)}"))
        assert same(p, poly("{(4,2)(6,2)(6,3)(4,3)} {(4,4)(6,4)(6,5)(4,5)} {(2,3)(3,3)(3,4)(2,4)}"))

    def test_identical_squares(self):
        p = poly("{(1,2)(3,2)(3,4)(1,4)}")
        p.intersect_with(poly("{(1,2)(3,2)(3,4)(1,4)}"))
        assert same(p, poly("{(1,2)(3,2)(3,4)(1,4)}"))

    def test_enclosed_square(self):
        p = poly("{(1,1)(4,1)(4,4)(1,4)}")
        p.intersect_with(poly("{(2,2)(3,2)(3,3)(2,3)}"))
        assert same(p, poly("{(2,2)(3,2)(3,3)(2,3)}"))


class TestUnite:
    def test_two_triangles_make_square(self):
        p = poly("{(1,1)(3,1)(1,3)}")
        p.unite_with(poly("{(1,3)(3,1)(3,3)}"))
        assert same(p, poly("{(1,1)(3,1)(3,3)(1,3)}"))

    def test_square_with_sticking_out_rectangle(self):
        p = poly("{(1,1)(6,1)(6,6)(1,6)}")
        p.unite_with(poly("{(4,4)(7,4)(7,5)(4,5)} {(2,3)(3,3)(3,4)(2,4)}"))
        assert same(p, poly("{(1,1)(6,1)(6,4)(7,4)(7,5)(6,5)(6,6)(1,6)}"))

    def test_square_with_three_rectangles(self):
        p = poly("{(1,1)(6,1)(6,6)(1,6)}")
        p.unite_with(poly("{(4,2)(8,2)(8,3)(4,3)} {(4,4)(7,4)(7,5)(4,5)} {(2,3)(3,3)(3,4)(2,4)}"))
        assert same(p, poly("{(1,1)(6,1)(6,2)(8,2)(8,3)(6,3)(6,4)(7,4)(7,5)(6,5)(6,6)(1,6)}"))

    def test_disjoint_unite(self):
        p = poly("{(0,0)(1,0)(1,1)(0,1)}")
        p.disjoint_unite_with(poly("{(2,0)(3,0)(3,1)(2,1)}"))
        assert p.area() == pytest.approx(2.0)
        assert len(p.polygons) == 2


class TestDifference:
    def test_symmetric_difference_chain(self):
        poly2 = poly("{(1,1)(2,2)(1,3)(0,2)}")
        poly2.symmetric_difference(poly("{(0,1)(2,1)(2,2)(0,2)}"))
        poly3 = poly2.copy()
        poly3.unite_with(poly("{(0,2)(1,1)(2,2)}{(0,2)(1,3)(0,3)}{(2,2)(2,3)(1,3)}"))
        poly4 = poly("{(0,1)(2,1)(2,3)(0,3)}")
        poly1 = poly3.copy()
        poly3.subtract(poly4)
        poly4.subtract(poly1)
        assert poly3.is_empty()
        assert poly4.is_empty()
        assert not poly2.is_empty()

    def test_square_minus_corner(self):
        p = poly("{(1,1)(4,1)(4,4)(1,4)}")
        p.subtract(poly("{(1,1)(2,1)(1,2)}"))
        assert p.area() == pytest.approx(8.5)

    def test_subtract_hole_keeps_ring(self):
        p = poly("{(0,0)(6,0)(6,6)(0,6)}")
        p.subtract(poly("{(2,2)(4,2)(4,4)(2,4)}"))
        assert p.area() == pytest.approx(32.0)
        assert not p.contains_point(3, 3)
        assert p.contains_point(1, 1)


class TestIdentities:
    A = "{(0,0)(4,0)(4,3)(0,3)}"
    B = "{(2,1)(6,1)(6,5)(2,5)}"

    def test_idempotence(self):
        a = poly(self.A)
        u = a.copy()
        u.unite_with(a)
        assert same(u, a)
        i = a.copy()
        i.intersect_with(a)
        assert same(i, a)
        d = a.copy()
        d.subtract(a)
        assert d.is_empty()
        x = a.copy()
        x.symmetric_difference(a)
        assert x.is_empty()

    def test_inclusion_exclusion(self):
        a = poly(self.A)
        b = poly(self.B)
        u = a.copy()
        u.unite_with(b)
        i = a.copy()
        i.intersect_with(b)
        assert u.area() == pytest.approx(a.area() + b.area() - i.area())
        assert i.area() == pytest.approx(4.0)

    def test_symmetric_difference_area(self):
        a = poly(self.A)
        b = poly(self.B)
        x = a.copy()
        x.symmetric_difference(b)
        a_minus_b = a.copy()
        a_minus_b.subtract(b)
        b_minus_a = b.copy()
        b_minus_a.subtract(a)
        assert x.area() == pytest.approx(a_minus_b.area() + b_minus_a.area())

    def test_points_are_shared_and_reachable(self):
        a = poly(self.A)
        a.unite_with(poly(self.B))
        a.subtract(poly("{(1,1)(2,1)(2,2)(1,2)}"))
        used = {id(p) for cp in a.polygons for p in cp.points()}
        assert used == {id(p) for p in a.points}


def star(rng: random.Random, vertices: int) -> PolyPoly:
    cx = rng.uniform(3, 7)
    cy = rng.uniform(3, 7)
    angles = sorted(rng.uniform(0, 2 * math.pi) for _ in range(vertices))
    coords = []
    for a in angles:
        r = rng.uniform(1, 3)
        coords.extend((round(cx + r * math.cos(a), 2), round(cy + r * math.sin(a), 2)))
    return PolyPoly.from_coordinates(coords, CHECKS)


def assert_set_algebra(a: PolyPoly, b: PolyPoly) -> None:
    x = a.copy()
    x.symmetric_difference(b)
    a_minus_b = a.copy()
    a_minus_b.subtract(b)
    b_minus_a = b.copy()
    b_minus_a.subtract(a)
    both = a.copy()
    both.intersect_with(b)
    assert x.area() == pytest.approx(a_minus_b.area() + b_minus_a.area(), abs=1e-6)
    assert x.area() == pytest.approx(a.area() + b.area() - 2 * both.area(), abs=1e-6)
    overlap = x.copy()
    overlap.intersect_with(both)
    assert overlap.area() == pytest.approx(0.0, abs=1e-6)


class TestSlantedIdentities:
    A = "{(10.45,8.1)(4.78,7.9)(9.7,7.32)}"
    B = "{(9.04,7.24)(11.0,7.65)(7.1,12.12)(7.47,8.68)(7.7,7.59)}"

    def test_triangle_and_pentagon(self):
        assert_set_algebra(poly(self.A), poly(self.B))

    def test_remainders_touching_along_an_edge(self):
        # the pieces of A\B and B\A meet at vertices on the cut edges
        a_minus_b = poly(self.A)
        a_minus_b.subtract(poly(self.B))
        b_minus_a = poly(self.B)
        b_minus_a.subtract(poly(self.A))
        assert not a_minus_b.is_empty() and not b_minus_a.is_empty()
        for p in a_minus_b.polygons:
            for q in b_minus_a.polygons:
                first = poly('{%s}' % p)
                second = poly('{%s}' % q)
                x = first.copy()
                x.symmetric_difference(second)
                assert x.area() == pytest.approx(first.area() + second.area(), abs=1e-6)

    def test_collinear_triangles_meeting_at_a_vertex(self):
        a = poly("{(0.3,0.221)(1.7,0.739)(0.9,1.9)}")
        b = poly("{(1.7,0.739)(4.1,1.627)(3.3,-0.4)}")
        x = a.copy()
        x.symmetric_difference(b)
        assert x.area() == pytest.approx(a.area() + b.area(), abs=1e-6)
        assert_set_algebra(a, b)

    @pytest.mark.parametrize("seed", range(12))
    def test_random_star_polygons(self, seed):
        rng = random.Random(seed)
        a = star(rng, rng.randint(3, 7))
        b = star(rng, rng.choice((3, 5, 6)))
        if a.is_empty() or b.is_empty():
            pytest.skip("degenerate outline")
        assert_set_algebra(a, b)


class TestIntersects:
    def test_overlap_and_touch(self):
        a = poly("{(0,0)(2,0)(2,2)(0,2)}")
        assert a.intersects(poly("{(1,1)(3,1)(3,3)(1,3)}"))
        assert a.intersects(poly("{(2,0)(4,0)(4,2)(2,2)}"))
        assert not a.intersects(poly("{(3,0)(4,0)(4,2)(3,2)}"))

    def test_containment(self):
        a = poly("{(0,0)(10,0)(10,10)(0,10)}")
        assert a.intersects(poly("{(4,4)(5,4)(5,5)(4,5)}"))
        assert poly("{(4,4)(5,4)(5,5)(4,5)}").intersects(a)


class TestHullAndMinkowski:
    def test_hull_contains_inputs(self):
        coords = [0, 0, 3, 1, 1, 1, 4, 4, 2, 3, 0, 4, 1, 2, 2, 2, 3, 0]
        hull = PolyPoly.convex_hull(coords, CHECKS)
        assert len(hull.polygons) == 1
        for k in range(0, len(coords), 2):
            assert hull.polygons[0].relation_to_point(coords[k], coords[k + 1]) >= 1

    def test_hull_of_square_with_collinear_points(self):
        hull = PolyPoly.convex_hull([0, 0, 1, 0, 2, 0, 2, 2, 0, 2, 1, 1], CHECKS)
        assert hull.area() == pytest.approx(4.0)
        assert len(list(hull.polygons[0].points())) == 4

    def test_minkowski_sum_of_squares(self):
        a = poly("{(0,0)(2,0)(2,2)(0,2)}")
        robot = poly("{(-1,-1)(1,-1)(1,1)(-1,1)}")
        grown = a.minkowski_sum_with_mirrored(robot)
        assert same(grown, poly("{(-1,-1)(3,-1)(3,3)(-1,3)}"))


class TestTransforms:
    def test_rotate(self):
        p = poly("{(1.5,0.5)(3.5,0.5)(3.5,3.5)(1.5,3.5)}")
        p.rotate(math.pi / 2, 2.5, 2)
        assert same(p, poly("{(1,1)(4,1)(4,3)(1,3)}"))

    def test_move(self):
        p = poly("{(1,1)(4,1)(4,3)(1,3)}")
        p.move(1, 0)
        p.move(0, 2)
        assert same(p, poly("{(2,3)(5,3)(5,5)(2,5)}"))

    def test_scale(self):
        p = poly("{(-1,-3)(1,-3)(2,1)(-2,1)}")
        p.scale_x(4)
        p.scale_y(3)
        p.scale(.5)
        assert same(p, poly("{(-4,1.5)(-2,-4.5)(2,-4.5)(4,1.5)}"))

    def test_mirror(self):
        p = poly("{(-1,-3)(1,-3)(2,1)(-2,1)}")
        p.scale_x(-1)
        assert same(p, poly("{(-1,-3)(1,-3)(2,1)(-2,1)}"))
        bb = p.bounding_box()
        assert (bb.x1, bb.x2) == (-2, 2)


class TestInvariantChecks:
    def test_checks_are_inherited(self):
        p = poly("{(0,0)(1,0)(1,1)(0,1)}")
        assert p.copy().checks == CHECKS

    def test_corrupted_ring_is_reported(self):
        p = poly("{(0,0)(2,0)(2,2)(0,2)}")
        cp = p.polygons[0]
        cp.edge.start.x, cp.edge.start.y = 5.0, 5.0
        with pytest.raises(InvariantViolation):
            check_polypoly(p, CHECKS)
