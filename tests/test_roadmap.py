import math
import random

import pytest

from polyprm.configuration import RobotOrientation as RO
from polyprm.roadmap import Roadmap

ROADMAP_TEXT = (
    "{x1=-0.05,y1=-0.05,x2=0.95,y2=1.95,gridx=10,gridy=20,"
    "1:(.1,.5<3.1) 2:(0,.7<-1.5) 3:(.3,.3<1.5) 4:(.6,.2<1.5) 5:(.5,.4<.7)"
    "6:(.6,.6<-.7) 7:(.8,.4<0) 8:(.8,.6<-1.5) 9:(.8,.9<-1.5)"
    "10:(.6,.9<-2.2) 11:(.3,1.1<-1.5) 12:(.9,1.3<0) 13:(.3,.7<1.5) 14:(.7,1.7<0)"
    "(1,2)(13,1)(13,3)(13,5)(5,4)(5,7)(7,8)(5,6)(6,10)(8,10)(8,9)(10,11)(9,12)(11,12)"
    "(2,11)(11,13)(12,14)}"
)


def road_text(road):
    return ''.join(str(o) for o in road)


@pytest.fixture
def roadmap():
    return Roadmap.from_string(ROADMAP_TEXT)


class TestRobotOrientation:
    def test_text_form(self):
        assert str(RO(0, .7, -1.5)) == "(0.0,0.7<-1.5)"
        assert RO.from_string("( .1 , .5 < 3.1 )") == RO(.1, .5, 3.1)

    def test_default_angle(self):
        assert RO(1, 2).angle == pytest.approx(math.pi / 2)

    @pytest.mark.parametrize("text, message", [
        ("()", "x missing"),
        ("(1)", "y missing"),
        ("(1,2<)", "angle missing"),
    ])
    def test_missing_values(self, text, message):
        with pytest.raises(ValueError, match=message):
            RO.from_string(text)

    def test_random_is_reproducible_and_bounded(self):
        a = [RO.random(0, 0, 10, 5, random.Random(3)) for _ in range(2)]
        assert a[0] == a[1]
        rng = random.Random(11)
        for _ in range(200):
            o = RO.random(-1, 2, 3, 4, rng)
            assert -1 <= o.x <= 3
            assert 2 <= o.y <= 4
            assert -math.pi <= o.angle < math.pi


class TestRoadmapText:
    def test_round_trip(self, roadmap):
        assert str(roadmap) == str(Roadmap.from_string(str(roadmap)))

    def test_counts(self, roadmap):
        assert roadmap.num_nodes == 14
        assert roadmap.num_edges == 17

    @pytest.mark.parametrize("name", ["x1", "y1", "x2", "y2", "gridx", "gridy"])
    def test_missing_parameter(self, name):
        text = ROADMAP_TEXT.replace(name + "=", name + "~")
        with pytest.raises(ValueError, match=name + " missing"):
            Roadmap.from_string(text)

    def test_init_from_replaces_contents(self, roadmap):
        roadmap.init_from("{x1=0,y1=0,x2=1,y2=1,gridx=1,gridy=1,1:(.5,.5<0)}")
        assert roadmap.num_nodes == 1
        assert roadmap.num_edges == 0
        assert roadmap.all_nodes() == [RO(.5, .5, 0)]


class TestRoadmapGrid:
    @pytest.mark.parametrize("args", [
        (0, 0, 1, 1, 0, 5),
        (0, 0, 1, 1, 5, -1),
    ])
    def test_bad_grid(self, args):
        with pytest.raises(ValueError, match="Non-positive grid"):
            Roadmap(*args)

    def test_empty_area(self):
        with pytest.raises(ValueError):
            Roadmap(1, 0, 1, 1, 5, 5)

    def test_neighbours(self, roadmap):
        assert roadmap.neighbours(RO(.75, .9, 0), .05) == [RO(.8, .9, -1.5)]
        assert roadmap.neighbours(RO(-0.1, .7, 0), .1) == [RO(0, .7, -1.5)]

    def test_outside_configurations_land_in_border_cells(self):
        rm = Roadmap(0, 0, 1, 1, 2, 2)
        rm.add_node(RO(-5, -5, 0))
        rm.add_node(RO(50, 50, 0))
        assert rm.num_nodes == 2
        assert rm.neighbours(RO(-3, -3, 0), 0.5) == [RO(-5, -5, 0)]
        assert rm.neighbours(RO(30, 30, 0), 0.5) == [RO(50, 50, 0)]

    def test_duplicates_are_counted_once(self):
        rm = Roadmap(0, 0, 1, 1, 2, 2)
        a = RO(.1, .1, 0)
        b = RO(.2, .1, 0)
        rm.add_node(a)
        rm.add_node(RO(.1, .1, 0))
        rm.add_connection(a, b, True)
        rm.add_connection(b, a, False)
        assert rm.num_nodes == 2
        assert rm.num_edges == 2

    def test_clear(self, roadmap):
        roadmap.clear()
        assert roadmap.num_nodes == 0
        assert roadmap.all_nodes() == []


class TestRoads:
    def test_unknown_start(self, roadmap):
        assert roadmap.road_from_to(RO(0, 0, 0), RO(.1, .5, 3.1)) == []
        assert roadmap.road_from_to(RO(.1, .5, 3.1), RO(0, 0, 0)) == []

    def test_same_node(self, roadmap):
        assert roadmap.road_from_to(RO(.1, .5, 3.1), RO(.1, .5, 3.1)) == [RO(.1, .5, 3.1)]

    def test_direct_connection(self, roadmap):
        road = roadmap.road_from_to(RO(0, .7, -1.5), RO(.3, 1.1, -1.5))
        assert road_text(road) == "(0.0,0.7<-1.5)(0.3,1.1<-1.5)"

    def test_directed_dead_end(self, roadmap):
        assert roadmap.road_from_to(RO(.7, 1.7, 0), RO(.9, 1.3, 0)) == []

    def test_long_road(self, roadmap):
        road = roadmap.road_from_to(RO(.1, .5, 3.1), RO(.6, .9, -2.2))
        assert road_text(road) == (
            "(0.1,0.5<3.1)(0.0,0.7<-1.5)(0.3,1.1<-1.5)(0.3,0.7<1.5)"
            "(0.5,0.4<0.7)(0.6,0.6<-0.7)(0.6,0.9<-2.2)")

    def test_one_way_chain(self):
        rm = Roadmap(-1, -1, 3, 1, 4, 2)
        a, b, c = RO(0, 0, 0), RO(1, 0, 0), RO(2, 0, 0)
        rm.add_connection(a, b, False)
        rm.add_connection(b, c, False)
        assert rm.road_from_to(a, c) == [a, b, c]
        assert rm.road_from_to(c, a) == []

    def test_shortest_of_two_roads(self):
        rm = Roadmap(0, 0, 10, 10, 5, 5)
        a, far, near, goal = RO(0, 0, 0), RO(5, 8, 0), RO(5, 1, 0), RO(10, 0, 0)
        rm.add_connection(a, far, True)
        rm.add_connection(far, goal, True)
        rm.add_connection(a, near, True)
        rm.add_connection(near, goal, True)
        assert rm.road_from_to(a, goal) == [a, near, goal]
        assert rm.connections()[0][0] == a
