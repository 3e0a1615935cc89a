import numpy as np

from pinet_lanes.perception.lanes.refine import (
    LaneRefiner,
    RefinerConfig,
    eliminate_fewer_points,
    eliminate_outliers,
    outlier_flags,
    sort_along_y,
)
from pinet_lanes.utils.types import Lane, Point


def _lane(*pts):
    return Lane(points=tuple(Point(x, y) for x, y in pts), embedding=np.zeros(4))


def test_filter_drops_short_lanes():
    lanes = [_lane((0, 0)), _lane((0, 0), (1, 1), (2, 2))]
    kept = eliminate_fewer_points(lanes, 3)
    assert len(kept) == 1
    assert kept[0].count == 3


def test_sort_is_stable_on_y_ties():
    lane = _lane((5, 20), (1, 10), (7, 10), (3, 0))
    (out,) = sort_along_y([lane])
    assert out.points == (Point(3, 0), Point(1, 10), Point(7, 10), Point(5, 20))


def test_refine_postcondition_and_idempotence():
    rng = np.random.default_rng(7)
    lanes = [_lane(*rng.integers(0, 256, size=(n, 2)).tolist()) for n in (1, 2, 5, 9)]
    refiner = LaneRefiner(RefinerConfig(min_points=3))
    once, _ = refiner.refine(lanes)
    twice, _ = refiner.refine(once)
    assert once == twice
    assert len(once) == 2
    for lane in once:
        ys = lane.ys()
        assert all(a <= b for a, b in zip(ys, ys[1:]))


def test_outlier_flags_interior_spike():
    pts = np.array([[0, 0], [0, 10], [20, 20], [0, 30], [0, 40]])
    assert outlier_flags(pts, 8.0).tolist() == [False, False, True, False, False]


def test_outlier_flags_coincident_neighbours():
    pts = np.array([[0, 0], [6, 0], [0, 0]])
    assert outlier_flags(pts, 5.0).tolist() == [False, True, False]
    assert outlier_flags(pts, 6.0).tolist() == [False, False, False]


def test_eliminate_outliers_counts_removed():
    lanes, removed = eliminate_outliers([_lane((0, 0), (0, 10), (20, 20), (0, 30), (0, 40))], 8.0)
    assert removed == 1
    assert lanes[0].points == (Point(0, 0), Point(0, 10), Point(0, 30), Point(0, 40))


def test_outlier_stage_disabled_by_default():
    lane = _lane((0, 0), (0, 10), (20, 20), (0, 30), (0, 40))
    out, removed = LaneRefiner().refine([lane])
    assert removed == 0
    assert out[0].count == 5


def test_outlier_removal_refilters_short_lanes():
    lane = _lane((0, 0), (30, 10), (0, 20))
    out, removed = LaneRefiner(RefinerConfig(min_points=3, outlier_tolerance=5.0)).refine([lane])
    assert removed == 1
    assert out == []
