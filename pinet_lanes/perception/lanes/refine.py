from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

import numpy as np

from pinet_lanes.utils.types import Lane


def eliminate_fewer_points(lanes: Sequence[Lane], min_points: int) -> List[Lane]:
    return [lane for lane in lanes if lane.count >= min_points]


def sort_along_y(lanes: Sequence[Lane]) -> List[Lane]:
    """Stable sort of each lane's points by ascending y."""
    return [replace(lane, points=tuple(sorted(lane.points, key=lambda p: p.y))) for lane in lanes]


def outlier_flags(points: np.ndarray, tolerance: float) -> np.ndarray:
    """
    Flag interior points far from the line through their two neighbours.

    Args:
        points: (N, 2) y-sorted points
        tolerance: max perpendicular distance in pixels

    Returns:
        flags: (N,) bool, endpoints never flagged
    """
    flags = np.zeros(len(points), dtype=bool)
    if len(points) < 3:
        return flags

    pts = points.astype(np.float64)
    prev_pts, mid, next_pts = pts[:-2], pts[1:-1], pts[2:]
    chord = next_pts - prev_pts
    rel = mid - prev_pts
    chord_len = np.hypot(chord[:, 0], chord[:, 1])
    cross = np.abs(chord[:, 0] * rel[:, 1] - chord[:, 1] * rel[:, 0])
    # Coincident neighbours: fall back to distance from that point.
    dist = np.where(
        chord_len > 0,
        cross / np.where(chord_len > 0, chord_len, 1.0),
        np.hypot(rel[:, 0], rel[:, 1]),
    )
    flags[1:-1] = dist > tolerance
    return flags


def eliminate_outliers(lanes: Sequence[Lane], tolerance: float) -> Tuple[List[Lane], int]:
    out: List[Lane] = []
    removed = 0
    for lane in lanes:
        flags = outlier_flags(np.asarray(lane.points, dtype=np.float64).reshape(-1, 2), tolerance)
        if flags.any():
            removed += int(flags.sum())
            lane = replace(lane, points=tuple(p for p, bad in zip(lane.points, flags) if not bad))
        out.append(lane)
    return out, removed


@dataclass
class RefinerConfig:
    min_points: int = 3
    outlier_tolerance: Optional[float] = None


class LaneRefiner:
    """Filter short lanes, order points top-to-bottom, optionally drop geometric outliers."""

    def __init__(self, cfg: RefinerConfig | None = None):
        self.cfg = cfg or RefinerConfig()

    def refine(self, lanes: Sequence[Lane]) -> Tuple[List[Lane], int]:
        """Returns (refined lanes, number of outlier points removed)."""
        lanes = eliminate_fewer_points(lanes, self.cfg.min_points)
        lanes = sort_along_y(lanes)
        removed = 0
        if self.cfg.outlier_tolerance is not None:
            lanes, removed = eliminate_outliers(lanes, self.cfg.outlier_tolerance)
            lanes = sort_along_y(lanes)
            lanes = eliminate_fewer_points(lanes, self.cfg.min_points)
        return lanes, removed
