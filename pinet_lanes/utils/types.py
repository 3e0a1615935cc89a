from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

import numpy as np


class Point(NamedTuple):
    x: int
    y: int


@dataclass(frozen=True)
class Lane:
    points: Tuple[Point, ...]
    embedding: np.ndarray = field(compare=False, repr=False)

    @property
    def count(self) -> int:
        return len(self.points)

    def xs(self) -> List[int]:
        return [p.x for p in self.points]

    def ys(self) -> List[int]:
        return [p.y for p in self.points]


@dataclass
class DecodeStats:
    active_cells: int = 0
    out_of_bounds: int = 0
    capacity_discarded: int = 0
    lanes_clustered: int = 0
    lanes_kept: int = 0
    outliers_removed: int = 0
    stages_ms: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, object]:
        return {
            "active_cells": self.active_cells,
            "out_of_bounds": self.out_of_bounds,
            "capacity_discarded": self.capacity_discarded,
            "lanes_clustered": self.lanes_clustered,
            "lanes_kept": self.lanes_kept,
            "outliers_removed": self.outliers_removed,
            "stages_ms": dict(self.stages_ms),
        }


@dataclass(frozen=True)
class LaneSet:
    """
    Final decode result: lanes in cluster creation order, each sorted by ascending y.

    Lanes and their embeddings are read-only; `stats` is per-call diagnostics.
    """

    lanes: Tuple[Lane, ...] = ()
    stats: DecodeStats = field(default_factory=DecodeStats, compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.lanes)

    def __iter__(self) -> Iterator[Lane]:
        return iter(self.lanes)

    def __getitem__(self, idx: int) -> Lane:
        return self.lanes[idx]

    def to_list(self) -> List[List[List[int]]]:
        """JSON-friendly ``[[[x, y], ...], ...]``."""
        return [[[int(p.x), int(p.y)] for p in lane.points] for lane in self.lanes]

    def to_xy(self) -> Tuple[List[List[int]], List[List[int]]]:
        """Split into per-lane x and y lists."""
        return [lane.xs() for lane in self.lanes], [lane.ys() for lane in self.lanes]


@dataclass
class GridPacket:
    """Network outputs for one input, as read from disk or produced by an engine."""

    source: str
    confidence: object = None
    offset: object = None
    embedding: object = None
    # Set when the outputs could not be produced for this input.
    error: Optional[str] = None


@dataclass
class FramePacket:
    source: str
    frame: object
