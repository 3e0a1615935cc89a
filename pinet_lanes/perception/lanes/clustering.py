from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from pinet_lanes.perception.lanes.reconstruct import ReconstructedCells
from pinet_lanes.utils.logger import get_logger
from pinet_lanes.utils.types import Lane, Point

logger = get_logger(__name__)


class LaneArena:
    """
    Fixed-capacity lane storage: slot k holds the k-th lane created.

    Means and counts live in preallocated arrays so the nearest-lane search is a
    single vectorised distance over the candidate window.
    """

    def __init__(self, capacity: int, dim: int):
        self.capacity = capacity
        self.means = np.zeros((capacity, dim), dtype=np.float64)
        self.counts = np.zeros(capacity, dtype=np.int64)
        self.points: List[List[Point]] = []

    def __len__(self) -> int:
        return len(self.points)

    @property
    def full(self) -> bool:
        return len(self.points) >= self.capacity

    def open(self, embedding: np.ndarray, point: Point) -> int:
        if self.full:
            raise IndexError(f"Lane arena is full ({self.capacity} lanes)")
        idx = len(self.points)
        self.means[idx] = embedding
        self.counts[idx] = 1
        self.points.append([point])
        return idx

    def assign(self, idx: int, embedding: np.ndarray, point: Point) -> None:
        n = self.counts[idx]
        self.means[idx] = (self.means[idx] * n + embedding) / (n + 1)
        self.counts[idx] = n + 1
        self.points[idx].append(point)

    def match(self, embedding: np.ndarray, window: int, max_sq_dist: float) -> int:
        """Index of the first lane, among the last `window` created, within `max_sq_dist`; -1 if none."""
        n = len(self.points)
        start = max(0, n - window)
        diff = self.means[start:n] - embedding
        sq = np.einsum("ij,ij->i", diff, diff)
        hits = np.flatnonzero(sq <= max_sq_dist)
        return start + int(hits[0]) if hits.size else -1

    def lanes(self) -> List[Lane]:
        out = []
        for k, pts in enumerate(self.points):
            mean = self.means[k].copy()
            mean.setflags(write=False)
            out.append(Lane(points=tuple(pts), embedding=mean))
        return out


@dataclass
class ClusterConfig:
    threshold_instance: float = 0.22
    max_lanes: int = 12
    window: int = 12


class EmbeddingClusterer:
    """
    Online greedy clustering of cells into lanes by embedding similarity.

    Cells are visited in the order given (row-major from the reconstructor). A cell
    joins the first lane, scanning the `window` most recent lanes in creation order,
    whose running-mean embedding lies within `threshold_instance` (Euclidean; compared
    as squared distance against threshold ** 2). Otherwise it opens a new lane, or is
    discarded once `max_lanes` lanes exist.
    """

    def __init__(self, cfg: ClusterConfig | None = None):
        self.cfg = cfg or ClusterConfig()

    def cluster(self, cells: ReconstructedCells) -> Tuple[List[Lane], int]:
        """Returns (lanes in creation order, number of cells dropped for lane capacity)."""
        if len(cells) == 0:
            return [], 0

        arena = LaneArena(self.cfg.max_lanes, cells.embeddings.shape[1])
        max_sq = float(self.cfg.threshold_instance) ** 2
        discarded = 0

        for (x, y), emb in zip(cells.points.tolist(), cells.embeddings):
            point = Point(int(x), int(y))
            if len(arena) == 0:
                arena.open(emb, point)
                continue
            idx = arena.match(emb, self.cfg.window, max_sq)
            if idx >= 0:
                arena.assign(idx, emb, point)
            elif not arena.full:
                arena.open(emb, point)
            else:
                discarded += 1

        if discarded:
            logger.debug("Lane capacity %d reached; discarded %d cells", self.cfg.max_lanes, discarded)
        return arena.lanes(), discarded
