from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from pinet_lanes.perception.lanes.grids import OutputGrid


@dataclass
class ReconstructedCells:
    """Active, in-bounds cells in row-major order."""

    rows: np.ndarray  # (N,) int
    cols: np.ndarray  # (N,) int
    points: np.ndarray  # (N, 2) int64, columns x, y
    embeddings: np.ndarray  # (N, E) float64
    out_of_bounds: int = 0

    def __len__(self) -> int:
        return int(self.points.shape[0])


def round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def reconstruct_points(
    mask: np.ndarray,
    offset: OutputGrid,
    embedding: OutputGrid,
    resize_ratio: float,
    bound_width: Optional[int] = None,
    bound_height: Optional[int] = None,
) -> ReconstructedCells:
    """
    Turn active cells into image-space points.

    x = round((dx + col) * resize_ratio), y = round((dy + row) * resize_ratio).
    Points outside [0, bound_width) x [0, bound_height) are discarded, as are
    cells with a non-finite offset or embedding. The bound defaults to the grid extent.
    """
    height, width = mask.shape
    bound_w = width if bound_width is None else bound_width
    bound_h = height if bound_height is None else bound_height

    rows, cols = np.nonzero(mask)  # row-major
    dx = offset.data[0][rows, cols].astype(np.float64)
    dy = offset.data[1][rows, cols].astype(np.float64)
    emb = embedding.data[:, rows, cols].T.astype(np.float64)

    finite = np.isfinite(dx) & np.isfinite(dy) & np.all(np.isfinite(emb), axis=1)
    # Non-finite values are zeroed before arithmetic and then masked out by `finite`.
    xs = round_half_up((np.where(finite, dx, 0.0) + cols) * resize_ratio)
    ys = round_half_up((np.where(finite, dy, 0.0) + rows) * resize_ratio)

    keep = finite & (xs >= 0) & (xs < bound_w) & (ys >= 0) & (ys < bound_h)
    points = np.stack([xs[keep], ys[keep]], axis=1).astype(np.int64)
    return ReconstructedCells(
        rows=rows[keep],
        cols=cols[keep],
        points=points.reshape(-1, 2),
        embeddings=emb[keep].reshape(-1, embedding.channels),
        out_of_bounds=int(rows.size - int(keep.sum())),
    )
