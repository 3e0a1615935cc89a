from __future__ import annotations

from typing import Union

import numpy as np

from pinet_lanes.perception.lanes.clustering import ClusterConfig, EmbeddingClusterer
from pinet_lanes.perception.lanes.grid_mask import activation_mask
from pinet_lanes.perception.lanes.grids import OutputGrid, as_grid, validate_grids
from pinet_lanes.perception.lanes.reconstruct import reconstruct_points
from pinet_lanes.perception.lanes.refine import LaneRefiner, RefinerConfig
from pinet_lanes.utils.config import DecoderConfig
from pinet_lanes.utils.logger import get_logger
from pinet_lanes.utils.timing import StageTimer
from pinet_lanes.utils.types import DecodeStats, LaneSet

logger = get_logger(__name__)

GridLike = Union[OutputGrid, np.ndarray]


class LaneDecoder:
    """
    PINet post-processing: (confidence, offset, embedding) grids -> LaneSet.

    Holds only an immutable config, so one instance can be shared across threads.
    """

    def __init__(self, cfg: DecoderConfig | None = None):
        self.cfg = cfg or DecoderConfig()
        self.clusterer = EmbeddingClusterer(
            ClusterConfig(
                threshold_instance=self.cfg.threshold_instance,
                max_lanes=self.cfg.max_lanes,
                window=self.cfg.window,
            )
        )
        self.refiner = LaneRefiner(
            RefinerConfig(min_points=self.cfg.min_points, outlier_tolerance=self.cfg.outlier_tolerance)
        )

    def decode(self, confidence: GridLike, offset: GridLike, embedding: GridLike) -> LaneSet:
        """
        Args:
            confidence: (1, H, W) heatmap
            offset: (2, H, W) sub-cell offsets, channel 0 = dx, channel 1 = dy
            embedding: (E, H, W) instance features, E >= 2

        Raises:
            InputShapeMismatch: grids disagree in H/W or have the wrong channel count
        """
        confidence, offset, embedding = as_grid(confidence), as_grid(offset), as_grid(embedding)
        validate_grids(confidence, offset, embedding)

        timer = StageTimer()
        stats = DecodeStats()

        with timer.stage("mask"):
            mask = activation_mask(confidence, self.cfg.threshold_point)
        stats.active_cells = int(mask.sum())

        with timer.stage("reconstruct"):
            cells = reconstruct_points(
                mask,
                offset,
                embedding,
                self.cfg.resize_ratio,
                bound_width=self.cfg.bound_width,
                bound_height=self.cfg.bound_height,
            )
        stats.out_of_bounds = cells.out_of_bounds

        with timer.stage("cluster"):
            lanes, stats.capacity_discarded = self.clusterer.cluster(cells)
        stats.lanes_clustered = len(lanes)

        with timer.stage("refine"):
            lanes, stats.outliers_removed = self.refiner.refine(lanes)
        stats.lanes_kept = len(lanes)
        stats.stages_ms = timer.stages_ms

        logger.debug(
            "Decoded %d lanes (clustered=%d active=%d oob=%d capacity_discarded=%d) in %.2f ms",
            stats.lanes_kept,
            stats.lanes_clustered,
            stats.active_cells,
            stats.out_of_bounds,
            stats.capacity_discarded,
            timer.total_ms(),
        )
        return LaneSet(lanes=tuple(lanes), stats=stats)


def decode(
    confidence: GridLike,
    offset: GridLike,
    embedding: GridLike,
    cfg: DecoderConfig | None = None,
) -> LaneSet:
    return LaneDecoder(cfg).decode(confidence, offset, embedding)
