import numpy as np

from pinet_lanes.perception.lanes.grids import OutputGrid


def activation_mask(confidence: OutputGrid, threshold: float) -> np.ndarray:
    """
    Threshold the confidence heatmap.

    Args:
        confidence: (1, H, W) grid
        threshold: strict lower bound for an active cell

    Returns:
        mask: (H, W) bool, read-only
    """
    # NaN compares False, so malformed cells are never active.
    mask = confidence.data[0] > threshold
    mask.setflags(write=False)
    return mask
