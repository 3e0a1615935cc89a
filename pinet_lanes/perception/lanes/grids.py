from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from pinet_lanes.perception.lanes.errors import InputShapeMismatch


@dataclass(frozen=True)
class OutputGrid:
    """
    One network output: a read-only (C, H, W) float32 array.

    The array owns (or views) the row-major buffer, so shape and data cannot drift apart.
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        if self.data.ndim != 3:
            raise InputShapeMismatch(f"Output grid must be (C, H, W), got shape {self.data.shape}")

    @classmethod
    def from_buffer(cls, channels: int, height: int, width: int, buffer: Sequence[float] | np.ndarray) -> "OutputGrid":
        flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
        expected = channels * height * width
        if flat.size != expected:
            raise InputShapeMismatch(
                f"Buffer holds {flat.size} values, expected {channels}x{height}x{width}={expected}"
            )
        return cls._frozen(flat.reshape(channels, height, width))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "OutputGrid":
        """Accepts (C, H, W) or a batch of one (1, C, H, W)."""
        arr = np.asarray(array, dtype=np.float32)
        if arr.ndim == 4:
            if arr.shape[0] != 1:
                raise InputShapeMismatch(f"Expected a batch of one, got shape {arr.shape}")
            arr = arr[0]
        if arr.ndim != 3:
            raise InputShapeMismatch(f"Output grid must be (C, H, W), got shape {arr.shape}")
        return cls._frozen(arr)

    @classmethod
    def _frozen(cls, arr: np.ndarray) -> "OutputGrid":
        arr = np.array(arr, dtype=np.float32, copy=True, order="C")
        arr.setflags(write=False)
        return cls(arr)

    @property
    def channels(self) -> int:
        return int(self.data.shape[0])

    @property
    def height(self) -> int:
        return int(self.data.shape[1])

    @property
    def width(self) -> int:
        return int(self.data.shape[2])

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.channels, self.height, self.width


def as_grid(value: "OutputGrid | np.ndarray") -> OutputGrid:
    if isinstance(value, OutputGrid):
        return value
    return OutputGrid.from_array(value)


def validate_grids(confidence: OutputGrid, offset: OutputGrid, embedding: OutputGrid) -> Tuple[int, int]:
    """Check channel counts and matching H/W; returns (H, W)."""
    if confidence.channels != 1:
        raise InputShapeMismatch(f"Confidence grid must have 1 channel, got {confidence.channels}")
    if offset.channels != 2:
        raise InputShapeMismatch(f"Offset grid must have 2 channels, got {offset.channels}")
    if embedding.channels < 2:
        raise InputShapeMismatch(f"Embedding grid must have >= 2 channels, got {embedding.channels}")

    hw = (confidence.height, confidence.width)
    for name, grid in (("offset", offset), ("embedding", embedding)):
        if (grid.height, grid.width) != hw:
            raise InputShapeMismatch(
                f"{name} grid is {grid.height}x{grid.width}, confidence grid is {hw[0]}x{hw[1]}"
            )
    return hw
