from __future__ import annotations

import abc
from typing import Dict

import numpy as np

from pinet_lanes.perception.lanes.grids import OutputGrid


class BaseEngine(abc.ABC):
    @abc.abstractmethod
    def infer(self, frame: np.ndarray) -> Dict[str, OutputGrid]:
        """
        Input:
            frame: BGR image (H, W, 3), uint8
        Output:
            {
              "confidence": OutputGrid (1, h, w)
              "offset": OutputGrid (2, h, w)
              "embedding": OutputGrid (E, h, w)
            }
        """
        raise NotImplementedError
