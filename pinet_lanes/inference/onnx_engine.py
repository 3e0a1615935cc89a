from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import onnxruntime as ort

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from pinet_lanes.inference.base_engine import BaseEngine
from pinet_lanes.perception.lanes.grids import OutputGrid
from pinet_lanes.utils.logger import get_logger

GRID_NAMES = ("confidence", "offset", "embedding")


def preprocess(frame: np.ndarray, input_hw: Tuple[int, int]) -> np.ndarray:
    """
    BGR uint8 (H, W, 3) -> float32 (1, 3, h, w) in [0, 1], channel-first.
    """
    if cv2 is None:
        raise ImportError("opencv-python is required for image preprocessing")
    h, w = input_hw
    resized = cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)
    tensor = resized.astype(np.float32).transpose(2, 0, 1) / 255.0
    return np.ascontiguousarray(tensor[np.newaxis])


class PINetOnnxEngine(BaseEngine):
    """
    PINet ONNX runner. The network emits (confidence, offset, embedding) for each
    hourglass stage; grids are taken from `output_base_index` onwards (last stage).
    """

    def __init__(
        self,
        model_path: str | Path,
        output_base_index: int = 3,
        providers: Optional[List[str]] = None,
    ):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"ONNX model not found: {self.model_path}")
        self.logger = get_logger(__name__)
        self.session = ort.InferenceSession(str(self.model_path), providers=providers or ["CPUExecutionProvider"])

        inp = self.session.get_inputs()[0]
        self.input_name = inp.name
        shape = inp.shape
        if len(shape) != 4 or not all(isinstance(d, int) for d in shape[2:]):
            raise RuntimeError(f"Expected a static (N, C, H, W) input, got {shape}")
        self.input_hw = (int(shape[2]), int(shape[3]))

        self.output_names = [o.name for o in self.session.get_outputs()]
        if output_base_index + len(GRID_NAMES) > len(self.output_names):
            raise RuntimeError(
                f"Model has {len(self.output_names)} outputs; need {len(GRID_NAMES)} from index {output_base_index}"
            )
        self.output_base_index = output_base_index
        self.logger.info(
            "Loaded %s input=%s%s outputs=%d",
            self.model_path,
            self.input_name,
            list(shape),
            len(self.output_names),
        )

    def infer(self, frame: np.ndarray) -> Dict[str, OutputGrid]:
        start = time.perf_counter()
        tensor = preprocess(frame, self.input_hw)
        wanted = self.output_names[self.output_base_index : self.output_base_index + len(GRID_NAMES)]
        outputs = self.session.run(wanted, {self.input_name: tensor})
        grids = {name: OutputGrid.from_array(out) for name, out in zip(GRID_NAMES, outputs)}
        self.logger.debug("Inference took %.2f ms", (time.perf_counter() - start) * 1000.0)
        return grids
