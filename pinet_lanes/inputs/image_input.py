from __future__ import annotations

from pathlib import Path
from typing import Generator, Tuple

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from pinet_lanes.inputs.base_input import BaseInput
from pinet_lanes.inputs.grid_input import collect_files
from pinet_lanes.utils.logger import get_logger
from pinet_lanes.utils.types import FramePacket

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp")


class ImageInput(BaseInput):
    def __init__(self, path: str | Path):
        if cv2 is None:
            raise ImportError("opencv-python is required for ImageInput")
        self.path = Path(path)
        self.logger = get_logger(__name__)
        self.files = collect_files(self.path, IMAGE_SUFFIXES)
        self.logger.info("Image input: %s (%d files)", self.path, len(self.files))

    def __len__(self) -> int:
        return len(self.files)

    def start(self) -> None:
        return

    def frames(self) -> Generator[Tuple[int, FramePacket], None, None]:
        for idx, f in enumerate(self.files, start=1):
            frame = cv2.imread(str(f), cv2.IMREAD_COLOR)
            if frame is None:
                raise RuntimeError(f"Could not read image: {f}")
            yield idx, FramePacket(source=str(f), frame=frame)

    def stop(self) -> None:
        return
