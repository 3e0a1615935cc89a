from __future__ import annotations

from pathlib import Path
from typing import Generator, List, Tuple

import numpy as np

from pinet_lanes.inputs.base_input import BaseInput
from pinet_lanes.utils.logger import get_logger
from pinet_lanes.utils.types import GridPacket

# Accepted array names per grid, first match wins.
GRID_KEYS = {
    "confidence": ("confidence",),
    "offset": ("offset", "offsets"),
    "embedding": ("instance", "embedding", "feature"),
}


def collect_files(path: str | Path, suffixes: Tuple[str, ...]) -> List[Path]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.suffix.lower() in suffixes)
    return [path]


def load_grids(path: str | Path) -> GridPacket:
    """
    Read one ``.npz`` dump holding the confidence, offset and instance arrays.

    Arrays are returned as stored; shape checks happen when the packet is decoded.
    """
    path = Path(path)
    with np.load(path) as data:
        grids = {}
        for name, keys in GRID_KEYS.items():
            key = next((k for k in keys if k in data.files), None)
            if key is None:
                raise KeyError(f"{path}: missing '{name}' array (looked for {', '.join(keys)})")
            grids[name] = np.array(data[key], dtype=np.float32)
    return GridPacket(source=str(path), **grids)


class GridInput(BaseInput):
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.logger = get_logger(__name__)
        self.files = collect_files(self.path, (".npz",))
        self.logger.info("Grid input: %s (%d files)", self.path, len(self.files))

    def __len__(self) -> int:
        return len(self.files)

    def start(self) -> None:
        return

    def frames(self) -> Generator[Tuple[int, GridPacket], None, None]:
        for idx, f in enumerate(self.files, start=1):
            yield idx, load_grids(f)

    def stop(self) -> None:
        return
