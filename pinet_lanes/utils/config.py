from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def load_yaml(path: str | Path) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get(cfg: Dict[str, Any], key: str, default: Any = None) -> Any:
    """
    Dot-access helper:
      get(cfg, "decoder.threshold_point", 0.81)
    """
    cur: Any = cfg
    for part in key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


@dataclass(frozen=True)
class DecoderConfig:
    threshold_point: float = 0.81
    threshold_instance: float = 0.22
    resize_ratio: float = 8
    max_lanes: int = 12
    window: int = 12
    min_points: int = 3
    # Reconstruction bound; None falls back to the output grid extent.
    bound_width: Optional[int] = None
    bound_height: Optional[int] = None
    # None disables outlier elimination.
    outlier_tolerance: Optional[float] = None

    def __post_init__(self) -> None:
        if self.resize_ratio <= 0:
            raise ValueError(f"resize_ratio must be positive, got {self.resize_ratio}")
        if self.max_lanes < 1:
            raise ValueError(f"max_lanes must be >= 1, got {self.max_lanes}")
        if self.window < 1:
            raise ValueError(f"window must be >= 1, got {self.window}")
        if self.min_points < 0:
            raise ValueError(f"min_points must be >= 0, got {self.min_points}")
        if self.threshold_instance < 0:
            raise ValueError(f"threshold_instance must be >= 0, got {self.threshold_instance}")
        for name in ("bound_width", "bound_height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.outlier_tolerance is not None and self.outlier_tolerance < 0:
            raise ValueError(f"outlier_tolerance must be >= 0, got {self.outlier_tolerance}")

    @classmethod
    def from_dict(cls, cfg: Optional[Dict[str, Any]]) -> "DecoderConfig":
        """Build from the ``decoder:`` section of a loaded YAML config (or the section itself)."""
        cfg = cfg or {}
        section = cfg.get("decoder", cfg) or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
