from pinet_lanes.perception.lanes.decoder import LaneDecoder, decode
from pinet_lanes.perception.lanes.errors import DecodeError, InputShapeMismatch
from pinet_lanes.perception.lanes.grids import OutputGrid
from pinet_lanes.utils.config import DecoderConfig
from pinet_lanes.utils.types import DecodeStats, Lane, LaneSet, Point

__all__ = [
    "DecodeError",
    "DecodeStats",
    "DecoderConfig",
    "InputShapeMismatch",
    "Lane",
    "LaneDecoder",
    "LaneSet",
    "OutputGrid",
    "Point",
    "decode",
]

__version__ = "0.3.0"
