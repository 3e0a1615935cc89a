from pinet_lanes.perception.lanes.decoder import LaneDecoder, decode

__all__ = ["LaneDecoder", "decode"]
