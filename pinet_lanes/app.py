from __future__ import annotations

import argparse
import json
import logging
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Deque, Dict, Iterable, Iterator, Optional

from rich.console import Console
from tqdm import tqdm

from pinet_lanes.inputs.grid_input import GridInput
from pinet_lanes.perception.lanes.decoder import LaneDecoder
from pinet_lanes.perception.lanes.errors import InputShapeMismatch
from pinet_lanes.utils.config import DecoderConfig, get, load_yaml
from pinet_lanes.utils.logger import setup_logger
from pinet_lanes.utils.timing import FPSMeter
from pinet_lanes.utils.types import GridPacket


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def is_grid_input(path: Path) -> bool:
    if path.is_dir():
        return any(p.suffix.lower() == ".npz" for p in path.iterdir())
    return path.suffix.lower() == ".npz"


def iter_packets(args: argparse.Namespace, cfg: Dict[str, Any], logger: logging.Logger) -> tuple[Iterator[GridPacket], int]:
    """Grid dumps are read directly; images go through the ONNX engine first."""
    path = Path(args.input)
    if is_grid_input(path):
        gin = GridInput(path)
        return (packet for _, packet in gin.frames()), len(gin)

    from pinet_lanes.inference.onnx_engine import PINetOnnxEngine
    from pinet_lanes.inputs.image_input import ImageInput

    model = args.model or get(cfg, "engine.model_path")
    if not model:
        raise ValueError("Image input requires --model (or engine.model_path in the config)")
    engine = PINetOnnxEngine(model, output_base_index=int(get(cfg, "engine.output_base_index", 3)))
    iin = ImageInput(path)
    logger.info("Running inference on %d images", len(iin))

    def gen() -> Iterator[GridPacket]:
        for _, frame_packet in iin.frames():
            try:
                grids = engine.infer(frame_packet.frame)
            except InputShapeMismatch as exc:
                yield GridPacket(source=frame_packet.source, error=str(exc))
                continue
            yield GridPacket(source=frame_packet.source, **grids)

    return gen(), len(iin)


def decode_packet(decoder: LaneDecoder, packet: GridPacket, logger: logging.Logger) -> Dict[str, Any]:
    error = packet.error
    if error is None:
        try:
            lanes = decoder.decode(packet.confidence, packet.offset, packet.embedding)
        except InputShapeMismatch as exc:
            error = str(exc)
        else:
            return {"source": packet.source, "lanes": lanes.to_list(), "stats": lanes.stats.as_dict()}
    logger.warning("Skipping %s: %s", packet.source, error)
    return {"source": packet.source, "error": error}


def decode_stream(
    decoder: LaneDecoder,
    packets: Iterable[GridPacket],
    workers: int,
    logger: logging.Logger,
    in_flight: int = 2,
) -> Iterator[Dict[str, Any]]:
    """
    Decode packets on a thread pool, yielding records in input order.

    At most `workers * in_flight` packets are pending at once, so inputs are
    read (or inferred) only as fast as decoding keeps up.
    """
    limit = max(1, workers * in_flight)
    pending: Deque[Future] = deque()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for packet in packets:
            pending.append(pool.submit(decode_packet, decoder, packet, logger))
            if len(pending) >= limit:
                yield pending.popleft().result()
        while pending:
            yield pending.popleft().result()


def main(argv: Optional[list] = None):
    parser = argparse.ArgumentParser(description="PINet lane decoder: output grids -> lane point sequences")
    parser.add_argument("--config", default=None, help="Path to YAML config (defaults built in)")
    parser.add_argument("--input", required=True, help=".npz grid dump, image, or a directory of either")
    parser.add_argument("--model", default=None, help="PINet ONNX model, needed for image input")
    parser.add_argument("--workers", type=int, default=None, help="Decode threads")
    parser.add_argument("--output-dir", default=None, help="Base directory for run outputs")
    args = parser.parse_args(argv)

    cfg: Dict[str, Any] = load_yaml(args.config) if args.config else {}
    decoder_cfg = DecoderConfig.from_dict(cfg)

    output_base = args.output_dir or get(cfg, "runtime.output_dir", "results")
    run_dir = make_run_dir(output_base)
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))
    workers = max(1, int(args.workers or get(cfg, "runtime.workers", 1)))

    console = Console()
    console.print(f"[bold]pinet-lanes[/bold] run dir: {run_dir}")
    logger.info("Input: %s", args.input)
    logger.info("Decoder config: %s", decoder_cfg.to_dict())

    decoder = LaneDecoder(decoder_cfg)
    packets, total = iter_packets(args, cfg, logger)
    fps_meter = FPSMeter(smoothing=float(get(cfg, "runtime.fps_smoothing", 0.9)))

    results = []
    for record in tqdm(decode_stream(decoder, packets, workers, logger), total=total, desc="Decoding"):
        fps_meter.tick()
        results.append(record)

    failed = [r["source"] for r in results if "error" in r]
    lane_counts = [len(r["lanes"]) for r in results if "lanes" in r]
    metrics = {
        "input": args.input,
        "decoder": decoder_cfg.to_dict(),
        "workers": workers,
        "inputs": len(results),
        "failed": failed,
        "lanes_total": sum(lane_counts),
        "lanes_avg": (sum(lane_counts) / len(lane_counts)) if lane_counts else 0.0,
        "capacity_discarded": sum(r["stats"]["capacity_discarded"] for r in results if "stats" in r),
        "throughput_fps": fps_meter.fps,
    }

    lanes_path = run_dir / "lanes.json"
    lanes_path.write_text(json.dumps(results, indent=2), encoding="utf-8")
    metrics_path = run_dir / "metrics.json"
    metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
    logger.info("Saved lanes: %s", lanes_path)
    logger.info("Saved metrics: %s", metrics_path)
    if failed:
        logger.warning("%d inputs failed shape validation", len(failed))

    console.print(f"Decoded {len(results)} inputs, {metrics['lanes_total']} lanes")
    logger.info("Done.")
    return metrics


if __name__ == "__main__":
    main()
