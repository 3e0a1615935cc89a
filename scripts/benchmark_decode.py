#!/usr/bin/env python3
"""
Benchmark lane decoding on synthetic PINet-sized grids (1/2/4 x 32 x 64).
"""
from __future__ import annotations

import time

import numpy as np

from pinet_lanes.perception.lanes.decoder import LaneDecoder
from pinet_lanes.utils.config import DecoderConfig


N = 200
GRID_HW = (32, 64)


def synthetic_grids(rng: np.random.Generator, n_lanes: int = 4):
    h, w = GRID_HW
    confidence = np.zeros((1, h, w), dtype=np.float32)
    offset = rng.uniform(0.0, 1.0, size=(2, h, w)).astype(np.float32)
    embedding = np.zeros((4, h, w), dtype=np.float32)
    for k in range(n_lanes):
        cols = np.clip(np.linspace(5 + 14 * k, 12 + 10 * k, h).astype(int), 0, w - 1)
        rows = np.arange(h)
        confidence[0, rows, cols] = 0.95
        embedding[:, rows, cols] = (np.eye(4)[k % 4] * (1 + k // 4))[:, None]
    return confidence, offset, embedding


def main():
    rng = np.random.default_rng(0)
    grids = [synthetic_grids(rng) for _ in range(N)]
    decoder = LaneDecoder(DecoderConfig(bound_width=512, bound_height=256))

    # warmup
    for g in grids[:5]:
        decoder.decode(*g)
    t0 = time.perf_counter()
    lanes = 0
    for g in grids:
        lanes += len(decoder.decode(*g))
    t1 = time.perf_counter()

    print("\n=== pinet-lanes decode benchmark (CPU) ===")
    print(f"Grids: {N} x {GRID_HW}")
    print(f"Avg latency: {(t1 - t0) / N * 1000.0:.3f} ms")
    print(f"Avg lanes: {lanes / N:.2f}")


if __name__ == "__main__":
    main()
