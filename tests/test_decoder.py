import numpy as np
import pytest

from pinet_lanes import DecoderConfig, InputShapeMismatch, LaneDecoder, OutputGrid, Point, decode

WIDE = dict(bound_width=1024, bound_height=512)


def test_no_activation_gives_empty_laneset(make_grids):
    conf, off, emb = make_grids([])
    conf[:] = 0.5
    lanes = decode(conf, off, emb)
    assert len(lanes) == 0
    assert lanes.stats.active_cells == 0


def test_single_cell_lane(make_grids):
    grids = make_grids([(5, 10, (0.3, 0.4), [1, 0, 0, 0])], height=64, width=128)
    lanes = decode(*grids, cfg=DecoderConfig(min_points=1))
    assert len(lanes) == 1
    assert lanes[0].points == (Point(82, 43),)

    assert len(decode(*grids, cfg=DecoderConfig(min_points=2))) == 0


def test_close_and_distant_embeddings(make_grids):
    cfg = DecoderConfig(min_points=1, **WIDE)
    close = make_grids([(0, 1, (0, 0), [0, 0, 0, 0]), (1, 1, (0, 0), [0.05, 0, 0, 0])])
    lanes = decode(*close, cfg=cfg)
    assert len(lanes) == 1
    assert np.allclose(lanes[0].embedding, [0.025, 0, 0, 0], atol=1e-6)

    far = make_grids([(0, 1, (0, 0), [0, 0, 0, 0]), (1, 1, (0, 0), [1.0, 0, 0, 0])])
    assert len(decode(*far, cfg=cfg)) == 2


def test_lane_capacity(make_grids):
    cells = [(0, k, (0, 0), [float(k), 0, 0, 0]) for k in range(13)]
    lanes = decode(*make_grids(cells), cfg=DecoderConfig(min_points=1, max_lanes=12, **WIDE))
    assert len(lanes) == 12
    assert lanes.stats.capacity_discarded == 1
    assert Point(96, 0) not in {p for lane in lanes for p in lane.points}


def test_lanes_sorted_by_y(make_grids):
    # Two vertical lanes; the second cell of each column sits above the first after offsets.
    cells = []
    for row in range(6):
        cells.append((row, 2, (0.0, -0.9 if row % 2 else 0.9), [0, 0, 0, 0]))
        cells.append((row, 20, (0.0, 0.0), [3, 0, 0, 0]))
    lanes = decode(*make_grids(cells), cfg=DecoderConfig(**WIDE))
    assert len(lanes) == 2
    for lane in lanes:
        ys = lane.ys()
        assert ys == sorted(ys)


def test_every_active_cell_accounted_for():
    rng = np.random.default_rng(11)
    h, w = 32, 64
    conf = rng.uniform(0, 1, size=(1, h, w)).astype(np.float32)
    off = rng.uniform(-0.5, 1.5, size=(2, h, w)).astype(np.float32)
    emb = rng.normal(size=(4, h, w)).astype(np.float32)
    lanes = decode(conf, off, emb, cfg=DecoderConfig(min_points=0, bound_width=512, bound_height=256))
    stats = lanes.stats
    placed = sum(lane.count for lane in lanes)
    assert stats.active_cells == int((conf > 0.81).sum())
    assert placed + stats.capacity_discarded + stats.out_of_bounds == stats.active_cells
    assert len(lanes) <= 12


def test_decode_is_deterministic():
    rng = np.random.default_rng(5)
    conf = rng.uniform(0, 1, size=(1, 32, 64)).astype(np.float32)
    off = rng.uniform(0, 1, size=(2, 32, 64)).astype(np.float32)
    emb = rng.normal(scale=0.3, size=(4, 32, 64)).astype(np.float32)
    decoder = LaneDecoder(DecoderConfig(bound_width=512, bound_height=256))
    assert decoder.decode(conf, off, emb) == decoder.decode(conf, off, emb)


def test_accepts_output_grids_and_batch_axis(make_grids):
    conf, off, emb = make_grids([(r, 1, (0, 0), [0, 0, 0, 0]) for r in range(4)])
    a = decode(OutputGrid.from_array(conf), OutputGrid.from_array(off), OutputGrid.from_array(emb), cfg=DecoderConfig(**WIDE))
    b = decode(conf[None], off[None], emb[None], cfg=DecoderConfig(**WIDE))
    assert a == b
    assert a.to_list() == [[[8, 0], [8, 8], [8, 16], [8, 24]]]
    assert a.to_xy() == ([[8, 8, 8, 8]], [[0, 8, 16, 24]])


def test_shape_mismatch_is_fatal(make_grids):
    conf, off, _ = make_grids([])
    emb = np.zeros((4, 16, 64), dtype=np.float32)
    with pytest.raises(InputShapeMismatch):
        decode(conf, off, emb)


def test_nan_cells_do_not_crash(make_grids):
    conf, off, emb = make_grids([(r, 1, (0, 0), [0, 0, 0, 0]) for r in range(5)])
    off[1, 2, 1] = np.nan
    emb[0, 3, 1] = np.nan
    lanes = decode(conf, off, emb, cfg=DecoderConfig(**WIDE))
    assert lanes.stats.out_of_bounds == 2
    assert lanes[0].points == (Point(8, 0), Point(8, 8), Point(8, 32))


def test_stage_timings_recorded(make_grids):
    lanes = decode(*make_grids([(0, 1, (0, 0), [0] * 4)]))
    assert set(lanes.stats.stages_ms) == {"mask", "reconstruct", "cluster", "refine"}


def test_outlier_elimination_through_decoder(make_grids):
    cells = [(row, 2, (2.5 if row == 2 else 0.0, 0.0), [0, 0, 0, 0]) for row in range(5)]
    grids = make_grids(cells)

    lanes = decode(*grids, cfg=DecoderConfig(outlier_tolerance=8.0, **WIDE))
    assert lanes.stats.outliers_removed == 1
    assert lanes[0].points == (Point(16, 0), Point(16, 8), Point(16, 24), Point(16, 32))

    untouched = decode(*grids, cfg=DecoderConfig(**WIDE))
    assert untouched.stats.outliers_removed == 0
    assert Point(36, 16) in untouched[0].points


def test_lane_embeddings_are_read_only(make_grids):
    lanes = decode(*make_grids([(r, 1, (0, 0), [1, 0, 0, 0]) for r in range(3)]))
    with pytest.raises(ValueError):
        lanes[0].embedding[0] = 5.0
