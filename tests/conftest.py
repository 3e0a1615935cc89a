import numpy as np
import pytest


@pytest.fixture
def make_grids():
    """
    Build (confidence, offset, embedding) arrays with the given cells active.

    cells: list of (row, col, (dx, dy), embedding_vector)
    """

    def _make(cells, height=32, width=64, embed_dim=4, conf=0.95):
        confidence = np.zeros((1, height, width), dtype=np.float32)
        offset = np.zeros((2, height, width), dtype=np.float32)
        embedding = np.zeros((embed_dim, height, width), dtype=np.float32)
        for row, col, (dx, dy), emb in cells:
            confidence[0, row, col] = conf
            offset[0, row, col] = dx
            offset[1, row, col] = dy
            embedding[:, row, col] = emb
        return confidence, offset, embedding

    return _make
