"""Shared fixtures: a small on-disk asset catalog."""

import cv2
import numpy as np
import pytest

from jewelry_tryon.asset_state import AssetState


def make_sprite(color, alpha=255, size=(20, 20)):
    """Solid BGRA sprite."""
    sprite = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    sprite[:, :, :3] = color
    sprite[:, :, 3] = alpha
    return sprite


@pytest.fixture
def assets_dir(tmp_path):
    (tmp_path / "earrings").mkdir()
    (tmp_path / "necklaces").mkdir()
    cv2.imwrite(str(tmp_path / "earrings" / "earring1.png"), make_sprite((0, 0, 255)))
    cv2.imwrite(str(tmp_path / "earrings" / "earring2.png"), make_sprite((255, 0, 0)))
    cv2.imwrite(str(tmp_path / "necklaces" / "necklace1.png"), make_sprite((0, 255, 0)))
    # Opaque RGB file without alpha channel
    cv2.imwrite(str(tmp_path / "necklaces" / "necklace2.png"), np.full((10, 30, 3), 128, dtype=np.uint8))
    (tmp_path / "necklaces" / "broken.png").write_bytes(b"not a png")
    return tmp_path


@pytest.fixture
def asset_state(assets_dir):
    state = AssetState(assets_dir)
    yield state
    state.close()
