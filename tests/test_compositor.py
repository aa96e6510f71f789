import re

import cv2
import numpy as np
import pytest

from jewelry_tryon.anchor_smoother import Anchor, AnchorFeature
from jewelry_tryon.asset_state import Category, Mode, OverlayAsset
from jewelry_tryon.compositor import (
    OverlayCanvas,
    OverlayCompositor,
    save_snapshot,
    snapshot_filename,
)

RED = (0, 0, 255)
GREEN = (0, 255, 0)


def solid_asset(color, alpha=255, path="sprite.png"):
    image = np.zeros((20, 20, 4), dtype=np.uint8)
    image[:, :, :3] = color
    image[:, :, 3] = alpha
    return OverlayAsset(path=path, image=image)


@pytest.fixture
def assets():
    return {
        Category.EARRING: solid_asset(RED, path="earrings/earring1.png"),
        Category.NECKLACE: solid_asset(GREEN, path="necklaces/necklace1.png"),
    }


@pytest.fixture
def anchors():
    return {
        AnchorFeature.LEFT_EAR: Anchor(100, 200),
        AnchorFeature.RIGHT_EAR: Anchor(300, 200),
        AnchorFeature.CHIN: Anchor(200, 300),
    }


def test_earring_mode_draws_both_ears(assets, anchors):
    canvas = OverlayCanvas(640, 480)

    placements = OverlayCompositor().render(canvas, Mode.EARRING, assets, anchors)

    assert [p.rect for p in placements] == [(40, 200, 100, 100), (280, 200, 100, 100)]
    assert all(p.category is Category.EARRING for p in placements)
    # Inside the left sprite, and outside any sprite
    assert tuple(canvas.image[250, 90]) == (0, 0, 255, 255)
    assert tuple(canvas.image[100, 90]) == (0, 0, 0, 0)


def test_necklace_mode_draws_at_chin(assets, anchors):
    canvas = OverlayCanvas(640, 480)

    placements = OverlayCompositor().render(canvas, Mode.NECKLACE, assets, anchors)

    assert [p.rect for p in placements] == [(100, 300, 200, 100)]
    assert tuple(canvas.image[350, 150]) == (0, 255, 0, 255)


def test_missing_ear_anchor_skips_that_side(assets):
    canvas = OverlayCanvas(640, 480)
    partial = {AnchorFeature.LEFT_EAR: None, AnchorFeature.RIGHT_EAR: Anchor(300, 200)}

    placements = OverlayCompositor().render(canvas, Mode.EARRING, assets, partial)

    assert [p.rect for p in placements] == [(280, 200, 100, 100)]


def test_inactive_category_is_not_drawn(assets, anchors):
    canvas = OverlayCanvas(640, 480)
    compositor = OverlayCompositor()

    assert compositor.render(canvas, Mode.NONE, assets, anchors) == []
    assert not canvas.image.any()

    # Necklace loaded but earring mode: only earrings
    placements = compositor.render(canvas, Mode.EARRING, assets, anchors)
    assert {p.category for p in placements} == {Category.EARRING}


def test_mode_without_loaded_asset_draws_nothing(anchors):
    canvas = OverlayCanvas(640, 480)
    assert OverlayCompositor().render(canvas, Mode.NECKLACE, {}, anchors) == []


def test_render_clears_previous_frame(assets, anchors):
    canvas = OverlayCanvas(640, 480)
    compositor = OverlayCompositor()

    compositor.render(canvas, Mode.EARRING, assets, anchors)
    assert canvas.image.any()

    compositor.render(canvas, Mode.EARRING, assets, {})
    assert not canvas.image.any()


def test_unsized_canvas_is_a_noop(assets, anchors):
    canvas = OverlayCanvas()
    assert not canvas.is_ready
    assert OverlayCompositor().render(canvas, Mode.EARRING, assets, anchors) == []


def test_sprite_is_clipped_at_canvas_edge(assets):
    canvas = OverlayCanvas(640, 480)
    anchors = {AnchorFeature.LEFT_EAR: Anchor(10, 430)}

    placements = OverlayCompositor().render(canvas, Mode.EARRING, assets, anchors)

    assert placements[0].rect == (-50, 430, 100, 100)
    assert tuple(canvas.image[470, 0]) == (0, 0, 255, 255)
    assert tuple(canvas.image[470, 49]) == (0, 0, 255, 255)
    assert tuple(canvas.image[470, 50]) == (0, 0, 0, 0)


def test_sprite_fully_off_canvas(assets):
    canvas = OverlayCanvas(640, 480)
    anchors = {AnchorFeature.LEFT_EAR: Anchor(-500, -500)}

    OverlayCompositor().render(canvas, Mode.EARRING, assets, anchors)

    assert not canvas.image.any()


def test_translucent_overlay_blends_with_frame(anchors):
    canvas = OverlayCanvas(640, 480)
    assets = {Category.NECKLACE: solid_asset((200, 200, 200), alpha=128)}
    OverlayCompositor().render(canvas, Mode.NECKLACE, assets, anchors)

    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    out = canvas.composite_onto(frame)

    assert out[350, 150, 0] == pytest.approx(200 * 128 / 255, abs=1)
    assert out[10, 10, 0] == 0


def test_compose_snapshot_draws_on_frame(assets, anchors):
    frame = np.full((480, 640, 3), 50, dtype=np.uint8)

    snapshot = OverlayCompositor().compose_snapshot(frame, Mode.EARRING, assets, anchors)

    assert snapshot.shape == frame.shape
    assert tuple(snapshot[250, 90]) == RED
    assert tuple(snapshot[10, 10]) == (50, 50, 50)
    # Source frame untouched
    assert tuple(frame[250, 90]) == (50, 50, 50)


def test_snapshot_filename_format():
    assert snapshot_filename(1700000000123) == "jewelry-tryon-1700000000123.png"
    assert re.fullmatch(r"jewelry-tryon-\d+\.png", snapshot_filename())


def test_save_snapshot_writes_png(tmp_path):
    image = np.full((48, 64, 3), 90, dtype=np.uint8)

    path = save_snapshot(image, tmp_path / "shots")

    assert path is not None and path.exists()
    assert re.fullmatch(r"jewelry-tryon-\d+\.png", path.name)
    assert cv2.imread(str(path)).shape == (48, 64, 3)
