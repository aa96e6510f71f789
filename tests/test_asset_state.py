import threading

import numpy as np
import pytest

from jewelry_tryon.asset_state import (
    AssetState,
    Category,
    LoadStatus,
    Mode,
    asset_relative_path,
    catalog_filenames,
    load_overlay_image,
)


def test_initial_state(asset_state):
    assert asset_state.mode is Mode.NONE
    assert asset_state.loaded_assets() == {}
    assert asset_state.current(Category.EARRING) is None


def test_select_mode_replaces_previous(asset_state):
    asset_state.select_mode(Mode.EARRING)
    asset_state.select_mode(Mode.NECKLACE)
    assert asset_state.mode is Mode.NECKLACE
    assert Mode.NECKLACE.category is Category.NECKLACE
    assert Mode.NONE.category is None


def test_preload_defaults(asset_state, assets_dir):
    loads = asset_state.preload_defaults()
    assert asset_state.wait(timeout=5) == 2

    assert all(load.status is LoadStatus.LOADED for load in loads)
    earring = asset_state.current(Category.EARRING)
    assert earring.path == str(assets_dir / "earrings" / "earring1.png")
    assert earring.image.shape == (20, 20, 4)
    assert asset_state.is_loaded(Category.NECKLACE)


def test_missing_file_keeps_previous_asset(asset_state):
    asset_state.set_asset(Category.EARRING, "earring1.png")
    asset_state.wait(timeout=5)
    before = asset_state.current(Category.EARRING)

    load = asset_state.set_asset(Category.EARRING, "earring99.png")
    assert asset_state.wait(timeout=5) == 0

    assert load.status is LoadStatus.FAILED
    assert load.image() is None
    assert asset_state.current(Category.EARRING) is before


def test_undecodable_file_fails(asset_state):
    load = asset_state.set_asset(Category.NECKLACE, "broken.png")
    asset_state.wait(timeout=5)
    assert load.status is LoadStatus.FAILED
    assert not asset_state.is_loaded(Category.NECKLACE)


def test_loader_exception_is_reported_as_failure(assets_dir):
    def exploding_loader(path):
        raise OSError("disk on fire")

    state = AssetState(assets_dir, loader=exploding_loader)
    try:
        load = state.set_asset(Category.EARRING, "earring1.png")
        assert state.wait(timeout=5) == 0
        assert load.status is LoadStatus.FAILED
        assert isinstance(load.error, OSError)
    finally:
        state.close()


def test_asset_is_not_swapped_until_polled(assets_dir):
    release = threading.Event()

    def slow_loader(path):
        release.wait(timeout=5)
        return load_overlay_image(path)

    state = AssetState(assets_dir, loader=slow_loader)
    try:
        load = state.set_asset(Category.EARRING, "earring1.png")
        assert load.status is LoadStatus.PENDING
        assert state.poll() == 0
        assert state.pending_count == 1
        assert state.current(Category.EARRING) is None

        release.set()
        load.future.result(timeout=5)
        # Finished but not yet applied
        assert state.current(Category.EARRING) is None
        assert state.poll() == 1
        assert state.current(Category.EARRING) is not None
        assert state.pending_count == 0
    finally:
        state.close()


def test_late_load_overwrites_newer_selection(assets_dir):
    release_first = threading.Event()

    def loader(path):
        if path.endswith("earring1.png"):
            release_first.wait(timeout=5)
        return load_overlay_image(path)

    state = AssetState(assets_dir, loader=loader)
    try:
        first = state.set_asset(Category.EARRING, "earring1.png")
        second = state.set_asset(Category.EARRING, "earring2.png")

        second.future.result(timeout=5)
        state.poll()
        assert state.current(Category.EARRING).path.endswith("earring2.png")

        release_first.set()
        first.future.result(timeout=5)
        state.poll()
        assert state.current(Category.EARRING).path.endswith("earring1.png")
        assert state.selected_path(Category.EARRING) == "earrings/earring2.png"
    finally:
        state.close()


def test_mode_round_trip_keeps_asset_without_reload(assets_dir):
    calls = []

    def counting_loader(path):
        calls.append(path)
        return load_overlay_image(path)

    state = AssetState(assets_dir, loader=counting_loader)
    try:
        state.set_asset(Category.EARRING, "earring2.png")
        state.wait(timeout=5)
        asset = state.current(Category.EARRING)

        state.select_mode(Mode.EARRING)
        state.select_mode(Mode.NECKLACE)
        state.select_mode(Mode.EARRING)
        state.poll()

        assert state.current(Category.EARRING) is asset
        assert len(calls) == 1
    finally:
        state.close()


def test_rgb_image_gets_opaque_alpha(assets_dir):
    image = load_overlay_image(assets_dir / "necklaces" / "necklace2.png")
    assert image.shape == (10, 30, 4)
    assert np.all(image[:, :, 3] == 255)


def test_load_overlay_image_missing(tmp_path):
    assert load_overlay_image(tmp_path / "nope.png") is None


@pytest.mark.parametrize("category", list(Category))
def test_catalog(category):
    names = catalog_filenames(category)
    assert len(names) == 12
    assert names[0] == f"{category.value}1.png"
    assert names[-1] == f"{category.value}12.png"
    assert asset_relative_path(category, names[2]) == f"{category.value}s/{category.value}3.png"


def test_preload_with_override(asset_state):
    asset_state.preload_defaults({Category.EARRING: "earring2.png"})
    asset_state.wait(timeout=5)

    assert asset_state.current(Category.EARRING).path.endswith("earring2.png")
    assert asset_state.current(Category.NECKLACE).path.endswith("necklace1.png")
