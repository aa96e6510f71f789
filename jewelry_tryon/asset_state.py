"""
Mode and overlay asset state for JewelryTryOn.

Tracks the active jewelry category and the currently selected image for
each category. Images are decoded on a worker thread, but finished loads
are only applied when the frame loop calls poll(), so the compositor
always sees either the old or the new fully decoded image.
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Optional, Union

import cv2
import numpy as np

from .logger import get_logger
from .config import (
    DEFAULT_ASSETS_DIR,
    ASSET_CATALOG_SIZE,
    DEFAULT_ASSET_NUMBER,
    ASSET_LOADER_WORKERS,
)

logger = get_logger("AssetState")


class Category(Enum):
    """Jewelry categories with their own overlay asset."""
    EARRING = "earring"
    NECKLACE = "necklace"


class Mode(Enum):
    """Active try-on mode (exactly one at a time)."""
    NONE = "none"
    EARRING = "earring"
    NECKLACE = "necklace"

    @property
    def category(self) -> Optional[Category]:
        """Category rendered in this mode, if any."""
        if self is Mode.NONE:
            return None
        return Category(self.value)


class LoadStatus(Enum):
    """State of one asynchronous asset load."""
    PENDING = auto()
    LOADED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class OverlayAsset:
    """Decoded overlay image (BGRA) and the path it came from."""
    path: str
    image: np.ndarray

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


def asset_filename(category: Category, number: int) -> str:
    """Catalog filename, e.g. ``earring3.png``."""
    return f"{category.value}{number}.png"


def asset_relative_path(category: Category, filename: str) -> str:
    """Catalog path relative to the assets root, e.g. ``earrings/earring3.png``."""
    return f"{category.value}s/{filename}"


def catalog_filenames(category: Category) -> list[str]:
    """All catalog filenames for a category (1..ASSET_CATALOG_SIZE)."""
    return [asset_filename(category, n) for n in range(1, ASSET_CATALOG_SIZE + 1)]


def load_overlay_image(path: Union[str, Path]) -> Optional[np.ndarray]:
    """
    Decode an overlay image as BGRA.

    Images without an alpha channel are treated as fully opaque.

    Args:
        path: Image file path.

    Returns:
        BGRA uint8 array, or None if the file is missing or undecodable.
    """
    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        return None

    if image.dtype == np.uint16:
        image = (image >> 8).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


class AssetLoad:
    """
    Handle for one in-flight asset load.

    Status moves from PENDING to either LOADED or FAILED and never back.
    """

    def __init__(self, category: Category, path: str, future: Future):
        self.category = category
        self.path = path
        self._future = future

    @property
    def future(self) -> Future:
        return self._future

    @property
    def error(self) -> Optional[BaseException]:
        """Exception raised by the loader, if any."""
        if not self._future.done() or self._future.cancelled():
            return None
        return self._future.exception()

    @property
    def status(self) -> LoadStatus:
        if not self._future.done():
            return LoadStatus.PENDING
        if self._future.cancelled():
            return LoadStatus.FAILED
        if self._future.exception() is None and self._future.result() is not None:
            return LoadStatus.LOADED
        return LoadStatus.FAILED

    @property
    def done(self) -> bool:
        return self._future.done()

    def image(self) -> Optional[np.ndarray]:
        """Decoded image if the load succeeded, None otherwise (non-blocking)."""
        if self.status is LoadStatus.LOADED:
            return self._future.result()
        return None

    def __repr__(self) -> str:
        return f"AssetLoad({self.category.value}, {self.path!r}, {self.status.name})"


class AssetState:
    """
    Active mode plus current overlay asset per category.

    All mutation of the current assets happens in poll() and wait(),
    which the frame loop calls between frames.

    Attributes:
        assets_dir: Root directory holding ``earrings/`` and ``necklaces/``.
    """

    def __init__(
        self,
        assets_dir: Union[str, Path] = DEFAULT_ASSETS_DIR,
        loader: Callable[[str], Optional[np.ndarray]] = load_overlay_image,
        executor: Optional[Executor] = None
    ):
        """
        Initialize asset state.

        Args:
            assets_dir: Root directory of the asset catalog.
            loader: Decodes a path into an image, returning None on failure.
            executor: Executor used for decoding. A small thread pool is
                      created (and owned) if None.
        """
        self.assets_dir = Path(assets_dir)
        self._loader = loader
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=ASSET_LOADER_WORKERS,
            thread_name_prefix="asset-loader"
        )

        self._mode = Mode.NONE
        self._current: dict[Category, OverlayAsset] = {}
        self._selected_path: dict[Category, str] = {}
        self._pending: list[AssetLoad] = []

    @property
    def mode(self) -> Mode:
        return self._mode

    def select_mode(self, mode: Mode) -> None:
        """Make ``mode`` the single active mode."""
        if mode is not self._mode:
            logger.info(f"Mode: {self._mode.value} -> {mode.value}")
        self._mode = mode

    def set_asset(self, category: Category, filename: str) -> AssetLoad:
        """
        Start loading a catalog image for a category.

        Does not block. The current asset is replaced only when the load
        succeeds and is applied by poll() or wait(); a failed load leaves
        it untouched.

        Args:
            category: Category to update.
            filename: Catalog filename, e.g. ``necklace4.png``.

        Returns:
            Handle reporting the load's status.
        """
        relative = asset_relative_path(category, filename)
        path = str(self.assets_dir / relative)

        self._selected_path[category] = relative
        future = self._executor.submit(self._loader, path)
        load = AssetLoad(category, path, future)
        self._pending.append(load)

        logger.debug(f"Loading {category.value} asset: {path}")
        return load

    def preload_defaults(
        self,
        overrides: Optional[dict[Category, Optional[str]]] = None
    ) -> list[AssetLoad]:
        """
        Start loading the startup asset of every category.

        Args:
            overrides: Filenames to load instead of the catalog default.
        """
        overrides = overrides or {}
        return [
            self.set_asset(
                category,
                overrides.get(category) or asset_filename(category, DEFAULT_ASSET_NUMBER)
            )
            for category in Category
        ]

    def poll(self) -> int:
        """
        Apply every finished load.

        Loads finished since the last poll apply in request order. A load
        that finishes after a newer one was applied still replaces it.

        Returns:
            Number of loads that replaced a current asset.
        """
        if not self._pending:
            return 0

        applied = 0
        still_pending = []
        for load in self._pending:
            if not load.done:
                still_pending.append(load)
            elif self._apply(load):
                applied += 1
        self._pending = still_pending
        return applied

    def wait(self, timeout: Optional[float] = None) -> int:
        """
        Block until in-flight loads finish, then apply them.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely).

        Returns:
            Number of loads that replaced a current asset.
        """
        if self._pending:
            wait_futures([load.future for load in self._pending], timeout=timeout)
        return self.poll()

    def _apply(self, load: AssetLoad) -> bool:
        if load.status is LoadStatus.FAILED:
            error = load.error
            if error is not None:
                logger.warning(f"Failed to load {load.category.value} asset {load.path}: {error}")
            else:
                logger.warning(f"Failed to load {load.category.value} asset {load.path}")
            return False

        self._current[load.category] = OverlayAsset(path=load.path, image=load.image())
        logger.info(f"{load.category.value.capitalize()} asset loaded: {load.path}")
        return True

    def current(self, category: Category) -> Optional[OverlayAsset]:
        """Get the current asset of a category (None until a load succeeds)."""
        return self._current.get(category)

    def is_loaded(self, category: Category) -> bool:
        return category in self._current

    def loaded_assets(self) -> dict[Category, OverlayAsset]:
        """Get a copy of the current assets keyed by category."""
        return dict(self._current)

    def selected_path(self, category: Category) -> Optional[str]:
        """Get the most recently requested catalog path for a category."""
        return self._selected_path.get(category)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def close(self) -> None:
        """Shut down the loader pool if this instance created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
