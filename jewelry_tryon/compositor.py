"""
Overlay compositor for JewelryTryOn.

Draws the active category's jewelry sprites at the smoothed anchors onto
a transparent BGRA canvas, which is then alpha-blended over the camera
frame for display or snapshot export.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

import cv2
import numpy as np

from .anchor_smoother import Anchor, AnchorFeature
from .asset_state import Category, Mode, OverlayAsset
from .logger import get_logger
from .config import PlacementSettings, SNAPSHOT_PREFIX

logger = get_logger("Compositor")


@dataclass(frozen=True)
class Placement:
    """One sprite draw call: top-left corner and size in pixels."""
    category: Category
    x: float
    y: float
    width: int
    height: int

    @property
    def rect(self) -> tuple[float, float, int, int]:
        return (self.x, self.y, self.width, self.height)


class OverlayCanvas:
    """
    Transparent BGRA render target matching the camera frame size.

    The canvas has no size until resize() is called with the camera's
    native resolution; drawing on an unsized canvas does nothing.
    """

    def __init__(self, width: int = 0, height: int = 0):
        self._image = np.zeros((0, 0, 4), dtype=np.uint8)
        if width > 0 and height > 0:
            self.resize(width, height)

    @property
    def width(self) -> int:
        return int(self._image.shape[1])

    @property
    def height(self) -> int:
        return int(self._image.shape[0])

    @property
    def is_ready(self) -> bool:
        """True once the canvas has valid dimensions."""
        return self.width > 0 and self.height > 0

    @property
    def image(self) -> np.ndarray:
        return self._image

    def resize(self, width: int, height: int) -> None:
        """Resize (and clear) the canvas."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid canvas size {width}x{height}")
        self._image = np.zeros((height, width, 4), dtype=np.uint8)
        logger.debug(f"Canvas resized to {width}x{height}")

    def clear(self) -> None:
        self._image[:] = 0

    def draw_image(self, sprite: np.ndarray, x: float, y: float, width: int, height: int) -> None:
        """
        Alpha-blend a BGRA sprite scaled to width x height at (x, y).

        Parts of the sprite outside the canvas are clipped.
        """
        if not self.is_ready or width <= 0 or height <= 0:
            return

        x0 = int(round(x))
        y0 = int(round(y))

        # Visible region in canvas coordinates
        cx0, cy0 = max(x0, 0), max(y0, 0)
        cx1, cy1 = min(x0 + width, self.width), min(y0 + height, self.height)
        if cx0 >= cx1 or cy0 >= cy1:
            return

        scaled = cv2.resize(sprite, (width, height), interpolation=cv2.INTER_AREA)
        src = scaled[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0].astype(np.float32) / 255.0
        dst = self._image[cy0:cy1, cx0:cx1].astype(np.float32) / 255.0

        # Porter-Duff "source over"
        src_a = src[:, :, 3:4]
        dst_a = dst[:, :, 3:4]
        out_a = src_a + dst_a * (1.0 - src_a)
        out_rgb = src[:, :, :3] * src_a + dst[:, :, :3] * dst_a * (1.0 - src_a)
        out_rgb = np.divide(out_rgb, out_a, out=np.zeros_like(out_rgb), where=out_a > 0)

        blended = np.concatenate([out_rgb, out_a], axis=2)
        self._image[cy0:cy1, cx0:cx1] = np.clip(blended * 255.0 + 0.5, 0, 255).astype(np.uint8)

    def composite_onto(self, frame: np.ndarray) -> np.ndarray:
        """
        Blend the canvas over a BGR frame of the same size.

        Args:
            frame: BGR image (H, W, 3).

        Returns:
            New BGR image with the overlay applied.
        """
        if not self.is_ready:
            return frame.copy()
        if frame.shape[:2] != self._image.shape[:2]:
            logger.debug(
                f"Frame {frame.shape[1]}x{frame.shape[0]} does not match canvas "
                f"{self.width}x{self.height}, overlay skipped"
            )
            return frame.copy()

        alpha = self._image[:, :, 3:4].astype(np.float32) / 255.0
        out = frame.astype(np.float32) * (1.0 - alpha) + self._image[:, :, :3].astype(np.float32) * alpha
        return np.clip(out + 0.5, 0, 255).astype(np.uint8)


class OverlayCompositor:
    """
    Places jewelry sprites relative to smoothed anchors.

    Only the category matching the active mode is drawn, and only once
    that category's asset has loaded.
    """

    def __init__(self, settings: Optional[PlacementSettings] = None):
        self.settings = settings or PlacementSettings()

    def plan(
        self,
        mode: Mode,
        assets: Mapping[Category, OverlayAsset],
        anchors: Mapping[AnchorFeature, Optional[Anchor]]
    ) -> list[Placement]:
        """Compute the draw calls for the current state without drawing."""
        s = self.settings
        placements = []

        if mode is Mode.EARRING and Category.EARRING in assets:
            left = anchors.get(AnchorFeature.LEFT_EAR)
            right = anchors.get(AnchorFeature.RIGHT_EAR)
            if left is not None:
                placements.append(Placement(
                    Category.EARRING, left.x + s.earring_left_offset_x, left.y,
                    s.earring_width, s.earring_height
                ))
            if right is not None:
                placements.append(Placement(
                    Category.EARRING, right.x + s.earring_right_offset_x, right.y,
                    s.earring_width, s.earring_height
                ))

        if mode is Mode.NECKLACE and Category.NECKLACE in assets:
            chin = anchors.get(AnchorFeature.CHIN)
            if chin is not None:
                placements.append(Placement(
                    Category.NECKLACE, chin.x + s.necklace_offset_x, chin.y,
                    s.necklace_width, s.necklace_height
                ))

        return placements

    def render(
        self,
        target: OverlayCanvas,
        mode: Mode,
        assets: Mapping[Category, OverlayAsset],
        anchors: Mapping[AnchorFeature, Optional[Anchor]]
    ) -> list[Placement]:
        """
        Clear the target and draw the active category's sprites.

        Args:
            target: Canvas to draw on.
            mode: Active try-on mode.
            assets: Loaded assets keyed by category.
            anchors: Smoothed anchors (None where unavailable).

        Returns:
            Placements drawn. Empty if the canvas has no size yet.
        """
        if not target.is_ready:
            logger.debug("Canvas size unknown, skipping render")
            return []

        target.clear()

        placements = self.plan(mode, assets, anchors)
        for p in placements:
            target.draw_image(assets[p.category].image, p.x, p.y, p.width, p.height)

        return placements

    def compose_snapshot(
        self,
        frame: np.ndarray,
        mode: Mode,
        assets: Mapping[Category, OverlayAsset],
        anchors: Mapping[AnchorFeature, Optional[Anchor]]
    ) -> np.ndarray:
        """Render the overlay on a frame-sized canvas and blend it over the frame."""
        height, width = frame.shape[:2]
        canvas = OverlayCanvas(width, height)
        self.render(canvas, mode, assets, anchors)
        return canvas.composite_onto(frame)


def snapshot_filename(timestamp_ms: Optional[int] = None) -> str:
    """Snapshot filename, e.g. ``jewelry-tryon-1700000000000.png``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{SNAPSHOT_PREFIX}-{timestamp_ms}.png"


def save_snapshot(image: np.ndarray, directory: Union[str, Path]) -> Optional[Path]:
    """
    Write a snapshot image as PNG.

    Args:
        image: BGR image to save.
        directory: Output directory (created if needed).

    Returns:
        Path written, or None if the write failed.
    """
    out_dir = Path(directory)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create snapshot directory {out_dir}: {e}")
        return None

    path = out_dir / snapshot_filename()
    if not cv2.imwrite(str(path), image):
        logger.error(f"Failed to write snapshot: {path}")
        return None

    logger.info(f"Snapshot saved: {path}")
    return path
