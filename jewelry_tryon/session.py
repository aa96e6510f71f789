"""
Try-on session: the per-run state shared by the frame loop.

Owns the anchor smoother, asset state, compositor, and overlay canvas,
and runs Extractor -> Smoother -> Compositor for each detector result.
"""

from pathlib import Path
from typing import Optional, Union

import numpy as np

from .anchor_smoother import Anchor, AnchorFeature, AnchorSmoother
from .asset_state import AssetState, Category, Mode
from .compositor import OverlayCanvas, OverlayCompositor, Placement, save_snapshot
from .landmark_extractor import FaceLandmarks, extract_anchors
from .logger import get_logger

logger = get_logger("Session")


class TryOnSession:
    """
    Session context for one camera run.

    Attributes:
        smoother: Per-feature anchor histories.
        assets: Active mode and current overlay assets.
        compositor: Sprite placement and drawing.
        canvas: Overlay render target (sized to the camera frame).
    """

    def __init__(
        self,
        assets: AssetState,
        smoother: Optional[AnchorSmoother] = None,
        compositor: Optional[OverlayCompositor] = None,
        canvas: Optional[OverlayCanvas] = None
    ):
        self.assets = assets
        self.smoother = smoother or AnchorSmoother()
        self.compositor = compositor or OverlayCompositor()
        self.canvas = canvas or OverlayCanvas()

        self._results_processed = 0
        self._faces_seen = 0
        self._last_placements: list[Placement] = []

    def resize(self, width: int, height: int) -> None:
        """Match the render target to the camera's native resolution."""
        self.canvas.resize(width, height)
        logger.info(f"Render target set to {width}x{height}")

    def select_mode(self, mode: Mode) -> None:
        self.assets.select_mode(mode)

    def select_asset(self, category: Category, filename: str) -> None:
        self.assets.set_asset(category, filename)

    def process_result(self, face: Optional[FaceLandmarks]) -> list[Placement]:
        """
        Handle one detector result.

        Pushes whatever anchors the face yields, then redraws the canvas
        from the smoothed histories. With no face nothing is pushed and
        the previous histories keep being drawn.

        Args:
            face: Detected face, or None.

        Returns:
            Placements drawn this frame.
        """
        self._results_processed += 1

        raw = extract_anchors(face, self.canvas.width, self.canvas.height)
        if face is not None:
            self._faces_seen += 1
        for feature, anchor in raw.items():
            self.smoother.push(feature, anchor)

        self._last_placements = self.compositor.render(
            self.canvas,
            self.assets.mode,
            self.assets.loaded_assets(),
            self.smoothed_anchors()
        )
        return self._last_placements

    def smoothed_anchors(self) -> dict[AnchorFeature, Optional[Anchor]]:
        return self.smoother.smoothed_all()

    def compose(self, frame: np.ndarray) -> np.ndarray:
        """Blend the current overlay canvas over a BGR frame."""
        return self.canvas.composite_onto(frame)

    def snapshot(self, frame: np.ndarray) -> np.ndarray:
        """Frame plus overlay drawn from the latest smoothed anchors."""
        return self.compositor.compose_snapshot(
            frame,
            self.assets.mode,
            self.assets.loaded_assets(),
            self.smoothed_anchors()
        )

    def take_snapshot(self, frame: np.ndarray, directory: Union[str, Path]) -> Optional[Path]:
        """Compose a snapshot and write it to ``directory``."""
        return save_snapshot(self.snapshot(frame), directory)

    @property
    def last_placements(self) -> list[Placement]:
        return list(self._last_placements)

    @property
    def results_processed(self) -> int:
        return self._results_processed

    @property
    def faces_seen(self) -> int:
        return self._faces_seen

    def close(self) -> None:
        self.assets.close()
