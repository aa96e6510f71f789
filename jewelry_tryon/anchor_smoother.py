"""
Anchor smoother for temporal filtering of jewelry anchor points.

Keeps a short sliding window of raw pixel-space anchors per tracked
feature and reports their moving average. A larger window trades
responsiveness for stability; the window size is fixed so placement
matches across runs.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .logger import get_logger
from .config import SMOOTHING_WINDOW_SIZE

logger = get_logger("AnchorSmoother")


class AnchorFeature(Enum):
    """Facial features that jewelry is anchored to."""
    LEFT_EAR = "left-ear"
    RIGHT_EAR = "right-ear"
    CHIN = "chin"


@dataclass(frozen=True)
class Anchor:
    """Pixel-space placement point."""
    x: float
    y: float


class AnchorSmoother:
    """
    Moving-average smoother with one bounded history per feature.

    Histories are only ever refreshed by new detections. They are not
    cleared when the face is lost, so the last smoothed anchors stay
    available until fresh detections push them out.

    Attributes:
        window_size: Maximum number of raw anchors kept per feature.
    """

    def __init__(self, window_size: int = SMOOTHING_WINDOW_SIZE):
        """
        Initialize anchor smoother.

        Args:
            window_size: Number of recent anchors averaged per feature.
        """
        if window_size < 1:
            raise ValueError(f"window_size must be positive, got {window_size}")

        self.window_size = window_size
        self._histories: dict[AnchorFeature, deque[Anchor]] = {
            feature: deque(maxlen=window_size) for feature in AnchorFeature
        }
        self._push_count = 0

        logger.debug(f"AnchorSmoother initialized (window={window_size})")

    def push(self, feature: AnchorFeature, point: Anchor) -> None:
        """Append a raw anchor, evicting the oldest once the window is full."""
        self._histories[feature].append(point)
        self._push_count += 1

    def smoothed(self, feature: AnchorFeature) -> Optional[Anchor]:
        """
        Get the arithmetic mean of the feature's current history.

        Args:
            feature: Feature to smooth.

        Returns:
            Mean anchor, or None if nothing has been pushed for the feature.
        """
        history = self._histories[feature]
        if not history:
            return None

        x = sum(p.x for p in history) / len(history)
        y = sum(p.y for p in history) / len(history)

        return Anchor(x=x, y=y)

    def smoothed_all(self) -> dict[AnchorFeature, Optional[Anchor]]:
        """Get smoothed anchors for every feature (None where unavailable)."""
        return {feature: self.smoothed(feature) for feature in AnchorFeature}

    def history_size(self, feature: AnchorFeature) -> int:
        """Get number of raw anchors currently held for a feature."""
        return len(self._histories[feature])

    @property
    def push_count(self) -> int:
        """Get total number of anchors pushed across all features."""
        return self._push_count
