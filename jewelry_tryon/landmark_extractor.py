"""
Landmark extractor for JewelryTryOn.

Maps a detected face's normalized Face Mesh landmarks to the pixel-space
anchors jewelry is placed at.
"""

from dataclasses import dataclass
from typing import Optional

from .anchor_smoother import Anchor, AnchorFeature
from .config import (
    LEFT_EAR_LANDMARK,
    RIGHT_EAR_LANDMARK,
    CHIN_LANDMARK,
    EAR_ANCHOR_OFFSET_Y,
    CHIN_ANCHOR_OFFSET_Y,
)


class FaceLandmarkIndex:
    """MediaPipe Face Mesh indices used for anchoring."""
    LEFT_EAR = LEFT_EAR_LANDMARK
    RIGHT_EAR = RIGHT_EAR_LANDMARK
    CHIN = CHIN_LANDMARK


@dataclass
class Landmark:
    """Single face landmark in normalized image coordinates."""
    x: float  # Normalized x [0, 1]
    y: float  # Normalized y [0, 1]
    z: float = 0.0  # Relative depth


@dataclass
class FaceLandmarks:
    """
    Landmark set for one detected face.

    Attributes:
        landmarks: Face Mesh landmarks (468, or 478 with refined irises).
    """
    landmarks: list[Landmark]

    def get_landmark(self, index: int) -> Optional[Landmark]:
        """Get landmark by index."""
        if 0 <= index < len(self.landmarks):
            return self.landmarks[index]
        return None


# feature -> (landmark index, vertical pixel offset)
ANCHOR_LANDMARKS: dict[AnchorFeature, tuple[int, float]] = {
    AnchorFeature.LEFT_EAR: (FaceLandmarkIndex.LEFT_EAR, EAR_ANCHOR_OFFSET_Y),
    AnchorFeature.RIGHT_EAR: (FaceLandmarkIndex.RIGHT_EAR, EAR_ANCHOR_OFFSET_Y),
    AnchorFeature.CHIN: (FaceLandmarkIndex.CHIN, CHIN_ANCHOR_OFFSET_Y),
}


def extract_anchors(
    face: Optional[FaceLandmarks],
    width: int,
    height: int
) -> dict[AnchorFeature, Anchor]:
    """
    Convert a face's landmarks into raw pixel-space anchors.

    Args:
        face: Detected face, or None if no face was found this frame.
        width: Render target width in pixels.
        height: Render target height in pixels.

    Returns:
        Anchors keyed by feature. Empty when there is no face or the
        target size is unknown; features whose landmark is missing are
        left out.
    """
    if face is None or width <= 0 or height <= 0:
        return {}

    anchors = {}
    for feature, (index, offset_y) in ANCHOR_LANDMARKS.items():
        lm = face.get_landmark(index)
        if lm is None:
            continue
        anchors[feature] = Anchor(x=lm.x * width, y=lm.y * height + offset_y)

    return anchors
