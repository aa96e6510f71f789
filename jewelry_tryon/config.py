"""
Configuration constants for JewelryTryOn.

This module contains all tunable parameters for camera capture,
face landmark detection, anchor smoothing, and overlay placement.
"""

from dataclasses import dataclass
from typing import Final


# Camera configuration
CAMERA_WIDTH: Final[int] = 1280
CAMERA_HEIGHT: Final[int] = 720
CAMERA_FPS: Final[int] = 30
DEFAULT_CAMERA_INDEX: Final[int] = 0

# MediaPipe Face Mesh configuration
MEDIAPIPE_MAX_NUM_FACES: Final[int] = 1
MEDIAPIPE_REFINE_LANDMARKS: Final[bool] = True
MEDIAPIPE_MIN_DETECTION_CONFIDENCE: Final[float] = 0.5
MEDIAPIPE_MIN_TRACKING_CONFIDENCE: Final[float] = 0.5

# =============================================================================
# Anchor landmarks (MediaPipe Face Mesh indices)
# =============================================================================
# 132 and 361 sit on the jaw contour just below each ear lobe, 152 is the
# bottom of the chin. The y offsets nudge the anchor onto the lobe / neckline.
LEFT_EAR_LANDMARK: Final[int] = 132
RIGHT_EAR_LANDMARK: Final[int] = 361
CHIN_LANDMARK: Final[int] = 152

EAR_ANCHOR_OFFSET_Y: Final[float] = -20.0  # pixels, up towards the lobe
CHIN_ANCHOR_OFFSET_Y: Final[float] = 10.0  # pixels, down onto the neck

# Anchor smoothing: moving average over the last N raw anchors
SMOOTHING_WINDOW_SIZE: Final[int] = 5

# =============================================================================
# Overlay placement (empirically tuned against the sprites in the catalog)
# =============================================================================
# Sprites are drawn with their top-left corner at anchor + offset.
EARRING_LEFT_OFFSET_X: Final[float] = -60.0
EARRING_RIGHT_OFFSET_X: Final[float] = -20.0
EARRING_WIDTH: Final[int] = 100
EARRING_HEIGHT: Final[int] = 100

NECKLACE_OFFSET_X: Final[float] = -100.0
NECKLACE_WIDTH: Final[int] = 200
NECKLACE_HEIGHT: Final[int] = 100

# Asset catalog
DEFAULT_ASSETS_DIR: Final[str] = "."
ASSET_CATALOG_SIZE: Final[int] = 12  # earring1.png .. earring12.png
DEFAULT_ASSET_NUMBER: Final[int] = 1
ASSET_LOADER_WORKERS: Final[int] = 2

# Snapshots
SNAPSHOT_PREFIX: Final[str] = "jewelry-tryon"
DEFAULT_SNAPSHOT_DIR: Final[str] = "."

# Display
WINDOW_NAME: Final[str] = "Jewelry Try-On"

# Logging
LOG_FILENAME: Final[str] = "jewelry_tryon.log"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3
LOG_APP_DIR_NAME: Final[str] = "JewelryTryOn"  # under %APPDATA%
THIRD_PARTY_LOGGERS: Final[tuple[str, ...]] = ("absl", "mediapipe")

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_CAMERA_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3


@dataclass
class PlacementSettings:
    """Container for overlay sprite placement (offsets relative to anchors)."""

    earring_left_offset_x: float = EARRING_LEFT_OFFSET_X
    earring_right_offset_x: float = EARRING_RIGHT_OFFSET_X
    earring_width: int = EARRING_WIDTH
    earring_height: int = EARRING_HEIGHT
    necklace_offset_x: float = NECKLACE_OFFSET_X
    necklace_width: int = NECKLACE_WIDTH
    necklace_height: int = NECKLACE_HEIGHT
