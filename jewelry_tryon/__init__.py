"""
JewelryTryOn - Earring and necklace overlays on a live webcam feed.

Tracks MediaPipe Face Mesh landmarks, smooths the derived anchor points
over a short window, and composites jewelry sprites at those anchors.
"""

__version__ = "1.0.0"
__author__ = "JewelryTryOn Team"

from .anchor_smoother import Anchor, AnchorFeature, AnchorSmoother
from .landmark_extractor import FaceLandmarks, Landmark, extract_anchors
from .asset_state import AssetLoad, AssetState, Category, LoadStatus, Mode, OverlayAsset
from .compositor import OverlayCanvas, OverlayCompositor, Placement
from .session import TryOnSession

__all__ = [
    "Anchor",
    "AnchorFeature",
    "AnchorSmoother",
    "FaceLandmarks",
    "Landmark",
    "extract_anchors",
    "AssetLoad",
    "AssetState",
    "Category",
    "LoadStatus",
    "Mode",
    "OverlayAsset",
    "OverlayCanvas",
    "OverlayCompositor",
    "Placement",
    "TryOnSession",
]
