"""
Camera manager for JewelryTryOn.

Wraps OpenCV VideoCapture and reports the stream's native resolution once
it is open, so the overlay canvas can be sized to match.
"""

import sys
from typing import Optional

import cv2
import numpy as np

from .logger import get_logger
from .config import CAMERA_WIDTH, CAMERA_HEIGHT, CAMERA_FPS, DEFAULT_CAMERA_INDEX

logger = get_logger("CameraManager")


class CameraError(Exception):
    """Raised when camera operations fail."""
    pass


def _open_capture(index: int) -> cv2.VideoCapture:
    # DirectShow opens noticeably faster than MSMF on Windows
    if sys.platform == "win32":
        capture = cv2.VideoCapture(index, cv2.CAP_DSHOW)
        if capture.isOpened():
            return capture
        logger.debug("DirectShow failed, trying default backend")
    return cv2.VideoCapture(index)


class CameraManager:
    """
    Manages webcam capture using OpenCV VideoCapture.

    Attributes:
        camera_index: Index of the camera device.
        width: Requested capture width in pixels.
        height: Requested capture height in pixels.
        fps: Requested frames per second.
    """

    def __init__(
        self,
        camera_index: int = DEFAULT_CAMERA_INDEX,
        width: int = CAMERA_WIDTH,
        height: int = CAMERA_HEIGHT,
        fps: int = CAMERA_FPS
    ):
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.fps = fps

        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_count = 0
        self._native_size: tuple[int, int] = (0, 0)

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def native_size(self) -> tuple[int, int]:
        """(width, height) the device actually delivers; (0, 0) before open()."""
        return self._native_size

    def open(self) -> tuple[int, int]:
        """
        Open the camera for capture.

        Returns:
            Native (width, height) of the stream.

        Raises:
            CameraError: If camera cannot be opened.
        """
        if self._capture is not None:
            logger.warning("Camera already open, closing first")
            self.close()

        logger.info(f"Opening camera {self.camera_index}...")
        capture = _open_capture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            raise CameraError(f"Failed to open camera {self.camera_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        capture.set(cv2.CAP_PROP_FPS, self.fps)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # Minimize latency

        self._capture = capture
        self._frame_count = 0
        self._native_size = (
            int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

        # Some backends report 0x0 until the first frame arrives
        if self._native_size[0] <= 0 or self._native_size[1] <= 0:
            frame = self.read_frame()
            if frame is None:
                self.close()
                raise CameraError(f"Camera {self.camera_index} delivered no frames")
            self._native_size = (frame.shape[1], frame.shape[0])

        w, h = self._native_size
        logger.info(f"Camera opened: {w}x{h} @ {capture.get(cv2.CAP_PROP_FPS):.1f} FPS")
        if (w, h) != (self.width, self.height):
            logger.info(f"Requested {self.width}x{self.height}, using native {w}x{h}")

        return self._native_size

    def close(self) -> None:
        """Close the camera and release resources."""
        if self._capture is not None:
            logger.info("Closing camera")
            self._capture.release()
            self._capture = None

    def read_frame(self) -> Optional[np.ndarray]:
        """
        Read a single BGR frame.

        Returns:
            BGR image, or None if the read failed.

        Raises:
            CameraError: If camera is not open.
        """
        if self._capture is None:
            raise CameraError("Camera is not open")

        ret, frame = self._capture.read()
        if not ret or frame is None:
            logger.warning("Failed to read frame from camera")
            return None

        self._frame_count += 1
        return frame

    def get_frame_count(self) -> int:
        return self._frame_count

    def __enter__(self) -> "CameraManager":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def select_camera(preferred_index: int = -1, max_index: int = 10) -> int:
    """
    Select a camera index.

    Args:
        preferred_index: Index to use if available (-1 for auto).
        max_index: Number of indices to probe.

    Returns:
        Selected camera index.

    Raises:
        CameraError: If no camera is available.
    """
    available = []
    for i in range(max_index):
        cap = _open_capture(i)
        if cap.isOpened():
            available.append(i)
        cap.release()
    logger.debug(f"Available cameras: {available}")

    if not available:
        raise CameraError("No cameras available")

    if preferred_index >= 0:
        if preferred_index in available:
            return preferred_index
        logger.warning(f"Preferred camera {preferred_index} not available, using {available[0]}")

    logger.info(f"Auto-selected camera index: {available[0]}")
    return available[0]
