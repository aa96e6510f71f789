"""
Face landmark detector using MediaPipe Face Mesh.

Supports both the Solutions API (mp.solutions.face_mesh, Python 3.9-3.12)
and the Tasks API FaceLandmarker (Python 3.13+ wheels).
"""

import time
from typing import Optional

import numpy as np

try:
    import mediapipe as mp
except ImportError as e:
    raise ImportError(
        "MediaPipe is required. Install with: pip install mediapipe"
    ) from e

from .landmark_extractor import FaceLandmarks, Landmark
from .logger import get_logger
from .config import (
    MEDIAPIPE_MAX_NUM_FACES,
    MEDIAPIPE_REFINE_LANDMARKS,
    MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
    MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
)

logger = get_logger("FaceDetector")

# Legacy Solutions API first, Tasks API otherwise
USING_TASKS_API = not (hasattr(mp, "solutions") and hasattr(mp.solutions, "face_mesh"))


class DetectorError(Exception):
    """Raised when the landmark detector cannot be initialized."""
    pass


class FaceDetector:
    """
    Single-face landmark detector.

    Produces zero or one face per frame as normalized Face Mesh landmarks.
    """

    def __init__(
        self,
        max_num_faces: int = MEDIAPIPE_MAX_NUM_FACES,
        refine_landmarks: bool = MEDIAPIPE_REFINE_LANDMARKS,
        min_detection_confidence: float = MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = MEDIAPIPE_MIN_TRACKING_CONFIDENCE
    ):
        """
        Initialize face detector.

        Args:
            max_num_faces: Maximum number of faces to detect (only the first is used).
            refine_landmarks: Enable iris refinement (478 landmarks instead of 468).
            min_detection_confidence: Minimum face detection confidence.
            min_tracking_confidence: Minimum landmark tracking confidence.
        """
        self.max_num_faces = max_num_faces
        self.refine_landmarks = refine_landmarks
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self._face_mesh = None  # Solutions API FaceMesh
        self._landmarker = None  # Tasks API FaceLandmarker
        self._using_tasks_api = USING_TASKS_API
        self._start_time = 0.0
        self._last_timestamp_ms = -1
        self._frame_count = 0

        api_type = "Tasks API" if self._using_tasks_api else "Solutions API"
        logger.info(f"FaceDetector created ({api_type}, max_faces={max_num_faces})")

    @property
    def is_initialized(self) -> bool:
        return self._face_mesh is not None or self._landmarker is not None

    def initialize(self) -> None:
        """
        Load the MediaPipe model.

        Raises:
            DetectorError: If the model cannot be created.
        """
        if self.is_initialized:
            return

        try:
            if self._using_tasks_api:
                self._initialize_tasks_api()
            else:
                self._initialize_solutions_api()
        except (RuntimeError, OSError, ValueError) as e:
            raise DetectorError(f"Failed to initialize MediaPipe face landmarker: {e}") from e

        self._start_time = time.perf_counter()

    def _initialize_solutions_api(self) -> None:
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=self.max_num_faces,
            refine_landmarks=self.refine_landmarks,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        logger.info("MediaPipe Face Mesh initialized (Solutions API)")

    def _initialize_tasks_api(self) -> None:
        from mediapipe.tasks import python as mp_python
        from mediapipe.tasks.python import vision as mp_vision

        from .model_manager import ensure_face_landmarker_model

        model_path = ensure_face_landmarker_model()
        options = mp_vision.FaceLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=model_path),
            running_mode=mp_vision.RunningMode.VIDEO,
            num_faces=self.max_num_faces,
            min_face_detection_confidence=self.min_detection_confidence,
            min_face_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        self._landmarker = mp_vision.FaceLandmarker.create_from_options(options)
        logger.info("MediaPipe FaceLandmarker initialized (Tasks API, VIDEO mode)")

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._face_mesh:
            self._face_mesh.close()
            self._face_mesh = None
        if self._landmarker:
            self._landmarker.close()
            self._landmarker = None
        logger.debug("FaceDetector closed")

    def detect(self, rgb_image: np.ndarray) -> Optional[FaceLandmarks]:
        """
        Detect face landmarks in an RGB image.

        Args:
            rgb_image: RGB image as numpy array (H, W, 3).

        Returns:
            FaceLandmarks for the first face, or None if no face was found.
        """
        if not self.is_initialized:
            self.initialize()

        self._frame_count += 1

        if self._using_tasks_api:
            return self._detect_tasks_api(rgb_image)
        return self._detect_solutions_api(rgb_image)

    def _detect_solutions_api(self, rgb_image: np.ndarray) -> Optional[FaceLandmarks]:
        results = self._face_mesh.process(rgb_image)
        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]
        return FaceLandmarks(landmarks=[
            Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in face.landmark
        ])

    def _detect_tasks_api(self, rgb_image: np.ndarray) -> Optional[FaceLandmarks]:
        if not rgb_image.flags["C_CONTIGUOUS"]:
            rgb_image = np.ascontiguousarray(rgb_image)

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)

        # VIDEO mode needs strictly increasing timestamps
        timestamp_ms = int((time.perf_counter() - self._start_time) * 1000)
        timestamp_ms = max(timestamp_ms, self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        result = self._landmarker.detect_for_video(mp_image, timestamp_ms)
        if not result.face_landmarks:
            return None

        return FaceLandmarks(landmarks=[
            Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in result.face_landmarks[0]
        ])

    @property
    def frame_count(self) -> int:
        return self._frame_count
