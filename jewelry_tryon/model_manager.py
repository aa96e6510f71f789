"""
MediaPipe model file manager for the Tasks API.

Downloads and caches the face landmarker model required when MediaPipe
only ships the Tasks API (Python 3.13+ wheels).
"""

import os
import sys
import time
import urllib.request
from pathlib import Path

from .logger import get_logger

logger = get_logger("ModelManager")

FACE_LANDMARKER_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
FACE_LANDMARKER_FILENAME = "face_landmarker.task"
FACE_LANDMARKER_SIZE_MB = 3.6  # Approximate

# Download settings
DOWNLOAD_TIMEOUT = 120  # seconds
DOWNLOAD_CHUNK_SIZE = 8192  # bytes
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds


def get_model_cache_dir() -> Path:
    """Get (and create) the model cache directory."""
    if sys.platform == "win32":
        base = os.environ.get("LOCALAPPDATA", os.path.expanduser("~"))
    else:
        base = os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache"))

    cache_dir = Path(base) / "JewelryTryOn" / "mediapipe_models"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def ensure_face_landmarker_model() -> str:
    """
    Ensure the face landmarker model is available, downloading it if needed.

    Returns:
        Path to the model file.

    Raises:
        RuntimeError: If download fails after retries.
    """
    model_path = get_model_cache_dir() / FACE_LANDMARKER_FILENAME

    if model_path.exists():
        logger.debug(f"Using cached model: {model_path}")
        return str(model_path)

    logger.info(f"Downloading face landmarker model (~{FACE_LANDMARKER_SIZE_MB} MB) from {FACE_LANDMARKER_URL}")

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            _download_model(FACE_LANDMARKER_URL, model_path)
            logger.info(f"Model downloaded: {model_path}")
            return str(model_path)
        except OSError as e:
            logger.warning(f"Download attempt {attempt}/{MAX_RETRIES} failed: {e}")
            if attempt < MAX_RETRIES:
                time.sleep(RETRY_DELAY * attempt)
            else:
                raise RuntimeError(
                    f"Failed to download MediaPipe face landmarker model after {MAX_RETRIES} attempts. "
                    f"Check your internet connection and try again."
                ) from e

    raise RuntimeError("Model download failed")


def _download_model(url: str, dest_path: Path) -> None:
    """Download to a temp file, then move it into place."""
    temp_path = dest_path.with_suffix(".tmp")

    try:
        request = urllib.request.Request(url, headers={"User-Agent": "JewelryTryOn/1.0"})
        with urllib.request.urlopen(request, timeout=DOWNLOAD_TIMEOUT) as response:
            with open(temp_path, "wb") as f:
                while True:
                    chunk = response.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)

        temp_path.replace(dest_path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
