#!/usr/bin/env python3
"""
Jewelry Try-On

Main entry point. Overlays earrings or a necklace on the live webcam feed
using MediaPipe Face Mesh landmarks.

Usage:
    jewelry-tryon [--camera <index>] [--assets-dir <dir>] [--debug]

Keys (in the preview window):
    e / n / 0   Earring mode / necklace mode / no jewelry
    1-9         Select item 1-9 of the active category
    [ / ]       Previous / next item of the active category
    s           Save a snapshot
    q / Esc     Quit

Exit Codes:
    0 - Success
    2 - Camera error
    3 - Runtime error
"""

import argparse
import signal
import sys
import time
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .config import (
    EXIT_SUCCESS,
    EXIT_CAMERA_ERROR,
    EXIT_RUNTIME_ERROR,
    DEFAULT_ASSETS_DIR,
    DEFAULT_SNAPSHOT_DIR,
    DEFAULT_ASSET_NUMBER,
    ASSET_CATALOG_SIZE,
    WINDOW_NAME,
)
from .logger import setup_logging, get_logger
from .asset_state import AssetState, Category, Mode, asset_filename
from .camera_manager import CameraManager, CameraError, select_camera
from .face_detector import FaceDetector, DetectorError
from .session import TryOnSession

MODE_KEYS = {
    ord("e"): Mode.EARRING,
    ord("n"): Mode.NECKLACE,
    ord("0"): Mode.NONE,
}
QUIT_KEYS = (ord("q"), 27)  # q or ESC
SNAPSHOT_KEY = ord("s")
PREV_ASSET_KEY = ord("[")
NEXT_ASSET_KEY = ord("]")


class TryOnApp:
    """
    Main application for the jewelry try-on preview.

    Pulls camera frames, runs the face detector, and feeds each result
    through the session before showing the composited frame.
    """

    def __init__(
        self,
        camera_index: int,
        assets_dir: str = DEFAULT_ASSETS_DIR,
        snapshot_dir: str = DEFAULT_SNAPSHOT_DIR,
        initial_mode: Mode = Mode.NONE,
        earring: Optional[str] = None,
        necklace: Optional[str] = None,
        show_hud: bool = True
    ):
        self.camera_index = camera_index
        self.snapshot_dir = Path(snapshot_dir)
        self.show_hud = show_hud

        self._logger = get_logger("App")
        self._running = False
        self._stopped = False
        self._initial_mode = initial_mode
        self._initial_assets = {Category.EARRING: earring, Category.NECKLACE: necklace}

        self._camera: Optional[CameraManager] = None
        self._detector: Optional[FaceDetector] = None
        self.session = TryOnSession(AssetState(assets_dir))

        self._asset_numbers = {category: DEFAULT_ASSET_NUMBER for category in Category}
        self._last_frame: Optional[np.ndarray] = None
        self._window_open = False

        # Stats
        self._frame_count = 0
        self._start_time = 0.0
        self._last_fps_time = 0.0
        self._fps = 0.0

    def initialize(self) -> None:
        """
        Open the camera, load the detector, and start loading default assets.

        Raises:
            CameraError: If the camera cannot be opened.
            DetectorError: If the face landmarker cannot be created.
        """
        self._logger.info("Initializing jewelry try-on...")

        self.session.assets.preload_defaults(self._initial_assets)

        self._camera = CameraManager(camera_index=self.camera_index)
        width, height = self._camera.open()
        self.session.resize(width, height)

        self._detector = FaceDetector()
        self._detector.initialize()

        self.session.select_mode(self._initial_mode)
        self._logger.info("Jewelry try-on initialized")

    def run(self) -> None:
        """Run the main preview loop."""
        self._running = True
        self._start_time = time.perf_counter()
        self._last_fps_time = self._start_time

        self._logger.info("Starting preview loop...")

        try:
            while self._running:
                self._process_frame()

                key = cv2.waitKey(1) & 0xFF
                if key in QUIT_KEYS:
                    self._logger.info("Quit key pressed")
                    break
                if key != 0xFF:
                    self._handle_key(key)
        except KeyboardInterrupt:
            self._logger.info("Interrupted by user")
        finally:
            self.stop()

    def _process_frame(self) -> None:
        """Process a single frame."""
        if self._camera is None or self._detector is None:
            return

        # Swap in any overlay images that finished loading since the last frame
        self.session.assets.poll()

        frame = self._camera.read_frame()
        if frame is None:
            return

        self._frame_count += 1
        self._last_frame = frame

        height, width = frame.shape[:2]
        canvas = self.session.canvas
        if (width, height) != (canvas.width, canvas.height):
            # Some backends report one size on open and deliver another
            self._logger.warning(
                f"Render target is {canvas.width}x{canvas.height}, "
                f"camera delivered {width}x{height}"
            )
            self.session.resize(width, height)

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        face = self._detector.detect(rgb)
        if face is None:
            self._logger.debug("No face detected, keeping previous anchors")

        self.session.process_result(face)

        display = self.session.compose(frame)
        if self.show_hud:
            self._draw_hud(display)
        cv2.imshow(WINDOW_NAME, display)
        self._window_open = True

        self._update_fps()

    def _handle_key(self, key: int) -> None:
        """Map a key press to a mode, asset, or snapshot trigger."""
        if key in MODE_KEYS:
            self.session.select_mode(MODE_KEYS[key])
        elif key == SNAPSHOT_KEY:
            self.take_snapshot()
        elif key in (PREV_ASSET_KEY, NEXT_ASSET_KEY):
            step = 1 if key == NEXT_ASSET_KEY else -1
            self._step_asset(step)
        elif ord("1") <= key <= ord("9"):
            self._select_asset_number(key - ord("0"))

    def _step_asset(self, step: int) -> None:
        category = self.session.assets.mode.category
        if category is None:
            return
        current = self._asset_numbers[category]
        self._select_asset_number((current - 1 + step) % ASSET_CATALOG_SIZE + 1)

    def _select_asset_number(self, number: int) -> None:
        category = self.session.assets.mode.category
        if category is None:
            self._logger.debug("No mode selected, ignoring asset selection")
            return
        self._asset_numbers[category] = number
        self.session.select_asset(category, asset_filename(category, number))

    def take_snapshot(self) -> Optional[Path]:
        """Save the last frame with the current overlay."""
        if self._last_frame is None:
            self._logger.warning("No frame captured yet, snapshot skipped")
            return None
        return self.session.take_snapshot(self._last_frame, self.snapshot_dir)

    def _draw_hud(self, display: np.ndarray) -> None:
        """Draw mode, selected asset and FPS text."""
        assets = self.session.assets
        category = assets.mode.category

        mode_text = f"Mode: {assets.mode.value}"
        if category is not None:
            mode_text += f" ({assets.selected_path(category) or '-'})"
        cv2.putText(
            display, mode_text, (10, 30),
            cv2.FONT_HERSHEY_SIMPLEX, 0.8, (0, 255, 0), 2
        )

        fps_text = f"FPS: {self._fps:.1f}"
        cv2.putText(
            display, fps_text, (10, 60),
            cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 255), 2
        )

    def _update_fps(self) -> None:
        current_time = time.perf_counter()
        if current_time - self._last_fps_time >= 1.0:
            self._fps = self._frame_count / (current_time - self._start_time)
            self._last_fps_time = current_time

    def stop(self) -> None:
        """Stop the preview loop and clean up."""
        if self._stopped:
            return
        self._stopped = True
        self._running = False
        self._logger.info("Stopping jewelry try-on...")

        if self._detector:
            self._detector.close()
            self._detector = None

        if self._camera:
            self._camera.close()
            self._camera = None

        self.session.close()
        if self._window_open:
            cv2.destroyAllWindows()
            self._window_open = False

        if self._frame_count > 0:
            elapsed = time.perf_counter() - self._start_time
            avg_fps = self._frame_count / elapsed if elapsed > 0 else 0
            self._logger.info(
                f"Preview stopped. Processed {self._frame_count} frames "
                f"in {elapsed:.1f}s ({avg_fps:.1f} FPS average)"
            )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Jewelry Try-On - earring and necklace overlays on a live webcam feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0  Success
  2  Camera error (camera not available)
  3  Runtime error (unexpected error)

Examples:
  jewelry-tryon --assets-dir ./assets
  jewelry-tryon --camera 1 --mode earring --earring earring4.png
"""
    )

    parser.add_argument(
        "--camera", "-c",
        type=int,
        default=-1,
        help="Camera index (default: auto-detect)"
    )
    parser.add_argument(
        "--assets-dir", "-a",
        default=DEFAULT_ASSETS_DIR,
        help="Directory containing earrings/ and necklaces/ (default: current directory)"
    )
    parser.add_argument(
        "--snapshot-dir", "-o",
        default=DEFAULT_SNAPSHOT_DIR,
        help="Directory snapshots are written to (default: current directory)"
    )
    parser.add_argument(
        "--mode", "-m",
        choices=[mode.value for mode in Mode],
        default=Mode.NONE.value,
        help="Initial try-on mode"
    )
    parser.add_argument(
        "--earring",
        default=None,
        help=f"Initial earring file (default: {asset_filename(Category.EARRING, DEFAULT_ASSET_NUMBER)})"
    )
    parser.add_argument(
        "--necklace",
        default=None,
        help=f"Initial necklace file (default: {asset_filename(Category.NECKLACE, DEFAULT_ASSET_NUMBER)})"
    )
    parser.add_argument(
        "--no-hud",
        action="store_true",
        help="Hide the mode/FPS text overlay"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only"
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for the log file (default: per-user app data)"
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(
        debug=args.debug,
        log_to_file=not args.no_log_file,
        log_dir=args.log_dir
    )
    logger.info("Jewelry Try-On starting...")

    try:
        camera_index = args.camera if args.camera >= 0 else select_camera()
    except CameraError as e:
        logger.error(f"Camera selection failed: {e}")
        return EXIT_CAMERA_ERROR

    app: Optional[TryOnApp] = None

    try:
        app = TryOnApp(
            camera_index=camera_index,
            assets_dir=args.assets_dir,
            snapshot_dir=args.snapshot_dir,
            initial_mode=Mode(args.mode),
            earring=args.earring,
            necklace=args.necklace,
            show_hud=not args.no_hud
        )

        def signal_handler(sig, frame):
            logger.info("Received shutdown signal")
            if app:
                app._running = False

        signal.signal(signal.SIGINT, signal_handler)
        # SIGTERM is not available on Windows
        if sys.platform != "win32":
            signal.signal(signal.SIGTERM, signal_handler)

        app.initialize()
        app.run()

        return EXIT_SUCCESS

    except CameraError as e:
        logger.error(f"Camera error: {e}")
        return EXIT_CAMERA_ERROR
    except DetectorError as e:
        logger.error(f"Detector error: {e}")
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR
    finally:
        if app:
            app.stop()


if __name__ == "__main__":
    sys.exit(main())
