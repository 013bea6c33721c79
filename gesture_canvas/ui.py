"""
UI Module - Main Application Interface
======================================
Runs the gesture pipeline on a live camera (or video file), shows the
annotated preview, and saves the canvas when stopped.
"""

import argparse
import logging
import signal
import threading
from pathlib import Path
from typing import Optional, Sequence

import cv2

from .camera import Camera, CameraError
from .canvas import ColorPalette
from .config import ConfigError, Settings
from .pipeline import ExportResult, GesturePipeline

logger = logging.getLogger(__name__)


class GestureDrawingApp:
    """
    Poll-loop front end for the gesture pipeline.

    Frames come from a Camera, go through GesturePipeline.process_frame,
    and are optionally displayed. Stops on end of stream, `q`/Esc, Ctrl+C
    or `stop()`, and always writes the final canvas.
    """

    WINDOW_NAME = "Hand Gesture Drawing"

    def __init__(self, settings: Settings, preview: bool = True):
        """
        Initialize the application.

        Args:
            settings: Pipeline and camera settings
            preview: Show the annotated video window
        """
        self.settings = settings
        self.preview = preview

        self.camera = Camera(
            source=settings.source,
            width=settings.canvas_width,
            height=settings.canvas_height,
            mirror=isinstance(settings.source, int)
        )
        self.pipeline = GesturePipeline(settings)
        self.stop_event = threading.Event()

        self._colors = ColorPalette.get_all()

    def stop(self):
        """Ask the main loop to finish after the current frame."""
        self.stop_event.set()

    def _handle_keyboard(self, key: int) -> bool:
        """
        Handle keyboard input.

        Returns:
            False if should quit, True otherwise
        """
        if key == ord('q') or key == 27:  # Q or Escape
            return False

        elif key == ord('s'):
            self.pipeline.export()

        elif ord('1') <= key < ord('1') + len(self._colors):
            self.pipeline.state.color = self._colors[key - ord('1')]

        return True

    def run(self) -> ExportResult:
        """
        Run the main loop until stopped.

        Returns:
            Result of the final export

        Raises:
            CameraError: If the capture source cannot be opened
        """
        logger.info("Gestures: 5 fingers draw, fist stops, 1 finger resets color, 2 fingers save")
        if self.preview:
            logger.info("Keys: [1-%d] color | [S] save | [Q] quit", len(self._colors))

        self.camera.start()

        if self.preview:
            cv2.namedWindow(self.WINDOW_NAME, cv2.WINDOW_NORMAL)

        try:
            for frame in self.camera.frame_generator():
                if self.stop_event.is_set():
                    break

                result = self.pipeline.process_frame(frame, annotate=self.preview)

                if self.preview:
                    cv2.imshow(self.WINDOW_NAME, result.annotated)
                    key = cv2.waitKey(1) & 0xFF
                    if not self._handle_keyboard(key):
                        break

        except KeyboardInterrupt:
            logger.info("Stopped by user")

        finally:
            self.camera.stop()
            if self.preview:
                cv2.destroyAllWindows()
            final = self.pipeline.export()

        return final

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        self.camera.stop()
        return False


def _parse_source(value: str):
    return int(value) if value.isdigit() else value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Draw on a canvas with hand gestures")
    parser.add_argument('--source', type=_parse_source, default=None,
                        help='Camera device index or video file (default from env, else 0)')
    parser.add_argument('--export-path', type=Path, default=None,
                        help='Where the canvas is saved')
    parser.add_argument('--no-preview', action='store_true', help='Run without a window')
    parser.add_argument('--env-file', type=Path, default=None, help='.env file with GESTURE_CANVAS_* settings')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])

    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="[%(levelname)s] %(message)s")

    try:
        settings = Settings.from_env(args.env_file)
    except ConfigError as e:
        parser.error(str(e))

    settings = settings.with_overrides(source=args.source, export_path=args.export_path)

    with GestureDrawingApp(settings, preview=not args.no_preview) as app:
        signal.signal(signal.SIGTERM, lambda signum, frame: app.stop())
        try:
            result = app.run()
        except CameraError as e:
            logger.error("%s", e)
            return 1

    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
