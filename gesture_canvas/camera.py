"""
Camera Module - Webcam Stream Handler
======================================
Captures frames on a background thread and hands out only the most
recent one, so a slow consumer drops stale frames instead of queuing
them. Works with camera indices and video files alike.
"""

import logging
import threading
import time
from typing import Callable, Generator, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CameraError(RuntimeError):
    """Raised when the capture source cannot be opened."""


class Camera:
    """
    Frame source with threaded capture.

    Attributes:
        source: Camera device index or video path
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Target frames per second
    """

    def __init__(
        self,
        source: Union[int, str] = 0,
        width: int = 640,
        height: int = 480,
        fps: int = 30,
        mirror: bool = True,
        on_frame: Optional[Callable[[np.ndarray], None]] = None,
        max_failed_reads: int = 30
    ):
        """
        Initialize the camera with specified parameters.

        Args:
            source: Camera device index or path to a video file
            width: Desired frame width
            height: Desired frame height
            fps: Target frame rate
            mirror: Flip frames horizontally (selfie view)
            on_frame: Optional callback invoked on the capture thread per frame
            max_failed_reads: Consecutive failed reads treated as end of stream
        """
        self.source = source
        self.width = width
        self.height = height
        self.fps = fps
        self.mirror = mirror
        self.on_frame = on_frame
        self.max_failed_reads = max_failed_reads

        self.cap: Optional[cv2.VideoCapture] = None

        # Latest frame only, guarded by the condition's lock
        self._frame: Optional[np.ndarray] = None
        self._frame_id = 0
        self._cond = threading.Condition()
        self._running = False
        self._ended = False
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """
        Open the source and start the capture thread.

        Raises:
            CameraError: If the source cannot be opened
        """
        self.cap = cv2.VideoCapture(self.source)

        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise CameraError(f"Failed to open camera {self.source}")

        if isinstance(self.source, int):
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self.cap.set(cv2.CAP_PROP_FPS, self.fps)
            # Buffer of 1 for minimum latency
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        # Actual resolution may differ from requested
        self.width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)) or self.width
        self.height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)) or self.height

        logger.info("Camera started: %sx%s from %s", self.width, self.height, self.source)

        self._running = True
        self._ended = False
        self._thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._thread.start()

    def _capture_loop(self):
        failures = 0
        while self._running:
            ret, frame = self.cap.read()

            if not ret or frame is None:
                failures += 1
                if failures >= self.max_failed_reads:
                    logger.info("Camera %s stopped delivering frames", self.source)
                    with self._cond:
                        self._ended = True
                        self._cond.notify_all()
                    return
                time.sleep(0.001)
                continue

            failures = 0
            if self.mirror:
                frame = cv2.flip(frame, 1)

            with self._cond:
                self._frame = frame
                self._frame_id += 1
                self._cond.notify_all()

            if self.on_frame is not None:
                try:
                    self.on_frame(frame)
                except Exception:
                    logger.exception("Frame callback failed")

    @property
    def ended(self) -> bool:
        """True once the source has stopped delivering frames."""
        return self._ended

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read the latest captured frame.

        Returns:
            Tuple of (success, frame copy or None)
        """
        with self._cond:
            if self._frame is None:
                return False, None
            return True, self._frame.copy()

    def get_frame(self) -> Optional[np.ndarray]:
        ret, frame = self.read()
        return frame if ret else None

    def wait_for_frame(self, last_id: int = 0, timeout: float = 1.0) -> Tuple[int, Optional[np.ndarray]]:
        """
        Block until a frame newer than `last_id` arrives.

        Args:
            last_id: Id of the last frame the caller consumed
            timeout: Seconds to wait

        Returns:
            (frame id, frame copy), frame is None on timeout or end of stream
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._frame_id > last_id or self._ended or not self._running,
                timeout=timeout
            )
            if self._frame_id > last_id and self._frame is not None:
                return self._frame_id, self._frame.copy()
            return last_id, None

    def stop(self):
        """Stop the capture thread and release the device."""
        self._running = False
        with self._cond:
            self._cond.notify_all()

        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def frame_generator(self) -> Generator[np.ndarray, None, None]:
        """
        Yield each new frame until the stream ends or the camera stops.

        Frames that arrive while the consumer is busy are skipped.
        """
        last_id = 0
        while self._running:
            last_id, frame = self.wait_for_frame(last_id, timeout=0.5)
            if frame is not None:
                yield frame
            elif self._ended:
                return
