"""
Pipeline Module - One Frame at a Time
=====================================
Wires silhouette extraction, hand geometry, gesture logic and the
canvas into a single `process_frame` entry point that works the same
from a polling loop or a frame-ready callback.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

import cv2
import numpy as np

from .canvas import CanvasCompositor, ExportError, Segment
from .config import Settings
from .gesture_logic import (
    DrawingState, Gesture, GestureStateMachine, draw_gesture_ui
)
from .hand_geometry import GestureReading, HandGeometryAnalyzer, draw_analysis
from .silhouette import SilhouetteExtractor

logger = logging.getLogger(__name__)

# Binary mask preview is drawn at 1/MASK_INSET_SCALE of the frame size
MASK_INSET_SCALE = 4


@dataclass
class DrawingContext:
    """
    Everything that persists between frames.

    Attributes:
        state: Mode, color and stroke position
        compositor: Owner of the canvas
    """
    state: DrawingState
    compositor: CanvasCompositor

    @property
    def canvas(self):
        return self.compositor.canvas


@dataclass
class FrameResult:
    """
    Outcome of processing one frame.

    Attributes:
        reading: Reading that drove the state machine, None if skipped
        contour: Contour the reading came from
        gesture: Gesture applied, None if the frame was skipped
        segment: Segment drawn this frame, if any
        candidates: Number of contours that survived extraction
        annotated: Frame with canvas and analysis overlays, if requested
    """
    reading: Optional[GestureReading] = None
    contour: Optional[np.ndarray] = None
    gesture: Optional[Gesture] = None
    segment: Optional[Segment] = None
    candidates: int = 0
    annotated: Optional[np.ndarray] = None

    @property
    def skipped(self) -> bool:
        return self.gesture is None


@dataclass
class ExportResult:
    """Result of a canvas export attempt."""
    success: bool
    path: Path
    error: Optional[str] = None


class GesturePipeline:
    """
    Processes frames into drawing actions.

    Among the contours of a frame, the largest one that analyses to a
    defined reference point drives the state machine; the rest are
    ignored. Frames without such a contour leave the state untouched.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        extractor: Optional[SilhouetteExtractor] = None,
        analyzer: Optional[HandGeometryAnalyzer] = None,
        state_machine: Optional[GestureStateMachine] = None,
        compositor: Optional[CanvasCompositor] = None
    ):
        """
        Args:
            settings: Settings used to build any component not passed in
            extractor: Silhouette extractor
            analyzer: Hand geometry analyzer
            state_machine: Gesture state machine
            compositor: Canvas compositor
        """
        self.settings = settings or Settings()
        self.extractor = extractor or SilhouetteExtractor.from_settings(self.settings)
        self.analyzer = analyzer or HandGeometryAnalyzer.from_settings(self.settings)
        self.state_machine = state_machine or GestureStateMachine.from_settings(self.settings)

        self.context = DrawingContext(
            state=DrawingState(color=self.settings.default_color),
            compositor=compositor or CanvasCompositor.from_settings(self.settings)
        )

        self.export_path = Path(self.settings.export_path)
        self.last_export: Optional[ExportResult] = None
        # Re-entrant: the save gesture exports from inside process_frame
        self._lock = threading.RLock()

        self.state_machine.register_callback(Gesture.SAVE, self._on_save)

    @property
    def state(self) -> DrawingState:
        return self.context.state

    @property
    def canvas(self):
        return self.context.canvas

    def process_frame(self, frame: np.ndarray, annotate: bool = False) -> FrameResult:
        """
        Run one frame through the pipeline.

        Args:
            frame: Grayscale or BGR image
            annotate: Whether to render an annotated copy for display

        Returns:
            FrameResult describing what happened
        """
        with self._lock:
            contours = self.extractor.extract(frame)
            result = FrameResult(candidates=len(contours))

            contour, reading = self._select_reading(contours)
            if reading is not None:
                result.contour = contour
                result.reading = reading
                result.gesture = self.state_machine.apply(self.state, reading.finger_count)
                result.segment = self.context.compositor.consume(
                    self.state, self._to_canvas(reading.reference_point, frame.shape)
                )
            else:
                # A frame without a hand ends any held gesture
                self.state_machine.reset()

            if annotate:
                result.annotated = self._annotate(frame, result)

            return result

    def _select_reading(
        self,
        contours: List[np.ndarray]
    ) -> Tuple[Optional[np.ndarray], Optional[GestureReading]]:
        # Contours arrive largest first
        for contour in contours:
            reading = self.analyzer.analyze(contour)
            if reading is None:
                continue
            if not reading.is_valid:
                logger.debug("Skipping contour with zero area moments")
                continue
            return contour, reading
        return None, None

    def _to_canvas(self, point: Tuple[int, int], frame_shape) -> Tuple[int, int]:
        """Scale a frame coordinate onto the canvas."""
        frame_h, frame_w = frame_shape[:2]
        canvas = self.canvas
        if (frame_w, frame_h) == (canvas.width, canvas.height):
            return point
        x, y = point
        return int(x * canvas.width / frame_w), int(y * canvas.height / frame_h)

    def _annotate(self, frame: np.ndarray, result: FrameResult) -> np.ndarray:
        display = self.canvas.overlay_on_frame(frame)
        self._draw_mask_inset(display, frame)
        if result.contour is not None:
            draw_analysis(display, result.contour, result.reading)
        finger_count = result.reading.finger_count if result.reading else None
        return draw_gesture_ui(display, self.state, result.gesture, finger_count)

    def _draw_mask_inset(self, display: np.ndarray, frame: np.ndarray, scale: int = MASK_INSET_SCALE):
        """Paste a shrunken copy of the binary mask into the top-right corner."""
        h, w = display.shape[:2]
        inset_w, inset_h = max(w // scale, 1), max(h // scale, 1)
        mask = self.extractor.binarize(frame)
        small = cv2.resize(mask, (inset_w, inset_h), interpolation=cv2.INTER_NEAREST)
        display[:inset_h, w - inset_w:] = cv2.cvtColor(small, cv2.COLOR_GRAY2BGR)
        cv2.rectangle(display, (w - inset_w, 0), (w - 1, inset_h - 1), (255, 255, 255), 1)

    def _on_save(self):
        self.export()

    def export(self, path: Optional[Union[str, Path]] = None) -> ExportResult:
        """
        Export the canvas without raising.

        Args:
            path: Destination, defaults to the configured export path

        Returns:
            ExportResult; failures are logged and reported, not raised
        """
        target = Path(path) if path is not None else self.export_path
        with self._lock:
            try:
                written = self.context.compositor.export(target)
                self.last_export = ExportResult(success=True, path=written)
            except ExportError as e:
                logger.error("Export failed: %s", e)
                self.last_export = ExportResult(success=False, path=target, error=str(e))
            return self.last_export

    def run(
        self,
        frames: Iterable[np.ndarray],
        stop_event: Optional[threading.Event] = None
    ) -> ExportResult:
        """
        Process frames until the source ends or the stop event is set.

        The canvas is always exported on the way out.

        Args:
            frames: Frame source, exhausted means end of stream
            stop_event: External stop signal

        Returns:
            Result of the final export
        """
        processed = 0
        try:
            for frame in frames:
                if stop_event is not None and stop_event.is_set():
                    logger.info("Stop requested")
                    break
                self.process_frame(frame)
                processed += 1
        finally:
            logger.info("Processed %d frames, saving final canvas", processed)
            final = self.export()
        return final
