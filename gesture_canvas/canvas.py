"""
Canvas Module - Persistent Drawing Surface
==========================================
Holds the raster that gesture strokes accumulate on, draws line
segments between successive hand positions, and exports the result
atomically to an image file.
"""

import os
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from .gesture_logic import DrawingState

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """Raised when the canvas cannot be written to disk."""


@dataclass(frozen=True)
class Segment:
    """
    A straight stroke drawn on the canvas.

    Attributes:
        start: (x, y) start point
        end: (x, y) end point
        color: BGR color of the stroke
        thickness: Line thickness
    """
    start: Tuple[int, int]
    end: Tuple[int, int]
    color: Tuple[int, int, int]
    thickness: int


class Canvas:
    """
    Fixed-size BGR raster on a white background.

    Segments are rasterized as soon as they are added; the list of
    segments is kept alongside for inspection.
    """

    BACKGROUND = (255, 255, 255)

    def __init__(self, width: int = 640, height: int = 480):
        """
        Args:
            width: Canvas width in pixels
            height: Canvas height in pixels
        """
        self.width = width
        self.height = height
        self._canvas = np.full((height, width, 3), self.BACKGROUND, dtype=np.uint8)
        self._segments: List[Segment] = []

    def draw_segment(self, segment: Segment):
        """Rasterize a segment onto the canvas."""
        cv2.line(
            self._canvas, segment.start, segment.end,
            segment.color, segment.thickness
        )
        self._segments.append(segment)

    @property
    def segments(self) -> List[Segment]:
        return list(self._segments)

    def has_content(self) -> bool:
        """Check if anything has been drawn."""
        return len(self._segments) > 0

    def get_segment_count(self) -> int:
        return len(self._segments)

    def get_canvas(self) -> np.ndarray:
        """
        Get a copy of the raster.

        Returns:
            Canvas as BGR numpy array
        """
        return self._canvas.copy()

    def overlay_on_frame(self, frame: np.ndarray, alpha: float = 0.8) -> np.ndarray:
        """
        Blend drawn strokes over a video frame.

        Background pixels are left untouched, so only ink shows.

        Args:
            frame: BGR video frame
            alpha: Opacity of the strokes (0-1)

        Returns:
            New frame with the strokes overlaid
        """
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)

        canvas = self._canvas
        if frame.shape[:2] != (self.height, self.width):
            canvas = cv2.resize(
                canvas, (frame.shape[1], frame.shape[0]),
                interpolation=cv2.INTER_NEAREST
            )

        ink = np.any(canvas != self.BACKGROUND, axis=2)
        result = frame.copy()
        blended = cv2.addWeighted(frame, 1 - alpha, canvas, alpha, 0)
        result[ink] = blended[ink]
        return result

    def export(self, path: Union[str, Path]) -> Path:
        """
        Write the canvas to an image file.

        The image is encoded fully in memory and written to a temporary
        file next to the target, which then replaces the target. A failed
        export leaves any previous file at `path` as it was.

        Args:
            path: Destination; the suffix selects the format (PNG if none)

        Returns:
            The path written

        Raises:
            ExportError: If encoding or writing fails
        """
        path = Path(path)
        suffix = path.suffix.lower() or ".png"

        try:
            ok, encoded = cv2.imencode(suffix, self._canvas)
        except cv2.error as e:
            raise ExportError(f"Cannot encode canvas as {suffix}: {e}") from e
        if not ok:
            raise ExportError(f"Cannot encode canvas as {suffix}")

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(encoded.tobytes())
                tmp.flush()
                os.fsync(tmp.fileno())
            # Temp files are created 0600; give the image the usual umask mode
            os.chmod(tmp_name, _default_file_mode())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ExportError(f"Cannot write {path}: {e}") from e

        logger.info("Image saved to %s", path)
        return path


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class CanvasCompositor:
    """
    Turns successive hand positions into strokes.

    Owns the canvas. A stroke only starts once a first point has been
    seen while drawing is active, so no segment ever reaches back to a
    stale position.
    """

    def __init__(self, canvas: Canvas, stroke_width: int = 5):
        """
        Args:
            canvas: Canvas to draw on
            stroke_width: Line thickness for every segment
        """
        self.canvas = canvas
        self.stroke_width = stroke_width

    @classmethod
    def from_settings(cls, settings) -> "CanvasCompositor":
        return cls(
            Canvas(settings.canvas_width, settings.canvas_height),
            stroke_width=settings.stroke_width
        )

    def consume(
        self,
        state: DrawingState,
        point: Optional[Tuple[int, int]]
    ) -> Optional[Segment]:
        """
        Advance the current stroke to a new reference point.

        Args:
            state: Drawing state, previous_point is updated in place
            point: Hand reference point, None if undefined this frame

        Returns:
            The segment drawn, or None
        """
        if point is None or not state.active:
            return None

        if state.previous_point is None:
            state.previous_point = point
            return None

        segment = Segment(
            start=state.previous_point,
            end=point,
            color=state.color,
            thickness=self.stroke_width
        )
        self.canvas.draw_segment(segment)
        state.previous_point = point
        return segment

    def export(self, path: Union[str, Path]) -> Path:
        return self.canvas.export(path)


class ColorPalette:
    """Predefined color palette for drawing (BGR)."""

    BLACK = (0, 0, 0)
    WHITE = (255, 255, 255)
    RED = (0, 0, 255)
    GREEN = (0, 255, 0)
    BLUE = (255, 0, 0)

    @classmethod
    def get_all(cls) -> List[Tuple[int, int, int]]:
        return [cls.BLACK, cls.RED, cls.GREEN, cls.BLUE, cls.WHITE]
