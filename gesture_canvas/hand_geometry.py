"""
Hand Geometry Module - Convex Hull & Finger Counting
=====================================================
Estimates how many fingers a hand silhouette shows from the
convexity defects between its contour and convex hull, and locates
the hand by the contour's centroid.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

MAX_FINGERS = 5

# OpenCV reports defect depth as fixed point with 8 fractional bits
DEPTH_SCALE = 256.0


@dataclass(frozen=True)
class ConvexityDefect:
    """
    A concavity between the contour and its hull.

    Attributes:
        start_index: Contour index where the concavity starts (on the hull)
        end_index: Contour index where it ends (on the hull)
        far_index: Contour index of the point farthest from the hull
        depth: Distance of the far point from the hull edge, in pixels
    """
    start_index: int
    end_index: int
    far_index: int
    depth: float


@dataclass(frozen=True)
class GestureReading:
    """
    Result of analysing one contour.

    Attributes:
        finger_count: Estimated extended fingers (0-5)
        reference_point: Contour centroid, or None if the contour is degenerate
        area: Enclosed contour area
        separators: Defects that passed the depth and angle filters
    """
    finger_count: int
    reference_point: Optional[Tuple[int, int]]
    area: float = 0.0
    separators: Tuple[ConvexityDefect, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.reference_point is not None


class HandGeometryAnalyzer:
    """
    Counts fingers from convexity defects.

    A defect separates two fingers only when it is deep enough to be
    more than approximation jitter and narrow enough at its far point
    to be a finger gap rather than palm or wrist curvature.
    """

    def __init__(self, min_defect_depth: float = 20.0, max_defect_angle: float = 90.0):
        """
        Args:
            min_defect_depth: Depth in pixels a defect must exceed
            max_defect_angle: Angle in degrees a defect must stay below
        """
        self.min_defect_depth = min_defect_depth
        self.max_defect_angle = max_defect_angle

    @classmethod
    def from_settings(cls, settings) -> "HandGeometryAnalyzer":
        return cls(
            min_defect_depth=settings.min_defect_depth,
            max_defect_angle=settings.max_defect_angle
        )

    def analyze(self, contour: np.ndarray) -> Optional[GestureReading]:
        """
        Analyse a contour into a finger count and reference point.

        Args:
            contour: (N, 1, 2) int32 contour

        Returns:
            GestureReading, or None if hull/defect computation failed.
            A contour enclosing no area reads as zero fingers with no
            reference point.
        """
        contour = np.asarray(contour, dtype=np.int32).reshape(-1, 1, 2)
        if len(contour) < 3:
            logger.debug("Skipping contour with %d points", len(contour))
            return None

        reference_point = centroid(contour)
        if reference_point is None:
            return GestureReading(finger_count=0, reference_point=None)

        try:
            defects = self.find_defects(contour)
        except cv2.error as e:
            logger.warning("Convexity defect calculation failed: %s", e)
            return None

        separators = tuple(d for d in defects if self.is_finger_separator(contour, d))
        finger_count = count_fingers(len(separators))

        return GestureReading(
            finger_count=finger_count,
            reference_point=reference_point,
            area=float(cv2.contourArea(contour)),
            separators=separators
        )

    def find_defects(self, contour: np.ndarray) -> List[ConvexityDefect]:
        """
        Compute convexity defects of a contour against its hull.

        Raises:
            cv2.error: On self-intersecting or otherwise malformed contours
        """
        hull = cv2.convexHull(contour, returnPoints=False)
        if hull is None or len(hull) < 3:
            return []

        raw = cv2.convexityDefects(contour, hull)
        if raw is None:
            return []

        return [
            ConvexityDefect(int(s), int(e), int(f), float(d) / DEPTH_SCALE)
            for s, e, f, d in raw.reshape(-1, 4)
        ]

    def is_finger_separator(self, contour: np.ndarray, defect: ConvexityDefect) -> bool:
        """Check a defect against the depth and angle thresholds."""
        if defect.depth <= self.min_defect_depth:
            return False

        angle = defect_angle(contour, defect)
        return angle is not None and angle < self.max_defect_angle


def count_fingers(separators: int) -> int:
    """
    Map finger-gap count to finger count.

    n gaps separate n + 1 fingers; no gaps reads as a closed fist.
    """
    if separators <= 0:
        return 0
    return min(separators + 1, MAX_FINGERS)


def defect_angle(contour: np.ndarray, defect: ConvexityDefect) -> Optional[float]:
    """
    Angle in degrees at the defect's far point between the vectors
    to its start and end points.

    Returns:
        The angle, or None if either vector has zero length
    """
    start = contour[defect.start_index][0].astype(np.float64)
    end = contour[defect.end_index][0].astype(np.float64)
    far = contour[defect.far_index][0].astype(np.float64)

    to_start = start - far
    to_end = end - far
    norm = np.linalg.norm(to_start) * np.linalg.norm(to_end)
    if norm == 0:
        return None

    cos_angle = np.clip(np.dot(to_start, to_end) / norm, -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def centroid(contour: np.ndarray) -> Optional[Tuple[int, int]]:
    """
    Centroid from image moments.

    Returns:
        (x, y) as ints, or None when the contour encloses no area
    """
    moments = cv2.moments(contour)
    if moments["m00"] == 0:
        return None
    return (
        int(moments["m10"] / moments["m00"]),
        int(moments["m01"] / moments["m00"])
    )


def draw_analysis(
    frame: np.ndarray,
    contour: np.ndarray,
    reading: Optional[GestureReading],
    contour_color: Tuple[int, int, int] = (0, 255, 0),
    hull_color: Tuple[int, int, int] = (0, 255, 255)
) -> np.ndarray:
    """
    Draw contour, hull, finger gaps and centroid on a frame.

    Args:
        frame: BGR image to draw on (modified in place)
        contour: Analysed contour
        reading: Reading for the contour, may be None

    Returns:
        The annotated frame
    """
    cv2.drawContours(frame, [contour], -1, contour_color, 2)

    hull_points = cv2.convexHull(contour)
    cv2.drawContours(frame, [hull_points], -1, hull_color, 1)

    if reading is None:
        return frame

    for defect in reading.separators:
        start = tuple(int(v) for v in contour[defect.start_index][0])
        far = tuple(int(v) for v in contour[defect.far_index][0])
        cv2.circle(frame, start, 6, (255, 0, 0), -1)  # fingertip
        cv2.circle(frame, far, 5, (0, 0, 255), -1)    # valley

    if reading.reference_point is not None:
        cv2.circle(frame, reading.reference_point, 7, (255, 0, 255), -1)
        cv2.circle(frame, reading.reference_point, 7, (0, 0, 0), 1)

    return frame
