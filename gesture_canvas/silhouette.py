"""
Silhouette Module - Frame Binarization & Contour Extraction
===========================================================
Turns a camera frame into candidate hand contours using a fixed
binary threshold and external contour search.
"""

import logging
from typing import List

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class SilhouetteExtractor:
    """
    Extracts candidate hand silhouettes from a frame.

    Pixels brighter than the threshold are foreground. Only outer
    contours are kept; holes and blobs smaller than the minimum area
    are dropped.
    """

    def __init__(
        self,
        threshold: int = 127,
        min_area: float = 1000.0,
        approx_epsilon: float = 3.0,
        simplify: bool = True
    ):
        """
        Initialize the extractor.

        Args:
            threshold: Binarization threshold (0-255)
            min_area: Minimum enclosed area for a contour to be kept
            approx_epsilon: Polygon approximation tolerance in pixels
            simplify: Whether to run approxPolyDP on retained contours
        """
        self.threshold = threshold
        self.min_area = min_area
        self.approx_epsilon = approx_epsilon
        self.simplify = simplify

    @classmethod
    def from_settings(cls, settings) -> "SilhouetteExtractor":
        return cls(
            threshold=settings.threshold,
            min_area=settings.min_contour_area,
            approx_epsilon=settings.approx_epsilon,
            simplify=settings.simplify
        )

    def binarize(self, frame: np.ndarray) -> np.ndarray:
        """
        Threshold a frame into a binary mask.

        Args:
            frame: Grayscale, BGR or BGRA image

        Returns:
            Single-channel mask with foreground at 255
        """
        gray = to_grayscale(frame)
        _, mask = cv2.threshold(gray, self.threshold, 255, cv2.THRESH_BINARY)
        return mask

    def extract(self, frame: np.ndarray) -> List[np.ndarray]:
        """
        Find hand candidate contours in a frame.

        Args:
            frame: Grayscale, BGR or BGRA image

        Returns:
            Contours as (N, 1, 2) int32 arrays, largest area first.
            Empty when nothing survives filtering.
        """
        mask = self.binarize(frame)
        contours, _ = cv2.findContours(
            mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
        )

        candidates = []
        for contour in contours:
            area = cv2.contourArea(contour)
            if area < self.min_area:
                continue

            if self.simplify:
                contour = cv2.approxPolyDP(contour, self.approx_epsilon, True)

            if len(contour) < 3:
                continue

            candidates.append((area, contour.astype(np.int32)))

        # Largest first so the dominant silhouette is tried before noise
        candidates.sort(key=lambda item: item[0], reverse=True)

        if len(contours) and not candidates:
            logger.debug("All %d contours rejected below area %.0f", len(contours), self.min_area)

        return [contour for _, contour in candidates]


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR/BGRA frame to grayscale, passing grayscale through."""
    if frame.ndim == 2:
        return frame
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    if frame.shape[2] == 1:
        return frame[:, :, 0]
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
