"""
Gesture Logic Module - Finger Count to Drawing Action
=====================================================
Maps the per-frame finger count onto drawing mode, brush color and
the save/export trigger.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class Gesture(Enum):
    """Recognized gestures for the drawing application."""
    NONE = auto()           # Count outside the table
    STOP = auto()           # Closed fist - stop drawing
    SELECT_COLOR = auto()   # One finger - default color
    SAVE = auto()           # Two fingers - export canvas
    RESERVED = auto()       # Three or four fingers - no action yet
    DRAW = auto()           # Open hand - start drawing


class DrawingMode(Enum):
    IDLE = "Idle"
    DRAWING = "Drawing"


FINGER_GESTURES: Dict[int, Gesture] = {
    0: Gesture.STOP,
    1: Gesture.SELECT_COLOR,
    2: Gesture.SAVE,
    3: Gesture.RESERVED,
    4: Gesture.RESERVED,
    5: Gesture.DRAW,
}


@dataclass
class DrawingState:
    """
    Drawing state carried across frames.

    Attributes:
        active: Whether strokes are being drawn
        color: Current BGR stroke color
        previous_point: Last point drawn to, None at the start of a stroke
    """
    active: bool = False
    color: Tuple[int, int, int] = (0, 0, 0)
    previous_point: Optional[Tuple[int, int]] = None

    @property
    def mode(self) -> DrawingMode:
        return DrawingMode.DRAWING if self.active else DrawingMode.IDLE


class GestureStateMachine:
    """
    Applies one finger count per frame to a DrawingState.

    0 stops drawing, 5 starts it. 1 and 2 are modifiers that leave the
    mode alone: 1 resets the color, 2 fires the save callbacks once per
    continuous two-finger hold.
    """

    def __init__(self, default_color: Tuple[int, int, int] = (0, 0, 0)):
        """
        Args:
            default_color: BGR color selected by the one-finger gesture
        """
        self.default_color = default_color
        self._callbacks: Dict[Gesture, List[Callable[[], None]]] = {}
        self._last_count: Optional[int] = None
        self._save_triggered = False

    @classmethod
    def from_settings(cls, settings) -> "GestureStateMachine":
        return cls(default_color=settings.default_color)

    def classify(self, finger_count: int) -> Gesture:
        return FINGER_GESTURES.get(finger_count, Gesture.NONE)

    def apply(self, state: DrawingState, finger_count: int) -> Gesture:
        """
        Update the drawing state for one frame's finger count.

        Args:
            state: State to mutate
            finger_count: Fingers detected on the chosen contour

        Returns:
            The gesture the count mapped to
        """
        gesture = self.classify(finger_count)

        if finger_count != self._last_count:
            self._save_triggered = False
        self._last_count = finger_count

        if gesture == Gesture.STOP:
            if state.active:
                logger.info("Drawing stopped")
            state.active = False
            state.previous_point = None

        elif gesture == Gesture.DRAW:
            if not state.active:
                logger.info("Drawing started")
                # New session starts from the first point seen while active
                state.previous_point = None
            state.active = True

        elif gesture == Gesture.SELECT_COLOR:
            state.color = self.default_color

        elif gesture == Gesture.SAVE:
            if not self._save_triggered:
                self._save_triggered = True
                self._fire(Gesture.SAVE)

        return gesture

    def register_callback(self, gesture: Gesture, callback: Callable[[], None]):
        """
        Register a callback for a gesture event.

        Args:
            gesture: Gesture that triggers the callback
            callback: Function called with no arguments
        """
        self._callbacks.setdefault(gesture, []).append(callback)

    def _fire(self, gesture: Gesture):
        for callback in self._callbacks.get(gesture, []):
            callback()

    def reset(self):
        """Forget the latched gesture history."""
        self._last_count = None
        self._save_triggered = False


GESTURE_INFO = {
    Gesture.NONE: 'None',
    Gesture.STOP: 'Stop',
    Gesture.SELECT_COLOR: 'Color',
    Gesture.SAVE: 'Save',
    Gesture.RESERVED: 'Reserved',
    Gesture.DRAW: 'Draw',
}


def draw_gesture_ui(
    frame: np.ndarray,
    state: DrawingState,
    gesture: Optional[Gesture],
    finger_count: Optional[int]
) -> np.ndarray:
    """
    Draw a status box with mode, gesture and brush color.

    Args:
        frame: Image to draw on
        state: Current drawing state
        gesture: Gesture applied this frame, None if the frame was skipped
        finger_count: Finger count applied this frame

    Returns:
        Frame with the status overlay
    """
    h, w = frame.shape[:2]
    box_h = 80

    cv2.rectangle(frame, (10, h - box_h - 10), (250, h - 10), (0, 0, 0), -1)
    cv2.rectangle(frame, (10, h - box_h - 10), (250, h - 10), (255, 255, 255), 2)

    mode_color = (0, 255, 0) if state.active else (0, 255, 255)
    cv2.putText(
        frame, state.mode.value,
        (20, h - box_h + 20),
        cv2.FONT_HERSHEY_SIMPLEX, 0.7, mode_color, 2
    )

    if gesture is None:
        label = "No hand"
    else:
        label = f"{GESTURE_INFO[gesture]} ({finger_count})"
    cv2.putText(
        frame, label,
        (20, h - box_h + 50),
        cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1
    )

    # Brush color swatch
    cv2.rectangle(frame, (200, h - box_h), (235, h - box_h + 35), state.color, -1)
    cv2.rectangle(frame, (200, h - box_h), (235, h - box_h + 35), (255, 255, 255), 1)

    return frame
