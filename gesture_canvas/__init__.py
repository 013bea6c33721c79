# Gesture Canvas - Hand-Gesture Drawing from Silhouette Geometry
# Version: 1.0.0

"""
Core modules for the gesture-based drawing system:
- config: Settings from environment / .env
- silhouette: Frame binarization and contour extraction
- hand_geometry: Convex hull, convexity defects and finger counting
- gesture_logic: Finger count to drawing action state machine
- canvas: Persistent drawing surface and atomic export
- pipeline: Single-frame processing entry point
- camera: Threaded webcam / video stream handler
- ui: Preview application and command-line entry point
"""

from .config import ConfigError, Settings
from .silhouette import SilhouetteExtractor
from .hand_geometry import ConvexityDefect, GestureReading, HandGeometryAnalyzer
from .gesture_logic import DrawingMode, DrawingState, Gesture, GestureStateMachine
from .canvas import Canvas, CanvasCompositor, ExportError, Segment
from .pipeline import DrawingContext, ExportResult, FrameResult, GesturePipeline

__version__ = "1.0.0"

__all__ = [
    "ConfigError",
    "Settings",
    "SilhouetteExtractor",
    "ConvexityDefect",
    "GestureReading",
    "HandGeometryAnalyzer",
    "DrawingMode",
    "DrawingState",
    "Gesture",
    "GestureStateMachine",
    "Canvas",
    "CanvasCompositor",
    "ExportError",
    "Segment",
    "DrawingContext",
    "ExportResult",
    "FrameResult",
    "GesturePipeline",
]
