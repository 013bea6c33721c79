"""
Config Module - Runtime Settings
================================
All tunables of the gesture pipeline, overridable from the environment
or a .env file without code changes.
"""

import os
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Tuple, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = "GESTURE_CANVAS_"


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    """
    Pipeline settings.

    Attributes:
        threshold: Binarization threshold (foreground is strictly above it)
        min_contour_area: Contours enclosing less area are treated as noise
        approx_epsilon: approxPolyDP tolerance in pixels
        simplify: Whether to approximate contours before hull analysis
        min_defect_depth: Minimum defect depth in pixels to count as a finger gap
        max_defect_angle: Maximum angle (degrees) at the defect's far point
        stroke_width: Line thickness used on the canvas
        default_color: BGR color selected by the one-finger gesture
        export_path: Where the canvas is written on save/shutdown
        canvas_width: Canvas width in pixels
        canvas_height: Canvas height in pixels
        source: Camera index or path to a video file
    """
    threshold: int = 127
    min_contour_area: float = 1000.0
    approx_epsilon: float = 3.0
    simplify: bool = True
    min_defect_depth: float = 20.0
    max_defect_angle: float = 90.0
    stroke_width: int = 5
    default_color: Tuple[int, int, int] = (0, 0, 0)
    export_path: Path = Path("painting.png")
    canvas_width: int = 640
    canvas_height: int = 480
    source: Union[int, str] = 0

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "Settings":
        """
        Build settings from GESTURE_CANVAS_* environment variables.

        A .env file is loaded first (values already in the environment win).

        Args:
            env_file: Explicit .env path; defaults to python-dotenv's lookup

        Returns:
            Settings with environment overrides applied
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        overrides = {}
        parsers = {
            "threshold": _parse_threshold,
            "min_contour_area": _parse_non_negative_float,
            "approx_epsilon": _parse_non_negative_float,
            "simplify": _parse_bool,
            "min_defect_depth": _parse_non_negative_float,
            "max_defect_angle": _parse_angle,
            "stroke_width": _parse_positive_int,
            "default_color": _parse_color,
            "export_path": Path,
            "canvas_width": _parse_positive_int,
            "canvas_height": _parse_positive_int,
            "source": _parse_source,
        }
        aliases = {"canvas_width": "WIDTH", "canvas_height": "HEIGHT"}

        for name, parser in parsers.items():
            var = ENV_PREFIX + aliases.get(name, name.upper())
            raw = os.environ.get(var)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = parser(raw.strip())
            except ValueError as e:
                raise ConfigError(f"{var}={raw!r}: {e}") from e

        if overrides:
            logger.debug("Settings overridden from environment: %s", sorted(overrides))
        return cls(**overrides)

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with non-None keyword values applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.canvas_width, self.canvas_height


def _parse_threshold(raw: str) -> int:
    value = int(raw)
    if not 0 <= value <= 255:
        raise ValueError("must be within 0-255")
    return value


def _parse_positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise ValueError("must be positive")
    return value


def _parse_non_negative_float(raw: str) -> float:
    value = float(raw)
    if value < 0:
        raise ValueError("must not be negative")
    return value


def _parse_angle(raw: str) -> float:
    value = float(raw)
    if not 0 < value <= 180:
        raise ValueError("must be within (0, 180]")
    return value


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError("expected a boolean")


def _parse_color(raw: str) -> Tuple[int, int, int]:
    """Parse 'B,G,R' into a BGR tuple."""
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3:
        raise ValueError("expected three comma-separated channels (B,G,R)")
    channels = tuple(int(p) for p in parts)
    if any(not 0 <= c <= 255 for c in channels):
        raise ValueError("channels must be within 0-255")
    return channels


def _parse_source(raw: str) -> Union[int, str]:
    # Digits select a camera index, anything else is a file or stream URL
    return int(raw) if raw.isdigit() else raw
