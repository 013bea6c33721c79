"""Shared fixtures."""

import os

import pytest

from gesture_canvas.config import ENV_PREFIX
from shapes import circle_points, star_points


@pytest.fixture
def star_contour():
    return star_points()


@pytest.fixture
def circle_contour():
    return circle_points()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep GESTURE_CANVAS_* variables from leaking between tests."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    yield
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            del os.environ[key]
