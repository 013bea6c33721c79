import numpy as np
import pytest

from gesture_canvas.gesture_logic import (
    DrawingMode, DrawingState, Gesture, GestureStateMachine, draw_gesture_ui
)

RED = (0, 0, 255)
BLACK = (0, 0, 0)


@pytest.fixture
def machine():
    return GestureStateMachine(default_color=BLACK)


def test_mode_sequence(machine):
    state = DrawingState(color=RED)
    modes = []
    colors = []

    for count in [5, 1, 5, 0]:
        machine.apply(state, count)
        modes.append(state.mode)
        colors.append(state.color)

    assert modes == [DrawingMode.DRAWING, DrawingMode.DRAWING,
                     DrawingMode.DRAWING, DrawingMode.IDLE]
    assert colors[0] == RED
    assert colors[1] == BLACK


@pytest.mark.parametrize("count, gesture", [
    (0, Gesture.STOP),
    (1, Gesture.SELECT_COLOR),
    (2, Gesture.SAVE),
    (3, Gesture.RESERVED),
    (4, Gesture.RESERVED),
    (5, Gesture.DRAW),
    (6, Gesture.NONE),
])
def test_classification(machine, count, gesture):
    assert machine.apply(DrawingState(), count) == gesture


@pytest.mark.parametrize("count", [2, 3, 4, 6])
def test_modifiers_leave_mode_alone(machine, count):
    state = DrawingState(active=True, previous_point=(3, 4))

    machine.apply(state, count)

    assert state.active
    assert state.previous_point == (3, 4)


def test_stop_clears_stroke(machine):
    state = DrawingState(active=True, previous_point=(3, 4))

    machine.apply(state, 0)

    assert not state.active
    assert state.previous_point is None


def test_entering_drawing_starts_clean(machine):
    state = DrawingState(active=False, previous_point=(3, 4))

    machine.apply(state, 5)

    assert state.active
    assert state.previous_point is None


def test_staying_in_drawing_keeps_stroke(machine):
    state = DrawingState(active=True, previous_point=(3, 4))

    machine.apply(state, 5)

    assert state.previous_point == (3, 4)


def test_save_fires_once_per_hold(machine):
    saves = []
    machine.register_callback(Gesture.SAVE, lambda: saves.append(1))
    state = DrawingState()

    for count in [2, 2, 2, 3, 2, 2]:
        machine.apply(state, count)

    assert len(saves) == 2


def test_reset_rearms_save(machine):
    saves = []
    machine.register_callback(Gesture.SAVE, lambda: saves.append(1))
    state = DrawingState()

    machine.apply(state, 2)
    machine.reset()
    machine.apply(state, 2)

    assert len(saves) == 2


def test_draw_gesture_ui_keeps_shape():
    frame = np.zeros((240, 320, 3), dtype=np.uint8)

    out = draw_gesture_ui(frame, DrawingState(active=True), Gesture.DRAW, 5)

    assert out.shape == (240, 320, 3)
    assert out.any()
