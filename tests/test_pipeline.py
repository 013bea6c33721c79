import threading

import cv2
import numpy as np
import pytest

from gesture_canvas.config import Settings
from gesture_canvas.gesture_logic import DrawingMode, Gesture
from gesture_canvas.hand_geometry import GestureReading
from gesture_canvas.pipeline import GesturePipeline
from shapes import blank_frame, fist_frame, star_frame


class ScriptedAnalyzer:
    """Returns pre-set readings in order, ignoring the contour."""

    def __init__(self, readings):
        self.readings = list(readings)

    def analyze(self, contour):
        return self.readings.pop(0)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        min_defect_depth=10.0,
        max_defect_angle=120.0,
        canvas_width=400,
        canvas_height=400,
        export_path=tmp_path / "painting.png",
    )


def test_open_hand_starts_drawing_and_strokes(settings):
    pipeline = GesturePipeline(settings)

    first = pipeline.process_frame(star_frame((200, 200)))
    second = pipeline.process_frame(star_frame((230, 200)))

    assert first.gesture == Gesture.DRAW
    assert first.reading.finger_count == 5
    assert first.segment is None
    assert second.segment is not None
    assert second.segment.start == first.reading.reference_point
    assert second.segment.end == second.reading.reference_point
    assert pipeline.canvas.get_segment_count() == 1


def test_fist_stops_drawing(settings):
    pipeline = GesturePipeline(settings)
    pipeline.process_frame(star_frame())

    result = pipeline.process_frame(fist_frame())

    assert result.gesture == Gesture.STOP
    assert pipeline.state.mode == DrawingMode.IDLE
    assert pipeline.state.previous_point is None


def test_empty_frame_is_skipped(settings):
    pipeline = GesturePipeline(settings)
    pipeline.process_frame(star_frame())
    before = (pipeline.state.active, pipeline.state.previous_point)

    result = pipeline.process_frame(blank_frame())

    assert result.skipped
    assert result.candidates == 0
    assert (pipeline.state.active, pipeline.state.previous_point) == before


def test_largest_contour_wins(settings):
    frame = blank_frame(600, 400)
    cv2.circle(frame, (150, 200), 120, 255, -1)
    cv2.fillPoly(frame, [np.array([[450, 100], [474, 169], [545, 169], [488, 212],
                                   [509, 281], [450, 240], [391, 281], [412, 212],
                                   [355, 169], [426, 169]], dtype=np.int32)], 255)
    pipeline = GesturePipeline(settings)

    result = pipeline.process_frame(frame)

    assert result.candidates == 2
    assert result.gesture == Gesture.STOP
    assert result.reading.area > 40000


def test_degenerate_reading_changes_nothing(settings):
    analyzer = ScriptedAnalyzer([GestureReading(finger_count=5, reference_point=None)])
    pipeline = GesturePipeline(settings, analyzer=analyzer)

    result = pipeline.process_frame(fist_frame())

    assert result.skipped
    assert not pipeline.state.active
    assert pipeline.state.previous_point is None
    assert pipeline.canvas.get_segment_count() == 0


def test_failed_analysis_falls_back_to_next_contour(settings):
    analyzer = ScriptedAnalyzer([None, GestureReading(5, (10, 10))])
    frame = blank_frame()
    cv2.circle(frame, (100, 100), 60, 255, -1)
    cv2.circle(frame, (300, 300), 40, 255, -1)
    pipeline = GesturePipeline(settings, analyzer=analyzer)

    result = pipeline.process_frame(frame)

    assert result.gesture == Gesture.DRAW
    assert result.reading.reference_point == (10, 10)


def test_reference_point_is_scaled_to_canvas(tmp_path):
    settings = Settings(canvas_width=200, canvas_height=100, export_path=tmp_path / "p.png")
    analyzer = ScriptedAnalyzer([GestureReading(5, (100, 100)), GestureReading(5, (300, 300))])
    pipeline = GesturePipeline(settings, analyzer=analyzer)

    pipeline.process_frame(fist_frame())
    result = pipeline.process_frame(fist_frame())

    assert result.segment.start == (50, 25)
    assert result.segment.end == (150, 75)


def test_two_fingers_export_canvas(settings):
    analyzer = ScriptedAnalyzer([GestureReading(2, (50, 50))])
    pipeline = GesturePipeline(settings, analyzer=analyzer)

    result = pipeline.process_frame(fist_frame())

    assert result.gesture == Gesture.SAVE
    assert pipeline.last_export.success
    assert settings.export_path.exists()


def test_export_failure_is_reported_not_raised(tmp_path):
    settings = Settings(export_path=tmp_path / "missing" / "p.png")
    analyzer = ScriptedAnalyzer([GestureReading(2, (50, 50)), GestureReading(5, (60, 60))])
    pipeline = GesturePipeline(settings, analyzer=analyzer)

    pipeline.process_frame(fist_frame())
    assert not pipeline.last_export.success
    assert pipeline.last_export.error

    result = pipeline.process_frame(fist_frame())
    assert result.gesture == Gesture.DRAW
    assert pipeline.state.active


def test_annotated_frame_is_rendered(settings):
    pipeline = GesturePipeline(settings)

    result = pipeline.process_frame(star_frame(), annotate=True)

    assert result.annotated is not None
    assert result.annotated.shape == (400, 400, 3)


def test_run_exports_at_end_of_stream(settings):
    pipeline = GesturePipeline(settings)
    frames = [star_frame((200, 200)), star_frame((220, 200)), star_frame((240, 200))]

    final = pipeline.run(frames)

    assert final.success
    assert pipeline.canvas.get_segment_count() == 2
    loaded = cv2.imread(str(settings.export_path), cv2.IMREAD_UNCHANGED)
    assert np.array_equal(loaded, pipeline.canvas.get_canvas())


def test_run_honours_stop_signal(settings):
    pipeline = GesturePipeline(settings)
    stop = threading.Event()
    stop.set()

    final = pipeline.run([star_frame()], stop_event=stop)

    assert final.success
    assert not pipeline.state.active
    assert settings.export_path.exists()


def test_run_exports_when_processing_raises(settings):
    pipeline = GesturePipeline(settings)

    def frames():
        yield star_frame()
        raise RuntimeError("capture failed")

    with pytest.raises(RuntimeError):
        pipeline.run(frames())

    assert settings.export_path.exists()


def test_hull_failure_leaves_state_untouched(monkeypatch, settings):
    pipeline = GesturePipeline(settings)
    pipeline.process_frame(star_frame((200, 200)))
    before = (pipeline.state.active, pipeline.state.previous_point)

    def broken(contour, hull):
        raise cv2.error("convexityDefects failed")

    monkeypatch.setattr(cv2, "convexityDefects", broken)
    result = pipeline.process_frame(star_frame((240, 200)))

    assert result.skipped
    assert (pipeline.state.active, pipeline.state.previous_point) == before
    assert pipeline.canvas.get_segment_count() == 0


def test_save_rearms_after_hand_leaves(settings):
    analyzer = ScriptedAnalyzer([GestureReading(2, (50, 50)), GestureReading(2, (50, 50))])
    pipeline = GesturePipeline(settings, analyzer=analyzer)
    saves = []
    pipeline.state_machine.register_callback(Gesture.SAVE, lambda: saves.append(1))

    pipeline.process_frame(fist_frame())
    pipeline.process_frame(blank_frame())
    pipeline.process_frame(fist_frame())

    assert len(saves) == 2


def test_annotated_frame_shows_mask_inset(settings):
    pipeline = GesturePipeline(settings)
    frame = fist_frame((80, 80), radius=60)

    annotated = pipeline.process_frame(frame, annotate=True).annotated

    # Blob at (80, 80) appears at (20, 20) inside the quarter-size inset at x >= 300
    assert annotated[20, 320].tolist() == [255, 255, 255]
    assert frame[20, 320] == 0
