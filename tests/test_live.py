import numpy as np
import pytest

from faceoverlay.engine import AlignmentConfig, AlignmentEngine
from faceoverlay.live import FrameProcessor, run_frames
from faceoverlay.render import OverlayImage
from faceoverlay.types import AnchorMode


def _processor():
    overlay = OverlayImage(image=np.full((10, 10, 4), 255, dtype=np.uint8))
    engine = AlignmentEngine(AlignmentConfig(anchor_mode=AnchorMode.EYES_MID, overlay_width_fraction=0.1))
    return FrameProcessor(engine, overlay)


def _frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)


def test_face_frame_draws_overlay(level_face):
    proc = _processor()
    out = proc(_frame(), level_face)
    assert proc.last_transform.present
    assert out[192, 320].tolist() == [255, 255, 255]


def test_no_face_hides_overlay(level_face):
    proc = _processor()
    proc(_frame(), level_face)
    out = proc(_frame(), None)
    assert not proc.last_transform.present
    assert not out.any()


def test_malformed_frame_keeps_previous_transform(level_face, make_landmarks):
    proc = _processor()
    proc(_frame(), level_face)
    shown = proc.last_transform
    out = proc(_frame(), make_landmarks({}, n=10))
    assert proc.malformed_frames == 1
    assert proc.last_transform == shown
    assert out[192, 320].tolist() == [255, 255, 255]


def test_viewport_read_every_frame(level_face):
    proc = _processor()
    proc(_frame(), level_face)
    assert proc.last_transform.width_px == pytest.approx(64)
    proc(np.zeros((240, 320, 3), dtype=np.uint8), level_face)
    assert proc.last_transform.width_px == pytest.approx(32)
    assert proc.last_transform.center_x == pytest.approx(160)


def test_run_frames_stops_when_show_declines(level_face):
    proc = _processor()
    frames = [_frame() for _ in range(5)]
    shown = []

    def show(img):
        shown.append(img)
        return len(shown) < 3

    n = run_frames(frames, lambda f: level_face, proc, show)
    assert n == 3
    assert len(shown) == 3


def test_consecutive_malformed_frames_keep_transform_until_valid_input(level_face, make_landmarks):
    proc = _processor()
    proc(_frame(), level_face)
    shown = proc.last_transform
    for _ in range(3):
        out = proc(_frame(), make_landmarks({}, n=10))
        assert proc.last_transform == shown
        assert out[192, 320].tolist() == [255, 255, 255]
    assert proc.malformed_frames == 3
    out = proc(_frame(), None)
    assert not proc.last_transform.present
    assert not out.any()
