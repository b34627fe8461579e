import cv2
import numpy as np
import pytest

from faceoverlay.engine import AlignmentEngine
from faceoverlay.render import (
    ANCHOR_COLOR,
    DebugOptions,
    OverlayImage,
    blend_centered,
    draw_debug,
    render_overlay,
    rotate_bound,
    to_bgra,
)
from faceoverlay.types import OverlayTransform, Viewport


def _black(h=100, w=100):
    return np.zeros((h, w, 3), dtype=np.uint8)


def _white_overlay(h=10, w=10, alpha=255):
    img = np.full((h, w, 4), 255, dtype=np.uint8)
    img[:, :, 3] = alpha
    return OverlayImage(image=img)


def _transform(cx, cy, width, rot=0.0):
    return OverlayTransform(present=True, center_x=cx, center_y=cy, width_px=width, rotation_degrees=rot)


def test_absent_transform_leaves_frame_untouched():
    frame = _black()
    frame[5, 5] = (1, 2, 3)
    out = render_overlay(frame, _white_overlay(), OverlayTransform.absent())
    assert out is not frame
    np.testing.assert_array_equal(out, frame)


def test_overlay_scaled_and_centered():
    out = render_overlay(_black(), _white_overlay(), _transform(50, 50, 20))
    assert out[50, 50].tolist() == [255, 255, 255]
    assert out[41, 41].tolist() == [255, 255, 255]
    assert out[58, 58].tolist() == [255, 255, 255]
    assert out[38, 50].tolist() == [0, 0, 0]
    assert out[50, 62].tolist() == [0, 0, 0]


def test_aspect_ratio_preserved():
    overlay = _white_overlay(h=10, w=20)
    out = render_overlay(_black(), overlay, _transform(50, 50, 40))
    rows = np.where(out[:, 50, 0] == 255)[0]
    cols = np.where(out[50, :, 0] == 255)[0]
    assert len(cols) == 40
    assert len(rows) == 20


def test_overlay_off_screen_is_clipped():
    frame = _black()
    out = render_overlay(frame, _white_overlay(), _transform(-100, -100, 20))
    np.testing.assert_array_equal(out, frame)
    out = render_overlay(frame, _white_overlay(), _transform(0, 0, 20))
    assert out[0, 0].tolist() == [255, 255, 255]
    assert out[12, 12].tolist() == [0, 0, 0]


def test_half_alpha_blends():
    frame = _black(20, 20)
    blend_centered(frame, _white_overlay(alpha=128).image, 10, 10)
    assert frame[10, 10, 0] == pytest.approx(128, abs=1)


def test_rotate_bound_is_clockwise():
    img = np.zeros((21, 21, 4), dtype=np.uint8)
    # Marker on the right edge
    img[9:12, 17:21] = (0, 0, 255, 255)
    rotated = rotate_bound(img, 90)
    assert rotated.shape == (21, 21, 4)
    # Clockwise on screen: right edge moves to the bottom
    assert rotated[19, 11, 3] > 200
    assert rotated[10, 19, 3] < 50


def test_rotate_bound_grows_canvas():
    img = np.full((10, 20, 4), 255, dtype=np.uint8)
    assert rotate_bound(img, 90).shape[:2] == (20, 10)
    rotated = rotate_bound(img, 45)
    assert rotated.shape[0] > 20 and rotated.shape[1] > 20
    assert rotated[0, 0, 3] == 0


def test_to_bgra_adds_opaque_alpha():
    bgr = np.zeros((4, 4, 3), dtype=np.uint8)
    bgra = to_bgra(bgr)
    assert bgra.shape == (4, 4, 4)
    assert (bgra[:, :, 3] == 255).all()
    assert to_bgra(np.zeros((4, 4), dtype=np.uint8)).shape == (4, 4, 4)


def test_overlay_load_falls_back_to_placeholder(tmp_path):
    overlay = OverlayImage.load(tmp_path / "missing.png")
    assert overlay.source is None
    assert overlay.image.shape == (90, 150, 4)
    assert overlay.image[45, 75, 3] > 0
    assert overlay.image[0, 0, 3] == 0


def test_overlay_load_reads_png(tmp_path):
    path = tmp_path / "hair.png"
    img = np.zeros((30, 60, 4), dtype=np.uint8)
    img[:, :, 3] = 200
    assert cv2.imwrite(str(path), img)
    overlay = OverlayImage.load(path)
    assert overlay.source == str(path)
    assert overlay.width == 60 and overlay.height == 30
    assert overlay.image[0, 0, 3] == 200


def test_debug_markers(level_face):
    vp = Viewport(640, 480)
    engine = AlignmentEngine()
    geom = engine.measure(level_face, vp)
    t = engine.transform_from_geometry(geom, vp)
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    draw_debug(frame, DebugOptions(draw_all_landmarks=True), vp, landmarks=level_face, geometry=geom, transform=t)
    assert frame[int(round(t.center_y)), int(round(t.center_x))].tolist() == list(ANCHOR_COLOR)
    assert frame[int(geom.eyes_mid.y), int(geom.eyes_mid.x)].any()
    # Unlisted landmarks sit at the frame center
    assert frame[240, 320].any()


def test_debug_options_from_config():
    opts = DebugOptions.from_config({"debug": {"draw_all_landmarks": True, "draw_markers": False}})
    assert opts.draw_all_landmarks and not opts.draw_markers
    assert opts.enabled
    assert not DebugOptions(draw_markers=False).enabled
