"""Anchor dispatch: where the overlay's center goes for each AnchorMode."""

from __future__ import annotations

from typing import Callable, Dict

from .geometry import face_axes, midpoint
from .types import AnchorMode, FaceGeometry, Point

AnchorHandler = Callable[[FaceGeometry, float], Point]

DEFAULT_NOSE_OFFSET_RATIO = 0.40


def _nose(geom: FaceGeometry, nose_offset_ratio: float) -> Point:
    # No nose landmark in the scheme; walk from the eyes midpoint along the
    # face's local down axis so the estimate rotates with the head.
    _, (down_x, down_y) = face_axes(geom.roll_radians)
    shift = geom.face_width * nose_offset_ratio
    return Point(x=geom.eyes_mid.x + down_x * shift, y=geom.eyes_mid.y + down_y * shift)


def _forehead(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.points["forehead"]


def _eyes_mid(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.eyes_mid


def _left_eye(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.left_eye_center


def _right_eye(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.right_eye_center


def _mouth(geom: FaceGeometry, _ratio: float) -> Point:
    # Horizontal center from the corners, vertical center from the inner lips
    horizontal = midpoint(geom.points["mouth_left"], geom.points["mouth_right"])
    vertical = midpoint(geom.points["mouth_top"], geom.points["mouth_bottom"])
    return Point(x=horizontal.x, y=vertical.y)


def _left_ear(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.points["left_face_edge"]


def _right_ear(geom: FaceGeometry, _ratio: float) -> Point:
    return geom.points["right_face_edge"]


ANCHOR_HANDLERS: Dict[AnchorMode, AnchorHandler] = {
    AnchorMode.NOSE: _nose,
    AnchorMode.FOREHEAD: _forehead,
    AnchorMode.EYES_MID: _eyes_mid,
    AnchorMode.LEFT_EYE: _left_eye,
    AnchorMode.RIGHT_EYE: _right_eye,
    AnchorMode.MOUTH: _mouth,
    AnchorMode.LEFT_EAR: _left_ear,
    AnchorMode.RIGHT_EAR: _right_ear,
}

_missing = set(AnchorMode) - set(ANCHOR_HANDLERS)
if _missing:
    raise RuntimeError(f"No anchor handler for: {sorted(m.value for m in _missing)}")


def resolve_anchor(
    geom: FaceGeometry,
    mode: AnchorMode = AnchorMode.NOSE,
    nose_offset_ratio: float = DEFAULT_NOSE_OFFSET_RATIO,
) -> Point:
    """Return the overlay center in pixel space for ``mode``."""
    handler = ANCHOR_HANDLERS.get(AnchorMode.parse(mode), _nose)
    return handler(geom, nose_offset_ratio)


__all__ = ["ANCHOR_HANDLERS", "DEFAULT_NOSE_OFFSET_RATIO", "resolve_anchor"]
