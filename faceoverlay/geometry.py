"""Head roll and face scale from the eye line.

Pixel space convention: X right, Y down. A positive roll means the right
eye (image right) sits lower than the left one, which in screen space is
a clockwise tilt, the same sense as a CSS ``rotate()``.
"""

from __future__ import annotations

import math
from typing import Dict, Tuple

from .types import Point


def midpoint(a: Point, b: Point) -> Point:
    return Point(x=(a.x + b.x) / 2.0, y=(a.y + b.y) / 2.0)


def eye_centers(points: Dict[str, Point]) -> Tuple[Point, Point]:
    """Return (left, right) eye centers as the mean of each eye's two corners."""
    left = midpoint(points["left_eye_outer"], points["left_eye_inner"])
    right = midpoint(points["right_eye_outer"], points["right_eye_inner"])
    return left, right


def estimate_roll_scale(left_eye: Point, right_eye: Point) -> Tuple[float, float]:
    """Return (roll_radians, face_width) for the given eye centers.

    Coincident eye centers give atan2(0, 0) == 0, i.e. no rotation and a
    zero face width; this never raises.
    """
    dx = right_eye.x - left_eye.x
    dy = right_eye.y - left_eye.y
    roll = math.atan2(dy, dx)
    face_width = math.hypot(dx, dy)
    return roll, face_width


def face_axes(roll: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """Unit (up, down) vectors perpendicular to the eye line for ``roll``."""
    up = (-math.sin(roll), math.cos(roll))
    down = (-up[0], -up[1])
    return up, down


__all__ = ["midpoint", "eye_centers", "estimate_roll_scale", "face_axes"]
