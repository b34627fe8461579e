from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

import numpy as np

from .types import FaceLandmarks, MalformedLandmarkSetError, Point, Viewport


@dataclass(frozen=True)
class LandmarkScheme:
    """Semantic landmark name -> detector index, plus the set lengths it emits.

    Retargeting the engine to another detector means swapping this table.
    """

    name: str
    indices: Mapping[str, int]
    lengths: Tuple[int, ...]

    def index(self, name: str) -> int:
        return self.indices[name]


# MediaPipe FaceMesh; 478 points when iris refinement is on
FACE_MESH = LandmarkScheme(
    name="mediapipe_face_mesh",
    indices={
        "forehead": 10,
        "left_eye_outer": 33,
        "left_eye_inner": 133,
        "right_eye_outer": 263,
        "right_eye_inner": 362,
        "mouth_left": 61,
        "mouth_right": 291,
        "mouth_top": 13,
        "mouth_bottom": 14,
        "left_face_edge": 234,
        "right_face_edge": 454,
    },
    lengths=(468, 478),
)


def _is_point_sequence(landmarks: Any) -> bool:
    if isinstance(landmarks, (np.ndarray, str, bytes)) or not hasattr(landmarks, "__getitem__"):
        return False
    try:
        first = landmarks[0]
    except (IndexError, KeyError, TypeError):
        return False
    return hasattr(first, "x") and hasattr(first, "y")


def as_landmark_array(landmarks: Any) -> np.ndarray:
    """Coerce a landmark set into a float64 array of shape (N, 2).

    Accepts arrays/sequences of (x, y[, z]) rows, sequences of point
    objects with ``.x``/``.y`` (MediaPipe's ``multi_face_landmarks[0].landmark``),
    a MediaPipe NormalizedLandmarkList (anything with a ``.landmark``
    sequence), or a FaceLandmarks. Raises MalformedLandmarkSetError if it cannot.
    """
    if isinstance(landmarks, FaceLandmarks):
        landmarks = landmarks.normalized
    elif hasattr(landmarks, "landmark"):
        landmarks = [(pt.x, pt.y) for pt in landmarks.landmark]
    elif _is_point_sequence(landmarks):
        try:
            landmarks = [(pt.x, pt.y) for pt in landmarks]
        except AttributeError as e:
            raise MalformedLandmarkSetError(f"Landmark point without x/y: {e}") from e
    try:
        arr = np.asarray(landmarks, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MalformedLandmarkSetError(f"Landmarks are not numeric points: {e}") from e
    if arr.ndim != 2 or arr.shape[1] < 2:
        raise MalformedLandmarkSetError(f"Expected landmark array of shape (N, 2+), got {arr.shape}")
    return arr[:, :2]


def validate_landmarks(landmarks: Any, scheme: LandmarkScheme = FACE_MESH) -> np.ndarray:
    """Return the (N, 2) array if the set is complete for ``scheme``."""
    arr = as_landmark_array(landmarks)
    n = arr.shape[0]
    if n not in scheme.lengths:
        raise MalformedLandmarkSetError(
            f"{scheme.name} expects {' or '.join(map(str, scheme.lengths))} landmarks, got {n}"
        )
    needed = arr[list(scheme.indices.values())]
    if not np.all(np.isfinite(needed)):
        raise MalformedLandmarkSetError("Required landmarks contain non-finite coordinates")
    return arr


def to_pixel(landmark, viewport: Viewport) -> Point:
    # Out-of-range values (partially occluded faces) pass through unclamped
    return Point(x=float(landmark[0]) * viewport.width, y=float(landmark[1]) * viewport.height)


def select_pixel_points(
    landmarks: np.ndarray, viewport: Viewport, scheme: LandmarkScheme = FACE_MESH
) -> Dict[str, Point]:
    """Map every landmark the scheme names into pixel space.

    Expects an already validated (N, 2) array.
    """
    return {name: to_pixel(landmarks[idx], viewport) for name, idx in scheme.indices.items()}


__all__ = [
    "LandmarkScheme",
    "FACE_MESH",
    "as_landmark_array",
    "validate_landmarks",
    "to_pixel",
    "select_pixel_points",
]
