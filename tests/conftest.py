from __future__ import annotations

from typing import Dict, Tuple

import numpy as np
import pytest

from faceoverlay.keypoints import FACE_MESH

# Level face used across tests; unlisted landmarks sit at the frame center
LEVEL_FACE: Dict[str, Tuple[float, float]] = {
    "forehead": (0.5, 0.2),
    "left_eye_outer": (0.35, 0.4),
    "left_eye_inner": (0.45, 0.4),
    "right_eye_outer": (0.65, 0.4),
    "right_eye_inner": (0.55, 0.4),
    "mouth_left": (0.44, 0.6),
    "mouth_right": (0.56, 0.6),
    "mouth_top": (0.5, 0.58),
    "mouth_bottom": (0.5, 0.64),
    "left_face_edge": (0.3, 0.45),
    "right_face_edge": (0.7, 0.45),
}


def build_landmarks(points: Dict[str, Tuple[float, float]], n: int = 468) -> np.ndarray:
    arr = np.full((n, 3), 0.5, dtype=np.float64)
    arr[:, 2] = 0.0
    for name, (x, y) in points.items():
        arr[FACE_MESH.index(name), :2] = (x, y)
    return arr


@pytest.fixture
def make_landmarks():
    return build_landmarks


@pytest.fixture
def level_face() -> np.ndarray:
    return build_landmarks(LEVEL_FACE)
