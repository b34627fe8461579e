from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class MalformedLandmarkSetError(ValueError):
    """Landmark source broke its contract (wrong length, shape or values)."""


class AnchorMode(str, Enum):
    NOSE = "nose"
    FOREHEAD = "forehead"
    EYES_MID = "eyes_mid"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    MOUTH = "mouth"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"

    @classmethod
    def parse(cls, value: "str | AnchorMode") -> "AnchorMode":
        """Accept enum members, values, member names and hyphenated spellings."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        key = _ANCHOR_ALIASES.get(key, key)
        for mode in cls:
            if mode.value == key:
                return mode
        raise ValueError(f"Unknown anchor mode: {value!r}")


_ANCHOR_ALIASES = {
    "eyes_midpoint": "eyes_mid",
    "eyes_middle": "eyes_mid",
}


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float

    def __post_init__(self):
        if not (math.isfinite(self.width) and math.isfinite(self.height)) or self.width < 0 or self.height < 0:
            raise ValueError(f"Viewport dimensions must be finite and non-negative, got {self.width}x{self.height}")

    @classmethod
    def of_image(cls, image: np.ndarray) -> "Viewport":
        h, w = image.shape[:2]
        return cls(width=float(w), height=float(h))


@dataclass(frozen=True)
class OverlayTransform:
    present: bool
    center_x: Optional[float] = None
    center_y: Optional[float] = None
    width_px: Optional[float] = None
    rotation_degrees: Optional[float] = None

    @classmethod
    def absent(cls) -> "OverlayTransform":
        return cls(present=False)

    def to_dict(self) -> Dict[str, Any]:
        if not self.present:
            return {"present": False}
        return {
            "present": True,
            "center_x": self.center_x,
            "center_y": self.center_y,
            "width_px": self.width_px,
            "rotation_degrees": self.rotation_degrees,
        }


@dataclass(frozen=True)
class FaceGeometry:
    # Pixel points keyed by landmark name (see keypoints.FACE_MESH)
    points: Dict[str, Point]
    left_eye_center: Point
    right_eye_center: Point
    eyes_mid: Point
    roll_radians: float
    roll_degrees: float
    # Inter-ocular distance in pixels
    face_width: float


@dataclass
class BBox:
    x: int
    y: int
    w: int
    h: int


@dataclass
class ImageMeta:
    path: str
    width: int
    height: int
    channels: Optional[int] = None
    ext: Optional[str] = None


@dataclass
class DetectionInfo:
    bbox: Optional[BBox]
    face_index: int = 0
    num_faces: int = 1


@dataclass
class FaceLandmarks:
    # Normalized (x, y, z); x,y nominally in [0,1], z is relative depth from MediaPipe
    normalized: np.ndarray  # shape (N, 3)
