"""Per-frame overlay alignment.

The engine is a pure function of (landmarks, viewport, config): nothing is
kept between frames, so frames can be skipped or recomputed freely.

    engine = AlignmentEngine(AlignmentConfig(anchor_mode=AnchorMode.FOREHEAD))
    transform = engine.align(landmarks_or_none, Viewport(640, 480))
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .anchors import DEFAULT_NOSE_OFFSET_RATIO, resolve_anchor
from .geometry import estimate_roll_scale, eye_centers, midpoint
from .keypoints import FACE_MESH, LandmarkScheme, select_pixel_points, validate_landmarks
from .types import AnchorMode, FaceGeometry, OverlayTransform, Viewport


@dataclass(frozen=True)
class AlignmentConfig:
    anchor_mode: AnchorMode = AnchorMode.NOSE
    # Overlay width as a fraction of the viewport width. Deliberately not
    # tied to the measured face width.
    overlay_width_fraction: float = 1.0
    nose_offset_ratio: float = DEFAULT_NOSE_OFFSET_RATIO

    def __post_init__(self):
        object.__setattr__(self, "anchor_mode", AnchorMode.parse(self.anchor_mode))
        if not (self.overlay_width_fraction > 0 and math.isfinite(self.overlay_width_fraction)):
            raise ValueError(f"overlay_width_fraction must be positive, got {self.overlay_width_fraction}")
        if not (self.nose_offset_ratio >= 0 and math.isfinite(self.nose_offset_ratio)):
            raise ValueError(f"nose_offset_ratio must be non-negative, got {self.nose_offset_ratio}")

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None) -> "AlignmentConfig":
        section = (cfg or {}).get("alignment", {}) or {}
        return cls(
            anchor_mode=AnchorMode.parse(section.get("anchor_mode", AnchorMode.NOSE)),
            overlay_width_fraction=float(section.get("overlay_width_fraction", 1.0)),
            nose_offset_ratio=float(section.get("nose_offset_ratio", DEFAULT_NOSE_OFFSET_RATIO)),
        )


class AlignmentEngine:
    def __init__(self, config: Optional[AlignmentConfig] = None, scheme: LandmarkScheme = FACE_MESH):
        self.config = config or AlignmentConfig()
        self.scheme = scheme

    def measure(self, landmarks: Any, viewport: Viewport) -> FaceGeometry:
        """Map landmarks to pixels and derive eye centers, roll and face width.

        Raises MalformedLandmarkSetError for an incomplete or invalid set.
        """
        arr = validate_landmarks(landmarks, self.scheme)
        points = select_pixel_points(arr, viewport, self.scheme)
        left, right = eye_centers(points)
        roll, face_width = estimate_roll_scale(left, right)
        return FaceGeometry(
            points=points,
            left_eye_center=left,
            right_eye_center=right,
            eyes_mid=midpoint(left, right),
            roll_radians=roll,
            roll_degrees=math.degrees(roll),
            face_width=face_width,
        )

    def transform_from_geometry(self, geom: FaceGeometry, viewport: Viewport) -> OverlayTransform:
        anchor = resolve_anchor(geom, self.config.anchor_mode, self.config.nose_offset_ratio)
        return OverlayTransform(
            present=True,
            center_x=anchor.x,
            center_y=anchor.y,
            width_px=viewport.width * self.config.overlay_width_fraction,
            rotation_degrees=geom.roll_degrees,
        )

    def align(self, landmarks: Any, viewport: Viewport) -> OverlayTransform:
        """Compute this frame's overlay transform.

        ``landmarks`` is None when no face was detected, which yields an
        absent transform rather than an error.
        """
        if landmarks is None:
            return OverlayTransform.absent()
        return self.transform_from_geometry(self.measure(landmarks, viewport), viewport)


def compute_overlay_transform(
    landmarks: Any,
    viewport: Viewport,
    config: Optional[AlignmentConfig] = None,
) -> OverlayTransform:
    return AlignmentEngine(config).align(landmarks, viewport)


__all__ = ["AlignmentConfig", "AlignmentEngine", "compute_overlay_transform"]
