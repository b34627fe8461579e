from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import numpy as np

try:
    import cv2
    import mediapipe as mp
except Exception as e:  # pragma: no cover - environment import guard
    cv2 = None  # type: ignore
    mp = None  # type: ignore

from .types import BBox, DetectionInfo, FaceLandmarks

logger = logging.getLogger(__name__)


@dataclass
class FaceMeshConfig:
    static_image_mode: bool = True
    refine_landmarks: bool = True
    max_faces: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "FaceMeshConfig":
        mp_cfg = dict((cfg or {}).get("mediapipe", {}) or {})
        mp_cfg.update(overrides)
        return cls(
            static_image_mode=bool(mp_cfg.get("static_image_mode", True)),
            refine_landmarks=bool(mp_cfg.get("refine_landmarks", True)),
            max_faces=int(mp_cfg.get("max_faces", 1)),
            min_detection_confidence=float(mp_cfg.get("min_detection_confidence", 0.5)),
            min_tracking_confidence=float(mp_cfg.get("min_tracking_confidence", 0.5)),
        )


def _landmarks_to_array(lms) -> np.ndarray:
    return np.asarray(
        [(pt.x, pt.y, getattr(pt, "z", 0.0)) for pt in lms.landmark],
        dtype=np.float64,
    )


def _bbox_from_normalized(normalized: np.ndarray, width: int, height: int) -> BBox:
    px = np.clip(np.round(normalized[:, 0] * width), 0, max(width - 1, 0))
    py = np.clip(np.round(normalized[:, 1] * height), 0, max(height - 1, 0))
    x_min, x_max = int(px.min()), int(px.max())
    y_min, y_max = int(py.min()), int(py.max())
    return BBox(x=x_min, y=y_min, w=x_max - x_min + 1, h=y_max - y_min + 1)


class FaceMeshDetector:
    """Reusable wrapper around MediaPipe FaceMesh.

    Produces the landmark set the alignment engine consumes: normalized
    points of one face, or None when no face is found.

    Usage:
        with FaceMeshDetector(FaceMeshConfig(static_image_mode=False)) as det:
            landmarks, info = det.detect(frame_bgr)
    """

    def __init__(self, cfg: Optional[FaceMeshConfig] = None):
        if mp is None or cv2 is None:
            raise ImportError("mediapipe and opencv-python must be installed to use FaceMeshDetector")
        self.cfg = cfg or FaceMeshConfig()
        self._mesh = None

    def __enter__(self):
        self._mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=self.cfg.static_image_mode,
            refine_landmarks=self.cfg.refine_landmarks,
            max_num_faces=self.cfg.max_faces,
            min_detection_confidence=self.cfg.min_detection_confidence,
            min_tracking_confidence=self.cfg.min_tracking_confidence,
        )
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._mesh is not None:
            self._mesh.close()
            self._mesh = None

    def _ensure_open(self):
        if self._mesh is None:
            # Allow use without context manager by lazy init
            self.__enter__()

    def detect(self, image_bgr: np.ndarray) -> Tuple[Optional[FaceLandmarks], Optional[DetectionInfo]]:
        self._ensure_open()
        assert self._mesh is not None

        # Convert BGR -> RGB as required by MediaPipe
        img_rgb = cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)
        results = self._mesh.process(img_rgb)
        if not results or not results.multi_face_landmarks:
            return None, None

        faces = results.multi_face_landmarks
        height, width = image_bgr.shape[:2]

        converted = []
        for flm in faces:
            norm = _landmarks_to_array(flm)
            converted.append((norm, _bbox_from_normalized(norm, width, height)))

        # With several faces allowed, keep the largest one only
        areas = [bbox.w * bbox.h for _, bbox in converted]
        idx = int(np.argmax(areas)) if len(areas) > 1 else 0
        norm, bbox = converted[idx]
        if len(converted) > 1:
            logger.debug("FaceMesh found %d faces, using #%d", len(converted), idx)

        return FaceLandmarks(normalized=norm), DetectionInfo(bbox=bbox, face_index=idx, num_faces=len(converted))


__all__ = ["FaceMeshDetector", "FaceMeshConfig"]
