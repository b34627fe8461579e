from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generator, Mapping, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    index: int = 0
    width: int = 640
    height: int = 480
    mirror: bool = False

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None) -> "CameraConfig":
        cam = (cfg or {}).get("camera", {}) or {}
        return cls(
            index=int(cam.get("index", 0)),
            width=int(cam.get("width", 640)),
            height=int(cam.get("height", 480)),
            mirror=bool(cam.get("mirror", False)),
        )


class VideoSource:
    """OpenCV capture wrapper delivering BGR frames one at a time.

    Usage:
        with VideoSource(CameraConfig()) as cam:
            for frame in cam.frames():
                ...
    """

    def __init__(self, cfg: Optional[CameraConfig] = None):
        self.cfg = cfg or CameraConfig()
        self._cap = None

    def __enter__(self):
        cap = cv2.VideoCapture(self.cfg.index)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Could not open camera {self.cfg.index}")
        # Requested size is a hint; drivers may pick the nearest mode
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.cfg.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.cfg.height)
        self._cap = cap
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def frames(self) -> Generator[np.ndarray, None, None]:
        if self._cap is None:
            raise RuntimeError("VideoSource is not open; use it as a context manager")
        while True:
            ok, frame = self._cap.read()
            if not ok or frame is None:
                logger.warning("Camera %s stopped delivering frames", self.cfg.index)
                return
            if self.cfg.mirror:
                frame = cv2.flip(frame, 1)
            yield frame


__all__ = ["CameraConfig", "VideoSource"]
