"""Real-time overlay loop: camera -> FaceMesh -> alignment -> composite -> window."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Optional

import cv2
import numpy as np

from .camera import CameraConfig, VideoSource
from .engine import AlignmentConfig, AlignmentEngine
from .facemesh import FaceMeshConfig, FaceMeshDetector
from .render import DebugOptions, OverlayImage, draw_debug, render_overlay
from .types import MalformedLandmarkSetError, OverlayTransform, Viewport

logger = logging.getLogger(__name__)

WINDOW_NAME = "Face Overlay"
QUIT_KEYS = (27, ord("q"))


class FrameProcessor:
    """The per-frame callback: one call per delivered frame.

    Holds only the last shown transform. While the landmark source keeps
    delivering malformed sets, that transform stays on screen unchanged;
    the next valid set or no-face frame replaces it.
    """

    def __init__(self, engine: AlignmentEngine, overlay: OverlayImage, debug: Optional[DebugOptions] = None):
        self.engine = engine
        self.overlay = overlay
        self.debug = debug or DebugOptions(draw_markers=False)
        self.last_transform = OverlayTransform.absent()
        self.malformed_frames = 0

    def __call__(self, frame: np.ndarray, landmarks: Any) -> np.ndarray:
        # Viewport follows the frame every time; sizes may change between frames
        viewport = Viewport.of_image(frame)
        geometry = None
        if landmarks is None:
            transform = OverlayTransform.absent()
        else:
            try:
                geometry = self.engine.measure(landmarks, viewport)
                transform = self.engine.transform_from_geometry(geometry, viewport)
            except MalformedLandmarkSetError as e:
                self.malformed_frames += 1
                logger.warning("Skipping overlay update for malformed landmarks: %s", e)
                transform = self.last_transform
                landmarks = None
        self.last_transform = transform

        out = render_overlay(frame, self.overlay, transform)
        if self.debug.enabled:
            draw_debug(out, self.debug, viewport, landmarks=landmarks, geometry=geometry, transform=transform)
        return out


def run_frames(
    frames: Iterable[np.ndarray],
    detect: Callable[[np.ndarray], Any],
    processor: FrameProcessor,
    show: Callable[[np.ndarray], bool],
) -> int:
    """Drive ``processor`` over ``frames`` until exhausted or ``show`` returns False.

    Returns the number of frames processed.
    """
    count = 0
    for frame in frames:
        out = processor(frame, detect(frame))
        count += 1
        if not show(out):
            break
    return count


def _show_in_window(image: np.ndarray) -> bool:
    cv2.imshow(WINDOW_NAME, image)
    key = cv2.waitKey(1) & 0xFF
    return key not in QUIT_KEYS


def run_live(cfg: Dict[str, Any]) -> int:
    engine = AlignmentEngine(AlignmentConfig.from_config(cfg))
    overlay = OverlayImage.load(cfg.get("paths", {}).get("overlay_image"))
    processor = FrameProcessor(engine, overlay, DebugOptions.from_config(cfg))
    fm_cfg = FaceMeshConfig.from_config(cfg, static_image_mode=False)

    logger.info("Starting live overlay (anchor=%s); press q or Esc to quit", engine.config.anchor_mode.value)
    try:
        with VideoSource(CameraConfig.from_config(cfg)) as cam, FaceMeshDetector(fm_cfg) as det:
            n = run_frames(cam.frames(), lambda f: det.detect(f)[0], processor, _show_in_window)
    finally:
        cv2.destroyAllWindows()
    logger.info("Processed %d frames (%d malformed)", n, processor.malformed_frames)
    return n


__all__ = ["FrameProcessor", "run_frames", "run_live"]
