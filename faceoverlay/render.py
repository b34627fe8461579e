"""Overlay compositing: the consumer side of an OverlayTransform.

Given a frame and a transform, the overlay image is scaled to the
transform's width (aspect preserved), rotated about its own center,
centered on the anchor point and alpha blended. Absent transforms leave
the frame untouched, so the overlay disappears as soon as tracking is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import cv2
import numpy as np

from .keypoints import as_landmark_array, to_pixel
from .loader import imread_unicode
from .types import FaceGeometry, OverlayTransform, Viewport

logger = logging.getLogger(__name__)

# BGR colors
LANDMARK_COLOR = (255, 170, 0)
EYES_MID_COLOR = (180, 255, 0)
ANCHOR_COLOR = (0, 200, 255)


@dataclass
class OverlayImage:
    # BGRA, uint8
    image: np.ndarray
    source: Optional[str] = None

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @classmethod
    def from_array(cls, image: np.ndarray, source: Optional[str] = None) -> "OverlayImage":
        return cls(image=to_bgra(image), source=source)

    @classmethod
    def placeholder(cls, width: int = 150, height: int = 90) -> "OverlayImage":
        """Small rounded translucent shape used when no overlay asset is available."""
        img = np.zeros((height, width, 4), dtype=np.uint8)
        center = (width // 2, height // 2)
        axes = (max(width // 2 - 2, 1), max(height // 2 - 2, 1))
        cv2.ellipse(img, center, axes, 0, 0, 360, (40, 50, 90, 220), -1, cv2.LINE_AA)
        return cls(image=img, source=None)

    @classmethod
    def load(cls, path: str | Path | None) -> "OverlayImage":
        """Read an overlay asset, falling back to the placeholder if unreadable."""
        if path:
            img = imread_unicode(Path(path))
            if img is not None and img.size > 0:
                logger.info("Loaded overlay %s (%dx%d)", path, img.shape[1], img.shape[0])
                return cls.from_array(img, source=str(path))
            logger.warning("Overlay image not readable: %s; using placeholder", path)
        else:
            logger.warning("No overlay image configured; using placeholder")
        return cls.placeholder()


def to_bgra(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint16:
        image = (image // 257).astype(np.uint8)
    if image.ndim == 2:
        image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return image
    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=image.dtype)
        return np.concatenate([image, alpha], axis=2)
    raise ValueError(f"Unsupported channel count: {image.shape[2]}")


def rotate_bound(image: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate clockwise on screen by ``degrees``, growing the canvas to fit.

    Uncovered pixels are fully transparent.
    """
    if degrees == 0:
        return image
    h, w = image.shape[:2]
    cx, cy = w / 2.0, h / 2.0
    # OpenCV's positive angle is counter-clockwise as displayed
    M = cv2.getRotationMatrix2D((cx, cy), -degrees, 1.0)
    cos, sin = abs(M[0, 0]), abs(M[0, 1])
    new_w = int(round(h * sin + w * cos))
    new_h = int(round(h * cos + w * sin))
    M[0, 2] += new_w / 2.0 - cx
    M[1, 2] += new_h / 2.0 - cy
    return cv2.warpAffine(
        image,
        M,
        (new_w, new_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )


def blend_centered(frame: np.ndarray, overlay_bgra: np.ndarray, center_x: float, center_y: float) -> None:
    """Alpha blend ``overlay_bgra`` into ``frame`` in place, centered on (x, y).

    Parts falling outside the frame are clipped.
    """
    oh, ow = overlay_bgra.shape[:2]
    fh, fw = frame.shape[:2]
    x0 = int(round(center_x - ow / 2.0))
    y0 = int(round(center_y - oh / 2.0))
    fx0, fy0 = max(x0, 0), max(y0, 0)
    fx1, fy1 = min(x0 + ow, fw), min(y0 + oh, fh)
    if fx0 >= fx1 or fy0 >= fy1:
        return
    ov = overlay_bgra[fy0 - y0:fy1 - y0, fx0 - x0:fx1 - x0].astype(np.float32)
    alpha = ov[:, :, 3:4] / 255.0
    region = frame[fy0:fy1, fx0:fx1, :3].astype(np.float32)
    blended = alpha * ov[:, :, :3] + (1.0 - alpha) * region
    frame[fy0:fy1, fx0:fx1, :3] = np.clip(np.round(blended), 0, 255).astype(frame.dtype)


def render_overlay(frame: np.ndarray, overlay: OverlayImage, transform: OverlayTransform) -> np.ndarray:
    out = frame.copy()
    if not transform.present:
        return out
    target_w = int(round(transform.width_px))
    if target_w <= 0 or overlay.width == 0:
        return out
    target_h = max(1, int(round(overlay.height * target_w / overlay.width)))
    interp = cv2.INTER_AREA if target_w < overlay.width else cv2.INTER_LINEAR
    scaled = cv2.resize(overlay.image, (target_w, target_h), interpolation=interp)
    rotated = rotate_bound(scaled, transform.rotation_degrees or 0.0)
    blend_centered(out, rotated, transform.center_x, transform.center_y)
    return out


@dataclass
class DebugOptions:
    draw_all_landmarks: bool = False
    draw_landmark_indices: bool = False
    draw_markers: bool = True

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, Any]] = None) -> "DebugOptions":
        dbg = (cfg or {}).get("debug", {}) or {}
        return cls(
            draw_all_landmarks=bool(dbg.get("draw_all_landmarks", False)),
            draw_landmark_indices=bool(dbg.get("draw_landmark_indices", False)),
            draw_markers=bool(dbg.get("draw_markers", True)),
        )

    @property
    def enabled(self) -> bool:
        return self.draw_all_landmarks or self.draw_markers


def draw_debug(
    frame: np.ndarray,
    opts: DebugOptions,
    viewport: Viewport,
    landmarks: Any = None,
    geometry: Optional[FaceGeometry] = None,
    transform: Optional[OverlayTransform] = None,
) -> np.ndarray:
    """Draw landmarks, the eyes midpoint and the anchor point in place."""
    if opts.draw_all_landmarks and landmarks is not None:
        # Index labels get cluttered and slow with the full mesh
        for i, lm in enumerate(as_landmark_array(landmarks)):
            p = to_pixel(lm, viewport)
            pt = (int(round(p.x)), int(round(p.y)))
            cv2.circle(frame, pt, 1, LANDMARK_COLOR, -1)
            if opts.draw_landmark_indices:
                cv2.putText(frame, str(i), (pt[0] + 2, pt[1] - 2), cv2.FONT_HERSHEY_SIMPLEX, 0.25, LANDMARK_COLOR, 1)
    if opts.draw_markers:
        if geometry is not None:
            mid = (int(round(geometry.eyes_mid.x)), int(round(geometry.eyes_mid.y)))
            cv2.circle(frame, mid, 3, EYES_MID_COLOR, -1)
        if transform is not None and transform.present:
            anchor = (int(round(transform.center_x)), int(round(transform.center_y)))
            cv2.circle(frame, anchor, 4, ANCHOR_COLOR, -1)
    return frame


__all__ = [
    "OverlayImage",
    "DebugOptions",
    "to_bgra",
    "rotate_bound",
    "blend_centered",
    "render_overlay",
    "draw_debug",
]
