"""Image enumeration and reading for offline alignment.

- Recursive image enumeration with extension whitelist and optional `max_files`.
- Unicode-safe reading via OpenCV (imdecode) with an imread fallback.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Generator, Iterable, Optional, Tuple

import cv2
import numpy as np

from .types import ImageMeta
from .utils import IMAGE_EXTS

logger = logging.getLogger(__name__)


def imread_unicode(path: Path, flags: int = cv2.IMREAD_UNCHANGED) -> Optional[np.ndarray]:
    if not path.is_file():
        return None
    data = np.fromfile(str(path), dtype=np.uint8)
    if data.size == 0:
        return None
    img = cv2.imdecode(data, flags)
    if img is None:
        # Fallback to standard imread
        img = cv2.imread(str(path), flags)
    return img


class ImageLoader:
    def __init__(
        self,
        input_dir: str | Path,
        exts: Optional[Iterable[str]] = None,
        max_files: Optional[int] = None,
    ):
        self.input_dir = Path(input_dir)
        self.exts = set(e.lower() for e in (exts or IMAGE_EXTS))
        self.max_files = max_files

    def enumerate(self) -> Generator[Path, None, None]:
        count = 0
        if not self.input_dir.exists():
            logger.warning("Input directory does not exist: %s", self.input_dir)
            return
        for p in sorted(self.input_dir.rglob("*")):
            if p.is_file() and p.suffix.lower() in self.exts:
                yield p
                count += 1
                if self.max_files is not None and count >= self.max_files:
                    return

    def read_image(self, path: str | Path) -> Tuple[Optional[np.ndarray], Optional[ImageMeta], Optional[str]]:
        """Return (BGR image, meta, error); frames are always 3-channel BGR."""
        p = Path(path)
        try:
            img = imread_unicode(p, cv2.IMREAD_COLOR)
        except OSError as e:
            logger.warning("Failed to read %s (%s)", p, e)
            img = None
        if img is None:
            return None, None, "unreadable"
        h, w = img.shape[:2]
        meta = ImageMeta(path=str(p), width=w, height=h, channels=img.shape[2], ext=p.suffix.lower())
        return img, meta, None


__all__ = ["ImageLoader", "imread_unicode"]
