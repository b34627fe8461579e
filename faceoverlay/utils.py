from __future__ import annotations

import logging
import os
from pathlib import Path

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".bmp", ".webp", ".tiff"}

# Loggers that flood the console on every FaceMesh call
NOISY_LOGGERS = ("absl", "mediapipe")


def setup_logging(level: str | int = "INFO") -> int:
    """Configure root logging for the CLI and return the numeric level.

    Level names are case-insensitive; unknown names fall back to INFO.
    Third-party detector loggers are held at WARNING or above.
    """
    if isinstance(level, str):
        lvl = logging.getLevelName(level.strip().upper())
        if not isinstance(lvl, int):
            lvl = logging.INFO
    else:
        lvl = int(level)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(lvl, logging.WARNING))
    return lvl


def ensure_dir(path: str | os.PathLike) -> Path:
    """Create ``path`` (and parents) if missing; return it as a Path."""
    out = Path(path)
    out.mkdir(parents=True, exist_ok=True)
    return out
