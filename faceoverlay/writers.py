"""Output writers for offline alignment.

Writes JSON indices of aligned and missed images, a summary YAML, and
optionally the composited renders under ``<output_dir>/renders``.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
import yaml

from .types import DetectionInfo, FaceGeometry, ImageMeta, OverlayTransform
from .utils import ensure_dir

logger = logging.getLogger(__name__)


def _bbox_to_dict(bbox) -> Optional[Dict[str, int]]:
    if bbox is None:
        return None
    return {"x": bbox.x, "y": bbox.y, "w": bbox.w, "h": bbox.h}


def build_record(
    meta: ImageMeta,
    transform: OverlayTransform,
    det: Optional[DetectionInfo] = None,
    geometry: Optional[FaceGeometry] = None,
    anchor_mode: Optional[str] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    rec: Dict[str, Any] = {
        "file": meta.path,
        "width": meta.width,
        "height": meta.height,
        "bbox": _bbox_to_dict(det.bbox) if det else None,
        "anchor_mode": anchor_mode,
        "transform": transform.to_dict(),
        "face_width_px": geometry.face_width if geometry else None,
        "eyes_mid": [geometry.eyes_mid.x, geometry.eyes_mid.y] if geometry else None,
        "reason": reason,
    }
    return rec


class ResultsWriter:
    def __init__(self, output_dir: str | Path, cfg: Optional[Dict[str, Any]] = None):
        self.output_dir = Path(output_dir)
        ensure_dir(self.output_dir)
        self.cfg = cfg or {}
        self.aligned: List[Dict[str, Any]] = []
        self.missed: List[Dict[str, Any]] = []
        self.failures = 0

    def add(self, record: Dict[str, Any]) -> None:
        if record.get("transform", {}).get("present"):
            self.aligned.append(record)
        else:
            self.missed.append(record)

    def add_failure(self) -> None:
        self.failures += 1

    def render_path(self, src_path: str | Path) -> Path:
        """Destination for a render of ``src_path``, mirroring the input tree."""
        base_dir = (self.cfg.get("paths") or {}).get("input_dir")
        src_path = Path(src_path)
        try:
            rel = Path(os.path.relpath(src_path, base_dir)) if base_dir else Path(src_path.name)
        except ValueError:
            # Different drive on Windows
            rel = Path(src_path.name)
        if rel.parts and rel.parts[0] == "..":
            rel = Path(src_path.name)
        return self.output_dir / "renders" / rel.with_suffix(".png")

    def save_render(self, src_path: str | Path, image: np.ndarray) -> Optional[str]:
        dest = self.render_path(src_path)
        ensure_dir(dest.parent)
        ok, buf = cv2.imencode(".png", image)
        if not ok:
            logger.warning("Failed to encode render for %s", src_path)
            return None
        buf.tofile(str(dest))
        return str(dest)

    def _write_json(self, path: Path, data: List[Dict[str, Any]]):
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def finalize(self) -> Dict[str, Any]:
        out_dir = ensure_dir(self.output_dir)

        self._write_json(out_dir / "aligned_index.json", self.aligned)
        self._write_json(out_dir / "missed_index.json", self.missed)

        reasons = Counter(rec.get("reason") or "unknown" for rec in self.missed)
        summary = {
            "counts": {
                "aligned": len(self.aligned),
                "missed": len(self.missed),
                "failed": self.failures,
                "total": len(self.aligned) + len(self.missed) + self.failures,
            },
            "missed_reasons": dict(sorted(reasons.items())),
            "alignment": self.cfg.get("alignment", {}),
            "paths": self.cfg.get("paths", {}),
        }
        with (out_dir / "summary.yaml").open("w", encoding="utf-8") as f:
            yaml.safe_dump(summary, f, sort_keys=False, allow_unicode=True)

        return summary


__all__ = [
    "build_record",
    "ResultsWriter",
]
