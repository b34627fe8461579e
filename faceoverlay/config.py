from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

import yaml

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "paths": {
        # RGBA PNG drawn over the face; a placeholder is generated if missing
        "overlay_image": "hair.png",
        "input_dir": "images",
        "output_dir": "outputs",
        "save_renders": False,
    },
    "alignment": {
        # nose | forehead | eyes_mid | left_eye | right_eye | mouth | left_ear | right_ear
        "anchor_mode": "nose",
        # Overlay width relative to the viewport width (1.0 = full width)
        "overlay_width_fraction": 1.0,
        # Nose estimate: distance below the eyes midpoint in inter-ocular units
        "nose_offset_ratio": 0.40,
    },
    "mediapipe": {
        "static_image_mode": True,
        "refine_landmarks": True,
        "max_faces": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
    },
    "camera": {
        "index": 0,
        "width": 640,
        "height": 480,
        # Flip frames horizontally (selfie view) before detection
        "mirror": False,
    },
    "debug": {
        "draw_all_landmarks": False,
        "draw_landmark_indices": False,
        # Eyes midpoint and anchor markers
        "draw_markers": True,
    },
    "runtime": {
        "workers": 0,  # 0 => single-thread; >0 => process pool size
        "max_files": None,
        "log_level": "INFO",
    },
}


def _deep_merge(base: MutableMapping[str, Any], override: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for k, v in override.items():
        if k in base and isinstance(base[k], MutableMapping) and isinstance(v, Mapping):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_yaml(path: str | Path | None) -> Dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        logger.warning("YAML config not found: %s", p)
        return {}
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("Top-level of YAML must be a mapping/dict")
    return data


def merge_config(yaml_cfg: Mapping[str, Any] | None = None, cli_overrides: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    cfg: Dict[str, Any] = copy.deepcopy(DEFAULTS)
    if yaml_cfg:
        _deep_merge(cfg, dict(yaml_cfg))
    if cli_overrides:
        _deep_merge(cfg, dict(cli_overrides))
    return cfg


def load_and_merge(yaml_path: str | Path | None, cli_overrides: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    yaml_cfg = load_yaml(yaml_path)
    return merge_config(yaml_cfg, cli_overrides)
