"""Face overlay package.

Aligns a 2D overlay image (hair, hats, accessories) onto a face from
per-frame FaceMesh landmarks. The alignment engine is a pure per-frame
function; detection, capture and compositing live in their own modules.
"""

from . import config as config
from . import types as types
from . import utils as utils
from . import keypoints as keypoints
from . import geometry as geometry
from . import anchors as anchors
from . import engine as engine
from .engine import AlignmentConfig, AlignmentEngine, compute_overlay_transform
from .types import AnchorMode, MalformedLandmarkSetError, OverlayTransform, Viewport

__all__ = [
    "config",
    "types",
    "utils",
    "keypoints",
    "geometry",
    "anchors",
    "engine",
    "AlignmentConfig",
    "AlignmentEngine",
    "AnchorMode",
    "MalformedLandmarkSetError",
    "OverlayTransform",
    "Viewport",
    "compute_overlay_transform",
]
