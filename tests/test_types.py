import math

import numpy as np
import pytest

from faceoverlay.types import Viewport


@pytest.mark.parametrize(
    "w, h",
    [(math.nan, 480), (640, math.nan), (math.inf, 480), (640, -math.inf), (-1, 480)],
)
def test_viewport_rejects_bad_dimensions(w, h):
    with pytest.raises(ValueError):
        Viewport(w, h)


def test_viewport_of_image():
    assert Viewport.of_image(np.zeros((480, 640, 3), dtype=np.uint8)) == Viewport(640.0, 480.0)
    assert Viewport(0, 0).width == 0
