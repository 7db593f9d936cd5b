"""
Region mask construction.

Turns a lasso polygon drawn on a preview canvas into a Region mask at the
working image resolution.
"""

from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from INK_Libs.ColorLib.ink_models import Region
from INK_Libs.pillow_compat import Image, ImageDraw


def polygon_to_mask(
    points: Sequence[Tuple[float, float]],
    width: int,
    height: int,
    source_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Rasterize a closed polygon into a boolean mask.

    Args:
        points: Polygon vertices as (x, y)
        width: Mask width in pixels
        height: Mask height in pixels
        source_size: (width, height) of the canvas the points were drawn on;
                     points are rescaled to the mask size when given

    Returns:
        (height, width) bool array; all False for fewer than 3 points
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Mask size must be positive, got {width}x{height}")

    scale_x = scale_y = 1.0
    if source_size is not None:
        scale_x = width / float(source_size[0])
        scale_y = height / float(source_size[1])

    scaled = [(float(x) * scale_x, float(y) * scale_y) for x, y in points]
    canvas = Image.new("L", (width, height), 0)
    if len(scaled) >= 3:
        ImageDraw.Draw(canvas).polygon(scaled, fill=255)
    return np.array(canvas, dtype=np.uint8) > 0


def region_from_polygon(
    points: Sequence[Tuple[float, float]],
    allowed: Iterable[int],
    width: int,
    height: int,
    source_size: Optional[Tuple[int, int]] = None,
) -> Region:
    """Build a Region whose mask is the given polygon."""
    return Region(mask=polygon_to_mask(points, width, height, source_size), allowed=frozenset(allowed))
