"""
Conversions between Pillow images and RGBA numpy buffers.

Every core operation works on (height, width, 4) uint8 arrays. These helpers
are the only place images enter or leave that representation.
"""

from pathlib import Path
from typing import Any, Union

import numpy as np

from INK_Libs.pillow_compat import Image, ImageClass


def to_rgba_array(image: Any) -> np.ndarray:
    """
    Convert a Pillow image or an RGB/RGBA array into a fresh RGBA buffer.

    Args:
        image: PIL Image, or array of shape (H, W, 3) / (H, W, 4)

    Returns:
        (H, W, 4) uint8 array (never a view of the input)

    Raises:
        TypeError: If the input is neither a PIL Image nor an array
        ValueError: If an array has an unsupported shape
    """
    if isinstance(image, ImageClass):
        return np.array(image.convert("RGBA"), dtype=np.uint8)

    if not isinstance(image, np.ndarray):
        raise TypeError(f"Expected PIL Image or numpy array, got {type(image)}")

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected array of shape (H, W, 3|4), got {image.shape}")

    array = np.clip(image, 0, 255).astype(np.uint8)
    if array.shape[2] == 3:
        alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=2)
    return array.copy()


def to_pil_image(buffer: np.ndarray) -> ImageClass:
    """Wrap an RGBA buffer as a PIL Image (RGBA mode)."""
    return Image.fromarray(np.ascontiguousarray(buffer, dtype=np.uint8))


def load_image(file_path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as an RGBA buffer.

    Raises:
        ValueError: If the file cannot be opened as an image
    """
    try:
        with Image.open(file_path) as image:
            return to_rgba_array(image)
    except (OSError, ValueError) as e:
        raise ValueError(f"Failed to load image: {e}") from e
