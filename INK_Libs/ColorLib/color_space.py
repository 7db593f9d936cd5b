"""
Color space conversions and perceptual distance for Ink Mapper.

This module converts 8-bit sRGB colors into CIE Lab (D65) and scores how far
apart two Lab colors look. Every other part of the library depends on it.

Functions:
    rgb_to_lab: Convert one RGB triple to Lab
    rgb_array_to_lab: Vectorized RGB -> Lab over a numpy array
    perceptual_distance: Weighted squared Lab distance between two colors
    perceptual_distance_array: Vectorized form of perceptual_distance
    hex_to_color: Parse a hex string, returning None when it is malformed
    color_to_hex: Format an RGB triple as an upper-case hex string
"""

import re
from typing import Optional, Sequence, Tuple

import numpy as np

from INK_Libs.constants import (
    LAB_EPSILON,
    LAB_KAPPA_SLOPE,
    SRGB_LINEAR_THRESHOLD,
    WHITE_X,
    WHITE_Y,
    WHITE_Z,
)

LabColor = Tuple[float, float, float]

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")

# Linear sRGB -> XYZ (D65)
_SRGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
_WHITE = np.array([WHITE_X, WHITE_Y, WHITE_Z], dtype=np.float64)


def _clamp_channel(value: float) -> int:
    return int(max(0, min(255, round(value))))


def _srgb_to_linear(channel: float) -> float:
    u = channel / 255.0
    if u <= SRGB_LINEAR_THRESHOLD:
        return u / 12.92
    return ((u + 0.055) / 1.055) ** 2.4


def _lab_f(t: float) -> float:
    if t > LAB_EPSILON:
        return t ** (1.0 / 3.0)
    return LAB_KAPPA_SLOPE * t + 16.0 / 116.0


def rgb_to_lab(r: float, g: float, b: float) -> LabColor:
    """
    Convert an sRGB color to CIE Lab under the D65 white point.

    Args:
        r: Red channel (0-255)
        g: Green channel (0-255)
        b: Blue channel (0-255)

    Returns:
        (L, a, b) tuple of floats. L is 0 for black and ~100 for white.
    """
    lr = _srgb_to_linear(r)
    lg = _srgb_to_linear(g)
    lb = _srgb_to_linear(b)

    x = (lr * _SRGB_TO_XYZ[0, 0] + lg * _SRGB_TO_XYZ[0, 1] + lb * _SRGB_TO_XYZ[0, 2]) / WHITE_X
    y = (lr * _SRGB_TO_XYZ[1, 0] + lg * _SRGB_TO_XYZ[1, 1] + lb * _SRGB_TO_XYZ[1, 2]) / WHITE_Y
    z = (lr * _SRGB_TO_XYZ[2, 0] + lg * _SRGB_TO_XYZ[2, 1] + lb * _SRGB_TO_XYZ[2, 2]) / WHITE_Z

    fx = _lab_f(x)
    fy = _lab_f(y)
    fz = _lab_f(z)
    return (116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz))


def rgb_array_to_lab(rgb: np.ndarray) -> np.ndarray:
    """
    Vectorized RGB -> Lab conversion.

    Args:
        rgb: Array of shape (..., 3) with channel values in 0-255

    Returns:
        float64 array of shape (..., 3) holding (L, a, b)
    """
    u = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = np.where(
        u <= SRGB_LINEAR_THRESHOLD,
        u / 12.92,
        ((u + 0.055) / 1.055) ** 2.4,
    )
    xyz = (linear @ _SRGB_TO_XYZ.T) / _WHITE
    f = np.where(
        xyz > LAB_EPSILON,
        np.cbrt(xyz),
        LAB_KAPPA_SLOPE * xyz + 16.0 / 116.0,
    )
    lab = np.empty_like(f)
    lab[..., 0] = 116.0 * f[..., 1] - 16.0
    lab[..., 1] = 500.0 * (f[..., 0] - f[..., 1])
    lab[..., 2] = 200.0 * (f[..., 1] - f[..., 2])
    return lab


def perceptual_distance(
    lab1: Sequence[float],
    lab2: Sequence[float],
    weight_light: float = 1.0,
    weight_chroma: float = 1.0,
) -> float:
    """
    Weighted squared Euclidean distance between two Lab colors.

    The result is (weight_light * dL)^2 + weight_chroma * (da^2 + db^2), so
    callers can bias matching toward lightness or toward hue/saturation.

    Args:
        lab1: First (L, a, b) color
        lab2: Second (L, a, b) color
        weight_light: Multiplier on the lightness difference
        weight_chroma: Multiplier on the squared chroma difference

    Returns:
        Non-negative float; 0 when both colors are equal
    """
    dl = (lab1[0] - lab2[0]) * weight_light
    da = lab1[1] - lab2[1]
    db = lab1[2] - lab2[2]
    return dl * dl + weight_chroma * (da * da + db * db)


def perceptual_distance_array(
    labs: np.ndarray,
    ink_labs: np.ndarray,
    weight_light: float = 1.0,
    weight_chroma: float = 1.0,
) -> np.ndarray:
    """
    Pairwise perceptual distances between N pixels and M inks.

    Args:
        labs: (N, 3) array of Lab colors
        ink_labs: (M, 3) array of Lab colors

    Returns:
        (N, M) float64 array of weighted squared distances
    """
    diff = labs[:, None, :] - ink_labs[None, :, :]
    dl = diff[..., 0] * weight_light
    return dl * dl + weight_chroma * (diff[..., 1] ** 2 + diff[..., 2] ** 2)


def hex_to_color(value: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """
    Parse '#RRGGBB' (leading '#' optional, any case) into an RGB tuple.

    Returns:
        (r, g, b) tuple, or None when the string is not a valid hex color
    """
    if not isinstance(value, str):
        return None
    match = _HEX_PATTERN.match(value.strip())
    if match is None:
        return None
    number = int(match.group(1), 16)
    return ((number >> 16) & 255, (number >> 8) & 255, number & 255)


def color_to_hex(r: float, g: float, b: float) -> str:
    """Format an RGB triple as '#RRGGBB', clamping each channel to 0-255."""
    return "#" + "".join(f"{_clamp_channel(v):02X}" for v in (r, g, b))
