"""
Edge sharpening for mapped output.

Functions:
    unsharp_mask: Blend a 3x3 sharpening kernel response with the source
"""

import numpy as np

from INK_Libs.constants import DEFAULT_SHARPEN_AMOUNT, SHARPEN_KERNEL


def unsharp_mask(buffer: np.ndarray, amount: float = DEFAULT_SHARPEN_AMOUNT) -> np.ndarray:
    """
    Sharpen an RGBA buffer.

    Each interior pixel becomes (1 - amount) * source + amount * kernel
    response, rounded and saturated to 0-255. The one-pixel border and the
    alpha channel are copied unchanged.

    Args:
        buffer: (H, W, 4) uint8 array
        amount: Blend factor in [0, 1]

    Returns:
        New (H, W, 4) uint8 array

    Raises:
        ValueError: If amount is outside [0, 1]
    """
    if not (0.0 <= amount <= 1.0):
        raise ValueError(f"amount must be in [0, 1], got {amount}")

    out = buffer.copy()
    height, width = buffer.shape[:2]
    if height < 3 or width < 3:
        return out

    src = buffer[..., :3].astype(np.float64)
    response = np.zeros((height - 2, width - 2, 3), dtype=np.float64)
    for ky, row in enumerate(SHARPEN_KERNEL):
        for kx, weight in enumerate(row):
            if weight:
                response += weight * src[ky:ky + height - 2, kx:kx + width - 2]

    blended = (1.0 - amount) * src[1:-1, 1:-1] + amount * response
    out[1:-1, 1:-1, :3] = np.rint(np.clip(blended, 0, 255)).astype(np.uint8)
    return out
