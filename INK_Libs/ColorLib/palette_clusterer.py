"""
Palette discovery by k-center clustering over image pixels.

Centers are seeded deterministically from evenly spaced samples and refined
for a fixed number of iterations using squared RGB distance. The result is a
seed palette, not a final classification, so no Lab conversion happens here.

Functions:
    sample_for_clustering: Stride-sample an image into an (N, 4) RGBA buffer
    cluster_palette: Run the fixed-iteration clustering
    clamp_cluster_count: Bound a user-supplied cluster count
"""

import logging
import math
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from INK_Libs.constants import (
    CLUSTER_SAMPLE_TARGET,
    DEFAULT_CLUSTER_ITERATIONS,
    MAX_CLUSTER_COUNT,
    MIN_CLUSTER_COUNT,
)

logger = logging.getLogger(__name__)

RgbCenter = Tuple[int, int, int]


def clamp_cluster_count(k: Any) -> int:
    try:
        value = int(k)
    except (TypeError, ValueError):
        value = MIN_CLUSTER_COUNT
    return max(MIN_CLUSTER_COUNT, min(MAX_CLUSTER_COUNT, value))


def sample_for_clustering(image: np.ndarray, target_pixels: int = CLUSTER_SAMPLE_TARGET) -> np.ndarray:
    """
    Stride-sample an RGBA buffer so clustering stays bounded on large images.

    Args:
        image: (H, W, 4) uint8 array
        target_pixels: Approximate number of samples wanted

    Returns:
        (N, 4) uint8 array of sampled RGBA pixels (a copy)
    """
    height, width = image.shape[:2]
    step = max(1, int(math.floor(math.sqrt((width * height) / max(1, target_pixels)))))
    sampled = image[::step, ::step].reshape(-1, image.shape[2])
    logger.debug(f"Sampled {len(sampled)} pixels with step {step} from {width}x{height}")
    return np.array(sampled, dtype=np.uint8)


def _as_sample_array(samples: Any) -> np.ndarray:
    array = np.asarray(samples, dtype=np.uint8)
    if array.ndim == 1:
        array = array.reshape(-1, 4)
    elif array.ndim == 3:
        array = array.reshape(-1, array.shape[2])
    if array.shape[-1] == 3:
        alpha = np.full((array.shape[0], 1), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=1)
    return array


def _seed_centers(pixels: np.ndarray, k: int) -> np.ndarray:
    n = len(pixels)
    if n == 0:
        return np.zeros((k, 3), dtype=np.float64)
    indices = [min(n - 1, int(math.floor((c + 0.5) * n / k))) for c in range(k)]
    return pixels[indices, :3].astype(np.float64)


def cluster_palette(
    samples: Any,
    k: int,
    iterations: int = DEFAULT_CLUSTER_ITERATIONS,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> List[RgbCenter]:
    """
    Cluster opaque sample pixels into k RGB centers.

    Seeds are evenly spaced opaque samples. Each iteration assigns every
    opaque sample to its nearest center (squared RGB distance, ties to the
    lower center) and moves each center to the rounded mean of its members;
    a center with no members keeps its value. There is no convergence test.

    Args:
        samples: RGBA samples as a flat buffer, (N, 4) or (H, W, 4) array
        k: Number of centers (>= 1)
        iterations: Fixed iteration count
        should_cancel: Optional callable checked between iterations; when it
                       returns True the current centers are returned early

    Returns:
        List of k (r, g, b) integer tuples; duplicates are possible.
        All-transparent input returns the unmodified seed centers.
    """
    k = max(1, int(k))
    pixels = _as_sample_array(samples)
    opaque = pixels[pixels[:, 3] > 0]

    if len(opaque) == 0:
        logger.warning("No opaque pixels to cluster; returning seed centers")
        centers = _seed_centers(pixels, k)
        return [tuple(int(v) for v in c) for c in centers]

    centers = _seed_centers(opaque, k)
    rgb = opaque[:, :3].astype(np.float64)
    distances = np.empty((len(rgb), k), dtype=np.float64)

    for iteration in range(max(0, int(iterations))):
        if should_cancel is not None and should_cancel():
            logger.debug(f"Clustering cancelled after {iteration} iterations")
            break

        for c in range(k):
            diff = rgb - centers[c]
            distances[:, c] = np.einsum("nc,nc->n", diff, diff)
        labels = np.argmin(distances, axis=1)

        counts = np.bincount(labels, minlength=k)
        for c in range(k):
            if counts[c] == 0:
                continue
            mean = rgb[labels == c].sum(axis=0) / counts[c]
            centers[c] = np.floor(mean + 0.5)

    result = [tuple(int(v) for v in c) for c in centers]
    logger.info(f"Clustered {len(opaque)} samples into {k} centers")
    return result
