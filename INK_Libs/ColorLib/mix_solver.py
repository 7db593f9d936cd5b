"""
Ink mix solver.

Finds a small combination of allowed inks whose patterned blend looks like an
arbitrary target color, and scans an image to propose such mixes in bulk.

Classes:
    MixSolution: Best combination found by solve_mix
    MixProposal: One suggested MixRule with its target color

Functions:
    solve_mix: Best non-negative ink blend for one target color
    propose_mix: Mix rule proposal for one target color
    suggest_mixes_for_image: Propose mix rules for the dominant colors of an image
"""

import colorsys
import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from INK_Libs.ColorLib.color_space import perceptual_distance
from INK_Libs.ColorLib.ink_models import Color, Ink, MixEntry, MixRule
from INK_Libs.ColorLib.patterns import Checker, Ordered4
from INK_Libs.MappingLib.image_buffers import to_rgba_array
from INK_Libs.constants import (
    DEFAULT_MAX_INKS,
    SOLVER_ITERATIONS,
    SOLVER_STEP_SIZE,
    SUGGEST_HUE_SECTORS,
    SUGGEST_LUMA_BANDS,
    SUGGEST_MAX_TARGETS,
    SUGGEST_MIN_WEIGHT,
    SUGGEST_WORKING_SIZE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MixSolution:
    """
    Result of solve_mix.

    Attributes:
        error: Perceptual distance between the blended color and the target
        ink_indices: Positions in the candidate list, ascending
        weights: Non-negative weight for each ink (sum <= 1)
        mixed: The blended RGB color that was scored
    """
    error: float
    ink_indices: Tuple[int, ...]
    weights: Tuple[float, ...]
    mixed: Color


# Returned by solve_mix when there are no candidate inks
NO_SOLUTION: Optional[MixSolution] = None


@dataclass(frozen=True)
class MixProposal:
    target: Color
    rule: MixRule
    error: float
    target_index: int


def _fit_weights(inks: np.ndarray, target: np.ndarray) -> np.ndarray:
    """
    Projected gradient descent for min ||inks.T @ w - target||^2, w >= 0, sum(w) <= 1.

    Args:
        inks: (k, 3) normalized RGB rows
        target: (3,) normalized RGB
    """
    k = inks.shape[0]
    weights = np.full(k, 1.0 / k)
    for _ in range(SOLVER_ITERATIONS):
        residual = weights @ inks - target
        gradient = 2.0 * (inks @ residual)
        weights = np.maximum(weights - SOLVER_STEP_SIZE * gradient, 0.0)
        total = weights.sum()
        if total > 1.0:
            weights = weights / total
    return weights


def solve_mix(
    target: Sequence[int],
    candidate_inks: Sequence[Sequence[int]],
    max_inks: int = DEFAULT_MAX_INKS,
    weight_light: float = 1.0,
    weight_chroma: float = 1.0,
) -> Optional[MixSolution]:
    """
    Find the best blend of up to max_inks distinct candidate inks.

    Every combination of 1..max_inks candidates is fitted in RGB space and
    then scored in Lab space; the lowest-error combination of any size wins
    (first found on ties, smaller combinations first).

    Args:
        target: RGB color to approximate
        candidate_inks: RGB colors (or Inks) that may be combined
        max_inks: Largest combination size to try
        weight_light: Lightness weight for scoring
        weight_chroma: Chroma weight for scoring

    Returns:
        MixSolution, or NO_SOLUTION when candidate_inks is empty
    """
    colors = [ink.color if isinstance(ink, Ink) else Color.clamped(*ink[:3]) for ink in candidate_inks]
    if not colors:
        return NO_SOLUTION

    target_color = Color.clamped(*target[:3])
    target_lab = target_color.lab()
    target_unit = np.array(target_color, dtype=np.float64) / 255.0
    ink_units = np.array(colors, dtype=np.float64) / 255.0

    best: Optional[MixSolution] = None
    largest = max(1, min(int(max_inks), len(colors)))
    for size in range(1, largest + 1):
        for combo in combinations(range(len(colors)), size):
            rows = ink_units[list(combo)]
            weights = _fit_weights(rows, target_unit)
            mixed = Color.clamped(*(weights @ rows * 255.0))
            error = perceptual_distance(mixed.lab(), target_lab, weight_light, weight_chroma)
            if best is None or error < best.error:
                best = MixSolution(
                    error=float(error),
                    ink_indices=tuple(combo),
                    weights=tuple(float(w) for w in weights),
                    mixed=mixed,
                )

    logger.debug(f"Best mix for {target_color.hex}: {best}")
    return best


def _nearest_index(
    color: Color,
    palette: Sequence[Ink],
    indices: Sequence[int],
    weight_light: float,
    weight_chroma: float,
) -> int:
    lab = color.lab()
    best_index = indices[0]
    best_distance = None
    for index in indices:
        distance = perceptual_distance(lab, palette[index].color.lab(), weight_light, weight_chroma)
        if best_distance is None or distance < best_distance:
            best_index = index
            best_distance = distance
    return best_index


def _bucket_targets(image: np.ndarray) -> List[Color]:
    """Mean colors of the populated hue/luma buckets, most populated first."""
    height, width = image.shape[:2]
    step = max(1, -(-max(height, width) // SUGGEST_WORKING_SIZE))
    working = image[::step, ::step].reshape(-1, image.shape[2])
    opaque = working[working[:, 3] > 0, :3].astype(np.float64)
    if len(opaque) == 0:
        return []

    sums: Dict[Tuple[int, int], np.ndarray] = {}
    counts: Dict[Tuple[int, int], int] = {}
    band_size = 256.0 / SUGGEST_LUMA_BANDS
    for r, g, b in opaque:
        hue, _, _ = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
        sector = min(SUGGEST_HUE_SECTORS - 1, int(hue * SUGGEST_HUE_SECTORS))
        luma = 0.299 * r + 0.587 * g + 0.114 * b
        band = min(SUGGEST_LUMA_BANDS - 1, int(luma / band_size))
        key = (sector, band)
        if key not in sums:
            sums[key] = np.zeros(3)
            counts[key] = 0
        sums[key] += (r, g, b)
        counts[key] += 1

    ordered = sorted(counts, key=lambda key: (-counts[key], key))
    targets: List[Color] = []
    for key in ordered:
        color = Color.clamped(*(sums[key] / counts[key]))
        if color not in targets:
            targets.append(color)
        if len(targets) >= SUGGEST_MAX_TARGETS:
            break
    return targets


def propose_mix(
    target: Color,
    palette: Sequence[Ink],
    allowed_indices: Sequence[int],
    weight_light: float = 1.0,
    weight_chroma: float = 1.0,
) -> Optional[MixProposal]:
    """
    Propose a mix rule reproducing one target color.

    The rule is keyed to the palette ink nearest the target. It uses a
    two-ink checker mix when one beats the nearest allowed single ink,
    otherwise a single-ink rule.

    Returns:
        MixProposal, or None when no palette index is allowed
    """
    allowed = sorted({int(i) for i in allowed_indices if 0 <= int(i) < len(palette)})
    if not allowed:
        return None

    nearest = _nearest_index(target, palette, allowed, weight_light, weight_chroma)
    single_error = perceptual_distance(
        target.lab(), palette[nearest].color.lab(), weight_light, weight_chroma
    )
    target_index = _nearest_index(target, palette, range(len(palette)), weight_light, weight_chroma)

    solution = solve_mix(
        target,
        [palette[i].color for i in allowed],
        max_inks=2,
        weight_light=weight_light,
        weight_chroma=weight_chroma,
    )
    qualifies = (
        solution is not None
        and len(solution.ink_indices) == 2
        and min(solution.weights) >= SUGGEST_MIN_WEIGHT
        and solution.error < single_error
    )

    if qualifies:
        first, second = (allowed[i] for i in solution.ink_indices)
        rule = MixRule(
            target=target,
            entries=[
                MixEntry(first, solution.weights[0], Checker()),
                MixEntry(second, solution.weights[1], Checker(invert=True)),
            ],
        )
        error = solution.error
    else:
        rule = MixRule(target=target, entries=[MixEntry(nearest, 1.0, Ordered4())])
        error = single_error

    return MixProposal(target=target, rule=rule, error=float(error), target_index=target_index)


def suggest_mixes_for_image(
    image: Any,
    palette: Sequence[Ink],
    allowed_indices: Sequence[int],
    weight_light: float = 1.0,
    weight_chroma: float = 1.0,
) -> List[MixProposal]:
    """
    Propose mix rules for the dominant colors of an image.

    The image is downsampled, its opaque pixels are bucketed by hue sector
    and luma band, and each bucket's mean color becomes a target for
    propose_mix. Nothing passed in is modified.

    Args:
        image: RGB or RGBA array, or a PIL image
        palette: Current palette
        allowed_indices: Palette indices the proposals may use

    Returns:
        List of MixProposal, at most one per target
    """
    if not any(0 <= int(i) < len(palette) for i in allowed_indices):
        logger.warning("No allowed inks for mix suggestions")
        return []

    proposals: List[MixProposal] = []
    for target in _bucket_targets(to_rgba_array(image)):
        proposal = propose_mix(target, palette, allowed_indices, weight_light, weight_chroma)
        if proposal is not None:
            proposals.append(proposal)

    logger.info(f"Proposed {len(proposals)} mix rules")
    return proposals
