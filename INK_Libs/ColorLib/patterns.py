"""
Procedural coverage patterns used to interleave several inks.

Each pattern is a small frozen dataclass (a tagged variant) carrying its own
parameters. `evaluate_coverage` answers "is this ink printed at (x, y)?" for
one coordinate; `coverage_grid` answers the same question for whole arrays of
coordinates and is what the pixel mapper uses.

Classes:
    Checker: Alternating square cells
    Ordered2: 2x2 ordered-dither threshold matrix
    Ordered4: 4x4 Bayer threshold matrix
    Stripes: Vertical stripes
    Stipple: Random dots (non-deterministic)

Functions:
    evaluate_coverage: Coverage (0 or 1) of a pattern at one coordinate
    coverage_grid: Vectorized coverage over coordinate arrays
    pattern_to_dict: Serialize a pattern to a plain dictionary
    pattern_from_dict: Rebuild a pattern from a dictionary
"""

import numbers
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np

from INK_Libs.constants import (
    DEFAULT_CHECKER_SIZE,
    DEFAULT_ORDERED_THRESHOLD,
    DEFAULT_STIPPLE_DENSITY,
    DEFAULT_STIPPLE_JITTER,
    DEFAULT_STRIPE_WIDTH,
    FIELD_KIND,
    ORDERED2_MATRIX,
    ORDERED4_MATRIX,
    PATTERN_CHECKER,
    PATTERN_ORDERED2,
    PATTERN_ORDERED4,
    PATTERN_STIPPLE,
    PATTERN_STRIPES,
)

_ORDERED2 = np.array(ORDERED2_MATRIX, dtype=np.float64) / 4.0
_ORDERED4 = np.array(ORDERED4_MATRIX, dtype=np.float64) / 16.0


def _check_size(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 1:
        raise ValueError(f"{name} must be an integer >= 1, got {value!r}")


@dataclass(frozen=True)
class Checker:
    cell_size: int = DEFAULT_CHECKER_SIZE
    invert: bool = False

    def __post_init__(self) -> None:
        _check_size("cell_size", self.cell_size)

    @property
    def kind(self) -> str:
        return PATTERN_CHECKER


@dataclass(frozen=True)
class Ordered2:
    invert: bool = False

    @property
    def kind(self) -> str:
        return PATTERN_ORDERED2


@dataclass(frozen=True)
class Ordered4:
    invert: bool = False

    @property
    def kind(self) -> str:
        return PATTERN_ORDERED4


@dataclass(frozen=True)
class Stripes:
    width: int = DEFAULT_STRIPE_WIDTH
    invert: bool = False

    def __post_init__(self) -> None:
        _check_size("width", self.width)

    @property
    def kind(self) -> str:
        return PATTERN_STRIPES


@dataclass(frozen=True)
class Stipple:
    """Random dots; each evaluation is an independent Bernoulli draw."""

    density: float = DEFAULT_STIPPLE_DENSITY
    jitter: float = DEFAULT_STIPPLE_JITTER

    def __post_init__(self) -> None:
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")

    @property
    def kind(self) -> str:
        return PATTERN_STIPPLE

    def probability(self, rng: np.random.Generator) -> float:
        offset = rng.uniform(-self.jitter, self.jitter) if self.jitter > 0 else 0.0
        return float(max(0.0, min(1.0, self.density + offset)))


Pattern = Union[Checker, Ordered2, Ordered4, Stripes, Stipple]

PATTERN_TYPES = {
    PATTERN_CHECKER: Checker,
    PATTERN_ORDERED2: Ordered2,
    PATTERN_ORDERED4: Ordered4,
    PATTERN_STRIPES: Stripes,
    PATTERN_STIPPLE: Stipple,
}


def evaluate_coverage(
    pattern: Pattern,
    x: int,
    y: int,
    threshold: float = DEFAULT_ORDERED_THRESHOLD,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Evaluate a pattern at one pixel coordinate.

    Args:
        pattern: Any pattern variant
        x: Column of the pixel
        y: Row of the pixel
        threshold: Ordered-dither threshold in [0, 1] (ignored by other kinds)
        rng: Random generator for Stipple; a fresh one is used when omitted

    Returns:
        1 when the ink covers this pixel, else 0

    Raises:
        TypeError: If pattern is not a known pattern variant
    """
    if isinstance(pattern, Checker):
        size = int(pattern.cell_size)
        covered = ((x // size) + (y // size)) % 2 == 1
    elif isinstance(pattern, Stripes):
        covered = (x // int(pattern.width)) % 2 == 1
    elif isinstance(pattern, Ordered2):
        covered = _ORDERED2[y % 2, x % 2] < threshold
    elif isinstance(pattern, Ordered4):
        covered = _ORDERED4[y % 4, x % 4] < threshold
    elif isinstance(pattern, Stipple):
        generator = rng if rng is not None else np.random.default_rng()
        return 1 if generator.random() < pattern.probability(generator) else 0
    else:
        raise TypeError(f"Unsupported pattern: {pattern!r}")

    if pattern.invert:
        covered = not covered
    return 1 if covered else 0


def coverage_grid(
    pattern: Pattern,
    xs: np.ndarray,
    ys: np.ndarray,
    threshold: float = DEFAULT_ORDERED_THRESHOLD,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Vectorized form of evaluate_coverage.

    Args:
        pattern: Any pattern variant
        xs: Integer array of columns
        ys: Integer array of rows (same shape as xs)
        threshold: Ordered-dither threshold
        rng: Random generator for Stipple

    Returns:
        uint8 array of 0/1 with the shape of xs
    """
    xs = np.asarray(xs, dtype=np.int64)
    ys = np.asarray(ys, dtype=np.int64)

    if isinstance(pattern, Checker):
        size = int(pattern.cell_size)
        covered = ((xs // size) + (ys // size)) % 2 == 1
    elif isinstance(pattern, Stripes):
        covered = (xs // int(pattern.width)) % 2 == 1
    elif isinstance(pattern, Ordered2):
        covered = _ORDERED2[ys % 2, xs % 2] < threshold
    elif isinstance(pattern, Ordered4):
        covered = _ORDERED4[ys % 4, xs % 4] < threshold
    elif isinstance(pattern, Stipple):
        generator = rng if rng is not None else np.random.default_rng()
        offsets = generator.uniform(-pattern.jitter, pattern.jitter, size=xs.shape) if pattern.jitter > 0 else 0.0
        probability = np.clip(pattern.density + offsets, 0.0, 1.0)
        return (generator.random(size=xs.shape) < probability).astype(np.uint8)
    else:
        raise TypeError(f"Unsupported pattern: {pattern!r}")

    if pattern.invert:
        covered = ~covered
    return covered.astype(np.uint8)


def pattern_to_dict(pattern: Pattern) -> Dict[str, Any]:
    """Serialize a pattern to {'kind': ..., <params>}."""
    if not isinstance(pattern, tuple(PATTERN_TYPES.values())):
        raise TypeError(f"Unsupported pattern: {pattern!r}")
    data: Dict[str, Any] = {FIELD_KIND: pattern.kind}
    data.update(
        {name: getattr(pattern, name) for name in pattern.__dataclass_fields__}
    )
    return data


def pattern_from_dict(data: Dict[str, Any]) -> Pattern:
    """
    Rebuild a pattern from a dictionary produced by pattern_to_dict.

    Raises:
        ValueError: If the kind is unknown or a parameter is out of range
    """
    if not isinstance(data, dict):
        raise ValueError(f"Pattern must be a dictionary, got {type(data).__name__}")
    kind = data.get(FIELD_KIND)
    pattern_type = PATTERN_TYPES.get(kind)
    if pattern_type is None:
        raise ValueError(f"Unknown pattern kind: {kind!r}")
    params = {k: v for k, v in data.items() if k in pattern_type.__dataclass_fields__}
    try:
        return pattern_type(**params)
    except TypeError as e:
        raise ValueError(f"Invalid parameters for pattern '{kind}': {e}") from e
