"""
Ink data models for Ink Mapper.

This module defines the core data structures shared by the clusterer, the
mix solver and the pixel mapper.

Classes:
    Color: 8-bit RGB color; Lab is derived on demand
    Ink: A Color plus its tolerance radius
    MixEntry: One (ink, weight, pattern) component of a mix
    MixRule: Patterned blend of inks substituted for one classified color
    Region: Pixel mask restricting which inks may be used under it

Type Aliases:
    Palette: Ordered, index-stable sequence of Ink
    RgbaColor: A tuple of 4 integers (0-255)
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from INK_Libs.ColorLib.color_space import LabColor, color_to_hex, hex_to_color, rgb_to_lab
from INK_Libs.ColorLib.patterns import Checker, Pattern
from INK_Libs.constants import DEFAULT_INK_TOLERANCE

RgbaColor = Tuple[int, int, int, int]


class Color(NamedTuple):
    r: int
    g: int
    b: int

    @classmethod
    def clamped(cls, r: float, g: float, b: float) -> "Color":
        """Build a Color, rounding and saturating each channel to 0-255."""
        return cls(*(int(max(0, min(255, round(v)))) for v in (r, g, b)))

    @classmethod
    def from_hex(cls, value: str) -> Optional["Color"]:
        """Parse a hex string; returns None for malformed input."""
        rgb = hex_to_color(value)
        return cls(*rgb) if rgb is not None else None

    def lab(self) -> LabColor:
        return rgb_to_lab(self.r, self.g, self.b)

    @property
    def hex(self) -> str:
        return color_to_hex(self.r, self.g, self.b)

    def is_pure_white(self) -> bool:
        return self.r == 255 and self.g == 255 and self.b == 255


def is_pure_white(color: Sequence[int]) -> bool:
    return tuple(int(c) for c in color[:3]) == (255, 255, 255)


@dataclass(frozen=True)
class Ink:
    """
    One usable output color.

    Attributes:
        color: The ink color
        tolerance: Perceptual-distance radius; pixels within it get a
                   scoring discount when this ink is a candidate
    """
    color: Color
    tolerance: float = DEFAULT_INK_TOLERANCE

    def __post_init__(self) -> None:
        if not isinstance(self.color, Color):
            object.__setattr__(self, "color", Color.clamped(*self.color))
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")

    @classmethod
    def from_hex(cls, value: str, tolerance: float = DEFAULT_INK_TOLERANCE) -> Optional["Ink"]:
        color = Color.from_hex(value)
        return cls(color, tolerance) if color is not None else None


Palette = Sequence[Ink]


@dataclass
class MixEntry:
    ink_index: int
    weight: float = 1.0
    pattern: Pattern = field(default_factory=Checker)

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"weight must be >= 0, got {self.weight}")


@dataclass
class MixRule:
    """
    Recipe replacing one classified color with a patterned blend of inks.

    Attributes:
        target: Palette index the rule applies to, or an arbitrary Color
                (resolved to its nearest palette ink when a snapshot is built)
        entries: Inks to composite. Weights need not sum to 1; uncovered
                 area is bare substrate.
    """
    target: Union[int, Color]
    entries: List[MixEntry] = field(default_factory=list)

    def ink_indices(self) -> List[int]:
        return [entry.ink_index for entry in self.entries]


@dataclass
class Region:
    """
    Spatial restriction on ink choice.

    Attributes:
        mask: Boolean array of shape (height, width); True where the region applies
        allowed: Palette indices that may be chosen under the mask
    """
    mask: np.ndarray
    allowed: FrozenSet[int] = frozenset()

    def __post_init__(self) -> None:
        mask = np.asarray(self.mask)
        if mask.ndim != 2:
            raise ValueError(f"Region mask must be 2-D, got shape {mask.shape}")
        self.mask = mask.astype(bool, copy=False)
        self.allowed = frozenset(int(i) for i in self.allowed)

    @property
    def width(self) -> int:
        return int(self.mask.shape[1])

    @property
    def height(self) -> int:
        return int(self.mask.shape[0])

    def covers(self, x: int, y: int) -> bool:
        return bool(self.mask[y, x])


def palette_from_colors(
    colors: Iterable[Sequence[int]],
    tolerance: float = DEFAULT_INK_TOLERANCE,
) -> List[Ink]:
    """Wrap RGB triples (e.g. cluster centers) as Inks with a shared tolerance."""
    return [Ink(Color.clamped(*c[:3]), tolerance) for c in colors]


def palette_from_hex(
    hexes: Iterable[str],
    tolerance: float = DEFAULT_INK_TOLERANCE,
) -> List[Ink]:
    """
    Build a palette from hex strings.

    Malformed entries become white inks so that indices stay aligned with
    the input list.
    """
    inks: List[Ink] = []
    for value in hexes:
        color = Color.from_hex(value)
        inks.append(Ink(color if color is not None else Color(255, 255, 255), tolerance))
    return inks
