"""
Immutable inputs for one mapping pass.

A MappingSnapshot freezes the palette, regions, mix rules and options the
pixel mapper reads, so that edits made by the surrounding application while
a pass runs are never observed mid-pass.

Classes:
    MapperOptions: Scoring, dithering and background options
    MappingSnapshot: Frozen copy of everything a mapping pass reads

Functions:
    build_snapshot: Copy live state into a MappingSnapshot
    resolve_mix_rules: Key mix rules by the palette index they apply to
"""

import copy
import logging
import numbers
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from INK_Libs.ColorLib.color_space import perceptual_distance
from INK_Libs.ColorLib.ink_models import Color, Ink, MixRule, Region
from INK_Libs.constants import (
    BACKGROUND_KEEP,
    BACKGROUND_MODES,
    DEFAULT_TOLERANCE_DISCOUNT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapperOptions:
    """Options for one mapping pass.

    Attributes:
        weight_light: Lightness weight in the perceptual distance
        weight_chroma: Chroma weight in the perceptual distance
        dither: Enable Floyd-Steinberg error diffusion
        background_mode: 'keep' preserves alpha, 'force_opaque' sets it to 255
        allow_white_ink: When False, pure white inks are never chosen
        tolerance_scale: Extra multiplier on both weights when scoring
        tolerance_discount: Score multiplier (< 1) for in-tolerance inks
        seed: Seed for stipple patterns; None draws fresh randomness
    """
    weight_light: float = 1.0
    weight_chroma: float = 1.0
    dither: bool = False
    background_mode: str = BACKGROUND_KEEP
    allow_white_ink: bool = True
    tolerance_scale: float = 1.0
    tolerance_discount: float = DEFAULT_TOLERANCE_DISCOUNT
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.weight_light < 0 or self.weight_chroma < 0:
            raise ValueError(
                f"weights must be >= 0, got light={self.weight_light} chroma={self.weight_chroma}"
            )
        if self.background_mode not in BACKGROUND_MODES:
            raise ValueError(
                f"background_mode must be one of {BACKGROUND_MODES}, got {self.background_mode!r}"
            )
        if self.tolerance_scale <= 0:
            raise ValueError(f"tolerance_scale must be > 0, got {self.tolerance_scale}")
        if not (0 < self.tolerance_discount <= 1):
            raise ValueError(f"tolerance_discount must be in (0, 1], got {self.tolerance_discount}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MapperOptions":
        """Create from dictionary, ignoring unknown keys."""
        normalized = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**normalized)


@dataclass(frozen=True)
class MappingSnapshot:
    palette: Tuple[Ink, ...]
    regions: Tuple[Region, ...]
    mix_rules: Mapping[int, MixRule]
    options: MapperOptions


def _nearest_ink(color: Color, palette: Sequence[Ink], options: MapperOptions) -> Optional[int]:
    lab = color.lab()
    best_index = None
    best_distance = None
    for index, ink in enumerate(palette):
        distance = perceptual_distance(lab, ink.color.lab(), options.weight_light, options.weight_chroma)
        if best_distance is None or distance < best_distance:
            best_index = index
            best_distance = distance
    return best_index


def resolve_mix_rules(
    rules: Union[Mapping[int, MixRule], Iterable[MixRule]],
    palette: Sequence[Ink],
    options: MapperOptions,
) -> Dict[int, MixRule]:
    """
    Key mix rules by the palette index they replace.

    A mapping is taken as already keyed. For a plain sequence, integer
    targets are used directly and Color targets resolve to their nearest
    ink; later rules override earlier ones for the same index. Targets
    outside the palette are dropped.
    """
    if isinstance(rules, Mapping):
        keyed = {int(k): v for k, v in rules.items()}
    else:
        keyed = {}
        for rule in rules:
            if isinstance(rule.target, Color):
                index = _nearest_ink(rule.target, palette, options)
            elif isinstance(rule.target, numbers.Integral):
                index = int(rule.target)
            else:
                index = _nearest_ink(Color.clamped(*rule.target[:3]), palette, options)
            if index is not None:
                keyed[index] = rule

    resolved = {}
    for index, rule in keyed.items():
        if 0 <= index < len(palette):
            resolved[index] = rule
        else:
            logger.debug(f"Dropping mix rule for unknown ink index {index}")
    return resolved


def _freeze_region(region: Region) -> Region:
    mask = region.mask.copy()
    mask.setflags(write=False)
    return Region(mask=mask, allowed=frozenset(region.allowed))


def build_snapshot(
    palette: Sequence[Ink],
    options: Optional[MapperOptions] = None,
    regions: Optional[Sequence[Region]] = None,
    mix_rules: Union[Mapping[int, MixRule], Iterable[MixRule], None] = None,
) -> MappingSnapshot:
    """
    Copy live application state into an immutable snapshot.

    Args:
        palette: Current inks (index-stable for the pass)
        options: Mapping options (defaults when None)
        regions: Regions in the order they were added
        mix_rules: Rules keyed by ink index, or a sequence of rules to resolve

    Returns:
        MappingSnapshot sharing no mutable state with the arguments
    """
    options = options or MapperOptions()
    frozen_palette = tuple(palette)
    resolved = resolve_mix_rules(mix_rules or {}, frozen_palette, options)
    frozen_rules = MappingProxyType({k: copy.deepcopy(v) for k, v in resolved.items()})
    frozen_regions = tuple(_freeze_region(r) for r in (regions or []))
    return MappingSnapshot(
        palette=frozen_palette,
        regions=frozen_regions,
        mix_rules=frozen_rules,
        options=options,
    )
