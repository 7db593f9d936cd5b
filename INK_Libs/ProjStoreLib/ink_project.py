"""
Mutable application state for an ink separation job.

InkProject is what the surrounding application edits: the palette, the
selected (restricted) inks, lasso regions, mix rules and mapping options.
Core operations never read it directly; `snapshot()` freezes it into a
MappingSnapshot for one pass.

Classes:
    InkProject: Palette, regions, mix rules and options for one image

Functions:
    regenerate: Snapshot a project and map an image with it
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

from INK_Libs.ColorLib.ink_models import Color, Ink, MixEntry, MixRule, Region, palette_from_colors, palette_from_hex
from INK_Libs.ColorLib.mix_solver import MixProposal, propose_mix
from INK_Libs.ColorLib.patterns import Pattern
from INK_Libs.MappingLib.image_buffers import to_rgba_array
from INK_Libs.MappingLib.pixel_mapper import map_snapshot
from INK_Libs.MappingLib.sharpen import unsharp_mask
from INK_Libs.MappingLib.snapshot import MapperOptions, MappingSnapshot, build_snapshot
from INK_Libs.constants import DEFAULT_INK_TOLERANCE

logger = logging.getLogger(__name__)


@dataclass
class InkProject:
    """
    Editable state for one job.

    Attributes:
        palette: Ordered inks; indices are referenced by regions and rules
        restricted: Indices of the inks chosen for the final print
        regions: Regions in the order they were added
        mix_rules: Rules keyed by the ink index they replace
        options: Mapping options
        sharpen_edges: Sharpen the mapped output after each regeneration
    """
    palette: List[Ink] = field(default_factory=list)
    restricted: List[int] = field(default_factory=list)
    regions: List[Region] = field(default_factory=list)
    mix_rules: Dict[int, MixRule] = field(default_factory=dict)
    options: MapperOptions = field(default_factory=MapperOptions)
    sharpen_edges: bool = False

    # Palette

    def set_palette_from_hex(self, hexes: Iterable[str], tolerance: float = DEFAULT_INK_TOLERANCE) -> None:
        self.palette = palette_from_hex(hexes, tolerance)
        self.restricted = list(range(len(self.palette)))

    def set_palette_from_centers(self, centers: Iterable[Sequence[int]], tolerance: float = DEFAULT_INK_TOLERANCE) -> None:
        self.palette = palette_from_colors(centers, tolerance)
        self.restricted = list(range(len(self.palette)))

    def add_ink(self, color: Color, tolerance: float = DEFAULT_INK_TOLERANCE) -> int:
        """Append an ink and return its index."""
        self.palette.append(Ink(color, tolerance))
        index = len(self.palette) - 1
        self.restricted.append(index)
        return index

    def remove_ink(self, index: int) -> None:
        """
        Remove an ink.

        Indices held by regions and rules are left as they are; references
        that no longer resolve are ignored by the mapper.
        """
        if not (0 <= index < len(self.palette)):
            raise IndexError(f"No ink at index {index}")
        del self.palette[index]
        self.restricted = [i for i in self.restricted if i < len(self.palette)]

    def set_tolerance(self, index: int, tolerance: float) -> None:
        if not (0 <= index < len(self.palette)):
            raise IndexError(f"No ink at index {index}")
        self.palette[index] = replace(self.palette[index], tolerance=tolerance)

    def set_restricted(self, indices: Iterable[int]) -> None:
        self.restricted = sorted({int(i) for i in indices if 0 <= int(i) < len(self.palette)})

    # Regions

    def add_region(self, region: Region) -> None:
        self.regions.append(region)
        logger.debug(f"Added region allowing inks {sorted(region.allowed)}")

    def clear_regions(self) -> None:
        self.regions.clear()

    # Mix rules

    def set_mix_rule(self, index: int, rule: MixRule) -> None:
        self.mix_rules[int(index)] = rule

    def update_mix_rule(
        self,
        index: int,
        entry_position: int,
        weight: Optional[float] = None,
        pattern: Optional[Pattern] = None,
    ) -> None:
        """Change the density and/or pattern of one entry of an existing rule in place."""
        rule = self.mix_rules.get(index)
        if rule is None:
            raise KeyError(f"No mix rule for ink {index}")
        entry: MixEntry = rule.entries[entry_position]
        if weight is not None:
            if weight < 0:
                raise ValueError(f"weight must be >= 0, got {weight}")
            entry.weight = float(weight)
        if pattern is not None:
            entry.pattern = pattern

    def delete_mix_rule(self, index: int) -> bool:
        return self.mix_rules.pop(index, None) is not None

    def clear_mix_rules(self) -> None:
        self.mix_rules.clear()

    def apply_proposals(self, proposals: Iterable[MixProposal]) -> int:
        """Adopt suggested rules, replacing any rule for the same ink. Returns the count applied."""
        applied = 0
        for proposal in proposals:
            self.mix_rules[proposal.target_index] = proposal.rule
            applied += 1
        return applied

    def smart_mix(self, target: Color) -> Optional[MixProposal]:
        """
        Solve a mix for one target color from the active inks and adopt it.

        Returns:
            The adopted proposal, or None when the palette is empty
        """
        proposal = propose_mix(
            target,
            self.palette,
            self.active_palette(),
            self.options.weight_light,
            self.options.weight_chroma,
        )
        if proposal is None:
            logger.warning(f"No inks available to mix {target.hex}")
            return None
        self.apply_proposals([proposal])
        return proposal

    # Snapshot

    def active_palette(self) -> List[int]:
        """Indices mapping may use when no region says otherwise."""
        return list(self.restricted) if self.restricted else list(range(len(self.palette)))

    def snapshot(self) -> MappingSnapshot:
        """Freeze the palette, regions, rules and options for one mapping pass."""
        return build_snapshot(self.palette, self.options, self.regions, self.mix_rules)

    def regions_for(self, height: int, width: int) -> List[Region]:
        """
        Regions for an image of this size, with the restricted selection applied.

        When only some inks are restricted, pixels outside every user region
        get a base region allowing just those inks; pixels inside a user
        region keep that region's allowed set.
        """
        restricted = self.active_palette()
        regions: List[Region] = []
        if len(restricted) < len(self.palette):
            outside = np.ones((height, width), dtype=bool)
            for region in self.regions:
                if region.mask.shape == (height, width):
                    outside &= ~region.mask
            regions.append(Region(mask=outside, allowed=frozenset(restricted)))
        regions.extend(self.regions)
        return regions

    def snapshot_for(self, height: int, width: int) -> MappingSnapshot:
        """Snapshot for an image of this size, honouring the restricted selection."""
        return build_snapshot(self.palette, self.options, self.regions_for(height, width), self.mix_rules)


def regenerate(project: InkProject, image: Any) -> np.ndarray:
    """
    Produce the output image for the project's current state.

    Args:
        project: Project to snapshot
        image: Source image (PIL Image or RGB/RGBA array)

    Returns:
        Mapped (H, W, 4) uint8 array, sharpened when the project asks for it
    """
    source = to_rgba_array(image)
    height, width = source.shape[:2]
    snapshot = project.snapshot_for(height, width)
    mapped = map_snapshot(source, snapshot)
    if project.sharpen_edges:
        mapped = unsharp_mask(mapped)
    return mapped
