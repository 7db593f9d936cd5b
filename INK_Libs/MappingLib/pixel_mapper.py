"""
Pixel mapper: classify every pixel of an image to an allowed ink.

For each opaque pixel the mapper finds the inks allowed at that position
(union of covering regions, minus white when white ink is disabled), scores
them with the weighted perceptual distance (in-tolerance inks get a
discount), picks the best one, substitutes a patterned mix when a rule
exists for it, and optionally diffuses the quantization error forward with
Floyd-Steinberg weights.

Without dithering the pass is vectorized in row blocks. With dithering the
pixels are visited in raster order, since error only flows forward.

Classes:
    InkTable: Per-pass lookup tables for candidate scoring and compositing

Functions:
    map_to_palette: Map an image onto a palette
    map_snapshot: Map an image using a prebuilt MappingSnapshot
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from INK_Libs.ColorLib.color_space import perceptual_distance_array, rgb_array_to_lab, rgb_to_lab
from INK_Libs.ColorLib.ink_models import Ink, MixRule, Region
from INK_Libs.ColorLib.patterns import coverage_grid, evaluate_coverage
from INK_Libs.MappingLib.image_buffers import to_rgba_array
from INK_Libs.MappingLib.snapshot import MapperOptions, MappingSnapshot, build_snapshot
from INK_Libs.constants import BACKGROUND_FORCE_OPAQUE, FLOYD_STEINBERG_WEIGHTS

logger = logging.getLogger(__name__)

# Pixels per vectorized block
BLOCK_PIXELS = 65536


class InkTable:
    """
    Lookup tables built once per mapping pass.

    Pixels are grouped by which regions cover them; every group shares one
    candidate set. `groups` holds a group id per pixel (row-major).
    """

    def __init__(self, snapshot: MappingSnapshot, height: int, width: int):
        options = snapshot.options
        palette = snapshot.palette
        self.count = len(palette)
        self.rgb = np.array([ink.color for ink in palette], dtype=np.float64).reshape(-1, 3)
        self.labs = rgb_array_to_lab(self.rgb)
        self.tolerance_sq = np.array([ink.tolerance for ink in palette], dtype=np.float64) ** 2
        self.weight_light = options.weight_light * options.tolerance_scale
        self.weight_chroma = options.weight_chroma * options.tolerance_scale
        self.discount = options.tolerance_discount

        white = np.array([ink.color.is_pure_white() for ink in palette], dtype=bool)
        excluded = white if not options.allow_white_ink else np.zeros(self.count, dtype=bool)

        self.groups, base = self._group_by_regions(snapshot.regions, height, width)
        self.base = base
        self.candidates = base & ~excluded[None, :]
        self.first_base = np.where(base.any(axis=1), np.argmax(base, axis=1), -1)

        # Scalar copies for the raster-order (dithering) path
        self.lab_list = [tuple(lab) for lab in self.labs.tolist()]
        self.rgb_list = [tuple(c) for c in self.rgb.tolist()]
        self.tolerance_sq_list = self.tolerance_sq.tolist()
        self.candidate_lists = [tuple(np.flatnonzero(row).tolist()) for row in self.candidates]

        self.rules = self._compile_rules(snapshot.mix_rules)

    def _group_by_regions(
        self, regions: Sequence[Region], height: int, width: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        usable: List[Region] = []
        # Most recently added first
        for region in reversed(regions):
            if region.mask.shape != (height, width):
                logger.warning(
                    f"Ignoring region with mask shape {region.mask.shape}; image is {(height, width)}"
                )
                continue
            usable.append(region)

        everything = np.ones((1, self.count), dtype=bool)
        if not usable:
            return np.zeros(height * width, dtype=np.int64), everything

        coverage = np.stack([r.mask.reshape(-1) for r in usable], axis=1)
        patterns, inverse = np.unique(coverage, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).reshape(-1)

        base = np.zeros((len(patterns), self.count), dtype=bool)
        for group, row in enumerate(patterns):
            if not row.any():
                base[group] = True
                continue
            for covered, region in zip(row, usable):
                if not covered:
                    continue
                for index in region.allowed:
                    if 0 <= index < self.count:
                        base[group, index] = True
        return inverse.astype(np.int64), base

    def _compile_rules(self, mix_rules: Mapping[int, MixRule]) -> Dict[int, List[Tuple[int, float, Any]]]:
        compiled: Dict[int, List[Tuple[int, float, Any]]] = {}
        for index, rule in mix_rules.items():
            if not (0 <= index < self.count):
                continue
            entries = [
                (entry.ink_index, float(entry.weight), entry.pattern)
                for entry in rule.entries
                if 0 <= entry.ink_index < self.count
            ]
            if entries:
                compiled[index] = entries
        return compiled

    def classify_block(self, labs: np.ndarray, groups: np.ndarray) -> np.ndarray:
        """Best ink index for each of N pixels (vectorized)."""
        scores = perceptual_distance_array(labs, self.labs, self.weight_light, self.weight_chroma)
        unweighted = perceptual_distance_array(labs, self.labs)
        scores = np.where(unweighted <= self.tolerance_sq[None, :], scores * self.discount, scores)

        candidates = self.candidates[groups]
        masked = np.where(candidates, scores, np.inf)
        choice = np.argmin(masked, axis=1)

        empty = ~candidates.any(axis=1)
        if empty.any():
            fallback = self.first_base[groups[empty]]
            nearest = np.argmin(scores[empty], axis=1)
            choice[empty] = np.where(fallback >= 0, fallback, nearest)
        return choice

    def classify_one(self, lab: Tuple[float, float, float], group: int) -> int:
        """Best ink index for one pixel, using the same two-tier rule."""
        candidates = self.candidate_lists[group]
        if not candidates:
            first = int(self.first_base[group])
            if first >= 0:
                return first
            candidates = range(self.count)

        best_index = -1
        best_score = math.inf
        for index in candidates:
            ink_lab = self.lab_list[index]
            dl = lab[0] - ink_lab[0]
            da = lab[1] - ink_lab[1]
            db = lab[2] - ink_lab[2]
            score = (dl * self.weight_light) ** 2 + self.weight_chroma * (da * da + db * db)
            if dl * dl + da * da + db * db <= self.tolerance_sq_list[index]:
                score *= self.discount
            if score < best_score:
                best_index = index
                best_score = score
        return best_index

    def composite_block(
        self,
        choice: np.ndarray,
        xs: np.ndarray,
        ys: np.ndarray,
        rng: np.random.Generator,
    ) -> np.ndarray:
        """Output RGB for each pixel: the chosen ink, or its mix when a rule exists."""
        out = self.rgb[choice]
        for index, entries in self.rules.items():
            selected = choice == index
            if not selected.any():
                continue
            acc = np.zeros((int(selected.sum()), 3), dtype=np.float64)
            for ink_index, weight, pattern in entries:
                covered = coverage_grid(pattern, xs[selected], ys[selected], threshold=weight, rng=rng)
                acc += covered[:, None] * self.rgb[ink_index]
            out[selected] = np.clip(acc, 0.0, 255.0)
        return out

    def composite_one(self, index: int, x: int, y: int, rng: np.random.Generator) -> Tuple[float, float, float]:
        entries = self.rules.get(index)
        if entries is None:
            return self.rgb_list[index]
        r = g = b = 0.0
        for ink_index, weight, pattern in entries:
            if evaluate_coverage(pattern, x, y, threshold=weight, rng=rng):
                ink = self.rgb_list[ink_index]
                r += ink[0]
                g += ink[1]
                b += ink[2]
        return (min(255.0, r), min(255.0, g), min(255.0, b))


def _map_vectorized(src: np.ndarray, out: np.ndarray, table: InkTable, rng: np.random.Generator) -> None:
    height, width = src.shape[:2]
    flat_src = src.reshape(-1, 4)
    flat_out = out.reshape(-1, 4)
    rows_per_block = max(1, BLOCK_PIXELS // max(1, width))

    for top in range(0, height, rows_per_block):
        start = top * width
        stop = min(height, top + rows_per_block) * width
        block = flat_src[start:stop]
        opaque = np.flatnonzero(block[:, 3] != 0)
        if len(opaque) == 0:
            continue

        positions = opaque + start
        labs = rgb_array_to_lab(block[opaque, :3].astype(np.float64))
        choice = table.classify_block(labs, table.groups[positions])
        xs = positions % width
        ys = positions // width
        rgb = table.composite_block(choice, xs, ys, rng)
        flat_out[positions, :3] = np.rint(rgb).astype(np.uint8)


def _map_dithered(src: np.ndarray, out: np.ndarray, table: InkTable, rng: np.random.Generator) -> None:
    height, width = src.shape[:2]
    error = np.zeros((height, width, 3), dtype=np.float64)
    groups = table.groups.reshape(height, width)

    for y in range(height):
        for x in range(width):
            if src[y, x, 3] == 0:
                continue

            er, eg, eb = error[y, x]
            r = min(255.0, max(0.0, round(float(src[y, x, 0]) + er)))
            g = min(255.0, max(0.0, round(float(src[y, x, 1]) + eg)))
            b = min(255.0, max(0.0, round(float(src[y, x, 2]) + eb)))

            index = table.classify_one(rgb_to_lab(r, g, b), int(groups[y, x]))
            nr, ng, nb = table.composite_one(index, x, y, rng)
            out[y, x, 0] = int(round(nr))
            out[y, x, 1] = int(round(ng))
            out[y, x, 2] = int(round(nb))

            dr = r - nr
            dg = g - ng
            db = b - nb
            for dx, dy, weight in FLOYD_STEINBERG_WEIGHTS:
                tx = x + dx
                ty = y + dy
                if 0 <= tx < width and ty < height:
                    error[ty, tx, 0] += dr * weight
                    error[ty, tx, 1] += dg * weight
                    error[ty, tx, 2] += db * weight


def map_snapshot(image: Any, snapshot: MappingSnapshot) -> np.ndarray:
    """
    Map an image onto the palette held by a snapshot.

    Args:
        image: PIL Image or RGB/RGBA array
        snapshot: Frozen palette, regions, rules and options

    Returns:
        New (H, W, 4) uint8 array; the input is never modified
    """
    src = to_rgba_array(image)
    out = src.copy()
    height, width = src.shape[:2]
    options = snapshot.options

    if not snapshot.palette:
        logger.warning("Empty palette; pixels pass through unchanged")
    elif height and width:
        table = InkTable(snapshot, height, width)
        rng = np.random.default_rng(options.seed)
        if options.dither:
            _map_dithered(src, out, table, rng)
        else:
            _map_vectorized(src, out, table, rng)

    if options.background_mode == BACKGROUND_FORCE_OPAQUE:
        out[..., 3] = 255

    logger.info(
        f"Mapped {width}x{height} image onto {len(snapshot.palette)} inks "
        f"(dither={options.dither}, regions={len(snapshot.regions)}, rules={len(snapshot.mix_rules)})"
    )
    return out


def map_to_palette(
    image: Any,
    palette: Sequence[Ink],
    options: Optional[MapperOptions] = None,
    regions: Optional[Sequence[Region]] = None,
    mix_rules: Union[Mapping[int, MixRule], Iterable[MixRule], None] = None,
) -> np.ndarray:
    """
    Map an image onto a restricted set of inks.

    The arguments are copied into an immutable snapshot first, so changes
    made to them while the pass runs are not observed.

    Args:
        image: PIL Image or RGB/RGBA array (H, W, 3|4)
        palette: Inks to map onto; indices are referenced by regions and rules
        options: MapperOptions (defaults when None)
        regions: Regions in the order they were added
        mix_rules: Rules keyed by the ink index they replace

    Returns:
        New (H, W, 4) uint8 array with the same dimensions as the input

    Example:
        >>> black_white = [Ink(Color(0, 0, 0)), Ink(Color(255, 255, 255))]
        >>> out = map_to_palette(photo, black_white, MapperOptions(dither=True))
    """
    snapshot = build_snapshot(palette, options, regions, mix_rules)
    return map_snapshot(image, snapshot)
