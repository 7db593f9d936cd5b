"""
ColorLib - Color science and ink modelling

Lab conversion and perceptual distance, ink/region/mix-rule models,
coverage patterns, palette clustering and mix solving.
"""

from INK_Libs.ColorLib.color_space import (
    color_to_hex,
    hex_to_color,
    perceptual_distance,
    rgb_to_lab,
)
from INK_Libs.ColorLib.ink_models import (
    Color,
    Ink,
    MixEntry,
    MixRule,
    Region,
    palette_from_colors,
    palette_from_hex,
)
from INK_Libs.ColorLib.patterns import (
    Checker,
    Ordered2,
    Ordered4,
    Stipple,
    Stripes,
    evaluate_coverage,
)
from INK_Libs.ColorLib.palette_clusterer import cluster_palette, sample_for_clustering
from INK_Libs.ColorLib.mix_solver import (
    MixProposal,
    MixSolution,
    propose_mix,
    solve_mix,
    suggest_mixes_for_image,
)

__all__ = [
    "color_to_hex",
    "hex_to_color",
    "perceptual_distance",
    "rgb_to_lab",
    "Color",
    "Ink",
    "MixEntry",
    "MixRule",
    "Region",
    "palette_from_colors",
    "palette_from_hex",
    "Checker",
    "Ordered2",
    "Ordered4",
    "Stipple",
    "Stripes",
    "evaluate_coverage",
    "cluster_palette",
    "sample_for_clustering",
    "MixProposal",
    "MixSolution",
    "propose_mix",
    "solve_mix",
    "suggest_mixes_for_image",
]
