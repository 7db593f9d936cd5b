"""
MappingLib - Mapping images onto ink palettes

This module snapshots mapping inputs, classifies pixels to inks (with
regions, mix rules and optional dithering), and provides the surrounding
helpers: image buffers, lasso masks, sharpening and ink reports.
"""

from INK_Libs.MappingLib.snapshot import MapperOptions, MappingSnapshot, build_snapshot
from INK_Libs.MappingLib.pixel_mapper import map_snapshot, map_to_palette
from INK_Libs.MappingLib.image_buffers import load_image, to_pil_image, to_rgba_array
from INK_Libs.MappingLib.region_masks import polygon_to_mask, region_from_polygon
from INK_Libs.MappingLib.sharpen import unsharp_mask
from INK_Libs.MappingLib.ink_report import build_ink_report

__all__ = [
    "MapperOptions",
    "MappingSnapshot",
    "build_snapshot",
    "map_snapshot",
    "map_to_palette",
    "load_image",
    "to_pil_image",
    "to_rgba_array",
    "polygon_to_mask",
    "region_from_polygon",
    "unsharp_mask",
    "build_ink_report",
]
