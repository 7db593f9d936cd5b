"""
Single import seam for Pillow.

Ink Mapper reads and writes images with Pillow and rasterizes lasso
polygons with its ImageDraw module. Both are loaded here via importlib so
the rest of the package imports `Image`, `ImageDraw` and `ImageClass` from
one place, and a missing Pillow install fails with one clear message.
"""
from importlib import import_module
from types import ModuleType


def _require(name: str) -> ModuleType:
    try:
        return import_module(name)
    except ImportError as e:
        raise ImportError(f"{name} is unavailable; Ink Mapper needs Pillow ('pip install Pillow')") from e


Image = _require("PIL.Image")
ImageDraw = _require("PIL.ImageDraw")

# PIL.Image.Image, for isinstance checks and type hints
ImageClass = Image.Image
