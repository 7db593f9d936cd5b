"""
User preferences for Ink Mapper.

Preferences are a small JSON document holding the last used mapping
options, the last palette, named saved palettes and the sharpen toggle.
A missing or unreadable preferences file is never fatal: loading falls
back to defaults and logs a warning.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from INK_Libs.ColorLib.color_space import hex_to_color
from INK_Libs.MappingLib.snapshot import MapperOptions
from INK_Libs.constants import (
    FIELD_LAST_PALETTE,
    FIELD_OPTIONS,
    FIELD_SAVED_PALETTES,
    FIELD_SHARPEN_EDGES,
    PREFERENCES_FILE_NAME,
)

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    options: MapperOptions = field(default_factory=MapperOptions)
    last_palette: List[str] = field(default_factory=list)
    saved_palettes: Dict[str, List[str]] = field(default_factory=dict)
    sharpen_edges: bool = False

    def save_palette(self, name: str, hexes: List[str]) -> None:
        """Store a named palette, replacing any palette with the same name."""
        self.saved_palettes[name] = [h for h in hexes if hex_to_color(h) is not None]

    def delete_palette(self, name: str) -> bool:
        return self.saved_palettes.pop(name, None) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            FIELD_OPTIONS: self.options.to_dict(),
            FIELD_LAST_PALETTE: list(self.last_palette),
            FIELD_SAVED_PALETTES: {k: list(v) for k, v in self.saved_palettes.items()},
            FIELD_SHARPEN_EDGES: self.sharpen_edges,
        }


def _hex_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [h for h in value if isinstance(h, str) and hex_to_color(h) is not None]


def preferences_from_dict(data: Dict[str, Any]) -> Preferences:
    """
    Build Preferences from a decoded document.

    Fields that are missing or malformed keep their default values.
    """
    prefs = Preferences()

    options = data.get(FIELD_OPTIONS)
    if isinstance(options, dict):
        try:
            prefs.options = MapperOptions.from_dict(options)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid saved options: {e}")

    prefs.last_palette = _hex_list(data.get(FIELD_LAST_PALETTE))

    saved = data.get(FIELD_SAVED_PALETTES)
    if isinstance(saved, dict):
        prefs.saved_palettes = {str(name): _hex_list(hexes) for name, hexes in saved.items()}

    prefs.sharpen_edges = bool(data.get(FIELD_SHARPEN_EDGES, False))
    return prefs


def get_preferences_path(base_dir: Path) -> Path:
    return base_dir / PREFERENCES_FILE_NAME


def load_preferences(path: Path) -> Preferences:
    """
    Load preferences from a JSON file.

    Returns:
        The stored preferences, or defaults if the file is missing or corrupt
    """
    if not path.exists():
        return Preferences()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read preferences {path}, using defaults: {e}")
        return Preferences()

    if not isinstance(payload, dict):
        logger.warning(f"Preferences {path} are not a JSON object, using defaults")
        return Preferences()
    return preferences_from_dict(payload)


def save_preferences(path: Path, prefs: Preferences) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(prefs.to_dict(), indent=2), encoding="utf-8")
    logger.debug(f"Saved preferences to {path}")
