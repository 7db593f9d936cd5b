"""
Project file storage and management for Ink Mapper.

This module handles the persistence layer for ink projects: converting an
InkProject to a plain JSON-compatible record and back, and reading/writing
records as .inkproj files.

The project record schema includes:
- Project metadata (name, creation date, schema version)
- Palette (hex color and tolerance per ink)
- Restricted ink selection
- Regions (mask packed as a flat bit array plus its dimensions)
- Mix rules
- Mapping options

Records are validated for types and ranges when loaded. Records written by
a newer schema version are rejected; no migration is attempted.

Functions:
    project_to_record: Convert an InkProject to a plain dictionary
    project_from_record: Validate a record and rebuild the InkProject
    create_project_file: Create a new project file
    list_project_files: List all project files in the Projects directory
    load_project_name: Load just the project name from a file
    load_project: Load an InkProject from a file
    save_project: Save an InkProject to a file
"""

import base64
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from INK_Libs.ColorLib.ink_models import Color, Ink, MixEntry, MixRule, Region
from INK_Libs.ColorLib.patterns import pattern_from_dict, pattern_to_dict
from INK_Libs.MappingLib.snapshot import MapperOptions
from INK_Libs.ProjStoreLib.ink_project import InkProject
from INK_Libs.constants import (
    DEFAULT_INK_TOLERANCE,
    FIELD_ALLOWED,
    FIELD_CREATED_AT,
    FIELD_ENTRIES,
    FIELD_HEIGHT,
    FIELD_HEX,
    FIELD_INK_INDEX,
    FIELD_MASK,
    FIELD_MIX_RULES,
    FIELD_NAME,
    FIELD_OPTIONS,
    FIELD_PALETTE,
    FIELD_PATTERN,
    FIELD_REGIONS,
    FIELD_RESTRICTED,
    FIELD_SCHEMA_VERSION,
    FIELD_SHARPEN_EDGES,
    FIELD_TARGET_HEX,
    FIELD_TARGET_INDEX,
    FIELD_TOLERANCE,
    FIELD_WEIGHT,
    FIELD_WIDTH,
    FILENAME_REPLACEMENT_CHAR,
    PROJECT_EXTENSION,
    PROJECTS_DIR_NAME,
    SAFE_FILENAME_CHARS,
    SCHEMA_VERSION,
)

logger = logging.getLogger(__name__)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(message)


def _as_list(record: Dict[str, Any], key: str) -> List[Any]:
    value = record.get(key, [])
    _require(isinstance(value, list), f"'{key}' must be a list, got {type(value).__name__}")
    return value


def _as_index(value: Any, field_name: str) -> int:
    _require(
        isinstance(value, int) and not isinstance(value, bool) and value >= 0,
        f"'{field_name}' must be a non-negative integer, got {value!r}",
    )
    return value


# ============================================================================
# Record conversion
# ============================================================================

def ink_to_dict(ink: Ink) -> Dict[str, Any]:
    return {FIELD_HEX: ink.color.hex, FIELD_TOLERANCE: float(ink.tolerance)}


def ink_from_dict(data: Any) -> Ink:
    _require(isinstance(data, dict), f"Ink must be a dictionary, got {type(data).__name__}")
    color = Color.from_hex(data.get(FIELD_HEX))
    _require(color is not None, f"Invalid ink color: {data.get(FIELD_HEX)!r}")
    tolerance = data.get(FIELD_TOLERANCE, DEFAULT_INK_TOLERANCE)
    _require(
        isinstance(tolerance, (int, float)) and not isinstance(tolerance, bool) and tolerance >= 0,
        f"Invalid ink tolerance: {tolerance!r}",
    )
    return Ink(color, float(tolerance))


def region_to_dict(region: Region) -> Dict[str, Any]:
    """Serialize a region; the mask is packed to bits, row-major, then base64-encoded."""
    packed = np.packbits(region.mask.reshape(-1).astype(np.uint8))
    return {
        FIELD_WIDTH: region.width,
        FIELD_HEIGHT: region.height,
        FIELD_MASK: base64.b64encode(packed.tobytes()).decode("ascii"),
        FIELD_ALLOWED: sorted(region.allowed),
    }


def region_from_dict(data: Any) -> Region:
    _require(isinstance(data, dict), f"Region must be a dictionary, got {type(data).__name__}")
    width = _as_index(data.get(FIELD_WIDTH), FIELD_WIDTH)
    height = _as_index(data.get(FIELD_HEIGHT), FIELD_HEIGHT)
    _require(width > 0 and height > 0, f"Region size must be positive, got {width}x{height}")

    encoded = data.get(FIELD_MASK)
    _require(isinstance(encoded, str), "Region mask must be a base64 string")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except ValueError as e:
        raise ValueError(f"Region mask is not valid base64: {e}") from e

    count = width * height
    _require(len(raw) == (count + 7) // 8, f"Region mask holds {len(raw)} bytes, expected {(count + 7) // 8}")
    bits = np.unpackbits(np.frombuffer(raw, dtype=np.uint8))[:count]

    allowed = data.get(FIELD_ALLOWED, [])
    _require(isinstance(allowed, list), "Region 'allowed' must be a list")
    indices = frozenset(_as_index(i, FIELD_ALLOWED) for i in allowed)
    return Region(mask=bits.reshape(height, width).astype(bool), allowed=indices)


def mix_rule_to_dict(index: int, rule: MixRule) -> Dict[str, Any]:
    data: Dict[str, Any] = {FIELD_TARGET_INDEX: int(index)}
    if isinstance(rule.target, Color):
        data[FIELD_TARGET_HEX] = rule.target.hex
    data[FIELD_ENTRIES] = [
        {
            FIELD_INK_INDEX: entry.ink_index,
            FIELD_WEIGHT: float(entry.weight),
            FIELD_PATTERN: pattern_to_dict(entry.pattern),
        }
        for entry in rule.entries
    ]
    return data


def mix_rule_from_dict(data: Any) -> Tuple[int, MixRule]:
    _require(isinstance(data, dict), f"Mix rule must be a dictionary, got {type(data).__name__}")
    index = _as_index(data.get(FIELD_TARGET_INDEX), FIELD_TARGET_INDEX)

    target: Any = index
    if FIELD_TARGET_HEX in data:
        target = Color.from_hex(data[FIELD_TARGET_HEX])
        _require(target is not None, f"Invalid mix rule target: {data[FIELD_TARGET_HEX]!r}")

    entries: List[MixEntry] = []
    for entry in _as_list(data, FIELD_ENTRIES):
        _require(isinstance(entry, dict), "Mix rule entry must be a dictionary")
        weight = entry.get(FIELD_WEIGHT, 1.0)
        _require(
            isinstance(weight, (int, float)) and not isinstance(weight, bool) and weight >= 0,
            f"Invalid mix weight: {weight!r}",
        )
        entries.append(
            MixEntry(
                ink_index=_as_index(entry.get(FIELD_INK_INDEX), FIELD_INK_INDEX),
                weight=float(weight),
                pattern=pattern_from_dict(entry.get(FIELD_PATTERN, {"kind": "checker"})),
            )
        )
    return index, MixRule(target=target, entries=entries)


def project_to_record(project: InkProject, name: str = "") -> Dict[str, Any]:
    """
    Convert a project to a JSON-compatible dictionary.

    Args:
        project: Project to serialize
        name: Human-readable project name

    Returns:
        Record dictionary (round-trips through project_from_record)
    """
    return {
        FIELD_SCHEMA_VERSION: SCHEMA_VERSION,
        FIELD_NAME: name,
        FIELD_CREATED_AT: datetime.now().isoformat(timespec="seconds"),
        FIELD_PALETTE: [ink_to_dict(ink) for ink in project.palette],
        FIELD_RESTRICTED: list(project.restricted),
        FIELD_REGIONS: [region_to_dict(region) for region in project.regions],
        FIELD_MIX_RULES: [mix_rule_to_dict(i, rule) for i, rule in sorted(project.mix_rules.items())],
        FIELD_OPTIONS: project.options.to_dict(),
        FIELD_SHARPEN_EDGES: bool(project.sharpen_edges),
    }


def project_from_record(record: Any) -> InkProject:
    """
    Validate a record and rebuild the project.

    Raises:
        ValueError: If any field has the wrong type or is out of range, or
                    the record comes from a newer schema version
    """
    _require(isinstance(record, dict), f"Project record must be a dictionary, got {type(record).__name__}")

    version = record.get(FIELD_SCHEMA_VERSION, SCHEMA_VERSION)
    _require(isinstance(version, int), f"Invalid schema version: {version!r}")
    _require(version <= SCHEMA_VERSION, f"Unsupported schema version {version} (newest known is {SCHEMA_VERSION})")

    palette = [ink_from_dict(item) for item in _as_list(record, FIELD_PALETTE)]
    restricted = [_as_index(i, FIELD_RESTRICTED) for i in _as_list(record, FIELD_RESTRICTED)]
    regions = [region_from_dict(item) for item in _as_list(record, FIELD_REGIONS)]
    mix_rules = dict(mix_rule_from_dict(item) for item in _as_list(record, FIELD_MIX_RULES))

    options_data = record.get(FIELD_OPTIONS, {})
    _require(isinstance(options_data, dict), "'options' must be a dictionary")
    try:
        options = MapperOptions.from_dict(options_data)
    except TypeError as e:
        raise ValueError(f"Invalid options: {e}") from e

    return InkProject(
        palette=palette,
        restricted=restricted,
        regions=regions,
        mix_rules=mix_rules,
        options=options,
        sharpen_edges=bool(record.get(FIELD_SHARPEN_EDGES, False)),
    )


# ============================================================================
# Project files
# ============================================================================

def get_projects_dir(base_dir: Path) -> Path:
    projects_dir = base_dir / PROJECTS_DIR_NAME
    projects_dir.mkdir(parents=True, exist_ok=True)
    return projects_dir


def list_project_files(base_dir: Path) -> List[Path]:
    projects_dir = get_projects_dir(base_dir)
    return sorted(projects_dir.glob(f"*{PROJECT_EXTENSION}"))


def create_project_file(base_dir: Path, project_name: str, project: Optional[InkProject] = None) -> Path:
    """
    Create a new project file.

    Args:
        base_dir: Base directory containing the Projects folder
        project_name: Human-readable name for the project
        project: Initial content (an empty project when omitted)

    Returns:
        Path to the created project file
    """
    projects_dir = get_projects_dir(base_dir)

    # Sanitize filename - keep only alphanumeric and safe characters
    safe_name = "".join(
        c if c.isalnum() or c in SAFE_FILENAME_CHARS else FILENAME_REPLACEMENT_CHAR
        for c in project_name
    ).strip(FILENAME_REPLACEMENT_CHAR)

    if not safe_name:
        safe_name = "new_project"

    project_path = projects_dir / f"{safe_name}{PROJECT_EXTENSION}"
    counter = 1
    while project_path.exists():
        project_path = projects_dir / f"{safe_name}_{counter}{PROJECT_EXTENSION}"
        counter += 1

    record = project_to_record(project or InkProject(), project_name)
    project_path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    logger.info(f"Created project file {project_path}")
    return project_path


def load_project_name(project_path: Path) -> str:
    """
    Load the project name from a project file.

    Returns:
        The project name, or the filename stem if loading fails
    """
    try:
        payload = json.loads(project_path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return project_path.stem

    if not isinstance(payload, dict):
        return project_path.stem
    return str(payload.get(FIELD_NAME) or project_path.stem)


def load_project(project_path: Path) -> InkProject:
    """
    Load and validate a project file.

    Raises:
        ValueError: If the file is missing, not JSON, or fails validation
    """
    try:
        payload = json.loads(project_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Could not read project file {project_path}: {e}") from e
    return project_from_record(payload)


def save_project(project_path: Path, project: InkProject, name: Optional[str] = None) -> None:
    """Write a project to disk, keeping the stored name and creation date when present."""
    record = project_to_record(project, name if name is not None else load_project_name(project_path))
    if name is None and project_path.exists():
        try:
            previous = json.loads(project_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            previous = {}
        if isinstance(previous, dict) and previous.get(FIELD_CREATED_AT):
            record[FIELD_CREATED_AT] = previous[FIELD_CREATED_AT]
    project_path.write_text(json.dumps(record, indent=2), encoding="utf-8")
    logger.debug(f"Saved project {project_path}")
