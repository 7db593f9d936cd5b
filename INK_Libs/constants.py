"""
Constants and configuration values for Ink Mapper.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the library.
"""

# Project file constants
PROJECTS_DIR_NAME = "Projects"
PROJECT_EXTENSION = ".inkproj"
PREFERENCES_FILE_NAME = "ink_mapper_prefs.json"
SCHEMA_VERSION = 1

# Color space (D65 white reference)
WHITE_X = 0.95047
WHITE_Y = 1.0
WHITE_Z = 1.08883
LAB_EPSILON = 0.008856
LAB_KAPPA_SLOPE = 7.787
SRGB_LINEAR_THRESHOLD = 0.04045

# Inks and mapping
DEFAULT_INK_TOLERANCE = 64.0
DEFAULT_TOLERANCE_DISCOUNT = 0.75
BACKGROUND_KEEP = "keep"
BACKGROUND_FORCE_OPAQUE = "force_opaque"
BACKGROUND_MODES = (BACKGROUND_KEEP, BACKGROUND_FORCE_OPAQUE)

# Floyd-Steinberg neighbours as (dx, dy, weight)
FLOYD_STEINBERG_WEIGHTS = (
    (1, 0, 7.0 / 16.0),
    (-1, 1, 3.0 / 16.0),
    (0, 1, 5.0 / 16.0),
    (1, 1, 1.0 / 16.0),
)

# Patterns
PATTERN_CHECKER = "checker"
PATTERN_ORDERED2 = "ordered2"
PATTERN_ORDERED4 = "ordered4"
PATTERN_STRIPES = "stripes"
PATTERN_STIPPLE = "stipple"
DEFAULT_CHECKER_SIZE = 2
DEFAULT_STRIPE_WIDTH = 4
DEFAULT_STIPPLE_DENSITY = 0.5
DEFAULT_STIPPLE_JITTER = 0.15
DEFAULT_ORDERED_THRESHOLD = 0.5
ORDERED2_MATRIX = (
    (0, 2),
    (3, 1),
)
ORDERED4_MATRIX = (
    (0, 8, 2, 10),
    (12, 4, 14, 6),
    (3, 11, 1, 9),
    (15, 7, 13, 5),
)

# Palette clustering
MIN_CLUSTER_COUNT = 2
MAX_CLUSTER_COUNT = 16
DEFAULT_CLUSTER_COUNT = 10
DEFAULT_CLUSTER_ITERATIONS = 10
CLUSTER_SAMPLE_TARGET = 120000

# Mix solver
SOLVER_STEP_SIZE = 0.08
SOLVER_ITERATIONS = 60
DEFAULT_MAX_INKS = 3
SUGGEST_WORKING_SIZE = 96
SUGGEST_HUE_SECTORS = 6
SUGGEST_LUMA_BANDS = 3
SUGGEST_MAX_TARGETS = 6
SUGGEST_MIN_WEIGHT = 0.05

# Sharpening
DEFAULT_SHARPEN_AMOUNT = 0.35
SHARPEN_KERNEL = (
    (0, -1, 0),
    (-1, 5, -1),
    (0, -1, 0),
)

# Project record field names
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_NAME = "name"
FIELD_CREATED_AT = "created_at"
FIELD_PALETTE = "palette"
FIELD_RESTRICTED = "restricted"
FIELD_REGIONS = "regions"
FIELD_MIX_RULES = "mix_rules"
FIELD_OPTIONS = "options"

# Ink / region / rule field names
FIELD_HEX = "hex"
FIELD_TOLERANCE = "tolerance"
FIELD_WIDTH = "width"
FIELD_HEIGHT = "height"
FIELD_MASK = "mask"
FIELD_ALLOWED = "allowed"
FIELD_TARGET_INDEX = "target_index"
FIELD_TARGET_HEX = "target_hex"
FIELD_ENTRIES = "entries"
FIELD_INK_INDEX = "ink_index"
FIELD_WEIGHT = "weight"
FIELD_PATTERN = "pattern"
FIELD_KIND = "kind"

# Preferences field names
FIELD_LAST_PALETTE = "last_palette"
FIELD_SAVED_PALETTES = "saved_palettes"
FIELD_SHARPEN_EDGES = "sharpen_edges"

# Safe filename characters
SAFE_FILENAME_CHARS = "-_"
FILENAME_REPLACEMENT_CHAR = "_"

DEFAULT_OUTPUT_FORMAT = "PNG"
