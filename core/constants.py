"""Shared constants (FastAPI-free).

This module centralises the defaults and tuning values used by core/ and services/.
Keep this module free of dependencies (stdlib only).
"""

from __future__ import annotations


# Resistance ceiling used when a .ptab file carries no HMax metadata.
DEFAULT_MAX_RESISTANCE: int = 32029

# Scale factor between on-disk resistance units and in-memory units.
DEFAULT_STORAGE_MULTIPLIER: int = 10

# Spacing (W) of synthesized points when a new point is added to a line.
FILL_PITCH_W: int = 30

# Undo/redo depth.
HISTORY_CAPACITY: int = 50

# Smart-smooth tuning.
SMOOTH_MIN_POWER_COLUMNS: int = 4
SMOOTH_MIN_LINES: int = 2
SMOOTH_MIN_LINE_POINTS: int = 4
SPACING_EXPONENT: float = 1.5
SPACING_MIN_GAP_FRACTION: float = 0.02
SMOOTH_MAX_WINDOW: int = 2

# File format.
PTAB_EXTENSION: str = ".ptab"
DEFAULT_EXPORT_NAME: str = "powertable"
METADATA_PREFIX: str = "# METADATA:HMax="
HEADER_LABEL: str = "Cadence/Power"

# Original overlay display defaults (percent).
DEFAULT_ORIGINAL_OPACITY: int = 37

# Line colours, assigned by ascending cadence index.
CADENCE_COLORS: tuple[str, ...] = (
    "#9C27B0",
    "#3F51B5",
    "#2196F3",
    "#00BCD4",
    "#009688",
    "#4CAF50",
    "#8BC34A",
    "#FF9800",
    "#F44336",
    "#E91E63",
)
