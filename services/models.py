from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from core.errors import BoundsAdjustedWarning


@dataclass(frozen=True)
class CommandResult:
    message: str
    changed: bool
    warnings: list[BoundsAdjustedWarning] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def warning_messages(self) -> list[str]:
        return [str(w) for w in self.warnings]


@dataclass(frozen=True)
class ChartPoint:
    power: int
    resistance: int


@dataclass(frozen=True)
class ChartSeries:
    cadence: int
    label: str
    color: str
    points: list[ChartPoint]
    active: bool = False
    original: bool = False
    opacity: float = 1.0


@dataclass(frozen=True)
class HistoryState:
    position: int
    size: int
    can_undo: bool
    can_redo: bool


@dataclass(frozen=True)
class EditorState:
    filename: str | None
    cadences: list[int]
    power_columns: list[int]
    point_count: int
    max_resistance: int
    storage_multiplier: int
    active_cadence: int | None
    show_original: bool
    original_opacity: int
    history: HistoryState
