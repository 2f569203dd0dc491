"""Table editing session (FastAPI-free).

`TableEditor` is the command interface the chart/UI layer talks to. It owns the
live table, its undo history, the load-time reference copy and the session
selection (active cadence, overlay settings). Every mutating command:

1. validates its inputs and preconditions (errors leave everything untouched),
2. snapshots the history,
3. mutates the table through the core algorithms,
4. snapshots again and notifies listeners.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, TypeVar

from core.constants import CADENCE_COLORS, DEFAULT_ORIGINAL_OPACITY
from core.conflicts import check_can_resolve, resolve_conflicts
from core.contracts.power_table_contract import ValidationReport, validate_power_table
from core.errors import (
    BoundsAdjustedWarning,
    InsufficientDataError,
    InvalidValueError,
    NoActiveCadenceError,
    PointExistsError,
    PointNotFoundError,
)
from core.fill_sequence import generate_fill_sequence
from core.invariants import placement_violations, resolve_resistance
from core.power_table import PowerTable, TableConfig, TableSnapshot
from core.ptab_format import normalize_export_filename, parse_ptab, serialize_ptab
from core.settings import EditorSettings
from core.smart_fill import check_can_fill, smart_fill
from core.smoothing import check_can_smooth, smart_smooth
from core.utils import clamp, round_half_up
from services.history_service import HistoryManager
from services.models import ChartPoint, ChartSeries, CommandResult, EditorState, HistoryState


logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[str], None]


def coerce_int(value: Any, name: str, *, minimum: int = 0) -> int:
    """Integer user input, rejecting non-numeric values and values below `minimum`."""

    if isinstance(value, bool) or value is None:
        raise InvalidValueError(f"Invalid {name} value: {value!r}")
    if isinstance(value, int):
        out = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidValueError(f"Invalid {name} value: {value!r}")
        out = round_half_up(value)
    elif isinstance(value, str):
        try:
            out = int(value.strip())
        except ValueError:
            raise InvalidValueError(f"Invalid {name} value: {value!r}")
    else:
        raise InvalidValueError(f"Invalid {name} value: {value!r}")
    if out < minimum:
        raise InvalidValueError(f"Invalid {name} value: {out} (must be >= {minimum})")
    return out


def nearest_power_column(columns: list[int], x: float) -> int:
    """Closest power column to `x`; ties go to the lower power."""

    closest = columns[0]
    best = abs(x - closest)
    for power in columns[1:]:
        distance = abs(x - power)
        if distance < best:
            best = distance
            closest = power
    return closest


class TableEditor:
    def __init__(self, settings: EditorSettings | None = None, table: PowerTable | None = None):
        self.settings = settings or EditorSettings()
        self.table = table or PowerTable(
            config=TableConfig(
                max_resistance=self.settings.max_resistance,
                storage_multiplier=self.settings.storage_multiplier,
            )
        )
        self.history = HistoryManager(capacity=self.settings.history_capacity)
        self.history.reset(self.table)
        self.original: TableSnapshot | None = None
        self.active_cadence: int | None = None
        self.show_original = False
        self.original_opacity = DEFAULT_ORIGINAL_OPACITY
        self.filename: str | None = None
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def add_listener(self, callback: Listener) -> None:
        """Register a refresh callback, called with the command name."""

        self._listeners.append(callback)

    def _notify(self, event: str) -> None:
        for callback in list(self._listeners):
            callback(event)

    def _apply(self, event: str, mutate: Callable[[PowerTable], T]) -> T:
        self.history.snapshot(self.table)
        out = mutate(self.table)
        self.history.snapshot(self.table)
        self._notify(event)
        return out

    def _require_point(self, cadence: int, power: int) -> int:
        resistance = self.table.get(cadence, power)
        if resistance is None:
            raise PointNotFoundError(cadence, power)
        return resistance

    def _check_placement(self, cadence: int, power: int, value: int) -> None:
        trial = self.table.copy()
        trial.set(cadence, power, value)
        violations = placement_violations(trial, cadence, power)
        if violations:
            raise InvalidValueError(
                f"No resistance at {cadence} RPM @ {power}W keeps the table consistent "
                f"({', '.join(violations)}); resolve conflicts first or pick another value."
            )

    def _forget_missing_active(self) -> None:
        if self.active_cadence is not None and not self.table.has_line(self.active_cadence):
            self.active_cadence = None

    # ------------------------------------------------------------------
    # File
    # ------------------------------------------------------------------
    def load(self, text: str, filename: str | None = None) -> CommandResult:
        parsed = parse_ptab(
            text,
            storage_multiplier=self.table.config.storage_multiplier,
            max_resistance=self.table.max_resistance,
        )
        self.table = parsed.table
        self.history.reset(self.table)
        self.original = self.table.snapshot()
        self.filename = filename
        self._forget_missing_active()

        report = validate_power_table(self.table)
        logger.info(
            "table_loaded filename=%s cadences=%s points=%s issues=%s",
            filename,
            len(self.table.cadences()),
            self.table.point_count(),
            len(report.issues),
        )
        self._notify("load")
        return CommandResult(
            message=f"Loaded: {filename}" if filename else "Table loaded",
            changed=True,
            details={
                "power_columns": parsed.power_columns,
                "has_metadata": parsed.has_metadata,
                "skipped_rows": parsed.skipped_rows,
                "issues": [issue.code for issue in report.issues],
            },
        )

    def serialize(self) -> str:
        if self.table.is_empty():
            raise InsufficientDataError("No data to save")
        return serialize_ptab(self.table)

    def export_filename(self, name: str | None = None) -> str:
        return normalize_export_filename(name)

    # ------------------------------------------------------------------
    # Point commands
    # ------------------------------------------------------------------
    def add_point(self, cadence: Any, power: Any, resistance: Any) -> CommandResult:
        cadence = coerce_int(cadence, "cadence", minimum=1)
        power = coerce_int(power, "power", minimum=1)
        resistance = coerce_int(resistance, "resistance")
        if self.table.has_point(cadence, power):
            raise PointExistsError(cadence, power)

        sequence = generate_fill_sequence(self.table, cadence, power, resistance)

        def write(table: PowerTable) -> None:
            for w, r in sequence:
                table.set(cadence, w, r)

        self._apply("add_point", write)

        warnings: list[BoundsAdjustedWarning] = []
        applied = dict(sequence)[power]
        if applied != resistance:
            warnings.append(BoundsAdjustedWarning(cadence, power, resistance, applied))
            logger.warning("add_point_adjusted cadence=%s power=%s requested=%s applied=%s",
                           cadence, power, resistance, applied)
        logger.info("add_point cadence=%s power=%s added=%s", cadence, power, len(sequence))
        return CommandResult(
            message=f"Added {len(sequence)} point(s) with linear interpolation",
            changed=True,
            warnings=warnings,
            details={"points": [[w, r] for w, r in sequence]},
        )

    def add_point_near(self, power_x: Any, resistance_y: Any) -> CommandResult:
        """Chart click on empty space: add on the active line at the nearest power column."""

        if self.active_cadence is None:
            raise NoActiveCadenceError("Please select a cadence line first")
        try:
            x = float(power_x)
            y = float(resistance_y)
        except (TypeError, ValueError):
            raise InvalidValueError(f"Invalid chart position: ({power_x!r}, {resistance_y!r})")
        if not (math.isfinite(x) and math.isfinite(y)) or x < 0 or y < 0 or y > self.table.max_resistance:
            raise InvalidValueError(f"Chart position out of range: ({x}, {y})")

        columns = self.table.all_powers_used()
        if not columns:
            raise InsufficientDataError("No existing data points found. Please load a .ptab file first.")
        return self.add_point(self.active_cadence, nearest_power_column(columns, x), round_half_up(y))

    def edit_point(self, cadence: Any, power: Any, new_resistance: Any) -> CommandResult:
        cadence = coerce_int(cadence, "cadence", minimum=1)
        power = coerce_int(power, "power", minimum=1)
        requested = coerce_int(new_resistance, "resistance")
        self._require_point(cadence, power)

        safe = resolve_resistance(self.table, cadence, power, requested)
        self._check_placement(cadence, power, safe)
        self._apply("edit_point", lambda table: table.set(cadence, power, safe))

        warnings: list[BoundsAdjustedWarning] = []
        if safe != requested:
            warnings.append(BoundsAdjustedWarning(cadence, power, requested, safe))
            logger.warning("edit_point_adjusted cadence=%s power=%s requested=%s applied=%s",
                           cadence, power, requested, safe)
        return CommandResult(
            message="Point updated successfully",
            changed=True,
            warnings=warnings,
            details={"cadence": cadence, "power": power, "resistance": safe},
        )

    def delete_point(self, cadence: Any, power: Any) -> CommandResult:
        cadence = coerce_int(cadence, "cadence", minimum=1)
        power = coerce_int(power, "power", minimum=1)
        self._require_point(cadence, power)

        self._apply("delete_point", lambda table: table.remove(cadence, power))
        self._forget_missing_active()
        return CommandResult(message="Point deleted", changed=True, details={"cadence": cadence, "power": power})

    # ------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------
    def drag_start(self, cadence: Any) -> CommandResult:
        cadence = coerce_int(cadence, "cadence", minimum=1)
        if not self.table.has_line(cadence):
            raise InvalidValueError(f"No {cadence} RPM line")
        if self.active_cadence == cadence:
            return CommandResult(message="Started dragging point", changed=False)
        self.active_cadence = cadence
        self._notify("select")
        return CommandResult(message=f"Switched to {cadence} RPM and started dragging point", changed=False)

    def drag_move(self, cadence: Any, power: Any, resistance: Any) -> int:
        """Preview value for a point being dragged (no mutation)."""

        cadence = coerce_int(cadence, "cadence", minimum=1)
        power = coerce_int(power, "power", minimum=1)
        try:
            y = float(resistance)
        except (TypeError, ValueError):
            raise InvalidValueError(f"Invalid resistance value: {resistance!r}")
        if not math.isfinite(y):
            raise InvalidValueError(f"Invalid resistance value: {resistance!r}")
        self._require_point(cadence, power)

        bounded = clamp(round_half_up(y), 0, self.table.max_resistance)
        return resolve_resistance(self.table, cadence, power, bounded)

    def drag_end(self, cadence: Any, power: Any, resistance: Any) -> CommandResult:
        safe = self.drag_move(cadence, power, resistance)
        cadence = coerce_int(cadence, "cadence", minimum=1)
        power = coerce_int(power, "power", minimum=1)
        self._check_placement(cadence, power, safe)

        self._apply("drag_end", lambda table: table.set(cadence, power, safe))
        self.active_cadence = cadence

        warnings: list[BoundsAdjustedWarning] = []
        requested = round_half_up(float(resistance))
        if safe != requested:
            warnings.append(BoundsAdjustedWarning(cadence, power, requested, safe))
        return CommandResult(
            message=f"Point updated: {power}W -> {safe} resistance",
            changed=True,
            warnings=warnings,
            details={"cadence": cadence, "power": power, "resistance": safe},
        )

    # ------------------------------------------------------------------
    # Whole-table operations
    # ------------------------------------------------------------------
    def smart_fill(self) -> CommandResult:
        check_can_fill(self.table)
        result = self._apply("smart_fill", smart_fill)
        return CommandResult(
            message=(
                f"SmartFill completed: Added {result.points_added} data points "
                f"(checked {result.cells_checked} cells)"
            ),
            changed=result.points_added > 0,
            details={
                "cells_checked": result.cells_checked,
                "points_added": result.points_added,
                "cells_skipped": result.cells_skipped,
            },
        )

    def resolve_conflicts(self) -> CommandResult:
        check_can_resolve(self.table)
        result = self._apply("resolve_conflicts", resolve_conflicts)
        return CommandResult(
            message=f"Conflicts resolved: Made {result.adjustments} adjustments",
            changed=result.adjustments > 0,
            details={
                "adjustments": result.adjustments,
                "monotonicity": len(result.report.by_reason("monotonicity")),
                "crossings": len(result.report.by_reason("crossing")),
            },
        )

    def smart_smooth(self) -> CommandResult:
        check_can_smooth(self.table)
        result = self._apply("smart_smooth", smart_smooth)
        # Spacing works per column and can leave a line that no longer rises.
        report = validate_power_table(self.table)
        message = f"SmartSmooth completed: Made {result.adjustments} adjustments"
        if not report.ok:
            logger.warning("smart_smooth_left_issues codes=%s", sorted(report.codes()))
            message += " (table has conflicts, run Resolve Conflicts)"
        return CommandResult(
            message=message,
            changed=result.adjustments > 0,
            details={
                "adjustments": result.adjustments,
                "spacing": result.spacing_adjustments,
                "curve": result.curve_adjustments,
                "issues": [issue.code for issue in report.issues],
            },
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def _restore(self, table: PowerTable | None, event: str, done: str, idle: str) -> CommandResult:
        if table is None:
            return CommandResult(message=idle, changed=False)
        self.table = table
        self._forget_missing_active()
        self._notify(event)
        return CommandResult(message=done, changed=True)

    def undo(self) -> CommandResult:
        return self._restore(self.history.undo(), "undo", "Undid last action", "Nothing to undo")

    def redo(self) -> CommandResult:
        return self._restore(self.history.redo(), "redo", "Redid action", "Nothing to redo")

    # ------------------------------------------------------------------
    # Session settings
    # ------------------------------------------------------------------
    def set_active_cadence(self, cadence: Any) -> CommandResult:
        if cadence is None:
            self.active_cadence = None
            self._notify("select")
            return CommandResult(message="No active cadence", changed=False)
        cadence = coerce_int(cadence, "cadence", minimum=1)
        if not self.table.has_line(cadence):
            raise InvalidValueError(f"No {cadence} RPM line")
        self.active_cadence = cadence
        self._notify("select")
        return CommandResult(message=f"Active cadence: {cadence} RPM", changed=False)

    def set_config(self, max_resistance: Any = None, storage_multiplier: Any = None) -> CommandResult:
        """Update the table configuration as one undoable step.

        Every value is checked before the snapshot, so a bad multiplier never
        leaves a new ceiling behind. The ceiling may not drop below a stored
        point.
        """

        if max_resistance is None and storage_multiplier is None:
            raise InvalidValueError("Nothing to update")
        changes: dict[str, int] = {}
        if max_resistance is not None:
            changes["max_resistance"] = coerce_int(max_resistance, "max resistance", minimum=1)
        if storage_multiplier is not None:
            changes["storage_multiplier"] = coerce_int(storage_multiplier, "table multiplier", minimum=1)

        ceiling = changes.get("max_resistance")
        if ceiling is not None:
            highest = max((r for _, _, r in self.table.iter_points()), default=0)
            if highest > ceiling:
                raise InvalidValueError(
                    f"Max resistance {ceiling} is below the highest stored value ({highest})"
                )

        def update(table: PowerTable) -> None:
            for name, value in changes.items():
                setattr(table.config, name, value)

        self._apply("config", update)
        logger.info("config_updated %s", " ".join(f"{k}={v}" for k, v in changes.items()))
        return CommandResult(message="Settings updated", changed=True, details=changes)

    def set_max_resistance(self, value: Any) -> CommandResult:
        return self.set_config(max_resistance=value)

    def set_storage_multiplier(self, value: Any) -> CommandResult:
        return self.set_config(storage_multiplier=value)

    def toggle_original(self) -> CommandResult:
        if self.original is None or self.original.point_count == 0:
            raise InsufficientDataError("No original data available. Please load a .ptab file first.")
        self.show_original = not self.show_original
        self._notify("overlay")
        if self.show_original:
            return CommandResult(message="Showing original data overlay", changed=False)
        return CommandResult(message="Original data overlay hidden", changed=False)

    def set_original_opacity(self, percent: Any) -> CommandResult:
        try:
            value = float(percent)
        except (TypeError, ValueError):
            raise InvalidValueError(f"Invalid opacity value: {percent!r}")
        if not math.isfinite(value):
            raise InvalidValueError(f"Invalid opacity value: {percent!r}")
        self.original_opacity = clamp(round_half_up(value), 0, 100)
        self._notify("overlay")
        return CommandResult(message=f"Original overlay opacity: {self.original_opacity}%", changed=False)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def validate(self) -> ValidationReport:
        return validate_power_table(self.table)

    def chart_series(self) -> list[ChartSeries]:
        series: list[ChartSeries] = []
        if self.show_original and self.original is not None:
            original = self.original.to_table()
            for index, cadence in enumerate(original.cadences()):
                series.append(
                    ChartSeries(
                        cadence=cadence,
                        label=f"{cadence} RPM (Original)",
                        color=CADENCE_COLORS[index % len(CADENCE_COLORS)],
                        points=[ChartPoint(power=w, resistance=r) for w, r in original.points(cadence)],
                        original=True,
                        opacity=self.original_opacity / 100,
                    )
                )
        for index, cadence in enumerate(self.table.cadences()):
            series.append(
                ChartSeries(
                    cadence=cadence,
                    label=f"{cadence} RPM",
                    color=CADENCE_COLORS[index % len(CADENCE_COLORS)],
                    points=[ChartPoint(power=w, resistance=r) for w, r in self.table.points(cadence)],
                    active=cadence == self.active_cadence,
                )
            )
        return series

    def state(self) -> EditorState:
        return EditorState(
            filename=self.filename,
            cadences=self.table.cadences(),
            power_columns=self.table.all_powers_used(),
            point_count=self.table.point_count(),
            max_resistance=self.table.max_resistance,
            storage_multiplier=self.table.config.storage_multiplier,
            active_cadence=self.active_cadence,
            show_original=self.show_original,
            original_opacity=self.original_opacity,
            history=HistoryState(
                position=self.history.position,
                size=self.history.size,
                can_undo=self.history.can_undo,
                can_redo=self.history.can_redo,
            ),
        )
