"""SmartFill: complete every line at every power column already in use.

For each line and each missing power column:

- bracketed on both sides -> linear interpolation;
- only a left bracket -> forward extrapolation along the last two known points;
- only a right bracket -> backward extrapolation along the first two known points;
- fewer than two known points -> the cell stays empty.

A cell whose enforced value still breaks an invariant (no room between the
neighbouring lines) is left empty and counted in `cells_skipped`.

Brackets come from the points the line held before it was filled; every
computed value goes through `resolve_resistance` against the live table,
including the cells filled earlier in the same run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.errors import InsufficientDataError
from core.interpolation import extrapolate, find_brackets, interpolate_between
from core.invariants import placement_violations, resolve_resistance
from core.power_table import PowerTable
from core.transform_report import AdjustmentReport
from core.utils import clamp


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmartFillResult:
    cells_checked: int
    points_added: int
    report: AdjustmentReport
    cells_skipped: int = 0


def estimate_missing(known: list[tuple[int, int]], power: int) -> int | None:
    """Estimated resistance at `power` from a line's known points (sorted)."""

    if len(known) < 2:
        return None
    left, right = find_brackets(known, power)
    if left is not None and right is not None:
        return interpolate_between(left[0], left[1], right[0], right[1], power)
    if left is not None:
        (p_b, r_b), (p_a, r_a) = known[-2], known[-1]
        return extrapolate(p_a, r_a, p_b, r_b, power)
    if right is not None:
        (p_a, r_a), (p_b, r_b) = known[0], known[1]
        return extrapolate(p_a, r_a, p_b, r_b, power)
    return None


def check_can_fill(table: PowerTable) -> list[int]:
    """Power columns to fill; raises InsufficientDataError when there are none."""

    columns = table.all_powers_used()
    if not columns:
        raise InsufficientDataError("No existing data points found to interpolate from.")
    return columns


def smart_fill(table: PowerTable) -> SmartFillResult:
    """Fill `table` in place and report what was scanned and added."""

    columns = check_can_fill(table)
    report = AdjustmentReport()
    cells_checked = 0
    cells_skipped = 0
    upper = table.max_resistance

    logger.debug("smart_fill_start columns=%s cadences=%s", columns, table.cadences())

    for cadence in table.cadences():
        known = table.points(cadence)
        for power in columns:
            cells_checked += 1
            if table.has_point(cadence, power):
                continue
            estimate = estimate_missing(known, power)
            if estimate is None:
                logger.debug("smart_fill_skip cadence=%s power=%s known=%s", cadence, power, len(known))
                continue
            value = clamp(resolve_resistance(table, cadence, power, estimate), 0, upper)
            table.set(cadence, power, value)
            violations = placement_violations(table, cadence, power)
            if violations:
                table.remove(cadence, power)
                cells_skipped += 1
                logger.debug(
                    "smart_fill_inconsistent cadence=%s power=%s value=%s issues=%s",
                    cadence,
                    power,
                    value,
                    violations,
                )
                continue
            report.add(cadence, power, before=None, after=value, reason="fill")

    logger.info(
        "smart_fill_done cells_checked=%s points_added=%s cells_skipped=%s",
        cells_checked,
        len(report),
        cells_skipped,
    )
    return SmartFillResult(
        cells_checked=cells_checked,
        points_added=len(report),
        report=report,
        cells_skipped=cells_skipped,
    )
