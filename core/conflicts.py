"""Deterministic two-pass repair of an already populated table.

Pass 1 walks every line by ascending power and lifts any point that does not
rise above its predecessor. Pass 2 walks every power column by ascending
cadence and lowers any point that is not below its lower-cadence neighbour,
carrying the corrected value forward. Both passes are greedy and local; the
result is not a minimal edit of the input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.errors import InsufficientDataError
from core.power_table import PowerTable
from core.transform_report import AdjustmentReport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolveResult:
    adjustments: int
    report: AdjustmentReport


def check_can_resolve(table: PowerTable) -> None:
    if table.is_empty():
        raise InsufficientDataError("No data to resolve conflicts. Load a .ptab file first.")


def fix_line_monotonicity(table: PowerTable, report: AdjustmentReport) -> None:
    upper = table.max_resistance
    for cadence in table.cadences():
        powers = table.powers_of(cadence)
        for prev_power, power in zip(powers, powers[1:]):
            prev_resistance = table.get(cadence, prev_power)
            current = table.get(cadence, power)
            if current <= prev_resistance:
                fixed = min(prev_resistance + 1, upper)
                table.set(cadence, power, fixed)
                report.add(cadence, power, before=current, after=fixed, reason="monotonicity")


def fix_line_crossings(table: PowerTable, report: AdjustmentReport) -> None:
    for power in table.all_powers_used():
        column = table.column(power)
        for i in range(1, len(column)):
            cadence, current = column[i]
            previous = column[i - 1][1]
            if current >= previous:
                fixed = max(0, previous - 1)
                table.set(cadence, power, fixed)
                report.add(cadence, power, before=current, after=fixed, reason="crossing")
                column[i] = (cadence, fixed)


def resolve_conflicts(table: PowerTable) -> ResolveResult:
    """Repair `table` in place; returns the number of adjustments made."""

    check_can_resolve(table)
    report = AdjustmentReport()
    fix_line_monotonicity(table, report)
    fix_line_crossings(table, report)
    logger.info(
        "resolve_conflicts_done monotonicity=%s crossings=%s",
        len(report.by_reason("monotonicity")),
        len(report.by_reason("crossing")),
    )
    return ResolveResult(adjustments=len(report), report=report)
