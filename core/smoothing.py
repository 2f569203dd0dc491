"""SmartSmooth: even spacing across cadence lines, then curve smoothing per line."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from core.constants import (
    SMOOTH_MAX_WINDOW,
    SMOOTH_MIN_LINE_POINTS,
    SMOOTH_MIN_LINES,
    SMOOTH_MIN_POWER_COLUMNS,
    SPACING_EXPONENT,
    SPACING_MIN_GAP_FRACTION,
)
from core.errors import InsufficientDataError
from core.power_table import PowerTable
from core.transform_report import AdjustmentReport
from core.utils import clamp, round_half_up


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmoothResult:
    adjustments: int
    spacing_adjustments: int
    curve_adjustments: int
    report: AdjustmentReport


def check_can_smooth(table: PowerTable) -> None:
    if table.is_empty():
        raise InsufficientDataError("No data to smooth. Load a .ptab file first.")
    if len(table.all_powers_used()) < SMOOTH_MIN_POWER_COLUMNS:
        raise InsufficientDataError(
            f"Need at least {SMOOTH_MIN_POWER_COLUMNS} watt levels for curve smoothing"
        )
    if len(table.cadences()) < SMOOTH_MIN_LINES:
        raise InsufficientDataError(f"Need at least {SMOOTH_MIN_LINES} cadence lines for smart smoothing")


def spaced_column(values: list[int]) -> list[int]:
    """Redistribute one power column (ordered by ascending cadence).

    The lowest cadence keeps the column maximum and the others step down
    towards the minimum along (i / (n - 1)) ** 1.5, never closer than
    max(1, 2% of the range) to their predecessor.
    """

    n = len(values)
    if n < 2:
        return list(values)
    low, high = min(values), max(values)
    span = high - low
    if span <= 0:
        return list(values)

    progress = (np.arange(n, dtype=float) / (n - 1)) ** SPACING_EXPONENT
    targets = [round_half_up(v) for v in high - progress * span]
    min_gap = max(1, round_half_up(span * SPACING_MIN_GAP_FRACTION))

    out: list[int] = []
    for i, target in enumerate(targets):
        if i > 0 and out[i - 1] - target < min_gap:
            target = out[i - 1] - min_gap
        out.append(max(0, target))
    return out


def smooth_curve(values: list[int], upper: int) -> list[int]:
    """Inverse-distance weighted smoothing of a line's interior points.

    Endpoints are left untouched; each interior point becomes the weighted mean
    of its neighbours within min(2, n // 3) positions, weight 1 / (1 + d).
    """

    n = len(values)
    if n < SMOOTH_MIN_LINE_POINTS:
        return list(values)
    y = np.asarray(values, dtype=float)
    window = min(SMOOTH_MAX_WINDOW, n // 3)

    out = list(values)
    for i in range(1, n - 1):
        lo, hi = max(0, i - window), min(n - 1, i + window)
        idx = np.arange(lo, hi + 1)
        weights = 1.0 / (1.0 + np.abs(idx - i))
        smoothed = float(np.sum(y[idx] * weights) / np.sum(weights))
        out[i] = clamp(round_half_up(smoothed), 0, upper)
    return out


def even_spacing(table: PowerTable, report: AdjustmentReport) -> None:
    for power in table.all_powers_used():
        column = table.column(power)
        spaced = spaced_column([r for _, r in column])
        for (cadence, before), after in zip(column, spaced):
            if before != after:
                table.set(cadence, power, after)
                report.add(cadence, power, before=before, after=after, reason="spacing")


def curve_smoothing(table: PowerTable, report: AdjustmentReport) -> None:
    upper = table.max_resistance
    for cadence in table.cadences():
        points = table.points(cadence)
        smoothed = smooth_curve([r for _, r in points], upper)
        for (power, before), after in zip(points, smoothed):
            if before != after:
                table.set(cadence, power, after)
                report.add(cadence, power, before=before, after=after, reason="curve")


def smart_smooth(table: PowerTable) -> SmoothResult:
    check_can_smooth(table)
    report = AdjustmentReport()
    even_spacing(table, report)
    curve_smoothing(table, report)
    spacing = len(report.by_reason("spacing"))
    curve = len(report.by_reason("curve"))
    logger.info("smart_smooth_done spacing=%s curve=%s", spacing, curve)
    return SmoothResult(
        adjustments=spacing + curve,
        spacing_adjustments=spacing,
        curve_adjustments=curve,
        report=report,
    )
