"""Collision avoidance and monotonicity enforcement.

Given a candidate (cadence, power, resistance), `resolve_resistance` returns a
corrected resistance that respects, against the *current* table:

- inter-line ordering: a higher cadence sits strictly below a lower cadence at
  the same power, including against the interpolated segments of lines that
  only bracket that power;
- the [0, max_resistance] bounds;
- intra-line strict monotonicity (resistance rises with power).

The steps run once, in that order. They are not iterated to a fixed point, so
the result can still be inconsistent when no valid value exists (e.g. a line
squeezed between two others that leave no gap). Callers that write the value
ask `placement_violations` afterwards and drop or reject the point.
"""

from __future__ import annotations

import logging

from core.interpolation import virtual_resistance
from core.power_table import PowerTable
from core.utils import clamp


logger = logging.getLogger(__name__)


def _push_past(cadence: int, other_cadence: int, safe: int, boundary: int) -> int:
    if cadence > other_cadence:
        # Higher cadence must stay strictly below.
        if safe >= boundary:
            return boundary - 1
    elif safe <= boundary:
        return boundary + 1
    return safe


def avoid_line_collisions(table: PowerTable, cadence: int, power: int, proposed: int) -> int:
    """Steps 1-2: push the value past other lines' points and segments."""

    safe = int(proposed)
    others = [c for c in table.cadences() if c != cadence]

    for other in others:
        other_resistance = table.get(other, power)
        if other_resistance is not None:
            safe = _push_past(cadence, other, safe, other_resistance)

    for other in others:
        if table.has_point(other, power):
            continue
        boundary = virtual_resistance(table.points(other), power)
        if boundary is not None:
            safe = _push_past(cadence, other, safe, boundary)

    return safe


def enforce_monotonicity(table: PowerTable, cadence: int, power: int, resistance: int) -> int:
    """Step 4: keep the value strictly between its neighbours on its own line."""

    adjusted = int(resistance)
    for other_power, other_resistance in table.points(cadence):
        if other_power < power and other_resistance >= adjusted:
            adjusted = other_resistance + 1
        elif other_power > power and other_resistance <= adjusted:
            adjusted = other_resistance - 1
    return adjusted


def resolve_resistance(table: PowerTable, cadence: int, power: int, proposed: int) -> int:
    """Return a resistance for (cadence, power) that satisfies the table invariants."""

    upper = table.max_resistance
    safe = avoid_line_collisions(table, cadence, power, proposed)
    safe = clamp(safe, 0, upper)
    safe = enforce_monotonicity(table, cadence, power, safe)
    safe = clamp(safe, 0, upper)
    if safe != proposed:
        logger.debug(
            "resistance_adjusted cadence=%s power=%s proposed=%s safe=%s",
            cadence,
            power,
            proposed,
            safe,
        )
    return safe


def _ordered(cadence: int, other_cadence: int, value: int, other_value: int) -> bool:
    if cadence > other_cadence:
        return value < other_value
    return value > other_value


def placement_violations(table: PowerTable, cadence: int, power: int) -> list[str]:
    """Issue codes the point already stored at (cadence, power) introduces.

    Only the constraints that involve this point are checked: its bounds, its
    neighbours on its own line, the other lines at the same power, and the
    other lines' points that fall under the segments on either side of it.
    Codes match the ones reported by the validation contract.
    """

    value = table.get(cadence, power)
    if value is None:
        raise KeyError((cadence, power))

    codes: list[str] = []
    if not 0 <= value <= table.max_resistance:
        codes.append("out_of_bounds")

    own = table.points(cadence)
    index = [w for w, _ in own].index(power)
    left = own[index - 1] if index > 0 else None
    right = own[index + 1] if index + 1 < len(own) else None
    if (left is not None and left[1] >= value) or (right is not None and right[1] <= value):
        codes.append("non_monotone_line")

    lo = left[0] if left is not None else power
    hi = right[0] if right is not None else power
    crossing = False
    segment_crossing = False
    for other in table.cadences():
        if other == cadence:
            continue
        other_points = table.points(other)
        exact = table.get(other, power)
        if exact is not None:
            crossing = crossing or not _ordered(cadence, other, value, exact)
        else:
            boundary = virtual_resistance(other_points, power)
            if boundary is not None and not _ordered(cadence, other, value, boundary):
                segment_crossing = True
        for other_power, other_value in other_points:
            if not lo < other_power < hi or other_power == power:
                continue
            ours = virtual_resistance(own, other_power)
            if ours is not None and not _ordered(cadence, other, ours, other_value):
                segment_crossing = True

    if crossing:
        codes.append("line_crossing")
    if segment_crossing:
        codes.append("segment_crossing")
    return codes
