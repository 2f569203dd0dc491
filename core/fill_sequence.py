"""Point synthesis when a new point is added to a line.

Adding a point beyond the end of a line extends it with points every
`FILL_PITCH_W` watts so that the line keeps a regular shape. Adding a point
inside an existing bracket only fills the sub-gaps (left -> target and
target -> right) that are wide enough to hold a pitch-spaced point at least one
pitch away from both of its anchors.
"""

from __future__ import annotations

import logging

from core.constants import FILL_PITCH_W
from core.errors import InvalidValueError
from core.interpolation import find_brackets, interpolate_between
from core.invariants import placement_violations, resolve_resistance
from core.power_table import PowerTable
from core.utils import round_half_up


logger = logging.getLogger(__name__)


def _inner_grid(start: int, end: int, pitch: int) -> list[int]:
    """Pitch-spaced powers after `start`, keeping one pitch clear of `end`."""

    return list(range(start + pitch, end - pitch + 1, pitch))


def _candidates(
    points: list[tuple[int, int]],
    target_power: int,
    target_resistance: int,
    pitch: int,
) -> list[tuple[int, int]]:
    left, right = find_brackets(points, target_power)
    out: list[tuple[int, int]] = []

    if left is not None and right is not None:
        for w in _inner_grid(left[0], target_power, pitch):
            out.append((w, interpolate_between(left[0], left[1], target_power, target_resistance, w)))
        out.append((target_power, target_resistance))
        for w in _inner_grid(target_power, right[0], pitch):
            out.append((w, interpolate_between(target_power, target_resistance, right[0], right[1], w)))
    elif left is not None:
        slope = (target_resistance - left[1]) / (target_power - left[0])
        for w in range(left[0] + pitch, target_power + 1, pitch):
            out.append((w, round_half_up(left[1] + slope * (w - left[0]))))
    elif right is not None:
        slope = (right[1] - target_resistance) / (right[0] - target_power)
        for w in range(target_power, right[0], pitch):
            out.append((w, round_half_up(target_resistance + slope * (w - target_power))))

    # The target is always part of the sequence, on the pitch grid or not.
    if all(w != target_power for w, _ in out):
        out.append((target_power, target_resistance))
    return sorted(out)


def generate_fill_sequence(
    table: PowerTable,
    cadence: int,
    target_power: int,
    target_resistance: int,
    *,
    pitch: int = FILL_PITCH_W,
) -> list[tuple[int, int]]:
    """Points (power, resistance) to write on `cadence` for a new target point.

    The target is resolved first. Every synthesized point is then passed
    through `resolve_resistance` against a scratch copy of the table that
    already holds the accepted points, and is dropped when the result still
    breaks an invariant. Raises InvalidValueError when the target itself has
    no consistent value. The live table is not modified.
    """

    scratch = table.copy()
    candidates = _candidates(scratch.points(cadence), target_power, target_resistance, pitch)

    safe = resolve_resistance(scratch, cadence, target_power, target_resistance)
    scratch.set(cadence, target_power, safe)
    violations = placement_violations(scratch, cadence, target_power)
    if violations:
        raise InvalidValueError(
            f"No resistance at {cadence} RPM @ {target_power}W keeps the table consistent "
            f"({', '.join(violations)}); resolve conflicts first or pick another point."
        )
    accepted = [(target_power, safe)]

    for power, resistance in candidates:
        if power == target_power or scratch.has_point(cadence, power):
            continue
        safe = resolve_resistance(scratch, cadence, power, resistance)
        scratch.set(cadence, power, safe)
        violations = placement_violations(scratch, cadence, power)
        if violations:
            scratch.remove(cadence, power)
            logger.debug(
                "fill_point_dropped cadence=%s power=%s value=%s issues=%s",
                cadence,
                power,
                safe,
                violations,
            )
            continue
        accepted.append((power, safe))
    return sorted(accepted)
