"""Linear interpolation / extrapolation along one cadence line.

All results are rounded to the nearest integer resistance (halves up).
"""

from __future__ import annotations

from typing import Sequence

from core.utils import round_half_up


def interpolate_between(p1: int, r1: int, p2: int, r2: int, p: int) -> int:
    """Resistance at `p` on the segment (p1, r1) -> (p2, r2)."""

    if p2 == p1:
        return int(r1)
    return round_half_up(r1 + (r2 - r1) * (p - p1) / (p2 - p1))


def extrapolate(p_a: int, r_a: int, p_b: int, r_b: int, p: int) -> int:
    """Resistance at `p` on the line through A and B, measured from A.

    Used for `p` outside [p_a, p_b]: A is the outermost known point on the side
    of `p`, B its inner neighbour.
    """

    if p_b == p_a:
        return int(r_a)
    slope = (r_b - r_a) / (p_b - p_a)
    return round_half_up(r_a + slope * (p - p_a))


def find_brackets(
    points: Sequence[tuple[int, int]],
    power: int,
) -> tuple[tuple[int, int] | None, tuple[int, int] | None]:
    """Nearest known point strictly below and strictly above `power`.

    `points` must be sorted by ascending power.
    """

    left: tuple[int, int] | None = None
    right: tuple[int, int] | None = None
    for point in points:
        if point[0] < power:
            left = point
        elif point[0] > power:
            right = point
            break
    return left, right


def virtual_resistance(points: Sequence[tuple[int, int]], power: int) -> int | None:
    """Interpolated resistance of a line at `power`, or None.

    Only defined when `power` lies strictly inside one of the line's segments;
    a line that holds `power` exactly, or does not bracket it, returns None.
    """

    for (w1, r1), (w2, r2) in zip(points, points[1:]):
        if w1 < power < w2:
            return interpolate_between(w1, r1, w2, r2, power)
    return None
