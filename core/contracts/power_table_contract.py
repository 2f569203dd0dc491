"""Power table consistency contract (FastAPI-free).

Objectives:
- state the invariants a committed table must hold
- report violations at the service/API boundary without fixing them
  (repair is `core.conflicts`' job)

Invariants:
1. bounds: 0 <= resistance <= max_resistance
2. each line rises strictly with power
3. at a shared power, a higher cadence sits strictly below a lower cadence
4. a point never sits on the wrong side of another line's segment
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.errors import InvalidValueError
from core.interpolation import virtual_resistance
from core.power_table import PowerTable


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ValidationReport:
    ok: bool
    issues: list[ValidationIssue]

    def codes(self) -> set[str]:
        return {issue.code for issue in self.issues}

    def raise_for_issues(self) -> None:
        if self.ok:
            return
        lines = ["Power table violates its invariants:"]
        for issue in self.issues:
            lines.append(f"- {issue.code}: {issue.message}")
        raise InvalidValueError("\n".join(lines))


def _check_bounds(table: PowerTable, issues: list[ValidationIssue]) -> None:
    upper = table.max_resistance
    for cadence, power, resistance in table.iter_points():
        if resistance < 0 or resistance > upper:
            issues.append(
                ValidationIssue(
                    code="out_of_bounds",
                    message=f"{cadence} RPM @ {power}W = {resistance} outside [0, {upper}]",
                    details={"cadence": cadence, "power": power, "resistance": resistance},
                )
            )


def _check_monotone_lines(table: PowerTable, issues: list[ValidationIssue]) -> None:
    for cadence in table.cadences():
        points = table.points(cadence)
        for (p1, r1), (p2, r2) in zip(points, points[1:]):
            if r2 <= r1:
                issues.append(
                    ValidationIssue(
                        code="non_monotone_line",
                        message=f"{cadence} RPM: {p2}W ({r2}) does not rise above {p1}W ({r1})",
                        details={"cadence": cadence, "powers": [p1, p2], "resistances": [r1, r2]},
                    )
                )


def _check_columns(table: PowerTable, issues: list[ValidationIssue]) -> None:
    for power in table.all_powers_used():
        column = table.column(power)
        for (c1, r1), (c2, r2) in zip(column, column[1:]):
            if r2 >= r1:
                issues.append(
                    ValidationIssue(
                        code="line_crossing",
                        message=f"{power}W: {c2} RPM ({r2}) is not below {c1} RPM ({r1})",
                        details={"power": power, "cadences": [c1, c2], "resistances": [r1, r2]},
                    )
                )


def _check_segments(table: PowerTable, issues: list[ValidationIssue]) -> None:
    cadences = table.cadences()
    for cadence, power, resistance in table.iter_points():
        for other in cadences:
            if other == cadence or table.has_point(other, power):
                continue
            boundary = virtual_resistance(table.points(other), power)
            if boundary is None:
                continue
            crossed = resistance >= boundary if cadence > other else resistance <= boundary
            if crossed:
                issues.append(
                    ValidationIssue(
                        code="segment_crossing",
                        message=(
                            f"{cadence} RPM @ {power}W ({resistance}) crosses the {other} RPM "
                            f"segment ({boundary})"
                        ),
                        details={
                            "cadence": cadence,
                            "power": power,
                            "resistance": resistance,
                            "other_cadence": other,
                            "boundary": boundary,
                        },
                    )
                )


def validate_power_table(
    table: PowerTable,
    *,
    check_segments: bool = True,
) -> ValidationReport:
    issues: list[ValidationIssue] = []
    _check_bounds(table, issues)
    _check_monotone_lines(table, issues)
    _check_columns(table, issues)
    if check_segments:
        _check_segments(table, issues)
    return ValidationReport(ok=(len(issues) == 0), issues=issues)


def assert_power_table_contract(table: PowerTable, **kwargs: Any) -> None:
    """Validate and raise InvalidValueError on failure."""

    validate_power_table(table, **kwargs).raise_for_issues()
