from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Adjustment:
    cadence: int
    power: int
    before: int | None
    after: int
    reason: str


@dataclass
class AdjustmentReport:
    adjustments: list[Adjustment] = field(default_factory=list)

    def add(self, cadence: int, power: int, *, before: int | None, after: int, reason: str) -> None:
        self.adjustments.append(
            Adjustment(
                cadence=int(cadence),
                power=int(power),
                before=None if before is None else int(before),
                after=int(after),
                reason=str(reason),
            )
        )

    def by_reason(self, reason: str) -> list[Adjustment]:
        return [a for a in self.adjustments if a.reason == reason]

    def __len__(self) -> int:
        return len(self.adjustments)

    def __iter__(self) -> Iterator[Adjustment]:
        return iter(self.adjustments)
