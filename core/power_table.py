"""Power table data model (FastAPI-free).

A table maps cadence (RPM) -> power (W) -> resistance. Lines are keyed by
cadence and iterated in ascending order; points inside a line are iterated by
ascending power. The store itself performs no validation: callers route every
write through `core.invariants`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from core.constants import DEFAULT_MAX_RESISTANCE, DEFAULT_STORAGE_MULTIPLIER


@dataclass
class TableConfig:
    max_resistance: int = DEFAULT_MAX_RESISTANCE
    storage_multiplier: int = DEFAULT_STORAGE_MULTIPLIER


@dataclass(frozen=True)
class TableSnapshot:
    """Immutable deep copy of a table and its configuration."""

    lines: tuple[tuple[int, tuple[tuple[int, int], ...]], ...]
    max_resistance: int
    storage_multiplier: int

    def to_table(self) -> "PowerTable":
        config = TableConfig(max_resistance=self.max_resistance, storage_multiplier=self.storage_multiplier)
        return PowerTable(config=config, lines={cadence: dict(points) for cadence, points in self.lines})

    @property
    def point_count(self) -> int:
        return sum(len(points) for _, points in self.lines)


@dataclass
class PowerTable:
    config: TableConfig = field(default_factory=TableConfig)
    lines: dict[int, dict[int, int]] = field(default_factory=dict)

    @property
    def max_resistance(self) -> int:
        return self.config.max_resistance

    def get(self, cadence: int, power: int) -> int | None:
        line = self.lines.get(cadence)
        if line is None:
            return None
        return line.get(power)

    def set(self, cadence: int, power: int, resistance: int) -> None:
        self.lines.setdefault(cadence, {})[power] = int(resistance)

    def remove(self, cadence: int, power: int) -> bool:
        """Remove a point; an emptied line disappears with it."""

        line = self.lines.get(cadence)
        if line is None or power not in line:
            return False
        del line[power]
        if not line:
            del self.lines[cadence]
        return True

    def has_line(self, cadence: int) -> bool:
        return cadence in self.lines

    def has_point(self, cadence: int, power: int) -> bool:
        return self.get(cadence, power) is not None

    def cadences(self) -> list[int]:
        return sorted(self.lines)

    def powers_of(self, cadence: int) -> list[int]:
        return sorted(self.lines.get(cadence, {}))

    def points(self, cadence: int) -> list[tuple[int, int]]:
        line = self.lines.get(cadence, {})
        return [(power, line[power]) for power in sorted(line)]

    def all_powers_used(self) -> list[int]:
        powers: set[int] = set()
        for line in self.lines.values():
            powers.update(line)
        return sorted(powers)

    def column(self, power: int) -> list[tuple[int, int]]:
        """(cadence, resistance) pairs defined at `power`, ascending cadence."""

        return [(cadence, self.lines[cadence][power]) for cadence in self.cadences() if power in self.lines[cadence]]

    def iter_points(self) -> Iterator[tuple[int, int, int]]:
        for cadence in self.cadences():
            for power, resistance in self.points(cadence):
                yield cadence, power, resistance

    def point_count(self) -> int:
        return sum(len(line) for line in self.lines.values())

    def is_empty(self) -> bool:
        return self.point_count() == 0

    def copy(self) -> "PowerTable":
        return PowerTable(
            config=TableConfig(
                max_resistance=self.config.max_resistance,
                storage_multiplier=self.config.storage_multiplier,
            ),
            lines={cadence: dict(line) for cadence, line in self.lines.items()},
        )

    def snapshot(self) -> TableSnapshot:
        return TableSnapshot(
            lines=tuple((cadence, tuple(self.points(cadence))) for cadence in self.cadences()),
            max_resistance=self.config.max_resistance,
            storage_multiplier=self.config.storage_multiplier,
        )

    @classmethod
    def from_points(
        cls,
        points: Iterable[tuple[int, int, int]],
        *,
        config: TableConfig | None = None,
    ) -> "PowerTable":
        table = cls(config=config or TableConfig())
        for cadence, power, resistance in points:
            table.set(int(cadence), int(power), int(resistance))
        return table
