"""Undo/redo history of full table snapshots.

Snapshots are immutable (`TableSnapshot`) and never share state with the live
table. The cursor points at the snapshot that matches the live state after a
command completed; commands call `snapshot()` before and after mutating, and
a snapshot equal to the one under the cursor is not stored twice, so each
command costs exactly one undo step.
"""

from __future__ import annotations

import logging

from core.constants import HISTORY_CAPACITY
from core.power_table import PowerTable, TableSnapshot


logger = logging.getLogger(__name__)


class HistoryManager:
    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError("History capacity must be at least 1")
        self._capacity = int(capacity)
        self._entries: list[TableSnapshot] = []
        self._cursor = -1

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def position(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def current(self) -> TableSnapshot | None:
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    def reset(self, table: PowerTable) -> None:
        """Drop every entry and record `table` as the new baseline."""

        self._entries.clear()
        self._cursor = -1
        self.snapshot(table)

    def snapshot(self, table: PowerTable) -> bool:
        """Record the live state; returns False when it matches the cursor entry."""

        state = table.snapshot()
        if self.current() == state:
            return False

        # Recording after an undo discards the redo branch.
        del self._entries[self._cursor + 1:]
        self._entries.append(state)
        if len(self._entries) > self._capacity:
            self._entries.pop(0)
        else:
            self._cursor += 1
        logger.debug("history_snapshot position=%s size=%s", self._cursor, len(self._entries))
        return True

    def undo(self) -> PowerTable | None:
        """Step back; returns a fresh table to install, or None at the start."""

        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._entries[self._cursor].to_table()

    def redo(self) -> PowerTable | None:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._entries[self._cursor].to_table()
