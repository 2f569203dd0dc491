from __future__ import annotations

import unittest

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


def _table(resistance: int):
    from core.power_table import PowerTable

    return PowerTable.from_points([(60, 100, resistance)])


class TestHistoryManager(unittest.TestCase):
    def test_undo_redo_walk(self) -> None:
        from services.history_service import HistoryManager

        history = HistoryManager(capacity=10)
        history.reset(_table(1))
        history.snapshot(_table(2))
        history.snapshot(_table(3))

        self.assertEqual(history.position, 2)
        self.assertEqual(history.undo().get(60, 100), 2)
        self.assertEqual(history.undo().get(60, 100), 1)
        self.assertIsNone(history.undo())
        self.assertEqual(history.redo().get(60, 100), 2)
        self.assertTrue(history.can_redo)

    def test_identical_snapshot_not_stored_twice(self) -> None:
        from services.history_service import HistoryManager

        history = HistoryManager()
        history.reset(_table(1))
        self.assertFalse(history.snapshot(_table(1)))
        self.assertTrue(history.snapshot(_table(2)))
        self.assertEqual(history.size, 2)

    def test_new_snapshot_discards_redo_branch(self) -> None:
        from services.history_service import HistoryManager

        history = HistoryManager()
        history.reset(_table(1))
        history.snapshot(_table(2))
        history.snapshot(_table(3))
        history.undo()
        history.undo()

        history.snapshot(_table(9))
        self.assertFalse(history.can_redo)
        self.assertEqual(history.size, 2)
        self.assertEqual(history.undo().get(60, 100), 1)

    def test_capacity_drops_oldest(self) -> None:
        from services.history_service import HistoryManager

        history = HistoryManager(capacity=3)
        history.reset(_table(0))
        for value in range(1, 6):
            history.snapshot(_table(value))

        self.assertEqual(history.size, 3)
        self.assertEqual(history.position, 2)
        self.assertEqual(history.undo().get(60, 100), 4)
        self.assertEqual(history.undo().get(60, 100), 3)
        self.assertFalse(history.can_undo)

    def test_restored_tables_are_independent(self) -> None:
        from services.history_service import HistoryManager

        history = HistoryManager()
        history.reset(_table(1))
        history.snapshot(_table(2))

        restored = history.undo()
        restored.set(60, 100, 42)
        self.assertEqual(history.redo().get(60, 100), 2)
        self.assertEqual(history.undo().get(60, 100), 1)

    def test_invalid_capacity(self) -> None:
        from services.history_service import HistoryManager

        with self.assertRaises(ValueError):
            HistoryManager(capacity=0)


if __name__ == "__main__":
    unittest.main()
