from __future__ import annotations

import unittest

from tests.unit._bootstrap import ensure_project_on_path


ensure_project_on_path()


class TestPowerTable(unittest.TestCase):
    def _table(self):
        from core.power_table import PowerTable

        return PowerTable.from_points(
            [
                (90, 200, 700),
                (60, 200, 900),
                (60, 100, 500),
                (90, 50, 300),
            ]
        )

    def test_sorted_accessors(self) -> None:
        table = self._table()
        self.assertEqual(table.cadences(), [60, 90])
        self.assertEqual(table.powers_of(60), [100, 200])
        self.assertEqual(table.all_powers_used(), [50, 100, 200])
        self.assertEqual(table.points(90), [(50, 300), (200, 700)])
        self.assertEqual(table.column(200), [(60, 900), (90, 700)])
        self.assertEqual(table.point_count(), 4)

    def test_get_set_remove(self) -> None:
        table = self._table()
        self.assertEqual(table.get(60, 100), 500)
        self.assertIsNone(table.get(60, 150))
        self.assertIsNone(table.get(120, 100))

        table.set(120, 100, 200)
        self.assertTrue(table.has_line(120))
        self.assertTrue(table.remove(120, 100))
        self.assertFalse(table.has_line(120))
        self.assertFalse(table.remove(120, 100))

    def test_copy_is_independent(self) -> None:
        table = self._table()
        clone = table.copy()
        clone.set(60, 100, 1)
        clone.config.max_resistance = 10
        self.assertEqual(table.get(60, 100), 500)
        self.assertNotEqual(table.max_resistance, 10)

    def test_snapshot_round_trip(self) -> None:
        table = self._table()
        snap = table.snapshot()
        table.set(60, 100, 1)

        restored = snap.to_table()
        self.assertEqual(restored.get(60, 100), 500)
        self.assertEqual(restored.snapshot(), snap)
        self.assertEqual(snap.point_count, 4)


if __name__ == "__main__":
    unittest.main()
