from __future__ import annotations

import unittest

from tests.unit._bootstrap import ensure_project_on_path, sample_ptab_path


ensure_project_on_path()


def _loaded_editor(**settings_kwargs):
    from core.settings import EditorSettings
    from services.editor_service import TableEditor

    editor = TableEditor(settings=EditorSettings(**settings_kwargs))
    editor.load(sample_ptab_path().read_text(encoding="utf-8"), filename="sample.ptab")
    return editor


class TestInputHelpers(unittest.TestCase):
    def test_coerce_int(self) -> None:
        from core.errors import InvalidValueError
        from services.editor_service import coerce_int

        self.assertEqual(coerce_int("42", "resistance"), 42)
        self.assertEqual(coerce_int(41.5, "resistance"), 42)
        for bad in ("abc", None, True, float("inf"), -1):
            with self.assertRaises(InvalidValueError):
                coerce_int(bad, "resistance")
        with self.assertRaises(InvalidValueError):
            coerce_int(0, "cadence", minimum=1)

    def test_nearest_power_column(self) -> None:
        from services.editor_service import nearest_power_column

        self.assertEqual(nearest_power_column([100, 200, 300], 240), 200)
        self.assertEqual(nearest_power_column([100, 200, 300], 150), 100)
        self.assertEqual(nearest_power_column([100, 200, 300], 10_000), 300)


class TestLoadAndSave(unittest.TestCase):
    def test_load_resets_history(self) -> None:
        editor = _loaded_editor()
        state = editor.state()

        self.assertEqual(state.filename, "sample.ptab")
        self.assertEqual(state.point_count, 22)
        self.assertEqual(state.history.size, 1)
        self.assertFalse(editor.can_undo)
        self.assertIsNotNone(editor.original)

    def test_load_reports_issues(self) -> None:
        from services.editor_service import TableEditor

        editor = TableEditor()
        result = editor.load("# METADATA:HMax=32029\nCadence/Power,100W\n60RPM,50\n90RPM,60\n")
        self.assertEqual(result.details["issues"], ["line_crossing"])

    def test_failed_load_keeps_table(self) -> None:
        from core.errors import ParseError

        editor = _loaded_editor()
        with self.assertRaises(ParseError):
            editor.load("garbage")
        self.assertEqual(editor.table.point_count(), 22)

    def test_serialize(self) -> None:
        from core.errors import InsufficientDataError
        from services.editor_service import TableEditor

        editor = _loaded_editor()
        text = sample_ptab_path().read_text(encoding="utf-8")
        self.assertEqual(editor.serialize(), text.strip() + "\n")
        self.assertEqual(editor.export_filename("bike"), "bike.ptab")

        with self.assertRaisesRegex(InsufficientDataError, "No data to save"):
            TableEditor().serialize()


class TestPointCommands(unittest.TestCase):
    def test_add_point_and_undo(self) -> None:
        from services.editor_service import TableEditor

        editor = TableEditor()
        result = editor.add_point(60, 100, 500)
        self.assertEqual(result.message, "Added 1 point(s) with linear interpolation")
        self.assertEqual(result.warnings, [])

        result = editor.add_point(60, 160, 800)
        self.assertEqual(result.details["points"], [[130, 650], [160, 800]])

        # One undo step per command.
        editor.undo()
        self.assertEqual(editor.table.points(60), [(100, 500)])
        editor.undo()
        self.assertTrue(editor.table.is_empty())
        self.assertEqual(editor.undo().message, "Nothing to undo")

        editor.redo()
        editor.redo()
        self.assertEqual(editor.table.powers_of(60), [100, 130, 160])
        self.assertFalse(editor.redo().changed)

    def test_add_point_adjusted(self) -> None:
        from core.errors import BoundsAdjustedWarning
        from services.editor_service import TableEditor

        editor = TableEditor()
        editor.add_point(60, 100, 800)
        result = editor.add_point(90, 100, 900)

        self.assertEqual(editor.table.get(90, 100), 799)
        self.assertEqual(len(result.warnings), 1)
        self.assertIsInstance(result.warnings[0], BoundsAdjustedWarning)
        self.assertTrue(result.warning_messages[0].startswith("Value adjusted to 799"))

    def test_add_point_rejections_leave_history_alone(self) -> None:
        from core.errors import InvalidValueError, PointExistsError

        editor = _loaded_editor()
        before = editor.state().history
        with self.assertRaises(PointExistsError):
            editor.add_point(60, 30, 1)
        with self.assertRaises(InvalidValueError):
            editor.add_point(60, 45, "abc")
        with self.assertRaises(InvalidValueError):
            editor.add_point(60, 45, -5)
        self.assertEqual(editor.state().history, before)

    def test_add_point_near(self) -> None:
        from core.errors import NoActiveCadenceError

        editor = _loaded_editor()
        with self.assertRaises(NoActiveCadenceError):
            editor.add_point_near(148, 2100)

        editor.set_active_cadence(105)
        result = editor.add_point_near(148, 2100.4)
        self.assertEqual(result.details["points"], [[150, 2100]])

    def test_edit_point(self) -> None:
        from core.errors import PointNotFoundError

        editor = _loaded_editor()
        result = editor.edit_point(75, 60, 1900)
        self.assertEqual(result.message, "Point updated successfully")
        self.assertEqual(editor.table.get(75, 60), 1799)
        self.assertEqual(len(result.warnings), 1)

        with self.assertRaises(PointNotFoundError):
            editor.edit_point(105, 30, 10)

    def test_delete_point(self) -> None:
        editor = _loaded_editor()
        editor.set_active_cadence(105)
        for power in (60, 90, 120, 180):
            editor.delete_point(105, power)

        self.assertFalse(editor.table.has_line(105))
        self.assertIsNone(editor.active_cadence)
        editor.undo()
        self.assertEqual(editor.table.powers_of(105), [180])

    def test_add_point_keeps_line_rising(self) -> None:
        from services.editor_service import TableEditor

        editor = TableEditor()
        editor.add_point(70, 300, 17833)
        result = editor.add_point(70, 180, 19789)

        self.assertEqual(result.details["points"], [[180, 17832]])
        self.assertEqual(editor.table.points(70), [(180, 17832), (300, 17833)])
        self.assertTrue(editor.validate().ok)

    def test_add_point_without_consistent_value_is_rejected(self) -> None:
        from core.errors import InvalidValueError
        from services.editor_service import TableEditor

        editor = TableEditor()
        editor.add_point(60, 150, 3863)
        editor.add_point(70, 300, 17833)
        before = editor.state().history

        # Any 70 RPM point at 60W would run the line over 60 RPM's 3863 at 150W.
        with self.assertRaises(InvalidValueError):
            editor.add_point(70, 60, 15986)
        self.assertEqual(editor.table.points(70), [(300, 17833)])
        self.assertEqual(editor.state().history, before)
        self.assertTrue(editor.validate().ok)

    def test_edit_point_without_consistent_value_is_rejected(self) -> None:
        from core.errors import InvalidValueError
        from core.power_table import PowerTable
        from services.editor_service import TableEditor

        table = PowerTable.from_points([(90, 100, 100), (90, 200, 1000), (60, 150, 900)])
        editor = TableEditor(table=table)

        with self.assertRaises(InvalidValueError):
            editor.edit_point(90, 200, 2000)
        with self.assertRaises(InvalidValueError):
            editor.drag_end(90, 200, 2000)
        self.assertEqual(editor.table.get(90, 200), 1000)
        self.assertFalse(editor.can_undo)

        editor.edit_point(90, 200, 1500)
        self.assertTrue(editor.validate().ok)


class TestDrag(unittest.TestCase):
    def test_drag_preview_then_commit(self) -> None:
        editor = _loaded_editor()
        editor.drag_start(90)
        self.assertEqual(editor.active_cadence, 90)

        self.assertEqual(editor.drag_move(90, 60, 5000), 1499)
        self.assertEqual(editor.table.get(90, 60), 1200)
        self.assertFalse(editor.can_undo)

        result = editor.drag_end(90, 60, 5000)
        self.assertEqual(editor.table.get(90, 60), 1499)
        self.assertEqual(len(result.warnings), 1)
        editor.undo()
        self.assertEqual(editor.table.get(90, 60), 1200)

    def test_drag_clamps_to_bounds(self) -> None:
        editor = _loaded_editor()
        self.assertEqual(editor.drag_move(105, 60, -50), 0)
        self.assertEqual(editor.drag_move(60, 180, 99999), 32029)


class TestTableOperations(unittest.TestCase):
    def test_smart_fill_single_undo_step(self) -> None:
        editor = _loaded_editor()
        result = editor.smart_fill()

        self.assertEqual(result.message, "SmartFill completed: Added 2 data points (checked 24 cells)")
        self.assertEqual(editor.table.point_count(), 24)
        editor.undo()
        self.assertEqual(editor.table.point_count(), 22)
        self.assertFalse(editor.can_undo)

    def test_resolve_conflicts_on_valid_table(self) -> None:
        editor = _loaded_editor()
        result = editor.resolve_conflicts()
        self.assertEqual(result.message, "Conflicts resolved: Made 0 adjustments")
        self.assertFalse(result.changed)
        self.assertFalse(editor.can_undo)

    def test_smart_smooth(self) -> None:
        editor = _loaded_editor()
        editor.smart_fill()
        result = editor.smart_smooth()
        self.assertTrue(result.message.startswith("SmartSmooth completed: Made "))
        self.assertEqual(result.details["adjustments"], result.details["spacing"] + result.details["curve"])

    def test_smart_smooth_reports_lines_that_stop_rising(self) -> None:
        from core.power_table import PowerTable
        from services.editor_service import TableEditor

        table = PowerTable.from_points(
            [
                (60, 200, 1100),
                (60, 300, 3000),
                (60, 400, 4000),
                (75, 100, 1000),
                (75, 200, 1099),
                (75, 300, 2000),
                (90, 100, 0),
                (90, 200, 1),
                (90, 300, 2),
                (90, 400, 3),
            ]
        )
        editor = TableEditor(table=table)
        self.assertTrue(editor.validate().ok)

        result = editor.smart_smooth()
        self.assertEqual(editor.table.points(75), [(100, 1000), (200, 711), (300, 1940)])
        self.assertIn("non_monotone_line", result.details["issues"])
        self.assertIn("Resolve Conflicts", result.message)

    def test_operations_need_data(self) -> None:
        from core.errors import InsufficientDataError
        from services.editor_service import TableEditor

        editor = TableEditor()
        for command in (editor.smart_fill, editor.resolve_conflicts, editor.smart_smooth):
            with self.assertRaises(InsufficientDataError):
                command()
        self.assertEqual(editor.state().history.size, 1)


class TestSessionSettings(unittest.TestCase):
    def test_history_capacity(self) -> None:
        editor = _loaded_editor(history_capacity=3)
        for resistance in (1210, 1220, 1230, 1240):
            editor.edit_point(60, 30, resistance)

        undone = 0
        while editor.undo().changed:
            undone += 1
        self.assertEqual(undone, 2)
        self.assertEqual(editor.table.get(60, 30), 1220)

    def test_config_is_undoable(self) -> None:
        from core.errors import InvalidValueError

        editor = _loaded_editor()
        editor.set_max_resistance(40000)
        editor.set_storage_multiplier(5)
        self.assertEqual(editor.state().max_resistance, 40000)

        editor.undo()
        self.assertEqual(editor.state().storage_multiplier, 10)
        with self.assertRaises(InvalidValueError):
            editor.set_max_resistance(0)

    def test_ceiling_below_stored_values_is_rejected(self) -> None:
        from core.errors import InvalidValueError
        from core.power_table import PowerTable
        from services.editor_service import TableEditor

        editor = TableEditor(table=PowerTable.from_points([(60, 100, 5000), (60, 200, 9000)]))
        before = editor.state()

        with self.assertRaises(InvalidValueError):
            editor.set_max_resistance(1000)
        self.assertEqual(editor.state(), before)
        self.assertTrue(editor.validate().ok)

        editor.set_max_resistance(9000)
        self.assertEqual(editor.state().max_resistance, 9000)

    def test_config_update_is_all_or_nothing(self) -> None:
        from core.errors import InvalidValueError

        editor = _loaded_editor()
        before = editor.state()

        with self.assertRaises(InvalidValueError):
            editor.set_config(max_resistance=5000, storage_multiplier=0)
        with self.assertRaisesRegex(InvalidValueError, "Nothing to update"):
            editor.set_config()
        self.assertEqual(editor.state(), before)

        result = editor.set_config(max_resistance=5000, storage_multiplier=5)
        self.assertEqual(result.details, {"max_resistance": 5000, "storage_multiplier": 5})
        self.assertEqual(editor.state().history.position, before.history.position + 1)

        editor.undo()
        self.assertEqual(editor.state().max_resistance, before.max_resistance)
        self.assertEqual(editor.state().storage_multiplier, before.storage_multiplier)

    def test_active_cadence(self) -> None:
        from core.errors import InvalidValueError

        editor = _loaded_editor()
        editor.set_active_cadence(75)
        self.assertEqual(editor.active_cadence, 75)
        with self.assertRaises(InvalidValueError):
            editor.set_active_cadence(80)
        editor.set_active_cadence(None)
        self.assertIsNone(editor.active_cadence)

    def test_original_overlay(self) -> None:
        from core.errors import InsufficientDataError
        from services.editor_service import TableEditor

        with self.assertRaises(InsufficientDataError):
            TableEditor().toggle_original()

        editor = _loaded_editor()
        editor.edit_point(60, 30, 1250)
        editor.toggle_original()
        editor.set_original_opacity(150)
        self.assertEqual(editor.original_opacity, 100)
        editor.set_original_opacity(37)

        series = editor.chart_series()
        self.assertEqual(len(series), 8)
        self.assertEqual(series[0].label, "60 RPM (Original)")
        self.assertEqual(series[0].points[0].resistance, 1200)
        self.assertAlmostEqual(series[0].opacity, 0.37)
        self.assertEqual(series[4].label, "60 RPM")
        self.assertEqual(series[4].points[0].resistance, 1250)
        self.assertEqual(series[0].color, series[4].color)

        editor.toggle_original()
        self.assertEqual(len(editor.chart_series()), 4)

    def test_listeners(self) -> None:
        editor = _loaded_editor()
        events: list[str] = []
        editor.add_listener(events.append)

        editor.edit_point(60, 30, 1210)
        editor.undo()
        editor.set_active_cadence(60)
        self.assertEqual(events, ["edit_point", "undo", "select"])


if __name__ == "__main__":
    unittest.main()
