import unittest
from datetime import date, datetime, timedelta
from unittest import mock

import habit_garden
from habit_garden import HabitGarden, HabitStyle, NotFound, ValidationError

DAY0 = date(2026, 3, 1)


def day(offset):
    return DAY0 + timedelta(days=offset)


class FixedClock:
    def __init__(self, today):
        self.today = today

    def __call__(self):
        return self.today

    def advance(self, days=1):
        self.today += timedelta(days=days)


class CreateTests(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock(DAY0)
        self.garden = HabitGarden(clock=self.clock)

    def test_defaults(self):
        habit = self.garden.create("  Workout ")
        self.assertEqual(habit.name, "Workout")
        self.assertEqual(habit.style, HabitStyle.FIRE)
        self.assertTrue(habit.auto_tick)
        self.assertEqual(habit.start_date, DAY0)
        self.assertEqual(habit.misses, set())
        self.assertEqual(habit.streak, 1)
        self.assertIsNotNone(habit.updated_at)
        self.assertIs(self.garden.lookup(habit.id), habit)

    def test_style_from_string_and_auto_tick_off(self):
        habit = self.garden.create("Meditate", "moon", auto_tick=False)
        self.assertEqual(habit.style, HabitStyle.MOON)
        self.assertFalse(habit.auto_tick)

    def test_whitespace_name_rejected(self):
        with self.assertRaises(ValidationError):
            self.garden.create("  ")
        with self.assertRaises(ValidationError):
            self.garden.create("")
        self.assertEqual(len(self.garden), 0)

    def test_unknown_style_rejected(self):
        with self.assertRaises(ValidationError):
            self.garden.create("Read", "comet")
        self.assertEqual(len(self.garden), 0)

    def test_seeded_start_date(self):
        habit = self.garden.create("Read", "book", start_date="2026-02-25")
        self.assertEqual(habit.start_date, date(2026, 2, 25))
        self.assertEqual(habit.streak, 5)

    def test_insertion_order(self):
        names = ["Walk", "Read", "Stretch"]
        for name in names:
            self.garden.create(name)
        self.assertEqual([h.name for h in self.garden.habits], names)

    def test_habits_is_a_copy(self):
        self.garden.create("Walk")
        self.garden.habits.clear()
        self.assertEqual(len(self.garden), 1)


class LookupTests(unittest.TestCase):
    def test_unknown_id(self):
        garden = HabitGarden(clock=FixedClock(DAY0))
        with self.assertRaises(NotFound) as ctx:
            garden.lookup("missing")
        self.assertEqual(ctx.exception.habit_id, "missing")
        self.assertEqual(str(ctx.exception), "Habit #missing not found.")
        self.assertIsInstance(ctx.exception, KeyError)


class ToggleDayTests(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock(DAY0)
        self.garden = HabitGarden(clock=self.clock)
        self.habit = self.garden.create("Workout")

    def test_odd_toggles_mark_missed_even_toggles_clear(self):
        target = day(0)
        for count in range(1, 6):
            self.garden.toggle_day(self.habit.id, target)
            self.assertEqual(target in self.habit.misses, count % 2 == 1)

    def test_missing_today_resets_streak(self):
        self.clock.advance(5)
        self.garden.refresh()
        self.assertEqual(self.habit.streak, 6)
        self.assertEqual(self.garden.toggle_day(self.habit.id), 0)
        self.assertEqual(self.habit.streak, 0)
        self.assertFalse(self.garden.is_done(self.habit.id))
        self.assertEqual(self.garden.toggle_day(self.habit.id), 6)

    def test_miss_in_the_middle(self):
        self.clock.advance(5)
        streak = self.garden.toggle_day(self.habit.id, day(3))
        self.assertEqual(streak, 2)
        self.assertEqual(self.habit.streak, 2)

    def test_before_start_changes_history_not_streak(self):
        self.clock.advance(2)
        self.garden.refresh()
        self.assertEqual(self.habit.streak, 3)
        streak = self.garden.toggle_day(self.habit.id, day(-4))
        self.assertEqual(streak, 3)
        self.assertIn(day(-4), self.habit.misses)

    def test_streak_matches_independent_recompute(self):
        self.clock.advance(10)
        for offset in (2, 7, 9, 7, 10, 3, 10):
            self.garden.toggle_day(self.habit.id, day(offset))
            expected = habit_garden.compute_streak(
                set(self.habit.misses), self.habit.start_date, self.clock.today
            )
            self.assertEqual(self.habit.streak, expected)

    def test_day_level_equality(self):
        self.garden.toggle_day(self.habit.id, datetime(2026, 3, 1, 23, 59))
        self.assertEqual(self.habit.misses, {DAY0})
        self.garden.toggle_day(self.habit.id, "2026-03-01")
        self.assertEqual(self.habit.misses, set())

    def test_unknown_id(self):
        with self.assertRaises(NotFound):
            self.garden.toggle_day("nope")
        self.assertEqual(self.habit.misses, set())

    def test_invalid_date_string(self):
        with self.assertRaises(ValidationError):
            self.garden.toggle_day(self.habit.id, "yesterday")
        self.assertEqual(self.habit.misses, set())


class UpdateTests(unittest.TestCase):
    def setUp(self):
        self.garden = HabitGarden(clock=FixedClock(DAY0))
        self.habit = self.garden.create("Read", "book")

    def test_update_fields(self):
        self.garden.update(self.habit.id, name=" Read 30 mins ", style=HabitStyle.GEM, auto_tick=False)
        self.assertEqual(self.habit.name, "Read 30 mins")
        self.assertEqual(self.habit.style, HabitStyle.GEM)
        self.assertFalse(self.habit.auto_tick)
        self.assertEqual(self.habit.start_date, DAY0)

    def test_invalid_update_changes_nothing(self):
        with self.assertRaises(ValidationError):
            self.garden.update(self.habit.id, name="Reading", style="comet")
        self.assertEqual(self.habit.name, "Read")
        self.assertEqual(self.habit.style, HabitStyle.BOOK)
        with self.assertRaises(ValidationError):
            self.garden.update(self.habit.id, name="   ")
        self.assertEqual(self.habit.name, "Read")

    def test_unknown_id(self):
        with self.assertRaises(NotFound):
            self.garden.update("nope", name="x")


class RemoveTests(unittest.TestCase):
    def test_remove(self):
        garden = HabitGarden(clock=FixedClock(DAY0))
        habit = garden.create("Walk")
        removed = garden.remove(habit.id)
        self.assertIs(removed, habit)
        self.assertNotIn(habit.id, garden)
        with self.assertRaises(NotFound):
            garden.remove(habit.id)

    def test_removed_ids_are_not_reused(self):
        garden = HabitGarden(clock=FixedClock(DAY0))
        with mock.patch.object(habit_garden, "_new_id", side_effect=["aaaa0000", "aaaa0000", "bbbb1111"]):
            first = garden.create("Walk")
            garden.remove(first.id)
            second = garden.create("Run")
        self.assertEqual(first.id, "aaaa0000")
        self.assertEqual(second.id, "bbbb1111")


class RefreshTests(unittest.TestCase):
    def test_refresh_after_midnight(self):
        clock = FixedClock(DAY0)
        garden = HabitGarden(clock=clock)
        walk = garden.create("Walk")
        read = garden.create("Read")
        garden.toggle_day(read.id)
        clock.advance()
        changed = garden.refresh()
        self.assertEqual(changed, [walk, read])
        self.assertEqual(walk.streak, 2)
        self.assertEqual(read.streak, 1)
        self.assertEqual(garden.refresh(), [])


class ReadHelperTests(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock(day(4))
        self.garden = HabitGarden(clock=self.clock)
        self.habit = self.garden.create("Walk", start_date=DAY0)
        self.garden.toggle_day(self.habit.id, day(3))

    def test_is_done(self):
        self.assertTrue(self.garden.is_done(self.habit.id))
        self.assertFalse(self.garden.is_done(self.habit.id, day(3)))
        self.assertTrue(self.garden.is_done(self.habit.id, day(-2)))
        self.assertTrue(self.habit.missed_on("2026-03-04"))

    def test_recent_days(self):
        days = self.garden.recent_days(self.habit.id, 3)
        self.assertEqual(days, [(day(2), True), (day(3), False), (day(4), True)])


class SeedTests(unittest.TestCase):
    def test_seed_sample(self):
        garden = HabitGarden(clock=FixedClock(DAY0))
        created = garden.seed_sample()
        self.assertEqual([h.name for h in created], ["Workout", "Read 30 mins", "Meditate"])
        self.assertEqual([h.streak for h in created], [12, 7, 21])
        self.assertEqual([h.style for h in created], [HabitStyle.FIRE, HabitStyle.BOOK, HabitStyle.MOON])
        self.assertEqual(garden.seed_sample(), [])
        self.assertEqual(len(garden), 3)


class SnapshotTests(unittest.TestCase):
    def test_snapshot_fields(self):
        garden = HabitGarden(clock=FixedClock(day(2)))
        habit = garden.create("Walk", "plant", start_date=DAY0)
        garden.toggle_day(habit.id, day(1))
        garden.toggle_day(habit.id, day(0))
        (item,) = garden.snapshot()
        self.assertEqual(item["id"], habit.id)
        self.assertEqual(item["name"], "Walk")
        self.assertEqual(item["style"], "plant")
        self.assertEqual(item["start_date"], "2026-03-01")
        self.assertEqual(item["misses"], ["2026-03-01", "2026-03-02"])
        self.assertEqual(item["streak"], 1)
        self.assertTrue(item["auto_tick"])

    def test_hydrate_recomputes_and_skips_bad_items(self):
        items = [
            {
                "id": "a1",
                "name": "Walk",
                "style": "gem",
                "streak": 999,
                "auto_tick": False,
                "start_date": "2026-03-01",
                "misses": ["2026-03-03", "garbage", 5],
            },
            {"id": "a1", "name": "Duplicate", "start_date": "2026-03-01"},
            {"id": "b2", "name": "   "},
            {"name": "No id"},
            "not a dict",
            {"id": "c3", "name": "Read", "style": "comet"},
        ]
        garden = HabitGarden.hydrate(items, clock=FixedClock(day(5)))
        self.assertEqual([h.id for h in garden.habits], ["a1", "c3"])
        walk = garden.lookup("a1")
        self.assertEqual(walk.streak, 3)
        self.assertEqual(walk.style, HabitStyle.GEM)
        self.assertFalse(walk.auto_tick)
        self.assertEqual(walk.misses, {date(2026, 3, 3)})
        read = garden.lookup("c3")
        self.assertEqual(read.style, HabitStyle.FIRE)
        self.assertEqual(read.start_date, day(5))
        self.assertEqual(read.streak, 1)

    def test_snapshot_hydrate_keeps_state(self):
        clock = FixedClock(day(3))
        garden = HabitGarden(clock=clock)
        habit = garden.create("Walk", "moon", start_date=DAY0)
        garden.toggle_day(habit.id, day(1))
        restored = HabitGarden.hydrate(garden.snapshot(), clock=clock).lookup(habit.id)
        self.assertEqual(restored.misses, habit.misses)
        self.assertEqual(restored.streak, habit.streak)
        self.assertEqual(restored.updated_at, habit.updated_at)


if __name__ == "__main__":
    unittest.main()
