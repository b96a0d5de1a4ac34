import os
import sys
from datetime import date, time, timedelta

import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kickday.strategy.scheduler import BusinessDayScheduler, initial_trigger, next_trigger

import unittest

CUTOFF = time(18, 35)


class TestInitialTrigger(unittest.TestCase):
    def test_every_start_day_lands_on_a_weekday(self) -> None:
        # 2024-01-01 is a Monday
        for offset in range(14):
            day = date(2024, 1, 1) + timedelta(days=offset)
            trigger = initial_trigger(day, CUTOFF)
            self.assertLess(trigger.weekday(), 5, f"weekend trigger for start day {day}")
            self.assertEqual((trigger.hour, trigger.minute), (18, 35))

    def test_saturday_start_moves_to_monday(self) -> None:
        trigger = initial_trigger(date(2024, 1, 6), CUTOFF)
        self.assertEqual(trigger, pd.Timestamp("2024-01-08 18:35"))

    def test_sunday_start_moves_to_monday(self) -> None:
        trigger = initial_trigger(date(2024, 1, 7), CUTOFF)
        self.assertEqual(trigger, pd.Timestamp("2024-01-08 18:35"))

    def test_weekday_start_is_today_even_after_cutoff(self) -> None:
        trigger = initial_trigger(date(2024, 1, 3), CUTOFF)
        self.assertEqual(trigger, pd.Timestamp("2024-01-03 18:35"))

    def test_timezone_is_applied(self) -> None:
        scheduler = BusinessDayScheduler(CUTOFF, "Europe/Moscow")
        trigger = scheduler.initial_trigger(date(2024, 1, 6))
        self.assertEqual(trigger, pd.Timestamp("2024-01-08 18:35", tz="Europe/Moscow"))


class TestNextTrigger(unittest.TestCase):
    def test_friday_is_followed_by_monday(self) -> None:
        friday = pd.Timestamp("2024-01-05 18:35")
        self.assertEqual(next_trigger(friday), pd.Timestamp("2024-01-08 18:35"))

    def test_other_weekdays_advance_one_day(self) -> None:
        monday = pd.Timestamp("2024-01-08 18:35")
        for offset in range(4):
            previous = monday + pd.Timedelta(days=offset)
            self.assertEqual(next_trigger(previous), previous + pd.Timedelta(days=1))

    def test_chain_stays_on_weekdays_and_increases(self) -> None:
        trigger = initial_trigger(date(2024, 2, 24), CUTOFF)
        for _ in range(100):
            following = next_trigger(trigger)
            self.assertGreater(following, trigger)
            self.assertLess(following.weekday(), 5)
            self.assertEqual((following.hour, following.minute), (18, 35))
            trigger = following

    def test_weekend_timestamp_is_pushed_to_monday(self) -> None:
        # The check is on the weekday of the following day
        self.assertEqual(next_trigger(pd.Timestamp("2024-01-06 18:35")), pd.Timestamp("2024-01-08 18:35"))
        self.assertEqual(next_trigger(pd.Timestamp("2024-01-07 18:35")), pd.Timestamp("2024-01-08 18:35"))

    def test_wall_clock_kept_across_dst_change(self) -> None:
        # Clocks in Berlin go forward on Sunday 2024-03-31
        friday = pd.Timestamp("2024-03-29 18:35", tz="Europe/Berlin")
        monday = next_trigger(friday)
        self.assertEqual(monday.date(), date(2024, 4, 1))
        self.assertEqual((monday.hour, monday.minute), (18, 35))


if __name__ == '__main__':
    unittest.main()
