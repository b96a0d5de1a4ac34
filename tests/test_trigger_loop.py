import os
import sys
from datetime import date

import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kickday.config.schema import StrategyConfig
from kickday.execution.models import PriceRecord
from kickday.strategy.trigger_loop import KickDayTriggerLoop
from kickday.utils.ticks import TickSizeTable

import unittest

CLOSE_TIME = pd.Timestamp("2024-01-08 19:00")


def make_config(symbols=("UP", "DOWN", "FLAT", "ZERO")) -> StrategyConfig:
    return StrategyConfig(
        symbols=list(symbols),
        volumes={s: float(i + 1) for i, s in enumerate(symbols)},
        timeframe="M1",
        sl_pct=1.0,
        tp_pct=3.0,
        kick_pct=2.0,
        time_off="18:35",
        time_to_stop="23:45",
    )


class FakeCloses:
    def __init__(self, snapshot):
        self.snapshot = snapshot
        self.calls = 0

    def read_evening_prices(self, days_back):
        self.calls += 1
        return self.snapshot


class FakePrices:
    def __init__(self, prices):
        self.prices = prices

    def last_price(self, symbol):
        return self.prices[symbol]


class FailingPrices:
    def last_price(self, symbol):
        raise RuntimeError("feed down")


class FakeSink:
    def __init__(self):
        self.intents = []

    def submit(self, intent):
        self.intents.append(intent)


class FakeRegistrar:
    def __init__(self):
        self.registered = []

    def register_one_shot(self, when, callback):
        self.registered.append((when, callback))


def snapshot_for(*symbols, price=100.0):
    return {s: PriceRecord(price=price, time=CLOSE_TIME) for s in symbols}


class TestKickDayTriggerLoop(unittest.TestCase):
    def make_loop(self, closes, prices, today=date(2024, 1, 9), config=None, **kwargs):
        self.sink = FakeSink()
        self.registrar = FakeRegistrar()
        return KickDayTriggerLoop(
            config or make_config(),
            closes=closes,
            prices=prices,
            rounder=TickSizeTable({}),
            sink=self.sink,
            registrar=self.registrar,
            today=today,
            **kwargs,
        )

    def test_start_arms_initial_trigger(self) -> None:
        loop = self.make_loop(FakeCloses({}), FakePrices({}), today=date(2024, 1, 6))
        loop.start()
        self.assertEqual(len(self.registrar.registered), 1)
        when, callback = self.registrar.registered[0]
        self.assertEqual(when, pd.Timestamp("2024-01-08 18:35"))
        self.assertEqual(callback, loop.fire)

    def test_start_tolerates_missing_snapshot(self) -> None:
        loop = self.make_loop(FakeCloses(None), FakePrices({}))
        loop.start()
        self.assertEqual(len(self.registrar.registered), 1)

    def test_firing_emits_orders_in_configured_order(self) -> None:
        closes = FakeCloses(snapshot_for("UP", "DOWN", "FLAT", "ZERO"))
        prices = FakePrices({"UP": 103.0, "DOWN": 97.0, "FLAT": 101.0, "ZERO": 0})
        loop = self.make_loop(closes, prices)
        report = loop.fire()

        self.assertEqual(closes.calls, 1)
        self.assertEqual([i.symbol for i in self.sink.intents], ["UP", "DOWN"])
        up, down = self.sink.intents
        self.assertEqual((up.side, up.price, up.volume, up.stop_price), ('buy', 103.0, 1.0, 102.0))
        self.assertEqual((down.side, down.price, down.volume, down.stop_price), ('sell', 97.0, 2.0, 98.0))
        self.assertEqual(report.intents, self.sink.intents)
        self.assertIsNone(report.decisions["FLAT"].signal)
        self.assertIsNone(report.decisions["ZERO"].signal)
        self.assertFalse(report.snapshot_unavailable)
        self.assertEqual(report.missing, [])

    def test_firing_rearms_for_next_business_day(self) -> None:
        loop = self.make_loop(FakeCloses(snapshot_for("UP")), FakePrices({"UP": 100.0}), config=make_config(["UP"]))
        report = loop.fire()
        self.assertEqual(report.scheduled_for, pd.Timestamp("2024-01-09 18:35"))
        self.assertEqual(report.next_trigger, pd.Timestamp("2024-01-10 18:35"))
        self.assertEqual(loop.next_trigger, report.next_trigger)
        self.assertEqual(self.registrar.registered, [(report.next_trigger, loop.fire)])

    def test_friday_firing_rearms_for_monday(self) -> None:
        loop = self.make_loop(FakeCloses(snapshot_for("UP")), FakePrices({"UP": 100.0}),
                              today=date(2024, 1, 12), config=make_config(["UP"]))
        report = loop.fire()
        self.assertEqual(report.next_trigger, pd.Timestamp("2024-01-15 18:35"))

    def test_missing_snapshot_still_reschedules(self) -> None:
        for snapshot in (None, {}):
            loop = self.make_loop(FakeCloses(snapshot), FakePrices({}))
            report = loop.fire()
            self.assertTrue(report.snapshot_unavailable)
            self.assertEqual(self.sink.intents, [])
            self.assertEqual(report.decisions, {})
            self.assertGreater(report.next_trigger, report.scheduled_for)
            self.assertLess(report.next_trigger.weekday(), 5)
            self.assertEqual(len(self.registrar.registered), 1)

    def test_symbol_missing_from_snapshot_is_skipped(self) -> None:
        closes = FakeCloses(snapshot_for("UP", "FLAT", "ZERO"))
        prices = FakePrices({"UP": 103.0, "DOWN": 90.0, "FLAT": 100.0, "ZERO": 0})
        loop = self.make_loop(closes, prices)
        report = loop.fire()
        self.assertEqual(report.missing, ["DOWN"])
        self.assertEqual([i.symbol for i in self.sink.intents], ["UP"])
        self.assertNotIn("DOWN", report.decisions)

    def test_collaborator_error_still_rearms(self) -> None:
        loop = self.make_loop(FakeCloses(snapshot_for("UP")), FailingPrices(), config=make_config(["UP"]))
        with self.assertRaises(RuntimeError):
            loop.fire()
        self.assertEqual(loop.next_trigger, pd.Timestamp("2024-01-10 18:35"))
        self.assertEqual(len(self.registrar.registered), 1)

    def test_on_fired_receives_report(self) -> None:
        received = []
        loop = self.make_loop(FakeCloses(snapshot_for("UP")), FakePrices({"UP": 103.0}),
                              config=make_config(["UP"]), on_fired=received.append)
        report = loop.fire()
        self.assertEqual(received, [report])

    def test_consecutive_firings_never_go_back(self) -> None:
        loop = self.make_loop(FakeCloses(None), FakePrices({}), today=date(2024, 1, 3))
        previous = loop.next_trigger
        for _ in range(10):
            loop.fire()
            self.assertGreater(loop.next_trigger, previous)
            previous = loop.next_trigger


if __name__ == '__main__':
    unittest.main()
