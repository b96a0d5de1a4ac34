import os
import sys

import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kickday.execution.models import OrderIntent
from kickday.execution.mt5_exec import PaperOrderSink, PollingRegistrar

import unittest


class TestPollingRegistrar(unittest.TestCase):
    def test_fires_once_when_due(self) -> None:
        registrar = PollingRegistrar()
        calls = []
        registrar.register_one_shot(pd.Timestamp("2024-01-08 18:35"), lambda: calls.append(1))
        self.assertFalse(registrar.poll(pd.Timestamp("2024-01-08 18:34")))
        self.assertTrue(registrar.poll(pd.Timestamp("2024-01-08 18:35")))
        self.assertFalse(registrar.poll(pd.Timestamp("2024-01-08 18:36")))
        self.assertEqual(calls, [1])
        self.assertIsNone(registrar.next_due)

    def test_callback_can_rearm(self) -> None:
        registrar = PollingRegistrar()
        nxt = pd.Timestamp("2024-01-09 18:35")
        registrar.register_one_shot(pd.Timestamp("2024-01-08 18:35"),
                                    lambda: registrar.register_one_shot(nxt, lambda: None))
        registrar.poll(pd.Timestamp("2024-01-08 19:00"))
        self.assertEqual(registrar.next_due, nxt)


class TestPaperOrderSink(unittest.TestCase):
    def test_records_intents(self) -> None:
        sink = PaperOrderSink()
        intent = OrderIntent("SI", "buy", 103.0, 2.0, 102.0, "KickDay, enter")
        sink.submit(intent)
        self.assertEqual(sink.intents, [intent])


if __name__ == '__main__':
    unittest.main()
