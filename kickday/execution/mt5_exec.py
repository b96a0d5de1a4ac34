"""
MetaTrader 5 execution engine.

This module runs the kick-day trigger loop against a MetaTrader 5
terminal in paper or live mode.  The engine polls the wall clock,
fires the pending trigger once it is due and stops at the configured
stop time of day.  In paper mode orders are only logged; in live mode
they are sent as pending limit orders with the stop loss attached.

**Note**: Running this engine requires the `MetaTrader5` package and
a locally installed MT5 terminal.  In environments where MT5 is not
available, the engine will not run.
"""

from __future__ import annotations

import time
import logging
from typing import Callable, List, Optional, Tuple
import pandas as pd

from ..config.schema import Config, MT5Config
from ..data.evening_prices import EveningPriceStore
from ..data.mt5_data import MT5DataFeed, mt5
from ..execution.models import BUY, OrderIntent
from ..strategy.trigger_loop import KickDayTriggerLoop
from ..utils.timeutils import at_time_of_day, now as clock_now


logger = logging.getLogger(__name__)


class PollingRegistrar:
    """Hold the single pending one-shot and fire it when polled past its time."""

    def __init__(self) -> None:
        self._pending: Optional[Tuple[pd.Timestamp, Callable[[], object]]] = None

    def register_one_shot(self, when: pd.Timestamp, callback: Callable[[], object]) -> None:
        self._pending = (when, callback)

    @property
    def next_due(self) -> Optional[pd.Timestamp]:
        return self._pending[0] if self._pending else None

    def poll(self, now: pd.Timestamp) -> bool:
        """Fire the pending callback if it is due.  Returns whether it fired."""
        if self._pending is None or now < self._pending[0]:
            return False
        _, callback = self._pending
        self._pending = None
        callback()
        return True


class PaperOrderSink:
    """Log orders instead of sending them."""

    def __init__(self) -> None:
        self.intents: List[OrderIntent] = []

    def submit(self, intent: OrderIntent) -> None:
        logger.info(
            "PAPER %s %s %s @ %s (stop %s)",
            intent.side,
            intent.volume,
            intent.symbol,
            intent.price,
            intent.stop_price,
        )
        self.intents.append(intent)


class MT5OrderSink:
    """Send order intents to the terminal as pending limit orders."""

    def __init__(self, config: MT5Config) -> None:
        self.config = config

    def build_request(self, intent: OrderIntent) -> dict:
        return {
            'action': mt5.TRADE_ACTION_PENDING,
            'symbol': intent.symbol,
            'volume': float(intent.volume),
            'type': mt5.ORDER_TYPE_BUY_LIMIT if intent.side == BUY else mt5.ORDER_TYPE_SELL_LIMIT,
            'price': intent.price,
            'sl': intent.stop_price,
            'deviation': self.config.deviation,
            'magic': self.config.magic,
            'comment': intent.comment,
            'type_time': mt5.ORDER_TIME_DAY,
            'type_filling': mt5.ORDER_FILLING_RETURN,
        }

    def submit(self, intent: OrderIntent) -> None:
        if mt5 is None:
            raise RuntimeError("MetaTrader5 package is not installed.")
        result = mt5.order_send(self.build_request(intent))
        if result is None:
            logger.error("order_send failed for %s: %s", intent.symbol, mt5.last_error())
        elif result.retcode != mt5.TRADE_RETCODE_DONE:
            logger.error("Order for %s rejected: retcode=%s %s", intent.symbol, result.retcode, result.comment)
        else:
            logger.info("Order %s placed for %s", result.order, intent.symbol)


class MT5Engine:
    """Run the kick-day strategy in paper or live mode via MetaTrader 5."""

    def __init__(self, config: Config, live: bool = False) -> None:
        self.config = config
        self.live = live
        self.data_feed = MT5DataFeed(config.mt5)
        self.evening_prices = EveningPriceStore(config.data.evening_prices, config.data.timezone)

    def run(self) -> None:
        """Main loop for paper/live trading.

        Arms the trigger loop and polls until today's stop time.  Press
        Ctrl+C to stop earlier.
        """
        tz = self.config.data.timezone
        started = clock_now(tz)
        stop_at = at_time_of_day(started.date(), self.config.strategy.stop_time, tz)
        if started >= stop_at:
            logger.warning("Stop time %s has already passed, not starting", stop_at)
            return

        logger.info("Starting MT5 engine (live=%s), stopping at %s", self.live, stop_at)
        try:
            self.data_feed.connect()
        except RuntimeError as exc:
            logger.error("Failed to connect to MetaTrader 5: %s", exc)
            return

        registrar = PollingRegistrar()
        sink = MT5OrderSink(self.config.mt5) if self.live else PaperOrderSink()
        loop = KickDayTriggerLoop(
            self.config.strategy,
            closes=self.evening_prices,
            prices=self.data_feed,
            rounder=self.data_feed,
            sink=sink,
            registrar=registrar,
            today=started.date(),
            tz_name=tz,
        )
        try:
            loop.start()
            while True:
                current = clock_now(tz)
                if current >= stop_at:
                    logger.info("Time to stop reached (%s)", stop_at)
                    break
                registrar.poll(current)
                time.sleep(self.config.poll_seconds)
        except KeyboardInterrupt:
            logger.info("Shutting down MT5 engine...")
        finally:
            self.data_feed.shutdown()
