"""
Replay execution engine.

This module contains the `ReplayEngine` class which drives the kick-day
trigger loop over historical bars with a simulated clock.  Prices seen
by the loop at each trigger are the ones that were known at that
moment: the last bar close at or before the trigger on the same day,
and the last bar close of the previous session as the evening price.
Order intents are recorded, not filled.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from typing import Callable, Dict, List, Optional, Tuple
import pandas as pd

from ..config.schema import Config
from ..data.csv_data import CSVDataLoader
from ..execution.models import OrderIntent, PriceRecord
from ..strategy.trigger_loop import FiringReport, KickDayTriggerLoop
from ..utils.ticks import TickSizeTable


logger = logging.getLogger(__name__)


class SimulatedClock:
    """Virtual time plus a queue of one-shot callbacks.

    Callbacks registered while another one runs are queued, never
    called re-entrantly.
    """

    def __init__(self, start: pd.Timestamp) -> None:
        self.now = start
        self._queue: List[Tuple[pd.Timestamp, int, Callable[[], object]]] = []
        self._seq = itertools.count()

    def register_one_shot(self, when: pd.Timestamp, callback: Callable[[], object]) -> None:
        heapq.heappush(self._queue, (when, next(self._seq), callback))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def run_until(self, end: pd.Timestamp) -> None:
        """Fire every callback due at or before `end`, advancing `now` to each due time."""
        while self._queue and self._queue[0][0] <= end:
            when, _, callback = heapq.heappop(self._queue)
            if when > self.now:
                self.now = when
            callback()
        if end > self.now:
            self.now = end


class HistoricalPrices:
    """Previous-close and last-price source over in-memory bars."""

    def __init__(self, bars: Dict[str, pd.DataFrame], clock: SimulatedClock) -> None:
        self.bars = bars
        self.clock = clock

    def read_evening_prices(self, days_back: int = 1) -> Optional[Dict[str, PriceRecord]]:
        today = self.clock.now.normalize()
        snapshot: Dict[str, PriceRecord] = {}
        for symbol, df in self.bars.items():
            earlier = df[df.index < today]
            if earlier.empty:
                continue
            sessions = earlier.index.normalize()
            session_dates = sessions.unique()
            if len(session_dates) < days_back:
                continue
            day = earlier[sessions == session_dates[-days_back]]
            snapshot[symbol] = PriceRecord(price=float(day['close'].iloc[-1]), time=day.index[-1])
        return snapshot or None

    def last_price(self, symbol: str) -> float:
        df = self.bars.get(symbol)
        if df is None:
            return 0.0
        now = self.clock.now
        window = df.loc[now.normalize():now]
        if window.empty:
            return 0.0
        return float(window['close'].iloc[-1])


class RecordingOrderSink:
    """Keep submitted intents in memory."""

    def __init__(self) -> None:
        self.intents: List[OrderIntent] = []

    def submit(self, intent: OrderIntent) -> None:
        logger.debug("Recorded %s", intent)
        self.intents.append(intent)


class ReplayEngine:
    """Run the kick-day rule over historical data loaded from CSV files."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.data_loader = CSVDataLoader(config.data.csv_dir, config.data.timezone)

    def run(self) -> List[FiringReport]:
        """Replay the full history and return one report per firing.

        The replay starts on the date of the earliest bar and stops after
        the latest bar of any symbol.
        """
        bars = {symbol: self.data_loader.load(symbol) for symbol in self.config.strategy.symbols}
        non_empty = [df for df in bars.values() if not df.empty]
        if not non_empty:
            logger.warning("No bar data found, nothing to replay")
            return []
        start = min(df.index[0] for df in non_empty)
        end = max(df.index[-1] for df in non_empty)

        clock = SimulatedClock(start.normalize())
        prices = HistoricalPrices(bars, clock)
        reports: List[FiringReport] = []
        loop = KickDayTriggerLoop(
            self.config.strategy,
            closes=prices,
            prices=prices,
            rounder=TickSizeTable(self.config.tick_sizes),
            sink=RecordingOrderSink(),
            registrar=clock,
            today=start.date(),
            tz_name=self.config.data.timezone,
            on_fired=reports.append,
        )
        loop.start()
        clock.run_until(end)
        logger.info("Replay finished: %d firings from %s to %s", len(reports), start, end)
        return reports
