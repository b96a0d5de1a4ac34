"""
Kick-day trigger loop.

`KickDayTriggerLoop` owns the single "next time to evaluate" timestamp.
It registers one wake-up with a time registrar, and when that wake-up
fires it evaluates every tracked instrument, submits the resulting
orders, computes the next business-day trigger and registers again.
It never registers more than one pending wake-up and performs no work
between firings.

All outside services are passed in at construction:

- previous-close source: ``read_evening_prices(days_back)``
- live price source: ``last_price(symbol)``
- tick rounder: ``shrink_price(symbol, price)``
- order sink: ``submit(intent)``
- time registrar: ``register_one_shot(when, callback)``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging
from typing import Callable, Dict, List, Mapping, Optional, Protocol
import pandas as pd

from ..config.schema import StrategyConfig
from ..execution.models import BUY, OrderIntent, PriceRecord
from .kick_day import ZERO_PRICE, GapDecision, build_order_intent, evaluate_gap
from .scheduler import BusinessDayScheduler


logger = logging.getLogger(__name__)


class PreviousCloseSource(Protocol):
    def read_evening_prices(self, days_back: int) -> Optional[Mapping[str, PriceRecord]]:
        """Evening clearing prices `days_back` sessions ago, `None` if unavailable."""


class LivePriceSource(Protocol):
    def last_price(self, symbol: str) -> float:
        """Last trade price, ``0`` when no trade has been observed."""


class TickRounder(Protocol):
    def shrink_price(self, symbol: str, price: float) -> float:
        """Align `price` to the instrument's tick size."""


class OrderSink(Protocol):
    def submit(self, intent: OrderIntent) -> None:
        """Hand an order over for placement."""


class TimeRegistrar(Protocol):
    def register_one_shot(self, when: pd.Timestamp, callback: Callable[[], object]) -> None:
        """Call `callback` once at or after `when`."""


@dataclass
class FiringReport:
    """What happened during one firing."""
    scheduled_for: pd.Timestamp
    decisions: Dict[str, GapDecision] = field(default_factory=dict)
    intents: List[OrderIntent] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    snapshot_unavailable: bool = False
    next_trigger: Optional[pd.Timestamp] = None


class KickDayTriggerLoop:
    """Run the kick-day check once per business day at the cutoff."""

    name = "KickDay"

    def __init__(
        self,
        config: StrategyConfig,
        closes: PreviousCloseSource,
        prices: LivePriceSource,
        rounder: TickRounder,
        sink: OrderSink,
        registrar: TimeRegistrar,
        today: date,
        tz_name: Optional[str] = None,
        on_fired: Optional[Callable[[FiringReport], None]] = None,
    ) -> None:
        self.config = config
        self.closes = closes
        self.prices = prices
        self.rounder = rounder
        self.sink = sink
        self.registrar = registrar
        self.on_fired = on_fired
        self.scheduler = BusinessDayScheduler(config.cutoff, tz_name)
        self.next_trigger: pd.Timestamp = self.scheduler.initial_trigger(today)

    def start(self) -> None:
        """Log the parameters and the last evening prices, then arm the first trigger."""
        logger.info(
            "%s starting: cutoff %s, kick %s%%, stop loss %s%%, stop at %s, symbols %s",
            self.name,
            self.next_trigger,
            self.config.kick_pct,
            self.config.sl_pct,
            self.config.time_to_stop,
            ", ".join(self.config.symbols),
        )
        snapshot = self.closes.read_evening_prices(1) or {}
        lines = []
        for symbol in self.config.symbols:
            record = snapshot.get(symbol)
            if record is None:
                lines.append(f"{symbol} - n/a")
            else:
                lines.append(f"{symbol} - {record.price} at {record.time}")
        logger.info("Previous session evening clearing prices:\n%s", "\n".join(lines))
        self.registrar.register_one_shot(self.next_trigger, self.fire)

    def fire(self) -> FiringReport:
        """Evaluate all symbols, submit orders and re-arm for the next business day.

        Re-arming happens even if a collaborator raises; the exception
        is then propagated to the registrar.
        """
        report = FiringReport(scheduled_for=self.next_trigger)
        try:
            self._evaluate(report)
        finally:
            self._rearm(report)
        if self.on_fired is not None:
            self.on_fired(report)
        return report

    def _evaluate(self, report: FiringReport) -> None:
        snapshot = self.closes.read_evening_prices(1)
        if not snapshot:
            report.snapshot_unavailable = True
            logger.error(
                "Could not read previous session closing prices, or the snapshot holds no instruments"
            )
            return

        for symbol in self.config.symbols:
            record = snapshot.get(symbol)
            if record is None:
                report.missing.append(symbol)
                logger.error("No previous session closing price for %s", symbol)
                continue

            prev_close = record.price
            logger.info("Previous session close %s - %s", symbol, prev_close)
            decision = evaluate_gap(self.prices.last_price(symbol), prev_close, self.config.kick_pct)
            report.decisions[symbol] = decision

            if decision.reason == ZERO_PRICE:
                logger.info("Last trade price of %s is 0, ignoring entry signal", symbol)
                continue
            if not decision.is_signal:
                logger.debug("%s: no kick (%s, last %s)", symbol, decision.reason, decision.last_price)
                continue

            logger.info(
                "ENTRY: evening clearing price - %s, last trade price - %s",
                prev_close,
                decision.last_price,
            )
            intent = build_order_intent(
                symbol,
                decision,
                self.config.volumes[symbol],
                self.config.sl_pct,
                self.rounder.shrink_price,
                comment=f"{self.name}, enter",
            )
            logger.info(
                "ORDER %s: registering %s limit at %s, volume %s, stop at %s",
                symbol,
                "buy" if intent.side == BUY else "sell",
                intent.price,
                intent.volume,
                intent.stop_price,
            )
            self.sink.submit(intent)
            report.intents.append(intent)

    def _rearm(self, report: FiringReport) -> None:
        self.next_trigger = self.scheduler.next_trigger(self.next_trigger)
        report.next_trigger = self.next_trigger
        self.registrar.register_one_shot(self.next_trigger, self.fire)
        logger.info("Next attempt: %s", self.next_trigger)
