"""
Tick-size alignment.

Exchanges only accept prices that are a multiple of the instrument's
minimum price increment.  `round_to_tick` snaps a computed price to
the nearest such multiple; `TickSizeTable` applies it from a static
per-symbol table for runs without a trading terminal.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Mapping, Optional


def round_to_tick(price: float, tick_size: Optional[float]) -> float:
    """Round `price` to the nearest multiple of `tick_size`.

    A missing or zero tick size leaves the price unchanged.  Decimal
    arithmetic keeps the result free of float noise (``0.1 * 3``).
    """
    if not tick_size:
        return price
    tick = Decimal(str(tick_size))
    steps = (Decimal(str(price)) / tick).quantize(Decimal(1), rounding=ROUND_HALF_EVEN)
    return float(steps * tick)


class TickSizeTable:
    """Tick rounder backed by a configured symbol → tick size mapping."""

    def __init__(self, tick_sizes: Mapping[str, float]) -> None:
        self.tick_sizes = dict(tick_sizes)

    def shrink_price(self, symbol: str, price: float) -> float:
        return round_to_tick(price, self.tick_sizes.get(symbol))
