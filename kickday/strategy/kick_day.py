"""
Kick-day gap detection and order construction.

A "kick day" is a session where, at the cutoff time, the last trade
has moved away from the previous evening clearing price by more than
`kick_pct` percent.  An upward kick is followed (buy), a downward kick
is sold, both with a limit order at the last trade price and a stop
`sl_pct` percent away.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Callable, Optional

from ..execution.models import BUY, SELL, OrderIntent

ORDER_COMMENT = "KickDay, enter"

# GapDecision.reason values
ZERO_PRICE = 'zero_price'
WITHIN_THRESHOLD = 'within_threshold'
KICK_UP = 'kick_up'
KICK_DOWN = 'kick_down'
UNCLASSIFIED = 'unclassified'


@dataclass(frozen=True)
class GapDecision:
    """Outcome of the gap check for one instrument.

    Attributes
    ----------
    signal : str or None
        ``'buy'``, ``'sell'`` or `None` when no order should be placed.
    reference_price : float
        The previous evening clearing price the gap was measured from.
    last_price : float
        The last trade price that was checked.
    reason : str
        One of the module-level reason constants.
    """

    signal: Optional[str]
    reference_price: float
    last_price: float
    reason: str

    @property
    def is_signal(self) -> bool:
        return self.signal is not None

    @property
    def gap_pct(self) -> Optional[float]:
        """Deviation from the reference in percent, `None` without a trade."""
        if self.last_price == 0 or self.reference_price == 0:
            return None
        return (self.last_price - self.reference_price) / self.reference_price * 100


def evaluate_gap(last_price: float, prev_close: float, kick_pct: float) -> GapDecision:
    """Decide whether the move since the previous close is a kick.

    A zero last price means no trade has been seen yet and never
    signals.  A deviation of exactly the threshold does not signal.
    The buy and sell tests are checked separately from the threshold
    test; a price that passes the threshold but neither side test (an
    artefact of float rounding at the boundary) is reported as
    ``UNCLASSIFIED`` and does not signal either.
    """
    if last_price == 0:
        return GapDecision(None, prev_close, last_price, ZERO_PRICE)

    deviation = last_price - prev_close
    if abs(deviation) <= prev_close * kick_pct / 100:
        return GapDecision(None, prev_close, last_price, WITHIN_THRESHOLD)

    if last_price >= prev_close * (1 + kick_pct / 100):
        return GapDecision(BUY, prev_close, last_price, KICK_UP)
    if last_price <= prev_close * (1 - kick_pct / 100):
        return GapDecision(SELL, prev_close, last_price, KICK_DOWN)
    return GapDecision(None, prev_close, last_price, UNCLASSIFIED)


def raw_stop_price(side: str, last_price: float, sl_pct: float) -> Decimal:
    """Stop level before any rounding: below the entry for a buy, above for a sell.

    Computed in decimal so that exact half-unit stops (``100 * 1.015``)
    stay exact instead of drifting to ``101.4999…``.
    """
    price = Decimal(str(last_price))
    distance = Decimal(str(sl_pct)) / 100
    if side == BUY:
        return price * (1 - distance)
    if side == SELL:
        return price * (1 + distance)
    raise ValueError(f"Unknown order side: {side!r}")


def build_order_intent(
    symbol: str,
    decision: GapDecision,
    volume: float,
    sl_pct: float,
    shrink_price: Callable[[str, float], float],
    comment: str = ORDER_COMMENT,
) -> OrderIntent:
    """Turn a buy/sell decision into a limit order intent.

    Parameters
    ----------
    symbol : str
        Instrument code.
    decision : GapDecision
        A decision with a signal; a no-signal decision is a caller error.
    volume : float
        Configured order volume for `symbol`.
    sl_pct : float
        Stop-loss distance in percent.
    shrink_price : callable
        ``shrink_price(symbol, price)`` aligning a price to the
        instrument's tick size.

    Returns
    -------
    OrderIntent
        Limit order at the last trade price.  The stop is rounded to the
        nearest whole currency unit (half to even) and then tick aligned.
    """
    if not decision.is_signal:
        raise ValueError(f"Cannot build an order for {symbol}: no signal ({decision.reason})")
    raw_stop = raw_stop_price(decision.signal, decision.last_price, sl_pct)
    stop_price = shrink_price(symbol, float(raw_stop.quantize(Decimal(1), rounding=ROUND_HALF_EVEN)))
    return OrderIntent(
        symbol=symbol,
        side=decision.signal,
        price=decision.last_price,
        volume=volume,
        stop_price=stop_price,
        comment=comment,
    )
