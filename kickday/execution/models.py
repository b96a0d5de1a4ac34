"""
Price and order models.

These dataclasses represent the objects passed between the data
sources, the kick-day rule and the order sinks.  Keeping them in a
separate module improves readability and makes unit testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass
import pandas as pd

BUY = 'buy'
SELL = 'sell'


@dataclass(frozen=True)
class PriceRecord:
    """A price and the time it was observed at."""
    price: float
    time: pd.Timestamp


@dataclass(frozen=True)
class OrderIntent:
    """A limit order the strategy wants placed.

    Ownership passes to the order sink on submission; the strategy keeps
    no reference to it afterwards.
    """
    symbol: str
    side: str  # 'buy' or 'sell'
    price: float  # limit price
    volume: float
    stop_price: float
    comment: str = ""
