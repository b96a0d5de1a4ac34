"""
MetaTrader 5 data feed.

This module wraps the `MetaTrader5` Python package to read the last
trade price and the tick size of an instrument during paper and live
trading.  If the package is not installed or initialisation fails,
the code raises a clear exception.  Users can skip installing
MetaTrader5 when only replaying history.
"""

from __future__ import annotations

import logging

from ..config.schema import MT5Config
from ..utils.ticks import round_to_tick

# Attempt to import MetaTrader5.  If unavailable, mt5 will be None.
try:
    import MetaTrader5 as mt5  # type: ignore
except ImportError:
    mt5 = None  # Will be checked at runtime


logger = logging.getLogger(__name__)


class MT5DataFeed:
    """Handle the connection to MetaTrader 5 and synchronous price reads."""

    def __init__(self, config: MT5Config) -> None:
        self.config = config
        self._connected = False

    def connect(self) -> None:
        """Initialise the MetaTrader 5 terminal.

        Raises
        ------
        RuntimeError
            If the MetaTrader5 package is not installed or initialisation fails.
        """
        if mt5 is None:
            raise RuntimeError(
                "MetaTrader5 package is not installed.  Install it with 'pip install MetaTrader5' to use paper or live trading."
            )
        if not mt5.initialize(path=self.config.path, login=self.config.login, password=self.config.password, server=self.config.server):
            raise RuntimeError(f"MT5 initialisation failed: {mt5.last_error()}")
        self._connected = True

    def shutdown(self) -> None:
        """Shutdown the MT5 connection if it was opened."""
        if mt5 and self._connected:
            mt5.shutdown()
            self._connected = False

    def _require_connection(self) -> None:
        if not self._connected:
            raise RuntimeError("MT5DataFeed is not connected.  Call connect() before requesting data.")

    def last_price(self, symbol: str) -> float:
        """Return the last trade price of `symbol`, ``0.0`` when the terminal has none."""
        self._require_connection()
        tick = mt5.symbol_info_tick(symbol)
        if tick is None:
            logger.warning("No tick data for %s: %s", symbol, mt5.last_error())
            return 0.0
        return float(tick.last)

    def shrink_price(self, symbol: str, price: float) -> float:
        """Align `price` to the tick size the terminal reports for `symbol`."""
        self._require_connection()
        info = mt5.symbol_info(symbol)
        if info is None:
            logger.warning("No symbol info for %s, stop price left unaligned", symbol)
            return price
        return round_to_tick(price, info.trade_tick_size)
