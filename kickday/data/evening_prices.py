"""
Evening clearing price snapshot.

The terminal records the evening clearing price of every instrument
at the end of each session into a CSV file:

```
time,symbol,price
2024-03-04 19:00:00,SiH4,91250
```

`EveningPriceStore` reads that file back and returns, for a given
number of sessions back, the last recorded price of each symbol.
Sessions are the calendar dates present in the file that are strictly
before today on the exchange clock.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Optional
import pandas as pd

from ..execution.models import PriceRecord
from ..utils.timeutils import now as clock_now


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("time", "symbol", "price")


class EveningPriceStore:
    """Read previous-session closing prices from a CSV snapshot.

    Parameters
    ----------
    path : str
        Location of the snapshot file.
    timezone : str
        Exchange timezone; naive timestamps in the file are local to it.
    clock : callable, optional
        Returns the current exchange time.  Defaults to the wall clock.
    """

    def __init__(
        self,
        path: str,
        timezone: str,
        clock: Optional[Callable[[], pd.Timestamp]] = None,
    ) -> None:
        self.path = Path(path)
        self.timezone = timezone
        self.clock = clock or (lambda: clock_now(timezone))

    def load(self) -> pd.DataFrame:
        """Load the whole snapshot file sorted by time."""
        df = pd.read_csv(self.path)
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{self.path}: missing columns {missing}")
        df["time"] = pd.to_datetime(df["time"], errors="raise")
        if df["time"].dt.tz is None:
            df["time"] = df["time"].dt.tz_localize(self.timezone)
        else:
            df["time"] = df["time"].dt.tz_convert(self.timezone)
        df["symbol"] = df["symbol"].astype(str)
        df["price"] = df["price"].astype(float)
        return df.sort_values("time", kind="stable")

    def read_evening_prices(self, days_back: int = 1) -> Optional[Dict[str, PriceRecord]]:
        """Return ``{symbol: PriceRecord}`` for the session `days_back` sessions ago.

        Returns `None` when the file does not exist or holds fewer than
        `days_back` sessions before today.
        """
        if days_back < 1:
            raise ValueError(f"days_back must be at least 1, got {days_back}")
        if not self.path.exists():
            logger.error("Evening price snapshot not found: %s", self.path)
            return None

        try:
            df = self.load()
        except pd.errors.EmptyDataError:
            logger.error("Evening price snapshot is empty: %s", self.path)
            return None
        today = self.clock().normalize()
        df["session"] = df["time"].dt.normalize()
        earlier = df[df["session"] < today]
        session_dates = sorted(earlier["session"].unique())
        if len(session_dates) < days_back:
            return None

        target = session_dates[-days_back]
        day = earlier[earlier["session"] == target]
        last = day.groupby("symbol", sort=False).tail(1)
        return {
            row.symbol: PriceRecord(price=row.price, time=row.time)
            for row in last.itertuples(index=False)
        }
