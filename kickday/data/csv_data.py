"""
CSV bar loader.

This module provides a class to load historical intraday bars from
CSV files for replays.  Two layouts are accepted:

```
time,open,high,low,close[,...]
```

or the tab-separated MetaTrader 5 export with ``<DATE>``, ``<TIME>``,
``<OPEN>``, ``<HIGH>``, ``<LOW>`` and ``<CLOSE>`` columns.  Timestamps
without a timezone are interpreted in the configured exchange
timezone.
"""

from __future__ import annotations

from pathlib import Path
import pandas as pd

MT5_COLUMNS = ["<DATE>", "<TIME>", "<OPEN>", "<HIGH>", "<LOW>", "<CLOSE>"]


class CSVDataLoader:
    """Load bar data from CSV files.

    Parameters
    ----------
    csv_dir : str
        Directory where the CSV files are located.  Each symbol’s file
        must be named `{SYMBOL}.csv`.
    timezone : str
        IANA timezone name used to localise timestamps.
    """

    def __init__(self, csv_dir: str, timezone: str) -> None:
        self.csv_dir = Path(csv_dir)
        self.timezone = timezone

    def load(self, symbol: str) -> pd.DataFrame:
        """Return the bars of `symbol` indexed by timezone-aware time, oldest first."""
        file_path = self.csv_dir / f"{symbol}.csv"
        if not file_path.exists():
            raise FileNotFoundError(f"CSV file not found for symbol {symbol}: {file_path}")

        with file_path.open("r", encoding="utf-8") as fh:
            header = fh.readline()
        if "<DATE>" in header:
            df = self._read_mt5_export(file_path, symbol)
        else:
            df = self._read_standard(file_path, symbol)

        if df.index.tz is None:
            df.index = df.index.tz_localize(self.timezone)
        else:
            df.index = df.index.tz_convert(self.timezone)
        return df.sort_index()

    def _read_standard(self, file_path: Path, symbol: str) -> pd.DataFrame:
        df = pd.read_csv(file_path)
        if "time" not in df.columns or "close" not in df.columns:
            raise ValueError(
                f"Unrecognized CSV format for {symbol}: need 'time' and 'close' columns, "
                f"found {list(df.columns)}"
            )
        df["time"] = pd.to_datetime(df["time"], errors="raise")
        return df.set_index("time")

    def _read_mt5_export(self, file_path: Path, symbol: str) -> pd.DataFrame:
        df = pd.read_csv(file_path, sep="\t", engine="python")
        df.columns = [c.strip() for c in df.columns]
        missing = [c for c in MT5_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Unrecognized MT5 export for {symbol}. Missing columns: {missing}")

        dt = df["<DATE>"].astype(str).str.strip() + " " + df["<TIME>"].astype(str).str.strip()
        ts = pd.to_datetime(dt, format="%Y.%m.%d %H:%M:%S", errors="coerce")
        if ts.isna().any():
            ts = pd.to_datetime(dt, errors="coerce")
        if ts.isna().any():
            bad = dt[ts.isna()].head(5).tolist()
            raise ValueError(f"Could not parse MT5 DATE/TIME for {symbol}. Examples: {bad}")

        return pd.DataFrame(
            {
                "open": df["<OPEN>"].astype(float),
                "high": df["<HIGH>"].astype(float),
                "low": df["<LOW>"].astype(float),
                "close": df["<CLOSE>"].astype(float),
            }
        ).set_index(pd.DatetimeIndex(ts))
