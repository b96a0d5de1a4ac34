"""
Report generation utilities.

This module turns replay results into human‑readable artefacts:
CSV files of the order intents and of every per-symbol decision, a
JSON summary and a PNG chart of the gap at each firing against the
kick threshold band.
"""

from __future__ import annotations

import os
import json
from typing import Any, Dict, List
import pandas as pd
import matplotlib

# Use non‑interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..execution.models import BUY, SELL
from ..strategy.trigger_loop import FiringReport


def intents_frame(reports: List[FiringReport]) -> pd.DataFrame:
    """One row per submitted order intent."""
    rows = [
        {
            'timestamp': r.scheduled_for.isoformat(),
            'symbol': i.symbol,
            'side': i.side,
            'price': i.price,
            'volume': i.volume,
            'stop_price': i.stop_price,
            'comment': i.comment,
        }
        for r in reports
        for i in r.intents
    ]
    return pd.DataFrame(rows, columns=['timestamp', 'symbol', 'side', 'price', 'volume', 'stop_price', 'comment'])


def firings_frame(reports: List[FiringReport]) -> pd.DataFrame:
    """One row per symbol per firing, including missing data."""
    rows: List[Dict[str, Any]] = []
    for r in reports:
        ts = r.scheduled_for.isoformat()
        if r.snapshot_unavailable:
            rows.append({'timestamp': ts, 'symbol': None, 'reason': 'snapshot_unavailable'})
            continue
        for symbol, d in r.decisions.items():
            rows.append({
                'timestamp': ts,
                'symbol': symbol,
                'prev_close': d.reference_price,
                'last_price': d.last_price,
                'gap_pct': d.gap_pct,
                'signal': d.signal,
                'reason': d.reason,
            })
        for symbol in r.missing:
            rows.append({'timestamp': ts, 'symbol': symbol, 'reason': 'missing_close'})
    return pd.DataFrame(
        rows,
        columns=['timestamp', 'symbol', 'prev_close', 'last_price', 'gap_pct', 'signal', 'reason'],
    )


def summarize(reports: List[FiringReport]) -> Dict[str, Any]:
    intents = [i for r in reports for i in r.intents]
    return {
        'firings': len(reports),
        'intents': len(intents),
        'buys': sum(1 for i in intents if i.side == BUY),
        'sells': sum(1 for i in intents if i.side == SELL),
        'snapshot_unavailable': sum(1 for r in reports if r.snapshot_unavailable),
        'missing_closes': sum(len(r.missing) for r in reports),
        'first_firing': reports[0].scheduled_for.isoformat() if reports else None,
        'last_firing': reports[-1].scheduled_for.isoformat() if reports else None,
    }


def generate_replay_report(
    reports: List[FiringReport],
    kick_pct: float,
    out_dir: str = "results",
) -> None:
    """Generate report files for a replay run.

    Creates the output directory if it does not exist and writes the
    following files:

    - `intents.csv` – order intents emitted
    - `firings.csv` – decision per symbol per firing
    - `summary.json` – counts
    - `gaps.png` – gap % per symbol with the ± kick band
    """
    os.makedirs(out_dir, exist_ok=True)

    intents_frame(reports).to_csv(os.path.join(out_dir, 'intents.csv'), index=False)
    df_firings = firings_frame(reports)
    df_firings.to_csv(os.path.join(out_dir, 'firings.csv'), index=False)

    with open(os.path.join(out_dir, 'summary.json'), 'w', encoding='utf-8') as fh:
        json.dump(summarize(reports), fh, indent=2, ensure_ascii=False)

    fig, ax = plt.subplots(figsize=(10, 4))
    gaps = df_firings.dropna(subset=['gap_pct'])
    if not gaps.empty:
        times = pd.to_datetime(gaps['timestamp'], utc=True)
        for symbol, idx in gaps.groupby('symbol').groups.items():
            ax.plot(times.loc[idx], gaps.loc[idx, 'gap_pct'], marker='o', linewidth=1.0, label=symbol)
        ax.axhline(kick_pct, color='grey', linestyle='--', linewidth=0.8)
        ax.axhline(-kick_pct, color='grey', linestyle='--', linewidth=0.8)
        ax.set_title('Gap at cutoff vs previous evening clearing')
        ax.set_xlabel('Time')
        ax.set_ylabel('Gap, %')
        ax.legend()
        fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(os.path.join(out_dir, 'gaps.png'))
    plt.close(fig)
