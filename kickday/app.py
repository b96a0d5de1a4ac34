"""
Application entry point.

This module defines a simple command‑line interface for running the
kick-day strategy in different modes (replay, paper, live).  It
leverages the modules of the package to load configuration, replay
history, connect to MetaTrader 5 and generate reports.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config.schema import MODES, ConfigError, load_config
from .execution.replay_exec import ReplayEngine
from .execution.mt5_exec import MT5Engine
from .reporting.report import generate_replay_report


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Parse command‑line arguments and dispatch to the appropriate mode."""
    parser = argparse.ArgumentParser(description="Kick-day trading strategy")
    parser.add_argument(
        'mode', nargs='?', choices=list(MODES), default=None,
        help="Operating mode (defaults to the 'mode' setting of the config file)",
    )
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('--out-dir', default='results', help="Replay report directory")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        sys.exit(2)
    if args.mode is not None:
        config.mode = args.mode

    if config.mode == 'replay':
        logging.info("Replaying history...")
        reports = ReplayEngine(config).run()
        generate_replay_report(reports, config.strategy.kick_pct, out_dir=args.out_dir)
        logging.info("Replay complete. Results saved to the '%s' directory.", args.out_dir)
    else:
        live_flag = config.mode == 'live'
        logging.info("Starting %s trading via MetaTrader 5...", 'live' if live_flag else 'paper')
        MT5Engine(config, live=live_flag).run()


if __name__ == '__main__':
    main()
