"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config`.

The strategy parameters (`strategy` section) have no defaults: every
one of them must be present in the file, and the values are validated
as soon as `StrategyConfig` is constructed so that a bad configuration
fails at startup rather than in the middle of a trading day.  The
ambient sections (`data`, `mt5`) are merged with defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping
import yaml

from ..utils.timeutils import parse_time_str


class ConfigError(ValueError):
    """Raised when the configuration violates a precondition."""


REQUIRED_STRATEGY_KEYS = ('symbols', 'volumes', 'sl_pct', 'kick_pct', 'time_off', 'time_to_stop')

MODES = ('replay', 'paper', 'live')


@dataclass(frozen=True)
class StrategyConfig:
    """Immutable parameters of the kick-day rule.

    Attributes
    ----------
    symbols : tuple of str
        Tracked instrument codes, in evaluation order.
    volumes : Mapping[str, float]
        Order volume per instrument code.  Every tracked symbol must
        have a positive entry.
    timeframe : str
        Bar timeframe.  Passed through; the rule itself does not use it.
    sl_pct : float
        Stop-loss distance in percent of the entry price (``1`` = 1 %).
    tp_pct : float
        Take-profit percent.  Carried for completeness, not used.
    kick_pct : float
        Gap threshold in percent of the previous evening clearing price.
    time_off : str
        Cutoff time of day (``HH:MM``) at which the gap check runs.
    time_to_stop : str
        Time of day (``HH:MM``) after which the runner stops.
    """

    symbols: Iterable[str]
    volumes: Mapping[str, float]
    timeframe: str
    sl_pct: float
    tp_pct: float
    kick_pct: float
    time_off: str
    time_to_stop: str

    def __post_init__(self) -> None:
        if isinstance(self.symbols, str):
            raise ConfigError(f"symbols must be a list of instrument codes, got {self.symbols!r}")
        symbols = tuple(str(s) for s in self.symbols)
        if not symbols:
            raise ConfigError("At least one symbol must be configured")
        if len(set(symbols)) != len(symbols):
            raise ConfigError(f"Duplicate symbols in configuration: {list(symbols)}")

        try:
            volumes = {str(k): float(v) for k, v in dict(self.volumes).items()}
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Order volumes must be numbers: {exc}") from exc
        missing = [s for s in symbols if s not in volumes]
        if missing:
            raise ConfigError(f"No order volume configured for: {missing}")
        bad_volumes = {s: volumes[s] for s in symbols if volumes[s] <= 0}
        if bad_volumes:
            raise ConfigError(f"Order volumes must be positive: {bad_volumes}")

        for name in ('sl_pct', 'tp_pct', 'kick_pct'):
            try:
                value = float(getattr(self, name))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{name} must be a number: {getattr(self, name)!r}") from exc
            if value < 0:
                raise ConfigError(f"{name} must be non-negative, got {value}")
            object.__setattr__(self, name, value)

        for name in ('time_off', 'time_to_stop'):
            try:
                parse_time_str(str(getattr(self, name)))
            except ValueError as exc:
                raise ConfigError(f"{name} must be in HH:MM format: {getattr(self, name)!r}") from exc

        object.__setattr__(self, 'symbols', symbols)
        object.__setattr__(self, 'volumes', MappingProxyType(volumes))
        object.__setattr__(self, 'timeframe', str(self.timeframe))
        object.__setattr__(self, 'time_off', str(self.time_off))
        object.__setattr__(self, 'time_to_stop', str(self.time_to_stop))

    @property
    def cutoff(self):
        """Cutoff as a `datetime.time`."""
        return parse_time_str(self.time_off)

    @property
    def stop_time(self):
        return parse_time_str(self.time_to_stop)


@dataclass
class MT5Config:
    """Holds parameters required to connect to a MetaTrader 5 terminal.

    Attributes
    ----------
    login : int
        Account login number.  Use `0` when replaying history.
    password : str
        Password for the account.
    server : str
        Broker server name.
    path : str
        File system path to the MetaTrader 5 terminal executable
        (`terminal64.exe`).  Required for paper/live trading.
    deviation : int
        Maximum price deviation in points accepted by the terminal.
    magic : int
        Expert identifier attached to every order sent.
    """

    login: int = 0
    password: str = ""
    server: str = ""
    path: str = ""
    deviation: int = 10
    magic: int = 0


@dataclass
class DataConfig:
    """Data source configuration.

    Attributes
    ----------
    csv_dir : str
        Directory containing one bar CSV per symbol for replays.
    evening_prices : str
        CSV file with the recorded evening clearing prices
        (``time,symbol,price``).
    timezone : str
        IANA timezone name of the exchange clock.  Scheduling, the
        evening price snapshot and the live price feed all use it.
    """

    csv_dir: str = "data"
    evening_prices: str = "data/evening_prices.csv"
    timezone: str = "Europe/Moscow"


@dataclass
class Config:
    """Root configuration for the program.

    Attributes
    ----------
    strategy : StrategyConfig
        Kick-day parameters.
    tick_sizes : dict
        Optional minimum price increment per symbol, used to align stop
        prices when no terminal is available (replays).
    poll_seconds : float
        Polling interval of the paper/live runner.
    mode : str
        Operating mode: ``replay``, ``paper`` or ``live``.
    data : DataConfig
        Data source configuration.
    mt5 : MT5Config
        MetaTrader 5 connection configuration.
    """

    strategy: StrategyConfig
    tick_sizes: Dict[str, float] = field(default_factory=dict)
    poll_seconds: float = 30.0
    mode: str = "replay"
    data: DataConfig = field(default_factory=DataConfig)
    mt5: MT5Config = field(default_factory=MT5Config)


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def build_strategy_config(raw: Dict[str, Any]) -> StrategyConfig:
    """Build a `StrategyConfig` from the ``strategy`` section of the YAML file."""
    missing: List[str] = [key for key in REQUIRED_STRATEGY_KEYS if key not in raw]
    if missing:
        raise ConfigError(f"Missing required strategy settings: {missing}")
    if not isinstance(raw['symbols'], list):
        raise ConfigError(f"strategy.symbols must be a list, got {raw['symbols']!r}")
    if not isinstance(raw['volumes'], dict):
        raise ConfigError("strategy.volumes must be a mapping of symbol to volume")
    try:
        return StrategyConfig(
            symbols=list(raw['symbols']),
            volumes=raw['volumes'],
            timeframe=str(raw.get('timeframe', 'M1')),
            sl_pct=float(raw['sl_pct']),
            tp_pct=float(raw.get('tp_pct', 0.0)),
            kick_pct=float(raw['kick_pct']),
            time_off=str(raw['time_off']),
            time_to_stop=str(raw['time_to_stop']),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid strategy settings: {exc}") from exc


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.

    Raises
    ------
    ConfigError
        If the strategy section is missing or invalid.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}

    if not isinstance(raw.get('strategy'), dict):
        raise ConfigError(f"{path}: a 'strategy' section is required")

    defaults: Dict[str, Any] = {
        'tick_sizes': {},
        'poll_seconds': 30.0,
        'mode': 'replay',
        'data': {
            'csv_dir': 'data',
            'evening_prices': 'data/evening_prices.csv',
            'timezone': 'Europe/Moscow',
        },
        'mt5': {
            'login': 0,
            'password': "",
            'server': "",
            'path': "",
            'deviation': 10,
            'magic': 0,
        },
    }
    merged = _merge_dict(defaults, raw)

    try:
        data_cfg = DataConfig(**merged['data'])
        mt5_cfg = MT5Config(**merged['mt5'])
    except TypeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc

    tick_sizes = {str(k): float(v) for k, v in (merged.get('tick_sizes') or {}).items()}
    if any(v < 0 for v in tick_sizes.values()):
        raise ConfigError(f"{path}: tick sizes must be non-negative")

    mode = str(merged.get('mode') or 'replay').lower()
    if mode not in MODES:
        raise ConfigError(f"{path}: mode must be one of {list(MODES)}, got {mode!r}")

    return Config(
        strategy=build_strategy_config(merged['strategy']),
        tick_sizes=tick_sizes,
        poll_seconds=float(merged.get('poll_seconds', 30.0)),
        mode=mode,
        data=data_cfg,
        mt5=mt5_cfg,
    )
