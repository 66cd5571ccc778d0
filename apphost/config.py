"""Configuration: frozen dataclass built from defaults <- YAML file <- env vars <- CLI args."""

import logging
import os
from argparse import ArgumentParser
from dataclasses import dataclass, field
from datetime import timedelta

import yaml

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

ENV_VARS = {
    "SEQ_SERVER_URL": "server",
    "SEQ_API_KEY": "api_key",
    "SEQ_FILTER": "filter",
    "SEQ_WINDOW": "window",
    "APPHOST_IDLE_DELAY": "idle_delay",
    "APPHOST_LOOKBACK_MINUTES": "lookback_minutes",
    "APPHOST_REQUEST_TIMEOUT": "request_timeout",
    "APPHOST_LOG_LEVEL": "log_level",
}

YAML_KEYS = frozenset({
    "reactor", "server", "api_key", "filter", "window", "idle_delay",
    "lookback_minutes", "request_timeout", "color", "log_level",
})


class ConfigError(Exception):
    """Raised for invalid settings; reported before the tail starts."""


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_int(value) -> int:
    """Accept ints, integral floats and numeric strings; reject bools and fractions."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"expected an integer, got {value!r}")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, int):
        return value
    raise TypeError(f"expected an integer, got {value!r}")


def normalize(value):
    """Blank strings mean "not set"."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


@dataclass(frozen=True)
class TailConfig:
    reactor: str | None = None
    server: str = "http://localhost:5341"
    api_key: str | None = None
    filter: str | None = None
    window: int = 100
    idle_delay: float = 1.0
    requery_lookback: timedelta = field(default=timedelta(minutes=3))
    request_timeout: float = 30.0
    color: bool | None = None    # None: colorize only when stdout is a TTY
    log_level: str = "INFO"


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser. Unset options stay None so lower layers show through."""
    parser = ArgumentParser(
        prog="seq-dev-apphost",
        description="Run a Seq reactor at the console against events tailed from a Seq server.",
    )
    parser.add_argument(
        "reactor",
        nargs="?",
        help="Module name or .py file from which to load the reactor",
    )
    parser.add_argument(
        "--server",
        help="Seq server URL (default: http://localhost:5341)",
    )
    parser.add_argument(
        "--filter",
        help="Filter expression or free text to match",
    )
    parser.add_argument(
        "--apikey",
        dest="api_key",
        help="Seq API key",
    )
    parser.add_argument(
        "--window",
        type=int,
        help="Number of most recent events requested per poll (default: 100)",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML file with default settings",
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_false",
        default=None,
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--log-level",
        help="Diagnostic log level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )
    return parser


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file {path} not found") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    unknown = set(data) - YAML_KEYS
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(sorted(unknown))}")
    logger.info("Loaded YAML config from %s", path)
    return data


def load_env(environ=None) -> dict:
    if environ is None:
        environ = os.environ
    return {key: environ[var] for var, key in ENV_VARS.items() if var in environ}


def load_config(argv: list[str] | None = None, environ=None) -> TailConfig:
    """Build TailConfig from defaults <- YAML <- env vars <- CLI args (highest priority)."""
    args = build_parser().parse_args(argv)

    values: dict = {}
    values.update(load_yaml_config(args.config))
    values.update(load_env(environ))
    cli = vars(args)
    cli.pop("config")
    values.update({k: v for k, v in cli.items() if v is not None})

    return build_config(values)


def build_config(values: dict) -> TailConfig:
    """Coerce raw setting values into a validated TailConfig."""
    values = {k: normalize(v) for k, v in values.items()}
    values = {k: v for k, v in values.items() if v is not None}

    kwargs: dict = {}
    try:
        for key in ("reactor", "server", "api_key", "filter"):
            if key in values:
                kwargs[key] = str(values[key])
        if "window" in values:
            kwargs["window"] = _parse_int(values["window"])
        if "idle_delay" in values:
            kwargs["idle_delay"] = float(values["idle_delay"])
        if "lookback_minutes" in values:
            kwargs["requery_lookback"] = timedelta(minutes=float(values["lookback_minutes"]))
        if "request_timeout" in values:
            kwargs["request_timeout"] = float(values["request_timeout"])
        if "color" in values:
            kwargs["color"] = _parse_bool(values["color"])
        if "log_level" in values:
            kwargs["log_level"] = str(values["log_level"]).upper()
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigError(f"Invalid setting: {e}") from e

    config = TailConfig(**kwargs)

    if config.window <= 0:
        raise ConfigError(f"Window size must be positive, got {config.window}")
    if config.idle_delay < 0:
        raise ConfigError(f"Idle delay cannot be negative, got {config.idle_delay}")
    if config.requery_lookback < timedelta(0):
        raise ConfigError("Lookback cannot be negative")
    if config.request_timeout <= 0:
        raise ConfigError(f"Request timeout must be positive, got {config.request_timeout}")
    if not isinstance(logging.getLevelName(config.log_level), int):
        raise ConfigError(f"Unknown log level {config.log_level!r}")
    return config
