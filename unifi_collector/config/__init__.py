"""
Configuration management for the UniFi collector.

Settings come from, in increasing order of precedence: built-in defaults, a
YAML, JSON or TOML config file, and ``UP_`` environment variables. Command
line arguments are applied on top by ``main``.
"""

import json
import logging
import os
import re
import tomllib
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from ..errors import ConfigError

# Initialize logger
LOG = logging.getLogger(__name__)

ENV_PREFIX = "UP_"

DEFAULT_INTERVAL = 30.0
DEFAULT_INFLUX_URL = "http://127.0.0.1:8181"
DEFAULT_INFLUX_DB = "unifi"
DEFAULT_UNIFI_USER = "influx"
DEFAULT_UNIFI_URL = "https://127.0.0.1:8443"

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|h|m|s)')
_DURATION_UNITS = {'h': 3600.0, 'm': 60.0, 's': 1.0, 'ms': 0.001}
_TRUE = {'1', 't', 'true', 'yes', 'on'}
_FALSE = {'0', 'f', 'false', 'no', 'off'}


def parse_str(raw: str) -> str:
    return raw


def parse_int(raw: str) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValueError(f"not an integer: {raw!r}")


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    word = str(raw).strip().lower()
    if word in _TRUE:
        return True
    if word in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def parse_list(raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        return [str(item).strip() for item in raw if str(item).strip()]
    return [item.strip() for item in str(raw).split(',') if item.strip()]


def parse_duration(raw: Any) -> float:
    """Parse a duration into seconds.

    Accepts bare numbers (seconds) and Go-style strings such as ``30s``,
    ``1m30s``, ``500ms`` or ``2h``.
    """
    if isinstance(raw, bool):
        raise ValueError(f"not a duration: {raw!r}")
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip().lower()
    try:
        return float(text)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(text)
    if not parts or ''.join(number + unit for number, unit in parts) != text:
        raise ValueError(f"not a duration: {raw!r}")
    return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)


# Environment variable (without prefix) -> (setting name, parser)
ENV_TABLE: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    'MAX_ERRORS': ('max_errors', parse_int),
    'POLLING_INTERVAL': ('interval', parse_duration),
    'DEBUG_MODE': ('debug', parse_bool),
    'QUIET_MODE': ('quiet', parse_bool),
    'VERIFY_SSL': ('verify_ssl', parse_bool),
    'INFLUX_URL': ('influx_url', parse_str),
    'INFLUX_TOKEN': ('influx_token', parse_str),
    'INFLUX_DB': ('influx_db', parse_str),
    'UNIFI_USER': ('unifi_user', parse_str),
    'UNIFI_PASS': ('unifi_pass', parse_str),
    'UNIFI_URL': ('unifi_url', parse_str),
    'POLL_SITES': ('sites', parse_list),
    'OUTPUT': ('output', parse_str),
    'PROMETHEUS_PORT': ('prometheus_port', parse_int),
    'WORKERS': ('workers', parse_int),
}

# Parser for every setting, used for config file values as well.
SETTING_PARSERS: Dict[str, Callable[[Any], Any]] = {name: parser for name, parser in ENV_TABLE.values()}


class Settings:
    """
    Configuration settings for the UniFi collector.
    Supports loading from a YAML, JSON or TOML file and from environment variables.
    """

    def __init__(self, config_file: Optional[str] = None, from_env: bool = True,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Initialize settings from a config file and environment variables.

        Args:
            config_file: Path to YAML, JSON or TOML configuration file
            from_env: Whether to load settings from environment variables
            environ: Environment to read instead of ``os.environ``

        Raises:
            ConfigError: the file cannot be read or a value cannot be parsed
        """
        # Default values
        self.max_errors: int = 0
        self.interval: float = DEFAULT_INTERVAL
        self.debug: bool = False
        self.quiet: bool = False
        self.verify_ssl: bool = False
        self.influx_url: str = DEFAULT_INFLUX_URL
        self.influx_token: Optional[str] = None
        self.influx_db: str = DEFAULT_INFLUX_DB
        self.unifi_user: str = DEFAULT_UNIFI_USER
        self.unifi_pass: Optional[str] = None
        self.unifi_url: str = DEFAULT_UNIFI_URL
        self.sites: List[str] = ['default']
        self.output: str = 'influxdb'
        self.prometheus_port: int = 8000
        self.workers: int = 1

        # Load configuration in order of precedence
        if config_file:
            self._load_from_file(config_file)

        if from_env:
            self._load_from_env(os.environ if environ is None else environ)

    def _load_from_file(self, config_file: str) -> None:
        """Load settings from a YAML, JSON or TOML file."""
        if not os.path.exists(config_file):
            raise ConfigError(f"Config file not found: {config_file}")

        lowered = config_file.lower()
        try:
            if lowered.endswith('.yaml') or lowered.endswith('.yml'):
                with open(config_file, 'r', encoding='utf-8') as f:
                    config = yaml.safe_load(f)
            elif lowered.endswith('.json'):
                with open(config_file, 'r', encoding='utf-8') as f:
                    config = json.load(f)
            elif lowered.endswith('.toml') or lowered.endswith('.conf'):
                with open(config_file, 'rb') as f:
                    config = tomllib.load(f)
            else:
                raise ConfigError(f"Unsupported config file format: {config_file}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config from {config_file}: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping of settings")

        for key, raw in config.items():
            parser = SETTING_PARSERS.get(key)
            if parser is None:
                LOG.warning(f"Ignoring unknown setting '{key}' in {config_file}")
                continue
            if raw is None:
                continue
            self._apply(key, parser, raw, f"{config_file}: {key}")

        LOG.info(f"Loaded configuration from {config_file}")

    def _load_from_env(self, environ: Mapping[str, str]) -> None:
        """Load settings from ``UP_`` environment variables."""
        for suffix, (name, parser) in ENV_TABLE.items():
            variable = ENV_PREFIX + suffix
            raw = environ.get(variable)
            if raw is None or raw == '':
                continue
            self._apply(name, parser, raw, variable)

    def _apply(self, name: str, parser: Callable[[Any], Any], raw: Any, source: str) -> None:
        try:
            value = parser(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{source}: {e}") from e
        setattr(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in SETTING_PARSERS}

    def __repr__(self):
        shown = {k: ('[REDACTED]' if k in ('unifi_pass', 'influx_token') and v else v)
                 for k, v in self.to_dict().items()}
        return f"Settings({shown})"
