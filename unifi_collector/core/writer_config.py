"""Writer configuration abstraction.

Separates writer-specific configuration from main collector config.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Settings


def debug_dir_from_args(args, settings_debug: bool = False) -> Optional[str]:
    """Directory of the log file when DEBUG logging to a file is requested.

    An explicit --log-level wins over --debug and the ``debug`` setting.
    """
    log_level = getattr(args, 'log_level', None) or ''
    debug = log_level.upper() == 'DEBUG' or (not log_level and (settings_debug or getattr(args, 'debug', False)))
    logfile = getattr(args, 'logfile', None)
    if not debug or not logfile:
        return None
    return os.path.dirname(logfile) or '.'


@dataclass
class WriterConfig:
    """Configuration specific to output writers."""

    # General output configuration
    output_format: str = 'influxdb'  # 'influxdb', 'prometheus', 'both'

    # InfluxDB-specific configuration (only populated if needed)
    influxdb_url: Optional[str] = None
    influxdb_token: Optional[str] = None  # optional, InfluxDB 3 may run without auth
    influxdb_database: Optional[str] = None

    # TLS CA bundle for the InfluxDB connection
    tls_ca: Optional[str] = None

    # Prometheus-specific configuration (only populated if needed)
    prometheus_port: int = 8000

    # Controller identification, for log messages
    controller_name: str = 'unknown'

    # Directory for writer debug output files; None disables them
    debug_output_dir: Optional[str] = None

    def __post_init__(self):
        """Validate writer configuration after initialization."""
        if self.output_format not in ('influxdb', 'prometheus', 'both'):
            raise ValueError(f"Unsupported output format: {self.output_format}")

        if self.output_format in ['influxdb', 'both']:
            for name in ('influxdb_url', 'influxdb_database'):
                if not getattr(self, name):
                    raise ValueError(f"{name} required for InfluxDB output (output_format={self.output_format})")

        if self.output_format in ['prometheus', 'both']:
            if not 0 < self.prometheus_port < 65536:
                raise ValueError(f"prometheus_port out of range: {self.prometheus_port}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for writer initialization."""
        config: Dict[str, Any] = {
            'output_format': self.output_format,
            'controller_name': self.controller_name,
        }

        if self.output_format in ['influxdb', 'both']:
            config.update({
                'influxdb_url': self.influxdb_url,
                'influxdb_token': self.influxdb_token,
                'influxdb_database': self.influxdb_database,
                'tls_ca': self.tls_ca,
            })

        if self.output_format in ['prometheus', 'both']:
            config['prometheus_port'] = self.prometheus_port

        return config

    @classmethod
    def from_settings(cls, settings: Settings, args=None, controller_name: str = 'unknown') -> 'WriterConfig':
        """Create WriterConfig from Settings, with command line values taking precedence."""
        return cls(
            output_format=getattr(args, 'output', None) or settings.output,
            influxdb_url=getattr(args, 'influxdbUrl', None) or settings.influx_url,
            influxdb_token=getattr(args, 'influxdbToken', None) or settings.influx_token,
            influxdb_database=getattr(args, 'influxdbDatabase', None) or settings.influx_db,
            tls_ca=getattr(args, 'tlsCa', None),
            prometheus_port=getattr(args, 'prometheus_port', None) or settings.prometheus_port,
            controller_name=controller_name,
            debug_output_dir=debug_dir_from_args(args, settings.debug),
        )

    @classmethod
    def from_args(cls, args, controller_name: str = 'unknown') -> 'WriterConfig':
        """Create WriterConfig directly from command line arguments."""
        return cls(
            output_format=getattr(args, 'output', None) or 'influxdb',
            influxdb_url=getattr(args, 'influxdbUrl', None),
            influxdb_token=getattr(args, 'influxdbToken', None),
            influxdb_database=getattr(args, 'influxdbDatabase', None),
            tls_ca=getattr(args, 'tlsCa', None),
            prometheus_port=getattr(args, 'prometheus_port', None) or 8000,
            controller_name=controller_name,
            debug_output_dir=debug_dir_from_args(args),
        )
