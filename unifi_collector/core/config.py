"""Core configuration classes for the collector."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Settings
from .logging_config import LoggingConfigurator

OUTPUT_FORMATS = ('influxdb', 'prometheus', 'both')


@dataclass
class CollectorConfig:
    """Main configuration for the collector system.

    Built from Settings (defaults, config file, ``UP_`` environment) with
    command line arguments applied on top.
    """

    # Data source configuration
    use_json_replay: bool = False
    from_json: Optional[str] = None

    # Live API configuration
    unifi_url: Optional[str] = None
    unifi_user: Optional[str] = None
    unifi_pass: Optional[str] = None
    verify_ssl: bool = False
    sites: List[str] = field(default_factory=lambda: ['default'])

    # Output configuration
    output: str = 'influxdb'

    # Collection behavior
    interval_time: float = 30.0
    max_errors: int = 0  # 0 = keep polling whatever happens
    workers: int = 1

    # Debugging
    debug: bool = False
    quiet: bool = False
    log_level: str = 'INFO'
    logfile: Optional[str] = None

    # Collection control
    max_iterations: int = 0  # 0 = unlimited, >0 = exit after N iterations
    dump_json: Optional[str] = None  # 'devices' or 'sites': print raw JSON and exit

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.use_json_replay:
            if not self.from_json:
                raise ValueError("from_json required for JSON replay mode")
        else:
            if not self.unifi_url or not self.unifi_user or not self.unifi_pass:
                raise ValueError("unifi_url, unifi_user, unifi_pass required for live API mode")
            if not self.sites:
                raise ValueError("at least one site required for live API mode")

        if self.output not in OUTPUT_FORMATS:
            raise ValueError(f"output must be one of {list(OUTPUT_FORMATS)}")
        if self.interval_time <= 0:
            raise ValueError("interval_time must be positive")
        if self.max_errors < 0:
            raise ValueError("max_errors cannot be negative")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.max_iterations < 0:
            raise ValueError("max_iterations cannot be negative")
        if self.dump_json is not None and self.dump_json not in ('devices', 'sites'):
            raise ValueError("dump_json must be 'devices' or 'sites'")

    @classmethod
    def from_settings(cls, settings: Settings, args=None) -> 'CollectorConfig':
        """Create configuration from loaded Settings and optional parsed arguments.

        Command line values override the settings when they are given.
        """
        from_json = getattr(args, 'fromJson', None)
        output = getattr(args, 'output', None) or settings.output
        debug = settings.debug or bool(getattr(args, 'debug', False))
        log_level = LoggingConfigurator.level_for(debug, settings.quiet, getattr(args, 'log_level', None))
        return cls(
            use_json_replay=from_json is not None,
            from_json=from_json,
            unifi_url=getattr(args, 'unifiUrl', None) or settings.unifi_url,
            unifi_user=getattr(args, 'unifiUser', None) or settings.unifi_user,
            unifi_pass=getattr(args, 'unifiPass', None) or settings.unifi_pass,
            verify_ssl=settings.verify_ssl,
            sites=list(getattr(args, 'sites', None) or settings.sites),
            output=output,
            interval_time=getattr(args, 'intervalTime', None) or settings.interval,
            max_errors=settings.max_errors,
            workers=getattr(args, 'workers', None) or settings.workers,
            debug=debug,
            quiet=settings.quiet,
            log_level=log_level,
            logfile=getattr(args, 'logfile', None),
            max_iterations=getattr(args, 'maxIterations', None) or 0,
            dump_json=getattr(args, 'dumpjson', None),
        )

    @classmethod
    def from_args(cls, args) -> 'CollectorConfig':
        """Create configuration from command line arguments alone, without environment."""
        return cls.from_settings(Settings(getattr(args, 'config', None), from_env=False), args)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for passing to DataSources."""
        return {
            'use_json_replay': self.use_json_replay,
            'from_json': self.from_json,
            'unifi_url': self.unifi_url,
            'unifi_user': self.unifi_user,
            'unifi_pass': self.unifi_pass,
            'verify_ssl': self.verify_ssl,
            'sites': list(self.sites),
            'output': self.output,
            'interval_time': self.interval_time,
            'max_errors': self.max_errors,
            'workers': self.workers,
            'logfile': self.logfile,
            'max_iterations': self.max_iterations,
        }
