"""Command line entry point for the UniFi collector."""

import argparse
import json
import logging
import sys
from typing import Optional

from . import __version__
from .config import Settings, parse_duration
from .config.api_endpoints import DUMPABLE
from .core.collector import MetricsCollector
from .core.config import CollectorConfig
from .core.logging_config import LoggingConfigurator
from .core.writer_config import WriterConfig
from .datasources.live_api import LiveAPIDataSource
from .errors import CollectorError, ConfigError


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser.

    Options left unset fall back to the config file, then ``UP_`` environment
    variables, then built-in defaults.
    """

    parser = argparse.ArgumentParser(
        description='UniFi controller metrics collector',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Live API collection to InfluxDB
  python -m unifi_collector --config up.yaml --influxdbUrl http://db.org.co:8181 --influxdbDatabase unifi

  # Save the controller's device list, then replay it to Prometheus
  python -m unifi_collector --config up.yaml --dumpjson devices > devices.json
  python -m unifi_collector --fromJson devices.json --output prometheus --maxIterations 1
        """
    )

    parser.add_argument('--version', '-v', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Path to YAML, JSON or TOML config file')

    # Data source selection (mutually exclusive)
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument('--fromJson', type=str, default=None,
                              help='File or directory of saved controller JSON to replay instead of live collection')
    source_group.add_argument('--dumpjson', choices=list(DUMPABLE), default=None,
                              help='Print the raw controller JSON for devices or sites and exit')

    # Controller connection
    controller_group = parser.add_argument_group('Controller Configuration')
    controller_group.add_argument('--unifiUrl', type=str, default=None,
                                  help='UniFi controller URL. Example: https://127.0.0.1:8443')
    controller_group.add_argument('--unifiUser', '-u', type=str, default=None,
                                  help='Username for the UniFi controller')
    controller_group.add_argument('--unifiPass', '-p', type=str, default=None,
                                  help='Password for the UniFi controller')
    controller_group.add_argument('--sites', nargs='+', default=None,
                                  help='Sites to poll by short name, or "all"')

    # Output configuration
    output_group = parser.add_argument_group('Output Configuration')
    output_group.add_argument('--output', choices=['influxdb', 'prometheus', 'both'],
                              default=None, help='Output format (default: influxdb)')

    # InfluxDB specific options
    influx_group = parser.add_argument_group('InfluxDB Configuration')
    influx_group.add_argument('--influxdbUrl', type=str, default=None,
                              help='InfluxDB server URL. Example: https://proxy.example.com:18181')
    influx_group.add_argument('--influxdbDatabase', type=str, default=None,
                              help='InfluxDB database name')
    influx_group.add_argument('--influxdbToken', type=str, default=None,
                              help='InfluxDB authentication token')
    influx_group.add_argument('--tlsCa', type=str, default=None,
                              help='Path to CA certificate for verifying InfluxDB TLS connections')

    # Prometheus specific options
    prometheus_group = parser.add_argument_group('Prometheus Configuration')
    prometheus_group.add_argument('--prometheus-port', type=int, default=None,
                                  help='Prometheus metrics server port (default: 8000)')

    # Collection behavior
    behavior_group = parser.add_argument_group('Collection Behavior')
    behavior_group.add_argument('--intervalTime', type=parse_duration, default=None,
                                help='Collection interval, e.g. 30s or 1m (default: 30s)')
    behavior_group.add_argument('--workers', type=int, default=None,
                                help='Threads used to normalize devices (default: 1)')

    # Debugging
    debug_group = parser.add_argument_group('Debugging')
    debug_group.add_argument('--debug', action='store_true',
                             help='Debug logging; same as --log-level DEBUG')
    debug_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                             default=None, help='Set logging level (default: INFO)')
    debug_group.add_argument('--logfile', type=str, default=None,
                             help='Path to log file (default: stdout only)')
    debug_group.add_argument('--maxIterations', type=int, default=0,
                             help='Maximum collection iterations (0=unlimited, >0=exit after N iterations)')

    return parser


def validate_arguments(args) -> Optional[str]:
    """Validate command line arguments.

    Returns:
        Error message if validation fails, None if valid
    """
    if args.maxIterations < 0:
        return "--maxIterations cannot be negative"
    if args.workers is not None and args.workers < 1:
        return "--workers must be at least 1"
    if args.intervalTime is not None and args.intervalTime <= 0:
        return "--intervalTime must be positive"
    return None


def dump_json(config: CollectorConfig) -> int:
    """Print raw controller JSON for ``config.dump_json`` to stdout."""
    datasource = LiveAPIDataSource(config.to_dict())
    if not datasource.initialize():
        logging.error("Failed to connect to the UniFi controller")
        return 1
    try:
        data = datasource.dump_json(config.dump_json)
    except CollectorError as e:
        logging.error(f"Failed to collect {config.dump_json}: {e}")
        return 1
    finally:
        datasource.cleanup()
    print(json.dumps(data, indent=2))
    return 0


def main():
    """Main entry point."""

    parser = create_argument_parser()
    args = parser.parse_args()

    error_msg = validate_arguments(args)
    if error_msg:
        parser.error(error_msg)

    try:
        settings = Settings(args.config)
        config = CollectorConfig.from_settings(settings, args)
    except (ConfigError, ValueError) as e:
        parser.error(str(e))

    LoggingConfigurator.setup_logging(log_level=config.log_level, log_file=config.logfile)

    if config.dump_json:
        sys.exit(dump_json(config))

    try:
        writer_config = WriterConfig.from_settings(settings, args)
    except ValueError as e:
        parser.error(str(e))

    try:
        logging.info("=== UniFi Collector Startup ===")
        logging.info(f"Version: {__version__}")
        logging.info(f"Data Source: {'JSON Replay' if config.use_json_replay else 'Live API'}")
        if config.use_json_replay:
            logging.info(f"JSON Path: {config.from_json}")
        else:
            logging.info(f"Controller URL: {config.unifi_url}")
            logging.info(f"Username: {config.unifi_user}")
            logging.info(f"Sites: {', '.join(config.sites)}")
            logging.info(f"Verify SSL: {config.verify_ssl}")

        logging.info(f"Output Mode: {writer_config.output_format}")
        logging.info(f"Collection Interval: {config.interval_time}s")
        logging.info(f"Max Errors: {config.max_errors or 'unlimited'}")
        logging.info(f"Workers: {config.workers}")
        logging.info(f"Log Level: {config.log_level}")
        if config.logfile:
            logging.info(f"Log File: {config.logfile}")
        if config.max_iterations > 0:
            logging.info(f"Max Iterations: {config.max_iterations}")

        if writer_config.output_format in ['influxdb', 'both']:
            logging.info(f"InfluxDB URL: {writer_config.influxdb_url}")
            logging.info(f"InfluxDB Database: {writer_config.influxdb_database}")
            if writer_config.influxdb_token:
                logging.info("InfluxDB Token: [REDACTED]")

        if writer_config.output_format in ['prometheus', 'both']:
            logging.info(f"Prometheus Port: {writer_config.prometheus_port}")
        logging.info("=== Configuration Complete ===")

        collector = MetricsCollector(config, writer_config=None)

        if not collector.initialize():
            logging.error("Failed to initialize collector datasource")
            sys.exit(1)

        info = collector.datasource.controller_info
        if info:
            logging.info(f"Connected to controller: {info.name}")
            writer_config.controller_name = info.name
        collector.set_writer_config(writer_config)

        logging.info("Starting UniFi collection...")
        sys.exit(collector.run_continuous())

    except KeyboardInterrupt:
        logging.info("Received interrupt, shutting down...")
    except Exception as e:
        logging.error(f"Collector error: {e}")
        if config.log_level == 'DEBUG':
            raise
        sys.exit(1)


if __name__ == '__main__':
    main()
