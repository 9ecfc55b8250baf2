"""
Writer factory for the UniFi collector.
"""

import logging
import os
from typing import Optional

from ..core.writer_config import WriterConfig
from .base import Writer
from .influxdb_writer import InfluxDBWriter
from .multi_writer import MultiWriter
from .prometheus_writer import PrometheusWriter

# Initialize logger
LOG = logging.getLogger(__name__)


class WriterFactory:
    """
    Factory for creating writer instances based on configuration.
    """

    @staticmethod
    def _get_debug_output_dir(writer_config: WriterConfig) -> Optional[str]:
        """
        Debug output directory from the writer configuration.
        Returns None if no writable debug directory is available.
        """
        debug_dir = writer_config.debug_output_dir
        if not debug_dir:
            return None

        if os.path.exists(debug_dir) and os.access(debug_dir, os.W_OK):
            return debug_dir

        LOG.warning(f"Debug output directory {debug_dir} not accessible")
        return None

    @staticmethod
    def _influxdb_writer(writer_config: WriterConfig, debug_dir: Optional[str]) -> InfluxDBWriter:
        LOG.info(f"Creating InfluxDB writer with URL: {writer_config.influxdb_url}, "
                 f"database: {writer_config.influxdb_database}")
        config = writer_config.to_dict()
        config['json_output_dir'] = debug_dir
        return InfluxDBWriter(config)

    @staticmethod
    def _prometheus_writer(writer_config: WriterConfig, debug_dir: Optional[str]) -> PrometheusWriter:
        LOG.info(f"Creating Prometheus writer on port {writer_config.prometheus_port}")
        return PrometheusWriter({
            'prometheus_port': writer_config.prometheus_port,
            'json_output_dir': debug_dir,
            'controller_name': writer_config.controller_name,
        })

    @staticmethod
    def create_writer_from_config(writer_config: WriterConfig) -> Writer:
        """
        Create a writer based on a WriterConfig object.

        Args:
            writer_config: WriterConfig instance with writer settings

        Returns:
            Appropriate Writer instance

        Raises:
            ValueError: unknown output format
        """
        output_choice = writer_config.output_format
        debug_dir = WriterFactory._get_debug_output_dir(writer_config)

        if output_choice == 'prometheus':
            return WriterFactory._prometheus_writer(writer_config, debug_dir)

        elif output_choice == 'influxdb':
            return WriterFactory._influxdb_writer(writer_config, debug_dir)

        elif output_choice == 'both':
            writers = [
                WriterFactory._influxdb_writer(writer_config, debug_dir),
                WriterFactory._prometheus_writer(writer_config, debug_dir),
            ]
            return MultiWriter(writers)

        else:
            LOG.error(f"Unknown output format: {output_choice}")
            raise ValueError(f"Unsupported output format: {output_choice}")
