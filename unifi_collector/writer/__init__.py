"""Writer module for the UniFi collector.

Provides writer implementations for different output formats.
"""

from .base import Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter
from .prometheus_writer import PrometheusWriter
from .multi_writer import MultiWriter

__all__ = ['Writer', 'WriterFactory', 'InfluxDBWriter', 'PrometheusWriter', 'MultiWriter']
