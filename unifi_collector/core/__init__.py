"""Core collector package initialization."""

from .collector import MetricsCollector
from .config import CollectorConfig
from .writer_config import WriterConfig

__all__ = ['MetricsCollector', 'CollectorConfig', 'WriterConfig']
