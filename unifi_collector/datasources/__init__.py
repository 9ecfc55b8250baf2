"""DataSource implementations for different collection modes."""

from .base import DataSource, CollectionResult, CollectionType, ControllerInfo
from .live_api import LiveAPIDataSource
from .json_replay import JSONReplayDataSource

__all__ = ['DataSource', 'CollectionResult', 'CollectionType', 'ControllerInfo',
           'LiveAPIDataSource', 'JSONReplayDataSource']
