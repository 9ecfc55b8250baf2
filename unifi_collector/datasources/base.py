"""Base DataSource interface and shared data structures."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import ControllerError
from ..schema.models import Snapshot


class CollectionType(Enum):
    """Types of data that can be collected."""
    DEVICES = "devices"
    SITES = "sites"


@dataclass
class CollectionResult:
    """Result from a data collection operation."""
    collection_type: CollectionType
    data: List[Any]
    success: bool
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


@dataclass
class ControllerInfo:
    """Controller identification information."""
    url: str
    name: str


class DataSource(ABC):
    """Abstract base class for all data sources.

    Live API and JSON replay both hand raw controller JSON to the collector
    through the same interface.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._controller_info: Optional[ControllerInfo] = None

    @property
    def controller_info(self) -> Optional[ControllerInfo]:
        """Get controller information if available."""
        return self._controller_info

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize the data source. Returns True on success."""
        pass

    @abstractmethod
    def collect_sites(self) -> CollectionResult:
        """Collect the raw site list."""
        pass

    @abstractmethod
    def collect_devices(self) -> CollectionResult:
        """Collect raw devices for every polled site."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up any resources used by the data source."""
        pass

    def advance_batch(self) -> bool:
        """Advance to the next batch (JSON replay only).

        Returns:
            True if batch advanced successfully, False if no more batches
        """
        return False

    def has_more_batches(self) -> bool:
        """Check if more batches are available (JSON replay only)."""
        return False

    def collect_snapshot(self) -> Snapshot:
        """Collect one poll's raw controller state.

        The site list is taken from the device collection's metadata when it
        already fetched one.

        Raises:
            ControllerError: the device collection failed outright
        """
        devices = self.collect_devices()
        if not devices.success:
            raise ControllerError(devices.error_message or "device collection failed")
        sites = devices.metadata.get('sites')
        if sites is None:
            result = self.collect_sites()
            sites = result.data if result.success else []
        return Snapshot(devices=devices.data, sites=sites)
