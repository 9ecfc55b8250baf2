"""JSON Replay DataSource implementation.

Replays controller responses saved with ``--dumpjson devices`` (or captured
from the controller API directly). A directory is replayed one file per
collection cycle, in file name order.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .base import CollectionResult, CollectionType, ControllerInfo, DataSource


def read_file(filepath: Union[str, Path]) -> Dict[str, List[Any]]:
    """Read a saved controller response.

    Accepts the controller envelope (``{"meta": ..., "data": [...]}``), a bare
    device list, or an object with ``devices`` and optionally ``sites`` lists.

    Returns:
        ``{'devices': [...], 'sites': [...]}``

    Raises:
        ValueError: the file is not JSON or holds none of the accepted shapes
    """
    filepath = Path(filepath)
    with open(filepath, 'r', encoding='utf-8') as f:
        try:
            content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing JSON from {filepath}: {e}") from e

    if isinstance(content, list):
        return {'devices': content, 'sites': []}
    if isinstance(content, dict):
        if isinstance(content.get('data'), list):
            return {'devices': content['data'], 'sites': []}
        if isinstance(content.get('devices'), list):
            sites = content.get('sites')
            return {'devices': content['devices'], 'sites': sites if isinstance(sites, list) else []}
    raise ValueError(f"{filepath} holds no device list")


class JSONReplayDataSource(DataSource):
    """DataSource implementation for replaying saved controller JSON."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)
        self.json_path = config.get('from_json')
        self.files: List[Path] = []
        self.current_index = 0
        self._current: Optional[Dict[str, List[Any]]] = None

    def initialize(self) -> bool:
        """Find the files to replay.

        Returns:
            True if initialization successful, False otherwise
        """
        if not self.json_path:
            self.logger.error("JSON path not configured")
            return False

        if not os.path.exists(self.json_path):
            self.logger.error(f"JSON path does not exist: {self.json_path}")
            return False

        path = Path(self.json_path)
        if path.is_dir():
            self.files = sorted(p for p in path.iterdir() if p.suffix.lower() == '.json' and p.is_file())
        else:
            self.files = [path]

        if not self.files:
            self.logger.error(f"No JSON files found in {self.json_path}")
            return False

        self.current_index = 0
        self._current = None
        self._controller_info = ControllerInfo(url=str(path), name=path.stem)
        self.logger.info(f"Initialized JSON replay from {self.json_path} with {len(self.files)} files")
        return True

    def _load_current(self) -> Dict[str, List[Any]]:
        if self._current is None:
            current_file = self.files[self.current_index]
            self.logger.info(f"Replaying {current_file.name} ({self.current_index + 1}/{len(self.files)})")
            self._current = read_file(current_file)
        return self._current

    def _collect(self, collection_type: CollectionType) -> CollectionResult:
        if not self.files:
            return CollectionResult(collection_type, [], False, error_message="JSON replay not initialized")
        try:
            content = self._load_current()
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to read {self.files[self.current_index]}: {e}")
            return CollectionResult(collection_type, [], False, error_message=str(e))
        return CollectionResult(collection_type, content[collection_type.value], True,
                                metadata={'source': 'json_replay',
                                          'file': str(self.files[self.current_index])})

    def collect_sites(self) -> CollectionResult:
        """Sites saved alongside the devices, if any."""
        return self._collect(CollectionType.SITES)

    def collect_devices(self) -> CollectionResult:
        """Devices from the current file."""
        return self._collect(CollectionType.DEVICES)

    def advance_batch(self) -> bool:
        """Advance to the next file.

        Returns:
            True if batch advanced successfully, False if no more batches
        """
        if not self.has_more_batches():
            return False
        self.current_index += 1
        self._current = None
        self.logger.info(f"Advanced to file {self.current_index + 1}/{len(self.files)}")
        return True

    def has_more_batches(self) -> bool:
        """Check if files remain after the current one."""
        return self.current_index + 1 < len(self.files)

    def cleanup(self) -> None:
        self._current = None
        self.logger.debug("JSON replay cleanup completed")
