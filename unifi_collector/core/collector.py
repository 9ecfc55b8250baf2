"""Main collector orchestration logic.

One collection cycle: fetch a snapshot from the data source, normalize it
into a Batch, hand the Batch to the writer.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..datasources.base import DataSource
from ..datasources.json_replay import JSONReplayDataSource
from ..datasources.live_api import LiveAPIDataSource
from ..errors import CollectorError, FieldCoercionError, NormalizationError, SnapshotError
from ..records.processor import BatchAssembler
from ..schema.records import Batch
from .config import CollectorConfig
from .writer_config import WriterConfig


class MetricsCollector:
    """Main orchestrator for UniFi metrics collection.

    Args:
        config: Collector configuration object
        writer_config: Writer configuration object (optional, can be set later)
        datasource: Data source to use instead of the one the config selects
        writer: Writer to use instead of one built from writer_config
    """

    def __init__(self, config: CollectorConfig, writer_config: Optional[WriterConfig] = None,
                 datasource: Optional[DataSource] = None, writer=None):
        self.config = config
        self.writer_config = writer_config
        self.logger = logging.getLogger(__name__)
        self.datasource: Optional[DataSource] = datasource
        self.writer = writer
        self.assembler = BatchAssembler(config.workers)

        # Statistics tracking
        self.collections_completed = 0
        self.failed_collections = 0
        self.error_count = 0  # consecutive failed cycles
        self.last_collection_time: Optional[float] = None
        self.last_batch: Optional[Batch] = None
        self.last_errors: List[NormalizationError] = []

    def initialize(self) -> bool:
        """Initialize the collector system.

        Returns:
            True if initialization successful, False otherwise
        """
        if self.datasource is None:
            if self.config.use_json_replay:
                self.logger.info("Initializing JSON replay mode")
                self.datasource = JSONReplayDataSource(self.config.to_dict())
            else:
                self.logger.info("Initializing live API mode")
                self.datasource = LiveAPIDataSource(self.config.to_dict())

        if not self.datasource.initialize():
            self.logger.error("Failed to initialize datasource")
            return False

        self.logger.info(f"Collector initialized successfully in "
                         f"{'JSON replay' if self.config.use_json_replay else 'live API'} mode")
        return True

    def set_writer_config(self, writer_config: WriterConfig) -> None:
        """Set the writer configuration after controller discovery."""
        self.writer_config = writer_config
        self.logger.info(f"Writer configuration set for controller: {writer_config.controller_name}")

    def _get_writer(self):
        if self.writer is None:
            if self.writer_config is None:
                raise CollectorError("no writer configuration set")
            from ..writer.factory import WriterFactory
            self.writer = WriterFactory.create_writer_from_config(self.writer_config)
        return self.writer

    def _report_errors(self, errors: List[NormalizationError]) -> None:
        """Log collected normalization errors, coercion noise at DEBUG."""
        counts: Dict[str, int] = {}
        for error in errors:
            name = type(error).__name__
            counts[name] = counts.get(name, 0) + 1
            if isinstance(error, SnapshotError):
                self.logger.error(f"Snapshot rejected: {error}")
            elif isinstance(error, FieldCoercionError):
                self.logger.debug(f"Coercion: {error}")
            else:
                self.logger.warning(f"Normalization: {error}")
        if counts:
            self.logger.info(f"Collected non-fatal errors: {counts}")

    def run_single_collection(self, loop_iteration: int = 1) -> bool:
        """Run a single collection cycle.

        A cycle fails when the data source fails, the snapshot is rejected or
        the writer does not accept the batch. Per-device and per-field errors
        do not fail the cycle.

        Returns:
            True if collection cycle successful, False otherwise
        """
        start_time = time.time()
        # One timestamp, second precision, for every record of the cycle
        timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        try:
            snapshot = self.datasource.collect_snapshot()
        except CollectorError as e:
            self.logger.error(f"Collection failed: {e}")
            return False

        batch, errors = self.assembler.assemble(snapshot, timestamp)
        self.last_batch = batch
        self.last_errors = errors
        self._report_errors(errors)

        if any(isinstance(error, SnapshotError) for error in errors):
            return False

        self.logger.info(f"Normalized {len(snapshot.devices)} devices into {len(batch)} records "
                         f"({len(errors)} non-fatal errors)")

        try:
            success = self._get_writer().write(batch, loop_iteration)
        except Exception as e:
            self.logger.error(f"Writer failed: {e}", exc_info=True)
            success = False

        self.collections_completed += 1
        self.last_collection_time = time.time()
        duration = self.last_collection_time - start_time
        self.logger.info(f"Collection cycle {self.collections_completed} completed in {duration:.2f}s")
        return success

    def _record_outcome(self, success: bool) -> bool:
        """Update the consecutive error counter.

        Returns:
            False when the error budget is exhausted and the loop must stop
        """
        if success:
            self.error_count = 0
            return True
        self.error_count += 1
        self.failed_collections += 1
        if self.config.max_errors > 0 and self.error_count > self.config.max_errors:
            self.logger.error(f"Too many consecutive errors ({self.error_count} > {self.config.max_errors}) - giving up")
            return False
        self.logger.warning(f"Collection cycle failed ({self.error_count} consecutive), continuing...")
        return True

    def run_continuous(self) -> int:
        """Run continuous collection loop.

        For JSON replay mode: processes every file then exits
        For live API mode: runs until interrupted, max_iterations or the error budget
        is reached, sleeping interval_time between cycles.

        Returns:
            Process exit code: 0 on normal exit, 1 when the error budget was exceeded
        """
        iteration_count = 0
        exit_code = 0
        limit = self.config.max_iterations if self.config.max_iterations > 0 else 'unlimited'
        self.logger.info(f"Starting continuous collection (interval: {self.config.interval_time}s, "
                         f"max_iterations: {limit}, max_errors: {self.config.max_errors or 'unlimited'})")

        try:
            while True:
                iteration_count += 1
                if self.config.max_iterations > 0 and iteration_count > self.config.max_iterations:
                    self.logger.info(f"Reached maximum iterations ({self.config.max_iterations}) - exiting")
                    break

                self.logger.info(f"Starting collection iteration {iteration_count} of {limit}")
                if not self._record_outcome(self.run_single_collection(iteration_count)):
                    exit_code = 1
                    break

                if self.config.use_json_replay:
                    if not self.datasource.advance_batch():
                        self.logger.info(f"No more JSON files. Processed {iteration_count} files total.")
                        break
                    continue

                if self.config.max_iterations == 0 or iteration_count < self.config.max_iterations:
                    self.logger.info(f"Waiting {self.config.interval_time} seconds until next collection...")
                    time.sleep(self.config.interval_time)

        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal, shutting down...")
        finally:
            self.cleanup()

        return exit_code

    def cleanup(self) -> None:
        """Clean up collector resources, flushing the writer first."""
        if self.writer:
            self.logger.info("Collection finished - closing writer and flushing remaining data...")
            try:
                self.writer.close(timeout_seconds=90, force_exit_on_timeout=False)
            except Exception as e:
                self.logger.warning(f"Error closing writer: {e}")
            self.writer = None

        if self.datasource:
            self.datasource.cleanup()

        self.logger.info("Collector cleanup completed")

    def get_statistics(self) -> Dict[str, Any]:
        """Get collection statistics."""
        return {
            'collections_completed': self.collections_completed,
            'failed_collections': self.failed_collections,
            'consecutive_errors': self.error_count,
            'last_collection_time': self.last_collection_time,
            'last_record_count': len(self.last_batch) if self.last_batch is not None else 0,
            'datasource_type': 'json_replay' if self.config.use_json_replay else 'live_api',
            'controller_info': self.datasource.controller_info if self.datasource else None
        }
