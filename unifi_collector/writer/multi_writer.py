"""
Fan-out writer: sends each batch to several destinations, e.g. InfluxDB and Prometheus.
"""

import logging
from typing import List, Tuple

from ..schema.records import Batch
from .base import Writer

LOG = logging.getLogger(__name__)


class MultiWriter(Writer):
    """
    Writes every batch to each sub-writer in turn.

    A sub-writer that fails or raises does not keep the batch from the others;
    the batch counts as written only when every sub-writer accepted it.
    """

    def __init__(self, writers: List[Writer]):
        self.writers = writers
        self.last_results: List[Tuple[str, bool]] = []
        LOG.info(f"MultiWriter initialized with {len(writers)} writers: {[self._label(w) for w in writers]}")

    @staticmethod
    def _label(writer) -> str:
        return type(writer).__name__

    def _write_one(self, writer: Writer, batch: Batch, loop_iteration: int) -> bool:
        label = self._label(writer)
        try:
            accepted = bool(writer.write(batch, loop_iteration))
        except Exception as e:
            LOG.error(f"{label} raised while writing {len(batch)} records: {e}", exc_info=True)
            return False
        if not accepted:
            LOG.error(f"{label} rejected the batch")
        return accepted

    def write(self, batch: Batch, loop_iteration: int = 1) -> bool:
        self.last_results = [(self._label(w), self._write_one(w, batch, loop_iteration)) for w in self.writers]

        accepted = sum(1 for _, ok in self.last_results if ok)
        LOG.info(f"MultiWriter: batch accepted by {accepted}/{len(self.writers)} writers {self.last_results}")
        return accepted == len(self.writers)

    def close(self, timeout_seconds=90, force_exit_on_timeout=False):
        """Close every sub-writer; one failing close does not stop the others."""
        for writer in self.writers:
            try:
                writer.close(timeout_seconds=timeout_seconds, force_exit_on_timeout=force_exit_on_timeout)
            except Exception as e:
                LOG.error(f"Error closing {self._label(writer)}: {e}", exc_info=True)
        LOG.info(f"Closed {len(self.writers)} writers")

    def __repr__(self) -> str:
        return f"MultiWriter({', '.join(self._label(w) for w in self.writers)})"

    __str__ = __repr__
