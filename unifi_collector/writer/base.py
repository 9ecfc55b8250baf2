"""Writer interface: the destination of one Batch per poll cycle."""

from abc import ABC, abstractmethod

from ..schema.records import Batch


class Writer(ABC):
    """
    Base class for all writers.

    A writer accepts a whole Batch or rejects it. It never retries or splits
    a batch on its own; the poll loop counts a rejected batch as a failed cycle.
    """

    @abstractmethod
    def write(self, batch: Batch, loop_iteration: int = 1) -> bool:
        """
        Hand a batch to the destination.

        Args:
            batch: Records of one collection cycle
            loop_iteration: Current iteration number, used to name debug output files

        Returns:
            True if the destination accepted the batch
        """

    def close(self, timeout_seconds: int = 90, force_exit_on_timeout: bool = False) -> None:
        """Flush and release the destination. Writers without buffered state need not override this."""
