"""
Error types for the UniFi collector.

Normalization errors are collected as values and reported per poll cycle;
only configuration and controller errors are raised to the caller.
"""

from typing import Optional


class CollectorError(Exception):
    """Base class for all collector errors."""


class ConfigError(CollectorError):
    """Invalid setting in a config file, environment variable or argument."""


class ControllerError(CollectorError):
    """The controller could not be reached or returned an unusable response."""


class NormalizationError(CollectorError):
    """Base class for problems found while turning a snapshot into records.

    Args:
        message: Human readable description
        path: Location of the problem inside the snapshot, e.g. ``devices[3].port_table[1]``
    """

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)

    def __eq__(self, other):
        return (type(self) is type(other)
                and self.message == other.message
                and self.path == other.path)

    def __hash__(self):
        return hash((type(self), self.message, self.path))


class FieldCoercionError(NormalizationError):
    """A scalar could not be read as its expected type and was replaced by zero."""


class RecordConstructionError(NormalizationError):
    """A child element could not produce a record and was skipped."""


class DeviceConstructionError(NormalizationError):
    """A device entry was structurally invalid and was skipped."""


class SnapshotError(NormalizationError):
    """The snapshot itself was absent or unreadable; nothing was assembled."""
