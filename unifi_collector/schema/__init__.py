"""Value type, entity model and record types."""

from .value import Value, coerce_flag, coerce_number, coerce_text
from .models import (AccessPoint, Device, DreamMachine, Gateway, Malformed, Snapshot, Switch,
                     normalize_device)
from .records import Batch, Record

__all__ = ['Value', 'coerce_flag', 'coerce_number', 'coerce_text',
           'AccessPoint', 'Device', 'DreamMachine', 'Gateway', 'Malformed', 'Snapshot', 'Switch',
           'normalize_device', 'Batch', 'Record']
