"""
Record Builder dispatch and Batch Assembler.

``build`` maps one entity to its records; ``assemble`` drives it across every
device of a snapshot. Neither reads a clock or keeps state between calls, so
devices can be built from several worker threads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..errors import DeviceConstructionError, NormalizationError, RecordConstructionError, SnapshotError
from ..schema.models import AccessPoint, Device, DreamMachine, Gateway, Snapshot, Switch, normalize_device
from ..schema.records import Batch, Record
from .access_point import build_access_point_records
from .gateway import build_gateway_records
from .switch import build_switch_records

LOG = logging.getLogger(__name__)

BUILDERS = {
    Gateway: build_gateway_records,
    DreamMachine: build_gateway_records,
    Switch: build_switch_records,
    AccessPoint: build_access_point_records,
}

DeviceResult = Tuple[List[Record], List[NormalizationError]]


def sites_by_id(sites: Any) -> Dict[str, Dict[str, Any]]:
    """Index a controller site list by site _id."""
    if not isinstance(sites, (list, tuple)):
        return {}
    return {site['_id']: site for site in sites if isinstance(site, dict) and isinstance(site.get('_id'), str)}


def site_of(raw: Any, sites: Dict[str, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    site_id = raw.get('site_id') if isinstance(raw, dict) else None
    return sites.get(site_id) if isinstance(site_id, str) else None


def build(entity: Device, timestamp: datetime) -> DeviceResult:
    """Map one device entity to its primary record and one record per child.

    A child that cannot be mapped is skipped and reported; the call itself
    never raises for bad input.
    """
    builder = BUILDERS.get(type(entity))
    if builder is None:
        label = getattr(entity, 'label', None) or type(entity).__name__
        return [], [RecordConstructionError(f"no record builder for {type(entity).__name__}", label)]
    result = builder(entity, timestamp)
    return result.records, result.errors


def build_raw_device(raw: Any, timestamp: datetime, path: str = 'device', site: Any = None) -> DeviceResult:
    """Normalize one raw controller device and build its records."""
    try:
        entity, coercion_errors = normalize_device(raw, site=site, path=path)
    except DeviceConstructionError as e:
        return [], [e]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return [], [DeviceConstructionError(f"could not read device: {e}", path)]
    records, errors = build(entity, timestamp)
    return records, list(coercion_errors) + errors


class BatchAssembler:
    """Turns a snapshot into one Batch.

    Args:
        workers: Number of threads used to build devices. 1 builds inline.
    """

    def __init__(self, workers: int = 1):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self.logger = logging.getLogger(__name__)

    def assemble(self, snapshot: Optional[Snapshot], timestamp: datetime) -> Tuple[Batch, List[NormalizationError]]:
        """Build every device in snapshot order.

        Devices that carry no ``site_name`` are labelled from the snapshot's
        site list through their ``site_id``.

        Returns:
            The Batch and every error collected on the way. Only an absent or
            empty snapshot returns an empty Batch, with a single SnapshotError.
        """
        devices = getattr(snapshot, 'devices', None)
        if snapshot is None:
            return Batch.empty(timestamp), [SnapshotError("no snapshot")]
        if not isinstance(devices, (list, tuple)):
            return Batch.empty(timestamp), [SnapshotError(
                f"device collection is {type(devices).__name__}, not a list", 'devices')]
        if not devices:
            return Batch.empty(timestamp), [SnapshotError("snapshot contains no devices", 'devices')]

        sites = sites_by_id(getattr(snapshot, 'sites', None))
        jobs = [(raw, timestamp, f"devices[{index}]", site_of(raw, sites))
                for index, raw in enumerate(devices)]
        if self.workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(jobs))) as pool:
                results = list(pool.map(lambda job: build_raw_device(*job), jobs))
        else:
            results = [build_raw_device(*job) for job in jobs]

        records: List[Record] = []
        errors: List[NormalizationError] = []
        for device_records, device_errors in results:
            records.extend(device_records)
            errors.extend(device_errors)

        self.logger.debug(f"Assembled {len(records)} records from {len(devices)} devices "
                          f"with {len(errors)} errors")
        return Batch(tuple(records), timestamp), errors


def assemble(snapshot: Optional[Snapshot], timestamp: datetime,
             workers: int = 1) -> Tuple[Batch, List[NormalizationError]]:
    return BatchAssembler(workers).assemble(snapshot, timestamp)
