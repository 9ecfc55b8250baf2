"""
InfluxDB writer for the UniFi collector.
Writes normalized device records to InfluxDB 3.x.
"""

import logging
import os
import sys
import threading
import time
from typing import Any, Dict, List, Optional

import requests
from influxdb_client_3 import InfluxDBClient3, Point, WriteOptions, WritePrecision, write_client_options
from influxdb_client_3.write_client.client.write_api import WriteType

from ..schema.records import Batch, Record
from .base import Writer

LOG = logging.getLogger(__name__)

# Seconds to wait on the database management API
MANAGEMENT_TIMEOUT = 10

# Milliseconds to wait on a batch write, one default poll interval
WRITE_TIMEOUT_MS = 30_000


class WriteStats(object):
    """Outcome counters of the writes made so far."""

    def __init__(self):
        self.batches_written = 0
        self.points_written = 0
        self.failures = 0
        self.last_error: Optional[str] = None
        self.started_ns = time.time_ns()

    def success(self, points: int):
        self.batches_written += 1
        self.points_written += points

    def error(self, exception: Exception):
        self.failures += 1
        self.last_error = str(exception)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'batches_written': self.batches_written,
            'points_written': self.points_written,
            'failures': self.failures,
            'last_error': self.last_error,
            'elapsed_ms': (time.time_ns() - self.started_ns) // 1_000_000,
        }


def parse_database_list(body: Any) -> List[str]:
    """Database names from a ``/api/v3/configure/database`` response.

    InfluxDB 3 releases answer with ``[{"iox::database": name}]``, a plain
    list of names, or ``{"databases": [...]}``.
    """
    if isinstance(body, dict):
        body = body.get('databases', [])
    if not isinstance(body, list):
        return []
    return [item.get('iox::database') if isinstance(item, dict) else item for item in body]


def _escape_measurement(value: str) -> str:
    return str(value).replace(',', r'\,').replace(' ', r'\ ')


def _escape_key(value: str) -> str:
    return _escape_measurement(value).replace('=', r'\=')


def _format_field(value: Any) -> str:
    if isinstance(value, str):
        return '"' + value.replace('\\', r'\\').replace('"', r'\"') + '"'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return f"{value}i"
    return repr(float(value))


def record_to_line_protocol(record: Record) -> str:
    """
    Render a record as an InfluxDB line protocol string, as the client would send it.

    Format: measurement,tag1=value1,tag2=value2 field1=value1,field2=value2 timestamp

    Empty tag values are left out. Returns "" for a record without fields.
    """
    if not record.fields:
        return ""

    series = [_escape_measurement(record.measurement)]
    series += [f"{_escape_key(k)}={_escape_key(v)}" for k, v in sorted(record.tags.items()) if v != '']
    fields = ','.join(f"{_escape_key(k)}={_format_field(v)}" for k, v in sorted(record.fields.items()))
    # Line protocol timestamps are nanoseconds
    return f"{','.join(series)} {fields} {int(record.time.timestamp()) * 1_000_000_000}"


class InfluxDBWriter(Writer):
    """
    Writer implementation for InfluxDB 3.x.

    Each Batch is converted to Points and sent in a single synchronous
    write, so a batch is either stored whole or reported as failed to the
    poll loop. Records keep their second-precision cycle timestamp. The
    target database is created on startup when it does not exist yet.
    """

    def __init__(self, config: Dict[str, Any]):
        self.url = (config.get('influxdb_url') or '').rstrip('/')
        self.token = config.get('influxdb_token') or ''
        self.database = config.get('influxdb_database')
        self.tls_ca = config.get('tls_ca', None)
        self.controller_name = config.get('controller_name', 'unknown')

        if not self.url or not self.database:
            raise ValueError("influxdb_url and influxdb_database required for InfluxDBWriter")

        self.stats = WriteStats()

        # Set by the factory only when logging at DEBUG to a file
        self.debug_output_dir = config.get('json_output_dir')
        self.enable_debug_output = self.debug_output_dir is not None

        self.client = None
        self._initialize_client()

        if self.enable_debug_output:
            LOG.info(f"InfluxDB debug file output enabled -> {self.debug_output_dir}")
        LOG.info(f"InfluxDBWriter initialized: {self.url} -> {self.database} (controller: {self.controller_name})")

    def _ca_bundle(self) -> Optional[str]:
        if not self.tls_ca:
            return None
        if os.path.exists(self.tls_ca):
            return self.tls_ca
        LOG.warning(f"CA certificate path specified but file not found: {self.tls_ca}")
        return None

    def _initialize_client(self):
        write_options = WriteOptions(write_type=WriteType.synchronous)
        client_kwargs = {
            'host': self.url,
            'database': self.database,
            'token': self.token,
            'enable_gzip': True,
            'write_client_options': write_client_options(write_options=write_options),
            'verify_ssl': True,
            'timeout': WRITE_TIMEOUT_MS
        }
        ca_bundle = self._ca_bundle()
        if ca_bundle:
            LOG.info(f"Using custom CA certificate: {ca_bundle}")
            client_kwargs['ssl_ca_cert'] = ca_bundle

        try:
            self.client = InfluxDBClient3(**client_kwargs)
        except Exception as e:
            LOG.error(f"Failed to create InfluxDB client for {self.url}: {e}")
            raise

        self._ensure_database_exists()

    def _management_request(self, method: str, **kwargs) -> requests.Response:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        call = requests.get if method == 'GET' else requests.post
        return call(f"{self.url}/api/v3/configure/database", headers=headers,
                    timeout=MANAGEMENT_TIMEOUT, verify=self._ca_bundle() or True, **kwargs)

    def _ensure_database_exists(self):
        """Create the target database unless the server already lists it.

        Failures here are logged only; InfluxDB also creates a database on
        the first write to it.
        """
        try:
            response = self._management_request('GET', params={'format': 'json'})
            if response.status_code != 200:
                LOG.warning(f"Could not list databases: HTTP {response.status_code} {response.text[:200]}")
                return

            if self.database in parse_database_list(response.json()):
                LOG.info(f"Database '{self.database}' already exists")
                return

            LOG.info(f"Database '{self.database}' does not exist, creating it")
            created = self._management_request('POST', json={'db': self.database})
            if created.status_code in (200, 201, 204):
                LOG.info(f"Created database '{self.database}'")
            else:
                LOG.error(f"Failed to create database '{self.database}': "
                          f"HTTP {created.status_code} {created.text[:200]}")
        except (requests.RequestException, ValueError) as e:
            LOG.warning(f"Could not verify database '{self.database}' (it will be created on first write): {e}")

    @staticmethod
    def _convert_to_point(record: Record) -> Point:
        point = Point(record.measurement)
        for key, value in record.tags.items():
            # Line protocol cannot carry an empty tag value
            if value != '':
                point = point.tag(key, value)
        for key, value in record.fields.items():
            point = point.field(key, value)
        return point.time(record.time, WritePrecision.S)

    def write(self, batch: Batch, loop_iteration: int = 1) -> bool:
        """
        Write a batch to InfluxDB in one request.

        Records without fields are skipped since line protocol needs at least one.

        Returns:
            bool: True if InfluxDB stored the batch, False otherwise
        """
        if not self.client:
            LOG.error("InfluxDB client not available")
            return False

        if not len(batch):
            LOG.debug("Empty batch, nothing to write")
            return True

        try:
            points = [self._convert_to_point(record) for record in batch if record.fields]
        except (TypeError, ValueError) as e:
            LOG.error(f"Failed to convert batch to points: {e}")
            return False

        if self.enable_debug_output:
            self._write_debug_line_protocol(batch, loop_iteration)

        try:
            self.client.write(record=points)
        except Exception as e:
            self.stats.error(e)
            LOG.error(f"Failed to write batch of {len(points)} points to InfluxDB: {e}")
            return False
        self.stats.success(len(points))

        counts = {measurement: len(records) for measurement, records in batch.by_measurement().items()}
        LOG.info(f"Wrote {len(points)} points to InfluxDB {self.database}: {counts}")
        return True

    def _write_debug_line_protocol(self, batch: Batch, loop_iteration: int = 1):
        """Save the batch as line protocol; the first iteration gets its own file."""
        filename = ("iteration_1_influxdb_line_protocol_final.txt" if loop_iteration == 1
                    else "influxdb_line_protocol_final.txt")
        filepath = os.path.join(self.debug_output_dir, filename)
        lines = [line for line in map(record_to_line_protocol, batch) if line]
        try:
            os.makedirs(self.debug_output_dir, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                f.writelines(line + '\n' for line in lines)
        except OSError as e:
            LOG.error(f"Failed to write InfluxDB debug line protocol to {filepath}: {e}")
            return
        LOG.info(f"InfluxDB line protocol debug output saved to: {filepath} ({len(lines)} lines)")

    def get_batch_stats(self) -> Dict[str, Any]:
        return self.stats.get_stats()

    def close(self, timeout_seconds=90, force_exit_on_timeout=False):
        """Close the client.

        The close runs in a daemon thread bounded by timeout_seconds so a hung
        connection cannot block shutdown.

        Args:
            timeout_seconds: Maximum time to wait for the client to close
            force_exit_on_timeout: If True, exit the process when close times out
        """
        client, self.client = self.client, None
        if client is None:
            return

        LOG.info(f"Closing InfluxDB client, waiting up to {timeout_seconds}s...")
        failure: List[Exception] = []

        def flush_and_close():
            try:
                client.close()
            except Exception as e:
                failure.append(e)

        closer = threading.Thread(target=flush_and_close, name='influxdb-close', daemon=True)
        started = time.time()
        closer.start()
        closer.join(timeout_seconds)

        if closer.is_alive():
            LOG.warning(f"InfluxDB client close timed out after {timeout_seconds}s")
            if force_exit_on_timeout:
                LOG.warning("Force exit requested after timeout - terminating process")
                sys.exit(1)
        elif failure:
            LOG.warning(f"InfluxDB client closed with error: {failure[0]}")
        else:
            LOG.info(f"InfluxDB client closed in {time.time() - started:.2f}s: {self.get_batch_stats()}")
