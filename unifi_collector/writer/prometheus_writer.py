"""
Prometheus exporter writer for the UniFi collector.
Exposes the numeric fields of every record as gauges labelled by its tags.
"""

import logging
import os
import re
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from prometheus_client import CollectorRegistry, Gauge, generate_latest, start_http_server

from ..schema.records import Batch, Record
from .base import Writer

LOG = logging.getLogger(__name__)

METRIC_PREFIX = 'unifi'

_INVALID_NAME_CHARS = re.compile(r'[^a-zA-Z0-9_]')
_LABEL_UNSAFE = re.compile(r'[\s,="]+')


def sanitize_name(name: str) -> str:
    """Turn a measurement, field or tag key into a valid Prometheus name part."""
    cleaned = _INVALID_NAME_CHARS.sub('_', name)
    cleaned = re.sub(r'_{2,}', '_', cleaned).strip('_')
    if not cleaned:
        return 'unknown'
    if cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def label_value(value: Any) -> str:
    """Label text for a tag value; empty tags become ``unknown``."""
    text = _LABEL_UNSAFE.sub('_', '' if value is None else str(value)).strip('_')
    return text or 'unknown'


def gauge_value(value: Any) -> Optional[float]:
    """Numeric reading of a field, or None for fields Prometheus cannot carry."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)) and value == value:  # NaN
        return float(value)
    return None


class PrometheusWriter(Writer):
    """
    Prometheus writer that creates one gauge per measurement field.

    Gauges are named ``unifi_<measurement>_<field>`` and carry the record's
    tags as labels. String fields are not exported; booleans become 1 or 0.
    A gauge keeps the last value set for each label set, so devices that
    disappear from the controller keep their last reading until restart.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.port = config.get('prometheus_port', 8000)

        # Set by the factory only when logging at DEBUG to a file
        self.debug_output_dir = config.get('json_output_dir')
        self.enable_debug_output = self.debug_output_dir is not None

        self.prometheus_registry = CollectorRegistry()
        # metric name -> (gauge, tag keys in label order)
        self.dynamic_metrics: Dict[str, Tuple[Gauge, Tuple[str, ...]]] = {}

        self._server_lock = threading.Lock()
        self.server_started = False

        if self.enable_debug_output:
            LOG.info(f"Prometheus debug file output enabled -> {self.debug_output_dir}")
        LOG.info(f"PrometheusWriter initialized, metrics will be served on port {self.port}")

    def _ensure_server(self):
        with self._server_lock:
            if self.server_started:
                return
            start_http_server(self.port, registry=self.prometheus_registry)
            self.server_started = True
            LOG.info(f"Prometheus metrics server started on port {self.port}")

    def _gauge_for(self, record: Record, field_name: str) -> Optional[Tuple[Gauge, Tuple[str, ...]]]:
        metric_name = f"{METRIC_PREFIX}_{sanitize_name(record.measurement)}_{sanitize_name(field_name)}"
        if metric_name in self.dynamic_metrics:
            return self.dynamic_metrics[metric_name]

        tag_keys = tuple(sorted(record.tags))
        label_names = [sanitize_name(key) for key in tag_keys]
        if len(set(label_names)) != len(label_names):
            LOG.error(f"Tag keys of {record.measurement} collide after sanitizing: {tag_keys}")
            return None

        try:
            gauge = Gauge(metric_name, f"UniFi {record.measurement} {field_name}", label_names,
                          registry=self.prometheus_registry)
        except ValueError as e:
            LOG.error(f"Cannot register metric {metric_name}: {e}")
            return None

        LOG.debug(f"Registered {metric_name} with labels {label_names}")
        self.dynamic_metrics[metric_name] = (gauge, tag_keys)
        return self.dynamic_metrics[metric_name]

    def _export_record(self, record: Record) -> int:
        """Set the gauges for every numeric field of a record. Returns how many were set."""
        exported = 0
        for field_name, raw in record.fields.items():
            value = gauge_value(raw)
            if value is None:
                continue
            metric = self._gauge_for(record, field_name)
            if metric is None:
                continue
            gauge, tag_keys = metric
            if set(tag_keys) != set(record.tags):
                LOG.warning(f"Skipping {record.measurement}.{field_name}: tag keys differ from the registered metric")
                continue
            gauge.labels(*[label_value(record.tags[key]) for key in tag_keys]).set(value)
            exported += 1
        return exported

    def write(self, batch: Batch, loop_iteration: int = 1) -> bool:
        """
        Update the exported gauges from a batch, starting the HTTP server on first use.

        Returns:
            bool: False if the server could not start or a gauge could not be set
        """
        try:
            self._ensure_server()
            exported = sum(self._export_record(record) for record in batch)
        except Exception as e:
            LOG.error(f"Error writing to Prometheus: {e}", exc_info=True)
            return False

        if self.enable_debug_output:
            self._write_debug_metrics_output(loop_iteration)

        LOG.info(f"Exported {exported} values from {len(batch)} records, "
                 f"{len(self.dynamic_metrics)} unique metrics")
        return True

    def _write_debug_metrics_output(self, loop_iteration: int = 1):
        """Save the exposition text; the first iteration gets its own file."""
        filename = ("iteration_1_prometheus_metrics_final.txt" if loop_iteration == 1
                    else "prometheus_metrics_final.txt")
        filepath = os.path.join(self.debug_output_dir, filename)
        header = (f"# UniFi collector metrics, iteration {loop_iteration}\n"
                  f"# Generated: {datetime.now().isoformat()}\n"
                  f"# Unique metrics: {len(self.dynamic_metrics)}\n\n")
        try:
            os.makedirs(self.debug_output_dir, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write(header)
                f.write(generate_latest(self.prometheus_registry).decode('utf-8'))
        except OSError as e:
            LOG.error(f"Failed to write Prometheus debug output to {filepath}: {e}")
            return
        LOG.info(f"Prometheus metrics debug output saved to: {filepath}")

    def metric_names(self) -> List[str]:
        return sorted(self.dynamic_metrics)

    def close(self, timeout_seconds: int = 90, force_exit_on_timeout: bool = False) -> None:
        # The HTTP server runs in a daemon thread and ends with the process
        LOG.info(f"PrometheusWriter closed ({len(self.dynamic_metrics)} metrics registered)")
