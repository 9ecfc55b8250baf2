"""
Declarative column tables that map entities onto records.

A RecordSchema lists, for one measurement, every tag and field key and where
its value comes from. Sources are either a dotted attribute path whose first
segment names an entity in the build scope (``device.wan1.rx_bytes``,
``port.speed``) or a callable taking the scope. Because a schema is the single
list of keys for its measurement, every record of a measurement has the same
key set whichever device variant produced it.
"""

from dataclasses import dataclass
from datetime import datetime
from operator import attrgetter
from typing import Any, Callable, Iterable, List, Mapping, Sequence, Tuple, Union

from ..errors import NormalizationError, RecordConstructionError
from ..schema.models import Device, Malformed
from ..schema.records import Record
from ..schema.value import Value, canonical_text

Scope = Mapping[str, Any]
Source = Union[str, Callable[[Scope], Any]]

TAG = 'tag'
FIELD = 'field'


@dataclass(frozen=True)
class Column:
    name: str
    source: Source
    kind: str

    def resolve(self, scope: Scope) -> Any:
        if callable(self.source):
            return self.source(scope)
        root, _, rest = self.source.partition('.')
        target = scope[root]
        return attrgetter(rest)(target) if rest else target

    def read(self, scope: Scope):
        raw = self.resolve(scope)
        if isinstance(raw, Value):
            return raw.as_tag() if self.kind == TAG else raw.as_field()
        if isinstance(raw, str):
            return raw
        if isinstance(raw, bool):
            return canonical_text(raw) if self.kind == TAG else raw
        if isinstance(raw, (int, float)):
            return canonical_text(float(raw)) if self.kind == TAG else float(raw)
        raise TypeError(f"{self.name}: cannot use {type(raw).__name__} as a {self.kind}")


def tag(name: str, source: Source) -> Column:
    return Column(name, source, TAG)


def measure(name: str, source: Source) -> Column:
    return Column(name, source, FIELD)


def fixed(value: float) -> Callable[[Scope], float]:
    """Source that always yields ``value``."""
    return lambda scope: value


class RecordSchema:
    """Ordered tag and field columns for one measurement.

    Raises:
        ValueError: a key is declared twice, or as both tag and field
    """

    def __init__(self, measurement: str, *groups: Iterable[Column]):
        self.measurement = measurement
        self.columns: Tuple[Column, ...] = tuple(column for group in groups for column in group)

        seen = {}
        for column in self.columns:
            if column.name in seen:
                raise ValueError(
                    f"{measurement}: key {column.name!r} declared as {seen[column.name]} and {column.kind}")
            seen[column.name] = column.kind

        self.tag_keys = frozenset(c.name for c in self.columns if c.kind == TAG)
        self.field_keys = frozenset(c.name for c in self.columns if c.kind == FIELD)

    def build(self, scope: Scope, time: datetime) -> Record:
        tags = {}
        fields = {}
        for column in self.columns:
            if column.kind == TAG:
                tags[column.name] = column.read(scope)
            else:
                fields[column.name] = column.read(scope)
        return Record(self.measurement, tags, fields, time)

    def __repr__(self):
        return f"RecordSchema({self.measurement!r}, tags={len(self.tag_keys)}, fields={len(self.field_keys)})"


# Tags every child record carries from its parent device.
PARENT_TAGS = (
    tag('site_id', 'device.site_id'),
    tag('site_name', 'device.site_name'),
    tag('device_name', 'device.name'),
    tag('device_id', 'device.id'),
    tag('device_mac', 'device.mac'),
)

# Identity and provisioning tags shared by the per-device measurements.
DEVICE_TAGS = (
    tag('id', 'device.id'),
    tag('mac', 'device.mac'),
    tag('site_id', 'device.site_id'),
    tag('site_name', 'device.site_name'),
    tag('name', 'device.name'),
    tag('adopted', 'device.adopted'),
    tag('cfgversion', 'device.cfgversion'),
    tag('config_network_ip', 'device.config_network.ip'),
    tag('config_network_type', 'device.config_network.type'),
    tag('device_id', 'device.device_id'),
    tag('inform_ip', 'device.inform_ip'),
    tag('known_cfgversion', 'device.known_cfgversion'),
    tag('model', 'device.model'),
    tag('serial', 'device.serial'),
    tag('type', 'device.type'),
)

DEVICE_FIELDS = (
    measure('ip', 'device.ip'),
    measure('bytes', 'device.bytes'),
    measure('last_seen', 'device.last_seen'),
    measure('rx_bytes', 'device.rx_bytes'),
    measure('tx_bytes', 'device.tx_bytes'),
    measure('uptime', 'device.uptime'),
    measure('state', 'device.state'),
    measure('version', 'device.version'),
)

SYSTEM_FIELDS = (
    measure('loadavg_1', 'device.sys_stats.loadavg_1'),
    measure('loadavg_5', 'device.sys_stats.loadavg_5'),
    measure('loadavg_15', 'device.sys_stats.loadavg_15'),
    measure('mem_buffer', 'device.sys_stats.mem_buffer'),
    measure('mem_total', 'device.sys_stats.mem_total'),
    measure('mem_used', 'device.sys_stats.mem_used'),
    measure('cpu', 'device.system_stats.cpu'),
    measure('mem', 'device.system_stats.mem'),
    measure('system_uptime', 'device.system_stats.uptime'),
)


def station_fields(role: str) -> Tuple[Column, ...]:
    """Station count fields read from ``device.<role>``."""
    return (
        measure('num_sta', f'device.{role}.total'),
        measure('user-num_sta', f'device.{role}.user'),
        measure('guest-num_sta', f'device.{role}.guest'),
    )


class RecordSet:
    """Records and errors collected while building one device.

    A record that cannot be built is reported as a RecordConstructionError and
    skipped; the remaining records are still produced.
    """

    def __init__(self, device: Device, time: datetime):
        self.device = device
        self.time = time
        self.records: List[Record] = []
        self.errors: List[NormalizationError] = []

    def emit(self, schema: RecordSchema, scope: Scope = None, path: str = None) -> None:
        scope = scope if scope is not None else {'device': self.device}
        try:
            self.records.append(schema.build(scope, self.time))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            self.errors.append(RecordConstructionError(f"{schema.measurement}: {e}", path or self.device.label))

    def emit_children(self, schema: RecordSchema, role: str, children: Sequence[Any]) -> None:
        """Emit one record per child, with the child bound to ``role`` in the scope."""
        for index, child in enumerate(children):
            path = f"{self.device.label}.{role}[{index}]"
            if isinstance(child, Malformed):
                self.errors.append(RecordConstructionError(f"{schema.measurement}: {child.reason}", child.path))
                continue
            self.emit(schema, {'device': self.device, role: child}, path)

    def extend(self, other: 'RecordSet') -> None:
        self.records.extend(other.records)
        self.errors.extend(other.errors)
