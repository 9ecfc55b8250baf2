"""Switch and switch port records.

Switches, gateways and Dream Machines all emit these: a gateway reports the
counters of its integrated switch chip in ``stat.sw`` and its ports in
``port_table``.
"""

from datetime import datetime

from ..config.measurements import Measurement
from ..schema.models import SwitchingDevice
from .columns import (DEVICE_FIELDS, DEVICE_TAGS, PARENT_TAGS, SYSTEM_FIELDS, RecordSchema, RecordSet,
                      fixed, measure, station_fields, tag)

SWITCH_STAT_COUNTERS = (
    'bytes', 'rx_bytes', 'rx_crypts', 'rx_dropped', 'rx_errors', 'rx_frags', 'rx_packets',
    'tx_bytes', 'tx_dropped', 'tx_errors', 'tx_packets', 'tx_retries',
)

SWITCH = RecordSchema(
    Measurement.SWITCH.value,
    DEVICE_TAGS,
    (
        tag('device_oid', 'device.stat_sw.oid'),
        tag('locating', 'device.locating'),
        tag('dot1x_portctrl_enabled', 'device.dot1x_portctrl_enabled'),
        tag('flowctrl_enabled', 'device.flowctrl_enabled'),
        tag('has_fan', 'device.has_fan'),
        tag('has_temperature', 'device.has_temperature'),
        tag('jumboframe_enabled', 'device.jumboframe_enabled'),
        tag('stp_priority', 'device.stp_priority'),
        tag('stp_version', 'device.stp_version'),
    ),
    DEVICE_FIELDS,
    SYSTEM_FIELDS,
    station_fields('lan_stations'),
    (
        measure('fw_caps', 'device.fw_caps'),
        measure('license_state', 'device.license_state'),
        measure('overheating', 'device.overheating'),
        # Always reported as zero, so dashboards built on them keep working.
        measure('fan_level', fixed(0.0)),
        measure('general_temperature', fixed(0.0)),
    ),
    tuple(measure(f'stat_{name}', f'device.stat_sw.{name}') for name in SWITCH_STAT_COUNTERS),
)


def port_id(scope) -> str:
    return f"{scope['device'].name} Port {scope['port'].port_idx.as_tag()}"


SWITCH_PORTS = RecordSchema(
    Measurement.SWITCH_PORTS.value,
    PARENT_TAGS,
    (
        tag('name', 'port.name'),
        tag('port_id', port_id),
        tag('port_idx', 'port.port_idx'),
        tag('enable', 'port.enable'),
        tag('is_uplink', 'port.is_uplink'),
        tag('up', 'port.up'),
        tag('portconf_id', 'port.portconf_id'),
        tag('dot1x_mode', 'port.dot1x_mode'),
        tag('dot1x_status', 'port.dot1x_status'),
        tag('stp_state', 'port.stp_state'),
        tag('sfp_found', 'port.sfp_found'),
        tag('op_mode', 'port.op_mode'),
        tag('poe_mode', 'port.poe_mode'),
        tag('port_poe', 'port.port_poe'),
        tag('poe_enable', 'port.poe_enable'),
        tag('flowctrl_rx', 'port.flowctrl_rx'),
        tag('flowctrl_tx', 'port.flowctrl_tx'),
        tag('autoneg', 'port.autoneg'),
        tag('full_duplex', 'port.full_duplex'),
        tag('jumbo', 'port.jumbo'),
        tag('masked', 'port.masked'),
        tag('poe_good', 'port.poe_good'),
        tag('media', 'port.media'),
        tag('poe_class', 'port.poe_class'),
        tag('poe_caps', 'port.poe_caps'),
        tag('aggregated_by', 'port.aggregated_by'),
    ),
    (
        measure('dbytes_r', 'port.bytes_r'),
        measure('rx_broadcast', 'port.rx_broadcast'),
        measure('rx_bytes', 'port.rx_bytes'),
        measure('rx_bytes-r', 'port.rx_bytes_r'),
        measure('rx_dropped', 'port.rx_dropped'),
        measure('rx_errors', 'port.rx_errors'),
        measure('rx_multicast', 'port.rx_multicast'),
        measure('rx_packets', 'port.rx_packets'),
        measure('speed', 'port.speed'),
        measure('stp_pathcost', 'port.stp_pathcost'),
        measure('tx_broadcast', 'port.tx_broadcast'),
        measure('tx_bytes', 'port.tx_bytes'),
        measure('tx_bytes-r', 'port.tx_bytes_r'),
        measure('tx_dropped', 'port.tx_dropped'),
        measure('tx_errors', 'port.tx_errors'),
        measure('tx_multicast', 'port.tx_multicast'),
        measure('tx_packets', 'port.tx_packets'),
        measure('poe_current', 'port.poe_current'),
        measure('poe_power', 'port.poe_power'),
        measure('poe_voltage', 'port.poe_voltage'),
    ),
)


def build_switch_records(device: SwitchingDevice, time: datetime) -> RecordSet:
    """One ``switch`` record plus one ``switch_ports`` record per port."""
    out = RecordSet(device, time)
    out.emit(SWITCH)
    out.emit_children(SWITCH_PORTS, 'port', device.ports)
    return out
