"""Gateway and gateway network records."""

from datetime import datetime
from typing import Tuple

from ..config.measurements import Measurement
from ..schema.models import Gateway, WirelessDevice
from .access_point import build_access_point_records
from .columns import (DEVICE_FIELDS, DEVICE_TAGS, PARENT_TAGS, SYSTEM_FIELDS, Column, RecordSchema,
                      RecordSet, measure, station_fields, tag)
from .switch import build_switch_records

WAN_TEXT = ('gateway', 'ifname', 'ip', 'mac', 'name', 'netmask', 'type')
WAN_NUMBERS = (
    ('bytes-r', 'bytes_r'), ('enable', 'enable'), ('full_duplex', 'full_duplex'),
    ('max_speed', 'max_speed'), ('speed', 'speed'),
    ('rx_bytes', 'rx_bytes'), ('rx_bytes-r', 'rx_bytes_r'), ('rx_dropped', 'rx_dropped'),
    ('rx_errors', 'rx_errors'), ('rx_multicast', 'rx_multicast'), ('rx_packets', 'rx_packets'),
    ('tx_bytes', 'tx_bytes'), ('tx_bytes-r', 'tx_bytes_r'), ('tx_dropped', 'tx_dropped'),
    ('tx_errors', 'tx_errors'), ('tx_packets', 'tx_packets'),
)

SPEEDTEST = (
    'latency', 'rundate', 'runtime', 'status_download', 'status_ping', 'status_summary',
    'status_upload', 'xput_download', 'xput_upload',
)

GATEWAY_STAT_COUNTERS = (
    ('lan-rx_bytes', 'lan_rx_bytes'), ('lan-rx_packets', 'lan_rx_packets'),
    ('lan-tx_bytes', 'lan_tx_bytes'), ('lan-tx_packets', 'lan_tx_packets'),
    ('wan-rx_bytes', 'wan_rx_bytes'), ('wan-rx_dropped', 'wan_rx_dropped'),
    ('wan-rx_packets', 'wan_rx_packets'), ('wan-tx_bytes', 'wan_tx_bytes'),
    ('wan-tx_packets', 'wan_tx_packets'),
)


def wan_fields(link: str) -> Tuple[Column, ...]:
    """Fields for one WAN link. Link state is a tag, see ``wan1_up``."""
    columns = [measure(f'{link}_{name}', f'device.{link}.{name}') for name in WAN_TEXT]
    columns += [measure(f'{link}_{key}', f'device.{link}.{attr}') for key, attr in WAN_NUMBERS]
    return tuple(columns)


GATEWAY = RecordSchema(
    Measurement.GATEWAY.value,
    DEVICE_TAGS,
    (
        tag('device_oid', 'device.stat_gw.oid'),
        tag('connect_request_ip', 'device.connect_request_ip'),
        tag('connect_request_port', 'device.connect_request_port'),
        tag('guest_token', 'device.guest_token'),
        tag('usg_caps', 'device.usg_caps'),
        tag('speedtest-status-saved', 'device.speedtest_status_saved'),
        tag('wan1_up', 'device.wan1.up'),
        tag('wan2_up', 'device.wan2.up'),
    ),
    DEVICE_FIELDS,
    SYSTEM_FIELDS,
    station_fields('stations'),
    (
        measure('fw_caps', 'device.fw_caps'),
        measure('license_state', 'device.license_state'),
        measure('num_desktop', 'device.num_desktop'),
        measure('num_handheld', 'device.num_handheld'),
        measure('num_mobile', 'device.num_mobile'),
        measure('uplink_name', 'device.uplink.name'),
        measure('uplink_latency', 'device.uplink.latency'),
        measure('uplink_speed', 'device.uplink.speed'),
        measure('uplink_num_ports', 'device.uplink.num_port'),
        measure('uplink_max_speed', 'device.uplink.max_speed'),
    ),
    tuple(measure(f'speedtest-status_{name}', f'device.speedtest_status.{name}') for name in SPEEDTEST),
    tuple(measure(key, f'device.stat_gw.{attr}') for key, attr in GATEWAY_STAT_COUNTERS),
    wan_fields('wan1'),
    wan_fields('wan2'),
)

GATEWAY_NETWORKS = RecordSchema(
    Measurement.GATEWAY_NETWORKS.value,
    PARENT_TAGS,
    (
        tag('up', 'network.up'),
        tag('dhcpd_dns_enabled', 'network.dhcpd_dns_enabled'),
        tag('dhcpd_enabled', 'network.dhcpd_enabled'),
        tag('dhcpd_time_offset_enabled', 'network.dhcpd_time_offset_enabled'),
        tag('dhcp_relay_enabled', 'network.dhcp_relay_enabled'),
        tag('dhcpd_gateway_enabled', 'network.dhcpd_gateway_enabled'),
        tag('enabled', 'network.enabled'),
        tag('vlan_enabled', 'network.vlan_enabled'),
        tag('attr_no_delete', 'network.attr_no_delete'),
        tag('is_guest', 'network.is_guest'),
        tag('is_nat', 'network.is_nat'),
        tag('networkgroup', 'network.networkgroup'),
    ),
    (
        measure('domain_name', 'network.domain_name'),
        measure('dhcpd_start', 'network.dhcpd_start'),
        measure('dhcpd_stop', 'network.dhcpd_stop'),
        measure('ip', 'network.ip'),
        measure('ip_subnet', 'network.ip_subnet'),
        measure('mac', 'network.mac'),
        measure('name', 'network.name'),
        measure('purpose', 'network.purpose'),
        measure('ipv6_interface_type', 'network.ipv6_interface_type'),
        measure('attr_hidden_id', 'network.attr_hidden_id'),
        measure('num_sta', 'network.num_sta'),
        measure('rx_bytes', 'network.rx_bytes'),
        measure('rx_packets', 'network.rx_packets'),
        measure('tx_bytes', 'network.tx_bytes'),
        measure('tx_packets', 'network.tx_packets'),
    ),
)


def build_gateway_records(device: Gateway, time: datetime) -> RecordSet:
    """Records for a gateway or Dream Machine.

    Always emits ``gateway`` and ``switch`` plus one record per network and
    port. A Dream Machine that reported radios or ``stat.ap`` also emits its
    access point records.
    """
    out = RecordSet(device, time)
    out.emit(GATEWAY)
    out.emit_children(GATEWAY_NETWORKS, 'network', device.networks)
    out.extend(build_switch_records(device, time))
    if isinstance(device, WirelessDevice) and device.wireless:
        out.extend(build_access_point_records(device, time))
    return out
