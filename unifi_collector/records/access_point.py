"""Access point, radio and virtual AP records."""

from datetime import datetime

from ..config.measurements import Measurement
from ..schema.models import AP_COUNTERS, AP_TRAFFIC_SCOPES, WirelessDevice
from .columns import (DEVICE_FIELDS, DEVICE_TAGS, PARENT_TAGS, SYSTEM_FIELDS, RecordSchema, RecordSet,
                      measure, station_fields, tag)


def ap_counter(name: str):
    return lambda scope: scope['device'].stat_ap.counter(name)


ACCESS_POINT = RecordSchema(
    Measurement.ACCESS_POINT.value,
    DEVICE_TAGS,
    (
        tag('device_type', 'device.stat_ap.o'),
        tag('device_oid', 'device.stat_ap.oid'),
        tag('device_ap', 'device.stat_ap.ap'),
        tag('connect_request_ip', 'device.connect_request_ip'),
        tag('has_eth1', 'device.has_eth1'),
    ),
    DEVICE_FIELDS,
    SYSTEM_FIELDS,
    station_fields('wlan_stations'),
    tuple(measure(f'stat_{scope}{name}', ap_counter(f'{scope}{name}'))
          for scope in AP_TRAFFIC_SCOPES for name in AP_COUNTERS),
)

ACCESS_POINT_RADIOS = RecordSchema(
    Measurement.ACCESS_POINT_RADIOS.value,
    PARENT_TAGS,
    (
        tag('name', 'radio.name'),
        tag('radio', 'radio.radio'),
        tag('channel', 'radio.channel'),
        tag('ht', 'radio.ht'),
        tag('tx_power_mode', 'radio.tx_power_mode'),
        tag('has_dfs', 'radio.has_dfs'),
        tag('is_11ac', 'radio.is_11ac'),
        tag('state', 'radio.stats.state'),
    ),
    (
        measure('current_antenna_gain', 'radio.current_antenna_gain'),
        measure('max_txpower', 'radio.max_txpower'),
        measure('min_txpower', 'radio.min_txpower'),
        measure('nss', 'radio.nss'),
        measure('radio_caps', 'radio.radio_caps'),
        measure('cu_self_rx', 'radio.stats.cu_self_rx'),
        measure('cu_self_tx', 'radio.stats.cu_self_tx'),
        measure('cu_total', 'radio.stats.cu_total'),
        measure('extchannel', 'radio.stats.extchannel'),
        measure('gain', 'radio.stats.gain'),
        measure('num_sta', 'radio.stats.num_sta'),
        measure('user-num_sta', 'radio.stats.user_num_sta'),
        measure('guest-num_sta', 'radio.stats.guest_num_sta'),
        measure('satisfaction', 'radio.stats.satisfaction'),
        measure('tx_packets', 'radio.stats.tx_packets'),
        measure('tx_power', 'radio.stats.tx_power'),
        measure('tx_retries', 'radio.stats.tx_retries'),
        measure('ast_be_xmit', 'radio.stats.ast_be_xmit'),
        measure('ast_cst', 'radio.stats.ast_cst'),
        measure('ast_txto', 'radio.stats.ast_txto'),
    ),
)

VAP_COUNTERS = (
    'ccq', 'mac_filter_rejections', 'num_satisfaction_sta', 'avg_client_signal', 'satisfaction',
    'satisfaction_now', 'num_sta', 'rx_bytes', 'rx_crypts', 'rx_dropped', 'rx_errors', 'rx_frags',
    'rx_nwids', 'rx_packets', 'tx_bytes', 'tx_dropped', 'tx_errors', 'tx_packets', 'tx_power',
    'tx_retries', 'tx_combined_retries', 'tx_data_mpdu_bytes', 'tx_rts_retries', 'tx_success',
    'tx_total',
)

ACCESS_POINT_VAPS = RecordSchema(
    Measurement.ACCESS_POINT_VAPS.value,
    PARENT_TAGS,
    (
        tag('vap_id', 'vap.id'),
        tag('ap_mac', 'vap.ap_mac'),
        tag('bssid', 'vap.bssid'),
        tag('essid', 'vap.essid'),
        tag('name', 'vap.name'),
        tag('radio_name', 'vap.radio_name'),
        tag('radio', 'vap.radio'),
        tag('channel', 'vap.channel'),
        tag('usage', 'vap.usage'),
        tag('state', 'vap.state'),
        tag('is_guest', 'vap.is_guest'),
        tag('is_wep', 'vap.is_wep'),
        tag('up', 'vap.up'),
    ),
    tuple(measure(name, f'vap.{name}') for name in VAP_COUNTERS),
)


def build_access_point_records(device: WirelessDevice, time: datetime) -> RecordSet:
    """One ``access_point`` record plus one record per radio and per virtual AP."""
    out = RecordSet(device, time)
    out.emit(ACCESS_POINT)
    out.emit_children(ACCESS_POINT_RADIOS, 'radio', device.radios)
    out.emit_children(ACCESS_POINT_VAPS, 'vap', device.vaps)
    return out
