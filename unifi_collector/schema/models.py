"""
Entity model for UniFi controller device data.

Every entity is a dataclass whose default instance is all-zero. Raw controller
JSON is read through RawReader, which substitutes zero values for absent or
unreadable readings and collects a FieldCoercionError for the latter. Sub-blocks
the controller omits (for example ``stat.sw`` on a gateway without a switch
chip) come back as zero-valued instances, never None, so record mapping code
does not need presence checks.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

from ..errors import DeviceConstructionError, FieldCoercionError
from .value import Value, coerce_flag, coerce_number, coerce_text, zero_flag, zero_number


def _num():
    return field(default_factory=zero_number)


def _flag():
    return field(default_factory=zero_flag)


class RawReader:
    """Reads one JSON object from the controller, collecting coercion errors.

    Each accessor takes one or more candidate keys; the first key holding a
    non-null value wins.
    """

    def __init__(self, data: Any, path: str, errors: List[FieldCoercionError]):
        self.data = data if isinstance(data, dict) else {}
        self.present = isinstance(data, dict)
        self.path = path
        self.errors = errors

    def _lookup(self, keys: Tuple[str, ...]) -> Tuple[str, Any]:
        for key in keys:
            raw = self.data.get(key)
            if raw is not None:
                return key, raw
        return keys[0], None

    def _keep(self, result):
        value, error = result
        if error is not None:
            self.errors.append(error)
        return value

    def number(self, *keys: str) -> Value:
        key, raw = self._lookup(keys)
        return self._keep(coerce_number(raw, f"{self.path}.{key}"))

    def flag(self, *keys: str) -> Value:
        key, raw = self._lookup(keys)
        return self._keep(coerce_flag(raw, f"{self.path}.{key}"))

    def text(self, *keys: str) -> str:
        key, raw = self._lookup(keys)
        return self._keep(coerce_text(raw, f"{self.path}.{key}"))

    def block(self, key: str) -> 'RawReader':
        """Reader for a nested object. A missing object reads as empty."""
        raw = self.data.get(key)
        path = f"{self.path}.{key}"
        if raw is not None and not isinstance(raw, dict):
            self.errors.append(FieldCoercionError(f"expected an object, got {type(raw).__name__}", path))
            raw = None
        return RawReader(raw, path, self.errors)

    def rows(self, key: str) -> List[Tuple[str, Optional['RawReader']]]:
        """Readers for each element of a nested list.

        Elements that are not objects are returned as ``(path, None)`` so the
        caller can keep their position.
        """
        raw = self.data.get(key)
        path = f"{self.path}.{key}"
        if raw is None:
            return []
        if not isinstance(raw, list):
            self.errors.append(FieldCoercionError(f"expected a list, got {type(raw).__name__}", path))
            return []
        rows = []
        for index, item in enumerate(raw):
            item_path = f"{path}[{index}]"
            rows.append((item_path, RawReader(item, item_path, self.errors) if isinstance(item, dict) else None))
        return rows


@dataclass(frozen=True)
class Malformed:
    """Placeholder for a child collection element that is not a JSON object."""
    path: str
    reason: str


@dataclass
class ConfigNetwork:
    ip: str = ''
    type: str = ''

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'ConfigNetwork':
        return cls(ip=r.text('ip'), type=r.text('type'))


@dataclass
class SysStats:
    """Load averages and memory counters from ``sys_stats``."""
    loadavg_1: Value = _num()
    loadavg_5: Value = _num()
    loadavg_15: Value = _num()
    mem_buffer: Value = _num()
    mem_total: Value = _num()
    mem_used: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'SysStats':
        return cls(
            loadavg_1=r.number('loadavg_1'),
            loadavg_5=r.number('loadavg_5'),
            loadavg_15=r.number('loadavg_15'),
            mem_buffer=r.number('mem_buffer'),
            mem_total=r.number('mem_total'),
            mem_used=r.number('mem_used'),
        )


@dataclass
class SystemStats:
    """CPU and memory percentages from ``system-stats``."""
    cpu: Value = _num()
    mem: Value = _num()
    uptime: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'SystemStats':
        return cls(cpu=r.number('cpu'), mem=r.number('mem'), uptime=r.number('uptime'))


@dataclass
class Uplink:
    name: str = ''
    latency: Value = _num()
    speed: Value = _num()
    num_port: Value = _num()
    max_speed: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'Uplink':
        return cls(
            name=r.text('name'),
            latency=r.number('latency'),
            speed=r.number('speed'),
            num_port=r.number('num_port'),
            max_speed=r.number('max_speed'),
        )


@dataclass
class Stations:
    """Connected station counts for one role (all, lan or wlan)."""
    total: Value = _num()
    user: Value = _num()
    guest: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader, keys: Tuple[Tuple[str, ...], ...]) -> 'Stations':
        total_keys, user_keys, guest_keys = keys
        return cls(total=r.number(*total_keys), user=r.number(*user_keys), guest=r.number(*guest_keys))


@dataclass
class WanLink:
    """One WAN interface of a gateway (``wan1`` / ``wan2``)."""
    name: str = ''
    ifname: str = ''
    ip: str = ''
    mac: str = ''
    gateway: str = ''
    netmask: str = ''
    type: str = ''
    up: Value = _flag()
    enable: Value = _flag()
    full_duplex: Value = _flag()
    bytes_r: Value = _num()
    max_speed: Value = _num()
    speed: Value = _num()
    rx_bytes: Value = _num()
    rx_bytes_r: Value = _num()
    rx_dropped: Value = _num()
    rx_errors: Value = _num()
    rx_multicast: Value = _num()
    rx_packets: Value = _num()
    tx_bytes: Value = _num()
    tx_bytes_r: Value = _num()
    tx_dropped: Value = _num()
    tx_errors: Value = _num()
    tx_packets: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'WanLink':
        return cls(
            name=r.text('name'),
            ifname=r.text('ifname'),
            ip=r.text('ip'),
            mac=r.text('mac'),
            gateway=r.text('gateway'),
            netmask=r.text('netmask'),
            type=r.text('type'),
            up=r.flag('up'),
            enable=r.flag('enable'),
            full_duplex=r.flag('full_duplex'),
            bytes_r=r.number('bytes-r'),
            max_speed=r.number('max_speed'),
            speed=r.number('speed'),
            rx_bytes=r.number('rx_bytes'),
            rx_bytes_r=r.number('rx_bytes-r'),
            rx_dropped=r.number('rx_dropped'),
            rx_errors=r.number('rx_errors'),
            rx_multicast=r.number('rx_multicast'),
            rx_packets=r.number('rx_packets'),
            tx_bytes=r.number('tx_bytes'),
            tx_bytes_r=r.number('tx_bytes-r'),
            tx_dropped=r.number('tx_dropped'),
            tx_errors=r.number('tx_errors'),
            tx_packets=r.number('tx_packets'),
        )


@dataclass
class SpeedtestStatus:
    latency: Value = _num()
    rundate: Value = _num()
    runtime: Value = _num()
    status_download: Value = _num()
    status_ping: Value = _num()
    status_summary: Value = _num()
    status_upload: Value = _num()
    xput_download: Value = _num()
    xput_upload: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'SpeedtestStatus':
        return cls(
            latency=r.number('latency'),
            rundate=r.number('rundate'),
            runtime=r.number('runtime'),
            status_download=r.number('status_download'),
            status_ping=r.number('status_ping'),
            status_summary=r.number('status_summary'),
            status_upload=r.number('status_upload'),
            xput_download=r.number('xput_download'),
            xput_upload=r.number('xput_upload'),
        )


@dataclass
class GatewayStats:
    """Routing counters from ``stat.gw``."""
    oid: str = ''
    lan_rx_bytes: Value = _num()
    lan_rx_packets: Value = _num()
    lan_tx_bytes: Value = _num()
    lan_tx_packets: Value = _num()
    wan_rx_bytes: Value = _num()
    wan_rx_dropped: Value = _num()
    wan_rx_packets: Value = _num()
    wan_tx_bytes: Value = _num()
    wan_tx_packets: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'GatewayStats':
        return cls(
            oid=r.text('oid'),
            lan_rx_bytes=r.number('lan-rx_bytes'),
            lan_rx_packets=r.number('lan-rx_packets'),
            lan_tx_bytes=r.number('lan-tx_bytes'),
            lan_tx_packets=r.number('lan-tx_packets'),
            wan_rx_bytes=r.number('wan-rx_bytes'),
            wan_rx_dropped=r.number('wan-rx_dropped'),
            wan_rx_packets=r.number('wan-rx_packets'),
            wan_tx_bytes=r.number('wan-tx_bytes'),
            wan_tx_packets=r.number('wan-tx_packets'),
        )


@dataclass
class SwitchStats:
    """Switching counters from ``stat.sw``."""
    oid: str = ''
    bytes: Value = _num()
    rx_bytes: Value = _num()
    rx_crypts: Value = _num()
    rx_dropped: Value = _num()
    rx_errors: Value = _num()
    rx_frags: Value = _num()
    rx_packets: Value = _num()
    tx_bytes: Value = _num()
    tx_dropped: Value = _num()
    tx_errors: Value = _num()
    tx_packets: Value = _num()
    tx_retries: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'SwitchStats':
        return cls(
            oid=r.text('oid'),
            bytes=r.number('bytes'),
            rx_bytes=r.number('rx_bytes'),
            rx_crypts=r.number('rx_crypts'),
            rx_dropped=r.number('rx_dropped'),
            rx_errors=r.number('rx_errors'),
            rx_frags=r.number('rx_frags'),
            rx_packets=r.number('rx_packets'),
            tx_bytes=r.number('tx_bytes'),
            tx_dropped=r.number('tx_dropped'),
            tx_errors=r.number('tx_errors'),
            tx_packets=r.number('tx_packets'),
            tx_retries=r.number('tx_retries'),
        )


# Accumulated wireless counters reported in ``stat.ap``, each for user,
# guest and all traffic.
AP_COUNTERS = (
    'rx_packets', 'rx_bytes', 'rx_errors', 'rx_dropped', 'rx_crypts', 'rx_frags',
    'tx_packets', 'tx_bytes', 'tx_errors', 'tx_dropped', 'tx_retries',
)
AP_TRAFFIC_SCOPES = ('user-', 'guest-', '')


@dataclass
class AccessPointStats:
    """Wireless counters from ``stat.ap``, keyed by their controller names."""
    o: str = ''
    oid: str = ''
    ap: str = ''
    counters: Dict[str, Value] = field(
        default_factory=lambda: {f"{scope}{name}": zero_number()
                                 for scope in AP_TRAFFIC_SCOPES for name in AP_COUNTERS})

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'AccessPointStats':
        return cls(
            o=r.text('o'),
            oid=r.text('oid'),
            ap=r.text('ap'),
            counters={f"{scope}{name}": r.number(f"{scope}{name}")
                      for scope in AP_TRAFFIC_SCOPES for name in AP_COUNTERS},
        )

    def counter(self, name: str) -> Value:
        return self.counters.get(name) or zero_number()


@dataclass
class Network:
    """One row of a gateway's ``network_table``."""
    name: str = ''
    purpose: str = ''
    domain_name: str = ''
    dhcpd_start: str = ''
    dhcpd_stop: str = ''
    ip: str = ''
    ip_subnet: str = ''
    mac: str = ''
    networkgroup: str = ''
    site_id: str = ''
    ipv6_interface_type: str = ''
    attr_hidden_id: str = ''
    up: Value = _flag()
    dhcpd_dns_enabled: Value = _flag()
    dhcpd_enabled: Value = _flag()
    dhcpd_time_offset_enabled: Value = _flag()
    dhcp_relay_enabled: Value = _flag()
    dhcpd_gateway_enabled: Value = _flag()
    enabled: Value = _flag()
    vlan_enabled: Value = _flag()
    attr_no_delete: Value = _flag()
    is_guest: Value = _flag()
    is_nat: Value = _flag()
    num_sta: Value = _num()
    rx_bytes: Value = _num()
    rx_packets: Value = _num()
    tx_bytes: Value = _num()
    tx_packets: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'Network':
        return cls(
            name=r.text('name'),
            purpose=r.text('purpose'),
            domain_name=r.text('domain_name'),
            dhcpd_start=r.text('dhcpd_start'),
            dhcpd_stop=r.text('dhcpd_stop'),
            ip=r.text('ip'),
            ip_subnet=r.text('ip_subnet'),
            mac=r.text('mac'),
            networkgroup=r.text('networkgroup'),
            site_id=r.text('site_id'),
            ipv6_interface_type=r.text('ipv6_interface_type'),
            attr_hidden_id=r.text('attr_hidden_id'),
            up=r.flag('up'),
            dhcpd_dns_enabled=r.flag('dhcpd_dns_enabled'),
            dhcpd_enabled=r.flag('dhcpd_enabled'),
            dhcpd_time_offset_enabled=r.flag('dhcpd_time_offset_enabled'),
            dhcp_relay_enabled=r.flag('dhcp_relay_enabled'),
            dhcpd_gateway_enabled=r.flag('dhcpd_gateway_enabled'),
            enabled=r.flag('enabled'),
            vlan_enabled=r.flag('vlan_enabled'),
            attr_no_delete=r.flag('attr_no_delete'),
            is_guest=r.flag('is_guest'),
            is_nat=r.flag('is_nat'),
            num_sta=r.number('num_sta'),
            rx_bytes=r.number('rx_bytes'),
            rx_packets=r.number('rx_packets'),
            tx_bytes=r.number('tx_bytes'),
            tx_packets=r.number('tx_packets'),
        )


@dataclass
class Port:
    """One row of a switch's ``port_table``."""
    name: str = ''
    portconf_id: str = ''
    dot1x_mode: str = ''
    dot1x_status: str = ''
    stp_state: str = ''
    op_mode: str = ''
    poe_mode: str = ''
    media: str = ''
    poe_class: str = ''
    port_idx: Value = _num()
    poe_caps: Value = _num()
    aggregated_by: Value = _num()
    enable: Value = _flag()
    is_uplink: Value = _flag()
    up: Value = _flag()
    sfp_found: Value = _flag()
    port_poe: Value = _flag()
    poe_enable: Value = _flag()
    flowctrl_rx: Value = _flag()
    flowctrl_tx: Value = _flag()
    autoneg: Value = _flag()
    full_duplex: Value = _flag()
    jumbo: Value = _flag()
    masked: Value = _flag()
    poe_good: Value = _flag()
    bytes_r: Value = _num()
    rx_broadcast: Value = _num()
    rx_bytes: Value = _num()
    rx_bytes_r: Value = _num()
    rx_dropped: Value = _num()
    rx_errors: Value = _num()
    rx_multicast: Value = _num()
    rx_packets: Value = _num()
    speed: Value = _num()
    stp_pathcost: Value = _num()
    tx_broadcast: Value = _num()
    tx_bytes: Value = _num()
    tx_bytes_r: Value = _num()
    tx_dropped: Value = _num()
    tx_errors: Value = _num()
    tx_multicast: Value = _num()
    tx_packets: Value = _num()
    poe_current: Value = _num()
    poe_power: Value = _num()
    poe_voltage: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'Port':
        return cls(
            name=r.text('name'),
            portconf_id=r.text('portconf_id'),
            dot1x_mode=r.text('dot1x_mode'),
            dot1x_status=r.text('dot1x_status'),
            stp_state=r.text('stp_state'),
            op_mode=r.text('op_mode'),
            poe_mode=r.text('poe_mode'),
            media=r.text('media'),
            poe_class=r.text('poe_class'),
            port_idx=r.number('port_idx'),
            poe_caps=r.number('poe_caps'),
            aggregated_by=r.number('aggregated_by'),
            enable=r.flag('enable'),
            is_uplink=r.flag('is_uplink'),
            up=r.flag('up'),
            sfp_found=r.flag('sfp_found'),
            port_poe=r.flag('port_poe'),
            poe_enable=r.flag('poe_enable'),
            flowctrl_rx=r.flag('flowctrl_rx'),
            flowctrl_tx=r.flag('flowctrl_tx'),
            autoneg=r.flag('autoneg'),
            full_duplex=r.flag('full_duplex'),
            jumbo=r.flag('jumbo'),
            masked=r.flag('masked'),
            poe_good=r.flag('poe_good'),
            bytes_r=r.number('bytes-r'),
            rx_broadcast=r.number('rx_broadcast'),
            rx_bytes=r.number('rx_bytes'),
            rx_bytes_r=r.number('rx_bytes-r'),
            rx_dropped=r.number('rx_dropped'),
            rx_errors=r.number('rx_errors'),
            rx_multicast=r.number('rx_multicast'),
            rx_packets=r.number('rx_packets'),
            speed=r.number('speed'),
            stp_pathcost=r.number('stp_pathcost'),
            tx_broadcast=r.number('tx_broadcast'),
            tx_bytes=r.number('tx_bytes'),
            tx_bytes_r=r.number('tx_bytes-r'),
            tx_dropped=r.number('tx_dropped'),
            tx_errors=r.number('tx_errors'),
            tx_multicast=r.number('tx_multicast'),
            tx_packets=r.number('tx_packets'),
            poe_current=r.number('poe_current'),
            poe_power=r.number('poe_power'),
            poe_voltage=r.number('poe_voltage'),
        )


@dataclass
class RadioStats:
    """One row of ``radio_table_stats``; zero when the controller sent none."""
    state: str = ''
    cu_self_rx: Value = _num()
    cu_self_tx: Value = _num()
    cu_total: Value = _num()
    extchannel: Value = _num()
    gain: Value = _num()
    num_sta: Value = _num()
    user_num_sta: Value = _num()
    guest_num_sta: Value = _num()
    satisfaction: Value = _num()
    tx_packets: Value = _num()
    tx_power: Value = _num()
    tx_retries: Value = _num()
    ast_be_xmit: Value = _num()
    ast_cst: Value = _num()
    ast_txto: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'RadioStats':
        return cls(
            state=r.text('state'),
            cu_self_rx=r.number('cu_self_rx'),
            cu_self_tx=r.number('cu_self_tx'),
            cu_total=r.number('cu_total'),
            extchannel=r.number('extchannel'),
            gain=r.number('gain'),
            num_sta=r.number('num_sta'),
            user_num_sta=r.number('user-num_sta'),
            guest_num_sta=r.number('guest-num_sta'),
            satisfaction=r.number('satisfaction'),
            tx_packets=r.number('tx_packets'),
            tx_power=r.number('tx_power'),
            tx_retries=r.number('tx_retries'),
            ast_be_xmit=r.number('ast_be_xmit'),
            ast_cst=r.number('ast_cst'),
            ast_txto=r.number('ast_txto'),
        )


@dataclass
class Radio:
    """One radio: its ``radio_table`` configuration plus matching stats row."""
    name: str = ''
    radio: str = ''
    ht: Value = _num()
    channel: Value = _num()
    tx_power_mode: str = ''
    has_dfs: Value = _flag()
    is_11ac: Value = _flag()
    current_antenna_gain: Value = _num()
    max_txpower: Value = _num()
    min_txpower: Value = _num()
    nss: Value = _num()
    radio_caps: Value = _num()
    stats: RadioStats = field(default_factory=RadioStats)

    @classmethod
    def from_api_response(cls, r: RawReader, stats: Optional[RadioStats] = None) -> 'Radio':
        return cls(
            name=r.text('name'),
            radio=r.text('radio'),
            ht=r.number('ht'),
            channel=r.number('channel'),
            tx_power_mode=r.text('tx_power_mode'),
            has_dfs=r.flag('has_dfs'),
            is_11ac=r.flag('is_11ac'),
            current_antenna_gain=r.number('current_antenna_gain'),
            max_txpower=r.number('max_txpower'),
            min_txpower=r.number('min_txpower'),
            nss=r.number('nss'),
            radio_caps=r.number('radio_caps'),
            stats=stats or RadioStats(),
        )


@dataclass
class VirtualAP:
    """One row of an access point's ``vap_table`` (one SSID on one radio)."""
    id: str = ''
    ap_mac: str = ''
    bssid: str = ''
    essid: str = ''
    name: str = ''
    radio_name: str = ''
    radio: str = ''
    site_id: str = ''
    usage: str = ''
    state: str = ''
    channel: Value = _num()
    is_guest: Value = _flag()
    is_wep: Value = _flag()
    up: Value = _flag()
    ccq: Value = _num()
    mac_filter_rejections: Value = _num()
    num_satisfaction_sta: Value = _num()
    avg_client_signal: Value = _num()
    satisfaction: Value = _num()
    satisfaction_now: Value = _num()
    num_sta: Value = _num()
    rx_bytes: Value = _num()
    rx_crypts: Value = _num()
    rx_dropped: Value = _num()
    rx_errors: Value = _num()
    rx_frags: Value = _num()
    rx_nwids: Value = _num()
    rx_packets: Value = _num()
    tx_bytes: Value = _num()
    tx_dropped: Value = _num()
    tx_errors: Value = _num()
    tx_packets: Value = _num()
    tx_power: Value = _num()
    tx_retries: Value = _num()
    tx_combined_retries: Value = _num()
    tx_data_mpdu_bytes: Value = _num()
    tx_rts_retries: Value = _num()
    tx_success: Value = _num()
    tx_total: Value = _num()

    @classmethod
    def from_api_response(cls, r: RawReader) -> 'VirtualAP':
        return cls(
            id=r.text('id', '_id'),
            ap_mac=r.text('ap_mac'),
            bssid=r.text('bssid'),
            essid=r.text('essid'),
            name=r.text('name'),
            radio_name=r.text('radio_name'),
            radio=r.text('radio'),
            site_id=r.text('site_id'),
            usage=r.text('usage'),
            state=r.text('state'),
            channel=r.number('channel'),
            is_guest=r.flag('is_guest'),
            is_wep=r.flag('is_wep'),
            up=r.flag('up'),
            ccq=r.number('ccq'),
            mac_filter_rejections=r.number('mac_filter_rejections'),
            num_satisfaction_sta=r.number('num_satisfaction_sta'),
            avg_client_signal=r.number('avg_client_signal'),
            satisfaction=r.number('satisfaction'),
            satisfaction_now=r.number('satisfaction_now'),
            num_sta=r.number('num_sta'),
            rx_bytes=r.number('rx_bytes'),
            rx_crypts=r.number('rx_crypts'),
            rx_dropped=r.number('rx_dropped'),
            rx_errors=r.number('rx_errors'),
            rx_frags=r.number('rx_frags'),
            rx_nwids=r.number('rx_nwids'),
            rx_packets=r.number('rx_packets'),
            tx_bytes=r.number('tx_bytes'),
            tx_dropped=r.number('tx_dropped'),
            tx_errors=r.number('tx_errors'),
            tx_packets=r.number('tx_packets'),
            tx_power=r.number('tx_power'),
            tx_retries=r.number('tx_retries'),
            tx_combined_retries=r.number('tx_combined_retries'),
            tx_data_mpdu_bytes=r.number('tx_data_mpdu_bytes'),
            tx_rts_retries=r.number('tx_rts_retries'),
            tx_success=r.number('tx_success'),
            tx_total=r.number('tx_total'),
        )


Child = Union[Network, Port, Radio, VirtualAP, Malformed]


def _children(rows, build) -> Tuple[Child, ...]:
    return tuple(build(reader) if reader is not None else Malformed(path, 'element is not an object')
                 for path, reader in rows)


@dataclass
class Device:
    """Attributes every adopted UniFi device reports."""

    TYPES: ClassVar[Tuple[str, ...]] = ()
    STATION_KEYS: ClassVar[Tuple[Tuple[str, ...], ...]] = (
        ('num_sta',), ('user-num_sta',), ('guest-num_sta',))

    id: str = ''
    mac: str = ''
    site_id: str = ''
    site_name: str = ''
    name: str = ''
    model: str = ''
    serial: str = ''
    type: str = ''
    version: str = ''
    ip: str = ''
    cfgversion: str = ''
    known_cfgversion: str = ''
    inform_ip: str = ''
    device_id: str = ''
    license_state: str = ''
    connect_request_ip: str = ''
    connect_request_port: str = ''
    guest_token: str = ''
    adopted: Value = _flag()
    locating: Value = _flag()
    state: Value = _num()
    uptime: Value = _num()
    last_seen: Value = _num()
    bytes: Value = _num()
    rx_bytes: Value = _num()
    tx_bytes: Value = _num()
    fw_caps: Value = _num()
    config_network: ConfigNetwork = field(default_factory=ConfigNetwork)
    sys_stats: SysStats = field(default_factory=SysStats)
    system_stats: SystemStats = field(default_factory=SystemStats)
    uplink: Uplink = field(default_factory=Uplink)
    stations: Stations = field(default_factory=Stations)

    @classmethod
    def from_api_response(cls, data: Dict[str, Any],
                          path: str = 'device') -> Tuple['Device', List[FieldCoercionError]]:
        """Build the entity from one raw controller device.

        Returns:
            The entity and the coercion errors found while reading it
        """
        errors: List[FieldCoercionError] = []
        reader = RawReader(data, path, errors)
        entity = cls(**cls._read(reader))
        # Sub-blocks such as ``stat`` are read once per variant layer.
        return entity, list(dict.fromkeys(errors))

    @classmethod
    def _read(cls, r: RawReader) -> Dict[str, Any]:
        return dict(
            id=r.text('_id'),
            mac=r.text('mac'),
            site_id=r.text('site_id'),
            site_name=r.text('site_name'),
            name=r.text('name'),
            model=r.text('model'),
            serial=r.text('serial'),
            type=r.text('type'),
            version=r.text('version'),
            ip=r.text('ip'),
            cfgversion=r.text('cfgversion'),
            known_cfgversion=r.text('known_cfgversion'),
            inform_ip=r.text('inform_ip'),
            device_id=r.text('device_id'),
            license_state=r.text('license_state'),
            connect_request_ip=r.text('connect_request_ip'),
            connect_request_port=r.text('connect_request_port'),
            guest_token=r.text('guest_token'),
            adopted=r.flag('adopted'),
            locating=r.flag('locating'),
            state=r.number('state'),
            uptime=r.number('uptime'),
            last_seen=r.number('last_seen'),
            bytes=r.number('bytes'),
            rx_bytes=r.number('rx_bytes'),
            tx_bytes=r.number('tx_bytes'),
            fw_caps=r.number('fw_caps'),
            config_network=ConfigNetwork.from_api_response(r.block('config_network')),
            sys_stats=SysStats.from_api_response(r.block('sys_stats')),
            system_stats=SystemStats.from_api_response(r.block('system-stats')),
            uplink=Uplink.from_api_response(r.block('uplink')),
            stations=Stations.from_api_response(r, cls.STATION_KEYS),
        )

    @property
    def label(self) -> str:
        return self.name or self.mac or self.id


@dataclass
class SwitchingDevice(Device):
    """A device with switch ports: switches and the switch chip inside gateways."""

    LAN_STATION_KEYS: ClassVar[Tuple[Tuple[str, ...], ...]] = (
        ('num_sta',), ('user-num_sta',), ('guest-num_sta',))

    dot1x_portctrl_enabled: Value = _flag()
    flowctrl_enabled: Value = _flag()
    has_fan: Value = _flag()
    has_temperature: Value = _flag()
    jumboframe_enabled: Value = _flag()
    overheating: Value = _flag()
    stp_priority: str = ''
    stp_version: str = ''
    fan_level: Value = _num()
    general_temperature: Value = _num()
    stat_sw: SwitchStats = field(default_factory=SwitchStats)
    lan_stations: Stations = field(default_factory=Stations)
    ports: Tuple[Child, ...] = ()

    @classmethod
    def _read(cls, r: RawReader) -> Dict[str, Any]:
        fields = super()._read(r)
        fields.update(
            dot1x_portctrl_enabled=r.flag('dot1x_portctrl_enabled'),
            flowctrl_enabled=r.flag('flowctrl_enabled'),
            has_fan=r.flag('has_fan'),
            has_temperature=r.flag('has_temperature'),
            jumboframe_enabled=r.flag('jumboframe_enabled'),
            overheating=r.flag('overheating'),
            stp_priority=r.text('stp_priority'),
            stp_version=r.text('stp_version'),
            fan_level=r.number('fan_level'),
            general_temperature=r.number('general_temperature'),
            stat_sw=SwitchStats.from_api_response(r.block('stat').block('sw')),
            lan_stations=Stations.from_api_response(r, cls.LAN_STATION_KEYS),
            ports=_children(r.rows('port_table'), Port.from_api_response),
        )
        return fields


@dataclass
class WirelessDevice(Device):
    """A device with radios: access points and consoles with built-in Wi-Fi."""

    WLAN_STATION_KEYS: ClassVar[Tuple[Tuple[str, ...], ...]] = (
        ('wlan-num_sta', 'num_sta'), ('user-wlan-num_sta', 'user-num_sta'),
        ('guest-wlan-num_sta', 'guest-num_sta'))

    wireless: bool = False
    has_eth1: Value = _flag()
    stat_ap: AccessPointStats = field(default_factory=AccessPointStats)
    wlan_stations: Stations = field(default_factory=Stations)
    radios: Tuple[Child, ...] = ()
    vaps: Tuple[Child, ...] = ()

    @classmethod
    def _read(cls, r: RawReader) -> Dict[str, Any]:
        fields = super()._read(r)
        stat_ap = r.block('stat').block('ap')
        radios = cls._read_radios(r)
        fields.update(
            wireless=bool(radios) or stat_ap.present,
            has_eth1=r.flag('has_eth1'),
            stat_ap=AccessPointStats.from_api_response(stat_ap),
            wlan_stations=Stations.from_api_response(r, cls.WLAN_STATION_KEYS),
            radios=radios,
            vaps=_children(r.rows('vap_table'), VirtualAP.from_api_response),
        )
        return fields

    @staticmethod
    def _read_radios(r: RawReader) -> Tuple[Child, ...]:
        stats: Dict[str, RadioStats] = {}
        for path, row in r.rows('radio_table_stats'):
            if row is None:
                r.errors.append(FieldCoercionError('element is not an object', path))
                continue
            stats[row.text('name')] = RadioStats.from_api_response(row)

        def radio(row: RawReader) -> Radio:
            return Radio.from_api_response(row, stats.get(row.text('name')))

        return _children(r.rows('radio_table'), radio)


@dataclass
class Gateway(SwitchingDevice):
    """Security gateway. Also reports its switch ports and integrated switch stats."""

    TYPES: ClassVar[Tuple[str, ...]] = ('ugw', 'uxg')
    LAN_STATION_KEYS: ClassVar[Tuple[Tuple[str, ...], ...]] = (
        ('lan-num_sta',), ('user-lan-num_sta',), ('guest-lan-num_sta',))

    usg_caps: Value = _num()
    speedtest_status_saved: Value = _flag()
    num_desktop: Value = _num()
    num_handheld: Value = _num()
    num_mobile: Value = _num()
    wan1: WanLink = field(default_factory=WanLink)
    wan2: WanLink = field(default_factory=WanLink)
    speedtest_status: SpeedtestStatus = field(default_factory=SpeedtestStatus)
    stat_gw: GatewayStats = field(default_factory=GatewayStats)
    networks: Tuple[Child, ...] = ()

    @classmethod
    def _read(cls, r: RawReader) -> Dict[str, Any]:
        fields = super()._read(r)
        fields.update(
            usg_caps=r.number('usg_caps'),
            speedtest_status_saved=r.flag('speedtest-status-saved'),
            num_desktop=r.number('num_desktop'),
            num_handheld=r.number('num_handheld'),
            num_mobile=r.number('num_mobile'),
            wan1=WanLink.from_api_response(r.block('wan1')),
            wan2=WanLink.from_api_response(r.block('wan2')),
            speedtest_status=SpeedtestStatus.from_api_response(r.block('speedtest-status')),
            stat_gw=GatewayStats.from_api_response(r.block('stat').block('gw')),
            networks=_children(r.rows('network_table'), Network.from_api_response),
        )
        return fields


@dataclass
class Switch(SwitchingDevice):
    TYPES: ClassVar[Tuple[str, ...]] = ('usw',)


@dataclass
class AccessPoint(WirelessDevice):
    TYPES: ClassVar[Tuple[str, ...]] = ('uap',)

    @classmethod
    def _read(cls, r: RawReader) -> Dict[str, Any]:
        fields = super()._read(r)
        fields['wireless'] = True
        return fields


@dataclass
class DreamMachine(Gateway, WirelessDevice):
    """Dream Machine console: gateway, switch and, on some models, access point."""

    TYPES: ClassVar[Tuple[str, ...]] = ('udm',)
    WLAN_STATION_KEYS: ClassVar[Tuple[Tuple[str, ...], ...]] = (
        ('wlan-num_sta',), ('user-wlan-num_sta',), ('guest-wlan-num_sta',))


DEVICE_TYPES: Dict[str, type] = {
    kind: cls for cls in (Gateway, DreamMachine, Switch, AccessPoint) for kind in cls.TYPES
}


def site_label(site: Any) -> str:
    """Display name for a controller site: ``"Description (name)"``."""
    if isinstance(site, dict):
        name = site.get('name') or ''
        desc = site.get('desc') or ''
        if desc and name and desc != name:
            return f"{desc} ({name})"
        return desc or name
    return str(site) if site else ''


def normalize_device(raw: Any, site: Any = None,
                     path: str = 'device') -> Tuple[Device, List[FieldCoercionError]]:
    """Turn one raw controller device into an entity.

    ``site`` (a site object or name) fills in ``site_name`` when the device
    entry does not carry one.

    Raises:
        DeviceConstructionError: the entry is not an object, has an unknown
            type, or carries no identifier
    """
    if not isinstance(raw, dict):
        raise DeviceConstructionError(f"device entry is {type(raw).__name__}, not an object", path)
    kind = raw.get('type')
    device_class = DEVICE_TYPES.get(kind) if isinstance(kind, str) else None
    if device_class is None:
        raise DeviceConstructionError(f"unsupported device type {kind!r}", path)
    if not raw.get('_id') and not raw.get('mac'):
        raise DeviceConstructionError('device has neither _id nor mac', path)
    if site and not raw.get('site_name'):
        raw = dict(raw, site_name=site_label(site))
    return device_class.from_api_response(raw, path)


@dataclass
class Snapshot:
    """Raw controller state for one poll: devices from every polled site."""
    devices: List[Any] = field(default_factory=list)
    sites: List[Any] = field(default_factory=list)
