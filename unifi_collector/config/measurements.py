"""
Measurement catalogue.

The measurement names are a stable contract with dashboards and queries built
on the metrics store.
"""

from enum import Enum


class Measurement(Enum):
    """Measurements written by the collector"""
    GATEWAY = "gateway"
    GATEWAY_NETWORKS = "gateway_networks"
    SWITCH = "switch"
    SWITCH_PORTS = "switch_ports"
    ACCESS_POINT = "access_point"
    ACCESS_POINT_RADIOS = "access_point_radios"
    ACCESS_POINT_VAPS = "access_point_vaps"

