"""
Tests for the record builders and the batch assembler.
"""
import logging
import unittest
from datetime import datetime, timezone

from ..errors import DeviceConstructionError, FieldCoercionError, RecordConstructionError, SnapshotError
from ..schema.models import Snapshot, normalize_device
from ..schema.records import Batch
from .access_point import ACCESS_POINT, ACCESS_POINT_RADIOS, ACCESS_POINT_VAPS
from .gateway import GATEWAY, GATEWAY_NETWORKS
from .processor import BatchAssembler, assemble, build
from .switch import SWITCH, SWITCH_PORTS

SCHEMAS = {schema.measurement: schema for schema in (
    GATEWAY, GATEWAY_NETWORKS, SWITCH, SWITCH_PORTS, ACCESS_POINT, ACCESS_POINT_RADIOS, ACCESS_POINT_VAPS)}

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def gateway_device(**extra):
    raw = {
        '_id': 'gw1', 'mac': 'f0:9f:c2:00:00:01', 'type': 'ugw', 'name': 'usg', 'site_id': 's1',
        'model': 'UGW3', 'version': '4.4.57', 'ip': '192.168.1.1', 'uptime': 86400,
        'system-stats': {'cpu': '12.5', 'mem': '40', 'uptime': '86400'},
        'wan1': {'up': True, 'rx_bytes': 1000, 'ip': '203.0.113.5', 'name': 'wan'},
        'stat': {'gw': {'oid': 'gw1', 'wan-rx_bytes': 5000}},
        'network_table': [
            {'name': 'LAN', 'purpose': 'corporate', 'up': 'true', 'num_sta': 12, 'dhcpd_enabled': True},
        ],
        'port_table': [
            {'name': 'wan', 'port_idx': 1, 'up': True, 'speed': 1000},
            {'name': 'lan', 'port_idx': 2, 'up': True, 'speed': 1000},
        ],
    }
    raw.update(extra)
    return raw


def switch_device(**extra):
    raw = {
        '_id': 'sw1', 'mac': 'f0:9f:c2:00:00:02', 'type': 'usw', 'name': 'core', 'site_id': 's1',
        'num_sta': 5, 'stat': {'sw': {'rx_bytes': 300, 'tx_bytes': 200}},
        'port_table': [{'name': f'Port {i}', 'port_idx': i, 'rx_bytes': i * 10} for i in (1, 2, 3)],
    }
    raw.update(extra)
    return raw


def access_point_device(**extra):
    raw = {
        '_id': 'ap1', 'mac': 'f0:9f:c2:00:00:03', 'type': 'uap', 'name': 'lobby', 'site_id': 's1',
        'num_sta': 4,
        'stat': {'ap': {'o': 'uap', 'oid': 'ap1', 'rx_packets': 10, 'user-rx_bytes': 99}},
        'radio_table': [{'name': 'wifi0', 'radio': 'ng', 'channel': 6, 'ht': '20'}],
        'radio_table_stats': [{'name': 'wifi0', 'state': 'RUN', 'num_sta': 4}],
        'vap_table': [{'_id': 'v1', 'essid': 'corp', 'radio': 'ng', 'channel': 6, 'num_sta': 4}],
    }
    raw.update(extra)
    return raw


def build_raw(raw):
    entity, errors = normalize_device(raw)
    records, build_errors = build(entity, NOW)
    return records, errors + build_errors


def by_measurement(records):
    grouped = {}
    for record in records:
        grouped.setdefault(record.measurement, []).append(record)
    return grouped


class TestRecordBuilder(unittest.TestCase):
    """Test cases for per-device record building."""

    def test_gateway_example(self):
        records, errors = build_raw({'_id': 'abc', 'mac': 'aa:bb', 'type': 'ugw',
                                     'wan1': {'up': True, 'rx_bytes': 100}})
        self.assertEqual(errors, [])
        grouped = by_measurement(records)
        self.assertEqual(sorted(grouped), ['gateway', 'switch'])

        gateway = grouped['gateway'][0]
        self.assertEqual(gateway.tags['id'], 'abc')
        self.assertEqual(gateway.tags['mac'], 'aa:bb')
        self.assertEqual(gateway.tags['wan1_up'], 'true')
        self.assertEqual(gateway.tags['wan2_up'], 'false')
        self.assertEqual(gateway.fields['wan1_rx_bytes'], 100.0)
        self.assertEqual(gateway.time, NOW)

        switch = grouped['switch'][0]
        self.assertEqual(switch.tags['id'], 'abc')
        for key, value in switch.fields.items():
            if key.startswith('stat_'):
                self.assertEqual(value, 0.0, key)

    def test_gateway_children(self):
        records, errors = build_raw(gateway_device())
        self.assertEqual(errors, [])
        grouped = by_measurement(records)
        self.assertEqual(len(grouped['gateway']), 1)
        self.assertEqual(len(grouped['gateway_networks']), 1)
        self.assertEqual(len(grouped['switch']), 1)
        self.assertEqual(len(grouped['switch_ports']), 2)
        self.assertNotIn('access_point', grouped)

        gateway = grouped['gateway'][0]
        self.assertEqual(gateway.fields['cpu'], 12.5)
        self.assertEqual(gateway.fields['wan-rx_bytes'], 5000.0)
        self.assertEqual(gateway.fields['wan1_ip'], '203.0.113.5')
        self.assertEqual(gateway.tags['device_oid'], 'gw1')

        network = grouped['gateway_networks'][0]
        self.assertEqual(network.tags['up'], 'true')
        self.assertEqual(network.tags['dhcpd_enabled'], 'true')
        self.assertEqual(network.tags['device_name'], 'usg')
        self.assertEqual(network.tags['site_id'], 's1')
        self.assertEqual(network.fields['num_sta'], 12.0)

    def test_switch_cardinality_and_ports(self):
        records, errors = build_raw(switch_device())
        self.assertEqual(errors, [])
        grouped = by_measurement(records)
        self.assertEqual(len(grouped['switch']), 1)
        ports = grouped['switch_ports']
        self.assertEqual(len(ports), 3)
        self.assertEqual([p.tags['port_id'] for p in ports], ['core Port 1', 'core Port 2', 'core Port 3'])
        self.assertEqual(ports[2].fields['rx_bytes'], 30.0)
        self.assertEqual(grouped['switch'][0].fields['stat_rx_bytes'], 300.0)
        self.assertEqual(grouped['switch'][0].fields['num_sta'], 5.0)
        self.assertEqual(grouped['switch'][0].fields['fan_level'], 0.0)

    def test_partial_child_failure(self):
        raw = switch_device(port_table=[{'port_idx': 1}, 'junk', {'port_idx': 3}])
        records, errors = build_raw(raw)
        ports = by_measurement(records)['switch_ports']
        self.assertEqual([p.tags['port_idx'] for p in ports], ['1', '3'])
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], RecordConstructionError)
        self.assertEqual(errors[0].path, 'device.port_table[1]')

    def test_access_point(self):
        records, errors = build_raw(access_point_device())
        self.assertEqual(errors, [])
        grouped = by_measurement(records)
        self.assertEqual(sorted(grouped), ['access_point', 'access_point_radios', 'access_point_vaps'])

        ap = grouped['access_point'][0]
        self.assertEqual(ap.tags['device_type'], 'uap')
        self.assertEqual(ap.fields['stat_rx_packets'], 10.0)
        self.assertEqual(ap.fields['stat_user-rx_bytes'], 99.0)
        self.assertEqual(ap.fields['num_sta'], 4.0)

        radio = grouped['access_point_radios'][0]
        self.assertEqual(radio.tags['channel'], '6')
        self.assertEqual(radio.tags['ht'], '20')
        self.assertEqual(radio.tags['state'], 'RUN')
        self.assertEqual(radio.fields['num_sta'], 4.0)

        vap = grouped['access_point_vaps'][0]
        self.assertEqual(vap.tags['vap_id'], 'v1')
        self.assertEqual(vap.tags['device_id'], 'ap1')

    def test_dream_machine_wireless(self):
        wired = {'_id': 'udm1', 'mac': 'aa:cc', 'type': 'udm'}
        records, _ = build_raw(wired)
        self.assertEqual(sorted(by_measurement(records)), ['gateway', 'switch'])

        wireless = dict(wired, radio_table=[{'name': 'wifi0', 'radio': 'na', 'channel': 36}],
                        **{'wlan-num_sta': 3})
        records, _ = build_raw(wireless)
        grouped = by_measurement(records)
        self.assertEqual(sorted(grouped), ['access_point', 'access_point_radios', 'gateway', 'switch'])
        self.assertEqual(grouped['access_point'][0].fields['num_sta'], 3.0)

    def test_key_sets_fixed_per_measurement(self):
        samples = [
            gateway_device(),
            {'_id': 'bare', 'type': 'ugw'},
            {'_id': 'uxg', 'type': 'uxg', 'wan2': {'up': 'false'}},
            switch_device(),
            {'_id': 'sw-bare', 'type': 'usw', 'port_table': [{}]},
            access_point_device(),
            {'_id': 'ap-bare', 'type': 'uap', 'radio_table': [{}], 'vap_table': [{}]},
            {'_id': 'udm', 'type': 'udm', 'radio_table': [{'name': 'wifi0'}], 'vap_table': [{'id': 'x'}],
             'network_table': [{}], 'port_table': [{'port_idx': '1'}]},
        ]
        seen = set()
        for raw in samples:
            records, _ = build_raw(raw)
            for record in records:
                schema = SCHEMAS[record.measurement]
                seen.add(record.measurement)
                self.assertEqual(set(record.tags), schema.tag_keys, record.measurement)
                self.assertEqual(set(record.fields), schema.field_keys, record.measurement)
                self.assertFalse(set(record.tags) & set(record.fields))
                for value in record.tags.values():
                    self.assertIsInstance(value, str)
                for value in record.fields.values():
                    self.assertIsInstance(value, (float, bool, str))
                    if not isinstance(value, (bool, str)):
                        self.assertIsInstance(value, float)
        self.assertEqual(seen, set(SCHEMAS))

    def test_coercion_error_does_not_drop_device(self):
        records, errors = build_raw(switch_device(uptime='later'))
        switch = by_measurement(records)['switch'][0]
        self.assertEqual(switch.fields['uptime'], 0.0)
        self.assertEqual(errors, [FieldCoercionError("expected a number, got 'later'", 'device.uptime')])

    def test_non_finite_numbers_are_reported(self):
        records, errors = build_raw(switch_device(uptime='NaN', bytes='1_000'))
        switch = by_measurement(records)['switch'][0]
        self.assertEqual(switch.fields['uptime'], 0.0)
        self.assertEqual(switch.fields['bytes'], 0.0)
        self.assertEqual(sorted(e.path for e in errors), ['device.bytes', 'device.uptime'])
        self.assertEqual(assemble(Snapshot(devices=[switch_device(uptime='inf')]), NOW)[0],
                         assemble(Snapshot(devices=[switch_device(uptime='inf')]), NOW)[0])

    def test_unknown_entity(self):
        records, errors = build(object(), NOW)
        self.assertEqual(records, [])
        self.assertIsInstance(errors[0], RecordConstructionError)


class TestBatchAssembler(unittest.TestCase):
    """Test cases for snapshot assembly."""

    def setUp(self):
        self.snapshot = Snapshot(devices=[gateway_device(), switch_device(), access_point_device()])

    def test_assemble_in_snapshot_order(self):
        batch, errors = assemble(self.snapshot, NOW)
        self.assertEqual(errors, [])
        self.assertIsInstance(batch, Batch)
        ids = []
        for record in batch:
            device_id = record.tags.get('id') or record.tags.get('device_id')
            if not ids or ids[-1] != device_id:
                ids.append(device_id)
        self.assertEqual(ids, ['gw1', 'sw1', 'ap1'])
        self.assertTrue(all(record.time == NOW for record in batch))
        self.assertEqual(batch.time, NOW)

    def test_assemble_is_idempotent(self):
        first, first_errors = assemble(self.snapshot, NOW)
        second, second_errors = assemble(self.snapshot, NOW)
        self.assertEqual(first, second)
        self.assertEqual(first_errors, second_errors)

    def test_workers_preserve_order(self):
        serial, _ = BatchAssembler(1).assemble(self.snapshot, NOW)
        parallel, _ = BatchAssembler(4).assemble(self.snapshot, NOW)
        self.assertEqual(serial, parallel)

    def test_invalid_worker_count(self):
        with self.assertRaises(ValueError):
            BatchAssembler(0)

    def test_bad_device_is_skipped(self):
        snapshot = Snapshot(devices=[gateway_device(), {'type': 'uph', '_id': 'phone'}, 'junk',
                                     switch_device()])
        batch, errors = assemble(snapshot, NOW)
        self.assertEqual([type(e) for e in errors], [DeviceConstructionError, DeviceConstructionError])
        self.assertEqual([e.path for e in errors], ['devices[1]', 'devices[2]'])
        measurements = set(batch.by_measurement())
        self.assertIn('gateway', measurements)
        self.assertIn('switch', measurements)

    def test_site_name_from_snapshot_sites(self):
        sites = [{'_id': 's1', 'name': 'default', 'desc': 'HQ'}, 'junk']
        snapshot = Snapshot(devices=[switch_device(), switch_device(_id='sw2', site_name='Kept'),
                                     switch_device(_id='sw3', site_id='elsewhere')], sites=sites)
        batch, errors = assemble(snapshot, NOW)
        self.assertEqual(errors, [])
        names = [record.tags['site_name'] for record in batch.by_measurement()['switch']]
        self.assertEqual(names, ['HQ (default)', 'Kept', ''])

    def test_snapshot_errors(self):
        for snapshot in (None, Snapshot(devices=[]), Snapshot(devices={'not': 'a list'})):
            batch, errors = assemble(snapshot, NOW)
            self.assertEqual(len(batch), 0)
            self.assertEqual(len(errors), 1)
            self.assertIsInstance(errors[0], SnapshotError)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
