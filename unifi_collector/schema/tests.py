"""
Tests for the value type, entity model and record types.
"""
import logging
import unittest
from datetime import datetime, timezone

from ..errors import DeviceConstructionError, FieldCoercionError
from .models import (AccessPoint, DreamMachine, Gateway, Malformed, Switch, normalize_device,
                     site_label)
from .records import Batch, Record
from .value import Value, canonical_text, coerce_flag, coerce_number, coerce_text


class TestValue(unittest.TestCase):
    """Test cases for Value and the coercers."""

    def test_number_from_int_and_float(self):
        value, error = coerce_number(42)
        self.assertIsNone(error)
        self.assertEqual(value.as_field(), 42.0)
        self.assertIsInstance(value.as_field(), float)
        self.assertEqual(value.as_tag(), '42')

        value, _ = coerce_number(1.5)
        self.assertEqual(value.as_tag(), '1.5')

    def test_number_from_text_keeps_text_for_tags(self):
        value, error = coerce_number('0012')
        self.assertIsNone(error)
        self.assertEqual(value.as_field(), 12.0)
        self.assertEqual(value.as_tag(), '0012')

    def test_number_absent_is_zero_without_error(self):
        for raw in (None, '', '   '):
            value, error = coerce_number(raw)
            self.assertIsNone(error)
            self.assertEqual(value.as_field(), 0.0)
            self.assertEqual(value.as_tag(), '0')

    def test_number_unreadable_is_zero_with_error(self):
        value, error = coerce_number('n/a', 'device.uptime')
        self.assertEqual(value.as_field(), 0.0)
        self.assertIsInstance(error, FieldCoercionError)
        self.assertEqual(error.path, 'device.uptime')

        _, error = coerce_number({'nested': 1}, 'x')
        self.assertIsInstance(error, FieldCoercionError)

    def test_number_must_be_finite_decimal(self):
        for raw in ('NaN', 'nan', 'inf', '-Infinity', '1e999', '1_000', float('nan'), float('inf'), 10 ** 400):
            value, error = coerce_number(raw, 'device.bytes')
            self.assertEqual(value.as_field(), 0.0, raw)
            self.assertIsInstance(error, FieldCoercionError, raw)
        value, error = coerce_number(' 2.5e3 ')
        self.assertEqual(value.as_field(), 2500.0)
        self.assertIsNone(error)

    def test_number_from_bool(self):
        value, error = coerce_number(True)
        self.assertIsNone(error)
        self.assertEqual(value.as_field(), 1.0)
        self.assertEqual(value.as_tag(), 'true')

    def test_flag_forms(self):
        for raw, expected in ((True, True), (False, False), (1, True), (0, False),
                              ('yes', True), ('TRUE', True), ('off', False), ('', False)):
            value, error = coerce_flag(raw)
            self.assertIsNone(error, raw)
            self.assertIs(value.as_field(), expected)
            self.assertEqual(value.as_tag(), 'true' if expected else 'false')

    def test_flag_unreadable(self):
        value, error = coerce_flag(7, 'device.adopted')
        self.assertIs(value.as_field(), False)
        self.assertEqual(error, FieldCoercionError("expected a flag, got 7", 'device.adopted'))

    def test_text(self):
        self.assertEqual(coerce_text('abc'), ('abc', None))
        self.assertEqual(coerce_text(None), ('', None))
        self.assertEqual(coerce_text(8443), ('8443', None))
        self.assertEqual(coerce_text(False), ('false', None))
        text, error = coerce_text(['a'], 'device.name')
        self.assertEqual(text, '')
        self.assertIsInstance(error, FieldCoercionError)

    def test_canonical_text(self):
        self.assertEqual(canonical_text(3.0), '3')
        self.assertEqual(canonical_text(0.25), '0.25')
        self.assertEqual(canonical_text(True), 'true')

    def test_value_equality(self):
        self.assertEqual(Value(1.0), Value(1.0, '1'))
        self.assertNotEqual(Value(1.0, '01'), Value(1.0))


class TestEntityModel(unittest.TestCase):
    """Test cases for device normalization."""

    def test_defaults_are_zero(self):
        switch, errors = normalize_device({'type': 'usw', '_id': 'sw'})
        self.assertIsInstance(switch, Switch)
        self.assertEqual(errors, [])
        self.assertEqual(switch.name, '')
        self.assertEqual(switch.stat_sw.rx_bytes.as_field(), 0.0)
        self.assertEqual(switch.sys_stats.loadavg_1.as_field(), 0.0)
        self.assertEqual(switch.config_network.ip, '')
        self.assertIs(switch.adopted.as_field(), False)
        self.assertEqual(switch.ports, ())

    def test_variant_dispatch(self):
        cases = {'ugw': Gateway, 'uxg': Gateway, 'udm': DreamMachine, 'usw': Switch, 'uap': AccessPoint}
        for kind, cls in cases.items():
            entity, _ = normalize_device({'type': kind, 'mac': '00:11'})
            self.assertIs(type(entity), cls)

    def test_rejects_structurally_invalid_devices(self):
        for raw in ('not a device', {'type': 'uph', '_id': 'x'}, {'_id': 'x'}, {'type': 'usw'}):
            with self.assertRaises(DeviceConstructionError):
                normalize_device(raw, path='devices[0]')

    def test_coercion_errors_are_collected(self):
        gateway, errors = normalize_device({'type': 'ugw', '_id': 'gw', 'uptime': 'soon', 'state': 1})
        self.assertEqual(gateway.uptime.as_field(), 0.0)
        self.assertEqual(gateway.state.as_field(), 1.0)
        self.assertEqual(errors, [FieldCoercionError("expected a number, got 'soon'", 'device.uptime')])

    def test_bad_sub_block_reported_once(self):
        dream, errors = normalize_device({'type': 'udm', '_id': 'udm', 'stat': 'broken'})
        self.assertEqual(errors, [FieldCoercionError('expected an object, got str', 'device.stat')])
        self.assertEqual(dream.stat_gw.wan_rx_bytes.as_field(), 0.0)

    def test_gateway_wan_and_lan_stations(self):
        gateway, _ = normalize_device({
            'type': 'ugw', '_id': 'gw',
            'num_sta': 10, 'lan-num_sta': 7, 'user-lan-num_sta': 6,
            'wan1': {'up': True, 'rx_bytes': 100, 'ip': '203.0.113.5'},
        })
        self.assertIs(gateway.wan1.up.as_field(), True)
        self.assertEqual(gateway.wan1.rx_bytes.as_field(), 100.0)
        self.assertEqual(gateway.wan1.ip, '203.0.113.5')
        self.assertIs(gateway.wan2.up.as_field(), False)
        self.assertEqual(gateway.stations.total.as_field(), 10.0)
        self.assertEqual(gateway.lan_stations.total.as_field(), 7.0)
        self.assertEqual(gateway.lan_stations.user.as_field(), 6.0)

    def test_wireless_station_fallbacks(self):
        ap, _ = normalize_device({'type': 'uap', '_id': 'ap', 'num_sta': 3})
        self.assertEqual(ap.wlan_stations.total.as_field(), 3.0)

        dream, _ = normalize_device({'type': 'udm', '_id': 'udm', 'num_sta': 9, 'wlan-num_sta': 5})
        self.assertEqual(dream.wlan_stations.total.as_field(), 5.0)
        self.assertEqual(dream.stations.total.as_field(), 9.0)

    def test_radio_stats_merged_by_name(self):
        ap, errors = normalize_device({
            'type': 'uap', '_id': 'ap',
            'radio_table': [{'name': 'wifi0', 'radio': 'ng', 'channel': 6},
                            {'name': 'wifi1', 'radio': 'na', 'channel': '36'}],
            'radio_table_stats': [{'name': 'wifi0', 'state': 'RUN', 'num_sta': 4}],
        })
        self.assertEqual(errors, [])
        wifi0, wifi1 = ap.radios
        self.assertEqual(wifi0.stats.state, 'RUN')
        self.assertEqual(wifi0.stats.num_sta.as_field(), 4.0)
        self.assertEqual(wifi1.channel.as_tag(), '36')
        self.assertEqual(wifi1.stats.num_sta.as_field(), 0.0)

    def test_wireless_flag(self):
        ap, _ = normalize_device({'type': 'uap', '_id': 'ap'})
        self.assertTrue(ap.wireless)

        dream, _ = normalize_device({'type': 'udm', '_id': 'udm'})
        self.assertFalse(dream.wireless)

        dream, _ = normalize_device({'type': 'udm', '_id': 'udm', 'stat': {'ap': {'rx_bytes': 1}}})
        self.assertTrue(dream.wireless)

    def test_malformed_children_keep_their_position(self):
        switch, _ = normalize_device({'type': 'usw', '_id': 'sw',
                                      'port_table': [{'port_idx': 1}, 'junk', {'port_idx': 3}]},
                                     path='devices[2]')
        self.assertEqual(len(switch.ports), 3)
        self.assertIsInstance(switch.ports[1], Malformed)
        self.assertEqual(switch.ports[1].path, 'devices[2].port_table[1]')
        self.assertEqual(switch.ports[2].port_idx.as_field(), 3.0)

    def test_site_name_from_site(self):
        switch, _ = normalize_device({'type': 'usw', '_id': 'sw'}, site={'name': 'default', 'desc': 'Home'})
        self.assertEqual(switch.site_name, 'Home (default)')

        switch, _ = normalize_device({'type': 'usw', '_id': 'sw', 'site_name': 'Kept'}, site='other')
        self.assertEqual(switch.site_name, 'Kept')

    def test_site_label(self):
        self.assertEqual(site_label({'name': 'default', 'desc': 'Default'}), 'Default (default)')
        self.assertEqual(site_label({'name': 'default', 'desc': 'default'}), 'default')
        self.assertEqual(site_label('branch'), 'branch')
        self.assertEqual(site_label(None), '')


class TestRecords(unittest.TestCase):
    """Test cases for Record and Batch."""

    def setUp(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_record_rejects_key_overlap(self):
        with self.assertRaises(ValueError):
            Record('switch', {'ip': '10.0.0.1'}, {'ip': 1.0}, self.now)

    def test_record_rejects_non_text_tag(self):
        with self.assertRaises(ValueError):
            Record('switch', {'port_idx': 1}, {}, self.now)

    def test_batch_grouping(self):
        records = (Record('switch', {'id': 'a'}, {'uptime': 1.0}, self.now),
                   Record('switch_ports', {'device_id': 'a'}, {'speed': 1000.0}, self.now),
                   Record('switch', {'id': 'b'}, {'uptime': 2.0}, self.now))
        batch = Batch(records, self.now)
        self.assertEqual(len(batch), 3)
        self.assertEqual(list(batch), list(records))
        grouped = batch.by_measurement()
        self.assertEqual(list(grouped), ['switch', 'switch_ports'])
        self.assertEqual([r.tags['id'] for r in grouped['switch']], ['a', 'b'])

    def test_empty_batch(self):
        batch = Batch.empty(self.now)
        self.assertEqual(len(batch), 0)
        self.assertEqual(batch.time, self.now)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
