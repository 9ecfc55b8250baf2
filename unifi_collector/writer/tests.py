"""
Tests for the InfluxDB, Prometheus and composite writers.
"""
import logging
import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest import mock

from influxdb_client_3.write_client.client.write_api import WriteType

from ..core import collector as collector_module
from ..core.collector import MetricsCollector
from ..core.config import CollectorConfig
from ..core.writer_config import WriterConfig
from ..schema.models import Snapshot
from ..schema.records import Batch, Record
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter, parse_database_list, record_to_line_protocol
from .multi_writer import MultiWriter
from .prometheus_writer import PrometheusWriter, sanitize_name

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def port_record(name='sw 1', idx='1', rx=1500.0):
    return Record('switch_ports',
                  {'device_name': name, 'port_idx': idx, 'up': 'true'},
                  {'rx_bytes': rx, 'rx_bytes-r': 12.5, 'poe_good': True, 'media': 'GE'},
                  NOW)


def sample_batch():
    return Batch((
        Record('switch', {'id': 'sw1', 'name': 'sw 1', 'serial': ''}, {'uptime': 3600.0, 'version': '6.5'}, NOW),
        port_record(idx='1'),
        port_record(idx='2', rx=10.0),
    ), NOW)


class TestLineProtocol(unittest.TestCase):
    """Test cases for record_to_line_protocol."""

    def test_format(self):
        record = Record('switch', {'name': 'core sw', 'serial': '', 'model': 'US8'},
                        {'uptime': 5.0, 'up': True, 'version': '4.0 "beta"'}, NOW)
        self.assertEqual(record_to_line_protocol(record),
                         'switch,model=US8,name=core\\ sw up=true,uptime=5.0,version="4.0 \\"beta\\"" '
                         '1714564800000000000')

    def test_measurement_name_escaping(self):
        record = Record('a=b c', {'k=1': 'v,2'}, {'f': 1.0}, NOW)
        self.assertEqual(record_to_line_protocol(record), 'a=b\\ c,k\\=1=v\\,2 f=1.0 1714564800000000000')

    def test_record_without_fields(self):
        self.assertEqual(record_to_line_protocol(Record('switch', {'id': 'x'}, {}, NOW)), '')


class TestInfluxDBWriter(unittest.TestCase):
    """Test cases for InfluxDBWriter."""

    def setUp(self):
        client_patcher = mock.patch('unifi_collector.writer.influxdb_writer.InfluxDBClient3')
        get_patcher = mock.patch('unifi_collector.writer.influxdb_writer.requests.get')
        post_patcher = mock.patch('unifi_collector.writer.influxdb_writer.requests.post')
        self.client_cls = client_patcher.start()
        self.get = get_patcher.start()
        self.post = post_patcher.start()
        for patcher in (client_patcher, get_patcher, post_patcher):
            self.addCleanup(patcher.stop)
        self.get.return_value = mock.Mock(status_code=200)
        self.get.return_value.json.return_value = [{'iox::database': 'unifi'}]
        self.config = {'influxdb_url': 'http://db:8181', 'influxdb_database': 'unifi'}

    def test_requires_url_and_database(self):
        with self.assertRaises(ValueError):
            InfluxDBWriter({'influxdb_url': 'http://db:8181'})

    def test_client_options(self):
        InfluxDBWriter(dict(self.config, influxdb_token='secret'))
        kwargs = self.client_cls.call_args.kwargs
        self.assertEqual(kwargs['host'], 'http://db:8181')
        self.assertEqual(kwargs['database'], 'unifi')
        self.assertEqual(kwargs['token'], 'secret')
        headers = self.get.call_args.kwargs['headers']
        self.assertEqual(headers['Authorization'], 'Bearer secret')
        self.post.assert_not_called()

    def test_writes_are_synchronous(self):
        InfluxDBWriter(self.config)
        options = self.client_cls.call_args.kwargs['write_client_options']['write_options']
        self.assertEqual(options.write_type, WriteType.synchronous)

    def test_database_created_when_missing(self):
        self.get.return_value.json.return_value = ['other']
        self.post.return_value = mock.Mock(status_code=201)
        InfluxDBWriter(self.config)
        self.post.assert_called_once()
        self.assertEqual(self.post.call_args.kwargs['json'], {'db': 'unifi'})
        self.assertNotIn('Authorization', self.post.call_args.kwargs['headers'])

    def test_batch_is_one_write(self):
        writer = InfluxDBWriter(self.config)
        self.assertTrue(writer.write(sample_batch()))
        client = self.client_cls.return_value
        client.write.assert_called_once()
        points = client.write.call_args.kwargs['record']
        self.assertEqual(len(points), 3)

    def test_empty_batch(self):
        writer = InfluxDBWriter(self.config)
        self.assertTrue(writer.write(Batch.empty(NOW)))
        self.client_cls.return_value.write.assert_not_called()

    def test_write_failure(self):
        writer = InfluxDBWriter(self.config)
        self.client_cls.return_value.write.side_effect = RuntimeError("connection refused")
        self.assertFalse(writer.write(sample_batch()))
        stats = writer.get_batch_stats()
        self.assertEqual(stats['failures'], 1)
        self.assertEqual(stats['last_error'], 'connection refused')
        self.assertEqual(stats['batches_written'], 0)

        self.client_cls.return_value.write.side_effect = None
        self.assertTrue(writer.write(sample_batch()))
        self.assertEqual(writer.get_batch_stats()['points_written'], 3)

    def test_unreachable_store_exhausts_error_budget(self):
        self.client_cls.return_value.write.side_effect = ConnectionRefusedError("connection refused")
        datasource = mock.Mock()
        datasource.collect_snapshot.return_value = Snapshot(devices=[
            {'_id': 'sw1', 'type': 'usw', 'name': 'core', 'port_table': [{'port_idx': 1}]}])
        config = CollectorConfig(unifi_url='https://127.0.0.1:8443', unifi_user='influx',
                                 unifi_pass='secret', max_errors=1)
        collector = MetricsCollector(config, datasource=datasource, writer=InfluxDBWriter(self.config))
        self.assertFalse(collector.run_single_collection())
        with mock.patch.object(collector_module.time, 'sleep'):
            self.assertEqual(collector.run_continuous(), 1)
        self.assertEqual(collector.failed_collections, 2)

    def test_debug_line_protocol_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            writer = InfluxDBWriter(dict(self.config, json_output_dir=tmp))
            writer.write(sample_batch(), loop_iteration=1)
            with open(os.path.join(tmp, 'iteration_1_influxdb_line_protocol_final.txt'), encoding='utf-8') as f:
                lines = f.read().splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith('switch,id=sw1,name=sw\\ 1 '))

    def test_parse_database_list(self):
        self.assertEqual(parse_database_list([{'iox::database': 'unifi'}, {'iox::database': '_internal'}]),
                         ['unifi', '_internal'])
        self.assertEqual(parse_database_list(['unifi']), ['unifi'])
        self.assertEqual(parse_database_list({'databases': ['unifi']}), ['unifi'])
        self.assertEqual(parse_database_list('unexpected'), [])

    def test_close(self):
        writer = InfluxDBWriter(self.config)
        writer.close(timeout_seconds=5)
        self.client_cls.return_value.close.assert_called_once()
        self.assertIsNone(writer.client)


class TestPrometheusWriter(unittest.TestCase):
    """Test cases for PrometheusWriter."""

    def setUp(self):
        patcher = mock.patch('unifi_collector.writer.prometheus_writer.start_http_server')
        self.start_http_server = patcher.start()
        self.addCleanup(patcher.stop)
        self.writer = PrometheusWriter({'prometheus_port': 9130})

    def sample(self, name, labels):
        return self.writer.prometheus_registry.get_sample_value(name, labels)

    def test_numeric_fields_become_gauges(self):
        self.assertTrue(self.writer.write(sample_batch()))
        self.start_http_server.assert_called_once_with(9130, registry=self.writer.prometheus_registry)
        labels = {'device_name': 'sw_1', 'port_idx': '1', 'up': 'true'}
        self.assertEqual(self.sample('unifi_switch_ports_rx_bytes', labels), 1500.0)
        self.assertEqual(self.sample('unifi_switch_ports_rx_bytes_r', labels), 12.5)
        self.assertEqual(self.sample('unifi_switch_ports_poe_good', labels), 1.0)
        self.assertEqual(self.sample('unifi_switch_ports_rx_bytes', dict(labels, port_idx='2')), 10.0)

    def test_string_fields_are_skipped(self):
        self.writer.write(sample_batch())
        names = self.writer.metric_names()
        self.assertIn('unifi_switch_uptime', names)
        self.assertNotIn('unifi_switch_version', names)
        self.assertNotIn('unifi_switch_ports_media', names)

    def test_empty_label_values(self):
        self.writer.write(sample_batch())
        value = self.sample('unifi_switch_uptime', {'id': 'sw1', 'name': 'sw_1', 'serial': 'unknown'})
        self.assertEqual(value, 3600.0)

    def test_gauges_updated_across_cycles(self):
        self.writer.write(Batch((port_record(rx=1.0),), NOW))
        self.writer.write(Batch((port_record(rx=2.0),), NOW))
        labels = {'device_name': 'sw_1', 'port_idx': '1', 'up': 'true'}
        self.assertEqual(self.sample('unifi_switch_ports_rx_bytes', labels), 2.0)
        self.start_http_server.assert_called_once()

    def test_server_failure(self):
        self.start_http_server.side_effect = OSError("address in use")
        self.assertFalse(self.writer.write(sample_batch()))

    def test_sanitize_name(self):
        self.assertEqual(sanitize_name('rx_bytes-r'), 'rx_bytes_r')
        self.assertEqual(sanitize_name('speedtest-status_xput_upload'), 'speedtest_status_xput_upload')
        self.assertEqual(sanitize_name('--'), 'unknown')
        self.assertEqual(sanitize_name('2g'), '_2g')


class TestMultiWriter(unittest.TestCase):
    """Test cases for MultiWriter."""

    def test_one_failing_writer(self):
        good = mock.Mock()
        good.write.return_value = True
        bad = mock.Mock()
        bad.write.side_effect = RuntimeError("boom")
        writer = MultiWriter([bad, good])
        batch = sample_batch()
        self.assertFalse(writer.write(batch, 2))
        good.write.assert_called_once_with(batch, 2)
        self.assertEqual([ok for _, ok in writer.last_results], [False, True])

    def test_all_succeed(self):
        writers = [mock.Mock(), mock.Mock()]
        for w in writers:
            w.write.return_value = True
        self.assertTrue(MultiWriter(writers).write(sample_batch()))

    def test_close_continues_after_error(self):
        first, second = mock.Mock(), mock.Mock()
        first.close.side_effect = RuntimeError("stuck")
        MultiWriter([first, second]).close(timeout_seconds=1)
        second.close.assert_called_once_with(timeout_seconds=1, force_exit_on_timeout=False)


class TestWriterFactory(unittest.TestCase):
    """Test cases for WriterFactory."""

    def test_prometheus(self):
        writer = WriterFactory.create_writer_from_config(WriterConfig(output_format='prometheus',
                                                                      prometheus_port=9130))
        self.assertIsInstance(writer, PrometheusWriter)
        self.assertEqual(writer.port, 9130)
        self.assertFalse(writer.enable_debug_output)

    @mock.patch('unifi_collector.writer.influxdb_writer.requests.get')
    @mock.patch('unifi_collector.writer.influxdb_writer.InfluxDBClient3')
    def test_both(self, client_cls, get):
        get.return_value = mock.Mock(status_code=200)
        get.return_value.json.return_value = {'databases': ['unifi']}
        config = WriterConfig(output_format='both', influxdb_url='http://db:8181', influxdb_database='unifi')
        writer = WriterFactory.create_writer_from_config(config)
        self.assertIsInstance(writer, MultiWriter)
        self.assertEqual([type(w) for w in writer.writers], [InfluxDBWriter, PrometheusWriter])
        self.assertEqual(str(writer), 'MultiWriter(InfluxDBWriter, PrometheusWriter)')

    def test_debug_dir_must_exist(self):
        config = WriterConfig(output_format='prometheus', debug_output_dir='/nonexistent/unifi-debug')
        self.assertIsNone(WriterFactory._get_debug_output_dir(config))
        with tempfile.TemporaryDirectory() as tmp:
            config = WriterConfig(output_format='prometheus', debug_output_dir=tmp)
            self.assertEqual(WriterFactory._get_debug_output_dir(config), tmp)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
