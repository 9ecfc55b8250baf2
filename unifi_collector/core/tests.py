"""
Tests for collector configuration and the collection loop.
"""
import argparse
import logging
import unittest
from unittest import mock

from ..config import Settings
from ..errors import ControllerError
from ..main import create_argument_parser, validate_arguments
from ..schema.models import Snapshot
from ..schema.records import Batch
from . import collector as collector_module
from .collector import MetricsCollector
from .config import CollectorConfig
from .logging_config import LoggingConfigurator
from .writer_config import WriterConfig, debug_dir_from_args

LIVE = dict(unifi_url='https://127.0.0.1:8443', unifi_user='influx', unifi_pass='secret')


def switch(idx):
    return {'_id': f'sw{idx}', 'mac': f'00:00:00:00:00:0{idx}', 'type': 'usw', 'name': f'sw{idx}',
            'port_table': [{'port_idx': 1, 'rx_bytes': 10}]}


class TestCollectorConfig(unittest.TestCase):
    """Test cases for CollectorConfig."""

    def test_live_mode_requires_credentials(self):
        with self.assertRaises(ValueError):
            CollectorConfig(unifi_url='https://x', unifi_user='u')
        with self.assertRaises(ValueError):
            CollectorConfig(sites=[], **LIVE)
        CollectorConfig(**LIVE)

    def test_replay_mode_requires_path(self):
        with self.assertRaises(ValueError):
            CollectorConfig(use_json_replay=True)
        config = CollectorConfig(use_json_replay=True, from_json='devices.json')
        self.assertIsNone(config.unifi_pass)

    def test_value_ranges(self):
        for bad in (dict(output='graphite'), dict(interval_time=0), dict(max_errors=-1),
                    dict(workers=0), dict(max_iterations=-2), dict(dump_json='clients')):
            with self.assertRaises(ValueError, msg=str(bad)):
                CollectorConfig(**LIVE, **bad)

    def test_from_settings_with_arguments(self):
        settings = Settings(environ={'UP_UNIFI_PASS': 'secret', 'UP_MAX_ERRORS': '4', 'UP_QUIET_MODE': 'true'})
        args = argparse.Namespace(fromJson=None, output='prometheus', debug=False, log_level=None,
                                  unifiUrl=None, unifiUser='admin', unifiPass=None, sites=['all'],
                                  intervalTime=60.0, workers=None, logfile=None, maxIterations=3,
                                  dumpjson=None)
        config = CollectorConfig.from_settings(settings, args)
        self.assertFalse(config.use_json_replay)
        self.assertEqual(config.unifi_url, 'https://127.0.0.1:8443')
        self.assertEqual(config.unifi_user, 'admin')
        self.assertEqual(config.unifi_pass, 'secret')
        self.assertEqual(config.sites, ['all'])
        self.assertEqual(config.output, 'prometheus')
        self.assertEqual(config.interval_time, 60.0)
        self.assertEqual(config.max_errors, 4)
        self.assertEqual(config.workers, 1)
        self.assertEqual(config.log_level, 'WARNING')
        self.assertEqual(config.max_iterations, 3)

    def test_from_settings_without_arguments(self):
        config = CollectorConfig.from_settings(Settings(environ={'UP_UNIFI_PASS': 'secret'}))
        self.assertEqual(config.sites, ['default'])
        self.assertEqual(config.interval_time, 30.0)
        self.assertEqual(config.log_level, 'INFO')

    def test_to_dict(self):
        config = CollectorConfig(**LIVE)
        data = config.to_dict()
        self.assertEqual(data['unifi_url'], LIVE['unifi_url'])
        self.assertEqual(data['sites'], ['default'])
        self.assertFalse(data['verify_ssl'])


class TestLoggingConfigurator(unittest.TestCase):
    """Test cases for level selection."""

    def test_level_for(self):
        self.assertEqual(LoggingConfigurator.level_for(), 'INFO')
        self.assertEqual(LoggingConfigurator.level_for(debug=True), 'DEBUG')
        self.assertEqual(LoggingConfigurator.level_for(quiet=True), 'WARNING')
        self.assertEqual(LoggingConfigurator.level_for(debug=True, quiet=True), 'DEBUG')
        self.assertEqual(LoggingConfigurator.level_for(debug=True, log_level='error'), 'ERROR')

    def test_unknown_level(self):
        with self.assertRaises(ValueError):
            LoggingConfigurator.setup_logging('CHATTY')


class TestWriterConfig(unittest.TestCase):
    """Test cases for WriterConfig."""

    def test_influxdb_requires_url_and_database(self):
        with self.assertRaises(ValueError):
            WriterConfig(output_format='influxdb', influxdb_url='http://db:8181')
        config = WriterConfig(output_format='influxdb', influxdb_url='http://db:8181', influxdb_database='unifi')
        self.assertIsNone(config.influxdb_token)

    def test_prometheus_port_range(self):
        with self.assertRaises(ValueError):
            WriterConfig(output_format='prometheus', prometheus_port=70000)
        WriterConfig(output_format='prometheus', prometheus_port=9130)

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            WriterConfig(output_format='graphite')

    def test_to_dict_only_includes_selected_outputs(self):
        config = WriterConfig(output_format='prometheus', prometheus_port=9130)
        self.assertEqual(config.to_dict(), {'output_format': 'prometheus', 'controller_name': 'unknown',
                                            'prometheus_port': 9130})

        config = WriterConfig(output_format='both', influxdb_url='http://db:8181', influxdb_database='unifi',
                              influxdb_token='t')
        data = config.to_dict()
        self.assertEqual(data['influxdb_token'], 't')
        self.assertEqual(data['prometheus_port'], 8000)

    def test_from_settings(self):
        settings = Settings(environ={'UP_INFLUX_TOKEN': 'abc'})
        args = argparse.Namespace(output=None, influxdbUrl='http://db:8181', influxdbToken=None,
                                  influxdbDatabase=None, tlsCa=None, prometheus_port=None,
                                  log_level='DEBUG', logfile='/var/log/up/up.log')
        config = WriterConfig.from_settings(settings, args, controller_name='unifi')
        self.assertEqual(config.output_format, 'influxdb')
        self.assertEqual(config.influxdb_url, 'http://db:8181')
        self.assertEqual(config.influxdb_token, 'abc')
        self.assertEqual(config.influxdb_database, 'unifi')
        self.assertEqual(config.debug_output_dir, '/var/log/up')

    def test_debug_dir_from_args(self):
        self.assertIsNone(debug_dir_from_args(None))
        self.assertIsNone(debug_dir_from_args(argparse.Namespace(log_level='INFO', logfile='up.log')))
        self.assertEqual(debug_dir_from_args(argparse.Namespace(log_level='DEBUG', logfile='up.log')), '.')

    def test_debug_setting_enables_debug_files(self):
        settings = Settings(environ={'UP_DEBUG_MODE': 'true'})
        args = argparse.Namespace(output='prometheus', log_level=None, debug=False, logfile='/var/log/up/up.log')
        self.assertEqual(WriterConfig.from_settings(settings, args).debug_output_dir, '/var/log/up')

        args.log_level = 'INFO'
        self.assertIsNone(WriterConfig.from_settings(settings, args).debug_output_dir)


class TestMetricsCollector(unittest.TestCase):
    """Test cases for MetricsCollector."""

    def setUp(self):
        self.datasource = mock.Mock()
        self.datasource.collect_snapshot.return_value = Snapshot(devices=[switch(1), switch(2)])
        self.writer = mock.Mock()
        self.writer.write.return_value = True

    def make(self, **overrides):
        options = dict(LIVE)
        options.update(overrides)
        return MetricsCollector(CollectorConfig(**options), datasource=self.datasource, writer=self.writer)

    def test_successful_cycle_writes_one_batch(self):
        collector = self.make()
        self.assertTrue(collector.run_single_collection())
        self.writer.write.assert_called_once()
        batch, iteration = self.writer.write.call_args[0]
        self.assertIsInstance(batch, Batch)
        self.assertEqual(iteration, 1)
        self.assertEqual(len(batch), 4)
        self.assertEqual(batch.time.microsecond, 0)
        self.assertEqual(collector.last_errors, [])

    def test_datasource_failure(self):
        self.datasource.collect_snapshot.side_effect = ControllerError("controller unreachable")
        collector = self.make()
        self.assertFalse(collector.run_single_collection())
        self.writer.write.assert_not_called()

    def test_empty_snapshot_is_not_written(self):
        self.datasource.collect_snapshot.return_value = Snapshot(devices=[])
        collector = self.make()
        self.assertFalse(collector.run_single_collection())
        self.writer.write.assert_not_called()

    def test_device_errors_do_not_fail_cycle(self):
        self.datasource.collect_snapshot.return_value = Snapshot(devices=[switch(1), 'junk'])
        collector = self.make()
        self.assertTrue(collector.run_single_collection())
        self.assertEqual(len(collector.last_errors), 1)

    def test_writer_failure(self):
        self.writer.write.side_effect = RuntimeError("disk full")
        collector = self.make()
        self.assertFalse(collector.run_single_collection())

    def test_missing_writer_config(self):
        collector = MetricsCollector(CollectorConfig(**LIVE), datasource=self.datasource)
        self.assertFalse(collector.run_single_collection())

    def test_error_budget_counts_consecutive_failures(self):
        collector = self.make(max_errors=2)
        outcomes = [False, False, True, False, False, False, True]
        with mock.patch.object(collector, 'run_single_collection', side_effect=outcomes) as run, \
                mock.patch.object(collector_module.time, 'sleep') as sleep:
            self.assertEqual(collector.run_continuous(), 1)
        self.assertEqual(run.call_count, 6)
        self.assertEqual(sleep.call_count, 5)
        self.assertEqual(collector.failed_collections, 5)
        self.datasource.cleanup.assert_called_once()
        self.writer.close.assert_called_once()

    def test_unlimited_errors_with_max_iterations(self):
        collector = self.make(max_iterations=3, interval_time=5.0)
        with mock.patch.object(collector, 'run_single_collection', return_value=False) as run, \
                mock.patch.object(collector_module.time, 'sleep') as sleep:
            self.assertEqual(collector.run_continuous(), 0)
        self.assertEqual(run.call_count, 3)
        self.assertEqual(sleep.call_count, 2)
        sleep.assert_called_with(5.0)

    def test_replay_stops_when_files_run_out(self):
        self.datasource.advance_batch.side_effect = [True, False]
        config = CollectorConfig(use_json_replay=True, from_json='dumps')
        collector = MetricsCollector(config, datasource=self.datasource, writer=self.writer)
        with mock.patch.object(collector_module.time, 'sleep') as sleep:
            self.assertEqual(collector.run_continuous(), 0)
        self.assertEqual(self.writer.write.call_count, 2)
        sleep.assert_not_called()

    def test_initialize_reports_datasource_failure(self):
        self.datasource.initialize.return_value = False
        self.assertFalse(self.make().initialize())

    def test_statistics(self):
        collector = self.make()
        collector.run_single_collection()
        stats = collector.get_statistics()
        self.assertEqual(stats['collections_completed'], 1)
        self.assertEqual(stats['last_record_count'], 4)
        self.assertEqual(stats['datasource_type'], 'live_api')


class TestArgumentParser(unittest.TestCase):
    """Test cases for command line parsing."""

    def test_interval_duration(self):
        args = create_argument_parser().parse_args(['--intervalTime', '1m', '--sites', 'default', 'branch'])
        self.assertEqual(args.intervalTime, 60.0)
        self.assertEqual(args.sites, ['default', 'branch'])
        self.assertIsNone(validate_arguments(args))

    def test_validation(self):
        args = create_argument_parser().parse_args(['--workers', '0'])
        self.assertEqual(validate_arguments(args), "--workers must be at least 1")

    def test_replay_and_dump_are_exclusive(self):
        parser = create_argument_parser()
        with mock.patch('sys.stderr'), self.assertRaises(SystemExit):
            parser.parse_args(['--fromJson', 'x.json', '--dumpjson', 'devices'])


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
