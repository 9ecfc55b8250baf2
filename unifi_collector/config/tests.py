"""
Tests for settings loading and the static catalogues.
"""
import json
import logging
import os
import tempfile
import unittest

from ..errors import ConfigError
from . import Settings, parse_bool, parse_duration, parse_list
from .api_endpoints import endpoint
from .measurements import Measurement


class TestSettings(unittest.TestCase):
    """Test cases for Settings."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        return path

    def test_defaults(self):
        settings = Settings(environ={})
        self.assertEqual(settings.max_errors, 0)
        self.assertEqual(settings.interval, 30.0)
        self.assertFalse(settings.debug)
        self.assertFalse(settings.verify_ssl)
        self.assertEqual(settings.influx_url, 'http://127.0.0.1:8181')
        self.assertEqual(settings.influx_db, 'unifi')
        self.assertEqual(settings.unifi_user, 'influx')
        self.assertEqual(settings.unifi_url, 'https://127.0.0.1:8443')
        self.assertEqual(settings.sites, ['default'])
        self.assertEqual(settings.output, 'influxdb')
        self.assertEqual(settings.workers, 1)

    def test_environment_overrides(self):
        settings = Settings(environ={
            'UP_MAX_ERRORS': '5',
            'UP_POLLING_INTERVAL': '1m',
            'UP_DEBUG_MODE': 'true',
            'UP_VERIFY_SSL': 'yes',
            'UP_UNIFI_URL': 'https://unifi.example.com:8443',
            'UP_POLL_SITES': 'default, branch',
            'UP_INFLUX_DB': '',
        })
        self.assertEqual(settings.max_errors, 5)
        self.assertEqual(settings.interval, 60.0)
        self.assertTrue(settings.debug)
        self.assertTrue(settings.verify_ssl)
        self.assertEqual(settings.unifi_url, 'https://unifi.example.com:8443')
        self.assertEqual(settings.sites, ['default', 'branch'])
        self.assertEqual(settings.influx_db, 'unifi')

    def test_bad_environment_value_names_variable(self):
        with self.assertRaises(ConfigError) as ctx:
            Settings(environ={'UP_MAX_ERRORS': 'lots'})
        self.assertIn('UP_MAX_ERRORS', str(ctx.exception))

    def test_from_env_disabled(self):
        settings = Settings(from_env=False)
        self.assertEqual(settings.max_errors, 0)

    def test_yaml_file(self):
        path = self.write('up.yaml', 'unifi_user: admin\nsites:\n  - all\ninterval: 45s\nworkers: 2\n')
        settings = Settings(path, environ={})
        self.assertEqual(settings.unifi_user, 'admin')
        self.assertEqual(settings.sites, ['all'])
        self.assertEqual(settings.interval, 45.0)
        self.assertEqual(settings.workers, 2)

    def test_json_file(self):
        path = self.write('up.json', json.dumps({'output': 'prometheus', 'prometheus_port': 9130}))
        settings = Settings(path, environ={})
        self.assertEqual(settings.output, 'prometheus')
        self.assertEqual(settings.prometheus_port, 9130)

    def test_toml_file(self):
        path = self.write('up.toml', 'influx_url = "http://db:8181"\nmax_errors = 3\nverify_ssl = true\n')
        settings = Settings(path, environ={})
        self.assertEqual(settings.influx_url, 'http://db:8181')
        self.assertEqual(settings.max_errors, 3)
        self.assertTrue(settings.verify_ssl)

    def test_environment_beats_file(self):
        path = self.write('up.yaml', 'unifi_user: admin\n')
        settings = Settings(path, environ={'UP_UNIFI_USER': 'poller'})
        self.assertEqual(settings.unifi_user, 'poller')

    def test_unknown_key_ignored(self):
        path = self.write('up.yaml', 'colour: blue\nworkers: 3\n')
        settings = Settings(path, environ={})
        self.assertEqual(settings.workers, 3)
        self.assertFalse(hasattr(settings, 'colour'))

    def test_empty_file(self):
        path = self.write('up.yaml', '')
        settings = Settings(path, environ={})
        self.assertEqual(settings.workers, 1)

    def test_file_errors(self):
        with self.assertRaises(ConfigError):
            Settings(os.path.join(self.tmp.name, 'missing.yaml'), environ={})
        with self.assertRaises(ConfigError):
            Settings(self.write('up.ini', 'workers=1'), environ={})
        with self.assertRaises(ConfigError):
            Settings(self.write('bad.json', '{not json'), environ={})
        with self.assertRaises(ConfigError):
            Settings(self.write('list.yaml', '- a\n- b\n'), environ={})
        with self.assertRaises(ConfigError):
            Settings(self.write('typed.yaml', 'workers: many\n'), environ={})

    def test_repr_redacts_secrets(self):
        settings = Settings(environ={'UP_UNIFI_PASS': 'hunter2', 'UP_INFLUX_TOKEN': 'abc'})
        text = repr(settings)
        self.assertNotIn('hunter2', text)
        self.assertNotIn('abc', text)
        self.assertIn('[REDACTED]', text)


class TestParsers(unittest.TestCase):
    """Test cases for the setting parsers."""

    def test_parse_duration(self):
        self.assertEqual(parse_duration('30s'), 30.0)
        self.assertEqual(parse_duration('1m30s'), 90.0)
        self.assertEqual(parse_duration('500ms'), 0.5)
        self.assertEqual(parse_duration('2h'), 7200.0)
        self.assertEqual(parse_duration('15'), 15.0)
        self.assertEqual(parse_duration(45), 45.0)
        for bad in ('soon', '10x', '1m soon', True):
            with self.assertRaises(ValueError):
                parse_duration(bad)

    def test_parse_list(self):
        self.assertEqual(parse_list('default,branch'), ['default', 'branch'])
        self.assertEqual(parse_list(' a , ,b '), ['a', 'b'])
        self.assertEqual(parse_list(['x', ' y ']), ['x', 'y'])

    def test_parse_bool(self):
        self.assertTrue(parse_bool('On'))
        self.assertFalse(parse_bool('0'))
        with self.assertRaises(ValueError):
            parse_bool('maybe')


class TestCatalogues(unittest.TestCase):
    """Test cases for measurements and endpoints."""

    def test_measurement_names(self):
        self.assertEqual([m.value for m in Measurement],
                         ['gateway', 'gateway_networks', 'switch', 'switch_ports',
                          'access_point', 'access_point_radios', 'access_point_vaps'])

    def test_endpoint(self):
        self.assertEqual(endpoint('devices', site='default'), '/api/s/default/stat/device')
        self.assertEqual(endpoint('login'), '/api/login')
        with self.assertRaises(ValueError):
            endpoint('clients')


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
