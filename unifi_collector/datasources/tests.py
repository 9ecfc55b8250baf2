"""
Tests for the live API and JSON replay data sources.
"""
import json
import logging
import os
import tempfile
import unittest
from unittest import mock

import requests

from ..errors import ControllerError
from .base import CollectionType
from .json_replay import JSONReplayDataSource, read_file
from .live_api import LiveAPIDataSource

SITES = [
    {'_id': 's1', 'name': 'default', 'desc': 'Default'},
    {'_id': 's2', 'name': 'branch', 'desc': 'Branch Office'},
]

DEVICES = {
    'default': [{'_id': 'sw1', 'type': 'usw', 'mac': '00:01'}],
    'branch': [{'_id': 'ap1', 'type': 'uap', 'mac': '00:02'}],
}


def api_response(data, rc='ok', status=200):
    response = mock.Mock()
    response.status_code = status
    response.json.return_value = {'meta': {'rc': rc}, 'data': data}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return response


class TestJSONReplay(unittest.TestCase):
    """Test cases for JSONReplayDataSource."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, content):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content if isinstance(content, str) else json.dumps(content))
        return path

    def test_read_file_shapes(self):
        devices = [{'_id': 'a', 'type': 'usw'}]
        self.assertEqual(read_file(self.write('bare.json', devices)), {'devices': devices, 'sites': []})
        self.assertEqual(read_file(self.write('env.json', {'meta': {'rc': 'ok'}, 'data': devices})),
                         {'devices': devices, 'sites': []})
        self.assertEqual(read_file(self.write('both.json', {'devices': devices, 'sites': SITES})),
                         {'devices': devices, 'sites': SITES})

    def test_read_file_rejects(self):
        with self.assertRaises(ValueError):
            read_file(self.write('bad.json', '{nope'))
        with self.assertRaises(ValueError):
            read_file(self.write('scalar.json', {'data': 'none'}))

    def test_directory_replayed_in_name_order(self):
        self.write('002.json', [{'_id': 'second', 'type': 'usw'}])
        self.write('001.json', [{'_id': 'first', 'type': 'usw'}])
        self.write('notes.txt', 'ignored')

        source = JSONReplayDataSource({'from_json': self.tmp.name})
        self.assertTrue(source.initialize())
        self.assertEqual(len(source.files), 2)

        snapshot = source.collect_snapshot()
        self.assertEqual(snapshot.devices[0]['_id'], 'first')
        self.assertTrue(source.has_more_batches())

        self.assertTrue(source.advance_batch())
        self.assertEqual(source.collect_snapshot().devices[0]['_id'], 'second')
        self.assertFalse(source.has_more_batches())
        self.assertFalse(source.advance_batch())

    def test_single_file(self):
        path = self.write('devices.json', {'devices': [{'_id': 'x'}], 'sites': SITES})
        source = JSONReplayDataSource({'from_json': path})
        self.assertTrue(source.initialize())
        self.assertEqual(source.controller_info.name, 'devices')
        result = source.collect_sites()
        self.assertTrue(result.success)
        self.assertEqual(result.collection_type, CollectionType.SITES)
        self.assertEqual(result.data, SITES)

    def test_unreadable_file_fails_collection(self):
        path = self.write('broken.json', '[1, 2')
        source = JSONReplayDataSource({'from_json': path})
        self.assertTrue(source.initialize())
        self.assertFalse(source.collect_devices().success)
        with self.assertRaises(ControllerError):
            source.collect_snapshot()

    def test_initialize_failures(self):
        self.assertFalse(JSONReplayDataSource({}).initialize())
        self.assertFalse(JSONReplayDataSource({'from_json': os.path.join(self.tmp.name, 'nope')}).initialize())
        self.assertFalse(JSONReplayDataSource({'from_json': self.tmp.name}).initialize())


class TestLiveAPI(unittest.TestCase):
    """Test cases for LiveAPIDataSource."""

    def setUp(self):
        patcher = mock.patch('unifi_collector.datasources.live_api.requests.Session')
        self.session_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.session = self.session_cls.return_value
        self.session.post.return_value = mock.Mock(status_code=200)
        self.session.get.side_effect = self.route
        self.failing_sites = set()

    def route(self, url, timeout=None):
        if url.endswith('/api/self/sites'):
            return api_response(SITES)
        for name, devices in DEVICES.items():
            if url.endswith(f'/api/s/{name}/stat/device'):
                if name in self.failing_sites:
                    return api_response([], status=500)
                return api_response(devices)
        return api_response([], rc='error', status=200)

    def make(self, sites=('default',), **extra):
        config = {'unifi_url': 'https://unifi.example.com:8443/', 'unifi_user': 'influx',
                  'unifi_pass': 'secret', 'sites': list(sites)}
        config.update(extra)
        source = LiveAPIDataSource(config)
        self.assertTrue(source.initialize())
        return source

    def test_login(self):
        source = self.make(verify_ssl=True)
        self.session.post.assert_called_once_with(
            'https://unifi.example.com:8443/api/login',
            json={'username': 'influx', 'password': 'secret'}, timeout=30)
        self.assertTrue(self.session.verify)
        self.assertEqual(source.controller_info.name, 'unifi.example.com:8443')

    def test_login_failure(self):
        self.session.post.return_value = mock.Mock(status_code=401, text='unauthorized')
        source = LiveAPIDataSource({'unifi_url': 'https://u', 'unifi_user': 'a', 'unifi_pass': 'b'})
        self.assertFalse(source.initialize())

        self.session.post.side_effect = requests.ConnectionError("refused")
        self.assertFalse(source.initialize())

    def test_missing_credentials(self):
        self.assertFalse(LiveAPIDataSource({'unifi_url': 'https://u'}).initialize())
        self.session_cls.assert_not_called()

    def test_selected_site_devices_are_labelled(self):
        snapshot = self.make().collect_snapshot()
        self.assertEqual(len(snapshot.devices), 1)
        self.assertEqual(snapshot.devices[0]['_id'], 'sw1')
        self.assertEqual(snapshot.devices[0]['site_name'], 'Default (default)')
        self.assertEqual(snapshot.sites, SITES)
        self.assertNotIn('site_name', DEVICES['default'][0])
        site_requests = [c for c in self.session.get.call_args_list if c.args[0].endswith('/api/self/sites')]
        self.assertEqual(len(site_requests), 1)

    def test_all_sites(self):
        result = self.make(sites=['all']).collect_devices()
        self.assertTrue(result.success)
        self.assertEqual([d['_id'] for d in result.data], ['sw1', 'ap1'])
        self.assertEqual(result.data[1]['site_name'], 'Branch Office (branch)')

    def test_unknown_site_is_skipped(self):
        result = self.make(sites=['default', 'warehouse']).collect_devices()
        self.assertTrue(result.success)
        self.assertEqual(len(result.data), 1)

    def test_failing_site_is_skipped(self):
        self.failing_sites.add('branch')
        result = self.make(sites=['all']).collect_devices()
        self.assertTrue(result.success)
        self.assertEqual([d['_id'] for d in result.data], ['sw1'])
        self.assertEqual(result.metadata['failed_sites'], ['branch'])

    def test_every_site_failing_raises(self):
        self.failing_sites.update(DEVICES)
        source = self.make(sites=['all'])
        with self.assertRaises(ControllerError):
            source.collect_snapshot()

    def test_controller_error_code(self):
        self.session.get.side_effect = None
        self.session.get.return_value = api_response([], rc='error')
        result = self.make().collect_sites()
        self.assertFalse(result.success)

    def test_dump_json(self):
        source = self.make()
        self.assertEqual(source.dump_json('sites'), SITES)
        with self.assertRaises(ValueError):
            source.dump_json('clients')

    def test_cleanup_logs_out(self):
        source = self.make()
        source.cleanup()
        self.session.post.assert_called_with('https://unifi.example.com:8443/api/logout', timeout=30)
        self.session.close.assert_called_once()
        self.assertIsNone(source.session)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
