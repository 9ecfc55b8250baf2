"""Live API DataSource implementation.

Collects raw device and site JSON from a UniFi controller.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
import urllib3

from ..config.api_endpoints import endpoint
from ..errors import ControllerError
from ..schema.models import site_label
from .base import CollectionResult, CollectionType, ControllerInfo, DataSource

# Seconds to wait for the controller on every request
REQUEST_TIMEOUT = 30


class LiveAPIDataSource(DataSource):
    """DataSource implementation for live UniFi controller collection.

    Logs in once when initialized. Session renewal is not attempted: when the
    controller drops the session every later collection fails and the poll
    loop's error budget decides when to give up.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)

        self.session: Optional[requests.Session] = None
        self.base_url = (config.get('unifi_url') or '').rstrip('/')
        self.username = config.get('unifi_user')
        self.password = config.get('unifi_pass')
        self.verify_ssl = bool(config.get('verify_ssl', False))
        self.sites: List[str] = list(config.get('sites') or ['default'])

    def initialize(self) -> bool:
        """Create the HTTP session and log in to the controller.

        Returns:
            True if initialization successful, False otherwise
        """
        if not self.base_url or not self.username or not self.password:
            self.logger.error("Controller URL, username and password required for live API mode")
            return False

        self.session = requests.Session()
        self.session.verify = self.verify_ssl
        if not self.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self.logger.warning("TLS validation is DISABLED for the UniFi controller. This is insecure.")

        login_url = self.base_url + endpoint('login')
        try:
            self.logger.debug(f"Attempting session login to {login_url} with user {self.username}")
            response = self.session.post(login_url,
                                         json={'username': self.username, 'password': self.password},
                                         timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            self.logger.error(f"Failed to login to {self.base_url}: {e}")
            return False

        if response.status_code != 200:
            self.logger.error(f"Login failed with status {response.status_code}: {response.text[:200]}")
            return False

        self._controller_info = ControllerInfo(url=self.base_url, name=self.base_url.split('://')[-1])
        self.logger.info(f"Successfully authenticated with UniFi controller at {self.base_url}")
        return True

    def _call_api(self, path: str) -> List[Any]:
        """GET a controller path and return its ``data`` list.

        Raises:
            ControllerError: transport failure, HTTP error or ``meta.rc`` other than ok
        """
        if self.session is None:
            raise ControllerError("data source not initialized")

        url = self.base_url + path
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise ControllerError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise ControllerError(f"GET {path} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise ControllerError(f"GET {path} returned {type(body).__name__}, expected an object")
        meta = body.get('meta') or {}
        if meta.get('rc', 'ok') != 'ok':
            raise ControllerError(f"GET {path} failed: {meta.get('msg', meta.get('rc'))}")
        data = body.get('data')
        if not isinstance(data, list):
            raise ControllerError(f"GET {path} returned no data list")
        return data

    def collect_sites(self) -> CollectionResult:
        """Collect the controller's site list."""
        try:
            sites = self._call_api(endpoint('sites'))
            self.logger.debug(f"Found {len(sites)} sites on controller")
            return CollectionResult(CollectionType.SITES, sites, True, metadata={'source': 'live_api'})
        except ControllerError as e:
            self.logger.error(f"Failed to collect sites: {e}")
            return CollectionResult(CollectionType.SITES, [], False, error_message=str(e))

    def _polled_sites(self, sites: List[Any]) -> List[Any]:
        """Select the configured sites from the controller's site list."""
        sites = [site for site in sites if isinstance(site, dict)]
        if 'all' in self.sites:
            return sites
        by_name = {site.get('name'): site for site in sites}
        selected = []
        for name in self.sites:
            if name in by_name:
                selected.append(by_name[name])
            else:
                self.logger.warning(f"Configured site '{name}' not found on controller")
        return selected

    def collect_devices(self) -> CollectionResult:
        """Collect raw devices from every polled site.

        A site that fails is skipped; the collection fails only when no site
        could be read.
        """
        site_result = self.collect_sites()
        if not site_result.success:
            return CollectionResult(CollectionType.DEVICES, [], False, error_message=site_result.error_message)

        sites = self._polled_sites(site_result.data)
        devices: List[Any] = []
        failed: List[str] = []
        for site in sites:
            name = site.get('name')
            try:
                site_devices = self._call_api(endpoint('devices', site=name))
            except ControllerError as e:
                self.logger.warning(f"Failed to collect devices for site {name}: {e}")
                failed.append(name)
                continue
            label = site_label(site)
            for raw in site_devices:
                if isinstance(raw, dict):
                    raw = dict(raw, site_name=label)
                devices.append(raw)
            self.logger.debug(f"Collected {len(site_devices)} devices from site {label}")

        if sites and len(failed) == len(sites):
            return CollectionResult(CollectionType.DEVICES, [], False,
                                    error_message=f"device collection failed for every site: {failed}")

        self.logger.info(f"Collected {len(devices)} devices from {len(sites) - len(failed)} sites")
        return CollectionResult(CollectionType.DEVICES, devices, True,
                                metadata={'source': 'live_api', 'failed_sites': failed, 'sites': site_result.data})

    def dump_json(self, kind: str) -> List[Any]:
        """Raw controller JSON for ``devices`` or ``sites``.

        Raises:
            ControllerError: the collection failed
            ValueError: kind is not dumpable
        """
        if kind == 'sites':
            result = self.collect_sites()
        elif kind == 'devices':
            result = self.collect_devices()
        else:
            raise ValueError(f"Cannot dump {kind}")
        if not result.success:
            raise ControllerError(result.error_message or f"{kind} collection failed")
        return result.data

    def cleanup(self) -> None:
        """Log out and close the HTTP session."""
        if self.session is None:
            return
        try:
            self.session.post(self.base_url + endpoint('logout'), timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            self.logger.debug(f"Logout failed: {e}")
        finally:
            self.session.close()
            self.session = None
            self.logger.info("Closed UniFi controller session")
