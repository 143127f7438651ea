"""Release catalog backed by the WHMCS version-check endpoint."""

from typing import Any, Dict, List, Optional

import requests
from packaging import version as packaging_version

from whmcsinstaller.constants import RELEASE_CACHE_KEY, VERSION_CHECK_URL
from whmcsinstaller.models import Release
from whmcsinstaller.services.cache import ABSENT


class ReleaseCatalog:
    """Maps version strings to downloadable releases.

    The whole catalog is one cache entry. A cached value is trusted as-is;
    expiring it is up to the cache backend or an explicit `invalidate()`.
    Two resolutions racing on a cold cache may both hit the endpoint, which
    is harmless because the request is a read.
    """

    def __init__(
        self,
        cache,
        logger,
        requests_module=requests,
        url: str = VERSION_CHECK_URL,
        timeout: float = 30.0,
        cache_key: str = RELEASE_CACHE_KEY,
    ):
        self.cache = cache
        self.logger = logger
        self.requests = requests_module
        self.url = url
        self.timeout = timeout
        self.cache_key = cache_key

    def get_release_data(self) -> Dict[str, Dict[str, Any]]:
        cached = self.cache.get(self.cache_key)
        if cached is not ABSENT:
            return cached

        versions = self._fetch()
        if versions:
            self.cache.set(self.cache_key, versions)
        return versions

    def resolve(self, version: str) -> Optional[Release]:
        entry = self.get_release_data().get(version)
        if entry is None:
            return None

        metadata = {key: value for key, value in entry.items() if key not in ("version", "url")}
        return Release(version=version, url=entry.get("url") or None, metadata=metadata)

    def list_versions(self) -> List[str]:
        return sorted(self.get_release_data(), key=self._sort_key)

    def latest_version(self) -> Optional[str]:
        versions = self.list_versions()
        return versions[-1] if versions else None

    def invalidate(self):
        self.cache.delete(self.cache_key)

    def _fetch(self) -> Dict[str, Dict[str, Any]]:
        self.logger.debug("Fetching release data from %s", self.url)
        try:
            response = self.requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (self.requests.RequestException, ValueError) as exc:
            self.logger.warning("Could not fetch release data from %s: %s", self.url, exc)
            return {}

        if not isinstance(payload, dict) or not payload.get("version"):
            self.logger.warning("Release data from %s has no version field.", self.url)
            return {}

        return {str(payload["version"]): payload}

    @staticmethod
    def _sort_key(ver_str: str):
        try:
            return packaging_version.parse(ver_str)
        except packaging_version.InvalidVersion:
            return packaging_version.parse("0")
