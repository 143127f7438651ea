from whmcsinstaller.services.cache import ABSENT, JsonFileCache, MemoryCache
from whmcsinstaller.services.release_catalog import ReleaseCatalog


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, payload=None, invalid_json=False):
        self.payload = payload
        self.invalid_json = invalid_json

    def raise_for_status(self):
        return None

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, payload=None, fail=False, invalid_json=False):
        self.payload = payload
        self.fail = fail
        self.invalid_json = invalid_json
        self.calls = 0

    def get(self, *_args, **_kwargs):
        self.calls += 1
        if self.fail:
            raise self.RequestException("connection refused")
        return FakeResponse(self.payload, invalid_json=self.invalid_json)


LATEST = {"version": "8.6.1", "url": "https://cdn.example.com/whmcs-8.6.1.zip", "md5": "abc"}


def _catalog(requests_module, cache=None):
    return ReleaseCatalog(
        cache=cache if cache is not None else MemoryCache(),
        logger=DummyLogger(),
        requests_module=requests_module,
    )


def test_resolve_wraps_latest_release_by_version():
    catalog = _catalog(FakeRequestsModule(payload=LATEST))

    release = catalog.resolve("8.6.1")

    assert release.version == "8.6.1"
    assert release.url == LATEST["url"]
    assert release.metadata == {"md5": "abc"}
    assert catalog.resolve("8.5.0") is None


def test_second_resolution_hits_cache():
    requests_module = FakeRequestsModule(payload=LATEST)
    catalog = _catalog(requests_module)

    catalog.resolve("8.6.1")
    catalog.resolve("8.6.1")

    assert requests_module.calls == 1


def test_cached_value_is_returned_verbatim():
    cache = MemoryCache()
    cache.set("whmcs.versions", {"8.5.0": {"version": "8.5.0", "url": "https://cdn/old.zip"}})
    requests_module = FakeRequestsModule(payload=LATEST)

    catalog = _catalog(requests_module, cache=cache)

    assert catalog.list_versions() == ["8.5.0"]
    assert requests_module.calls == 0


def test_fetch_failure_returns_empty_mapping_and_is_not_cached():
    cache = MemoryCache()
    catalog = _catalog(FakeRequestsModule(fail=True), cache=cache)

    assert catalog.get_release_data() == {}
    assert cache.get("whmcs.versions") is ABSENT


def test_invalid_json_returns_empty_mapping():
    catalog = _catalog(FakeRequestsModule(invalid_json=True))

    assert catalog.get_release_data() == {}
    assert catalog.latest_version() is None


def test_invalidate_forces_refetch():
    requests_module = FakeRequestsModule(payload=LATEST)
    catalog = _catalog(requests_module)

    catalog.get_release_data()
    catalog.invalidate()
    catalog.get_release_data()

    assert requests_module.calls == 2


def test_list_versions_orders_by_version_semantics():
    cache = MemoryCache()
    cache.set(
        "whmcs.versions",
        {
            "8.10.0": {"version": "8.10.0"},
            "8.9.2": {"version": "8.9.2"},
            "7.10.3": {"version": "7.10.3"},
        },
    )
    catalog = _catalog(FakeRequestsModule(), cache=cache)

    assert catalog.list_versions() == ["7.10.3", "8.9.2", "8.10.0"]
    assert catalog.latest_version() == "8.10.0"


def test_json_file_cache_persists_between_instances(tmp_path):
    cache_file = tmp_path / "cache" / "releases.json"
    requests_module = FakeRequestsModule(payload=LATEST)

    _catalog(requests_module, cache=JsonFileCache(str(cache_file), DummyLogger())).resolve("8.6.1")
    second = _catalog(requests_module, cache=JsonFileCache(str(cache_file), DummyLogger()))

    assert second.resolve("8.6.1").url == LATEST["url"]
    assert requests_module.calls == 1


def test_json_file_cache_ignores_corrupt_file(tmp_path):
    cache_file = tmp_path / "releases.json"
    cache_file.write_text("{not json", encoding="utf-8")

    assert JsonFileCache(str(cache_file), DummyLogger()).get("whmcs.versions") is ABSENT
