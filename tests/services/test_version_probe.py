from whmcsinstaller.constants import LICENSE_MARKER
from whmcsinstaller.errors import ValidationError
from whmcsinstaller.services.version_probe import VersionProbe


class FakeLifecycle:
    def __init__(self, docroot):
        self.docroot = docroot

    def document_root(self, hostname, path=""):
        return self.docroot


class FakeMetadataStore:
    def __init__(self, record=None):
        self.record = record

    def read(self, docroot):
        return self.record


def test_get_version_returns_first_token_of_marker(tmp_path):
    (tmp_path / "version.txt").write_text("8.6.1-release.1 build 42\n", encoding="utf-8")

    probe = VersionProbe(FakeLifecycle(str(tmp_path)), FakeMetadataStore())

    assert probe.get_version("example.com") == "8.6.1-release.1"


def test_get_version_without_docroot_or_marker_is_none(tmp_path):
    assert VersionProbe(FakeLifecycle(None), FakeMetadataStore()).get_version("example.com") is None
    assert VersionProbe(FakeLifecycle(str(tmp_path)), FakeMetadataStore()).get_version("example.com") is None


def test_empty_marker_falls_back_to_recorded_version(tmp_path):
    (tmp_path / "version.txt").write_text("  \n", encoding="utf-8")
    store = FakeMetadataStore({"version": "8.5.0"})

    probe = VersionProbe(FakeLifecycle(str(tmp_path)), store)

    assert probe.get_version("example.com") == "8.5.0"


def test_is_installed_checks_license_marker(tmp_path):
    probe = VersionProbe(FakeLifecycle(str(tmp_path)), FakeMetadataStore())
    assert probe.is_installed("example.com") is False

    marker = tmp_path / LICENSE_MARKER
    marker.parent.mkdir(parents=True)
    marker.write_text("<?php", encoding="utf-8")

    assert probe.is_installed("example.com") is True
    assert VersionProbe(FakeLifecycle(None), FakeMetadataStore()).is_installed("example.com") is False


class RejectingLifecycle:
    def document_root(self, hostname, path=""):
        raise ValidationError(f"Path must not contain `..`: `{path}`.")


def test_invalid_path_reads_as_not_installed():
    probe = VersionProbe(RejectingLifecycle(), FakeMetadataStore({"version": "8.6.1"}))

    assert probe.get_version("example.com", "../x") is None
    assert probe.is_installed("example.com", "../x") is False
