import io
import zipfile

import pytest
from rich.console import Console

from whmcsinstaller.errors import FetchError
from whmcsinstaller.services.archive import ArchiveService
from whmcsinstaller.services.download import DownloadService
from whmcsinstaller.services.filesystem import FileSystemService
from whmcsinstaller.services.validation import ValidationService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, payload: bytes):
        self.payload = payload
        self.headers = {"Content-Length": str(len(payload))}

    def raise_for_status(self):
        return None

    def iter_content(self, chunk_size=8192):
        yield self.payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, payload: bytes, failures: int = 0):
        self.payload = payload
        self.failures = failures
        self.calls = 0

    def get(self, *_args, **_kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.RequestException("temporary download error")
        return FakeResponse(self.payload)


def _release_zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zip_file:
        for name, content in entries.items():
            zip_file.writestr(name, content)
    return buffer.getvalue()


def _service(requests_module, allow_insecure_http=False, **kwargs):
    logger = DummyLogger()
    console = Console(record=True)
    return DownloadService(
        validation_service=ValidationService(allow_insecure_http=allow_insecure_http),
        archive_service=ArchiveService(),
        filesystem_service=FileSystemService(logger=logger, console=console),
        logger=logger,
        console=console,
        requests_module=requests_module,
        **kwargs,
    )


def test_download_file_writes_payload(tmp_path):
    service = _service(FakeRequestsModule(payload=b"zip-bytes"))

    dest = tmp_path / "release.zip"
    service.download_file("https://example.com/whmcs.zip", str(dest), description="release")

    assert dest.read_bytes() == b"zip-bytes"


def test_download_file_rejects_checksum_mismatch(tmp_path):
    service = _service(FakeRequestsModule(payload=b"hello"))
    dest = tmp_path / "release.zip"

    with pytest.raises(FetchError, match="Checksum mismatch"):
        service.download_file(
            "https://example.com/whmcs.zip",
            str(dest),
            description="release",
            expected_sha256="0" * 64,
        )

    assert not dest.exists()


def test_download_service_retries_transient_request_errors(tmp_path):
    requests_module = FakeRequestsModule(payload=b"retried", failures=1)
    service = _service(requests_module, retry_count=1, retry_backoff_seconds=0.0)

    dest = tmp_path / "release.zip"
    service.download_file("https://example.com/whmcs.zip", str(dest), description="release")

    assert requests_module.calls == 2
    assert dest.read_bytes() == b"retried"


def test_download_service_gives_up_after_retries(tmp_path):
    requests_module = FakeRequestsModule(payload=b"", failures=5)
    service = _service(requests_module, retry_count=1, retry_backoff_seconds=0.0)

    with pytest.raises(FetchError, match="Download failed"):
        service.download_file("https://example.com/whmcs.zip", str(tmp_path / "r.zip"))

    assert requests_module.calls == 2


def test_download_blocks_insecure_http_before_network(tmp_path):
    requests_module = FakeRequestsModule(payload=b"unused")
    service = _service(requests_module)

    with pytest.raises(FetchError, match="insecure HTTP"):
        service.download_file("http://example.com/whmcs.zip", str(tmp_path / "r.zip"))

    assert requests_module.calls == 0


def test_fetch_unwraps_release_folder_and_overwrites(tmp_path):
    payload = _release_zip(
        {
            "whmcs/index.php": "<?php // new",
            "whmcs/install/bin/installer.php": "<?php",
            "whmcs/crons/cron.php": "<?php",
        }
    )
    docroot = tmp_path / "site"
    docroot.mkdir()
    (docroot / "index.php").write_text("<?php // old", encoding="utf-8")
    (docroot / "keep.txt").write_text("untouched", encoding="utf-8")

    service = _service(FakeRequestsModule(payload=payload))
    assert service.fetch("https://example.com/whmcs.zip", str(docroot), overwrite=True) is True

    assert (docroot / "index.php").read_text(encoding="utf-8") == "<?php // new"
    assert (docroot / "install" / "bin" / "installer.php").exists()
    assert (docroot / "crons" / "cron.php").exists()
    assert (docroot / "keep.txt").exists()
    assert not (docroot / "whmcs").exists()


def test_fetch_refuses_non_empty_destination_without_overwrite(tmp_path):
    docroot = tmp_path / "site"
    docroot.mkdir()
    (docroot / "index.html").write_text("placeholder", encoding="utf-8")
    requests_module = FakeRequestsModule(payload=b"unused")

    with pytest.raises(FetchError, match="overwrite is disabled"):
        _service(requests_module).fetch("https://example.com/whmcs.zip", str(docroot))

    assert requests_module.calls == 0
