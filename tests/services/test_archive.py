import zipfile

import pytest

from whmcsinstaller.errors import FetchError
from whmcsinstaller.services.archive import ArchiveService


def test_archive_service_blocks_path_traversal(tmp_path):
    service = ArchiveService()

    zip_path = tmp_path / "malicious.zip"
    with zipfile.ZipFile(zip_path, "w") as zip_file:
        zip_file.writestr("../escape.php", "<?php")

    destination = tmp_path / "extract"
    destination.mkdir()

    with pytest.raises(FetchError):
        service.safe_extract_zip(str(zip_path), str(destination))

    assert not (tmp_path / "escape.php").exists()


def test_archive_service_extracts_valid_zip(tmp_path):
    service = ArchiveService()

    zip_path = tmp_path / "valid.zip"
    with zipfile.ZipFile(zip_path, "w") as zip_file:
        zip_file.writestr("whmcs/crons/cron.php", "<?php")

    destination = tmp_path / "extract"
    destination.mkdir()

    assert service.safe_extract_zip(str(zip_path), str(destination)) == 1

    assert (destination / "whmcs" / "crons" / "cron.php").read_text(encoding="utf-8") == "<?php"


def test_archive_service_rejects_corrupt_zip(tmp_path):
    zip_path = tmp_path / "broken.zip"
    zip_path.write_bytes(b"not a zip")

    with pytest.raises(FetchError, match="Invalid ZIP archive"):
        ArchiveService().safe_extract_zip(str(zip_path), str(tmp_path))


def test_unwrap_single_dir_returns_wrapper_folder(tmp_path):
    (tmp_path / "whmcs" / "admin").mkdir(parents=True)

    assert ArchiveService().unwrap_single_dir(str(tmp_path)) == str(tmp_path / "whmcs")


def test_unwrap_single_dir_keeps_flat_layout(tmp_path):
    (tmp_path / "admin").mkdir()
    (tmp_path / "index.php").write_text("<?php", encoding="utf-8")

    assert ArchiveService().unwrap_single_dir(str(tmp_path)) == str(tmp_path)


def test_archive_service_rejects_absolute_entries_before_writing(tmp_path):
    zip_path = tmp_path / "absolute.zip"
    with zipfile.ZipFile(zip_path, "w") as zip_file:
        zip_file.writestr("whmcs/index.php", "<?php")
        zip_file.writestr("/etc/cron.d/evil", "* * * * * root true")

    destination = tmp_path / "extract"
    destination.mkdir()

    with pytest.raises(FetchError, match="absolute path"):
        ArchiveService().safe_extract_zip(str(zip_path), str(destination))

    assert list(destination.iterdir()) == []


def test_archive_service_rejects_symlink_entries(tmp_path):
    zip_path = tmp_path / "symlink.zip"
    link = zipfile.ZipInfo("whmcs/configuration.php")
    link.external_attr = (0o120777 << 16)
    with zipfile.ZipFile(zip_path, "w") as zip_file:
        zip_file.writestr(link, "/etc/passwd")

    with pytest.raises(FetchError, match="symbolic link"):
        ArchiveService().safe_extract_zip(str(zip_path), str(tmp_path / "extract"))
