"""Release download and unpack service with progress reporting."""

import hashlib
import os
import shutil
import tempfile
import time
from typing import Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from whmcsinstaller.errors import FetchError


class DownloadService:
    """Downloads release archives and unpacks them into a docroot."""

    def __init__(
        self,
        validation_service,
        archive_service,
        filesystem_service,
        logger,
        console,
        requests_module,
        timeout: float = 60.0,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
    ):
        self.validation_service = validation_service
        self.archive_service = archive_service
        self.filesystem_service = filesystem_service
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_backoff_seconds = retry_backoff_seconds

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "Downloading...",
        expected_sha256: Optional[str] = None,
    ):
        self.logger.info("Downloading %s to %s", url, dest_path)
        self.validation_service.enforce_https_policy(url, description, self.logger, self.console)

        max_attempts = max(1, self.retry_count + 1)
        for attempt in range(1, max_attempts + 1):
            try:
                self._stream_to_file(url, dest_path, description, expected_sha256)
                return
            except self.requests.RequestException as exc:
                if attempt < max_attempts:
                    self.logger.warning(
                        "Download failed on attempt %s/%s. Retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        self.retry_backoff_seconds,
                        exc,
                    )
                    time.sleep(self.retry_backoff_seconds)
                    continue
                raise FetchError(f"Download failed for {description}: {exc}") from exc

    def _stream_to_file(
        self,
        url: str,
        dest_path: str,
        description: str,
        expected_sha256: Optional[str],
    ):
        hasher = hashlib.sha256() if expected_sha256 else None

        with self.requests.get(url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("Content-Length", 0))

            os.makedirs(os.path.dirname(dest_path), exist_ok=True)

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                "-",
                TimeElapsedColumn(),
                console=self.console,
            ) as progress:
                task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                with open(dest_path, "wb") as file_obj:
                    for chunk in response.iter_content(chunk_size=8192):
                        if not chunk:
                            continue
                        file_obj.write(chunk)
                        if hasher:
                            hasher.update(chunk)
                        progress.update(task, advance=len(chunk))

        if hasher:
            downloaded_sha = hasher.hexdigest()
            if downloaded_sha != expected_sha256:
                try:
                    os.remove(dest_path)
                except OSError:
                    pass
                raise FetchError(
                    f"Checksum mismatch for {description}. Expected {expected_sha256}, "
                    f"but got {downloaded_sha}."
                )

    def fetch(
        self,
        url: str,
        destination: str,
        overwrite: bool = False,
        expected_sha256: Optional[str] = None,
    ) -> bool:
        """Downloads a release zip and unpacks its content root into `destination`."""
        if (
            not overwrite
            and os.path.isdir(destination)
            and any(not item.startswith(".") for item in os.listdir(destination))
        ):
            raise FetchError(f"Destination is not empty and overwrite is disabled: {destination}")

        staging_dir = tempfile.mkdtemp(prefix="whmcsinstaller-")
        try:
            zip_path = os.path.join(staging_dir, "release.zip")
            self.download_file(
                url,
                zip_path,
                "Downloading release...",
                expected_sha256=expected_sha256,
            )

            extract_dir = os.path.join(staging_dir, "extract")
            os.makedirs(extract_dir, exist_ok=True)
            self.archive_service.safe_extract_zip(zip_path, extract_dir)

            content_root = self.archive_service.unwrap_single_dir(extract_dir)
            try:
                self.filesystem_service.copy_tree(content_root, destination)
            except OSError as exc:
                raise FetchError(f"Failed to unpack release into {destination}: {exc}") from exc
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        self.logger.info("Release unpacked into %s", destination)
        return True
