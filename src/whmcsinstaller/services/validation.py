"""Input and URL validation helpers for WHMCS Installer."""

import re
from urllib.parse import urlparse

from whmcsinstaller.constants import APP_NAME
from whmcsinstaller.errors import FetchError, ValidationError
from whmcsinstaller.errors_catalog import actionable_error
from whmcsinstaller.models import InstallOptions


class ValidationService:
    """Validates install options and protocol policy."""

    HOSTNAME_PATTERN = re.compile(r"^(?=.{1,253}$)[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?$")

    def __init__(self, allow_insecure_http: bool = False):
        self.allow_insecure_http = allow_insecure_http

    def is_url(self, location: str) -> bool:
        scheme = urlparse(location).scheme.lower()
        return scheme in {"http", "https"}

    def enforce_https_policy(self, location: str, label: str, logger, console):
        if not self.is_url(location):
            raise FetchError(f"{label} is not an HTTP(S) URL: {location}")

        scheme = urlparse(location).scheme.lower()
        if scheme == "http" and not self.allow_insecure_http:
            raise FetchError(actionable_error("insecure_http", label=label))

        if scheme == "http" and self.allow_insecure_http:
            logger.warning("Insecure HTTP enabled for %s: %s", label, location)
            console.print(
                f"[yellow]Warning:[/yellow] Using insecure HTTP for {label}. "
                "Prefer HTTPS whenever possible."
            )

    def validate_hostname(self, hostname: str):
        if not hostname or not self.HOSTNAME_PATTERN.match(hostname):
            raise ValidationError(f"Invalid hostname: `{hostname}`.")

    def normalize_path(self, path: str) -> str:
        clean = (path or "").strip().strip("/")
        if any(part == ".." for part in clean.split("/")):
            raise ValidationError(f"Path must not contain `..`: `{path}`.")
        return clean

    def validate_target(self, options: InstallOptions):
        self.validate_hostname(options.hostname)
        self.normalize_path(options.path)

    def validate_options(self, options: InstallOptions):
        if not (options.version or "").strip():
            raise ValidationError("A version to install is required.")

        if not (options.license_key or "").strip():
            raise ValidationError(actionable_error("license_required", app=APP_NAME))
