"""Invocation of the installer bundled with each WHMCS release."""

import json
import os

from whmcsinstaller.constants import (
    APP_NAME,
    INSTALLER_CONFIG_ENV,
    INSTALLER_DIR,
    INSTALLER_SCRIPT,
    MYSQL_CHARSET,
)
from whmcsinstaller.errors import CommandError, NativeInstallerError
from whmcsinstaller.errors_catalog import actionable_error
from whmcsinstaller.models import AdminCredentials, DatabaseCredentials, ProcessResult


class NativeInstallerService:
    """Runs `install/bin/installer.php` non-interactively.

    The configuration payload holds every secret of the install, so it is
    handed over through the environment and stdin only.
    """

    COMMAND_TEMPLATE = [
        "%(php)s",
        "-f",
        "%(path)s/" + INSTALLER_SCRIPT,
        "--",
        "-i",
        "-n",
        "-c",
    ]

    def __init__(self, logger, command_runner, filesystem_service, php_binary: str = "/usr/bin/php"):
        self.logger = logger
        self.command_runner = command_runner
        self.filesystem_service = filesystem_service
        self.php_binary = php_binary

    def build_payload(
        self,
        admin: AdminCredentials,
        license_key: str,
        database: DatabaseCredentials,
        encryption_hash: str,
    ) -> str:
        return json.dumps(
            {
                "admin": {
                    "username": admin.username,
                    "password": admin.password,
                },
                "configuration": {
                    "license": license_key,
                    "db_host": database.hostname,
                    "db_username": database.username,
                    "db_password": database.password,
                    "db_name": database.database,
                    "cc_encryption_hash": encryption_hash,
                    "mysql_charset": MYSQL_CHARSET,
                },
            }
        )

    def run(self, docroot: str, payload: str, timeout=None) -> ProcessResult:
        script = os.path.join(docroot, INSTALLER_SCRIPT)
        if not os.path.isfile(script):
            raise NativeInstallerError(f"{APP_NAME} installer not found: {script}")

        self.logger.info("Running %s installer in %s", APP_NAME, docroot)
        try:
            result = self.command_runner.run_template(
                self.COMMAND_TEMPLATE,
                {"php": self.php_binary, "path": docroot.rstrip("/")},
                env_vars={INSTALLER_CONFIG_ENV: payload},
                stdin_env=INSTALLER_CONFIG_ENV,
                timeout=timeout,
            )
        except CommandError as exc:
            raise NativeInstallerError(f"{APP_NAME} installer could not run: {exc}") from exc

        if not result.success:
            message = actionable_error(
                "native_installer_failed",
                app=APP_NAME,
                installer_dir=self.installer_dir(docroot),
            )
            if result.output:
                message = f"{message}\n{result.output}"
            raise NativeInstallerError(message)

        return result

    def installer_dir(self, docroot: str) -> str:
        return os.path.join(docroot, INSTALLER_DIR)

    def remove_installer(self, docroot: str):
        installer_dir = self.installer_dir(docroot)
        if not self.filesystem_service.cleanup_dir(installer_dir) or os.path.exists(installer_dir):
            raise NativeInstallerError(
                f"Installer directory could not be removed: {installer_dir}"
            )
        self.logger.info("Removed installer directory %s", installer_dir)
