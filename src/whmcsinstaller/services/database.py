"""MySQL database provisioning for WHMCS Installer."""

import re
import shutil
from typing import List, Optional

from whmcsinstaller.errors import CommandError, ProvisioningError
from whmcsinstaller.models import DatabaseCredentials


class DatabaseProvisioner:
    """Creates and drops an isolated database plus user per installation.

    SQL is sent to the `mysql` client on stdin so passwords never appear in
    the process list.
    """

    MAX_DATABASE_NAME = 64
    MAX_USERNAME = 32
    PASSWORD_LENGTH = 16
    SUFFIX_LENGTH = 4

    def __init__(
        self,
        logger,
        command_runner,
        credential_generator,
        mysql_binary: str = "mysql",
        host: str = "localhost",
        defaults_file: Optional[str] = None,
        enabled: bool = True,
        charset: str = "utf8",
    ):
        self.logger = logger
        self.command_runner = command_runner
        self.credential_generator = credential_generator
        self.mysql_binary = mysql_binary
        self.host = host
        self.defaults_file = defaults_file
        self._enabled = enabled
        self.charset = charset

    def enabled(self) -> bool:
        return self._enabled and shutil.which(self.mysql_binary) is not None

    def generate(self, account: str, hostname: str, connection_limit: int) -> DatabaseCredentials:
        prefix = self._slug(account)[:12].strip("_") or "app"
        stem = self._slug(hostname)[:16].strip("_") or "site"
        suffix = self.credential_generator.generate(self.SUFFIX_LENGTH).lower()
        name = f"{prefix}_{stem}_{suffix}"

        return DatabaseCredentials(
            hostname=self.host,
            username=name[: self.MAX_USERNAME],
            password=self.credential_generator.generate(self.PASSWORD_LENGTH),
            database=name[: self.MAX_DATABASE_NAME],
            connection_limit=connection_limit,
        )

    def create(self, account: str, hostname: str, connection_limit: int) -> DatabaseCredentials:
        credentials = self.generate(account, hostname, connection_limit)
        self.logger.info(
            "Creating database %s for %s (connection limit %s)",
            credentials.database,
            hostname,
            credentials.connection_limit,
        )

        user = f"'{credentials.username}'@'{self._grant_host()}'"
        statements = [
            f"CREATE DATABASE `{credentials.database}` CHARACTER SET {self.charset};",
            (
                f"CREATE USER {user} IDENTIFIED BY '{credentials.password}' "
                f"WITH MAX_USER_CONNECTIONS {credentials.connection_limit};"
            ),
            f"GRANT ALL PRIVILEGES ON `{credentials.database}`.* TO {user};",
            "FLUSH PRIVILEGES;",
        ]

        try:
            self._execute(statements)
        except CommandError as exc:
            raise ProvisioningError(
                f"Failed to create database {credentials.database}: {exc}"
            ) from exc

        return credentials

    def drop(self, database: str, username: str) -> bool:
        self.logger.info("Dropping database %s and user %s", database, username)
        statements = [
            f"DROP DATABASE IF EXISTS `{self._identifier(database)}`;",
            f"DROP USER IF EXISTS '{self._identifier(username)}'@'{self._grant_host()}';",
        ]
        try:
            self._execute(statements)
        except CommandError as exc:
            self.logger.warning("Could not drop database %s: %s", database, exc)
            return False
        return True

    def _execute(self, statements: List[str]):
        cmd = [self.mysql_binary]
        if self.defaults_file:
            cmd.append(f"--defaults-extra-file={self.defaults_file}")
        cmd.append("--batch")

        self.command_runner.run(
            cmd,
            check=True,
            capture_output=True,
            input_text="\n".join(statements) + "\n",
        )

    def _grant_host(self) -> str:
        return "localhost" if self.host in ("localhost", "127.0.0.1") else "%"

    @staticmethod
    def _slug(value: str) -> str:
        return re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_")

    @staticmethod
    def _identifier(value: str) -> str:
        if not re.fullmatch(r"[A-Za-z0-9_]+", value or ""):
            raise ProvisioningError(f"Refusing unsafe database identifier: `{value}`.")
        return value
