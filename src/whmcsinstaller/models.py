"""Shared domain models for WHMCS Installer."""

import os
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    ACL_MAX,
    ACL_MIN,
    ADMIN_USERNAME,
    CRON_SCHEDULE,
    CRON_SCRIPT,
    DEFAULT_CONNECTION_LIMIT,
    VERSION_CHECK_URL,
)


@dataclass(frozen=True)
class InstallOptions:
    """Caller input for a single install."""

    hostname: str
    path: str
    version: str
    license_key: str
    user: Optional[str] = None
    password: Optional[str] = None

    def with_admin(self, user: str, password: str) -> "InstallOptions":
        return replace(self, user=user, password=password)

    def to_metadata(self) -> Dict[str, Any]:
        """Options as persisted after install; the admin password is never stored."""
        data = asdict(self)
        data.pop("password", None)
        return data


@dataclass(frozen=True)
class Release:
    version: str
    url: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatabaseCredentials:
    hostname: str
    username: str
    password: str
    database: str
    connection_limit: int

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "hostname": self.hostname,
            "username": self.username,
            "database": self.database,
            "connection_limit": self.connection_limit,
        }


@dataclass(frozen=True)
class AdminCredentials:
    password: str
    username: str = ADMIN_USERNAME


@dataclass(frozen=True)
class AclProfile:
    name: str
    writable_paths: Tuple[str, ...]


ACL_PROFILES: Dict[str, AclProfile] = {
    ACL_MIN: AclProfile(
        name=ACL_MIN,
        writable_paths=("attachments", "downloads", "templates_c", ".htaccess"),
    ),
    ACL_MAX: AclProfile(
        name=ACL_MAX,
        writable_paths=("attachments", "downloads", "templates_c"),
    ),
}


@dataclass(frozen=True)
class ScheduledJob:
    command: str
    schedule: str = CRON_SCHEDULE
    user: Optional[str] = None

    @classmethod
    def for_docroot(cls, docroot: str, user: Optional[str] = None) -> "ScheduledJob":
        return cls(command=f"php -q {docroot.rstrip('/')}/{CRON_SCRIPT}", user=user)

    @property
    def line(self) -> str:
        return f"{self.schedule} {self.command}"


@dataclass(frozen=True)
class ProcessResult:
    success: bool
    output: str
    returncode: int


class InstallState(str, Enum):
    VALIDATING = "validating"
    RESOLVING_RELEASE = "resolving_release"
    FETCHING = "fetching"
    PROVISIONING_DATABASE = "provisioning_database"
    RUNNING_NATIVE_INSTALLER = "running_native_installer"
    SCHEDULING_JOB = "scheduling_job"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallResult:
    success: bool
    state: InstallState
    error: Optional[Exception] = None
    failed_state: Optional[InstallState] = None
    options: Optional[InstallOptions] = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def message(self) -> str:
        if self.success:
            return "Installation complete."
        return str(self.error) if self.error else "Installation failed."


@dataclass
class InstallerSettings:
    """Runtime settings; every field is also a supported config-file key."""

    docroot_base: str = "/var/www"
    account: str = "webapps"
    metadata_file: str = os.path.join("~", ".whmcsinstaller", "metadata.json")
    cache_file: Optional[str] = None
    journal_file: Optional[str] = None
    version_check_url: str = VERSION_CHECK_URL
    allow_insecure_http: bool = False
    download_timeout: float = 60.0
    retry_count: int = 1
    retry_backoff_seconds: float = 2.0
    installer_timeout: float = 600.0
    php_binary: str = "/usr/bin/php"
    mysql_binary: str = "mysql"
    mysql_host: str = "localhost"
    mysql_defaults_file: Optional[str] = None
    database_enabled: bool = True
    connection_limit: int = DEFAULT_CONNECTION_LIMIT
    crontab_binary: str = "crontab"
    scheduling_permitted: bool = True
    scheduling_enabled: bool = True
    scheduling_enable_command: Optional[List[str]] = None
    verbose: bool = False
    log_file: Optional[str] = None
