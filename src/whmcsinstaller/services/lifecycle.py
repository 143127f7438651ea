"""Generic web-application lifecycle: docroot lookup and removal sweep."""

import os
from pathlib import Path
from typing import Optional, Protocol

from whmcsinstaller.constants import DELETE_SCOPES
from whmcsinstaller.errors import ValidationError


class ApplicationLifecycle(Protocol):
    def document_root(self, hostname: str, path: str = "") -> Optional[str]: ...

    def docroot_user(self, docroot: str) -> Optional[str]: ...

    def uninstall(self, hostname: str, path: str = "", delete_scope: str = "all") -> bool: ...


class WebappLifecycle:
    """Docroots live at `<docroot_base>/<hostname>/<path>`."""

    def __init__(
        self,
        logger,
        docroot_base: str,
        validation_service,
        archive_service,
        filesystem_service,
        metadata_store,
        database_provisioner,
    ):
        self.logger = logger
        self.docroot_base = docroot_base
        self.validation_service = validation_service
        self.archive_service = archive_service
        self.filesystem_service = filesystem_service
        self.metadata_store = metadata_store
        self.database_provisioner = database_provisioner

    def document_root(self, hostname: str, path: str = "") -> Optional[str]:
        base = Path(self.docroot_base).resolve()
        candidate = (base / hostname / self.validation_service.normalize_path(path)).resolve()
        if not self.archive_service.is_within_dir(base, candidate):
            return None
        if not candidate.is_dir():
            return None
        return str(candidate)

    def docroot_user(self, docroot: str) -> Optional[str]:
        try:
            return self.filesystem_service.owner_name(docroot)
        except OSError:
            return None

    def uninstall(self, hostname: str, path: str = "", delete_scope: str = "all") -> bool:
        if delete_scope not in DELETE_SCOPES:
            raise ValidationError(
                f"Unknown delete scope `{delete_scope}`. Use one of: {', '.join(DELETE_SCOPES)}."
            )

        docroot = self.document_root(hostname, path)
        if docroot is None:
            self.logger.error("Nothing to uninstall: no document root for %s/%s", hostname, path)
            return False

        record = self.metadata_store.read(docroot) or {}
        success = True

        if delete_scope in ("all", "db"):
            database = record.get("database") or {}
            if database.get("database") and database.get("username"):
                success = self.database_provisioner.drop(
                    database["database"],
                    database["username"],
                ) and success
            else:
                self.logger.warning("No database recorded for %s; skipping drop.", docroot)

        if delete_scope in ("all", "files"):
            self.logger.info("Removing application files from %s", docroot)
            success = self.filesystem_service.clear_dir(docroot) and success

        self.metadata_store.delete(docroot)
        return success
