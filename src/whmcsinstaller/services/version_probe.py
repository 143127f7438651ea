"""Detection of installed WHMCS versions."""

import os
from typing import Optional

from whmcsinstaller.constants import LICENSE_MARKER, VERSION_MARKER
from whmcsinstaller.errors import ValidationError


class VersionProbe:
    def __init__(
        self,
        lifecycle,
        metadata_store,
        version_marker: str = VERSION_MARKER,
        license_marker: str = LICENSE_MARKER,
    ):
        self.lifecycle = lifecycle
        self.metadata_store = metadata_store
        self.version_marker = version_marker
        self.license_marker = license_marker

    def is_installed(self, hostname: str, path: str = "") -> bool:
        docroot = self._docroot(hostname, path)
        if docroot is None:
            return False
        return os.path.isfile(os.path.join(docroot, self.license_marker))

    def get_version(self, hostname: str, path: str = "") -> Optional[str]:
        """Returns the installed version, or None when nothing is installed."""
        docroot = self._docroot(hostname, path)
        if docroot is None:
            return None

        marker = os.path.join(docroot, self.version_marker)
        if not os.path.isfile(marker):
            return None

        with open(marker, "r", encoding="utf-8", errors="ignore") as file_obj:
            tokens = file_obj.read().split()
        if tokens:
            return tokens[0]

        record = self.metadata_store.read(docroot) or {}
        return record.get("version")

    def _docroot(self, hostname: str, path: str) -> Optional[str]:
        # A path that cannot name a docroot cannot hold an install.
        try:
            return self.lifecycle.document_root(hostname, path)
        except ValidationError:
            return None
