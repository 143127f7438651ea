"""Installation metadata persistence keyed by docroot."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from whmcsinstaller.errors import InstallerError


class MetadataStore:
    """Stores one JSON record per installed docroot in a single file."""

    SCHEMA_VERSION = 1

    def __init__(self, metadata_file: str, logger):
        self.metadata_file = os.path.expanduser(metadata_file)
        self.logger = logger

    def read(self, docroot: str) -> Optional[Dict[str, Any]]:
        return self._load().get("installs", {}).get(self._key(docroot))

    def write(self, docroot: str, record: Dict[str, Any]) -> bool:
        data = self._load()
        entry = dict(record)
        entry["docroot"] = self._key(docroot)
        entry["updated_at"] = self._now()
        data.setdefault("installs", {})[self._key(docroot)] = entry
        self._save(data)
        return True

    def update(self, docroot: str, **fields: Any) -> bool:
        record = self.read(docroot)
        if record is None:
            return False
        record.update(fields)
        return self.write(docroot, record)

    def delete(self, docroot: str) -> bool:
        data = self._load()
        if data.get("installs", {}).pop(self._key(docroot), None) is None:
            return False
        self._save(data)
        return True

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.metadata_file):
            return {"schema_version": self.SCHEMA_VERSION, "installs": {}}

        try:
            with open(self.metadata_file, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            raise InstallerError(
                f"Could not read metadata file '{self.metadata_file}': {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise InstallerError(f"Metadata file '{self.metadata_file}' has invalid format.")

        return data

    def _save(self, data: Dict[str, Any]):
        directory = os.path.dirname(self.metadata_file) or "."
        os.makedirs(directory, exist_ok=True)
        data["schema_version"] = self.SCHEMA_VERSION

        fd, temp_path = tempfile.mkstemp(prefix="metadata-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(data, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.metadata_file)
        except OSError as exc:
            raise InstallerError(
                f"Could not write metadata file '{self.metadata_file}': {exc}"
            ) from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

    @staticmethod
    def _key(docroot: str) -> str:
        return os.path.normpath(docroot)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
