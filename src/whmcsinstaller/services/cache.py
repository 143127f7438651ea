"""Cache backends for release-catalog snapshots."""

import json
import os
import tempfile
from typing import Any, Dict

ABSENT = object()


class MemoryCache:
    """Process-local key/value cache."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = ABSENT) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)


class JsonFileCache:
    """Cache persisted to a JSON file so snapshots survive between runs."""

    def __init__(self, cache_file: str, logger):
        self.cache_file = cache_file
        self.logger = logger

    def get(self, key: str, default: Any = ABSENT) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any):
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str):
        data = self._load()
        if data.pop(key, ABSENT) is not ABSENT:
            self._save(data)

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.cache_file):
            return {}

        try:
            with open(self.cache_file, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Ignoring unreadable cache file '%s': %s", self.cache_file, exc)
            return {}

        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]):
        directory = os.path.dirname(self.cache_file) or "."
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix="release-cache-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(data, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.cache_file)
        except OSError as exc:
            self.logger.warning("Could not write cache file '%s': %s", self.cache_file, exc)
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
