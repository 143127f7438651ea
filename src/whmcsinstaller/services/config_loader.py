"""Configuration loader for WHMCS Installer."""

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from whmcsinstaller.errors import InstallerError
from whmcsinstaller.models import InstallerSettings


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {field.name for field in fields(InstallerSettings)}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InstallerError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InstallerError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InstallerError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InstallerError(f"Unknown configuration keys: {unknown_list}")

        enable_command = parsed.get("scheduling_enable_command")
        if enable_command is not None and not (
            isinstance(enable_command, list) and all(isinstance(part, str) for part in enable_command)
        ):
            raise InstallerError("`scheduling_enable_command` must be a list of strings.")

        return parsed

    def load_settings(self, config_path: Optional[str], **overrides: Any) -> InstallerSettings:
        values = self.load(config_path)
        values.update({key: value for key, value in overrides.items() if value is not None})
        return InstallerSettings(**values)
