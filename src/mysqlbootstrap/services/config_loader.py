"""Entrypoint settings file (YAML)."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from mysqlbootstrap.errors import BootstrapError

# key -> expected YAML scalar type
SETTING_TYPES: Dict[str, type] = {
    "init_scripts_dir": str,
    "service_user": str,
    "zoneinfo_dir": str,
    "server_command": str,
    "client_command": str,
    "admin_command": str,
    "tzinfo_command": str,
    "log_format": str,
    "verbose": bool,
    "dry_run": bool,
}

TYPE_NAMES = {str: "string", bool: "boolean (true/false)"}


class ConfigLoader:
    """Reads entrypoint settings; credentials never come from this file."""

    SUPPORTED_KEYS = frozenset(SETTING_TYPES)

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise BootstrapError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise BootstrapError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise BootstrapError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            raise BootstrapError(f"Unknown configuration keys: {', '.join(unknown)}")

        self.validate_types(parsed, config_path)
        return parsed

    @staticmethod
    def validate_types(values: Dict[str, Any], config_path: str):
        for key, value in values.items():
            expected = SETTING_TYPES[key]
            if not isinstance(value, expected):
                raise BootstrapError(
                    f"Invalid value for '{key}' in '{config_path}': expected a "
                    f"{TYPE_NAMES[expected]}, got {value!r}"
                )
