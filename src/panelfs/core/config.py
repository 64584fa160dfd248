"""Configuration resolver with layered priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (PANELFS_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlsplit

import yaml

from panelfs.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    color: bool
    file: str | None


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            keys.update(_flatten_keys(value, key_path))
        else:
            keys.add(key_path)
    return keys


def default_user_config_path() -> Path:
    return Path.home() / ".config/panelfs/config.yaml"


class ConfigResolver:
    """Resolve configuration with strict priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'panel': {'url': 'https://panel.example.com'}},
            user_config_path=Path('~/.config/panelfs/config.yaml')
        )

        url, source = resolver.resolve('panel.url')
        # url = 'https://panel.example.com', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or default_user_config_path()
        self.system_config_path = system_config_path or Path("/etc/panelfs/config.yaml")
        self.defaults = self._default_config() if defaults is None else defaults

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'panel.url')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._from_user_config(key)
        if value is not None:
            return value, "user_config"

        value = self._from_system_config(key)
        if value is not None:
            return value, "system_config"

        value = self._from_defaults(key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_str(self, key: str, default: str = "") -> str:
        """Resolve a string value; missing keys yield the default.

        Surrounding whitespace is stripped, so a blank value counts as unset.
        """
        try:
            value, _src = self.resolve(key)
        except ConfigError:
            return default
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        return value.strip()

    def resolve_float(self, key: str, default: float) -> float:
        try:
            value, _src = self.resolve(key)
        except ConfigError:
            return default
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config key '{key}' must be a number, got {value!r}") from e
        if number <= 0:
            raise ConfigError(f"Config key '{key}' must be positive, got {value!r}")
        return number

    def resolve_bool(self, key: str, default: bool) -> bool:
        """Resolve a boolean; environment strings like 'yes'/'off' are accepted."""
        try:
            value, _src = self.resolve(key)
        except ConfigError:
            return default
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in _TRUE_VALUES:
            return True
        if s in _FALSE_VALUES:
            return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve canonical logging policy.

        Raises:
            ConfigError: If logging.level is not one of the allowed names.
        """
        level = self.resolve_str("logging.level", DEFAULT_LOGGING_LEVEL).lower()
        if level not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid 'logging.level': {level!r}. Allowed values: {allowed}")

        log_file = self.resolve_str("logging.file") or None
        return LoggingPolicy(
            level_name=level,
            color=self.resolve_bool("logging.color", True),
            file=log_file,
        )

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve every key found in any source.

        Returns:
            Dict of key -> ConfigSource
        """
        result: dict[str, ConfigSource] = {}

        all_keys: set[str] = set()
        all_keys.update(_flatten_keys(self.cli_args))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))
        all_keys.update(_flatten_keys(self.defaults))

        for key in sorted(all_keys):
            try:
                value, source = self.resolve(key)
                result[key] = ConfigSource(value=value, source=source)
            except ConfigError:
                continue

        return result

    def _from_cli(self, key: str) -> Any | None:
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: PANELFS_KEY_NAME
        Example: PANELFS_PANEL_URL, PANELFS_LOGGING_LEVEL
        """
        env_key = f"PANELFS_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _from_user_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_user_config(), key)

    def _from_system_config(self, key: str) -> Any | None:
        return self._get_nested(self._get_system_config(), key)

    def _from_defaults(self, key: str) -> Any | None:
        return self._get_nested(self.defaults, key)

    def _get_user_config(self) -> dict[str, Any]:
        """Load user config file (cached)."""
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        """Load system config file (cached)."""
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'panel': {'url': 'https://panel.example.com'}}
            _get_nested(data, 'panel.url') -> 'https://panel.example.com'
        """
        current: Any = data

        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            # Connection (persisted by the connect flow)
            "panel": {
                "url": "",
                "server_id": "",
                "api_key": "",
                "proxy_url": "",
            },
            "http": {
                "timeout": 30,
            },
            "status": {
                "poll_interval": 5,
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "file": "",
                "color": True,
            },
            "diagnostics": {
                "enabled": False,
                "path": str(Path.home() / ".panelfs" / "diagnostics.jsonl"),
            },
        }


def build_server_api_url(panel_url: str, server_id: str) -> str:
    """Return the files API base for one server on a panel."""
    return f"{panel_url.rstrip('/')}/api/client/servers/{server_id}/files"


def panel_root_url(url: str) -> str:
    """Reduce any panel URL to scheme://authority."""
    parts = urlsplit(url.strip())
    return f"{parts.scheme}://{parts.netloc}"


def proxy_url(url: str, proxy_base: str = "") -> str:
    """Route a request URL through the configured proxy, if any.

    The original URL is percent-encoded in full and appended to the proxy base.
    """
    base = proxy_base.strip()
    if not base:
        return url
    return base + quote(url, safe="!*'()")


def remove_start_slash(path: str) -> str:
    return path[1:] if path.startswith("/") else path
