"""ConfigService: structured configuration access and mutation.

The connect flow and workspace commands never edit YAML text. They read
effective values through the resolver and persist single keys here.
Storage is the user config YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from panelfs.core.config import ALLOWED_LOGGING_LEVELS, ConfigResolver, default_user_config_path
from panelfs.core.errors import ConfigError


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def _dump_yaml_dict(data: dict[str, Any]) -> str:
    # Deterministic formatting.
    return yaml.safe_dump(
        data,
        sort_keys=True,
        default_flow_style=False,
        allow_unicode=False,
    )


def _set_nested(data: dict[str, Any], key_path: str, value: Any) -> None:
    parts = [p for p in key_path.split(".") if p]
    if not parts:
        raise ConfigError("Empty key path")

    cur: dict[str, Any] = data
    for part in parts[:-1]:
        nxt = cur.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[part] = nxt
        cur = nxt

    cur[parts[-1]] = value


def _unset_nested(data: dict[str, Any], key_path: str) -> bool:
    parts = [p for p in key_path.split(".") if p]
    if not parts:
        raise ConfigError("Empty key path")

    cur: dict[str, Any] = data
    stack: list[tuple[dict[str, Any], str]] = []

    for part in parts[:-1]:
        nxt = cur.get(part)
        if not isinstance(nxt, dict):
            return False
        stack.append((cur, part))
        cur = nxt

    leaf = parts[-1]
    if leaf not in cur:
        return False

    del cur[leaf]

    # Prune empty parent mappings.
    while stack and cur == {}:
        parent, key = stack.pop()
        del parent[key]
        cur = parent

    return True


def _validate_minimal(key_path: str, value: object) -> None:
    if key_path == "logging.level":
        if not isinstance(value, str) or value.strip().lower() not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key_path}': {value!r}. Allowed values: {allowed}")
    elif key_path.startswith("panel.") and value is not None and not isinstance(value, str):
        raise ConfigError(f"Config key '{key_path}' must be a string, got {type(value).__name__}")


@dataclass(frozen=True)
class EffectiveConfigItem:
    key: str
    value: Any
    source: str


class ConfigService:
    """Structured configuration API for the workspace and the CLI."""

    def __init__(
        self,
        *,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self._resolver = ConfigResolver(
            cli_args=cli_args,
            user_config_path=user_config_path or default_user_config_path(),
            system_config_path=system_config_path,
            defaults=defaults,
        )

    @property
    def resolver(self) -> ConfigResolver:
        return self._resolver

    @property
    def user_config_path(self) -> Path:
        return self._resolver.user_config_path

    def get(self, key_path: str, default: str = "") -> str:
        """Return an effective string value (stripped; blank means unset)."""
        return self._resolver.resolve_str(key_path, default)

    def get_effective_items(self) -> list[EffectiveConfigItem]:
        items: list[EffectiveConfigItem] = []
        resolved = self._resolver.resolve_all()
        for k in sorted(resolved.keys()):
            src = resolved[k]
            items.append(EffectiveConfigItem(key=k, value=src.value, source=src.source))
        return items

    def reload(self) -> None:
        """Drop cached file contents and re-read every layer."""
        self._reinit_resolver()

    def _reinit_resolver(self) -> None:
        self._resolver = ConfigResolver(
            cli_args=self._resolver.cli_args,
            user_config_path=self.user_config_path,
            system_config_path=self._resolver.system_config_path,
            defaults=self._resolver.defaults,
        )

    def set_value(self, key_path: str, value: Any) -> None:
        """Set a value in the user config file.

        A None value removes the key instead.
        """
        if value is None:
            self.unset_value(key_path)
            return

        _validate_minimal(key_path, value)
        path = self.user_config_path
        data = _load_yaml_dict(path)
        _set_nested(data, key_path, value)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_dump_yaml_dict(data), encoding="utf-8")
        self._reinit_resolver()

    def unset_value(self, key_path: str) -> None:
        """Remove a key from the user config file (reset to inherit).

        This is idempotent: if the key does not exist, no change is made.
        Empty parent mappings are pruned recursively.
        """
        path = self.user_config_path
        data = _load_yaml_dict(path)

        changed = _unset_nested(data, key_path)
        if not changed:
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(_dump_yaml_dict(data), encoding="utf-8")
        self._reinit_resolver()
