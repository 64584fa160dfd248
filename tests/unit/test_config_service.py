"""Unit tests for core.config_service."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from panelfs.core.config_service import ConfigService
from panelfs.core.errors import ConfigError


@pytest.fixture()
def service(tmp_path: Path) -> ConfigService:
    return ConfigService(
        user_config_path=tmp_path / "home" / "config.yaml",
        system_config_path=tmp_path / "system.yaml",
    )


def test_set_value_persists_nested_key(service: ConfigService) -> None:
    service.set_value("panel.server_id", "a1b2c3")

    data = yaml.safe_load(service.user_config_path.read_text(encoding="utf-8"))
    assert data == {"panel": {"server_id": "a1b2c3"}}
    assert service.get("panel.server_id") == "a1b2c3"


def test_unset_value_prunes_empty_parents(service: ConfigService) -> None:
    service.set_value("panel.api_key", "k" * 32)
    service.unset_value("panel.api_key")

    assert yaml.safe_load(service.user_config_path.read_text(encoding="utf-8")) == {}
    assert service.get("panel.api_key") == ""


def test_unset_missing_key_is_noop(service: ConfigService) -> None:
    service.unset_value("panel.api_key")
    assert not service.user_config_path.exists()


def test_set_none_unsets(service: ConfigService) -> None:
    service.set_value("panel.url", "https://panel.example.com")
    service.set_value("panel.url", None)
    assert service.get("panel.url") == ""


def test_validation(service: ConfigService) -> None:
    with pytest.raises(ConfigError):
        service.set_value("logging.level", "chatty")
    with pytest.raises(ConfigError):
        service.set_value("panel.server_id", 12)


def test_effective_items_report_sources(service: ConfigService) -> None:
    service.set_value("panel.url", "https://panel.example.com")

    items = {i.key: i for i in service.get_effective_items()}
    assert items["panel.url"].source == "user_config"
    assert items["http.timeout"].source == "default"


def test_reload_sees_external_edits(service: ConfigService) -> None:
    service.set_value("panel.server_id", "one")
    assert service.get("panel.server_id") == "one"
    service.user_config_path.write_text("panel:\n  server_id: two\n", encoding="utf-8")

    assert service.get("panel.server_id") == "one"
    service.reload()
    assert service.get("panel.server_id") == "two"
