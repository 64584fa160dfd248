"""Connect flow - validate an API key, pick a server, fill the connection state."""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any
from urllib.parse import urlsplit

import httpx

from panelfs.core.config import panel_root_url
from panelfs.core.config_service import ConfigService
from panelfs.core.errors import ConfigError, ConnectError
from panelfs.core.http import PanelTransport
from panelfs.core.interfaces import IUI, PickItem
from panelfs.core.logging import get_logger
from panelfs.core.state import ConnectionState

_logger = get_logger(__name__)

API_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_]{32,128}$")
SHORT_BODY_CHARS = 50


def is_valid_api_key(value: str) -> bool:
    return bool(API_KEY_PATTERN.match(value))


def validate_api_key(value: str) -> str | None:
    """Input validator: None when valid, otherwise the message to show."""
    normalized = value.strip()
    if not normalized:
        return "Enter a valid API key"
    if is_valid_api_key(normalized):
        return None
    return "Invalid API key format"


def validate_panel_url(value: str) -> str | None:
    if not value or not value.strip():
        return "Enter a valid URL"
    parts = urlsplit(value.strip())
    if parts.scheme not in ("http", "https"):
        return f"Unsupported protocol: {parts.scheme}"
    if not parts.netloc:
        return "Enter a valid URL"
    return None


def _failure_detail(response: httpx.Response) -> str:
    text = response.text
    try:
        body: Any = json.loads(text)
        _logger.verbose(json.dumps(body, indent="\t"))
        return str(body["errors"][0]["detail"])
    except (ValueError, KeyError, IndexError, TypeError):
        _logger.verbose(text)
        suffix = "..." if len(text) > SHORT_BODY_CHARS else ""
        return text[:SHORT_BODY_CHARS] + suffix


class ConnectFlow:
    """One-shot interactive connect procedure.

    Output contract: on success the connection state holds the selected
    server's files API URL and the bearer credential, the panel URL, server
    id and key are persisted, and on_connected fires. Any failure or
    cancellation leaves the state untouched.
    """

    def __init__(
        self,
        state: ConnectionState,
        transport: PanelTransport,
        config: ConfigService,
        ui: IUI,
        *,
        on_connected: Callable[[], None] | None = None,
    ) -> None:
        self._state = state
        self._transport = transport
        self._config = config
        self._ui = ui
        self._on_connected = on_connected or (lambda: None)

    async def run(self) -> bool:
        """Run the flow. Returns True when a server was selected."""
        try:
            return await self._run()
        except (ConnectError, ConfigError) as e:
            _logger.verbose(f"connect failed: {e.message}")
            await self._ui.show_error(e.message)
            return False

    async def _run(self) -> bool:
        panel_url = await self._panel_url()
        if panel_url is None:
            return False

        api_key = await self._api_key()
        if api_key is None:
            return False

        root = panel_root_url(panel_url)
        servers = await self._fetch_servers(root, api_key)
        self._config.set_value("panel.api_key", api_key)
        _logger.info(f"Connected successfully, {len(servers)} servers found")

        selected = await self._ui.quick_pick(
            [self._server_item(s) for s in servers],
            placeholder="Select a server to connect to...",
        )
        if selected is None:
            _logger.verbose("User cancelled server selection")
            return False

        attributes: dict[str, Any] = selected.value
        server_id = str(attributes["identifier"])
        self._state.connect(root, server_id, api_key)
        _logger.verbose(f"Using server identifier: {server_id}")

        self._config.set_value("panel.url", root)
        self._config.set_value("panel.server_id", server_id)

        self._on_connected()
        return True

    async def _panel_url(self) -> str | None:
        configured = self._config.get("panel.url")
        if configured:
            problem = validate_panel_url(configured)
            if problem:
                raise ConnectError(f"Invalid panel URL in configuration: {problem}")
            return configured

        entered = await self._ui.input_box(
            "Enter your panel URL",
            placeholder="https://panel.example.com",
            validate=validate_panel_url,
        )
        if entered is None:
            return None
        problem = validate_panel_url(entered)
        if problem:
            raise ConnectError(problem)
        return entered.strip()

    async def _api_key(self) -> str | None:
        configured = self._config.get("panel.api_key")
        if configured:
            return configured

        entered = await self._ui.input_box(
            "Enter your panel API key",
            placeholder="Enter your panel client API key here...",
            password=True,
            validate=validate_api_key,
        )
        if entered is None:
            return None
        normalized = entered.strip()
        if not is_valid_api_key(normalized):
            raise ConnectError("Invalid API key format")
        return normalized

    async def _fetch_servers(self, root: str, api_key: str) -> list[dict[str, Any]]:
        _logger.info(f"Connecting to {root}...")
        try:
            response = await self._transport.request(
                "GET",
                f"{root}/api/client/",
                auth_header=f"Bearer {api_key}",
                accept="application/json",
            )
        except httpx.HTTPError as e:
            _logger.verbose(f"{type(e).__name__}: {e}")
            raise ConnectError(f"Failed to connect to the provided address: {e}") from e

        _logger.verbose(f"Connection response: {response.status_code} {response.reason_phrase}")
        if not response.is_success:
            raise ConnectError(
                f"Failed to connect to the panel ({response.status_code}): "
                f"{_failure_detail(response)}"
            )

        try:
            data = response.json()["data"]
            return [item["attributes"] for item in data]
        except (ValueError, KeyError, TypeError) as e:
            raise ConnectError(f"Unexpected server list response: {e}") from e

    @staticmethod
    def _server_item(attributes: dict[str, Any]) -> PickItem:
        return PickItem(
            label=str(attributes.get("name", "")),
            description=str(attributes.get("identifier", "")),
            detail=str(attributes.get("description") or ""),
            value=attributes,
        )
