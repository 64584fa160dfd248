"""Workspace plugin - wires connection state, bridge, tree, status and commands.

This is the composition root used by every UI shell. It owns the single
ConnectionState instance and hands it to each component.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import httpx

from panelfs.core.config_service import ConfigService
from panelfs.core.diagnostics import install_jsonl_sink
from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.http import PanelTransport
from panelfs.core.interfaces import IUI
from panelfs.core.log_bus import install_log_file_sink
from panelfs.core.logging import get_logger
from panelfs.core.scheduler import AsyncioScheduler, Scheduler
from panelfs.core.state import ConnectionState

from plugins.panel_connect.flow import ConnectFlow
from plugins.remote_fs.service import RemoteFileSystem
from plugins.status_bar.poller import PowerSignal, StatusPoller
from plugins.tree_view.plugin import TreeViewPlugin

_logger = get_logger(__name__)

AUTHENTICATE_ACTION = "Authenticate"


class WorkspacePlugin:
    """Host-shell command surface."""

    def __init__(
        self,
        ui: IUI,
        *,
        config: ConfigService | None = None,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.ui = ui
        self.config = config or ConfigService()
        self.scheduler = scheduler or AsyncioScheduler()
        self.bus = bus or get_event_bus()

        resolver = self.config.resolver
        self.state = ConnectionState(bus=self.bus)
        self.transport = PanelTransport.from_resolver(resolver, client=client)
        self.fs = RemoteFileSystem(
            self.state,
            self.transport,
            scheduler=self.scheduler,
            bus=self.bus,
            on_authentication_failed=self._on_authentication_failed,
        )
        self.tree = TreeViewPlugin(self.fs, scheduler=self.scheduler, bus=self.bus, ui=ui)
        self.status = StatusPoller(
            self.state,
            self.transport,
            ui=ui,
            scheduler=self.scheduler,
            bus=self.bus,
            interval=resolver.resolve_float("status.poll_interval", 5.0),
        )

        self._auth_prompt: asyncio.Task[None] | None = None
        self._log_sink: Any = None

    # ------------------------------------------------------------------
    # lifecycle

    def activate(self, *, poll: bool = True) -> bool:
        """Hydrate the connection and start background refreshes.

        Returns:
            True if a persisted connection was restored.
        """
        policy = self.config.resolver.resolve_logging_policy()
        if policy.file and self._log_sink is None:
            self._log_sink = install_log_file_sink(Path(policy.file))
        install_jsonl_sink(resolver=self.config.resolver, bus=self.bus)

        connected = self.state.hydrate(self.config.resolver)
        if poll:
            self.status.start()
        return connected

    async def aclose(self) -> None:
        self.status.stop()
        if self._auth_prompt is not None and not self._auth_prompt.done():
            self._auth_prompt.cancel()
        await self.transport.aclose()

    # ------------------------------------------------------------------
    # commands

    async def connect(self) -> bool:
        flow = ConnectFlow(
            self.state,
            self.transport,
            self.config,
            self.ui,
            on_connected=self._on_connected,
        )
        return await flow.run()

    def _on_connected(self) -> None:
        self.tree.refresh()
        self.status.request_refresh()

    def reset(self) -> None:
        """Forget the active server."""
        self.state.clear()
        self.fs.clear_cache()
        self.tree.refresh()
        self.status.request_refresh()
        _logger.info("Connection reset")

    def refresh(self) -> None:
        self.tree.refresh()

    def clear_api_key(self) -> None:
        self.config.unset_value("panel.api_key")
        self.state.clear()
        self.status.request_refresh()

    def reload_config(self) -> None:
        """Re-read configuration and re-derive the connection from it."""
        self.config.reload()
        resolver = self.config.resolver
        self.transport.proxy_base = resolver.resolve_str("panel.proxy_url")
        self.state.hydrate(resolver)
        self.status.request_refresh()

    async def open_panel_url(self) -> str | None:
        """Panel page of the connected server, or None when nothing is connected."""
        panel_url = self.config.get("panel.url")
        server_id = self.config.get("panel.server_id")
        if not self.state.is_connected or not panel_url or not server_id:
            await self.ui.show_error("No server connected")
            return None
        return f"{panel_url.rstrip('/')}/server/{server_id}"

    async def power(self, signal: PowerSignal | str) -> bool:
        return await self.status.send_power_signal(signal)

    async def show_power_menu(self) -> PowerSignal | None:
        return await self.status.show_power_menu()

    # ------------------------------------------------------------------
    # authentication failure

    def _on_authentication_failed(self) -> None:
        if self._auth_prompt is not None and not self._auth_prompt.done():
            return
        self._auth_prompt = asyncio.get_running_loop().create_task(self._reauthenticate())

    async def _reauthenticate(self) -> None:
        host = urlsplit(self.state.server_api_url).netloc
        choice = await self.ui.show_warning(
            f"Authentication failed for {host}.", AUTHENTICATE_ACTION
        )
        if choice != AUTHENTICATE_ACTION:
            return
        self.clear_api_key()
        await self.connect()

    async def wait_for_reauthentication(self) -> None:
        if self._auth_prompt is not None:
            await self._auth_prompt
