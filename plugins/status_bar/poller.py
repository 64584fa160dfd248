"""Server status indicator and power controls.

Refreshes are single-flight with a queue depth of one: triggers that arrive
while a refresh runs collapse into one trailing refresh after a short
settle delay. A refresh never raises; failures degrade the indicator.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from enum import StrEnum

import httpx

from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.http import PanelTransport
from panelfs.core.interfaces import IUI, PickItem
from panelfs.core.logging import get_logger
from panelfs.core.scheduler import AsyncioScheduler, RepeatingTimer, Scheduler, TimerHandle
from panelfs.core.state import ConnectionState

from plugins.remote_fs.service.status import error_detail

_logger = get_logger(__name__)

POLL_INTERVAL = 5.0
SETTLE_DELAY = 0.25
POWER_REFRESH_DELAY = 0.75

POWER_ACCEPT = "application/vnd.pterodactyl.v1+json"

COMMAND_CONNECT = "connect"
COMMAND_OPEN_PANEL = "open-panel"
COMMAND_POWER_MENU = "power-menu"


class PowerSignal(StrEnum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    KILL = "kill"


POWER_MENU = (
    PickItem("Start Server", "Start the server", value=PowerSignal.START),
    PickItem("Stop Server", "Stop the server gracefully", value=PowerSignal.STOP),
    PickItem("Restart Server", "Restart the server", value=PowerSignal.RESTART),
    PickItem("Kill Server", "Force kill the server", value=PowerSignal.KILL),
)


@dataclass
class StatusItem:
    text: str = ""
    tooltip: str = ""
    command: str | None = None
    visible: bool = False

    def show(self, text: str, tooltip: str, command: str | None) -> None:
        self.text = text
        self.tooltip = tooltip
        self.command = command
        self.visible = True

    def hide(self) -> None:
        self.visible = False


def display_state(current_state: str) -> str:
    """Map the panel's power state to the label shown in the indicator."""
    state = "running" if current_state == "starting" else current_state
    return state[:1].upper() + state[1:]


class StatusPoller:
    def __init__(
        self,
        state: ConnectionState,
        transport: PanelTransport,
        *,
        ui: IUI | None = None,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        interval: float = POLL_INTERVAL,
    ) -> None:
        self._state = state
        self._transport = transport
        self._ui = ui
        self._scheduler = scheduler or AsyncioScheduler()
        self._bus = bus or get_event_bus()
        self._interval = interval

        self.status_item = StatusItem()
        self.open_button = StatusItem()

        self._in_flight = False
        self._queued = False
        self._timer: RepeatingTimer | None = None
        self._pending: list[TimerHandle] = []
        self.current_refresh: asyncio.Task[None] | None = None
        self.refresh_count = 0

    # ------------------------------------------------------------------
    # lifecycle

    def start(self) -> None:
        """Refresh now, then every poll interval."""
        self.request_refresh()
        if self._timer is None:
            self._timer = RepeatingTimer(self._scheduler, self._interval, self.request_refresh)
            self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def _later(self, delay: float) -> None:
        handle: TimerHandle | None = None

        def _fire() -> None:
            if handle in self._pending:
                self._pending.remove(handle)
            self.request_refresh()

        handle = self._scheduler.call_later(delay, _fire)
        self._pending.append(handle)

    # ------------------------------------------------------------------
    # refresh

    def request_refresh(self) -> None:
        """Start a refresh, or queue one behind the refresh already running."""
        if self._in_flight:
            self._queued = True
            return

        self._in_flight = True
        self.current_refresh = asyncio.get_running_loop().create_task(self._run_refresh())

    async def _run_refresh(self) -> None:
        try:
            await self.refresh()
        finally:
            self._in_flight = False
            if self._queued:
                self._queued = False
                self._later(SETTLE_DELAY)

    async def refresh(self) -> None:
        """Re-render both status items from the remote state. Never raises."""
        self.refresh_count += 1
        try:
            await self._refresh()
        finally:
            self._bus.publish("status.changed", asdict(self.status_item))

    async def _refresh(self) -> None:
        if not self._state.is_connected:
            self.status_item.show("No Server", "No server connected", COMMAND_CONNECT)
            self.open_button.hide()
            return

        server_root = self._state.server_root_url
        if server_root is None:
            self.status_item.show(
                "Config Error", "Server configuration incomplete", COMMAND_CONNECT
            )
            self.open_button.hide()
            return

        self.open_button.show("Open Server on Panel", "Open server in panel", COMMAND_OPEN_PANEL)

        try:
            response = await self._transport.request(
                "GET",
                f"{server_root}/resources",
                auth_header=self._state.auth_header,
                accept="application/json",
            )
            if not response.is_success:
                raise ValueError(f"Resources request failed with {response.status_code}")
            current = str(response.json()["attributes"]["current_state"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            _logger.verbose(f"Status refresh failed: {type(e).__name__}: {e}")
            self.status_item.show("Offline", "Unable to connect to server", COMMAND_CONNECT)
            return

        label = display_state(current)
        self.status_item.show(
            label,
            f"Server Status: {label.lower()}\nClick to show power menu",
            COMMAND_POWER_MENU,
        )

    # ------------------------------------------------------------------
    # power

    async def send_power_signal(self, signal: PowerSignal | str) -> bool:
        """POST a power signal. Returns True when the panel accepted it (204)."""
        signal = PowerSignal(signal)
        if not self._state.is_connected:
            await self._report_error("No server connected")
            return False

        server_root = self._state.server_root_url
        if server_root is None:
            await self._report_error("Server configuration incomplete")
            return False

        try:
            response = await self._transport.request(
                "POST",
                f"{server_root}/power",
                auth_header=self._state.auth_header,
                json={"signal": signal.value},
                accept=POWER_ACCEPT,
            )
        except httpx.HTTPError as e:
            await self._report_error(f"Failed to {signal} server: {e}")
            return False

        if response.status_code == 204:
            _logger.verbose(f"power {signal}: 204 No Content")
            self._later(POWER_REFRESH_DELAY)
            if self._ui is not None:
                await self._ui.show_info(f"Server {signal} command sent successfully")
            return True

        _logger.verbose(f"power {signal}: {response.status_code} {response.reason_phrase}")
        await self._report_error(
            f"Failed to {signal} server: {error_detail(response, 'Unknown error')}"
        )
        return False

    async def show_power_menu(self) -> PowerSignal | None:
        if self._ui is None:
            return None
        selected = await self._ui.quick_pick(POWER_MENU, placeholder="Select a power action")
        if selected is None:
            return None
        signal = PowerSignal(selected.value)
        await self.send_power_signal(signal)
        return signal

    async def _report_error(self, message: str) -> None:
        _logger.verbose(message)
        if self._ui is not None:
            await self._ui.show_error(message)
