"""Unit tests for the status_bar StatusPoller."""

from __future__ import annotations

import httpx
import pytest
from panelfs.core.state import ConnectionState
from plugins.status_bar.poller import PowerSignal, StatusPoller, display_state

SERVER = "/api/client/servers/a1b2c3"


def _resources(state: str) -> httpx.Response:
    return httpx.Response(200, json={"attributes": {"current_state": state}})


@pytest.fixture()
def poller(state, transport, scheduler, bus, ui) -> StatusPoller:
    return StatusPoller(state, transport, ui=ui, scheduler=scheduler, bus=bus)


def test_display_state() -> None:
    assert display_state("starting") == "Running"
    assert display_state("running") == "Running"
    assert display_state("offline") == "Offline"
    assert display_state("stopping") == "Stopping"


@pytest.mark.asyncio
async def test_disconnected_shows_no_server(transport, scheduler, bus, panel) -> None:
    poller = StatusPoller(ConnectionState(bus=bus), transport, scheduler=scheduler, bus=bus)

    await poller.refresh()
    assert poller.status_item.text == "No Server"
    assert poller.status_item.command == "connect"
    assert poller.open_button.visible is False
    assert panel.requests == []


@pytest.mark.asyncio
async def test_starting_is_displayed_as_running(poller, panel, bus) -> None:
    published: list[dict] = []
    bus.subscribe("status.changed", published.append)
    panel.route("GET", f"{SERVER}/resources", _resources("starting"))

    await poller.refresh()

    assert poller.status_item.text == "Running"
    assert poller.status_item.tooltip == "Server Status: running\nClick to show power menu"
    assert poller.status_item.command == "power-menu"
    assert poller.open_button.visible is True
    assert poller.open_button.text == "Open Server on Panel"
    assert panel.requests[0].headers["Accept"] == "application/json"
    assert published[-1]["text"] == "Running"


@pytest.mark.asyncio
async def test_fetch_failure_degrades_to_offline(poller, panel) -> None:
    panel.route("GET", f"{SERVER}/resources", httpx.Response(502))

    await poller.refresh()
    assert poller.status_item.text == "Offline"
    assert poller.status_item.tooltip == "Unable to connect to server"


@pytest.mark.asyncio
async def test_transport_error_degrades_to_offline(poller, panel) -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    panel.route("GET", f"{SERVER}/resources", boom)

    await poller.refresh()
    assert poller.status_item.text == "Offline"


@pytest.mark.asyncio
async def test_burst_of_requests_coalesces_into_one_trailing_refresh(
    poller, panel, scheduler
) -> None:
    panel.route("GET", f"{SERVER}/resources", _resources("running"))

    poller.request_refresh()
    first = poller.current_refresh
    poller.request_refresh()
    poller.request_refresh()
    assert poller.current_refresh is first

    await first
    assert poller.refresh_count == 1
    assert [t.due for t in scheduler.pending()] == [pytest.approx(0.25)]

    scheduler.advance(0.25)
    second = poller.current_refresh
    assert second is not first
    await second

    assert poller.refresh_count == 2
    assert scheduler.pending() == []
    assert len(panel.requests) == 2


@pytest.mark.asyncio
async def test_periodic_timer_requests_refresh(poller, panel, scheduler) -> None:
    panel.route("GET", f"{SERVER}/resources", _resources("offline"))

    poller.start()
    await poller.current_refresh
    scheduler.advance(5.0)
    await poller.current_refresh
    assert poller.refresh_count == 2

    poller.stop()
    assert scheduler.pending() == []


@pytest.mark.asyncio
async def test_power_signal_success_schedules_refresh(poller, panel, scheduler, ui) -> None:
    panel.route("POST", f"{SERVER}/power", httpx.Response(204))
    panel.route("GET", f"{SERVER}/resources", _resources("running"))

    assert await poller.send_power_signal("restart") is True

    (req,) = panel.requests
    assert panel.body(req) == {"signal": "restart"}
    assert req.headers["Accept"] == "application/vnd.pterodactyl.v1+json"
    assert ui.infos == ["Server restart command sent successfully"]

    assert poller.refresh_count == 0
    scheduler.advance(0.75)
    await poller.current_refresh
    assert poller.refresh_count == 1


@pytest.mark.asyncio
async def test_power_signal_failure_surfaces_detail(poller, panel, scheduler, ui) -> None:
    panel.route(
        "POST",
        f"{SERVER}/power",
        httpx.Response(409, json={"errors": [{"detail": "Server is busy"}]}),
    )

    assert await poller.send_power_signal(PowerSignal.KILL) is False
    assert ui.errors == ["Failed to kill server: Server is busy"]
    assert scheduler.pending() == []


@pytest.mark.asyncio
async def test_power_signal_requires_connection(transport, scheduler, bus, ui, panel) -> None:
    poller = StatusPoller(ConnectionState(bus=bus), transport, ui=ui, scheduler=scheduler, bus=bus)

    assert await poller.send_power_signal("start") is False
    assert ui.errors == ["No server connected"]
    assert panel.requests == []


@pytest.mark.asyncio
async def test_power_menu_sends_selected_signal(poller, panel, ui) -> None:
    panel.route("POST", f"{SERVER}/power", httpx.Response(204))
    ui.picks.append(lambda items: next(i for i in items if i.label == "Stop Server"))

    assert await poller.show_power_menu() == PowerSignal.STOP
    assert [i.label for i in ui.offered[0]] == [
        "Start Server",
        "Stop Server",
        "Restart Server",
        "Kill Server",
    ]
    assert panel.body(panel.requests[0]) == {"signal": "stop"}
