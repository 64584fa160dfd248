"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest

# Add repo root and src to path (for 'plugins.*' and 'panelfs.*' imports)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))
sys.path.insert(0, str(repo_root / "src"))

from panelfs.core.events import EventBus  # noqa: E402
from panelfs.core.http import PanelTransport  # noqa: E402
from panelfs.core.interfaces import PickItem  # noqa: E402
from panelfs.core.state import ConnectionState  # noqa: E402

PANEL_URL = "https://panel.example.com"
SERVER_ID = "a1b2c3"
API_KEY = "abcdefghijklmnopqrstuvwxyz012345"


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock. Timers only fire from advance(); sleep() records and moves time."""

    def __init__(self) -> None:
        self.time = 0.0
        self.timers: list[FakeTimer] = []
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.time + delay, callback)
        self.timers.append(timer)
        return timer

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.time += delay

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while True:
            due = [t for t in self.pending() if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.time = timer.due
            timer.callback()
        self.time = target


@dataclass
class FakePanel:
    """Records every request and answers through a route table.

    Routes map (method, path) to a response or a callable taking the request.
    Unrouted requests answer 404.
    """

    routes: dict[tuple[str, str], Any] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def route(self, method: str, path: str, answer: Any) -> None:
        self.routes[(method, path)] = answer

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(404, json={"errors": [{"detail": "not routed"}]})
        if callable(answer):
            return answer(request)
        return answer

    def calls(self, method: str | None = None, suffix: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method)
            and (suffix is None or r.url.path.endswith(suffix))
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @staticmethod
    def listing(*entries: dict[str, Any]) -> httpx.Response:
        return httpx.Response(
            200, json={"object": "list", "data": [{"attributes": e} for e in entries]}
        )

    @staticmethod
    def entry(name: str, **kw: Any) -> dict[str, Any]:
        return _entry(name, **kw)

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


def _entry(
    name: str,
    *,
    is_file: bool = True,
    is_symlink: bool = False,
    size: int = 0,
    mode: str = "-rw-r--r--",
) -> dict[str, Any]:
    return {
        "name": name,
        "mode": mode,
        "size": size,
        "is_file": is_file,
        "is_symlink": is_symlink,
        "created_at": "2024-05-01T10:00:00+00:00",
        "modified_at": "2024-05-02T11:30:00+00:00",
    }


class FakeUI:
    """Scripted host UI: answers are queued per prompt kind."""

    def __init__(self) -> None:
        self.inputs: list[str | None] = []
        self.picks: list[Callable[[list[PickItem]], PickItem | None]] = []
        self.warning_answers: list[str | None] = []
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.prompts: list[str] = []
        self.offered: list[list[PickItem]] = []

    async def input_box(self, prompt, *, placeholder="", password=False, validate=None):
        self.prompts.append(prompt)
        return self.inputs.pop(0) if self.inputs else None

    async def quick_pick(self, items, *, placeholder=""):
        self.offered.append(list(items))
        if not self.picks:
            return None
        return self.picks.pop(0)(list(items))

    async def show_info(self, message):
        self.infos.append(message)

    async def show_warning(self, message, *actions):
        self.warnings.append(message)
        return self.warning_answers.pop(0) if self.warning_answers else None

    async def show_error(self, message):
        self.errors.append(message)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def panel() -> FakePanel:
    return FakePanel()


@pytest.fixture
def transport(panel: FakePanel) -> PanelTransport:
    return PanelTransport(client=panel.client())


@pytest.fixture
def state(bus: EventBus) -> ConnectionState:
    """Connection state already pointed at the test server."""
    st = ConnectionState(bus=bus)
    st.connect(PANEL_URL, SERVER_ID, API_KEY)
    return st


@pytest.fixture
def ui() -> FakeUI:
    return FakeUI()
