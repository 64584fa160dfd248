"""Directory reveal engine.

Answers "what are this directory's children" without blocking the caller.
The first query for a directory starts a listing in the background and
returns nothing; once the listing lands, children become visible one at a
time on a short timer and every step publishes a `tree.changed` event
scoped to that directory's node. Consumers re-query on each event.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.logging import get_logger
from panelfs.core.scheduler import AsyncioScheduler, RepeatingTimer, Scheduler

from plugins.remote_fs.service.paths import ROOT, join_path, normalize_path
from plugins.remote_fs.service.types import EntryKind

_logger = get_logger(__name__)

REVEAL_INTERVAL = 0.012  # seconds between two revealed children
URI_SCHEME = "panelfs"


class DirectoryLister(Protocol):
    def list_directory(self, path: str) -> Awaitable[list[tuple[str, EntryKind]]]: ...


class NodeKind(StrEnum):
    FILE = "File"
    DIRECTORY = "Directory"


@dataclass(frozen=True)
class RenderNode:
    """One row of the tree view."""

    label: str
    kind: NodeKind
    path: str

    @property
    def uri(self) -> str:
        return f"{URI_SCHEME}:{self.path}"

    @property
    def is_file(self) -> bool:
        return self.kind == NodeKind.FILE

    @property
    def sort_key(self) -> tuple[bool, str, str]:
        """Directories first, then case-insensitive by label."""
        return (self.is_file, self.label.casefold(), self.label)


@dataclass
class DirectoryLoadState:
    """Per-directory load and reveal bookkeeping.

    `visible_entries` is always a prefix of `all_entries`. It is None until a
    load has finished, which is what makes the next query a cache hit.
    """

    all_entries: list[RenderNode] = field(default_factory=list)
    visible_entries: list[RenderNode] | None = None
    in_flight: asyncio.Task[None] | None = None
    reveal_timer: RepeatingTimer | None = None
    target: RenderNode | None = None


class DirectoryRevealEngine:
    """Progressive, single-flight directory loader for the tree view."""

    def __init__(
        self,
        lister: DirectoryLister,
        *,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        interval: float = REVEAL_INTERVAL,
    ) -> None:
        self._lister = lister
        self._scheduler = scheduler or AsyncioScheduler()
        self._bus = bus or get_event_bus()
        self._interval = interval
        self._states: dict[str, DirectoryLoadState] = {}
        self._generation = 0

    # ------------------------------------------------------------------
    # queries

    def get_children(self, node: RenderNode | None = None) -> list[RenderNode]:
        """Return the visible children of node (None is the root).

        Must be called from the event loop. When nothing has been loaded yet
        a background load starts and an empty list is returned.
        """
        if node is not None and node.is_file:
            return []

        path = ROOT if node is None else normalize_path(node.path)
        state = self._states.setdefault(path, DirectoryLoadState())
        state.target = node

        if state.visible_entries is not None:
            return list(state.visible_entries)

        self._start_load(path)
        return []

    async def load(self, path: str = ROOT) -> list[RenderNode]:
        """Await the (shared) load of path and return every child, sorted."""
        key = normalize_path(path)
        state = self._states.get(key)
        if state is None or state.visible_entries is None:
            await self._start_load(key)
            state = self._states.get(key)
        return list(state.all_entries) if state is not None else []

    def visible(self, path: str = ROOT) -> list[RenderNode] | None:
        state = self._states.get(normalize_path(path))
        if state is None or state.visible_entries is None:
            return None
        return list(state.visible_entries)

    def in_flight_count(self) -> int:
        return sum(
            1 for s in self._states.values() if s.in_flight is not None and not s.in_flight.done()
        )

    def pending_timer_count(self) -> int:
        return sum(1 for s in self._states.values() if s.reveal_timer is not None)

    # ------------------------------------------------------------------
    # loading

    def _start_load(self, path: str) -> asyncio.Task[None]:
        state = self._states.setdefault(path, DirectoryLoadState())
        if state.in_flight is not None and not state.in_flight.done():
            _logger.debug(f"load already in flight: {path}")
            return state.in_flight

        task = asyncio.get_running_loop().create_task(self._load(path, state, self._generation))
        state.in_flight = task
        return task

    async def _load(self, path: str, state: DirectoryLoadState, generation: int) -> None:
        try:
            items = await self._lister.list_directory(path)
        except Exception as e:
            if generation != self._generation:
                return
            _logger.verbose(f"listing failed for {path}: {type(e).__name__}: {e}")
            state.all_entries = []
            state.visible_entries = []
            self._notify(path, state)
            return
        finally:
            if state.in_flight is asyncio.current_task():
                state.in_flight = None

        if generation != self._generation:
            _logger.debug(f"discarding stale listing for {path}")
            return

        nodes = [self._to_node(path, name, kind) for name, kind in items]
        nodes.sort(key=lambda n: n.sort_key)
        state.all_entries = nodes
        state.visible_entries = []
        self._start_reveal(path, state)

    @staticmethod
    def _to_node(directory: str, name: str, kind: EntryKind) -> RenderNode:
        node_kind = NodeKind.FILE if kind.is_file else NodeKind.DIRECTORY
        return RenderNode(label=name, kind=node_kind, path=join_path(directory, name))

    def _start_reveal(self, path: str, state: DirectoryLoadState) -> None:
        """Show the first child now, then one more per tick on a repeating timer."""
        self._reveal_step(path, state)
        if len(state.visible_entries or []) < len(state.all_entries):
            state.reveal_timer = RepeatingTimer(
                self._scheduler, self._interval, lambda: self._reveal_step(path, state)
            ).start()

    def _reveal_step(self, path: str, state: DirectoryLoadState) -> None:
        if self._states.get(path) is not state or state.visible_entries is None:
            self._stop_reveal(state)
            return

        shown = len(state.visible_entries)
        if shown < len(state.all_entries):
            state.visible_entries = state.all_entries[: shown + 1]
            self._notify(path, state)
        if len(state.visible_entries) >= len(state.all_entries):
            self._stop_reveal(state)

    @staticmethod
    def _stop_reveal(state: DirectoryLoadState) -> None:
        if state.reveal_timer is not None:
            state.reveal_timer.cancel()
            state.reveal_timer = None

    def _notify(self, path: str | None, state: DirectoryLoadState | None) -> None:
        node = state.target if state is not None else None
        self._bus.publish("tree.changed", {"path": path, "node": node})

    # ------------------------------------------------------------------
    # refresh

    def refresh(self) -> None:
        """Drop every loaded directory and ask consumers to re-query everything."""
        for state in self._states.values():
            self._stop_reveal(state)

        self._states.clear()
        self._generation += 1
        _logger.debug(f"tree refreshed (generation {self._generation})")
        self._notify(None, None)
