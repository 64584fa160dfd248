"""Tree view plugin - remote file tree for the sidebar."""

from __future__ import annotations

from collections.abc import Sequence

from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.interfaces import IUI
from panelfs.core.scheduler import Scheduler

from plugins.remote_fs.service import RemoteFileSystem

from .drag_drop import MoveReport, move_items
from .engine import DirectoryRevealEngine, RenderNode


class TreeViewPlugin:
    """Owns the reveal engine and the drag-and-drop controller.

    Any connection change drops every loaded directory, so a new server never
    shows the previous server's entries.
    """

    def __init__(
        self,
        fs: RemoteFileSystem,
        *,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        ui: IUI | None = None,
    ) -> None:
        self.fs = fs
        self.ui = ui
        self.bus = bus or get_event_bus()
        self.engine = DirectoryRevealEngine(fs, scheduler=scheduler, bus=self.bus)
        self.bus.subscribe("connection.changed", self._on_connection_changed)

    def get_children(self, node: RenderNode | None = None) -> list[RenderNode]:
        return self.engine.get_children(node)

    def refresh(self) -> None:
        self.engine.refresh()

    def _on_connection_changed(self, _data: dict) -> None:
        self.engine.refresh()

    async def handle_drop(
        self, items: Sequence[RenderNode], target: RenderNode | None
    ) -> MoveReport:
        return await move_items(self.fs, self.engine, items, target, ui=self.ui)
