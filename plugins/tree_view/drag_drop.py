"""Drag-and-drop moves inside the remote tree.

The panel has no move primitive usable across the tree, so a file move is
read, write at the destination, then delete the source. Directory nodes are
skipped.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from panelfs.core.errors import PanelFSError
from panelfs.core.interfaces import IUI
from panelfs.core.logging import get_logger

from plugins.remote_fs.service import RemoteFileSystem
from plugins.remote_fs.service.paths import ROOT, join_path

from .engine import DirectoryRevealEngine, RenderNode

_logger = get_logger(__name__)


@dataclass
class MoveReport:
    moved: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def drop_directory(target: RenderNode | None) -> str:
    """Directory a drop lands in: the target directory, else the root."""
    if target is not None and not target.is_file:
        return target.path
    return ROOT


async def move_items(
    fs: RemoteFileSystem,
    engine: DirectoryRevealEngine,
    items: Sequence[RenderNode],
    target: RenderNode | None,
    *,
    ui: IUI | None = None,
) -> MoveReport:
    """Move dragged files into the drop target, one item at a time.

    A failing item is reported and the batch continues. The tree is
    refreshed once at the end.
    """
    report = MoveReport()
    destination_dir = drop_directory(target)

    for item in items:
        if not item.is_file:
            report.skipped.append(item.path)
            continue

        destination = join_path(destination_dir, item.label)
        try:
            content = await fs.read_file(item.path)
            await fs.write_file(destination, content, create=True, overwrite=True)
            await fs.delete(item.path)
        except PanelFSError as e:
            _logger.verbose(f"move {item.path} -> {destination} failed: {e.message}")
            report.failed[item.path] = e.message
            if ui is not None:
                await ui.show_error(f"Failed to move {item.label}: {e.message}")
            continue

        report.moved.append(item.path)

    engine.refresh()
    return report
