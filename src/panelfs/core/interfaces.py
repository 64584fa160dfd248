"""Interfaces of the host UI shell.

The prompts, pickers and notifications of the hosting UI are external
collaborators. Components only talk to them through this protocol.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class PickItem:
    """One quick-pick entry."""

    label: str
    description: str = ""
    detail: str = ""
    value: Any = None


class IUI(Protocol):
    """User interaction surface.

    Prompts return None when the user cancels.
    """

    async def input_box(
        self,
        prompt: str,
        *,
        placeholder: str = "",
        password: bool = False,
        validate: Callable[[str], str | None] | None = None,
    ) -> str | None: ...

    async def quick_pick(
        self, items: Sequence[PickItem], *, placeholder: str = ""
    ) -> PickItem | None: ...

    async def show_info(self, message: str) -> None: ...

    async def show_warning(self, message: str, *actions: str) -> str | None:
        """Show a warning; returns the chosen action, if any."""
        ...

    async def show_error(self, message: str) -> None: ...
