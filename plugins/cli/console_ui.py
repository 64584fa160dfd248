"""Terminal implementation of the host UI protocol.

Features:
- Prompts with Rich (password input hidden)
- Numbered server/power pickers rendered as a table
- Colored notifications on stderr
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from panelfs.core.interfaces import PickItem


class ConsoleUI:
    """Prompts on stdin, notifications on stderr.

    End of input (Ctrl-D) or an empty answer to a picker counts as cancel.
    """

    def __init__(self, *, interactive: bool | None = None, color: bool = True) -> None:
        self.interactive = sys.stdin.isatty() if interactive is None else interactive
        self.console = Console(stderr=True, no_color=not color, highlight=False)

    async def _read(self, prompt: str, *, password: bool = False) -> str | None:
        if not self.interactive:
            return None
        try:
            return await asyncio.to_thread(
                Prompt.ask, prompt, console=self.console, password=password, default=""
            )
        except EOFError:
            return None

    async def input_box(
        self,
        prompt: str,
        *,
        placeholder: str = "",
        password: bool = False,
        validate: Callable[[str], str | None] | None = None,
    ) -> str | None:
        hint = f" [dim]({placeholder})[/dim]" if placeholder else ""
        while True:
            value = await self._read(f"{prompt}{hint}", password=password)
            if value is None:
                return None
            problem = validate(value) if validate else None
            if problem is None:
                return value
            self.console.print(f"  [yellow]{problem}[/yellow]")

    async def quick_pick(
        self, items: Sequence[PickItem], *, placeholder: str = ""
    ) -> PickItem | None:
        if not items:
            return None

        table = Table(title=placeholder or None, show_header=False, box=None)
        table.add_column("#", style="bold cyan", justify="right")
        table.add_column("Item")
        table.add_column("Description", style="dim")
        for i, item in enumerate(items, 1):
            label = item.label if not item.detail else f"{item.label}\n[dim]{item.detail}[/dim]"
            table.add_row(str(i), label, item.description)
        self.console.print(table)

        while True:
            answer = await self._read("Select number (empty to cancel)")
            if answer is None or not answer.strip():
                return None
            if answer.strip().isdigit() and 1 <= int(answer) <= len(items):
                return items[int(answer) - 1]
            self.console.print(f"  [yellow]Enter a number between 1 and {len(items)}[/yellow]")

    async def show_info(self, message: str) -> None:
        self.console.print(f"[bold blue]ℹ[/bold blue] {message}")

    async def show_warning(self, message: str, *actions: str) -> str | None:
        self.console.print(f"[bold yellow]⚠[/bold yellow] {message}")
        if not actions:
            return None
        picked = await self.quick_pick([PickItem(a, value=a) for a in actions])
        return picked.value if picked else None

    async def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]✗[/bold red] {message}")
