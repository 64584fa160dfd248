"""Unit tests for the terminal UI."""

from __future__ import annotations

import pytest
from panelfs.core.interfaces import PickItem
from plugins.cli.console_ui import ConsoleUI


@pytest.mark.asyncio
async def test_non_interactive_prompts_cancel(capsys) -> None:
    ui = ConsoleUI(interactive=False, color=False)

    assert await ui.input_box("Enter your panel URL") is None
    assert await ui.quick_pick([PickItem("Survival", "a1b2c3")]) is None
    warned = await ui.show_warning("Authentication failed for panel.example.com.", "Authenticate")
    assert warned is None

    err = capsys.readouterr().err
    assert "Survival" in err
    assert "Authentication failed for panel.example.com." in err


@pytest.mark.asyncio
async def test_quick_pick_reads_number(monkeypatch) -> None:
    ui = ConsoleUI(interactive=True, color=False)
    answers = iter(["7", "2"])

    async def fake_read(prompt: str, *, password: bool = False) -> str | None:
        return next(answers)

    monkeypatch.setattr(ui, "_read", fake_read)
    items = [PickItem("start", value="start"), PickItem("stop", value="stop")]

    picked = await ui.quick_pick(items)
    assert picked is items[1]


@pytest.mark.asyncio
async def test_input_box_repeats_until_valid(monkeypatch) -> None:
    ui = ConsoleUI(interactive=True, color=False)
    answers = iter(["ftp://x", "https://panel.example.com"])

    async def fake_read(prompt: str, *, password: bool = False) -> str | None:
        return next(answers)

    monkeypatch.setattr(ui, "_read", fake_read)

    def validate(value: str) -> str | None:
        return None if value.startswith("https://") else "URL must use http or https"

    assert await ui.input_box("Enter your panel URL", validate=validate) == (
        "https://panel.example.com"
    )


@pytest.mark.asyncio
async def test_show_error_goes_to_stderr(capsys) -> None:
    ui = ConsoleUI(interactive=False, color=False)

    await ui.show_error("No server connected")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "No server connected" in captured.err
