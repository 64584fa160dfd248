"""Integration tests for the CLI shell against a scripted panel."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from panelfs import __version__
from panelfs.core.config_service import ConfigService
from panelfs.core.logging import get_verbosity, set_verbosity
from plugins.cli.plugin import CLIPlugin

FILES = "/api/client/servers/a1b2c3/files"
KEY = "k" * 32


@pytest.fixture(autouse=True)
def _restore_verbosity():
    before = get_verbosity()
    yield
    set_verbosity(before)


@pytest.fixture()
def paths(tmp_path: Path) -> dict[str, Path]:
    user_config = tmp_path / "config.yaml"
    user_config.write_text(
        "panel:\n"
        "  url: https://panel.example.com\n"
        "  server_id: a1b2c3\n"
        f"  api_key: {KEY}\n",
        encoding="utf-8",
    )
    return {"user_config_path": user_config, "system_config_path": tmp_path / "system.yaml"}


@pytest.fixture()
def cli(paths, panel, ui) -> CLIPlugin:
    return CLIPlugin(config={**paths, "client": panel.client()}, ui=ui)


@pytest.mark.asyncio
async def test_version_and_help(cli, capsys) -> None:
    assert await cli.run(["version"]) == 0
    assert capsys.readouterr().out.strip() == f"panelfs {__version__}"

    assert await cli.run([]) == 0
    assert "Usage:" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_unknown_command_returns_usage_error(cli) -> None:
    assert await cli.run(["frobnicate"]) == 2


@pytest.mark.asyncio
async def test_ls_prints_directories_first(cli, panel, capsys) -> None:
    panel.route(
        "GET",
        f"{FILES}/list",
        panel.listing(
            panel.entry("server.jar"),
            panel.entry("world", is_file=False),
            panel.entry("latest.log", is_symlink=True),
        ),
    )

    assert await cli.run(["-q", "ls", "/"]) == 0

    assert capsys.readouterr().out.splitlines() == [
        "d world",
        "- latest.log@",
        "- server.jar",
    ]
    assert panel.requests[0].url.params["directory"] == "/"


@pytest.mark.asyncio
async def test_tree_walks_subdirectories(cli, panel, capsys) -> None:
    listings = {
        "/": panel.listing(panel.entry("eula.txt"), panel.entry("world", is_file=False)),
        "/world": panel.listing(panel.entry("level.dat")),
    }
    panel.route(
        "GET", f"{FILES}/list", lambda request: listings[request.url.params["directory"]]
    )

    assert await cli.run(["-q", "tree"]) == 0

    assert capsys.readouterr().out.splitlines() == [
        "/",
        "world/",
        "  level.dat",
        "eula.txt",
    ]


@pytest.mark.asyncio
async def test_tree_fails_when_a_directory_cannot_be_listed(cli, panel) -> None:
    def listing(request: httpx.Request) -> httpx.Response:
        if request.url.params["directory"] == "/":
            return panel.listing(panel.entry("world", is_file=False))
        return httpx.Response(403)

    panel.route("GET", f"{FILES}/list", listing)

    assert await cli.run(["-q", "tree"]) == 1


@pytest.mark.asyncio
async def test_cat_writes_file_content(cli, panel, capsys) -> None:
    panel.route("GET", f"{FILES}/contents", httpx.Response(200, content=b"eula=true\n"))

    assert await cli.run(["-q", "cat", "/eula.txt"]) == 0

    assert capsys.readouterr().out == "eula=true\n"


@pytest.mark.asyncio
async def test_put_uploads_local_file(cli, panel, tmp_path) -> None:
    local = tmp_path / "ops.json"
    local.write_bytes(b"[]")
    panel.route("GET", f"{FILES}/list", panel.listing())
    panel.route("POST", f"{FILES}/write", httpx.Response(204))

    assert await cli.run(["-q", "put", str(local), "/ops.json"]) == 0

    writes = panel.calls("POST", "/write")
    assert [w.content for w in writes] == [b"", b"[]"]


@pytest.mark.asyncio
async def test_put_missing_local_file_fails(cli, panel, tmp_path) -> None:
    assert await cli.run(["-q", "put", str(tmp_path / "nope"), "/x"]) == 1
    assert panel.requests == []


@pytest.mark.asyncio
async def test_rm_non_recursive_refuses_non_empty_directory(cli, panel) -> None:
    panel.route("GET", f"{FILES}/list", panel.listing(panel.entry("level.dat")))

    assert await cli.run(["-q", "rm", "/world"]) == 1
    assert panel.calls("POST", "/delete") == []


@pytest.mark.asyncio
async def test_remote_error_maps_to_exit_code(cli, panel) -> None:
    panel.route("GET", f"{FILES}/list", httpx.Response(403))

    assert await cli.run(["-q", "ls"]) == 1


@pytest.mark.asyncio
async def test_commands_require_connection(tmp_path, panel, ui) -> None:
    cli = CLIPlugin(
        config={
            "user_config_path": tmp_path / "empty.yaml",
            "system_config_path": tmp_path / "system.yaml",
            "client": panel.client(),
        },
        ui=ui,
    )

    assert await cli.run(["-q", "stat", "/eula.txt"]) == 1
    assert await cli.run(["-q", "ls"]) == 1
    assert await cli.run(["-q", "tree"]) == 1
    assert await cli.run(["-q", "open-panel"]) == 1
    assert ui.errors == ["No server connected"]
    assert panel.requests == []


@pytest.mark.asyncio
async def test_reset_forgets_server(cli, paths) -> None:
    assert await cli.run(["-q", "reset"]) == 0

    config = ConfigService(**paths)
    assert config.get("panel.server_id") == ""
    assert config.get("panel.api_key") == KEY


@pytest.mark.asyncio
async def test_power_signal_validation(cli, panel, ui) -> None:
    assert await cli.run(["-q", "power", "explode"]) == 2
    assert panel.requests == []

    panel.route("POST", "/api/client/servers/a1b2c3/power", httpx.Response(204))
    assert await cli.run(["-q", "power", "restart"]) == 0
    assert panel.body(panel.requests[0]) == {"signal": "restart"}
    assert ui.infos == ["Server restart command sent successfully"]


@pytest.mark.asyncio
async def test_status_prints_indicator(cli, panel, capsys) -> None:
    panel.route(
        "GET",
        "/api/client/servers/a1b2c3/resources",
        httpx.Response(200, json={"attributes": {"current_state": "running"}}),
    )

    assert await cli.run(["-q", "status"]) == 0

    assert capsys.readouterr().out.strip() == "Running"
