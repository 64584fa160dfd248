"""CLI plugin - command-line shell over the remote file tree.

Features:
- Connect flow with interactive prompts
- File operations (ls, tree, stat, cat, put, mkdir, rm, mv, cp)
- Server status and power signals
- 4 verbosity modes (quiet/normal/verbose/debug)
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, cast

from panelfs import __version__
from panelfs.core.config_service import ConfigService
from panelfs.core.errors import PanelFSError
from panelfs.core.logging import apply_logging_policy, get_logger

from plugins.cli.console_ui import ConsoleUI
from plugins.remote_fs.service.paths import ROOT, join_path
from plugins.status_bar.poller import PowerSignal
from plugins.workspace.plugin import WorkspacePlugin

log = get_logger(__name__)

USAGE_LINES = (
    "panelfs connect                Validate an API key and select a server",
    "panelfs reset                  Forget the selected server",
    "panelfs clear-key              Remove the stored API key",
    "panelfs open-panel             Print the server's panel page URL",
    "panelfs ls [PATH]              List a remote directory",
    "panelfs tree [PATH]            Print the remote tree",
    "panelfs stat PATH              Show metadata of a remote entry",
    "panelfs cat PATH               Write a remote file to stdout",
    "panelfs put LOCAL REMOTE       Upload a file (--overwrite, --no-create)",
    "panelfs mkdir PATH             Create a remote directory",
    "panelfs rm [-r] PATH           Delete a remote entry",
    "panelfs mv SRC DST             Rename (--overwrite)",
    "panelfs cp SRC DST             Copy (--overwrite)",
    "panelfs status                 Show server status",
    "panelfs power [SIGNAL]         Send start, stop, restart or kill",
    "panelfs watch                  Follow the server status",
    "panelfs version                Show version",
)

_VERBOSITY_FLAGS = {
    "-q": "quiet",
    "--quiet": "quiet",
    "-v": "verbose",
    "--verbose": "verbose",
    "-d": "debug",
    "--debug": "debug",
}

_VALUE_FLAGS = {
    "--panel-url": ("panel", "url"),
    "--server-id": ("panel", "server_id"),
    "--proxy-url": ("panel", "proxy_url"),
}


def _ensure_dict(root: dict[str, Any], key: str) -> dict[str, Any]:
    val = root.get(key)
    if isinstance(val, dict):
        return cast(dict[str, Any], val)
    new: dict[str, Any] = {}
    root[key] = new
    return new


def _split_flags(args: list[str], *flags: str) -> tuple[list[str], set[str]]:
    """Separate boolean flags from positional arguments."""
    positional = [a for a in args if a not in flags]
    present = {a for a in args if a in flags}
    return positional, present


class CLIPlugin:
    """Command-line shell."""

    def __init__(self, config: dict | None = None, *, ui: Any = None) -> None:
        """Initialize CLI plugin.

        Args:
            config: Plugin configuration (e.g. user_config_path for tests)
            ui: Host UI implementation; defaults to the terminal UI
        """
        self.config = config or {}
        self.ui = ui or ConsoleUI()
        self.workspace: WorkspacePlugin | None = None

    def _parse_cli_args(self, argv: list[str]) -> tuple[dict[str, Any], list[str]]:
        """Pull global options out of argv, in any position.

        Returns:
            (nested dict for ConfigResolver, remaining arguments)
        """
        cli_args: dict[str, Any] = {}
        rest: list[str] = []
        i = 0

        while i < len(argv):
            arg = argv[i]
            if arg in _VERBOSITY_FLAGS:
                _ensure_dict(cli_args, "logging")["level"] = _VERBOSITY_FLAGS[arg]
            elif arg in _VALUE_FLAGS and i + 1 < len(argv):
                section, key = _VALUE_FLAGS[arg]
                _ensure_dict(cli_args, section)[key] = argv[i + 1]
                i += 1
            else:
                rest.append(arg)
            i += 1

        return cli_args, rest

    async def run(self, argv: list[str] | None = None) -> int:
        """Run CLI - main entry point.

        Returns:
            Process exit code
        """
        argv = list(sys.argv[1:] if argv is None else argv)
        cli_args, rest = self._parse_cli_args(argv)

        if not rest or rest[0] in ("-h", "--help", "help"):
            self._print_usage()
            return 0
        if rest[0] == "version":
            print(f"panelfs {__version__}")
            return 0

        try:
            config = ConfigService(
                cli_args=cli_args,
                user_config_path=self.config.get("user_config_path"),
                system_config_path=self.config.get("system_config_path"),
            )
            policy = config.resolver.resolve_logging_policy()
            apply_logging_policy(policy)
        except PanelFSError as e:
            log.error(str(e))
            return 1

        if isinstance(self.ui, ConsoleUI):
            self.ui.console.no_color = not policy.color
        log.debug(f"Parsed CLI args: {cli_args}")

        command, args = rest[0], rest[1:]
        handler = getattr(self, f"_{command.replace('-', '_')}_command", None)
        if handler is None:
            log.error(f"Unknown command: {command}")
            self._print_usage()
            return 2

        self.workspace = WorkspacePlugin(self.ui, config=config, client=self.config.get("client"))
        try:
            self.workspace.activate(poll=command == "watch")
            return await handler(args)
        except PanelFSError as e:
            log.error(str(e))
            return 1
        finally:
            await self.workspace.aclose()

    def _print_usage(self) -> None:
        """Print usage information."""
        print(f"panelfs {__version__}")
        print()
        print("Usage:")
        for line in USAGE_LINES:
            print(f"  {line}")
        print()
        print("Options:")
        print("  --panel-url URL                Panel base URL")
        print("  --server-id ID                 Server identifier")
        print("  --proxy-url URL                Route requests through a proxy base")
        print()
        print("Verbosity:")
        print("  -q, --quiet                    Quiet mode (warnings and errors only)")
        print("  -v, --verbose                  Verbose mode (request/response lines)")
        print("  -d, --debug                    Debug mode (everything)")

    @property
    def _ws(self) -> WorkspacePlugin:
        assert self.workspace is not None
        return self.workspace

    # ------------------------------------------------------------------
    # connection

    async def _connect_command(self, args: list[str]) -> int:
        if not await self._ws.connect():
            return 1
        print(self._ws.state.server_api_url)
        return 0

    async def _reset_command(self, args: list[str]) -> int:
        self._ws.reset()
        self._ws.config.unset_value("panel.server_id")
        return 0

    async def _clear_key_command(self, args: list[str]) -> int:
        self._ws.clear_api_key()
        log.info("API key cleared")
        return 0

    async def _open_panel_command(self, args: list[str]) -> int:
        url = await self._ws.open_panel_url()
        if url is None:
            return 1
        print(url)
        return 0

    # ------------------------------------------------------------------
    # files

    async def _ls_command(self, args: list[str]) -> int:
        path = args[0] if args else ROOT
        for name, kind in await self._ws.fs.list_directory(path):
            marker = "d" if kind.is_dir else "-"
            link = "@" if kind.is_symlink else ""
            print(f"{marker} {name}{link}")
        return 0

    async def _tree_command(self, args: list[str]) -> int:
        path = args[0] if args else ROOT
        print(path)
        await self._print_tree(path, "")
        return 0

    async def _print_tree(self, path: str, indent: str) -> None:
        # Listing errors propagate, unlike the tree view's empty-directory rendering.
        for name, kind in await self._ws.fs.list_directory(path):
            print(f"{indent}{name}{'/' if kind.is_dir else ''}")
            if kind.is_dir and not kind.is_symlink:
                await self._print_tree(join_path(path, name), indent + "  ")

    async def _stat_command(self, args: list[str]) -> int:
        if not args:
            log.error("Usage: panelfs stat <path>")
            return 2
        st = await self._ws.fs.stat(args[0])
        mtime = datetime.fromtimestamp(st.mtime).isoformat(timespec="seconds") if st.mtime else "-"
        print(f"kind:     {st.kind}")
        print(f"size:     {st.size}")
        print(f"modified: {mtime}")
        print(f"readonly: {'yes' if st.readonly else 'no'}")
        return 0

    async def _cat_command(self, args: list[str]) -> int:
        if not args:
            log.error("Usage: panelfs cat <path>")
            return 2
        data = await self._ws.fs.read_file(args[0])
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return 0

    async def _put_command(self, args: list[str]) -> int:
        positional, flags = _split_flags(args, "--overwrite", "--no-create")
        if len(positional) != 2:
            log.error("Usage: panelfs put <local-file> <remote-path> [--overwrite] [--no-create]")
            return 2
        local, remote = positional
        try:
            content = Path(local).expanduser().read_bytes()
        except OSError as e:
            log.error(f"Cannot read {local}: {e}")
            return 1
        await self._ws.fs.write_file(
            remote,
            content,
            create="--no-create" not in flags,
            overwrite="--overwrite" in flags,
        )
        log.verbose(f"Uploaded {len(content)} bytes to {remote}")
        return 0

    async def _mkdir_command(self, args: list[str]) -> int:
        if not args:
            log.error("Usage: panelfs mkdir <path>")
            return 2
        await self._ws.fs.create_directory(args[0])
        return 0

    async def _rm_command(self, args: list[str]) -> int:
        positional, flags = _split_flags(args, "-r", "--recursive")
        if not positional:
            log.error("Usage: panelfs rm [-r] <path>")
            return 2
        await self._ws.fs.delete(positional[0], recursive=bool(flags))
        return 0

    async def _mv_command(self, args: list[str]) -> int:
        positional, flags = _split_flags(args, "--overwrite")
        if len(positional) != 2:
            log.error("Usage: panelfs mv <src> <dst> [--overwrite]")
            return 2
        await self._ws.fs.rename(*positional, overwrite=bool(flags))
        return 0

    async def _cp_command(self, args: list[str]) -> int:
        positional, flags = _split_flags(args, "--overwrite")
        if len(positional) != 2:
            log.error("Usage: panelfs cp <src> <dst> [--overwrite]")
            return 2
        await self._ws.fs.copy(*positional, overwrite=bool(flags))
        return 0

    # ------------------------------------------------------------------
    # status

    async def _status_command(self, args: list[str]) -> int:
        status = self._ws.status
        await status.refresh()
        print(status.status_item.text)
        log.verbose(status.status_item.tooltip)
        return 0

    async def _power_command(self, args: list[str]) -> int:
        if not args:
            signal = await self._ws.show_power_menu()
            return 0 if signal is not None else 1
        try:
            signal = PowerSignal(args[0])
        except ValueError:
            allowed = ", ".join(s.value for s in PowerSignal)
            log.error(f"Unknown power signal: {args[0]} (allowed: {allowed})")
            return 2
        return 0 if await self._ws.power(signal) else 1

    async def _watch_command(self, args: list[str]) -> int:
        """Print the status indicator whenever it changes, until interrupted."""
        last: list[str] = []

        def _on_status(data: dict[str, Any]) -> None:
            text = str(data.get("text", ""))
            if last and last[-1] == text:
                return
            last.append(text)
            stamp = datetime.now().strftime("%H:%M:%S")
            print(f"{stamp} {text}", flush=True)

        self._ws.bus.subscribe("status.changed", _on_status)
        try:
            await asyncio.Event().wait()
        finally:
            self._ws.bus.unsubscribe("status.changed", _on_status)
        return 0


def main() -> None:
    """Console script entry point."""
    try:
        code = asyncio.run(CLIPlugin().run())
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)
