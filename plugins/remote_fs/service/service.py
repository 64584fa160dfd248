"""Remote filesystem bridge.

Implements the stat/list/read/write/rename/copy/delete contract against the
panel's files REST surface. Every response goes through one status-mapping
rule; only content reads are retried.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import httpx

from panelfs.core.config import remove_start_slash
from panelfs.core.diagnostics import build_envelope
from panelfs.core.errors import (
    AlreadyExistsError,
    BusyError,
    FileIsADirectoryError,
    InvalidStateError,
    NoPermissionsError,
    NotConnectedError,
    NotFoundError,
    PanelFSError,
    ServerUnavailableError,
)
from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.http import PanelTransport
from panelfs.core.logging import get_logger
from panelfs.core.scheduler import AsyncioScheduler, Scheduler
from panelfs.core.state import ConnectionState

from .cache import StatCache
from .paths import ROOT, base_name, copy_name, join_path, normalize_path, parent_path
from .status import raise_for_panel_status
from .types import ROOT_STAT, EntryKind, FileStat, RemoteEntry, entry_sort_key

_logger = get_logger(__name__)

READ_ATTEMPTS = 3
READ_BACKOFF_BASE = 0.1  # seconds; delay = 2**attempt * base

JSON = "application/json"


def _safe_publish(bus: EventBus, event: str, payload: dict[str, Any]) -> None:
    try:
        bus.publish(event, payload)
    except Exception:
        # Diagnostics emission must never break a file operation.
        return


class RemoteFileSystem:
    """Uniform file-operation contract over the panel API."""

    def __init__(
        self,
        state: ConnectionState,
        transport: PanelTransport,
        *,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        on_authentication_failed: Callable[[], None] | None = None,
    ) -> None:
        self._state = state
        self._transport = transport
        self._scheduler = scheduler or AsyncioScheduler()
        self._bus = bus or get_event_bus()
        self._on_authentication_failed = on_authentication_failed or (lambda: None)
        self._cache = StatCache(self._scheduler)

        # A fresh connection must not reuse another server's entries.
        self._bus.subscribe("connection.changed", lambda _data: self.clear_cache())

    # ------------------------------------------------------------------
    # plumbing

    @contextmanager
    def _observe(self, operation: str, **base: Any) -> Iterator[dict[str, Any]]:
        start = time.perf_counter()
        _safe_publish(
            self._bus,
            "operation.start",
            build_envelope(
                event="operation.start", component="remote_fs", operation=operation, data=base
            ),
        )

        summary: dict[str, Any] = {}
        try:
            yield summary
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            end_data = dict(base)
            end_data.update(
                {
                    "status": "failed",
                    "duration_ms": duration_ms,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                }
            )
            _safe_publish(
                self._bus,
                "operation.end",
                build_envelope(
                    event="operation.end",
                    component="remote_fs",
                    operation=operation,
                    data=end_data,
                ),
            )
            _logger.verbose(f"{operation} status=failed duration_ms={duration_ms} {base!r}")
            raise
        else:
            duration_ms = int((time.perf_counter() - start) * 1000)
            end_data = dict(base)
            end_data.update(summary)
            end_data.update({"status": "succeeded", "duration_ms": duration_ms})
            _safe_publish(
                self._bus,
                "operation.end",
                build_envelope(
                    event="operation.end",
                    component="remote_fs",
                    operation=operation,
                    data=end_data,
                ),
            )

    def _ensure_connected(self) -> str:
        if not self._state.server_api_url:
            raise NotConnectedError()
        return self._state.server_api_url

    async def _send(
        self,
        operation: str,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        json: Any | None = None,
        content: bytes | None = None,
        accept: str | None = None,
    ) -> httpx.Response:
        base_url = self._ensure_connected()
        try:
            response = await self._transport.request(
                method,
                f"{base_url}/{endpoint}",
                auth_header=self._state.auth_header,
                params=params,
                json=json,
                content=content,
                accept=accept,
            )
        except httpx.HTTPError as e:
            _logger.verbose(f"{operation}: transport failure: {type(e).__name__}: {e}")
            raise ServerUnavailableError(
                f"Network error: {e}", "Check the panel address and your connection"
            ) from e

        raise_for_panel_status(
            operation, response, on_unauthenticated=self._on_authentication_failed
        )
        return response

    async def _list_entries(self, operation: str, directory: str) -> list[RemoteEntry]:
        response = await self._send(
            operation, "GET", "list", params={"directory": directory}, accept=JSON
        )
        try:
            body = response.json()
            return [RemoteEntry.from_attributes(item["attributes"]) for item in body["data"]]
        except (ValueError, KeyError, TypeError) as e:
            raise ServerUnavailableError(f"Invalid listing response: {e}") from e

    # ------------------------------------------------------------------
    # cache

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_hits(self, path: str) -> int | None:
        return self._cache.hits(normalize_path(path))

    def _forget(self, *paths: str) -> None:
        for p in paths:
            self._cache.discard(normalize_path(p))

    # ------------------------------------------------------------------
    # operations

    async def stat(self, path: str) -> FileStat:
        self._ensure_connected()
        key = normalize_path(path)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if key == ROOT:
            return ROOT_STAT

        with self._observe("remote_fs.stat", path=key):
            entries = await self._list_entries(f"stat: {key}", parent_path(key))
            name = base_name(key)
            found = next((e for e in entries if e.name == name), None)
            if found is None:
                raise NotFoundError(f"Not found: {key}")

            result = FileStat(
                kind=found.kind,
                ctime=found.created_at,
                mtime=found.modified_at,
                size=found.size,
                readonly=found.readonly,
            )
            self._cache.put(key, result)
            return result

    async def list_directory(self, path: str) -> list[tuple[str, EntryKind]]:
        key = normalize_path(path)
        with self._observe("remote_fs.list", path=key) as summary:
            entries = await self._list_entries(f"readDirectory: {key}", key)
            items = sorted(((e.name, e.kind) for e in entries), key=lambda i: entry_sort_key(*i))
            summary["items_count"] = len(items)
            summary["dirs_count"] = sum(1 for _n, k in items if k.is_dir)
            return items

    async def read_file(self, path: str) -> bytes:
        self._ensure_connected()
        key = normalize_path(path)

        with self._observe("remote_fs.read", path=key) as summary:
            attempt = 1
            while True:
                try:
                    response = await self._send(
                        f"readFile: {key} (attempt {attempt})",
                        "GET",
                        "contents",
                        params={"file": key},
                    )
                except (ServerUnavailableError, BusyError) as e:
                    _logger.verbose(f"readFile attempt {attempt} failed for {key}: {e.message}")
                    if attempt >= READ_ATTEMPTS:
                        raise
                    await self._scheduler.sleep(2**attempt * READ_BACKOFF_BASE)
                    attempt += 1
                    continue

                summary["attempts"] = attempt
                summary["bytes"] = len(response.content)
                return response.content

    async def write_file(
        self, path: str, content: bytes, *, create: bool, overwrite: bool
    ) -> None:
        self._ensure_connected()
        key = normalize_path(path)

        with self._observe(
            "remote_fs.write", path=key, create=create, overwrite=overwrite
        ) as summary:
            try:
                existing: FileStat | None = await self.stat(key)
            except NotFoundError:
                existing = None

            if existing is not None:
                if existing.is_dir:
                    raise FileIsADirectoryError(f"Is a directory: {key}")
                if not overwrite:
                    raise AlreadyExistsError(f"Destination exists: {key}")
            elif not create:
                raise NotFoundError(f"Not found: {key}")
            else:
                await self._precreate(key)

            await self._send(
                f"writeFile: {key}", "POST", "write", params={"file": key}, content=content
            )
            self._forget(key)
            summary["bytes"] = len(content)

    async def _precreate(self, key: str) -> None:
        # The write endpoint may require the file to exist already.
        try:
            response = await self._transport.request(
                "POST",
                f"{self._ensure_connected()}/write",
                auth_header=self._state.auth_header,
                params={"file": key},
                content=b"",
            )
            _logger.verbose(
                f"createFile attempt: {response.status_code} {response.reason_phrase}"
            )
        except httpx.HTTPError as e:
            _logger.verbose(f"Failed to create file first: {type(e).__name__}: {e}")

    async def create_directory(self, path: str) -> None:
        key = normalize_path(path)
        with self._observe("remote_fs.mkdir", path=key):
            await self._send(
                f"createDirectory: {key}",
                "POST",
                "create-folder",
                json={"root": ROOT, "name": key},
            )
            self._forget(key)

    async def delete(self, path: str, *, recursive: bool = True) -> None:
        self._ensure_connected()
        key = normalize_path(path)

        with self._observe("remote_fs.delete", path=key, recursive=recursive):
            if not recursive:
                try:
                    children = await self.list_directory(key)
                except NoPermissionsError:
                    raise
                except PanelFSError:
                    # Files (and unreadable targets) list as nothing.
                    children = []
                if children:
                    raise InvalidStateError("Directory not empty")

            await self._send(
                f"delete: {key}",
                "POST",
                "delete",
                json={"root": ROOT, "files": [remove_start_slash(key)]},
            )
            self._forget(key)

    async def _delete_destination(self, key: str) -> None:
        try:
            await self.delete(key)
        except NoPermissionsError:
            raise
        except PanelFSError as e:
            _logger.debug(f"overwrite: could not delete {key}: {e.message}")

    async def _rename(self, operation: str, src: str, dst: str) -> None:
        await self._send(
            operation,
            "PUT",
            "rename",
            json={
                "root": ROOT,
                "files": [{"from": remove_start_slash(src), "to": remove_start_slash(dst)}],
            },
        )
        self._forget(src, dst)

    async def rename(self, src: str, dst: str, *, overwrite: bool = False) -> None:
        self._ensure_connected()
        src_key = normalize_path(src)
        dst_key = normalize_path(dst)

        with self._observe("remote_fs.rename", path=src_key, destination=dst_key):
            if overwrite:
                await self._delete_destination(dst_key)
            await self._rename(f"rename: {src_key} -> {dst_key}", src_key, dst_key)

    async def copy(self, src: str, dst: str, *, overwrite: bool = False) -> None:
        """Duplicate src, then move the duplicate to dst.

        The panel only duplicates in place as "<name> copy". When src and dst
        share a directory, the duplicate keeps that name.
        """
        self._ensure_connected()
        src_key = normalize_path(src)
        dst_key = normalize_path(dst)

        with self._observe("remote_fs.copy", path=src_key, destination=dst_key) as summary:
            if overwrite:
                await self._delete_destination(dst_key)

            await self._send(
                f"copy: {src_key} -> {dst_key}", "POST", "copy", json={"location": src_key}
            )

            src_dir = parent_path(src_key)
            copied = join_path(src_dir, copy_name(base_name(src_key)))
            if src_dir == parent_path(dst_key):
                _logger.verbose(f"copy: Not renaming file {copied} due to same directory")
                summary["renamed"] = False
                return

            _logger.verbose(f"copy: {copied} -> {dst_key}")
            await self._rename(f"rename after copy: {src_key} -> {dst_key}", copied, dst_key)
            summary["renamed"] = True
