"""Unit tests for remote_fs paths and types."""

from __future__ import annotations

import pytest
from plugins.remote_fs.service.paths import (
    base_name,
    copy_name,
    join_path,
    normalize_path,
    parent_path,
)
from plugins.remote_fs.service.types import EntryKind, RemoteEntry, entry_sort_key


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", "/"),
        ("/", "/"),
        ("plugins", "/plugins"),
        ("/plugins/", "/plugins"),
        ("//a//b/./c", "/a/b/c"),
        ("a\\b", "/a/b"),
        ("/a/../../b", "/b"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_parent_base_join() -> None:
    assert parent_path("/plugins/config.yml") == "/plugins"
    assert parent_path("/config.yml") == "/"
    assert base_name("/plugins/config.yml") == "config.yml"
    assert join_path("/", "a") == "/a"
    assert join_path("/plugins", "a.txt") == "/plugins/a.txt"


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("server.properties", "server copy.properties"),
        ("archive.tar.gz", "archive.tar copy.gz"),
        ("run", "run copy"),
        (".env", ".env copy"),
    ],
)
def test_copy_name(name: str, expected: str) -> None:
    assert copy_name(name) == expected


@pytest.mark.parametrize(
    ("is_file", "is_symlink", "kind"),
    [
        (True, False, EntryKind.FILE),
        (False, False, EntryKind.DIRECTORY),
        (True, True, EntryKind.SYMLINK_FILE),
        (False, True, EntryKind.SYMLINK_DIRECTORY),
    ],
)
def test_entry_kind_from_flags(is_file: bool, is_symlink: bool, kind: EntryKind) -> None:
    assert EntryKind.from_flags(is_file, is_symlink) is kind
    assert kind.is_file is is_file
    assert kind.is_symlink is is_symlink


def test_remote_entry_from_attributes() -> None:
    entry = RemoteEntry.from_attributes(
        {
            "name": "eula.txt",
            "mode": "-rw-r--r--",
            "size": 158,
            "is_file": True,
            "is_symlink": False,
            "created_at": "2024-05-01T10:00:00+00:00",
            "modified_at": "2024-05-02T11:30:00+00:00",
        }
    )
    assert entry.kind == EntryKind.FILE
    assert entry.size == 158
    assert entry.modified_at > entry.created_at
    assert entry.readonly is False


def test_remote_entry_tolerates_missing_fields() -> None:
    entry = RemoteEntry.from_attributes({"name": "x", "is_file": False, "created_at": "bad"})
    assert entry.kind == EntryKind.DIRECTORY
    assert entry.created_at == 0.0
    assert entry.readonly is True


def test_entry_sort_key() -> None:
    names = [("b.txt", EntryKind.FILE), ("A", EntryKind.DIRECTORY), ("a.txt", EntryKind.FILE)]
    names.sort(key=lambda n: entry_sort_key(*n))
    assert [n for n, _k in names] == ["A", "a.txt", "b.txt"]
