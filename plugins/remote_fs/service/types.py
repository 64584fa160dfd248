"""Types for the remote_fs service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any


class EntryKind(StrEnum):
    """Node kind, derived once from the panel's is_file x is_symlink flags."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK_FILE = "symlink_file"
    SYMLINK_DIRECTORY = "symlink_directory"

    @classmethod
    def from_flags(cls, is_file: bool, is_symlink: bool) -> EntryKind:
        if is_file:
            return cls.SYMLINK_FILE if is_symlink else cls.FILE
        return cls.SYMLINK_DIRECTORY if is_symlink else cls.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self in (EntryKind.FILE, EntryKind.SYMLINK_FILE)

    @property
    def is_dir(self) -> bool:
        return not self.is_file

    @property
    def is_symlink(self) -> bool:
        return self in (EntryKind.SYMLINK_FILE, EntryKind.SYMLINK_DIRECTORY)


def _timestamp(value: Any) -> float:
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value)).timestamp()
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class RemoteEntry:
    """One file-tree node as reported by the panel listing."""

    name: str
    is_file: bool
    is_symlink: bool
    created_at: float
    modified_at: float
    mode: str
    size: int

    @classmethod
    def from_attributes(cls, attrs: dict[str, Any]) -> RemoteEntry:
        return cls(
            name=str(attrs.get("name", "")),
            is_file=bool(attrs.get("is_file", False)),
            is_symlink=bool(attrs.get("is_symlink", False)),
            created_at=_timestamp(attrs.get("created_at")),
            modified_at=_timestamp(attrs.get("modified_at")),
            mode=str(attrs.get("mode", "")),
            size=int(attrs.get("size") or 0),
        )

    @property
    def kind(self) -> EntryKind:
        return EntryKind.from_flags(self.is_file, self.is_symlink)

    @property
    def readonly(self) -> bool:
        # Third character of the permission string, e.g. "-rw-r--r--".
        return len(self.mode) < 3 or self.mode[2] != "w"


@dataclass(frozen=True)
class FileStat:
    """Metadata returned by stat."""

    kind: EntryKind
    ctime: float
    mtime: float
    size: int
    readonly: bool = False

    @property
    def is_dir(self) -> bool:
        return self.kind.is_dir


ROOT_STAT = FileStat(kind=EntryKind.DIRECTORY, ctime=0.0, mtime=0.0, size=0)


def entry_sort_key(name: str, kind: EntryKind) -> tuple[bool, str, str]:
    """Directories first, then case-insensitive by name."""
    return (kind.is_file, name.casefold(), name)
