"""remote_fs service package."""

from .cache import StatCache
from .service import RemoteFileSystem
from .types import EntryKind, FileStat, RemoteEntry

__all__ = [
    "EntryKind",
    "FileStat",
    "RemoteEntry",
    "RemoteFileSystem",
    "StatCache",
]
