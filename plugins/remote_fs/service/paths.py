"""Remote path helpers.

Remote paths are absolute POSIX paths rooted at the server's file root.
"""

from __future__ import annotations

from pathlib import PurePosixPath

ROOT = "/"


def normalize_path(path: str) -> str:
    """Normalize to an absolute path without trailing slash.

    Backslashes are treated as separators; '.' segments are dropped.
    '..' is resolved lexically and never climbs above the root.
    """
    raw = (path or "").replace("\\", "/")
    parts: list[str] = []
    for seg in raw.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            if parts:
                parts.pop()
            continue
        parts.append(seg)
    return ROOT + "/".join(parts)


def parent_path(path: str) -> str:
    return str(PurePosixPath(normalize_path(path)).parent)


def base_name(path: str) -> str:
    return PurePosixPath(normalize_path(path)).name


def join_path(directory: str, name: str) -> str:
    return normalize_path(f"{normalize_path(directory)}/{name}")


def copy_name(name: str) -> str:
    """Name the panel gives a duplicate created in place.

    "server.properties" -> "server copy.properties", "run" -> "run copy".
    """
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return f"{name} copy"
    return f"{stem} copy.{ext}"
