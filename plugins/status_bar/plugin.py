"""Status bar plugin - server power state indicator."""

from __future__ import annotations

from .poller import PowerSignal, StatusItem, StatusPoller

__all__ = ["PowerSignal", "StatusItem", "StatusPoller"]
