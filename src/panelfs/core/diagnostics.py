"""Runtime diagnostics envelope + JSONL sink.

Every remote file operation publishes operation.start / operation.end
envelopes on the event bus. The JSONL sink persists them when
diagnostics.enabled is true.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from panelfs.core.config import ConfigResolver
from panelfs.core.errors import ConfigError
from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.logging import get_logger

_logger = get_logger(__name__)


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }

    Timestamp is emitted in UTC with a trailing 'Z'.
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    """Return whether diagnostics are enabled (diagnostics.enabled, default False).

    Invalid values are treated as disabled with a warning.
    """
    try:
        return resolver.resolve_bool("diagnostics.enabled", False)
    except ConfigError as e:
        _logger.warning(f"{e}; treating diagnostics as disabled")
        return False


def _is_envelope(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    required = {"event", "component", "operation", "timestamp", "data"}
    return set(obj.keys()) == required and isinstance(obj.get("data"), dict)


def install_jsonl_sink(*, resolver: ConfigResolver, bus: EventBus | None = None) -> None:
    """Subscribe the JSONL diagnostics sink to the event bus.

    When diagnostics are disabled, the subscriber performs no file IO.
    Only diagnostics envelopes are written; plain notifications are skipped.
    """
    bus = bus or get_event_bus()

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        if not _is_envelope(data) or not is_diagnostics_enabled(resolver):
            return

        out_path = Path(resolver.resolve_str("diagnostics.path")).expanduser()
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(data, ensure_ascii=True, separators=(",", ":"), sort_keys=True)
            with out_path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
        except OSError as e:
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    bus.subscribe_all(_on_any_event)
