"""Core LogBus for publishing log records.

Every line written by the panelfs logger is published here. Subscribers
(the diagnostic log file, a UI output pane) receive plain text records.
Subscriber exceptions never crash publishing.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str


class LogBus:
    def __init__(self) -> None:
        self._subs: list[Callable[[LogRecord], None]] = []

    def subscribe_all(self, cb: Callable[[LogRecord], None]) -> None:
        self._subs.append(cb)

    def unsubscribe_all(self, cb: Callable[[LogRecord], None]) -> None:
        try:
            self._subs.remove(cb)
        except ValueError:
            return

    def publish(self, record: LogRecord) -> None:
        for cb in list(self._subs):
            try:
                cb(record)
            except Exception:
                # Never call the core logger here (recursion).
                msg = "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                with contextlib.suppress(Exception):
                    sys.stderr.write(msg)

    def clear(self) -> None:
        self._subs.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS


def install_log_file_sink(path: Path | str) -> Callable[[LogRecord], None]:
    """Append every published log line to a file.

    Returns the subscriber so callers can detach it with unsubscribe_all().
    """
    out_path = Path(path).expanduser()

    def _sink(rec: LogRecord) -> None:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("a", encoding="utf-8") as f:
            f.write(f"{rec.logger_name} {rec.plain}\n")

    get_log_bus().subscribe_all(_sink)
    return _sink
