"""panelfs core.

The microkernel: configuration, errors, logging, events, connection state,
timers and the HTTP transport. Components live in the plugins tree.
"""

from panelfs.core.config import (
    ConfigResolver,
    LoggingPolicy,
    build_server_api_url,
    proxy_url,
    remove_start_slash,
)
from panelfs.core.config_service import ConfigService
from panelfs.core.errors import (
    AlreadyExistsError,
    BusyError,
    ConfigError,
    ConnectError,
    ErrorKind,
    FileIsADirectoryError,
    ForbiddenError,
    InvalidStateError,
    NoPermissionsError,
    NotConnectedError,
    NotFoundError,
    PanelFSError,
    RemoteFileError,
    ServerUnavailableError,
    UnauthenticatedError,
    UnavailableError,
)
from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.http import PanelTransport
from panelfs.core.interfaces import IUI, PickItem
from panelfs.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)
from panelfs.core.scheduler import AsyncioScheduler, RepeatingTimer, Scheduler
from panelfs.core.state import ConnectionState

__all__ = [
    # Config
    "ConfigResolver",
    "ConfigService",
    "LoggingPolicy",
    "build_server_api_url",
    "proxy_url",
    "remove_start_slash",
    # Errors
    "AlreadyExistsError",
    "BusyError",
    "ConfigError",
    "ConnectError",
    "ErrorKind",
    "FileIsADirectoryError",
    "ForbiddenError",
    "InvalidStateError",
    "NoPermissionsError",
    "NotConnectedError",
    "NotFoundError",
    "PanelFSError",
    "RemoteFileError",
    "ServerUnavailableError",
    "UnauthenticatedError",
    "UnavailableError",
    # Events
    "EventBus",
    "get_event_bus",
    # Interfaces
    "IUI",
    "PickItem",
    # Logging
    "VerbosityLevel",
    "apply_logging_policy",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
    # Runtime
    "AsyncioScheduler",
    "ConnectionState",
    "PanelTransport",
    "RepeatingTimer",
    "Scheduler",
]
