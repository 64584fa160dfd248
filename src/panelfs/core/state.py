"""Connection state: the resolved files API URL and the authorization header.

Both values are empty, or both are set and belong to the same server.
The state object is created once and passed to every component; there is
no process-wide connection global.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from panelfs.core.config import ConfigResolver, build_server_api_url
from panelfs.core.events import EventBus, get_event_bus
from panelfs.core.logging import get_logger

_logger = get_logger(__name__)

_FILES_SUFFIX = "/files"


@dataclass
class ConnectionState:
    server_api_url: str = ""
    auth_header: str = ""
    bus: EventBus = field(default_factory=get_event_bus, repr=False, compare=False)

    @property
    def is_connected(self) -> bool:
        return bool(self.server_api_url and self.auth_header)

    @property
    def server_root_url(self) -> str | None:
        """Server API root (resources, power), or None when not derivable."""
        if not self.server_api_url.endswith(_FILES_SUFFIX):
            return None
        return self.server_api_url[: -len(_FILES_SUFFIX)]

    def hydrate(self, resolver: ConfigResolver) -> bool:
        """Load persisted panel URL, server id and API key.

        The state is only filled when all three values are present; otherwise
        it is cleared.

        Returns:
            True if the state is connected afterwards.
        """
        panel_url = resolver.resolve_str("panel.url")
        server_id = resolver.resolve_str("panel.server_id")
        api_key = resolver.resolve_str("panel.api_key")

        if panel_url and server_id and api_key:
            self.connect(panel_url, server_id, api_key)
        else:
            _logger.debug("Persisted connection incomplete; starting disconnected")
            self.clear()
        return self.is_connected

    def connect(self, panel_url: str, server_id: str, api_key: str) -> None:
        """Overwrite both facts at once."""
        self.server_api_url = build_server_api_url(panel_url, server_id)
        self.auth_header = f"Bearer {api_key}"
        _logger.verbose(f"Setting server api URL to {self.server_api_url}")
        self.bus.publish("connection.changed", {"connected": True})

    def clear(self) -> None:
        was_connected = bool(self.server_api_url or self.auth_header)
        self.server_api_url = ""
        self.auth_header = ""
        if was_connected:
            self.bus.publish("connection.changed", {"connected": False})
