"""Authenticated HTTP transport for the panel API.

Every outbound URL passes through the proxy rewrite before dispatch.
"""

from __future__ import annotations

from typing import Any

import httpx

from panelfs.core.config import ConfigResolver, proxy_url
from panelfs.core.logging import get_logger

_logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class PanelTransport:
    """Thin wrapper over one shared httpx.AsyncClient."""

    def __init__(
        self,
        *,
        proxy_base: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.proxy_base = proxy_base
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_resolver(
        cls, resolver: ConfigResolver, client: httpx.AsyncClient | None = None
    ) -> PanelTransport:
        """Build a transport from panel.proxy_url and http.timeout."""
        return cls(
            proxy_base=resolver.resolve_str("panel.proxy_url"),
            timeout=resolver.resolve_float("http.timeout", DEFAULT_TIMEOUT),
            client=client,
        )

    def build_url(self, url: str, params: dict[str, str] | None = None) -> str:
        full = str(httpx.URL(url, params=params)) if params else url
        return proxy_url(full, self.proxy_base)

    async def request(
        self,
        method: str,
        url: str,
        *,
        auth_header: str,
        params: dict[str, str] | None = None,
        json: Any | None = None,
        content: bytes | None = None,
        accept: str | None = None,
    ) -> httpx.Response:
        """Send one request.

        Raises:
            httpx.HTTPError: On transport failure. Status codes are not checked here.
        """
        headers = {"Authorization": auth_header}
        if accept:
            headers["Accept"] = accept

        target = self.build_url(url, params)
        _logger.debug(f"{method} {target}")
        return await self._client.request(
            method, target, headers=headers, json=json, content=content
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
