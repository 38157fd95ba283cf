"""HTTP transport for the spreadsheet feed and the remote bus API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from busfeed._constants import USER_AGENT
from busfeed._redact import redact_headers, redact_text
from busfeed.config import BusFeedConfig
from busfeed.exceptions import BusFeedTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        authenticated: bool = False,
    ) -> Any: ...

    async def get_text(self, url: str) -> str: ...


class HttpTransport:
    """aiohttp-backed transport with bearer authentication for mutations."""

    def __init__(self, config: BusFeedConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _headers(self, *, authenticated: bool, has_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if has_body:
            headers["content-type"] = "application/json; charset=UTF-8"
        if authenticated and self._config.token:
            headers["authorization"] = f"Bearer {self._config.token}"
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        *,
        body: str | None,
        headers: dict[str, str],
    ) -> str:
        _logger.debug("%s %s headers=%s body=%s", method, url, redact_headers(headers), redact_text(body))
        try:
            async with self._http.request(method, url, data=body, headers=headers) as resp:
                # Undecodable bytes become U+FFFD.
                text = await resp.text(errors="replace")
                if resp.status < 200 or resp.status >= 300:
                    raise BusFeedTransportError(
                        f"HTTP {resp.status} from {method} {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except BusFeedTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise BusFeedTransportError(f"{method} {url} failed: {exc!r}", url=url) from exc
        _logger.debug("%s %s -> %s", method, url, redact_text(text, limit=256))
        return text

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        authenticated: bool = False,
    ) -> Any:
        """Send a request with an optional JSON body and decode the JSON reply.

        An empty reply body decodes to ``None``.
        """
        body = None if payload is None else json.dumps(payload, separators=(",", ":"))
        headers = self._headers(authenticated=authenticated, has_body=body is not None)
        text = await self._send(method, url, body=body, headers=headers)
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise BusFeedTransportError(f"Invalid JSON from {method} {url}: {text[:200]}", url=url) from exc

    async def get_text(self, url: str) -> str:
        headers = self._headers(authenticated=False, has_body=False)
        headers["accept"] = "text/html,application/xhtml+xml,*/*"
        return await self._send("GET", url, body=None, headers=headers)
