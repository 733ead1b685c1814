# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed REST client for the Deadline render queue."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .assembler import ResponseAssembler
from .config import DEFAULT_USER_AGENT, ConnectionConfig
from .errors import ConfigurationError, TransportError
from .tls import SecureContext
from .transport import Transport, select_transport

logger = logging.getLogger(__name__)


class DeadlineClient:
    """
    Asynchronous client issuing GET/POST requests against a render queue.

    Every call runs its own request on its own connection and settles exactly
    once: with the parsed JSON body, or by raising RemoteFailure, DecodeError
    or TransportError. No timeout is applied; a request whose transport never
    completes stays pending.

    Usage:
        async with DeadlineClient(ConnectionConfig(host="rq", port=8080)) as client:
            version = await client.get("/db/environment/version")
    """

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport: Transport = select_transport(config)
        self._client = httpx.AsyncClient(
            verify=self._transport.verify,
            timeout=None,
            follow_redirects=False,
            limits=httpx.Limits(max_connections=None, max_keepalive_connections=0),
            transport=transport,
        )

    @property
    def secure_context(self) -> SecureContext | None:
        return self._transport.secure_context

    async def __aenter__(self) -> "DeadlineClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, *, headers: Mapping[str, str] | None = None) -> Any:
        return await self.request("GET", path, headers=headers)

    async def post(
        self,
        path: str,
        body: str | bytes,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return await self.request("POST", path, body=body, headers=headers)

    def _merge_headers(self, headers: Mapping[str, str] | None) -> dict[str, str]:
        merged = dict(self.config.headers)
        merged.update(headers or {})
        if not any(key.lower() == "user-agent" for key in merged):
            merged["User-Agent"] = DEFAULT_USER_AGENT
        return merged

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        try:
            url = self._transport.url_for(path)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"invalid request path {path!r}: {exc}") from exc
        assembler = ResponseAssembler()
        logger.debug("%s %s", method, url)

        try:
            async with self._client.stream(
                method,
                url,
                headers=self._merge_headers(headers),
                content=body,
            ) as resp:
                assembler.on_headers(resp.status_code, resp.reason_phrase)
                async for chunk in resp.aiter_bytes():
                    assembler.on_chunk(chunk)
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("%s %s failed: %s", method, url, type(exc).__name__)
            raise TransportError(exc) from exc

        logger.debug("%s %s -> %s (%d bytes)", method, url, assembler.status_code, len(assembler.body))
        return assembler.on_end()


__all__ = ["DeadlineClient"]
