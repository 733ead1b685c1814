# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Clear-text vs. TLS transport selection."""

from __future__ import annotations

import ssl
from dataclasses import dataclass

import httpx

from .config import ConnectionConfig, Protocol
from .tls import SecureContext, create_secure_context


@dataclass(frozen=True)
class Transport:
    """Transport-bound settings handed to the request dispatcher."""

    protocol: Protocol
    base_url: httpx.URL
    secure_context: SecureContext | None = None

    @property
    def verify(self) -> ssl.SSLContext | bool:
        # Clear-text connections never load a trust store.
        if self.secure_context is None:
            return False
        return self.secure_context.ssl_context

    def url_for(self, path: str) -> httpx.URL:
        """Attach an opaque resource path (and optional query) to the configured endpoint."""
        if not path.startswith("/"):
            path = "/" + path
        # The host and port come only from the validated base; a leading "//" stays in the path.
        return httpx.URL(str(self.base_url).rstrip("/") + path)


def select_transport(config: ConnectionConfig) -> Transport:
    """
    Pick the transport for a connection config.

    TLS material is only consulted for HTTPS; under HTTP it is ignored even
    when present.
    """
    if config.protocol is Protocol.SECURE:
        return Transport(
            protocol=config.protocol,
            base_url=config.url,
            secure_context=create_secure_context(config.tls),
        )
    return Transport(protocol=config.protocol, base_url=config.url)


__all__ = ["Transport", "select_transport"]
