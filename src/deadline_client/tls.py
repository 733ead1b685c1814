# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Secure context construction for HTTPS connections to the render queue.

Only the fields actually supplied in TlsMaterial are forwarded. An absent
CA bundle, client bundle or passphrase never shows up as an empty option,
because an explicitly empty credential is not the same thing as none.
"""

from __future__ import annotations

import os
import ssl
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .config import TlsMaterial
from .errors import ConfigurationError


@dataclass(frozen=True)
class SecureContext:
    """Read-only TLS configuration shared by every request of one client."""

    options: Mapping[str, Any]
    ssl_context: ssl.SSLContext

    def __repr__(self) -> str:
        return f"SecureContext(options={sorted(self.options)})"


def build_tls_options(material: TlsMaterial | None) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if material is None:
        return options
    if material.ca is not None:
        options["ca"] = material.ca
    if material.pfx is not None:
        options["pfx"] = material.pfx
    if material.passphrase is not None:
        options["passphrase"] = material.passphrase
    return options


def _load_pfx(context: ssl.SSLContext, pfx: bytes, passphrase: str | None) -> None:
    password = passphrase.encode("utf-8") if passphrase is not None else None
    key, cert, extra_certs = pkcs12.load_key_and_certificates(pfx, password)
    if key is None or cert is None:
        raise ValueError("client certificate bundle has no private key or certificate")

    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    chain_pem = cert.public_bytes(serialization.Encoding.PEM)
    for extra in extra_certs or []:
        chain_pem += extra.public_bytes(serialization.Encoding.PEM)

    # ssl can only read certificate chains from disk.
    with tempfile.TemporaryDirectory(prefix="deadline-client-") as workdir:
        cert_path = os.path.join(workdir, "client.pem")
        key_path = os.path.join(workdir, "client.key")
        for path, data in ((cert_path, chain_pem), (key_path, key_pem)):
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        context.load_cert_chain(cert_path, key_path)


def build_ssl_context(options: Mapping[str, Any]) -> ssl.SSLContext:
    """Translate TLS options into an ssl.SSLContext."""
    context = ssl.create_default_context()
    ca = options.get("ca")
    if ca is not None:
        # PEM bundles go in as text, anything else is treated as DER.
        cadata = ca.decode("ascii") if ca.lstrip().startswith(b"-----BEGIN") else ca
        context.load_verify_locations(cadata=cadata)
    pfx = options.get("pfx")
    if pfx is not None:
        _load_pfx(context, pfx, options.get("passphrase"))
    return context


def create_secure_context(material: TlsMaterial | None) -> SecureContext:
    options = build_tls_options(material)
    try:
        ssl_context = build_ssl_context(options)
    except (ssl.SSLError, ValueError, TypeError) as exc:
        # Never echo the material itself.
        raise ConfigurationError(f"invalid TLS material: {type(exc).__name__}") from exc
    return SecureContext(options=MappingProxyType(options), ssl_context=ssl_context)


__all__ = ["SecureContext", "build_ssl_context", "build_tls_options", "create_secure_context"]
