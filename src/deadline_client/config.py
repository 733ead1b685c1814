# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Connection configuration for the Deadline client."""

from __future__ import annotations

import ipaddress
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

import httpx

from .errors import ConfigurationError
from .version import __version__

DEFAULT_USER_AGENT = f"deadline-client/{__version__}"
DEFAULT_HOST = "localhost"
DEFAULT_PORTS = {"HTTP": 8080, "HTTPS": 4433}
_HOST_FORBIDDEN = frozenset("/\\@?#%")


class Protocol(str, Enum):
    """Transport used to reach the render queue."""

    PLAIN = "HTTP"
    SECURE = "HTTPS"

    @classmethod
    def parse(cls, value: "Protocol | str") -> "Protocol":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            keyword = value.strip().upper()
            for member in cls:
                if member.value == keyword or member.name == keyword:
                    return member
        raise ConfigurationError(f"Unknown protocol {value!r}; expected HTTP or HTTPS")

    @property
    def scheme(self) -> str:
        return self.value.lower()


def _as_bytes(name: str, value: bytes | str | None) -> bytes | None:
    if value is None or isinstance(value, bytes):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise ConfigurationError(f"tls {name} must be bytes or str, got {type(value).__name__}")


def _normalize_host(host: object) -> str:
    if not isinstance(host, str) or not host:
        raise ConfigurationError("host must be a non-empty string")
    bracketed = host.startswith("[") and host.endswith("]")
    if bracketed:
        host = host[1:-1]
    if any(ch in _HOST_FORBIDDEN or ch.isspace() for ch in host):
        raise ConfigurationError(f"host {host!r} must be a bare hostname or IP address")
    if bracketed or ":" in host:
        # Only an IPv6 literal may contain colons; ports belong in `port`.
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            raise ConfigurationError(f"host {host!r} must not carry a port or other URL parts") from None
    return host


def _build_url(scheme: str, host: str, port: int) -> httpx.URL:
    try:
        return httpx.URL(scheme=scheme, host=host, port=port)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"cannot build a URL for {host!r}:{port}: {exc}") from exc


@dataclass(frozen=True)
class TlsMaterial:
    """Optional certificate material; any subset of the fields may be set."""

    ca: bytes | None = None
    pfx: bytes | None = None
    passphrase: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ca", _as_bytes("ca", self.ca))
        object.__setattr__(self, "pfx", _as_bytes("pfx", self.pfx))
        if self.passphrase is not None and not isinstance(self.passphrase, str):
            raise ConfigurationError(f"tls passphrase must be str, got {type(self.passphrase).__name__}")

    def __repr__(self) -> str:
        present = [name for name in ("ca", "pfx", "passphrase") if getattr(self, name) is not None]
        return f"TlsMaterial(present={present})"


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable description of a render queue endpoint, validated at construction."""

    host: str
    port: int
    protocol: Protocol = Protocol.PLAIN
    headers: Mapping[str, str] = field(default_factory=dict)
    tls: TlsMaterial | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "host", _normalize_host(self.host))
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ConfigurationError(f"port must be an integer, got {self.port!r}")
        if self.port < 0:
            raise ConfigurationError(f"port must be non-negative, got {self.port}")
        object.__setattr__(self, "protocol", Protocol.parse(self.protocol))

        headers = dict(self.headers or {})
        for key, value in headers.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ConfigurationError(f"header {key!r} must map a string to a string")
        object.__setattr__(self, "headers", MappingProxyType(headers))

        if self.tls is not None and not isinstance(self.tls, TlsMaterial):
            raise ConfigurationError("tls must be a TlsMaterial instance")
        _build_url(self.scheme, self.host, self.port)

    @property
    def scheme(self) -> str:
        return self.protocol.scheme

    @property
    def url(self) -> httpx.URL:
        return _build_url(self.scheme, self.host, self.port)

    @property
    def base_url(self) -> str:
        return str(self.url).rstrip("/")

    @classmethod
    def from_env(cls) -> "ConnectionConfig":
        """Create a config from environment variables (evaluated at call time)."""
        protocol = Protocol.parse(os.getenv("DEADLINE_PROTOCOL", Protocol.PLAIN.value))
        port = _int_env("DEADLINE_PORT", DEFAULT_PORTS[protocol.value])
        ca = _file_env("DEADLINE_CA_FILE")
        pfx = _file_env("DEADLINE_PFX_FILE")
        passphrase = os.getenv("DEADLINE_PASSPHRASE")
        tls = None
        if ca is not None or pfx is not None or passphrase is not None:
            tls = TlsMaterial(ca=ca, pfx=pfx, passphrase=passphrase)
        return cls(
            host=os.getenv("DEADLINE_HOST", DEFAULT_HOST),
            port=port,
            protocol=protocol,
            tls=tls,
        )


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _file_env(name: str) -> bytes | None:
    path = os.getenv(name)
    if not path:
        return None
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise ConfigurationError(f"{name}: cannot read {path}: {exc.strerror}") from exc


def load_connection_config() -> ConnectionConfig:
    """Load connection settings from environment with sensible defaults."""
    return ConnectionConfig.from_env()
