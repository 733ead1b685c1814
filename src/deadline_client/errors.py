# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class DeadlineClientError(Exception):
    """Base class for Deadline client errors."""


class ConfigurationError(DeadlineClientError, ValueError):
    """Raised synchronously when a ConnectionConfig or its TLS material is invalid."""


class TransportError(DeadlineClientError):
    """Connection, handshake or socket failure before a response was assembled."""

    def __init__(self, error: BaseException):
        super().__init__(str(error) or type(error).__name__)
        self.error = error
        self.category = categorize_exception(error)


class RemoteFailure(DeadlineClientError):
    """The remote service answered with a status code >= 400."""

    def __init__(self, status_code: int, status_message: str):
        super().__init__(status_message)
        self.status_code = status_code
        self.status_message = status_message


class DecodeError(DeadlineClientError):
    """A success status arrived with a body that is not valid UTF-8 JSON."""

    def __init__(self, message: str, *, status_code: int, body: bytes):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _iter_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.

    httpx wraps the low-level socket and ssl errors, so the cause chain is
    inspected before falling back to the httpx class.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    for item in _iter_chain(exc):
        if isinstance(item, (ssl_module.SSLError, ssl_module.CertificateError)):
            return ErrorCategory.SSL_ERROR
        if isinstance(item, (socket.gaierror, socket.herror)):
            return ErrorCategory.DNS_ERROR

    if isinstance(
        exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)
    ):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


__all__ = [
    "ConfigurationError",
    "DecodeError",
    "DeadlineClientError",
    "ErrorCategory",
    "RemoteFailure",
    "TransportError",
    "categorize_exception",
]
