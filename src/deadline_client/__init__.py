# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Deadline client package entrypoint.

This package provides an asynchronous REST client for the Deadline render
queue over plain HTTP or mutually-authenticated TLS. Connection settings are
modeled with frozen dataclasses, and every request settles exactly once with
the parsed JSON body or a typed error.
"""

from .assembler import AssemblerState, Failure, ResponseAssembler, ResponseOutcome, Success
from .client import DeadlineClient
from .config import ConnectionConfig, Protocol, TlsMaterial, load_connection_config
from .errors import (
    ConfigurationError,
    DeadlineClientError,
    DecodeError,
    ErrorCategory,
    RemoteFailure,
    TransportError,
)
from .log import setup_logging
from .tls import SecureContext
from .transport import Transport, select_transport
from .version import __version__

__all__ = [
    "AssemblerState",
    "ConfigurationError",
    "ConnectionConfig",
    "DeadlineClient",
    "DeadlineClientError",
    "DecodeError",
    "ErrorCategory",
    "Failure",
    "Protocol",
    "RemoteFailure",
    "ResponseAssembler",
    "ResponseOutcome",
    "SecureContext",
    "Success",
    "TlsMaterial",
    "Transport",
    "TransportError",
    "load_connection_config",
    "select_transport",
    "setup_logging",
    "__version__",
]
