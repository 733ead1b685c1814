# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for the Deadline client."""

from __future__ import annotations

import logging
import os

DEFAULT_LOG_LEVEL = os.getenv("DEADLINE_CLIENT_LOG_LEVEL", "WARNING").upper()
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging for CLI/library use."""
    effective_level = getattr(logging, (level or DEFAULT_LOG_LEVEL).upper(), logging.WARNING)
    logging.basicConfig(
        level=effective_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO; only surface it when debugging.
    transport_level = logging.DEBUG if effective_level <= logging.DEBUG else max(effective_level, logging.WARNING)
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)


__all__ = ["setup_logging"]
