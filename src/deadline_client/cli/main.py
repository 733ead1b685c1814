# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Deadline client CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import replace
from typing import Any

from ..client import DeadlineClient
from ..config import DEFAULT_PORTS, ConnectionConfig, Protocol, TlsMaterial, load_connection_config
from ..errors import ConfigurationError, DeadlineClientError
from ..log import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Issue a REST request against a Deadline render queue")
    parser.add_argument("method", choices=["get", "post"], help="HTTP method to use")
    parser.add_argument("path", help="Resource path, e.g. /db/environment/version")
    parser.add_argument("--host", help="Render queue host (default: $DEADLINE_HOST or localhost)")
    parser.add_argument("--port", type=int, help="Render queue port (default: $DEADLINE_PORT)")
    parser.add_argument("--https", action="store_true", help="Connect over TLS")
    parser.add_argument("--ca-file", help="PEM/DER CA bundle used to verify the render queue")
    parser.add_argument(
        "--pfx-file",
        help="PKCS#12 client certificate bundle; the passphrase is read from $DEADLINE_PASSPHRASE",
    )
    parser.add_argument("--data", default="", help="Request body for POST")
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra request header (repeatable)",
    )
    parser.add_argument("--log-level", help="Logging level (default: $DEADLINE_CLIENT_LOG_LEVEL or WARNING)")
    return parser


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise ConfigurationError(f"invalid header {item!r}; expected NAME:VALUE")
        headers[name.strip()] = value.strip()
    return headers


def _read_file(path: str) -> bytes:
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc.strerror}") from exc


def build_config(args: argparse.Namespace) -> ConnectionConfig:
    """Layer CLI options over the environment-loaded config."""
    config = load_connection_config()
    changes: dict[str, Any] = {}
    if args.https:
        changes["protocol"] = Protocol.SECURE
        if args.port is None and os.getenv("DEADLINE_PORT") is None:
            changes["port"] = DEFAULT_PORTS[Protocol.SECURE.value]
    if args.host:
        changes["host"] = args.host
    if args.port is not None:
        changes["port"] = args.port
    if args.header:
        changes["headers"] = {**config.headers, **_parse_headers(args.header)}
    if args.ca_file or args.pfx_file:
        tls = config.tls or TlsMaterial()
        if args.ca_file:
            tls = replace(tls, ca=_read_file(args.ca_file))
        if args.pfx_file:
            tls = replace(tls, pfx=_read_file(args.pfx_file))
        changes["tls"] = tls
    return replace(config, **changes) if changes else config


async def _run(config: ConnectionConfig, args: argparse.Namespace) -> Any:
    async with DeadlineClient(config) as client:
        if args.method == "post":
            return await client.post(args.path, args.data)
        return await client.get(args.path)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
        result = asyncio.run(_run(config, args))
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2
    except DeadlineClientError as exc:
        print(f"request failed: {exc}", file=sys.stderr)
        return 1

    json.dump(result, sys.stdout, indent=2, sort_keys=True)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
