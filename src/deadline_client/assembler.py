# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Per-request response assembly: buffer the body, then settle once."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import DecodeError, RemoteFailure

ERROR_STATUS_THRESHOLD = 400


class AssemblerState(str, Enum):
    AWAITING_HEADERS = "AWAITING_HEADERS"
    RECEIVING_BODY = "RECEIVING_BODY"
    COMPLETE = "COMPLETE"


@dataclass(frozen=True)
class Success:
    data: Any

    def unwrap(self) -> Any:
        return self.data


@dataclass(frozen=True)
class Failure:
    status_code: int
    status_message: str

    def unwrap(self) -> Any:
        raise RemoteFailure(self.status_code, self.status_message)


ResponseOutcome = Success | Failure


class ResponseAssembler:
    """
    Accumulates one response and decides its outcome.

    The status is recorded when headers arrive but only acted upon once the
    whole body has been drained. Anything below 400 is a success and the
    buffered body must be JSON; 400 and above fails with the reason phrase,
    whatever the body says.
    """

    def __init__(self) -> None:
        self.state = AssemblerState.AWAITING_HEADERS
        self.status_code: int | None = None
        self.reason_phrase = ""
        self._buffer = bytearray()

    @property
    def body(self) -> bytes:
        return bytes(self._buffer)

    def on_headers(self, status_code: int, reason_phrase: str) -> None:
        if self.state is not AssemblerState.AWAITING_HEADERS:
            raise RuntimeError(f"headers received in state {self.state.value}")
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        self.state = AssemblerState.RECEIVING_BODY

    def on_chunk(self, data: bytes) -> None:
        if self.state is not AssemblerState.RECEIVING_BODY:
            raise RuntimeError(f"body chunk received in state {self.state.value}")
        self._buffer.extend(data)

    def outcome(self) -> ResponseOutcome:
        if self.state is not AssemblerState.RECEIVING_BODY or self.status_code is None:
            raise RuntimeError(f"stream ended in state {self.state.value}")
        self.state = AssemblerState.COMPLETE

        if self.status_code >= ERROR_STATUS_THRESHOLD:
            return Failure(self.status_code, self.reason_phrase)
        body = self.body
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(
                f"response body is not valid JSON: {exc}",
                status_code=self.status_code,
                body=body,
            ) from exc
        return Success(data)

    def on_end(self) -> Any:
        """Settle the request: return the parsed body or raise RemoteFailure."""
        return self.outcome().unwrap()


__all__ = [
    "AssemblerState",
    "ERROR_STATUS_THRESHOLD",
    "Failure",
    "ResponseAssembler",
    "ResponseOutcome",
    "Success",
]
