"""Routing of decoded frames to their destination."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import TradingViewDecodeError
from .protocol import (
    PROTOCOL_ERROR_TYPE,
    MalformedFrame,
    Message,
    Ping,
    encode_pong,
)
from .session import SessionHandler, SessionPacket


@dataclass(frozen=True)
class EmitPing:
    """Heartbeat: reply immediately and notify ``ping`` observers."""

    n: int
    reply: str


@dataclass(frozen=True)
class FatalProtocolError:
    """Server rejected the connection; close it and stop processing."""

    payload: list[Any]


@dataclass(frozen=True)
class DeliverToSession:
    """Packet addressed to a registered session."""

    session_id: str
    packet: SessionPacket


@dataclass(frozen=True)
class EmitLogged:
    """First unrouted packet before the auth flag is set."""

    message: Message


@dataclass(frozen=True)
class EmitData:
    """Unrouted packet."""

    message: Message


@dataclass(frozen=True)
class EmitDecodeError:
    """Undecodable part of a delivery."""

    error: TradingViewDecodeError


RoutingOutcome = (
    EmitPing | FatalProtocolError | DeliverToSession | EmitLogged | EmitData | EmitDecodeError
)


def route(
    frame: Ping | Message | MalformedFrame,
    sessions: Mapping[str, SessionHandler],
    authenticated: bool,
) -> RoutingOutcome:
    """Decide where a decoded frame goes.

    A message whose first argument names a registered session goes to that
    session only; it is never surfaced as ``logged`` or ``data``.
    """
    if isinstance(frame, Ping):
        return EmitPing(frame.n, encode_pong(frame.n))

    if isinstance(frame, MalformedFrame):
        return EmitDecodeError(TradingViewDecodeError(frame.payload, frame.reason))

    if frame.type == PROTOCOL_ERROR_TYPE:
        return FatalProtocolError(frame.payload)

    if frame.type and frame.payload:
        session_id = frame.payload[0]
        if isinstance(session_id, str) and session_id in sessions:
            return DeliverToSession(
                session_id, SessionPacket(type=frame.type, data=frame.payload)
            )

    if not authenticated:
        return EmitLogged(frame)

    return EmitData(frame)
