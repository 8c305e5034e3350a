"""Session plumbing shared between the client and session implementations.

Quote and chart sessions live outside this package. They receive a
``ClientBridge`` instead of the client itself, register their handler in
``bridge.sessions`` and emit packets through ``bridge.send``. They never
touch the socket directly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, MutableMapping
from dataclasses import dataclass
from typing import Any, Protocol, TypedDict

from .protocol import generate_session_id

_LOGGER = logging.getLogger(__name__)


class SessionPacket(TypedDict):
    """Packet delivered to a session handler."""

    type: str
    data: list[Any]


class SessionHandler(Protocol):
    """Anything that can receive packets routed to a session id."""

    def on_data(self, packet: SessionPacket) -> None: ...


SendPacket = Callable[[str, Iterable[Any]], None]


@dataclass(frozen=True)
class ClientBridge:
    """Capability handed to session implementations.

    ``sessions`` is the client's live registry, not a copy.
    """

    sessions: MutableMapping[str, SessionHandler]
    send: SendPacket


class BridgeSession:
    """Base class for sessions multiplexed over one client connection.

    Subclasses set ``prefix`` and ``delete_packet_type`` and override
    ``on_data``.

    Usage:
        class QuoteSession(BridgeSession):
            prefix = "qs"
            delete_packet_type = "quote_delete_session"

            def on_data(self, packet):
                ...

        session = QuoteSession(client.bridge)
        session.send("quote_create_session", [session.session_id])
    """

    prefix = "xs"
    delete_packet_type: str | None = None

    def __init__(self, bridge: ClientBridge, *, session_id: str | None = None) -> None:
        self._bridge = bridge
        self.session_id = session_id or generate_session_id(self.prefix)
        self.register()

    @property
    def is_registered(self) -> bool:
        """Check if packets for this session are routed to it."""
        return self._bridge.sessions.get(self.session_id) is self

    def register(self) -> None:
        """Route packets addressed to this session id to ``on_data``."""
        if self.session_id in self._bridge.sessions and not self.is_registered:
            raise ValueError(f"Session id already registered: {self.session_id}")
        self._bridge.sessions[self.session_id] = self

    def send(self, packet_type: str, payload: Iterable[Any] = ()) -> None:
        """Send a packet through the client queue."""
        self._bridge.send(packet_type, payload)

    def delete(self) -> None:
        """Tell the server to drop the session and stop routing to it."""
        if self.delete_packet_type is not None:
            self.send(self.delete_packet_type, [self.session_id])
        if self.is_registered:
            del self._bridge.sessions[self.session_id]
        _LOGGER.debug("Session %s deleted", self.session_id)

    def on_data(self, packet: SessionPacket) -> None:
        raise NotImplementedError
