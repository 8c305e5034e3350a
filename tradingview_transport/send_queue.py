"""Outbound frame queue gated by connection and auth state."""

from __future__ import annotations

import logging
from collections import deque
from typing import Protocol

_LOGGER = logging.getLogger(__name__)


class FrameWriter(Protocol):
    """Transport side of the queue."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, text: str) -> None: ...


class AuthGate:
    """Tracks whether the auth frame has been queued.

    The flag flips as soon as the auth frame is composed, not when the server
    acknowledges it.
    """

    def __init__(self) -> None:
        self._authenticated = False

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def mark_authenticated(self) -> None:
        self._authenticated = True

    def reset(self) -> None:
        self._authenticated = False


class SendQueue:
    """FIFO of encoded frames, drained only while open and authenticated.

    The auth frame always jumps to the head of the queue. Entries are kept
    while the gate is closed; nothing is dropped or retried.
    """

    def __init__(self, gate: AuthGate, *, debug: bool = False) -> None:
        self._gate = gate
        self._debug = debug
        self._entries: deque[str] = deque()
        self._draining = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending(self) -> list[str]:
        """Frames waiting to be sent, in send order."""
        return list(self._entries)

    def enqueue(self, packet: str) -> None:
        self._entries.append(packet)

    def enqueue_auth(self, packet: str) -> None:
        """Queue the auth frame ahead of everything else and open the gate."""
        self._entries.appendleft(packet)
        self._gate.mark_authenticated()

    def is_ready(self, writer: FrameWriter | None) -> bool:
        """Check if a flush would write anything."""
        return writer is not None and writer.is_open and self._gate.authenticated

    async def flush(self, writer: FrameWriter | None) -> int:
        """Write queued frames in order until the queue or the gate closes.

        Only one drain runs at a time; a call made while another drain is in
        progress returns immediately and the running drain picks up the new
        entries. A write failure drops the failing frame and propagates.

        Returns:
            Number of frames written by this call
        """
        if self._draining:
            return 0

        self._draining = True
        sent = 0
        try:
            while self._entries and self.is_ready(writer):
                packet = self._entries.popleft()
                await writer.send_text(packet)  # type: ignore[union-attr]
                sent += 1
                if self._debug:
                    _LOGGER.debug("> %s", packet)
        finally:
            self._draining = False
        return sent
