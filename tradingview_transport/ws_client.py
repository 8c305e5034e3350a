"""WebSocket client wrapper for the TradingView socket."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.protocol import State

from .errors import TradingViewConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class TradingViewWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class TradingViewWsMessage:
    """Normalized WebSocket message payload."""

    type: TradingViewWsMessageType
    data: str | None = None
    error: Exception | None = None


class TradingViewWsClient:
    """Wrapper around websockets library for the TradingView socket."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        url: str,
        *,
        proxy: str | None = None,
        ping_interval: float | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the server websocket."""
        self._ws = await connect_websocket(
            url,
            proxy=proxy,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    @property
    def is_open(self) -> bool:
        """Check if frames can be written."""
        return self._ws is not None and self._ws.state is State.OPEN

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, text: str) -> None:
        """Send an encoded frame."""
        if self._ws is None:
            raise TradingViewConnectionError("WebSocket is not connected")
        await self._ws.send(text)

    def __aiter__(self) -> AsyncIterator[TradingViewWsMessage]:
        if self._ws is None:
            raise TradingViewConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[TradingViewWsMessage]:
        if self._ws is None:
            raise TradingViewConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                if isinstance(msg, bytes):
                    # The server only speaks text frames
                    continue
                yield TradingViewWsMessage(TradingViewWsMessageType.TEXT, msg)
        except ConnectionClosedOK:
            yield TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
        except ConnectionClosed as err:
            yield TradingViewWsMessage(type=TradingViewWsMessageType.ERROR, error=err)
            yield TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
        except Exception as err:
            yield TradingViewWsMessage(type=TradingViewWsMessageType.ERROR, error=err)
            yield TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
