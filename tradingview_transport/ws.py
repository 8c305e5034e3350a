"""WebSocket helpers for the TradingView data servers."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)
from websockets.typing import Origin

from .config import DEFAULT_ORIGIN, DEFAULT_USER_AGENT
from .errors import (
    TradingViewConnectionError,
    TradingViewHandshakeError,
    TradingViewTimeout,
)


async def connect_websocket(
    url: str,
    *,
    origin: str = DEFAULT_ORIGIN,
    user_agent: str = DEFAULT_USER_AGENT,
    proxy: str | None = None,
    ping_interval: float | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint.

    Args:
        url: WebSocket URL
        origin: Origin header expected by the server
        user_agent: User-Agent header
        proxy: HTTP(S) proxy URL, or None for a direct connection
        ping_interval: Interval for transport-level ping frames. Disabled by
            default, heartbeats are driven by the server
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                origin=Origin(origin),
                user_agent_header=user_agent,
                proxy=proxy,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise TradingViewTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise TradingViewHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise TradingViewConnectionError("WebSocket connection failed") from err
