"""Pytest configuration and fixtures for tradingview_transport tests."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from tradingview_transport.http import TradingViewUser
from tradingview_transport.session import SessionPacket
from tradingview_transport.ws_client import (
    TradingViewWsMessage,
    TradingViewWsMessageType,
)


class FakeWsClient:
    """In-memory stand-in for TradingViewWsClient."""

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        self.sent: list[str] = []
        self.is_open = False
        self.close_calls = 0
        self.connect_url: str | None = None
        self.connect_kwargs: dict[str, Any] = {}
        self._connect_error = connect_error
        self._incoming: asyncio.Queue[TradingViewWsMessage] = asyncio.Queue()

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_url = url
        self.connect_kwargs = kwargs
        if self._connect_error is not None:
            raise self._connect_error
        self.is_open = True

    async def close(self) -> None:
        self.close_calls += 1
        if self.is_open:
            self.is_open = False
            self._incoming.put_nowait(
                TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
            )

    async def send_text(self, text: str) -> None:
        if not self.is_open:
            raise AssertionError("send_text on a closed socket")
        self.sent.append(text)

    def feed(self, text: str) -> None:
        """Queue an inbound delivery."""
        self._incoming.put_nowait(
            TradingViewWsMessage(type=TradingViewWsMessageType.TEXT, data=text)
        )

    def feed_error(self, error: Exception) -> None:
        self._incoming.put_nowait(
            TradingViewWsMessage(type=TradingViewWsMessageType.ERROR, error=error)
        )

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.is_open = False
        self._incoming.put_nowait(
            TradingViewWsMessage(type=TradingViewWsMessageType.CLOSED)
        )

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        while True:
            msg = await self._incoming.get()
            yield msg
            if msg.type is TradingViewWsMessageType.CLOSED:
                return


class FakeCredentials:
    """Credential exchange that resolves when the test says so."""

    def __init__(
        self,
        auth_token: str = "user_auth_token",
        *,
        error: Exception | None = None,
    ) -> None:
        self.auth_token = auth_token
        self.error = error
        self.calls: list[tuple[str, str, str]] = []
        self.release = asyncio.Event()

    async def fetch_user(
        self, token: str, signature: str = "", location: str = ""
    ) -> TradingViewUser:
        self.calls.append((token, signature, location))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return TradingViewUser(auth_token=self.auth_token, username="tester")


class RecordingSession:
    """Session handler that records every packet it receives."""

    def __init__(self) -> None:
        self.packets: list[SessionPacket] = []

    def on_data(self, packet: SessionPacket) -> None:
        self.packets.append(packet)


async def settle(rounds: int = 10) -> None:
    """Let background tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_ws() -> FakeWsClient:
    return FakeWsClient()


@pytest.fixture
def fake_credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host environment's proxy out of client construction."""
    for name in ("HTTPS_PROXY", "HTTP_PROXY", "https_proxy", "http_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    text_data: str = "",
    headers: dict[str, str] | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        text_data: Data to return from text() call
        headers: Response headers

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.text.return_value = text_data
    response.headers = headers or {}

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response
