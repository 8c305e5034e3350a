"""Client error types for the TradingView socket client."""

from __future__ import annotations

from typing import Any


class TradingViewClientError(Exception):
    """Base error for TradingView client failures."""


class TradingViewTimeout(TradingViewClientError):
    """Timeout while communicating with the server."""


class TradingViewConnectionError(TradingViewClientError):
    """Network connection to the server failed."""


class TradingViewHandshakeError(TradingViewClientError):
    """WebSocket handshake failed."""


class TradingViewResponseError(TradingViewClientError):
    """HTTP response error from the server."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class TradingViewCredentialError(TradingViewClientError):
    """Credential exchange was rejected."""


class TradingViewProtocolError(TradingViewClientError):
    """Server reported a fatal protocol error for this connection."""

    def __init__(self, payload: list[Any], message: str = "Client critical error") -> None:
        super().__init__(f"{message}: {payload!r}")
        self.payload = payload


class TradingViewDecodeError(TradingViewClientError):
    """A wire frame could not be decoded."""

    def __init__(self, payload: str, reason: str) -> None:
        super().__init__(f"Malformed frame ({reason}): {payload[:80]!r}")
        self.payload = payload
        self.reason = reason
