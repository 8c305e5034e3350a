"""Client options and process environment lookups."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

DEFAULT_LOCATION: Final = "https://www.tradingview.com/"
DEFAULT_ORIGIN: Final = "https://www.tradingview.com"
DEFAULT_USER_AGENT: Final = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)
SERVERS: Final = frozenset({"data", "prodata", "widgetdata"})

# Upper-case names first, then lower-case, then any other casing.
_PROXY_VARIABLES: Final = ("HTTPS_PROXY", "HTTP_PROXY")


@dataclass(frozen=True)
class ClientOptions:
    """Options recognized by ``TradingViewClient``.

    Args:
        token: User session token (``sessionid`` cookie). Anonymous when omitted.
        signature: Token signature (``sessionid_sign`` cookie)
        location: Page used for the credential exchange
        debug: Log every inbound and outbound packet
        server: Data server, one of ``data``, ``prodata``, ``widgetdata``
    """

    token: str | None = None
    signature: str = ""
    location: str = DEFAULT_LOCATION
    debug: bool = False
    server: str = "data"

    def __post_init__(self) -> None:
        if self.server not in SERVERS:
            raise ValueError(
                f"Unknown server {self.server!r}, expected one of {sorted(SERVERS)}"
            )

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> ClientOptions:
        """Build options from a plain mapping, accepting ``DEBUG`` as an alias."""
        return cls(
            token=options.get("token") or None,
            signature=options.get("signature") or "",
            location=options.get("location") or DEFAULT_LOCATION,
            debug=bool(options.get("DEBUG", options.get("debug", False))),
            server=options.get("server") or "data",
        )

    @property
    def websocket_url(self) -> str:
        return f"wss://{self.server}.tradingview.com/socket.io/websocket?&type=chart"


def resolve_proxy(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the HTTP(S) proxy configured in the environment, if any.

    Variable names are matched case-insensitively; ``HTTPS_PROXY`` is
    preferred over ``HTTP_PROXY``.
    """
    if environ is None:
        environ = os.environ
    for name in (*_PROXY_VARIABLES, *(name.lower() for name in _PROXY_VARIABLES)):
        if environ.get(name):
            return environ[name]
    for name in _PROXY_VARIABLES:
        for key, value in environ.items():
            if key.upper() == name and value:
                return value
    return None
