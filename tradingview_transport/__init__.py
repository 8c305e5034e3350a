"""Real-time socket client for TradingView market data."""

__version__ = "0.1.0"

from .client import TradingViewClient, TradingViewConnectionState
from .config import ClientOptions, resolve_proxy
from .errors import (
    TradingViewClientError,
    TradingViewConnectionError,
    TradingViewCredentialError,
    TradingViewDecodeError,
    TradingViewHandshakeError,
    TradingViewProtocolError,
    TradingViewResponseError,
    TradingViewTimeout,
)
from .events import EventDispatcher, TradingViewEvent
from .http import CredentialProvider, TradingViewHttpClient, TradingViewUser
from .protocol import (
    MalformedFrame,
    Message,
    Ping,
    decode_frames,
    encode_frame,
    encode_packet,
    generate_session_id,
    iter_frames,
)
from .router import route
from .send_queue import AuthGate, SendQueue
from .session import BridgeSession, ClientBridge, SessionHandler, SessionPacket
from .ws import connect_websocket
from .ws_client import TradingViewWsClient, TradingViewWsMessage, TradingViewWsMessageType

__all__ = [
    "AuthGate",
    "BridgeSession",
    "ClientBridge",
    "ClientOptions",
    "CredentialProvider",
    "EventDispatcher",
    "MalformedFrame",
    "Message",
    "Ping",
    "SendQueue",
    "SessionHandler",
    "SessionPacket",
    "TradingViewClient",
    "TradingViewClientError",
    "TradingViewConnectionError",
    "TradingViewConnectionState",
    "TradingViewCredentialError",
    "TradingViewDecodeError",
    "TradingViewEvent",
    "TradingViewHandshakeError",
    "TradingViewHttpClient",
    "TradingViewProtocolError",
    "TradingViewResponseError",
    "TradingViewTimeout",
    "TradingViewUser",
    "TradingViewWsClient",
    "TradingViewWsMessage",
    "TradingViewWsMessageType",
    "__version__",
    "connect_websocket",
    "decode_frames",
    "encode_frame",
    "encode_packet",
    "generate_session_id",
    "iter_frames",
    "resolve_proxy",
    "route",
]
