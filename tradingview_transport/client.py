"""High-level client for the TradingView real-time socket.

The client owns one websocket connection and multiplexes any number of
quote/chart sessions over it. It handles:
- Frame decoding and heartbeat replies
- Routing packets to registered sessions
- The auth frame and the outbound queue it gates
- Lifecycle and data notifications to observers

Usage:
    client = TradingViewClient(ClientOptions(token="...", signature="..."))
    client.on_logged(my_logged_handler)
    client.on_error(my_error_handler)
    await client.connect()
    quote = MyQuoteSession(client.bridge)
    ...
    await client.close()

There is no reconnect: a closed client stays closed, create a new one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

import aiohttp
from websockets.exceptions import WebSocketException

from .config import ClientOptions, resolve_proxy
from .errors import (
    TradingViewClientError,
    TradingViewConnectionError,
    TradingViewCredentialError,
    TradingViewProtocolError,
)
from .events import EventCallback, EventDispatcher, TradingViewEvent
from .http import CredentialProvider, TradingViewHttpClient, TradingViewUser
from .protocol import ANONYMOUS_AUTH_TOKEN, encode_auth, encode_packet, iter_frames
from .router import (
    DeliverToSession,
    EmitData,
    EmitDecodeError,
    EmitLogged,
    EmitPing,
    FatalProtocolError,
    route,
)
from .send_queue import AuthGate, SendQueue
from .session import ClientBridge, SessionHandler
from .ws_client import TradingViewWsClient, TradingViewWsMessageType

_LOGGER = logging.getLogger(__name__)


class TradingViewConnectionState(Enum):
    """Connection lifecycle. ``CLOSED`` is terminal."""

    CONNECTING = "connecting"
    OPEN_UNAUTHENTICATED = "open_unauthenticated"
    OPEN_AUTHENTICATED = "open_authenticated"
    CLOSED = "closed"


class TradingViewClient:
    """Client for one TradingView socket connection."""

    def __init__(
        self,
        options: ClientOptions | None = None,
        *,
        credentials: CredentialProvider | None = None,
    ) -> None:
        """Initialize client.

        Args:
            options: Client options. Anonymous access on the ``data`` server
                when omitted.
            credentials: Credential exchange used for token-based access.
                Defaults to an HTTP exchange against ``options.location``.
        """
        self._options = options or ClientOptions()
        self._server = self._options.server
        self._debug = self._options.debug
        self._credentials = credentials
        self._proxy = resolve_proxy()

        self._events = EventDispatcher()
        self._gate = AuthGate()
        self._queue = SendQueue(self._gate, debug=self._debug)
        self._sessions: dict[str, SessionHandler] = {}
        self._bridge = ClientBridge(sessions=self._sessions, send=self.send)

        # Connection state
        self._ws: TradingViewWsClient | None = None
        self._connected = False
        self._closed = False
        self._listen_task: asyncio.Task[None] | None = None
        self._auth_task: asyncio.Task[None] | None = None
        self._flush_tasks: set[asyncio.Task[int]] = set()

        if not self._options.token:
            self._queue.enqueue_auth(encode_auth(ANONYMOUS_AUTH_TOKEN))

    # -------------------------------------------------------------------------
    # Public API: State
    # -------------------------------------------------------------------------

    @property
    def is_logged(self) -> bool:
        """Check if the auth frame has been queued."""
        return self._gate.authenticated

    @property
    def is_open(self) -> bool:
        """Check if the websocket is open."""
        return self._ws is not None and self._ws.is_open and not self._closed

    @property
    def connection_state(self) -> TradingViewConnectionState:
        if self._closed:
            return TradingViewConnectionState.CLOSED
        if not self._connected:
            return TradingViewConnectionState.CONNECTING
        if self._gate.authenticated:
            return TradingViewConnectionState.OPEN_AUTHENTICATED
        return TradingViewConnectionState.OPEN_UNAUTHENTICATED

    @property
    def bridge(self) -> ClientBridge:
        """Capability handed to session implementations."""
        return self._bridge

    @property
    def sessions(self) -> dict[str, SessionHandler]:
        return self._sessions

    @property
    def pending(self) -> list[str]:
        """Encoded frames waiting for the connection or the auth frame."""
        return self._queue.pending

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on(self, channel: TradingViewEvent | str, callback: EventCallback) -> None:
        """Register a callback on any channel by name."""
        self._events.register(channel, callback)

    def on_connected(self, callback: Callable[[], None]) -> None:
        self._events.register(TradingViewEvent.CONNECTED, callback)

    def on_disconnected(self, callback: Callable[[], None]) -> None:
        self._events.register(TradingViewEvent.DISCONNECTED, callback)

    def on_logged(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Register callback for the login packet.

        Callback receives the socket session info: {
            "session_id": "...",
            "timestamp": 1700000000,
            "release": "...",
            "protocol": "json",
            ...
        }
        """
        self._events.register(TradingViewEvent.LOGGED, callback)

    def on_ping(self, callback: Callable[[int], None]) -> None:
        """Register callback for server heartbeats (receives the counter)."""
        self._events.register(TradingViewEvent.PING, callback)

    def on_data(self, callback: Callable[[dict[str, Any]], None]) -> None:
        """Register callback for packets no session claimed."""
        self._events.register(TradingViewEvent.DATA, callback)

    def on_error(self, callback: Callable[..., None]) -> None:
        """Register callback for client errors.

        Without any error callback, errors are logged instead.
        """
        self._events.register(TradingViewEvent.ERROR, callback)

    def on_event(self, callback: Callable[..., None]) -> None:
        """Register callback receiving ``(channel, *args)`` for every event."""
        self._events.register(TradingViewEvent.EVENT, callback)

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the socket and start the credential exchange if needed.

        Returns:
            True if the socket is open, False otherwise
        """
        if self._closed:
            _LOGGER.warning("[%s] Client is closed, create a new one", self._server)
            return False
        if self._ws is not None:
            return self._connected

        if self._options.token and self._auth_task is None:
            self._auth_task = asyncio.create_task(self._authenticate())

        url = self._options.websocket_url
        if self._proxy and self._debug:
            _LOGGER.debug("[%s] Using proxy server: %s", self._server, self._proxy)

        ws_client = TradingViewWsClient()
        self._ws = ws_client
        try:
            _LOGGER.info("[%s] Connecting to %s", self._server, url)
            await ws_client.connect(url, proxy=self._proxy)
        except TradingViewClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self._server, err)
            self._events.dispatch_error(err)
            self._handle_close()
            return False

        if self._closed:
            # close() ran while the handshake was in flight
            await ws_client.close()
            return False

        self._connected = True
        _LOGGER.info("[%s] WebSocket connected", self._server)
        self._events.dispatch(TradingViewEvent.CONNECTED)
        await self.flush()

        self._listen_task = asyncio.create_task(self._listen())
        return True

    async def close(self) -> None:
        """Close the connection.

        A pending credential exchange is left to finish; once the socket is
        closed its auth frame is never sent.
        """
        _LOGGER.info("[%s] Closing client", self._server)
        ws = self._ws
        listen_task = self._listen_task

        if ws is not None:
            try:
                await asyncio.wait_for(ws.close(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("[%s] WebSocket close timed out", self._server)

        # A socket that never opened has nothing to report
        self._handle_close(notify=self._connected)

        if (
            listen_task is not None
            and listen_task is not asyncio.current_task()
            and not listen_task.done()
        ):
            listen_task.cancel()
            try:
                await listen_task
            except asyncio.CancelledError:
                pass

    # -------------------------------------------------------------------------
    # Public API: Sending
    # -------------------------------------------------------------------------

    def send(self, packet_type: str, payload: Iterable[Any] = ()) -> None:
        """Queue a packet; it goes out as soon as the connection allows."""
        self._queue.enqueue(encode_packet(packet_type, payload))
        self._request_flush()

    async def flush(self) -> int:
        """Send queued packets if the socket is open and authenticated.

        Returns:
            Number of packets written
        """
        try:
            return await self._queue.flush(self._ws)
        except (TradingViewClientError, WebSocketException, OSError) as err:
            _LOGGER.warning("[%s] Failed to send packet: %s", self._server, err)
            self._events.dispatch_error(err)
            return 0

    def _request_flush(self) -> None:
        if not self._queue.is_ready(self._ws):
            return
        task = asyncio.get_running_loop().create_task(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    # -------------------------------------------------------------------------
    # Internal: Authentication
    # -------------------------------------------------------------------------

    async def _authenticate(self) -> None:
        """Exchange the session token for an auth token and queue it."""
        token = self._options.token or ""
        try:
            user = await self._fetch_user(token)
        except TradingViewClientError as err:
            _LOGGER.warning("[%s] Credentials error: %s", self._server, err)
            self._events.dispatch_error(err)
            return

        if self._closed:
            _LOGGER.debug("[%s] Auth token ignored, client closed", self._server)
            return

        self._queue.enqueue_auth(encode_auth(user.auth_token))
        _LOGGER.info("[%s] Authenticated as %s", self._server, user.username or "user")
        await self.flush()

    async def _fetch_user(self, token: str) -> TradingViewUser:
        signature = self._options.signature
        location = self._options.location
        try:
            if self._credentials is not None:
                return await self._credentials.fetch_user(token, signature, location)
            async with aiohttp.ClientSession() as session:
                return await TradingViewHttpClient(session).fetch_user(
                    token, signature, location
                )
        except TradingViewClientError:
            raise
        except Exception as err:
            raise TradingViewCredentialError(
                f"Credential exchange failed: {err}"
            ) from err

    # -------------------------------------------------------------------------
    # Internal: Message Listener
    # -------------------------------------------------------------------------

    async def _listen(self) -> None:
        """Listen for deliveries until the socket closes."""
        ws = self._ws
        if ws is None:
            return

        try:
            async for msg in ws:
                if msg.type is TradingViewWsMessageType.TEXT:
                    await self._handle_delivery(msg.data or "")
                    if self._closed:
                        break

                elif msg.type is TradingViewWsMessageType.ERROR:
                    _LOGGER.warning("[%s] WebSocket error: %s", self._server, msg.error)
                    self._events.dispatch_error(
                        msg.error or TradingViewConnectionError("WebSocket error")
                    )

                elif msg.type is TradingViewWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self._server)
                    break

        except (TradingViewClientError, WebSocketException, OSError) as err:
            _LOGGER.warning("[%s] Transport error: %s", self._server, err)
            self._events.dispatch_error(err)
        finally:
            self._handle_close()

    async def _handle_delivery(self, raw: str) -> None:
        """Decode one socket delivery and route its frames in order."""
        if not self.is_open:
            return

        for frame in iter_frames(raw):
            if self._debug:
                _LOGGER.debug("[%s] Packet: %r", self._server, frame)

            outcome = route(frame, self._sessions, self._gate.authenticated)

            if isinstance(outcome, EmitPing):
                if self._ws is not None:
                    await self._ws.send_text(outcome.reply)
                self._events.dispatch(TradingViewEvent.PING, outcome.n)

            elif isinstance(outcome, FatalProtocolError):
                self._events.dispatch_error(TradingViewProtocolError(outcome.payload))
                await self._close_transport()
                return

            elif isinstance(outcome, DeliverToSession):
                self._deliver(outcome)

            elif isinstance(outcome, EmitLogged):
                self._events.dispatch(TradingViewEvent.LOGGED, outcome.message.raw)

            elif isinstance(outcome, EmitData):
                self._events.dispatch(TradingViewEvent.DATA, outcome.message.raw)

            elif isinstance(outcome, EmitDecodeError):
                _LOGGER.debug("[%s] %s", self._server, outcome.error)
                self._events.dispatch_error(outcome.error)

    def _deliver(self, outcome: DeliverToSession) -> None:
        handler = self._sessions[outcome.session_id]
        try:
            handler.on_data(outcome.packet)
        except Exception as err:
            _LOGGER.exception(
                "[%s] Session %s handler error: %s",
                self._server,
                outcome.session_id,
                err,
            )

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    async def _close_transport(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        self._handle_close()

    def _handle_close(self, notify: bool = True) -> None:
        """Move to the terminal state and notify observers once."""
        if self._closed:
            return
        self._closed = True
        self._connected = False
        self._gate.reset()
        _LOGGER.info("[%s] Disconnected", self._server)
        if notify:
            self._events.dispatch(TradingViewEvent.DISCONNECTED)
