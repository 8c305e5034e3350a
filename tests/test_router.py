"""Tests for frame routing decisions."""

from __future__ import annotations

from tradingview_transport.errors import TradingViewDecodeError
from tradingview_transport.protocol import MalformedFrame, Message, Ping
from tradingview_transport.router import (
    DeliverToSession,
    EmitData,
    EmitDecodeError,
    EmitLogged,
    EmitPing,
    FatalProtocolError,
    route,
)

from .conftest import RecordingSession


def test_ping_gets_reply():
    """Test heartbeats produce a pong and a ping notification."""
    outcome = route(Ping(123), {}, authenticated=True)
    assert outcome == EmitPing(123, "~m~6~m~~h~123")


def test_ping_never_reaches_sessions():
    """Test heartbeats bypass session routing even before auth."""
    outcome = route(Ping(5), {"5": RecordingSession()}, authenticated=False)
    assert isinstance(outcome, EmitPing)


def test_protocol_error_is_fatal():
    """Test protocol_error packets are fatal regardless of sessions."""
    message = Message(type="protocol_error", payload=["bad session"])
    outcome = route(message, {"bad session": RecordingSession()}, authenticated=True)
    assert outcome == FatalProtocolError(["bad session"])


def test_registered_session_gets_packet():
    """Test a packet naming a registered session is delivered to it."""
    message = Message(type="qsd", payload=["qs_1", {"n": "X"}])
    outcome = route(message, {"qs_1": RecordingSession()}, authenticated=True)
    assert outcome == DeliverToSession(
        "qs_1", {"type": "qsd", "data": ["qs_1", {"n": "X"}]}
    )


def test_session_delivery_wins_before_auth():
    """Test session delivery takes priority over the login branch."""
    message = Message(type="qsd", payload=["qs_1"])
    outcome = route(message, {"qs_1": RecordingSession()}, authenticated=False)
    assert isinstance(outcome, DeliverToSession)


def test_unknown_session_is_data():
    """Test an unregistered session id falls through to data."""
    message = Message(type="qsd", payload=["qs_2", {}])
    outcome = route(message, {"qs_1": RecordingSession()}, authenticated=True)
    assert outcome == EmitData(message)


def test_non_string_first_argument_is_data():
    """Test unhashable first arguments are not treated as session ids."""
    message = Message(type="du", payload=[{"qs_1": 1}])
    outcome = route(message, {"qs_1": RecordingSession()}, authenticated=True)
    assert outcome == EmitData(message)


def test_unauthenticated_unrouted_is_logged():
    """Test the first unrouted packet before auth is the login packet."""
    message = Message(type=None, payload=[], raw={"session_id": "abc"})
    outcome = route(message, {}, authenticated=False)
    assert outcome == EmitLogged(message)


def test_malformed_frame_is_decode_error():
    """Test malformed frames become decode errors."""
    outcome = route(MalformedFrame("{bad}", "invalid JSON"), {}, authenticated=True)
    assert isinstance(outcome, EmitDecodeError)
    assert isinstance(outcome.error, TradingViewDecodeError)
    assert outcome.error.payload == "{bad}"
    assert outcome.error.reason == "invalid JSON"
