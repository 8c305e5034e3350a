"""Wire framing helpers for the TradingView socket protocol.

Every frame on the wire is length-prefixed::

    ~m~<length>~m~<payload>

A payload is either a heartbeat counter (``123`` or ``~h~123``) or a JSON
object of the form ``{"m": <packet type>, "p": [<args>...]}``. A single
socket delivery may carry any number of concatenated frames.
"""

from __future__ import annotations

import json
import random
import re
import string
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

FRAME_MARKER = "~m~"
HEARTBEAT_MARKER = "~h~"

AUTH_PACKET_TYPE = "set_auth_token"
ANONYMOUS_AUTH_TOKEN = "unauthorized_user_token"
PROTOCOL_ERROR_TYPE = "protocol_error"

_MARKER_BYTES = FRAME_MARKER.encode("ascii")
_HEADER_RE = re.compile(rb"~m~(\d+)~m~")
_HEARTBEAT_RE = re.compile(r"(?:~h~)?(\d+)", re.ASCII)

_SESSION_ID_ALPHABET = string.ascii_letters + string.digits
_SESSION_ID_LENGTH = 12


@dataclass(frozen=True)
class Ping:
    """Server heartbeat carrying a counter to echo back."""

    n: int


@dataclass(frozen=True)
class Message:
    """Decoded JSON packet.

    ``raw`` keeps the full decoded object; the session-info packet the
    server sends right after connecting has no ``m``/``p`` keys at all.
    """

    type: str | None
    payload: list[Any]
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class MalformedFrame:
    """Part of an inbound buffer that could not be decoded."""

    payload: str
    reason: str


Frame = Ping | Message


def encode_frame(value: Any) -> str:
    """Wrap a value into a wire frame.

    Strings are sent verbatim; any other value is serialized to compact JSON.
    JSON output is ASCII-only, so its character count equals its byte length.
    """
    payload = value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))
    return f"{FRAME_MARKER}{len(payload.encode('utf-8'))}{FRAME_MARKER}{payload}"


def encode_packet(packet_type: str, payload: Iterable[Any] = ()) -> str:
    """Encode a ``{"m": ..., "p": [...]}`` packet."""
    return encode_frame({"m": packet_type, "p": list(payload)})


def encode_auth(auth_token: str) -> str:
    """Encode the auth frame that opens every session."""
    return encode_packet(AUTH_PACKET_TYPE, [auth_token])


def encode_pong(n: int) -> str:
    """Encode the reply to a server heartbeat."""
    return encode_frame(f"{HEARTBEAT_MARKER}{n}")


def iter_frames(raw: str) -> Iterator[Ping | Message | MalformedFrame]:
    """Split a socket delivery into frames, in wire order.

    Declared lengths count UTF-8 bytes, so scanning runs over the encoded
    buffer. Never raises. Undecodable input is yielded as ``MalformedFrame``
    and scanning resumes with the rest of the buffer:

    - bad JSON inside a well-formed header: skip exactly the declared length
    - missing or non-numeric length: resync at the next ``~m~`` marker
    - declared length past the end of the buffer: the tail is dropped
    """
    data = raw.encode("utf-8", errors="surrogatepass")
    cursor = 0
    end = len(data)
    while cursor < end:
        start = data.find(_MARKER_BYTES, cursor)
        if start == -1:
            yield MalformedFrame(_to_text(data[cursor:]), "missing frame marker")
            return
        if start > cursor:
            yield MalformedFrame(
                _to_text(data[cursor:start]), "unexpected data between frames"
            )

        header = _HEADER_RE.match(data, start)
        if header is None:
            resync = data.find(_MARKER_BYTES, start + len(_MARKER_BYTES))
            bad_end = end if resync == -1 else resync
            yield MalformedFrame(_to_text(data[start:bad_end]), "invalid frame length")
            cursor = bad_end
            continue

        payload_start = header.end()
        payload_end = payload_start + int(header.group(1))
        if payload_end > end:
            yield MalformedFrame(_to_text(data[start:]), "truncated frame")
            return

        payload = data[payload_start:payload_end]
        cursor = payload_end
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError:
            # Length cut a multi-byte character in half
            yield MalformedFrame(_to_text(payload), "invalid UTF-8")
            continue
        yield _decode_payload(text)


def decode_frames(raw: str) -> list[Frame]:
    """Decode every valid frame of a socket delivery, dropping malformed ones."""
    return [frame for frame in iter_frames(raw) if not isinstance(frame, MalformedFrame)]


def _decode_payload(payload: str) -> Ping | Message | MalformedFrame:
    heartbeat = _HEARTBEAT_RE.fullmatch(payload)
    if heartbeat is not None:
        return Ping(int(heartbeat.group(1)))

    try:
        packet = json.loads(payload)
    except ValueError:
        return MalformedFrame(payload, "invalid JSON")

    if not isinstance(packet, dict):
        return MalformedFrame(payload, "packet is not a JSON object")

    params = packet.get("p")
    return Message(
        type=packet.get("m"),
        payload=params if isinstance(params, list) else [],
        raw=packet,
    )


def _to_text(chunk: bytes) -> str:
    return chunk.decode("utf-8", errors="replace")


def generate_session_id(prefix: str = "xs") -> str:
    """Generate a session identifier such as ``qs_a1B2c3D4e5F6``."""
    suffix = "".join(random.choices(_SESSION_ID_ALPHABET, k=_SESSION_ID_LENGTH))
    return f"{prefix}_{suffix}"
