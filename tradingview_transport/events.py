"""Client event channels and observer fan-out."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

_LOGGER = logging.getLogger(__name__)


class TradingViewEvent(str, Enum):
    """Channels observers can register on."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    LOGGED = "logged"
    PING = "ping"
    DATA = "data"
    ERROR = "error"
    EVENT = "event"


EventCallback = Callable[..., Any]


class EventDispatcher:
    """Per-channel ordered observer lists.

    Every dispatch on a regular channel is mirrored to the ``event`` channel
    as ``(channel_name, *args)``.
    """

    def __init__(self) -> None:
        self._callbacks: dict[TradingViewEvent, list[EventCallback]] = {
            channel: [] for channel in TradingViewEvent
        }

    def register(self, channel: TradingViewEvent | str, callback: EventCallback) -> None:
        """Append an observer to a channel.

        Raises:
            ValueError: If the channel is unknown
        """
        self._callbacks[TradingViewEvent(channel)].append(callback)

    def has_observers(self, channel: TradingViewEvent | str) -> bool:
        return bool(self._callbacks[TradingViewEvent(channel)])

    def dispatch(self, channel: TradingViewEvent | str, *args: Any) -> None:
        """Call the channel's observers in registration order, then ``event``."""
        channel = TradingViewEvent(channel)
        if channel is TradingViewEvent.EVENT:
            raise ValueError("The event channel only mirrors other channels")

        for callback in list(self._callbacks[channel]):
            self._invoke(callback, channel, args)
        for callback in list(self._callbacks[TradingViewEvent.EVENT]):
            self._invoke(callback, TradingViewEvent.EVENT, (channel.value, *args))

    def dispatch_error(self, error: BaseException, *args: Any) -> None:
        """Report an error, logging it when nobody listens on ``error``."""
        if not self._callbacks[TradingViewEvent.ERROR]:
            _LOGGER.error("%s", " ".join(str(part) for part in (error, *args)))
            return
        self.dispatch(TradingViewEvent.ERROR, error, *args)

    @staticmethod
    def _invoke(
        callback: EventCallback, channel: TradingViewEvent, args: tuple[Any, ...]
    ) -> None:
        try:
            callback(*args)
        except Exception as err:
            _LOGGER.exception("%s callback error: %s", channel.value, err)
