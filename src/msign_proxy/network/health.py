"""
Shared channel ownership and lazy recreation.

All callers share one current channel.  Reading it is lock-free; replacing
a faulted or closed one happens under an exclusive lock with a re-check,
so a burst of callers that all observe the same fault produces exactly one
replacement.
"""

from __future__ import annotations

__all__ = ["ChannelHealthMonitor"]

import logging
import threading
from typing import TYPE_CHECKING

from ..errors import ClientClosedError

if TYPE_CHECKING:
    from .channel import ChannelFactory, GatewayChannel

_logger = logging.getLogger(__name__)


class ChannelHealthMonitor:
    """Holds the current channel and replaces it once it becomes unusable.

    The initial channel is built eagerly, so factory errors surface at
    construction.
    """

    def __init__(self, factory: ChannelFactory) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._shut_down = False
        self._channel: GatewayChannel = factory.create_channel()
        self.recreations = 0

    @property
    def current(self) -> GatewayChannel:
        """The shared channel as it is right now, healthy or not."""
        return self._channel

    def get_healthy_channel(self) -> GatewayChannel:
        """Return a channel that is not faulted or closed.

        Raises:
            ClientClosedError: After shutdown().
            Anything the factory raises while building a replacement; the
            broken channel then stays current so the next caller retries.
        """
        channel = self._channel
        if not channel.is_terminal:
            return channel

        with self._lock:
            if self._shut_down:
                raise ClientClosedError("Signing client has been closed")
            channel = self._channel
            if not channel.is_terminal:
                return channel

            _logger.info(
                "Channel #%d is %s, creating a replacement",
                channel.channel_id,
                channel.state.value,
            )
            channel.abort()
            replacement = self._factory.create_channel()
            self._channel = replacement
            self.recreations += 1
            return replacement

    def shutdown(self) -> GatewayChannel | None:
        """Stop handing out channels.

        Returns the current channel for the caller to release, or None if
        shutdown already happened.
        """
        with self._lock:
            if self._shut_down:
                return None
            self._shut_down = True
            return self._channel
