"""Gateway channel, resilience and SOAP protocol layer."""

from __future__ import annotations

from .channel import ChannelFactory, ChannelSettings, ChannelState, GatewayChannel
from .health import ChannelHealthMonitor
from .retry import Classification, RetryExecutor, RetryPolicy

__all__ = [
    "ChannelFactory",
    "ChannelHealthMonitor",
    "ChannelSettings",
    "ChannelState",
    "Classification",
    "GatewayChannel",
    "RetryExecutor",
    "RetryPolicy",
]
