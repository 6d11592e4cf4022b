"""Realtime task event delivery over WebSockets."""
from taskhub.realtime.hub import BroadcastHub, ConnectionRegistry

__all__ = ["BroadcastHub", "ConnectionRegistry"]
