"""Wire transports that feed the JSON-RPC dispatcher."""

from .sse import SseTransport, SubscriberHub, format_event
from .stdio import MessageFramer, StdioTransport, encode_message

__all__ = [
    "MessageFramer",
    "SseTransport",
    "StdioTransport",
    "SubscriberHub",
    "encode_message",
    "format_event",
]
