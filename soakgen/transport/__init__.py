# soakgen/transport/__init__.py
from .base import PublishTransport, StreamTransport, StreamChannel
from .models import PublishResult, ProbeResult, parse_publish_body
from .pubsub import PubSubRestTransport
from .websocket import WebSocketTransport, WebSocketChannel
from .exceptions import TransportError, ChannelClosedError

__all__ = [
    "PublishTransport",
    "StreamTransport",
    "StreamChannel",
    "PublishResult",
    "ProbeResult",
    "parse_publish_body",
    "PubSubRestTransport",
    "WebSocketTransport",
    "WebSocketChannel",
    "TransportError",
    "ChannelClosedError",
]
