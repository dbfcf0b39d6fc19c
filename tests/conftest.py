# tests/conftest.py
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from soakgen.auth import AuthProvider, Credential, CredentialSource
from soakgen.transport import (
    ChannelClosedError,
    ProbeResult,
    PublishResult,
    PublishTransport,
    StreamChannel,
    StreamTransport,
    TransportError,
)


class FakePublishTransport(PublishTransport):
    """In-memory publish transport that accepts every message after a delay."""

    def __init__(self, latency: float = 0.0, status: int = 200, probe_status: int = 200):
        self.latency = latency
        self.status = status
        self.probe_status = probe_status
        self.published: List[bytes] = []
        self.tokens: List[str] = []
        self.probes = 0
        self.closed = False
        self.error: Optional[Exception] = None

    async def publish(self, body: bytes, token: str) -> PublishResult:
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.error is not None:
            raise self.error
        self.published.append(body)
        self.tokens.append(token)
        if self.status != 200:
            return PublishResult(status=self.status, body="denied")
        return PublishResult(status=200, accepted_count=1, body='{"messageIds": ["1"]}')

    async def probe(self, token: str) -> ProbeResult:
        self.probes += 1
        if self.error is not None:
            raise self.error
        return ProbeResult(status=self.probe_status, body="{}")

    async def close(self) -> None:
        self.closed = True


class FakeAuthProvider(AuthProvider):
    def __init__(self, token: Optional[str] = "test-token", raises: Optional[Exception] = None):
        self.token = token
        self.raises = raises
        self.calls = 0

    async def acquire(self) -> Optional[Credential]:
        self.calls += 1
        if self.raises is not None:
            raise self.raises
        if self.token is None:
            return None
        return Credential(token=self.token, source=CredentialSource.STATIC)


class FakeStreamChannel(StreamChannel):
    """Scripted channel: replies to login with `ack`, then serves queued frames."""

    def __init__(self, ack: Optional[str] = '{"type":"ack"}', frames: Optional[List[Any]] = None):
        self.ack = ack
        self.frames = list(frames or [])
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self._acked = False

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.closed:
            raise TransportError("channel closed")
        self.sent.append(data)

    async def receive(self, timeout: float) -> Optional[str]:
        if not self._acked:
            self._acked = True
            if self.ack is None:
                return None
            return self.ack
        if self.frames:
            frame = self.frames.pop(0)
            if isinstance(frame, Exception):
                raise frame
            return frame
        await asyncio.sleep(timeout)
        return None

    async def close(self) -> None:
        self.closed = True


class FakeStreamTransport(StreamTransport):
    def __init__(self, channel_factory=None, connect_error: Optional[Exception] = None):
        self.channel_factory = channel_factory or FakeStreamChannel
        self.connect_error = connect_error
        self.channels: List[FakeStreamChannel] = []

    async def connect(self) -> StreamChannel:
        if self.connect_error is not None:
            raise self.connect_error
        channel = self.channel_factory()
        self.channels.append(channel)
        return channel


@pytest.fixture
def publish_transport():
    """Publish transport that succeeds immediately"""
    return FakePublishTransport()


@pytest.fixture
def auth_provider():
    """Auth provider that always returns the same token"""
    return FakeAuthProvider()


@pytest.fixture
def closed_channel_error():
    return ChannelClosedError("WebSocket closed by server (code 1000)")
