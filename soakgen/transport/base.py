# soakgen/transport/base.py
from typing import Any, Dict, Optional

from .models import ProbeResult, PublishResult


class PublishTransport:
    """Interface of the batch publish capability injected into the executor."""

    async def publish(self, body: bytes, token: str) -> PublishResult:
        raise NotImplementedError

    async def probe(self, token: str) -> ProbeResult:
        """Read-only check that the target resource is reachable with this token."""
        raise NotImplementedError

    async def close(self) -> None:
        pass


class StreamChannel:
    """One open streaming connection."""

    async def send_json(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def receive(self, timeout: float) -> Optional[str]:
        """Next text frame, or None if nothing arrives within `timeout` seconds."""
        raise NotImplementedError

    async def close(self) -> None:
        pass


class StreamTransport:
    """Opens streaming connections for the connection-holding load mode."""

    async def connect(self) -> StreamChannel:
        raise NotImplementedError

    async def close(self) -> None:
        pass


def get_safe_headers_for_logging(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of headers with credentials masked."""
    sensitive_headers = {"authorization", "x-api-key", "api-key", "token"}
    return {
        key: "********" if key.lower() in sensitive_headers else value
        for key, value in headers.items()
    }
