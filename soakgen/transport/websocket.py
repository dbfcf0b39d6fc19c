# soakgen/transport/websocket.py
import asyncio
from typing import Any, Dict, Optional

import aiohttp

from soakgen.log_handler import get_logger
from .base import StreamChannel, StreamTransport
from .exceptions import ChannelClosedError, TransportError

logger = get_logger(__name__)


class WebSocketChannel(StreamChannel):
    def __init__(self, ws: aiohttp.ClientWebSocketResponse):
        self._ws = ws

    async def send_json(self, data: Dict[str, Any]) -> None:
        try:
            await self._ws.send_json(data)
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise TransportError(f"WebSocket send failed: {str(e)}") from e

    async def receive(self, timeout: float) -> Optional[str]:
        try:
            msg = await self._ws.receive(timeout=timeout)
        except asyncio.TimeoutError:
            return None

        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            return msg.data.decode("utf-8", errors="replace")
        if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
            raise ChannelClosedError(f"WebSocket closed by server (code {self._ws.close_code})")
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise TransportError(f"WebSocket error: {self._ws.exception()}")
        return None

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class WebSocketTransport(StreamTransport):
    """aiohttp WebSocket adapter; all channels share one ClientSession."""

    def __init__(self, url: str, timeout: float = 30.0, max_connections: int = 100):
        self.url = url
        self.timeout = timeout
        self.max_connections = max_connections
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=self.max_connections)
            )
        return self._session

    async def connect(self) -> WebSocketChannel:
        try:
            ws = await asyncio.wait_for(
                self._get_session().ws_connect(self.url), timeout=self.timeout
            )
        except aiohttp.ClientError as e:
            raise TransportError(f"WebSocket connect to {self.url} failed: {str(e)}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"WebSocket connect to {self.url} timed out") from e
        return WebSocketChannel(ws)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
