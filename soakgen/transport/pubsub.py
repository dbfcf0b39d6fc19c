# soakgen/transport/pubsub.py
import asyncio
from typing import Dict, Optional

import aiohttp

from soakgen.config import SoakTestConfig
from soakgen.log_handler import get_logger
from .base import PublishTransport, get_safe_headers_for_logging
from .exceptions import TransportError
from .models import ProbeResult, PublishResult, parse_publish_body

logger = get_logger(__name__)


class PubSubRestTransport(PublishTransport):
    """
    Google Pub/Sub REST adapter built on aiohttp.

    One ClientSession is shared by all workers; its connector is sized to
    the worker pool so concurrent publishes are not serialized on sockets.
    """

    DEFAULT_TIMEOUT = 60  # seconds

    def __init__(
        self,
        project_id: str,
        topic: str,
        base_url: str = "https://pubsub.googleapis.com/v1",
        timeout: float = DEFAULT_TIMEOUT,
        max_connections: int = 100,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.topic_url = f"{base_url.rstrip('/')}/projects/{project_id}/topics/{topic}"
        self.publish_url = f"{self.topic_url}:publish"
        self.timeout = timeout
        self.max_connections = max_connections
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(
        cls, config: SoakTestConfig, max_connections: int = 100
    ) -> "PubSubRestTransport":
        return cls(
            project_id=config.project_id,
            topic=config.topic,
            base_url=config.pubsub_base_url,
            timeout=config.request_timeout,
            max_connections=max_connections,
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=self.max_connections),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def publish(self, body: bytes, token: str) -> PublishResult:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        status, text = await self._request("POST", self.publish_url, headers, body)
        accepted_count, parse_error = parse_publish_body(text)
        return PublishResult(
            status=status, accepted_count=accepted_count, body=text, parse_error=parse_error
        )

    async def probe(self, token: str) -> ProbeResult:
        headers = {"Authorization": f"Bearer {token}"}
        status, text = await self._request("GET", self.topic_url, headers)
        return ProbeResult(status=status, body=text)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self, method: str, url: str, headers: Dict[str, str], data: Optional[bytes] = None
    ):
        logger.debug(
            f"{method} {url} with headers: {get_safe_headers_for_logging(headers)}"
        )
        session = self._get_session()
        try:
            async with session.request(method, url, headers=headers, data=data) as response:
                text = await response.text()
                return response.status, text
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} {url} failed: {str(e)}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} {url} timed out after {self.timeout} seconds") from e
