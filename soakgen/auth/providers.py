# soakgen/auth/providers.py
import asyncio
import json
from typing import Optional

import aiohttp

from soakgen.config import AuthMode, SoakTestConfig
from soakgen.log_handler import get_logger
from .exceptions import AuthError, UnsupportedAuthModeError
from .models import Credential, CredentialSource

logger = get_logger(__name__)


class AuthProvider:
    """
    Supplies a credential per operation.

    acquire() returns None when no credential can be obtained; callers treat
    that as an auth failure for the operation, not as a fatal error.
    Implementations must be safe to call from many workers at once.
    """

    async def acquire(self) -> Optional[Credential]:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class StaticTokenProvider(AuthProvider):
    """Returns the token supplied at setup for the whole run."""

    def __init__(self, token: str):
        if not token:
            raise AuthError("Static token provider requires a non-empty token")
        self._credential = Credential(token=token, source=CredentialSource.STATIC)

    async def acquire(self) -> Optional[Credential]:
        return self._credential


class MetadataTokenProvider(AuthProvider):
    """
    Fetches a fresh access token from a metadata-style endpoint on every call.

    An override token, when configured, is returned directly and no request
    is made. Tokens are deliberately not cached so the token service sees the
    same load as the target.
    """

    DEFAULT_TIMEOUT = 10  # seconds

    def __init__(
        self,
        token_endpoint: Optional[str] = None,
        override_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if not (token_endpoint or override_token):
            raise AuthError("Metadata token provider requires an endpoint or an override token")
        self.token_endpoint = token_endpoint
        self.override_token = override_token
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def acquire(self) -> Optional[Credential]:
        if self.override_token:
            return Credential(token=self.override_token, source=CredentialSource.OVERRIDE)

        try:
            async with self._get_session().get(
                self.token_endpoint, headers={"Metadata-Flavor": "Google"}
            ) as response:
                text = await response.text()
                if response.status != 200:
                    logger.error(
                        f"Failed to get token from metadata service: {response.status}"
                    )
                    return None
        except aiohttp.ClientError as e:
            logger.error(f"Error fetching token from metadata: {str(e)}")
            return None
        except asyncio.TimeoutError:
            logger.error(f"Token request timed out after {self.timeout} seconds")
            return None

        try:
            token = json.loads(text).get("access_token")
        except (ValueError, AttributeError) as e:
            logger.error(f"Unreadable token response from metadata service: {str(e)}")
            return None

        if not token:
            logger.error("Metadata service response did not include an access_token")
            return None
        return Credential(token=token, source=CredentialSource.FETCHED)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def build_auth_provider(config: SoakTestConfig) -> AuthProvider:
    """Select the credential strategy named by the configuration."""
    if config.auth_mode == AuthMode.STATIC:
        return StaticTokenProvider(config.static_token)
    if config.auth_mode == AuthMode.DYNAMIC:
        return MetadataTokenProvider(
            token_endpoint=config.token_endpoint,
            override_token=config.token_override,
            timeout=config.token_timeout,
        )
    raise UnsupportedAuthModeError(f"Unsupported auth mode: {config.auth_mode}")
