# soakgen/auth/__init__.py
from .models import Credential, CredentialSource
from .providers import (
    AuthProvider,
    StaticTokenProvider,
    MetadataTokenProvider,
    build_auth_provider,
)
from .exceptions import AuthError, UnsupportedAuthModeError

__all__ = [
    "Credential",
    "CredentialSource",
    "AuthProvider",
    "StaticTokenProvider",
    "MetadataTokenProvider",
    "build_auth_provider",
    "AuthError",
    "UnsupportedAuthModeError",
]
