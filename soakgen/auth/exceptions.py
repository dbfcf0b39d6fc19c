# soakgen/auth/exceptions.py

class AuthError(Exception):
    """Base exception for credential providers"""
    pass


class UnsupportedAuthModeError(AuthError):
    """Raised when no provider exists for the configured auth mode"""
    pass
