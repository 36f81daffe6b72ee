"""Session errors.

Everything below ``SessionError`` is converted by ``SessionStore`` into a
``None``/``False`` result; only ``ConfigurationError`` reaches the caller.
"""
from typing import Optional


class SessionError(Exception):
    """Base class for session persistence failures."""


class StorageUnavailable(SessionError):
    """The storage backend refused a read or a write."""


class AuthenticationFailure(SessionError):
    """Ciphertext or nonce did not validate against the key."""


class MalformedSession(SessionError):
    """Envelope or session payload is structurally invalid."""


class SessionExpired(SessionError):
    """Session is past its expiry instant."""


class ConfigurationError(RuntimeError):
    """Missing or invalid session configuration (secret, cipher backend)."""


class BackendError(Exception):
    """The REST backend answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status
