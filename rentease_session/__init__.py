"""RentEase Session — encrypted client-side session for RentEase.

Security Note (Threat Model):
    The session is only as confidential as the secret it is sealed with.
    Each installation provisions its own secret (see ``SessionConfig``);
    a secret shipped inside application code protects nothing.
"""
from .version import __version__
from .conf import SESSION_KEY, SESSION_TTL, ADMIN_ROLE_CODE, TENANT_ROLE_CODE
from .config import SessionConfig, load_secret_key, generate_secret_key
from .exceptions import (
    SessionError,
    StorageUnavailable,
    AuthenticationFailure,
    MalformedSession,
    SessionExpired,
    ConfigurationError,
    BackendError,
)
from .models import SessionRecord, UserProfile
from .storage import AbstractStorage, MemoryStorage, FileStorage, CookieStorage
from .store import SessionStore
from .query import SessionQuery
from .guards import setup_session, login_required, admin_required
from .client import BackendClient, sign_in

__all__ = [
    "__version__",
    "SESSION_KEY",
    "SESSION_TTL",
    "ADMIN_ROLE_CODE",
    "TENANT_ROLE_CODE",
    "SessionConfig",
    "load_secret_key",
    "generate_secret_key",
    "SessionError",
    "StorageUnavailable",
    "AuthenticationFailure",
    "MalformedSession",
    "SessionExpired",
    "ConfigurationError",
    "BackendError",
    "SessionRecord",
    "UserProfile",
    "AbstractStorage",
    "MemoryStorage",
    "FileStorage",
    "CookieStorage",
    "SessionStore",
    "SessionQuery",
    "setup_session",
    "login_required",
    "admin_required",
    "BackendClient",
    "sign_in",
]
