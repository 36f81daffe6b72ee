"""
Session Configuration — Secret loading and validated settings.

Reads the per-installation session secret from the environment:
    RENTEASE_SESSION_SECRET = <base64-encoded 32-byte key>

The secret must never be shipped with the application code; every
installation generates its own with ``generate_secret_key()``.

Security Note:
    Never log key material. Only log the storage key and cipher backend.
"""
import os
import base64
import binascii
import secrets
import logging

from pydantic import BaseModel, Field, field_validator

from .conf import (
    SESSION_KEY,
    SESSION_TTL,
    ENV_SECRET,
    ENV_STORAGE_KEY,
    ENV_TTL,
    ENV_CIPHER_BACKEND,
)
from .crypto import KEY_LENGTH, CIPHER_BACKENDS
from .exceptions import ConfigurationError

logger = logging.getLogger("rentease.session")


def load_secret_key() -> bytes:
    """Load the session secret from RENTEASE_SESSION_SECRET.

    Returns:
        Raw 32-byte secret.

    Raises:
        ConfigurationError: If the variable is missing, is not valid base64,
            or does not decode to exactly 32 bytes.
    """
    value = os.environ.get(ENV_SECRET)
    if not value:
        raise ConfigurationError(
            f"No session secret found in environment. "
            f"Set {ENV_SECRET}=<base64-encoded-32-byte-key>"
        )
    try:
        key_bytes = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ConfigurationError(f"{ENV_SECRET} is not valid base64") from err
    if len(key_bytes) != KEY_LENGTH:
        raise ConfigurationError(
            f"{ENV_SECRET} must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    return key_bytes


def generate_secret_key() -> str:
    """Generate a random 32-byte session secret and return it as base64.

    This is a utility for operators provisioning a new installation.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


class SessionConfig(BaseModel):
    """Validated session configuration."""

    secret_key: bytes
    storage_key: str = Field(default=SESSION_KEY, pattern=r"^[A-Za-z0-9_.\-]+$")
    ttl: int = Field(default=SESSION_TTL, ge=60)
    cipher_backend: str = Field(default="aesgcm")

    @field_validator("secret_key")
    @classmethod
    def validate_secret(cls, v: bytes) -> bytes:
        """Secret must be exactly one AEAD key long."""
        if len(v) != KEY_LENGTH:
            raise ValueError(
                f"secret_key must be {KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    def __repr__(self) -> str:
        return (
            f"<SessionConfig storage_key={self.storage_key!r} "
            f"ttl={self.ttl} cipher={self.cipher_backend}>"
        )

    __str__ = __repr__

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Create SessionConfig by loading values from environment.

        Raises:
            ConfigurationError: If the secret is missing or a value is invalid.
        """
        secret_key = load_secret_key()
        storage_key = os.environ.get(ENV_STORAGE_KEY, SESSION_KEY)
        cipher_backend = os.environ.get(ENV_CIPHER_BACKEND, "aesgcm")
        raw_ttl = os.environ.get(ENV_TTL)
        try:
            ttl = int(raw_ttl) if raw_ttl else SESSION_TTL
            config = cls(
                secret_key=secret_key,
                storage_key=storage_key,
                ttl=ttl,
                cipher_backend=cipher_backend,
            )
        except ValueError as err:
            raise ConfigurationError(f"Invalid session configuration: {err}") from err
        logger.debug(
            "Session config loaded: storage_key=%s cipher=%s ttl=%d",
            config.storage_key, config.cipher_backend, config.ttl,
        )
        return config
