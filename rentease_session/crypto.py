"""
Session Crypto — Key derivation and authenticated encryption.

The session envelope is sealed with an AEAD cipher:
    HKDF(secret, "rentease-session:<storage key>") → AES-GCM → (nonce, ciphertext)

Security Note:
    Never log plaintext, ciphertext or key values.
    Nonces are random 96-bit; a fresh one is drawn for every encryption.
"""
import os
import logging
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from .exceptions import AuthenticationFailure, ConfigurationError

logger = logging.getLogger("rentease.session")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # AES-256
TAG_SIZE = 16

CIPHER_BACKENDS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

Cipher = Union[AESGCM, ChaCha20Poly1305]


def get_cipher_cls(backend: str = "aesgcm") -> type:
    """Return the AEAD cipher class registered under ``backend``.

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    try:
        return CIPHER_BACKENDS[backend.lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"Unsupported cipher backend: {backend!r}"
        ) from None


def import_key(key: bytes, backend: str = "aesgcm") -> Cipher:
    """Build the AEAD primitive for ``key``.

    Raises:
        ConfigurationError: If no key is configured or it is not 32 bytes.
    """
    if not key:
        raise ConfigurationError("No session key configured")
    if not isinstance(key, (bytes, bytearray)):
        raise ConfigurationError(
            f"Session key must be bytes, got {type(key).__name__}"
        )
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"Session key must be {KEY_LENGTH} bytes, got {len(key)}"
        )
    cipher_cls = get_cipher_cls(backend)
    return cipher_cls(bytes(key))


def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte encryption key using HKDF-SHA256.

    Args:
        seed: Input key material (the configured session secret).
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    if not seed:
        raise ConfigurationError("No session secret configured")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=context.encode("utf-8"),
    )
    return hkdf.derive(bytes(seed))


def encrypt(
    plaintext: bytes,
    key: bytes,
    associated_data: Optional[bytes] = None,
    backend: str = "aesgcm",
) -> tuple[bytes, bytes]:
    """Encrypt plaintext under a fresh random nonce.

    Args:
        plaintext: Data to encrypt.
        key: Raw 32-byte key.
        associated_data: Optional data authenticated but not encrypted.
        backend: AEAD backend name.

    Returns:
        Tuple of (nonce, ciphertext + tag).
    """
    cipher = import_key(key, backend)
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, plaintext, associated_data)
    return nonce, ct


def decrypt(
    nonce: bytes,
    ciphertext: bytes,
    key: bytes,
    associated_data: Optional[bytes] = None,
    backend: str = "aesgcm",
) -> bytes:
    """Decrypt and authenticate ciphertext.

    Raises:
        AuthenticationFailure: If nonce or ciphertext has been tampered with,
            truncated, or was sealed under another key.
    """
    cipher = import_key(key, backend)
    if len(nonce) != NONCE_SIZE:
        raise AuthenticationFailure(
            f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}"
        )
    if len(ciphertext) < TAG_SIZE:
        raise AuthenticationFailure(
            f"ciphertext too short: {len(ciphertext)} bytes "
            f"(minimum {TAG_SIZE})"
        )
    try:
        return cipher.decrypt(nonce, ciphertext, associated_data)
    except InvalidTag:
        raise AuthenticationFailure("ciphertext failed authentication") from None
