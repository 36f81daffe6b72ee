"""
SessionStore — Encrypted persistence of the logged-in user's session.

Provides the public API for session persistence:
- ``save(user)`` — open a session valid for the configured TTL
- ``load()`` — decrypt and return the current session, or None
- ``clear()`` — drop the session
- ``update(partial_user)`` — merge fields into the session user

Absent, expired, tampered and unreadable sessions all resolve to
``None``/``False``; only configuration errors raise.

Security Note:
    Never log plaintext, ciphertext or key values. Only log the storage
    key, operations and failure causes.
"""
import copy
import base64
import asyncio
import logging
import binascii
from typing import Any, Callable, Optional
from collections.abc import Mapping
from datetime import datetime, timezone

import orjson
from pydantic import BaseModel as PydanticBaseModel, ValidationError

from .conf import SESSION_KEY, SESSION_TTL
from .codec import encode, decode
from .crypto import encrypt, decrypt, derive_key, import_key
from .exceptions import (
    SessionError,
    SessionExpired,
    MalformedSession,
    StorageUnavailable,
)
from .models import SessionRecord
from .storage import AbstractStorage

logger = logging.getLogger("rentease.session")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pack_envelope(nonce: bytes, ciphertext: bytes) -> str:
    """Serialize an encrypted envelope to its stored JSON form."""
    return orjson.dumps({
        "nonce": base64.b64encode(nonce).decode("ascii"),
        "data": base64.b64encode(ciphertext).decode("ascii"),
    }).decode("utf-8")


def unpack_envelope(raw: str) -> tuple[bytes, bytes]:
    """Parse a stored envelope into (nonce, ciphertext).

    Raises:
        MalformedSession: If the envelope is not valid JSON with base64
            ``nonce`` and ``data`` fields.
    """
    try:
        envelope = orjson.loads(raw)
    except orjson.JSONDecodeError as err:
        raise MalformedSession("Session envelope is not JSON") from err
    if not isinstance(envelope, dict):
        raise MalformedSession("Session envelope is not an object")
    nonce, data = envelope.get("nonce"), envelope.get("data")
    if not isinstance(nonce, str) or not isinstance(data, str):
        raise MalformedSession("Session envelope lacks nonce or data")
    try:
        return (
            base64.b64decode(nonce, validate=True),
            base64.b64decode(data, validate=True),
        )
    except (binascii.Error, ValueError) as err:
        raise MalformedSession("Session envelope is not base64") from err


def merge_user(user: Any, partial: Mapping) -> Any:
    """Shallow-merge ``partial`` into ``user`` without mutating it."""
    if isinstance(user, Mapping):
        return {**user, **partial}
    if isinstance(user, PydanticBaseModel):
        return user.model_copy(update=dict(partial))
    merged = copy.copy(user)
    for key, value in partial.items():
        setattr(merged, key, value)
    return merged


class SessionStore:
    """Encrypted session slot.

    The session record is encoded, sealed with an AEAD cipher under a key
    derived from ``secret_key`` and the storage key, and written as a
    single envelope. The storage key is bound to the ciphertext as
    associated data, so an envelope copied to another slot does not open.

    There is no in-memory cache: every ``load()`` reads and decrypts the
    slot again.
    """

    def __init__(
        self,
        storage: AbstractStorage,
        secret_key: bytes,
        *,
        storage_key: str = SESSION_KEY,
        ttl: int = SESSION_TTL,
        cipher_backend: str = "aesgcm",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if ttl <= 0:
            raise ValueError(f"Session ttl must be positive, got {ttl}")
        storage.validate_key(storage_key)
        self._storage = storage
        self._storage_key = storage_key
        self._ttl = ttl
        self._backend = cipher_backend
        self._key = derive_key(secret_key, f"rentease-session:{storage_key}")
        # fail at construction, not on first save
        import_key(self._key, cipher_backend)
        self._aad = storage_key.encode("utf-8")
        self._clock = clock or _utcnow
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        storage: AbstractStorage,
        config: Any,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "SessionStore":
        """Build a store from a ``SessionConfig``."""
        return cls(
            storage,
            config.secret_key,
            storage_key=config.storage_key,
            ttl=config.ttl,
            cipher_backend=config.cipher_backend,
            clock=clock,
        )

    def __repr__(self) -> str:
        return (
            f"<SessionStore key={self._storage_key!r} ttl={self._ttl} "
            f"storage={self._storage!r}>"
        )

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def ttl(self) -> int:
        return self._ttl

    # ------------------------------------------------------------------
    # Slot helpers (callers hold the lock)
    # ------------------------------------------------------------------

    async def _write(self, record: SessionRecord) -> None:
        plaintext = encode(record)
        nonce, ciphertext = encrypt(
            plaintext, self._key, self._aad, self._backend,
        )
        await self._storage.set_item(
            self._storage_key, pack_envelope(nonce, ciphertext),
        )

    async def _read(self) -> Optional[SessionRecord]:
        raw = await self._storage.get_item(self._storage_key)
        if raw is None:
            return None
        nonce, ciphertext = unpack_envelope(raw)
        plaintext = decrypt(
            nonce, ciphertext, self._key, self._aad, self._backend,
        )
        record = decode(plaintext)
        if record.is_expired(self._clock()):
            raise SessionExpired(
                f"Session expired at {record.expires_at.isoformat()}"
            )
        return record

    async def _remove(self) -> bool:
        try:
            await self._storage.remove_item(self._storage_key)
        except StorageUnavailable as err:
            logger.error(
                "Error clearing session key=%s: %s", self._storage_key, err,
            )
            return False
        return True

    async def _load(self) -> Optional[SessionRecord]:
        try:
            return await self._read()
        except StorageUnavailable as err:
            logger.error(
                "Error reading session key=%s: %s", self._storage_key, err,
            )
            return None
        except SessionExpired as err:
            logger.info("Session key=%s: %s", self._storage_key, err)
        except SessionError as err:
            logger.warning(
                "Discarding unreadable session key=%s: %s",
                self._storage_key, err,
            )
        await self._remove()
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save(self, user: Any) -> bool:
        """Open a new session for ``user``.

        The record expires ``ttl`` seconds from now and replaces any
        previous session in the slot.

        Returns:
            True when the session was written, False otherwise.
        """
        async with self._lock:
            try:
                record = SessionRecord.create(user, self._clock(), self._ttl)
                await self._write(record)
            except (SessionError, ValidationError) as err:
                logger.error(
                    "Error saving session key=%s: %s", self._storage_key, err,
                )
                return False
        logger.debug(
            "Session saved: key=%s expires=%s",
            self._storage_key, record.expires_at.isoformat(),
        )
        return True

    async def load(self) -> Optional[SessionRecord]:
        """Return the current session, or None.

        Expired and unreadable sessions are removed from the slot.
        """
        async with self._lock:
            return await self._load()

    async def clear(self) -> bool:
        """Remove the session. Clearing an empty slot succeeds."""
        async with self._lock:
            cleared = await self._remove()
        if cleared:
            logger.debug("Session cleared: key=%s", self._storage_key)
        return cleared

    async def update(self, partial_user: Mapping) -> bool:
        """Merge ``partial_user`` into the session user.

        The expiry window is kept as is; updating does not renew the
        session.

        Returns:
            False when there is no valid session or the write failed.
        """
        async with self._lock:
            record = await self._load()
            if record is None:
                logger.debug(
                    "Session update skipped: no session at key=%s",
                    self._storage_key,
                )
                return False
            try:
                updated = record.with_user(merge_user(record.user, partial_user))
                await self._write(updated)
            except (SessionError, ValidationError, AttributeError) as err:
                logger.error(
                    "Error updating session key=%s: %s", self._storage_key, err,
                )
                return False
        logger.debug("Session updated: key=%s", self._storage_key)
        return True
