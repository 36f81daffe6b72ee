"""
Session Storage — key-value slots holding the encrypted envelope.

Backends:
- ``MemoryStorage``: in-process dict, the ``localStorage`` analogue.
- ``FileStorage``: one file per key under a directory.
- ``CookieStorage``: one cookie per key on an aiohttp request/response pair.

Every backend failure surfaces as ``StorageUnavailable``.
"""
import os
import re
import base64
import asyncio
import logging
import binascii
import tempfile
from abc import ABC, abstractmethod
from pathlib import PurePath, Path
from typing import Optional, Union

from aiohttp import web

from .conf import SESSION_TTL
from .exceptions import ConfigurationError, StorageUnavailable

logger = logging.getLogger("rentease.session")

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")
# browsers drop cookies whose name and value exceed 4096 bytes
MAX_COOKIE_SIZE = 4000


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not _KEY_PATTERN.match(key):
        raise ConfigurationError(
            f"Invalid storage key {key!r}, allowed characters are [A-Za-z0-9_.-]"
        )


class AbstractStorage(ABC):
    """Asynchronous key-value slot interface."""

    def validate_key(self, key: str) -> None:
        """Raise ConfigurationError when this backend cannot address ``key``."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the slot is empty."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Replace the slot content."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Empty the slot. Removing an empty slot is not an error."""


class MemoryStorage(AbstractStorage):
    """Dict-backed storage.

    ``quota`` bounds the total number of stored characters (keys and
    values), mimicking a browser storage quota.
    """

    def __init__(self, quota: Optional[int] = None):
        self._items: dict[str, str] = {}
        self._quota = quota

    def __repr__(self) -> str:
        return f"<MemoryStorage keys={list(self._items.keys())}>"

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def _usage(self, exclude: Optional[str] = None) -> int:
        return sum(
            len(k) + len(v) for k, v in self._items.items() if k != exclude
        )

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self._quota is not None:
            needed = self._usage(exclude=key) + len(key) + len(value)
            if needed > self._quota:
                raise StorageUnavailable(
                    f"Storage quota exceeded ({needed} > {self._quota})"
                )
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage(AbstractStorage):
    """Directory-backed storage, one file per key.

    Writes go to a temporary file that atomically replaces the slot.
    """

    def __init__(self, directory: Union[str, PurePath]):
        self._directory = Path(directory)

    def __repr__(self) -> str:
        return f"<FileStorage directory={str(self._directory)!r}>"

    def validate_key(self, key: str) -> None:
        _check_key(key)

    def path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageUnavailable(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=".session-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(value)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    async def get_item(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, UnicodeDecodeError) as err:
            raise StorageUnavailable(f"Cannot read {path}: {err}") from err

    async def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except OSError as err:
            raise StorageUnavailable(f"Cannot write {path}: {err}") from err

    async def remove_item(self, key: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._remove, path)
        except OSError as err:
            raise StorageUnavailable(f"Cannot remove {path}: {err}") from err


def _cookie_encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")


def _cookie_decode(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


class CookieStorage(AbstractStorage):
    """Per-request storage backed by cookies.

    Reads come from the incoming request; writes are staged and applied to
    the outgoing response by ``apply()``.
    """

    _REMOVED = object()

    def __init__(
        self,
        request: web.Request,
        *,
        max_age: int = SESSION_TTL,
        secure: bool = False,
        path: str = "/",
    ):
        self._request = request
        self._max_age = max_age
        self._secure = secure
        self._path = path
        self._pending: dict[str, object] = {}

    def __repr__(self) -> str:
        return f"<CookieStorage pending={list(self._pending.keys())}>"

    def validate_key(self, key: str) -> None:
        _check_key(key)

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    async def get_item(self, key: str) -> Optional[str]:
        if key in self._pending:
            value = self._pending[key]
            return None if value is self._REMOVED else value
        raw = self._request.cookies.get(key)
        if not raw:
            return None
        try:
            return _cookie_decode(raw)
        except (binascii.Error, ValueError):
            # unreadable cookie: hand the raw value to the store, which
            # rejects it as a malformed envelope and clears the slot.
            return raw

    async def set_item(self, key: str, value: str) -> None:
        size = len(key) + len(_cookie_encode(value))
        if size > MAX_COOKIE_SIZE:
            raise StorageUnavailable(
                f"Cookie too large ({size} > {MAX_COOKIE_SIZE} bytes)"
            )
        self._pending[key] = value

    async def remove_item(self, key: str) -> None:
        self._pending[key] = self._REMOVED

    def apply(self, response: web.StreamResponse) -> None:
        """Write staged cookie changes onto ``response``."""
        for key, value in self._pending.items():
            if value is self._REMOVED:
                response.del_cookie(key, path=self._path)
            else:
                response.set_cookie(
                    key,
                    _cookie_encode(value),
                    max_age=self._max_age,
                    path=self._path,
                    secure=self._secure,
                    httponly=True,
                    samesite="Lax",
                )
        self._pending.clear()
