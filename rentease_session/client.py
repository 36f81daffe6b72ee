"""
Backend Client — thin JSON-over-POST wrapper around the RentEase REST API.

Every backend call is a POST with a JSON body. The backend reports
failures in-band with ``responseStatus == "0"`` and a ``message``.
"""
import asyncio
import logging
from typing import Any, Optional

import aiohttp

from .exceptions import BackendError
from .store import SessionStore

logger = logging.getLogger("rentease.session.client")

_FAILED_STATUS = "0"


class BackendClient:
    """Async REST client.

    Owns its ``aiohttp.ClientSession`` unless one is given; use it as an
    async context manager or call ``close()``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def __repr__(self) -> str:
        return f"<BackendClient {self._base_url}>"

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(
        self,
        path: str,
        body: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """POST ``body`` as JSON to ``path`` and return the decoded reply.

        Raises:
            BackendError: on transport errors, HTTP errors, non-JSON
                replies, or ``responseStatus == "0"``.
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        try:
            async with self._get_session().post(
                url, json=body or {}, headers=request_headers,
            ) as response:
                status = response.status
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None
        except aiohttp.ClientError as err:
            logger.error("Backend request to %s failed: %s", url, err)
            raise BackendError(str(err) or "Unexpected error") from err
        except asyncio.TimeoutError as err:
            logger.error("Backend request to %s timed out", url)
            raise BackendError("Request timed out") from err
        if status >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise BackendError(message or f"HTTP {status}", status=status)
        if not isinstance(data, dict):
            raise BackendError("Invalid response from backend", status=status)
        if data.get("responseStatus") == _FAILED_STATUS:
            raise BackendError(
                data.get("message") or "Something went wrong", status=status,
            )
        return data

    async def login(self, email: str, password: str) -> Any:
        """Authenticate and return the backend's ``userDetail`` verbatim."""
        data = await self.fetch(
            "/login", {"emailAddress": email, "password": password},
        )
        user = data.get("userDetail")
        if user is None:
            raise BackendError("Login response has no userDetail")
        return user


async def sign_in(
    client: BackendClient,
    store: SessionStore,
    email: str,
    password: str,
) -> Any:
    """Log in against the backend and open a session for the user.

    Raises:
        BackendError: login was refused or the session could not be saved.
    """
    user = await client.login(email, password)
    if not await store.save(user):
        raise BackendError("Failed to save session")
    logger.debug("Session opened")
    return user
