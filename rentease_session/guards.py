"""
Session Guards — aiohttp middleware and page decorators.

``setup_session`` installs a middleware that gives every request its own
cookie-backed ``SessionStore`` and ``SessionQuery``. Handlers wrapped with
``login_required`` or ``admin_required`` redirect instead of rendering when
the session does not qualify.
"""
import logging
from functools import wraps
from typing import Awaitable, Callable

from aiohttp import web

from .conf import SESSION_STORE, SESSION_QUERY, LOGIN_PATH, HOME_PATH
from .config import SessionConfig
from .query import SessionQuery
from .storage import CookieStorage
from .store import SessionStore

logger = logging.getLogger("rentease.session.guards")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def session_middleware(config: SessionConfig, *, secure: bool = False):
    """Build the per-request session middleware for ``config``."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler):
        storage = CookieStorage(request, max_age=config.ttl, secure=secure)
        store = SessionStore.from_config(storage, config)
        request[SESSION_STORE] = store
        request[SESSION_QUERY] = SessionQuery(store)
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            if not storage.pending:
                raise
            # redirects raised by guards still carry cookie changes
            response = web.Response(
                status=exc.status,
                reason=exc.reason,
                text=exc.text,
                headers=exc.headers,
            )
        if storage.pending:
            storage.apply(response)
        return response

    return middleware


def setup_session(app: web.Application, config: SessionConfig, *, secure: bool = False) -> None:
    """Install the session middleware on ``app``."""
    app.middlewares.append(session_middleware(config, secure=secure))
    logger.debug("Session middleware installed: %r", config)


def get_session(request: web.Request) -> SessionStore:
    try:
        return request[SESSION_STORE]
    except KeyError:
        raise RuntimeError(
            "Session middleware is not installed, call setup_session(app, config)"
        ) from None


def get_session_query(request: web.Request) -> SessionQuery:
    try:
        return request[SESSION_QUERY]
    except KeyError:
        raise RuntimeError(
            "Session middleware is not installed, call setup_session(app, config)"
        ) from None


def login_required(handler: Handler) -> Handler:
    """Redirect to the login page unless a session is active."""

    @wraps(handler)
    async def _guard(request: web.Request) -> web.StreamResponse:
        query = get_session_query(request)
        if not await query.is_logged_in():
            logger.debug("Unauthenticated request to %s", request.path)
            raise web.HTTPFound(LOGIN_PATH)
        return await handler(request)

    return _guard


def admin_required(handler: Handler) -> Handler:
    """Redirect to login when logged out, and home when not an admin."""

    @wraps(handler)
    async def _guard(request: web.Request) -> web.StreamResponse:
        query = get_session_query(request)
        if not await query.is_logged_in():
            logger.debug("Unauthenticated request to %s", request.path)
            raise web.HTTPFound(LOGIN_PATH)
        if not await query.is_admin():
            logger.info("Non-admin session refused at %s", request.path)
            raise web.HTTPFound(HOME_PATH)
        return await handler(request)

    return _guard
