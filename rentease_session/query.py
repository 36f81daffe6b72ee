"""Session questions asked by page guards."""
from typing import Any, Optional
from collections.abc import Mapping

from .conf import (
    ADMIN_ROLE_CODE,
    TENANT_ROLE_CODE,
    HOME_PATH,
    ADMIN_HOME_PATH,
    TENANT_HOME_PATH,
)
from .store import SessionStore


def user_attribute(user: Any, name: str) -> Any:
    """Read ``name`` from a mapping user or an object user."""
    if user is None:
        return None
    if isinstance(user, Mapping):
        return user.get(name)
    return getattr(user, name, None)


class SessionQuery:
    """SessionQuery.

    Answers "who is logged in" questions from a ``SessionStore``. Every
    call loads the session again, so an expired session is noticed on the
    next question.
    """

    def __init__(self, store: SessionStore):
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store

    async def is_logged_in(self) -> bool:
        return await self._store.load() is not None

    async def get_user(self) -> Optional[Any]:
        record = await self._store.load()
        return record.user if record is not None else None

    async def role_code(self) -> Optional[str]:
        return user_attribute(await self.get_user(), 'roleCode')

    async def is_admin(self) -> bool:
        return await self.role_code() == ADMIN_ROLE_CODE

    async def display_name(self, default: str = 'ADMIN') -> str:
        """Full name of the session user, or ``default``."""
        return user_attribute(await self.get_user(), 'fullName') or default

    async def home_path(self) -> str:
        """Landing route for the session user's role."""
        role = await self.role_code()
        if role == ADMIN_ROLE_CODE:
            return ADMIN_HOME_PATH
        if role == TENANT_ROLE_CODE:
            return TENANT_HOME_PATH
        return HOME_PATH
