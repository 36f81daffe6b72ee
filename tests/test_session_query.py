"""
Tests for SessionQuery, including the login-to-guard scenarios.
"""
import base64
import os

import orjson

from rentease_session.conf import SESSION_KEY
from rentease_session.models import UserProfile


class TestScenarios:

    async def test_admin_session(self, store, query):
        """Test an admin login is logged in and admin."""
        await store.save({'id': 'U1', 'roleCode': 'A'})
        assert await query.is_admin() is True
        assert await query.is_logged_in() is True

    async def test_tenant_session(self, store, query):
        """Test a tenant login is not admin and exposes its user."""
        await store.save({'id': 'U2', 'roleCode': 'N'})
        assert await query.is_admin() is False
        assert (await query.get_user())['id'] == 'U2'

    async def test_no_session(self, store, query):
        """Test a fresh slot has no session."""
        assert await store.load() is None
        assert await query.is_logged_in() is False
        assert await query.is_admin() is False
        assert await query.get_user() is None

    async def test_corrupted_session(self, store, storage, query):
        """Test a corrupted envelope reads as logged out."""
        await store.save({'id': 'U1', 'roleCode': 'A'})
        envelope = orjson.loads(await storage.get_item(SESSION_KEY))
        envelope['data'] = base64.b64encode(os.urandom(48)).decode('ascii')
        await storage.set_item(SESSION_KEY, orjson.dumps(envelope).decode())
        assert await store.load() is None
        assert await query.is_logged_in() is False

    async def test_expired_session(self, store, query, clock):
        await store.save({'id': 'U1', 'roleCode': 'A'})
        clock.advance(hours=25)
        assert await query.is_logged_in() is False
        assert await query.is_admin() is False

    async def test_logout(self, store, query):
        await store.save({'id': 'U1', 'roleCode': 'A'})
        await store.clear()
        assert await query.is_logged_in() is False


class TestUserQuestions:

    async def test_role_code_from_model(self, store, query):
        await store.save(UserProfile(userId='U1', roleCode='A'))
        assert await query.role_code() == 'A'
        assert await query.is_admin() is True

    async def test_role_code_missing(self, store, query):
        await store.save({'id': 'U1'})
        assert await query.is_logged_in() is True
        assert await query.role_code() is None
        assert await query.is_admin() is False

    async def test_display_name(self, store, query):
        await store.save({'id': 'U1', 'fullName': 'Alice Wonderland'})
        assert await query.display_name() == 'Alice Wonderland'

    async def test_display_name_default(self, store, query):
        assert await query.display_name() == 'ADMIN'
        await store.save({'id': 'U1', 'fullName': ''})
        assert await query.display_name('Guest') == 'Guest'

    async def test_home_path(self, store, query):
        assert await query.home_path() == '/'
        await store.save({'id': 'U1', 'roleCode': 'A'})
        assert await query.home_path() == '/admin/dashboard/'
        await store.save({'id': 'U2', 'roleCode': 'N'})
        assert await query.home_path() == '/dashboard/'
        await store.save({'id': 'U3', 'roleCode': 'X'})
        assert await query.home_path() == '/'
