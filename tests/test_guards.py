"""
Tests for the aiohttp session middleware and page guards.
"""
import pytest
from aiohttp import web

from rentease_session.conf import SESSION_KEY
from rentease_session.guards import (
    setup_session,
    get_session,
    get_session_query,
    login_required,
    admin_required,
)


async def login(request: web.Request) -> web.Response:
    user = await request.json()
    if not await get_session(request).save(user):
        raise web.HTTPInternalServerError(text="Failed to save session")
    return web.json_response({'home': await get_session_query(request).home_path()})


async def logout(request: web.Request) -> web.Response:
    await get_session(request).clear()
    raise web.HTTPFound('/login')


async def rename(request: web.Request) -> web.Response:
    body = await request.json()
    updated = await get_session(request).update(body)
    return web.json_response({'updated': updated})


@login_required
async def dashboard(request: web.Request) -> web.Response:
    user = await get_session_query(request).get_user()
    return web.Response(text=f"Welcome {user['fullName']}")


@admin_required
async def admin_dashboard(request: web.Request) -> web.Response:
    name = await get_session_query(request).display_name()
    return web.Response(text=f"Admin {name}")


async def public(request: web.Request) -> web.Response:
    return web.Response(text="home")


def build_app(config) -> web.Application:
    app = web.Application()
    setup_session(app, config)
    app.router.add_post('/login', login)
    app.router.add_post('/logout', logout)
    app.router.add_post('/profile', rename)
    app.router.add_get('/dashboard/', dashboard)
    app.router.add_get('/admin/dashboard/', admin_dashboard)
    app.router.add_get('/', public)
    return app


@pytest.fixture
async def client(aiohttp_client, config):
    return await aiohttp_client(build_app(config))


ADMIN = {'userId': 'U1', 'fullName': 'John Doe', 'roleCode': 'A'}
TENANT = {'userId': 'U2', 'fullName': 'Jane Smith', 'roleCode': 'N'}


class TestGuards:

    async def test_logged_out_redirects_to_login(self, client):
        """Test guarded pages send anonymous users to /login."""
        for path in ('/dashboard/', '/admin/dashboard/'):
            resp = await client.get(path, allow_redirects=False)
            assert resp.status == 302
            assert resp.headers['Location'] == '/login'

    async def test_admin_login(self, client):
        resp = await client.post('/login', json=ADMIN)
        assert resp.status == 200
        assert (await resp.json())['home'] == '/admin/dashboard/'
        resp = await client.get('/admin/dashboard/', allow_redirects=False)
        assert resp.status == 200
        assert await resp.text() == 'Admin John Doe'

    async def test_tenant_is_sent_home_from_admin(self, client):
        """Test a tenant is redirected to / from admin pages."""
        resp = await client.post('/login', json=TENANT)
        assert (await resp.json())['home'] == '/dashboard/'
        resp = await client.get('/admin/dashboard/', allow_redirects=False)
        assert resp.status == 302
        assert resp.headers['Location'] == '/'
        resp = await client.get('/dashboard/', allow_redirects=False)
        assert resp.status == 200
        assert await resp.text() == 'Welcome Jane Smith'

    async def test_cookie_is_encrypted(self, client):
        resp = await client.post('/login', json=ADMIN)
        morsel = resp.cookies[SESSION_KEY]
        assert 'John' not in morsel.value
        assert morsel['httponly']
        assert morsel['samesite'] == 'Lax'

    async def test_logout(self, client):
        await client.post('/login', json=ADMIN)
        resp = await client.post('/logout', allow_redirects=False)
        assert resp.status == 302
        assert resp.cookies[SESSION_KEY].value == ''
        resp = await client.get('/dashboard/', allow_redirects=False)
        assert resp.headers['Location'] == '/login'

    async def test_corrupted_cookie(self, client):
        """Test a forged cookie is rejected and removed."""
        client.session.cookie_jar.update_cookies({SESSION_KEY: 'forged-session-value'})
        resp = await client.get('/admin/dashboard/', allow_redirects=False)
        assert resp.status == 302
        assert resp.headers['Location'] == '/login'
        assert resp.cookies[SESSION_KEY].value == ''

    async def test_update_through_request(self, client):
        await client.post('/login', json=TENANT)
        resp = await client.post('/profile', json={'fullName': 'Jane Doe'})
        assert (await resp.json())['updated'] is True
        resp = await client.get('/dashboard/')
        assert await resp.text() == 'Welcome Jane Doe'

    async def test_update_without_session(self, client):
        resp = await client.post('/profile', json={'fullName': 'Nobody'})
        assert (await resp.json())['updated'] is False

    async def test_public_page_sets_no_cookie(self, client):
        resp = await client.get('/')
        assert resp.status == 200
        assert SESSION_KEY not in resp.cookies


async def test_guard_without_middleware(aiohttp_client):
    """Test guards fail loudly when the middleware is missing."""
    app = web.Application()
    app.router.add_get('/dashboard/', dashboard)
    client = await aiohttp_client(app)
    resp = await client.get('/dashboard/', allow_redirects=False)
    assert resp.status == 500
