"""HTTP surface of the auth endpoints."""
import pytest

from prairiemed.core.config import settings
from prairiemed.dependencies import rate_limit as rate_limit_module

pytestmark = pytest.mark.anyio


async def _login(client, email, password="Secret-pass1"):
    return await client.post("/auth/login", json={"email": email, "password": password})


async def test_health(async_client):
    res = await async_client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


async def test_login_success_sets_cookies(async_client, make_user):
    user = make_user(roles=["doctor"], locale="fr")

    res = await _login(async_client, user.email)

    assert res.status_code == 200
    body = res.json()
    assert body["accessToken"]
    assert body["user"]["user_id"] == user.id
    assert body["user"]["roles"] == ["doctor"]
    assert "refresh_token" in res.cookies
    assert "access_token" in res.cookies
    assert res.cookies.get("pm_locale") == "fr"

    set_cookie = " ".join(res.headers.get_list("set-cookie")).lower()
    assert "httponly" in set_cookie


async def test_login_bad_credentials(async_client, make_user):
    user = make_user()

    wrong = await _login(async_client, user.email, "nope")
    unknown = await _login(async_client, "nobody-at-all@example.com")

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}


async def test_login_validation_error(async_client):
    res = await async_client.post("/auth/login", json={"email": "not-an-email", "password": "x"})
    assert res.status_code == 422


async def test_me_requires_token(async_client):
    res = await async_client.get("/auth/me")
    assert res.status_code == 401
    assert res.json() == {"error": "Missing token"}
    assert res.headers["www-authenticate"] == "Bearer"


async def test_me_with_invalid_token(async_client):
    res = await async_client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid or expired token"}


async def test_me_with_malformed_header(async_client):
    res = await async_client.get("/auth/me", headers={"Authorization": "Basic abc"})
    assert res.status_code == 401


async def test_me_with_bearer_and_cookie(async_client, make_user):
    user = make_user(roles=["nurse"])
    token = (await _login(async_client, user.email)).json()["accessToken"]

    # Cookie set by login
    res = await async_client.get("/auth/me")
    assert res.status_code == 200
    assert res.json()["user"]["email"] == user.email

    async_client.cookies.clear()
    res = await async_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json()["user"]["roles"] == ["nurse"]


async def test_refresh_via_cookie_rotates(async_client, make_user):
    user = make_user()
    await _login(async_client, user.email)
    old_refresh = async_client.cookies.get("refresh_token")

    res = await async_client.post("/auth/refresh")
    assert res.status_code == 200
    assert res.json()["accessToken"]
    assert async_client.cookies.get("refresh_token") != old_refresh

    # Replay of the rotated token
    async_client.cookies.clear()
    res = await async_client.post("/auth/refresh", json={"refreshToken": old_refresh})
    assert res.status_code == 401
    assert res.json() == {"error": "Refresh session revoked"}


async def test_refresh_via_body(async_client, make_user):
    user = make_user()
    await _login(async_client, user.email)
    refresh = async_client.cookies.get("refresh_token")
    async_client.cookies.clear()

    res = await async_client.post("/auth/refresh", json={"refreshToken": refresh})
    assert res.status_code == 200
    assert res.json()["accessToken"]


async def test_refresh_without_token(async_client):
    res = await async_client.post("/auth/refresh")
    assert res.status_code == 401
    assert "error" in res.json()


async def test_logout_always_succeeds_and_clears_cookies(async_client, make_user):
    user = make_user()
    await _login(async_client, user.email)
    refresh = async_client.cookies.get("refresh_token")

    res = await async_client.post("/auth/logout")
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert async_client.cookies.get("refresh_token") is None
    assert async_client.cookies.get("access_token") is None

    # Revoked server-side
    res = await async_client.post("/auth/refresh", json={"refreshToken": refresh})
    assert res.status_code == 401

    # Nothing to revoke, still ok
    res = await async_client.post("/auth/logout", json={"refreshToken": "garbage"})
    assert res.status_code == 200
    assert res.json() == {"ok": True}


async def test_sessions_lists_active_refresh_sessions(async_client, make_user):
    user = make_user()
    await _login(async_client, user.email)
    await _login(async_client, user.email)

    res = await async_client.get("/auth/sessions")
    assert res.status_code == 200
    sessions = res.json()
    assert len(sessions) == 2
    assert all("refresh_expires_at" in s for s in sessions)


async def test_set_locale(async_client):
    res = await async_client.post("/i18n/set-locale", json={"locale": "FR", "returnTo": "/patients"})
    assert res.status_code == 303
    assert res.headers["location"] == "/patients"
    assert res.cookies.get("pm_locale") == "fr"


async def test_set_locale_rejects_offsite_redirect_and_unknown_locale(async_client):
    res = await async_client.post("/i18n/set-locale", json={"locale": "xx", "returnTo": "//evil.example"})
    assert res.status_code == 303
    assert res.headers["location"] == "/"
    assert res.cookies.get("pm_locale") == "en"


async def test_login_rate_limited(async_client, make_user, monkeypatch):
    user = make_user()
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 2)
    rate_limit_module.window.reset()
    try:
        assert (await _login(async_client, user.email, "nope")).status_code == 401
        assert (await _login(async_client, user.email, "nope")).status_code == 401
        res = await _login(async_client, user.email)
        assert res.status_code == 429
        assert "error" in res.json()
    finally:
        rate_limit_module.window.reset()


async def test_rotating_forwarded_for_does_not_escape_login_limit(async_client, make_user, monkeypatch):
    user = make_user()
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 2)
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    rate_limit_module.window.reset()
    try:
        statuses = []
        for i in range(4):
            res = await async_client.post(
                "/auth/login",
                json={"email": user.email, "password": "nope"},
                headers={"X-Forwarded-For": f"203.0.113.{i}"},
            )
            statuses.append(res.status_code)
        assert statuses == [401, 401, 429, 429]
    finally:
        rate_limit_module.window.reset()


def _failing(operation):
    from sqlalchemy.exc import OperationalError

    def _raise(self, *args, **kwargs):
        with self.guard(operation):
            raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))

    return _raise


async def test_store_failure_is_a_generic_500(async_client, make_user, monkeypatch):
    from prairiemed.services.session_store import SessionStore

    user = make_user()
    await _login(async_client, user.email)
    monkeypatch.setattr(SessionStore, "find_by_jti", _failing("find_session_by_jti"))

    res = await async_client.post("/auth/refresh")
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}


async def test_logout_succeeds_when_store_fails(async_client, make_user, monkeypatch):
    from prairiemed.services.session_store import SessionStore

    user = make_user()
    await _login(async_client, user.email)
    monkeypatch.setattr(SessionStore, "revoke_by_jti", _failing("revoke_session"))

    res = await async_client.post("/auth/logout")
    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert async_client.cookies.get("refresh_token") is None


async def test_profile_and_session_reads_run_off_the_event_loop(async_client, make_user, monkeypatch):
    from starlette.concurrency import run_in_threadpool
    from prairiemed.routers import auth as auth_routes

    offloaded = []

    async def _recording(func, *args, **kwargs):
        offloaded.append(getattr(func, "__name__", repr(func)))
        return await run_in_threadpool(func, *args, **kwargs)

    user = make_user()
    await _login(async_client, user.email)
    monkeypatch.setattr(auth_routes, "run_in_threadpool", _recording)

    assert (await async_client.get("/auth/me")).status_code == 200
    assert (await async_client.get("/auth/sessions")).status_code == 200
    assert offloaded == ["me", "active_sessions"]
