import pytest

from prairiemed.core.tokens import TokenIssuer
from prairiemed.services.session_store import SessionStore

pytestmark = pytest.mark.anyio


@pytest.fixture
def admin_headers(auth_config):
    issuer = TokenIssuer(auth_config)

    def _headers(*roles, org_id=None, user_id="admin-1"):
        token = issuer.issue_access_token(user_id, "admin@example.com", roles, org_id=org_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


async def _login_twice(client, email):
    for _ in range(2):
        res = await client.post("/auth/login", json={"email": email, "password": "Secret-pass1"})
        assert res.status_code == 200
    client.cookies.clear()


async def test_facility_admin_revokes_sessions_in_own_org(async_client, make_user, admin_headers, db_session):
    target = make_user(organization_id="org-a")
    await _login_twice(async_client, target.email)

    res = await async_client.post(
        f"/admin/users/{target.id}/sessions/revoke",
        headers=admin_headers("facilityadmin", org_id="org-a"),
    )
    assert res.status_code == 200
    assert res.json() == {"revoked": 2}

    db_session.expire_all()
    assert SessionStore(db_session).list_active(target.id) == []


async def test_revoke_other_org_is_forbidden(async_client, make_user, admin_headers):
    target = make_user(organization_id="org-a")
    res = await async_client.post(
        f"/admin/users/{target.id}/sessions/revoke",
        headers=admin_headers("facilityadmin", org_id="org-b"),
    )
    assert res.status_code == 403


async def test_superadmin_crosses_orgs(async_client, make_user, admin_headers):
    target = make_user(organization_id="org-a")
    await _login_twice(async_client, target.email)
    res = await async_client.post(
        f"/admin/users/{target.id}/sessions/revoke",
        headers=admin_headers("superadmin"),
    )
    assert res.status_code == 200
    assert res.json()["revoked"] == 2


async def test_clinical_role_cannot_revoke(async_client, make_user, admin_headers):
    target = make_user(organization_id="org-a")
    res = await async_client.post(
        f"/admin/users/{target.id}/sessions/revoke",
        headers=admin_headers("nurse", org_id="org-a"),
    )
    assert res.status_code == 403


async def test_unknown_user_is_404(async_client, admin_headers):
    res = await async_client.post(
        "/admin/users/does-not-exist/sessions/revoke",
        headers=admin_headers("superadmin"),
    )
    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}
