import httpx
import pytest


@pytest.fixture
def idp_handler():
    """Token grant works; every user call fails, social users are reported for GETs."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "mgmt-token", "expires_in": 3600})
        if request.method == "GET":
            return httpx.Response(200, json={"identities": [{"provider": "google-oauth2"}]})
        return httpx.Response(500, json={"message": "provider exploded"})

    return _handler


@pytest.mark.asyncio
async def test_provider_failure_is_a_502(client, seed_seller, seed_admin):
    r = await client.put(
        f"/admin/users/{seed_seller['user_id']}/active",
        json={"is_active": False},
        headers=seed_admin["headers"],
    )
    assert r.status_code == 502
    body = r.json()
    assert body["code"] == "identity_provider_error"
    assert "provider exploded" in body["message"]


@pytest.mark.asyncio
async def test_social_accounts_cannot_change_email(client, idp_requests, seed_buyer, seed_admin):
    r = await client.put(
        f"/admin/users/{seed_buyer['user_id']}/email",
        json={"email": "bob@new.example.com"},
        headers=seed_admin["headers"],
    )
    assert r.status_code == 403
    assert "google-oauth2" in r.json()["message"]
    assert "PATCH" not in [req.method for req in idp_requests]

    r = await client.put(
        f"/admin/users/{seed_buyer['user_id']}/password",
        json={"password": "long enough password"},
        headers=seed_admin["headers"],
    )
    assert r.status_code == 403
