import pytest

from marketplace.services.shops import validate_shop_name


@pytest.mark.parametrize(
    "name, ok",
    [
        ("Vintage Corner", True),
        ("abc", True),
        ("  ab  ", False),
        ("", False),
        (None, False),
        (123, False),
    ],
)
def test_validate_shop_name(name, ok):
    assert validate_shop_name(name) is ok


@pytest.mark.asyncio
async def test_create_and_list_shops(client, seed_seller, seed_other_seller):
    r = await client.post(
        "/seller/shops",
        json={"name": "  Vera's Attic  ", "description": "Odds and ends"},
        headers=seed_seller["headers"],
    )
    assert r.status_code == 201
    assert r.json()["name"] == "Vera's Attic"
    assert r.json()["owner_id"] == seed_seller["user_id"]

    r = await client.get("/seller/shops", headers=seed_seller["headers"])
    assert sorted(s["name"] for s in r.json()) == ["Vera's Attic", "Vintage Corner"]


@pytest.mark.asyncio
async def test_short_shop_name_is_rejected(client, seed_seller):
    r = await client.post("/seller/shops", json={"name": " ab "}, headers=seed_seller["headers"])
    assert r.status_code == 400
    assert r.json()["details"][0] == {"field": "name"}


@pytest.mark.asyncio
async def test_buyers_cannot_open_shops(client, seed_buyer):
    r = await client.post("/seller/shops", json={"name": "Bob's"}, headers=seed_buyer["headers"])
    assert r.status_code == 403
