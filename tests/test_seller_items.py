from decimal import Decimal

import pytest
from sqlalchemy import func, select

from marketplace.models.moderation import ModerationSnapshot

DESCRIPTION = "Genuine leather, size M, worn twice and kept in a smoke free home."
IMAGES = ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg", "https://cdn.test/c.jpg"]


async def _create(client, seed, **overrides) -> dict:
    body = {
        "shop_id": seed["shop_id"],
        "category_id": seed.get("category_id"),
        "title": "Vintage leather jacket",
        "description": DESCRIPTION,
        "price": "120.00",
        "shipping_cost": "6.50",
        "images": IMAGES[:2],
    }
    body.update(overrides)
    r = await client.post("/seller/items", json=body, headers=seed["headers"])
    assert r.status_code == 201, r.text
    return r.json()


async def _publish(client, listing_id: str, seller, admin) -> None:
    r = await client.post(f"/seller/items/{listing_id}/submit", headers=seller["headers"])
    assert r.status_code == 200, r.text
    r = await client.post(
        f"/admin/collector/items/{listing_id}/review",
        json={"decision": "PUBLISHED", "notes": "Looks good"},
        headers=admin["headers"],
    )
    assert r.status_code == 200, r.text


async def _status(client, listing_id: str, seller) -> str:
    r = await client.get(f"/seller/items/{listing_id}", headers=seller["headers"])
    assert r.status_code == 200, r.text
    return r.json()["item"]["status"]


async def _snapshot_count(db_session, listing_id: str) -> int:
    stmt = select(func.count()).select_from(ModerationSnapshot).where(ModerationSnapshot.listing_id == listing_id)
    return (await db_session.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_create_listing_starts_as_draft_with_ordered_images(client, seed_seller):
    item = await _create(client, seed_seller, images=IMAGES)
    assert item["status"] == "DRAFT"
    assert Decimal(item["price"]) == Decimal("120.00")
    assert item["currency"] == "EUR"

    r = await client.get(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    assert r.status_code == 200
    images = r.json()["images"]
    assert [i["url"] for i in images] == IMAGES
    assert [i["position"] for i in images] == [0, 1, 2]
    assert [i["is_primary"] for i in images] == [True, False, False]
    assert r.json()["reviews"] == []
    assert r.json()["allowed_actions"] == ["edit", "replace_images", "submit", "delete"]


@pytest.mark.asyncio
async def test_list_items_includes_category_name(client, seed_seller):
    await _create(client, seed_seller)
    r = await client.get("/seller/items", headers=seed_seller["headers"])
    assert r.status_code == 200
    (item,) = r.json()
    assert item["category_name"] == "Clothing"
    assert len(item["images"]) == 2
    assert item["last_review"] is None


@pytest.mark.asyncio
async def test_create_rejects_bad_input(client, seed_seller):
    base = {"shop_id": seed_seller["shop_id"], "title": "Jacket", "price": "10"}

    r = await client.post("/seller/items", json={**base, "price": "0"}, headers=seed_seller["headers"])
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"

    r = await client.post("/seller/items", json={**base, "title": "ab"}, headers=seed_seller["headers"])
    assert r.status_code == 400

    r = await client.post("/seller/items", json={**base, "category_id": "cat_missing"}, headers=seed_seller["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_cannot_create_in_someone_elses_shop(client, seed_seller, seed_other_seller):
    r = await client.post(
        "/seller/items",
        json={"shop_id": seed_other_seller["shop_id"], "title": "Jacket", "price": "10"},
        headers=seed_seller["headers"],
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Not your shop"


@pytest.mark.asyncio
async def test_ownership_and_missing_listing(client, seed_seller, seed_other_seller):
    item = await _create(client, seed_seller)

    r = await client.get(f"/seller/items/{item['id']}", headers=seed_other_seller["headers"])
    assert r.status_code == 403
    r = await client.delete(f"/seller/items/{item['id']}", headers=seed_other_seller["headers"])
    assert r.status_code == 403
    r = await client.get("/seller/items/lst_missing", headers=seed_seller["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_auth_is_required(client, seed_seller, seed_buyer):
    r = await client.get("/seller/items")
    assert r.status_code == 401
    assert r.json()["code"] == "unauthorized"

    r = await client.get("/seller/items", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    r = await client.get("/seller/items", headers=seed_buyer["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_expired_or_foreign_tokens_are_rejected(client, seed_seller, make_token):
    expired = make_token(seed_seller["subject"], exp=1)
    r = await client.get("/seller/items", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401

    wrong_audience = make_token(seed_seller["subject"], aud="https://someone.else")
    r = await client.get("/seller/items", headers={"Authorization": f"Bearer {wrong_audience}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_submit_needs_two_images(client, db_session, seed_seller):
    item = await _create(client, seed_seller, images=IMAGES[:1])

    r = await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])
    assert r.status_code == 400
    assert "2 images" in r.json()["message"]
    assert await _status(client, item["id"], seed_seller) == "DRAFT"
    assert await _snapshot_count(db_session, item["id"]) == 0


@pytest.mark.asyncio
async def test_submit_runs_content_check(client, db_session, seed_seller):
    item = await _create(client, seed_seller)

    r = await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "PENDING_REVIEW"

    snapshot = (
        await db_session.execute(select(ModerationSnapshot).where(ModerationSnapshot.listing_id == item["id"]))
    ).scalar_one()
    assert snapshot.human_status == "PENDING"
    assert snapshot.auto_details["mode"] == "local_heuristic"
    assert snapshot.auto_score == pytest.approx(1.0)

    # a second submit is not a valid move from PENDING_REVIEW
    r = await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_pending_listing_is_frozen(client, seed_seller):
    item = await _create(client, seed_seller)
    await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])

    r = await client.delete(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    assert r.status_code == 409
    r = await client.put(f"/seller/items/{item['id']}", json={"title": "New title"}, headers=seed_seller["headers"])
    assert r.status_code == 409
    r = await client.put(f"/seller/items/{item['id']}/images", json={"images": IMAGES}, headers=seed_seller["headers"])
    assert r.status_code == 409
    assert await _status(client, item["id"], seed_seller) == "PENDING_REVIEW"


@pytest.mark.asyncio
async def test_delete_draft(client, db_session, seed_seller):
    item = await _create(client, seed_seller)

    r = await client.delete(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    assert r.status_code == 200
    assert r.json() == {"ok": True}

    r = await client.get(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_draft_edit_stays_draft(client, seed_seller):
    item = await _create(client, seed_seller)

    r = await client.put(
        f"/seller/items/{item['id']}",
        json={"title": "  Leather jacket, brown  ", "price": "99.90"},
        headers=seed_seller["headers"],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "DRAFT"
    assert body["title"] == "Leather jacket, brown"
    assert Decimal(body["price"]) == Decimal("99.90")


@pytest.mark.asyncio
async def test_empty_update_is_rejected(client, seed_seller):
    item = await _create(client, seed_seller)
    r = await client.put(f"/seller/items/{item['id']}", json={}, headers=seed_seller["headers"])
    assert r.status_code == 400
    assert r.json()["message"] == "Nothing to update"


@pytest.mark.asyncio
async def test_replacing_images_on_published_listing_resubmits_it(client, db_session, seed_seller, seed_admin):
    item = await _create(client, seed_seller)
    await _publish(client, item["id"], seed_seller, seed_admin)

    new_images = ["https://cdn.test/x.jpg", "https://cdn.test/y.jpg"]
    r = await client.put(
        f"/seller/items/{item['id']}/images",
        json={"images": new_images},
        headers=seed_seller["headers"],
    )
    assert r.status_code == 200
    assert [i["url"] for i in r.json()] == new_images
    assert r.json()[0]["is_primary"] is True

    assert await _status(client, item["id"], seed_seller) == "PENDING_REVIEW"
    assert await _snapshot_count(db_session, item["id"]) == 1

    snapshot = (
        await db_session.execute(select(ModerationSnapshot).where(ModerationSnapshot.listing_id == item["id"]))
    ).scalar_one()
    assert snapshot.human_status == "PENDING"
    assert snapshot.reviewer_id is None


@pytest.mark.asyncio
async def test_editing_published_listing_resubmits_it(client, db_session, seed_seller, seed_admin):
    item = await _create(client, seed_seller)
    await _publish(client, item["id"], seed_seller, seed_admin)

    r = await client.put(f"/seller/items/{item['id']}", json={"price": "80"}, headers=seed_seller["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "PENDING_REVIEW"
    assert await _snapshot_count(db_session, item["id"]) == 1

    # no longer publicly visible
    r = await client.get(f"/public/items/{item['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_mark_sold(client, seed_seller, seed_admin):
    item = await _create(client, seed_seller)

    r = await client.post(f"/seller/items/{item['id']}/mark-sold", headers=seed_seller["headers"])
    assert r.status_code == 409

    await _publish(client, item["id"], seed_seller, seed_admin)
    r = await client.post(f"/seller/items/{item['id']}/mark-sold", headers=seed_seller["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "SOLD"

    r = await client.put(f"/seller/items/{item['id']}", json={"price": "80"}, headers=seed_seller["headers"])
    assert r.status_code == 409

    r = await client.delete(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_editing_rejected_listing_reopens_draft(client, seed_seller, seed_admin):
    item = await _create(client, seed_seller)
    await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])
    r = await client.post(
        f"/admin/collector/items/{item['id']}/review",
        json={"decision": "REJECTED", "notes": "Photos are blurry"},
        headers=seed_admin["headers"],
    )
    assert r.status_code == 200

    r = await client.get(f"/seller/items/{item['id']}", headers=seed_seller["headers"])
    (review,) = r.json()["reviews"]
    assert review["decision"] == "REJECTED"
    assert review["notes"] == "Photos are blurry"
    assert review["admin_name"] == "ada_admin"

    r = await client.put(
        f"/seller/items/{item['id']}",
        json={"description": DESCRIPTION + " New photos."},
        headers=seed_seller["headers"],
    )
    assert r.status_code == 200
    assert r.json()["status"] == "DRAFT"


async def _allowed_actions(client, listing_id: str, seller) -> list[str]:
    r = await client.get(f"/seller/items/{listing_id}", headers=seller["headers"])
    assert r.status_code == 200, r.text
    return r.json()["allowed_actions"]


@pytest.mark.asyncio
async def test_detail_lists_actions_for_current_status(client, seed_seller, seed_admin):
    item = await _create(client, seed_seller)

    r = await client.post(f"/seller/items/{item['id']}/submit", headers=seed_seller["headers"])
    assert r.status_code == 200
    # review decisions are not seller actions
    assert await _allowed_actions(client, item["id"], seed_seller) == []

    r = await client.post(
        f"/admin/collector/items/{item['id']}/review",
        json={"decision": "PUBLISHED", "notes": "Looks good"},
        headers=seed_admin["headers"],
    )
    assert r.status_code == 200
    assert await _allowed_actions(client, item["id"], seed_seller) == ["edit", "replace_images", "mark_sold", "delete"]

    r = await client.post(f"/seller/items/{item['id']}/mark-sold", headers=seed_seller["headers"])
    assert r.status_code == 200
    assert await _allowed_actions(client, item["id"], seed_seller) == ["delete"]


@pytest.mark.asyncio
async def test_clearing_images_on_published_listing_sends_it_to_review_empty(client, seed_seller, seed_admin):
    item = await _create(client, seed_seller)
    await _publish(client, item["id"], seed_seller, seed_admin)

    r = await client.put(f"/seller/items/{item['id']}/images", json={"images": []}, headers=seed_seller["headers"])
    assert r.status_code == 200
    assert r.json() == []
    assert await _status(client, item["id"], seed_seller) == "PENDING_REVIEW"

    # the reviewer sees the empty gallery flagged red and decides
    r = await client.get("/admin/collector/items", headers=seed_admin["headers"])
    (queued,) = r.json()
    assert queued["id"] == item["id"]
    assert queued["images"] == []
    assert queued["images_status"] == "RED"

    r = await client.get(f"/public/items/{item['id']}")
    assert r.status_code == 404
