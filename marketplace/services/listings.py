"""
Listing workflow: seller and admin operations over the lifecycle table.

Every operation re-checks ownership against the database, asks
``listing_state.plan_transition`` whether the event is legal for the current
status, and returns an ``Outcome``. Operations that move a listing into review
run the moderation gateway first and upsert the moderation snapshot. Nothing
here commits; the endpoint owns the unit of work.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.category import Category
from marketplace.models.listing import Listing, ListingImage
from marketplace.models.moderation import ModerationSnapshot
from marketplace.models.review import ReviewRecord
from marketplace.models.shop import Shop
from marketplace.models.user import User
from marketplace.schemas.collector import CollectorItemOut
from marketplace.schemas.listing import ImageOut, ListingCreate, ListingOut, SellerListingDetail, SellerListingOut
from marketplace.services.auth import Actor
from marketplace.services.content_check import ModerationResult
from marketplace.services.errors import Outcome, conflict, forbidden, not_found, validation_error
from marketplace.services.listing_state import ListingEvent, ListingStatus, Transition, allowed_events, plan_transition
from marketplace.services.moderation_gateway import ModerationGateway
from marketplace.services.review_ledger import append_review, latest_review

log = logging.getLogger(__name__)

MIN_IMAGES_FOR_REVIEW = 2
MIN_TITLE_LENGTH = 3
MIN_NOTES_LENGTH = 2

# publish and reject belong to the review queue
SELLER_EVENTS = frozenset(
    {ListingEvent.EDIT, ListingEvent.REPLACE_IMAGES, ListingEvent.SUBMIT, ListingEvent.MARK_SOLD, ListingEvent.DELETE}
)


def clean_image_urls(urls: Iterable[Any] | None) -> list[str]:
    return [u.strip() for u in (urls or []) if isinstance(u, str) and u.strip()]


async def _load_owned(db: AsyncSession, listing_id: str, actor: Actor) -> Outcome[Listing]:
    row = (
        await db.execute(
            select(Listing, Shop.owner_id)
            .join(Shop, Shop.id == Listing.shop_id)
            .where(Listing.id == listing_id)
        )
    ).one_or_none()
    if row is None:
        return not_found("Listing not found")
    listing, owner_id = row
    if owner_id != actor.user_id:
        return forbidden("Not your listing")
    return Outcome.success(listing)


async def _category_exists(db: AsyncSession, category_id: str) -> bool:
    stmt = select(Category.id).where(Category.id == category_id, Category.is_active.is_(True))
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def load_images(db: AsyncSession, listing_id: str) -> list[ListingImage]:
    stmt = (
        select(ListingImage)
        .where(ListingImage.listing_id == listing_id)
        .order_by(ListingImage.position.asc(), ListingImage.id.asc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def _write_images(db: AsyncSession, listing_id: str, urls: list[str]) -> list[ListingImage]:
    # old set out first: (listing_id, position) is unique
    await db.execute(delete(ListingImage).where(ListingImage.listing_id == listing_id))
    images = [ListingImage(listing_id=listing_id, url=url, position=idx) for idx, url in enumerate(urls)]
    db.add_all(images)
    await db.flush()
    return images


async def upsert_snapshot(db: AsyncSession, listing_id: str, result: ModerationResult) -> ModerationSnapshot:
    snapshot = (
        await db.execute(select(ModerationSnapshot).where(ModerationSnapshot.listing_id == listing_id))
    ).scalar_one_or_none()
    if snapshot is None:
        snapshot = ModerationSnapshot(listing_id=listing_id)
        db.add(snapshot)

    snapshot.title_status = result.title_status
    snapshot.description_status = result.description_status
    snapshot.images_status = result.images_status
    snapshot.auto_score = result.score
    snapshot.auto_details = dict(result.details)

    # a fresh check always waits for a human again
    snapshot.human_status = "PENDING"
    snapshot.reviewer_id = None
    snapshot.reviewed_at = None
    snapshot.review_note = None

    await db.flush()
    return snapshot


def _apply(listing: Listing, transition: Transition) -> None:
    assert transition.target is not None
    if transition.current != transition.target:
        log.info(
            "listing %s: %s -> %s (%s)",
            listing.id,
            transition.current.value if transition.current else None,
            transition.target.value,
            transition.event.value,
        )
    listing.status = transition.target.value


async def create_listing(db: AsyncSession, actor: Actor, body: ListingCreate) -> Outcome[Listing]:
    transition = plan_transition(None, ListingEvent.CREATE)
    title = body.title.strip()
    if len(title) < MIN_TITLE_LENGTH:
        return validation_error("Invalid title", field="title")
    if body.price <= 0:
        return validation_error("Invalid price", field="price")

    shop = (await db.execute(select(Shop).where(Shop.id == body.shop_id))).scalar_one_or_none()
    if shop is None or not shop.is_active:
        return not_found("Shop not found")
    if shop.owner_id != actor.user_id:
        return forbidden("Not your shop")

    if body.category_id and not await _category_exists(db, body.category_id):
        return not_found("Category not found")

    listing = Listing(
        shop_id=shop.id,
        category_id=body.category_id,
        title=title,
        description=body.description.strip(),
        price=body.price,
        shipping_cost=body.shipping_cost,
        currency=body.currency,
        status=transition.target.value,
    )
    db.add(listing)
    await db.flush()

    urls = clean_image_urls(body.images)
    if urls:
        await _write_images(db, listing.id, urls)

    log.info("listing %s created in shop %s", listing.id, shop.id)
    return Outcome.success(listing)


async def update_listing(
    db: AsyncSession,
    actor: Actor,
    listing_id: str,
    changes: dict[str, Any],
    *,
    gateway: ModerationGateway,
) -> Outcome[Listing]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return loaded
    listing = loaded.value
    assert listing is not None

    transition = plan_transition(listing.status, ListingEvent.EDIT)
    if not transition.ok:
        return Outcome.failure(transition.error)

    if not changes:
        return validation_error("Nothing to update")
    if "title" in changes and len(changes["title"].strip()) < MIN_TITLE_LENGTH:
        return validation_error("Invalid title", field="title")
    if "price" in changes and changes["price"] <= 0:
        return validation_error("Invalid price", field="price")
    if changes.get("category_id") and not await _category_exists(db, changes["category_id"]):
        return not_found("Category not found")

    if transition.recheck:
        urls = [img.url for img in await load_images(db, listing.id)]
        result = await gateway.run_check(
            title=changes.get("title", listing.title),
            description=changes.get("description", listing.description),
            image_urls=urls,
        )
        await upsert_snapshot(db, listing.id, result)

    for key, value in changes.items():
        setattr(listing, key, value.strip() if isinstance(value, str) else value)
    _apply(listing, transition)
    await db.flush()
    return Outcome.success(listing)


async def replace_images(
    db: AsyncSession,
    actor: Actor,
    listing_id: str,
    image_urls: Iterable[Any],
    *,
    gateway: ModerationGateway,
) -> Outcome[tuple[Listing, list[ListingImage]]]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return Outcome.failure(loaded.error)
    listing = loaded.value
    assert listing is not None

    transition = plan_transition(listing.status, ListingEvent.REPLACE_IMAGES)
    if not transition.ok:
        return Outcome.failure(transition.error)

    urls = clean_image_urls(image_urls)

    if transition.recheck:
        result = await gateway.run_check(title=listing.title, description=listing.description, image_urls=urls)
        await upsert_snapshot(db, listing.id, result)

    images = await _write_images(db, listing.id, urls)
    _apply(listing, transition)
    await db.flush()
    return Outcome.success((listing, images))


async def submit_listing(
    db: AsyncSession,
    actor: Actor,
    listing_id: str,
    *,
    gateway: ModerationGateway,
) -> Outcome[Listing]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return loaded
    listing = loaded.value
    assert listing is not None

    transition = plan_transition(listing.status, ListingEvent.SUBMIT)
    if not transition.ok:
        return Outcome.failure(transition.error)

    images = await load_images(db, listing.id)
    if len(images) < MIN_IMAGES_FOR_REVIEW:
        return conflict(f"At least {MIN_IMAGES_FOR_REVIEW} images are required", status_code=400)

    result = await gateway.run_check(
        title=listing.title,
        description=listing.description,
        image_urls=[img.url for img in images],
    )
    await upsert_snapshot(db, listing.id, result)

    _apply(listing, transition)
    await db.flush()
    return Outcome.success(listing)


async def mark_sold(db: AsyncSession, actor: Actor, listing_id: str) -> Outcome[Listing]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return loaded
    listing = loaded.value
    assert listing is not None

    transition = plan_transition(listing.status, ListingEvent.MARK_SOLD)
    if not transition.ok:
        return Outcome.failure(transition.error)

    _apply(listing, transition)
    await db.flush()
    return Outcome.success(listing)


async def delete_listing(db: AsyncSession, actor: Actor, listing_id: str) -> Outcome[str]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return Outcome.failure(loaded.error)
    listing = loaded.value
    assert listing is not None

    transition = plan_transition(listing.status, ListingEvent.DELETE)
    if not transition.ok:
        return Outcome.failure(transition.error)

    await db.execute(delete(ListingImage).where(ListingImage.listing_id == listing.id))
    await db.execute(delete(ModerationSnapshot).where(ModerationSnapshot.listing_id == listing.id))
    await db.execute(delete(ReviewRecord).where(ReviewRecord.listing_id == listing.id))
    await db.delete(listing)
    await db.flush()

    log.info("listing %s deleted from status %s", listing_id, transition.current.value)
    return Outcome.success(listing_id)


async def review_listing(
    db: AsyncSession,
    admin: Actor,
    listing_id: str,
    *,
    decision: str,
    notes: str,
    traffic_title: str | None = None,
    traffic_description: str | None = None,
    traffic_photo: str | None = None,
) -> Outcome[tuple[Listing, ReviewRecord, ModerationSnapshot | None]]:
    if decision == ListingStatus.PUBLISHED.value:
        event = ListingEvent.PUBLISH
    elif decision == ListingStatus.REJECTED.value:
        event = ListingEvent.REJECT
    else:
        return validation_error("Invalid decision", field="decision")
    if not isinstance(notes, str) or len(notes.strip()) < MIN_NOTES_LENGTH:
        return validation_error("Notes are required", field="notes")

    listing = (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()
    if listing is None:
        return not_found("Listing not found")

    transition = plan_transition(listing.status, event)
    if not transition.ok:
        return Outcome.failure(transition.error)

    record = await append_review(
        db,
        listing_id=listing.id,
        admin_id=admin.user_id,
        decision=decision,
        notes=notes,
        traffic_title=traffic_title,
        traffic_description=traffic_description,
        traffic_photo=traffic_photo,
    )

    snapshot = (
        await db.execute(select(ModerationSnapshot).where(ModerationSnapshot.listing_id == listing.id))
    ).scalar_one_or_none()
    if snapshot is not None:
        snapshot.human_status = "APPROVED" if event is ListingEvent.PUBLISH else "REJECTED"
        snapshot.reviewer_id = admin.user_id
        snapshot.reviewed_at = record.created_at
        snapshot.review_note = record.notes

    _apply(listing, transition)
    await db.flush()
    return Outcome.success((listing, record, snapshot))


async def list_owned_listings(db: AsyncSession, actor: Actor) -> list[SellerListingOut]:
    stmt = (
        select(Listing, Category.name)
        .join(Shop, Shop.id == Listing.shop_id)
        .outerjoin(Category, Category.id == Listing.category_id)
        .where(Shop.owner_id == actor.user_id)
        .order_by(Listing.updated_at.desc(), Listing.id.desc())
    )
    rows = (await db.execute(stmt)).all()

    out: list[SellerListingOut] = []
    for listing, category_name in rows:
        images = await load_images(db, listing.id)
        out.append(
            SellerListingOut(
                **ListingOut.model_validate(listing).model_dump(),
                category_name=category_name,
                images=[ImageOut.model_validate(i) for i in images],
                last_review=await latest_review(db, listing.id),
            )
        )
    return out


async def get_owned_listing_detail(db: AsyncSession, actor: Actor, listing_id: str) -> Outcome[SellerListingDetail]:
    loaded = await _load_owned(db, listing_id, actor)
    if not loaded.ok:
        return Outcome.failure(loaded.error)
    listing = loaded.value
    assert listing is not None

    images = await load_images(db, listing.id)
    last = await latest_review(db, listing.id)
    return Outcome.success(
        SellerListingDetail(
            item=ListingOut.model_validate(listing),
            images=[ImageOut.model_validate(i) for i in images],
            reviews=[last] if last else [],
            allowed_actions=[e.value for e in allowed_events(listing.status) if e in SELLER_EVENTS],
        )
    )


async def pending_review_queue(db: AsyncSession) -> list[CollectorItemOut]:
    stmt = (
        select(Listing, Shop.name, User.display_name, User.email, ModerationSnapshot)
        .join(Shop, Shop.id == Listing.shop_id)
        .join(User, User.id == Shop.owner_id)
        .outerjoin(ModerationSnapshot, ModerationSnapshot.listing_id == Listing.id)
        .where(Listing.status == ListingStatus.PENDING_REVIEW.value)
        .order_by(Listing.updated_at.desc(), Listing.id.desc())
    )
    rows = (await db.execute(stmt)).all()

    out: list[CollectorItemOut] = []
    for listing, shop_name, seller_name, seller_email, snapshot in rows:
        moderation: dict[str, Any] = {}
        if snapshot is not None:
            moderation = {
                "title_status": snapshot.title_status,
                "description_status": snapshot.description_status,
                "images_status": snapshot.images_status,
                "auto_score": snapshot.auto_score,
                "human_status": snapshot.human_status,
            }
        images = await load_images(db, listing.id)
        out.append(
            CollectorItemOut(
                **ListingOut.model_validate(listing).model_dump(),
                shop_name=shop_name,
                seller_name=seller_name,
                seller_email=seller_email,
                images=[ImageOut.model_validate(i) for i in images],
                **moderation,
            )
        )
    return out


async def listing_exists(db: AsyncSession, listing_id: str) -> bool:
    return (await db.execute(select(Listing.id).where(Listing.id == listing_id))).scalar_one_or_none() is not None

