"""
Public catalog reads: published listing feed, listing detail, shop and seller
profiles, and name search. Only PUBLISHED listings of active shops are visible.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.listing import Listing, ListingImage
from marketplace.models.shop import Shop
from marketplace.models.user import User
from marketplace.schemas.listing import ImageOut
from marketplace.schemas.public import (
    FeedItemOut,
    FeedPage,
    PublicItem,
    PublicItemDetail,
    PublicShop,
    SearchHit,
    SellerInfo,
    SellerProfile,
    SellerShop,
    ShopProfile,
)
from marketplace.services.errors import Outcome, not_found
from marketplace.services.listing_state import ListingStatus
from marketplace.services.listings import load_images

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
MIN_SEARCH_LENGTH = 2
MAX_SEARCH_HITS = 30
LIKE_ESCAPE = "\\"

PUBLISHED = ListingStatus.PUBLISHED.value


def encode_cursor(updated_at: datetime, listing_id: str) -> str:
    return f"{updated_at.isoformat()}|{listing_id}"


def decode_cursor(cursor: str | None) -> tuple[datetime, str] | None:
    if not cursor:
        return None
    ts, sep, listing_id = cursor.rpartition("|")
    if not sep or not ts or not listing_id:
        return None
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")), listing_id
    except ValueError:
        return None


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_PAGE_SIZE
    return max(1, min(limit, MAX_PAGE_SIZE))


def _cover_url():
    return (
        select(ListingImage.url)
        .where(ListingImage.listing_id == Listing.id)
        .order_by(ListingImage.position.asc())
        .limit(1)
        .correlate(Listing)
        .scalar_subquery()
    )


def _feed_select():
    return (
        select(
            Listing.id,
            Listing.title,
            Listing.description,
            Listing.price,
            Listing.shipping_cost,
            Listing.currency,
            Listing.updated_at,
            Shop.id.label("shop_id"),
            Shop.name.label("shop_name"),
            Shop.logo_url.label("shop_logo_url"),
            User.id.label("seller_id"),
            User.display_name.label("seller_name"),
            _cover_url().label("cover_url"),
        )
        .join(Shop, Shop.id == Listing.shop_id)
        .join(User, User.id == Shop.owner_id)
        .where(Listing.status == PUBLISHED, Shop.is_active.is_(True))
    )


async def published_feed(db: AsyncSession, *, limit: int | None = None, cursor: str | None = None) -> FeedPage:
    size = clamp_limit(limit)
    stmt = _feed_select()

    after = decode_cursor(cursor)
    if after is not None:
        ts, listing_id = after
        # strictly older than the cursor, ties broken by id
        stmt = stmt.where(
            or_(
                Listing.updated_at < ts,
                and_(Listing.updated_at == ts, Listing.id < listing_id),
            )
        )

    stmt = stmt.order_by(Listing.updated_at.desc(), Listing.id.desc()).limit(size)
    rows = (await db.execute(stmt)).mappings().all()
    items = [FeedItemOut(**r) for r in rows]

    next_cursor = encode_cursor(items[-1].updated_at, items[-1].id) if len(items) == size else None
    return FeedPage(items=items, next_cursor=next_cursor)


async def published_item_detail(db: AsyncSession, listing_id: str) -> Outcome[PublicItemDetail]:
    row = (
        await db.execute(
            select(Listing, Shop, User.display_name)
            .join(Shop, Shop.id == Listing.shop_id)
            .join(User, User.id == Shop.owner_id)
            .where(Listing.id == listing_id, Listing.status == PUBLISHED, Shop.is_active.is_(True))
        )
    ).one_or_none()
    if row is None:
        return not_found("Listing not found")
    listing, shop, seller_name = row

    images = await load_images(db, listing.id)
    return Outcome.success(
        PublicItemDetail(
            item=PublicItem.model_validate(listing, from_attributes=True),
            shop=PublicShop(
                id=shop.id,
                owner_id=shop.owner_id,
                name=shop.name,
                description=shop.description,
                logo_url=shop.logo_url,
                seller_name=seller_name,
            ),
            images=[ImageOut.model_validate(i) for i in images],
        )
    )


async def shop_profile(db: AsyncSession, shop_id: str) -> Outcome[ShopProfile]:
    row = (
        await db.execute(
            select(Shop, User.display_name)
            .join(User, User.id == Shop.owner_id)
            .where(Shop.id == shop_id, Shop.is_active.is_(True))
        )
    ).one_or_none()
    if row is None:
        return not_found("Shop not found")
    shop, seller_name = row

    stmt = _feed_select().where(Listing.shop_id == shop.id).order_by(Listing.updated_at.desc(), Listing.id.desc())
    items = [FeedItemOut(**r) for r in (await db.execute(stmt)).mappings().all()]
    return Outcome.success(
        ShopProfile(
            shop=PublicShop(
                id=shop.id,
                owner_id=shop.owner_id,
                name=shop.name,
                description=shop.description,
                logo_url=shop.logo_url,
                seller_name=seller_name,
            ),
            items=items,
        )
    )


async def seller_profile(db: AsyncSession, seller_id: str) -> Outcome[SellerProfile]:
    user = (await db.execute(select(User).where(User.id == seller_id))).scalar_one_or_none()
    if user is None:
        return not_found("Seller not found")

    shops = (
        await db.execute(
            select(Shop)
            .where(Shop.owner_id == user.id, Shop.is_active.is_(True))
            .order_by(Shop.created_at.desc())
        )
    ).scalars().all()
    return Outcome.success(
        SellerProfile(
            seller=SellerInfo(id=user.id, display_name=user.display_name),
            shops=[
                SellerShop(id=s.id, name=s.name, logo_url=s.logo_url, description=s.description)
                for s in shops
            ],
        )
    )


def _escape_like(term: str) -> str:
    # wildcards in user input match literally
    return term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", LIKE_ESCAPE + "%").replace("_", LIKE_ESCAPE + "_")


async def search_shops(db: AsyncSession, q: str | None) -> list[SearchHit]:
    term = (q or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []

    pattern = f"%{_escape_like(term.lower())}%"
    stmt = (
        select(
            Shop.id.label("shop_id"),
            Shop.name.label("shop_name"),
            Shop.logo_url.label("shop_logo_url"),
            User.id.label("seller_id"),
            User.display_name.label("seller_name"),
        )
        .join(User, User.id == Shop.owner_id)
        .where(
            Shop.is_active.is_(True),
            or_(
                func.lower(Shop.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(func.coalesce(User.display_name, "")).like(pattern, escape=LIKE_ESCAPE),
            ),
        )
        .order_by(Shop.created_at.desc())
        .limit(MAX_SEARCH_HITS)
    )
    return [SearchHit(**r) for r in (await db.execute(stmt)).mappings().all()]
