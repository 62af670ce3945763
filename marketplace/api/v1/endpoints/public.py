from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import unwrap
from marketplace.core.db import get_db
from marketplace.schemas.category import CategoryOut
from marketplace.schemas.public import FeedPage, PublicItemDetail, SearchHit, SellerProfile, ShopProfile
from marketplace.services import catalog
from marketplace.services.categories import list_categories

router = APIRouter()


@router.get("/public/items", response_model=FeedPage)
async def feed(
    limit: int = Query(catalog.DEFAULT_PAGE_SIZE),
    cursor: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> FeedPage:
    return await catalog.published_feed(db, limit=limit, cursor=cursor)


@router.get("/public/items/{listing_id}", response_model=PublicItemDetail)
async def item(listing_id: str, db: AsyncSession = Depends(get_db)) -> PublicItemDetail:
    return unwrap(await catalog.published_item_detail(db, listing_id))


@router.get("/public/shops/{shop_id}", response_model=ShopProfile)
async def shop(shop_id: str, db: AsyncSession = Depends(get_db)) -> ShopProfile:
    return unwrap(await catalog.shop_profile(db, shop_id))


@router.get("/public/sellers/{seller_id}", response_model=SellerProfile)
async def seller(seller_id: str, db: AsyncSession = Depends(get_db)) -> SellerProfile:
    return unwrap(await catalog.seller_profile(db, seller_id))


@router.get("/public/search", response_model=list[SearchHit])
async def search(q: str | None = None, db: AsyncSession = Depends(get_db)) -> list[SearchHit]:
    return await catalog.search_shops(db, q)


@router.get("/categories", response_model=list[CategoryOut])
async def active_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryOut]:
    return [CategoryOut.model_validate(c) for c in await list_categories(db, active_only=True)]
