from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import unwrap
from marketplace.core.db import get_db
from marketplace.schemas.common import OkResponse
from marketplace.schemas.listing import (
    ImageOut,
    ImagesReplace,
    ListingCreate,
    ListingOut,
    ListingUpdate,
    SellerListingDetail,
    SellerListingOut,
)
from marketplace.services import listings
from marketplace.services.auth import Actor, require_seller
from marketplace.services.moderation_gateway import ModerationGateway, get_moderation_gateway

router = APIRouter(prefix="/seller")


@router.get("/items", response_model=list[SellerListingOut])
async def list_items(actor: Actor = Depends(require_seller), db: AsyncSession = Depends(get_db)) -> list[SellerListingOut]:
    return await listings.list_owned_listings(db, actor)


@router.get("/items/{listing_id}", response_model=SellerListingDetail)
async def get_item(
    listing_id: str,
    actor: Actor = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> SellerListingDetail:
    return unwrap(await listings.get_owned_listing_detail(db, actor, listing_id))


@router.post("/items", response_model=ListingOut, status_code=201)
async def create_item(
    payload: ListingCreate,
    actor: Actor = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = unwrap(await listings.create_listing(db, actor, payload))
    await db.commit()
    return ListingOut.model_validate(listing)


@router.put("/items/{listing_id}", response_model=ListingOut)
async def update_item(
    listing_id: str,
    payload: ListingUpdate,
    actor: Actor = Depends(require_seller),
    gateway: ModerationGateway = Depends(get_moderation_gateway),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = unwrap(await listings.update_listing(db, actor, listing_id, payload.changes(), gateway=gateway))
    await db.commit()
    return ListingOut.model_validate(listing)


@router.put("/items/{listing_id}/images", response_model=list[ImageOut])
async def replace_item_images(
    listing_id: str,
    payload: ImagesReplace,
    actor: Actor = Depends(require_seller),
    gateway: ModerationGateway = Depends(get_moderation_gateway),
    db: AsyncSession = Depends(get_db),
) -> list[ImageOut]:
    """Swap the whole image set; a PUBLISHED listing goes back to review."""
    _, images = unwrap(await listings.replace_images(db, actor, listing_id, payload.images, gateway=gateway))
    await db.commit()
    return [ImageOut.model_validate(i) for i in images]


@router.post("/items/{listing_id}/submit", response_model=ListingOut)
async def submit_item(
    listing_id: str,
    actor: Actor = Depends(require_seller),
    gateway: ModerationGateway = Depends(get_moderation_gateway),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = unwrap(await listings.submit_listing(db, actor, listing_id, gateway=gateway))
    await db.commit()
    return ListingOut.model_validate(listing)


@router.post("/items/{listing_id}/mark-sold", response_model=ListingOut)
async def mark_item_sold(
    listing_id: str,
    actor: Actor = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = unwrap(await listings.mark_sold(db, actor, listing_id))
    await db.commit()
    return ListingOut.model_validate(listing)


@router.delete("/items/{listing_id}", response_model=OkResponse)
async def delete_item(
    listing_id: str,
    actor: Actor = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await listings.delete_listing(db, actor, listing_id))
    await db.commit()
    return OkResponse()
