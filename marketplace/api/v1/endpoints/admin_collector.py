from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import ApiError, unwrap
from marketplace.core.db import get_db
from marketplace.schemas.collector import CollectorItemOut, ReviewDecisionOut
from marketplace.schemas.listing import ListingOut
from marketplace.schemas.review import ModerationOut, ReviewCreate, ReviewOut
from marketplace.services.auth import Actor, require_admin
from marketplace.services.errors import ErrorKind
from marketplace.services.listings import listing_exists, pending_review_queue, review_listing
from marketplace.services.review_ledger import review_history, to_review_out

router = APIRouter(prefix="/admin/collector")


@router.get("/items", response_model=list[CollectorItemOut])
async def queue(_: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)) -> list[CollectorItemOut]:
    return await pending_review_queue(db)


@router.get("/items/{listing_id}/reviews", response_model=list[ReviewOut])
async def reviews(
    listing_id: str,
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[ReviewOut]:
    if not await listing_exists(db, listing_id):
        raise ApiError.of(ErrorKind.NOT_FOUND, "Listing not found")
    return await review_history(db, listing_id)


@router.post("/items/{listing_id}/review", response_model=ReviewDecisionOut)
async def review(
    listing_id: str,
    payload: ReviewCreate,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ReviewDecisionOut:
    """
    Record a human decision on a PENDING_REVIEW listing.

    The review row and the status change are committed together.
    """
    listing, record, snapshot = unwrap(
        await review_listing(
            db,
            admin,
            listing_id,
            decision=payload.decision,
            notes=payload.notes,
            traffic_title=payload.traffic_title,
            traffic_description=payload.traffic_description,
            traffic_photo=payload.traffic_photo,
        )
    )
    await db.commit()
    return ReviewDecisionOut(
        item=ListingOut.model_validate(listing),
        review=to_review_out(record, admin.display_name),
        moderation=ModerationOut.model_validate(snapshot) if snapshot is not None else None,
    )
