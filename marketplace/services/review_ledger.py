"""
Review ledger: append-only history of human moderation decisions.

No update or delete; a correction is a new record.
"""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.review import ReviewRecord
from marketplace.models.user import User
from marketplace.schemas.review import ReviewOut


async def append_review(
    db: AsyncSession,
    *,
    listing_id: str,
    admin_id: str,
    decision: str,
    notes: str,
    traffic_title: str | None = None,
    traffic_description: str | None = None,
    traffic_photo: str | None = None,
) -> ReviewRecord:
    record = ReviewRecord(
        listing_id=listing_id,
        admin_id=admin_id,
        decision=decision,
        notes=notes.strip(),
        traffic_title=traffic_title or "GREEN",
        traffic_description=traffic_description or "GREEN",
        traffic_photo=traffic_photo or "GREEN",
    )
    db.add(record)
    await db.flush()
    return record


async def review_history(db: AsyncSession, listing_id: str, *, limit: int | None = None) -> list[ReviewOut]:
    stmt = (
        select(ReviewRecord, User.display_name)
        .outerjoin(User, User.id == ReviewRecord.admin_id)
        .where(ReviewRecord.listing_id == listing_id)
        .order_by(ReviewRecord.created_at.desc(), ReviewRecord.id.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    rows = (await db.execute(stmt)).all()
    return [to_review_out(record, admin_name) for record, admin_name in rows]


async def latest_review(db: AsyncSession, listing_id: str) -> ReviewOut | None:
    history = await review_history(db, listing_id, limit=1)
    return history[0] if history else None


def to_review_out(record: ReviewRecord, admin_name: str | None = None) -> ReviewOut:
    out = ReviewOut.model_validate(record)
    return out.model_copy(update={"admin_name": admin_name})
