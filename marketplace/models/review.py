from datetime import datetime

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from marketplace.core.ids import gen_id
from marketplace.models.base import Base, utcnow


class ReviewRecord(Base):
    """Append-only log of human moderation decisions."""

    __tablename__ = "listing_reviews"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("rev"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    admin_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # "PUBLISHED" | "REJECTED"
    decision: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False)

    # human-set traffic lights, may differ from the automated snapshot
    traffic_title: Mapped[str] = mapped_column(String(10), nullable=False, default="GREEN")
    traffic_description: Mapped[str] = mapped_column(String(10), nullable=False, default="GREEN")
    traffic_photo: Mapped[str] = mapped_column(String(10), nullable=False, default="GREEN")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
