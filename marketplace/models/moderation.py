from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.core.ids import gen_id
from marketplace.models.base import Base, JsonType, TimestampMixin


class ModerationSnapshot(TimestampMixin, Base):
    """Latest automated check of a listing, one row per listing."""

    __tablename__ = "listing_moderation"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("mod"))
    listing_id: Mapped[str] = mapped_column(
        String, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    # "GREEN" | "ORANGE" | "RED"
    title_status: Mapped[str] = mapped_column(String(10), nullable=False)
    description_status: Mapped[str] = mapped_column(String(10), nullable=False)
    images_status: Mapped[str] = mapped_column(String(10), nullable=False)

    auto_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    auto_details: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)

    # "PENDING" | "APPROVED" | "REJECTED"
    human_status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    reviewer_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_note: Mapped[str | None] = mapped_column(Text, nullable=True)
