from pydantic import BaseModel, Field

from marketplace.schemas.listing import ImageOut, ListingOut
from marketplace.schemas.review import ModerationOut, ReviewOut


class CollectorItemOut(ListingOut):
    shop_name: str
    seller_name: str | None
    seller_email: str | None

    # defaults apply when the listing has no moderation snapshot yet
    title_status: str = "ORANGE"
    description_status: str = "ORANGE"
    images_status: str = "ORANGE"
    auto_score: float = 0.0
    human_status: str = "PENDING"

    images: list[ImageOut] = Field(default_factory=list)


class ReviewDecisionOut(BaseModel):
    item: ListingOut
    review: ReviewOut
    moderation: ModerationOut | None = None
