from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

TrafficLight = Literal["GREEN", "ORANGE", "RED"]
Notes = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=4000)]


class ReviewCreate(BaseModel):
    decision: Literal["PUBLISHED", "REJECTED"]
    notes: Notes
    traffic_title: TrafficLight | None = None
    traffic_description: TrafficLight | None = None
    traffic_photo: TrafficLight | None = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str
    admin_id: str | None
    admin_name: str | None = None
    decision: str
    notes: str
    traffic_title: str
    traffic_description: str
    traffic_photo: str
    created_at: datetime


class ModerationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title_status: str
    description_status: str
    images_status: str
    auto_score: float
    auto_details: dict = Field(default_factory=dict)
    human_status: str
    reviewer_id: str | None = None
    reviewed_at: datetime | None = None
    review_note: str | None = None
