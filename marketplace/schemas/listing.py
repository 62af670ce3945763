from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from marketplace.schemas.review import ReviewOut

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=10_000)]
Price = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]
ShippingCost = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]
Currency = Annotated[str, StringConstraints(strip_whitespace=True, to_upper=True, pattern=r"^[A-Z]{3}$")]
ImageUrls = Annotated[list[str], Field(max_length=20)]


class ListingCreate(BaseModel):
    shop_id: str
    category_id: str | None = None
    title: Title
    description: Description = ""
    price: Price
    shipping_cost: ShippingCost = Decimal("0")
    currency: Currency = "EUR"
    images: ImageUrls = Field(default_factory=list)


class ListingUpdate(BaseModel):
    # omitted or null fields are left unchanged
    title: Title | None = None
    description: Description | None = None
    price: Price | None = None
    shipping_cost: ShippingCost | None = None
    currency: Currency | None = None
    category_id: str | None = None

    def changes(self) -> dict:
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class ImagesReplace(BaseModel):
    images: ImageUrls = Field(default_factory=list)


class ImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    position: int
    is_primary: bool


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    shop_id: str
    category_id: str | None
    title: str
    description: str
    price: Decimal
    shipping_cost: Decimal
    currency: str
    status: str
    created_at: datetime
    updated_at: datetime


class SellerListingOut(ListingOut):
    category_name: str | None = None
    images: list[ImageOut] = Field(default_factory=list)
    last_review: ReviewOut | None = None


class SellerListingDetail(BaseModel):
    item: ListingOut
    images: list[ImageOut]
    # most recent decision only; explains a REJECTED status
    reviews: list[ReviewOut]
    # seller events the current status accepts, e.g. ["edit", "replace_images", "submit", "delete"]
    allowed_actions: list[str] = Field(default_factory=list)
