from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from marketplace.schemas.listing import ImageOut


class FeedItemOut(BaseModel):
    id: str
    title: str
    description: str
    price: Decimal
    shipping_cost: Decimal
    currency: str
    updated_at: datetime
    shop_id: str
    shop_name: str
    shop_logo_url: str | None
    seller_id: str
    seller_name: str | None
    cover_url: str | None


class FeedPage(BaseModel):
    items: list[FeedItemOut]
    next_cursor: str | None = None


class PublicItem(BaseModel):
    id: str
    shop_id: str
    category_id: str | None
    title: str
    description: str
    price: Decimal
    currency: str
    shipping_cost: Decimal
    status: str
    created_at: datetime
    updated_at: datetime


class PublicShop(BaseModel):
    id: str
    owner_id: str
    name: str
    description: str | None
    logo_url: str | None
    seller_name: str | None


class PublicItemDetail(BaseModel):
    item: PublicItem
    shop: PublicShop
    images: list[ImageOut]


class ShopProfile(BaseModel):
    shop: PublicShop
    items: list[FeedItemOut] = Field(default_factory=list)


class SellerShop(BaseModel):
    id: str
    name: str
    logo_url: str | None
    description: str | None


class SellerInfo(BaseModel):
    id: str
    display_name: str | None


class SellerProfile(BaseModel):
    seller: SellerInfo
    shops: list[SellerShop]


class SearchHit(BaseModel):
    shop_id: str
    shop_name: str
    shop_logo_url: str | None
    seller_id: str
    seller_name: str | None
