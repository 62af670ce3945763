from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints

ShopName = Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]


class ShopCreate(BaseModel):
    # length rule lives in services.shops.validate_shop_name
    name: ShopName
    description: str | None = None
    logo_url: str | None = None


class ShopOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    name: str
    description: str | None
    logo_url: str | None
    is_active: bool
    created_at: datetime
