from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]


class CategoryCreate(BaseModel):
    name: CategoryName
    parent_id: str | None = None


class CategoryUpdate(BaseModel):
    name: CategoryName | None = None
    parent_id: str | None = None
    is_active: bool | None = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    parent_id: str | None
    is_active: bool
