from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

DisplayName = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_-]+$"),
]


class MeSync(BaseModel):
    email: str | None = None
    # initial role, only honored on first sync
    role: Literal["BUYER", "SELLER"] | None = None


class MeOut(BaseModel):
    id: str
    email: str | None
    display_name: str | None
    roles: list[str]


class DisplayNameUpdate(BaseModel):
    display_name: DisplayName


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    auth_subject: str
    email: str | None
    display_name: str | None
    is_active: bool
    roles: list[str] = Field(default_factory=list)


class UserActiveUpdate(BaseModel):
    is_active: bool


class UserRoleUpdate(BaseModel):
    role: Literal["BUYER", "SELLER"]


class UserEmailUpdate(BaseModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")]


class UserPasswordUpdate(BaseModel):
    password: str = Field(min_length=8, max_length=256)
