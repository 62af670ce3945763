from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.core.ids import gen_id
from marketplace.models.base import Base, TimestampMixin

ROLE_BUYER = "BUYER"
ROLE_SELLER = "SELLER"
ROLE_ADMIN = "ADMIN"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))

    # identity provider subject ("auth0|abc123"); the only authorization input
    auth_subject: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(30), nullable=True, unique=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserRole(TimestampMixin, Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_role"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("url"))
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # "BUYER" | "SELLER" | "ADMIN"
    role: Mapped[str] = mapped_column(String(20), nullable=False)
