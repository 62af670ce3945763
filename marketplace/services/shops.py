from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.shop import Shop
from marketplace.schemas.shop import ShopCreate
from marketplace.services.auth import Actor
from marketplace.services.errors import Outcome, validation_error

MIN_SHOP_NAME_LENGTH = 3


def validate_shop_name(name: Any) -> bool:
    if not isinstance(name, str):
        return False
    return len(name.strip()) >= MIN_SHOP_NAME_LENGTH


async def list_owned_shops(db: AsyncSession, actor: Actor) -> list[Shop]:
    stmt = (
        select(Shop)
        .where(Shop.owner_id == actor.user_id, Shop.is_active.is_(True))
        .order_by(Shop.created_at.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def create_shop(db: AsyncSession, actor: Actor, body: ShopCreate) -> Outcome[Shop]:
    if not validate_shop_name(body.name):
        return validation_error("Invalid shop name", field="name")

    shop = Shop(
        owner_id=actor.user_id,
        name=body.name.strip(),
        description=body.description or None,
        logo_url=body.logo_url or None,
    )
    db.add(shop)
    await db.flush()
    return Outcome.success(shop)
