from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import unwrap
from marketplace.core.db import get_db
from marketplace.schemas.shop import ShopCreate, ShopOut
from marketplace.services.auth import Actor, require_seller
from marketplace.services.shops import create_shop, list_owned_shops

router = APIRouter(prefix="/seller")


@router.get("/shops", response_model=list[ShopOut])
async def list_shops(actor: Actor = Depends(require_seller), db: AsyncSession = Depends(get_db)) -> list[ShopOut]:
    return [ShopOut.model_validate(s) for s in await list_owned_shops(db, actor)]


@router.post("/shops", response_model=ShopOut, status_code=201)
async def new_shop(
    payload: ShopCreate,
    actor: Actor = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
) -> ShopOut:
    shop = unwrap(await create_shop(db, actor, payload))
    await db.commit()
    return ShopOut.model_validate(shop)
