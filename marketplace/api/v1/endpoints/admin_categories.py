from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import ApiError, unwrap
from marketplace.core.db import get_db
from marketplace.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from marketplace.services import categories
from marketplace.services.auth import Actor, require_admin
from marketplace.services.errors import ErrorKind, ServiceError

router = APIRouter(prefix="/admin/categories")


async def _commit(db: AsyncSession) -> None:
    # two concurrent creates can both pass the name check
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ApiError(ServiceError(ErrorKind.CONFLICT, categories.DUPLICATE_NAME, status_code=400))


@router.get("", response_model=list[CategoryOut])
async def list_all(_: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)) -> list[CategoryOut]:
    return [CategoryOut.model_validate(c) for c in await categories.list_categories(db)]


@router.post("", response_model=CategoryOut, status_code=201)
async def create(
    payload: CategoryCreate,
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryOut:
    category = unwrap(await categories.create_category(db, payload))
    await _commit(db)
    return CategoryOut.model_validate(category)


@router.put("/{category_id}", response_model=CategoryOut)
async def update(
    category_id: str,
    payload: CategoryUpdate,
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryOut:
    category = unwrap(await categories.update_category(db, category_id, payload))
    await _commit(db)
    return CategoryOut.model_validate(category)


@router.delete("/{category_id}", response_model=CategoryOut)
async def deactivate(
    category_id: str,
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> CategoryOut:
    """Soft delete: the row stays so existing listings keep their category."""
    category = unwrap(await categories.deactivate_category(db, category_id))
    await db.commit()
    return CategoryOut.model_validate(category)
