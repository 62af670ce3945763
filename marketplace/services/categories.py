from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.category import Category
from marketplace.schemas.category import CategoryCreate, CategoryUpdate
from marketplace.services.errors import Outcome, conflict, not_found, validation_error

DUPLICATE_NAME = "Category name must be unique"


async def list_categories(db: AsyncSession, *, active_only: bool = False) -> list[Category]:
    stmt = select(Category)
    if active_only:
        stmt = stmt.where(Category.is_active.is_(True)).order_by(Category.name.asc())
    else:
        stmt = stmt.order_by(Category.created_at.asc(), Category.id.asc())
    return list((await db.execute(stmt)).scalars().all())


async def _name_taken(db: AsyncSession, name: str, *, exclude_id: str | None = None) -> bool:
    stmt = select(Category.id).where(Category.name == name)
    if exclude_id:
        stmt = stmt.where(Category.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def _parent_ok(db: AsyncSession, parent_id: str, *, self_id: str | None = None) -> bool:
    if parent_id == self_id:
        return False
    return (await db.execute(select(Category.id).where(Category.id == parent_id))).scalar_one_or_none() is not None


async def create_category(db: AsyncSession, body: CategoryCreate) -> Outcome[Category]:
    if await _name_taken(db, body.name):
        return conflict(DUPLICATE_NAME, status_code=400)
    if body.parent_id and not await _parent_ok(db, body.parent_id):
        return not_found("Parent category not found")

    category = Category(name=body.name, parent_id=body.parent_id)
    db.add(category)
    await db.flush()
    return Outcome.success(category)


async def update_category(db: AsyncSession, category_id: str, body: CategoryUpdate) -> Outcome[Category]:
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        return validation_error("Nothing to update")

    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if category is None:
        return not_found("Category not found")

    if "name" in fields:
        if fields["name"] is None:
            return validation_error("Name cannot be empty", field="name")
        if await _name_taken(db, fields["name"], exclude_id=category.id):
            return conflict(DUPLICATE_NAME, status_code=400)
        category.name = fields["name"]
    if "parent_id" in fields:
        parent_id = fields["parent_id"]
        if parent_id is not None and not await _parent_ok(db, parent_id, self_id=category.id):
            return validation_error("Invalid parent category", field="parent_id")
        category.parent_id = parent_id
    if fields.get("is_active") is not None:
        category.is_active = fields["is_active"]

    await db.flush()
    return Outcome.success(category)


async def deactivate_category(db: AsyncSession, category_id: str) -> Outcome[Category]:
    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if category is None:
        return not_found("Category not found")
    category.is_active = False
    await db.flush()
    return Outcome.success(category)
