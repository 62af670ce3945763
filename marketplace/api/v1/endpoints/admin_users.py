from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import unwrap
from marketplace.core.db import get_db
from marketplace.schemas.common import OkResponse
from marketplace.schemas.user import (
    DisplayNameUpdate,
    UserActiveUpdate,
    UserEmailUpdate,
    UserOut,
    UserPasswordUpdate,
    UserRoleUpdate,
)
from marketplace.services import users
from marketplace.services.auth import Actor, require_admin
from marketplace.services.identity_admin import IdentityAdminClient, get_identity_admin

router = APIRouter(prefix="/admin/users")


@router.get("", response_model=list[UserOut])
async def list_users(_: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)) -> list[UserOut]:
    return await users.list_users(db)


@router.put("/{user_id}/active", response_model=OkResponse)
async def set_active(
    user_id: str,
    payload: UserActiveUpdate,
    _: Actor = Depends(require_admin),
    idp: IdentityAdminClient = Depends(get_identity_admin),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await users.set_user_active(db, idp, user_id, payload.is_active))
    await db.commit()
    return OkResponse()


@router.put("/{user_id}/role", response_model=OkResponse)
async def set_role(
    user_id: str,
    payload: UserRoleUpdate,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await users.set_user_role(db, admin, user_id, payload.role))
    await db.commit()
    return OkResponse()


@router.put("/{user_id}/display-name", response_model=OkResponse)
async def set_display_name(
    user_id: str,
    payload: DisplayNameUpdate,
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await users.set_user_display_name(db, user_id, payload.display_name))
    await db.commit()
    return OkResponse()


@router.put("/{user_id}/email", response_model=OkResponse)
async def set_email(
    user_id: str,
    payload: UserEmailUpdate,
    _: Actor = Depends(require_admin),
    idp: IdentityAdminClient = Depends(get_identity_admin),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await users.change_user_email(db, idp, user_id, payload.email))
    await db.commit()
    return OkResponse()


@router.put("/{user_id}/password", status_code=204)
async def set_password(
    user_id: str,
    payload: UserPasswordUpdate,
    _: Actor = Depends(require_admin),
    idp: IdentityAdminClient = Depends(get_identity_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    unwrap(await users.change_user_password(db, idp, user_id, payload.password))
    return Response(status_code=204)


@router.delete("/{user_id}", response_model=OkResponse)
async def delete_user(
    user_id: str,
    _: Actor = Depends(require_admin),
    idp: IdentityAdminClient = Depends(get_identity_admin),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    unwrap(await users.delete_user(db, idp, user_id))
    await db.commit()
    return OkResponse()
