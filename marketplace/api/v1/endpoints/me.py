from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import ApiError, unwrap
from marketplace.core.db import get_db
from marketplace.models.user import User
from marketplace.schemas.user import DisplayNameUpdate, MeOut, MeSync
from marketplace.services.auth import get_subject
from marketplace.services.errors import ErrorKind
from marketplace.services.users import me_out, set_own_display_name, sync_me

router = APIRouter()


@router.post("/me/sync", response_model=MeOut)
async def sync(
    payload: MeSync,
    subject: str = Depends(get_subject),
    db: AsyncSession = Depends(get_db),
) -> MeOut:
    """
    Create or refresh the local account for the token subject.
    The role is only honored when the account has none yet.
    """
    out = unwrap(await sync_me(db, subject, email=payload.email, role=payload.role))
    await db.commit()
    return out


@router.get("/me", response_model=MeOut)
async def me(subject: str = Depends(get_subject), db: AsyncSession = Depends(get_db)) -> MeOut:
    user = (await db.execute(select(User).where(User.auth_subject == subject))).scalar_one_or_none()
    if user is None:
        raise ApiError.of(ErrorKind.NOT_FOUND, "User not found (call /me/sync first)")
    return await me_out(db, user)


@router.put("/me/display-name", response_model=MeOut)
async def update_display_name(
    payload: DisplayNameUpdate,
    subject: str = Depends(get_subject),
    db: AsyncSession = Depends(get_db),
) -> MeOut:
    user = unwrap(await set_own_display_name(db, subject, payload.display_name))
    await db.commit()
    return await me_out(db, user)
