from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.user import ROLE_BUYER, ROLE_SELLER, User, UserRole
from marketplace.schemas.user import MeOut, UserOut
from marketplace.services.auth import Actor
from marketplace.services.errors import Outcome, conflict, not_found, validation_error
from marketplace.services.identity_admin import IdentityAdminClient, IdentityProviderError

log = logging.getLogger(__name__)

SELF_SERVICE_ROLES = (ROLE_BUYER, ROLE_SELLER)


async def roles_of(db: AsyncSession, user_id: str) -> list[str]:
    stmt = select(UserRole.role).where(UserRole.user_id == user_id).order_by(UserRole.role.asc())
    return list((await db.execute(stmt)).scalars().all())


async def _get_user(db: AsyncSession, user_id: str) -> User | None:
    return (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()


async def me_out(db: AsyncSession, user: User) -> MeOut:
    return MeOut(id=user.id, email=user.email, display_name=user.display_name, roles=await roles_of(db, user.id))


async def upsert_user_from_identity(db: AsyncSession, subject: str, email: str | None) -> User:
    clean_email = email.strip() if isinstance(email, str) and "@" in email else None

    user = (await db.execute(select(User).where(User.auth_subject == subject))).scalar_one_or_none()
    if user is None:
        user = User(auth_subject=subject, email=clean_email)
        db.add(user)
        log.info("user created for subject %s", subject)
    elif clean_email:
        user.email = clean_email
    await db.flush()
    return user


async def assign_initial_role_if_missing(db: AsyncSession, user_id: str, role: str) -> bool:
    if role not in SELF_SERVICE_ROLES:
        return False
    if await roles_of(db, user_id):
        return False
    db.add(UserRole(user_id=user_id, role=role))
    await db.flush()
    return True


async def sync_me(db: AsyncSession, subject: str, *, email: str | None, role: str | None) -> Outcome[MeOut]:
    if role is not None and role not in SELF_SERVICE_ROLES:
        return validation_error("Invalid role", field="role")
    user = await upsert_user_from_identity(db, subject, email)
    if role:
        await assign_initial_role_if_missing(db, user.id, role)
    return Outcome.success(await me_out(db, user))


async def _display_name_taken(db: AsyncSession, display_name: str, user_id: str) -> bool:
    stmt = select(User.id).where(User.display_name == display_name, User.id != user_id)
    return (await db.execute(stmt)).first() is not None


async def set_display_name(db: AsyncSession, user: User | None, display_name: str) -> Outcome[User]:
    if user is None:
        return not_found("User not found")
    if await _display_name_taken(db, display_name, user.id):
        return conflict("Display name already taken")
    user.display_name = display_name
    await db.flush()
    return Outcome.success(user)


async def set_own_display_name(db: AsyncSession, subject: str, display_name: str) -> Outcome[User]:
    user = (await db.execute(select(User).where(User.auth_subject == subject))).scalar_one_or_none()
    if user is None:
        return not_found("User not found (call /me/sync first)")
    return await set_display_name(db, user, display_name)


async def set_user_display_name(db: AsyncSession, user_id: str, display_name: str) -> Outcome[User]:
    return await set_display_name(db, await _get_user(db, user_id), display_name)


async def list_users(db: AsyncSession) -> list[UserOut]:
    users = (await db.execute(select(User).order_by(User.created_at.asc(), User.id.asc()))).scalars().all()
    roles = (await db.execute(select(UserRole.user_id, UserRole.role))).all()
    by_user: dict[str, list[str]] = {}
    for user_id, role in roles:
        by_user.setdefault(user_id, []).append(role)
    return [
        UserOut.model_validate(u).model_copy(update={"roles": sorted(by_user.get(u.id, []))})
        for u in users
    ]


async def set_user_active(
    db: AsyncSession, idp: IdentityAdminClient, user_id: str, is_active: bool
) -> Outcome[User]:
    user = await _get_user(db, user_id)
    if user is None:
        return not_found("User not found")

    user.is_active = is_active
    await db.flush()
    try:
        await idp.set_blocked(user.auth_subject, not is_active)
    except IdentityProviderError as e:
        return Outcome.failure(e.to_service_error())
    log.info("user %s %s", user.id, "activated" if is_active else "deactivated")
    return Outcome.success(user)


async def delete_user(db: AsyncSession, idp: IdentityAdminClient, user_id: str) -> Outcome[str]:
    user = await _get_user(db, user_id)
    if user is None:
        return not_found("User not found")

    subject = user.auth_subject
    await db.execute(delete(UserRole).where(UserRole.user_id == user.id))
    await db.delete(user)
    await db.flush()
    try:
        await idp.delete_user(subject)
    except IdentityProviderError as e:
        return Outcome.failure(e.to_service_error())
    log.info("user %s deleted", user_id)
    return Outcome.success(user_id)


async def set_user_role(db: AsyncSession, admin: Actor, user_id: str, role: str) -> Outcome[str]:
    if admin.user_id == user_id:
        return validation_error("Cannot change your own role")
    if role not in SELF_SERVICE_ROLES:
        return validation_error("Invalid role", field="role")
    if await _get_user(db, user_id) is None:
        return not_found("User not found")

    # replaces BUYER/SELLER, an ADMIN assignment is kept
    await db.execute(
        delete(UserRole).where(UserRole.user_id == user_id, UserRole.role.in_(SELF_SERVICE_ROLES))
    )
    db.add(UserRole(user_id=user_id, role=role))
    await db.flush()
    return Outcome.success(role)


async def change_user_email(
    db: AsyncSession, idp: IdentityAdminClient, user_id: str, email: str
) -> Outcome[User]:
    user = await _get_user(db, user_id)
    if user is None:
        return not_found("User not found")
    try:
        await idp.assert_database_user(user.auth_subject)
        # provider first so a failure leaves local state untouched
        await idp.change_email(user.auth_subject, email)
    except IdentityProviderError as e:
        return Outcome.failure(e.to_service_error())

    user.email = email
    await db.flush()
    return Outcome.success(user)


async def change_user_password(
    db: AsyncSession, idp: IdentityAdminClient, user_id: str, password: str
) -> Outcome[str]:
    user = await _get_user(db, user_id)
    if user is None:
        return not_found("User not found")
    try:
        await idp.assert_database_user(user.auth_subject)
        await idp.change_password(user.auth_subject, password)
    except IdentityProviderError as e:
        return Outcome.failure(e.to_service_error())
    return Outcome.success(user.id)
