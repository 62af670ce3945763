from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.errors import ApiError
from marketplace.core.db import get_db
from marketplace.core.security import InvalidToken, TokenVerifier, get_token_verifier
from marketplace.models.user import ROLE_ADMIN, ROLE_SELLER, User, UserRole
from marketplace.services.errors import ErrorKind

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    user_id: str
    subject: str
    roles: frozenset[str]
    email: str | None
    display_name: str | None

    def has_role(self, role: str) -> bool:
        return role in self.roles


async def get_subject(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    if credentials is None or not credentials.credentials:
        raise ApiError.of(ErrorKind.UNAUTHORIZED, "Missing bearer token")
    try:
        claims = await verifier.verify(credentials.credentials)
    except InvalidToken as e:
        raise ApiError.of(ErrorKind.UNAUTHORIZED, f"Invalid token: {e}")
    return claims["sub"]


async def load_actor(db: AsyncSession, subject: str) -> Actor | None:
    user = (await db.execute(select(User).where(User.auth_subject == subject))).scalar_one_or_none()
    if user is None or not user.is_active:
        return None
    roles = (await db.execute(select(UserRole.role).where(UserRole.user_id == user.id))).scalars().all()
    return Actor(
        user_id=user.id,
        subject=subject,
        roles=frozenset(roles),
        email=user.email,
        display_name=user.display_name,
    )


async def get_actor(
    subject: str = Depends(get_subject),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    # looked up on every request, never cached
    actor = await load_actor(db, subject)
    if actor is None:
        raise ApiError.of(ErrorKind.FORBIDDEN, "Unknown or inactive user")
    return actor


def require_role(role: str):
    async def _require(actor: Actor = Depends(get_actor)) -> Actor:
        if not actor.has_role(role):
            raise ApiError.of(ErrorKind.FORBIDDEN, f"{role} role required")
        return actor

    return _require


require_seller = require_role(ROLE_SELLER)
require_admin = require_role(ROLE_ADMIN)
