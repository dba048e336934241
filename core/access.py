"""
core/access.py — Access Control Gate
=====================================
The capability checks in front of route handlers.

    get_current_user   → identity verified (401 otherwise)
    check_role(...)    → role membership   (403 otherwise)
    is_admin           → admin or official member

Use in a route:

    @router.post("/")
    async def create(user: User = Depends(check_role(*EVENT_MANAGERS))):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Forbidden, Unauthorized
from core.roles import Role
from core.security import security
from db.models import User
from db.session import get_db

logger = logging.getLogger("jataayu.access")


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_token(db: AsyncSession, token: str) -> Optional[User]:
    """Decode a JWT and load its user. Returns None if anything is off."""
    try:
        payload = security.verify_token(token)
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return await db.get(User, user_id)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _bearer_token(authorization)
    if token is None:
        raise Unauthorized("Missing or malformed Authorization header")
    user = await resolve_token(db, token)
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return user


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    return await resolve_token(db, token)


def check_role(*allowed: Role):
    """Dependency factory — passes the user through if their role is allowed."""
    allowed_values = {r.value for r in allowed}

    async def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed_values:
            logger.warning(f"Role DENIED: user {user.id} ({user.role}) needs one of {sorted(allowed_values)}")
            raise Forbidden("Access denied")
        return user

    return _checker


is_admin = check_role(Role.ADMIN, Role.OFFICIAL_MEMBER)


def is_owner_or_admin(owner_id: str, user: User) -> bool:
    return owner_id == user.id or user.role == Role.ADMIN.value


def require_owner_or_admin(owner_id: str, user: User):
    """
    Raises 403 unless the user owns the resource or is an admin.

        require_owner_or_admin(event.created_by, user)
        # execution continues only if permitted
    """
    if not is_owner_or_admin(owner_id, user):
        raise Forbidden("Not authorized")
