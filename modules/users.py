"""
modules/users.py — Accounts Module
===================================
Sign-up, login, profile edits, and the admin side of user management.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from core.errors import Forbidden, NotFound, ValidationError
from core.roles import Role, OfficialMemberRole, PublicRole, apply_role
from core.security import security
from db.models import User

logger = logging.getLogger("jataayu.modules.users")


def user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "district": u.district,
        "official_role": u.official_role,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    assignment=None,
) -> User:
    """Create an account. Defaults to the public role."""
    email = email.lower()
    _check_password(password)
    await _ensure_email_free(db, email)

    user = User(name=name.strip(), email=email, password_hash=security.hash_password(password))
    apply_role(user, assignment or PublicRole(role="public"))
    db.add(user)
    await db.commit()
    logger.info(f"User {user.id} created with role {user.role}")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> dict:
    """Check credentials and issue a token. Same error for unknown email and bad password."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    user = result.scalars().first()
    if not user or not security.verify_password(password, user.password_hash):
        logger.warning(f"Failed login for {email}")
        raise ValidationError.single(None, "Invalid credentials")

    token = security.create_access_token(user.id, {"role": user.role})
    return {"token": token, "user": user_to_dict(user)}


async def update_profile(
    db: AsyncSession,
    user: User,
    name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    if name:
        user.name = name.strip()
    if email and email.lower() != user.email:
        await _ensure_email_free(db, email.lower())
        user.email = email.lower()
    if password:
        _check_password(password)
        user.password_hash = security.hash_password(password)
    await db.commit()
    return user


# ── Admin ─────────────────────────────────────────────────────────────────────
async def list_users(db: AsyncSession, role: Optional[Role] = None) -> list:
    query = select(User).order_by(User.created_at.desc())
    if role is not None:
        query = query.where(User.role == role.value)
    result = await db.execute(query)
    return result.scalars().all()


async def change_role(db: AsyncSession, user_id: str, assignment) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    old = user.role
    apply_role(user, assignment)
    await db.commit()
    logger.info(f"User {user.id} role {old} → {user.role}")
    return user


async def delete_user(db: AsyncSession, user_id: str, actor: User, role: Optional[Role] = None):
    """
    Delete an account. Nobody deletes themselves this way.
    With `role`, only accounts holding that role count as found.
    """
    if user_id == actor.id:
        raise Forbidden("You cannot delete your own account")
    user = await db.get(User, user_id)
    if not user or (role is not None and user.role != role.value):
        raise NotFound("User not found")
    await db.delete(user)
    await db.commit()
    logger.info(f"User {user_id} deleted by {actor.id}")


async def create_official(db: AsyncSession, name: str, email: str, password: str, official_role: str) -> User:
    return await create_user(
        db, name, email, password,
        OfficialMemberRole(role=Role.OFFICIAL_MEMBER.value, official_role=official_role),
    )


async def update_official(
    db: AsyncSession,
    user_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
    official_role: Optional[str] = None,
) -> User:
    user = await db.get(User, user_id)
    if not user or user.role != Role.OFFICIAL_MEMBER.value:
        raise NotFound("Official member not found")
    if official_role and official_role.strip():
        user.official_role = official_role.strip()
    return await update_profile(db, user, name=name, email=email, password=password)


# ── Helpers ───────────────────────────────────────────────────────────────────
def _check_password(password: str):
    if len(password or "") < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError.single(
            "password", f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )


async def _ensure_email_free(db: AsyncSession, email: str):
    result = await db.execute(select(User.id).where(User.email == email))
    if result.scalars().first():
        raise ValidationError.single("email", "User already exists")
