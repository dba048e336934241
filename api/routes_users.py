"""
api/routes_users.py — User Administration API Endpoints (admin only)

Endpoints:
    GET    /api/users                  → All users, newest first
    GET    /api/users/block-officers   → Block officers
    GET    /api/users/officials        → Official members
    PUT    /api/users/{id}/role        → Assign a role
    DELETE /api/users/{id}             → Delete a user
    DELETE /api/users/officials/{id}   → Delete an official member
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import check_role
from core.roles import Role, parse_assignment
from db.models import User
from db.session import get_db
from modules import users

router = APIRouter()

admin_only = check_role(Role.ADMIN)


class RoleChangeRequest(BaseModel):
    role: str
    district: Optional[str] = None          # block_officer only
    official_role: Optional[str] = None     # Official_member only


@router.get("/")
async def list_all(admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    return [users.user_to_dict(u) for u in await users.list_users(db)]


@router.get("/block-officers")
async def list_block_officers(admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    return [users.user_to_dict(u) for u in await users.list_users(db, Role.BLOCK_OFFICER)]


@router.get("/officials")
async def list_officials(admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    return [users.user_to_dict(u) for u in await users.list_users(db, Role.OFFICIAL_MEMBER)]


@router.put("/{user_id}/role")
async def assign_role(
    user_id: str,
    body: RoleChangeRequest,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    assignment = parse_assignment(body.model_dump(exclude_none=True))
    user = await users.change_role(db, user_id, assignment)
    return users.user_to_dict(user)


@router.delete("/officials/{user_id}")
async def delete_official(user_id: str, admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    await users.delete_user(db, user_id, admin, role=Role.OFFICIAL_MEMBER)
    return {"message": "Official deleted successfully"}


@router.delete("/{user_id}")
async def delete_user(user_id: str, admin: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    await users.delete_user(db, user_id, admin)
    return {"message": "User deleted"}
