"""
api/routes_auth.py — Authentication API Endpoints
==================================================

Endpoints:
    POST /api/auth/register           → Public sign-up
    POST /api/auth/login              → Exchange email + password for a token
    GET  /api/auth/me                 → Current user
    PUT  /api/auth/me                 → Edit own profile
    POST /api/auth/create-official    → Admin creates an official member
    PUT  /api/auth/officials/{id}     → Admin edits an official member
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import check_role, get_current_user
from core.roles import NonEmptyStr, Role
from db.models import User
from db.session import get_db
from modules import users

router = APIRouter()


# ── Request schemas ───────────────────────────────────────────────────────────
class SignupRequest(BaseModel):
    name: NonEmptyStr
    email: EmailStr
    password: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    name: Optional[NonEmptyStr] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class OfficialCreate(BaseModel):
    name: NonEmptyStr
    email: EmailStr
    password: str
    official_role: NonEmptyStr


class OfficialUpdate(ProfileUpdate):
    official_role: Optional[NonEmptyStr] = None


# ── Endpoints ─────────────────────────────────────────────────────────────────
@router.post("/register", status_code=201)
async def register(body: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await users.create_user(db, body.name, body.email, body.password)
    return await users.authenticate(db, user.email, body.password)


@router.post("/login")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    return await users.authenticate(db, body.email, body.password)


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return users.user_to_dict(user)


@router.put("/me")
async def update_me(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await users.update_profile(db, user, body.name, body.email, body.password)
    return users.user_to_dict(user)


@router.post("/create-official", status_code=201)
async def create_official(
    body: OfficialCreate,
    admin: User = Depends(check_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    official = await users.create_official(db, body.name, body.email, body.password, body.official_role)
    return {"message": "Official member created successfully", "user": users.user_to_dict(official)}


@router.put("/officials/{user_id}")
async def update_official(
    user_id: str,
    body: OfficialUpdate,
    admin: User = Depends(check_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    official = await users.update_official(
        db, user_id, body.name, body.email, body.password, body.official_role,
    )
    return {"message": "Official member updated successfully", "user": users.user_to_dict(official)}
