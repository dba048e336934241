import pytest

from core.errors import Forbidden, NotFound, ValidationError
from core.roles import BlockOfficerRole, OfficialMemberRole, Role, parse_assignment
from core.security import security
from db.models import User
from modules import users


# ── security ──────────────────────────────────────────────────────────────────
def test_password_hash_round_trip():
    stored = security.hash_password("s3cret-pass")
    assert stored.startswith("pbkdf2_sha256$")
    assert security.verify_password("s3cret-pass", stored)
    assert not security.verify_password("wrong-pass", stored)
    assert not security.verify_password("s3cret-pass", "garbage")


def test_token_carries_subject():
    token = security.create_access_token("user-1", {"role": "admin"})
    payload = security.verify_token(token)
    assert payload["sub"] == "user-1"
    assert payload["role"] == "admin"


# ── signup / login ────────────────────────────────────────────────────────────
async def test_http_signup_login_and_me(client):
    resp = await client.post("/api/auth/register", json={
        "name": "Kiran Jadhav", "email": "Kiran@Example.org", "password": "secret123",
    })
    assert resp.status_code == 201
    assert resp.json()["user"]["role"] == "public"
    assert resp.json()["user"]["email"] == "kiran@example.org"

    resp = await client.post("/api/auth/login", json={"email": "kiran@example.org", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.json()["token"]

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Kiran Jadhav"


async def test_http_signup_duplicate_email(client, make_user):
    existing = await make_user(name="Sunita")
    resp = await client.post("/api/auth/register", json={
        "name": "Other", "email": existing.email.upper(), "password": "secret123",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["errors"][0]["msg"] == "User already exists"


async def test_http_signup_short_password(client):
    resp = await client.post("/api/auth/register", json={
        "name": "Short", "email": "short@example.org", "password": "123",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["errors"][0]["field"] == "password"


async def test_http_login_wrong_password(client, make_user):
    user = await make_user(name="Anil")
    resp = await client.post("/api/auth/login", json={"email": user.email, "password": "not-it"})
    assert resp.status_code == 400
    resp = await client.post("/api/auth/login", json={"email": "nobody@example.org", "password": "not-it"})
    assert resp.status_code == 400


@pytest.mark.parametrize("header", [
    None,
    {"Authorization": "Bearer not-a-jwt"},
    {"Authorization": "Token abc"},
])
async def test_http_me_requires_valid_token(client, header):
    resp = await client.get("/api/auth/me", headers=header)
    assert resp.status_code == 401


async def test_token_for_deleted_user_is_rejected(client, db, make_user, headers):
    user = await make_user()
    await db.delete(user)
    await db.commit()
    resp = await client.get("/api/auth/me", headers=headers(user))
    assert resp.status_code == 401


async def test_update_profile(db, make_user):
    user = await make_user(name="Before")
    await users.update_profile(db, user, name="After", password="another-pass")
    assert user.name == "After"
    assert security.verify_password("another-pass", user.password_hash)

    taken = await make_user(name="Taken")
    with pytest.raises(ValidationError):
        await users.update_profile(db, user, email=taken.email)


# ── roles ─────────────────────────────────────────────────────────────────────
def test_block_officer_needs_district():
    with pytest.raises(ValidationError) as exc:
        parse_assignment({"role": "block_officer"})
    assert exc.value.errors[0]["field"].endswith("district")


def test_unknown_role_is_rejected():
    with pytest.raises(ValidationError):
        parse_assignment({"role": "superuser"})


async def test_change_role_clears_other_fields(db, make_user):
    user = await make_user(Role.BLOCK_OFFICER)
    assert user.district == "Sangli"

    user = await users.change_role(db, user.id, OfficialMemberRole(role="Official_member", official_role="Treasurer"))
    assert user.role == "Official_member"
    assert user.official_role == "Treasurer"
    assert user.district is None

    user = await users.change_role(db, user.id, parse_assignment({"role": "public"}))
    assert user.official_role is None


async def test_change_role_missing_user(db):
    with pytest.raises(NotFound):
        await users.change_role(db, "missing", BlockOfficerRole(role="block_officer", district="Pune"))


async def test_http_assign_role(client, make_user, headers):
    admin = await make_user(Role.ADMIN)
    target = await make_user()

    resp = await client.put(f"/api/users/{target.id}/role", json={"role": "block_officer"}, headers=headers(admin))
    assert resp.status_code == 400

    resp = await client.put(
        f"/api/users/{target.id}/role",
        json={"role": "block_officer", "district": "Satara"},
        headers=headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["district"] == "Satara"

    resp = await client.get("/api/users/block-officers", headers=headers(admin))
    assert [u["id"] for u in resp.json()] == [target.id]


async def test_http_user_admin_requires_admin(client, make_user, headers):
    official = await make_user(Role.OFFICIAL_MEMBER)
    resp = await client.get("/api/users/", headers=headers(official))
    assert resp.status_code == 403


# ── delete ────────────────────────────────────────────────────────────────────
async def test_admin_cannot_delete_self(db, make_user):
    admin = await make_user(Role.ADMIN)
    with pytest.raises(Forbidden):
        await users.delete_user(db, admin.id, admin)


async def test_delete_user_keeps_their_events(db, make_user, make_event):
    admin = await make_user(Role.ADMIN)
    officer = await make_user(Role.BLOCK_OFFICER)
    event = await make_event(officer)

    await users.delete_user(db, officer.id, admin)
    assert await db.get(User, officer.id) is None
    assert (await db.get(type(event), event.id)).created_by == officer.id


async def test_delete_official_only_matches_officials(db, make_user):
    admin = await make_user(Role.ADMIN)
    citizen = await make_user()
    with pytest.raises(NotFound):
        await users.delete_user(db, citizen.id, admin, Role.OFFICIAL_MEMBER)


# ── officials ─────────────────────────────────────────────────────────────────
async def test_http_official_lifecycle(client, make_user, headers):
    admin = await make_user(Role.ADMIN)

    resp = await client.post("/api/auth/create-official", json={
        "name": "Vandana", "email": "vandana@example.org", "password": "secret123",
        "official_role": "Secretary",
    }, headers=headers(admin))
    assert resp.status_code == 201
    official_id = resp.json()["user"]["id"]
    assert resp.json()["user"]["role"] == "Official_member"

    resp = await client.put(f"/api/auth/officials/{official_id}", json={"official_role": "President"},
                            headers=headers(admin))
    assert resp.status_code == 200
    assert resp.json()["user"]["official_role"] == "President"

    resp = await client.get("/api/users/officials", headers=headers(admin))
    assert [u["id"] for u in resp.json()] == [official_id]

    resp = await client.delete(f"/api/users/officials/{official_id}", headers=headers(admin))
    assert resp.status_code == 200
    resp = await client.delete(f"/api/users/officials/{official_id}", headers=headers(admin))
    assert resp.status_code == 404


async def test_update_official_rejects_non_officials(db, make_user):
    citizen = await make_user()
    with pytest.raises(NotFound):
        await users.update_official(db, citizen.id, official_role="President")
