import pytest
from sqlalchemy import select

import modules.notifications as notifications_module
from core.errors import Forbidden, NotFound, ValidationError
from core.roles import Role
from db.models import EventRegistration, Notification
from modules.registrations import (
    get_registration,
    list_for_event,
    register_for_event,
    share_registration,
    update_status,
)


def registrant(**overrides):
    data = {
        "name": "Asha Patil",
        "email": "asha@example.org",
        "phone": "9876543210",
        "age": 29,
        "gender": "female",
        "address": "12 Main Road",
        "district": "Sangli",
        "taluka": "Miraj",
        "village": "Budhgaon",
    }
    data.update(overrides)
    return data


async def notifications_for(db, recipient_id):
    result = await db.execute(select(Notification).where(Notification.recipient_id == recipient_id))
    return result.scalars().all()


@pytest.fixture
async def owner(make_user):
    return await make_user(Role.BLOCK_OFFICER, name="Owner")


@pytest.fixture
async def event(make_event, owner):
    return await make_event(owner, title="Health Camp")


# ── register ──────────────────────────────────────────────────────────────────
async def test_register_for_missing_event(db, session_factory):
    with pytest.raises(NotFound):
        await register_for_event(db, session_factory, "no-such-event", registrant())


async def test_register_saves_pending_and_notifies_creator_once(db, session_factory, event, owner):
    registration = await register_for_event(db, session_factory, event.id, registrant())

    assert registration.status == "pending"
    assert registration.shared_with == []

    sent = await notifications_for(db, owner.id)
    assert len(sent) == 1
    assert "Asha Patil" in sent[0].message
    assert "Health Camp" in sent[0].message
    assert sent[0].link == f"/event-registrations/{event.id}"


async def test_registration_survives_notification_failure(db, session_factory, event, owner, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(notifications_module, "create_notification", broken)
    registration = await register_for_event(db, session_factory, event.id, registrant())

    async with session_factory() as fresh:
        stored = await fresh.get(EventRegistration, registration.id)
    assert stored is not None
    assert await notifications_for(db, owner.id) == []


async def test_http_register(client, db, event, owner):
    resp = await client.post("/api/event-registrations/", json={"event": event.id, **registrant()})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "pending"
    assert body["event"] == event.id
    assert len(await notifications_for(db, owner.id)) == 1


@pytest.mark.parametrize("bad, field", [
    ({"age": 0}, "age"),
    ({"age": -3}, "age"),
    ({"gender": "x"}, "gender"),
    ({"email": "not-an-email"}, "email"),
    ({"village": "   "}, "village"),
])
async def test_http_register_rejects_bad_fields(client, event, bad, field):
    resp = await client.post("/api/event-registrations/", json={"event": event.id, **registrant(**bad)})
    assert resp.status_code == 400
    fields = [e["field"] for e in resp.json()["detail"]["errors"]]
    assert field in fields


async def test_http_register_lists_every_violation(client, event):
    payload = {"event": event.id, **registrant(age=0, gender="x", phone="")}
    del payload["taluka"]
    resp = await client.post("/api/event-registrations/", json=payload)
    assert resp.status_code == 400
    fields = {e["field"] for e in resp.json()["detail"]["errors"]}
    assert {"age", "gender", "phone", "taluka"} <= fields


async def test_http_register_unknown_event(client):
    resp = await client.post("/api/event-registrations/", json={"event": "missing", **registrant()})
    assert resp.status_code == 404


# ── list ──────────────────────────────────────────────────────────────────────
async def test_list_for_event_newest_first(db, session_factory, event, owner):
    for name in ("First", "Second", "Third"):
        await register_for_event(db, session_factory, event.id, registrant(name=name))

    regs = await list_for_event(db, event.id, owner)
    assert [r.name for r in regs] == ["Third", "Second", "First"]


async def test_list_for_event_forbidden_for_strangers(db, event, make_user):
    stranger = await make_user()
    with pytest.raises(Forbidden):
        await list_for_event(db, event.id, stranger)


async def test_list_for_event_allowed_for_event_share(db, make_event, owner, make_user):
    colleague = await make_user(Role.OFFICIAL_MEMBER)
    shared = await make_event(owner, shared_with=[colleague.id])
    assert await list_for_event(db, shared.id, colleague) == []


async def test_list_for_missing_event(db, owner):
    with pytest.raises(NotFound):
        await list_for_event(db, "missing", owner)


async def test_http_list_for_event(client, db, session_factory, event, owner, make_user, headers):
    await register_for_event(db, session_factory, event.id, registrant())
    stranger = await make_user()

    resp = await client.get(f"/api/event-registrations/event/{event.id}", headers=headers(owner))
    assert resp.status_code == 200
    assert len(resp.json()) == 1

    resp = await client.get(f"/api/event-registrations/event/{event.id}", headers=headers(stranger))
    assert resp.status_code == 403

    resp = await client.get(f"/api/event-registrations/event/{event.id}")
    assert resp.status_code == 401


# ── share ─────────────────────────────────────────────────────────────────────
async def test_share_is_an_idempotent_union(db, session_factory, event, owner, make_user):
    u1, u2, u3 = [await make_user() for _ in range(3)]
    registration = await register_for_event(db, session_factory, event.id, registrant())

    await share_registration(db, session_factory, registration.id, owner, [u1.id, u2.id])
    registration = await share_registration(db, session_factory, registration.id, owner, [u2.id, u3.id])

    assert set(registration.shared_with) == {u1.id, u2.id, u3.id}
    assert len(registration.shared_with) == 3

    # every supplied id is notified on every call
    assert len(await notifications_for(db, u1.id)) == 1
    assert len(await notifications_for(db, u2.id)) == 2
    assert len(await notifications_for(db, u3.id)) == 1


async def test_share_by_non_owner_is_forbidden(db, session_factory, event, make_user):
    registration = await register_for_event(db, session_factory, event.id, registrant())
    stranger = await make_user(Role.ADMIN)
    with pytest.raises(Forbidden):
        await share_registration(db, session_factory, registration.id, stranger, [stranger.id])


async def test_share_missing_registration(db, session_factory, owner):
    with pytest.raises(NotFound):
        await share_registration(db, session_factory, "missing", owner, ["x"])


async def test_shared_user_can_read_registration(db, session_factory, event, owner, make_user):
    reader = await make_user()
    outsider = await make_user()
    registration = await register_for_event(db, session_factory, event.id, registrant())
    await share_registration(db, session_factory, registration.id, owner, [reader.id])

    assert (await get_registration(db, registration.id, reader)).id == registration.id
    assert (await get_registration(db, registration.id, owner)).id == registration.id
    with pytest.raises(Forbidden):
        await get_registration(db, registration.id, outsider)


async def test_http_share(client, db, session_factory, event, owner, make_user, headers):
    reader = await make_user()
    registration = await register_for_event(db, session_factory, event.id, registrant())

    resp = await client.post(
        f"/api/event-registrations/share/{registration.id}",
        json={"user_ids": [reader.id]},
        headers=headers(owner),
    )
    assert resp.status_code == 200
    assert resp.json()["shared_with"] == [reader.id]

    resp = await client.get(f"/api/event-registrations/{registration.id}", headers=headers(reader))
    assert resp.status_code == 200


# ── status ────────────────────────────────────────────────────────────────────
async def test_update_status_persists_and_notifies_shared_users(db, session_factory, event, owner, make_user):
    reader = await make_user()
    registration = await register_for_event(db, session_factory, event.id, registrant())
    await share_registration(db, session_factory, registration.id, owner, [reader.id])

    updated = await update_status(db, session_factory, registration.id, owner, "approved")
    assert updated.status == "approved"

    messages = [n.message for n in await notifications_for(db, reader.id)]
    assert any("from pending to approved" in m for m in messages)
    # nothing is addressed to the registration itself
    assert await notifications_for(db, registration.id) == []


async def test_update_status_rejects_unknown_status(db, session_factory, event, owner):
    registration = await register_for_event(db, session_factory, event.id, registrant())
    with pytest.raises(ValidationError):
        await update_status(db, session_factory, registration.id, owner, "maybe")


async def test_update_status_forbidden_for_non_owner(db, session_factory, event, make_user):
    registration = await register_for_event(db, session_factory, event.id, registrant())
    stranger = await make_user()
    with pytest.raises(Forbidden):
        await update_status(db, session_factory, registration.id, stranger, "approved")


async def test_http_update_status(client, db, session_factory, event, owner, headers):
    registration = await register_for_event(db, session_factory, event.id, registrant())

    resp = await client.put(
        f"/api/event-registrations/{registration.id}/status",
        json={"status": "rejected"},
        headers=headers(owner),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

    resp = await client.put(
        f"/api/event-registrations/{registration.id}/status",
        json={"status": "whatever"},
        headers=headers(owner),
    )
    assert resp.status_code == 400
