from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from sparkshare.models.friend_invitation import FriendInvitation
from sparkshare.models.friendship import Friendship
from sparkshare.services.friends import normalize_user_ids

pytestmark = pytest.mark.anyio


async def invite(client, sender, email):
    return await client.post("/friends/invitations", json={"email": email}, headers=sender["headers"])


async def make_friends(client, a, b):
    r = await invite(client, a, b["email"])
    assert r.status_code == 201, r.text
    invitation_id = r.json()["id"]

    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=b["headers"])
    assert r.status_code == 200, r.text
    return invitation_id


async def test_invitation_accept_flow_creates_one_friendship(client, user_factory, db_session):
    u1 = await user_factory(client, uid="u1", email="a@x.com", display_name="Ann")

    r = await invite(client, u1, "B@X.com ")
    assert r.status_code == 201
    invitation_id = r.json()["id"]

    # recipient signs in after the invitation was sent
    u2 = await user_factory(client, uid="u2", email="b@x.com", display_name="Bob")

    r = await client.get("/friends/invitations/pending", headers=u2["headers"])
    assert r.status_code == 200
    pending = r.json()
    assert [p["id"] for p in pending] == [invitation_id]
    assert pending[0]["from_user_id"] == "u1"
    assert pending[0]["from_user_name"] == "Ann"
    assert pending[0]["to_email"] == "b@x.com"

    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=u2["headers"])
    assert r.status_code == 200
    assert r.json() == {"ok": True, "status": "accepted"}

    r = await client.get("/friends", headers=u1["headers"])
    assert [(f["user_id"], f["email"], f["display_name"]) for f in r.json()] == [("u2", "b@x.com", "Bob")]

    r = await client.get("/friends", headers=u2["headers"])
    assert [(f["user_id"], f["email"], f["display_name"]) for f in r.json()] == [("u1", "a@x.com", "Ann")]

    rows = (await db_session.execute(select(Friendship))).scalars().all()
    assert len(rows) == 1
    assert (rows[0].user_id1, rows[0].user_id2) == ("u1", "u2")

    r = await client.get("/friends/invitations/pending", headers=u2["headers"])
    assert r.json() == []


async def test_create_invitation_rejections(client, user_factory):
    a = await user_factory(client, email="ann@example.com")
    b = await user_factory(client, email="bob@example.com")

    r = await invite(client, a, "ANN@example.com")
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot invite yourself"

    r = await invite(client, a, "not-an-email")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid email address"

    r = await invite(client, a, "carol@example.com")
    assert r.status_code == 201
    r = await invite(client, a, "Carol@Example.com")
    assert r.status_code == 409
    assert r.json()["detail"] == "You have already sent an invitation to this email"

    await make_friends(client, a, b)
    r = await invite(client, a, b["email"])
    assert r.status_code == 409
    assert r.json()["detail"] == "You are already friends with this user"


async def test_invitation_can_only_be_answered_once(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)

    invitation_id = await make_friends(client, a, b)

    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=b["headers"])
    assert r.status_code == 409
    r = await client.post(f"/friends/invitations/{invitation_id}/reject", headers=b["headers"])
    assert r.status_code == 409

    r = await client.get("/friends/invitations/accepted", headers=a["headers"])
    assert [i["status"] for i in r.json()] == ["accepted"]


async def test_reject_leaves_no_friendship(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)

    r = await invite(client, a, b["email"])
    invitation_id = r.json()["id"]

    r = await client.post(f"/friends/invitations/{invitation_id}/reject", headers=b["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"

    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=b["headers"])
    assert r.status_code == 409

    r = await client.get("/friends", headers=a["headers"])
    assert r.json() == []

    r = await client.get("/friends/invitations/sent", headers=a["headers"])
    sent = r.json()
    assert len(sent) == 1
    assert sent[0]["status"] == "rejected"
    assert sent[0]["to_user_id"] == b["uid"]
    assert sent[0]["responded_at"] is not None

    # a rejected invitation does not block a new one
    r = await invite(client, a, b["email"])
    assert r.status_code == 201


async def test_only_recipient_can_answer(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)
    c = await user_factory(client)

    r = await invite(client, a, b["email"])
    invitation_id = r.json()["id"]

    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=c["headers"])
    assert r.status_code == 403
    r = await client.post(f"/friends/invitations/{invitation_id}/accept", headers=a["headers"])
    assert r.status_code == 403

    r = await client.post(
        "/friends/invitations/00000000-0000-0000-0000-000000000000/accept", headers=b["headers"]
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Invitation not found"


async def test_delete_invitation_rules(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)
    c = await user_factory(client)

    r = await invite(client, a, c["email"])
    pending_id = r.json()["id"]

    r = await client.delete(f"/friends/invitations/{pending_id}", headers=c["headers"])
    assert r.status_code == 403

    r = await client.delete(f"/friends/invitations/{pending_id}", headers=a["headers"])
    assert r.status_code == 200
    assert r.json() == {"ok": True, "status": "deleted"}

    r = await client.get("/friends/invitations/pending", headers=c["headers"])
    assert r.json() == []

    r = await client.delete(f"/friends/invitations/{pending_id}", headers=a["headers"])
    assert r.status_code == 404

    accepted_id = await make_friends(client, a, b)
    r = await client.delete(f"/friends/invitations/{accepted_id}", headers=a["headers"])
    assert r.status_code == 409
    assert r.json()["detail"] == "Cannot delete accepted invitations"


async def test_remove_friend_restores_not_friends(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)
    await make_friends(client, a, b)

    r = await client.get("/friends/check", params={"email": b["email"]}, headers=a["headers"])
    assert r.json()["is_friend"] is True

    r = await client.delete(f"/friends/{a['uid']}", headers=b["headers"])
    assert r.status_code == 200
    assert r.json() == {"ok": True, "removed": True}

    for user in (a, b):
        r = await client.get("/friends", headers=user["headers"])
        assert r.json() == []

    r = await client.get("/friends/check", params={"email": b["email"]}, headers=a["headers"])
    assert r.json()["is_friend"] is False

    r = await client.delete(f"/friends/{a['uid']}", headers=b["headers"])
    assert r.status_code == 404

    r = await client.delete(f"/friends/{b['uid']}", headers=b["headers"])
    assert r.status_code == 400

    # invitations work again after unfriending
    await make_friends(client, b, a)


async def test_friend_list_sorted_by_name(client, user_factory):
    me = await user_factory(client, display_name="Me")
    zed = await user_factory(client, display_name="zed")
    amy = await user_factory(client, display_name="Amy")

    await make_friends(client, me, zed)
    await make_friends(client, amy, me)

    r = await client.get("/friends", headers=me["headers"])
    assert [f["display_name"] for f in r.json()] == ["Amy", "zed"]


async def test_check_unknown_email_is_not_friend(client, user_factory):
    a = await user_factory(client)
    r = await client.get("/friends/check", params={"email": "nobody@example.com"}, headers=a["headers"])
    assert r.status_code == 200
    assert r.json() == {"email": "nobody@example.com", "is_friend": False}


async def test_cross_invitations_yield_single_friendship(client, user_factory, db_session):
    a = await user_factory(client)
    b = await user_factory(client)

    r = await invite(client, a, b["email"])
    a_to_b = r.json()["id"]
    r = await invite(client, b, a["email"])
    b_to_a = r.json()["id"]

    r = await client.post(f"/friends/invitations/{a_to_b}/accept", headers=b["headers"])
    assert r.status_code == 200
    r = await client.post(f"/friends/invitations/{b_to_a}/accept", headers=a["headers"])
    assert r.status_code == 200

    count = (await db_session.execute(select(func.count()).select_from(Friendship))).scalar_one()
    assert count == 1

    statuses = (await db_session.execute(select(FriendInvitation.status))).scalars().all()
    assert sorted(statuses) == ["accepted", "accepted"]


async def test_friends_routes_require_auth(client, set_auth_cookie):
    set_auth_cookie(client, None)
    r = await client.get("/friends")
    assert r.status_code == 401
    assert r.json()["detail"] == "Not authenticated"

    r = await client.get("/friends", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


@pytest.mark.parametrize(
    "a,b",
    [("u1", "u2"), ("u2", "u1"), ("Zed", "amy"), ("same", "same")],
)
def test_normalize_user_ids_is_order_independent(a, b):
    assert normalize_user_ids(a, b) == normalize_user_ids(b, a)
    first, second = normalize_user_ids(a, b)
    assert first <= second
    assert {first, second} == {a, b}


def _is_utc(value: str) -> bool:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed.utcoffset() == timedelta(0)


async def test_invitation_timestamps_are_utc(client, user_factory):
    a = await user_factory(client)
    b = await user_factory(client)
    await make_friends(client, a, b)

    r = await client.get("/friends/invitations/accepted", headers=a["headers"])
    [invitation] = r.json()
    assert _is_utc(invitation["created_at"])
    assert _is_utc(invitation["responded_at"])

    r = await invite(client, a, "carol@example.com")
    r = await client.get("/friends/invitations/sent", headers=a["headers"])
    pending = [i for i in r.json() if i["status"] == "pending"]
    assert pending[0]["responded_at"] is None
    assert _is_utc(pending[0]["created_at"])
