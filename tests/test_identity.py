import pytest

from sparkshare.core.security import create_identity_token, decode_identity_token

pytestmark = pytest.mark.anyio


def test_token_round_trip_normalizes_email():
    token = create_identity_token("uid-1", " Ann@Example.COM ", "Ann", "https://img/ann.png")
    user, error = decode_identity_token(token)

    assert error is None
    assert user.uid == "uid-1"
    assert user.email == "ann@example.com"
    assert user.display_name == "Ann"
    assert user.photo_url == "https://img/ann.png"


def test_expired_and_malformed_tokens():
    expired = create_identity_token("uid-1", "ann@example.com", "Ann", expires_minutes=-5)
    assert decode_identity_token(expired) == (None, "expired")
    assert decode_identity_token("garbage") == (None, "invalid")

    no_email = create_identity_token("uid-1", "", "Ann")
    assert decode_identity_token(no_email) == (None, "invalid")


def test_missing_name_falls_back_to_unknown():
    user, _ = decode_identity_token(create_identity_token("uid-1", "ann@example.com"))
    assert user.display_name == "Unknown"


async def test_me_with_cookie(client, set_auth_cookie):
    set_auth_cookie(client, create_identity_token("uid-1", "ann@example.com", "Ann"))

    r = await client.get("/me")
    assert r.status_code == 200
    assert r.json() == {
        "id": "uid-1",
        "email": "ann@example.com",
        "display_name": "Ann",
        "photo_url": None,
    }


async def test_me_rejects_expired_token(client):
    token = create_identity_token("uid-1", "ann@example.com", "Ann", expires_minutes=-5)
    r = await client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token expired"


async def test_profile_follows_identity_provider(client, user_factory):
    await user_factory(client, uid="uid-1", email="ann@example.com", display_name="Ann")
    renamed = await user_factory(client, uid="uid-1", email="ann@example.com", display_name="Annie")

    r = await client.get("/me", headers=renamed["headers"])
    assert r.json()["display_name"] == "Annie"


async def test_email_claimed_by_another_uid_conflicts(client, user_factory):
    await user_factory(client, uid="uid-1", email="ann@example.com")

    token = create_identity_token("uid-2", "ann@example.com", "Imposter")
    r = await client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 409


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
