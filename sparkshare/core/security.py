from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from jose import ExpiredSignatureError, JWTError, jwt

from sparkshare.core.config import settings


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    email: str
    display_name: str
    photo_url: str | None = None


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_identity_token(
    uid: str,
    email: str,
    display_name: str | None = None,
    photo_url: str | None = None,
    *,
    expires_minutes: int | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)

    payload: dict[str, object] = {
        "sub": uid,                      # identity provider uid
        "email": normalize_email(email),
        "name": display_name,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if photo_url:
        payload["picture"] = photo_url
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_identity_token(token: str) -> tuple[CurrentUser | None, str | None]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        return None, "expired"
    except JWTError:
        return None, "invalid"

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None, "invalid"

    email = payload.get("email")
    email = normalize_email(email) if isinstance(email, str) else ""
    if not email:
        return None, "invalid"

    name = payload.get("name")
    picture = payload.get("picture")
    return (
        CurrentUser(
            uid=subject.strip(),
            email=email,
            display_name=name.strip() if isinstance(name, str) and name.strip() else "Unknown",
            photo_url=picture if isinstance(picture, str) and picture else None,
        ),
        None,
    )
