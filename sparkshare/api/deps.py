from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.security import CurrentUser, decode_identity_token
from sparkshare.db.session import get_db_session
from sparkshare.services.profiles import sync_profile
from sparkshare.services.share_registry import ShareableItemRegistry

COOKIE_NAME = "access_token"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db_session():
        yield session


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    access_token: str | None = Cookie(default=None, alias=COOKIE_NAME),
    authorization: str | None = Header(default=None),
) -> CurrentUser:
    token = _bearer_token(authorization) or access_token
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user, error = decode_identity_token(token)
    if user is None:
        detail = "Token expired" if error == "expired" else "Invalid token"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    try:
        await sync_profile(db, user)
    except ValueError:
        # the email is still attached to another uid's profile
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already linked to another account")

    return user


def get_share_registry(request: Request) -> ShareableItemRegistry:
    return request.app.state.share_registry
