from __future__ import annotations

from fastapi import APIRouter, Depends

from sparkshare.api.deps import get_current_user
from sparkshare.core.security import CurrentUser
from sparkshare.schemas.me import MeResponse

router = APIRouter(tags=["me"])


@router.get("/me", response_model=MeResponse)
async def me(user: CurrentUser = Depends(get_current_user)):
    return MeResponse(
        id=user.uid,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
    )
