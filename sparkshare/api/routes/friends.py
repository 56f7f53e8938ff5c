from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.api.deps import get_current_user, get_db
from sparkshare.api.http_errors import permission_error, value_error
from sparkshare.core.security import CurrentUser
from sparkshare.schemas.friends import (
    FriendCheckResponse,
    FriendListItem,
    InvitationActionResponse,
    InvitationCreateRequest,
    InvitationCreateResponse,
    InvitationResponse,
    UnfriendResponse,
)
from sparkshare.services.friends import (
    accept_invitation,
    create_invitation,
    delete_invitation,
    get_accepted_invitations,
    get_friends,
    get_pending_invitations,
    get_sent_invitations,
    is_friend_by_email,
    reject_invitation,
    remove_friend,
)

router = APIRouter(prefix="/friends", tags=["friends"])


@router.post("/invitations", response_model=InvitationCreateResponse, status_code=201)
async def create_invitation_route(
    payload: InvitationCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        invitation = await create_invitation(db, user, payload.email)
        await db.commit()
        return InvitationCreateResponse(id=invitation.id)
    except ValueError as e:
        await db.rollback()
        raise value_error(e, default_detail="Could not create invitation") from e


@router.get("/invitations/pending", response_model=list[InvitationResponse])
async def pending_invitations_route(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    invitations = await get_pending_invitations(db, user)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.get("/invitations/sent", response_model=list[InvitationResponse])
async def sent_invitations_route(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    invitations = await get_sent_invitations(db, user)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.get("/invitations/accepted", response_model=list[InvitationResponse])
async def accepted_invitations_route(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    invitations = await get_accepted_invitations(db, user)
    return [InvitationResponse.model_validate(i) for i in invitations]


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationActionResponse)
async def accept_invitation_route(
    invitation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        await accept_invitation(db, user, invitation_id)
        await db.commit()
        return InvitationActionResponse(ok=True, status="accepted")
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            detail_overrides={"not_found": "Invitation not found"},
            code_statuses={"not_found": 404},
            default_detail="Could not accept invitation",
        ) from e


@router.post("/invitations/{invitation_id}/reject", response_model=InvitationActionResponse)
async def reject_invitation_route(
    invitation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        await reject_invitation(db, user, invitation_id)
        await db.commit()
        return InvitationActionResponse(ok=True, status="rejected")
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            detail_overrides={"not_found": "Invitation not found"},
            code_statuses={"not_found": 404},
            default_detail="Could not reject invitation",
        ) from e


@router.delete("/invitations/{invitation_id}", response_model=InvitationActionResponse)
async def delete_invitation_route(
    invitation_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        await delete_invitation(db, user, invitation_id)
        await db.commit()
        return InvitationActionResponse(ok=True, status="deleted")
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            detail_overrides={"not_found": "Invitation not found"},
            code_statuses={"not_found": 404},
            default_detail="Could not delete invitation",
        ) from e


@router.get("", response_model=list[FriendListItem])
async def get_friends_route(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    friends = await get_friends(db, user)
    return [
        FriendListItem(
            user_id=f.user_id,
            email=f.email,
            display_name=f.display_name,
            friendship_id=f.friendship_id,
            photo_url=f.photo_url,
        )
        for f in friends
    ]


@router.get("/check", response_model=FriendCheckResponse)
async def check_friend_route(
    email: str = Query(min_length=1, max_length=320),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return FriendCheckResponse(email=email, is_friend=await is_friend_by_email(db, user, email))


@router.delete("/{friend_id}", response_model=UnfriendResponse)
async def remove_friend_route(
    friend_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        await remove_friend(db, user, friend_id)
        await db.commit()
        return UnfriendResponse(ok=True, removed=True)
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            code_statuses={"not_found": 404},
            detail_overrides={"not_found": "Friendship not found"},
            default_detail="Could not unfriend user",
        ) from e
