from __future__ import annotations

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.security import CurrentUser, normalize_email
from sparkshare.db.base_class import as_utc, utcnow
from sparkshare.models.friend_invitation import FriendInvitation, InvitationStatus
from sparkshare.models.friendship import Friendship
from sparkshare.services.profiles import get_profile_by_email, get_profiles

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PENDING = InvitationStatus.pending.value
ACCEPTED = InvitationStatus.accepted.value
REJECTED = InvitationStatus.rejected.value


@dataclass
class Friend:
    """A friendship seen from one side: always describes the other party."""

    user_id: str
    email: str
    display_name: str
    friendship_id: uuid.UUID
    photo_url: str | None = None


def normalize_user_ids(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a < b else (b, a)


async def _find_friendship(db: AsyncSession, a: str, b: str) -> Friendship | None:
    user_id1, user_id2 = normalize_user_ids(a, b)
    q = select(Friendship).where(
        and_(Friendship.user_id1 == user_id1, Friendship.user_id2 == user_id2)
    )
    return (await db.execute(q)).scalars().first()


async def is_friend(db: AsyncSession, a: str, b: str) -> bool:
    if a == b:
        return False
    return await _find_friendship(db, a, b) is not None


async def is_friend_by_email(db: AsyncSession, user: CurrentUser, email: str) -> bool:
    profile = await get_profile_by_email(db, email)
    if profile is None:
        # nobody has signed in with that email yet, so no friendship can exist
        return False
    return await is_friend(db, user.uid, profile.id)


# ─────────────────────────────────────────────
# Invitations
# ─────────────────────────────────────────────

async def create_invitation(db: AsyncSession, user: CurrentUser, to_email: str) -> FriendInvitation:
    email = normalize_email(to_email)
    if not _EMAIL_RE.match(email):
        raise ValueError("invalid_email")

    if email == normalize_email(user.email):
        raise ValueError("cannot_invite_self")

    existing = (
        await db.execute(
            select(FriendInvitation.id).where(
                FriendInvitation.from_user_id == user.uid,
                FriendInvitation.to_email == email,
                FriendInvitation.status == PENDING,
            )
        )
    ).first()
    if existing is not None:
        raise ValueError("invitation_exists")

    if await is_friend_by_email(db, user, email):
        raise ValueError("already_friends")

    invitation = FriendInvitation(
        from_user_id=user.uid,
        from_user_email=user.email,
        from_user_name=user.display_name or "Unknown",
        to_email=email,
        status=PENDING,
    )
    db.add(invitation)
    try:
        await db.flush()  # partial unique index catches a concurrent duplicate
    except IntegrityError:
        await db.rollback()
        raise ValueError("invitation_exists")

    logger.info("Created invitation %s from %s to %s", invitation.id, user.uid, email)
    return invitation


async def _load_invitation_for_recipient(
    db: AsyncSession, user: CurrentUser, invitation_id: uuid.UUID
) -> FriendInvitation:
    invitation = (
        await db.execute(
            select(FriendInvitation)
            .where(FriendInvitation.id == invitation_id)
            .with_for_update()
        )
    ).scalar_one_or_none()

    if invitation is None:
        raise ValueError("not_found")

    if normalize_email(invitation.to_email) != normalize_email(user.email):
        raise PermissionError("This invitation is not for you")

    if invitation.status != PENDING:
        raise ValueError("already_responded")

    return invitation


async def _respond(db: AsyncSession, invitation: FriendInvitation, user: CurrentUser, status: str) -> None:
    # Conditional write: only one responder can move the invitation out of pending.
    result = await db.execute(
        sa.update(FriendInvitation)
        .where(FriendInvitation.id == invitation.id, FriendInvitation.status == PENDING)
        .values(status=status, to_user_id=user.uid, responded_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ValueError("already_responded")
    await db.refresh(invitation)


async def accept_invitation(db: AsyncSession, user: CurrentUser, invitation_id: uuid.UUID) -> Friendship:
    invitation = await _load_invitation_for_recipient(db, user, invitation_id)

    if invitation.from_user_id == user.uid:
        raise ValueError("cannot_invite_self")

    await _respond(db, invitation, user, ACCEPTED)

    user_id1, user_id2 = normalize_user_ids(invitation.from_user_id, user.uid)
    existing = await _find_friendship(db, user_id1, user_id2)
    if existing is not None:
        return existing

    profiles = await get_profiles(db, [user_id1, user_id2])
    snapshot = {
        invitation.from_user_id: (
            invitation.from_user_email,
            invitation.from_user_name,
        ),
        user.uid: (user.email, user.display_name),
    }
    for uid, profile in profiles.items():
        snapshot[uid] = (profile.email, profile.display_name or "Unknown")

    friendship = Friendship(
        user_id1=user_id1,
        user_id2=user_id2,
        user1_email=snapshot[user_id1][0],
        user2_email=snapshot[user_id2][0],
        user1_name=snapshot[user_id1][1],
        user2_name=snapshot[user_id2][1],
    )
    try:
        async with db.begin_nested():
            db.add(friendship)
    except IntegrityError:
        # A concurrent accept for the same pair inserted first; the unique
        # constraint keeps the relation at one row.
        logger.info("Friendship %s/%s already created concurrently", user_id1, user_id2)
        existing = await _find_friendship(db, user_id1, user_id2)
        if existing is None:
            raise
        return existing

    logger.info("Created friendship between %s and %s", user_id1, user_id2)
    return friendship


async def reject_invitation(db: AsyncSession, user: CurrentUser, invitation_id: uuid.UUID) -> FriendInvitation:
    invitation = await _load_invitation_for_recipient(db, user, invitation_id)
    await _respond(db, invitation, user, REJECTED)
    logger.info("Rejected invitation %s", invitation_id)
    return invitation


async def delete_invitation(db: AsyncSession, user: CurrentUser, invitation_id: uuid.UUID) -> None:
    invitation = await db.get(FriendInvitation, invitation_id)
    if invitation is None:
        raise ValueError("not_found")

    if invitation.from_user_id != user.uid:
        raise PermissionError("You can only delete invitations you sent")

    # accepted invitations are the historical record behind a friendship
    result = await db.execute(
        sa.delete(FriendInvitation)
        .where(FriendInvitation.id == invitation_id, FriendInvitation.status != ACCEPTED)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != 1:
        raise ValueError("cannot_delete_accepted")

    logger.info("Deleted invitation %s", invitation_id)


def _newest_first(invitations: list[FriendInvitation], *, prefer_responded: bool = False) -> list[FriendInvitation]:
    def key(inv: FriendInvitation):
        if prefer_responded and inv.responded_at is not None:
            return as_utc(inv.responded_at)
        return as_utc(inv.created_at)

    return sorted(invitations, key=key, reverse=True)


async def get_pending_invitations(db: AsyncSession, user: CurrentUser) -> list[FriendInvitation]:
    try:
        rows = (
            await db.execute(
                select(FriendInvitation).where(
                    FriendInvitation.to_email == normalize_email(user.email),
                    FriendInvitation.status == PENDING,
                )
            )
        ).scalars().all()
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading pending invitations for %s", user.uid)
        return []
    return _newest_first(list(rows))


async def get_sent_invitations(db: AsyncSession, user: CurrentUser) -> list[FriendInvitation]:
    try:
        rows = (
            await db.execute(select(FriendInvitation).where(FriendInvitation.from_user_id == user.uid))
        ).scalars().all()
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading sent invitations for %s", user.uid)
        return []
    return _newest_first(list(rows))


async def get_accepted_invitations(db: AsyncSession, user: CurrentUser) -> list[FriendInvitation]:
    try:
        sent = (
            await db.execute(
                select(FriendInvitation).where(
                    FriendInvitation.from_user_id == user.uid,
                    FriendInvitation.status == ACCEPTED,
                )
            )
        ).scalars().all()
        received = (
            await db.execute(
                select(FriendInvitation).where(
                    FriendInvitation.to_email == normalize_email(user.email),
                    FriendInvitation.status == ACCEPTED,
                )
            )
        ).scalars().all()
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading accepted invitations for %s", user.uid)
        return []

    seen: set[uuid.UUID] = set()
    invitations: list[FriendInvitation] = []
    for inv in [*sent, *received]:
        if inv.id in seen:
            continue
        seen.add(inv.id)
        invitations.append(inv)
    return _newest_first(invitations, prefer_responded=True)


# ─────────────────────────────────────────────
# Friendships
# ─────────────────────────────────────────────

async def get_friends(db: AsyncSession, user: CurrentUser) -> list[Friend]:
    try:
        as_first = (
            await db.execute(select(Friendship).where(Friendship.user_id1 == user.uid))
        ).scalars().all()
        as_second = (
            await db.execute(select(Friendship).where(Friendship.user_id2 == user.uid))
        ).scalars().all()
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading friends for %s", user.uid)
        return []

    friends: list[Friend] = []
    for f in as_first:
        friends.append(
            Friend(user_id=f.user_id2, email=f.user2_email, display_name=f.user2_name, friendship_id=f.id)
        )
    for f in as_second:
        friends.append(
            Friend(user_id=f.user_id1, email=f.user1_email, display_name=f.user1_name, friendship_id=f.id)
        )

    try:
        profiles = await get_profiles(db, [f.user_id for f in friends])
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading friend profiles for %s", user.uid)
        profiles = {}
    for friend in friends:
        profile = profiles.get(friend.user_id)
        if profile is not None:
            friend.photo_url = profile.photo_url

    friends.sort(key=lambda f: (f.display_name.casefold(), f.user_id))
    return friends


async def remove_friend(db: AsyncSession, user: CurrentUser, friend_id: str) -> None:
    if user.uid == friend_id:
        raise ValueError("cannot_unfriend_self")

    existing = await _find_friendship(db, user.uid, friend_id)
    if existing is None:
        raise ValueError("not_found")

    await db.delete(existing)
    await db.flush()
    logger.info("Removed friendship between %s and %s", user.uid, friend_id)

