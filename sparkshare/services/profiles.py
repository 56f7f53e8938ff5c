from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.security import CurrentUser, normalize_email
from sparkshare.db.base_class import utcnow
from sparkshare.models.user import User


async def sync_profile(db: AsyncSession, user: CurrentUser) -> User:
    """Mirror the identity provider's view of the caller into ``users``.

    Called on every authenticated request so that lookups by id or email
    resolve for anyone who has signed in at least once.
    """
    profile = await db.get(User, user.uid)
    if profile is None:
        profile = User(
            id=user.uid,
            email=user.email,
            display_name=user.display_name,
            photo_url=user.photo_url,
        )
        db.add(profile)
        try:
            await db.commit()
        except IntegrityError:
            # Another request for the same uid won the insert, or the email
            # still belongs to a stale profile.
            await db.rollback()
            profile = await db.get(User, user.uid)
            if profile is None:
                raise ValueError("email_in_use")
        return profile

    changed = False
    if profile.email != user.email:
        profile.email = user.email
        changed = True
    if profile.display_name != user.display_name:
        profile.display_name = user.display_name
        changed = True
    if user.photo_url and profile.photo_url != user.photo_url:
        profile.photo_url = user.photo_url
        changed = True

    if changed:
        profile.updated_at = utcnow()
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValueError("email_in_use")

    return profile


async def get_profile(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_profile_by_email(db: AsyncSession, email: str) -> User | None:
    q = select(User).where(User.email == normalize_email(email))
    return (await db.execute(q)).scalars().first()


async def get_profiles(db: AsyncSession, user_ids: Iterable[str]) -> dict[str, User]:
    ids = sorted(set(user_ids))
    if not ids:
        return {}
    rows = (await db.execute(select(User).where(User.id.in_(ids)))).scalars().all()
    return {row.id: row for row in rows}
