from __future__ import annotations

import asyncio
import json
import logging
import uuid
from collections.abc import Mapping
from typing import Any

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.config import settings
from sparkshare.core.security import CurrentUser
from sparkshare.models.shared_item import SharedItem, ShareStatus
from sparkshare.models.user import User
from sparkshare.services.friends import is_friend

logger = logging.getLogger(__name__)

PENDING = ShareStatus.pending.value
ACCEPTED = ShareStatus.accepted.value
REJECTED = ShareStatus.rejected.value


def _copy_item_data(data: Mapping[str, Any]) -> dict[str, Any]:
    # A JSON round trip is both the deep value copy and the storability check.
    try:
        copied = json.loads(json.dumps(dict(data), allow_nan=False))
    except (TypeError, ValueError):
        raise ValueError("invalid_item_data")
    return copied


async def share_item_copy(
    db: AsyncSession,
    sender: CurrentUser,
    *,
    spark_id: str,
    item_id: str,
    friend_id: str,
    data: Mapping[str, Any],
    require_friendship: bool | None = None,
) -> SharedItem:
    if not spark_id or not item_id or not friend_id:
        raise ValueError("invalid_share")

    if friend_id == sender.uid:
        raise ValueError("cannot_share_with_self")

    if not isinstance(data, Mapping):
        raise ValueError("invalid_item_data")
    item_data = _copy_item_data(data)

    recipient = await db.get(User, friend_id)
    if recipient is None:
        raise ValueError("unknown_user")

    if require_friendship is None:
        require_friendship = settings.share_require_friendship
    if require_friendship and not await is_friend(db, sender.uid, friend_id):
        raise ValueError("not_a_friend")

    envelope = SharedItem(
        original_id=item_id,
        spark_id=spark_id,
        shared_by_user_id=sender.uid,
        shared_by_user_name=sender.display_name or "Unknown",
        shared_with_user_id=friend_id,
        status=PENDING,
        item_data=item_data,
    )
    db.add(envelope)
    await db.flush()

    logger.info("Shared %s item %s from %s to %s as %s", spark_id, item_id, sender.uid, friend_id, envelope.id)
    return envelope


async def _list_for_recipient(db: AsyncSession, user: CurrentUser, spark_id: str, status: str) -> list[SharedItem]:
    try:
        rows = (
            await db.execute(
                select(SharedItem)
                .where(
                    SharedItem.shared_with_user_id == user.uid,
                    SharedItem.spark_id == spark_id,
                    SharedItem.status == status,
                )
                .order_by(SharedItem.shared_at.desc())
            )
        ).scalars().all()
    except (SQLAlchemyError, asyncio.TimeoutError):
        await db.rollback()
        logger.exception("Error loading %s shared items for %s/%s", status, user.uid, spark_id)
        return []
    return list(rows)


async def get_pending_shared_items(db: AsyncSession, user: CurrentUser, spark_id: str) -> list[SharedItem]:
    return await _list_for_recipient(db, user, spark_id, PENDING)


async def get_accepted_shared_items(db: AsyncSession, user: CurrentUser, spark_id: str) -> list[SharedItem]:
    return await _list_for_recipient(db, user, spark_id, ACCEPTED)


async def _load_for_recipient(db: AsyncSession, user: CurrentUser, envelope_id: uuid.UUID) -> SharedItem:
    envelope = await db.get(SharedItem, envelope_id)
    if envelope is None:
        raise ValueError("not_found")
    if envelope.shared_with_user_id != user.uid:
        raise PermissionError("This shared item is not for you")
    return envelope


async def _resolve(db: AsyncSession, user: CurrentUser, envelope_id: uuid.UUID, status: str) -> SharedItem:
    """Move an envelope out of pending; repeating the same resolution is a no-op."""
    envelope = await _load_for_recipient(db, user, envelope_id)

    if envelope.status == status:
        return envelope
    if envelope.status != PENDING:
        raise ValueError("already_resolved")

    result = await db.execute(
        sa.update(SharedItem)
        .where(SharedItem.id == envelope_id, SharedItem.status == PENDING)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(envelope)

    if result.rowcount != 1 and envelope.status != status:
        # someone resolved it the other way in between
        raise ValueError("already_resolved")

    if result.rowcount == 1:
        logger.info("Marked shared item %s as %s", envelope_id, status)
    return envelope


async def accept_shared_item(db: AsyncSession, user: CurrentUser, envelope_id: uuid.UUID) -> SharedItem:
    return await _resolve(db, user, envelope_id, ACCEPTED)


async def reject_shared_item(db: AsyncSession, user: CurrentUser, envelope_id: uuid.UUID) -> SharedItem:
    return await _resolve(db, user, envelope_id, REJECTED)
