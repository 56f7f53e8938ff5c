from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.core.security import CurrentUser
from sparkshare.db.base_class import as_utc
from sparkshare.models.shared_item import SharedItem
from sparkshare.services.share_registry import AcceptPolicy
from sparkshare.services.shared_items import (
    accept_shared_item,
    get_accepted_shared_items,
    get_pending_shared_items,
)

logger = logging.getLogger(__name__)


async def load_shared_items(
    db: AsyncSession,
    user: CurrentUser,
    spark_id: str,
    *,
    accept_policy: AcceptPolicy = AcceptPolicy.auto_accept,
) -> list[SharedItem]:
    """What a spark runs on load: accept what policy allows, return accepted.

    Safe to run from several loads at once; acceptance is idempotent. An
    envelope that has not propagated yet is simply picked up next load.
    """
    if accept_policy is AcceptPolicy.auto_accept:
        pending_ids = [item.id for item in await get_pending_shared_items(db, user, spark_id)]
        for envelope_id in pending_ids:
            try:
                await accept_shared_item(db, user, envelope_id)
                await db.commit()
            except (ValueError, PermissionError, SQLAlchemyError):
                await db.rollback()
                logger.exception("Error auto-accepting shared item %s", envelope_id)

    return await get_accepted_shared_items(db, user, spark_id)


def _sort_value(value: object) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, datetime):
        return as_utc(value).timestamp() * 1000
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value)).timestamp() * 1000
        except ValueError:
            return 0.0
    return 0.0


def merge_shared_items(
    own_items: Iterable[Mapping[str, Any]],
    envelopes: Iterable[SharedItem],
    *,
    timestamp_key: str = "added_at",
) -> list[dict[str, Any]]:
    """Fold accepted envelopes into a spark's own collection, newest first.

    Own items sort by ``timestamp_key``; shared copies sort by when they were
    shared. The result is for local display only and must not be written
    back as the recipient's own data.
    """
    merged: list[dict[str, Any]] = [dict(item) for item in own_items]

    for envelope in envelopes:
        entry = copy.deepcopy(envelope.item_data) if isinstance(envelope.item_data, dict) else {}
        entry["id"] = entry.get("id") or envelope.original_id
        entry["shared_by_user_id"] = envelope.shared_by_user_id
        entry["shared_by_user_name"] = envelope.shared_by_user_name
        entry["shared_at"] = int(as_utc(envelope.shared_at).timestamp() * 1000)
        entry["is_shared"] = True
        merged.append(entry)

    def key(item: dict[str, Any]) -> float:
        if item.get("is_shared"):
            return _sort_value(item.get("shared_at"))
        return _sort_value(item.get(timestamp_key))

    merged.sort(key=key, reverse=True)
    return merged
