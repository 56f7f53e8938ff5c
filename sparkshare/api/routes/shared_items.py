from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.api.deps import get_current_user, get_db, get_share_registry
from sparkshare.api.http_errors import permission_error, value_error
from sparkshare.core.security import CurrentUser
from sparkshare.schemas.shared_items import SharedItemResponse, ShareItemRequest
from sparkshare.services.share_registry import ShareableItemRegistry
from sparkshare.services.shared_inbox import load_shared_items
from sparkshare.services.shared_items import (
    accept_shared_item,
    get_accepted_shared_items,
    get_pending_shared_items,
    reject_shared_item,
)

router = APIRouter(prefix="/shared-items", tags=["shared-items"])


@router.post("", response_model=SharedItemResponse, status_code=201)
async def share_item_copy_route(
    payload: ShareItemRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    registry: ShareableItemRegistry = Depends(get_share_registry),
):
    try:
        envelope = await registry.share_item_copy(
            db,
            user,
            spark_id=payload.spark_id,
            item_id=payload.item_id,
            friend_id=payload.friend_id,
            data=payload.data,
        )
        await db.commit()
        return SharedItemResponse.model_validate(envelope)
    except ValueError as e:
        await db.rollback()
        raise value_error(e, default_detail="Could not share item") from e


@router.get("/{spark_id}/pending", response_model=list[SharedItemResponse])
async def pending_shared_items_route(
    spark_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    items = await get_pending_shared_items(db, user, spark_id)
    return [SharedItemResponse.model_validate(i) for i in items]


@router.get("/{spark_id}/accepted", response_model=list[SharedItemResponse])
async def accepted_shared_items_route(
    spark_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    items = await get_accepted_shared_items(db, user, spark_id)
    return [SharedItemResponse.model_validate(i) for i in items]


@router.get("/{spark_id}/inbox", response_model=list[SharedItemResponse])
async def shared_inbox_route(
    spark_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    registry: ShareableItemRegistry = Depends(get_share_registry),
):
    items = await load_shared_items(
        db,
        user,
        spark_id,
        accept_policy=registry.accept_policy_for(spark_id),
    )
    return [SharedItemResponse.model_validate(i) for i in items]


@router.post("/{envelope_id}/accept", response_model=SharedItemResponse)
async def accept_shared_item_route(
    envelope_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        envelope = await accept_shared_item(db, user, envelope_id)
        await db.commit()
        return SharedItemResponse.model_validate(envelope)
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            code_statuses={"not_found": 404},
            detail_overrides={"not_found": "Shared item not found"},
        ) from e


@router.post("/{envelope_id}/reject", response_model=SharedItemResponse)
async def reject_shared_item_route(
    envelope_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        envelope = await reject_shared_item(db, user, envelope_id)
        await db.commit()
        return SharedItemResponse.model_validate(envelope)
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(
            e,
            code_statuses={"not_found": 404},
            detail_overrides={"not_found": "Shared item not found"},
        ) from e
