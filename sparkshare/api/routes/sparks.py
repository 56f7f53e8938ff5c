from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sparkshare.api.deps import get_current_user, get_db, get_share_registry
from sparkshare.api.http_errors import permission_error, value_error
from sparkshare.core.security import CurrentUser
from sparkshare.schemas.sparks import (
    ShareableItemResponse,
    ShareToFriendRequest,
    ShareToFriendResponse,
    SparkRegistrationItem,
)
from sparkshare.services.share_registry import AcceptPolicy, ShareableItemRegistry, SharingModel

router = APIRouter(prefix="/sparks", tags=["sparks"])


@router.get("", response_model=list[SparkRegistrationItem])
async def list_sparks_route(
    user: CurrentUser = Depends(get_current_user),
    registry: ShareableItemRegistry = Depends(get_share_registry),
):
    return [
        SparkRegistrationItem(
            spark_id=s.spark_id,
            sharing_model=SharingModel(s.sharing_model).value,
            accept_policy=AcceptPolicy(s.accept_policy).value,
        )
        for s in registry.sparks()
    ]


@router.get("/{spark_id}/items", response_model=list[ShareableItemResponse])
async def list_shareable_items_route(
    spark_id: str,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    registry: ShareableItemRegistry = Depends(get_share_registry),
):
    try:
        items = await registry.list_shareable_items(db, user, spark_id)
    except ValueError as e:
        raise value_error(e) from e
    return [
        ShareableItemResponse(
            id=i.id,
            title=i.title,
            spark_id=i.spark_id,
            description=i.description,
            preview=i.preview,
            data=i.data,
        )
        for i in items
    ]


@router.post("/{spark_id}/items/{item_id}/share", response_model=ShareToFriendResponse, status_code=201)
async def share_item_route(
    spark_id: str,
    item_id: str,
    payload: ShareToFriendRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    registry: ShareableItemRegistry = Depends(get_share_registry),
):
    try:
        await registry.share_item(db, user, spark_id=spark_id, item_id=item_id, friend_id=payload.friend_id)
        await db.commit()
        return ShareToFriendResponse(ok=True)
    except PermissionError as e:
        await db.rollback()
        raise permission_error(e) from e
    except ValueError as e:
        await db.rollback()
        raise value_error(e, default_detail="Could not share item") from e
