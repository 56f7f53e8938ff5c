from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SparkRegistrationItem(BaseModel):
    spark_id: str
    sharing_model: str
    accept_policy: str


class ShareableItemResponse(BaseModel):
    id: str
    title: str
    spark_id: str
    description: str | None = None
    preview: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class ShareToFriendRequest(BaseModel):
    friend_id: str = Field(min_length=1, max_length=128)


class ShareToFriendResponse(BaseModel):
    ok: bool
