from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sparkshare.db.base_class import as_utc


class ShareItemRequest(BaseModel):
    spark_id: str = Field(min_length=1, max_length=64)
    item_id: str = Field(min_length=1, max_length=255)
    friend_id: str = Field(min_length=1, max_length=128)
    data: dict[str, Any] = Field(default_factory=dict)


class SharedItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    original_id: str
    spark_id: str
    shared_by_user_id: str
    shared_by_user_name: str
    shared_at: datetime
    shared_with_user_id: str
    status: str
    item_data: dict[str, Any]

    @field_validator("shared_at")
    @classmethod
    def tag_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
