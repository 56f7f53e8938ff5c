from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sparkshare.db.base_class import as_utc


class InvitationCreateRequest(BaseModel):
    # shape is validated by the service so every caller gets the same error
    email: str = Field(min_length=1, max_length=320)


class InvitationCreateResponse(BaseModel):
    id: UUID


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    from_user_id: str
    from_user_email: str
    from_user_name: str
    to_email: str
    to_user_id: str | None = None
    status: str
    created_at: datetime
    responded_at: datetime | None = None

    # sqlite hands back naive values
    @field_validator("created_at", "responded_at")
    @classmethod
    def tag_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class InvitationActionResponse(BaseModel):
    ok: bool
    status: str


class FriendListItem(BaseModel):
    user_id: str
    email: str
    display_name: str
    friendship_id: UUID
    photo_url: str | None = None


class FriendCheckResponse(BaseModel):
    email: str
    is_friend: bool


class UnfriendResponse(BaseModel):
    ok: bool
    removed: bool
