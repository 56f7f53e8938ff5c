from __future__ import annotations

from pydantic import BaseModel


class MeResponse(BaseModel):
    id: str
    email: str
    display_name: str
    photo_url: str | None = None
