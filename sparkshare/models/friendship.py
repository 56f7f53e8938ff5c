from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
import uuid
from datetime import datetime

from sparkshare.db.base_class import Base, utcnow


class Friendship(Base):
    __tablename__ = "friendships"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    # canonical order: user_id1 < user_id2
    user_id1: Mapped[str] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=False, index=True)
    user_id2: Mapped[str] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=False, index=True)

    # snapshot taken at acceptance time
    user1_email: Mapped[str] = mapped_column(sa.String(320), nullable=False)
    user2_email: Mapped[str] = mapped_column(sa.String(320), nullable=False)
    user1_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    user2_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        sa.UniqueConstraint("user_id1", "user_id2", name="uq_friendships_pair"),
        sa.CheckConstraint("user_id1 <> user_id2", name="ck_friendships_not_self"),
    )
