from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from sparkshare.db.base_class import Base, utcnow


class ShareStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class SharedItem(Base):
    """One envelope in a recipient's share mailbox."""

    __tablename__ = "shared_items"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    original_id: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    spark_id: Mapped[str] = mapped_column(sa.String(64), nullable=False, index=True)

    shared_by_user_id: Mapped[str] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=False, index=True)
    shared_by_user_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    shared_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=utcnow, nullable=False)

    shared_with_user_id: Mapped[str] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=False, index=True)

    # "pending" | "accepted" | "rejected"
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=ShareStatus.pending.value)

    # value copy of the sender's item at share time
    item_data: Mapped[dict[str, Any]] = mapped_column(
        sa.JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
    )

    __table_args__ = (
        sa.CheckConstraint("status IN ('pending','accepted','rejected')", name="ck_shared_items_status"),
        sa.Index("ix_shared_items_recipient_spark_status", "shared_with_user_id", "spark_id", "status"),
    )
