from __future__ import annotations

import enum
import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from sparkshare.db.base_class import Base, utcnow


class InvitationStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class FriendInvitation(Base):
    __tablename__ = "friend_invitations"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    from_user_id: Mapped[str] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=False, index=True)
    from_user_email: Mapped[str] = mapped_column(sa.String(320), nullable=False)
    from_user_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)

    # always stored lowercased
    to_email: Mapped[str] = mapped_column(sa.String(320), nullable=False, index=True)
    to_user_id: Mapped[str | None] = mapped_column(sa.String(128), sa.ForeignKey("users.id"), nullable=True)

    # "pending" | "accepted" | "rejected"
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, default=InvitationStatus.pending.value)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), default=utcnow, nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        sa.CheckConstraint(
            "status IN ('pending','accepted','rejected')",
            name="ck_friend_invitations_status",
        ),
        sa.Index("ix_friend_invitations_to_email_status", "to_email", "status"),
        # one open invitation per sender/recipient-email
        sa.Index(
            "uq_friend_invitations_pending_pair",
            "from_user_id",
            "to_email",
            unique=True,
            postgresql_where=sa.text("status = 'pending'"),
            sqlite_where=sa.text("status = 'pending'"),
        ),
    )
