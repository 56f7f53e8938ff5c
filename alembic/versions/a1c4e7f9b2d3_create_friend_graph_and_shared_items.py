"""create friend graph and shared items

Revision ID: a1c4e7f9b2d3
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a1c4e7f9b2d3"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column("photo_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "friend_invitations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("from_user_id", sa.String(length=128), nullable=False),
        sa.Column("from_user_email", sa.String(length=320), nullable=False),
        sa.Column("from_user_name", sa.String(length=120), nullable=False),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("to_user_id", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('pending','accepted','rejected')", name="ck_friend_invitations_status"),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_friend_invitations_from_user_id", "friend_invitations", ["from_user_id"], unique=False)
    op.create_index("ix_friend_invitations_to_email", "friend_invitations", ["to_email"], unique=False)
    op.create_index(
        "ix_friend_invitations_to_email_status",
        "friend_invitations",
        ["to_email", "status"],
        unique=False,
    )
    op.create_index(
        "uq_friend_invitations_pending_pair",
        "friend_invitations",
        ["from_user_id", "to_email"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "friendships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id1", sa.String(length=128), nullable=False),
        sa.Column("user_id2", sa.String(length=128), nullable=False),
        sa.Column("user1_email", sa.String(length=320), nullable=False),
        sa.Column("user2_email", sa.String(length=320), nullable=False),
        sa.Column("user1_name", sa.String(length=120), nullable=False),
        sa.Column("user2_name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("user_id1 <> user_id2", name="ck_friendships_not_self"),
        sa.ForeignKeyConstraint(["user_id1"], ["users.id"]),
        sa.ForeignKeyConstraint(["user_id2"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id1", "user_id2", name="uq_friendships_pair"),
    )
    op.create_index("ix_friendships_user_id1", "friendships", ["user_id1"], unique=False)
    op.create_index("ix_friendships_user_id2", "friendships", ["user_id2"], unique=False)

    op.create_table(
        "shared_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("original_id", sa.String(length=255), nullable=False),
        sa.Column("spark_id", sa.String(length=64), nullable=False),
        sa.Column("shared_by_user_id", sa.String(length=128), nullable=False),
        sa.Column("shared_by_user_name", sa.String(length=120), nullable=False),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("shared_with_user_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column(
            "item_data",
            sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql"),
            nullable=False,
        ),
        sa.CheckConstraint("status IN ('pending','accepted','rejected')", name="ck_shared_items_status"),
        sa.ForeignKeyConstraint(["shared_by_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["shared_with_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shared_items_spark_id", "shared_items", ["spark_id"], unique=False)
    op.create_index("ix_shared_items_shared_by_user_id", "shared_items", ["shared_by_user_id"], unique=False)
    op.create_index("ix_shared_items_shared_with_user_id", "shared_items", ["shared_with_user_id"], unique=False)
    op.create_index(
        "ix_shared_items_recipient_spark_status",
        "shared_items",
        ["shared_with_user_id", "spark_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_shared_items_recipient_spark_status", table_name="shared_items")
    op.drop_index("ix_shared_items_shared_with_user_id", table_name="shared_items")
    op.drop_index("ix_shared_items_shared_by_user_id", table_name="shared_items")
    op.drop_index("ix_shared_items_spark_id", table_name="shared_items")
    op.drop_table("shared_items")

    op.drop_index("ix_friendships_user_id2", table_name="friendships")
    op.drop_index("ix_friendships_user_id1", table_name="friendships")
    op.drop_table("friendships")

    op.drop_index("uq_friend_invitations_pending_pair", table_name="friend_invitations")
    op.drop_index("ix_friend_invitations_to_email_status", table_name="friend_invitations")
    op.drop_index("ix_friend_invitations_to_email", table_name="friend_invitations")
    op.drop_index("ix_friend_invitations_from_user_id", table_name="friend_invitations")
    op.drop_table("friend_invitations")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
