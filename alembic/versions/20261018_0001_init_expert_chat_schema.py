"""init expert chat schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    user_role = sa.Enum("questioner", "expert", name="user_role")
    conversation_status = sa.Enum("waiting", "active", "resolved", name="conversation_status")
    sender_role = sa.Enum("initiator", "expert", name="sender_role")
    assignment_status = sa.Enum("active", "unassigned", "resolved", name="assignment_status")

    bind = op.get_bind()
    user_role.create(bind, checkfirst=True)
    conversation_status.create(bind, checkfirst=True)
    sender_role.create(bind, checkfirst=True)
    assignment_status.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("questioner", "expert", name="user_role", create_type=False),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "last_active_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "expert_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column(
            "knowledge_base_links",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_expert_profiles_user_id"),
    )

    op.create_table(
        "conversations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "waiting",
                "active",
                "resolved",
                name="conversation_status",
                create_type=False,
            ),
            nullable=False,
            server_default=sa.text("'waiting'"),
        ),
        sa.Column("questioner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("questioner_username", sa.String(length=80), nullable=False),
        sa.Column("assigned_expert_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_expert_username", sa.String(length=80), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unread_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["questioner_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["assigned_expert_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversations_status", "conversations", ["status"], unique=False)
    op.create_index(
        "ix_conversations_questioner_id", "conversations", ["questioner_id"], unique=False
    )
    op.create_index(
        "ix_conversations_assigned_expert_id",
        "conversations",
        ["assigned_expert_id"],
        unique=False,
    )

    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sender_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "sender_role",
            sa.Enum("initiator", "expert", name="sender_role", create_type=False),
            nullable=False,
        ),
        sa.Column("sender_username", sa.String(length=80), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"], unique=False)

    op.create_table(
        "expert_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("expert_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("unassigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "active",
                "unassigned",
                "resolved",
                name="assignment_status",
                create_type=False,
            ),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"]),
        sa.ForeignKeyConstraint(["expert_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_expert_assignments_conversation_id",
        "expert_assignments",
        ["conversation_id"],
        unique=False,
    )
    op.create_index(
        "ix_expert_assignments_expert_id", "expert_assignments", ["expert_id"], unique=False
    )
    # At most one open ledger entry per conversation.
    op.create_index(
        "uq_expert_assignments_one_active",
        "expert_assignments",
        ["conversation_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index("uq_expert_assignments_one_active", table_name="expert_assignments")
    op.drop_index("ix_expert_assignments_expert_id", table_name="expert_assignments")
    op.drop_index("ix_expert_assignments_conversation_id", table_name="expert_assignments")
    op.drop_table("expert_assignments")

    op.drop_index("ix_messages_conversation_id", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_conversations_assigned_expert_id", table_name="conversations")
    op.drop_index("ix_conversations_questioner_id", table_name="conversations")
    op.drop_index("ix_conversations_status", table_name="conversations")
    op.drop_table("conversations")

    op.drop_table("expert_profiles")
    op.drop_table("users")

    bind = op.get_bind()
    sa.Enum(name="assignment_status").drop(bind, checkfirst=True)
    sa.Enum(name="sender_role").drop(bind, checkfirst=True)
    sa.Enum(name="conversation_status").drop(bind, checkfirst=True)
    sa.Enum(name="user_role").drop(bind, checkfirst=True)
