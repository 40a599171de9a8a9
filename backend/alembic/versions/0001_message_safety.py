"""message_safety

Revision ID: 0001_message_safety
Revises:
Create Date: 2026-10-19 00:00:00

Users, conversations and community posts plus the message safety tables:
flagged terms, messages, safety logs, moderation queue, messaging
restrictions, moderation actions, warnings and message reports.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_message_safety"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column(
            "role",
            sa.Enum("MEMBER", "MODERATOR", "ADMIN", name="userrole"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "conversation_type",
            sa.Enum("PRIVATE", "GROUP", name="conversationtype"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_monitored", sa.Boolean(), nullable=False),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversations_id", "conversations", ["id"])

    op.create_table(
        "conversation_participants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_participant"
        ),
    )
    op.create_index(
        "ix_conversation_participants_id", "conversation_participants", ["id"]
    )
    op.create_index(
        "ix_conversation_participants_conversation_id",
        "conversation_participants",
        ["conversation_id"],
    )
    op.create_index(
        "ix_conversation_participants_user_id",
        "conversation_participants",
        ["user_id"],
    )

    op.create_table(
        "community_posts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("post_type", sa.String(length=50), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_community_posts_id", "community_posts", ["id"])

    op.create_table(
        "flagged_terms",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("term", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("is_regex", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_flagged_terms_id", "flagged_terms", ["id"])
    op.create_index("ix_flagged_terms_term", "flagged_terms", ["term"], unique=True)

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("conversation_id", sa.Integer(), nullable=False),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(length=20), nullable=True),
        sa.Column("safety_score", sa.Integer(), nullable=False),
        sa.Column("flagged_terms", sa.JSON(), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False),
        sa.Column(
            "moderation_status",
            sa.Enum(
                "PENDING", "FLAGGED", "BLOCKED", "APPROVED", name="moderationstatus"
            ),
            nullable=False,
        ),
        sa.Column("parent_message_id", sa.Integer(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"]),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["parent_message_id"], ["messages.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_id", "messages", ["id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index(
        "ix_messages_conversation_created",
        "messages",
        ["conversation_id", "created_at"],
    )
    op.create_index(
        "ix_messages_moderation_status", "messages", ["moderation_status"]
    )

    op.create_table(
        "message_safety_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("violation_type", sa.String(length=50), nullable=False),
        sa.Column("severity_level", sa.Integer(), nullable=False),
        sa.Column("flagged_terms", sa.JSON(), nullable=False),
        sa.Column(
            "action_taken",
            sa.Enum("BLOCKED", "FLAGGED", name="safetyaction"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["message_id"], ["messages.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_safety_logs_id", "message_safety_logs", ["id"])
    op.create_index("ix_safety_logs_user", "message_safety_logs", ["user_id"])
    op.create_index("ix_safety_logs_created", "message_safety_logs", ["created_at"])

    op.create_table(
        "moderation_queue",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "item_type",
            sa.Enum("MESSAGE", "POST", "USER_REPORT", name="queueitemtype"),
            nullable=False,
        ),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("violation_types", sa.JSON(), nullable=False),
        sa.Column("safety_score", sa.Integer(), nullable=True),
        sa.Column("auto_flagged", sa.Boolean(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "IN_REVIEW", "RESOLVED", name="queueitemstatus"),
            nullable=False,
        ),
        sa.Column("assigned_to", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["assigned_to"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_moderation_queue_id", "moderation_queue", ["id"])
    op.create_index(
        "ix_moderation_queue_order",
        "moderation_queue",
        ["status", "priority", "created_at"],
    )
    op.create_index(
        "ix_moderation_queue_item", "moderation_queue", ["item_type", "item_id"]
    )

    op.create_table(
        "user_messaging_restrictions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "restriction_type",
            sa.Enum("TEMPORARY_MUTE", "BANNED", name="restrictiontype"),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("restricted_until", sa.DateTime(), nullable=True),
        sa.Column("is_permanent", sa.Boolean(), nullable=False),
        sa.Column(
            "applied_by",
            sa.Integer(),
            nullable=True,
            comment="Moderator who applied it (null = automatic)",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["applied_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_user_messaging_restrictions_id", "user_messaging_restrictions", ["id"]
    )
    op.create_index(
        "ix_restrictions_user_created",
        "user_messaging_restrictions",
        ["user_id", "created_at"],
    )

    op.create_table(
        "moderation_actions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("moderator_id", sa.Integer(), nullable=True),
        sa.Column(
            "target_type",
            sa.Enum("MESSAGE", "POST", "USER", name="targettype"),
            nullable=False,
        ),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column(
            "action_type",
            sa.Enum(
                "DELETE_CONTENT",
                "BAN",
                "MUTE",
                "WARN",
                "APPROVE_CONTENT",
                name="moderationactiontype",
            ),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("automated", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["moderator_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_moderation_actions_id", "moderation_actions", ["id"])
    op.create_index(
        "ix_moderation_actions_target",
        "moderation_actions",
        ["target_type", "target_id"],
    )
    op.create_index(
        "ix_moderation_actions_created", "moderation_actions", ["created_at"]
    )

    op.create_table(
        "user_warnings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("warning_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("issued_by", sa.Integer(), nullable=False),
        sa.Column("severity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["issued_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_warnings_id", "user_warnings", ["id"])
    op.create_index("ix_user_warnings_user", "user_warnings", ["user_id"])

    op.create_table(
        "message_reports",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("reported_by", sa.Integer(), nullable=False),
        sa.Column("report_type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "REVIEWED", "DISMISSED", name="reportstatus"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["message_id"], ["messages.id"]),
        sa.ForeignKeyConstraint(["reported_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "message_id", "reported_by", name="uq_report_message_user"
        ),
    )
    op.create_index("ix_message_reports_id", "message_reports", ["id"])
    op.create_index(
        "ix_message_reports_created", "message_reports", ["created_at"]
    )


def downgrade():
    for table in (
        "message_reports",
        "user_warnings",
        "moderation_actions",
        "user_messaging_restrictions",
        "moderation_queue",
        "message_safety_logs",
        "messages",
        "flagged_terms",
        "community_posts",
        "conversation_participants",
        "conversations",
        "users",
    ):
        op.drop_table(table)
