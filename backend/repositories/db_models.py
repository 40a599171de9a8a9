"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

Users, conversations and community posts are owned by other parts of the
platform; they are modelled here only as far as the message safety pipeline
reads or soft-deletes them.
"""

import enum
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from repositories.database import Base


class UserRole(str, enum.Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class ConversationType(str, enum.Enum):
    PRIVATE = "private"
    GROUP = "group"


# Message Safety Enums


class ModerationStatus(str, enum.Enum):
    """Review state of a message."""

    PENDING = "pending"
    FLAGGED = "flagged"
    BLOCKED = "blocked"
    APPROVED = "approved"


class SafetyAction(str, enum.Enum):
    """What the pipeline did with a message that matched flagged terms."""

    BLOCKED = "blocked"
    FLAGGED = "flagged"


class QueueItemType(str, enum.Enum):
    """Kind of content waiting for human review."""

    MESSAGE = "message"
    POST = "post"
    USER_REPORT = "user_report"


class QueueItemStatus(str, enum.Enum):
    """Lifecycle of a moderation queue item."""

    PENDING = "pending"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"


class RestrictionType(str, enum.Enum):
    """Types of messaging restrictions."""

    TEMPORARY_MUTE = "temporary_mute"
    BANNED = "banned"


class TargetType(str, enum.Enum):
    """What a moderator action is aimed at."""

    MESSAGE = "message"
    POST = "post"
    USER = "user"


class ModerationActionType(str, enum.Enum):
    """Decisions a moderator can apply."""

    DELETE_CONTENT = "delete_content"
    BAN = "ban"
    MUTE = "mute"
    WARN = "warn"
    APPROVE_CONTENT = "approve_content"


class ReportStatus(str, enum.Enum):
    """Status of a user-submitted message report."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    username: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole), default=UserRole.MEMBER, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    @property
    def is_moderator(self) -> bool:
        return self.role in (UserRole.MODERATOR, UserRole.ADMIN)


class Conversation(Base):
    """A private or group thread; membership is held in conversation_participants."""

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    conversation_type: Mapped[ConversationType] = mapped_column(
        Enum(ConversationType), default=ConversationType.PRIVATE, nullable=False
    )
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_monitored: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    # Relationships
    participants: Mapped[List["ConversationParticipant"]] = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )
    messages: Mapped[List["Message"]] = relationship(
        "Message", back_populates="conversation"
    )


class ConversationParticipant(Base):
    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "user_id", name="uq_conversation_participant"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversations.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    conversation: Mapped["Conversation"] = relationship(
        "Conversation", back_populates="participants"
    )


class CommunityPost(Base):
    """Community feed post; only the fields moderation previews or soft-deletes."""

    __tablename__ = "community_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    post_type: Mapped[str] = mapped_column(String(50), default="discussion")
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)


# ============================================================================
# Message Safety Models
# ============================================================================


class FlaggedTerm(Base):
    """
    Rule set the safety analyzer scans messages against.

    Unique by term. Rows are never deleted; deactivation flips is_active.
    """

    __tablename__ = "flagged_terms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    term: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    is_regex: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, onupdate=_utc_now
    )


class Message(Base):
    """
    A message together with the safety verdict computed when it was sent.

    Content is kept after soft delete for audit.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_moderation_status", "moderation_status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversations.id"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(20), default="text")
    safety_score: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    flagged_terms: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_blocked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    moderation_status: Mapped[ModerationStatus] = mapped_column(
        Enum(ModerationStatus), default=ModerationStatus.PENDING, nullable=False
    )
    parent_message_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("messages.id"), nullable=True
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    # Relationships
    conversation: Mapped["Conversation"] = relationship(
        "Conversation", back_populates="messages"
    )
    sender: Mapped["User"] = relationship("User", foreign_keys=[sender_id])


class MessageSafetyLog(Base):
    """One row per distinct violation found in a message."""

    __tablename__ = "message_safety_logs"
    __table_args__ = (
        Index("ix_safety_logs_user", "user_id"),
        Index("ix_safety_logs_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("messages.id"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    violation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity_level: Mapped[int] = mapped_column(Integer, nullable=False)
    flagged_terms: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    action_taken: Mapped[SafetyAction] = mapped_column(
        Enum(SafetyAction), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    message: Mapped["Message"] = relationship("Message")


class ModerationQueueItem(Base):
    """
    Prioritized work item for human review.

    Claimed with a conditional update on status='pending'; resolved by the
    action executor.
    """

    __tablename__ = "moderation_queue"
    __table_args__ = (
        Index("ix_moderation_queue_order", "status", "priority", "created_at"),
        Index("ix_moderation_queue_item", "item_type", "item_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    item_type: Mapped[QueueItemType] = mapped_column(
        Enum(QueueItemType), nullable=False
    )
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    violation_types: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    safety_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    auto_flagged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[QueueItemStatus] = mapped_column(
        Enum(QueueItemStatus), default=QueueItemStatus.PENDING, nullable=False
    )
    assigned_to: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    assignee: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[assigned_to]
    )


class UserMessagingRestriction(Base):
    """
    Mute or ban on sending messages.

    Active iff is_permanent or restricted_until is in the future; expiry is
    evaluated at query time.
    """

    __tablename__ = "user_messaging_restrictions"
    __table_args__ = (
        Index("ix_restrictions_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    restriction_type: Mapped[RestrictionType] = mapped_column(
        Enum(RestrictionType), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    restricted_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    is_permanent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    applied_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )  # NULL = applied automatically
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])


class ModerationAction(Base):
    """Append-only audit of moderator decisions."""

    __tablename__ = "moderation_actions"
    __table_args__ = (
        Index("ix_moderation_actions_target", "target_type", "target_id"),
        Index("ix_moderation_actions_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    moderator_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    target_type: Mapped[TargetType] = mapped_column(Enum(TargetType), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[ModerationActionType] = mapped_column(
        Enum(ModerationActionType), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    duration_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    automated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    moderator: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[moderator_id]
    )


class UserWarning(Base):
    """Formal warning issued to a user by a moderator."""

    __tablename__ = "user_warnings"
    __table_args__ = (Index("ix_user_warnings_user", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    warning_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    issued_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    severity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    issuer: Mapped["User"] = relationship("User", foreign_keys=[issued_by])


class MessageReport(Base):
    """
    User report against a message.

    Unique per (message_id, reported_by).
    """

    __tablename__ = "message_reports"
    __table_args__ = (
        UniqueConstraint("message_id", "reported_by", name="uq_report_message_user"),
        Index("ix_message_reports_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("messages.id"), nullable=False
    )
    reported_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    report_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(ReportStatus), default=ReportStatus.PENDING, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    reporter: Mapped["User"] = relationship("User", foreign_keys=[reported_by])
