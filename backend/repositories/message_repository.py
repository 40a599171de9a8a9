"""
Repository for message database operations.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Message, ModerationStatus, User

# Blocked is terminal; re-approving an approved message is a no-op
APPROVABLE_STATUSES = (
    ModerationStatus.PENDING,
    ModerationStatus.FLAGGED,
    ModerationStatus.APPROVED,
)


class MessageRepository(BaseRepository[Message]):
    """Repository for Message entity database operations."""

    def __init__(self, db: Session):
        super().__init__(Message, db)

    def get_with_sender(self, message_id: int) -> Optional[tuple[Message, User]]:
        """
        Get a message together with its sender.

        Args:
            message_id: ID of the message

        Returns:
            Tuple of (message, sender) if found, None otherwise
        """
        return (
            self.db.query(Message, User)
            .join(User, Message.sender_id == User.id)
            .filter(Message.id == message_id)
            .first()
        )  # type: ignore[return-value]

    def get_sender_id(self, message_id: int) -> Optional[int]:
        """Get the sender of a message, None if the message does not exist."""
        row = (
            self.db.query(Message.sender_id).filter(Message.id == message_id).first()
        )
        return int(row[0]) if row else None

    def get_conversation_messages(
        self,
        conversation_id: int,
        viewer_id: int,
        since: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[tuple[Message, User]]:
        """
        Get visible messages in a conversation, newest first.

        Deleted messages are hidden from everyone; blocked messages are only
        returned to their own sender.

        Args:
            conversation_id: ID of the conversation
            viewer_id: ID of the user reading the conversation
            since: Only messages created after this time
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of (message, sender) tuples
        """
        query = (
            self.db.query(Message, User)
            .join(User, Message.sender_id == User.id)
            .filter(
                Message.conversation_id == conversation_id,
                Message.is_deleted == False,  # noqa: E712
                or_(
                    Message.is_blocked == False,  # noqa: E712
                    Message.sender_id == viewer_id,
                ),
            )
        )

        if since is not None:
            query = query.filter(Message.created_at > since)

        return (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )  # type: ignore[return-value]

    def get_flagged_messages(
        self, skip: int = 0, limit: int = 20
    ) -> tuple[list[tuple[Message, User]], int]:
        """
        Get flagged, non-deleted messages, least safe first.

        Returns:
            Tuple of (list of (message, sender), total count)
        """
        query = (
            self.db.query(Message, User)
            .join(User, Message.sender_id == User.id)
            .filter(
                Message.moderation_status == ModerationStatus.FLAGGED,
                Message.is_deleted == False,  # noqa: E712
            )
        )

        total = query.count()
        results = (
            query.order_by(Message.safety_score.asc(), Message.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return results, total  # type: ignore[return-value]

    def soft_delete(self, message_id: int) -> bool:
        """
        Mark a message deleted, keeping its content for audit.

        Returns:
            True if a message was updated
        """
        updated = (
            self.db.query(Message)
            .filter(Message.id == message_id)
            .update({Message.is_deleted: True}, synchronize_session=False)
        )
        return updated > 0

    def approve(self, message_id: int) -> bool:
        """
        Approve a message that is still open for review.

        Blocked messages never change status, so they are left untouched.

        Returns:
            True if a message was updated
        """
        updated = (
            self.db.query(Message)
            .filter(
                Message.id == message_id,
                Message.moderation_status.in_(APPROVABLE_STATUSES),
            )
            .update(
                {Message.moderation_status: ModerationStatus.APPROVED},
                synchronize_session=False,
            )
        )
        return updated > 0

    def count_since(self, start: datetime) -> int:
        """Count messages created since start, blocked or not."""
        return (
            self.db.query(func.count(Message.id))
            .filter(Message.created_at >= start)
            .scalar()
            or 0
        )

    def count_blocked_since(self, start: datetime) -> int:
        """Count blocked messages created since start."""
        return (
            self.db.query(func.count(Message.id))
            .filter(
                Message.is_blocked == True,  # noqa: E712
                Message.created_at >= start,
            )
            .scalar()
            or 0
        )

    def get_sender_message_ids(self, user_id: int) -> list[int]:
        """Get IDs of every message a user has sent."""
        rows = self.db.query(Message.id).filter(Message.sender_id == user_id).all()
        return [row[0] for row in rows]
