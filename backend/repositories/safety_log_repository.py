"""
Repository for message safety log entries.
"""

from datetime import datetime

from sqlalchemy import Integer, case, cast, func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Message, MessageSafetyLog, SafetyAction


class SafetyLogRepository(BaseRepository[MessageSafetyLog]):
    """Repository for MessageSafetyLog entity database operations."""

    def __init__(self, db: Session):
        super().__init__(MessageSafetyLog, db)

    def get_for_message(self, message_id: int) -> list[MessageSafetyLog]:
        """Get the log entries written for a single message."""
        return (
            self.db.query(MessageSafetyLog)
            .filter(MessageSafetyLog.message_id == message_id)
            .order_by(MessageSafetyLog.id)
            .all()
        )

    def get_user_violations(
        self, user_id: int, skip: int = 0, limit: int = 20
    ) -> list[tuple[MessageSafetyLog, str | None, datetime | None]]:
        """
        Get a user's violation history with the offending message text.

        Returns:
            List of (log entry, message content, message created_at)
        """
        return (
            self.db.query(MessageSafetyLog, Message.content, Message.created_at)
            .outerjoin(Message, MessageSafetyLog.message_id == Message.id)
            .filter(MessageSafetyLog.user_id == user_id)
            .order_by(MessageSafetyLog.created_at.desc(), MessageSafetyLog.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )  # type: ignore[return-value]

    def get_violation_stats(self, start: datetime) -> list[dict]:
        """
        Count violations by type and severity since start.

        Returns:
            List of dicts with violation_type, severity_level and count,
            most frequent first
        """
        count = func.count(MessageSafetyLog.id).label("count")
        rows = (
            self.db.query(
                MessageSafetyLog.violation_type,
                MessageSafetyLog.severity_level,
                count,
            )
            .filter(MessageSafetyLog.created_at >= start)
            .group_by(MessageSafetyLog.violation_type, MessageSafetyLog.severity_level)
            .order_by(count.desc())
            .all()
        )
        return [
            {
                "violation_type": violation_type,
                "severity_level": severity_level,
                "count": int(total),
            }
            for violation_type, severity_level, total in rows
        ]

    def get_violation_trends(self, start: datetime) -> list[dict]:
        """
        Violation counts with the share that ended in a block.

        Returns:
            List of dicts with violation_type, severity_level, count and
            block_rate (0.0-1.0)
        """
        count = func.count(MessageSafetyLog.id).label("count")
        block_rate = func.avg(
            cast(
                case(
                    (MessageSafetyLog.action_taken == SafetyAction.BLOCKED, 1),
                    else_=0,
                ),
                Integer,
            )
        ).label("block_rate")
        rows = (
            self.db.query(
                MessageSafetyLog.violation_type,
                MessageSafetyLog.severity_level,
                count,
                block_rate,
            )
            .filter(MessageSafetyLog.created_at >= start)
            .group_by(MessageSafetyLog.violation_type, MessageSafetyLog.severity_level)
            .order_by(count.desc())
            .all()
        )
        return [
            {
                "violation_type": violation_type,
                "severity_level": severity_level,
                "count": int(total),
                "block_rate": round(float(rate or 0), 4),
            }
            for violation_type, severity_level, total, rate in rows
        ]
