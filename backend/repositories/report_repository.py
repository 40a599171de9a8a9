"""
Repository for user-submitted message reports.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import MessageReport, ReportStatus, User


class ReportRepository(BaseRepository[MessageReport]):
    """Repository for MessageReport entity database operations."""

    def __init__(self, db: Session):
        super().__init__(MessageReport, db)

    def get_by_message_and_reporter(
        self, message_id: int, reporter_id: int
    ) -> Optional[MessageReport]:
        """
        Get a user's existing report on a message.

        Args:
            message_id: ID of the reported message
            reporter_id: ID of the reporting user

        Returns:
            Report if the user already reported this message, None otherwise
        """
        return (
            self.db.query(MessageReport)
            .filter(
                MessageReport.message_id == message_id,
                MessageReport.reported_by == reporter_id,
            )
            .first()
        )

    def count_for_message(self, message_id: int) -> int:
        return (
            self.db.query(MessageReport)
            .filter(MessageReport.message_id == message_id)
            .count()
        )

    def count_pending(self) -> int:
        return (
            self.db.query(MessageReport)
            .filter(MessageReport.status == ReportStatus.PENDING)
            .count()
        )

    def count_since(self, start: datetime) -> int:
        return (
            self.db.query(func.count(MessageReport.id))
            .filter(MessageReport.created_at >= start)
            .scalar()
            or 0
        )

    def get_report_stats(self, start: datetime) -> list[dict]:
        """
        Count reports by type and status since start.

        Returns:
            List of dicts with report_type, status and count
        """
        count = func.count(MessageReport.id).label("count")
        rows = (
            self.db.query(MessageReport.report_type, MessageReport.status, count)
            .filter(MessageReport.created_at >= start)
            .group_by(MessageReport.report_type, MessageReport.status)
            .order_by(count.desc())
            .all()
        )
        return [
            {"report_type": report_type, "status": status.value, "count": int(total)}
            for report_type, status, total in rows
        ]

    def get_with_reporter(
        self, report_id: int
    ) -> Optional[tuple[MessageReport, str]]:
        """Get a report together with the reporter's display name."""
        return (
            self.db.query(MessageReport, User.display_name)
            .join(User, MessageReport.reported_by == User.id)
            .filter(MessageReport.id == report_id)
            .first()
        )  # type: ignore[return-value]
