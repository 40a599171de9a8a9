"""
Repository for formal user warnings.
"""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import User, UserWarning


class WarningRepository(BaseRepository[UserWarning]):
    """Repository for UserWarning entity database operations."""

    def __init__(self, db: Session):
        super().__init__(UserWarning, db)

    def get_user_warnings(
        self, user_id: int, skip: int = 0, limit: int = 20
    ) -> list[tuple[UserWarning, str]]:
        """
        Get warnings issued to a user, newest first.

        Returns:
            List of (warning, issuer display name)
        """
        return (
            self.db.query(UserWarning, User.display_name)
            .join(User, UserWarning.issued_by == User.id)
            .filter(UserWarning.user_id == user_id)
            .order_by(UserWarning.created_at.desc(), UserWarning.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )  # type: ignore[return-value]

    def count_for_user(self, user_id: int) -> int:
        return (
            self.db.query(UserWarning).filter(UserWarning.user_id == user_id).count()
        )

    def get_warning_summary(self, start: datetime) -> list[dict]:
        """
        Count warnings by type since start.

        Returns:
            List of dicts with warning_type, count and average severity
        """
        count = func.count(UserWarning.id).label("count")
        rows = (
            self.db.query(
                UserWarning.warning_type, count, func.avg(UserWarning.severity)
            )
            .filter(UserWarning.created_at >= start)
            .group_by(UserWarning.warning_type)
            .order_by(count.desc())
            .all()
        )
        return [
            {
                "warning_type": warning_type,
                "count": int(total),
                "avg_severity": round(float(avg or 0), 2),
            }
            for warning_type, total, avg in rows
        ]
