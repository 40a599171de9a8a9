"""
Repository for user messaging restrictions.

A restriction is active iff it is permanent or restricted_until is still in
the future. Expiry is evaluated lazily in every query; nothing sweeps rows.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import UserMessagingRestriction


def _active_clause(now: datetime):  # type: ignore[no-untyped-def]
    return or_(
        UserMessagingRestriction.is_permanent == True,  # noqa: E712
        UserMessagingRestriction.restricted_until > now,
    )


class RestrictionRepository(BaseRepository[UserMessagingRestriction]):
    """Repository for messaging restriction data access."""

    def __init__(self, db: Session):
        super().__init__(UserMessagingRestriction, db)

    def get_active_restriction(
        self, user_id: int, now: Optional[datetime] = None
    ) -> Optional[UserMessagingRestriction]:
        """
        Get the most recent active restriction for a user.

        Args:
            user_id: ID of the user
            now: Reference time (defaults to current UTC time)

        Returns:
            Most recently created active restriction, None if unrestricted
        """
        now = now or datetime.now(timezone.utc)

        return (
            self.db.query(UserMessagingRestriction)
            .filter(
                UserMessagingRestriction.user_id == user_id,
                _active_clause(now),
            )
            .order_by(
                UserMessagingRestriction.created_at.desc(),
                UserMessagingRestriction.id.desc(),
            )
            .first()
        )

    def get_active_restrictions(
        self, user_id: int, now: Optional[datetime] = None
    ) -> list[UserMessagingRestriction]:
        """Get every active restriction for a user, newest first."""
        now = now or datetime.now(timezone.utc)

        return (
            self.db.query(UserMessagingRestriction)
            .filter(
                UserMessagingRestriction.user_id == user_id,
                _active_clause(now),
            )
            .order_by(
                UserMessagingRestriction.created_at.desc(),
                UserMessagingRestriction.id.desc(),
            )
            .all()
        )

    def count_restricted_users(self, now: Optional[datetime] = None) -> int:
        """Count distinct users with at least one active restriction."""
        now = now or datetime.now(timezone.utc)
        result = (
            self.db.query(func.count(func.distinct(UserMessagingRestriction.user_id)))
            .filter(_active_clause(now))
            .scalar()
        )
        return result or 0
