"""
Service for the messaging restriction ledger.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from repositories.db_models import RestrictionType, UserMessagingRestriction


class RestrictionService:
    """Service for checking and applying messaging restrictions."""

    @staticmethod
    def is_restricted(
        db: Session, user_id: int, now: Optional[datetime] = None
    ) -> Optional[UserMessagingRestriction]:
        """
        Get the restriction currently preventing a user from sending.

        Args:
            db: Database session
            user_id: ID of the user
            now: Reference time (defaults to current UTC time)

        Returns:
            Most recent active restriction, None if the user may send
        """
        from repositories.restriction_repository import RestrictionRepository

        return RestrictionRepository(db).get_active_restriction(user_id, now)

    @staticmethod
    def apply_restriction(
        db: Session,
        user_id: int,
        restriction_type: RestrictionType,
        reason: str,
        duration_hours: Optional[int] = None,
        applied_by: Optional[int] = None,
    ) -> UserMessagingRestriction:
        """
        Stage a new restriction. Does not commit.

        A ban is always permanent. A mute without a duration is permanent.

        Args:
            db: Database session
            user_id: ID of the restricted user
            restriction_type: temporary_mute or banned
            reason: Reason shown to the user
            duration_hours: Length of the restriction (None = permanent)
            applied_by: Moderator ID (None = automatic)

        Returns:
            The staged restriction
        """
        from repositories.restriction_repository import RestrictionRepository

        is_permanent = restriction_type == RestrictionType.BANNED or not duration_hours
        restricted_until = (
            None
            if is_permanent
            else datetime.now(timezone.utc) + timedelta(hours=duration_hours)  # type: ignore[arg-type]
        )

        restriction = UserMessagingRestriction(
            user_id=user_id,
            restriction_type=restriction_type,
            reason=reason,
            restricted_until=restricted_until,
            is_permanent=is_permanent,
            applied_by=applied_by,
        )
        return RestrictionRepository(db).add(restriction)
