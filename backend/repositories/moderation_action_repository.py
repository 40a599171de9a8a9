"""
Repository for the moderation action audit trail.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, and_, case, cast, func, or_
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import ModerationAction, TargetType, User


class ModerationActionRepository(BaseRepository[ModerationAction]):
    """Repository for ModerationAction entity database operations."""

    def __init__(self, db: Session):
        super().__init__(ModerationAction, db)

    def get_actions_for_user(
        self,
        user_id: int,
        message_ids: list[int],
        skip: int = 0,
        limit: int = 20,
    ) -> list[tuple[ModerationAction, Optional[str]]]:
        """
        Get actions aimed at a user directly or at any of their messages.

        Args:
            user_id: ID of the user
            message_ids: IDs of messages the user sent
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of (action, moderator display name), newest first
        """
        target = and_(
            ModerationAction.target_type == TargetType.USER,
            ModerationAction.target_id == user_id,
        )
        if message_ids:
            target = or_(
                target,
                and_(
                    ModerationAction.target_type == TargetType.MESSAGE,
                    ModerationAction.target_id.in_(message_ids),
                ),
            )

        return (
            self.db.query(ModerationAction, User.display_name)
            .outerjoin(User, ModerationAction.moderator_id == User.id)
            .filter(target)
            .order_by(ModerationAction.created_at.desc(), ModerationAction.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )  # type: ignore[return-value]

    def get_action_summary(self, start: datetime) -> list[dict]:
        """
        Count actions by type since start.

        Returns:
            List of dicts with action_type, count and automated_count
        """
        count = func.count(ModerationAction.id).label("count")
        automated = func.sum(
            cast(
                case((ModerationAction.automated == True, 1), else_=0),  # noqa: E712
                Integer,
            )
        )
        rows = (
            self.db.query(ModerationAction.action_type, count, automated)
            .filter(ModerationAction.created_at >= start)
            .group_by(ModerationAction.action_type)
            .order_by(count.desc())
            .all()
        )
        return [
            {
                "action_type": action_type.value,
                "count": int(total),
                "automated_count": int(automated_count or 0),
            }
            for action_type, total, automated_count in rows
        ]
