"""
Repository for the moderation work queue.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import (
    ModerationQueueItem,
    QueueItemStatus,
    QueueItemType,
    User,
)


class ModerationQueueRepository(BaseRepository[ModerationQueueItem]):
    """Repository for ModerationQueueItem entity database operations."""

    def __init__(self, db: Session):
        super().__init__(ModerationQueueItem, db)

    def get_items(
        self,
        status: Optional[QueueItemStatus] = QueueItemStatus.PENDING,
        item_type: Optional[QueueItemType] = None,
        min_priority: Optional[int] = None,
        assigned_to: Optional[int] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[tuple[ModerationQueueItem, Optional[str]]], int]:
        """
        Get queue items, highest priority first and FIFO within a priority.

        Args:
            status: Filter by status (None for all statuses)
            item_type: Filter by item type
            min_priority: Only items with priority >= this value
            assigned_to: Only items assigned to this moderator
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (list of (item, assignee display name), total count)
        """
        query = self.db.query(ModerationQueueItem, User.display_name).outerjoin(
            User, ModerationQueueItem.assigned_to == User.id
        )

        if status is not None:
            query = query.filter(ModerationQueueItem.status == status)
        if item_type is not None:
            query = query.filter(ModerationQueueItem.item_type == item_type)
        if min_priority is not None:
            query = query.filter(ModerationQueueItem.priority >= min_priority)
        if assigned_to is not None:
            query = query.filter(ModerationQueueItem.assigned_to == assigned_to)

        total = query.count()
        results = (
            query.order_by(
                ModerationQueueItem.priority.desc(),
                ModerationQueueItem.created_at.asc(),
                ModerationQueueItem.id.asc(),
            )
            .offset(skip)
            .limit(limit)
            .all()
        )
        return results, total  # type: ignore[return-value]

    def claim(self, item_id: int, moderator_id: int, now: datetime) -> bool:
        """
        Assign a pending item to a moderator.

        Single conditional UPDATE ... WHERE status='pending'; of several
        concurrent claims exactly one sees an affected row.

        Args:
            item_id: ID of the queue item
            moderator_id: Moderator taking the item
            now: Review start timestamp

        Returns:
            True if this call claimed the item
        """
        updated = (
            self.db.query(ModerationQueueItem)
            .filter(
                ModerationQueueItem.id == item_id,
                ModerationQueueItem.status == QueueItemStatus.PENDING,
            )
            .update(
                {
                    ModerationQueueItem.status: QueueItemStatus.IN_REVIEW,
                    ModerationQueueItem.assigned_to: moderator_id,
                    ModerationQueueItem.reviewed_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    def resolve(self, item_id: int, now: datetime) -> bool:
        """
        Mark an item resolved. Does not commit.

        Returns:
            True if an item was updated
        """
        updated = (
            self.db.query(ModerationQueueItem)
            .filter(ModerationQueueItem.id == item_id)
            .update(
                {
                    ModerationQueueItem.status: QueueItemStatus.RESOLVED,
                    ModerationQueueItem.resolved_at: now,
                },
                synchronize_session=False,
            )
        )
        return updated > 0

    def get_pending_stats(self) -> dict:
        """
        Summarize the pending backlog.

        Returns:
            Dict with total, high_priority (priority >= 4) and by_type counts
        """
        pending = ModerationQueueItem.status == QueueItemStatus.PENDING

        total = self.db.query(func.count(ModerationQueueItem.id)).filter(
            pending
        ).scalar()
        high_priority = (
            self.db.query(func.count(ModerationQueueItem.id))
            .filter(pending, ModerationQueueItem.priority >= 4)
            .scalar()
        )
        by_type_rows = (
            self.db.query(ModerationQueueItem.item_type, func.count(ModerationQueueItem.id))
            .filter(pending)
            .group_by(ModerationQueueItem.item_type)
            .all()
        )

        by_type = {item_type.value: 0 for item_type in QueueItemType}
        for item_type, count in by_type_rows:
            by_type[item_type.value] = int(count)

        return {
            "total": total or 0,
            "high_priority": high_priority or 0,
            "by_type": by_type,
        }
