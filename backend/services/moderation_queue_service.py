"""
Service for the human review queue.
"""

from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from models.exceptions import (
    InvalidModerationActionException,
    QueueItemNotFoundException,
    QueueItemUnavailableException,
)
from repositories.db_models import (
    ModerationQueueItem,
    QueueItemStatus,
    QueueItemType,
)
from services.audit_service import AuditAction, AuditService
from services.transaction import atomic

PREVIEW_LENGTH = 500


class ModerationQueueService:
    """Service for moderation queue operations."""

    @staticmethod
    def list_items(
        db: Session,
        status: Optional[QueueItemStatus] = QueueItemStatus.PENDING,
        item_type: Optional[QueueItemType] = None,
        min_priority: Optional[int] = None,
        assigned_to: Optional[int] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[dict], int]:
        """
        Get queue items with a preview of the content under review.

        Args:
            db: Database session
            status: Status filter (None for every status)
            item_type: Item type filter
            min_priority: Minimum priority
            assigned_to: Only items assigned to this moderator
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Tuple of (list of item dicts, total count)
        """
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )

        rows, total = ModerationQueueRepository(db).get_items(
            status=status,
            item_type=item_type,
            min_priority=min_priority,
            assigned_to=assigned_to,
            skip=skip,
            limit=limit,
        )

        items = []
        for item, assignee_name in rows:
            items.append(
                {
                    "id": item.id,
                    "item_type": item.item_type,
                    "item_id": item.item_id,
                    "priority": item.priority,
                    "violation_types": item.violation_types or [],
                    "safety_score": item.safety_score,
                    "auto_flagged": item.auto_flagged,
                    "status": item.status,
                    "assigned_to": item.assigned_to,
                    "assigned_to_name": assignee_name,
                    "created_at": item.created_at,
                    "reviewed_at": item.reviewed_at,
                    "resolved_at": item.resolved_at,
                    "item_details": ModerationQueueService._get_item_details(
                        db, item.item_type, item.item_id
                    ),
                }
            )
        return items, total

    @staticmethod
    def _get_item_details(
        db: Session, item_type: QueueItemType, item_id: int
    ) -> Optional[dict]:
        """Get a content preview for queue display."""
        from repositories.message_repository import MessageRepository
        from repositories.post_repository import PostRepository
        from repositories.report_repository import ReportRepository

        if item_type == QueueItemType.MESSAGE:
            result = MessageRepository(db).get_with_sender(item_id)
            if not result:
                return None
            message, sender = result
            return {
                "content": message.content[:PREVIEW_LENGTH],
                "sender_id": sender.id,
                "sender_name": sender.display_name,
                "conversation_id": message.conversation_id,
                "safety_score": message.safety_score,
                "flagged_terms": message.flagged_terms or [],
                "is_deleted": message.is_deleted,
            }

        if item_type == QueueItemType.POST:
            post = PostRepository(db).get_by_id(item_id)
            if not post:
                return None
            return {
                "title": post.title,
                "content": post.content[:PREVIEW_LENGTH],
                "post_type": post.post_type,
                "author_id": post.author_id,
                "is_deleted": post.is_deleted,
            }

        result = ReportRepository(db).get_with_reporter(item_id)
        if not result:
            return None
        report, reporter_name = result
        message = MessageRepository(db).get_by_id(report.message_id)
        return {
            "report_type": report.report_type,
            "description": report.description,
            "reporter_id": report.reported_by,
            "reporter_name": reporter_name,
            "message_id": report.message_id,
            "content": message.content[:PREVIEW_LENGTH] if message else None,
        }

    @staticmethod
    def get_item(db: Session, item_id: int) -> ModerationQueueItem:
        """
        Get a queue item.

        Raises:
            QueueItemNotFoundException: If the item does not exist
        """
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )

        item = ModerationQueueRepository(db).get_by_id(item_id)
        if not item:
            raise QueueItemNotFoundException(item_id)
        return item

    @staticmethod
    def assign(
        db: Session,
        item_id: int,
        moderator_id: int,
        assign_to_id: Optional[int] = None,
    ) -> ModerationQueueItem:
        """
        Claim a pending item for review.

        Of several moderators racing for the same item exactly one wins; the
        others get QueueItemUnavailableException.

        Args:
            db: Database session
            item_id: ID of the queue item
            moderator_id: Moderator making the request
            assign_to_id: Moderator to assign (defaults to the caller)

        Returns:
            The claimed queue item

        Raises:
            InvalidModerationActionException: If the assignee is not a moderator
            QueueItemUnavailableException: If the item is missing or taken
        """
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )
        from repositories.user_repository import UserRepository

        assignee_id = assign_to_id if assign_to_id is not None else moderator_id
        if assignee_id != moderator_id:
            assignee = UserRepository(db).get_by_id(assignee_id)
            if not assignee or not assignee.is_active or not assignee.is_moderator:
                raise InvalidModerationActionException(
                    "Queue items can only be assigned to active moderators"
                )

        queue_repo = ModerationQueueRepository(db)
        with atomic(db, "assign_queue_item"):
            if not queue_repo.claim(item_id, assignee_id, datetime.now(timezone.utc)):
                raise QueueItemUnavailableException(item_id)

        item = queue_repo.get_by_id(item_id)
        logger.info(
            "Queue item assigned",
            item_id=item_id,
            assigned_to=assignee_id,
            assigned_by=moderator_id,
        )
        AuditService.log_event(
            user_id=moderator_id,
            action=AuditAction.QUEUE_ITEM_ASSIGNED,
            target_type="moderation_queue",
            target_id=item_id,
            details={"assigned_to": assignee_id},
        )
        return item  # type: ignore[return-value]

    @staticmethod
    def resolve(db: Session, item_id: int) -> None:
        """
        Stage resolution of a queue item. Does not commit.

        Called by the action executor inside its transaction.

        Raises:
            QueueItemNotFoundException: If the item does not exist
        """
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )

        if not ModerationQueueRepository(db).resolve(
            item_id, datetime.now(timezone.utc)
        ):
            raise QueueItemNotFoundException(item_id)
