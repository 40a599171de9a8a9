"""
Service for user reports against messages.
"""

from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.exceptions import (
    DuplicateReportException,
    MessageNotFoundException,
    NotParticipantException,
    PersistenceException,
)
from repositories.db_models import (
    MessageReport,
    ModerationQueueItem,
    QueueItemType,
    ReportStatus,
)
from services.audit_service import AuditAction, AuditService
from services.transaction import atomic

REPORT_QUEUE_PRIORITY = 3


class ReportService:
    """Service for message report operations."""

    @staticmethod
    def report_message(
        db: Session,
        message_id: int,
        reporter_id: int,
        report_type: str,
        description: Optional[str] = None,
    ) -> MessageReport:
        """
        Report a message and queue it for human review.

        Args:
            db: Database session
            message_id: ID of the reported message
            reporter_id: ID of the reporting user
            report_type: Kind of problem (harassment, spam, ...)
            description: Optional free-text details

        Returns:
            Created report

        Raises:
            MessageNotFoundException: If the message does not exist
            NotParticipantException: If the reporter cannot see the message
            DuplicateReportException: If the reporter already reported it
        """
        from repositories.conversation_repository import ConversationRepository
        from repositories.message_repository import MessageRepository
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )
        from repositories.report_repository import ReportRepository

        message = MessageRepository(db).get_by_id(message_id)
        if not message or message.is_deleted:
            raise MessageNotFoundException(message_id)

        if not ConversationRepository(db).is_participant(
            message.conversation_id, reporter_id
        ):
            raise NotParticipantException(
                "You can only report messages in your conversations"
            )

        report_repo = ReportRepository(db)
        if report_repo.get_by_message_and_reporter(message_id, reporter_id):
            raise DuplicateReportException()

        try:
            with atomic(db, "report_message"):
                report = report_repo.add(
                    MessageReport(
                        message_id=message_id,
                        reported_by=reporter_id,
                        report_type=report_type,
                        description=description,
                        status=ReportStatus.PENDING,
                    )
                )
                report_repo.flush()

                ModerationQueueRepository(db).add(
                    ModerationQueueItem(
                        item_type=QueueItemType.USER_REPORT,
                        item_id=report.id,
                        priority=REPORT_QUEUE_PRIORITY,
                        violation_types=[report_type],
                        safety_score=message.safety_score,
                        auto_flagged=False,
                    )
                )
        except PersistenceException as e:
            # Concurrent duplicate hit the unique constraint
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateReportException() from e
            raise

        db.refresh(report)
        logger.info(
            "Message reported",
            message_id=message_id,
            reporter_id=reporter_id,
            report_type=report_type,
        )
        AuditService.log_event(
            user_id=reporter_id,
            action=AuditAction.MESSAGE_REPORTED,
            target_type="message",
            target_id=message_id,
            details={"report_id": report.id, "report_type": report_type},
        )
        return report
