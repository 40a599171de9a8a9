"""
Service for sending and reading conversation messages.

Every outbound message runs through the safety pipeline: restriction check,
participant check, analysis, then one transaction that writes the message,
its safety logs, a review queue item, the conversation touch and any
automatic mute.
"""

from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from helpers.time_utils import ensure_utc
from models.config import settings
from models.exceptions import (
    ConversationInactiveException,
    ConversationNotFoundException,
    EmptyMessageException,
    MessageNotFoundException,
    MessageTooLongException,
    MessagingRestrictedException,
    NotParticipantException,
)
from repositories.db_models import (
    Conversation,
    Message,
    MessageSafetyLog,
    ModerationQueueItem,
    ModerationStatus,
    QueueItemType,
    RestrictionType,
    SafetyAction,
    User,
)
from services.audit_service import AuditAction, AuditService
from services.restriction_service import RestrictionService
from services.safety_analyzer import SafetyAnalysis, SafetyAnalyzer
from services.transaction import atomic

AUTO_MUTE_REASON = "Automatic restriction due to severe content violation"


def moderation_status_for(analysis: SafetyAnalysis) -> ModerationStatus:
    """
    Initial review state of a message.

    A message with no matches stays pending rather than approved.
    """
    if analysis.is_blocked:
        return ModerationStatus.BLOCKED
    if analysis.has_matches:
        return ModerationStatus.FLAGGED
    return ModerationStatus.PENDING


def queue_priority_for(analysis: SafetyAnalysis) -> int:
    """Review priority: 5 for severity >= 4, 4 for severity 3, else 3."""
    max_severity = analysis.max_severity
    if max_severity >= 4:
        return 5
    if max_severity >= 3:
        return 4
    return 3


class MessageService:
    """Service for message operations."""

    @staticmethod
    def _get_conversation_for_participant(
        db: Session, conversation_id: int, user_id: int
    ) -> Conversation:
        from repositories.conversation_repository import ConversationRepository

        conversation_repo = ConversationRepository(db)
        conversation = conversation_repo.get_by_id(conversation_id)
        if not conversation:
            raise ConversationNotFoundException(conversation_id)
        if not conversation_repo.is_participant(conversation_id, user_id):
            raise NotParticipantException()
        return conversation

    @staticmethod
    def send_message(
        db: Session,
        conversation_id: int,
        sender_id: int,
        content: str,
        message_type: str = "text",
        parent_message_id: Optional[int] = None,
    ) -> tuple[Message, SafetyAnalysis]:
        """
        Run a message through the safety pipeline and persist it.

        Blocked messages are persisted too, so moderators can review them;
        the caller decides what the sender gets to see.

        Args:
            db: Database session
            conversation_id: Target conversation
            sender_id: ID of the sending user
            content: Message text
            message_type: Message type (text, image, ...)
            parent_message_id: Message being replied to

        Returns:
            Tuple of (persisted message, safety analysis)

        Raises:
            EmptyMessageException: If content is blank
            MessageTooLongException: If content exceeds MESSAGE_MAX_LENGTH
            MessagingRestrictedException: If the sender is muted or banned
            ConversationNotFoundException: If the conversation does not exist
            NotParticipantException: If the sender is not a participant
            ConversationInactiveException: If the conversation is closed
            PersistenceException: If the transaction fails
        """
        from repositories.conversation_repository import ConversationRepository
        from repositories.message_repository import MessageRepository
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )
        from repositories.safety_log_repository import SafetyLogRepository

        if not content or not content.strip():
            raise EmptyMessageException()
        if len(content) > settings.MESSAGE_MAX_LENGTH:
            raise MessageTooLongException(settings.MESSAGE_MAX_LENGTH)

        restriction = RestrictionService.is_restricted(db, sender_id)
        if restriction:
            raise MessagingRestrictedException(
                restriction_type=restriction.restriction_type.value,
                reason=restriction.reason,
                restricted_until=ensure_utc(restriction.restricted_until),
                is_permanent=restriction.is_permanent,
            )

        conversation = MessageService._get_conversation_for_participant(
            db, conversation_id, sender_id
        )
        if not conversation.is_active:
            raise ConversationInactiveException()

        message_repo = MessageRepository(db)
        if parent_message_id is not None:
            parent = message_repo.get_by_id(parent_message_id)
            if not parent or parent.conversation_id != conversation_id:
                raise MessageNotFoundException(parent_message_id)

        analysis = SafetyAnalyzer.analyze_message(db, content)
        status = moderation_status_for(analysis)
        now = datetime.now(timezone.utc)
        auto_muted = analysis.max_severity >= settings.AUTO_MUTE_SEVERITY

        with atomic(db, "send_message"):
            message = message_repo.add(
                Message(
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    content=content,
                    message_type=message_type,
                    safety_score=analysis.score,
                    flagged_terms=[m.to_dict() for m in analysis.matched_terms],
                    is_blocked=analysis.is_blocked,
                    moderation_status=status,
                    parent_message_id=parent_message_id,
                    created_at=now,
                )
            )
            message_repo.flush()

            action = (
                SafetyAction.BLOCKED if analysis.is_blocked else SafetyAction.FLAGGED
            )
            SafetyLogRepository(db).add_all(
                [
                    MessageSafetyLog(
                        message_id=message.id,
                        user_id=sender_id,
                        violation_type=violation.type,
                        severity_level=violation.severity,
                        flagged_terms=violation.terms,
                        action_taken=action,
                    )
                    for violation in analysis.violations
                ]
            )

            if analysis.has_matches or analysis.is_blocked:
                ModerationQueueRepository(db).add(
                    ModerationQueueItem(
                        item_type=QueueItemType.MESSAGE,
                        item_id=message.id,
                        priority=queue_priority_for(analysis),
                        violation_types=[v.type for v in analysis.violations],
                        safety_score=analysis.score,
                        auto_flagged=True,
                    )
                )

            ConversationRepository(db).touch_last_message(conversation_id, now)

            if auto_muted:
                RestrictionService.apply_restriction(
                    db,
                    user_id=sender_id,
                    restriction_type=RestrictionType.TEMPORARY_MUTE,
                    reason=AUTO_MUTE_REASON,
                    duration_hours=settings.AUTO_MUTE_DURATION_HOURS,
                    applied_by=None,
                )

        db.refresh(message)

        if analysis.is_blocked:
            logger.info(
                "Message blocked",
                message_id=message.id,
                sender_id=sender_id,
                safety_score=analysis.score,
                violations=[v.type for v in analysis.violations],
            )
            AuditService.log_event(
                user_id=sender_id,
                action=AuditAction.MESSAGE_BLOCKED,
                target_type="message",
                target_id=message.id,
                details={
                    "safety_score": analysis.score,
                    "violations": [v.to_dict() for v in analysis.violations],
                },
            )
        if auto_muted:
            logger.info(
                "Sender automatically muted",
                user_id=sender_id,
                hours=settings.AUTO_MUTE_DURATION_HOURS,
            )
            AuditService.log_event(
                user_id=None,
                action=AuditAction.USER_AUTO_RESTRICTED,
                target_type="user",
                target_id=sender_id,
                details={"message_id": message.id, "reason": AUTO_MUTE_REASON},
            )

        return message, analysis

    @staticmethod
    def get_messages(
        db: Session,
        conversation_id: int,
        viewer: User,
        since: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[tuple[Message, User]]:
        """
        Get a page of messages for a participant.

        Pages run newest-first; messages inside a page are oldest-first.

        Args:
            db: Database session
            conversation_id: Conversation to read
            viewer: Requesting user
            since: Only messages created after this time
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of (message, sender) tuples

        Raises:
            ConversationNotFoundException: If the conversation does not exist
            NotParticipantException: If the viewer is not a participant
        """
        from repositories.message_repository import MessageRepository

        MessageService._get_conversation_for_participant(
            db, conversation_id, viewer.id
        )

        rows = MessageRepository(db).get_conversation_messages(
            conversation_id, viewer.id, since=since, skip=skip, limit=limit
        )
        return list(reversed(rows))
