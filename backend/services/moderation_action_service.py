"""
Service that executes moderator decisions.

Each action writes its audit row first, then applies the side effect, then
resolves the originating queue item, all in one transaction.
"""

from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from models.exceptions import (
    InvalidModerationActionException,
    MessageNotFoundException,
    PostNotFoundException,
    UserNotFoundException,
)
from repositories.db_models import (
    ModerationAction,
    ModerationActionType,
    ModerationStatus,
    RestrictionType,
    TargetType,
    UserWarning,
)
from services.audit_service import AuditAction, AuditService
from services.moderation_queue_service import ModerationQueueService
from services.restriction_service import RestrictionService
from services.transaction import atomic

WARNING_TYPE = "behavior_warning"
WARNING_SEVERITY = 3

USER_ACTIONS = {
    ModerationActionType.BAN,
    ModerationActionType.MUTE,
    ModerationActionType.WARN,
}


class ModerationActionService:
    """Service for executing moderation actions."""

    @staticmethod
    def _validate(
        target_type: TargetType,
        action_type: ModerationActionType,
        reason: str,
        duration_hours: Optional[int],
    ) -> None:
        if not reason or not reason.strip():
            raise InvalidModerationActionException("A reason is required")

        if action_type == ModerationActionType.DELETE_CONTENT and (
            target_type == TargetType.USER
        ):
            raise InvalidModerationActionException(
                "delete_content requires a message or post target"
            )
        if action_type == ModerationActionType.APPROVE_CONTENT and (
            target_type != TargetType.MESSAGE
        ):
            raise InvalidModerationActionException(
                "approve_content requires a message target"
            )
        if duration_hours is not None:
            if action_type != ModerationActionType.MUTE:
                raise InvalidModerationActionException(
                    "duration_hours only applies to mute"
                )
            if duration_hours < 1:
                raise InvalidModerationActionException(
                    "duration_hours must be at least 1"
                )

    @staticmethod
    def _resolve_user_id(db: Session, target_type: TargetType, target_id: int) -> int:
        """Find the user an action lands on; content targets resolve to their author."""
        from repositories.message_repository import MessageRepository
        from repositories.post_repository import PostRepository
        from repositories.user_repository import UserRepository

        if target_type == TargetType.MESSAGE:
            sender_id = MessageRepository(db).get_sender_id(target_id)
            if sender_id is None:
                raise MessageNotFoundException(target_id)
            return sender_id

        if target_type == TargetType.POST:
            post = PostRepository(db).get_by_id(target_id)
            if not post:
                raise PostNotFoundException(target_id)
            return post.author_id

        if not UserRepository(db).get_by_id(target_id):
            raise UserNotFoundException(f"User {target_id} not found")
        return target_id

    @staticmethod
    def _apply_side_effect(
        db: Session,
        moderator_id: int,
        target_type: TargetType,
        target_id: int,
        action_type: ModerationActionType,
        reason: str,
        duration_hours: Optional[int],
        user_id: Optional[int],
    ) -> None:
        from repositories.message_repository import MessageRepository
        from repositories.post_repository import PostRepository
        from repositories.warning_repository import WarningRepository

        if action_type == ModerationActionType.DELETE_CONTENT:
            if target_type == TargetType.MESSAGE:
                if not MessageRepository(db).soft_delete(target_id):
                    raise MessageNotFoundException(target_id)
            elif not PostRepository(db).soft_delete(target_id):
                raise PostNotFoundException(target_id)

        elif action_type == ModerationActionType.APPROVE_CONTENT:
            message_repo = MessageRepository(db)
            if not message_repo.approve(target_id):
                message = message_repo.get_by_id(target_id)
                if message is None:
                    raise MessageNotFoundException(target_id)
                if message.moderation_status == ModerationStatus.BLOCKED:
                    raise InvalidModerationActionException(
                        "Blocked messages cannot be approved"
                    )

        elif action_type == ModerationActionType.BAN:
            RestrictionService.apply_restriction(
                db,
                user_id=user_id,  # type: ignore[arg-type]
                restriction_type=RestrictionType.BANNED,
                reason=reason,
                applied_by=moderator_id,
            )

        elif action_type == ModerationActionType.MUTE:
            RestrictionService.apply_restriction(
                db,
                user_id=user_id,  # type: ignore[arg-type]
                restriction_type=RestrictionType.TEMPORARY_MUTE,
                reason=reason,
                duration_hours=duration_hours,
                applied_by=moderator_id,
            )

        elif action_type == ModerationActionType.WARN:
            WarningRepository(db).add(
                UserWarning(
                    user_id=user_id,
                    warning_type=WARNING_TYPE,
                    description=reason,
                    issued_by=moderator_id,
                    severity=WARNING_SEVERITY,
                )
            )

    @staticmethod
    def execute_action(
        db: Session,
        moderator_id: int,
        target_type: TargetType,
        target_id: int,
        action_type: ModerationActionType,
        reason: str,
        duration_hours: Optional[int] = None,
        notes: Optional[str] = None,
        queue_item_id: Optional[int] = None,
    ) -> ModerationAction:
        """
        Record and apply a moderation decision.

        Side effects by action:
            delete_content: soft-deletes the target message or post
            ban: permanent ``banned`` restriction on the resolved user
            mute: ``temporary_mute`` for duration_hours (permanent if None)
            warn: ``behavior_warning`` of severity 3
            approve_content: sets the message's moderation_status to approved

        Args:
            db: Database session
            moderator_id: Moderator taking the action
            target_type: message, post or user
            target_id: ID of the target
            action_type: Action to apply
            reason: Reason recorded with the action
            duration_hours: Mute length
            notes: Internal moderator notes
            queue_item_id: Queue item to resolve

        Returns:
            The persisted moderation action

        Raises:
            InvalidModerationActionException: If the request is inconsistent
            MessageNotFoundException: If a message target does not exist
            PostNotFoundException: If a post target does not exist
            UserNotFoundException: If a user target does not exist
            QueueItemNotFoundException: If queue_item_id does not exist
        """
        from repositories.moderation_action_repository import (
            ModerationActionRepository,
        )

        ModerationActionService._validate(
            target_type, action_type, reason, duration_hours
        )

        user_id = None
        if action_type in USER_ACTIONS:
            user_id = ModerationActionService._resolve_user_id(
                db, target_type, target_id
            )

        action_repo = ModerationActionRepository(db)
        with atomic(db, "moderation_action"):
            action = action_repo.add(
                ModerationAction(
                    moderator_id=moderator_id,
                    target_type=target_type,
                    target_id=target_id,
                    action_type=action_type,
                    reason=reason,
                    duration_hours=duration_hours,
                    notes=notes,
                    automated=False,
                )
            )
            action_repo.flush()

            ModerationActionService._apply_side_effect(
                db,
                moderator_id=moderator_id,
                target_type=target_type,
                target_id=target_id,
                action_type=action_type,
                reason=reason,
                duration_hours=duration_hours,
                user_id=user_id,
            )

            if queue_item_id is not None:
                ModerationQueueService.resolve(db, queue_item_id)

        db.refresh(action)
        logger.info(
            "Moderation action executed",
            action_id=action.id,
            action_type=action_type.value,
            target_type=target_type.value,
            target_id=target_id,
            moderator_id=moderator_id,
        )
        AuditService.log_event(
            user_id=moderator_id,
            action=AuditAction.MODERATION_ACTION,
            target_type=target_type.value,
            target_id=target_id,
            details={
                "action_id": action.id,
                "action_type": action_type.value,
                "affected_user_id": user_id,
                "queue_item_id": queue_item_id,
            },
        )
        return action
