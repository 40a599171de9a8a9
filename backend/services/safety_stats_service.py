"""
Service for moderation read models: statistics, user history and flagged content.
"""

import math
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from helpers.time_utils import period_start
from models.exceptions import UserNotFoundException

HEALTH_WINDOW = "24h"
HEALTH_BASE_SCORE = 100.0
BLOCKED_RATE_PENALTY = 2.0
PENDING_REVIEW_PENALTY = 0.5


class SafetyStatsService:
    """Service for moderation statistics and history."""

    @staticmethod
    def get_safety_stats(db: Session, period: str) -> dict:
        """
        Aggregate violation, block and report counts for a period.

        Args:
            db: Database session
            period: One of 1h, 24h, 7d, 30d, 90d

        Returns:
            Dict with period, violations, blocked_messages and reports

        Raises:
            InvalidPeriodException: If period is not supported
        """
        from repositories.message_repository import MessageRepository
        from repositories.report_repository import ReportRepository
        from repositories.safety_log_repository import SafetyLogRepository

        start = period_start(period)

        return {
            "period": period,
            "since": start,
            "violations": SafetyLogRepository(db).get_violation_stats(start),
            "blocked_messages": MessageRepository(db).count_blocked_since(start),
            "reports": ReportRepository(db).get_report_stats(start),
        }

    @staticmethod
    def get_dashboard_stats(db: Session, period: str) -> dict:
        """
        Moderator dashboard overview.

        Args:
            db: Database session
            period: One of 1h, 24h, 7d, 30d, 90d

        Returns:
            Dict with queue backlog, violation trends, action summary,
            warnings summary and restricted user count

        Raises:
            InvalidPeriodException: If period is not supported
        """
        from repositories.moderation_action_repository import (
            ModerationActionRepository,
        )
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )
        from repositories.restriction_repository import RestrictionRepository
        from repositories.safety_log_repository import SafetyLogRepository
        from repositories.warning_repository import WarningRepository

        start = period_start(period)

        return {
            "period": period,
            "since": start,
            "queue": ModerationQueueRepository(db).get_pending_stats(),
            "violation_trends": SafetyLogRepository(db).get_violation_trends(start),
            "action_summary": ModerationActionRepository(db).get_action_summary(
                start
            ),
            "warnings_summary": WarningRepository(db).get_warning_summary(start),
            "restricted_users": RestrictionRepository(db).count_restricted_users(),
        }

    @staticmethod
    def get_platform_health(db: Session) -> dict:
        """
        Snapshot of platform safety over the last 24 hours.

        health_score starts at 100 and loses 2 points per percent of blocked
        messages and half a point per pending review, floored at 0.

        Args:
            db: Database session

        Returns:
            Dict with user, message, review and restriction counts plus
            blocked_message_rate (percent) and health_score (0-100)
        """
        from repositories.message_repository import MessageRepository
        from repositories.moderation_queue_repository import (
            ModerationQueueRepository,
        )
        from repositories.restriction_repository import RestrictionRepository
        from repositories.user_repository import UserRepository

        start = period_start(HEALTH_WINDOW)
        message_repo = MessageRepository(db)

        messages_24h = message_repo.count_since(start)
        blocked_messages_24h = message_repo.count_blocked_since(start)
        pending_reviews = ModerationQueueRepository(db).get_pending_stats()["total"]

        blocked_message_rate = (
            blocked_messages_24h / messages_24h * 100 if messages_24h else 0.0
        )
        health_score = max(
            0.0,
            HEALTH_BASE_SCORE
            - blocked_message_rate * BLOCKED_RATE_PENALTY
            - pending_reviews * PENDING_REVIEW_PENALTY,
        )

        return {
            "total_active_users": UserRepository(db).count_active(),
            "messages_24h": messages_24h,
            "blocked_messages_24h": blocked_messages_24h,
            "pending_reviews": pending_reviews,
            "restricted_users": RestrictionRepository(db).count_restricted_users(),
            "blocked_message_rate": round(blocked_message_rate, 2),
            "health_score": math.floor(health_score + 0.5),
        }

    @staticmethod
    def get_user_history(db: Session, user_id: int, limit: int = 20) -> dict:
        """
        Moderation history for one user.

        Args:
            db: Database session
            user_id: ID of the user
            limit: Maximum entries per section

        Returns:
            Dict with violations, actions, active restrictions and warnings

        Raises:
            UserNotFoundException: If the user does not exist
        """
        from repositories.message_repository import MessageRepository
        from repositories.moderation_action_repository import (
            ModerationActionRepository,
        )
        from repositories.restriction_repository import RestrictionRepository
        from repositories.safety_log_repository import SafetyLogRepository
        from repositories.user_repository import UserRepository
        from repositories.warning_repository import WarningRepository

        user = UserRepository(db).get_by_id(user_id)
        if not user:
            raise UserNotFoundException(f"User {user_id} not found")

        violations = [
            {
                "id": log.id,
                "message_id": log.message_id,
                "violation_type": log.violation_type,
                "severity_level": log.severity_level,
                "flagged_terms": log.flagged_terms or [],
                "action_taken": log.action_taken,
                "created_at": log.created_at,
                "message_content": content,
                "message_created_at": message_created_at,
            }
            for log, content, message_created_at in SafetyLogRepository(
                db
            ).get_user_violations(user_id, limit=limit)
        ]

        message_ids = MessageRepository(db).get_sender_message_ids(user_id)
        actions = [
            {
                "id": action.id,
                "moderator_id": action.moderator_id,
                "moderator_name": moderator_name,
                "target_type": action.target_type,
                "target_id": action.target_id,
                "action_type": action.action_type,
                "reason": action.reason,
                "duration_hours": action.duration_hours,
                "notes": action.notes,
                "automated": action.automated,
                "created_at": action.created_at,
            }
            for action, moderator_name in ModerationActionRepository(
                db
            ).get_actions_for_user(user_id, message_ids, limit=limit)
        ]

        restrictions = RestrictionRepository(db).get_active_restrictions(
            user_id, datetime.now(timezone.utc)
        )

        warnings = [
            {
                "id": warning.id,
                "warning_type": warning.warning_type,
                "description": warning.description,
                "severity": warning.severity,
                "issued_by": warning.issued_by,
                "issued_by_name": issuer_name,
                "created_at": warning.created_at,
            }
            for warning, issuer_name in WarningRepository(db).get_user_warnings(
                user_id, limit=limit
            )
        ]

        return {
            "user_id": user.id,
            "display_name": user.display_name,
            "violations": violations,
            "actions": actions,
            "active_restrictions": restrictions,
            "warnings": warnings,
        }

    @staticmethod
    def get_flagged_content(
        db: Session, skip: int = 0, limit: int = 20
    ) -> tuple[list[dict], int]:
        """
        Get flagged messages awaiting a decision, least safe first.

        Returns:
            Tuple of (list of message dicts, total count)
        """
        from repositories.message_repository import MessageRepository

        rows, total = MessageRepository(db).get_flagged_messages(skip, limit)
        items = [
            {
                "id": message.id,
                "conversation_id": message.conversation_id,
                "sender_id": sender.id,
                "sender_name": sender.display_name,
                "content": message.content,
                "safety_score": message.safety_score,
                "flagged_terms": message.flagged_terms or [],
                "moderation_status": message.moderation_status,
                "created_at": message.created_at,
            }
            for message, sender in rows
        ]
        return items, total
