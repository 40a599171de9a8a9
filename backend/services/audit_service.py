"""Service for audit logging of moderation and data-access events."""

from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


class AuditAction:
    """Audit action types emitted by messaging and moderation."""

    MESSAGE_BLOCKED = "message_blocked"
    MESSAGE_REPORTED = "message_reported"
    USER_AUTO_RESTRICTED = "user_auto_restricted"
    QUEUE_ITEM_ASSIGNED = "queue_item_assigned"
    MODERATION_ACTION = "moderation_action"
    FLAGGED_TERM_UPSERTED = "flagged_term_upserted"
    FLAGGED_TERM_DEACTIVATED = "flagged_term_deactivated"


class AuditService:
    """
    Best-effort audit sink.

    Records go to a dedicated ``audit`` logger binding so deployments can
    route them to separate storage. A failure to record is logged and never
    propagates to the caller.
    """

    @staticmethod
    def log_event(
        user_id: Optional[int],
        action: str,
        target_type: Optional[str] = None,
        target_id: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Log an audit event.

        Args:
            user_id: ID of the acting user (None for automatic actions).
            action: Type of action performed (see AuditAction).
            target_type: Type of entity acted upon.
            target_id: ID of the entity acted upon.
            details: Additional details about the action.
        """
        try:
            logger.bind(audit=True).info(
                "AUDIT {action}",
                action=action,
                timestamp=datetime.now(timezone.utc).isoformat(),
                user_id=user_id,
                target_type=target_type,
                target_id=target_id,
                details=details or {},
            )
        except Exception as e:
            logger.warning("Audit event could not be recorded", action=action, error=str(e))

    @staticmethod
    def log_data_access(
        user_id: int,
        resource: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Log read access to aggregated moderation data.

        Args:
            user_id: ID of the user reading the data.
            resource: Name of the resource read (e.g. "safety_stats").
            details: Query parameters or other context.
        """
        try:
            logger.bind(audit=True).info(
                "DATA ACCESS {resource}",
                resource=resource,
                timestamp=datetime.now(timezone.utc).isoformat(),
                user_id=user_id,
                details=details or {},
            )
        except Exception as e:
            logger.warning(
                "Data access could not be recorded", resource=resource, error=str(e)
            )
