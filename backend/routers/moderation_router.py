"""
Router for moderator endpoints: review queue, actions, rule set and statistics.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import PaginationLimit, PaginationPage, page_to_skip
from helpers.time_utils import DEFAULT_STATS_PERIOD
from repositories.database import get_db
from services.audit_service import AuditService
from services.flagged_term_service import FlaggedTermService
from services.moderation_action_service import ModerationActionService
from services.moderation_queue_service import ModerationQueueService
from services.safety_stats_service import SafetyStatsService

router = APIRouter(prefix="/moderation", tags=["moderation"])

ALL_STATUSES = "all"


# ============================================================================
# Moderation Queue Endpoints
# ============================================================================


@router.get("/queue", response_model=schemas.QueueListResponse)
def get_moderation_queue(
    queue_status: str = Query(
        db_models.QueueItemStatus.PENDING.value,
        alias="status",
        pattern="^(pending|in_review|resolved|all)$",
    ),
    item_type: Optional[db_models.QueueItemType] = Query(None, alias="itemType"),
    priority: Optional[int] = Query(None, ge=1, le=5),
    assigned_to_me: bool = Query(False, alias="assignedToMe"),
    page: PaginationPage = 1,
    limit: PaginationLimit = 20,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """
    Get the review queue.

    Ordered by priority (highest first), then oldest first. Defaults to
    pending items; status=all disables the status filter.
    """
    items, total = ModerationQueueService.list_items(
        db,
        status=(
            None
            if queue_status == ALL_STATUSES
            else db_models.QueueItemStatus(queue_status)
        ),
        item_type=item_type,
        min_priority=priority,
        assigned_to=current_user.id if assigned_to_me else None,
        skip=page_to_skip(page, limit),
        limit=limit,
    )
    return {"items": items, "total": total, "page": page, "limit": limit}


@router.post("/queue/{item_id}/assign", response_model=schemas.QueueItemResponse)
def assign_queue_item(
    item_id: int,
    assign_data: Optional[schemas.QueueAssign] = None,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> db_models.ModerationQueueItem:
    """
    Claim a pending queue item.

    Returns 404 if the item does not exist or another moderator already
    claimed it.
    """
    return ModerationQueueService.assign(
        db,
        item_id=item_id,
        moderator_id=current_user.id,
        assign_to_id=assign_data.assign_to_id if assign_data else None,
    )


# ============================================================================
# Moderation Action Endpoints
# ============================================================================


@router.post(
    "/actions",
    response_model=schemas.ModerationActionResponse,
    status_code=status.HTTP_201_CREATED,
)
def execute_moderation_action(
    action_data: schemas.ModerationActionCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> db_models.ModerationAction:
    """
    Apply a moderation decision.

    Actions: delete_content, ban, mute, warn, approve_content. Passing
    queueItemId resolves that queue item in the same transaction.
    """
    return ModerationActionService.execute_action(
        db,
        moderator_id=current_user.id,
        target_type=action_data.target_type,
        target_id=action_data.target_id,
        action_type=action_data.action_type,
        reason=action_data.reason,
        duration_hours=action_data.duration_hours,
        notes=action_data.notes,
        queue_item_id=action_data.queue_item_id,
    )


# ============================================================================
# Flagged Term Endpoints
# ============================================================================


@router.get("/flagged-terms", response_model=list[schemas.FlaggedTermResponse])
def get_flagged_terms(
    active_only: bool = Query(False, alias="activeOnly"),
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> list[db_models.FlaggedTerm]:
    """Get the flagged term rule set, ordered by term."""
    return FlaggedTermService.list_terms(db, active_only=active_only)


@router.post(
    "/flagged-terms",
    response_model=schemas.FlaggedTermResponse,
    status_code=status.HTTP_201_CREATED,
)
def upsert_flagged_term(
    term_data: schemas.FlaggedTermCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> db_models.FlaggedTerm:
    """Add a flagged term, or overwrite the existing term with the same text."""
    return FlaggedTermService.upsert_term(
        db,
        term=term_data.term,
        category=term_data.category,
        severity=term_data.severity,
        is_regex=term_data.is_regex,
        admin_id=current_user.id,
    )


@router.post(
    "/flagged-terms/{term_id}/deactivate",
    response_model=schemas.FlaggedTermResponse,
)
def deactivate_flagged_term(
    term_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> db_models.FlaggedTerm:
    """Deactivate a flagged term. Terms are never deleted."""
    return FlaggedTermService.deactivate_term(db, term_id, current_user.id)


# ============================================================================
# Review Content & History Endpoints
# ============================================================================


@router.get("/flagged-content", response_model=schemas.FlaggedContentResponse)
def get_flagged_content(
    page: PaginationPage = 1,
    limit: PaginationLimit = 20,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """Get flagged messages, least safe first."""
    items, total = SafetyStatsService.get_flagged_content(
        db, skip=page_to_skip(page, limit), limit=limit
    )
    return {"items": items, "total": total, "page": page, "limit": limit}


@router.get(
    "/users/{user_id}/history", response_model=schemas.UserModerationHistory
)
def get_user_history(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """Get a user's violations, actions, active restrictions and warnings."""
    AuditService.log_data_access(
        current_user.id, "user_moderation_history", {"user_id": user_id}
    )
    return SafetyStatsService.get_user_history(db, user_id)


# ============================================================================
# Statistics Endpoints
# ============================================================================


@router.get("/safety-stats", response_model=schemas.SafetyStats)
def get_safety_stats(
    period: str = Query(DEFAULT_STATS_PERIOD, description="1h, 24h, 7d, 30d or 90d"),
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """Get violation, blocked message and report counts for a period."""
    stats = SafetyStatsService.get_safety_stats(db, period)
    AuditService.log_data_access(current_user.id, "safety_stats", {"period": period})
    return stats


@router.get("/dashboard-stats", response_model=schemas.DashboardStats)
def get_dashboard_stats(
    period: str = Query(DEFAULT_STATS_PERIOD, description="1h, 24h, 7d, 30d or 90d"),
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """Get the moderator dashboard overview."""
    stats = SafetyStatsService.get_dashboard_stats(db, period)
    AuditService.log_data_access(
        current_user.id, "dashboard_stats", {"period": period}
    )
    return stats


@router.get("/platform-health", response_model=schemas.PlatformHealth)
def get_platform_health(
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_moderator_user),
) -> dict:
    """Get 24-hour message volume, block rate, backlog and a 0-100 health score."""
    health = SafetyStatsService.get_platform_health(db)
    AuditService.log_data_access(current_user.id, "platform_health", {})
    return health
