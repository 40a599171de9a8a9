from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from repositories.db_models import (
    ModerationActionType,
    ModerationStatus,
    QueueItemStatus,
    QueueItemType,
    ReportStatus,
    RestrictionType,
    SafetyAction,
    TargetType,
)


class ApiModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# --- Message Schemas ---


class MessageCreate(ApiModel):
    """Schema for sending a message."""

    content: str
    message_type: str = Field("text", max_length=20)
    parent_message_id: Optional[int] = None


class MessageResponse(ApiModel):
    """
    Message as seen by conversation participants.

    Safety fields are only populated for moderators; endpoints exclude
    unset fields so other readers never see them.
    """

    id: int
    conversation_id: int
    sender_id: int
    sender_name: Optional[str] = None
    content: str
    message_type: str
    is_blocked: bool
    parent_message_id: Optional[int]
    created_at: datetime
    safety_score: Optional[int] = None
    flagged_terms: Optional[List[dict]] = None
    moderation_status: Optional[ModerationStatus] = None


class ViolationResponse(ApiModel):
    type: str
    severity: int
    terms: List[str]


class SafetyInfo(ApiModel):
    """Safety verdict attached to a send response."""

    is_blocked: bool
    safety_score: int
    moderation_status: ModerationStatus
    violations: Optional[List[ViolationResponse]] = None


class MessageSendResponse(ApiModel):
    """
    Result of a send.

    message_data is null when the message was blocked.
    """

    message_data: Optional[MessageResponse]
    safety_info: SafetyInfo
    detail: Optional[str] = None


# --- Report Schemas ---


class ReportCreate(ApiModel):
    """Schema for reporting a message."""

    report_type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)


class ReportResponse(ApiModel):
    id: int
    message_id: int
    reported_by: int
    report_type: str
    description: Optional[str]
    status: ReportStatus
    created_at: datetime


# --- Moderation Queue Schemas ---


class QueueItemResponse(ApiModel):
    """Queue item with a preview of the content under review."""

    id: int
    item_type: QueueItemType
    item_id: int
    priority: int
    violation_types: List[str]
    safety_score: Optional[int]
    auto_flagged: bool
    status: QueueItemStatus
    assigned_to: Optional[int]
    assigned_to_name: Optional[str] = None
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    item_details: Optional[dict[str, Any]] = None


class QueueListResponse(ApiModel):
    items: List[QueueItemResponse]
    total: int
    page: int
    limit: int


class QueueAssign(ApiModel):
    """Assign a queue item; defaults to the caller."""

    assign_to_id: Optional[int] = None


# --- Moderation Action Schemas ---


class ModerationActionCreate(ApiModel):
    """Schema for executing a moderation action."""

    target_type: TargetType
    target_id: int
    action_type: ModerationActionType
    reason: str = Field(..., min_length=1, max_length=2000)
    duration_hours: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None, max_length=2000)
    queue_item_id: Optional[int] = None


class ModerationActionResponse(ApiModel):
    id: int
    moderator_id: Optional[int]
    target_type: TargetType
    target_id: int
    action_type: ModerationActionType
    reason: str
    duration_hours: Optional[int]
    notes: Optional[str]
    automated: bool
    created_at: datetime


# --- Flagged Term Schemas ---


class FlaggedTermCreate(ApiModel):
    """Upsert a flagged term."""

    term: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=50)
    severity: int = Field(..., ge=1, le=5)
    is_regex: bool = False

    @field_validator("term", "category")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class FlaggedTermResponse(ApiModel):
    id: int
    term: str
    category: str
    severity: int
    is_regex: bool
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime]


# --- Restriction / History Schemas ---


class RestrictionResponse(ApiModel):
    id: int
    user_id: int
    restriction_type: RestrictionType
    reason: str
    restricted_until: Optional[datetime]
    is_permanent: bool
    applied_by: Optional[int]
    created_at: datetime


class SafetyLogEntry(ApiModel):
    id: int
    message_id: int
    violation_type: str
    severity_level: int
    flagged_terms: List[str]
    action_taken: SafetyAction
    created_at: datetime
    message_content: Optional[str] = None
    message_created_at: Optional[datetime] = None


class UserActionEntry(ModerationActionResponse):
    moderator_name: Optional[str] = None


class WarningEntry(ApiModel):
    id: int
    warning_type: str
    description: str
    severity: int
    issued_by: int
    issued_by_name: Optional[str] = None
    created_at: datetime


class UserModerationHistory(ApiModel):
    user_id: int
    display_name: str
    violations: List[SafetyLogEntry]
    actions: List[UserActionEntry]
    active_restrictions: List[RestrictionResponse]
    warnings: List[WarningEntry]


class FlaggedMessage(ApiModel):
    id: int
    conversation_id: int
    sender_id: int
    sender_name: str
    content: str
    safety_score: int
    flagged_terms: List[dict]
    moderation_status: ModerationStatus
    created_at: datetime


class FlaggedContentResponse(ApiModel):
    items: List[FlaggedMessage]
    total: int
    page: int
    limit: int


# --- Statistics Schemas ---


class ViolationCount(ApiModel):
    violation_type: str
    severity_level: int
    count: int


class ViolationTrend(ViolationCount):
    block_rate: float


class ReportCount(ApiModel):
    report_type: str
    status: str
    count: int


class SafetyStats(ApiModel):
    period: str
    since: datetime
    violations: List[ViolationCount]
    blocked_messages: int
    reports: List[ReportCount]


class QueueBacklog(ApiModel):
    total: int
    high_priority: int
    by_type: dict[str, int]


class ActionSummary(ApiModel):
    action_type: str
    count: int
    automated_count: int


class WarningSummary(ApiModel):
    warning_type: str
    count: int
    avg_severity: float


class DashboardStats(ApiModel):
    period: str
    since: datetime
    queue: QueueBacklog
    violation_trends: List[ViolationTrend]
    action_summary: List[ActionSummary]
    warnings_summary: List[WarningSummary]
    restricted_users: int


class PlatformHealth(ApiModel):
    total_active_users: int
    messages_24h: int = Field(..., alias="messages24h")
    blocked_messages_24h: int = Field(..., alias="blockedMessages24h")
    pending_reviews: int
    restricted_users: int
    blocked_message_rate: float
    health_score: int = Field(..., ge=0, le=100)
