"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .audit_service import AuditService
from .flagged_term_service import FlaggedTermService
from .message_service import MessageService
from .moderation_action_service import ModerationActionService
from .moderation_queue_service import ModerationQueueService
from .report_service import ReportService
from .restriction_service import RestrictionService
from .safety_analyzer import SafetyAnalyzer
from .safety_stats_service import SafetyStatsService

__all__ = [
    "AuditService",
    "FlaggedTermService",
    "MessageService",
    "ModerationActionService",
    "ModerationQueueService",
    "ReportService",
    "RestrictionService",
    "SafetyAnalyzer",
    "SafetyStatsService",
]
