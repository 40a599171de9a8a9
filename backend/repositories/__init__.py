"""
Repository pattern implementation for data access layer.
"""

from .base import BaseRepository
from .conversation_repository import ConversationRepository
from .flagged_term_repository import FlaggedTermRepository
from .message_repository import MessageRepository
from .moderation_action_repository import ModerationActionRepository
from .moderation_queue_repository import ModerationQueueRepository
from .post_repository import PostRepository
from .report_repository import ReportRepository
from .restriction_repository import RestrictionRepository
from .safety_log_repository import SafetyLogRepository
from .user_repository import UserRepository
from .warning_repository import WarningRepository

__all__ = [
    "BaseRepository",
    "ConversationRepository",
    "FlaggedTermRepository",
    "MessageRepository",
    "ModerationActionRepository",
    "ModerationQueueRepository",
    "PostRepository",
    "ReportRepository",
    "RestrictionRepository",
    "SafetyLogRepository",
    "UserRepository",
    "WarningRepository",
]
