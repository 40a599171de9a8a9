"""
Custom domain exceptions for the application.

These exceptions are raised by the service layer and converted to HTTP exceptions
by centralized exception handlers in main.py, maintaining proper separation of concerns.

The authentication module (auth.py) also uses these domain exceptions to remain
HTTP-agnostic, allowing reuse in non-HTTP contexts (CLI tools, background tasks).

Enhanced with correlation IDs for Sentry integration and user error reporting.
"""

from datetime import datetime
from typing import Any, Optional

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class PermissionDeniedException(DomainException):
    """Raised when user lacks required permissions."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


class ConflictException(DomainException):
    """Raised when operation conflicts with existing data."""

    pass


class AuthenticationException(DomainException):
    """Raised when authentication fails."""

    pass


class PersistenceException(DomainException):
    """Raised when a transactional write fails and has been rolled back."""

    pass


# Specific exceptions for identity


class UserNotFoundException(NotFoundException):
    """User not found."""

    pass


class InactiveUserException(PermissionDeniedException):
    """User account is inactive."""

    pass


class InsufficientPermissionsException(PermissionDeniedException):
    """User doesn't have sufficient permissions."""

    pass


# ============================================================================
# Messaging Exceptions
# ============================================================================


class ConversationNotFoundException(NotFoundException):
    """Raised when a conversation does not exist."""

    def __init__(self, conversation_id: int):
        super().__init__("Conversation not found")
        self.conversation_id = conversation_id


class MessageNotFoundException(NotFoundException):
    """Raised when a message does not exist."""

    def __init__(self, message_id: int):
        super().__init__("Message not found")
        self.message_id = message_id


class NotParticipantException(PermissionDeniedException):
    """Raised when the caller is not part of the conversation."""

    def __init__(
        self, message: str = "You are not a participant in this conversation"
    ):
        super().__init__(message)


class ConversationInactiveException(PermissionDeniedException):
    """Raised when sending into a conversation that has been closed."""

    def __init__(self, message: str = "This conversation is no longer active"):
        super().__init__(message)


class EmptyMessageException(ValidationException):
    """Raised when message content is missing or whitespace only."""

    def __init__(self, message: str = "Message content is required"):
        super().__init__(message)


class MessageTooLongException(ValidationException):
    """Raised when message content exceeds the configured maximum."""

    def __init__(self, max_length: int):
        super().__init__(f"Message content exceeds {max_length} characters")
        self.max_length = max_length


class MessagingRestrictedException(PermissionDeniedException):
    """
    Raised when a user with an active mute or ban tries to send.

    Carries the restriction so the handler can return it to the client.
    """

    def __init__(
        self,
        restriction_type: str,
        reason: str,
        restricted_until: Optional[datetime],
        is_permanent: bool,
    ):
        super().__init__("Messaging is currently restricted")
        self.restriction_type = restriction_type
        self.reason = reason
        self.restricted_until = restricted_until
        self.is_permanent = is_permanent

    def to_payload(self) -> dict[str, Any]:
        """Serialize restriction details for the API response."""
        return {
            "restriction_type": self.restriction_type,
            "reason": self.reason,
            "restricted_until": (
                self.restricted_until.isoformat() if self.restricted_until else None
            ),
            "is_permanent": self.is_permanent,
        }


class PostNotFoundException(NotFoundException):
    """Raised when a community post does not exist."""

    def __init__(self, post_id: int):
        super().__init__("Post not found")
        self.post_id = post_id


class DuplicateReportException(ConflictException):
    """Raised when a user reports the same message twice."""

    def __init__(self, message: str = "You have already reported this message"):
        super().__init__(message)


# ============================================================================
# Moderation Exceptions
# ============================================================================


class QueueItemNotFoundException(NotFoundException):
    """Raised when a moderation queue item does not exist."""

    def __init__(self, item_id: int):
        super().__init__(f"Queue item {item_id} not found")
        self.item_id = item_id


class QueueItemUnavailableException(NotFoundException):
    """
    Raised when a queue item cannot be claimed.

    Covers both a missing item and one another moderator already claimed;
    losing the claim race is an expected outcome.
    """

    def __init__(self, item_id: int):
        super().__init__("Queue item not found or already assigned")
        self.item_id = item_id


class InvalidModerationActionException(ValidationException):
    """Raised when a moderation action request is incomplete or inconsistent."""

    pass


class FlaggedTermNotFoundException(NotFoundException):
    """Raised when a flagged term is not found."""

    def __init__(self, term_id: int):
        super().__init__(f"Flagged term with ID {term_id} not found")
        self.term_id = term_id


class InvalidRegexException(ValidationException):
    """Raised when regex pattern is invalid."""

    def __init__(self, pattern: str, error: str):
        super().__init__(f"Invalid regex pattern '{pattern}': {error}")
        self.pattern = pattern
        self.error = error


class InvalidPeriodException(ValidationException):
    """Raised when a statistics period is not one of the supported windows."""

    def __init__(self, period: str, allowed: list[str]):
        super().__init__(
            f"Invalid period '{period}'. Allowed values: {', '.join(allowed)}"
        )
        self.period = period
