"""Models package - settings, pydantic schemas and domain exceptions."""

from .exceptions import DomainException, MessagingRestrictedException

__all__ = [
    "DomainException",
    "MessagingRestrictedException",
]
