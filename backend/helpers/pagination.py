"""
Standardized page-based pagination parameters.
"""

from fastapi import Query
from typing import Annotated

# 1-based page number
PaginationPage = Annotated[int, Query(ge=1, description="Page number (1-based)")]

# Standard page size for moderation lists
PaginationLimit = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of records to return")
]

# Page size for conversation history
PaginationLimitMessages = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of messages to return")
]


def page_to_skip(page: int, limit: int) -> int:
    """
    Convert a 1-based page number to an offset.

    Args:
        page: Page number, starting at 1
        limit: Page size

    Returns:
        Number of records to skip
    """
    return (max(page, 1) - 1) * limit
