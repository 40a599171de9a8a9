"""
Repository for the community posts moderation can act on.
"""

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import CommunityPost


class PostRepository(BaseRepository[CommunityPost]):
    """Repository for CommunityPost entity database operations."""

    def __init__(self, db: Session):
        super().__init__(CommunityPost, db)

    def soft_delete(self, post_id: int) -> bool:
        """
        Mark a post deleted. Does not commit.

        Returns:
            True if a post was updated
        """
        updated = (
            self.db.query(CommunityPost)
            .filter(CommunityPost.id == post_id)
            .update({CommunityPost.is_deleted: True}, synchronize_session=False)
        )
        return updated > 0
