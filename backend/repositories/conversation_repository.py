"""
Repository for conversation and participant lookups.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Conversation, ConversationParticipant


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation entity database operations."""

    def __init__(self, db: Session):
        super().__init__(Conversation, db)

    def is_participant(self, conversation_id: int, user_id: int) -> bool:
        """
        Check whether a user belongs to a conversation.

        Args:
            conversation_id: ID of the conversation
            user_id: ID of the user

        Returns:
            True if the user is a participant
        """
        return (
            self.db.query(ConversationParticipant.id)
            .filter(
                ConversationParticipant.conversation_id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .first()
            is not None
        )

    def get_participant_ids(self, conversation_id: int) -> list[int]:
        """Get the user IDs of every participant."""
        rows = (
            self.db.query(ConversationParticipant.user_id)
            .filter(ConversationParticipant.conversation_id == conversation_id)
            .all()
        )
        return [row[0] for row in rows]

    def touch_last_message(self, conversation_id: int, at: datetime) -> None:
        """Stage an update of last_message_at. Does not commit."""
        self.db.query(Conversation).filter(Conversation.id == conversation_id).update(
            {Conversation.last_message_at: at}, synchronize_session=False
        )
