"""
Tests for ModerationQueueRepository.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from repositories.db_models import ModerationQueueItem, QueueItemStatus, QueueItemType
from repositories.moderation_queue_repository import ModerationQueueRepository


@pytest.fixture
def pending_item(db_session) -> ModerationQueueItem:
    item = ModerationQueueItem(
        item_type=QueueItemType.MESSAGE,
        item_id=1,
        priority=4,
        violation_types=["spam"],
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


class TestModerationQueueRepositoryClaim:
    """Tests for the conditional claim update."""

    def test_claim_pending_item(self, db_session, pending_item, moderator_user):
        repo = ModerationQueueRepository(db_session)

        assert repo.claim(pending_item.id, moderator_user.id, datetime.now(timezone.utc))
        db_session.commit()

        db_session.refresh(pending_item)
        assert pending_item.status == QueueItemStatus.IN_REVIEW
        assert pending_item.assigned_to == moderator_user.id

    def test_claim_from_two_sessions(
        self, db_session, pending_item, moderator_user, second_moderator
    ):
        """Two sessions racing for the same row: exactly one claim lands."""
        other_session = sessionmaker(bind=db_session.get_bind())()
        now = datetime.now(timezone.utc)
        try:
            first = ModerationQueueRepository(db_session).claim(
                pending_item.id, moderator_user.id, now
            )
            db_session.commit()
            second = ModerationQueueRepository(other_session).claim(
                pending_item.id, second_moderator.id, now
            )
            other_session.commit()
        finally:
            other_session.close()

        assert (first, second) == (True, False)
        db_session.refresh(pending_item)
        assert pending_item.assigned_to == moderator_user.id

    def test_claim_in_review_item_fails(
        self, db_session, pending_item, moderator_user
    ):
        pending_item.status = QueueItemStatus.IN_REVIEW
        db_session.commit()

        assert not ModerationQueueRepository(db_session).claim(
            pending_item.id, moderator_user.id, datetime.now(timezone.utc)
        )

    def test_claim_missing_item(self, db_session, moderator_user):
        assert not ModerationQueueRepository(db_session).claim(
            99999, moderator_user.id, datetime.now(timezone.utc)
        )


class TestModerationQueueRepositoryStats:
    """Tests for the pending backlog summary."""

    def test_pending_stats(self, db_session, pending_item):
        db_session.add_all(
            [
                ModerationQueueItem(
                    item_type=QueueItemType.USER_REPORT, item_id=2, priority=3
                ),
                ModerationQueueItem(
                    item_type=QueueItemType.POST,
                    item_id=3,
                    priority=5,
                    status=QueueItemStatus.RESOLVED,
                ),
            ]
        )
        db_session.commit()

        stats = ModerationQueueRepository(db_session).get_pending_stats()

        assert stats["total"] == 2
        assert stats["high_priority"] == 1
        assert stats["by_type"] == {"message": 1, "post": 0, "user_report": 1}
