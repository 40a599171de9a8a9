"""
Unit tests for MessageService and the send pipeline.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from models.exceptions import (
    ConversationInactiveException,
    ConversationNotFoundException,
    EmptyMessageException,
    MessageNotFoundException,
    MessageTooLongException,
    MessagingRestrictedException,
    NotParticipantException,
    PersistenceException,
)
from repositories.conversation_repository import ConversationRepository
from repositories.db_models import (
    FlaggedTerm,
    Message,
    MessageSafetyLog,
    ModerationQueueItem,
    ModerationStatus,
    QueueItemType,
    RestrictionType,
    SafetyAction,
    UserMessagingRestriction,
)
from services.message_service import (
    AUTO_MUTE_REASON,
    MessageService,
    moderation_status_for,
    queue_priority_for,
)
from services.safety_analyzer import SafetyAnalysis, Violation


def _naive_utc(dt: datetime) -> datetime:
    """SQLite hands datetimes back without tzinfo."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class TestModerationStatusAndPriority:
    """Tests for the pure verdict helpers."""

    def test_blocked_status(self):
        analysis = SafetyAnalysis(
            score=50, violations=[Violation("predatory_behavior", 5, ["x"])], is_blocked=True
        )
        assert moderation_status_for(analysis) == ModerationStatus.BLOCKED

    def test_no_match_stays_pending(self):
        """A message with no matches is not auto-approved."""
        assert moderation_status_for(SafetyAnalysis()) == ModerationStatus.PENDING

    @pytest.mark.parametrize(
        "severity,expected",
        [(1, 3), (2, 3), (3, 4), (4, 5), (5, 5)],
    )
    def test_queue_priority(self, severity, expected):
        analysis = SafetyAnalysis(violations=[Violation("spam", severity, ["x"])])
        assert queue_priority_for(analysis) == expected


class TestMessageServiceSendMessage:
    """Tests for MessageService.send_message"""

    def test_clean_message(self, db_session, test_user, conversation):
        """No matches: pending, score 100, no logs and no queue item."""
        message, analysis = MessageService.send_message(
            db_session, conversation.id, test_user.id, "hello bob"
        )

        assert message.id is not None
        assert message.safety_score == 100
        assert message.is_blocked is False
        assert message.moderation_status == ModerationStatus.PENDING
        assert message.flagged_terms == []
        assert analysis.violations == []
        assert db_session.query(MessageSafetyLog).count() == 0
        assert db_session.query(ModerationQueueItem).count() == 0

    def test_touches_conversation(self, db_session, test_user, conversation):
        assert conversation.last_message_at is None

        MessageService.send_message(db_session, conversation.id, test_user.id, "hi")

        db_session.refresh(conversation)
        assert conversation.last_message_at is not None

    def test_spam_message_is_flagged(
        self, db_session, test_user, conversation, make_term
    ):
        """Severity-2 spam: score 80, flagged, one log, priority 3 queue item."""
        make_term("spam", "spam", 2)

        message, analysis = MessageService.send_message(
            db_session, conversation.id, test_user.id, "this is spam"
        )

        assert message.safety_score == 80
        assert message.is_blocked is False
        assert message.moderation_status == ModerationStatus.FLAGGED
        assert message.flagged_terms == [
            {"term": "spam", "category": "spam", "severity": 2}
        ]

        logs = db_session.query(MessageSafetyLog).all()
        assert len(logs) == 1
        assert logs[0].message_id == message.id
        assert logs[0].user_id == test_user.id
        assert logs[0].violation_type == "spam"
        assert logs[0].severity_level == 2
        assert logs[0].flagged_terms == ["spam"]
        assert logs[0].action_taken == SafetyAction.FLAGGED

        item = db_session.query(ModerationQueueItem).one()
        assert item.item_type == QueueItemType.MESSAGE
        assert item.item_id == message.id
        assert item.priority == 3
        assert item.violation_types == ["spam"]
        assert item.safety_score == 80
        assert item.auto_flagged is True

        # Below the auto-mute bar
        assert db_session.query(UserMessagingRestriction).count() == 0

    def test_predatory_message_is_blocked_and_mutes_sender(
        self, db_session, test_user, conversation, make_term
    ):
        """Severity 5: blocked at score 50, priority 5 and a 24h auto-mute."""
        make_term("don't tell your parents", "predatory", 5)

        message, analysis = MessageService.send_message(
            db_session,
            conversation.id,
            test_user.id,
            "Don't tell your parents about this",
        )

        assert analysis.score == 50
        assert message.is_blocked is True
        assert message.moderation_status == ModerationStatus.BLOCKED

        log = db_session.query(MessageSafetyLog).one()
        assert log.action_taken == SafetyAction.BLOCKED
        assert log.violation_type == "predatory_behavior"

        item = db_session.query(ModerationQueueItem).one()
        assert item.priority == 5

        restriction = db_session.query(UserMessagingRestriction).one()
        assert restriction.user_id == test_user.id
        assert restriction.restriction_type == RestrictionType.TEMPORARY_MUTE
        assert restriction.reason == AUTO_MUTE_REASON
        assert restriction.is_permanent is False
        assert restriction.applied_by is None
        hours_left = (
            _naive_utc(restriction.restricted_until) - datetime.now(timezone.utc)
        ).total_seconds() / 3600
        assert 23 <= hours_left <= 24

    def test_severity_four_blocks_without_mute(
        self, db_session, test_user, conversation, make_term
    ):
        make_term("selling pills", "drugs", 4)

        message, _ = MessageService.send_message(
            db_session, conversation.id, test_user.id, "selling pills cheap"
        )

        assert message.is_blocked is True
        assert db_session.query(ModerationQueueItem).one().priority == 5
        assert db_session.query(UserMessagingRestriction).count() == 0

    def test_severity_three_priority_four(
        self, db_session, test_user, conversation, make_term
    ):
        make_term("loser", "harmful", 3)

        message, _ = MessageService.send_message(
            db_session, conversation.id, test_user.id, "you loser"
        )

        assert message.moderation_status == ModerationStatus.FLAGGED
        assert db_session.query(ModerationQueueItem).one().priority == 4

    def test_one_log_per_violation_type(
        self, db_session, test_user, conversation, make_term
    ):
        make_term("click here", "spam", 1)
        make_term("free money", "spam", 2)
        make_term("pills", "drugs", 1)

        MessageService.send_message(
            db_session, conversation.id, test_user.id, "click here: free money, pills"
        )

        logs = db_session.query(MessageSafetyLog).all()
        by_type = {log.violation_type: log for log in logs}
        assert set(by_type) == {"spam", "substance_offering"}
        assert by_type["spam"].severity_level == 2
        assert by_type["spam"].flagged_terms == ["click here", "free money"]

    def test_messages_are_analyzed_independently(
        self, db_session, test_user, other_user, conversation, make_term
    ):
        """Each message gets its own logs; the rule set is not modified."""
        term = make_term("spam", "spam", 2)

        first, _ = MessageService.send_message(
            db_session, conversation.id, test_user.id, "spam"
        )
        second, _ = MessageService.send_message(
            db_session, conversation.id, other_user.id, "more spam"
        )

        logs = db_session.query(MessageSafetyLog).order_by(MessageSafetyLog.id).all()
        assert [log.message_id for log in logs] == [first.id, second.id]
        assert [log.user_id for log in logs] == [test_user.id, other_user.id]

        stored = db_session.get(FlaggedTerm, term.id)
        assert stored.severity == 2
        assert stored.is_active is True

    def test_reply_to_message_in_same_conversation(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        parent = make_message(conversation.id, other_user.id, "question?")

        reply, _ = MessageService.send_message(
            db_session,
            conversation.id,
            test_user.id,
            "answer",
            parent_message_id=parent.id,
        )

        assert reply.parent_message_id == parent.id

    def test_reply_to_message_in_other_conversation(
        self, db_session, test_user, other_user, outsider_user, conversation, make_message
    ):
        from repositories.db_models import Conversation, ConversationParticipant

        elsewhere = Conversation(created_by=outsider_user.id)
        db_session.add(elsewhere)
        db_session.flush()
        db_session.add(
            ConversationParticipant(
                conversation_id=elsewhere.id, user_id=outsider_user.id
            )
        )
        db_session.commit()
        foreign = make_message(elsewhere.id, outsider_user.id, "not yours")

        with pytest.raises(MessageNotFoundException):
            MessageService.send_message(
                db_session,
                conversation.id,
                test_user.id,
                "reply",
                parent_message_id=foreign.id,
            )

    def test_empty_content(self, db_session, test_user, conversation):
        with pytest.raises(EmptyMessageException):
            MessageService.send_message(db_session, conversation.id, test_user.id, "   ")

    def test_content_too_long(self, db_session, test_user, conversation):
        with pytest.raises(MessageTooLongException):
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "x" * 5001
            )

    def test_conversation_not_found(self, db_session, test_user):
        with pytest.raises(ConversationNotFoundException):
            MessageService.send_message(db_session, 99999, test_user.id, "hello")

    def test_sender_not_participant(self, db_session, outsider_user, conversation):
        with pytest.raises(NotParticipantException):
            MessageService.send_message(
                db_session, conversation.id, outsider_user.id, "hello"
            )

        assert db_session.query(Message).count() == 0

    def test_inactive_conversation(self, db_session, test_user, conversation):
        conversation.is_active = False
        db_session.commit()

        with pytest.raises(ConversationInactiveException):
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "hello"
            )

    def test_muted_sender_is_rejected_without_side_effects(
        self, db_session, test_user, conversation, make_term
    ):
        """A restricted sender writes nothing: no message, log or queue item."""
        make_term("spam", "spam", 2)
        db_session.add(
            UserMessagingRestriction(
                user_id=test_user.id,
                restriction_type=RestrictionType.TEMPORARY_MUTE,
                reason="Cool down",
                restricted_until=datetime.now(timezone.utc) + timedelta(hours=2),
                is_permanent=False,
            )
        )
        db_session.commit()

        with pytest.raises(MessagingRestrictedException) as exc_info:
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "spam"
            )

        assert exc_info.value.restriction_type == "temporary_mute"
        assert exc_info.value.reason == "Cool down"
        assert exc_info.value.is_permanent is False
        assert db_session.query(Message).count() == 0
        assert db_session.query(MessageSafetyLog).count() == 0
        assert db_session.query(ModerationQueueItem).count() == 0

    def test_banned_sender_is_rejected(self, db_session, test_user, conversation):
        db_session.add(
            UserMessagingRestriction(
                user_id=test_user.id,
                restriction_type=RestrictionType.BANNED,
                reason="Banned",
                is_permanent=True,
            )
        )
        db_session.commit()

        with pytest.raises(MessagingRestrictedException) as exc_info:
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "hello"
            )

        assert exc_info.value.to_payload() == {
            "restriction_type": "banned",
            "reason": "Banned",
            "restricted_until": None,
            "is_permanent": True,
        }

    def test_expired_restriction_does_not_block(
        self, db_session, test_user, conversation
    ):
        db_session.add(
            UserMessagingRestriction(
                user_id=test_user.id,
                restriction_type=RestrictionType.TEMPORARY_MUTE,
                reason="Old mute",
                restricted_until=datetime.now(timezone.utc) - timedelta(minutes=1),
                is_permanent=False,
            )
        )
        db_session.commit()

        message, _ = MessageService.send_message(
            db_session, conversation.id, test_user.id, "back again"
        )

        assert message.id is not None

    def test_auto_mute_blocks_next_send(
        self, db_session, test_user, conversation, make_term
    ):
        make_term("send me a picture", "predatory", 5)
        MessageService.send_message(
            db_session, conversation.id, test_user.id, "send me a picture"
        )

        with pytest.raises(MessagingRestrictedException):
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "hello?"
            )

    def test_failure_inside_transaction_rolls_back_everything(
        self, db_session, test_user, conversation, make_term, monkeypatch
    ):
        """A storage error mid-pipeline leaves no partial rows behind."""
        make_term("kill yourself", "harmful", 5)

        def _fail(self, conversation_id, at):
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ConversationRepository, "touch_last_message", _fail)

        with pytest.raises(PersistenceException):
            MessageService.send_message(
                db_session, conversation.id, test_user.id, "kill yourself"
            )

        assert db_session.query(Message).count() == 0
        assert db_session.query(MessageSafetyLog).count() == 0
        assert db_session.query(ModerationQueueItem).count() == 0
        assert db_session.query(UserMessagingRestriction).count() == 0

    def test_storage_failure_in_analysis_fails_open(
        self, db_session, test_user, conversation, make_term, monkeypatch
    ):
        """Rule lookup failure still delivers the message as safe."""
        from repositories.flagged_term_repository import FlaggedTermRepository

        make_term("spam", "spam", 5)

        def _fail(self):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(FlaggedTermRepository, "get_active_terms", _fail)

        message, analysis = MessageService.send_message(
            db_session, conversation.id, test_user.id, "spam"
        )

        assert message.safety_score == 100
        assert message.is_blocked is False
        assert analysis.violations == []

    def test_audit_failure_does_not_abort_send(
        self, db_session, test_user, conversation, make_term, monkeypatch
    ):
        """Blocking and auto-muting still commit when the audit sink is down."""
        from services import audit_service

        make_term("don't tell your parents", "predatory", 5)

        def _fail(*args, **kwargs):
            raise RuntimeError("audit sink unavailable")

        monkeypatch.setattr(audit_service.logger, "bind", _fail)

        message, analysis = MessageService.send_message(
            db_session,
            conversation.id,
            test_user.id,
            "don't tell your parents",
        )

        assert analysis.is_blocked is True
        assert db_session.query(Message).one().id == message.id
        assert db_session.query(ModerationQueueItem).count() == 1
        assert db_session.query(UserMessagingRestriction).count() == 1


class TestMessageServiceGetMessages:
    """Tests for MessageService.get_messages"""

    def test_oldest_first_within_page(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        base = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        for i in range(3):
            make_message(
                conversation.id,
                test_user.id,
                f"msg {i}",
                created_at=base + timedelta(minutes=i),
            )

        rows = MessageService.get_messages(db_session, conversation.id, other_user)

        assert [m.content for m, _ in rows] == ["msg 0", "msg 1", "msg 2"]
        assert all(sender.id == test_user.id for _, sender in rows)

    def test_pages_run_newest_first(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        base = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        for i in range(5):
            make_message(
                conversation.id,
                test_user.id,
                f"msg {i}",
                created_at=base + timedelta(minutes=i),
            )

        first_page = MessageService.get_messages(
            db_session, conversation.id, other_user, skip=0, limit=2
        )
        second_page = MessageService.get_messages(
            db_session, conversation.id, other_user, skip=2, limit=2
        )

        assert [m.content for m, _ in first_page] == ["msg 3", "msg 4"]
        assert [m.content for m, _ in second_page] == ["msg 1", "msg 2"]

    def test_blocked_messages_only_visible_to_sender(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        make_message(conversation.id, test_user.id, "visible")
        make_message(
            conversation.id,
            test_user.id,
            "blocked",
            is_blocked=True,
            moderation_status=ModerationStatus.BLOCKED,
        )

        sender_view = MessageService.get_messages(db_session, conversation.id, test_user)
        recipient_view = MessageService.get_messages(
            db_session, conversation.id, other_user
        )

        assert {m.content for m, _ in sender_view} == {"visible", "blocked"}
        assert [m.content for m, _ in recipient_view] == ["visible"]

    def test_deleted_messages_hidden(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        make_message(conversation.id, test_user.id, "gone", is_deleted=True)

        assert MessageService.get_messages(db_session, conversation.id, test_user) == []

    def test_since_filter(
        self, db_session, test_user, other_user, conversation, make_message
    ):
        base = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        make_message(conversation.id, test_user.id, "old", created_at=base)
        make_message(
            conversation.id,
            test_user.id,
            "new",
            created_at=base + timedelta(hours=1),
        )

        rows = MessageService.get_messages(
            db_session,
            conversation.id,
            other_user,
            since=base + timedelta(minutes=30),
        )

        assert [m.content for m, _ in rows] == ["new"]

    def test_non_participant_cannot_read(
        self, db_session, outsider_user, conversation
    ):
        with pytest.raises(NotParticipantException):
            MessageService.get_messages(db_session, conversation.id, outsider_user)
