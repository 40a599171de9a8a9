"""
Unit tests for FlaggedTermService.
"""

import pytest

from models.exceptions import FlaggedTermNotFoundException, InvalidRegexException
from repositories.db_models import FlaggedTerm
from services.flagged_term_service import FlaggedTermService
from services.safety_analyzer import SafetyAnalyzer


class TestFlaggedTermServiceUpsert:
    """Tests for FlaggedTermService.upsert_term"""

    def test_creates_term(self, db_session, moderator_user):
        term = FlaggedTermService.upsert_term(
            db_session,
            term="buy followers",
            category="spam",
            severity=2,
            is_regex=False,
            admin_id=moderator_user.id,
        )

        assert term.id is not None
        assert term.term == "buy followers"
        assert term.category == "spam"
        assert term.severity == 2
        assert term.is_active is True

    def test_overwrites_existing_term(self, db_session, moderator_user, make_term):
        """Same text updates the row in place instead of adding a second."""
        original = make_term("buy followers", "spam", 2)

        updated = FlaggedTermService.upsert_term(
            db_session,
            term="buy followers",
            category="harmful",
            severity=4,
            is_regex=False,
            admin_id=moderator_user.id,
        )

        assert updated.id == original.id
        assert updated.category == "harmful"
        assert updated.severity == 4
        assert updated.updated_at is not None
        assert db_session.query(FlaggedTerm).count() == 1

    def test_reactivates_term(self, db_session, moderator_user, make_term):
        make_term("old rule", "spam", 1, is_active=False)

        term = FlaggedTermService.upsert_term(
            db_session,
            term="old rule",
            category="spam",
            severity=1,
            is_regex=False,
            admin_id=moderator_user.id,
        )

        assert term.is_active is True

    def test_rejects_invalid_regex(self, db_session, moderator_user):
        with pytest.raises(InvalidRegexException):
            FlaggedTermService.upsert_term(
                db_session,
                term="(unclosed",
                category="spam",
                severity=2,
                is_regex=True,
                admin_id=moderator_user.id,
            )

        assert db_session.query(FlaggedTerm).count() == 0

    def test_new_term_applies_to_next_analysis(self, db_session, moderator_user):
        FlaggedTermService.upsert_term(
            db_session,
            term=r"venmo\s+me",
            category="contact_exchange",
            severity=2,
            is_regex=True,
            admin_id=moderator_user.id,
        )

        analysis = SafetyAnalyzer.analyze_message(db_session, "just Venmo   me")

        assert analysis.violations[0].type == "suspicious_contact_exchange"


class TestFlaggedTermServiceListAndDeactivate:
    """Tests for listing and deactivating terms."""

    def test_list_ordered_by_term(self, db_session, make_term):
        make_term("zebra", "spam", 1)
        make_term("apple", "spam", 1)
        make_term("mango", "spam", 1, is_active=False)

        all_terms = FlaggedTermService.list_terms(db_session)
        active = FlaggedTermService.list_terms(db_session, active_only=True)

        assert [t.term for t in all_terms] == ["apple", "mango", "zebra"]
        assert [t.term for t in active] == ["apple", "zebra"]

    def test_deactivate(self, db_session, moderator_user, make_term):
        term = make_term("spam", "spam", 2)

        result = FlaggedTermService.deactivate_term(
            db_session, term.id, moderator_user.id
        )

        assert result.is_active is False
        # Never deleted
        assert db_session.query(FlaggedTerm).count() == 1
        assert SafetyAnalyzer.analyze_message(db_session, "spam").score == 100

    def test_deactivate_missing(self, db_session, moderator_user):
        with pytest.raises(FlaggedTermNotFoundException):
            FlaggedTermService.deactivate_term(db_session, 99999, moderator_user.id)
