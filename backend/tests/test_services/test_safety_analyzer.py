"""
Unit tests for SafetyAnalyzer.
"""

from sqlalchemy.exc import OperationalError

from repositories.db_models import FlaggedTerm
from repositories.flagged_term_repository import FlaggedTermRepository
from services.safety_analyzer import (
    DEFAULT_VIOLATION_TYPE,
    LiteralTermMatcher,
    RegexTermMatcher,
    SafetyAnalyzer,
    build_matcher,
    violation_type_for,
)


class TestViolationTypeMapping:
    """Tests for category -> violation type mapping."""

    def test_known_categories(self):
        assert violation_type_for("drugs") == "substance_offering"
        assert violation_type_for("dealing") == "drug_dealing"
        assert violation_type_for("contact_exchange") == "suspicious_contact_exchange"
        assert violation_type_for("predatory") == "predatory_behavior"
        assert violation_type_for("spam") == "spam"
        assert violation_type_for("harmful") == "inappropriate_content"

    def test_unmapped_category_falls_back(self):
        """Unknown categories map to inappropriate_content."""
        assert violation_type_for("made_up") == DEFAULT_VIOLATION_TYPE
        assert DEFAULT_VIOLATION_TYPE == "inappropriate_content"


class TestTermMatchers:
    """Tests for literal and regex matchers."""

    def test_literal_is_case_insensitive_substring(self):
        matcher = LiteralTermMatcher("Buy Now", "spam", 2)

        assert matcher.matches("please BUY NOW!!")
        assert matcher.matches("xxbuy nowxx")
        assert not matcher.matches("buy it now")

    def test_regex_is_case_insensitive_search(self):
        matcher = RegexTermMatcher(r"\bwhats?app\b", "contact_exchange", 2)

        assert matcher.matches("add me on WhatsApp")
        assert matcher.matches("whatapp me")
        assert not matcher.matches("whatsapplication")

    def test_build_matcher_skips_invalid_regex(self):
        """A regex that does not compile yields no matcher."""
        term = FlaggedTerm(
            id=1, term="([unclosed", category="spam", severity=2, is_regex=True
        )
        assert build_matcher(term) is None

    def test_build_matcher_literal_with_regex_chars(self):
        """Literal terms are never compiled as patterns."""
        term = FlaggedTerm(
            id=1, term="([literal", category="spam", severity=2, is_regex=False
        )
        matcher = build_matcher(term)

        assert isinstance(matcher, LiteralTermMatcher)
        assert matcher.matches("contains ([literal text")


class TestSafetyAnalyzerEvaluate:
    """Tests for SafetyAnalyzer.evaluate scoring and blocking."""

    def test_no_matchers_is_safe(self):
        analysis = SafetyAnalyzer.evaluate("hello there", [])

        assert analysis.score == 100
        assert analysis.violations == []
        assert analysis.matched_terms == []
        assert analysis.is_blocked is False
        assert analysis.max_severity == 0

    def test_spam_term_flags_without_blocking(self):
        """A severity-2 spam term costs 20 points and does not block."""
        matchers = [LiteralTermMatcher("spam", "spam", 2)]

        analysis = SafetyAnalyzer.evaluate("this is spam", matchers)

        assert analysis.score == 80
        assert analysis.is_blocked is False
        assert len(analysis.violations) == 1
        assert analysis.violations[0].type == "spam"
        assert analysis.violations[0].severity == 2
        assert analysis.violations[0].terms == ["spam"]

    def test_severity_five_blocks_at_tolerable_score(self):
        """Severity alone can force a block even when score is 50."""
        matchers = [LiteralTermMatcher("secret meetup", "predatory", 5)]

        analysis = SafetyAnalyzer.evaluate("let's plan a SECRET MEETUP", matchers)

        assert analysis.score == 50
        assert analysis.is_blocked is True
        assert analysis.violations[0].type == "predatory_behavior"

    def test_severity_four_blocks(self):
        matchers = [LiteralTermMatcher("pills", "drugs", 4)]

        analysis = SafetyAnalyzer.evaluate("cheap pills here", matchers)

        assert analysis.score == 60
        assert analysis.is_blocked is True

    def test_severity_three_does_not_block(self):
        matchers = [LiteralTermMatcher("idiot", "harmful", 3)]

        analysis = SafetyAnalyzer.evaluate("you idiot", matchers)

        assert analysis.score == 70
        assert analysis.is_blocked is False

    def test_low_score_blocks_without_high_severity(self):
        """Many low-severity matches can push the score to the threshold."""
        matchers = [
            LiteralTermMatcher("alpha", "spam", 3),
            LiteralTermMatcher("beta", "spam", 2),
            LiteralTermMatcher("gamma", "harmful", 2),
        ]

        analysis = SafetyAnalyzer.evaluate("alpha beta gamma", matchers)

        assert analysis.score == 30
        assert analysis.max_severity == 3
        assert analysis.is_blocked is True

    def test_score_just_above_threshold_is_not_blocked(self):
        matchers = [
            LiteralTermMatcher("alpha", "spam", 3),
            LiteralTermMatcher("beta", "spam", 3),
        ]

        analysis = SafetyAnalyzer.evaluate("alpha beta", matchers)

        assert analysis.score == 40
        assert analysis.is_blocked is False

    def test_same_type_merges_with_max_severity(self):
        """Violations of one type keep every term and the max severity."""
        matchers = [
            LiteralTermMatcher("click here", "spam", 1),
            LiteralTermMatcher("free money", "spam", 3),
        ]

        analysis = SafetyAnalyzer.evaluate("click here for free money", matchers)

        assert len(analysis.violations) == 1
        violation = analysis.violations[0]
        assert violation.severity == 3
        assert violation.terms == ["click here", "free money"]
        # Score deducts every term, not just the max
        assert analysis.score == 60

    def test_distinct_types_produce_distinct_violations(self):
        matchers = [
            LiteralTermMatcher("pills", "drugs", 2),
            LiteralTermMatcher("click here", "spam", 1),
        ]

        analysis = SafetyAnalyzer.evaluate("click here for pills", matchers)

        types = {v.type for v in analysis.violations}
        assert types == {"substance_offering", "spam"}
        assert [m.term for m in analysis.matched_terms] == ["pills", "click here"]

    def test_score_clamped_at_zero(self):
        matchers = [
            LiteralTermMatcher(word, "harmful", 5)
            for word in ("one", "two", "three")
        ]

        analysis = SafetyAnalyzer.evaluate("one two three", matchers)

        assert analysis.score == 0
        assert analysis.is_blocked is True

    def test_score_never_rises_as_terms_are_added(self):
        content = "pills click here call me tonight secret meet"
        matchers = [
            LiteralTermMatcher("pills", "drugs", 4),
            LiteralTermMatcher("click here", "spam", 1),
            LiteralTermMatcher("call me", "contact_exchange", 2),
            RegexTermMatcher(r"\bsecret\b", "predatory", 5),
            LiteralTermMatcher("not present", "spam", 5),
            LiteralTermMatcher("meet", "predatory", 3),
        ]

        scores = [
            SafetyAnalyzer.evaluate(content, matchers[:count]).score
            for count in range(len(matchers) + 1)
        ]

        assert scores[0] == 100
        assert all(0 <= score <= 100 for score in scores)
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))
        assert scores[-1] == 0

    def test_score_never_rises_with_higher_severity(self):
        scores = [
            SafetyAnalyzer.evaluate(
                "spam", [LiteralTermMatcher("spam", "spam", severity)]
            ).score
            for severity in range(1, 6)
        ]

        assert scores == sorted(scores, reverse=True)
        assert scores == [90, 80, 70, 60, 50]

    def test_unmapped_category_violation_type(self):
        matchers = [LiteralTermMatcher("weird", "unlisted", 1)]

        analysis = SafetyAnalyzer.evaluate("weird stuff", matchers)

        assert analysis.violations[0].type == "inappropriate_content"


class TestSafetyAnalyzerAnalyzeMessage:
    """Tests for SafetyAnalyzer.analyze_message against stored terms."""

    def test_uses_active_terms(self, db_session, make_term):
        make_term("spam", "spam", 2)

        analysis = SafetyAnalyzer.analyze_message(db_session, "this is spam")

        assert analysis.score == 80
        assert analysis.violations[0].type == "spam"

    def test_ignores_inactive_terms(self, db_session, make_term):
        make_term("spam", "spam", 2, is_active=False)

        analysis = SafetyAnalyzer.analyze_message(db_session, "this is spam")

        assert analysis.score == 100
        assert analysis.has_matches is False

    def test_regex_terms(self, db_session, make_term):
        make_term(r"\b\d{3}-\d{4}\b", "contact_exchange", 2, is_regex=True)

        analysis = SafetyAnalyzer.analyze_message(db_session, "call 555-1234")

        assert analysis.violations[0].type == "suspicious_contact_exchange"

    def test_invalid_regex_term_is_skipped(self, db_session, make_term):
        """One broken pattern does not stop the others from matching."""
        make_term("([broken", "spam", 3, is_regex=True)
        make_term("spam", "spam", 2)

        analysis = SafetyAnalyzer.analyze_message(db_session, "spam ([broken")

        assert analysis.score == 80
        assert [m.term for m in analysis.matched_terms] == ["spam"]

    def test_fails_open_when_terms_cannot_be_loaded(
        self, db_session, make_term, monkeypatch
    ):
        """Storage failure returns the default safe result."""
        make_term("spam", "spam", 5)

        def _raise(self):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(FlaggedTermRepository, "get_active_terms", _raise)

        analysis = SafetyAnalyzer.analyze_message(db_session, "this is spam")

        assert analysis.score == 100
        assert analysis.violations == []
        assert analysis.is_blocked is False
