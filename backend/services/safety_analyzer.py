"""
Rule-based safety analysis of message text.

Active flagged terms are compiled into matchers, every matching term costs
``severity * SAFETY_SEVERITY_WEIGHT`` points off a base score, and matches are
grouped into violations by category.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.config import settings
from repositories.db_models import FlaggedTerm

# Category -> violation type. Unknown categories fall back to DEFAULT_VIOLATION_TYPE.
CATEGORY_VIOLATION_MAP: dict[str, str] = {
    "drugs": "substance_offering",
    "dealing": "drug_dealing",
    "contact_exchange": "suspicious_contact_exchange",
    "predatory": "predatory_behavior",
    "spam": "spam",
    "harmful": "inappropriate_content",
}
DEFAULT_VIOLATION_TYPE = "inappropriate_content"


def violation_type_for(category: str) -> str:
    """Map a flagged-term category to its violation type."""
    return CATEGORY_VIOLATION_MAP.get(category, DEFAULT_VIOLATION_TYPE)


class TermMatcher(ABC):
    """A single flagged term that can test message text."""

    def __init__(self, term: str, category: str, severity: int):
        self.term = term
        self.category = category
        self.severity = severity

    @abstractmethod
    def matches(self, content: str) -> bool:
        """Return True if content contains this term."""


class LiteralTermMatcher(TermMatcher):
    """Case-insensitive substring match."""

    def __init__(self, term: str, category: str, severity: int):
        super().__init__(term, category, severity)
        self._needle = term.lower()

    def matches(self, content: str) -> bool:
        return self._needle in content.lower()


class RegexTermMatcher(TermMatcher):
    """Case-insensitive regex search. Raises re.error on a bad pattern."""

    def __init__(self, term: str, category: str, severity: int):
        super().__init__(term, category, severity)
        self._pattern = re.compile(term, re.IGNORECASE)

    def matches(self, content: str) -> bool:
        return self._pattern.search(content) is not None


def build_matcher(flagged_term: FlaggedTerm) -> Optional[TermMatcher]:
    """
    Build the matcher for a stored term.

    Returns None (and logs a warning) for a regex term that does not compile,
    so one bad rule cannot break analysis of every message.
    """
    matcher_cls = RegexTermMatcher if flagged_term.is_regex else LiteralTermMatcher
    try:
        return matcher_cls(
            flagged_term.term, flagged_term.category, flagged_term.severity
        )
    except re.error as e:
        logger.warning(
            "Skipping invalid regex flagged term",
            term_id=flagged_term.id,
            pattern=flagged_term.term,
            error=str(e),
        )
        return None


@dataclass
class MatchedTerm:
    term: str
    category: str
    severity: int

    def to_dict(self) -> dict:
        return {"term": self.term, "category": self.category, "severity": self.severity}


@dataclass
class Violation:
    """Matches of one violation type; severity is the max, not the sum."""

    type: str
    severity: int
    terms: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"type": self.type, "severity": self.severity, "terms": self.terms}


@dataclass
class SafetyAnalysis:
    """Verdict for one piece of text."""

    score: int = 100
    matched_terms: list[MatchedTerm] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    is_blocked: bool = False

    @property
    def max_severity(self) -> int:
        return max((v.severity for v in self.violations), default=0)

    @property
    def has_matches(self) -> bool:
        return bool(self.matched_terms)


class SafetyAnalyzer:
    """Service that scores message text against the active rule set."""

    @staticmethod
    def evaluate(content: str, matchers: list[TermMatcher]) -> SafetyAnalysis:
        """
        Score content against a set of matchers.

        Args:
            content: Raw message text
            matchers: Compiled flagged terms

        Returns:
            SafetyAnalysis with score clamped to [0, base score]
        """
        base_score = settings.SAFETY_BASE_SCORE
        score = base_score
        matched: list[MatchedTerm] = []
        violations: dict[str, Violation] = {}

        for matcher in matchers:
            if not matcher.matches(content):
                continue

            matched.append(
                MatchedTerm(
                    term=matcher.term,
                    category=matcher.category,
                    severity=matcher.severity,
                )
            )
            score -= matcher.severity * settings.SAFETY_SEVERITY_WEIGHT

            violation_type = violation_type_for(matcher.category)
            violation = violations.get(violation_type)
            if violation is None:
                violations[violation_type] = Violation(
                    type=violation_type,
                    severity=matcher.severity,
                    terms=[matcher.term],
                )
            else:
                violation.terms.append(matcher.term)
                violation.severity = max(violation.severity, matcher.severity)

        score = max(0, min(base_score, score))
        violation_list = list(violations.values())
        is_blocked = score <= settings.SAFETY_BLOCK_SCORE_THRESHOLD or any(
            v.severity >= settings.SAFETY_BLOCK_SEVERITY for v in violation_list
        )

        return SafetyAnalysis(
            score=score,
            matched_terms=matched,
            violations=violation_list,
            is_blocked=is_blocked,
        )

    @staticmethod
    def load_matchers(db: Session) -> list[TermMatcher]:
        """Compile every active flagged term, skipping invalid regex terms."""
        from repositories.flagged_term_repository import FlaggedTermRepository

        terms = FlaggedTermRepository(db).get_active_terms()
        return [m for m in (build_matcher(t) for t in terms) if m is not None]

    @staticmethod
    def analyze_message(db: Session, content: str) -> SafetyAnalysis:
        """
        Analyze message text against the active rule set.

        Fails open: if the rule set cannot be loaded the error is logged and
        the default safe analysis is returned.

        Args:
            db: Database session
            content: Raw message text

        Returns:
            SafetyAnalysis for the content
        """
        try:
            matchers = SafetyAnalyzer.load_matchers(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "Flagged term lookup failed, treating message as safe",
                error=str(e),
            )
            return SafetyAnalysis(score=settings.SAFETY_BASE_SCORE)

        return SafetyAnalyzer.evaluate(content, matchers)
