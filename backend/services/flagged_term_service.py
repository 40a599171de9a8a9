"""
Service for managing the flagged term rule set.
"""

import re

from loguru import logger
from sqlalchemy.orm import Session

from models.exceptions import FlaggedTermNotFoundException, InvalidRegexException
from repositories.db_models import FlaggedTerm
from services.audit_service import AuditAction, AuditService
from services.transaction import atomic


class FlaggedTermService:
    """Service for flagged term operations."""

    @staticmethod
    def upsert_term(
        db: Session,
        term: str,
        category: str,
        severity: int,
        is_regex: bool,
        admin_id: int,
    ) -> FlaggedTerm:
        """
        Create a term or overwrite the one with the same text.

        The stored term is always left active.

        Args:
            db: Database session
            term: Literal text or regex pattern
            category: Rule category
            severity: Severity 1-5
            is_regex: Whether term is a regex pattern
            admin_id: ID of the moderator making the change

        Returns:
            The stored term

        Raises:
            InvalidRegexException: If a regex term does not compile
        """
        from repositories.flagged_term_repository import FlaggedTermRepository

        if is_regex:
            try:
                re.compile(term)
            except re.error as e:
                raise InvalidRegexException(term, str(e))

        term_repo = FlaggedTermRepository(db)
        with atomic(db, "upsert_flagged_term"):
            flagged_term = term_repo.upsert(
                term=term, category=category, severity=severity, is_regex=is_regex
            )

        term_repo.refresh(flagged_term)
        logger.info(
            "Flagged term upserted",
            term_id=flagged_term.id,
            category=category,
            severity=severity,
        )
        AuditService.log_event(
            user_id=admin_id,
            action=AuditAction.FLAGGED_TERM_UPSERTED,
            target_type="flagged_term",
            target_id=flagged_term.id,
            details={"category": category, "severity": severity, "is_regex": is_regex},
        )
        return flagged_term

    @staticmethod
    def list_terms(
        db: Session, active_only: bool = False, skip: int = 0, limit: int = 100
    ) -> list[FlaggedTerm]:
        """Get flagged terms ordered by term."""
        from repositories.flagged_term_repository import FlaggedTermRepository

        return FlaggedTermRepository(db).get_all_filtered(
            active_only=active_only, skip=skip, limit=limit
        )

    @staticmethod
    def deactivate_term(db: Session, term_id: int, admin_id: int) -> FlaggedTerm:
        """
        Stop a term from matching. Terms are never deleted.

        Raises:
            FlaggedTermNotFoundException: If the term does not exist
        """
        from repositories.flagged_term_repository import FlaggedTermRepository

        term_repo = FlaggedTermRepository(db)
        flagged_term = term_repo.get_by_id(term_id)
        if not flagged_term:
            raise FlaggedTermNotFoundException(term_id)

        with atomic(db, "deactivate_flagged_term"):
            term_repo.deactivate(flagged_term)

        term_repo.refresh(flagged_term)
        AuditService.log_event(
            user_id=admin_id,
            action=AuditAction.FLAGGED_TERM_DEACTIVATED,
            target_type="flagged_term",
            target_id=term_id,
        )
        return flagged_term
