"""
Repository for flagged term (safety rule set) database operations.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import FlaggedTerm


class FlaggedTermRepository(BaseRepository[FlaggedTerm]):
    """Repository for FlaggedTerm entity database operations."""

    def __init__(self, db: Session):
        """
        Initialize flagged term repository.

        Args:
            db: Database session
        """
        super().__init__(FlaggedTerm, db)

    def get_active_terms(self) -> list[FlaggedTerm]:
        """
        Get all active terms.

        Returns:
            List of active flagged terms
        """
        return (
            self.db.query(FlaggedTerm)
            .filter(FlaggedTerm.is_active == True)  # noqa: E712
            .order_by(FlaggedTerm.id)
            .all()
        )

    def get_by_term(self, term: str) -> FlaggedTerm | None:
        """
        Get a flagged term by its exact text.

        Reloads the row so values written by a Core upsert are visible.
        """
        return (
            self.db.query(FlaggedTerm)
            .filter(FlaggedTerm.term == term)
            .populate_existing()
            .first()
        )

    def get_all_filtered(
        self,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[FlaggedTerm]:
        """
        Get flagged terms with optional filters.

        Args:
            active_only: Only return active terms
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of flagged terms ordered by term
        """
        query = self.db.query(FlaggedTerm)

        if active_only:
            query = query.filter(FlaggedTerm.is_active == True)  # noqa: E712

        return query.order_by(FlaggedTerm.term).offset(skip).limit(limit).all()

    def upsert(
        self,
        term: str,
        category: str,
        severity: int,
        is_regex: bool,
    ) -> FlaggedTerm:
        """
        Insert a term or overwrite the existing row with the same text.

        Uses INSERT ... ON CONFLICT (term) DO UPDATE where the dialect
        supports it, so concurrent writers resolve to last-write-wins.
        The row always ends up active. Does not commit.

        Args:
            term: Literal text or regex pattern
            category: Rule category (drugs, spam, predatory, ...)
            severity: Severity 1-5
            is_regex: Whether term is a regex pattern

        Returns:
            The persisted flagged term
        """
        now = datetime.now(timezone.utc)
        dialect = self.db.get_bind().dialect.name

        if dialect in ("postgresql", "sqlite"):
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            else:
                from sqlalchemy.dialects.sqlite import insert

            stmt = insert(FlaggedTerm).values(
                term=term,
                category=category,
                severity=severity,
                is_regex=is_regex,
                is_active=True,
                created_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[FlaggedTerm.term],
                set_={
                    "category": stmt.excluded.category,
                    "severity": stmt.excluded.severity,
                    "is_regex": stmt.excluded.is_regex,
                    "is_active": True,
                    "updated_at": now,
                },
            )
            self.db.execute(stmt)
        else:
            existing = self.get_by_term(term)
            if existing:
                existing.category = category
                existing.severity = severity
                existing.is_regex = is_regex
                existing.is_active = True
            else:
                self.db.add(
                    FlaggedTerm(
                        term=term,
                        category=category,
                        severity=severity,
                        is_regex=is_regex,
                        is_active=True,
                    )
                )
            self.db.flush()

        return self.get_by_term(term)  # type: ignore[return-value]

    def deactivate(self, entity: FlaggedTerm) -> None:
        """Mark a term inactive. Terms are never deleted."""
        entity.is_active = False
