"""
Base repository class providing common database operations.

Repositories only stage changes; services decide when a unit of work is
committed or rolled back.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[type-arg]

class BaseRepository(Generic[T]):
    """
    Base repository providing common data access operations.

    Type parameter T should be a SQLAlchemy model class.
    """

    def __init__(self, model: type[T], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: int) -> T | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity if found, None otherwise
        """
        return self.db.query(self.model).filter(self.model.id == id).first()

    def add(self, entity: T) -> T:
        """
        Add entity to session without committing.

        Args:
            entity: Entity to add

        Returns:
            The same entity, for chaining
        """
        self.db.add(entity)
        return entity

    def add_all(self, entities: list[T]) -> None:
        """Add multiple entities to session without committing."""
        self.db.add_all(entities)

    def flush(self) -> None:
        """Flush pending changes so generated IDs are available."""
        self.db.flush()

    def refresh(self, entity: T) -> None:
        """Refresh entity from database."""
        self.db.refresh(entity)
