"""Initialize the database and seed the default flagged term rule set."""

from repositories.database import Base, SessionLocal, engine
from repositories.db_models import FlaggedTerm


def get_default_flagged_terms() -> list[dict]:
    """Get the starter rule set.

    Returns:
        List of flagged term dictionaries (term, category, severity, is_regex).
    """
    return [
        {"term": "selling pills", "category": "drugs", "severity": 4, "is_regex": False},
        {
            "term": r"\b(?:dm|text) me (?:for|to buy)\b",
            "category": "dealing",
            "severity": 4,
            "is_regex": True,
        },
        {
            "term": r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b",
            "category": "contact_exchange",
            "severity": 2,
            "is_regex": True,
        },
        {
            "term": "don't tell your parents",
            "category": "predatory",
            "severity": 5,
            "is_regex": False,
        },
        {
            "term": "send me a picture",
            "category": "predatory",
            "severity": 5,
            "is_regex": False,
        },
        {"term": "click this link", "category": "spam", "severity": 2, "is_regex": False},
        {"term": "kill yourself", "category": "harmful", "severity": 5, "is_regex": False},
    ]


def init_db():
    """Create tables and seed flagged terms if the rule set is empty."""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        existing_terms = db.query(FlaggedTerm).first()
        if not existing_terms:
            for term in get_default_flagged_terms():
                db.add(FlaggedTerm(**term))
            db.commit()
            print("[OK] Default flagged terms created")

        print("\n[OK] Database initialization complete!")

    except Exception as e:
        print(f"Error initializing database: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
