"""
Target store schema and connection management.

Uses SQLite with SQLAlchemy for the employer (companies) table. The three
sponsor columns are owned by the reconciliation engine and always written
together.
"""

from pathlib import Path

from sqlalchemy import Boolean, Column, DateTime, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class Company(Base):
    """Employer record in the target store."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    is_sponsor = Column(Boolean, nullable=False, default=False)
    matched_sponsor_id = Column(String, nullable=True)  # sponsor directory _id
    sponsor_flag_updated_at = Column(DateTime, nullable=True, index=True)


def get_engine(db_path: Path) -> Engine:
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(get_engine(db_path))


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
