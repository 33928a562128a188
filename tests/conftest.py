"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import pytest

from sponsormatch.config import ReconcileConfig
from sponsormatch.database import Company, get_session, init_database
from sponsormatch.models import SponsorRecord, TargetRecord
from sponsormatch.repositories import InMemorySponsorRepository, InMemoryTargetRepository

NOW = datetime(2026, 10, 18, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    """Fixed timestamp source."""
    return lambda: NOW


@pytest.fixture
def config() -> ReconcileConfig:
    """Default settings without retry sleeps."""
    return ReconcileConfig(retry_delay=0.0)


@pytest.fixture
def sponsors() -> List[SponsorRecord]:
    """A small sponsor directory, one of them inactive."""
    return [
        SponsorRecord(id="s-acme", name="Acme Corporation"),
        SponsorRecord(id="s-ibm", name="International Business Machines"),
        SponsorRecord(id="s-smith", name="Smith & Associates LLC"),
        SponsorRecord(id="s-old", name="Old Industries Inc", active=False),
    ]


@pytest.fixture
def targets() -> List[TargetRecord]:
    """Employers whose names differ from the directory in the usual ways."""
    return [
        TargetRecord(id=1, name="ACME CORP."),
        TargetRecord(id=2, name="IBM"),
        TargetRecord(id=3, name="Smith Associates"),
        TargetRecord(id=4, name="Unrelated Startup Co"),
    ]


@pytest.fixture
def sponsor_repo(sponsors) -> InMemorySponsorRepository:
    return InMemorySponsorRepository(sponsors)


@pytest.fixture
def target_repo(targets) -> InMemoryTargetRepository:
    return InMemoryTargetRepository(targets)


@pytest.fixture
def sponsor_documents() -> List[dict]:
    """Sponsor directory documents as stored in the document file."""
    return [
        {
            "_id": "s-acme",
            "companyName": "Acme Corporation",
            "searchableNames": ["acme corporation", "acme"],
            "isActive": True,
            "h1bData": {"isActive": True},
        },
        {
            "_id": "s-ibm",
            "companyName": "International Business Machines",
            "isActive": True,
        },
        {
            "_id": "s-retired",
            "companyName": "Retired Sponsor Inc",
            "isActive": True,
            "h1bData": {"isActive": False},
        },
        {
            "_id": "s-closed",
            "companyName": "Closed Company LLC",
            "isActive": False,
        },
    ]


@pytest.fixture
def directory_file(tmp_path, sponsor_documents) -> Path:
    """Write the sponsor documents to a JSON directory file."""
    path = tmp_path / "sponsors.json"
    path.write_text(json.dumps({"sponsors": sponsor_documents}, indent=2))
    return path


@pytest.fixture
def companies_db(tmp_path) -> Path:
    """SQLite target store with a mix of fresh, stale and never-checked rows."""
    db_path = tmp_path / "companies.db"
    init_database(db_path)
    session = get_session(db_path)
    session.add_all([
        Company(id=1, name="ACME CORP."),
        Company(id=2, name="IBM", sponsor_flag_updated_at=NOW - timedelta(days=45)),
        Company(
            id=3,
            name="Retired Sponsor",
            is_sponsor=True,
            matched_sponsor_id="s-retired",
            sponsor_flag_updated_at=NOW - timedelta(days=5),
        ),
        Company(id=4, name="Unrelated Startup Co", sponsor_flag_updated_at=NOW - timedelta(days=2)),
        Company(id=5, name=""),
    ])
    session.commit()
    session.close()
    return db_path
