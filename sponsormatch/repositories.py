"""
Sponsor and target repositories.

Responsibilities:
- Load sponsor records from the sponsor directory (document store).
- Load target records and write their flag columns (relational store).
- Translate connectivity failures into DatastoreConnectionError.

Non-Responsibilities:
- No matching, scoring or threshold logic.

Invariant:
Repositories must not encode domain decisions. Each write is atomic on
its own; there is no run-wide transaction.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import func, or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from .database import Company, get_engine
from .errors import DatastoreConnectionError
from .logger import get_logger
from .models import FlagStatistics, SponsorRecord, TargetRecord, check_flag_invariant
from .schema import is_active_document, sponsor_from_document, validate_sponsor_document
from .storage import load_directory

logger = get_logger()

DEFAULT_SPONSOR_FIELDS = ("_id", "companyName", "searchableNames")


class SponsorRepository(ABC):
    """Read access to the sponsor directory."""

    @abstractmethod
    def fetch_active_sponsors(self, fields: Optional[Sequence[str]] = None) -> List[SponsorRecord]:
        """Active sponsors with a non-empty name, projected to fields."""

    @abstractmethod
    def fetch_active_ids(self, ids: Iterable[str]) -> Set[str]:
        """The subset of ids that exist and are active."""

    @abstractmethod
    def count_active(self) -> int:
        """Number of active sponsors."""


class TargetRepository(ABC):
    """Read/write access to the employer table's sponsor columns."""

    @abstractmethod
    def fetch_stale_targets(
        self, staleness_days: int, limit: int, now: Optional[datetime] = None
    ) -> List[TargetRecord]:
        """Never-checked or older-than-window targets, oldest first, at most limit."""

    @abstractmethod
    def fetch_all_targets(self) -> List[TargetRecord]:
        """Every target with a non-empty name, ordered by id."""

    @abstractmethod
    def fetch_flagged_targets(self) -> List[TargetRecord]:
        """Targets flagged as sponsors that carry a sponsor reference."""

    @abstractmethod
    def update_flag(self, target_id: Any, flag: bool, matched_ref: Optional[str], timestamp: datetime) -> None:
        """Write flag, reference and timestamp of one target together."""

    @abstractmethod
    def bulk_reset_flags(self, ids: Iterable[Any], timestamp: datetime) -> int:
        """Clear flag and reference of the given targets; returns rows changed."""

    @abstractmethod
    def reset_all_flags(self, timestamp: datetime) -> int:
        """Clear every target's flag; returns how many were flagged before."""

    @abstractmethod
    def flag_statistics(self, staleness_days: int, now: Optional[datetime] = None) -> FlagStatistics:
        """Aggregate counts over the flag columns."""


def _is_stale(record: TargetRecord, cutoff: datetime) -> bool:
    return record.flag_updated_at is None or record.flag_updated_at < cutoff


def _has_name(record: TargetRecord) -> bool:
    return bool(record.name and record.name.strip())


# --- document store -----------------------------------------------------------


class JsonSponsorRepository(SponsorRepository):
    """
    Sponsor directory kept as a JSON document file.

    The file is re-read on every call so each run sees the current directory.
    Documents that fail validation are skipped and logged.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _documents(self) -> List[Dict[str, Any]]:
        logger.record_store_call()
        try:
            directory = load_directory(self.path)
        except OSError as e:
            raise DatastoreConnectionError(f"Cannot read sponsor directory {self.path}: {e}") from e

        documents = []
        for position, doc in enumerate(directory.get("sponsors", [])):
            errors = validate_sponsor_document(doc)
            if errors:
                logger.warning(
                    "Skipping invalid sponsor document",
                    position=position,
                    errors=errors,
                )
                continue
            documents.append(doc)
        return documents

    def fetch_active_sponsors(self, fields: Optional[Sequence[str]] = None) -> List[SponsorRecord]:
        fields = DEFAULT_SPONSOR_FIELDS if fields is None else fields
        include_secondary = "searchableNames" in fields
        return [
            sponsor_from_document(doc, include_secondary=include_secondary)
            for doc in self._documents()
            if is_active_document(doc)
        ]

    def fetch_active_ids(self, ids: Iterable[str]) -> Set[str]:
        wanted = {str(i) for i in ids}
        return {
            str(doc["_id"]) for doc in self._documents()
            if str(doc["_id"]) in wanted and is_active_document(doc)
        }

    def count_active(self) -> int:
        return sum(1 for doc in self._documents() if is_active_document(doc))


class InMemorySponsorRepository(SponsorRepository):
    """Sponsor directory held in a list, for tests and dry runs."""

    def __init__(self, sponsors: Iterable[SponsorRecord] = ()):
        self.sponsors: List[SponsorRecord] = list(sponsors)

    def _active(self) -> List[SponsorRecord]:
        return [s for s in self.sponsors if s.active and s.name and s.name.strip()]

    def fetch_active_sponsors(self, fields: Optional[Sequence[str]] = None) -> List[SponsorRecord]:
        return self._active()

    def fetch_active_ids(self, ids: Iterable[str]) -> Set[str]:
        wanted = set(ids)
        return {s.id for s in self._active() if s.id in wanted}

    def count_active(self) -> int:
        return len(self._active())


# --- relational store ---------------------------------------------------------


def _to_record(row: Company) -> TargetRecord:
    return TargetRecord(
        id=row.id,
        name=row.name,
        is_sponsor=bool(row.is_sponsor),
        matched_sponsor_id=row.matched_sponsor_id,
        flag_updated_at=row.sponsor_flag_updated_at,
    )


class SqlTargetRepository(TargetRepository):
    """Target store backed by the SQLAlchemy companies table."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._Session = sessionmaker(bind=get_engine(self.db_path))

    @contextmanager
    def _session(self, operation: str, write: bool = False):
        logger.record_store_call()
        try:
            if write:
                with self._Session.begin() as session:
                    yield session
            else:
                with self._Session() as session:
                    yield session
        except OperationalError as e:
            raise DatastoreConnectionError(f"Target store unavailable during {operation}: {e}") from e

    @staticmethod
    def _named(query):
        return query.filter(Company.name.isnot(None), Company.name != "")

    def fetch_stale_targets(
        self, staleness_days: int, limit: int, now: Optional[datetime] = None
    ) -> List[TargetRecord]:
        cutoff = (now or datetime.now()) - timedelta(days=staleness_days)
        with self._session("fetch_stale_targets") as session:
            rows = (
                self._named(session.query(Company))
                .filter(or_(
                    Company.sponsor_flag_updated_at.is_(None),
                    Company.sponsor_flag_updated_at < cutoff,
                ))
                # NULL timestamps first, then oldest
                .order_by(
                    Company.sponsor_flag_updated_at.isnot(None),
                    Company.sponsor_flag_updated_at,
                    Company.id,
                )
                .limit(limit)
                .all()
            )
            return [_to_record(r) for r in rows]

    def fetch_all_targets(self) -> List[TargetRecord]:
        with self._session("fetch_all_targets") as session:
            rows = self._named(session.query(Company)).order_by(Company.id).all()
            return [_to_record(r) for r in rows]

    def fetch_flagged_targets(self) -> List[TargetRecord]:
        with self._session("fetch_flagged_targets") as session:
            rows = (
                session.query(Company)
                .filter(Company.is_sponsor.is_(True), Company.matched_sponsor_id.isnot(None))
                .order_by(Company.id)
                .all()
            )
            return [_to_record(r) for r in rows]

    def update_flag(self, target_id: Any, flag: bool, matched_ref: Optional[str], timestamp: datetime) -> None:
        check_flag_invariant(flag, matched_ref)
        with self._session("update_flag", write=True) as session:
            changed = (
                session.query(Company)
                .filter(Company.id == target_id)
                .update(
                    {
                        Company.is_sponsor: flag,
                        Company.matched_sponsor_id: matched_ref,
                        Company.sponsor_flag_updated_at: timestamp,
                    },
                    synchronize_session=False,
                )
            )
        if changed == 0:
            raise LookupError(f"Target {target_id} not found")

    def bulk_reset_flags(self, ids: Iterable[Any], timestamp: datetime) -> int:
        ids = list(ids)
        if not ids:
            return 0
        with self._session("bulk_reset_flags", write=True) as session:
            return (
                session.query(Company)
                .filter(Company.id.in_(ids))
                .update(
                    {
                        Company.is_sponsor: False,
                        Company.matched_sponsor_id: None,
                        Company.sponsor_flag_updated_at: timestamp,
                    },
                    synchronize_session=False,
                )
            )

    def reset_all_flags(self, timestamp: datetime) -> int:
        with self._session("reset_all_flags", write=True) as session:
            flagged = (
                session.query(func.count(Company.id))
                .filter(Company.is_sponsor.is_(True))
                .scalar()
            )
            session.query(Company).update(
                {
                    Company.is_sponsor: False,
                    Company.matched_sponsor_id: None,
                    Company.sponsor_flag_updated_at: timestamp,
                },
                synchronize_session=False,
            )
            return flagged or 0

    def flag_statistics(self, staleness_days: int, now: Optional[datetime] = None) -> FlagStatistics:
        cutoff = (now or datetime.now()) - timedelta(days=staleness_days)
        with self._session("flag_statistics") as session:
            def count(*criteria):
                return session.query(func.count(Company.id)).filter(*criteria).scalar() or 0

            last_update, first_update = session.query(
                func.max(Company.sponsor_flag_updated_at),
                func.min(Company.sponsor_flag_updated_at),
            ).one()

            return FlagStatistics(
                total_targets=count(),
                flagged=count(Company.is_sponsor.is_(True)),
                matched=count(Company.matched_sponsor_id.isnot(None)),
                never_updated=count(Company.sponsor_flag_updated_at.is_(None)),
                stale=count(Company.sponsor_flag_updated_at < cutoff),
                last_update=last_update,
                first_update=first_update,
            )


class InMemoryTargetRepository(TargetRepository):
    """Target store held in a dict keyed by id, safe for concurrent writers."""

    def __init__(self, targets: Iterable[TargetRecord] = ()):
        self._lock = threading.Lock()
        self.records: Dict[Any, TargetRecord] = {t.id: t for t in targets}
        self.writes = 0

    def get(self, target_id: Any) -> TargetRecord:
        with self._lock:
            return self.records[target_id]

    def fetch_stale_targets(
        self, staleness_days: int, limit: int, now: Optional[datetime] = None
    ) -> List[TargetRecord]:
        cutoff = (now or datetime.now()) - timedelta(days=staleness_days)
        with self._lock:
            stale = [r for r in self.records.values() if _has_name(r) and _is_stale(r, cutoff)]
        stale.sort(key=lambda r: (
            r.flag_updated_at is not None,
            r.flag_updated_at or datetime.min,
            r.id,
        ))
        return stale[:limit]

    def fetch_all_targets(self) -> List[TargetRecord]:
        with self._lock:
            named = [r for r in self.records.values() if _has_name(r)]
        return sorted(named, key=lambda r: r.id)

    def fetch_flagged_targets(self) -> List[TargetRecord]:
        with self._lock:
            flagged = [
                r for r in self.records.values()
                if r.is_sponsor and r.matched_sponsor_id is not None
            ]
        return sorted(flagged, key=lambda r: r.id)

    def update_flag(self, target_id: Any, flag: bool, matched_ref: Optional[str], timestamp: datetime) -> None:
        with self._lock:
            if target_id not in self.records:
                raise LookupError(f"Target {target_id} not found")
            self.records[target_id] = self.records[target_id].with_flag(flag, matched_ref, timestamp)
            self.writes += 1

    def bulk_reset_flags(self, ids: Iterable[Any], timestamp: datetime) -> int:
        changed = 0
        with self._lock:
            for target_id in ids:
                if target_id in self.records:
                    self.records[target_id] = self.records[target_id].with_flag(False, None, timestamp)
                    changed += 1
            self.writes += changed
        return changed

    def reset_all_flags(self, timestamp: datetime) -> int:
        with self._lock:
            flagged = sum(1 for r in self.records.values() if r.is_sponsor)
            for target_id, record in self.records.items():
                self.records[target_id] = record.with_flag(False, None, timestamp)
            self.writes += len(self.records)
        return flagged

    def flag_statistics(self, staleness_days: int, now: Optional[datetime] = None) -> FlagStatistics:
        cutoff = (now or datetime.now()) - timedelta(days=staleness_days)
        with self._lock:
            records = list(self.records.values())
        stamps = [r.flag_updated_at for r in records if r.flag_updated_at is not None]
        return FlagStatistics(
            total_targets=len(records),
            flagged=sum(1 for r in records if r.is_sponsor),
            matched=sum(1 for r in records if r.matched_sponsor_id is not None),
            never_updated=sum(1 for r in records if r.flag_updated_at is None),
            stale=sum(1 for r in records if r.flag_updated_at is not None and r.flag_updated_at < cutoff),
            last_update=max(stamps) if stamps else None,
            first_update=min(stamps) if stamps else None,
        )
