"""
SQLite database -- the document store behind the ingestion pipeline.

Tables:
  - promises: Extracted promises awaiting review (status pending_verification)
  - pending_incidents: Machine-ingested incidents awaiting review
  - incidents: Verified incidents (the only ones listed publicly)
  - sync_logs: One row per sync run, append-only
  - incident_batches: Raw batches pushed through POST /incidents
"""

import json
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    create_engine, Column, String, Integer, Float, Text, DateTime, Boolean,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .config import get_settings
from .errors import PersistenceError, RecordNotFound
from .schemas import (
    ExtractedPromise, IncidentState, PoliticalIncident, PromiseAnalysis,
    SyncLog, SyncResult,
)

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Models ───────────────────────────────────────────────────────────────────

class PromiseModel(Base):
    """Extracted promise."""
    __tablename__ = "promises"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    party = Column(String(200), default="")
    politician = Column(String(200), default="Unknown")
    category = Column(String(100), default="")
    credibility_score = Column(Float, default=0.0)
    source = Column(String(200), nullable=False)
    source_url = Column(String(500), default="")
    analysis = Column(Text, default="{}")  # JSON object
    status = Column(String(30), default="pending_verification")
    extracted_at = Column(DateTime, default=_utcnow, index=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class _IncidentColumns:
    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, default="")
    category = Column(String(30), default="other")
    date = Column(String(50))  # ISO-8601
    source = Column(String(200), nullable=False)
    source_url = Column(String(500), default="")
    added_at = Column(DateTime, default=_utcnow, index=True)


class PendingIncidentModel(_IncidentColumns, Base):
    """Incident awaiting review (verified=False)."""
    __tablename__ = "pending_incidents"


class IncidentModel(_IncidentColumns, Base):
    """Verified incident."""
    __tablename__ = "incidents"

    verified_at = Column(DateTime, default=_utcnow)


class SyncLogModel(Base):
    """Sync run audit record."""
    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime, default=_utcnow, index=True)
    pipeline = Column(String(20), default="promises")
    success = Column(Boolean, default=False)
    status = Column(String(20), default="failed")
    total_fetched = Column(Integer, default=0)
    total_extracted = Column(Integer, default=0)
    total_saved = Column(Integer, default=0)
    duplicates_skipped = Column(Integer, default=0)
    errors = Column(Text, default="[]")  # JSON array
    duration_ms = Column(Integer, default=0)
    cancelled = Column(Boolean, default=False)
    details = Column(Text, default="")


class IncidentBatchModel(Base):
    """Raw incident batch pushed by an external collector."""
    __tablename__ = "incident_batches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(200), nullable=False)
    incidents = Column(Text, default="[]")  # JSON array, stored as received
    timestamp = Column(DateTime, default=_utcnow)


# ── Database class ───────────────────────────────────────────────────────────

class Database:
    """Database manager -- singleton via get_database(), lazy-initialized."""

    def __init__(self, database_url: Optional[str] = None):
        url = database_url or get_settings().database_url
        if "aiosqlite" in url:
            url = url.replace("sqlite+aiosqlite", "sqlite")

        self.engine = create_engine(url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        """Create all tables (safe to call multiple times)."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Session:
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _write(self, action: str):
        """Session for a write; store failures surface as PersistenceError."""
        try:
            with self.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"[FAIL] {action}: {e}")
            raise PersistenceError(f"{action} failed: {e}") from e

    # ── Promises ──────────────────────────────────────────────────────

    def save_promise(self, promise: ExtractedPromise) -> str:
        """Persist a promise with status pending_verification. Returns its id."""
        with self._write(f"save promise '{promise.title[:60]}'") as session:
            session.add(PromiseModel(
                id=promise.id,
                title=promise.title,
                description=promise.description,
                party=promise.party,
                politician=promise.politician,
                category=promise.category,
                credibility_score=promise.credibility_score,
                source=promise.source,
                source_url=promise.source_url,
                analysis=promise.analysis.model_dump_json(by_alias=True),
                status=promise.status,
                extracted_at=promise.extracted_at,
            ))
        return promise.id

    def get_recent_promises(self, limit: int = 100) -> List[ExtractedPromise]:
        """Most recent promises, newest first."""
        with self.get_session() as session:
            rows = session.query(PromiseModel).order_by(
                PromiseModel.extracted_at.desc()
            ).limit(limit).all()
            return [
                ExtractedPromise(
                    id=r.id,
                    title=r.title,
                    description=r.description or "",
                    party=r.party or "",
                    politician=r.politician or "Unknown",
                    category=r.category or "",
                    credibility_score=r.credibility_score or 0.0,
                    source=r.source,
                    source_url=r.source_url or "",
                    extracted_at=_as_utc(r.extracted_at),
                    analysis=PromiseAnalysis.model_validate_json(r.analysis or "{}"),
                    status=r.status,
                )
                for r in rows
            ]

    # ── Incidents ─────────────────────────────────────────────────────

    def save_pending_incident(self, incident: PoliticalIncident) -> str:
        """Store an unverified incident. Returns the assigned id."""
        incident_id = incident.id or uuid.uuid4().hex
        with self._write(f"save pending incident '{incident.title[:60]}'") as session:
            session.add(PendingIncidentModel(
                id=incident_id,
                title=incident.title,
                description=incident.description,
                category=incident.category,
                date=incident.date,
                source=incident.source,
                source_url=incident.source_url,
                added_at=incident.added_at,
            ))
        return incident_id

    def get_pending_incidents(self, limit: int = 100) -> List[PoliticalIncident]:
        with self.get_session() as session:
            rows = session.query(PendingIncidentModel).order_by(
                PendingIncidentModel.added_at.desc()
            ).limit(limit).all()
            return [self._incident_from_row(r, verified=False) for r in rows]

    def get_verified_incidents(self, limit: int = 100) -> List[PoliticalIncident]:
        """Public listing: verified incidents only, newest first."""
        with self.get_session() as session:
            rows = session.query(IncidentModel).order_by(
                IncidentModel.added_at.desc()
            ).limit(limit).all()
            return [self._incident_from_row(r, verified=True) for r in rows]

    def approve_incident(self, pending_id: str) -> PoliticalIncident:
        """
        Move a pending incident to the verified table in ONE transaction.

        Insert of the verified copy and delete of the pending copy commit
        together or not at all. Raises PersistenceError for an unknown id or
        any store failure; on failure the pending copy is left in place.
        """
        with self._write(f"approve incident {pending_id}") as session:
            pending = session.get(PendingIncidentModel, pending_id)
            if pending is None:
                raise RecordNotFound(f"Pending incident not found: {pending_id}")

            verified = IncidentModel(
                id=pending.id,
                title=pending.title,
                description=pending.description,
                category=pending.category,
                date=pending.date,
                source=pending.source,
                source_url=pending.source_url,
                added_at=pending.added_at,
            )
            session.add(verified)
            session.flush()
            self._delete_pending(session, pending)
            session.flush()
            approved = self._incident_from_row(verified, verified=True)

        logger.info(f"[OK] Incident {pending_id} -> {IncidentState.VERIFIED.value}")
        return approved

    def reject_incident(self, pending_id: str) -> None:
        """Delete a pending incident. Raises PersistenceError for an unknown id."""
        with self._write(f"reject incident {pending_id}") as session:
            pending = session.get(PendingIncidentModel, pending_id)
            if pending is None:
                raise RecordNotFound(f"Pending incident not found: {pending_id}")
            self._delete_pending(session, pending)
        logger.info(f"[OK] Incident {pending_id} -> {IncidentState.REJECTED.value}")

    def _delete_pending(self, session: Session, pending: PendingIncidentModel) -> None:
        session.delete(pending)

    @staticmethod
    def _incident_from_row(r, verified: bool) -> PoliticalIncident:
        return PoliticalIncident(
            id=r.id,
            title=r.title,
            description=r.description or "",
            category=r.category or "other",
            date=r.date or "",
            source=r.source,
            source_url=r.source_url or "",
            verified=verified,
            added_at=_as_utc(r.added_at),
        )

    def save_incident_batch(self, source: str, incidents: List[Any]) -> int:
        """Append a timestamped raw batch. Returns the row ID."""
        with self._write(f"save incident batch from {source}") as session:
            row = IncidentBatchModel(source=source, incidents=json.dumps(incidents, default=str))
            session.add(row)
            session.flush()
            return row.id

    # ── Sync Logs ─────────────────────────────────────────────────────

    def save_sync_log(self, log: SyncLog) -> str:
        """Append one sync log. Returns its id."""
        r = log.result
        with self._write("save sync log") as session:
            row = SyncLogModel(
                timestamp=log.timestamp,
                pipeline=r.pipeline,
                success=r.success,
                status=r.status,
                total_fetched=r.total_fetched,
                total_extracted=r.total_extracted,
                total_saved=r.total_saved,
                duplicates_skipped=r.duplicates_skipped,
                errors=json.dumps(r.errors),
                duration_ms=r.duration,
                cancelled=r.cancelled,
                details=log.details,
            )
            session.add(row)
            session.flush()
            return str(row.id)

    def get_sync_history(self, limit: int = 20) -> List[SyncLog]:
        """Latest sync logs, newest first."""
        with self.get_session() as session:
            rows = session.query(SyncLogModel).order_by(
                SyncLogModel.timestamp.desc(), SyncLogModel.id.desc()
            ).limit(limit).all()
            return [
                SyncLog(
                    id=str(r.id),
                    timestamp=_as_utc(r.timestamp),
                    details=r.details or "",
                    result=SyncResult(
                        pipeline=r.pipeline,
                        success=r.success,
                        status=r.status,
                        total_fetched=r.total_fetched,
                        total_extracted=r.total_extracted,
                        total_saved=r.total_saved,
                        duplicates_skipped=r.duplicates_skipped,
                        errors=json.loads(r.errors) if r.errors else [],
                        duration=r.duration_ms,
                        cancelled=r.cancelled,
                    ),
                )
                for r in rows
            ]

    def get_stats(self) -> Dict[str, int]:
        """Row counts for the health endpoint."""
        with self.get_session() as session:
            return {
                "promises": session.query(PromiseModel).count(),
                "pending_incidents": session.query(PendingIncidentModel).count(),
                "verified_incidents": session.query(IncidentModel).count(),
                "sync_logs": session.query(SyncLogModel).count(),
            }


# Singleton
_db: Optional[Database] = None


def get_database() -> Database:
    """Get or create database instance."""
    global _db
    if _db is None:
        _db = Database()
        _db.create_tables()
    return _db
