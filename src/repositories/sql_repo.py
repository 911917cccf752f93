"""SQL ticket repository using SQLAlchemy Core (PostgreSQL in prod, SQLite in tests)."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from models.ticket import TicketRecord, TicketStatus
from repositories.interfaces import TicketRepository
from utils.error_handling import StorageError
from utils.logging_config import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tickets (
    id VARCHAR(64) PRIMARY KEY,
    email VARCHAR(320) NOT NULL,
    type VARCHAR(16) NOT NULL,
    hash VARCHAR(64) NOT NULL,
    issued_at VARCHAR(40) NOT NULL,
    status VARCHAR(16) NOT NULL,
    used_at VARCHAR(40)
)
"""

UPSERT = """
INSERT INTO tickets (id, email, type, hash, issued_at, status, used_at)
VALUES (:id, :email, :type, :hash, :issued_at, :status, :used_at)
ON CONFLICT (id) DO UPDATE SET
    email = excluded.email,
    type = excluded.type,
    hash = excluded.hash,
    issued_at = excluded.issued_at,
    status = excluded.status,
    used_at = excluded.used_at
"""

SELECT_ONE = """
SELECT id, email, type, hash, issued_at, status, used_at
FROM tickets
WHERE id = :id
"""

REDEEM = """
UPDATE tickets SET status = :used, used_at = :used_at
WHERE id = :id AND status = :valid
"""


class SqlTicketRepository(TicketRepository):
    """Thin wrapper to keep SQL organized and parameterized."""

    def __init__(self, engine: Engine, create_schema: bool = True):
        self.engine = engine
        if create_schema:
            self.ensure_schema()

    @classmethod
    def from_url(cls, database_url: str, timeout_seconds: float = 5.0) -> "SqlTicketRepository":
        connect_args = {}
        if database_url.startswith("postgresql"):
            connect_args["connect_timeout"] = int(timeout_seconds)
        engine = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args=connect_args,
        )
        return cls(engine)

    def ensure_schema(self) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(text(SCHEMA))
        except SQLAlchemyError as exc:
            logger.error("Ticket schema creation failed", extra={"error": str(exc)})
            raise StorageError("Cannot prepare ticket storage") from exc

    def save(self, record: TicketRecord) -> None:
        params = {
            "id": record.id,
            "email": record.email,
            "type": record.ticket_type.value,
            "hash": record.integrity_hash,
            "issued_at": record.issued_at.isoformat(),
            "status": record.status.value,
            "used_at": record.used_at.isoformat() if record.used_at else None,
        }
        try:
            with self.engine.begin() as conn:
                conn.execute(text(UPSERT), params)
        except SQLAlchemyError as exc:
            logger.error("Ticket insert failed", extra={"ticket_id": record.id, "error": str(exc)})
            raise StorageError("Failed to save ticket") from exc

    def get(self, ticket_id: str) -> Optional[TicketRecord]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(SELECT_ONE), {"id": ticket_id}).fetchone()
        except SQLAlchemyError as exc:
            logger.error("Ticket lookup failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise StorageError("Failed to read ticket") from exc
        if not row:
            return None
        data = dict(row._mapping)
        return TicketRecord(
            id=data["id"],
            email=data["email"],
            ticket_type=data["type"],
            integrity_hash=data["hash"],
            issued_at=data["issued_at"],
            status=data["status"],
            used_at=data["used_at"],
        )

    def mark_used(self, ticket_id: str, used_at: Optional[datetime] = None) -> bool:
        """Conditional update; exactly one caller sees rowcount == 1."""
        params = {
            "id": ticket_id,
            "used": TicketStatus.USED.value,
            "valid": TicketStatus.VALID.value,
            "used_at": (used_at or datetime.now(timezone.utc)).isoformat(),
        }
        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(REDEEM), params)
        except SQLAlchemyError as exc:
            logger.error("Ticket redemption failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise StorageError("Failed to mark ticket used") from exc
        return result.rowcount == 1
