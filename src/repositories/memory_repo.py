"""In-process ticket repository. Lost on restart; meant for dev and tests."""

from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Optional

from models.ticket import TicketRecord, TicketStatus
from repositories.interfaces import TicketRepository


class InMemoryTicketRepository(TicketRepository):
    """Dict-backed store guarded by a single lock."""

    def __init__(self) -> None:
        self._records: Dict[str, TicketRecord] = {}
        self._lock = Lock()

    def save(self, record: TicketRecord) -> None:
        with self._lock:
            self._records[record.id] = record.model_copy(deep=True)

    def get(self, ticket_id: str) -> Optional[TicketRecord]:
        with self._lock:
            record = self._records.get(ticket_id)
            return record.model_copy(deep=True) if record else None

    def mark_used(self, ticket_id: str, used_at: Optional[datetime] = None) -> bool:
        with self._lock:
            record = self._records.get(ticket_id)
            if record is None or record.is_used:
                return False
            record.status = TicketStatus.USED
            record.used_at = used_at or datetime.now(timezone.utc)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
