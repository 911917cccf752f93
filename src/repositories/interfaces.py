"""Repository interfaces (repository pattern).

Backends must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models.ticket import TicketRecord


class TicketRepository(ABC):
    """Durable record of issued tickets and their redemption state."""

    @abstractmethod
    def save(self, record: TicketRecord) -> None:
        """Insert or replace the record keyed by its id.

        Raises:
            StorageError: If the backend rejects the write.
        """
        ...

    @abstractmethod
    def get(self, ticket_id: str) -> Optional[TicketRecord]:
        """Return the record for ``ticket_id``, or None if it was never issued."""
        ...

    @abstractmethod
    def mark_used(self, ticket_id: str, used_at: Optional[datetime] = None) -> bool:
        """Move a ticket from valid to used and record when.

        Returns True only for the call that performed the transition; False
        when the record is missing or already used.

        Raises:
            StorageError: If the backend rejects the write.
        """
        ...
