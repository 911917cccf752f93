"""Card orders and bank-transfer reservations awaiting payment."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from models.base import CamelModel
from models.ticket import TicketType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LineItems(CamelModel):
    """Quantities per ticket type for a single card order."""

    standard: int = Field(default=0, ge=0)
    vip: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "LineItems":
        if self.total <= 0:
            raise ValueError("at least one ticket is required")
        return self

    @property
    def total(self) -> int:
        return self.standard + self.vip

    def units(self) -> List[TicketType]:
        """One entry per ticket to issue, standard tickets first."""
        return [TicketType.STANDARD] * self.standard + [TicketType.VIP] * self.vip


class ReservationStatus(str, Enum):
    PENDING_TRANSFER = "pending_transfer"
    PAID = "paid"


class Reservation(CamelModel):
    """Bank-transfer intent waiting for manual payment confirmation."""

    email: str
    name: str
    ticket_type: TicketType
    amount: float
    reference_code: str
    created_at: datetime = Field(default_factory=_utcnow)
    status: ReservationStatus = ReservationStatus.PENDING_TRANSFER
    ticket_id: Optional[str] = None


class PendingOrder(CamelModel):
    """Card order created with the provider but not captured yet.

    ``captured``, ``ticket_ids`` and ``emails_queued`` track progress so a retried capture
    resumes issuance instead of charging twice. ``emails_queued`` counts emails handed
    to the notifier, not emails delivered.
    """

    order_id: str
    name: str
    email: str
    amount: float
    items: LineItems
    created_at: datetime = Field(default_factory=_utcnow)
    captured: bool = False
    capture_id: Optional[str] = None
    ticket_ids: List[str] = Field(default_factory=list)
    emails_queued: int = 0


class CompletedOrder(CamelModel):
    """Idempotency record for a captured order.

    ``emails_queued`` counts ticket emails queued for delivery; delivery failures
    happen later and are only logged.
    """

    order_id: str
    ticket_ids: List[str]
    emails_queued: int = 0


class CaptureOutcome(CompletedOrder):
    """Capture response; ``replayed`` is set when served from the cache."""

    replayed: bool = False
