"""Ticket models: signed claims, persisted record and issuance result."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from models.base import CamelModel, check_email


class TicketType(str, Enum):
    """Entry categories sold for the event."""

    STANDARD = "standard"
    VIP = "vip"


class TicketStatus(str, Enum):
    """Redemption state of a persisted ticket."""

    VALID = "valid"
    USED = "used"


class Buyer(CamelModel):
    """Person paying for (and named on) a ticket."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return check_email(value)


class Provenance(CamelModel):
    """Where the payment behind a ticket came from."""

    order_id: Optional[str] = None
    capture_id: Optional[str] = None
    reference: Optional[str] = None


class TicketPayload(CamelModel):
    """Claims embedded in the signed ticket token."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    email: str
    ticket_type: TicketType = Field(alias="type")
    amount: float
    issued_at: datetime
    order_id: Optional[str] = None
    capture_id: Optional[str] = None
    reference: Optional[str] = None


class TicketRecord(CamelModel):
    """Server-side state of an issued ticket. The token itself is never stored."""

    id: str = Field(min_length=1)
    email: str
    ticket_type: TicketType = Field(alias="type")
    integrity_hash: str = Field(alias="hash")
    issued_at: datetime
    status: TicketStatus = TicketStatus.VALID
    used_at: Optional[datetime] = None

    @property
    def is_used(self) -> bool:
        return self.status == TicketStatus.USED


class IssuedTicket(CamelModel):
    """Result of issuance: the persisted record plus its signed credential."""

    record: TicketRecord
    payload: TicketPayload
    token: str

    @property
    def ticket_id(self) -> str:
        return self.record.id
