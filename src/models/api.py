"""Inbound HTTP payloads."""

from typing import Optional

from pydantic import Field, field_validator

from models.base import CamelModel, check_email
from models.order import LineItems
from models.ticket import Buyer, TicketType


class BuyerRequest(CamelModel):
    """Fields shared by every purchase request."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return check_email(value)

    def buyer(self) -> Buyer:
        return Buyer(name=self.name, email=self.email)


class CreateOrderRequest(BuyerRequest):
    """POST /api/create-order."""

    ticket_type: TicketType
    amount: float = Field(gt=0)
    method: str = Field(min_length=1)


class PayPalCreateOrderRequest(BuyerRequest):
    """POST /api/paypal/create-order."""

    tickets: LineItems


class CaptureRequest(CamelModel):
    """POST /api/paypal/capture and /api/paypal/capture-order."""

    order_id: str = Field(min_length=1)


class ConfirmTransferRequest(CamelModel):
    """POST /api/confirm-transfer. Type and amount are manual overrides."""

    reference_code: str = Field(min_length=1)
    ticket_type: Optional[TicketType] = None
    amount: Optional[float] = Field(default=None, gt=0)


class ValidateRequest(CamelModel):
    """POST /api/validate."""

    token: Optional[str] = None


class TestIssueRequest(BuyerRequest):
    """POST /api/test/issue (only when test endpoints are enabled)."""

    __test__ = False

    ticket_type: TicketType = TicketType.STANDARD
    amount: Optional[float] = Field(default=None, gt=0)
