"""Pydantic models for API payloads."""

from models.api import (  # noqa: F401
    BuyerRequest,
    CaptureRequest,
    ConfirmTransferRequest,
    CreateOrderRequest,
    PayPalCreateOrderRequest,
    TestIssueRequest,
    ValidateRequest,
)
from models.order import (  # noqa: F401
    CaptureOutcome,
    CompletedOrder,
    LineItems,
    PendingOrder,
    Reservation,
    ReservationStatus,
)
from models.ticket import (  # noqa: F401
    Buyer,
    IssuedTicket,
    Provenance,
    TicketPayload,
    TicketRecord,
    TicketStatus,
    TicketType,
)
