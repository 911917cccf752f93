"""Ticket issuance: the single place a paid purchase turns into a ticket."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from models.ticket import (
    Buyer,
    IssuedTicket,
    Provenance,
    TicketPayload,
    TicketRecord,
    TicketStatus,
    TicketType,
)
from repositories.interfaces import TicketRepository
from services.credential_service import CredentialCodec, compute_integrity_hash
from services.notification_service import TicketNotifier
from utils.logging_config import get_logger

logger = get_logger(__name__)


class IssuanceService:
    """Mint, sign, persist, then hand off to notification."""

    def __init__(
        self,
        codec: CredentialCodec,
        repository: TicketRepository,
        notifier: Optional[TicketNotifier] = None,
        prefix: str = "AFR",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.codec = codec
        self.repository = repository
        self.notifier = notifier
        self.prefix = prefix
        self.clock = clock

    def new_ticket_id(self, now: datetime) -> str:
        """``<prefix>-<year>-<12 hex>``; uuid4 entropy makes reuse practically impossible."""
        return f"{self.prefix}-{now.year}-{uuid.uuid4().hex[:12].upper()}"

    def issue(
        self,
        buyer: Buyer,
        ticket_type: TicketType,
        amount: float,
        provenance: Optional[Provenance] = None,
        notify: bool = True,
    ) -> IssuedTicket:
        """Create and persist one ticket.

        With ``notify`` the email is dispatched in the background; its outcome
        never affects the returned ticket.

        Raises:
            StorageError: If the record could not be persisted.
        """
        provenance = provenance or Provenance()
        now = self.clock()
        ticket_id = self.new_ticket_id(now)

        payload = TicketPayload(
            id=ticket_id,
            name=buyer.name,
            email=buyer.email,
            ticket_type=ticket_type,
            amount=float(amount),
            issued_at=now,
            order_id=provenance.order_id,
            capture_id=provenance.capture_id,
            reference=provenance.reference,
        )
        token = self.codec.sign(payload, now=now)
        record = TicketRecord(
            id=ticket_id,
            email=buyer.email,
            ticket_type=ticket_type,
            integrity_hash=compute_integrity_hash(buyer.email, ticket_id, ticket_type),
            issued_at=now,
            status=TicketStatus.VALID,
        )
        self.repository.save(record)

        logger.info(
            "Ticket issued",
            extra={
                "ticket_id": ticket_id,
                "ticket_type": ticket_type.value,
                "order_id": provenance.order_id,
                "reference_code": provenance.reference,
            },
        )
        issued = IssuedTicket(record=record, payload=payload, token=token)
        if notify:
            self.notify(issued)
        return issued

    def notify(self, issued: IssuedTicket) -> bool:
        """Queue the ticket email. Returns whether a notification was queued."""
        if self.notifier is None:
            return False
        try:
            self.notifier.dispatch_ticket(issued)
        except RuntimeError as exc:
            # Executor already shut down.
            logger.error(
                "Ticket email not queued",
                extra={"ticket_id": issued.ticket_id, "error": str(exc)},
            )
            return False
        return True
