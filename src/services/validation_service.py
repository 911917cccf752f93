"""Door-side redemption: a ticket validates successfully exactly once."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from models.ticket import TicketType
from repositories.interfaces import TicketRepository
from services.credential_service import CredentialCodec, CredentialError, compute_integrity_hash
from utils.keyed_lock import KeyedLock
from utils.logging_config import get_logger

logger = get_logger(__name__)


class ValidationFailure(str, Enum):
    INVALID_OR_EXPIRED = "invalid_or_expired"
    UNKNOWN_TICKET = "unknown_ticket"
    INTEGRITY_MISMATCH = "integrity_mismatch"
    ALREADY_USED = "already_used"


# What the scanner is told. Credential and integrity problems share one
# message so a forger learns nothing about which check failed.
PUBLIC_REASONS = {
    ValidationFailure.INVALID_OR_EXPIRED: (400, "Invalid or expired QR"),
    ValidationFailure.INTEGRITY_MISMATCH: (400, "Invalid or expired QR"),
    ValidationFailure.UNKNOWN_TICKET: (404, "Ticket not found"),
    ValidationFailure.ALREADY_USED: (400, "Already used"),
}


@dataclass
class ValidationOutcome:
    ok: bool
    ticket_id: Optional[str] = None
    name: Optional[str] = None
    ticket_type: Optional[TicketType] = None
    failure: Optional[ValidationFailure] = None

    @property
    def status_code(self) -> int:
        return 200 if self.ok else PUBLIC_REASONS[self.failure][0]

    @property
    def reason(self) -> Optional[str]:
        return None if self.ok else PUBLIC_REASONS[self.failure][1]

    @classmethod
    def rejected(cls, failure: ValidationFailure, ticket_id: Optional[str] = None) -> "ValidationOutcome":
        return cls(ok=False, ticket_id=ticket_id, failure=failure)


class ValidationService:
    """Verify a scanned token and redeem the ticket it names."""

    def __init__(
        self,
        codec: CredentialCodec,
        repository: TicketRepository,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.codec = codec
        self.repository = repository
        self.locks = locks or KeyedLock()
        self.clock = clock

    def validate(self, raw_token: Optional[str]) -> ValidationOutcome:
        """Check signature, existence, integrity and status, then mark used.

        Raises:
            StorageError: If the repository could not be read or updated.
        """
        try:
            payload = self.codec.verify(raw_token or "")
        except CredentialError as exc:
            logger.info("Credential rejected", extra={"failure": exc.kind.value})
            return ValidationOutcome.rejected(ValidationFailure.INVALID_OR_EXPIRED)

        ticket_id = payload.id
        with self.locks.hold(ticket_id):
            record = self.repository.get(ticket_id)
            if record is None:
                logger.info("Unknown ticket presented", extra={"ticket_id": ticket_id})
                return ValidationOutcome.rejected(ValidationFailure.UNKNOWN_TICKET, ticket_id)

            expected = compute_integrity_hash(payload.email, payload.id, payload.ticket_type)
            if record.integrity_hash != expected:
                logger.warning(
                    "Integrity mismatch on validation",
                    extra={"ticket_id": ticket_id, "failure": ValidationFailure.INTEGRITY_MISMATCH.value},
                )
                return ValidationOutcome.rejected(ValidationFailure.INTEGRITY_MISMATCH, ticket_id)

            if record.is_used:
                logger.info(
                    "Ticket already used",
                    extra={"ticket_id": ticket_id, "used_at": record.used_at},
                )
                return ValidationOutcome.rejected(ValidationFailure.ALREADY_USED, ticket_id)

            if not self.repository.mark_used(ticket_id, used_at=self.clock()):
                # Another process redeemed it between get and mark_used.
                logger.info("Redemption lost a race", extra={"ticket_id": ticket_id})
                return ValidationOutcome.rejected(ValidationFailure.ALREADY_USED, ticket_id)

        logger.info(
            "Ticket validated",
            extra={"ticket_id": ticket_id, "ticket_type": payload.ticket_type.value},
        )
        return ValidationOutcome(
            ok=True,
            ticket_id=ticket_id,
            name=payload.name,
            ticket_type=payload.ticket_type,
        )
