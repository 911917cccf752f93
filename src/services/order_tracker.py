"""
In-memory tracking of card orders and bank-transfer reservations.

Card flow: create_card_order registers the order with the payment provider and
keeps it pending; capture_card_order charges it and issues one ticket per unit.
A captured order is cached so a repeated capture returns the same tickets.

Transfer flow: create_transfer_reservation hands out a reference code;
confirm_transfer is called by the organizer once the money has arrived.

State lives in process memory only and is lost on restart.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, List, Mapping, Optional

from models.order import (
    CaptureOutcome,
    CompletedOrder,
    LineItems,
    PendingOrder,
    Reservation,
    ReservationStatus,
)
from models.ticket import Buyer, IssuedTicket, Provenance, TicketType
from services.issuance_service import IssuanceService
from services.notification_service import TicketNotifier
from services.payment_service import PaymentProvider
from utils.error_handling import (
    AppError,
    PaymentNotCompletedError,
    UnknownOrderError,
    UnknownReservationError,
)
from utils.keyed_lock import KeyedLock
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)

MAX_REFERENCE_ATTEMPTS = 50


def _random_reference_number() -> int:
    return secrets.randbelow(100000)


@dataclass
class TransferConfirmation:
    """Result of confirm_transfer; ``replayed`` when the reservation was already paid."""

    reservation: Reservation
    issued: IssuedTicket
    replayed: bool = False

    @property
    def ticket_id(self) -> str:
        return self.issued.ticket_id


class OrderTracker:
    """Owns pending orders, reservations and the capture idempotency cache."""

    def __init__(
        self,
        issuance: IssuanceService,
        payment_provider: PaymentProvider,
        unit_prices: Mapping[str, float],
        currency: str = "EUR",
        notifier: Optional[TicketNotifier] = None,
        reference_prefix: str = "AFR",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        reference_source: Callable[[], int] = _random_reference_number,
        max_reference_attempts: int = MAX_REFERENCE_ATTEMPTS,
    ):
        self.issuance = issuance
        self.payment_provider = payment_provider
        self.unit_prices = dict(unit_prices)
        self.currency = currency
        self.notifier = notifier
        self.reference_prefix = reference_prefix
        self.clock = clock
        self.reference_source = reference_source
        self.max_reference_attempts = max_reference_attempts

        self._lock = Lock()
        self._pending: Dict[str, PendingOrder] = {}
        self._completed: Dict[str, CompletedOrder] = {}
        self._reservations: Dict[str, Reservation] = {}
        self._confirmed: Dict[str, IssuedTicket] = {}
        self._order_locks = KeyedLock()
        self._reference_locks = KeyedLock()

    # ------------------------------------------------------------------
    # Card orders
    # ------------------------------------------------------------------

    def unit_price(self, ticket_type: TicketType) -> float:
        return float(self.unit_prices[ticket_type.value])

    def order_total(self, items: LineItems) -> float:
        return sum(self.unit_price(ticket_type) for ticket_type in items.units())

    def create_card_order(self, buyer: Buyer, items: LineItems) -> str:
        """Register the order with the provider and keep it pending.

        Raises:
            PaymentProviderError: If the provider rejected or could not be reached.
        """
        total = self.order_total(items)
        order_id = self.payment_provider.create_order(int(round(total * 100)), self.currency)
        pending = PendingOrder(
            order_id=order_id,
            name=buyer.name,
            email=buyer.email,
            amount=total,
            items=items,
            created_at=self.clock(),
        )
        with self._lock:
            self._pending[order_id] = pending

        logger.info(
            "Card order created",
            extra={"order_id": order_id, "standard": items.standard, "vip": items.vip, "amount": total},
        )
        return order_id

    def capture_card_order(self, order_id: str) -> CaptureOutcome:
        """Capture payment and issue the order's tickets, at most once.

        A retry after a partial failure (e.g. storage down mid-order) does not
        capture again and only issues the tickets still missing.

        Raises:
            UnknownOrderError: No pending or completed order has this id.
            PaymentNotCompletedError: The provider did not report COMPLETED.
            PaymentProviderError: The provider could not be reached.
            StorageError: A ticket could not be persisted; the order stays pending.
        """
        ensure_present(order_id, "orderId")
        with self._order_locks.hold(order_id):
            with self._lock:
                completed = self._completed.get(order_id)
                pending = self._pending.get(order_id)

            if completed is not None:
                logger.info("Capture replayed from cache", extra={"order_id": order_id})
                return CaptureOutcome(**completed.model_dump(), replayed=True)
            if pending is None:
                logger.warning("Capture for unknown order", extra={"order_id": order_id})
                raise UnknownOrderError(order_id)

            if not pending.captured:
                result = self.payment_provider.capture(order_id)
                if not result.completed:
                    logger.warning(
                        "Payment not completed",
                        extra={"order_id": order_id, "status": result.status},
                    )
                    raise PaymentNotCompletedError(order_id, result.status)
                pending.captured = True
                pending.capture_id = result.capture_id

            self._issue_remaining(pending)

            completed = CompletedOrder(
                order_id=order_id,
                ticket_ids=list(pending.ticket_ids),
                emails_queued=pending.emails_queued,
            )
            with self._lock:
                self._completed[order_id] = completed
                self._pending.pop(order_id, None)

        logger.info(
            "Order captured",
            extra={"order_id": order_id, "ticket_count": len(completed.ticket_ids)},
        )
        return CaptureOutcome(**completed.model_dump())

    def _issue_remaining(self, pending: PendingOrder) -> None:
        buyer = Buyer(name=pending.name, email=pending.email)
        provenance = Provenance(order_id=pending.order_id, capture_id=pending.capture_id)
        units: List[TicketType] = pending.items.units()
        for ticket_type in units[len(pending.ticket_ids):]:
            issued = self.issuance.issue(
                buyer,
                ticket_type,
                self.unit_price(ticket_type),
                provenance=provenance,
                notify=False,
            )
            pending.ticket_ids.append(issued.ticket_id)
            if self.issuance.notify(issued):
                pending.emails_queued += 1

    def get_pending_order(self, order_id: str) -> Optional[PendingOrder]:
        with self._lock:
            return self._pending.get(order_id)

    def get_completed_order(self, order_id: str) -> Optional[CompletedOrder]:
        with self._lock:
            return self._completed.get(order_id)

    # ------------------------------------------------------------------
    # Bank transfers
    # ------------------------------------------------------------------

    def _new_reference_code(self) -> str:
        # Caller holds self._lock.
        year = self.clock().year
        for _ in range(self.max_reference_attempts):
            code = f"{self.reference_prefix}-{year}-{self.reference_source():05d}"
            if code not in self._reservations:
                return code
        raise AppError("No reference code available, try again later", status_code=503)

    def create_transfer_reservation(
        self,
        buyer: Buyer,
        ticket_type: TicketType,
        amount: float,
    ) -> Reservation:
        """Record a transfer intent and email payment instructions."""
        with self._lock:
            reference_code = self._new_reference_code()
            reservation = Reservation(
                email=buyer.email,
                name=buyer.name,
                ticket_type=ticket_type,
                amount=float(amount),
                reference_code=reference_code,
                created_at=self.clock(),
            )
            self._reservations[reference_code] = reservation

        logger.info(
            "Transfer reservation created",
            extra={"reference_code": reference_code, "ticket_type": ticket_type.value, "amount": amount},
        )
        if self.notifier is not None:
            try:
                self.notifier.dispatch_reservation(reservation.model_copy())
            except RuntimeError as exc:
                logger.error(
                    "Reservation email not queued",
                    extra={"reference_code": reference_code, "error": str(exc)},
                )
        return reservation.model_copy()

    def confirm_transfer(
        self,
        reference_code: str,
        ticket_type: Optional[TicketType] = None,
        amount: Optional[float] = None,
    ) -> TransferConfirmation:
        """Mark a reservation paid and issue its ticket.

        Confirming an already paid reservation returns the ticket issued the
        first time; no second ticket is created.

        Raises:
            UnknownReservationError: No reservation has this code.
            StorageError: The ticket could not be persisted; the reservation stays pending.
        """
        ensure_present(reference_code, "referenceCode")
        with self._reference_locks.hold(reference_code):
            with self._lock:
                reservation = self._reservations.get(reference_code)
                previous = self._confirmed.get(reference_code)

            if reservation is None:
                logger.warning("Confirmation for unknown reservation", extra={"reference_code": reference_code})
                raise UnknownReservationError(reference_code)
            if previous is not None:
                logger.info(
                    "Transfer already confirmed",
                    extra={"reference_code": reference_code, "ticket_id": previous.ticket_id},
                )
                return TransferConfirmation(reservation.model_copy(), previous, replayed=True)

            issued = self.issuance.issue(
                Buyer(name=reservation.name, email=reservation.email),
                ticket_type or reservation.ticket_type,
                amount if amount is not None else reservation.amount,
                provenance=Provenance(reference=reference_code),
            )
            with self._lock:
                reservation.status = ReservationStatus.PAID
                reservation.ticket_id = issued.ticket_id
                self._confirmed[reference_code] = issued

        logger.info(
            "Transfer confirmed",
            extra={"reference_code": reference_code, "ticket_id": issued.ticket_id},
        )
        return TransferConfirmation(reservation.model_copy(), issued)

    def get_reservation(self, reference_code: str) -> Optional[Reservation]:
        with self._lock:
            reservation = self._reservations.get(reference_code)
            return reservation.model_copy() if reservation is not None else None
