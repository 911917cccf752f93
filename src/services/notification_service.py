"""
Ticket and reservation emails.

Rendering and sending are synchronous and separately testable; dispatch_*
hands them to an executor so the caller's response never waits on email.
Failures are logged per message and never propagate.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config.settings import Settings
from models.order import Reservation
from models.ticket import IssuedTicket, TicketType
from services.email_service import Attachment, EmailSender
from services.qr_service import encode_qr, png_data_url
from utils.error_handling import EmailError
from utils.logging_config import get_logger

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

TYPE_LABELS = {
    TicketType.VIP: "VIP entry (dinner included)",
    TicketType.STANDARD: "Standard entry",
}


class InlineExecutor(Executor):
    """Run submitted work immediately in the calling thread.

    Used on Lambda, where background threads are frozen once the response
    is returned, and in tests.
    """

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class TicketNotifier:
    """Compose and deliver buyer emails on a best-effort basis."""

    def __init__(
        self,
        sender: EmailSender,
        settings: Settings,
        executor: Optional[Executor] = None,
        qr_encoder: Callable[[str], bytes] = encode_qr,
    ):
        self.sender = sender
        self.settings = settings
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")
        self.qr_encoder = qr_encoder
        self._templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render_ticket_email(self, issued: IssuedTicket, qr_png: Optional[bytes] = None) -> Tuple[str, str]:
        """Subject and HTML body for a freshly issued ticket."""
        payload = issued.payload
        png = qr_png if qr_png is not None else self.qr_encoder(issued.token)
        html = self._templates.get_template("ticket_email.html").render(
            event_name=self.settings.event_name,
            event_date=self.settings.event_date,
            name=payload.name,
            ticket_id=payload.id,
            ticket_type_label=TYPE_LABELS[payload.ticket_type],
            qr_data_url=png_data_url(png),
        )
        subject = f"[{self.settings.event_name}] Your ticket – {payload.id}"
        return subject, html

    def render_reservation_email(self, reservation: Reservation) -> Tuple[str, str]:
        """Subject and HTML body with bank-transfer instructions."""
        html = self._templates.get_template("transfer_reservation.html").render(
            event_name=self.settings.event_name,
            event_date=self.settings.event_date,
            name=reservation.name,
            amount=f"{reservation.amount:.2f}",
            currency=self.settings.currency,
            reference=reservation.reference_code,
            iban=self.settings.iban or "—",
            bic=self.settings.bic or "—",
        )
        subject = (
            f"[{self.settings.event_name}] Reservation awaiting bank transfer "
            f"({reservation.reference_code})"
        )
        return subject, html

    def send_ticket(self, issued: IssuedTicket) -> bool:
        """Deliver one ticket email now. Returns False on any failure."""
        ticket_id = issued.ticket_id
        try:
            png = self.qr_encoder(issued.token)
            subject, html = self.render_ticket_email(issued, qr_png=png)
            message_id = self.sender.send(
                issued.payload.email,
                subject,
                html,
                attachments=[Attachment(f"ticket-{ticket_id}.png", png, "image/png")],
            )
        except EmailError as exc:
            logger.error("Ticket email failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            return False
        except Exception:
            logger.exception("Ticket email crashed", extra={"ticket_id": ticket_id})
            return False
        logger.info("Ticket email sent", extra={"ticket_id": ticket_id, "message_id": message_id})
        return True

    def send_reservation(self, reservation: Reservation) -> bool:
        """Deliver transfer instructions now. Returns False on any failure."""
        reference = reservation.reference_code
        try:
            subject, html = self.render_reservation_email(reservation)
            message_id = self.sender.send(reservation.email, subject, html)
        except EmailError as exc:
            logger.error("Reservation email failed", extra={"reference_code": reference, "error": str(exc)})
            return False
        except Exception:
            logger.exception("Reservation email crashed", extra={"reference_code": reference})
            return False
        logger.info("Reservation email sent", extra={"reference_code": reference, "message_id": message_id})
        return True

    def dispatch_ticket(self, issued: IssuedTicket) -> Future:
        """Fire-and-forget ``send_ticket``."""
        return self.executor.submit(self.send_ticket, issued)

    def dispatch_reservation(self, reservation: Reservation) -> Future:
        """Fire-and-forget ``send_reservation``."""
        return self.executor.submit(self.send_reservation, reservation)

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
