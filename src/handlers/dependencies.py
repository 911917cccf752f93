"""
Shared, lazily built services for every handler module.

Built on first use so a cold start that only serves /api/health never touches
storage or payment credentials. The container survives across warm
invocations, which is what keeps the capture cache and the reservations alive
between requests.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from config.settings import DEV_SECRET, Settings
from repositories.interfaces import TicketRepository
from services.credential_service import CredentialCodec
from services.issuance_service import IssuanceService
from services.notification_service import InlineExecutor, TicketNotifier
from services.order_tracker import OrderTracker
from services.payment_service import PaymentProvider
from services.validation_service import ValidationService
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    repository: TicketRepository
    codec: CredentialCodec
    notifier: TicketNotifier
    issuance: IssuanceService
    tracker: OrderTracker
    validator: ValidationService
    payment_provider: PaymentProvider


def build_services(
    settings: Settings,
    repository: Optional[TicketRepository] = None,
    payment_provider: Optional[PaymentProvider] = None,
    notifier: Optional[TicketNotifier] = None,
) -> ServiceContainer:
    """Wire the services for ``settings``; any collaborator may be injected."""
    from repositories.factory import build_ticket_repository
    from services.email_service import build_email_sender
    from services.payment_service import build_payment_provider

    if settings.jwt_secret == DEV_SECRET and settings.environment != "dev":
        logger.warning(
            "JWT_SECRET is the development default",
            extra={"environment": settings.environment},
        )

    repository = repository or build_ticket_repository(settings)
    payment_provider = payment_provider or build_payment_provider(settings)
    if notifier is None:
        executor = (
            InlineExecutor()
            if settings.notify_inline
            else ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")
        )
        notifier = TicketNotifier(build_email_sender(settings), settings, executor=executor)

    codec = CredentialCodec(settings.jwt_secret)
    issuance = IssuanceService(codec, repository, notifier=notifier, prefix=settings.ticket_prefix)
    tracker = OrderTracker(
        issuance,
        payment_provider,
        unit_prices=settings.unit_prices,
        currency=settings.currency,
        notifier=notifier,
        reference_prefix=settings.ticket_prefix,
    )
    validator = ValidationService(codec, repository)

    logger.info(
        "Services initialized",
        extra={
            "environment": settings.environment,
            "storage_backend": settings.storage_backend,
            "email_provider": settings.email_provider,
            "payment_provider": type(payment_provider).__name__,
        },
    )
    return ServiceContainer(
        settings=settings,
        repository=repository,
        codec=codec,
        notifier=notifier,
        issuance=issuance,
        tracker=tracker,
        validator=validator,
        payment_provider=payment_provider,
    )


# Lazy-loaded container to avoid import-time storage connections
_services: Optional[ServiceContainer] = None


def get_services() -> ServiceContainer:
    """Lazy-load the container from the environment."""
    global _services
    if _services is None:
        _services = build_services(Settings.from_environment())
    return _services


def set_services(services: Optional[ServiceContainer]) -> None:
    """Install a prebuilt container (tests, local runners)."""
    global _services
    _services = services


def reset_services() -> None:
    """Drop the container; background email workers finish first."""
    global _services
    if _services is not None:
        _services.notifier.shutdown(wait=True)
    _services = None
