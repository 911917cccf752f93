"""
Environment-specific configuration settings.

Defaults target local development: in-memory storage, log-only email and an
offline payment provider, so the whole flow runs without credentials.
"""

from dataclasses import dataclass
from typing import Dict, Optional
import os

from dotenv import load_dotenv

DEV_SECRET = "dev_secret"


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> Optional[str]:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Application settings with development-friendly defaults."""

    # Environment
    environment: str = "dev"

    # Event
    event_name: str = "Soirée AFARIS – Décembre 2025"
    event_date: str = "2025-12-27"
    organizer_email: str = "billets@afaris.com"

    # Tickets
    jwt_secret: str = DEV_SECRET
    ticket_prefix: str = "AFR"
    currency: str = "EUR"
    standard_price: float = 30.0
    vip_price: float = 45.0

    # PayPal
    paypal_env: str = "sandbox"
    paypal_client_id: Optional[str] = None
    paypal_secret: Optional[str] = None

    # Email: log | smtp | ses
    email_provider: str = "log"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    ses_region: Optional[str] = None
    notify_inline: bool = False

    # Bank transfer
    iban: Optional[str] = None
    bic: Optional[str] = None

    # Storage: memory | file | dynamodb | sql
    storage_backend: str = "memory"
    tickets_file: str = "data/tickets.fallback.json"
    tickets_table: str = "event-tickets"
    database_url: Optional[str] = None

    # Feature flags
    enable_test_endpoints: bool = False

    # Outbound calls
    http_timeout_seconds: float = 10.0

    @property
    def unit_prices(self) -> Dict[str, float]:
        """Unit price per ticket type value."""
        return {"standard": self.standard_price, "vip": self.vip_price}

    @property
    def paypal_enabled(self) -> bool:
        return bool(self.paypal_client_id and self.paypal_secret)

    @property
    def transfer_enabled(self) -> bool:
        return bool(self.iban)

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables (and a local .env file)."""
        load_dotenv()
        defaults = cls()
        return cls(
            environment=os.environ.get("ENVIRONMENT", defaults.environment),
            event_name=os.environ.get("EVENT_NAME", defaults.event_name),
            event_date=os.environ.get("EVENT_DATE", defaults.event_date),
            organizer_email=os.environ.get("ORGANIZER_EMAIL", defaults.organizer_email),
            jwt_secret=os.environ.get("JWT_SECRET", defaults.jwt_secret),
            ticket_prefix=os.environ.get("TICKET_PREFIX", defaults.ticket_prefix),
            currency=os.environ.get("CURRENCY", defaults.currency).upper(),
            standard_price=float(os.environ.get("STANDARD_PRICE", defaults.standard_price)),
            vip_price=float(os.environ.get("VIP_PRICE", defaults.vip_price)),
            paypal_env=os.environ.get("PAYPAL_ENV", defaults.paypal_env).lower(),
            paypal_client_id=_env_optional("PAYPAL_CLIENT_ID"),
            paypal_secret=_env_optional("PAYPAL_SECRET"),
            email_provider=os.environ.get("EMAIL_PROVIDER", defaults.email_provider).lower(),
            smtp_host=_env_optional("SMTP_HOST"),
            smtp_port=int(os.environ.get("SMTP_PORT", defaults.smtp_port)),
            smtp_user=_env_optional("SMTP_USER"),
            smtp_pass=_env_optional("SMTP_PASS"),
            ses_region=_env_optional("SES_REGION"),
            notify_inline=_env_bool("NOTIFY_INLINE", defaults.notify_inline),
            iban=_env_optional("IBAN"),
            bic=_env_optional("BIC"),
            storage_backend=os.environ.get("STORAGE_BACKEND", defaults.storage_backend).lower(),
            tickets_file=os.environ.get("TICKETS_FILE", defaults.tickets_file),
            tickets_table=os.environ.get("TICKETS_TABLE", defaults.tickets_table),
            database_url=_env_optional("DATABASE_URL"),
            enable_test_endpoints=_env_bool("ENABLE_TEST_ENDPOINTS", defaults.enable_test_endpoints),
            http_timeout_seconds=float(
                os.environ.get("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds)
            ),
        )
