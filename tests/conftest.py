"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import health_check` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.
"""

import os
import sys
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where the deployment package makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-3")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-3")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Offline defaults for the ticketing services
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("EMAIL_PROVIDER", "log")
os.environ.setdefault("NOTIFY_INLINE", "true")

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-3")


@pytest.fixture
def settings():
    """Development settings with transfer details and the test endpoint on."""
    from config.settings import Settings

    return Settings(
        environment="dev",
        jwt_secret="test-secret",
        iban="FR7630006000011234567890189",
        bic="AGRIFRPP",
        notify_inline=True,
        enable_test_endpoints=True,
    )


@pytest.fixture
def email_sender(settings):
    from services.email_service import LoggingEmailSender

    return LoggingEmailSender(settings.organizer_email)


@pytest.fixture
def services(settings, email_sender):
    """In-memory container installed for the handlers, removed afterwards."""
    from handlers.dependencies import build_services, set_services
    from repositories.memory_repo import InMemoryTicketRepository
    from services.notification_service import InlineExecutor, TicketNotifier
    from services.payment_service import OfflinePaymentProvider

    notifier = TicketNotifier(email_sender, settings, executor=InlineExecutor())
    container = build_services(
        settings,
        repository=InMemoryTicketRepository(),
        payment_provider=OfflinePaymentProvider(),
        notifier=notifier,
    )
    set_services(container)
    yield container
    set_services(None)
