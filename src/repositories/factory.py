"""Pick the ticket storage backend once, at process start."""

from config.settings import Settings
from repositories.interfaces import TicketRepository
from utils.logging_config import get_logger

logger = get_logger(__name__)


def build_ticket_repository(settings: Settings) -> TicketRepository:
    """Instantiate the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend

    if backend == "memory":
        from repositories.memory_repo import InMemoryTicketRepository

        repository = InMemoryTicketRepository()
    elif backend == "file":
        from repositories.json_file_repo import JsonFileTicketRepository

        repository = JsonFileTicketRepository(settings.tickets_file)
    elif backend == "dynamodb":
        from repositories.dynamodb_repo import DynamoDbTicketRepository

        repository = DynamoDbTicketRepository(
            settings.tickets_table, timeout_seconds=settings.http_timeout_seconds
        )
    elif backend == "sql":
        if not settings.database_url:
            raise ValueError("DATABASE_URL is required for the sql storage backend")
        from repositories.sql_repo import SqlTicketRepository

        repository = SqlTicketRepository.from_url(
            settings.database_url, timeout_seconds=settings.http_timeout_seconds
        )
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info("Ticket storage ready", extra={"backend": backend})
    return repository
