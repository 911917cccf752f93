"""DynamoDB repository for ticket records."""

from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from models.ticket import TicketRecord, TicketStatus
from repositories.interfaces import TicketRepository
from utils.error_handling import StorageError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class DynamoDbTicketRepository(TicketRepository):
    """Remote store keyed by ``id``; redemption is a conditional update."""

    def __init__(self, table_name: str, table=None, timeout_seconds: float = 5.0):
        if table is None:
            config = Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 2},
            )
            table = boto3.resource("dynamodb", config=config).Table(table_name)
        self.table = table

    def save(self, record: TicketRecord) -> None:
        """Upsert the record (put_item replaces by key)."""
        try:
            self.table.put_item(Item=record.to_wire())
        except (ClientError, BotoCoreError) as exc:
            logger.error("DynamoDB put failed", extra={"ticket_id": record.id, "error": str(exc)})
            raise StorageError("Failed to save ticket") from exc

    def get(self, ticket_id: str) -> Optional[TicketRecord]:
        try:
            resp = self.table.get_item(Key={"id": ticket_id}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            logger.error("DynamoDB get failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise StorageError("Failed to read ticket") from exc
        item = resp.get("Item")
        return TicketRecord.model_validate(item) if item else None

    def mark_used(self, ticket_id: str, used_at: Optional[datetime] = None) -> bool:
        """Flip status only if the item exists and is still valid."""
        timestamp = (used_at or datetime.now(timezone.utc)).isoformat()
        try:
            self.table.update_item(
                Key={"id": ticket_id},
                UpdateExpression="SET #status = :used, usedAt = :used_at",
                ConditionExpression="attribute_exists(id) AND #status = :valid",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={
                    ":used": TicketStatus.USED.value,
                    ":valid": TicketStatus.VALID.value,
                    ":used_at": timestamp,
                },
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            logger.error("DynamoDB update failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise StorageError("Failed to mark ticket used") from exc
        except BotoCoreError as exc:
            logger.error("DynamoDB update failed", extra={"ticket_id": ticket_id, "error": str(exc)})
            raise StorageError("Failed to mark ticket used") from exc
        return True
