"""
Ticket repository tests.

The memory, JSON file and SQL (in-memory SQLite) backends share one behaviour
suite; DynamoDB is exercised against a mocked table.

Run with: pytest tests/unit/test_repositories.py -v
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from models.ticket import TicketRecord, TicketStatus, TicketType
from repositories.dynamodb_repo import DynamoDbTicketRepository
from repositories.json_file_repo import JsonFileTicketRepository
from repositories.memory_repo import InMemoryTicketRepository
from repositories.sql_repo import SqlTicketRepository
from utils.error_handling import StorageError

ISSUED_AT = datetime(2025, 12, 1, 20, 0, tzinfo=timezone.utc)
USED_AT = datetime(2025, 12, 27, 21, 30, tzinfo=timezone.utc)


def _record(ticket_id="AFR-2025-AAAAAAAAAAAA", **overrides):
    fields = dict(
        id=ticket_id,
        email="a@example.com",
        ticket_type=TicketType.VIP,
        integrity_hash="f" * 64,
        issued_at=ISSUED_AT,
    )
    fields.update(overrides)
    return TicketRecord(**fields)


def _sqlite_repository():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return SqlTicketRepository(engine)


@pytest.fixture(params=["memory", "file", "sql"])
def repository(request, tmp_path):
    if request.param == "memory":
        return InMemoryTicketRepository()
    if request.param == "file":
        return JsonFileTicketRepository(str(tmp_path / "tickets.json"))
    return _sqlite_repository()


class TestRepositoryBehaviour:
    def test_get_missing_returns_none(self, repository):
        assert repository.get("AFR-2025-MISSING") is None

    def test_save_then_get(self, repository):
        repository.save(_record())
        stored = repository.get("AFR-2025-AAAAAAAAAAAA")
        assert stored == _record()
        assert stored.status is TicketStatus.VALID

    def test_save_is_an_upsert(self, repository):
        repository.save(_record())
        repository.save(_record(email="b@example.com"))
        assert repository.get("AFR-2025-AAAAAAAAAAAA").email == "b@example.com"

    def test_mark_used_once(self, repository):
        repository.save(_record())
        assert repository.mark_used("AFR-2025-AAAAAAAAAAAA", used_at=USED_AT) is True
        assert repository.mark_used("AFR-2025-AAAAAAAAAAAA", used_at=USED_AT) is False

        stored = repository.get("AFR-2025-AAAAAAAAAAAA")
        assert stored.status is TicketStatus.USED
        assert stored.used_at == USED_AT

    def test_mark_used_missing_is_noop(self, repository):
        assert repository.mark_used("AFR-2025-MISSING") is False
        assert repository.get("AFR-2025-MISSING") is None

    def test_tickets_are_independent(self, repository):
        repository.save(_record("AFR-2025-1"))
        repository.save(_record("AFR-2025-2"))
        assert repository.mark_used("AFR-2025-1") is True
        assert repository.get("AFR-2025-2").status is TicketStatus.VALID


class TestInMemoryRepository:
    def test_returned_records_are_copies(self):
        repository = InMemoryTicketRepository()
        repository.save(_record())
        repository.get("AFR-2025-AAAAAAAAAAAA").status = TicketStatus.USED
        assert repository.get("AFR-2025-AAAAAAAAAAAA").status is TicketStatus.VALID
        assert len(repository) == 1


class TestJsonFileRepository:
    def test_document_layout(self, tmp_path):
        path = tmp_path / "tickets.json"
        JsonFileTicketRepository(str(path)).save(_record())

        data = json.loads(path.read_text(encoding="utf-8"))
        document = data["AFR-2025-AAAAAAAAAAAA"]
        assert "id" not in document
        assert document["type"] == "vip"
        assert document["hash"] == "f" * 64
        assert document["status"] == "valid"
        assert "issuedAt" in document

    def test_survives_restart(self, tmp_path):
        path = str(tmp_path / "tickets.json")
        first = JsonFileTicketRepository(path)
        first.save(_record())
        first.mark_used("AFR-2025-AAAAAAAAAAAA", used_at=USED_AT)

        second = JsonFileTicketRepository(path)
        assert second.get("AFR-2025-AAAAAAAAAAAA").is_used
        assert second.mark_used("AFR-2025-AAAAAAAAAAAA") is False

    def test_missing_file_is_created(self, tmp_path):
        path = tmp_path / "data" / "tickets.json"
        assert JsonFileTicketRepository(str(path)).get("X") is None
        assert json.loads(path.read_text(encoding="utf-8")) == {}

    def test_corrupt_file_is_reset(self, tmp_path):
        path = tmp_path / "tickets.json"
        path.write_text("{not json", encoding="utf-8")
        repository = JsonFileTicketRepository(str(path))

        assert repository.get("X") is None
        assert json.loads(path.read_text(encoding="utf-8")) == {}

    def test_write_failure_raises_and_keeps_state(self, tmp_path, monkeypatch):
        repository = JsonFileTicketRepository(str(tmp_path / "tickets.json"))
        repository.save(_record("AFR-2025-1"))

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("repositories.json_file_repo.os.replace", broken_replace)
        with pytest.raises(StorageError):
            repository.save(_record("AFR-2025-2"))
        with pytest.raises(StorageError):
            repository.mark_used("AFR-2025-1")

        assert repository.get("AFR-2025-2") is None
        assert repository.get("AFR-2025-1").status is TicketStatus.VALID


class TestSqlRepository:
    def test_schema_creation_is_idempotent(self):
        repository = _sqlite_repository()
        repository.save(_record())
        repository.ensure_schema()
        assert repository.get("AFR-2025-AAAAAAAAAAAA") is not None


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "UpdateItem")


class TestDynamoDbRepository:
    def test_save_puts_wire_item(self):
        table = MagicMock()
        DynamoDbTicketRepository("tickets", table=table).save(_record())

        item = table.put_item.call_args.kwargs["Item"]
        assert item["id"] == "AFR-2025-AAAAAAAAAAAA"
        assert item["type"] == "vip"
        assert item["hash"] == "f" * 64

    def test_get_uses_consistent_read(self):
        table = MagicMock()
        table.get_item.return_value = {"Item": _record().to_wire()}
        repository = DynamoDbTicketRepository("tickets", table=table)

        assert repository.get("AFR-2025-AAAAAAAAAAAA") == _record()
        table.get_item.assert_called_once_with(Key={"id": "AFR-2025-AAAAAAAAAAAA"}, ConsistentRead=True)

    def test_get_missing(self):
        table = MagicMock()
        table.get_item.return_value = {}
        assert DynamoDbTicketRepository("tickets", table=table).get("X") is None

    def test_mark_used_is_conditional(self):
        table = MagicMock()
        assert DynamoDbTicketRepository("tickets", table=table).mark_used("X", used_at=USED_AT) is True

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_exists(id) AND #status = :valid"
        assert kwargs["ExpressionAttributeValues"][":used_at"] == USED_AT.isoformat()

    def test_failed_condition_means_already_used(self):
        table = MagicMock()
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException")
        assert DynamoDbTicketRepository("tickets", table=table).mark_used("X") is False

    def test_other_errors_raise_storage_error(self):
        table = MagicMock()
        table.update_item.side_effect = _client_error("ProvisionedThroughputExceededException")
        table.put_item.side_effect = _client_error("InternalServerError")
        repository = DynamoDbTicketRepository("tickets", table=table)

        with pytest.raises(StorageError):
            repository.mark_used("X")
        with pytest.raises(StorageError):
            repository.save(_record())


class TestFactory:
    def test_builds_configured_backend(self, tmp_path):
        from config.settings import Settings
        from repositories.factory import build_ticket_repository

        assert isinstance(build_ticket_repository(Settings()), InMemoryTicketRepository)
        file_settings = Settings(storage_backend="file", tickets_file=str(tmp_path / "t.json"))
        assert isinstance(build_ticket_repository(file_settings), JsonFileTicketRepository)
        sql_settings = Settings(storage_backend="sql", database_url="sqlite://")
        assert isinstance(build_ticket_repository(sql_settings), SqlTicketRepository)

    def test_rejects_unknown_backend(self):
        from config.settings import Settings
        from repositories.factory import build_ticket_repository

        with pytest.raises(ValueError):
            build_ticket_repository(Settings(storage_backend="redis"))
        with pytest.raises(ValueError):
            build_ticket_repository(Settings(storage_backend="sql"))
