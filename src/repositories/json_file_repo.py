"""
JSON file ticket repository.

One document keyed by ticket id, loaded lazily and rewritten in full on every
mutation. Fine for the write volume of a single event; not safe for more than
one process sharing the file.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from pydantic import ValidationError

from models.ticket import TicketRecord, TicketStatus
from repositories.interfaces import TicketRepository
from utils.error_handling import StorageError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class JsonFileTicketRepository(TicketRepository):
    """File-backed store: ``{ticket_id: {email, type, hash, issuedAt, status, usedAt}}``."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._cache: Optional[Dict[str, dict]] = None
        self._lock = Lock()

    def save(self, record: TicketRecord) -> None:
        document = record.to_wire()
        document.pop("id", None)
        with self._lock:
            data = self._load()
            previous = data.get(record.id)
            data[record.id] = document
            try:
                self._write(data)
            except StorageError:
                if previous is None:
                    data.pop(record.id, None)
                else:
                    data[record.id] = previous
                raise

    def get(self, ticket_id: str) -> Optional[TicketRecord]:
        with self._lock:
            document = self._load().get(ticket_id)
        if document is None:
            return None
        try:
            return TicketRecord.model_validate({**document, "id": ticket_id})
        except ValidationError as exc:
            logger.error(
                "Unreadable ticket record",
                extra={"ticket_id": ticket_id, "error": str(exc)},
            )
            raise StorageError("Corrupt ticket record") from exc

    def mark_used(self, ticket_id: str, used_at: Optional[datetime] = None) -> bool:
        with self._lock:
            data = self._load()
            document = data.get(ticket_id)
            if document is None or document.get("status") == TicketStatus.USED.value:
                return False
            updated = dict(document)
            updated["status"] = TicketStatus.USED.value
            updated["usedAt"] = (used_at or datetime.now(timezone.utc)).isoformat()
            data[ticket_id] = updated
            try:
                self._write(data)
            except StorageError:
                data[ticket_id] = document
                raise
            return True

    def _load(self) -> Dict[str, dict]:
        """Read the file once; a corrupt file is logged and reset to empty."""
        if self._cache is not None:
            return self._cache
        if not self.path.exists():
            self._cache = {}
            self._write(self._cache)
            return self._cache
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
            if not isinstance(loaded, dict):
                raise ValueError("top-level JSON value must be an object")
            self._cache = loaded
        except ValueError as exc:
            logger.error(
                "Invalid tickets file, resetting",
                extra={"path": str(self.path), "error": str(exc)},
            )
            self._cache = {}
            self._write(self._cache)
        except OSError as exc:
            raise StorageError("Cannot read tickets file") from exc
        return self._cache

    def _write(self, data: Dict[str, dict]) -> None:
        """Rewrite the whole document atomically (temp file + rename)."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error(
                "Failed to write tickets file",
                extra={"path": str(self.path), "error": str(exc)},
            )
            raise StorageError("Cannot write tickets file") from exc
