"""POST /api/validate: scan a ticket at the door."""

from __future__ import annotations

import uuid

from handlers.dependencies import get_services
from models.api import ValidateRequest
from utils.error_handling import AppError, json_response, server_error, to_response
from utils.logging_config import get_logger
from utils.validators import parse_request

logger = get_logger(__name__)


def lambda_handler(event, context):
    correlation_id = str(uuid.uuid4())
    try:
        request = parse_request(event, ValidateRequest)
        outcome = get_services().validator.validate(request.token)

        if not outcome.ok:
            return json_response(outcome.status_code, {"ok": False, "reason": outcome.reason})
        return json_response(
            200,
            {
                "ok": True,
                "ticketId": outcome.ticket_id,
                "name": outcome.name,
                "type": outcome.ticket_type.value,
            },
        )

    except AppError as exc:
        logger.warning("Validation request rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("Validation failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)
