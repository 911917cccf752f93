"""
POST /api/test/issue: issue a ticket without payment.

Only answers when ENABLE_TEST_ENDPOINTS is on; otherwise it behaves like an
unknown route. Meant for rehearsing the door scanner before the event.
"""

from __future__ import annotations

import uuid

from handlers.dependencies import get_services
from models.api import TestIssueRequest
from models.ticket import Provenance
from utils.error_handling import AppError, json_response, server_error, to_response
from utils.logging_config import get_logger
from utils.validators import parse_request

logger = get_logger(__name__)


def lambda_handler(event, context):
    correlation_id = str(uuid.uuid4())
    try:
        services = get_services()
        if not services.settings.enable_test_endpoints:
            return json_response(404, {"message": "Route not found"})

        request = parse_request(event, TestIssueRequest)
        amount = request.amount
        if amount is None:
            amount = services.settings.unit_prices[request.ticket_type.value]
        issued = services.issuance.issue(
            request.buyer(),
            request.ticket_type,
            amount,
            provenance=Provenance(reference="test"),
        )
        logger.warning("Test ticket issued", extra={"ticket_id": issued.ticket_id})
        return json_response(200, {"ok": True, "ticketId": issued.ticket_id, "token": issued.token})

    except AppError as exc:
        logger.warning("Test issue rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("Test issue failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)
