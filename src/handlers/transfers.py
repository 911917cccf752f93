"""POST /api/confirm-transfer: organizer confirms a received bank transfer."""

from __future__ import annotations

import uuid

from handlers.dependencies import get_services
from models.api import ConfirmTransferRequest
from utils.error_handling import AppError, json_response, server_error, to_response
from utils.logging_config import get_logger
from utils.validators import parse_request

logger = get_logger(__name__)


def lambda_handler(event, context):
    correlation_id = str(uuid.uuid4())
    try:
        request = parse_request(event, ConfirmTransferRequest)
        confirmation = get_services().tracker.confirm_transfer(
            request.reference_code,
            ticket_type=request.ticket_type,
            amount=request.amount,
        )
        return json_response(
            200,
            {"ok": True, "ticketId": confirmation.ticket_id, "replayed": confirmation.replayed},
        )

    except AppError as exc:
        logger.warning("Transfer confirmation rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("Transfer confirmation failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)
