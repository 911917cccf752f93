"""
Purchase handlers.

POST /api/create-order          single ticket, by bank transfer or card
POST /api/paypal/create-order   card order for several tickets
POST /api/paypal/capture        charge the card order and issue its tickets
"""

from __future__ import annotations

import uuid

from handlers.dependencies import get_services
from models.api import CaptureRequest, CreateOrderRequest, PayPalCreateOrderRequest
from models.order import LineItems
from utils.error_handling import AppError, ValidationInputError, json_response, server_error, to_response
from utils.logging_config import get_logger
from utils.validators import parse_request

logger = get_logger(__name__)

METHOD_TRANSFER = "transfer"
METHOD_CARD = "card"


def create_order_handler(event, context):
    """Handle POST /api/create-order."""
    correlation_id = str(uuid.uuid4())
    try:
        request = parse_request(event, CreateOrderRequest)
        services = get_services()

        if request.method == METHOD_TRANSFER:
            reservation = services.tracker.create_transfer_reservation(
                request.buyer(), request.ticket_type, request.amount
            )
            return json_response(
                200,
                {
                    "ok": True,
                    "method": METHOD_TRANSFER,
                    "referenceCode": reservation.reference_code,
                    "iban": services.settings.iban,
                    "bic": services.settings.bic,
                },
            )

        if request.method == METHOD_CARD:
            items = LineItems(**{request.ticket_type.value: 1})
            order_id = services.tracker.create_card_order(request.buyer(), items)
            return json_response(200, {"ok": True, "method": METHOD_CARD, "orderId": order_id})

        raise ValidationInputError("Invalid method")

    except AppError as exc:
        logger.warning("Create order rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("Create order failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)


def paypal_create_order_handler(event, context):
    """Handle POST /api/paypal/create-order."""
    correlation_id = str(uuid.uuid4())
    try:
        request = parse_request(event, PayPalCreateOrderRequest)
        order_id = get_services().tracker.create_card_order(request.buyer(), request.tickets)
        return json_response(200, {"id": order_id})

    except AppError as exc:
        logger.warning("PayPal order rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("PayPal order failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)


def capture_handler(event, context):
    """Handle POST /api/paypal/capture and its alias /api/paypal/capture-order."""
    correlation_id = str(uuid.uuid4())
    try:
        request = parse_request(event, CaptureRequest)
        outcome = get_services().tracker.capture_card_order(request.order_id)
        return json_response(
            200,
            {
                "ok": True,
                "orderId": outcome.order_id,
                "ticketId": outcome.ticket_ids[0] if outcome.ticket_ids else None,
                "ticketIds": outcome.ticket_ids,
                "replayed": outcome.replayed,
            },
        )

    except AppError as exc:
        logger.warning("Capture rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        logger.exception("Capture failed", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)
