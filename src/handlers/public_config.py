"""GET /api/config: what the purchase page needs to render itself."""

from __future__ import annotations

import uuid

from handlers.dependencies import get_services
from utils.error_handling import AppError, json_response, server_error, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)


def lambda_handler(event, context):
    correlation_id = str(uuid.uuid4())
    try:
        settings = get_services().settings
        return json_response(
            200,
            {
                "eventName": settings.event_name,
                "eventDate": settings.event_date,
                "currency": settings.currency,
                "prices": settings.unit_prices,
                "paypalClientId": settings.paypal_client_id,
                "paypalEnv": settings.paypal_env,
                "transferEnabled": settings.transfer_enabled,
                "testEndpoints": settings.enable_test_endpoints,
            },
        )

    except AppError as exc:
        logger.warning("Config request rejected", extra={"correlation_id": correlation_id, "error": str(exc)})
        return to_response(exc)
    except Exception:
        # Services could not be built, e.g. prod without PayPal credentials.
        logger.exception("Config unavailable", extra={"correlation_id": correlation_id})
        return server_error(correlation_id)
