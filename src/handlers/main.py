"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

One function keeps the in-memory order tracker (pending card orders, the
capture cache, transfer reservations) shared by every route of a warm
container.
"""

from typing import Callable, Dict, Tuple

from . import health_check, orders, public_config, rehearsal, transfers, validation
from utils.error_handling import json_response

ROUTES: Dict[Tuple[str, str], Callable] = {
    ("GET", "/api/health"): health_check.lambda_handler,
    ("GET", "/api/config"): public_config.lambda_handler,
    ("POST", "/api/create-order"): orders.create_order_handler,
    ("POST", "/api/paypal/create-order"): orders.paypal_create_order_handler,
    ("POST", "/api/paypal/capture"): orders.capture_handler,
    ("POST", "/api/paypal/capture-order"): orders.capture_handler,
    ("POST", "/api/confirm-transfer"): transfers.lambda_handler,
    ("POST", "/api/validate"): validation.lambda_handler,
    ("POST", "/api/test/issue"): rehearsal.lambda_handler,
}


def _route_key(event) -> Tuple[str, str]:
    http = event.get("requestContext", {}).get("http", {})
    method = http.get("method") or event.get("httpMethod", "")
    path = http.get("path") or event.get("rawPath") or event.get("path", "")
    if len(path) > 1:
        path = path.rstrip("/")
    return method.upper(), path


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    Routes match the exact method and path; anything else is a 404.
    """
    method, path = _route_key(event)
    handler = ROUTES.get((method, path))
    if handler is None:
        return json_response(404, {"message": "Route not found", "route": f"{method} {path}"})
    return handler(event, context)
