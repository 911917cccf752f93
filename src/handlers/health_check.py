"""Lightweight health check handler."""

from datetime import datetime, timezone

from utils.error_handling import json_response


def lambda_handler(event, context):
    """Return a 200 without touching storage, payment or email."""
    return json_response(200, {"ok": True, "time": datetime.now(timezone.utc).isoformat()})
