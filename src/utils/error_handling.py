"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ValidationInputError(AppError):
    """Raised when request fields are missing or malformed."""

    def __init__(self, message: str = "Missing fields"):
        super().__init__(message, status_code=400)


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class UnknownOrderError(NotFoundError):
    """No pending or completed card order exists for the id."""

    def __init__(self, order_id: str):
        super().__init__("Order not found")
        self.order_id = order_id


class UnknownReservationError(NotFoundError):
    """No transfer reservation exists for the reference code."""

    def __init__(self, reference_code: str):
        super().__init__("Reservation not found")
        self.reference_code = reference_code


class PaymentNotCompletedError(AppError):
    """The provider answered but the capture did not complete."""

    def __init__(self, order_id: str, status: str):
        super().__init__("Payment not completed", status_code=400)
        self.order_id = order_id
        self.status = status


class PaymentProviderError(AppError):
    """The payment provider could not be reached or rejected the call."""

    def __init__(self, message: str = "Payment provider error"):
        super().__init__(message, status_code=502)


class StorageError(AppError):
    """Ticket storage backend failure."""

    def __init__(self, message: str = "Storage error"):
        super().__init__(message, status_code=500)


class EmailError(AppError):
    """Outbound email failure. Never surfaced to callers."""

    def __init__(self, message: str = "Email delivery failed"):
        super().__init__(message, status_code=502)


def json_response(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return json_response(error.status_code, {"ok": False, "error": str(error)})


def server_error(correlation_id: str) -> Dict[str, Any]:
    """500 response that hides internal detail but lets support find the log line."""
    return json_response(
        500,
        {"ok": False, "error": "Internal server error", "correlation_id": correlation_id},
    )
