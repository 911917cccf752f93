"""Request parsing and validation helpers shared by handlers."""

import base64
import json
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from utils.error_handling import ValidationInputError

ModelT = TypeVar("ModelT", bound=BaseModel)


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationInputError if value is falsy."""
    if value in (None, "", []):
        raise ValidationInputError(f"{field} is required")


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Decode the JSON body of an API Gateway proxy event."""
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    try:
        payload = json.loads(raw)
    except ValueError:
        raise ValidationInputError("Invalid JSON body")
    if not isinstance(payload, dict):
        raise ValidationInputError("Invalid JSON body")
    return payload


def parse_request(event: Dict[str, Any], model: Type[ModelT]) -> ModelT:
    """Parse and validate a request body into ``model``.

    Pydantic errors collapse to the generic "Missing fields" message the
    front-end already understands.
    """
    payload = parse_body(event)
    try:
        return model.model_validate(payload)
    except ValidationError:
        raise ValidationInputError("Missing fields")
