"""Shared pydantic base: snake_case in Python, camelCase on the wire."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model for every payload that crosses JSON boundaries."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict:
        """JSON-safe dict with camelCase keys and no empty optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def check_email(value: str) -> str:
    """Reject addresses without a local part and a domain."""
    local, _, domain = value.partition("@")
    if not local or not domain:
        raise ValueError("a valid email is required")
    return value
