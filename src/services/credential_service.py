"""
Credential codec: signed ticket tokens and the integrity hash.

Tokens are HS256 JWTs carrying the ticket claims plus a fixed 30-day expiry.
Failures keep their specific kind for logs and tests; callers at the HTTP
boundary only ever see one generic reason.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from models.ticket import TicketPayload, TicketType

ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=30)


class CredentialErrorKind(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"


class CredentialError(Exception):
    """Token could not be trusted; ``kind`` says why."""

    def __init__(self, kind: CredentialErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail


def compute_integrity_hash(email: str, ticket_id: str, ticket_type: TicketType | str) -> str:
    """sha256 over ``lower(email)|id|type``, binding a ticket to its holder."""
    type_value = ticket_type.value if isinstance(ticket_type, TicketType) else str(ticket_type)
    material = f"{email.lower()}|{ticket_id}|{type_value}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class CredentialCodec:
    """Mint and verify signed ticket tokens with a process-wide secret."""

    def __init__(self, secret: str, lifetime: timedelta = TOKEN_LIFETIME):
        if not secret:
            raise ValueError("a signing secret is required")
        self._secret = secret
        self.lifetime = lifetime

    def sign(self, payload: TicketPayload, now: Optional[datetime] = None) -> str:
        """Encode ``payload`` with an ``exp`` claim ``lifetime`` after ``now``."""
        issued = now or datetime.now(timezone.utc)
        claims = payload.to_wire()
        claims["exp"] = issued + self.lifetime
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TicketPayload:
        """Decode and check ``token``.

        Raises:
            CredentialError: MALFORMED, EXPIRED or SIGNATURE_INVALID.
        """
        if not token:
            raise CredentialError(CredentialErrorKind.MALFORMED, "empty token")

        # Structure first, so a garbled token is not reported as a bad signature.
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise CredentialError(CredentialErrorKind.MALFORMED, str(exc)) from exc

        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise CredentialError(CredentialErrorKind.EXPIRED, str(exc)) from exc
        except JWTError as exc:
            raise CredentialError(CredentialErrorKind.SIGNATURE_INVALID, str(exc)) from exc

        claims.pop("exp", None)
        try:
            return TicketPayload.model_validate(claims)
        except ValidationError as exc:
            raise CredentialError(
                CredentialErrorKind.MALFORMED, "inconsistent ticket claims"
            ) from exc
