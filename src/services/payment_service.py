"""
Payment provider adapters.

PayPalProvider talks to the v2 Checkout Orders API; OfflinePaymentProvider
stands in when no credentials are configured so the card flow still runs
locally end to end.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import requests

from config.settings import Settings
from utils.cache_service import LRUCache
from utils.error_handling import PaymentProviderError
from utils.logging_config import get_logger

logger = get_logger(__name__)

STATUS_COMPLETED = "COMPLETED"
ISSUE_ALREADY_CAPTURED = "ORDER_ALREADY_CAPTURED"

PAYPAL_URLS = {
    "sandbox": "https://api-m.sandbox.paypal.com",
    "live": "https://api-m.paypal.com",
}


class OrderAlreadyCapturedError(PaymentProviderError):
    """PayPal refused a capture because the order was captured earlier."""

    def __init__(self):
        super().__init__("PayPal order already captured")


def _issues(response) -> List[str]:
    """Issue codes from a PayPal error body; empty when the body is not JSON."""
    try:
        details = response.json().get("details") or []
    except (ValueError, AttributeError):
        return []
    return [detail.get("issue") for detail in details if isinstance(detail, dict)]


@dataclass
class CaptureResult:
    """Provider answer to a capture request."""

    status: str
    capture_id: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == STATUS_COMPLETED


class PaymentProvider(ABC):
    """Card payment capability used by the order tracker."""

    @abstractmethod
    def create_order(self, amount_minor: int, currency: str) -> str:
        """Register an order for ``amount_minor`` and return its id."""
        ...

    @abstractmethod
    def capture(self, order_id: str) -> CaptureResult:
        """Finalize the charge for ``order_id``."""
        ...


def format_amount(amount_minor: int) -> str:
    """Minor units to the decimal string PayPal expects."""
    return f"{amount_minor // 100}.{amount_minor % 100:02d}"


class PayPalProvider(PaymentProvider):
    """PayPal REST client with a cached OAuth token."""

    def __init__(
        self,
        client_id: str,
        secret: str,
        environment: str = "sandbox",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.secret = secret
        self.base_url = PAYPAL_URLS["live" if environment == "live" else "sandbox"]
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token_cache = LRUCache(max_size=1, ttl_seconds=300)

    def create_order(self, amount_minor: int, currency: str) -> str:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {"amount": {"currency_code": currency, "value": format_amount(amount_minor)}}
            ],
        }
        data = self._post("/v2/checkout/orders", body)
        order_id = data.get("id")
        if not order_id:
            raise PaymentProviderError("PayPal returned no order id")
        logger.info("PayPal order created", extra={"order_id": order_id, "amount_minor": amount_minor})
        return order_id

    def capture(self, order_id: str) -> CaptureResult:
        """Capture ``order_id``; a retry after a lost response gets the original capture."""
        try:
            data = self._post(
                f"/v2/checkout/orders/{order_id}/capture",
                {},
                request_id=f"capture-{order_id}",
            )
        except OrderAlreadyCapturedError:
            logger.warning("PayPal order already captured, reading it back", extra={"order_id": order_id})
            data = self._get(f"/v2/checkout/orders/{order_id}")
        status = data.get("status", "UNKNOWN")
        capture_id = None
        try:
            capture_id = data["purchase_units"][0]["payments"]["captures"][0]["id"]
        except (KeyError, IndexError, TypeError):
            logger.warning("PayPal capture without capture id", extra={"order_id": order_id})
        logger.info("PayPal capture answered", extra={"order_id": order_id, "status": status})
        return CaptureResult(status=status, capture_id=capture_id)

    def _access_token(self) -> str:
        """Client-credentials token, reused until shortly before it expires."""
        cached = self._token_cache.get("access_token")
        if cached:
            return cached
        try:
            response = self.session.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                data="grant_type=client_credentials",
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayPal OAuth failed", extra={"error": str(exc)})
            raise PaymentProviderError("PayPal authentication failed") from exc
        token = data["access_token"]
        ttl = max(int(data.get("expires_in", 300)) - 60, 30)
        self._token_cache.set("access_token", token, ttl_seconds=ttl)
        return token

    def _headers(self, request_id: Optional[str] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self._access_token()}",
            "Content-Type": "application/json",
        }
        if request_id:
            headers["PayPal-Request-Id"] = request_id
        return headers

    def _post(self, path: str, body: dict, request_id: Optional[str] = None) -> dict:
        headers = self._headers(request_id)
        try:
            response = self.session.post(
                f"{self.base_url}{path}",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
            if response.status_code == 422 and ISSUE_ALREADY_CAPTURED in _issues(response):
                raise OrderAlreadyCapturedError()
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayPal call failed", extra={"path": path, "error": str(exc)})
            raise PaymentProviderError() from exc

    def _get(self, path: str) -> dict:
        headers = self._headers()
        try:
            response = self.session.get(
                f"{self.base_url}{path}",
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("PayPal call failed", extra={"path": path, "error": str(exc)})
            raise PaymentProviderError() from exc


class OfflinePaymentProvider(PaymentProvider):
    """Accept every order; used when PayPal credentials are absent."""

    def create_order(self, amount_minor: int, currency: str) -> str:
        order_id = str(uuid.uuid4())
        logger.info(
            "Offline order created",
            extra={"order_id": order_id, "amount_minor": amount_minor, "currency": currency},
        )
        return order_id

    def capture(self, order_id: str) -> CaptureResult:
        return CaptureResult(status=STATUS_COMPLETED, capture_id=f"offline-{uuid.uuid4().hex[:12]}")


def build_payment_provider(settings: Settings) -> PaymentProvider:
    """PayPal when credentials exist, otherwise the offline provider."""
    if settings.paypal_enabled:
        return PayPalProvider(
            settings.paypal_client_id,
            settings.paypal_secret,
            environment=settings.paypal_env,
            timeout=settings.http_timeout_seconds,
        )
    if settings.environment == "prod":
        raise ValueError("PAYPAL_CLIENT_ID and PAYPAL_SECRET are required in prod")
    logger.warning("PayPal credentials missing; card payments are simulated")
    return OfflinePaymentProvider()
