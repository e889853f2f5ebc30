"""PayMongo gateway - Checkout sessions over the PayMongo REST API"""

import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ...config import (
    FRONTEND_URL,
    PAYMENT_GATEWAY_TIMEOUT,
    PAYMONGO_API_URL,
    PAYMONGO_SECRET_KEY,
)
from ...errors import PaymentGatewayError

logger = logging.getLogger(__name__)

# Statuses reported by get_status
STATUS_PAID = "paid"
STATUS_PENDING = "pending"
STATUS_EXPIRED = "expired"


@dataclass(frozen=True)
class CheckoutSession:
    external_id: str
    checkout_url: str


def to_minor_units(amount: float) -> int:
    """PayMongo amounts are integers in centavos"""
    return int(round(amount * 100))


class PayMongoGateway:
    """Client for PayMongo checkout sessions"""

    def __init__(
        self,
        secret_key: Optional[str] = PAYMONGO_SECRET_KEY,
        api_url: str = PAYMONGO_API_URL,
        timeout: float = PAYMENT_GATEWAY_TIMEOUT,
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> dict:
        if not self.secret_key:
            raise PaymentGatewayError("Payment gateway is not configured")
        token = base64.b64encode(f"{self.secret_key}:".encode()).decode()
        return {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as http_client:
                response = await http_client.request(
                    method, f"{self.api_url}{path}", json=json, headers=headers
                )
        except httpx.TimeoutException as e:
            logger.warning(f"PayMongo {method} {path} timed out: {e}")
            raise PaymentGatewayError("Payment gateway timed out", retryable=True) from e
        except httpx.HTTPError as e:
            logger.error(f"PayMongo {method} {path} transport error: {e}")
            raise PaymentGatewayError("Payment gateway unreachable") from e

        if response.status_code not in (200, 201):
            detail = _error_detail(response)
            logger.error(f"PayMongo {method} {path} failed ({response.status_code}): {detail}")
            raise PaymentGatewayError(f"Payment gateway error: {detail}")

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"PayMongo {method} {path} returned a non-JSON body")
            raise PaymentGatewayError("Malformed response from payment gateway") from e

        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise PaymentGatewayError("Malformed response from payment gateway")
        return body["data"]

    async def create_checkout(
        self,
        amount: float,
        currency: str,
        description: str,
        metadata: dict[str, Any],
        line_item_name: str,
    ) -> CheckoutSession:
        """
        Open a checkout session for one line item

        Returns:
            CheckoutSession with the gateway's id and hosted checkout URL
        """
        service_id = metadata.get("service_id")
        payload = {
            "data": {
                "attributes": {
                    "line_items": [
                        {
                            "amount": to_minor_units(amount),
                            "currency": currency,
                            "name": line_item_name,
                            "quantity": 1,
                        }
                    ],
                    "payment_method_types": ["card", "gcash", "paymaya"],
                    "description": description,
                    "metadata": {k: str(v) for k, v in metadata.items()},
                    "success_url": f"{FRONTEND_URL}/payment-success/{service_id}",
                    "cancel_url": f"{FRONTEND_URL}/payment-failure/{service_id}",
                    "send_email_receipt": True,
                }
            }
        }

        data = await self._request("POST", "/checkout_sessions", json=payload)
        attributes = _mapping(data.get("attributes"))
        session = CheckoutSession(
            external_id=data.get("id"), checkout_url=attributes.get("checkout_url")
        )
        logger.info(f"PayMongo checkout session created: {session.external_id}")
        return session

    async def get_status(self, external_id: str) -> str:
        """Report whether a checkout session has been paid"""
        data = await self._request("GET", f"/checkout_sessions/{external_id}")
        attributes = _mapping(data.get("attributes"))

        payments = attributes.get("payments") or []
        if not isinstance(payments, list):
            raise PaymentGatewayError("Malformed response from payment gateway")
        if any(_mapping(_mapping(p).get("attributes")).get("status") == "paid" for p in payments):
            return STATUS_PAID

        intent = _mapping(_mapping(attributes.get("payment_intent")).get("attributes"))
        if intent.get("status") == "succeeded":
            return STATUS_PAID

        if attributes.get("status") == "expired":
            return STATUS_EXPIRED
        return STATUS_PENDING


def _mapping(value: Any) -> dict:
    """Nested PayMongo objects must be JSON objects when present"""
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.error(f"PayMongo returned an unexpected {type(value).__name__} where an object was expected")
        raise PaymentGatewayError("Malformed response from payment gateway")
    return value


def _error_detail(response: httpx.Response) -> str:
    try:
        errors = response.json().get("errors") or []
        if errors:
            return errors[0].get("detail") or "Unknown error from PayMongo"
    except (ValueError, AttributeError):
        pass
    return response.text[:200] or "Unknown error from PayMongo"


def get_payment_gateway() -> PayMongoGateway:
    """Dependency injection for the payment gateway"""
    return PayMongoGateway()
