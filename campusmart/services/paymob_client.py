# campusmart/services/paymob_client.py
"""
Paymob Accept client.

Checkout is three sequential calls, each feeding the next:
  1. POST /api/auth/tokens              -> auth token
  2. POST /api/ecommerce/orders         -> provider order
  3. POST /api/acceptance/payment_keys  -> payment key for the iframe
Every call has its own timeout. Nothing is retried here; PaymentWorkflow
decides whether to resume.
"""
import hashlib
import hmac
import logging
from decimal import ROUND_HALF_UP, Decimal

import httpx

from campusmart.core.errors import GatewayError, GatewayTimeout
from campusmart.models.user import User

logger = logging.getLogger(__name__)

STEP_AUTHENTICATE = "authenticate"
STEP_CREATE_ORDER = "create_order"
STEP_PAYMENT_KEY = "issue_payment_key"

PLACEHOLDER = "NA"
PLACEHOLDER_NAME = "User"
PLACEHOLDER_PHONE = "01000000000"
BILLING_COUNTRY = "EG"
PAYMENT_KEY_EXPIRATION_SECONDS = 3600


def to_minor_units(amount) -> int:
    """Major units (e.g. 12.5 EGP) -> integer piasters (1250)."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def split_full_name(full_name: str | None) -> tuple[str, str]:
    parts = (full_name or "").split()
    first_name = parts[0] if parts else PLACEHOLDER_NAME
    last_name = " ".join(parts[1:]) or PLACEHOLDER_NAME
    return first_name, last_name


def build_billing_data(user: User) -> dict:
    # Paymob requires every field; we only know name and email
    first_name, last_name = split_full_name(user.full_name)
    return {
        "apartment": PLACEHOLDER,
        "email": user.email,
        "floor": PLACEHOLDER,
        "first_name": first_name,
        "street": PLACEHOLDER,
        "building": PLACEHOLDER,
        "phone_number": PLACEHOLDER_PHONE,
        "shipping_method": PLACEHOLDER,
        "postal_code": PLACEHOLDER,
        "city": PLACEHOLDER,
        "country": BILLING_COUNTRY,
        "last_name": last_name,
        "state": PLACEHOLDER,
    }


def callback_message(order_id: str, success: bool) -> bytes:
    return f"{order_id}{'true' if success else 'false'}".encode("utf-8")


def sign_callback(secret: str, order_id: str, success: bool) -> str:
    return hmac.new(
        secret.encode("utf-8"), callback_message(order_id, success), hashlib.sha512
    ).hexdigest()


def verify_callback(secret: str, order_id: str, success: bool, signature: str | None) -> bool:
    if not signature:
        return False
    expected = sign_callback(secret, order_id, success)
    return hmac.compare_digest(expected, signature.lower())


class PaymobClient:
    def __init__(
        self,
        api_key: str,
        integration_id: str,
        iframe_id: str,
        base_url: str = "https://accept.paymob.com",
        currency: str = "EGP",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.integration_id = integration_id
        self.iframe_id = iframe_id
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = timeout
        # tests plug in httpx.MockTransport here
        self._transport = transport

    async def _post(self, step: str, path: str, payload: dict) -> dict:
        url = self.base_url + path
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Paymob %s timed out after %ss", step, self.timeout)
            raise GatewayTimeout(step, str(exc) or "timeout") from exc
        except httpx.HTTPError as exc:
            logger.warning("Paymob %s transport error: %s", step, exc)
            raise GatewayError(step, str(exc)) from exc

        if resp.status_code >= 400:
            logger.warning("Paymob %s failed: HTTP %s", step, resp.status_code)
            raise GatewayError(step, f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError(step, "response is not JSON") from exc
        if not isinstance(data, dict):
            raise GatewayError(step, "unexpected response shape")
        return data

    async def authenticate(self) -> str:
        data = await self._post(STEP_AUTHENTICATE, "/api/auth/tokens", {"api_key": self.api_key})
        token = data.get("token")
        if not token:
            raise GatewayError(STEP_AUTHENTICATE, "no token in response")
        return token

    async def create_order(self, auth_token: str, amount, merchant_order_id: str) -> dict:
        data = await self._post(
            STEP_CREATE_ORDER,
            "/api/ecommerce/orders",
            {
                "auth_token": auth_token,
                "delivery_needed": False,
                "amount_cents": to_minor_units(amount),
                "currency": self.currency,
                "merchant_order_id": merchant_order_id,
                "items": [],
            },
        )
        if data.get("id") is None:
            raise GatewayError(STEP_CREATE_ORDER, "no order id in response")
        return data

    async def issue_payment_key(
        self,
        auth_token: str,
        provider_order_id,
        amount,
        billing_user: User,
    ) -> str:
        data = await self._post(
            STEP_PAYMENT_KEY,
            "/api/acceptance/payment_keys",
            {
                "auth_token": auth_token,
                "amount_cents": to_minor_units(amount),
                "expiration": PAYMENT_KEY_EXPIRATION_SECONDS,
                "order_id": provider_order_id,
                "billing_data": build_billing_data(billing_user),
                "currency": self.currency,
                "integration_id": self.integration_id,
            },
        )
        payment_key = data.get("token")
        if not payment_key:
            raise GatewayError(STEP_PAYMENT_KEY, "no payment key in response")
        return payment_key

    def iframe_url(self, payment_key: str) -> str:
        return f"{self.base_url}/api/acceptance/iframes/{self.iframe_id}?payment_token={payment_key}"
