import json
from datetime import datetime, timedelta

import httpx
import pytest

from campusmart.core.config import Settings
from campusmart.core.security import SessionIssuer
from campusmart.repositories.memory import build_memory_repositories
from campusmart.services.auth import AuthWorkflow
from campusmart.services.otp import OtpIssuer, OtpNotifier
from campusmart.services.payments import PaymentWorkflow
from campusmart.services.paymob_client import PaymobClient

AUTH_PATH = "/api/auth/tokens"
ORDERS_PATH = "/api/ecommerce/orders"
KEYS_PATH = "/api/acceptance/payment_keys"

HMAC_SECRET = "test-hmac-secret"


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class CapturingNotifier(OtpNotifier):
    def __init__(self):
        self.sent = []

    def send(self, email: str, code: str) -> None:
        self.sent.append((email, code))

    def last_code(self, email: str) -> str:
        return [code for (to, code) in self.sent if to == email][-1]


class FakePaymob:
    """Paymob stand-in behind httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        # path -> "timeout" | "connect" | "empty" | HTTP status
        self.failures = {}
        self.next_order_id = 1000

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        payload = json.loads(request.content or b"{}")
        self.requests.append((path, payload))

        failure = self.failures.get(path)
        if failure == "timeout":
            raise httpx.ReadTimeout("timed out", request=request)
        if failure == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if failure == "empty":
            return httpx.Response(201, json={})
        if isinstance(failure, int):
            return httpx.Response(failure, json={"detail": "internal gateway payload"})

        if path == AUTH_PATH:
            return httpx.Response(201, json={"token": "auth-token"})
        if path == ORDERS_PATH:
            self.next_order_id += 1
            return httpx.Response(
                201,
                json={"id": self.next_order_id, "merchant_order_id": payload["merchant_order_id"]},
            )
        if path == KEYS_PATH:
            return httpx.Response(201, json={"token": f"paykey-{payload['order_id']}"})
        return httpx.Response(404, json={})

    def calls(self, path: str) -> list:
        return [payload for (p, payload) in self.requests if p == path]

    def client(self, timeout: float = 5.0) -> PaymobClient:
        return PaymobClient(
            api_key="test-api-key",
            integration_id="4242",
            iframe_id="777",
            base_url="https://accept.test",
            timeout=timeout,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture
def repos():
    return build_memory_repositories()


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def session_issuer():
    return SessionIssuer("test-secret")


@pytest.fixture
def otp_issuer(repos, clock):
    return OtpIssuer(repos.otps, clock=clock)


@pytest.fixture
def auth(repos, otp_issuer, session_issuer, notifier):
    return AuthWorkflow(
        users=repos.users,
        otp_issuer=otp_issuer,
        session_issuer=session_issuer,
        notifier=notifier,
        bcrypt_rounds=4,
    )


@pytest.fixture
def fake_paymob():
    return FakePaymob()


@pytest.fixture
def payments(repos, fake_paymob):
    return PaymentWorkflow(
        listings=repos.listings,
        payments=repos.payments,
        gateway=fake_paymob.client(),
        callback_secret=HMAC_SECRET,
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        app_env="dev",
        secret_key="test-secret",
        bcrypt_rounds=4,
        database_url=None,
        paymob_api_key="test-api-key",
        paymob_integration_id="4242",
        paymob_iframe_id="777",
        paymob_hmac_secret=HMAC_SECRET,
    )
