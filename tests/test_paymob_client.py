import asyncio
from decimal import Decimal

import pytest

from campusmart.core.errors import GatewayError, GatewayTimeout
from campusmart.models.user import User
from campusmart.services.paymob_client import (
    build_billing_data,
    sign_callback,
    split_full_name,
    to_minor_units,
    verify_callback,
)
from conftest import AUTH_PATH, KEYS_PATH, ORDERS_PATH


def _user(full_name="Alice Smith"):
    return User(user_id="user_1", email="alice@x.com", full_name=full_name)


@pytest.mark.parametrize(
    "amount,expected",
    [(10, 1000), (12.5, 1250), ("19.99", 1999), (Decimal("0.005"), 1), (Decimal("150.00"), 15000)],
)
def test_to_minor_units(amount, expected):
    assert to_minor_units(amount) == expected


@pytest.mark.parametrize(
    "full_name,expected",
    [
        ("A B", ("A", "B")),
        ("Cher", ("Cher", "User")),
        ("Mary Ann Lee", ("Mary", "Ann Lee")),
        ("", ("User", "User")),
        (None, ("User", "User")),
    ],
)
def test_split_full_name(full_name, expected):
    assert split_full_name(full_name) == expected


def test_billing_data_uses_placeholders():
    billing = build_billing_data(_user("Cher"))

    assert billing["email"] == "alice@x.com"
    assert billing["first_name"] == "Cher"
    assert billing["last_name"] == "User"
    assert billing["phone_number"] == "01000000000"
    assert billing["country"] == "EG"
    for field in ("apartment", "floor", "street", "building", "city", "state", "postal_code"):
        assert billing[field] == "NA"


def test_three_step_chain(fake_paymob):
    client = fake_paymob.client()

    async def run():
        token = await client.authenticate()
        order = await client.create_order(token, Decimal("150"), "order_abc")
        key = await client.issue_payment_key(token, order["id"], Decimal("150"), _user())
        return token, order, key

    token, order, key = asyncio.run(run())

    assert token == "auth-token"
    assert fake_paymob.calls(AUTH_PATH) == [{"api_key": "test-api-key"}]

    order_payload = fake_paymob.calls(ORDERS_PATH)[0]
    assert order_payload["amount_cents"] == 15000
    assert order_payload["currency"] == "EGP"
    assert order_payload["merchant_order_id"] == "order_abc"
    assert order_payload["delivery_needed"] is False
    assert order_payload["auth_token"] == "auth-token"

    key_payload = fake_paymob.calls(KEYS_PATH)[0]
    assert key_payload["order_id"] == order["id"]
    assert key_payload["integration_id"] == "4242"
    assert key_payload["expiration"] == 3600
    assert key_payload["billing_data"]["first_name"] == "Alice"
    assert key == f"paykey-{order['id']}"


def test_iframe_url(fake_paymob):
    url = fake_paymob.client().iframe_url("KEY123")

    assert url == "https://accept.test/api/acceptance/iframes/777?payment_token=KEY123"


def test_timeout_is_reported_separately(fake_paymob):
    fake_paymob.failures[AUTH_PATH] = "timeout"

    with pytest.raises(GatewayTimeout) as exc:
        asyncio.run(fake_paymob.client().authenticate())
    assert exc.value.step == "authenticate"
    assert exc.value.status_code == 504


@pytest.mark.parametrize("failure", [500, 401, "connect", "empty"])
def test_order_failures_carry_step_name(fake_paymob, failure):
    fake_paymob.failures[ORDERS_PATH] = failure

    with pytest.raises(GatewayError) as exc:
        asyncio.run(fake_paymob.client().create_order("auth-token", 10, "order_x"))
    assert not isinstance(exc.value, GatewayTimeout)
    assert exc.value.step == "create_order"
    assert exc.value.status_code == 502


def test_missing_payment_key_is_an_error(fake_paymob):
    fake_paymob.failures[KEYS_PATH] = "empty"

    with pytest.raises(GatewayError) as exc:
        asyncio.run(fake_paymob.client().issue_payment_key("auth-token", 1, 10, _user()))
    assert exc.value.step == "issue_payment_key"


def test_callback_signature():
    signature = sign_callback("secret", "order_1", True)

    assert verify_callback("secret", "order_1", True, signature)
    assert verify_callback("secret", "order_1", True, signature.upper())
    assert not verify_callback("secret", "order_1", False, signature)
    assert not verify_callback("secret", "order_2", True, signature)
    assert not verify_callback("other", "order_1", True, signature)
    assert not verify_callback("secret", "order_1", True, None)
