import base64
from datetime import datetime

import pytest

from mpesapy.core.services.auth import Auth
from mpesapy.core.services.stk_push import (
    StkPush,
    generate_password,
    generate_timestamp,
    normalize_phone_number,
)
from mpesapy.domain.errors import StkPushError, ValidationError
from mpesapy.infrastructure.resilience import request_executor
from mpesapy.infrastructure.resilience.backoff import compute_backoff_delay

ACCEPTED = {
    "MerchantRequestID": "m-1",
    "CheckoutRequestID": "ws_CO_1",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


@pytest.fixture
def stk_push(gateway, make_executor):
    client = gateway.client()
    executor = make_executor()
    auth = Auth("key", "secret", client, executor)
    return StkPush(auth, client, executor)


async def _send(stk_push, **overrides):
    kwargs = dict(
        business_short_code="1020",
        passkey="passkey",
        amount=10.6,
        phone_number="0700404709",
        callback_url="https://example.com/callback",
        account_reference="INV-2024-000123",
        transaction_desc="Payment for order 42",
    )
    kwargs.update(overrides)
    return await stk_push.send_stk_push(**kwargs)


def test_timestamp_format():
    assert generate_timestamp(datetime(2024, 9, 18, 5, 58, 23)) == "20240918055823"


def test_password_is_base64_of_parts():
    password = generate_password("1020", "pk", "20240918055823")
    assert base64.b64decode(password).decode() == "1020pk20240918055823"


@pytest.mark.parametrize("raw, expected", [
    ("0700404709", "251700404709"),
    ("251700404709", "251700404709"),
    ("700404709", "700404709"),
])
def test_phone_normalization(raw, expected):
    assert normalize_phone_number(raw) == expected


async def test_sends_payload_with_bearer_token(stk_push, gateway):
    gateway.with_token().queue(gateway.STK_PUSH_URL, (200, ACCEPTED))

    result = await _send(stk_push)

    assert result == ACCEPTED
    request = gateway.requests_to(gateway.STK_PUSH_URL)[0]
    assert request.headers["Authorization"] == "Bearer test-token"
    payload = gateway.body(request)
    assert payload["TransactionType"] == "CustomerPayBillOnline"
    assert payload["Amount"] == 11
    assert payload["PartyA"] == payload["PhoneNumber"] == "251700404709"
    assert payload["PartyB"] == payload["BusinessShortCode"] == "1020"
    assert payload["AccountReference"] == "INV-2024-000"
    assert payload["TransactionDesc"] == "Payment for o"
    assert len(payload["Timestamp"]) == 14
    assert base64.b64decode(payload["Password"]).decode() == f"1020passkey{payload['Timestamp']}"


async def test_retries_503_then_succeeds(stk_push, gateway, mocker):
    spy = mocker.patch.object(request_executor, "compute_backoff_delay", wraps=compute_backoff_delay)
    gateway.with_token().queue(gateway.STK_PUSH_URL, (503, {}), (503, {}), (200, ACCEPTED))

    result = await _send(stk_push)

    assert result["ResponseCode"] == "0"
    assert len(gateway.requests_to(gateway.STK_PUSH_URL)) == 3
    assert spy.call_count == 2


async def test_rejection_is_classified(stk_push, gateway):
    gateway.with_token().queue(gateway.STK_PUSH_URL, (200, {
        "ResponseCode": "1",
        "ResponseDescription": "Rejected",
        "MerchantRequestID": "m-9",
    }))

    with pytest.raises(StkPushError) as exc_info:
        await _send(stk_push)

    assert exc_info.value.response_code == "1"
    assert exc_info.value.merchant_request_id == "m-9"
    assert len(gateway.requests_to(gateway.STK_PUSH_URL)) == 1


@pytest.mark.parametrize("overrides, field", [
    ({"amount": 0}, "amount"),
    ({"amount": -5}, "amount"),
    ({"callback_url": "http://example.com/callback"}, "callback_url"),
])
async def test_validation_happens_before_any_request(stk_push, gateway, overrides, field):
    with pytest.raises(ValidationError) as exc_info:
        await _send(stk_push, **overrides)
    assert exc_info.value.field == field
    assert gateway.requests == []
