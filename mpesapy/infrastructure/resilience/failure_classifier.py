"""Maps raw gateway failures onto the error taxonomy.

``classify_failure`` takes an unstructured failure payload (a response
body, a callback envelope, or a "no response received" marker) and the
operation category, and returns exactly one taxonomy error. It never
raises and never returns the raw payload. Callers decide whether to raise.

``classify_exception`` does the same for whatever the request executor
propagated: taxonomy errors pass through, httpx failures are unpacked into
payloads, and anything else is a request-setup problem.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from mpesapy.domain.errors import (
    AuthenticationError,
    MpesaError,
    NetworkError,
    PayoutError,
    RegisterUrlError,
    StkPushError,
)
from mpesapy.domain.models.common import OperationCategory
from mpesapy.infrastructure.resilience.backoff import is_no_response

logger = logging.getLogger(__name__)

# Payload key marking "request made, no reply".
NO_RESPONSE = "no_response"

AUTH_ERROR_MESSAGES: Dict[str, str] = {
    "999991": "Invalid client id passed. Please input the correct username.",
    "999996": "Invalid Authentication passed. Please select type as Basic Auth.",
    "999997": "Invalid Authorization Header. Please input the correct password.",
    "999998": (
        "Required parameter [grant_type] is invalid or empty. "
        "Please select grant type as client credentials."
    ),
}

STK_CALLBACK_MESSAGES: Dict[str, str] = {
    "TP40087": "User entered wrong M-PESA PIN. Please try again with correct PIN.",
    "17": "M-PESA system internal error. Please try again after a few minutes.",
}

PAYOUT_API_ERROR_MESSAGES: Dict[str, str] = {
    "401.002.01": "Invalid Access Token",
    "500.001.1001": "System Error",
    "403.001.01": "Access Denied - Invalid Credentials",
}

SETUP_ERROR_PREFIXES: Dict[OperationCategory, str] = {
    OperationCategory.AUTH: "Failed to generate token",
    OperationCategory.PUSH_PAYMENT: "Failed to send STK Push request",
    OperationCategory.PAYOUT: "Failed to send payout",
    OperationCategory.URL_REGISTRATION: "Failed to register URLs",
}

NO_DETAILS = "No error details available"


# --- Field extraction helpers ---

def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _dig(data: Any, *path: str) -> Any:
    """Walks nested mappings; any missing or non-mapping step yields None."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _text(value: Any) -> Optional[str]:
    """Normalizes a field to a string; empty or missing becomes None."""
    if value is None or value == "":
        return None
    return str(value)


def _no_response(raw: Mapping[str, Any]) -> bool:
    return bool(raw.get(NO_RESPONSE))


# --- Per-category rules ---

def _classify_auth(raw: Mapping[str, Any]) -> MpesaError:
    result_code = _text(raw.get("resultCode"))
    if result_code is not None:
        message = AUTH_ERROR_MESSAGES.get(result_code)
        if message is None:
            message = f"Unknown Auth Error: {_text(raw.get('resultDesc')) or NO_DETAILS}"
        return AuthenticationError(message, result_code)
    if _no_response(raw):
        return NetworkError()
    return AuthenticationError("Unknown authentication error occurred")


def _classify_push_payment(raw: Mapping[str, Any]) -> MpesaError:
    response_code = _text(raw.get("ResponseCode"))
    if response_code is not None:
        return StkPushError(
            _text(raw.get("ResponseDescription"))
            or _text(raw.get("CustomerMessage"))
            or "STK Push error occurred",
            response_code,
            _text(raw.get("MerchantRequestID")),
            _text(raw.get("CheckoutRequestID")),
        )

    callback = _dig(raw, "Envelope", "Body", "stkCallback")
    if isinstance(callback, Mapping):
        result_code = _text(callback.get("ResultCode"))
        message = STK_CALLBACK_MESSAGES.get(result_code or "") or _text(callback.get("ResultDesc"))
        return StkPushError(
            message or "STK Push error occurred",
            result_code,
            _text(callback.get("MerchantRequestID")),
            _text(callback.get("CheckoutRequestID")),
        )

    if _no_response(raw):
        return NetworkError()
    return StkPushError("Unknown STK Push error occurred")


def _classify_payout(raw: Mapping[str, Any]) -> MpesaError:
    response_code = _text(raw.get("ResponseCode"))
    if response_code is not None and response_code != "0":
        return PayoutError(
            _text(raw.get("ResponseDescription")) or "Payout error occurred",
            error_code=response_code,
            response_code=response_code,
            conversation_id=_text(raw.get("ConversationID")),
        )

    error_code = _text(raw.get("errorCode"))
    if error_code is not None:
        message = PAYOUT_API_ERROR_MESSAGES.get(error_code) or _text(raw.get("errorMessage"))
        return PayoutError(
            message or "Unknown error occurred",
            error_code=error_code,
            request_id=_text(raw.get("requestId")),
        )

    if _no_response(raw):
        return NetworkError()
    return PayoutError(f"Unknown Payout error occurred: {_text(raw.get('message')) or NO_DETAILS}")


def _classify_url_registration(raw: Mapping[str, Any]) -> MpesaError:
    header = raw.get("header")
    if isinstance(header, Mapping):
        return RegisterUrlError(
            _text(header.get("responseMessage")) or "Register URL error occurred",
            _text(header.get("responseCode")),
            _text(header.get("shortCode")),
        )

    error_code = _text(raw.get("errorCode"))
    if error_code is not None:
        return RegisterUrlError(_text(raw.get("errorMessage")) or "Unknown error occurred", error_code)

    if _no_response(raw):
        return NetworkError()
    return RegisterUrlError(f"Register URL error occurred: {_text(raw.get('message')) or NO_DETAILS}")


_CLASSIFIERS = {
    OperationCategory.AUTH: _classify_auth,
    OperationCategory.PUSH_PAYMENT: _classify_push_payment,
    OperationCategory.PAYOUT: _classify_payout,
    OperationCategory.URL_REGISTRATION: _classify_url_registration,
}


def classify_failure(raw: Any, category: OperationCategory) -> MpesaError:
    """Classifies a raw failure payload into a taxonomy error.

    Args:
        raw: Failure data from the gateway. Anything that is not a mapping
            is treated as an empty payload.
        category: Which operation produced the failure.

    Returns:
        Exactly one taxonomy error. Never raises.
    """
    category = OperationCategory(category)
    error = _CLASSIFIERS[category](_as_mapping(raw))
    logger.debug(f"Classified {category.value} failure as {error.kind.value}: {error.message}")
    return error


def failure_payload(error: BaseException) -> Dict[str, Any]:
    """Unpacks an httpx failure into the payload shape the classifier reads."""
    if isinstance(error, httpx.HTTPStatusError):
        try:
            body = error.response.json()
        except ValueError:
            body = None
        payload = dict(body) if isinstance(body, Mapping) else {}
        payload.setdefault("message", str(error))
        return payload
    if is_no_response(error):
        return {NO_RESPONSE: True, "message": str(error)}
    return {"message": str(error)}


def classify_exception(error: BaseException, category: OperationCategory) -> MpesaError:
    """Classifies whatever an operation's executor call raised.

    Taxonomy errors are returned unchanged. HTTP status failures and
    transport failures are classified by category. Any other exception is
    a local request-setup problem and becomes a generic error.
    """
    if isinstance(error, MpesaError):
        return error
    if isinstance(error, httpx.HTTPStatusError) or is_no_response(error):
        return classify_failure(failure_payload(error), category)
    return MpesaError(f"{SETUP_ERROR_PREFIXES[OperationCategory(category)]}: {error}")
