"""Defines common Value Objects used across the SDK.

These objects represent the operation categories, the accepted command
values and the parsed success responses of the gateway operations.
"""

import enum
from dataclasses import dataclass
from typing import Optional


class OperationCategory(str, enum.Enum):
    """The remote operation a failure came from; selects classification rules."""
    AUTH = "auth"
    PUSH_PAYMENT = "push_payment"
    PAYOUT = "payout"
    URL_REGISTRATION = "url_registration"


PAYOUT_COMMAND_IDS = ("BusinessPayment", "SalaryPayment", "PromotionPayment")
REGISTER_URL_RESPONSE_TYPES = ("Completed", "Cancelled")

# --- Parsed Responses ---

@dataclass(frozen=True)
class AccessToken:
    """OAuth access token returned by the token endpoint."""
    token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None  # seconds


@dataclass(frozen=True)
class PayoutResponse:
    """Acknowledgement of an accepted B2C payout request."""
    conversation_id: Optional[str]
    originator_conversation_id: Optional[str]
    response_code: str
    response_description: Optional[str]


@dataclass(frozen=True)
class RegisterUrlResponse:
    """Header of a successful URL registration."""
    response_code: Optional[str]
    response_message: Optional[str]
    customer_message: Optional[str]
    timestamp: Optional[str]
