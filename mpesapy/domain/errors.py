"""Error taxonomy for the M-Pesa SDK.

Every failure that leaves the SDK is one of seven kinds. Each kind is an
exception class carrying a human-readable message, a stable ``kind``
discriminator and its own structured fields. All structured fields are
optional because the gateway does not send every field on every failure shape.
"""

import enum
from typing import Any, Callable, Dict, Mapping, Optional


class ErrorKind(str, enum.Enum):
    """Stable discriminator for the closed set of error kinds."""
    GENERIC = "generic"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    NETWORK = "network"
    PUSH_PAYMENT = "push_payment"
    PAYOUT = "payout"
    URL_REGISTRATION = "url_registration"


NO_RESPONSE_MESSAGE = "No response received from the API. Please check your network connection."


class MpesaError(Exception):
    """Base error for the SDK. A bare instance is the generic failure kind."""

    kind: ErrorKind = ErrorKind.GENERIC
    field_names: tuple = ()

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def fields(self) -> Dict[str, Any]:
        """Structured fields of this kind, in declaration order."""
        return {name: getattr(self, name) for name in self.field_names}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.fields}

    def __repr__(self) -> str:
        details = ", ".join(f"{k}={v!r}" for k, v in self.fields.items())
        return f"{type(self).__name__}({self.message!r}{', ' + details if details else ''})"


class AuthenticationError(MpesaError):
    """Token generation was rejected by the gateway."""

    kind = ErrorKind.AUTHENTICATION
    field_names = ("error_code",)

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class ValidationError(MpesaError):
    """A request parameter failed a local check before any network call."""

    kind = ErrorKind.VALIDATION
    field_names = ("field",)

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NetworkError(MpesaError):
    """The request was sent but no response came back."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str = NO_RESPONSE_MESSAGE):
        super().__init__(message)


class StkPushError(MpesaError):
    """An STK push was rejected, either up front or in its callback."""

    kind = ErrorKind.PUSH_PAYMENT
    field_names = ("response_code", "merchant_request_id", "checkout_request_id")

    def __init__(
        self,
        message: str,
        response_code: Optional[str] = None,
        merchant_request_id: Optional[str] = None,
        checkout_request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.response_code = response_code
        self.merchant_request_id = merchant_request_id
        self.checkout_request_id = checkout_request_id


class PayoutError(MpesaError):
    """A B2C payout request was rejected."""

    kind = ErrorKind.PAYOUT
    field_names = ("error_code", "request_id", "response_code", "conversation_id")

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        request_id: Optional[str] = None,
        response_code: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.request_id = request_id
        self.response_code = response_code
        self.conversation_id = conversation_id


class RegisterUrlError(MpesaError):
    """Registering the C2B confirmation/validation URLs failed."""

    kind = ErrorKind.URL_REGISTRATION
    field_names = ("response_code", "short_code")

    def __init__(
        self,
        message: str,
        response_code: Optional[str] = None,
        short_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.response_code = response_code
        self.short_code = short_code


def validate_input(params: Mapping[str, Any], rules: Mapping[str, Callable[[Any], bool]]) -> None:
    """Runs each rule against its parameter.

    Args:
        params: Parameter values keyed by field name.
        rules: Predicate per field name; a falsy result fails the field.

    Raises:
        ValidationError: For the first field whose rule fails.
    """
    for field, rule in rules.items():
        if not rule(params.get(field)):
            raise ValidationError(f"Invalid {field}", field)
