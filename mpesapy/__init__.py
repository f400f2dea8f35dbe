"""M-Pesa gateway client with retries, admission control and typed errors."""

from mpesapy.core.client import MpesaClient
from mpesapy.domain.errors import (
    AuthenticationError,
    ErrorKind,
    MpesaError,
    NetworkError,
    PayoutError,
    RegisterUrlError,
    StkPushError,
    ValidationError,
)
from mpesapy.domain.models.common import OperationCategory
from mpesapy.domain.models.resilience import AdmissionConfig, RetryConfig
from mpesapy.infrastructure.resilience.failure_classifier import classify_failure
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

__version__ = "0.1.0"

__all__ = [
    "AdmissionConfig",
    "AuthenticationError",
    "ErrorKind",
    "MpesaClient",
    "MpesaError",
    "NetworkError",
    "OperationCategory",
    "PayoutError",
    "RegisterUrlError",
    "RequestExecutor",
    "RetryConfig",
    "StkPushError",
    "ValidationError",
    "classify_failure",
]
