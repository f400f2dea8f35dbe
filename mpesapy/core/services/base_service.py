"""Shared plumbing for the gateway operation services.

Each service owns one endpoint. It sends its request as a zero-argument
coroutine through the request executor and turns whatever comes back
as a failure into a taxonomy error for its operation category.
"""

import logging
from typing import Any, Awaitable, Callable

import httpx

from mpesapy.domain.errors import MpesaError
from mpesapy.domain.models.common import OperationCategory
from mpesapy.infrastructure.resilience.failure_classifier import classify_exception, classify_failure
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://apisandbox.safaricom.et"
LIVE_BASE_URL = "https://api.safaricom.et"


def is_https(url: Any) -> bool:
    return isinstance(url, str) and url.startswith("https://")


class GatewayService:
    """Base class for services calling a single gateway endpoint."""

    category: OperationCategory
    path: str

    def __init__(self, client: httpx.AsyncClient, executor: RequestExecutor, sandbox: bool = True):
        self.client = client
        self.executor = executor
        self.sandbox = sandbox
        self.url = f"{SANDBOX_BASE_URL if sandbox else LIVE_BASE_URL}{self.path}"

    async def _execute(self, request: Callable[[], Awaitable[Any]], operation_name: str) -> Any:
        """Runs one remote call through the executor.

        Raises:
            MpesaError: The classified failure. The raw failure is chained
                as ``__cause__``.
        """
        try:
            return await self.executor.execute(request, operation_name)
        except MpesaError:
            raise
        except Exception as e:
            error = classify_exception(e, self.category)
            logger.warning(f"{operation_name} failed ({error.kind.value}): {error.message}")
            raise error from e

    def _rejected(self, body: Any, operation_name: str) -> MpesaError:
        """Classifies a 2xx body that does not signal success."""
        error = classify_failure(body, self.category)
        logger.warning(f"{operation_name} rejected ({error.kind.value}): {error.message}")
        return error


def read_json(response: httpx.Response) -> Any:
    """Raises for non-2xx statuses so the executor can judge them, then decodes."""
    response.raise_for_status()
    return response.json()
