"""MpesaClient: wires the gateway operations to one HTTP client and one executor.

All operations created by a client share its admission window, so the
concurrency and rate ceilings apply across every call made through it.
"""

import logging
from typing import Any, Optional

import httpx

from mpesapy.core.services.auth import Auth
from mpesapy.core.services.payout import Payout
from mpesapy.core.services.register_url import RegisterUrl
from mpesapy.core.services.stk_push import StkPush
from mpesapy.domain.models.resilience import AdmissionConfig, RetryConfig
from mpesapy.infrastructure.config import settings
from mpesapy.infrastructure.resilience.admission_window import AdmissionWindow
from mpesapy.infrastructure.resilience.request_executor import EventHandler, RequestExecutor

logger = logging.getLogger(__name__)


class MpesaClient:
    """Entry point for SDK users.

    Example:
        async with MpesaClient.from_settings() as mpesa:
            token = await mpesa.auth.generate_token()
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        sandbox: bool = True,
        initiator_name: str = "",
        security_credential: str = "",
        retry_config: Optional[RetryConfig] = None,
        admission_config: Optional[AdmissionConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        executor: Optional[RequestExecutor] = None,
        event_handler: Optional[EventHandler] = None,
        timeout: float = settings.DEFAULT_HTTP_TIMEOUT_SECONDS,
    ):
        """Initializes the client and its operations.

        Args:
            consumer_key: Consumer key; also the API key for URL registration.
            consumer_secret: Consumer secret.
            sandbox: Use the sandbox host instead of production.
            initiator_name: B2C initiator username (payouts only).
            security_credential: Encrypted initiator password (payouts only).
            retry_config: Retry settings for a newly created executor.
            admission_config: Admission settings for a newly created executor.
            http_client: Client to use. One is created (and later closed) if omitted.
            executor: Executor to use instead of building one from the configs.
            event_handler: Receives the executor's domain events.
            timeout: Request timeout in seconds for a newly created HTTP client.
        """
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)
        self.executor = executor or RequestExecutor(
            retry_config=retry_config,
            admission_window=AdmissionWindow(admission_config or AdmissionConfig()),
            event_handler=event_handler,
        )
        self.sandbox = sandbox

        self.auth = Auth(consumer_key, consumer_secret, self.http_client, self.executor, sandbox)
        self.stk_push = StkPush(self.auth, self.http_client, self.executor, sandbox)
        self.payout = Payout(
            self.auth, self.http_client, self.executor, initiator_name, security_credential, sandbox
        )
        self.register_url = RegisterUrl(consumer_key, self.http_client, self.executor, sandbox)
        logger.info(f"MpesaClient initialized ({'sandbox' if sandbox else 'live'}).")

    @classmethod
    def from_settings(cls, **overrides: Any) -> "MpesaClient":
        """Builds a client from the loaded configuration.

        Keyword arguments override the matching constructor arguments.

        Raises:
            ValueError: The configured retry or admission values are invalid.
        """
        settings.load_configuration()
        credentials = settings.get_credentials()
        kwargs = {
            "consumer_key": credentials.consumer_key,
            "consumer_secret": credentials.consumer_secret,
            "sandbox": settings.is_sandbox(),
            "initiator_name": credentials.initiator_name,
            "security_credential": credentials.security_credential,
            "retry_config": settings.get_retry_config(),
            "admission_config": settings.get_admission_config(),
            "timeout": settings.get_http_timeout(),
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "MpesaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
