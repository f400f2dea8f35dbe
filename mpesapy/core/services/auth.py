"""Access token generation for the M-Pesa API.

Exchanges the consumer key and secret for an OAuth bearer token and keeps
it in memory until shortly before it expires.
"""

import logging
import time
from typing import Callable, Mapping, Optional

import httpx

from mpesapy.core.services.base_service import GatewayService, read_json
from mpesapy.domain.models.common import AccessToken, OperationCategory
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

logger = logging.getLogger(__name__)

# Seconds shaved off the advertised lifetime before a cached token is renewed.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class Auth(GatewayService):
    """Generates access tokens using consumer credentials."""

    category = OperationCategory.AUTH
    path = "/v1/token/generate"

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        client: httpx.AsyncClient,
        executor: RequestExecutor,
        sandbox: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the Auth service.

        Args:
            consumer_key: Consumer key issued for the app.
            consumer_secret: Consumer secret issued for the app.
            client: Shared HTTP client.
            executor: Executor every token request runs through.
            sandbox: Use the sandbox host instead of production.
            clock: Monotonic clock used for cache expiry.
        """
        super().__init__(client, executor, sandbox)
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self._clock = clock
        self._cached: Optional[AccessToken] = None
        self._cached_until = 0.0

    def _cache(self, token: AccessToken) -> None:
        if not token.expires_in:
            self._cached = None
            return
        self._cached = token
        self._cached_until = self._clock() + token.expires_in - TOKEN_EXPIRY_MARGIN_SECONDS

    def clear_cache(self) -> None:
        """Drops the cached token so the next call requests a new one."""
        self._cached = None
        self._cached_until = 0.0

    async def generate_token(self, force_refresh: bool = False) -> AccessToken:
        """Returns an access token, reusing the cached one while it is fresh.

        Args:
            force_refresh: Ignore any cached token.

        Returns:
            The access token.

        Raises:
            AuthenticationError: The gateway rejected the credentials.
            NetworkError: No response after all retries.
            MpesaError: The request could not be built or sent.
        """
        if force_refresh:
            self.clear_cache()
        elif self._cached is not None and self._clock() < self._cached_until:
            logger.debug("Using cached access token.")
            return self._cached

        async def request_token():
            response = await self.client.get(
                self.url,
                params={"grant_type": "client_credentials"},
                auth=httpx.BasicAuth(self.consumer_key, self.consumer_secret),
            )
            return read_json(response)

        body = await self._execute(request_token, "generate_token")
        access_token = body.get("access_token") if isinstance(body, Mapping) else None
        if not access_token:
            raise self._rejected(body, "generate_token")

        expires_in = body.get("expires_in")
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable expires_in: {expires_in!r}")
            expires_in = None

        token = AccessToken(str(access_token), body.get("token_type"), expires_in)
        self._cache(token)
        logger.info(f"Access token generated (expires_in={expires_in}).")
        return token
