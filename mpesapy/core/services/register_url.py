"""C2B URL registration.

Registers the confirmation and validation URLs the gateway calls when a
customer pays into a short code.
"""

import logging
from typing import Any, Dict, Mapping

import httpx

from mpesapy.core.services.base_service import GatewayService, is_https, read_json
from mpesapy.domain.errors import RegisterUrlError, validate_input
from mpesapy.domain.models.common import REGISTER_URL_RESPONSE_TYPES, OperationCategory, RegisterUrlResponse
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

logger = logging.getLogger(__name__)


class RegisterUrl(GatewayService):
    """Registers confirmation and validation URLs for a short code."""

    category = OperationCategory.URL_REGISTRATION
    path = "/v1/c2b-register-url/register"

    def __init__(self, api_key: str, client: httpx.AsyncClient, executor: RequestExecutor, sandbox: bool = True):
        super().__init__(client, executor, sandbox)
        self.api_key = api_key

    @staticmethod
    def build_payload(
        short_code: str,
        response_type: str,
        command_id: str,
        confirmation_url: str,
        validation_url: str,
    ) -> Dict[str, Any]:
        return {
            "ShortCode": short_code,
            "ResponseType": response_type,
            "CommandID": command_id,
            "ConfirmationURL": confirmation_url,
            "ValidationURL": validation_url,
        }

    async def register(
        self,
        short_code: str,
        confirmation_url: str,
        validation_url: str,
        response_type: str = "Completed",
        command_id: str = "RegisterURL",
    ) -> RegisterUrlResponse:
        """Registers the confirmation and validation URLs.

        Args:
            short_code: Business short code or PayBill number.
            confirmation_url: HTTPS URL receiving completed transactions.
            validation_url: HTTPS URL asked to validate transactions.
            response_type: What the gateway does when validation is unreachable,
                "Completed" or "Cancelled".
            command_id: Command identifier for the registration.

        Returns:
            The header of the gateway's reply.

        Raises:
            ValidationError: A URL is not HTTPS or the response type is unknown.
            RegisterUrlError: The gateway rejected the registration.
            NetworkError: No response after all retries.
        """
        validate_input(
            {
                "confirmation_url": confirmation_url,
                "validation_url": validation_url,
                "response_type": response_type,
            },
            {
                "confirmation_url": is_https,
                "validation_url": is_https,
                "response_type": lambda value: value in REGISTER_URL_RESPONSE_TYPES,
            },
        )
        payload = self.build_payload(short_code, response_type, command_id, confirmation_url, validation_url)
        logger.info(f"Registering C2B URLs for short code {short_code}")

        async def post_register_url():
            response = await self.client.post(self.url, json=payload, params={"apikey": self.api_key})
            return read_json(response)

        try:
            body = await self._execute(post_register_url, "register_url")
            header = body.get("header") if isinstance(body, Mapping) else None
            if not isinstance(header, Mapping):
                raise self._rejected(body, "register_url")
        except RegisterUrlError as e:
            if e.short_code is None:
                e.short_code = short_code
            raise

        return RegisterUrlResponse(
            response_code=header.get("responseCode"),
            response_message=header.get("responseMessage"),
            customer_message=header.get("customerMessage"),
            timestamp=header.get("timestamp"),
        )
