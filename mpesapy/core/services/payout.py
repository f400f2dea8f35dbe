"""B2C payouts: sending money from a business short code to a customer."""

import logging
import re
import uuid
from typing import Any, Dict, Mapping

import httpx

from mpesapy.core.services.auth import Auth
from mpesapy.core.services.base_service import GatewayService, is_https, read_json
from mpesapy.domain.errors import validate_input
from mpesapy.domain.models.common import PAYOUT_COMMAND_IDS, OperationCategory, PayoutResponse
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

logger = logging.getLogger(__name__)

PHONE_NUMBER_PATTERN = re.compile(r"^251[7-9][0-9]{8}$")


class Payout(GatewayService):
    """Sends B2C payment requests."""

    category = OperationCategory.PAYOUT
    path = "/mpesa/b2c/v2/paymentrequest"

    def __init__(
        self,
        auth: Auth,
        client: httpx.AsyncClient,
        executor: RequestExecutor,
        initiator_name: str,
        security_credential: str,
        sandbox: bool = True,
    ):
        """Initializes the Payout service.

        Args:
            auth: Token source for the bearer header.
            client: Shared HTTP client.
            executor: Executor every payout request runs through.
            initiator_name: API operator username on the short code.
            security_credential: Encrypted initiator password.
            sandbox: Use the sandbox host instead of production.
        """
        super().__init__(client, executor, sandbox)
        self.auth = auth
        self.initiator_name = initiator_name
        self.security_credential = security_credential

    def build_payload(
        self,
        amount: float,
        remarks: str,
        occasion: str,
        command_id: str,
        short_code: str,
        phone_number: str,
        queue_timeout_url: str,
        result_url: str,
    ) -> Dict[str, Any]:
        return {
            "OriginatorConversationID": f"mpesapy-{uuid.uuid4()}",
            "InitiatorName": self.initiator_name,
            "SecurityCredential": self.security_credential,
            "CommandID": command_id,
            "PartyA": short_code,
            "PartyB": phone_number,
            "Amount": amount,
            "Remarks": remarks,
            "Occassion": occasion,  # gateway's spelling
            "QueueTimeOutURL": queue_timeout_url,
            "ResultURL": result_url,
        }

    async def send(
        self,
        amount: float,
        remarks: str,
        short_code: str,
        phone_number: str,
        command_id: str,
        queue_timeout_url: str,
        result_url: str,
        occasion: str = "Payout",
    ) -> PayoutResponse:
        """Sends money to a customer's M-Pesa account.

        Returns:
            The acknowledgement with the gateway's conversation IDs.

        Raises:
            ValidationError: A URL is not HTTPS, the phone number is not a
                251 MSISDN, the amount is not positive, or the command ID
                is unknown.
            PayoutError: The gateway rejected the request.
            NetworkError: No response after all retries.
        """
        validate_input(
            {
                "queue_timeout_url": queue_timeout_url,
                "result_url": result_url,
                "phone_number": phone_number,
                "amount": amount,
                "command_id": command_id,
            },
            {
                "queue_timeout_url": is_https,
                "result_url": is_https,
                "phone_number": lambda value: isinstance(value, str) and bool(PHONE_NUMBER_PATTERN.match(value)),
                "amount": lambda value: isinstance(value, (int, float)) and value > 0,
                "command_id": lambda value: value in PAYOUT_COMMAND_IDS,
            },
        )

        token = await self.auth.generate_token()
        payload = self.build_payload(
            amount, remarks, occasion, command_id, short_code,
            phone_number, queue_timeout_url, result_url,
        )
        logger.info(
            f"Sending {command_id} payout of {amount} from {short_code} to {phone_number} "
            f"({payload['OriginatorConversationID']})"
        )

        async def post_payout():
            response = await self.client.post(
                self.url,
                json=payload,
                headers={"Authorization": f"Bearer {token.token}", "Content-Type": "application/json"},
            )
            return read_json(response)

        body = await self._execute(post_payout, "payout")
        if isinstance(body, Mapping) and str(body.get("ResponseCode")) == "0":
            return PayoutResponse(
                conversation_id=body.get("ConversationID"),
                originator_conversation_id=body.get("OriginatorConversationID"),
                response_code=str(body.get("ResponseCode")),
                response_description=body.get("ResponseDescription"),
            )
        raise self._rejected(body, "payout")
