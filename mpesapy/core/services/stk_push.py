"""STK Push (Lipa na M-Pesa Online) requests.

Prompts a customer's handset to authorize a PayBill payment. The gateway
acknowledges the request synchronously; the payment outcome arrives later
on the callback URL.
"""

import base64
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import httpx

from mpesapy.core.services.auth import Auth
from mpesapy.core.services.base_service import GatewayService, is_https, read_json
from mpesapy.domain.errors import validate_input
from mpesapy.domain.models.common import OperationCategory
from mpesapy.infrastructure.resilience.request_executor import RequestExecutor

logger = logging.getLogger(__name__)

TRANSACTION_TYPE = "CustomerPayBillOnline"
MAX_ACCOUNT_REFERENCE_LENGTH = 12
MAX_TRANSACTION_DESC_LENGTH = 13


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """Formats a timestamp as YYYYMMDDHHmmss."""
    return (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")


def generate_password(business_short_code: str, passkey: str, timestamp: str) -> str:
    """Base64 of short code + passkey + timestamp."""
    raw = f"{business_short_code}{passkey}{timestamp}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def normalize_phone_number(phone_number: str) -> str:
    """Rewrites a leading 0 to the 251 country code."""
    return re.sub(r"^0", "251", phone_number)


class StkPush(GatewayService):
    """Sends STK Push requests."""

    category = OperationCategory.PUSH_PAYMENT
    path = "/mpesa/stkpush/v3/processrequest"

    def __init__(self, auth: Auth, client: httpx.AsyncClient, executor: RequestExecutor, sandbox: bool = True):
        super().__init__(client, executor, sandbox)
        self.auth = auth

    def build_payload(
        self,
        business_short_code: str,
        passkey: str,
        amount: float,
        phone_number: str,
        callback_url: str,
        account_reference: str,
        transaction_desc: str,
        timestamp: str,
    ) -> Dict[str, Any]:
        phone = normalize_phone_number(phone_number)
        return {
            "MerchantRequestID": uuid.uuid4().hex[:13],
            "BusinessShortCode": business_short_code,
            "Password": generate_password(business_short_code, passkey, timestamp),
            "Timestamp": timestamp,
            "TransactionType": TRANSACTION_TYPE,
            "Amount": round(amount),
            "PartyA": phone,
            "PartyB": business_short_code,
            "PhoneNumber": phone,
            "CallBackURL": callback_url,
            "AccountReference": account_reference[:MAX_ACCOUNT_REFERENCE_LENGTH],
            "TransactionDesc": transaction_desc[:MAX_TRANSACTION_DESC_LENGTH],
        }

    async def send_stk_push(
        self,
        business_short_code: str,
        passkey: str,
        amount: float,
        phone_number: str,
        callback_url: str,
        account_reference: str,
        transaction_desc: str,
    ) -> Dict[str, Any]:
        """Sends an STK Push request.

        Args:
            business_short_code: PayBill or Till number receiving the payment.
            passkey: Lipa na M-Pesa passkey.
            amount: Amount to charge; rounded to a whole number.
            phone_number: Customer MSISDN; a leading 0 becomes 251.
            callback_url: HTTPS URL that receives the payment result.
            account_reference: Reference shown to the customer (max 12 chars).
            transaction_desc: Description (max 13 chars).

        Returns:
            The gateway's acknowledgement body.

        Raises:
            ValidationError: Amount not positive or callback URL not HTTPS.
            StkPushError: The gateway rejected the request.
            NetworkError: No response after all retries.
        """
        validate_input(
            {"amount": amount, "callback_url": callback_url},
            {
                "amount": lambda value: isinstance(value, (int, float)) and value > 0,
                "callback_url": is_https,
            },
        )

        token = await self.auth.generate_token()
        payload = self.build_payload(
            business_short_code, passkey, amount, phone_number,
            callback_url, account_reference, transaction_desc,
            generate_timestamp(),
        )
        logger.info(
            f"Sending STK Push for {payload['Amount']} from {payload['PhoneNumber']} "
            f"to {business_short_code} (MerchantRequestID={payload['MerchantRequestID']})"
        )

        async def post_stk_push():
            response = await self.client.post(
                self.url, json=payload, headers={"Authorization": f"Bearer {token.token}"}
            )
            return read_json(response)

        body = await self._execute(post_stk_push, "stk_push")
        if isinstance(body, Mapping) and str(body.get("ResponseCode")) == "0":
            logger.info(f"STK Push accepted: CheckoutRequestID={body.get('CheckoutRequestID')}")
            return dict(body)
        raise self._rejected(body, "stk_push")
