"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the
work to the gateway operations on an MpesaClient, or to the EnvInitializer
for the init commands. Taxonomy errors are shown with their kind and
structured fields; anything else is logged and shown as a plain failure.
"""

import logging
from typing import Callable, Optional

from mpesapy.core.client import MpesaClient
from mpesapy.core.services.env_initializer import EnvInitializer
from mpesapy.domain.errors import MpesaError
from mpesapy.domain.interfaces.user_interface import UserInterface
from mpesapy.infrastructure.config.settings import get_str

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        client_factory: Callable[[], MpesaClient],
        env_initializer: EnvInitializer,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler.

        Args:
            client_factory: Builds a fresh client per command so configuration
                written by ``init-*`` is picked up by later commands.
            env_initializer: Writes environment templates.
            ui: Output sink.
        """
        self.client_factory = client_factory
        self.env_initializer = env_initializer
        self.ui = ui

    def _report_error(self, action: str, error: Exception) -> None:
        if isinstance(error, MpesaError):
            logger.warning(f"{action} failed: {error!r}")
            self.ui.display_error(error.message, title=f"{action} failed ({error.kind.value})")
            details = {k: v for k, v in error.fields.items() if v is not None}
            if details:
                self.ui.display_result("Error details", details)
        else:
            logger.error(f"{action} failed: {error}", exc_info=True)
            self.ui.display_error(f"{action} failed: {error}")

    async def handle_init(self, mode: str, use_custom_env: bool = True) -> bool:
        """Handles the 'init-test' and 'init-live' commands."""
        logger.info(f"Handling 'init' command: mode={mode}, custom_env={use_custom_env}")
        try:
            await self.env_initializer.initialize(mode, use_custom_env)
            return True
        except Exception as e:
            self._report_error("Environment initialization", e)
            return False

    async def handle_token(self, force_refresh: bool = False) -> bool:
        """Handles the 'token' command."""
        logger.info("Handling 'token' command.")
        try:
            async with self.client_factory() as mpesa:
                token = await mpesa.auth.generate_token(force_refresh=force_refresh)
            self.ui.display_result("Access Token", {
                "access_token": token.token,
                "token_type": token.token_type,
                "expires_in": token.expires_in,
            })
            return True
        except Exception as e:
            self._report_error("Token generation", e)
            return False

    async def handle_stk_push(
        self,
        amount: float,
        phone_number: Optional[str] = None,
        callback_url: Optional[str] = None,
        account_reference: str = "mpesapy",
        transaction_desc: str = "Payment",
        business_short_code: Optional[str] = None,
        passkey: Optional[str] = None,
    ) -> bool:
        """Handles the 'stk-push' command. Unset options fall back to configuration."""
        logger.info(f"Handling 'stk-push' command: amount={amount}")
        try:
            async with self.client_factory() as mpesa:
                result = await mpesa.stk_push.send_stk_push(
                    business_short_code or get_str("MPESA_BUSINESS_SHORTCODE"),
                    passkey or get_str("MPESA_PASSKEY"),
                    amount,
                    phone_number or get_str("MPESA_PHONE_NUMBER"),
                    callback_url or get_str("MPESA_CONFIRMATION_URL"),
                    account_reference,
                    transaction_desc,
                )
            self.ui.display_result("STK Push Accepted", result)
            return True
        except Exception as e:
            self._report_error("STK Push", e)
            return False

    async def handle_payout(
        self,
        amount: float,
        remarks: str,
        phone_number: Optional[str] = None,
        short_code: Optional[str] = None,
        command_id: Optional[str] = None,
        queue_timeout_url: Optional[str] = None,
        result_url: Optional[str] = None,
        occasion: str = "Payout",
    ) -> bool:
        """Handles the 'payout' command. Unset options fall back to configuration."""
        logger.info(f"Handling 'payout' command: amount={amount}")
        try:
            async with self.client_factory() as mpesa:
                response = await mpesa.payout.send(
                    amount,
                    remarks,
                    short_code or get_str("MPESA_BUSINESS_SHORTCODE"),
                    phone_number or get_str("MPESA_PHONE_NUMBER"),
                    command_id or get_str("MPESA_PAYOUT_COMMAND_ID", "BusinessPayment"),
                    queue_timeout_url or get_str("MPESA_QUEUE_TIMEOUT_URL"),
                    result_url or get_str("MPESA_RESULT_URL"),
                    occasion,
                )
            self.ui.display_result("Payout Accepted", {
                "conversation_id": response.conversation_id,
                "originator_conversation_id": response.originator_conversation_id,
                "response_code": response.response_code,
                "response_description": response.response_description,
            })
            return True
        except Exception as e:
            self._report_error("Payout", e)
            return False

    async def handle_register_url(
        self,
        short_code: Optional[str] = None,
        confirmation_url: Optional[str] = None,
        validation_url: Optional[str] = None,
        response_type: Optional[str] = None,
        command_id: Optional[str] = None,
    ) -> bool:
        """Handles the 'register-url' command. Unset options fall back to configuration."""
        logger.info("Handling 'register-url' command.")
        try:
            async with self.client_factory() as mpesa:
                response = await mpesa.register_url.register(
                    short_code or get_str("MPESA_BUSINESS_SHORTCODE"),
                    confirmation_url or get_str("MPESA_CONFIRMATION_URL"),
                    validation_url or get_str("MPESA_VALIDATION_URL"),
                    response_type or get_str("MPESA_REGISTER_URL_RESPONSE_TYPE", "Completed"),
                    command_id or get_str("MPESA_REGISTER_URL_COMMAND_ID", "RegisterURL"),
                )
            self.ui.display_result("URLs Registered", {
                "response_code": response.response_code,
                "response_message": response.response_message,
                "customer_message": response.customer_message,
                "timestamp": response.timestamp,
            })
            return True
        except Exception as e:
            self._report_error("URL registration", e)
            return False
