"""Writes starter environment files for sandbox or live use.

Backs the ``init-test`` and ``init-live`` commands. The template is
appended to the chosen file so existing settings are never lost.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

from mpesapy.domain.interfaces.filesystem import FileSystem
from mpesapy.domain.interfaces.user_interface import UserInterface
from mpesapy.infrastructure.config.settings import ENV_FILE_NAME, SDK_ENV_FILE_NAME

logger = logging.getLogger(__name__)

SDK_TUNING_DEFAULTS: Dict[str, str] = {
    "MPESAPY_MAX_RETRIES": "3",
    "MPESAPY_INITIAL_DELAY_MS": "1000",
    "MPESAPY_MAX_DELAY_MS": "10000",
    "MPESAPY_BACKOFF_FACTOR": "2",
    "MPESAPY_MAX_CONCURRENT": "1000",
    "MPESAPY_TIME_WINDOW_MS": "60000",
}

SDK_TUNING_HELP: Dict[str, str] = {
    "MPESAPY_MAX_RETRIES": "Maximum number of retry attempts",
    "MPESAPY_INITIAL_DELAY_MS": "Initial delay before first retry (ms)",
    "MPESAPY_MAX_DELAY_MS": "Maximum delay between retries (ms)",
    "MPESAPY_BACKOFF_FACTOR": "Multiplier for exponential backoff",
    "MPESAPY_MAX_CONCURRENT": "Maximum concurrent requests",
    "MPESAPY_TIME_WINDOW_MS": "Time window for rate limiting (ms)",
}

TEST_ENV: Dict[str, str] = {
    "MPESA_CONSUMER_KEY": "your_sandbox_consumer_key",
    "MPESA_CONSUMER_SECRET": "your_sandbox_consumer_secret",
    "MPESA_SANDBOX": "true",
    "MPESA_BUSINESS_SHORTCODE": "1020",
    "MPESA_PASSKEY": "your_sandbox_passkey",
    "MPESA_PHONE_NUMBER": "251700404709",
    "MPESA_CONFIRMATION_URL": "https://example.com/mpesa/confirmation",
    "MPESA_VALIDATION_URL": "https://example.com/mpesa/validation",
    "MPESA_INITIATOR_NAME": "apitest",
    "MPESA_SECURITY_CREDENTIAL": "your_sandbox_security_credential",
    "MPESA_QUEUE_TIMEOUT_URL": "https://example.com/mpesa/timeout",
    "MPESA_RESULT_URL": "https://example.com/mpesa/result",
    "MPESA_PAYOUT_COMMAND_ID": "BusinessPayment",
    "MPESA_REGISTER_URL_COMMAND_ID": "RegisterURL",
    "MPESA_REGISTER_URL_RESPONSE_TYPE": "Completed",
    **SDK_TUNING_DEFAULTS,
}

LIVE_ENV: Dict[str, str] = {
    "MPESA_CONSUMER_KEY": "your_live_consumer_key",
    "MPESA_CONSUMER_SECRET": "your_live_consumer_secret",
    "MPESA_PASSKEY": "your_live_passkey",
    "MPESA_BUSINESS_SHORTCODE": "your_live_shortcode",
    "MPESA_SANDBOX": "false",
    "MPESA_PHONE_NUMBER": "your_live_phone_number",
    "MPESA_CONFIRMATION_URL": "your_live_confirmation_url",
    "MPESA_VALIDATION_URL": "your_live_validation_url",
    "MPESA_INITIATOR_NAME": "your_live_initiator_name",
    "MPESA_SECURITY_CREDENTIAL": "your_live_security_credential",
    "MPESA_QUEUE_TIMEOUT_URL": "your_live_queue_timeout_url",
    "MPESA_RESULT_URL": "your_live_result_url",
    "MPESA_PAYOUT_COMMAND_ID": "BusinessPayment",
    "MPESA_REGISTER_URL_COMMAND_ID": "RegisterURL",
    "MPESA_REGISTER_URL_RESPONSE_TYPE": "Completed",
    **SDK_TUNING_DEFAULTS,
}

ENV_TEMPLATES = {"test": TEST_ENV, "live": LIVE_ENV}


def render_env(values: Dict[str, str]) -> str:
    return "\n".join(f"{key}={value}" for key, value in values.items())


class EnvInitializer:
    """Appends an environment template to ``.env.mpesapy`` or ``.env``."""

    def __init__(self, file_system: FileSystem, ui: UserInterface):
        self.file_system = file_system
        self.ui = ui

    async def initialize(self, mode: str, use_custom_env: bool = True, directory: Optional[Path] = None) -> Path:
        """Writes the template for ``mode`` ('test' or 'live').

        Args:
            mode: Which template to write.
            use_custom_env: Target ``.env.mpesapy`` instead of ``.env``.
            directory: Where the file lives. Defaults to the working directory.

        Returns:
            The path written to.

        Raises:
            ValueError: Unknown mode.
        """
        if mode not in ENV_TEMPLATES:
            raise ValueError(f"Unknown environment mode '{mode}'. Choose 'test' or 'live'.")

        env_name = SDK_ENV_FILE_NAME if use_custom_env else ENV_FILE_NAME
        env_path = (directory or Path.cwd()) / env_name

        current = ""
        if await self.file_system.file_exists(env_path):
            current = await self.file_system.read_file(env_path) + "\n"
        await self.file_system.write_file(env_path, current + render_env(ENV_TEMPLATES[mode]) + "\n")
        logger.info(f"Wrote {mode} environment template to {env_path}")

        self.ui.display_info(f"Successfully initialized {mode} environment in {env_name}")
        self.ui.display_warning(f"Please update the values in {env_name} with your actual credentials and settings")
        if use_custom_env:
            self.ui.display_result("SDK Configuration Variables", SDK_TUNING_HELP)
            self.ui.display_info("Tip: Use --default-env if you prefer the regular .env file instead")
        else:
            self.ui.display_info("Tip: Drop --default-env to keep SDK settings separate in .env.mpesapy")
        return env_path
