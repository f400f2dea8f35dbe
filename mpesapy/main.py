"""Main entry point for the mpesapy command line tool.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Annotated, Any, Coroutine, Dict, Optional

import typer

# --- Core Layer ---
from mpesapy.core.client import MpesaClient
from mpesapy.core.command_handler import CommandHandler
from mpesapy.core.services.env_initializer import EnvInitializer

# --- Infrastructure Layer ---
from mpesapy.infrastructure.cli.display import ConsoleDisplay
from mpesapy.infrastructure.config.settings import get_config, load_configuration
from mpesapy.infrastructure.filesystem.local_fs import LocalFileSystem
from mpesapy.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, level_from_name, setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        load_configuration()
        setup_logging(
            log_level=level_from_name(get_config('logging.level')),
            log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
            log_file=get_config('logging.file'),
        )
        logger.info("Configuration and logging initialized.")

        # 2. Infrastructure Adapters
        dependencies['ui'] = ConsoleDisplay()
        dependencies['file_system'] = LocalFileSystem()

        # 3. Core Services
        dependencies['env_initializer'] = EnvInitializer(
            file_system=dependencies['file_system'],
            ui=dependencies['ui'],
        )

        # 4. Command Handler. Clients are built per command from settings.
        dependencies['command_handler'] = CommandHandler(
            client_factory=MpesaClient.from_settings,
            env_initializer=dependencies['env_initializer'],
            ui=dependencies['ui'],
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        if 'ui' in dependencies:
            dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        else:
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        sys.exit(1)


_dependencies: Dict[str, Any] = {}


def get_dependencies() -> Dict[str, Any]:
    """Builds the dependencies on first use."""
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="mpesapy",
    help="mpesapy: M-Pesa gateway client with retries and admission control.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs a handler coroutine and exits non-zero when it reports failure."""
    if not asyncio.run(coro):
        raise typer.Exit(code=1)


def _handler() -> CommandHandler:
    return get_dependencies()['command_handler']


# --- CLI Commands ---

DefaultEnvOption = Annotated[
    bool,
    typer.Option("--default-env", help="Write to .env instead of .env.mpesapy."),
]


@app.command(name="init-test")
def init_test(default_env: DefaultEnvOption = False):
    """Initialize a sandbox environment file."""
    run_async(_handler().handle_init("test", use_custom_env=not default_env))


@app.command(name="init-live")
def init_live(default_env: DefaultEnvOption = False):
    """Initialize a live environment file."""
    run_async(_handler().handle_init("live", use_custom_env=not default_env))


@app.command()
def token(
    force_refresh: Annotated[bool, typer.Option("--force-refresh", help="Ignore any cached token.")] = False,
):
    """Generate an access token."""
    run_async(_handler().handle_token(force_refresh=force_refresh))


@app.command(name="stk-push")
def stk_push(
    amount: Annotated[float, typer.Option("--amount", "-a", help="Amount to charge.")],
    phone_number: Annotated[Optional[str], typer.Option("--phone", "-p", help="Customer phone number.")] = None,
    callback_url: Annotated[Optional[str], typer.Option("--callback-url", help="HTTPS callback URL.")] = None,
    account_reference: Annotated[str, typer.Option("--reference", help="Account reference (max 12 chars).")] = "mpesapy",
    transaction_desc: Annotated[str, typer.Option("--description", help="Description (max 13 chars).")] = "Payment",
    short_code: Annotated[Optional[str], typer.Option("--short-code", help="Business short code.")] = None,
    passkey: Annotated[Optional[str], typer.Option("--passkey", help="Lipa na M-Pesa passkey.")] = None,
):
    """Send an STK Push payment prompt."""
    run_async(_handler().handle_stk_push(
        amount, phone_number, callback_url, account_reference, transaction_desc, short_code, passkey
    ))


@app.command()
def payout(
    amount: Annotated[float, typer.Option("--amount", "-a", help="Amount to send.")],
    remarks: Annotated[str, typer.Option("--remarks", "-r", help="Comments about the transaction.")] = "Payout",
    phone_number: Annotated[Optional[str], typer.Option("--phone", "-p", help="Recipient phone (251...).")] = None,
    short_code: Annotated[Optional[str], typer.Option("--short-code", help="Paying short code.")] = None,
    command_id: Annotated[Optional[str], typer.Option("--command-id", help="BusinessPayment, SalaryPayment or PromotionPayment.")] = None,
    queue_timeout_url: Annotated[Optional[str], typer.Option("--queue-timeout-url", help="HTTPS timeout URL.")] = None,
    result_url: Annotated[Optional[str], typer.Option("--result-url", help="HTTPS result URL.")] = None,
    occasion: Annotated[str, typer.Option("--occasion", help="Optional comment.")] = "Payout",
):
    """Send a B2C payout."""
    run_async(_handler().handle_payout(
        amount, remarks, phone_number, short_code, command_id, queue_timeout_url, result_url, occasion
    ))


@app.command(name="register-url")
def register_url(
    short_code: Annotated[Optional[str], typer.Option("--short-code", help="Business short code.")] = None,
    confirmation_url: Annotated[Optional[str], typer.Option("--confirmation-url", help="HTTPS confirmation URL.")] = None,
    validation_url: Annotated[Optional[str], typer.Option("--validation-url", help="HTTPS validation URL.")] = None,
    response_type: Annotated[Optional[str], typer.Option("--response-type", help="Completed or Cancelled.")] = None,
    command_id: Annotated[Optional[str], typer.Option("--command-id", help="Registration command ID.")] = None,
):
    """Register C2B confirmation and validation URLs."""
    run_async(_handler().handle_register_url(
        short_code, confirmation_url, validation_url, response_type, command_id
    ))


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
