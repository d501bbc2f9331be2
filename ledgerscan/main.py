"""Main entry point for the ledgerscan application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# --- Setup Logging Early ---
# Use basic config until setup_logging is called with the loaded settings
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# --- Core Layer ---
from ledgerscan.core.command_handler import EXIT_FATAL, CommandHandler
from ledgerscan.core.run_context import RunContext
from ledgerscan.core.services.scan_service import ScanService

# --- Domain Layer ---
from ledgerscan.domain.interfaces.ledger_client import LedgerClient
from ledgerscan.domain.interfaces.user_interface import UserInterface
from ledgerscan.domain.models.errors import ConfigurationError
from ledgerscan.domain.models.scan import ScanConfig

# --- Infrastructure Layer ---
from ledgerscan.infrastructure.cli.display import ConsoleDisplay
from ledgerscan.infrastructure.config.settings import (
    get_block_tag,
    get_config,
    get_contract_address,
    get_rpc_timeout,
    get_rpc_url,
    get_scan_config,
    load_configuration,
)
from ledgerscan.infrastructure.ledger.erc721_client import Erc721LedgerClient
from ledgerscan.infrastructure.ledger.jsonrpc import JsonRpcTransport
from ledgerscan.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging

EXIT_CONFIG_ERROR = 2


def create_ledger_client(
    rpc_url: str,
    contract_address: str,
    block_tag: str,
    timeout_s: float,
    max_connections: int,
) -> LedgerClient:
    """Builds the JSON-RPC backed ERC-721 ledger client."""
    transport = JsonRpcTransport(rpc_url, timeout_s=timeout_s, max_connections=max_connections)
    return Erc721LedgerClient(transport, contract_address, block_tag=block_tag)


def create_dependencies(
    scan_config: ScanConfig,
    ledger_client: LedgerClient,
    ui: UserInterface,
    show_progress: bool = True,
) -> Dict[str, Any]:
    """Creates and wires up the dependencies of a single run.

    This acts as the Composition Root. Every invocation gets its own run
    context, so no state (limiter slots, stats, checkpoints) leaks between runs.
    """
    dependencies: Dict[str, Any] = {'ui': ui, 'ledger_client': ledger_client}
    dependencies['run_context'] = RunContext.create(ledger_client, scan_config)
    dependencies['scan_service'] = ScanService(dependencies['run_context'])
    dependencies['command_handler'] = CommandHandler(
        scan_service=dependencies['scan_service'],
        tracker=dependencies['run_context'].tracker,
        ui=ui,
        show_progress=show_progress and scan_config.performance_logging,
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="ledgerscan",
    help="ledgerscan: count the unique holders of an ERC-721 collection and sum their balances.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, int], ui: UserInterface) -> int:
    """Runs an async command to completion and returns its exit code."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        ui.display_error(f"Command execution failed: {e}")
        return EXIT_FATAL


async def _execute(dependencies: Dict[str, Any], command: str) -> int:
    handler: CommandHandler = dependencies['command_handler']
    try:
        return await getattr(handler, command)()
    finally:
        await dependencies['ledger_client'].aclose()


def _invoke(command: str, overrides: Dict[str, Any], ledger_overrides: Dict[str, Any], quiet: bool, log_level: Optional[str]) -> None:
    ui = ConsoleDisplay()
    try:
        load_configuration()
        setup_logging(
            log_level=resolve_log_level(log_level or get_config('logging.level', 'INFO')),
            log_file=get_config('logging.file'),
            log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        )
        scan_config = get_scan_config(**overrides)
        ledger_client = create_ledger_client(
            rpc_url=ledger_overrides.get('rpc_url') or get_rpc_url(),
            contract_address=ledger_overrides.get('contract_address') or get_contract_address(),
            block_tag=ledger_overrides.get('block_tag') or get_block_tag(),
            timeout_s=get_rpc_timeout(),
            max_connections=scan_config.concurrent_requests,
        )
    except (ConfigurationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        ui.display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)

    dependencies = create_dependencies(scan_config, ledger_client, ui, show_progress=not quiet)
    exit_code = run_async(_execute(dependencies, command), ui)
    if exit_code:
        raise typer.Exit(code=exit_code)


# --- CLI Options ---
RpcUrlOption = Annotated[Optional[str], typer.Option("--rpc-url", help="Ethereum JSON-RPC endpoint.")]
ContractOption = Annotated[Optional[str], typer.Option("--contract", "-c", help="ERC-721 contract address.")]
BlockTagOption = Annotated[Optional[str], typer.Option("--block-tag", help="Block tag calls are evaluated at (default 'latest').")]
ConcurrencyOption = Annotated[Optional[int], typer.Option("--concurrency", min=1, help="Maximum concurrent RPC requests.")]
OwnerBatchOption = Annotated[Optional[int], typer.Option("--owner-batch-size", min=1, help="Items per owner lookup batch.")]
RetryAttemptsOption = Annotated[Optional[int], typer.Option("--retry-attempts", min=1, help="Attempts per lookup.")]
RetryDelayOption = Annotated[Optional[float], typer.Option("--retry-delay", min=0.0, help="Base retry delay in seconds.")]
FirstItemOption = Annotated[Optional[int], typer.Option("--first-item-id", min=0, help="First item id of the collection.")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Hide per-batch progress and timings.")]
LogLevelOption = Annotated[Optional[str], typer.Option("--log-level", help="Logging level (DEBUG, INFO, WARNING...).")]


# --- CLI Commands ---

@app.command()
def scan(
    rpc_url: RpcUrlOption = None,
    contract: ContractOption = None,
    block_tag: BlockTagOption = None,
    concurrency: ConcurrencyOption = None,
    owner_batch_size: OwnerBatchOption = None,
    balance_batch_size: Annotated[Optional[int], typer.Option("--balance-batch-size", min=1, help="Owners per balance lookup batch.")] = None,
    retry_attempts: RetryAttemptsOption = None,
    retry_delay: RetryDelayOption = None,
    first_item_id: FirstItemOption = None,
    quiet: QuietOption = False,
    log_level: LogLevelOption = None,
):
    """Resolve unique holders, then sum their balances."""
    overrides = {
        'concurrent_requests': concurrency,
        'owner_batch_size': owner_batch_size,
        'balance_batch_size': balance_batch_size,
        'retry_attempts': retry_attempts,
        'retry_delay_s': retry_delay,
        'first_item_id': first_item_id,
    }
    ledger_overrides = {'rpc_url': rpc_url, 'contract_address': contract, 'block_tag': block_tag}
    _invoke('handle_scan', overrides, ledger_overrides, quiet, log_level)


@app.command()
def holders(
    rpc_url: RpcUrlOption = None,
    contract: ContractOption = None,
    block_tag: BlockTagOption = None,
    concurrency: ConcurrencyOption = None,
    owner_batch_size: OwnerBatchOption = None,
    retry_attempts: RetryAttemptsOption = None,
    retry_delay: RetryDelayOption = None,
    first_item_id: FirstItemOption = None,
    quiet: QuietOption = False,
    log_level: LogLevelOption = None,
):
    """Resolve and count the unique holders of the collection."""
    overrides = {
        'concurrent_requests': concurrency,
        'owner_batch_size': owner_batch_size,
        'retry_attempts': retry_attempts,
        'retry_delay_s': retry_delay,
        'first_item_id': first_item_id,
    }
    ledger_overrides = {'rpc_url': rpc_url, 'contract_address': contract, 'block_tag': block_tag}
    _invoke('handle_holders', overrides, ledger_overrides, quiet, log_level)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function called by the script entry point in pyproject.toml."""
    logger.debug("Starting ledgerscan application...")
    app()


if __name__ == "__main__":
    cli_entry_point()
