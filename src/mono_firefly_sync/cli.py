"""
Command-line interface for the Monobank to Firefly III sync service.
"""

from pathlib import Path
from typing import Optional
import logging
import sys
import threading

import click
import uvicorn
from rich.console import Console
from rich.table import Table

from . import __version__
from .clients.monobank import MonobankClient
from .config import load_config, generate_default_config, SyncServiceConfig
from .models.transaction import RecoveryResult
from .server import create_app
from .sync.engine import ReconciliationEngine
from .sync.mapper import currency_alpha_code
from .utils.exceptions import SyncError, UnknownCurrencyError
from .utils.logging_config import setup_logging

console = Console()
logger = logging.getLogger(__name__)

config_option = click.option(
    "-c",
    "--config",
    type=click.Path(path_type=Path),
    default=Path("config.yaml"),
    show_default=True,
    help="Path to configuration file (YAML or JSON)",
)


@click.group()
@click.version_option(version=__version__)
def main():
    """Sync Monobank statements into Firefly III."""
    pass


def _load(config: Path, verbose: bool = False) -> SyncServiceConfig:
    try:
        service_config = load_config(config)
    except SyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    level = logging.DEBUG if verbose else service_config.logging.level
    log_file = Path(service_config.logging.file) if service_config.logging.file else None
    setup_logging(level, log_file=log_file, log_format=service_config.logging.format)
    return service_config


def _start_recovery(
    engine: ReconciliationEngine, client: MonobankClient, webhook_url: Optional[str]
) -> None:
    """Recover the downtime gap, then (re)register the webhook."""
    result = engine.recover()
    logger.info(f"Recovery done: {result.status.value}")

    if webhook_url:
        try:
            client.set_webhook(webhook_url)
        except Exception as e:
            logger.warning(f"Failed to set webhook: {e}")


@main.command()
@config_option
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def serve(config: Path, verbose: bool):
    """
    Recover missed transactions and serve the Monobank webhook.

    Recovery runs in the background; webhook calls that arrive meanwhile wait
    for it to finish.
    """
    service_config = _load(config, verbose)
    bank = MonobankClient(service_config.monobank)
    engine = ReconciliationEngine.from_config(service_config, bank=bank)

    threading.Thread(
        target=_start_recovery,
        args=(engine, bank, service_config.monobank.webhook_url),
        name="recovery",
        daemon=True,
    ).start()

    uvicorn.run(
        create_app(engine),
        host=service_config.server.host,
        port=service_config.server.port,
        log_config=None,
    )


@main.command()
@config_option
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def recover(config: Path, verbose: bool):
    """Run a single recovery pass and print its summary."""
    service_config = _load(config, verbose)
    engine = ReconciliationEngine.from_config(service_config)

    with console.status("Recovering missed transactions..."):
        result = engine.recover()

    _display_result(result)
    if result.error:
        sys.exit(1)


@main.command("set-webhook")
@click.argument("url", required=False)
@config_option
def set_webhook(url: Optional[str], config: Path):
    """
    Register the webhook URL with Monobank.

    URL: Endpoint to register (defaults to monobank.webhook_url)
    """
    service_config = _load(config)
    url = url or service_config.monobank.webhook_url
    if not url:
        console.print("[red]Error: no URL given and monobank.webhook_url is not set[/red]")
        sys.exit(1)

    try:
        MonobankClient(service_config.monobank).set_webhook(url)
    except SyncError as e:
        console.print(f"[red]Error setting webhook: {e}[/red]")
        sys.exit(1)

    console.print(f"[green]Webhook set: {url}[/green]")


@main.command()
@config_option
def accounts(config: Path):
    """Show how Monobank accounts pair with Firefly accounts."""
    service_config = _load(config)
    engine = ReconciliationEngine.from_config(service_config)

    try:
        engine.directory.refresh_ledger_accounts()
        pairs = engine.directory.pairs()
    except SyncError as e:
        console.print(f"[red]Error reading accounts: {e}[/red]")
        sys.exit(1)

    table = Table(title="Account Pairing")
    table.add_column("Monobank Account")
    table.add_column("IBAN")
    table.add_column("Currency")
    table.add_column("Balance", justify="right")
    table.add_column("Firefly Account")

    for bank_account, ledger_account in pairs:
        try:
            currency = currency_alpha_code(
                bank_account.currency_code, service_config.currencies
            )
        except UnknownCurrencyError:
            currency = str(bank_account.currency_code)
        table.add_row(
            bank_account.id,
            bank_account.iban,
            currency,
            f"{bank_account.balance / 100:,.2f}",
            (
                f"{ledger_account.id} {ledger_account.name}".strip()
                if ledger_account
                else "[yellow]not tracked[/yellow]"
            ),
        )

    console.print(table)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_result(result: RecoveryResult) -> None:
    """Display recovery summary in console."""
    table = Table(title="Recovery Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Status", result.status.value)
    table.add_row("Anchor Entry", result.anchor_entry_id or "-")
    table.add_row("Anchor Account", result.anchor_account_id or "-")
    table.add_row("Start Time", result.start_time.isoformat() if result.start_time else "-")
    table.add_row("Recovered", str(result.recovered))
    table.add_row("Skipped (untracked account)", str(result.skipped))
    table.add_row("Failed (unknown currency)", str(result.failed))
    table.add_row("Already Synced", str(result.already_synced))
    table.add_row("Processing Time", f"{result.processing_time_seconds:.2f}s")

    console.print(table)

    if result.error:
        console.print(f"[red]Recovery failed: {result.error}[/red]")


if __name__ == "__main__":
    main()
