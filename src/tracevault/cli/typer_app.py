"""
TraceVault Typer CLI Application

Maintenance surface over the persistent caches and saved analysis bundles:
statistics, cleanup, clearing and bundle management.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from tracevault.cli.context import CliContext, LogLevel, get_cli_context, open_container, set_cli_context
from tracevault.cli.error_handler import handle_cli_error
from tracevault.cli.json_formatter import format_json_output
from tracevault.services import AnalysisBundle, CacheStats
from tracevault.shared.constants import CLIDefaults, CLIHelp, LogConfig
from tracevault.shared.errors import DomainError, ErrorCode, ErrorContext
from tracevault.shared.logging import ROOT_LOGGER_NAME, setup_structured_logger

# Version information
__version__ = CLIDefaults.VERSION

console = Console()

json_output_option = typer.Option("--json", help=CLIHelp.JSON_HELP)


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(CLIHelp.VERSION_TEXT.format(version=__version__))
        raise typer.Exit


app = typer.Typer(
    name=CLIHelp.APP_NAME,
    help=CLIHelp.APP_DESCRIPTION,
    rich_markup_mode=CLIHelp.APP_STYLE,
    no_args_is_help=True,
)

bundles_app = typer.Typer(help=CLIHelp.BUNDLES_HELP, no_args_is_help=True)
app.add_typer(bundles_app, name="bundles")


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help=CLIHelp.CONFIG_HELP, dir_okay=False),
    ] = None,
    log_level: Annotated[
        LogLevel | None,
        typer.Option("--log-level", case_sensitive=False, help=CLIHelp.LOG_LEVEL_HELP),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help=CLIHelp.VERSION_HELP,
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Main CLI callback processing the common options."""
    setup_structured_logger(
        ROOT_LOGGER_NAME,
        log_level.value if log_level is not None else LogConfig.DEFAULT_LEVEL,
    )
    set_cli_context(CliContext(config_path=config, log_level=log_level))


def _fail(error: Exception, command: str, *, json_output: bool = False) -> typer.Exit:
    return typer.Exit(handle_cli_error(error, command, json_output=json_output))


def _emit_json(command: str, data: Any) -> None:
    typer.echo(format_json_output(success=True, command=command, data=data).decode("utf-8"))


def _format_age(age: timedelta | None) -> str:
    if age is None:
        return "-"
    seconds = int(age.total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h {seconds % 3600 // 60}m"
    return f"{seconds // 86400}d {seconds % 86400 // 3600}h"


def _format_tx(tx_hash: str) -> str:
    head, tail = CLIDefaults.TX_PREVIEW_HEAD, CLIDefaults.TX_PREVIEW_TAIL
    if len(tx_hash) <= head + tail:
        return tx_hash
    return f"{tx_hash[:head]}...{tx_hash[-tail:]}"


def _format_timestamp(timestamp: datetime) -> str:
    return timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _stats_table(stats: dict[str, CacheStats]) -> Table:
    table = Table(title="Caches")
    table.add_column("Cache", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Size (KB)", justify="right")
    table.add_column("Oldest", justify="right")
    table.add_column("Oldest key", overflow="fold")
    for name, s in stats.items():
        table.add_row(
            name,
            str(s.count),
            f"{s.size_kb:.2f}",
            _format_age(s.oldest_entry_age),
            s.oldest_key or "-",
        )
    return table


@app.command("stats")
def stats_command(
    json_output: Annotated[bool, json_output_option] = False,
) -> None:
    """Show item counts, sizes and oldest entry age for every cache."""
    try:
        with open_container(get_cli_context()) as container:
            maintenance = container.maintenance()
            if json_output:
                _emit_json("stats", maintenance.report())
                return

            stats = maintenance.stats()
            totals = maintenance.totals(stats)
            bundle_stats = maintenance.bundle_stats()
            used_bytes = maintenance.registry.store.used_bytes()
            max_bytes = maintenance.registry.store.max_bytes
    except Exception as e:
        raise _fail(e, "stats", json_output=json_output) from e

    console.print(_stats_table(stats))
    console.print(f"Total: {totals.count} entries, {totals.size_kb:.2f} KB")
    if bundle_stats is not None:
        console.print(f"Bundles: {bundle_stats.count} saved, {bundle_stats.size_kb:.2f} KB")
    quota = f"{max_bytes / 1024:.2f} KB" if max_bytes is not None else "unbounded"
    console.print(f"Store: {used_bytes / 1024:.2f} KB used, quota {quota}")


@app.command("cleanup")
def cleanup_command(
    json_output: Annotated[bool, json_output_option] = False,
) -> None:
    """Remove expired entries and enforce capacity limits."""
    try:
        with open_container(get_cli_context()) as container:
            results = container.maintenance().cleanup_all()
    except Exception as e:
        raise _fail(e, "cleanup", json_output=json_output) from e

    if json_output:
        _emit_json(
            "cleanup",
            {
                name: {
                    "expired_removed": r.expired_removed,
                    "corrupted_removed": r.corrupted_removed,
                    "evicted": r.evicted,
                    "remaining": r.remaining,
                }
                for name, r in results.items()
            },
        )
        return

    table = Table(title="Cleanup")
    table.add_column("Cache", style="cyan")
    table.add_column("Expired", justify="right")
    table.add_column("Corrupted", justify="right")
    table.add_column("Evicted", justify="right")
    table.add_column("Remaining", justify="right")
    for name, r in results.items():
        table.add_row(name, str(r.expired_removed), str(r.corrupted_removed), str(r.evicted), str(r.remaining))
    console.print(table)


@app.command("clear")
def clear_command(
    name: Annotated[str | None, typer.Argument(help="Cache name (contract, transaction, simulation).")] = None,
    json_output: Annotated[bool, json_output_option] = False,
) -> None:
    """Clear one named cache, or every named cache when no name is given."""
    try:
        with open_container(get_cli_context()) as container:
            maintenance = container.maintenance()
            if name is None:
                removed = maintenance.clear_all()
            else:
                removed = {name: maintenance.clear(name)}
    except Exception as e:
        raise _fail(e, "clear", json_output=json_output) from e

    if json_output:
        _emit_json("clear", removed)
        return
    for cache_name, count in removed.items():
        console.print(f"Cleared {count} entries from [cyan]{cache_name}[/cyan]")


@bundles_app.command("list")
def bundles_list_command(
    json_output: Annotated[bool, json_output_option] = False,
) -> None:
    """List saved bundles, newest first."""
    try:
        with open_container(get_cli_context()) as container:
            bundles = container.bundle_store().list_all()
    except Exception as e:
        raise _fail(e, "bundles list", json_output=json_output) from e

    if json_output:
        _emit_json(
            "bundles list",
            [
                {
                    "id": b.id,
                    "timestamp": b.timestamp.isoformat(),
                    "source_transaction_id": b.source_transaction_id,
                    "description": b.description,
                    "resolved_names": len(b.resolved_names),
                }
                for b in bundles
            ],
        )
        return

    if not bundles:
        console.print("No saved analysis bundles.")
        return

    table = Table(title=f"Analysis bundles ({len(bundles)})")
    table.add_column("ID", style="cyan", overflow="fold")
    table.add_column("TX")
    table.add_column("Saved")
    table.add_column("Contracts", justify="right")
    table.add_column("Description")
    for b in bundles:
        table.add_row(
            b.id,
            _format_tx(b.source_transaction_id),
            _format_timestamp(b.timestamp),
            str(len(b.resolved_names)),
            b.label,
        )
    console.print(table)


def _bundle_not_found(bundle_id: str, operation: str) -> DomainError:
    return DomainError(
        code=ErrorCode.BUNDLE_NOT_FOUND,
        message=f"Bundle '{bundle_id}' not found",
        context=ErrorContext(operation=operation, additional_data={"bundle_id": bundle_id}),
    )


@bundles_app.command("show")
def bundles_show_command(
    bundle_id: Annotated[str, typer.Argument(help="Bundle id as shown by 'bundles list'.")],
) -> None:
    """Print one bundle as JSON."""
    try:
        with open_container(get_cli_context()) as container:
            bundle: AnalysisBundle | None = container.bundle_store().load(bundle_id)
        if bundle is None:
            raise _bundle_not_found(bundle_id, "bundles show")
    except Exception as e:
        raise _fail(e, "bundles show") from e

    typer.echo(bundle.model_dump_json(indent=2))


@bundles_app.command("delete")
def bundles_delete_command(
    bundle_id: Annotated[str, typer.Argument(help="Bundle id as shown by 'bundles list'.")],
) -> None:
    """Delete one bundle."""
    try:
        with open_container(get_cli_context()) as container:
            deleted = container.bundle_store().delete(bundle_id)
        if not deleted:
            raise _bundle_not_found(bundle_id, "bundles delete")
    except Exception as e:
        raise _fail(e, "bundles delete") from e

    console.print(f"Deleted bundle [cyan]{bundle_id}[/cyan]")


@bundles_app.command("clear")
def bundles_clear_command(
    yes: Annotated[bool, typer.Option("--yes", "-y", help=CLIHelp.YES_HELP)] = False,
) -> None:
    """Delete every saved bundle. This cannot be undone."""
    if not yes:
        typer.confirm("Delete every saved analysis bundle?", abort=True)

    try:
        with open_container(get_cli_context()) as container:
            removed = container.bundle_store().delete_all()
    except Exception as e:
        raise _fail(e, "bundles clear") from e

    console.print(f"Deleted {removed} bundles")


if __name__ == "__main__":
    app()
