"""CLI entry point for figbatch.

Provides commands:
  - validate: Check a spreadsheet of records against repository rules
  - upload: Validate, review duplicates, then create records and upload files
  - config: Manage the repository API token
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import keyring
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from figbatch.config import KEY_NAME, SERVICE_NAME, get_api_token, load_config
from figbatch.fields import combine_fields
from figbatch.filesystem import RootDirectory
from figbatch.models import RowState
from figbatch.validation import DuplicateReview, RowRegistry, ValidationContext

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="figbatch - Validate and upload spreadsheets of research records",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Manage configuration (API token)")
app.add_typer(config_app, name="config")

_STATUS_STYLE = {
    RowState.PARSING: "yellow",
    RowState.VALID: "green",
    RowState.ERROR: "red",
}


@app.callback()
def app_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _token_or_exit() -> str:
    try:
        return get_api_token()
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def _print_registry(registry: RowRegistry) -> None:
    """Render row statuses, load messages and aggregate results."""
    for message in registry.load_errors:
        console.print(f"[red]Error:[/red] {message}")
    for message in registry.load_warnings:
        console.print(f"[yellow]Warning:[/yellow] {message}")
    if not registry.rows:
        return

    table = Table(title="Rows")
    table.add_column("Row", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Errors")
    table.add_column("Warnings")
    for row in registry.rows:
        style = _STATUS_STYLE[row.status]
        table.add_row(
            str(row.row_number),
            row.title or "",
            f"[{style}]{row.status.value}[/{style}]",
            "\n".join(f"{e.kind}: {e.message}" for e in row.errors),
            "\n".join(row.warnings),
        )
    console.print(table)

    for check in registry.aggregate_checks:
        if check.errors:
            body = "\n".join(e.message for e in check.errors)
            console.print(Panel(body, title=f"[red]{check.name}[/red]"))
        else:
            console.print(f"[green]✓[/green] {check.name}")

    if registry.halted:
        console.print(
            "[red]Validation halted:[/red] too many errors or warnings "
            f"({registry.error_count} rows in error, {registry.warning_count} warnings)"
        )


def _print_review(review: DuplicateReview) -> None:
    if not review.has_matches:
        return
    table = Table(title="Possible duplicates of existing records")
    table.add_column("Row", justify="right")
    table.add_column("Title")
    table.add_column("Existing record")
    table.add_column("Match")
    table.add_column("Action")
    for match in review.exact_matches:
        action = "skip" if match.row_id in review.skip_rows else "upload"
        table.add_row(str(match.row_number), match.title, match.existing_title, "exact", action)
    for match in review.near_matches:
        table.add_row(str(match.row_number), match.title, match.existing_title, "near", "upload")
    console.print(table)


@app.command()
def validate(
    sheet: Annotated[
        Path,
        typer.Argument(help="Spreadsheet (.xlsx or .csv)", exists=True, dir_okay=False),
    ],
    root: Annotated[
        Path | None,
        typer.Option("--root", "-r", help="Directory holding the referenced files", file_okay=False),
    ] = None,
    group_id: Annotated[
        int | None,
        typer.Option("--group", "-g", help="Target group id"),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to JSON config file"),
    ] = None,
) -> None:
    """Validate every row of SHEET without uploading anything."""
    validation_config, repo_config = load_config(config_path)
    token = _token_or_exit()

    from figbatch.upload.client import RepositoryClient, RepositoryError

    async def _run() -> RowRegistry:
        async with RepositoryClient(
            token,
            api_base=repo_config.api_base,
            timeout=repo_config.timeout_seconds,
            page_size=repo_config.page_size,
        ) as client:
            repo = await client.fetch_context(group_id or repo_config.group_id)
        registry = RowRegistry(
            combine_fields(repo.categories, repo.licenses, repo.item_types, repo.custom_fields),
            ValidationContext(
                root_dir=RootDirectory(root) if root is not None else None,
                config=validation_config,
            ),
            quota_remaining=repo.quota_remaining,
        )
        registry.load_sheet(sheet)
        with console.status("Checking rows..."):
            await registry.check()
        return registry

    try:
        registry = asyncio.run(_run())
    except RepositoryError as e:
        console.print(f"[red]Repository error:[/red] {e}")
        raise typer.Exit(code=1)

    _print_registry(registry)
    if not registry.valid:
        raise typer.Exit(code=1)
    console.print(f"[green]All {len(registry.rows)} rows are valid.[/green]")


@app.command()
def upload(
    sheet: Annotated[
        Path,
        typer.Argument(help="Spreadsheet (.xlsx or .csv)", exists=True, dir_okay=False),
    ],
    root: Annotated[
        Path | None,
        typer.Option("--root", "-r", help="Directory holding the referenced files", file_okay=False),
    ] = None,
    group_id: Annotated[
        int | None,
        typer.Option("--group", "-g", help="Target group id"),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to JSON config file"),
    ] = None,
    upload_duplicates: Annotated[
        bool,
        typer.Option(
            "--upload-duplicates",
            help="Upload rows whose title exactly matches an existing record",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Acknowledge duplicate matches without prompting"),
    ] = False,
    report_path: Annotated[
        Path,
        typer.Option("--report", help="Where to write the CSV upload summary"),
    ] = Path("upload-summary.csv"),
) -> None:
    """Validate SHEET, then create one record per row and upload its files."""
    validation_config, repo_config = load_config(config_path)
    token = _token_or_exit()
    group = group_id or repo_config.group_id
    root_dir = RootDirectory(root) if root is not None else None

    from figbatch.upload.client import RepositoryClient, RepositoryError
    from figbatch.upload.orchestrator import RecordUploadOrchestrator
    from figbatch.upload.payload import PayloadError, prepare_upload_data
    from figbatch.upload.progress import UploadProgressTracker

    async def _run() -> RecordUploadOrchestrator | None:
        async with RepositoryClient(
            token,
            api_base=repo_config.api_base,
            timeout=repo_config.timeout_seconds,
            page_size=repo_config.page_size,
        ) as client:
            repo = await client.fetch_context(group)
            fields = combine_fields(
                repo.categories, repo.licenses, repo.item_types, repo.custom_fields
            )
            registry = RowRegistry(
                fields,
                ValidationContext(root_dir=root_dir, config=validation_config),
                quota_remaining=repo.quota_remaining,
            )
            registry.load_sheet(sheet)
            with console.status("Checking rows..."):
                await registry.check()
            _print_registry(registry)
            if not registry.valid:
                console.print("[red]Fix the errors above before uploading.[/red]")
                return None

            review = DuplicateReview(
                registry.rows,
                repo.existing_titles,
                threshold=validation_config.near_duplicate_threshold,
            )
            if upload_duplicates:
                review.toggle_all(skip=False)
            _print_review(review)
            if review.has_matches:
                if yes or typer.confirm(f"{review.summary()}. Continue?"):
                    review.acknowledge()
                else:
                    return None

            rows = prepare_upload_data(
                registry, repo.categories, repo.licenses, repo.item_types, group
            )
            with UploadProgressTracker(total_records=len(rows)) as progress:
                orchestrator = RecordUploadOrchestrator(
                    client, rows, root_dir, repo_config, review=review, progress=progress
                )
                await orchestrator.upload_all()
            return orchestrator

    try:
        orchestrator = asyncio.run(_run())
    except (RepositoryError, PayloadError) as e:
        console.print(f"[red]Upload failed:[/red] {e}")
        raise typer.Exit(code=1)

    if orchestrator is None:
        raise typer.Exit(code=1)

    orchestrator.write_summary(report_path)
    result = orchestrator.summary

    summary_table = Table(title="Upload Summary")
    summary_table.add_column("Status", style="bold")
    summary_table.add_column("Count", justify="right")
    summary_table.add_row("Completed", f"[green]{result['completed']}[/green]")
    summary_table.add_row("Failed", f"[red]{result['error']}[/red]")
    summary_table.add_row("Skipped", f"[yellow]{result['skipped']}[/yellow]")
    summary_table.add_row("Cancelled", str(result["cancelled"]))
    console.print(Panel(summary_table, title="Upload Complete"))
    console.print(f"[dim]Summary written to {report_path}[/dim]")

    if result["error"]:
        raise typer.Exit(code=1)


@config_app.command("set-token")
def set_token(
    token: Annotated[
        str,
        typer.Argument(help="Repository API token to store in system keyring"),
    ],
) -> None:
    """Store the API token in the system keyring (service: figbatch)."""
    if not token or token.strip() == "":
        console.print("[red]Error:[/red] API token cannot be empty")
        raise typer.Exit(code=1)

    try:
        keyring.set_password(SERVICE_NAME, KEY_NAME, token)
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to store API token: {e}")
        raise typer.Exit(code=1)
    console.print(
        f"[green]✓[/green] API token stored in system keyring (service: {SERVICE_NAME})"
    )


@config_app.command("get-token")
def show_token() -> None:
    """Display the stored API token (masked)."""
    token = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if not token:
        console.print(
            "[yellow]No API token found in keyring.[/yellow]\n"
            "Set it with: [bold]figbatch config set-token YOUR_TOKEN[/bold]"
        )
        raise typer.Exit(code=1)

    if len(token) > 8:
        masked = token[:4] + "*" * (len(token) - 4)
    else:
        masked = token[:2] + "*" * max(1, len(token) - 2)
    console.print(f"[green]API token:[/green] {masked}")


@config_app.command("remove-token")
def remove_token() -> None:
    """Delete the stored API token from the system keyring."""
    if not keyring.get_password(SERVICE_NAME, KEY_NAME):
        console.print("[yellow]Warning:[/yellow] No API token found in keyring.")
        return

    try:
        keyring.delete_password(SERVICE_NAME, KEY_NAME)
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to remove API token: {e}")
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] API token removed from system keyring")
