"""gitraf command-line tool."""

import shutil
from typing import Optional

import typer
from rich.console import Console

from gitraf.cli import __version__
from gitraf.cli.commands import pages
from gitraf.cli.commands.ssh import ssh_command
from gitraf.cli.utils.context import CLIContext
from gitraf.cli.utils.output import OutputFormatter
from gitraf.core.config import get_settings
from gitraf.infrastructure.logging import setup_logging

app = typer.Typer(
    name="gitraf",
    help="gitraf - SSH git gateway with push-to-deploy static sites",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)

# stdout belongs to the pack protocol during ssh sessions
console = Console(stderr=True)


def version_callback(value: bool):
    """Display version and exit."""
    if value:
        Console().print(f"gitraf v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug output",
    ),
    output_format: str = typer.Option(
        "table",
        "--output",
        "-o",
        help="Output format: table, json, yaml",
    ),
):
    """
    gitraf

    Serves git over SSH through a backend transport and publishes static
    sites from pushed branches.
    """
    settings = get_settings()
    if debug:
        settings = settings.model_copy(update={"log_level": "DEBUG"})

    setup_logging(settings)

    ctx.obj = CLIContext(
        debug=debug,
        settings=settings,
        formatter=OutputFormatter(output_format),
        console=console,
    )

    if debug:
        console.print("[dim]Debug mode enabled[/dim]")


app.command("ssh")(ssh_command)
app.add_typer(pages.app, name="pages", help="Build and publish static sites")


@app.command("doctor")
def doctor_command(ctx: typer.Context):
    """
    Diagnose gitraf configuration.
    """
    cli_ctx: CLIContext = ctx.obj
    settings = cli_ctx.settings
    out = Console()
    problems = 0

    out.print("[bold]gitraf doctor[/bold]\n")

    out.print("Paths:")
    for label, path in (
        ("Repository store", settings.repository_base_path),
        ("Pages root", settings.pages_base_path),
    ):
        if path.is_dir():
            out.print(f"  [green]✓[/green] {label}: {path}")
        else:
            problems += 1
            out.print(f"  [red]✗[/red] {label} missing: {path}")

    out.print("\nBinaries:")
    binaries = [settings.git_binary_path]
    if settings.transport_command:
        binaries.append(settings.transport_command[0])
    for binary in binaries:
        found = shutil.which(binary)
        if found:
            out.print(f"  [green]✓[/green] {binary}: {found}")
        else:
            problems += 1
            out.print(f"  [red]✗[/red] {binary} not found on PATH")

    out.print("\nTransport:")
    if settings.transport_command:
        out.print(f"  [green]✓[/green] {' '.join(settings.transport_command)}")
    else:
        out.print("  [yellow]⚠[/yellow] No transport command; git runs on this host")

    out.print("\n[bold]Summary:[/bold]")
    if problems:
        out.print(f"  [yellow]⚠[/yellow] {problems} problem(s) found")
        raise typer.Exit(1)
    out.print("  [green]✓[/green] gitraf is properly configured")


if __name__ == "__main__":
    app()
