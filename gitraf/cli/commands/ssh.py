"""SSH forced-command entry point."""

import getpass
import sys
from typing import Optional

import typer

from gitraf.application.factory import build_gateway
from gitraf.application.gateway import run_session
from gitraf.cli.utils.context import CLIContext


def ssh_command(
    ctx: typer.Context,
    command: Optional[str] = typer.Argument(
        None,
        envvar="SSH_ORIGINAL_COMMAND",
        show_envvar=True,
        help="Git command requested by the client, e.g. git-receive-pack 'site.git'",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user",
        "-u",
        help="Authenticated system username (defaults to the current user)",
    ),
):
    """
    Serve one git operation for an SSH session.

    Install as the forced command in authorized_keys:

        command="gitraf ssh",no-pty,no-port-forwarding ssh-ed25519 AAAA...
    """
    cli_ctx: CLIContext = ctx.obj
    gateway = build_gateway(cli_ctx.settings, error_output=sys.stderr)
    exit_code = run_session(gateway, command or "", user or getpass.getuser())
    raise typer.Exit(exit_code)
