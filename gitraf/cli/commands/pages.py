"""Static site deployment commands."""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer

from gitraf.application.factory import build_pipeline, build_store
from gitraf.cli.utils.context import CLIContext
from gitraf.core.exceptions import GitrafError
from gitraf.core.git import GitError
from gitraf.core.models import Repository, read_events
from gitraf.infrastructure.concurrency import LockManager
from gitraf.pages import DeploymentResult, PagesPipeline, PipelineState

app = typer.Typer(help="Build and publish static sites")


def _report_error(cli_ctx: CLIContext, error: GitrafError) -> None:
    if cli_ctx.formatter.is_structured:
        cli_ctx.formatter.print_detail(error.to_error_response().model_dump(exclude_none=True))
    else:
        cli_ctx.formatter.print_error(error.message)


def _print_results(cli_ctx: CLIContext, results: List[DeploymentResult]) -> None:
    for result in results:
        if cli_ctx.debug:
            cli_ctx.formatter.print_detail(result.to_dict(), title="Deployment")
        if result.state == PipelineState.PUBLISHED:
            cli_ctx.formatter.print_success(f"{result.repository}: published {result.release.name}")
        elif result.state == PipelineState.SKIPPED:
            cli_ctx.formatter.print_warning(f"{result.repository}: skipped ({result.reason})")
        else:
            cli_ctx.formatter.print_error(
                f"{result.repository}: {result.stage} failed: {result.reason}"
            )


async def _default_ref(pipeline: PagesPipeline, repository: Repository) -> Optional[str]:
    config = await pipeline.store.read_pages_config(repository)
    if config is not None:
        return config.ref
    return await pipeline.store.most_recent_branch(repository)


async def _deploy(pipeline: PagesPipeline, repository: Repository, ref: Optional[str]) -> DeploymentResult:
    if ref is None:
        ref = await _default_ref(pipeline, repository)
        if ref is None:
            raise typer.BadParameter(f"{repository.name} has no branches", param_hint="--ref")
    elif not ref.startswith("refs/"):
        ref = f"refs/heads/{ref}"

    return await pipeline.run(repository, ref, output=sys.stdout.buffer)


@app.command("deploy")
def deploy_site(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name (with or without .git)"),
    ref: Optional[str] = typer.Option(
        None,
        "--ref",
        "-r",
        help="Branch or ref to deploy (defaults to the configured branch)",
    ),
):
    """
    Build and publish a repository's site without a push.

    Example:
        gitraf pages deploy site.git
        gitraf pages deploy site --ref main
    """
    cli_ctx: CLIContext = ctx.obj
    store = build_store(cli_ctx.settings)

    try:
        repository = store.resolve(name)
        pipeline = build_pipeline(store, cli_ctx.settings)
        result = asyncio.run(_deploy(pipeline, repository, ref))
    except GitrafError as e:
        _report_error(cli_ctx, e)
        raise typer.Exit(1)
    except GitError as e:
        cli_ctx.formatter.print_error(f"git failed: {e}")
        raise typer.Exit(1)

    _print_results(cli_ctx, [result])
    if not result.succeeded:
        raise typer.Exit(1)


@app.command("hook")
def post_receive_hook(
    ctx: typer.Context,
    repository_path: Optional[Path] = typer.Option(
        None,
        "--repository",
        help="Bare repository the hook runs for (defaults to the working directory)",
    ),
):
    """
    Deploy from post-receive input on stdin.

    Install as hooks/post-receive of a repository served by a plain git
    backend. Each "<old> <new> <ref>" line is considered once per ref.
    Always exits 0; failures are reported on stderr.
    """
    cli_ctx: CLIContext = ctx.obj
    store = build_store(cli_ctx.settings)

    try:
        repository = store.find(repository_path or Path.cwd())
        events = read_events(sys.stdin)
    except GitrafError as e:
        _report_error(cli_ctx, e)
        raise typer.Exit(0)
    except ValueError as e:
        cli_ctx.formatter.print_error(str(e))
        raise typer.Exit(0)

    if not events:
        return

    pipeline = build_pipeline(store, cli_ctx.settings)
    results = asyncio.run(pipeline.run_events(repository, events, output=sys.stderr.buffer))

    if cli_ctx.debug:
        _print_results(cli_ctx, results)


@app.command("status")
def site_status(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name"),
):
    """
    Show the deployment config and published releases of a repository.

    Example:
        gitraf pages status site.git
        gitraf -o json pages status site
    """
    cli_ctx: CLIContext = ctx.obj
    settings = cli_ctx.settings
    store = build_store(settings)

    try:
        repository = store.resolve(name)
        config = asyncio.run(store.read_pages_config(repository))
    except GitrafError as e:
        _report_error(cli_ctx, e)
        raise typer.Exit(1)

    pipeline = build_pipeline(store, settings)
    layout = pipeline.layout(repository)
    current = pipeline.publisher.current_release(layout)

    releases = []
    if layout.releases.is_dir():
        releases = sorted(
            (p.name for p in layout.releases.iterdir() if p.is_dir() and not p.name.startswith(".")),
            reverse=True,
        )

    locked = LockManager(settings.lock_dir).is_locked(f"pages:{repository.name}")

    status = {
        "repository": repository.name,
        "configured": config is not None,
        "enabled": config.enabled if config else False,
        "branch": config.branch if config else None,
        "build_command": (config.build_command or None) if config else None,
        "output_dir": config.output_dir if config else None,
        "site": str(layout.site),
        "current_release": current.name if current else None,
        "releases": releases,
        "deploying": locked,
    }

    formatter = cli_ctx.formatter
    if formatter.is_structured:
        formatter.print_detail(status)
        return

    formatter.print_detail(
        {k: v for k, v in status.items() if k != "releases"},
        title=f"Pages: {repository.name}",
    )

    if releases:
        formatter.console.print()
        formatter.print_table(
            [{"release": r, "live": bool(current and r == current.name)} for r in releases],
            columns=["release", "live"],
            title="Releases",
        )
