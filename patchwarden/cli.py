"""CLI entry point for patchwarden.

One command name per invocation, one JSON object on stdin, one JSON object
on stdout. Exit status is 0 on success and 1 on any failure.

Commands:
- patchwarden worktree.ensure: Create (or reuse) an isolated worktree
- patchwarden worktree.remove: Remove a worktree
- patchwarden patch.apply: Apply a patch confined to allowed path prefixes
- patchwarden git.commit_all: Stage and commit everything
- patchwarden verify.run: Run verification commands and record evidence
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from patchwarden import __version__
from patchwarden.core.config import load_config
from patchwarden.core.engine import KernelEngine
from patchwarden.core.errors import InputError, PatchWardenError

# stdout is reserved for the JSON response
console = Console(stderr=True)


class CommandFailed(click.ClickException):
    """Failure reported to the caller verbatim on stderr."""

    exit_code = 1

    def show(self, file: Any = None) -> None:
        click.echo(self.message, err=True)


class KernelGroup(click.Group):
    """Group that reports unknown commands with exit status 1."""

    def resolve_command(self, ctx: click.Context, args: list[str]) -> Any:
        name = args[0] if args else None
        if name and not name.startswith("-") and self.get_command(ctx, name) is None:
            raise CommandFailed(f"unknown command: {name}")
        return super().resolve_command(ctx, args)


def configure_logging(level: str) -> None:
    """Route patchwarden logs to stderr through rich."""
    package_logger = logging.getLogger("patchwarden")
    package_logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=console, show_path=False, rich_tracebacks=False)
        )


def read_stdin_json() -> Any:
    """Read and decode the request body from stdin."""
    raw = sys.stdin.read()
    if not raw.strip():
        raise InputError("missing JSON input on stdin")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"invalid JSON input: {e}")


def run_kernel_command(ctx: click.Context, command: str) -> None:
    """Load config, read the request, dispatch, print the response."""
    cwd = Path.cwd()
    try:
        config = load_config(cwd)
        configure_logging(ctx.obj.get("log_level") or config.log_level)
        payload = read_stdin_json()
        result = KernelEngine(config, cwd).dispatch(command, payload)
    except PatchWardenError as e:
        raise CommandFailed(str(e))

    click.echo(json.dumps(result))


@click.group(cls=KernelGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="patchwarden")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for stderr diagnostics (overrides config).",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """patchwarden - guarded worktree, patch and verification primitives.

    Reads one JSON object on stdin and writes one JSON object on stdout.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    if ctx.invoked_subcommand is None:
        # Usage only: no error body for a missing command
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)


@main.command("worktree.ensure")
@click.pass_context
def worktree_ensure(ctx: click.Context) -> None:
    """Create or reuse a worktree outside the repository root.

    Input: {repoRoot, worktreePath, branch, baseSha}. Output: {worktreePath}.
    """
    run_kernel_command(ctx, "worktree.ensure")


@main.command("worktree.remove")
@click.pass_context
def worktree_remove(ctx: click.Context) -> None:
    """Remove a worktree.

    Input: {repoRoot, worktreePath, force?}. Output: {ok}.
    """
    run_kernel_command(ctx, "worktree.remove")


@main.command("patch.apply")
@click.pass_context
def patch_apply(ctx: click.Context) -> None:
    """Apply a patch whose files all sit under allowed prefixes.

    Input: {worktreePath, patchPath, allowedPathPrefixes[]}. Output: {touchedFiles[]}.
    """
    run_kernel_command(ctx, "patch.apply")


@main.command("git.commit_all")
@click.pass_context
def commit_all(ctx: click.Context) -> None:
    """Stage every change and commit it.

    Input: {repoRoot, message}. Output: {sha}.
    """
    run_kernel_command(ctx, "git.commit_all")


@main.command("verify.run")
@click.pass_context
def verify_run(ctx: click.Context) -> None:
    """Run verification commands in a worktree and record evidence.

    Input: {worktreePath, outDir, commands[{name, command}]}.
    Output: the summary also written to <outDir>/summary.json.
    """
    run_kernel_command(ctx, "verify.run")


if __name__ == "__main__":
    main()
