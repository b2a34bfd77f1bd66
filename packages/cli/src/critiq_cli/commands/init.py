"""init command: write a starter configuration and an optional pre-commit hook."""

from __future__ import annotations

import stat
import subprocess
from pathlib import Path

import click
from rich.console import Console

from critiq_cli.commands._options import PROVIDER_CHOICES

console = Console()

_API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}

_HOOK_TEMPLATE = """\
#!/bin/sh
# Installed by `critiq init`. Blocks the commit when the staged changes fail the quality gate.
exec critiq commits --staged --gate
"""


@click.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file.")
@click.pass_context
def init_cmd(ctx, force: bool):
    """Set up critiq for this repository.

    Writes .critiq.yml and optionally installs a git pre-commit hook that
    reviews staged changes before every commit.
    """
    from critiq_core.config import DEFAULT_CONFIG, write_config

    config_path = Path(ctx.obj.get("config_path", ".critiq.yml") if ctx.obj else ".critiq.yml")
    if config_path.exists() and not force:
        raise click.UsageError(f"{config_path} already exists. Use --force to overwrite it.")

    console.print("\n[bold cyan]critiq init[/bold cyan]: repository setup\n")

    provider = click.prompt("AI provider", type=click.Choice(PROVIDER_CHOICES), default="anthropic")
    max_tokens = click.prompt("Maximum output tokens per review call", type=click.IntRange(1, 100_000), default=4096)
    batch = click.confirm("Review several commits concurrently?", default=False)
    minimum_score = click.prompt("Minimum passing score for --gate", type=click.IntRange(1, 10), default=6)

    config = {
        **DEFAULT_CONFIG,
        "provider": provider,
        "max_tokens": max_tokens,
        "enable_batch_processing": batch,
        "minimum_score": minimum_score,
    }
    write_config(str(config_path), config)
    console.print(f"[green]Created {config_path}[/green]")

    if click.confirm("\nInstall a git pre-commit hook?", default=False):
        hook = _install_hook()
        if hook:
            console.print(f"[green]Installed {hook}[/green]")
        else:
            console.print("[yellow]Not inside a git repository; skipped the hook.[/yellow]")

    console.print(
        f"\n[yellow]Remember to export [bold]{_API_KEY_ENV[provider]}[/bold] before running a review.[/yellow]"
    )
    console.print("Run a review with: [bold]critiq commits HEAD~1..HEAD[/bold]")


def _git_hooks_dir() -> Path | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--git-path", "hooks"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return Path(result.stdout.strip())


def _install_hook() -> Path | None:
    hooks = _git_hooks_dir()
    if hooks is None:
        return None
    hooks.mkdir(parents=True, exist_ok=True)
    hook = hooks / "pre-commit"
    hook.write_text(_HOOK_TEMPLATE)
    hook.chmod(hook.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return hook
