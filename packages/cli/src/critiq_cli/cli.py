"""CLI entry point for critiq.

Commands:
  commits  review commits from the local git repository
  github   review commits of a GitHub repository
  files    review source files in groups
  init     write a starter configuration
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from critiq_cli.commands.commits import commits_cmd
from critiq_cli.commands.files import files_cmd
from critiq_cli.commands.github import github_cmd
from critiq_cli.commands.init import init_cmd


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    # SDK clients are chatty at DEBUG; keep them at INFO.
    for name in ("httpx", "httpcore", "anthropic", "openai", "urllib3"):
        logging.getLogger(name).setLevel(logging.INFO)


@click.group()
@click.version_option(package_name="critiq", prog_name="critiq")
@click.option(
    "--config",
    "config_path",
    default=".critiq.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="CRITIQ_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI code review for commits and files, resilient to rate limits and truncated answers."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    _configure_logging(verbose)


main.add_command(commits_cmd)
main.add_command(github_cmd)
main.add_command(files_cmd)
main.add_command(init_cmd)
