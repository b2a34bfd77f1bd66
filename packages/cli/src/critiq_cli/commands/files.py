"""files command: review source files grouped by count and size."""

from __future__ import annotations

import click
from rich.console import Console

from critiq_cli.commands._options import overrides, review_options

console = Console(stderr=True)


@click.command("files")
@click.argument("paths", nargs=-1, required=True)
@click.option("--max-files", type=int, default=None, help="Files per review group. Overrides max_files_per_group.")
@review_options
@click.pass_context
def files_cmd(
    ctx,
    paths: tuple[str, ...],
    max_files: int | None,
    provider: str | None,
    model: str | None,
    guidelines_path: str | None,
    batch: bool | None,
    as_json: bool,
    output: str | None,
    gate: bool,
):
    """Review the files under PATHS, a few at a time.

    Binary and generated files, and anything matching the configured
    ``exclude`` patterns, are skipped.
    """
    from critiq_cli.display import report
    from critiq_cli.session import build_session
    from critiq_core.reviewer import review_all
    from critiq_core.utils.files import collect_files, file_group_units

    settings = overrides(provider, model, guidelines_path, batch)
    settings["max_files_per_group"] = max_files
    config, reviewer, guidelines = build_session(ctx, settings)

    files = collect_files(list(paths), exclude=config.get("exclude", []))
    if not files:
        console.print("[yellow]No reviewable files found.[/yellow]")
        return

    units = file_group_units(files, max_files=config["max_files_per_group"], max_bytes=config["max_group_bytes"])
    if not as_json:
        console.print(f"[cyan]Reviewing {len(files)} file(s) in {len(units)} group(s)[/cyan]")
    results = review_all(reviewer, units, config, guidelines)

    if not report(results, config, as_json=as_json, output=output, gate=gate):
        ctx.exit(1)
