"""commits command: review commits from the local git repository."""

from __future__ import annotations

import click
from rich.console import Console

from critiq_cli.commands._options import overrides, review_options

console = Console(stderr=True)


@click.command("commits")
@click.argument("revision_range", default="HEAD~1..HEAD")
@click.option("--max-commits", type=int, default=None, help="Review at most this many commits, newest first.")
@click.option("--since", default=None, help="Only commits more recent than this date (anything git log accepts).")
@click.option("--until", default=None, help="Only commits older than this date.")
@click.option("--author", default=None, help="Only commits whose author name or email matches.")
@click.option("--staged", is_flag=True, help="Review the staged changes instead of commits (for pre-commit hooks).")
@review_options
@click.pass_context
def commits_cmd(
    ctx,
    revision_range: str,
    max_commits: int | None,
    since: str | None,
    until: str | None,
    author: str | None,
    staged: bool,
    provider: str | None,
    model: str | None,
    guidelines_path: str | None,
    batch: bool | None,
    as_json: bool,
    output: str | None,
    gate: bool,
):
    """Review commits in REVISION_RANGE (default HEAD~1..HEAD).

    Each commit's diff is reviewed on its own; diffs too large for one model
    call are split into chunks and the chunk reviews combined.

    \b
    Required environment variables (one of):
      ANTHROPIC_API_KEY    when using --provider anthropic (default)
      OPENAI_API_KEY       when using --provider openai
      GOOGLE_API_KEY       when using --provider google
      AI_API_KEY           fallback for any provider
    """
    from critiq_cli.display import render_history, report
    from critiq_cli.session import build_session
    from critiq_core.git import GitError, commit_patterns, list_commits, load_commit_unit, staged_unit
    from critiq_core.reviewer import review_all

    config, reviewer, guidelines = build_session(ctx, overrides(provider, model, guidelines_path, batch))

    try:
        if staged:
            unit = staged_unit()
            if not unit.content.strip():
                console.print("[yellow]No staged changes to review.[/yellow]")
                return
            results = review_all(reviewer, [unit], config, guidelines)
        else:
            commits = list_commits(revision_range, max_count=max_commits, since=since, until=until, author=author)
            if not commits:
                console.print(f"[yellow]No commits found in {revision_range}.[/yellow]")
                return
            if not as_json:
                console.print(f"[cyan]Reviewing {len(commits)} commit(s) in {revision_range}[/cyan]")
            results = review_all(reviewer, commits, config, guidelines, load=load_commit_unit)
    except GitError as e:
        raise click.ClickException(str(e))

    passed = report(results, config, as_json=as_json, output=output, gate=gate)
    if not staged and len(results) > 1 and not as_json:
        render_history(commit_patterns(commits))
    if not passed:
        ctx.exit(1)
