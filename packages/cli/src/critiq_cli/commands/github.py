"""github command: review commits fetched from a GitHub repository."""

from __future__ import annotations

import click
from rich.console import Console

from critiq_cli.commands._options import overrides, review_options

console = Console(stderr=True)


@click.command("github")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--sha", "shas", multiple=True, required=True, help="Commit SHA to review. Repeat for several.")
@review_options
@click.pass_context
def github_cmd(
    ctx,
    repo: str,
    shas: tuple[str, ...],
    provider: str | None,
    model: str | None,
    guidelines_path: str | None,
    batch: bool | None,
    as_json: bool,
    output: str | None,
    gate: bool,
):
    """Review one or more commits of a GitHub repository.

    Uses GITHUB_TOKEN or GH_TOKEN, or the gh CLI session when neither is set.
    """
    from github import GithubException

    from critiq_cli.auth import resolve_github_token
    from critiq_cli.display import report
    from critiq_cli.session import build_session
    from critiq_core.gh.commits import commit_unit, get_commit, get_repo
    from critiq_core.reviewer import review_all

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )

    config, reviewer, guidelines = build_session(ctx, overrides(provider, model, guidelines_path, batch))

    try:
        this_repo = get_repo(repo, token=token)
        results = review_all(
            reviewer,
            list(shas),
            config,
            guidelines,
            load=lambda sha: commit_unit(get_commit(this_repo, sha)),
        )
    except GithubException as e:
        raise click.ClickException(f"GitHub request failed for {repo}: {e}")

    if not report(results, config, as_json=as_json, output=output, gate=gate):
        ctx.exit(1)
