"""Rendering of review results: rich console output, JSON, and the commit gate."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

_SEVERITY_STYLE = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "cyan",
}

_NOTE_SECTIONS = ("security", "performance", "dependencies", "accessibility", "sources")


def score_style(score: int) -> str:
    if score >= 8:
        return "green"
    if score >= 6:
        return "yellow"
    return "red"


def render_result(result) -> None:
    """Print one review result: header panel, issues table, then the note lists."""
    review = result.review
    style = score_style(review.score)
    header = (
        f"[bold]{escape(result.unit.label)}[/bold]\n"
        f"[dim]{result.unit.key[:12]}  {escape(result.unit.author)}  {result.unit.date}[/dim]\n\n"
        f"Score: [{style}]{review.score}/10[/{style}]   Confidence: {review.confidence}/10"
        + (f"   [dim]({result.chunks} chunks)[/dim]" if result.chunks > 1 else "")
        + f"\n\n{escape(review.summary)}"
    )
    console.print(Panel(header, border_style=style))

    if review.issues:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Severity", width=10)
        table.add_column("Category", width=14)
        table.add_column("Issue")
        table.add_column("Suggestion")
        for issue in review.issues:
            sev = _SEVERITY_STYLE.get(issue.severity, "white")
            table.add_row(
                f"[{sev}]{issue.severity.upper()}[/{sev}]",
                issue.category,
                escape(issue.description),
                escape(issue.suggestion),
            )
        console.print(table)

    if review.suggestions:
        console.print("[bold]Suggestions[/bold]")
        for s in review.suggestions:
            console.print(f"  • {escape(s)}")

    for name in _NOTE_SECTIONS:
        notes = getattr(review, name)
        if notes:
            console.print(f"[bold]{name.capitalize()}[/bold]")
            for note in notes:
                console.print(f"  • {escape(note)}")
    console.print()


def render_overview(results) -> None:
    """One-line-per-unit table, printed after several units were reviewed."""
    table = Table(title="Review Overview", show_header=True, header_style="bold cyan")
    table.add_column("Key", width=9)
    table.add_column("Label", max_width=50)
    table.add_column("Score", justify="right", width=6)
    table.add_column("Issues", justify="right", width=7)
    for r in results:
        style = score_style(r.review.score)
        table.add_row(
            r.unit.key[:7],
            escape(r.unit.label[:50]),
            f"[{style}]{r.review.score}[/{style}]",
            str(len(r.review.issues)),
        )
    console.print(table)


def render_history(patterns) -> None:
    """Contributor, monthly-activity and commit-type tables for a multi-commit run."""
    console.print(f"[bold blue]Commit History Summary[/bold blue]  [dim]{patterns.total} commit(s) reviewed[/dim]")
    sections = (
        ("Top Contributors", "Author", patterns.authors[:5]),
        ("Monthly Activity", "Month", patterns.monthly),
        ("Commit Types", "Prefix", patterns.commit_types),
    )
    for title, label, rows in sections:
        if not rows:
            continue
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column(label)
        table.add_column("Commits", justify="right", width=8)
        for name, count in rows:
            table.add_row(escape(name), str(count))
        console.print(table)


def report(results, config: dict, as_json: bool = False, output: str | None = None, gate: bool = False) -> bool:
    """Emit results and apply the gate. Returns False when the gate fails."""
    from critiq_core.reviewer import should_allow

    payload = [r.to_dict() for r in results]
    if as_json:
        click.echo(json.dumps(payload, indent=2))
    else:
        for r in results:
            render_result(r)
        if len(results) > 1:
            render_overview(results)

    if output:
        Path(output).write_text(json.dumps(payload, indent=2))
        if not as_json:
            console.print(f"[green]Wrote {len(results)} review(s) to {output}[/green]")

    if not gate:
        return True

    failing = [
        r
        for r in results
        if not should_allow(r.review, config.get("minimum_score", 6), config.get("blocking_issues", ("critical", "high")))
    ]
    if failing and not as_json:
        console.print(f"[red]Quality gate failed for {len(failing)} of {len(results)} review(s).[/red]")
    return not failing
