"""Options shared by every review command."""

from __future__ import annotations

import click

PROVIDER_CHOICES = ["anthropic", "openai", "google"]


def review_options(func):
    """Attach the provider, model, guidelines and output options to a command."""
    options = [
        click.option(
            "--provider",
            type=click.Choice(PROVIDER_CHOICES),
            default=None,
            help="AI provider. Overrides config file.",
        ),
        click.option("--model", default=None, help="Model name. Defaults to the provider's default."),
        click.option(
            "--guidelines",
            "guidelines_path",
            default=None,
            help="Path to a Markdown guidelines file. Overrides config file.",
        ),
        click.option(
            "--batch/--no-batch",
            default=None,
            help="Review several units concurrently. Overrides enable_batch_processing.",
        ),
        click.option("--json", "as_json", is_flag=True, help="Print results as JSON on stdout."),
        click.option(
            "--output",
            "-o",
            type=click.Path(dir_okay=False, writable=True),
            default=None,
            help="Also write results as JSON to this file.",
        ),
        click.option("--gate", is_flag=True, help="Exit with status 1 if any review fails the quality gate."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def overrides(provider, model, guidelines_path, batch) -> dict:
    return {
        "provider": provider,
        "model": model,
        "guidelines": guidelines_path,
        "enable_batch_processing": batch,
    }
