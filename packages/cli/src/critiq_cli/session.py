"""Shared setup for the review commands: config, validation, reviewer."""

from __future__ import annotations

import click


def build_session(ctx: click.Context, overrides: dict) -> tuple[dict, object, str | None]:
    """Load and validate configuration, then build the reviewer and guidelines.

    Configuration problems become click.UsageError so the user sees them at
    once; nothing here is retried.
    """
    from critiq_core.config import load_config, load_guidelines, validate_config
    from critiq_core.errors import ConfigurationError
    from critiq_core.rate_limiter import RateLimiter
    from critiq_core.reviewer import get_reviewer

    config_path = ctx.obj.get("config_path", ".critiq.yml") if ctx.obj else ".critiq.yml"
    try:
        config = load_config(config_path, cli_overrides=overrides)
        validate_config(config)
        guidelines = load_guidelines(config)
        reviewer = get_reviewer(config, RateLimiter.from_config(config))
    except ConfigurationError as e:
        raise click.UsageError(str(e))
    except ImportError as e:
        raise click.ClickException(str(e))
    return config, reviewer, guidelines
