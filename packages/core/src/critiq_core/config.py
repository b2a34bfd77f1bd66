import os
from pathlib import Path
from typing import Optional

import yaml

from critiq_core.errors import ConfigurationError
from critiq_core.models import SEVERITIES

CONFIG_FILENAME = ".critiq.yml"

DEFAULT_CONFIG: dict = {
    "provider": "anthropic",
    "model": None,  # None = provider default
    "max_tokens": 4096,
    "max_chunk_bytes": None,  # None = derived from max_tokens
    "retry_attempts": 3,
    "rate_limiting": {
        "min_request_interval": 1000,  # milliseconds
        "max_requests_per_minute": 60,
    },
    "batch_size": 5,
    "enable_batch_processing": False,
    "max_files_per_group": 5,
    "max_group_bytes": 100_000,
    "enable_citations": False,
    "minimum_score": 6,  # commit gate: lowest passing score
    "blocking_issues": ["critical", "high"],  # commit gate: severities that fail a commit
    "base_url": None,
    "guidelines": None,  # path to a Markdown file appended to the system prompt
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
}

PROVIDERS = ("anthropic", "openai", "google")

# Endpoints a configured base_url may point at, per provider.
ALLOWED_ENDPOINTS: dict = {
    "openai": ("https://api.openai.com/v1/chat/completions",),
    "anthropic": (
        "https://api.anthropic.com/v1/messages",
        "https://api.anthropic.com/v1/messages/batches",
    ),
    "google": ("https://generativelanguage.googleapis.com/v1beta/models/",),
}

API_KEY_ENV = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "google": "GOOGLE_API_KEY",
}
GENERIC_API_KEY_ENV = "AI_API_KEY"

_MAX_TOKENS_CEILING = 100_000
_MAX_RETRY_ATTEMPTS = 10


def _fresh_defaults() -> dict:
    return {
        **DEFAULT_CONFIG,
        "blocking_issues": list(DEFAULT_CONFIG["blocking_issues"]),
        "rate_limiting": dict(DEFAULT_CONFIG["rate_limiting"]),
        "exclude": list(DEFAULT_CONFIG["exclude"]),
    }


def _merge(config: dict, updates: dict) -> None:
    for key, value in updates.items():
        if value is None:
            continue
        if key == "rate_limiting":
            if not isinstance(value, dict):
                raise ConfigurationError(f"rate_limiting must be a mapping, got {value!r}")
            config["rate_limiting"].update({k: v for k, v in value.items() if v is not None})
        else:
            config[key] = value


def load_config(config_path: str = CONFIG_FILENAME, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .critiq.yml in the current directory
      3. CLI argument overrides
    then resolve credentials from the environment.
    """
    config = _fresh_defaults()

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a YAML mapping")
        _merge(config, file_config)

    if cli_overrides:
        _merge(config, cli_overrides)

    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    key_env = API_KEY_ENV.get(config["provider"])
    config["api_key"] = (os.environ.get(key_env) if key_env else None) or os.environ.get(GENERIC_API_KEY_ENV)

    return config


def _require_int(config: dict, key: str, low: int, high: Optional[int] = None, value=None) -> None:
    value = config.get(key) if value is None else value
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise ConfigurationError(f"{key} must be {bound}, got {value}")


def validate_config(config: dict) -> None:
    """Raise ConfigurationError for anything that would make a run meaningless."""
    provider = config.get("provider")
    if provider not in PROVIDERS:
        raise ConfigurationError(f"Unknown provider: {provider!r}. Choose one of {', '.join(PROVIDERS)}.")

    if not config.get("api_key"):
        raise ConfigurationError(f"{API_KEY_ENV[provider]} (or {GENERIC_API_KEY_ENV}) is not set.")

    _require_int(config, "max_tokens", 1, _MAX_TOKENS_CEILING)
    _require_int(config, "retry_attempts", 1, _MAX_RETRY_ATTEMPTS)
    _require_int(config, "batch_size", 1)
    _require_int(config, "max_files_per_group", 1)
    _require_int(config, "max_group_bytes", 1)
    _require_int(config, "minimum_score", 1, 10)
    if config.get("max_chunk_bytes") is not None:
        _require_int(config, "max_chunk_bytes", 1)

    unknown = [s for s in config.get("blocking_issues") or [] if s not in SEVERITIES]
    if unknown:
        raise ConfigurationError(f"blocking_issues has unknown severities: {', '.join(map(str, unknown))}")

    limits = config.get("rate_limiting") or {}
    _require_int(config, "rate_limiting.min_request_interval", 0, value=limits.get("min_request_interval"))
    _require_int(config, "rate_limiting.max_requests_per_minute", 1, value=limits.get("max_requests_per_minute"))

    base_url = config.get("base_url")
    if base_url and not any(base_url.startswith(allowed) for allowed in ALLOWED_ENDPOINTS[provider]):
        raise ConfigurationError(f"base_url is not an allowed endpoint for {provider}: {base_url}")


def write_config(path: str, config: dict) -> None:
    """Write a configuration mapping as YAML. Credentials are never written."""
    data = {k: v for k, v in config.items() if k not in ("api_key", "github_token")}
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_guidelines(config: dict) -> Optional[str]:
    """
    Load team review guidelines.

    If ``guidelines`` is set in config, loads from that path (relative to cwd).
    Otherwise there are none.
    """
    custom_path = config.get("guidelines")
    if not custom_path:
        return None
    p = Path(custom_path)
    if not p.exists():
        raise ConfigurationError(f"Guidelines file not found: {custom_path}")
    return p.read_text()
