"""
Runtime search options loader. Sources, lowest precedence first:
defaults -> JSON options file -> SEARCH_* environment settings -> programmatic options.
"""

import json
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from catalog_search.config.logging import get_logger
from catalog_search.config.search.errors import ConfigurationError
from catalog_search.config.search.merge import merge_options, merge_with_defaults
from catalog_search.config.search.models import RuntimeOptions
from catalog_search.config.settings import Settings, get_settings

logger = get_logger(__name__)

# Settings field -> runtime option
SETTINGS_TO_OPTION = {
    "search_host": "host",
    "search_port": "port",
    "search_connection_attempts": "connection_attempts",
    "search_connection_attempt_interval": "connection_attempt_interval",
    "search_index_prefix": "index_prefix",
    "search_batch_size": "batch_size",
}

# Settings field -> search client keyword argument
SETTINGS_TO_CLIENT_OPTION = {
    "search_use_ssl": "use_ssl",
    "search_verify_certs": "verify_certs",
    "search_timeout": "timeout",
}


def load_options_file(path: str | Path) -> dict[str, Any]:
    """Load partial search options from a JSON file. Raises ConfigurationError if missing or malformed."""
    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read search options file {str(file_path)!r}: {e}", cause=e) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Search options file {str(file_path)!r} is not valid JSON: {e}", cause=e) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Search options file {str(file_path)!r} must contain a JSON object")
    return data


def options_from_settings(settings: Settings) -> dict[str, Any]:
    """Partial options for the SEARCH_* settings that were explicitly set (env or .env)."""
    explicit = settings.model_fields_set
    options = {opt: getattr(settings, name) for name, opt in SETTINGS_TO_OPTION.items() if name in explicit}

    client_options: dict[str, Any] = {
        kwarg: getattr(settings, name)
        for name, kwarg in SETTINGS_TO_CLIENT_OPTION.items()
        if getattr(settings, name) is not None
    }
    if settings.search_username is not None:
        client_options["http_auth"] = (settings.search_username, settings.search_password or "")
    if client_options:
        options["client_options"] = client_options
    return options


def resolve_runtime_options(
    user_options: Mapping[str, Any] | None = None,
    settings: Settings | None = None,
) -> RuntimeOptions:
    """Build runtime options from all sources. Call once at startup."""
    settings = settings or get_settings()
    file_options = None
    if settings.search_options_file:
        file_options = load_options_file(settings.search_options_file)
        logger.info("Loaded search options file", extra={"path": settings.search_options_file})
    options = merge_with_defaults(file_options)
    options = merge_options(options, options_from_settings(settings))
    if user_options:
        options = merge_options(options, user_options)
    logger.info(
        "Runtime search options resolved",
        extra={"node_url": options.node_url, "index_prefix": options.index_prefix},
    )
    return options


@lru_cache
def get_runtime_options() -> RuntimeOptions:
    """Return cached runtime options built from files and environment only. Use for app lifetime."""
    return resolve_runtime_options()
