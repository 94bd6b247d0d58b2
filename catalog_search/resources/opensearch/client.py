"""Async OpenSearch client built from the runtime search options, with graceful shutdown."""

from typing import Any

from opensearchpy import AsyncOpenSearch

from catalog_search.config.logging import get_logger
from catalog_search.config.search.models import RuntimeOptions

logger = get_logger(__name__)

_clients: list[tuple[dict[str, Any], AsyncOpenSearch]] = []


def build_client_kwargs(options: RuntimeOptions) -> dict[str, Any]:
    """
    Keyword arguments for AsyncOpenSearch. host/port give the node; client_options are applied
    verbatim on top, so a `hosts` entry there replaces host/port.
    """
    kwargs: dict[str, Any] = {"hosts": [options.node_url]}
    if options.client_options:
        kwargs.update(options.client_options)
    return kwargs


def get_opensearch_client(options: RuntimeOptions) -> AsyncOpenSearch:
    """
    Return the shared async OpenSearch client for these options. One client per distinct set of
    connection kwargs; created on first use.
    """
    kwargs = build_client_kwargs(options)
    for known_kwargs, client in _clients:
        if known_kwargs == kwargs:
            return client
    client = AsyncOpenSearch(**kwargs)
    _clients.append((kwargs, client))
    logger.info(
        "OpenSearch async client initialized",
        extra={"hosts": kwargs["hosts"], "index_prefix": options.index_prefix, "clients": len(_clients)},
    )
    return client


async def close_opensearch_client() -> None:
    """Close every OpenSearch client and release connections. Call on app shutdown."""
    while _clients:
        _, client = _clients.pop()
        try:
            await client.close()
            logger.info("OpenSearch async client closed")
        except Exception as e:
            logger.warning("Error closing OpenSearch client", extra={"error": str(e)})
