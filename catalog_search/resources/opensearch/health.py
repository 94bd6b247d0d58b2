"""Async OpenSearch health checks: readiness ping and the startup connection retry loop."""

import asyncio
from typing import Any

from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import ConnectionError as OSConnectionError
from opensearchpy.exceptions import ConnectionTimeout as OSConnectionTimeout
from opensearchpy.exceptions import OpenSearchException

from catalog_search.config.logging import get_logger

logger = get_logger(__name__)


async def ping_search_engine(client: AsyncOpenSearch) -> dict[str, Any]:
    """
    Ping the search engine. Returns dict with 'ok' bool and optional 'error' string.
    Used for health checks; does not leak internal details.
    """
    try:
        if await client.ping():
            return {"ok": True}
        return {"ok": False, "error": "ping_failed"}
    except OSConnectionTimeout as e:
        logger.warning("OpenSearch ping timeout", extra={"error": type(e).__name__})
        return {"ok": False, "error": "connection_timeout"}
    except (OSConnectionError, OpenSearchException) as e:
        logger.warning("OpenSearch ping failed", extra={"error": type(e).__name__})
        return {"ok": False, "error": "connection_failed"}


async def wait_for_search_engine(client: AsyncOpenSearch, attempts: int, interval_ms: int) -> bool:
    """
    Ping up to `attempts` times, sleeping interval_ms between attempts.
    Returns True once the engine answers, False if every attempt failed.
    """
    for attempt in range(1, attempts + 1):
        result = await ping_search_engine(client)
        if result["ok"]:
            logger.info("Connected to search engine", extra={"attempt": attempt})
            return True
        logger.warning(
            "Connection to search engine failed",
            extra={"attempt": attempt, "attempts": attempts, "error": result.get("error")},
        )
        if attempt < attempts:
            await asyncio.sleep(interval_ms / 1000)
    logger.error("Search engine unreachable after all attempts", extra={"attempts": attempts})
    return False
