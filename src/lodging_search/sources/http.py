"""Retrying JSON GET shared by the HTTP API sources."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from lodging_search.sources.base import SourceUnavailableError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

Sleep = Callable[[float], Awaitable[None]]


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    retries: int = 2,
    backoff_s: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """GET ``url`` and decode JSON, retrying throttling, server errors and transport failures.

    Anything that still fails is raised as :class:`SourceUnavailableError`.
    """
    last_error: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            response = await client.get(url, params=params)
        except httpx.TransportError as exc:
            last_error = exc
            logger.warning("Request to %s failed (%s), attempt %s/%s", url, exc, attempt + 1, retries + 1)
        else:
            if response.status_code in RETRYABLE_STATUS and attempt < retries:
                last_error = httpx.HTTPStatusError(
                    f"HTTP {response.status_code}", request=response.request, response=response
                )
                logger.warning(
                    "Request to %s returned %s, attempt %s/%s", url, response.status_code, attempt + 1, retries + 1
                )
            else:
                try:
                    response.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    logger.debug("Error body from %s: %s", url, response.text[:500])
                    raise SourceUnavailableError(f"{url} returned HTTP {response.status_code}") from exc
                try:
                    return response.json()
                except ValueError as exc:
                    raise SourceUnavailableError(f"{url} returned invalid JSON") from exc
        if attempt < retries:
            await sleep(backoff_s * (2**attempt))
    raise SourceUnavailableError(f"{url} failed after {retries + 1} attempts") from last_error
