import asyncio
import logging
from urllib.parse import urljoin

import httpx

from db.config import settings
from ingestion.exceptions import ConfigurationError
from utils.const import UA_HEADER

logger = logging.getLogger(__name__)

# Facet name -> TMDB list endpoint
DISCOVERY_FACETS = {
    "now_playing": "movie/now_playing",
    "popular": "movie/popular",
    "top_rated": "movie/top_rated",
    "upcoming": "movie/upcoming",
}


async def fetch_discovery_page(
    client: httpx.AsyncClient, facet: str, page: int, api_key: str
) -> list[int]:
    response = await client.get(
        urljoin(settings.tmdb_base_url, DISCOVERY_FACETS[facet]),
        params={"api_key": api_key, "page": page},
    )
    response.raise_for_status()
    data = response.json()
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        raise ValueError(f"unexpected payload shape: {type(data).__name__}")
    return [
        item["id"] for item in results if isinstance(item, dict) and item.get("id") is not None
    ]


async def discover_facet(
    client: httpx.AsyncClient, facet: str, pages: int, api_key: str
) -> list[int]:
    """IDs from the first ``pages`` pages of a facet. A failing page is skipped."""
    ids = []
    for page in range(1, pages + 1):
        try:
            ids.extend(await fetch_discovery_page(client, facet, page, api_key))
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"TMDB {facet} page {page} returned {e.response.status_code}, skipping"
            )
        except (httpx.RequestError, ValueError) as e:
            logger.warning(f"TMDB {facet} page {page} failed: {e}")
    return ids


async def discover_movie_ids(
    client: httpx.AsyncClient | None = None,
    facets: list[str] | None = None,
    pages: int | None = None,
    api_key: str | None = None,
) -> dict[str, list[int]]:
    """
    Query every discovery facet concurrently.

    Returns a mapping of facet name to the IDs it listed. Facets that fail
    entirely map to an empty list; a missing API key is a configuration
    error and raises before any request is made.
    """
    api_key = api_key or settings.tmdb_api_key
    if not api_key:
        raise ConfigurationError("TMDB API key is not configured")

    facets = facets or list(DISCOVERY_FACETS)
    pages = pages or settings.tmdb_discovery_pages

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(
            proxy=settings.requests_proxy_url,
            timeout=settings.tmdb_request_timeout,
            headers=UA_HEADER,
        )
    try:
        results = await asyncio.gather(
            *(discover_facet(client, facet, pages, api_key) for facet in facets)
        )
    finally:
        if owns_client:
            await client.aclose()

    return dict(zip(facets, results))
