"""
Uniform access to the embed providers.

The adapter owns the network policy for every provider call: the shared rate
limit, bounded retries with exponential backoff for transient failures, and
the collapse of any failure into an empty result. Callers never see provider
errors.
"""

import logging
from dataclasses import dataclass, field

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from db.config import settings
from db.schemas import ExternalIds, PipelineConfig, ProviderMatch, StreamDraft
from ingestion.exceptions import InvalidArgument
from streaming_providers.exceptions import (
    PermanentProviderError,
    ProviderException,
    TransientProviderError,
)
from streaming_providers.mapper import PROVIDERS, ProviderSpec, get_provider_spec
from utils import rate_limiter
from utils.const import UA_HEADER

logger = logging.getLogger(__name__)


@dataclass
class ProviderOutcome:
    match: ProviderMatch
    streams: list[StreamDraft] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderAdapter:
    def __init__(
        self,
        rate_limit_rps: float = 3,
        max_retry_attempts: int = 3,
        *,
        http_client: httpx.AsyncClient | None = None,
        providers: dict | None = None,
        retry_wait: wait_base | None = None,
        verify_timeout: float | None = None,
    ):
        self.rate_limit_rps = rate_limit_rps
        self.max_retry_attempts = max_retry_attempts
        self.providers: dict = PROVIDERS if providers is None else providers
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)
        self.verify_timeout = verify_timeout or settings.stream_verify_timeout
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.provider_request_timeout,
            proxy=settings.requests_proxy_url,
            headers=UA_HEADER,
            follow_redirects=True,
        )

    @classmethod
    def from_config(cls, config: PipelineConfig, **kwargs) -> "ProviderAdapter":
        return cls(
            rate_limit_rps=config.rate_limit_rps,
            max_retry_attempts=config.max_retry_attempts,
            **kwargs,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.http_client.aclose()

    async def search_by_external_ids(self, ids: ExternalIds) -> list[ProviderMatch]:
        """
        One match per provider that can be attempted for ``ids``, ordered by
        provider priority. No network calls are made here.

        Raises InvalidArgument when ids carries no usable identifier.
        """
        if ids.is_empty():
            raise InvalidArgument("No external identifiers to search by")
        provider_ref = next(
            (
                str(value)
                for value in (ids.primary_id, ids.secondary_id, ids.title)
                if value not in (None, "")
            )
        )

        specs: list[ProviderSpec] = sorted(
            self.providers.values(), key=lambda spec: spec.priority
        )
        return [
            ProviderMatch(
                provider=spec.name, provider_ref=provider_ref, priority=spec.priority
            )
            for spec in specs
        ]

    async def get_streams(self, match: ProviderMatch) -> list[StreamDraft]:
        """Streams for ``match``; any failure yields an empty list."""
        outcome = await self.fetch_streams(match)
        return outcome.streams

    async def fetch_streams(self, match: ProviderMatch) -> ProviderOutcome:
        try:
            spec = get_provider_spec(match.provider, self.providers)
            url = spec.embed_url(match.provider_ref)
            await self._request_with_retry(url)
            streams = spec.build_drafts(match.provider_ref)
        except ProviderException as error:
            logger.warning(
                "%s lookup for %s failed: %s",
                match.provider.value,
                match.provider_ref,
                error.message,
            )
            return ProviderOutcome(match, error=error.message)
        except Exception as error:
            logger.exception(
                "Unexpected error from %s for %s", match.provider.value, match.provider_ref
            )
            return ProviderOutcome(match, error=str(error) or type(error).__name__)

        logger.debug(
            "%s returned %d streams for %s",
            match.provider.value,
            len(streams),
            match.provider_ref,
        )
        return ProviderOutcome(match, streams=streams)

    async def verify_stream(self, url: str) -> bool:
        """HEAD ``url``; working means any status below 400."""
        await rate_limiter.acquire(self.rate_limit_rps)
        try:
            response = await self.http_client.head(
                url, timeout=self.verify_timeout, follow_redirects=True
            )
        except (httpx.HTTPError, httpx.InvalidURL) as error:
            logger.info("Stream check failed for %s: %s", url, error)
            return False
        return response.status_code < 400

    async def _request_with_retry(self, url: str) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type(TransientProviderError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying %s (attempt %d/%d)",
                        url,
                        attempt.retry_state.attempt_number,
                        self.max_retry_attempts,
                    )
                return await self._request(url)

    async def _request(self, url: str) -> httpx.Response:
        await rate_limiter.acquire(self.rate_limit_rps)
        try:
            response = await self.http_client.get(url)
        except httpx.TimeoutException as error:
            raise TransientProviderError(f"Timeout requesting {url}: {error}")
        except httpx.RequestError as error:
            raise TransientProviderError(f"Network error requesting {url}: {error}")

        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientProviderError(f"HTTP {status} from {url}")
        if status >= 400:
            raise PermanentProviderError(f"HTTP {status} from {url}")
        return response
