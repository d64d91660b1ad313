"""Redirect resolver: short code in, destination URL out.

Resolution Flow
===============
::
    ┌─────────────┐
    │ raw code    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ strip +     │
    │ lower-case  │
    └──────┬──────┘
           ▼
    ┌─────────────┐   missing   ┌──────────────────────────┐
    │ registry    │────────────▶│ /?error=link-not-found   │
    │ lookup      │   inactive  ├──────────────────────────┤
    └──────┬──────┘────────────▶│ /?error=link-inactive    │
           │ active             └──────────────────────────┘
           ▼
    ┌─────────────┐
    │ recorder    │  (scheduled, not awaited)
    │ .record()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐   any error ┌──────────────────────────┐
    │ merge query │────────────▶│ /?error=redirect-failed  │
    │ params      │             └──────────────────────────┘
    └──────┬──────┘
           ▼
      destination URL

Key Behaviours
===============
- ``resolve()`` never raises; every failure becomes a fallback URL.
- ``resolve_destination()`` is the raising variant, for callers that want
  the typed ``ShortLinkError``.
- Destination query keys win over incoming ones.
"""

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from prometheus_client import Counter, Histogram

from golinks.codes import normalize_code
from golinks.config import Settings
from golinks.enums import RedirectError, RedirectOutcome
from golinks.exceptions import InvalidDestinationError, LinkInactiveError, LinkNotFoundError, ShortLinkError
from golinks.recorder import ClickMetadata, ClickRecorder
from golinks.registry import LinkRegistry
from golinks.urls import build_fallback_url, ensure_absolute_url, merge_query_params

__all__ = ["Resolution", "RedirectResolver"]

REDIRECT_REQUESTS_TOTAL = Counter(
    "golinks_redirect_requests_total",
    "Total short link redirect resolutions",
    ["outcome"]
)
REDIRECT_RESOLVE_DURATION = Histogram(
    "golinks_redirect_resolve_duration_seconds",
    "Time taken to resolve a short code to a destination",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0]
)


@dataclass(frozen=True)
class Resolution:
    url: str
    error: Optional[RedirectError] = None

    @property
    def resolved(self) -> bool:
        return self.error is None


class RedirectResolver:
    """Resolves short codes and triggers click recording for live links."""

    def __init__(
        self,
        registry: LinkRegistry,
        recorder: ClickRecorder,
        logger: logging.Logger,
        settings: Settings,
    ):
        self._registry = registry
        self._recorder = recorder
        self._logger = logger
        self._settings = settings

    async def resolve(
        self,
        raw_code: str,
        query_params: Iterable[tuple[str, str]] = (),
        metadata: ClickMetadata = ClickMetadata(),
    ) -> Resolution:
        start_time = time.perf_counter()
        code = normalize_code(raw_code)

        try:
            destination = await self.resolve_destination(code, query_params, metadata)
            resolution = Resolution(url=destination)
        except ShortLinkError as exc:
            self._logger.warning(f"Redirect fallback for {code!r}: {exc}")
            resolution = self._fallback(exc.error_code)
        except Exception as exc:
            self._logger.error(f"Redirect failed for {code!r}: {exc}")
            resolution = self._fallback(RedirectError.REDIRECT_FAILED)

        REDIRECT_RESOLVE_DURATION.observe(time.perf_counter() - start_time)
        REDIRECT_REQUESTS_TOTAL.labels(outcome=RedirectOutcome.from_error(resolution.error)).inc()
        return resolution

    async def resolve_destination(
        self,
        code: str,
        query_params: Iterable[tuple[str, str]],
        metadata: ClickMetadata,
    ) -> str:
        link = await self._registry.find_short_link(code)
        if link is None:
            raise LinkNotFoundError(code)
        if not link.is_active:
            raise LinkInactiveError(code)

        self._recorder.record(link, metadata)

        try:
            ensure_absolute_url(link.url)
        except ValueError as exc:
            raise InvalidDestinationError(code, str(exc)) from exc
        return merge_query_params(link.url, query_params)

    def _fallback(self, error: RedirectError) -> Resolution:
        return Resolution(url=build_fallback_url(self._settings.SITE_ROOT_URL, error), error=error)
