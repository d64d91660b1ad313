"""Click recorder: best-effort, fire-and-forget click analytics.

Click Recording Flow
====================
::
    ┌─────────────┐
    │ resolver     │
    │ .record()    │──── returns immediately
    └──────┬──────┘
           │ asyncio.create_task (x2)
     ┌─────┴──────────────┐
     ▼                    ▼
┌─────────────┐     ┌─────────────┐
│ Unique?     │     │ INSERT      │
│ (Redis NX)  │     │ link_clicks │
└──────┬──────┘     └──────┬──────┘
       ▼                   │
┌─────────────┐            │
│ UPDATE      │            │
│ click_count │            │
│ + 1         │            │
└──────┬──────┘            │
       ▼                   ▼
   log & drop on failure, never retried

Key Behaviours
===============
- The counter increment and the detail insert run as separate tasks; one
  failing never cancels or undoes the other.
- Nothing here raises into the caller. Failures are logged and counted in
  ``golinks_click_recording_failures_total``.
- Task references are held until completion so they are not garbage
  collected mid-flight; ``drain()`` awaits whatever is still running.
- Client IP comes from the first ``X-Forwarded-For`` hop, then
  ``X-Real-IP``. The socket peer address is never used.
"""

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis
from prometheus_client import Counter

from golinks.config import Settings
from golinks.enums import RecordingOperation
from golinks.models import ShortLink
from golinks.registry import LinkRegistry
from golinks.schemas import ClickRecord

__all__ = ["ClickMetadata", "ClickRecorder", "extract_client_ip"]

CLICKS_RECORDED_TOTAL = Counter(
    "golinks_clicks_recorded_total",
    "Click recording sub-operations that completed",
    ["operation"]
)
CLICK_RECORDING_FAILURES_TOTAL = Counter(
    "golinks_click_recording_failures_total",
    "Click recording sub-operations that failed and were dropped",
    ["operation"]
)


def _first_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def extract_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    return _first_value(headers.get("x-forwarded-for")) or _first_value(headers.get("x-real-ip"))


@dataclass(frozen=True)
class ClickMetadata:
    """Client details captured from the redirect request."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "ClickMetadata":
        return cls(
            ip_address=extract_client_ip(headers),
            user_agent=headers.get("user-agent"),
            referrer=headers.get("referer"),
        )


class ClickRecorder:
    """Schedules click analytics writes without blocking the redirect."""

    def __init__(
        self,
        registry: LinkRegistry,
        cache: Optional[redis.Redis],
        logger: logging.Logger,
        settings: Settings,
    ):
        self._registry = registry
        self._cache = cache
        self._logger = logger
        self._settings = settings
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def record(self, link: ShortLink, metadata: ClickMetadata) -> None:
        """Dispatch both recording sub-operations for one click and return."""
        try:
            record = ClickRecord(
                link_id=link.id,
                code=link.code,
                ip_address=metadata.ip_address,
                user_agent=metadata.user_agent,
                referrer=metadata.referrer,
            )
            self._spawn(self._increment(record), RecordingOperation.INCREMENT, record.code)
            self._spawn(self._insert(record), RecordingOperation.INSERT, record.code)
        except Exception as exc:
            self._logger.error(f"Click recording could not be scheduled for {link.code}: {exc}")

    async def drain(self) -> None:
        """Wait for every in-flight recording task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None], operation: RecordingOperation, code: str) -> None:
        task = asyncio.create_task(coro, name=f"click-{operation.value}:{code}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _increment(self, record: ClickRecord) -> None:
        try:
            unique = await self._is_unique_visitor(record)
            await self._registry.increment_click_count(record.code, unique=unique)
            CLICKS_RECORDED_TOTAL.labels(operation=RecordingOperation.INCREMENT).inc()
        except Exception as exc:
            CLICK_RECORDING_FAILURES_TOTAL.labels(operation=RecordingOperation.INCREMENT).inc()
            self._logger.error(
                f"Click count increment failed for {record.code}: {exc}",
                extra={"operation": RecordingOperation.INCREMENT.value, "short_code": record.code},
            )

    async def _insert(self, record: ClickRecord) -> None:
        try:
            await self._registry.insert_click_record(record)
            CLICKS_RECORDED_TOTAL.labels(operation=RecordingOperation.INSERT).inc()
        except Exception as exc:
            CLICK_RECORDING_FAILURES_TOTAL.labels(operation=RecordingOperation.INSERT).inc()
            self._logger.error(
                f"Click record insert failed for {record.code}: {exc}",
                extra={"operation": RecordingOperation.INSERT.value, "short_code": record.code},
            )

    async def _is_unique_visitor(self, record: ClickRecord) -> bool:
        """First click from this IP on this link inside the unique-click window."""
        if record.ip_address is None:
            return True
        if self._cache is None:
            return False

        key = f"{self._settings.UNIQUE_CLICK_KEY_PREFIX}:{record.link_id}:{record.ip_address}"
        try:
            first_seen = await self._cache.set(
                key, "1", ex=self._settings.UNIQUE_CLICK_WINDOW_SECONDS, nx=True
            )
        except Exception as exc:
            self._logger.warning(f"Unique visitor check failed for {record.code}: {exc}")
            return False
        return bool(first_seen)
