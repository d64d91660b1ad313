"""Shared pytest fixtures: an in-memory link registry and a wired-up app client.

The API tests never touch PostgreSQL or Redis. The registry is replaced by
``InMemoryLinkRegistry`` and Redis by an ``AsyncMock`` through FastAPI
dependency overrides, while the resolver and recorder are the real classes.
"""

import datetime
import logging
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient

from golinks.config import Settings, get_settings
from golinks.dependencies import get_redirect_resolver, get_registry
from golinks.exceptions import ShortCodeTakenError
from golinks.main import app
from golinks.models import LinkClick, ShortLink
from golinks.recorder import ClickRecorder
from golinks.redis import get_redis
from golinks.resolver import RedirectResolver
from golinks.schemas import ClickRecord, ShortLinkCreate, ShortLinkUpdate

JOHN_ATLANTA_URL = "https://taxgeniuspro.tax/start-filing/form?ref=TGP-123456"


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class InMemoryLinkRegistry:
    """Dict-backed stand-in for ``LinkRegistry`` with switchable failures."""

    def __init__(self) -> None:
        self.links: dict[str, ShortLink] = {}
        self.clicks: list[LinkClick] = []
        self.fail_lookup = False
        self.fail_increment = False
        self.fail_insert = False
        self.fail_ping = False
        self._next_link_id = 1
        self._next_click_id = 1

    def add(self, code: str, url: str, is_active: bool = True, title: Optional[str] = None) -> ShortLink:
        link = ShortLink(
            id=self._next_link_id,
            code=code,
            url=url,
            title=title,
            is_active=is_active,
            click_count=0,
            unique_click_count=0,
            created_at=_now(),
            updated_at=_now(),
        )
        self._next_link_id += 1
        self.links[code] = link
        return link

    async def find_short_link(self, code: str) -> Optional[ShortLink]:
        if self.fail_lookup:
            raise ConnectionError("database unavailable")
        return self.links.get(code)

    async def increment_click_count(self, code: str, unique: bool = False) -> None:
        if self.fail_increment:
            raise ConnectionError("increment failed")
        link = self.links[code]
        link.click_count += 1
        if unique:
            link.unique_click_count += 1

    async def insert_click_record(self, record: ClickRecord) -> None:
        if self.fail_insert:
            raise ConnectionError("insert failed")
        self.clicks.append(
            LinkClick(
                id=self._next_click_id,
                link_id=record.link_id,
                ip_address=record.ip_address,
                user_agent=record.user_agent,
                referrer=record.referrer,
                clicked_at=record.clicked_at,
            )
        )
        self._next_click_id += 1

    async def create_short_link(self, payload: ShortLinkCreate) -> ShortLink:
        if payload.code in self.links:
            raise ShortCodeTakenError(payload.code)
        return self.add(payload.code, payload.url, title=payload.title)

    async def update_short_link(self, code: str, payload: ShortLinkUpdate) -> Optional[ShortLink]:
        link = self.links.get(code)
        if link is None:
            return None
        for field_name, value in payload.model_dump(exclude_unset=True).items():
            setattr(link, field_name, value)
        return link

    async def list_short_links(self, limit: int, offset: int = 0) -> list[ShortLink]:
        links = sorted(self.links.values(), key=lambda link: (link.created_at, link.id), reverse=True)
        return links[offset : offset + limit]

    async def get_short_link_stats(self, code: str, limit: int):
        link = self.links.get(code)
        if link is None:
            return None
        clicks = [click for click in self.clicks if click.link_id == link.id]
        clicks.sort(key=lambda click: (click.clicked_at, click.id), reverse=True)
        return link, clicks[:limit]

    async def ping(self) -> None:
        if self.fail_ping:
            raise ConnectionError("database unavailable")


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("golinks.tests")


@pytest.fixture
def registry() -> InMemoryLinkRegistry:
    registry = InMemoryLinkRegistry()
    registry.add("johnatlanta", JOHN_ATLANTA_URL, title="John in Atlanta")
    registry.add("paused", "https://taxgeniuspro.tax/contact", is_active=False)
    return registry


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis_client = AsyncMock(spec=redis.Redis)
    redis_client.set = AsyncMock(return_value=True)
    redis_client.ping = AsyncMock(return_value=True)
    return redis_client


@pytest.fixture
def recorder(registry, mock_redis, logger, settings) -> ClickRecorder:
    return ClickRecorder(registry=registry, cache=mock_redis, logger=logger, settings=settings)


@pytest.fixture
def resolver(registry, recorder, logger, settings) -> RedirectResolver:
    return RedirectResolver(registry=registry, recorder=recorder, logger=logger, settings=settings)


@pytest_asyncio.fixture(scope="function")
async def client(registry, recorder, resolver, mock_redis) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_redis() -> redis.Redis:
        return mock_redis

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_redirect_resolver] = lambda: resolver
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await recorder.drain()
    app.dependency_overrides.clear()
