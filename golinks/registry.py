"""Link registry: persistent storage of short links and their clicks.

Every operation opens its own session from the injected ``async_sessionmaker``.
The redirect path reads through ``find_short_link`` and the click recorder
writes through ``increment_click_count`` / ``insert_click_record`` from
background tasks, long after the request that triggered them has finished.

Operation Overview
==================
::
    find_short_link(code)              SELECT ... WHERE code = :code
    increment_click_count(code, uniq)  UPDATE ... SET click_count = click_count + 1
    insert_click_record(record)        INSERT INTO link_clicks ...
    create_short_link(payload)         INSERT INTO short_links ...
    update_short_link(code, payload)   UPDATE short_links ... (admin)
    list_short_links(limit, offset)    newest links first (admin)
    get_short_link_stats(code, limit)  link + newest ``limit`` clicks
    ping()                             SELECT 1
"""

import logging
from typing import Optional

from prometheus_client import Counter
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from golinks.exceptions import ShortCodeTakenError
from golinks.models import LinkClick, ShortLink
from golinks.schemas import ClickRecord, ShortLinkCreate, ShortLinkUpdate

__all__ = ["LinkRegistry"]

DATABASE_READS_TOTAL = Counter(
    "golinks_database_reads_total",
    "Total database read operations"
)
DATABASE_WRITES_TOTAL = Counter(
    "golinks_database_writes_total",
    "Total database write operations"
)

logger = logging.getLogger("golinks.registry")


class LinkRegistry:
    """SQLAlchemy-backed store for ``ShortLink`` and ``LinkClick`` rows."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_short_link(self, code: str) -> Optional[ShortLink]:
        async with self._session_factory() as session:
            result = await session.execute(select(ShortLink).where(ShortLink.code == code))
            DATABASE_READS_TOTAL.inc()
            return result.scalar_one_or_none()

    async def increment_click_count(self, code: str, unique: bool = False) -> None:
        values = {"click_count": ShortLink.click_count + 1}
        if unique:
            values["unique_click_count"] = ShortLink.unique_click_count + 1

        async with self._session_factory() as session:
            await session.execute(update(ShortLink).where(ShortLink.code == code).values(**values))
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()

    async def insert_click_record(self, record: ClickRecord) -> None:
        click = LinkClick(
            link_id=record.link_id,
            ip_address=record.ip_address,
            user_agent=record.user_agent,
            referrer=record.referrer,
            clicked_at=record.clicked_at,
        )
        async with self._session_factory() as session:
            session.add(click)
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()

    async def create_short_link(self, payload: ShortLinkCreate) -> ShortLink:
        async with self._session_factory() as session:
            existing = await session.execute(select(ShortLink.id).where(ShortLink.code == payload.code))
            DATABASE_READS_TOTAL.inc()
            if existing.scalar_one_or_none() is not None:
                raise ShortCodeTakenError(payload.code)

            link = ShortLink(code=payload.code, url=payload.url, title=payload.title, is_active=True)
            session.add(link)
            try:
                await session.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent create of the same code.
                await session.rollback()
                raise ShortCodeTakenError(payload.code) from exc
            DATABASE_WRITES_TOTAL.inc()
            await session.refresh(link)
            logger.info(f"Short link created: {link.code} -> {link.url}")
            return link

    async def update_short_link(self, code: str, payload: ShortLinkUpdate) -> Optional[ShortLink]:
        async with self._session_factory() as session:
            result = await session.execute(select(ShortLink).where(ShortLink.code == code))
            DATABASE_READS_TOTAL.inc()
            link = result.scalar_one_or_none()
            if link is None:
                return None

            changes = payload.model_dump(exclude_unset=True)
            for field_name, value in changes.items():
                setattr(link, field_name, value)
            await session.commit()
            DATABASE_WRITES_TOTAL.inc()
            await session.refresh(link)
            logger.info(f"Short link updated: {link.code} {changes}")
            return link

    async def list_short_links(self, limit: int, offset: int = 0) -> list[ShortLink]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ShortLink)
                .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
                .limit(limit)
                .offset(offset)
            )
            DATABASE_READS_TOTAL.inc()
            return list(result.scalars().all())

    async def get_short_link_stats(self, code: str, limit: int) -> Optional[tuple[ShortLink, list[LinkClick]]]:
        async with self._session_factory() as session:
            result = await session.execute(select(ShortLink).where(ShortLink.code == code))
            DATABASE_READS_TOTAL.inc()
            link = result.scalar_one_or_none()
            if link is None:
                return None

            clicks = await session.execute(
                select(LinkClick)
                .where(LinkClick.link_id == link.id)
                .order_by(LinkClick.clicked_at.desc(), LinkClick.id.desc())
                .limit(limit)
            )
            DATABASE_READS_TOTAL.inc()
            return link, list(clicks.scalars().all())

    async def ping(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
