"""SQLAlchemy ORM models for the go-links service.

Data Model Layout
=================
::
    short_links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ code (VARCHAR(30) UNIQUE, INDEXED)
    ├─ url (TEXT NOT NULL)
    ├─ title (VARCHAR(200) NULL)
    ├─ is_active (BOOLEAN DEFAULT TRUE)
    ├─ click_count (INTEGER DEFAULT 0)
    ├─ unique_click_count (INTEGER DEFAULT 0)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ updated_at (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)

    link_clicks table (append-only)
    ├─ id (SERIAL PRIMARY KEY)
    ├─ link_id (FK short_links.id, INDEXED)
    ├─ ip_address (TEXT NULL, client-supplied)
    ├─ user_agent (TEXT NULL)
    ├─ referrer (TEXT NULL)
    └─ clicked_at (TIMESTAMPTZ, DEFAULT NOW(), INDEXED)

Class Relationship Diagram
=========================
::
    ShortLink 1 ──── * LinkClick
    (referenced only; a link does not own or cascade its clicks)

Key Behaviours
===============
- code is stored lower-cased and never changes after creation.
- click_count only ever grows; increments are single UPDATE statements.
- LinkClick rows are inserted and never updated or deleted by the service.
- An inactive link keeps its row and counters.

Classes:
    ShortLink:  A marketing short link and its counters.
    LinkClick:  One recorded click on a short link.
"""

import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from golinks.database import Base

__all__ = ["ShortLink", "LinkClick"]


class ShortLink(Base):
    __tablename__ = "short_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unique_click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortLink(id={self.id}, code='{self.code}', active={self.is_active}, clicks={self.click_count})>"


class LinkClick(Base):
    __tablename__ = "link_clicks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    link_id: Mapped[int] = mapped_column(ForeignKey("short_links.id"), index=True, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    clicked_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<LinkClick(id={self.id}, link_id={self.link_id}, clicked_at={self.clicked_at})>"
