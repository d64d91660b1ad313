"""Pydantic schemas for request/response validation in the go-links service.

Schema Hierarchy
=================
::
    ShortLinkCreate (Input)
    ├─ code: str (normalised, validated)
    ├─ url: str (validated absolute URL)
    └─ title: str | None

    ShortLinkUpdate (Input)
    ├─ is_active: bool (applied only when sent)
    └─ title: str | None

    ShortLinkResponse (Output)
    ├─ id, code, url, short_url, title
    ├─ is_active
    ├─ click_count, unique_click_count
    └─ created_at

    ShortLinkStats (Output)
    ├─ ShortLinkResponse fields
    └─ recent_clicks: list[LinkClickResponse]

    ClickRecord (Internal)
    └─ one click handed from the resolver to the recorder

Key Behaviours
===============
- Codes are trimmed and lower-cased before validation, so ``JohnAtlanta``
  and ``johnatlanta`` are the same link.
- URL validation uses the validators library for RFC compliance, and only
  absolute http(s) destinations are accepted.
- All datetime fields are timezone-aware.
- Output models are configured for ORM attribute mapping.
"""

import datetime

import validators
from pydantic import BaseModel, Field, field_validator

from golinks.codes import validate_short_code
from golinks.enums import HealthStatus
from golinks.urls import ensure_absolute_url

__all__ = [
    "ShortLinkCreate",
    "ShortLinkUpdate",
    "ShortLinkResponse",
    "LinkClickResponse",
    "ShortLinkStats",
    "HealthResponse",
    "ClickRecord",
]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ShortLinkCreate(BaseModel):
    code: str
    url: str
    title: str | None = Field(None, max_length=200)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return validate_short_code(v)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        ensure_absolute_url(v)
        return v


class ShortLinkUpdate(BaseModel):
    # Only fields present in the request body are applied; null is not a valid state.
    is_active: bool = True
    title: str | None = Field(None, max_length=200)


class ShortLinkResponse(BaseModel):
    id: int
    code: str
    url: str
    short_url: str
    title: str | None
    is_active: bool
    click_count: int
    unique_click_count: int
    created_at: datetime.datetime

    model_config = {"from_attributes": True}


class LinkClickResponse(BaseModel):
    id: int
    ip_address: str | None
    user_agent: str | None
    referrer: str | None
    clicked_at: datetime.datetime

    model_config = {"from_attributes": True}


class ShortLinkStats(ShortLinkResponse):
    recent_clicks: list[LinkClickResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ClickRecord(BaseModel):
    """A single click, as captured on the redirect path."""

    link_id: int
    code: str = Field(..., description="Normalised short code that was clicked, e.g. 'johnatlanta'")
    ip_address: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    clicked_at: datetime.datetime = Field(default_factory=_utcnow)
