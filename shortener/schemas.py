"""Pydantic schemas for the URL shortener.

``URLRecord`` is the store-independent view of a row in ``urls``; the
repository returns it and the workflows build it. The remaining models are
request and response payloads for the HTTP layer.

How to Use
===========
**Step 1 — Build a fresh record**::
    record = URLRecord.new("https://example.com", "aB3dE5gH", settings.validity_window)

**Step 2 — Convert an ORM row**::
    record = URLRecord.model_validate(orm_url)

Key Behaviours
===============
- All datetime fields are timezone-aware UTC.
- ``valid_until`` is fixed at creation as ``created_at + validity window``.
- Request URLs are validated with the validators library.

Classes:
    URLRecord:  A persisted URL mapping.
    ShortenRequest:  Input schema for shorten requests.
    ShortenResponse:  Output schema for shorten requests.
    URLInfoResponse:  Output schema for the info endpoint.
    HealthResponse:  Output schema for health checks.
"""

import datetime

import validators
from pydantic import BaseModel, Field, field_validator

from shortener.enums import HealthStatus

__all__ = [
    "URLRecord",
    "ShortenRequest",
    "ShortenResponse",
    "URLInfoResponse",
    "HealthResponse",
]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class URLRecord(BaseModel):
    original_url: str = Field(..., min_length=1)
    short_token: str = Field(..., min_length=1)
    click_count: int = Field(0, ge=0)
    created_at: datetime.datetime
    valid_until: datetime.datetime

    model_config = {"from_attributes": True}

    @classmethod
    def new(
        cls,
        original_url: str,
        short_token: str,
        validity_window: datetime.timedelta,
        now: datetime.datetime | None = None,
    ) -> "URLRecord":
        created_at = now or utcnow()
        return cls(
            original_url=original_url,
            short_token=short_token,
            click_count=0,
            created_at=created_at,
            valid_until=created_at + validity_window,
        )

    def is_valid(self, now: datetime.datetime | None = None) -> bool:
        return self.valid_until > (now or utcnow())


class ShortenRequest(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v:
            raise ValueError("URL must not be empty")
        if not validators.url(v):
            raise ValueError("Invalid URL provided")
        return v


class ShortenResponse(BaseModel):
    short_token: str
    short_url: str


class URLInfoResponse(BaseModel):
    original_url: str
    short_token: str
    short_url: str
    click_count: int
    created_at: datetime.datetime
    valid_until: datetime.datetime


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
