"""SQLAlchemy ORM models for the URL shortener.

Data Model Layout
=================
::
    urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_token (VARCHAR(20) UNIQUE, INDEXED)
    ├─ original_url (TEXT NOT NULL UNIQUE)
    ├─ click_count (INTEGER DEFAULT 0)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    └─ valid_until (TIMESTAMPTZ NOT NULL, INDEXED)

Key Behaviours
===============
- short_token is unique for the lifetime of the table, expired rows included.
- original_url carries its own unique constraint so that concurrent shorten
  calls for the same URL have exactly one winner; the loser gets an
  IntegrityError and falls back to reading the winner's row.
- valid_until is indexed for the validity filter on redirects and for the
  bulk delete run by the expiry sweeper.
- click_count is only ever changed by an in-database ``click_count + 1``.

Classes:
    URL:  Represents a shortened URL mapping with click tracking.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["URL"]


class URL(Base):
    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_token: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)

    def __repr__(self) -> str:
        return f"<URL(id={self.id}, short_token='{self.short_token}', click_count={self.click_count})>"
