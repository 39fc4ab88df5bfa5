"""Note model — authored by a user, owned by the author's tenant."""

import json
import uuid
from datetime import datetime

from pydantic import field_validator
from sqlalchemy import Text
from sqlmodel import Column, Field, SQLModel

from app.models.base import TimestampMixin, new_uuid

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10000
TAG_MAX_LENGTH = 50


class Note(TimestampMixin, SQLModel, table=True):
    __tablename__ = "notes"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    author_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)

    title: str = Field(max_length=TITLE_MAX_LENGTH, nullable=False)
    content: str = Field(sa_column=Column(Text, nullable=False))

    # Lower-cased tags stored as a JSON array
    tags: str = Field(default="[]", sa_column=Column(Text, nullable=False, server_default="[]"))

    # Reserved: no mutation path sets it yet
    is_archived: bool = Field(default=False)

    @property
    def tag_list(self) -> list[str]:
        return json.loads(self.tags or "[]")


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, lower-case and de-duplicate tags, keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        t = tag.strip().lower()
        if t not in seen:
            seen.append(t)
    return seen


def _check_tags(tags: list[str]) -> list[str]:
    for tag in tags:
        if not tag.strip():
            raise ValueError("Each tag must be a non-empty string")
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Each tag must be less than {TAG_MAX_LENGTH} characters")
    return normalize_tags(tags)


# ── Pydantic schemas ─────────────────────────────────────────

class NoteCreate(SQLModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=1, max_length=CONTENT_MAX_LENGTH)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str]) -> list[str]:
        return _check_tags(v)


class NoteUpdate(SQLModel):
    """Author and tenant are deliberately absent: they never change."""
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str | None = Field(default=None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    tags: list[str] | None = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else _check_tags(v)


class NoteAuthor(SQLModel):
    id: uuid.UUID
    email: str
    role: str


class NoteRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    title: str
    content: str
    tags: list[str]
    is_archived: bool
    author: NoteAuthor
    created_at: datetime
    updated_at: datetime
