"""Pydantic models for stored blog posts and their wire representation."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_post_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds, the precision of the wire form."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def to_iso(value: datetime) -> str:
    """Format a UTC timestamp as ISO-8601 with milliseconds and a ``Z`` suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Author(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PostCreate(BaseModel):
    """Payload for POST /posts. Unknown fields such as ``id`` are ignored."""

    model_config = ConfigDict(strict=True)

    author: Author
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class PostUpdate(BaseModel):
    """Payload for PUT /posts/{id}; ``id`` must echo the path id."""

    model_config = ConfigDict(strict=True)

    id: str = Field(description="Must match the id in the request path")
    author: Author | None = None
    title: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)

    def changes(self) -> dict[str, Any]:
        """Mutable fields that were actually provided."""
        return {
            name: getattr(self, name)
            for name in ("author", "title", "content")
            if getattr(self, name) is not None
        }


class PostResponse(BaseModel):
    """Wire form of a blog post."""

    id: str
    author: str = Field(description="'{firstName} {lastName}'")
    title: str
    content: str
    created: str = Field(description="ISO-8601 creation timestamp")


class BlogPost(BaseModel):
    """Stored form of a blog post. ``id`` and ``created`` never change."""

    model_config = ConfigDict(frozen=True)

    id: str
    author: Author
    title: str
    content: str
    created: datetime

    @classmethod
    def from_create(cls, data: PostCreate) -> "BlogPost":
        return cls(
            id=new_post_id(),
            author=data.author,
            title=data.title,
            content=data.content,
            created=utc_now(),
        )

    def apply(self, update: PostUpdate) -> "BlogPost":
        return self.model_copy(update=update.changes())

    def to_document(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_document(cls, raw: str | bytes) -> "BlogPost":
        return cls.model_validate_json(raw)

    def serialize(self) -> PostResponse:
        return PostResponse(
            id=self.id,
            author=self.author.full_name,
            title=self.title,
            content=self.content,
            created=to_iso(self.created),
        )
