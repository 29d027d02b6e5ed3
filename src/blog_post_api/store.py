"""Blog post document store — Protocol + Memory + Redis implementations."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlparse

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from blog_post_api.config import MEMORY_SCHEMES, REDIS_SCHEMES
from blog_post_api.errors import StoreError
from blog_post_api.models import BlogPost, PostCreate, PostUpdate

if TYPE_CHECKING:
    from redis.asyncio import Redis

_POST_PREFIX = "post:"
_INDEX_KEY = "posts:index"
_SEQ_KEY = "posts:seq"


@runtime_checkable
class PostStore(Protocol):
    """Protocol for blog post storage backends."""

    async def insert_one(self, data: PostCreate) -> BlogPost: ...

    async def insert_many(self, records: Iterable[PostCreate]) -> list[BlogPost]: ...

    async def find_all(self) -> list[BlogPost]: ...

    async def find_by_id(self, post_id: str) -> BlogPost | None: ...

    async def find_one(self) -> BlogPost | None: ...

    async def update_by_id(self, post_id: str, update: PostUpdate) -> BlogPost | None: ...

    async def delete_by_id(self, post_id: str) -> bool: ...

    async def count(self) -> int: ...

    async def drop(self) -> None: ...

    async def aclose(self) -> None: ...


class MemoryPostStore:
    """In-process store for local runs and tests. Preserves creation order."""

    def __init__(self) -> None:
        self._posts: dict[str, BlogPost] = {}

    async def insert_one(self, data: PostCreate) -> BlogPost:
        post = BlogPost.from_create(data)
        self._posts[post.id] = post
        return post

    async def insert_many(self, records: Iterable[PostCreate]) -> list[BlogPost]:
        return [await self.insert_one(data) for data in records]

    async def find_all(self) -> list[BlogPost]:
        return list(self._posts.values())

    async def find_by_id(self, post_id: str) -> BlogPost | None:
        return self._posts.get(post_id)

    async def find_one(self) -> BlogPost | None:
        return next(iter(self._posts.values()), None)

    async def update_by_id(self, post_id: str, update: PostUpdate) -> BlogPost | None:
        post = self._posts.get(post_id)
        if post is None:
            return None
        updated = post.apply(update)
        self._posts[post_id] = updated
        return updated

    async def delete_by_id(self, post_id: str) -> bool:
        return self._posts.pop(post_id, None) is not None

    async def count(self) -> int:
        return len(self._posts)

    async def drop(self) -> None:
        self._posts.clear()

    async def aclose(self) -> None:
        self._posts.clear()


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate Redis transport failures into StoreError."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
        raise StoreError(operation, str(exc)) from exc


class RedisPostStore:
    """Redis-backed document store.

    Each post is a JSON document at ``post:{id}``. The ``posts:index`` sorted
    set holds ids scored by an insertion counter (``posts:seq``) so listings
    come back in creation order.
    """

    def __init__(self, client: Redis) -> None:
        self._client: Redis = client

    def _key(self, post_id: str) -> str:
        return f"{_POST_PREFIX}{post_id}"

    async def _load(self, keys: list[str]) -> list[BlogPost]:
        if not keys:
            return []
        values = await self._client.mget(keys)
        return [BlogPost.from_document(v) for v in values if v is not None]

    async def insert_one(self, data: PostCreate) -> BlogPost:
        return (await self.insert_many([data]))[0]

    async def insert_many(self, records: Iterable[PostCreate]) -> list[BlogPost]:
        posts = [BlogPost.from_create(data) for data in records]
        if not posts:
            return []
        with _store_errors("insert"):
            last = int(await self._client.incrby(_SEQ_KEY, len(posts)))
            first = last - len(posts) + 1
            async with self._client.pipeline(transaction=True) as pipe:
                for post in posts:
                    pipe.set(self._key(post.id), post.to_document())
                pipe.zadd(_INDEX_KEY, {post.id: first + i for i, post in enumerate(posts)})
                await pipe.execute()
        return posts

    async def find_all(self) -> list[BlogPost]:
        with _store_errors("find_all"):
            ids = await self._client.zrange(_INDEX_KEY, 0, -1)
            return await self._load([self._key(_decode(i)) for i in ids])

    async def find_by_id(self, post_id: str) -> BlogPost | None:
        with _store_errors("find_by_id"):
            raw = await self._client.get(self._key(post_id))
        if raw is None:
            return None
        return BlogPost.from_document(raw)

    async def find_one(self) -> BlogPost | None:
        with _store_errors("find_one"):
            ids = await self._client.zrange(_INDEX_KEY, 0, 0)
            posts = await self._load([self._key(_decode(i)) for i in ids])
        return posts[0] if posts else None

    async def update_by_id(self, post_id: str, update: PostUpdate) -> BlogPost | None:
        post = await self.find_by_id(post_id)
        if post is None:
            return None
        updated = post.apply(update)
        with _store_errors("update"):
            written = await self._client.set(self._key(post_id), updated.to_document(), xx=True)
        # Deleted between read and write.
        if not written:
            return None
        return updated

    async def delete_by_id(self, post_id: str) -> bool:
        with _store_errors("delete"):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(self._key(post_id))
                pipe.zrem(_INDEX_KEY, post_id)
                deleted, _ = await pipe.execute()
        return bool(deleted)

    async def count(self) -> int:
        with _store_errors("count"):
            return int(await self._client.zcard(_INDEX_KEY))

    async def drop(self) -> None:
        with _store_errors("drop"):
            ids = await self._client.zrange(_INDEX_KEY, 0, -1)
            keys = [self._key(_decode(i)) for i in ids]
            await self._client.delete(_INDEX_KEY, _SEQ_KEY, *keys)

    async def aclose(self) -> None:
        """Close the underlying Redis connection."""
        await self._client.aclose()


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def create_post_store(database_url: str) -> PostStore:
    """Factory: create a PostStore for the backend named by the URL scheme."""
    scheme = urlparse(database_url).scheme
    if scheme in REDIS_SCHEMES:
        import redis.asyncio as aioredis

        return RedisPostStore(aioredis.from_url(database_url))
    if scheme in MEMORY_SCHEMES:
        return MemoryPostStore()
    msg = f"Unsupported DATABASE_URL scheme: '{scheme}'"
    raise ValueError(msg)
