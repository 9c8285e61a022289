"""
Protocols consumed by ``ArticleService``.

Any object with matching async methods satisfies them; the production
implementations live in ``article_store`` and ``article_cache``, the tests
use in-memory fakes.
"""
from typing import Protocol

from content_api.entities import Article, ArticlePage


class ArticleStore(Protocol):
    """Authoritative article persistence.

    ``get_by_id`` and ``delete`` raise ``NotFoundError`` for an unknown id;
    every other failure is raised as ``StoreError``.
    """

    async def create(self, article: Article) -> Article: ...

    async def get_by_id(self, article_id: int) -> Article: ...

    async def update(self, article: Article) -> Article: ...

    async def delete(self, article_id: int) -> None: ...

    async def list(self, limit: int, offset: int) -> list[Article]: ...

    async def count(self) -> int: ...


class ArticleEntityCache(Protocol):
    """Per-article cache.  A miss is ``None``; failures raise ``CacheError``."""

    async def get(self, article_id: int) -> Article | None: ...

    async def set(self, article_id: int, article: Article, ttl: int) -> None: ...

    async def delete(self, article_id: int) -> None: ...


class ArticleListCache(Protocol):
    """Paginated-list cache.  A miss is ``None``; failures raise ``CacheError``."""

    async def get(self, limit: int, offset: int) -> ArticlePage | None: ...

    async def set(self, limit: int, offset: int, page: ArticlePage, ttl: int) -> None: ...

    async def invalidate_all(self) -> None: ...
