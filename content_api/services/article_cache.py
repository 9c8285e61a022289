"""
Typed article caches layered over a string key-value backend
(``CacheManager`` or ``MemoryCache``).

Key layout
----------
- ``article:{id}``                 one cached Article
- ``article:list:{limit}:{offset}`` one cached ArticlePage

The ``list`` segment cannot be produced by an integer id, so entity keys
and list keys never collide, and ``invalidate_all`` can drop every page
with a single ``article:list:*`` pattern.

Payloads that fail to decode (schema drift, truncated writes) are reported
as ``CacheError`` so the caller treats them like any other cache failure.
"""
from pydantic import ValidationError as PydanticValidationError

from content_api.cache import CacheManager, MemoryCache
from content_api.entities import Article, ArticlePage
from content_api.errors import CacheError

LIST_KEY_PATTERN = "article:list:*"


def entity_key(article_id: int) -> str:
    return f"article:{article_id}"


def list_key(limit: int, offset: int) -> str:
    return f"article:list:{limit}:{offset}"


class ArticleEntityCache:
    def __init__(self, backend: CacheManager | MemoryCache) -> None:
        self._backend = backend

    async def get(self, article_id: int) -> Article | None:
        data = await self._backend.get(entity_key(article_id))
        if data is None:
            return None
        try:
            return Article.model_validate_json(data)
        except PydanticValidationError as exc:
            raise CacheError(f"undecodable cached article {article_id}") from exc

    async def set(self, article_id: int, article: Article, ttl: int) -> None:
        await self._backend.set(entity_key(article_id), article.model_dump_json(), ttl)

    async def delete(self, article_id: int) -> None:
        await self._backend.delete(entity_key(article_id))


class ArticleListCache:
    def __init__(self, backend: CacheManager | MemoryCache) -> None:
        self._backend = backend

    async def get(self, limit: int, offset: int) -> ArticlePage | None:
        data = await self._backend.get(list_key(limit, offset))
        if data is None:
            return None
        try:
            return ArticlePage.model_validate_json(data)
        except PydanticValidationError as exc:
            raise CacheError(f"undecodable cached page limit={limit} offset={offset}") from exc

    async def set(self, limit: int, offset: int, page: ArticlePage, ttl: int) -> None:
        await self._backend.set(list_key(limit, offset), page.model_dump_json(), ttl)

    async def invalidate_all(self) -> None:
        await self._backend.delete_pattern(LIST_KEY_PATTERN)
