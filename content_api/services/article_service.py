"""
Article service: cache-aside orchestration for the Article aggregate.

Design notes
------------
- Reads prefer the cache.  A hit returns immediately without touching the
  store; a miss *or any cache failure* falls back to the store, and the
  result is written back to the cache fire-and-forget.
- Writes always go to the store first, and mutations always load the
  current row from the store, never from the cache, so a stale cached
  copy cannot be written back over a newer row.  Cache invalidation runs
  only after the store call succeeded and is best-effort: a failure is
  logged and the operation still returns its result.  TTL expiry bounds
  the staleness left behind by a failed invalidation.
- Any mutation drops *every* cached list page.  An insert, update or
  delete can shift the contents of every page and the total count, so
  per-page invalidation would need the full page-shift analysis to stay
  correct.
- Both caches are optional.  They are resolved once, when the service is
  constructed; ``None`` means "no cache", and every operation then behaves
  exactly as the store alone.
- There is no locking or versioning.  A read that races an update can put
  the pre-update row back into the entity cache after the update has
  invalidated it; that window is bounded by the TTL.
- Only ``CacheError`` is caught around cache calls.  Cancellation
  (``asyncio.CancelledError``) propagates, so a cancelled read never gets
  as far as populating the cache.
"""
import logging
from datetime import datetime, timezone

from content_api.entities import Article, ArticlePage
from content_api.errors import CacheError
from content_api.schemas import ArticleCreate, ArticleUpdate
from content_api.services.ports import ArticleEntityCache, ArticleListCache, ArticleStore

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300  # seconds, applied uniformly to entity and list entries
DEFAULT_PAGE_SIZE = 10


def normalize_pagination(limit: int, offset: int, default_limit: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    """Map a non-positive *limit* to *default_limit* and a negative *offset* to 0."""
    if limit <= 0:
        limit = default_limit
    if offset < 0:
        offset = 0
    return limit, offset


class ArticleService:
    def __init__(
        self,
        store: ArticleStore,
        entity_cache: ArticleEntityCache | None = None,
        list_cache: ArticleListCache | None = None,
        ttl: int = DEFAULT_CACHE_TTL,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._store = store
        self._entity_cache = entity_cache
        self._list_cache = list_cache
        self._ttl = ttl
        self._default_page_size = default_page_size

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create(self, data: ArticleCreate) -> Article:
        now = datetime.now(timezone.utc)
        article = Article(
            title=data.title,
            content=data.content,
            author_id=data.author_id,
            created_at=now,
            updated_at=now,
        )
        article.ensure_valid()

        created = await self._store.create(article)
        # The entity cache is filled lazily by the first read.
        await self._invalidate_lists()
        logger.info("Article %s created by author %s", created.id, created.author_id)
        return created

    async def get(self, article_id: int) -> Article:
        if self._entity_cache is not None:
            try:
                cached = await self._entity_cache.get(article_id)
            except CacheError as exc:
                logger.warning("Article cache read failed for id=%s, using store: %s", article_id, exc)
                cached = None
            if cached is not None:
                return cached

        # NotFoundError propagates; absence is never cached.
        article = await self._store.get_by_id(article_id)

        if self._entity_cache is not None:
            try:
                await self._entity_cache.set(article_id, article, self._ttl)
            except CacheError as exc:
                logger.warning("Article cache write failed for id=%s: %s", article_id, exc)
        return article

    async def list(self, limit: int, offset: int) -> ArticlePage:
        limit, offset = normalize_pagination(limit, offset, self._default_page_size)

        if self._list_cache is not None:
            try:
                cached = await self._list_cache.get(limit, offset)
            except CacheError as exc:
                logger.warning(
                    "Article list cache read failed for limit=%s offset=%s, using store: %s",
                    limit, offset, exc,
                )
                cached = None
            if cached is not None:
                return cached

        # Either call failing aborts before anything is cached.
        articles = await self._store.list(limit, offset)
        total = await self._store.count()
        page = ArticlePage(articles=articles, total=total, limit=limit, offset=offset)

        if self._list_cache is not None:
            try:
                await self._list_cache.set(limit, offset, page, self._ttl)
            except CacheError as exc:
                logger.warning(
                    "Article list cache write failed for limit=%s offset=%s: %s", limit, offset, exc
                )
        return page

    async def update(self, article_id: int, data: ArticleUpdate) -> Article:
        article = await self._store.get_by_id(article_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        article = article.model_copy(
            update={**changes, "updated_at": datetime.now(timezone.utc)}
        )
        article.ensure_valid()

        updated = await self._store.update(article)
        await self._invalidate_entity(article_id)
        await self._invalidate_lists()
        logger.info("Article %s updated", article_id)
        return updated

    async def delete(self, article_id: int) -> None:
        # Confirms existence; NotFoundError stops here with no side effects.
        await self._store.get_by_id(article_id)

        await self._store.delete(article_id)
        await self._invalidate_entity(article_id)
        await self._invalidate_lists()
        logger.info("Article %s deleted", article_id)

    # ------------------------------------------------------------------
    # Best-effort invalidation
    # ------------------------------------------------------------------

    async def _invalidate_entity(self, article_id: int) -> None:
        if self._entity_cache is None:
            return
        try:
            await self._entity_cache.delete(article_id)
        except CacheError as exc:
            logger.warning(
                "Article cache invalidation failed for id=%s, entry lives until TTL: %s",
                article_id, exc,
            )

    async def _invalidate_lists(self) -> None:
        if self._list_cache is None:
            return
        try:
            await self._list_cache.invalidate_all()
        except CacheError as exc:
            logger.warning("Article list cache invalidation failed, pages live until TTL: %s", exc)
