from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.cache import CacheManager, MemoryCache, cache
from content_api.config import settings
from content_api.database import get_db
from content_api.errors import AuthenticationError
from content_api.security import TokenClaims, decode_access_token
from content_api.services.article_cache import ArticleEntityCache, ArticleListCache
from content_api.services.article_service import ArticleService
from content_api.services.article_store import SqlAlchemyArticleStore
from content_api.storage import LocalStorage

# Process-wide memory backend, used when CACHE_BACKEND=memory.
memory_cache = MemoryCache(maxsize=settings.MEMORY_CACHE_MAXSIZE)

_bearer = HTTPBearer(auto_error=False)


class PaginationParams:
    """
    Reusable FastAPI dependency that parses ``limit`` / ``offset`` query
    parameters.

    Out-of-range values are accepted here on purpose: the services map a
    non-positive ``limit`` to the default page size and a negative
    ``offset`` to 0.  Only the upper bound on ``limit`` is enforced,
    clamped to ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            description="Number of items returned per page.",
        ),
        offset: int = Query(
            0,
            description="Number of items to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = offset


def get_cache_backend() -> CacheManager | MemoryCache | None:
    """
    Resolve the configured cache backend, or ``None`` when caching is off.

    Redis counts as configured only once the lifespan hook has connected.
    """
    backend = settings.CACHE_BACKEND.lower()
    if backend == "redis" and cache.connected:
        return cache
    if backend == "memory":
        return memory_cache
    return None


def get_article_service(
    db: AsyncSession = Depends(get_db),
    backend: CacheManager | MemoryCache | None = Depends(get_cache_backend),
) -> ArticleService:
    entity_cache = ArticleEntityCache(backend) if backend is not None else None
    list_cache = ArticleListCache(backend) if backend is not None else None
    return ArticleService(
        SqlAlchemyArticleStore(db),
        entity_cache=entity_cache,
        list_cache=list_cache,
        ttl=settings.CACHE_TTL,
        default_page_size=settings.DEFAULT_PAGE_SIZE,
    )


def get_storage() -> LocalStorage:
    return LocalStorage(settings.STORAGE_BASE_PATH)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> TokenClaims:
    """Require a valid ``Authorization: Bearer <token>`` header."""
    if credentials is None:
        raise AuthenticationError("authorization header is required")
    if credentials.scheme.lower() != "bearer":
        raise AuthenticationError("invalid authorization header format")
    return decode_access_token(credentials.credentials)
