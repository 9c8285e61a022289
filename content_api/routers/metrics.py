from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.cache import CacheManager, MemoryCache
from content_api.database import get_db
from content_api.dependencies import get_cache_backend
from content_api.models import Article, Media, User
from content_api.schemas import MetricsResponse

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])

@router.get("", response_model=MetricsResponse)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    backend: CacheManager | MemoryCache | None = Depends(get_cache_backend),
):
    total_articles = (await db.execute(select(func.count()).select_from(Article))).scalar_one()

    total_users = (await db.execute(select(func.count()).select_from(User))).scalar_one()

    total_media = (await db.execute(select(func.count()).select_from(Media))).scalar_one()

    if backend is None:
        backend_name, cache_info = "none", {}
    else:
        backend_name = "redis" if isinstance(backend, CacheManager) else "memory"
        cache_info = backend.stats

    return MetricsResponse(
        total_articles=total_articles,
        total_users=total_users,
        total_media=total_media,
        cache_backend=backend_name,
        cache_info=cache_info,
    )
