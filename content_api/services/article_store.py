"""
SQLAlchemy implementation of the ``ArticleStore`` protocol.

Unlike the user and media services, every mutation here commits before
returning.  ``ArticleService`` invalidates the caches right after a store
write, and the invalidation is only meaningful once the row is durable: if
the commit were deferred to the end of the request, a concurrent reader
could repopulate the cache from the pre-write row in between.
"""
from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.entities import Article
from content_api.errors import NotFoundError, StoreError
from content_api.models import Article as ArticleRow


class SqlAlchemyArticleStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _load(self, article_id: int) -> ArticleRow:
        try:
            result = await self._db.execute(select(ArticleRow).where(ArticleRow.id == article_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError("failed to load article") from exc
        if row is None:
            raise NotFoundError("article not found")
        return row

    async def _commit(self, action: str) -> None:
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise StoreError(f"failed to {action} article") from exc

    async def create(self, article: Article) -> Article:
        row = ArticleRow(title=article.title, content=article.content, author_id=article.author_id)
        # Unset timestamps fall through to the column defaults.
        if article.created_at is not None:
            row.created_at = article.created_at
        if article.updated_at is not None:
            row.updated_at = article.updated_at
        self._db.add(row)
        await self._commit("create")
        return Article.model_validate(row)

    async def get_by_id(self, article_id: int) -> Article:
        return Article.model_validate(await self._load(article_id))

    async def update(self, article: Article) -> Article:
        row = await self._load(article.id)
        row.title = article.title
        row.content = article.content
        row.updated_at = article.updated_at
        await self._commit("update")
        return Article.model_validate(row)

    async def delete(self, article_id: int) -> None:
        row = await self._load(article_id)
        await self._db.delete(row)
        await self._commit("delete")

    async def list(self, limit: int, offset: int) -> list[Article]:
        q = (
            select(ArticleRow)
            .order_by(desc(ArticleRow.created_at), desc(ArticleRow.id))
            .offset(offset)
            .limit(limit)
        )
        try:
            result = await self._db.execute(q)
        except SQLAlchemyError as exc:
            raise StoreError("failed to list articles") from exc
        return [Article.model_validate(row) for row in result.scalars().all()]

    async def count(self) -> int:
        try:
            result = await self._db.execute(select(func.count()).select_from(ArticleRow))
        except SQLAlchemyError as exc:
            raise StoreError("failed to count articles") from exc
        return result.scalar_one()
