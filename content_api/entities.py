"""
Domain entities that travel between the article store, the caches and the
HTTP layer.

They are pydantic models so the cache adapters can serialise them with
``model_dump_json`` / ``model_validate_json`` and the routers can return
them directly.  Invariants are checked explicitly with ``ensure_valid``
rather than on construction: a cached or stored copy is trusted as-is,
only new and edited articles are checked.
"""
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from content_api.errors import ValidationError


class Article(BaseModel):
    id: int | None = None
    title: str
    content: str
    author_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    def ensure_valid(self) -> None:
        """Raise ``ValidationError`` for the first violated invariant."""
        if not self.title:
            raise ValidationError("title is required")
        if not self.content:
            raise ValidationError("content is required")
        if self.author_id <= 0:
            raise ValidationError("author id is required")


class ArticlePage(BaseModel):
    """One page of articles plus the total row count at read time."""

    articles: list[Article]
    total: int
    limit: int
    offset: int
