"""
Media service: uploaded files on local storage plus a metadata row each.

The file is written before the row and removed again if anything after
the write fails, so a failed upload never leaves an orphan on disk.  Like
the article store, these functions commit their own writes: a replaced or
deleted file is removed only once the row change is durable.  Media is
not cached.
"""
import logging
from typing import AsyncIterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.config import settings
from content_api.errors import NotFoundError, StorageError, StoreError, ValidationError
from content_api.models import Media, utcnow
from content_api.schemas import MediaPage, MediaResponse
from content_api.services.article_service import normalize_pagination
from content_api.storage import LocalStorage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def build_url(base_url: str, path: str) -> str:
    """Public download URL for a storage-relative *path*."""
    path = path.replace("\\", "/").lstrip("/")
    return f"{base_url.rstrip('/')}/api/v1/media/files/{path}"


def _to_response(media: Media) -> MediaResponse:
    return MediaResponse(
        id=media.id,
        name=media.name,
        path=media.path,
        url=build_url(settings.STORAGE_BASE_URL, media.path),
        created_at=media.created_at,
        updated_at=media.updated_at,
    )


def _validate(name: str, path: str) -> None:
    if not name:
        raise ValidationError("name is required")
    if not path:
        raise ValidationError("path is required")


async def _load(db: AsyncSession, media_id: int) -> Media:
    media = await db.get(Media, media_id)
    if media is None:
        raise NotFoundError("media not found")
    return media


async def _commit(
    db: AsyncSession,
    storage: LocalStorage,
    action: str,
    written_path: str | None = None,
) -> None:
    """
    Commit the media row.  Files the row stops pointing at are removed only
    after this returns, so a failed commit never leaves a row whose file is
    gone; a file written for this request is deleted again instead.
    """
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        if written_path is not None:
            await storage.delete(written_path)
        raise StoreError(f"failed to {action} media") from exc


async def _remove_file(storage: LocalStorage, path: str) -> None:
    # The row is already gone or repointed; a leftover file is only wasted space.
    try:
        await storage.delete(path)
    except StorageError as exc:
        logger.warning("Could not remove media file %s: %s", path, exc)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_media(
    db: AsyncSession,
    storage: LocalStorage,
    filename: str,
    chunks: AsyncIterator[bytes],
) -> MediaResponse:
    if not filename:
        raise ValidationError("name is required")
    path = await storage.save(filename, chunks)
    try:
        _validate(filename, path)
    except ValidationError:
        await storage.delete(path)
        raise
    media = Media(name=filename, path=path)
    db.add(media)
    await _commit(db, storage, "create", written_path=path)
    logger.info("Media %s stored at %s", media.id, path)
    return _to_response(media)


async def get_media(db: AsyncSession, media_id: int) -> MediaResponse:
    return _to_response(await _load(db, media_id))


async def list_media(db: AsyncSession, limit: int, offset: int) -> MediaPage:
    limit, offset = normalize_pagination(limit, offset)
    total: int = (await db.execute(select(func.count()).select_from(Media))).scalar_one()
    q = (
        select(Media)
        .order_by(Media.created_at.desc(), Media.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(q)
    return MediaPage(
        media=[_to_response(m) for m in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


async def update_media(
    db: AsyncSession,
    storage: LocalStorage,
    media_id: int,
    filename: str,
    chunks: AsyncIterator[bytes],
) -> MediaResponse:
    """Replace the stored file of an existing media item."""
    media = await _load(db, media_id)
    if not filename:
        raise ValidationError("name is required")
    old_path = media.path

    new_path = await storage.save(filename, chunks)
    try:
        _validate(filename, new_path)
        media.name = filename
        media.path = new_path
        media.updated_at = utcnow()
    except ValidationError:
        await storage.delete(new_path)
        raise
    await _commit(db, storage, "update", written_path=new_path)

    await _remove_file(storage, old_path)
    return _to_response(media)


async def delete_media(db: AsyncSession, storage: LocalStorage, media_id: int) -> None:
    media = await _load(db, media_id)
    path = media.path
    await db.delete(media)
    await _commit(db, storage, "delete")

    await _remove_file(storage, path)
    logger.info("Media %s deleted", media_id)
