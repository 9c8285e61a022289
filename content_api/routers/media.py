from typing import AsyncIterator

from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.database import get_db
from content_api.dependencies import PaginationParams, get_current_user, get_storage
from content_api.errors import NotFoundError
from content_api.schemas import MediaPage, MediaResponse
from content_api.services import media_service
from content_api.storage import CHUNK_SIZE, LocalStorage

router = APIRouter(prefix="/api/v1/media", tags=["media"])


async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while chunk := await upload.read(CHUNK_SIZE):
        yield chunk


# --- Public download ---

@router.get("/files/{path:path}")
async def download_file(path: str, storage: LocalStorage = Depends(get_storage)):
    if not await storage.exists(path):
        raise NotFoundError("media not found")
    return FileResponse(storage.resolve(path))

# --- Bearer token required ---

@router.get("", response_model=MediaPage, dependencies=[Depends(get_current_user)])
async def list_media(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await media_service.list_media(db, pagination.limit, pagination.offset)

@router.get("/{media_id}", response_model=MediaResponse, dependencies=[Depends(get_current_user)])
async def get_media(media_id: int, db: AsyncSession = Depends(get_db)):
    return await media_service.get_media(db, media_id)

@router.post("", status_code=201, response_model=MediaResponse, dependencies=[Depends(get_current_user)])
async def upload_media(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    return await media_service.create_media(db, storage, file.filename or "", _iter_upload(file))

@router.put("/{media_id}", response_model=MediaResponse, dependencies=[Depends(get_current_user)])
async def replace_media(
    media_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    return await media_service.update_media(
        db, storage, media_id, file.filename or "", _iter_upload(file)
    )

@router.delete("/{media_id}", status_code=204, dependencies=[Depends(get_current_user)])
async def delete_media(
    media_id: int,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    await media_service.delete_media(db, storage, media_id)
    return Response(status_code=204)
