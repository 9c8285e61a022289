"""
Local filesystem storage for uploaded media.

Files land under ``{base_path}/YYYY/MM/DD/`` with a Unix-timestamp suffix
on the stem (``photo.png`` -> ``photo_1718000000.png``) so re-uploading the
same name never overwrites an earlier file.  Paths handed back to callers
are relative to ``base_path`` and always use forward slashes.
"""
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import AsyncIterator

import aiofiles
import aiofiles.os

from content_api.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class LocalStorage:
    def __init__(self, base_path: str | os.PathLike) -> None:
        self.base_path = Path(base_path).resolve()

    def resolve(self, relative_path: str) -> Path:
        """
        Map a storage-relative path to an absolute one inside ``base_path``.

        Anything that would escape the storage root (``..``, absolute paths)
        is reported as not found.
        """
        candidate = (self.base_path / relative_path).resolve()
        if not candidate.is_relative_to(self.base_path):
            raise NotFoundError("media not found")
        return candidate

    async def save(self, filename: str, chunks: AsyncIterator[bytes]) -> str:
        """Write *chunks* to a new unique file and return its relative path."""
        name = Path(filename).name  # drop any client-supplied directories
        stem, ext = os.path.splitext(name)
        stamp = int(time.time())

        now = datetime.now(timezone.utc)
        rel_dir = PurePosixPath(f"{now.year:04d}", f"{now.month:02d}", f"{now.day:02d}")
        unique_name = f"{stem}_{stamp}{ext}"
        target = self.base_path / rel_dir / unique_name
        # Same name uploaded twice within one second.
        suffix = 1
        while await aiofiles.os.path.exists(target):
            unique_name = f"{stem}_{stamp}_{suffix}{ext}"
            target = self.base_path / rel_dir / unique_name
            suffix += 1

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                async for chunk in chunks:
                    await f.write(chunk)
        except OSError as exc:
            await self._remove_quietly(target)
            raise StorageError(f"failed to save file: {exc}") from exc

        return str(rel_dir / unique_name)

    async def delete(self, relative_path: str) -> None:
        """Delete a stored file.  A file that is already gone is not an error."""
        try:
            target = self.resolve(relative_path)
        except NotFoundError:
            return
        try:
            await aiofiles.os.remove(target)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"failed to delete file: {exc}") from exc

    async def exists(self, relative_path: str) -> bool:
        try:
            target = self.resolve(relative_path)
        except NotFoundError:
            return False
        return await aiofiles.os.path.isfile(target)

    async def _remove_quietly(self, target: Path) -> None:
        try:
            await aiofiles.os.remove(target)
        except OSError:
            logger.debug("No partial upload to clean up at %s", target)
