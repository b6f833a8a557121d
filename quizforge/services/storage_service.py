"""
Blob storage for uploaded PDFs and cover images
"""
import aiofiles
import aiofiles.os
import logging
import os
import time
import uuid
from werkzeug.utils import secure_filename

from quizforge.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    """Local-disk blob store; references are paths relative to the root"""

    def __init__(self, root: str = None):
        self.root = root or settings.STORAGE_DIR

    def _path(self, ref: str) -> str:
        path = os.path.abspath(os.path.join(self.root, ref))
        if not path.startswith(os.path.abspath(self.root) + os.sep):
            raise ValueError(f"Invalid blob reference: {ref}")
        return path

    async def upload(self, data: bytes, filename: str, folder: str = "pdfs") -> str:
        """
        Store bytes under a unique name

        Returns:
            Blob reference usable with read/delete/public_url
        """
        safe_name = secure_filename(filename) or "upload"
        ref = f"{folder}/{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}_{safe_name}"
        path = self._path(ref)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

        logger.info(f"Stored blob {ref} ({len(data)} bytes)")
        return ref

    async def read(self, ref: str) -> bytes:
        async with aiofiles.open(self._path(ref), "rb") as f:
            return await f.read()

    async def delete(self, ref: str) -> bool:
        """Remove a blob; missing blobs are not an error"""
        try:
            await aiofiles.os.remove(self._path(ref))
            logger.info(f"Deleted blob {ref}")
            return True
        except FileNotFoundError:
            return False

    def public_url(self, ref: str) -> str:
        return f"/files/{ref}"


# Global instance
storage_service = StorageService()
