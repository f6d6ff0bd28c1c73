import logging
import secrets
import string
import time

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import ValidationError, StorageError
from app.modules.media.storage import B2Storage

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

def build_file_key(content_type: str, folder: str | None = None) -> str:
    """
    {folder}/{epoch_ms}-{random6}.{ext}, the extension follows the
    validated content type, never the client filename.
    """
    ext = ALLOWED_CONTENT_TYPES[content_type]
    alphabet = string.ascii_lowercase + string.digits
    rand = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"{folder or settings.UPLOAD_FOLDER}/{int(time.time() * 1000)}-{rand}.{ext}"

async def upload_image(storage: B2Storage, file: UploadFile) -> dict:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, PNG, GIF and WEBP images are allowed.")

    data = await file.read()
    if not data:
        raise ValidationError("No file provided")
    if len(data) > settings.UPLOAD_MAX_SIZE:
        limit_mb = settings.UPLOAD_MAX_SIZE // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {limit_mb}MB.")

    file_key = build_file_key(file.content_type)
    try:
        url = await run_in_threadpool(storage.upload_file, data, file_key, file.content_type)
    except Exception as e:
        logger.error(f"Upload of {file_key} failed: {e}", exc_info=True)
        raise StorageError() from e

    return {"url": url, "filename": file_key}

def delete_quietly(storage: B2Storage, url: str | None) -> bool:
    """
    Best-effort delete used for old cover images; never raises.
    """
    if not url:
        return False
    try:
        return storage.delete_file(url)
    except Exception as e:
        logger.warning(f"Failed to delete stored file {url}: {e}")
        return False
